# Run locally with: pip install -e . && python -m navdoc
from __future__ import annotations

import logging
import os

from navdoc.app import create_app
from navdoc.config import load_settings, setup_logging

logger = logging.getLogger("navdoc")


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "5001"))
    debug = os.getenv("DEBUG", "false").lower() == "true"
    logger.info("Starting navdoc server on %s:%s (root %s)", host, port, settings.root)
    app = create_app(settings)
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
