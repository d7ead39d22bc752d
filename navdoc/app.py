from __future__ import annotations

import logging
from typing import Any

from flask import Flask, Response, jsonify, request

from navdoc.api import ApiRouter, merge_request_data
from navdoc.config import Settings, load_settings
from navdoc.docstore import DocStore
from navdoc.errors import MalformedInput, NavDocError
from navdoc.navstore import NavStore
from navdoc.vcs import Author, VersionControlGateway, detect_gateway

logger = logging.getLogger(__name__)

API_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]


def _json_error(message: str, status: int = 400, **extra: Any):
    payload: dict[str, Any] = {"success": False, "error": message}
    payload.update(extra)
    return jsonify(payload), status


def _request_data() -> dict[str, Any]:
    body = None
    if request.is_json and request.get_data():
        body = request.get_json(silent=True)
        if body is None:
            raise MalformedInput("Invalid JSON body.")
    return merge_request_data(
        request.args.to_dict(),
        request.form.to_dict(),
        body if isinstance(body, dict) else None,
    )


def _request_author(settings: Settings) -> Author:
    auth = request.authorization
    name = auth.username if auth and auth.username else settings.default_author
    email = request.headers.get("X-Author-Email") or None
    return Author(name=name, email=email)


def create_app(settings: Settings | None = None, gateway: VersionControlGateway | None = None) -> Flask:
    settings = settings or load_settings()
    gateway = gateway or detect_gateway(settings.root, settings.vcs, settings.git_timeout)
    settings.nav_root.mkdir(parents=True, exist_ok=True)

    router = ApiRouter(DocStore(settings, gateway), NavStore(settings, gateway), gateway)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["NAVDOC_SETTINGS"] = settings
    app.extensions["navdoc"] = router

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-Author-Email"
        return response

    @app.route("/api", methods=API_METHODS)
    @app.route("/api/", methods=API_METHODS)
    def api_root():
        if request.method == "OPTIONS":
            return "", 204
        return _json_error("No API endpoint specified", 404, code="unknown_endpoint")

    @app.route("/api/<path:endpoint>", methods=API_METHODS)
    def api(endpoint: str):
        if request.method == "OPTIONS":
            return "", 204
        try:
            data = _request_data()
            result = router.dispatch(endpoint, data, _request_author(settings))
        except NavDocError as exc:
            logger.info("API %s %s failed: %s", request.method, endpoint, exc)
            return _json_error(str(exc), exc.status, code=exc.code)
        except Exception as exc:
            logger.exception("Unhandled error in API %s %s", request.method, endpoint)
            return _json_error(str(exc), 500, code="internal_error")
        return jsonify({"success": True, "data": result})

    @app.route("/health", methods=["GET"])
    def healthcheck():
        return jsonify({
            "status": "ok",
            "root": str(settings.root),
            "vcs_enabled": gateway.enabled,
        })

    return app
