from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from shutil import copyfileobj, copystat

from navdoc.errors import BackupFailed, DeleteFailed, NotFoundError, WriteFailed

logger = logging.getLogger(__name__)

# <path>.<YYYYMMDDHHMMSS>.bak or <path>.<YYYYMMDDHHMMSS>.deleted
BACKUP_RE = re.compile(r"\.\d{14}\.(bak|deleted)$")


# Same-second backups move the stamp forward instead of overwriting.
MAX_STAMP_SHIFT = 60


def _now_stamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime("%Y%m%d%H%M%S")


def is_backup(path: str | Path) -> bool:
    return bool(BACKUP_RE.search(str(path)))


def _backup_copy(path: Path, suffix: str) -> Path:
    moment = datetime.now()
    for _ in range(MAX_STAMP_SHIFT):
        backup_path = path.with_name(f"{path.name}.{_now_stamp(moment)}.{suffix}")
        try:
            with path.open("rb") as src, backup_path.open("xb") as dst:
                copyfileobj(src, dst)
            copystat(path, backup_path)
        except FileExistsError:
            moment += timedelta(seconds=1)
            continue
        except OSError as exc:
            raise BackupFailed(f"Failed to create backup of {path.name}: {exc}") from exc
        logger.debug("Backed up %s to %s", path, backup_path.name)
        return backup_path
    raise BackupFailed(f"Failed to create backup of {path.name}: no free backup name")


class BackupingStore:
    """Writes and deletes files, always copying the previous contents aside first."""

    def write_with_backup(self, path: Path, content: str) -> Path | None:
        backup_path = _backup_copy(path, "bak") if path.exists() else None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(content)
        except OSError as exc:
            raise WriteFailed(f"Failed to save {path.name}: {exc}") from exc
        return backup_path

    def delete_with_backup(self, path: Path) -> Path:
        if not path.is_file():
            raise NotFoundError(f"File not found: {path.name}")
        backup_path = _backup_copy(path, "deleted")
        try:
            path.unlink()
        except OSError as exc:
            raise DeleteFailed(f"Failed to delete {path.name}: {exc}") from exc
        return backup_path
