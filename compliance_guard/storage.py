"""JSON persistence helpers.

Writes go to a ``.part`` sibling in the same directory, are flushed and
fsynced, and only then renamed over the target, so a crash mid-write
leaves the previously committed file untouched.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from compliance_guard.errors import ErrorCode, FileProcessingError

logger = logging.getLogger(__name__)


def atomic_write_json(path: str | Path, payload: Any) -> None:
    """Serialise *payload* and atomically replace *path* with it."""
    target = Path(path)
    tmp = target.with_name(target.name + ".part")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(payload, indent=2, ensure_ascii=False)
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise FileProcessingError(
            f"Failed to write {target}: {exc}",
            file=str(target),
            code=ErrorCode.FILE_WRITE_ERROR,
        ) from exc
    logger.debug("Wrote %s (%d bytes)", target, len(data))


def read_json(path: str | Path) -> Any | None:
    """Return the parsed JSON at *path*, or None when the file is absent.

    Raises ``json.JSONDecodeError`` for unparseable content and
    ``FileProcessingError`` when the file exists but cannot be read.
    """
    target = Path(path)
    try:
        text = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise FileProcessingError(
            f"Failed to read {target}: {exc}", file=str(target)
        ) from exc
    return json.loads(text)


__all__ = ["atomic_write_json", "read_json"]
