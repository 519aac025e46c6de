"""Logging setup: stdout only, plain text or one JSON object per line."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def setup_logging(level: str | int = "INFO", json_output: bool = False) -> logging.Logger:
    """Attach a single stdout handler to the `gfscore` logger tree."""
    resolved = logging.getLevelName(str(level).upper()) if isinstance(level, str) else level
    if isinstance(resolved, str):  # unknown name returns string
        resolved = logging.INFO

    root = logging.getLogger("gfscore")
    root.setLevel(resolved)

    handler = next(
        (h for h in root.handlers if getattr(h, "_gfscore_handler", False)), None
    )
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler._gfscore_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    handler.setLevel(resolved)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))
    return root
