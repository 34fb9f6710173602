from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

# logger name -> dedicated file, written on top of app.log
CHANNEL_FILES = {
    "rasyon.costing": "costing.log",
    "rasyon.sync": "sync.log",
}

MAX_BYTES = 2_000_000
BACKUPS = 5


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "channel": record.name,
            "msg": record.getMessage(),
        }
        if record.levelno >= logging.WARNING:
            payload["where"] = f"{record.module}:{record.lineno}"
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _file_handler(path: Path, level: int) -> RotatingFileHandler:
    fh = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUPS, encoding="utf-8")
    fh.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    fh.setLevel(level)
    return fh


def _attach_channel(name: str, path: Path) -> None:
    channel = logging.getLogger(name)
    channel.setLevel(logging.INFO)
    for h in channel.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(path):
            return
    channel.addHandler(_file_handler(path, logging.INFO))


def setup_logging(logs_dir: Path, level: int = logging.INFO) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    for name, filename in CHANNEL_FILES.items():
        _attach_channel(name, logs_dir / filename)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return
    root.addHandler(_file_handler(logs_dir / "app.log", logging.INFO))
    root.addHandler(_file_handler(logs_dir / "errors.log", logging.ERROR))
