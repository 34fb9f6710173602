import json
import logging
import os
from pathlib import Path

from rasyon.logging_config import CHANNEL_FILES, setup_logging


def _detach(logs_dir: Path):
    for name in CHANNEL_FILES:
        channel = logging.getLogger(name)
        for h in list(channel.handlers):
            if Path(getattr(h, "baseFilename", "")).parent == Path(os.path.abspath(logs_dir)):
                channel.removeHandler(h)
                h.close()


def test_channel_writes_json_lines_once(tmp_path: Path):
    logs_dir = tmp_path / "logs"
    setup_logging(logs_dir)
    setup_logging(logs_dir)
    try:
        logging.getLogger("rasyon.costing").warning("recipe_repriced id=%s", "r1")
        for h in logging.getLogger("rasyon.costing").handlers:
            h.flush()

        lines = (logs_dir / "costing.log").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["channel"] == "rasyon.costing"
        assert entry["msg"] == "recipe_repriced id=r1"
        assert entry["level"] == "WARNING"
        assert entry["where"].startswith("test_logging:")
    finally:
        _detach(logs_dir)
