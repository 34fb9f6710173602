from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from rasyon.domain.codec import PERSISTED_FIELDS, decode_month, decode_state, encode, encode_state
from rasyon.domain.errors import ImportFormatError
from rasyon.domain.models import AppState
from rasyon.services.state_service import StateService

log = logging.getLogger("rasyon.backup")

EXPORT_VERSION = "1.3"


class BackupService:
    """JSON export/import of the whole application state."""

    def __init__(self, store: StateService, exports_dir: Path | str | None = None):
        self.store = store
        self.exports_dir = Path(exports_dir) if exports_dir else None

    def export_data(self) -> dict:
        state = self.store.state
        data = encode_state(state, PERSISTED_FIELDS)
        data["monthlyClosings"] = encode(state.monthly_closings)
        data["version"] = EXPORT_VERSION
        data["exportDate"] = datetime.now().isoformat(timespec="seconds")
        return data

    def export_json(self, path: Path | str | None = None) -> Path:
        if path is None:
            if self.exports_dir is None:
                raise ValueError("No export path given and no exports directory configured.")
            self.exports_dir.mkdir(parents=True, exist_ok=True)
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = self.exports_dir / f"rasyon_backup_{ts}.json"
        target = Path(path)
        target.write_text(json.dumps(self.export_data(), ensure_ascii=False, indent=2), encoding="utf-8")
        log.info("export_written path=%s", target)
        return target

    @staticmethod
    def parse(data: dict) -> AppState:
        """
        Only ``recipes`` is required. Every other top-level key falls back to
        its default when missing.
        """
        if not isinstance(data, dict):
            raise ImportFormatError("Backup must be a JSON object.")
        if not isinstance(data.get("recipes"), list):
            raise ImportFormatError("Invalid backup file: 'recipes' must be a list.")

        state = decode_state({k: v for k, v in data.items() if k != "monthlyClosings"}, base=AppState())
        closings = data.get("monthlyClosings") or []
        if not isinstance(closings, list):
            raise ImportFormatError("monthlyClosings must be a list.")
        months = tuple(decode_month(m) for m in closings)
        return replace(state, monthly_closings=months)

    def import_data(self, data: dict) -> AppState:
        state = self.parse(data)
        log.info(
            "import_applied version=%s recipes=%s months=%s",
            data.get("version"),
            len(state.recipes),
            len(state.monthly_closings),
        )
        return self.store.replace_state(state)

    def import_json(self, source: Path | str) -> AppState:
        """``source`` is a file path or the JSON text itself."""
        text = str(source)
        if not text.lstrip().startswith(("{", "[")):
            try:
                text = Path(source).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ImportFormatError(f"Cannot read backup file {source}: {e}") from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Backup is not valid JSON: {e}") from e
        return self.import_data(data)
