from __future__ import annotations

from typing import Optional, Protocol


class DocumentRepository(Protocol):
    def load_user_document(self, user_id: str) -> Optional[dict]: ...
    def save_user_document(self, user_id: str, fields: dict) -> None: ...
    def list_months(self, user_id: str) -> list[dict]: ...
    def load_month(self, user_id: str, month_str: str) -> Optional[dict]: ...
    def save_month(self, user_id: str, month_doc: dict) -> None: ...
    def delete_month(self, user_id: str, month_str: str) -> bool: ...
