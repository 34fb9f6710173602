from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from rasyon.domain.errors import RemoteUnavailableError
from rasyon.repositories.contracts import DocumentRepository


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def stage_user_fields(self, fields: dict) -> None: ...
    def stage_month(self, month_doc: dict) -> None: ...
    def stage_month_delete(self, month_str: str) -> None: ...


@dataclass
class RepositoryUnitOfWork:
    """Collects document writes and flushes them in one batch on a clean exit.

    Repeated writes to the same user field or month collapse into one; nothing
    is written when the block raises.
    """

    repo: DocumentRepository
    user_id: str
    user_fields: dict = field(default_factory=dict)
    months: dict[str, dict | None] = field(default_factory=dict)

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        return None

    def stage_user_fields(self, fields: dict) -> None:
        self.user_fields.update(fields)

    def stage_month(self, month_doc: dict) -> None:
        self.months[str(month_doc["monthStr"])] = month_doc

    def stage_month_delete(self, month_str: str) -> None:
        self.months[month_str] = None

    def commit(self) -> None:
        # a remote miss is already queued locally; keep writing the rest
        unsynced: RemoteUnavailableError | None = None
        if self.user_fields:
            try:
                self.repo.save_user_document(self.user_id, self.user_fields)
            except RemoteUnavailableError as e:
                unsynced = e
            self.user_fields = {}
        for month_str in sorted(self.months):
            doc = self.months.pop(month_str)
            try:
                if doc is None:
                    self.repo.delete_month(self.user_id, month_str)
                else:
                    self.repo.save_month(self.user_id, doc)
            except RemoteUnavailableError as e:
                unsynced = e
        if unsynced is not None:
            raise unsynced
