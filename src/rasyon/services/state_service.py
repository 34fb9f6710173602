from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable, Iterable

from rasyon.config import AppSettings
from rasyon.domain.codec import PERSISTED_FIELDS, decode_month, decode_state, encode_month, encode_state
from rasyon.domain.models import AppState
from rasyon.repositories.contracts import DocumentRepository
from rasyon.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("rasyon.sync")


def new_id() -> str:
    return uuid.uuid4().hex


class StateService:
    """
    Owns the single ``AppState`` value.

    Command services build a new state and hand it to ``commit`` together with
    the persisted fields and months it touched. Nothing is written until
    ``save`` runs (or ``autosave_every`` commits have piled up), and then all
    pending changes go out through one unit of work.
    """

    def __init__(
        self,
        repo: DocumentRepository,
        user_id: str = "local",
        settings: AppSettings | None = None,
        uow_factory: Callable[[], UnitOfWork] | None = None,
        autosave_every: int = 0,
    ):
        self.repo = repo
        self.user_id = user_id
        self.settings = settings or AppSettings()
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo, user_id))
        self.autosave_every = int(autosave_every)

        self._state = self.default_state()
        self._dirty_fields: set[str] = set()
        self._dirty_months: set[str] = set()
        self._deleted_months: set[str] = set()
        self._pending = 0

    def default_state(self) -> AppState:
        return AppState(
            online_commission_rate=self.settings.default_online_commission_rate,
            days_worked_in_month=self.settings.default_days_worked,
        )

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty_fields or self._dirty_months or self._deleted_months)

    def load(self) -> AppState:
        doc = self.repo.load_user_document(self.user_id) or {}
        months = tuple(decode_month(d) for d in self.repo.list_months(self.user_id))
        state = decode_state(doc, base=self.default_state())
        self._state = replace(state, monthly_closings=months)
        self._clear_dirty()
        log.info(
            "state_loaded uid=%s recipes=%s raw=%s months=%s",
            self.user_id,
            len(self._state.recipes),
            len(self._state.raw_ingredients),
            len(months),
        )
        return self._state

    def commit(
        self,
        new_state: AppState,
        fields: Iterable[str] = (),
        months: Iterable[str] = (),
        deleted_months: Iterable[str] = (),
    ) -> AppState:
        fields = set(fields)
        unknown = fields - set(PERSISTED_FIELDS)
        if unknown:
            raise ValueError(f"Not a persisted field: {sorted(unknown)}")

        self._state = new_state
        self._dirty_fields |= fields
        for m in months:
            self._dirty_months.add(m)
            self._deleted_months.discard(m)
        for m in deleted_months:
            self._deleted_months.add(m)
            self._dirty_months.discard(m)

        self._pending += 1
        if self.autosave_every and self._pending >= self.autosave_every:
            self.save()
        return self._state

    def replace_state(self, new_state: AppState) -> AppState:
        """Swap in a whole new state (e.g. a restored backup); every field is rewritten."""
        new_months = {m.month_str for m in new_state.monthly_closings}
        dropped = {m.month_str for m in self._state.monthly_closings} - new_months
        return self.commit(new_state, fields=PERSISTED_FIELDS, months=new_months, deleted_months=dropped)

    def save(self) -> bool:
        if not self.is_dirty:
            return False

        state = self._state
        months_by_str = {m.month_str: m for m in state.monthly_closings}
        fields = sorted(self._dirty_fields)
        months = sorted(self._dirty_months)
        deleted = sorted(self._deleted_months)

        with self.uow_factory() as uow:
            if fields:
                uow.stage_user_fields(encode_state(state, fields))
            for m in months:
                uow.stage_month(encode_month(months_by_str[m]))
            for m in deleted:
                uow.stage_month_delete(m)

        log.info("state_saved uid=%s fields=%s months=%s deleted=%s", self.user_id, fields, months, deleted)
        self._clear_dirty()
        return True

    def _clear_dirty(self) -> None:
        self._dirty_fields.clear()
        self._dirty_months.clear()
        self._deleted_months.clear()
        self._pending = 0
