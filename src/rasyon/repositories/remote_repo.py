from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from rasyon.domain.errors import RemoteUnavailableError
from rasyon.repositories.sqlite_repo import SqliteRepository

log = logging.getLogger("rasyon.sync")


class RemoteDocumentRepository:
    """
    HTTP JSON document store mirrored into a local SQLite cache.

    Layout on the server:
      GET/PATCH  {base}/users/{uid}                  user document (PATCH merges)
      GET        {base}/users/{uid}/months           list of month documents
      GET/PUT/DELETE {base}/users/{uid}/months/{YYYY-MM}

    Reads fall back to the cache when the server is unreachable. Writes go
    to the cache first, then to the server; a write the server misses is
    queued in the cache and replayed before the next read.
    """

    def __init__(self, base_url: str, cache: SqliteRepository, timeout: float = 10, token: str | None = None):
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.timeout = timeout
        self.session = requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, user_id: str, *parts: str) -> str:
        segments = ["users", quote(user_id, safe="")] + [quote(p, safe="") for p in parts]
        return f"{self.base_url}/" + "/".join(segments)

    def _request(self, method: str, url: str, payload: Any = None) -> Any:
        r = self.session.request(method, url, json=payload, timeout=self.timeout)
        if r.status_code == 404 and method == "GET":
            return None
        r.raise_for_status()
        if not r.content:
            return None
        return r.json()

    # ---------- Pending sync ----------
    def push_pending(self, user_id: str) -> bool:
        """
        Replay writes the server missed, reading their content from the cache.

        Returns False when something is still unsynced; callers then serve
        the cache so local edits are not overwritten by stale server data.
        """
        pending = self.cache.list_pending(user_id)
        if not pending:
            return True

        fields = [key for kind, key in pending if kind == "field"]
        months = [key for kind, key in pending if kind == "month"]
        try:
            if fields:
                doc = self.cache.load_user_document(user_id) or {}
                self._request("PATCH", self._url(user_id), {k: doc[k] for k in fields if k in doc})
            for month_str in months:
                month_doc = self.cache.load_month(user_id, month_str)
                if month_doc is None:
                    self._request("DELETE", self._url(user_id, "months", month_str))
                else:
                    self._request("PUT", self._url(user_id, "months", month_str), month_doc)
        except requests.RequestException as e:
            log.warning("pending_push_failed uid=%s pending=%s error=%s", user_id, len(pending), e)
            return False

        self.cache.clear_pending(user_id, pending)
        log.info("pending_pushed uid=%s fields=%s months=%s", user_id, len(fields), len(months))
        return True

    # ---------- User documents ----------
    def load_user_document(self, user_id: str) -> Optional[dict]:
        if not self.push_pending(user_id):
            return self.cache.load_user_document(user_id)
        try:
            doc = self._request("GET", self._url(user_id))
        except (requests.RequestException, ValueError) as e:
            log.warning("remote_read_failed kind=user uid=%s error=%s", user_id, e)
            return self.cache.load_user_document(user_id)
        if doc is not None:
            self.cache.save_user_document(user_id, doc)
            return doc
        return self.cache.load_user_document(user_id)

    def save_user_document(self, user_id: str, fields: dict) -> None:
        self.cache.save_user_document(user_id, fields)
        try:
            self._request("PATCH", self._url(user_id), fields)
        except requests.RequestException as e:
            self.cache.mark_pending(user_id, "field", fields)
            log.warning("remote_write_failed kind=user uid=%s fields=%s error=%s", user_id, sorted(fields), e)
            raise RemoteUnavailableError(f"Remote save failed; changes kept locally. {e}") from e
        log.info("remote_saved kind=user uid=%s fields=%s", user_id, len(fields))

    # ---------- Monthly ledgers ----------
    def list_months(self, user_id: str) -> list[dict]:
        if not self.push_pending(user_id):
            return self.cache.list_months(user_id)
        try:
            docs = self._request("GET", self._url(user_id, "months"))
        except (requests.RequestException, ValueError) as e:
            log.warning("remote_read_failed kind=months uid=%s error=%s", user_id, e)
            return self.cache.list_months(user_id)
        if docs is None:
            return self.cache.list_months(user_id)
        for doc in docs:
            self.cache.save_month(user_id, doc)
        return sorted(docs, key=lambda d: str(d.get("monthStr", "")))

    def load_month(self, user_id: str, month_str: str) -> Optional[dict]:
        if not self.push_pending(user_id):
            return self.cache.load_month(user_id, month_str)
        try:
            doc = self._request("GET", self._url(user_id, "months", month_str))
        except (requests.RequestException, ValueError) as e:
            log.warning("remote_read_failed kind=month uid=%s month=%s error=%s", user_id, month_str, e)
            return self.cache.load_month(user_id, month_str)
        if doc is not None:
            self.cache.save_month(user_id, doc)
            return doc
        return self.cache.load_month(user_id, month_str)

    def save_month(self, user_id: str, month_doc: dict) -> None:
        self.cache.save_month(user_id, month_doc)
        month_str = str(month_doc["monthStr"])
        try:
            self._request("PUT", self._url(user_id, "months", month_str), month_doc)
        except requests.RequestException as e:
            self.cache.mark_pending(user_id, "month", [month_str])
            log.warning("remote_write_failed kind=month uid=%s month=%s error=%s", user_id, month_str, e)
            raise RemoteUnavailableError(f"Remote save failed; changes kept locally. {e}") from e

    def delete_month(self, user_id: str, month_str: str) -> bool:
        removed = self.cache.delete_month(user_id, month_str)
        try:
            self._request("DELETE", self._url(user_id, "months", month_str))
        except requests.RequestException as e:
            self.cache.mark_pending(user_id, "month", [month_str])
            log.warning("remote_delete_failed uid=%s month=%s error=%s", user_id, month_str, e)
            raise RemoteUnavailableError(f"Remote delete failed; retried on next sync. {e}") from e
        return removed
