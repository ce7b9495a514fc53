from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import requests

from ..attendance.model import ClockEvent
from ..core.constants import DEFAULT_REMOTE_TIMEOUT_SECONDS
from ..core.exceptions import NetworkFailure, NonJSONResponse, ServerError, ValidationError
from ..summary.model import DailySummary
from .model import RemoteChanges

logger = logging.getLogger(__name__)


class RemoteClient(Protocol):
    def fetch_changes(self, *, since: Optional[str], limit: int) -> RemoteChanges:
        raise NotImplementedError

    def fetch_range(self, *, start_date: date, end_date: date) -> List[ClockEvent]:
        raise NotImplementedError

    def mark_synced(self, *, edited_ids: Sequence[int], deleted_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def upload_summaries(self, summaries: Sequence[DailySummary]) -> int:
        raise NotImplementedError

    def push_record(self, event: ClockEvent) -> None:
        raise NotImplementedError


def normalize_base_url(url: str) -> str:
    url = (url or "").strip().rstrip("/")
    if not url:
        raise ValidationError("SERVER_URL is not configured")
    if "://" not in url:
        url = f"https://{url}"
    return url


def parse_records(rows: Iterable[Any]) -> tuple[List[ClockEvent], List[str]]:
    """Parse server rows; malformed ones are logged and returned as rejection messages."""

    events: List[ClockEvent] = []
    rejected: List[str] = []
    for row in rows or []:
        try:
            events.append(ClockEvent.from_remote(row))
        except (ValidationError, AttributeError) as exc:
            logger.error("Skipping malformed server record %r: %s", row, exc)
            rejected.append(str(exc))
    return events, rejected


class HttpRemoteClient(RemoteClient):
    """JSON-over-HTTP client for the attendance server (requests)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self._base_url = normalize_base_url(base_url)
        self._timeout = float(timeout)
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    @property
    def base_url(self) -> str:
        return self._base_url

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise NetworkFailure(f"{method} {path} timed out after {self._timeout}s") from exc
        except requests.RequestException as exc:
            raise NetworkFailure(f"{method} {path} failed: {exc}") from exc

        content_type = response.headers.get("Content-Type", "")
        if not (200 <= response.status_code < 300):
            raise ServerError(f"{method} {path} returned HTTP {response.status_code}", status=response.status_code)
        if "json" not in content_type.lower():
            raise NonJSONResponse(
                f"{method} {path} returned non-JSON content ({content_type or 'no content type'})",
                status=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NonJSONResponse(f"{method} {path} returned an unparsable body", status=response.status_code) from exc

        if not isinstance(body, dict):
            raise ServerError(f"{method} {path} returned an unexpected payload", status=response.status_code)
        if body.get("success") is False:
            message = body.get("error") or body.get("message") or "request rejected"
            raise ServerError(f"{method} {path}: {message}", status=response.status_code)
        return body

    def fetch_changes(self, *, since: Optional[str], limit: int) -> RemoteChanges:
        params: Dict[str, Any] = {"limit": int(limit)}
        if since:
            params["since"] = since
        body = self._request("GET", "/attendanceEdit", params=params)
        data = body.get("data") or {}
        edited, rejected = parse_records(data.get("edited") or [])
        deleted: List[int] = []
        for raw in data.get("deleted") or []:
            try:
                deleted.append(int(raw))
            except (TypeError, ValueError):
                logger.error("Skipping malformed deleted id %r", raw)
                rejected.append(f"bad deleted id {raw!r}")
        return RemoteChanges(edited=edited, deleted=deleted, cursor=data.get("timestamp"), rejected=rejected)

    def fetch_range(self, *, start_date: date, end_date: date) -> List[ClockEvent]:
        body = self._request(
            "GET",
            "/attendanceEdit/range",
            params={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
        events, _ = parse_records(body.get("data") or [])
        return events

    def mark_synced(self, *, edited_ids: Sequence[int], deleted_ids: Sequence[int]) -> None:
        self._request(
            "POST",
            "/attendanceEdit/mark-synced",
            json={"editedIds": list(edited_ids), "deletedIds": list(deleted_ids)},
        )

    def upload_summaries(self, summaries: Sequence[DailySummary]) -> int:
        if not summaries:
            return 0
        self._request("POST", "/daily-summary/batch-upload", json={"summaries": [s.to_remote() for s in summaries]})
        return len(summaries)

    def push_record(self, event: ClockEvent) -> None:
        self._request("POST", "/attendance/sync", json={"record": event.to_remote()})
