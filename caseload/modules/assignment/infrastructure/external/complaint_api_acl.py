"""Anti-Corruption Layer: complaints REST backend → caseload domain models.

The engine reaches the complaints backend only through this ACL, so the
backend's payload shape (``_id``, populated ``assignedTo`` objects,
``data`` envelopes) never leaks into the domain.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

import httpx
import structlog

from caseload.core.config import settings
from caseload.modules.assignment.domain.errors import CaseloadError, StoreUnavailable, WorkItemNotFound
from caseload.modules.assignment.domain.models import (
    OPEN_STATUSES,
    StaffMember,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore

logger = structlog.get_logger()


class ComplaintApiError(CaseloadError):
    """Non-success response from the complaints backend."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(code="COMPLAINT_API_ERROR", message=f"HTTP {status_code}: {detail[:200]}")
        self.status_code = status_code
        self.detail = detail


def _ref_id(value: Any) -> str | None:
    """``assignedTo`` arrives either as an id or as a populated user object."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id")
        return str(ref) if ref else None
    return str(value)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        raise ValueError("createdAt missing")
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _unwrap_list(raw: Any, *keys: str) -> list:
    data = raw.get("data", raw) if isinstance(raw, dict) else raw
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
        return []
    return data if isinstance(data, list) else []


class ComplaintApiACL(WorkItemStore, StaffDirectory):
    """Work item store and staff directory backed by the complaints REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or settings.COMPLAINTS_API_BASE_URL).rstrip("/")
        self._token = settings.COMPLAINTS_API_TOKEN if token is None else token
        self._timeout = settings.COMPLAINTS_API_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                return await client.request(
                    method, f"{self._base_url}{path}", headers=self._headers(), **kwargs
                )
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"{method} {path}", str(e)) from e

    # -- Work items --------------------------------------------------------

    async def list_open_items(
        self, statuses: Iterable[WorkItemStatus] = OPEN_STATUSES
    ) -> list[WorkItem]:
        status_param = ",".join(WorkItemStatus(s).value for s in statuses)
        resp = await self._request("GET", "/complaints", params={"status": status_param})
        if resp.status_code >= 400:
            raise ComplaintApiError(resp.status_code, resp.text)

        items: list[WorkItem] = []
        for raw in _unwrap_list(resp.json(), "complaints", "items", "results"):
            item = self._translate_complaint_or_none(raw)
            if item is not None:
                items.append(item)
        return items

    async def get_item(self, workitem_id: str) -> WorkItem:
        resp = await self._request("GET", f"/complaints/{workitem_id}")
        if resp.status_code == 404:
            raise WorkItemNotFound(workitem_id)
        if resp.status_code >= 400:
            raise ComplaintApiError(resp.status_code, resp.text)
        raw = resp.json()
        return self._translate_complaint(raw.get("data", raw) if isinstance(raw, dict) else raw)

    async def set_assignee(
        self, workitem_id: str, staff_id: str, *, expected_assignee_id: str | None
    ) -> bool:
        # The backend applies the expectation atomically and answers 409
        # when the complaint is no longer open or its assignee no longer matches.
        resp = await self._request(
            "PUT",
            f"/complaints/{workitem_id}/assign",
            json={"assignedTo": staff_id, "expectedAssignee": expected_assignee_id},
        )
        if resp.status_code == 409:
            return False
        if resp.status_code == 404:
            raise WorkItemNotFound(workitem_id)
        if resp.status_code >= 400:
            raise ComplaintApiError(resp.status_code, resp.text)
        return True

    async def record_escalation(self, workitem_id: str, reason: str) -> bool:
        resp = await self._request("POST", f"/complaints/{workitem_id}/escalate", json={"reason": reason})
        if resp.status_code == 404:
            raise WorkItemNotFound(workitem_id)
        if resp.status_code >= 400:
            raise ComplaintApiError(resp.status_code, resp.text)
        return True

    # -- Staff -------------------------------------------------------------

    async def list_staff(self, role: str) -> list[StaffMember]:
        resp = await self._request("GET", "/auth/users", params={"role": role})
        if resp.status_code >= 400:
            raise ComplaintApiError(resp.status_code, resp.text)
        return self._translate_users(resp.json(), role)

    # -- Translation -------------------------------------------------------

    @staticmethod
    def _translate_complaint(raw: dict[str, Any]) -> WorkItem:
        """Complaint payload → WorkItem. Raises ValueError on unusable payloads."""
        item_id = raw.get("_id") or raw.get("id")
        if not item_id:
            raise ValueError("complaint without id")
        status = str(raw.get("status", "pending")).lower().replace("_", "-")
        priority = str(raw.get("priority") or "medium").lower()
        if priority not in {p.value for p in WorkItemPriority}:
            priority = WorkItemPriority.MEDIUM.value
        return WorkItem(
            id=str(item_id),
            title=str(raw.get("title", "")),
            category=str(raw.get("category", "")),
            priority=WorkItemPriority(priority),
            status=WorkItemStatus(status),
            assigned_to=_ref_id(raw.get("assignedTo")),
            created_at=_parse_timestamp(raw.get("createdAt")),
        )

    @classmethod
    def _translate_complaint_or_none(cls, raw: Any) -> WorkItem | None:
        if not isinstance(raw, dict):
            return None
        try:
            return cls._translate_complaint(raw)
        except ValueError:
            logger.warning("complaint_payload_skipped", complaint_id=raw.get("_id") or raw.get("id"))
            return None

    @staticmethod
    def _translate_users(raw: Any, role: str) -> list[StaffMember]:
        members: list[StaffMember] = []
        for user in _unwrap_list(raw, "users", "items", "results"):
            if not isinstance(user, dict):
                continue
            user_id = user.get("_id") or user.get("id")
            if not user_id:
                continue
            user_role = str(user.get("role", ""))
            # the backend filter is advisory; keep the role contract here
            if user_role != role:
                continue
            name = " ".join(p for p in (user.get("firstName"), user.get("lastName")) if p)
            members.append(StaffMember(id=str(user_id), role=user_role, display_name=name))
        return members
