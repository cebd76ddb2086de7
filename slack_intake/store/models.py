"""Request entity and status history records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RequestKind = Literal["pentest", "threat_modeling"]
RecordSource = Literal["list", "cache", "reconstructed"]

KIND_BY_PREFIX = {"PT": "pentest", "TM": "threat_modeling"}
PREFIX_BY_KIND = {kind: prefix for prefix, kind in KIND_BY_PREFIX.items()}


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def generate_request_id(kind: str, *, now: datetime | None = None) -> str:
    """Return ``<PREFIX>-<epoch millis>`` for a new request of *kind*."""

    moment = now or datetime.now(UTC)
    return f"{PREFIX_BY_KIND[kind]}-{int(moment.timestamp() * 1000)}"


def kind_from_request_id(request_id: str) -> str | None:
    prefix, _, _ = request_id.partition("-")
    return KIND_BY_PREFIX.get(prefix.upper())


class IntakeRequest(BaseModel):
    """A single pentest or threat-modeling submission."""

    model_config = ConfigDict(extra="ignore")

    request_id: str
    kind: RequestKind = "pentest"
    project_name: str = ""
    target_scope: str = ""
    additional_info: str = ""
    full_report: Literal["yes", "no"] | None = None
    request_type: str = "other"
    request_type_text: str = ""
    urgency: str = "unknown"
    urgency_text: str = ""
    requested_by: str = ""
    team_members: List[str] = Field(default_factory=list)
    assigned_to: List[str] = Field(default_factory=list)
    status: str = "pending"
    admin_message_ts: str | None = None
    admin_channel_id: str | None = None
    channel_id: str | None = None
    list_item_id: str | None = None
    approved_by: str | None = None
    approved_at: str | None = None
    rejected_by: str | None = None
    rejected_at: str | None = None
    rejection_reason: str | None = None
    tracker_url: str | None = None
    requested_at: str = Field(default_factory=utc_now_iso)
    source: RecordSource = "cache"

    @model_validator(mode="before")
    @classmethod
    def _infer_kind(cls, values):
        if isinstance(values, dict) and not values.get("kind") and isinstance(values.get("request_id"), str):
            kind = kind_from_request_id(values["request_id"])
            if kind:
                values = {**values, "kind": kind}
        return values

    @field_validator("full_report", mode="before")
    @classmethod
    def _normalise_full_report(cls, value):
        if value in ("yes", "no"):
            return value
        return None

    @field_validator("team_members", "assigned_to", mode="before")
    @classmethod
    def _dedupe_users(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return list(dict.fromkeys(item for item in value if item))

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_reconstructed(self) -> bool:
        return self.source == "reconstructed"

    def to_store_data(self) -> dict:
        """Return the persisted fields, without the provenance tag."""

        return self.model_dump(exclude={"source"})


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: str
    status_text: str
    updated_by: str
    note: str | None = None
    timestamp: str = ""

    @classmethod
    def record(cls, *, status: str, status_text: str, updated_by: str, note: str | None = None) -> "StatusHistoryEntry":
        return cls(status=status, status_text=status_text, updated_by=updated_by, note=note, timestamp=utc_now_iso())
