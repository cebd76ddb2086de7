"""Fixed Slack List schema for intake requests and the alias-to-column mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import structlog

from .cells import SELECT, TEXT, USER

LIST_NAME = "Security requests"
EXAMPLE_ROW_LABEL = "Example - delete this row"
EXAMPLE_REQUEST_ID = "DEMO-000"
ADMIN_MESSAGE_PLACEHOLDER = "-"


@dataclass(frozen=True)
class ColumnDefinition:
    alias: str
    key: str
    name: str
    type: str
    choices: tuple[tuple[str, str, str], ...] = ()
    primary: bool = False

    def to_schema(self) -> dict[str, Any]:
        column: dict[str, Any] = {"key": self.key, "name": self.name, "type": self.type}
        if self.primary:
            column["is_primary_column"] = True
        if self.choices:
            column["options"] = {
                "choices": [
                    {"value": value, "label": label, "color": color} for value, label, color in self.choices
                ]
            }
        return column


COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition("project_name", "project_name", "Project", TEXT, primary=True),
    ColumnDefinition("request_id", "request_id", "Request ID", TEXT),
    ColumnDefinition(
        "status",
        "status",
        "Status",
        SELECT,
        choices=(
            ("pending", "Pending", "yellow"),
            ("in_progress", "In progress", "blue"),
            ("done", "Done", "green"),
            ("rejected", "Rejected", "red"),
        ),
    ),
    ColumnDefinition(
        "urgency",
        "urgency",
        "Urgency",
        SELECT,
        choices=(
            ("critical", "Critical", "red"),
            ("high", "High", "orange"),
            ("medium", "Medium", "yellow"),
            ("low", "Low", "green"),
            ("unknown", "Unknown", "gray"),
        ),
    ),
    ColumnDefinition(
        "request_type",
        "request_type",
        "Type",
        SELECT,
        choices=(
            ("web_app", "Web application", "blue"),
            ("mobile_app", "Mobile application", "blue"),
            ("api", "API", "blue"),
            ("network", "Network", "blue"),
            ("cloud", "Cloud infrastructure", "blue"),
            ("standalone", "Standalone threat model", "purple"),
            ("risk_assessment_part", "Part of a risk assessment", "purple"),
            ("other", "Other", "gray"),
        ),
    ),
    ColumnDefinition("requested_by", "requested_by", "Requested by", USER),
    ColumnDefinition("assigned_to", "assigned_to", "Assigned to", USER),
    ColumnDefinition("admin_message_ts", "admin_message_ts", "Admin message", TEXT),
)

COLUMNS_BY_ALIAS = {column.alias: column for column in COLUMNS}
COLUMN_ALIASES = tuple(COLUMNS_BY_ALIAS)
LIST_SCHEMA = [column.to_schema() for column in COLUMNS]

_ALIAS_BY_KEY = {column.key: column.alias for column in COLUMNS}
_ALIAS_BY_NAME = {column.name: column.alias for column in COLUMNS}


def alias_for(key: str | None = None, name: str | None = None) -> str | None:
    return _ALIAS_BY_KEY.get(key or "") or _ALIAS_BY_NAME.get(name or "")


def column_type(alias: str) -> str:
    return COLUMNS_BY_ALIAS[alias].type


class ColumnMapping:
    """Translate semantic field aliases to the column ids of one list.

    The mapping is replaced as a whole on every (re)load so ids from a
    previous list never survive next to ids from the current one.
    """

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def get(self, alias: str) -> str | None:
        return self._ids.get(alias)

    def __contains__(self, alias: object) -> bool:
        return alias in self._ids

    def as_dict(self) -> dict[str, str | None]:
        return {alias: self._ids.get(alias) for alias in COLUMN_ALIASES}

    @property
    def is_ready(self) -> bool:
        return "request_id" in self._ids

    def replace(self, ids: Mapping[str, str | None]) -> None:
        self._ids = {alias: column_id for alias, column_id in ids.items() if alias in COLUMNS_BY_ALIAS and column_id}

    def clear(self) -> None:
        self._ids = {}

    def load_from_schema(self, schema: Iterable[Mapping[str, Any]] | None) -> bool:
        """Rebuild from list metadata; returns False when nothing matched."""

        ids = _collect(schema or (), id_keys=("id",))
        if not ids:
            return False
        self.replace(ids)
        structlog.get_logger().debug("column_map_loaded", source="schema", columns=self.as_dict())
        return True

    def load_from_item(self, item: Mapping[str, Any] | None) -> bool:
        """Infer column ids from the field keys of an existing row."""

        if not item or not isinstance(item.get("fields"), list):
            return False
        ids = _collect(item["fields"], id_keys=("column_id", "id"))
        if not ids:
            return False
        self.replace(ids)
        structlog.get_logger().debug("column_map_loaded", source="item", columns=self.as_dict())
        return True


def _collect(entries: Iterable[Mapping[str, Any]], *, id_keys: tuple[str, ...]) -> dict[str, str]:
    ids: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        alias = alias_for(entry.get("key"), entry.get("name"))
        if not alias:
            continue
        column_id = next((entry.get(key) for key in id_keys if entry.get(key)), None)
        if column_id:
            ids[alias] = column_id
    return ids
