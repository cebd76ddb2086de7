"""Encoding and decoding of Slack List cells."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

TEXT = "text"
SELECT = "select"
USER = "user"


def create_rich_text(text: str = "") -> list[dict[str, Any]]:
    return [
        {
            "type": "rich_text",
            "elements": [
                {
                    "type": "rich_text_section",
                    "elements": [{"type": "text", "text": text}],
                }
            ],
        }
    ]


def rich_text_to_plain_text(rich_text: Any) -> str:
    """Flatten the text nodes of a rich_text value into a plain string."""

    if not isinstance(rich_text, list):
        return ""

    parts: list[str] = []
    for block in rich_text:
        if not isinstance(block, Mapping):
            continue
        for element in block.get("elements") or []:
            if not isinstance(element, Mapping):
                continue
            for node in element.get("elements") or []:
                if isinstance(node, Mapping) and isinstance(node.get("text"), str):
                    parts.append(node["text"])
    return "".join(parts)


def text_cell(column_id: str, text: str | None) -> dict[str, Any]:
    return {"column_id": column_id, "rich_text": create_rich_text(text or "")}


def select_cell(column_id: str, code: str) -> dict[str, Any]:
    return {"column_id": column_id, "select": [code]}


def user_cell(column_id: str, user_ids: Iterable[str]) -> dict[str, Any]:
    return {"column_id": column_id, "user": [user_id for user_id in user_ids if user_id]}


def build_cell(column_id: str, cell_type: str, value: Any) -> dict[str, Any]:
    if cell_type == SELECT:
        return select_cell(column_id, str(value))
    if cell_type == USER:
        if isinstance(value, str):
            value = [value]
        return user_cell(column_id, value or [])
    return text_cell(column_id, None if value is None else str(value))


def decode_field(field: Mapping[str, Any], cell_type: str) -> Any:
    """Decode one row field according to the column's cell type."""

    if cell_type == SELECT:
        selected = field.get("select")
        if isinstance(selected, list):
            return selected[0] if selected else None
        value = field.get("value")
        return value if isinstance(value, str) and value else None

    if cell_type == USER:
        users = field.get("user")
        if isinstance(users, list):
            return [user for user in users if isinstance(user, str)]
        value = field.get("value")
        if isinstance(value, str) and value:
            return [item.strip() for item in value.split(",") if item.strip()]
        return []

    if "rich_text" in field:
        return rich_text_to_plain_text(field.get("rich_text"))
    for key in ("text", "value"):
        if isinstance(field.get(key), str):
            return field[key]
    return ""


def field_column_id(field: Mapping[str, Any]) -> str | None:
    return field.get("column_id") or field.get("id")


def index_row_fields(item: Mapping[str, Any]) -> dict[str, Mapping[str, Any]]:
    """Return the fields of a row keyed by column id."""

    indexed: dict[str, Mapping[str, Any]] = {}
    for field in item.get("fields") or []:
        if not isinstance(field, Mapping):
            continue
        column_id = field_column_id(field)
        if column_id:
            indexed[column_id] = field
    return indexed
