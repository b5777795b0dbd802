"""Info table helpers.

An info table is the server's structured result:

    {
        "dataShape": {"fieldDefinitions": {"name": {"baseType": "STRING"}, ...}},
        "rows": [{"name": "value", ...}, ...],
    }

JSON has no timestamp type, so DATETIME fields arrive as strings (or epoch
milliseconds) and are converted here. INFOTABLE fields hold nested tables
and are converted recursively.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

DATETIME = "DATETIME"
INFOTABLE = "INFOTABLE"

# Seconds, optional fraction of any length, optional Z or +hhmm / +hh:mm offset
_ISO_TAIL = re.compile(r"^(.*\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:?\d{2})?$")


def is_info_table(value: Any) -> bool:
    """Check that value has a field-definition schema and a list of row objects."""
    if not isinstance(value, dict):
        return False
    rows = value.get("rows")
    data_shape = value.get("dataShape")
    if not isinstance(rows, list) or not isinstance(data_shape, dict):
        return False
    if not isinstance(data_shape.get("fieldDefinitions"), dict):
        return False
    return all(isinstance(row, dict) for row in rows)


def field_definitions(info_table: dict[str, Any]) -> dict[str, Any]:
    return info_table["dataShape"]["fieldDefinitions"]


def base_type(info_table: dict[str, Any], field_name: str) -> str | None:
    definition = field_definitions(info_table).get(field_name) or {}
    return definition.get("baseType")


def prettify(value: Any) -> str:
    """Human-readable rendering of a payload for error messages."""
    return json.dumps(value, indent=2, default=str)


def _normalize_iso(text: str) -> str:
    """Rewrite ISO 8601 forms fromisoformat() only accepts on newer Pythons."""
    match = _ISO_TAIL.match(text)
    if not match:
        return text
    base, fraction, offset = match.groups()
    if fraction:
        base += "." + fraction[:6].ljust(6, "0")
    if offset == "Z":
        offset = "+00:00"
    elif offset and ":" not in offset:
        offset = f"{offset[:3]}:{offset[3:]}"
    return base + (offset or "")


def parse_datetime(value: Any) -> datetime:
    """
    Convert a DATETIME wire value to an aware datetime.

    Accepts ISO 8601 strings (a trailing Z means UTC) and epoch milliseconds.
    Naive strings are taken as UTC.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(_normalize_iso(value.strip()))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"Cannot convert {value!r} to a datetime")


def parse_value(value: Any, base_type_name: str | None, unwrap: bool = False) -> Any:
    """Convert one field value according to its base type."""
    if value is None:
        return None
    if base_type_name == DATETIME:
        return parse_datetime(value)
    if base_type_name == INFOTABLE and is_info_table(value):
        table = parse_info_table(value, unwrap=unwrap)
        return table["rows"] if unwrap else table
    return value


def parse_info_table(info_table: dict[str, Any], unwrap: bool = False) -> dict[str, Any]:
    """
    Return a converted copy of an info table.

    DATETIME fields become datetimes and INFOTABLE fields are converted
    recursively. With unwrap=True nested tables are replaced by their rows.
    The input is left untouched.
    """
    definitions = field_definitions(info_table)
    types = {name: (definition or {}).get("baseType") for name, definition in definitions.items()}
    converted = [name for name, kind in types.items() if kind in (DATETIME, INFOTABLE)]

    rows = []
    for row in info_table["rows"]:
        new_row = dict(row)
        for name in converted:
            if name in new_row:
                new_row[name] = parse_value(new_row[name], types[name], unwrap=unwrap)
        rows.append(new_row)

    return {**info_table, "rows": rows}


def single_value(info_table: dict[str, Any]) -> tuple[str, Any]:
    """
    Return (field name, raw value) of a one-row, one-field table.

    Raises:
        ValueError: if the table has more or fewer rows or fields
    """
    fields = list(field_definitions(info_table))
    if len(info_table["rows"]) != 1 or len(fields) != 1:
        raise ValueError(
            f"expected 1 row and 1 field, got {len(info_table['rows'])} rows "
            f"and {len(fields)} fields"
        )
    name = fields[0]
    return name, info_table["rows"][0].get(name)
