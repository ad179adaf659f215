"""Header/field zipping into Nested Records and Normalized Rows."""

from __future__ import annotations

import re
from collections.abc import Sequence

from src.ingestion.errors import ValidationError
from src.ingestion.models import NestedRecord, NestedValue, NormalizedRow

PATH_SEPARATOR: str = "."

# Top-level keys that map onto dedicated columns
NAME_KEY: str = "name"
AGE_KEY: str = "age"
ADDRESS_KEY: str = "address"
FIRST_NAME_KEY: str = "firstName"
LAST_NAME_KEY: str = "lastName"

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def split_header(header: str) -> list[str]:
    """Split a dotted header into its trimmed path segments.

    Args:
        header: Header such as ``"name.firstName"``.

    Returns:
        Path segments, e.g. ``["name", "firstName"]``.
    """
    return [part.strip() for part in header.strip().split(PATH_SEPARATOR)]


def set_nested(record: NestedRecord, path: Sequence[str], value: NestedValue) -> None:
    """Assign ``value`` at ``path`` inside ``record``, creating mappings.

    A scalar sitting where an intermediate mapping is needed is replaced
    by an empty mapping. The leaf is overwritten (last write wins).

    Args:
        record: Tree to mutate.
        path: Non-empty sequence of keys.
        value: Leaf value to store.
    """
    node = record
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


def to_nested_record(headers: Sequence[str], fields: Sequence[str]) -> NestedRecord:
    """Zip headers and fields into a Nested Record.

    Fields are trimmed and an empty field becomes None. Missing trailing
    fields count as empty; surplus fields are ignored.

    Args:
        headers: Header List, possibly with dotted paths.
        fields: Raw field values for one data line.

    Returns:
        The Nested Record for the line.
    """
    record: NestedRecord = {}
    for index, header in enumerate(headers):
        raw = fields[index].strip() if index < len(fields) else ""
        set_nested(record, split_header(header), raw or None)
    return record


def _parse_age(value: NestedValue) -> int:
    if not isinstance(value, str) or not _INTEGER_PATTERN.match(value):
        raise ValidationError(f"Invalid age value: {value!r}")
    return int(value)


def to_normalized_row(nested: NestedRecord) -> NormalizedRow:
    """Map a Nested Record onto the four ``users`` columns.

    Args:
        nested: Nested Record built from one data line.

    Returns:
        The validated Normalized Row.

    Raises:
        ValidationError: If ``name.firstName``, ``name.lastName`` or
            ``age`` is missing or empty, or ``age`` is not an integer.
    """
    name_node = nested.get(NAME_KEY)
    first_name = last_name = None
    if isinstance(name_node, dict):
        first_name = name_node.get(FIRST_NAME_KEY)
        last_name = name_node.get(LAST_NAME_KEY)

    if not (isinstance(first_name, str) and first_name) or not (
        isinstance(last_name, str) and last_name
    ):
        raise ValidationError(
            "Missing mandatory name.firstName or name.lastName: "
            f"firstName={first_name!r}, lastName={last_name!r}"
        )

    age_raw = nested.get(AGE_KEY)
    if age_raw is None or age_raw == "":
        raise ValidationError(f"Missing mandatory age for {first_name} {last_name}")
    age = _parse_age(age_raw)

    address_node = nested.get(ADDRESS_KEY)
    address = address_node if isinstance(address_node, dict) and address_node else None

    additional: dict[str, NestedValue] = {
        key: value
        for key, value in nested.items()
        if key not in (NAME_KEY, AGE_KEY, ADDRESS_KEY)
    }
    # A scalar address has no subtree to store, keep it with the extras.
    if address_node is not None and not isinstance(address_node, dict):
        additional[ADDRESS_KEY] = address_node

    return NormalizedRow(
        name=f"{first_name} {last_name}",
        age=age,
        address=address,
        additional_info=additional or None,
    )


def build_row(headers: Sequence[str], fields: Sequence[str]) -> NormalizedRow:
    """Convert one parsed data line straight into a Normalized Row."""
    return to_normalized_row(to_nested_record(headers, fields))
