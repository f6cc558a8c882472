"""Report field identifiers derived from label and header text."""

import re

from .models import FieldDefinition, FieldType

DEFAULT_FIELD_NAME = "Field1"

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9\s]")


def field_name(text: str, fallback: str = DEFAULT_FIELD_NAME) -> str:
    """Derive a PascalCase identifier from label text.

    "INVOICE #:" -> "Invoice", "Unit price" -> "UnitPrice". The result is
    stable under repeated application and never empty.
    """
    words = _NON_ALNUM_RE.sub("", text or "").split()
    parts = []
    for word in words:
        # All-caps words read as "Invoice", mixed case is kept as written
        rest = word[1:].lower() if word.isupper() else word[1:]
        parts.append(word[0].upper() + rest)
    name = "".join(parts)
    if not name:
        return fallback
    if name[0].isdigit():
        name = "Field" + name
    return name


def field_expression(identifier: str) -> str:
    """RDL expression binding a textbox to a dataset field."""
    return f"=Fields!{identifier}.Value"


def infer_field_type(name: str) -> FieldType:
    lower = name.lower()
    if "date" in lower or "time" in lower:
        return FieldType.DATETIME
    if any(word in lower for word in ("amount", "price", "total", "cost")):
        return FieldType.DECIMAL
    if any(word in lower for word in ("quantity", "qty", "count", "id")):
        return FieldType.INT32
    return FieldType.STRING


def build_field_mappings(
    sources: list[str],
) -> tuple[dict[str, str], list[FieldDefinition]]:
    """Map source texts to identifiers and collect unique field definitions.

    Args:
        sources: Label or header texts in document order.

    Returns:
        Tuple of (text -> identifier map, field definitions). The first text
        seen wins for both the mapping and any identifier collision.
    """
    mappings: dict[str, str] = {}
    fields: list[FieldDefinition] = []
    seen: set[str] = set()
    for text in sources:
        if text in mappings:
            continue
        identifier = field_name(text)
        mappings[text] = identifier
        if identifier in seen:
            continue
        seen.add(identifier)
        fields.append(
            FieldDefinition(
                name=identifier,
                data_field=identifier,
                type_name=infer_field_type(identifier),
                description=text.rstrip(":#").strip() or text,
            )
        )
    return mappings, fields
