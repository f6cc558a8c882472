"""Report-oriented views of a DocumentAnalysis.

Positions are converted from points to inches for the report layout.
"""

import statistics

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .config import POINTS_PER_INCH
from .fields import field_expression
from .models import BoundingBox, Classification, ClassifiedComponent, DocumentAnalysis, TableStructure

MIN_TEXTBOX_WIDTH_IN = 0.5
MIN_TEXTBOX_HEIGHT_IN = 0.25


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HeaderTextbox(_CamelModel):
    name: str
    value: str
    top: str
    left: str
    width: str
    height: str
    font_size: str
    font_family: str
    font_weight: str
    color: str | None = None
    italic: bool = False
    type: Classification
    confidence: float


class TableStyling(_CamelModel):
    font_family: str
    font_size: float
    header_font_weight: str


class TableProjection(_CamelModel):
    name: str
    headers: list[str]
    rows: list[list[str]]
    position: BoundingBox
    styling: TableStyling


class FieldProjection(_CamelModel):
    name: str
    data_field: str
    type_name: str
    description: str


class TableBodyData(_CamelModel):
    tables: list[TableProjection]
    fields: list[FieldProjection]


def to_inches(points: float, minimum: float = 0.0) -> str:
    """Format a point value as inches, e.g. 72 -> "1.0000in"."""
    return f"{max(minimum, points / POINTS_PER_INCH):.4f}in"


def literal_value(text: str) -> str:
    """Report value for static text.

    Values starting with "=" are compiled as expressions by SSRS, so such
    text is wrapped in a string expression.
    """
    if text.startswith("="):
        return '="' + text.replace('"', '""') + '"'
    return text


def display_value(component: ClassifiedComponent) -> str:
    """Static text as written; mapped data as a field expression."""
    if component.classification == Classification.DYNAMIC_DATA and component.field_mapping:
        return field_expression(component.field_mapping)
    return literal_value(component.text)


def textbox_for(component: ClassifiedComponent, name: str) -> HeaderTextbox:
    return HeaderTextbox(
        name=name,
        value=display_value(component),
        top=to_inches(component.y),
        left=to_inches(component.x),
        width=to_inches(component.width, MIN_TEXTBOX_WIDTH_IN),
        height=to_inches(component.height, MIN_TEXTBOX_HEIGHT_IN),
        font_size=f"{round(component.font_size or 10, 1):g}pt",
        font_family=component.font_family,
        font_weight="Bold" if component.is_bold else "Normal",
        color=component.color,
        italic=component.is_italic,
        type=component.classification,
        confidence=round(component.confidence, 4),
    )


def header_textboxes(analysis: DocumentAnalysis) -> list[HeaderTextbox]:
    """Textboxes for header-region components outside tables, in reading order."""
    in_tables = analysis.table_component_ids
    ordered = sorted(
        (c for c in analysis.header if c.id not in in_tables), key=lambda c: (c.y, c.x)
    )
    return [textbox_for(c, f"Textbox{i}") for i, c in enumerate(ordered, 1)]


def table_cells(table: TableStructure) -> list[list[str]]:
    """Row texts laid out under their header columns; empty cells are ""."""
    grid = []
    for row in table.rows:
        cells = [""] * table.column_count
        for component in row:
            cells[table.column_index(component)] = component.text
        grid.append(cells)
    return grid


def _table_projection(table: TableStructure, index: int) -> TableProjection:
    sizes = [h.font_size for h in table.headers] + [c.font_size for r in table.rows for c in r]
    header_bold = sum(1 for h in table.headers if h.is_bold) * 2 >= len(table.headers)
    return TableProjection(
        name=f"Table{index}",
        headers=[h.text for h in table.headers],
        rows=table_cells(table),
        position=table.bounds,
        styling=TableStyling(
            font_family=table.headers[0].font_family,
            font_size=round(statistics.mean(sizes), 2),
            header_font_weight="Bold" if header_bold else "Normal",
        ),
    )


def table_body_data(analysis: DocumentAnalysis) -> TableBodyData:
    return TableBodyData(
        tables=[_table_projection(t, i) for i, t in enumerate(analysis.tables, 1)],
        fields=[
            FieldProjection(
                name=f.name,
                data_field=f.data_field,
                type_name=f.type_name.value,
                description=f.description,
            )
            for f in analysis.fields
        ],
    )
