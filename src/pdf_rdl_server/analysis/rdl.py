"""RDL (SSRS 2016 report definition) rendering of a DocumentAnalysis."""

import uuid
import xml.etree.ElementTree as ET

from pydantic import BaseModel

from .config import POINTS_PER_INCH
from .fields import field_expression, field_name, infer_field_type
from .models import ClassifiedComponent, DocumentAnalysis, FieldDefinition, FieldType
from .projections import HeaderTextbox, literal_value, textbox_for

RDL_NS = "http://schemas.microsoft.com/sqlserver/reporting/2016/01/reportdefinition"
RD_NS = "http://schemas.microsoft.com/SQLServer/reporting/reportdesigner"

ET.register_namespace("", RDL_NS)
ET.register_namespace("rd", RD_NS)

DATASET_NAME = "MainDataSet"
PAGE_WIDTH_IN = 8.5
PAGE_HEIGHT_IN = 11.0
MARGIN_IN = 1.0
AVAILABLE_WIDTH_IN = PAGE_WIDTH_IN - 2 * MARGIN_IN
MIN_COLUMN_WIDTH_IN = 0.8
MAX_COLUMN_WIDTH_IN = 2.5
MIN_SECTION_HEIGHT_IN = 0.5

DEFAULT_TABLE_HEADERS = ["Description", "Quantity", "Unit Price", "Total"]
DEFAULT_TABLE_FIELDS = ["Description", "Quantity", "UnitPrice", "LineTotal"]

DEFAULT_FIELDS = [
    FieldDefinition(name="Description", data_field="Description", type_name=FieldType.STRING, description="Item description"),
    FieldDefinition(name="Quantity", data_field="Quantity", type_name=FieldType.INT32, description="Item quantity"),
    FieldDefinition(name="UnitPrice", data_field="UnitPrice", type_name=FieldType.DECIMAL, description="Unit price"),
    FieldDefinition(name="LineTotal", data_field="LineTotal", type_name=FieldType.DECIMAL, description="Line total amount"),
]


class DataSourceSpec(BaseModel):
    name: str = "DefaultDataSource"
    connection_string: str = "Data Source=YourServer;Initial Catalog=YourDatabase;Integrated Security=True"
    data_source_reference: str | None = None


def _q(tag: str) -> str:
    return f"{{{RDL_NS}}}{tag}"


def _rd(tag: str) -> str:
    return f"{{{RD_NS}}}{tag}"


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, tag if tag.startswith("{") else _q(tag), attrib)
    if text is not None:
        element.text = text
    return element


def _inches(value: float) -> str:
    return f"{value:.4f}in"


def column_widths(headers: list[str]) -> list[float]:
    """Column widths in inches from header length, scaled to the page."""
    if not headers:
        return [AVAILABLE_WIDTH_IN]
    widths = [
        min(MAX_COLUMN_WIDTH_IN, max(MIN_COLUMN_WIDTH_IN, len(h) * 0.08)) for h in headers
    ]
    total = sum(widths)
    if total > AVAILABLE_WIDTH_IN:
        scale = AVAILABLE_WIDTH_IN / total
        widths = [max(MIN_COLUMN_WIDTH_IN, w * scale) for w in widths]
    return widths


def scoped_expression(identifier: str) -> str:
    """Field reference usable outside a data region."""
    return f'=First(Fields!{identifier}.Value, "{DATASET_NAME}")'


def _textbox(
    parent: ET.Element,
    name: str,
    value: str,
    top: str,
    left: str,
    width: str,
    height: str,
    font_size: str = "10pt",
    font_weight: str = "Normal",
    font_family: str | None = None,
    color: str | None = None,
    text_align: str = "Left",
    number_format: str | None = None,
    background: str | None = None,
) -> ET.Element:
    textbox = _sub(parent, "Textbox", Name=name)
    _sub(textbox, "CanGrow", "true")
    _sub(textbox, "KeepTogether", "true")
    paragraph = _sub(_sub(textbox, "Paragraphs"), "Paragraph")
    run = _sub(_sub(paragraph, "TextRuns"), "TextRun")
    _sub(run, "Value", value)
    run_style = _sub(run, "Style")
    if font_family:
        _sub(run_style, "FontFamily", font_family)
    _sub(run_style, "FontSize", font_size)
    _sub(run_style, "FontWeight", font_weight)
    if color:
        _sub(run_style, "Color", color)
    if number_format:
        _sub(run_style, "Format", number_format)
    _sub(_sub(paragraph, "Style"), "TextAlign", text_align)
    _sub(textbox, _rd("DefaultName"), name)
    _sub(textbox, "Top", top)
    _sub(textbox, "Left", left)
    _sub(textbox, "Height", height)
    _sub(textbox, "Width", width)
    style = _sub(textbox, "Style")
    if background:
        _sub(style, "BackgroundColor", background)
    _sub(_sub(style, "Border"), "Style", "None")
    for side in ("Left", "Right", "Top", "Bottom"):
        _sub(style, f"Padding{side}", "2pt")
    return textbox


def _section_textbox(parent: ET.Element, box: HeaderTextbox, component: ClassifiedComponent) -> None:
    value = box.value
    if value.startswith("=Fields!") and component.field_mapping:
        value = scoped_expression(component.field_mapping)
    _textbox(
        parent,
        box.name,
        value,
        top=box.top,
        left=box.left,
        width=box.width,
        height=box.height,
        font_size=box.font_size,
        font_weight=box.font_weight,
        font_family=box.font_family,
        color=box.color,
    )


def _outside_tables(
    components: list[ClassifiedComponent], analysis: DocumentAnalysis
) -> list[ClassifiedComponent]:
    in_tables = analysis.table_component_ids
    return [c for c in components if c.id not in in_tables]


def _section_items(
    parent: ET.Element, components: list[ClassifiedComponent], prefix: str
) -> float:
    """Add textboxes positioned relative to the section top.

    Returns:
        Height in inches needed by the section.
    """
    if not components:
        return MIN_SECTION_HEIGHT_IN
    items = _sub(parent, "ReportItems")
    origin = min(c.y for c in components)
    bottom = 0.0
    for i, component in enumerate(sorted(components, key=lambda c: (c.y, c.x)), 1):
        shifted = component.model_copy(update={"y": component.y - origin})
        box = textbox_for(shifted, f"{prefix}{i}")
        _section_textbox(items, box, component)
        bottom = max(bottom, float(box.top[:-2]) + float(box.height[:-2]))
    return max(MIN_SECTION_HEIGHT_IN, bottom + 0.1)


def _tablix(
    parent: ET.Element,
    name: str,
    headers: list[str],
    field_names: list[str],
    top: float,
    left: float,
    z_index: int,
) -> float:
    """Add a one-header-row, one-detail-row Tablix. Returns its height."""
    widths = column_widths(headers)
    tablix = _sub(parent, "Tablix", Name=name)
    body = _sub(tablix, "TablixBody")
    columns = _sub(body, "TablixColumns")
    for width in widths:
        _sub(_sub(columns, "TablixColumn"), "Width", _inches(width))

    rows = _sub(body, "TablixRows")
    header_row = _sub(rows, "TablixRow")
    _sub(header_row, "Height", "0.3in")
    header_cells = _sub(header_row, "TablixCells")
    for col, (header, width) in enumerate(zip(headers, widths)):
        contents = _sub(_sub(header_cells, "TablixCell"), "CellContents")
        _textbox(
            contents,
            f"{name}Header{col}",
            header,
            top="0in",
            left="0in",
            width=_inches(width),
            height="0.3in",
            font_weight="Bold",
            text_align="Center",
            background="#E6E6E6",
        )

    detail_row = _sub(rows, "TablixRow")
    _sub(detail_row, "Height", "0.25in")
    detail_cells = _sub(detail_row, "TablixCells")
    for col, (identifier, width) in enumerate(zip(field_names, widths)):
        field_type = infer_field_type(identifier)
        numeric = field_type in (FieldType.DECIMAL, FieldType.INT32)
        number_format = None
        if field_type == FieldType.DECIMAL:
            number_format = "C"
        elif field_type == FieldType.INT32:
            number_format = "N0"
        contents = _sub(_sub(detail_cells, "TablixCell"), "CellContents")
        _textbox(
            contents,
            f"{name}Data{col}",
            field_expression(identifier),
            top="0in",
            left="0in",
            width=_inches(width),
            height="0.25in",
            text_align="Right" if numeric else "Left",
            number_format=number_format,
        )

    column_members = _sub(_sub(tablix, "TablixColumnHierarchy"), "TablixMembers")
    for _ in headers:
        _sub(column_members, "TablixMember")
    row_members = _sub(_sub(tablix, "TablixRowHierarchy"), "TablixMembers")
    static_member = _sub(row_members, "TablixMember")
    _sub(static_member, "KeepWithGroup", "After")
    _sub(static_member, "RepeatOnNewPage", "true")
    _sub(_sub(row_members, "TablixMember"), "Group", Name=f"Details_{name}")

    _sub(tablix, "DataSetName", DATASET_NAME)
    _sub(tablix, "Top", _inches(top))
    _sub(tablix, "Left", _inches(left))
    _sub(tablix, "Height", "0.55in")
    _sub(tablix, "Width", _inches(sum(widths)))
    _sub(tablix, "ZIndex", str(z_index))
    border = _sub(_sub(tablix, "Style"), "Border")
    _sub(border, "Style", "Solid")
    _sub(border, "Width", "1pt")
    return 0.55


def _body(parent: ET.Element, analysis: DocumentAnalysis) -> None:
    body = _sub(parent, "Body")
    items = _sub(body, "ReportItems")
    loose = _outside_tables(analysis.body, analysis)
    # Tables may start above the body region
    origin = min([c.y for c in loose] + [t.bounds.y for t in analysis.tables], default=0.0)

    bottom = 0.0
    for i, component in enumerate(sorted(loose, key=lambda c: (c.y, c.x)), 1):
        shifted = component.model_copy(update={"y": component.y - origin})
        box = textbox_for(shifted, f"BodyText{i}")
        _section_textbox(items, box, component)
        bottom = max(bottom, float(box.top[:-2]) + float(box.height[:-2]))

    for index, table in enumerate(analysis.tables):
        top = (table.bounds.y - origin) / POINTS_PER_INCH
        left = max(0.0, table.bounds.x / POINTS_PER_INCH - MARGIN_IN)
        headers = [literal_value(h.text) for h in table.headers]
        fields = [h.field_mapping or field_name(h.text) for h in table.headers]
        height = _tablix(items, f"Table{index + 1}", headers, fields, top, left, index)
        bottom = max(bottom, top + height)

    if not analysis.tables:
        top = bottom + 0.25
        height = _tablix(items, "DefaultDataTable", DEFAULT_TABLE_HEADERS, DEFAULT_TABLE_FIELDS, top, 0.0, 0)
        bottom = top + height

    _sub(body, "Height", _inches(max(MIN_SECTION_HEIGHT_IN, bottom + 0.25)))
    _sub(body, "Style")


def report_fields(analysis: DocumentAnalysis) -> list[FieldDefinition]:
    """Dataset fields: analysis fields, plus the default table's when no table was found."""
    fields = list(analysis.fields)
    if not analysis.tables:
        names = {f.name for f in fields}
        fields.extend(f for f in DEFAULT_FIELDS if f.name not in names)
    return fields


def build_query(fields: list[FieldDefinition]) -> str:
    columns = ",\n  ".join(f.data_field for f in fields)
    return f"SELECT\n  {columns}\nFROM YourTableName"


def build_report(analysis: DocumentAnalysis, data_source: DataSourceSpec | None = None) -> ET.Element:
    data_source = data_source or DataSourceSpec()
    report = ET.Element(_q("Report"))
    _sub(report, "AutoRefresh", "0")

    source = _sub(_sub(report, "DataSources"), "DataSource", Name=data_source.name)
    if data_source.data_source_reference:
        _sub(source, "DataSourceReference", data_source.data_source_reference)
    else:
        connection = _sub(source, "ConnectionProperties")
        _sub(connection, "DataProvider", "SQL")
        _sub(connection, "ConnectString", data_source.connection_string)
    _sub(source, _rd("SecurityType"), "None")
    _sub(source, _rd("DataSourceID"), str(uuid.uuid4()))

    fields = report_fields(analysis)
    dataset = _sub(_sub(report, "DataSets"), "DataSet", Name=DATASET_NAME)
    query = _sub(dataset, "Query")
    _sub(query, "DataSourceName", data_source.name)
    _sub(query, "CommandText", build_query(fields))
    field_list = _sub(dataset, "Fields")
    for field in fields:
        element = _sub(field_list, "Field", Name=field.name)
        _sub(element, "DataField", field.data_field)
        _sub(element, _rd("TypeName"), field.type_name.value)

    section = _sub(_sub(report, "ReportSections"), "ReportSection")
    _body(section, analysis)
    _sub(section, "Width", _inches(AVAILABLE_WIDTH_IN))

    page = _sub(section, "Page")
    header = _sub(page, "PageHeader")
    header_height = _section_items(header, _outside_tables(analysis.header, analysis), "Textbox")
    _sub(header, "Height", _inches(header_height))
    _sub(header, "PrintOnFirstPage", "true")
    _sub(header, "PrintOnLastPage", "true")

    footer = _sub(page, "PageFooter")
    footer_height = _section_items(footer, _outside_tables(analysis.footer, analysis), "FooterText")
    _sub(footer, "Height", _inches(footer_height))
    _sub(footer, "PrintOnFirstPage", "true")
    _sub(footer, "PrintOnLastPage", "true")

    _sub(page, "PageHeight", _inches(PAGE_HEIGHT_IN))
    _sub(page, "PageWidth", _inches(PAGE_WIDTH_IN))
    for side in ("Left", "Right", "Top", "Bottom"):
        _sub(page, f"{side}Margin", _inches(MARGIN_IN))
    _sub(page, "Style")

    _sub(report, _rd("ReportUnitType"), "Inch")
    _sub(report, _rd("ReportID"), str(uuid.uuid4()))
    return report


def render_rdl(analysis: DocumentAnalysis, data_source: DataSourceSpec | None = None) -> str:
    """Render an analysis as an RDL XML document string."""
    report = build_report(analysis, data_source)
    ET.indent(report, space="  ")
    body = ET.tostring(report, encoding="unicode")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + body
