"""Tests for RDL report definition rendering."""

import xml.etree.ElementTree as ET

import pytest

from pdf_rdl_server.analysis.analyzer import DocumentAnalyzer
from pdf_rdl_server.analysis.models import (
    Classification,
    ClassifiedComponent,
    DocumentAnalysis,
    PositionedTextItem,
    Region,
)
from pdf_rdl_server.analysis.rdl import (
    AVAILABLE_WIDTH_IN,
    MAX_COLUMN_WIDTH_IN,
    MIN_COLUMN_WIDTH_IN,
    RDL_NS,
    RD_NS,
    DataSourceSpec,
    build_query,
    column_widths,
    render_rdl,
    report_fields,
)

NS = {"r": RDL_NS, "rd": RD_NS}


def make_item(text: str, x: float, y: float, width: float = 60, **kwargs) -> PositionedTextItem:
    return PositionedTextItem(text=text, x=x, y=y, width=width, height=12, **kwargs)


@pytest.fixture(scope="module")
def invoice_analysis() -> DocumentAnalysis:
    items = [
        make_item("ACME & Sons <Ltd>", 72, 20, width=160),
        make_item("INVOICE #:", 72, 60, width=80),
        make_item("INV-2024-001", 180, 62, width=90),
        make_item("Due Date:", 72, 200, width=70),
        make_item("12/31/2024", 180, 200, width=70),
        make_item("Description", 72, 300, width=80),
        make_item("Quantity", 250, 300),
        make_item("Unit Price", 350, 300),
        make_item("Line Total", 450, 300),
        make_item("Widget", 72, 320),
        make_item("2", 250, 320, width=10),
        make_item("$10.00", 350, 320),
        make_item("$20.00", 450, 320),
        make_item("Page 1 of 1", 300, 700, width=60),
    ]
    return DocumentAnalyzer().analyze_items(items, 612, 792)


@pytest.fixture(scope="module")
def invoice_report(invoice_analysis) -> ET.Element:
    return ET.fromstring(render_rdl(invoice_analysis).encode("utf-8"))


def texts(element: ET.Element, path: str) -> list[str]:
    return [e.text for e in element.findall(path, NS)]


class TestRenderRdl:
    def test_xml_declaration(self, invoice_analysis):
        xml = render_rdl(invoice_analysis)
        assert xml.startswith('<?xml version="1.0" encoding="utf-8"?>')

    def test_root_and_namespace(self, invoice_report):
        assert invoice_report.tag == f"{{{RDL_NS}}}Report"

    def test_data_source_and_dataset(self, invoice_report):
        source = invoice_report.find("r:DataSources/r:DataSource", NS)
        assert source.get("Name") == "DefaultDataSource"
        assert source.find("r:ConnectionProperties/r:DataProvider", NS).text == "SQL"

        dataset = invoice_report.find("r:DataSets/r:DataSet", NS)
        assert dataset.get("Name") == "MainDataSet"
        assert dataset.find("r:Query/r:DataSourceName", NS).text == "DefaultDataSource"

    def test_dataset_fields(self, invoice_report):
        fields = invoice_report.findall("r:DataSets/r:DataSet/r:Fields/r:Field", NS)
        names = [f.get("Name") for f in fields]
        assert names == ["Invoice", "DueDate", "Description", "Quantity", "UnitPrice", "LineTotal"]
        types = {f.get("Name"): f.find("rd:TypeName", NS).text for f in fields}
        assert types["DueDate"] == "System.DateTime"
        assert types["UnitPrice"] == "System.Decimal"
        assert types["Quantity"] == "System.Int32"

    def test_query_selects_fields(self, invoice_report):
        query = invoice_report.find("r:DataSets/r:DataSet/r:Query/r:CommandText", NS).text
        assert query.startswith("SELECT")
        assert "DueDate" in query
        assert query.endswith("FROM YourTableName")

    def test_one_tablix_per_table(self, invoice_report):
        tablixes = invoice_report.findall(".//r:Body/r:ReportItems/r:Tablix", NS)
        assert len(tablixes) == 1
        tablix = tablixes[0]
        assert tablix.find("r:DataSetName", NS).text == "MainDataSet"
        assert len(tablix.findall("r:TablixBody/r:TablixColumns/r:TablixColumn", NS)) == 4

    def test_tablix_header_and_detail_rows(self, invoice_report):
        tablix = invoice_report.find(".//r:Tablix", NS)
        rows = tablix.findall("r:TablixBody/r:TablixRows/r:TablixRow", NS)
        assert len(rows) == 2
        header_values = texts(rows[0], ".//r:TextRun/r:Value")
        detail_values = texts(rows[1], ".//r:TextRun/r:Value")
        assert header_values == ["Description", "Quantity", "Unit Price", "Line Total"]
        assert detail_values == [
            "=Fields!Description.Value",
            "=Fields!Quantity.Value",
            "=Fields!UnitPrice.Value",
            "=Fields!LineTotal.Value",
        ]

    def test_numeric_columns_are_formatted(self, invoice_report):
        tablix = invoice_report.find(".//r:Tablix", NS)
        detail = tablix.findall("r:TablixBody/r:TablixRows/r:TablixRow", NS)[1]
        formats = texts(detail, ".//r:TextRun/r:Style/r:Format")
        aligns = texts(detail, ".//r:Paragraph/r:Style/r:TextAlign")
        assert formats == ["N0", "C", "C"]
        assert aligns == ["Left", "Right", "Right", "Right"]

    def test_table_rows_are_not_body_textboxes(self, invoice_report):
        body_values = texts(invoice_report, ".//r:Body/r:ReportItems/r:Textbox/r:Paragraphs//r:Value")
        assert "Widget" not in body_values
        assert "Due Date:" in body_values
        assert '=First(Fields!DueDate.Value, "MainDataSet")' in body_values

    def test_page_header_and_footer(self, invoice_report):
        page = invoice_report.find(".//r:ReportSection/r:Page", NS)
        header_values = texts(page, "r:PageHeader/r:ReportItems//r:Value")
        footer_values = texts(page, "r:PageFooter/r:ReportItems//r:Value")
        assert header_values[0] == "ACME & Sons <Ltd>"
        assert "INVOICE #:" in header_values
        assert footer_values == ["Page 1 of 1"]

    def test_letter_page(self, invoice_report):
        page = invoice_report.find(".//r:ReportSection/r:Page", NS)
        assert page.find("r:PageWidth", NS).text == "8.5000in"
        assert page.find("r:PageHeight", NS).text == "11.0000in"
        assert page.find("r:LeftMargin", NS).text == "1.0000in"

    def test_special_characters_are_escaped(self, invoice_analysis):
        xml = render_rdl(invoice_analysis)
        assert "ACME &amp; Sons &lt;Ltd&gt;" in xml

    def test_report_ids_are_unique(self, invoice_analysis):
        first = ET.fromstring(render_rdl(invoice_analysis).encode("utf-8"))
        second = ET.fromstring(render_rdl(invoice_analysis).encode("utf-8"))
        assert first.find("rd:ReportID", NS).text != second.find("rd:ReportID", NS).text

    def test_shared_data_source_reference(self, invoice_analysis):
        spec = DataSourceSpec(name="Sales", data_source_reference="/Shared/Sales")
        report = ET.fromstring(render_rdl(invoice_analysis, spec).encode("utf-8"))
        source = report.find("r:DataSources/r:DataSource", NS)
        assert source.get("Name") == "Sales"
        assert source.find("r:DataSourceReference", NS).text == "/Shared/Sales"
        assert source.find("r:ConnectionProperties", NS) is None


class TestDefaultTable:
    def test_no_tables_uses_default_table(self):
        analysis = DocumentAnalyzer().analyze_items([make_item("Memo", 72, 100)], 612, 792)
        report = ET.fromstring(render_rdl(analysis).encode("utf-8"))

        tablix = report.find(".//r:Tablix", NS)
        assert tablix.get("Name") == "DefaultDataTable"
        names = [f.get("Name") for f in report.findall(".//r:DataSet/r:Fields/r:Field", NS)]
        assert names == ["Description", "Quantity", "UnitPrice", "LineTotal"]

    def test_empty_analysis_renders(self):
        xml = render_rdl(DocumentAnalysis(page_width=612, page_height=792))
        report = ET.fromstring(xml.encode("utf-8"))
        assert report.find(".//r:PageHeader/r:Height", NS).text == "0.5000in"

    def test_report_fields_keep_analysis_fields(self, invoice_analysis):
        assert report_fields(invoice_analysis) == list(invoice_analysis.fields)


class TestTablesAcrossRegions:
    @pytest.fixture(scope="class")
    def table_only_report(self) -> ET.Element:
        items = [
            make_item("Item", 72, 200),
            make_item("Qty", 200, 200),
            make_item("Price", 300, 200),
            make_item("Total", 400, 200),
            make_item("Widget", 72, 220),
            make_item("2", 200, 220, width=10),
            make_item("$10.00", 300, 220),
            make_item("$20.00", 400, 220),
            make_item("Gadget", 72, 240),
            make_item("1", 200, 240, width=10),
            make_item("$5.00", 300, 240),
            make_item("$5.00", 400, 240),
        ]
        analysis = DocumentAnalyzer().analyze_items(items, 612, 792)
        return ET.fromstring(render_rdl(analysis).encode("utf-8"))

    def test_table_is_rendered_in_body(self, table_only_report):
        tablix = table_only_report.find(".//r:Body/r:ReportItems/r:Tablix", NS)
        assert tablix.get("Name") == "Table1"
        assert tablix.find("r:Top", NS).text == "0.0000in"
        assert texts(tablix, ".//r:TablixRow[1]//r:Value") == ["Item", "Qty", "Price", "Total"]

    def test_table_items_are_not_section_textboxes(self, table_only_report):
        page = table_only_report.find(".//r:ReportSection/r:Page", NS)
        assert page.find("r:PageHeader/r:ReportItems", NS) is None
        assert page.find("r:PageFooter/r:ReportItems", NS) is None
        assert table_only_report.find(".//r:Body/r:ReportItems/r:Textbox", NS) is None


class TestLiteralText:
    def test_leading_equals_is_quoted(self):
        component = ClassifiedComponent(
            id=0,
            text='= net "30" days',
            x=72,
            y=100,
            width=120,
            height=12,
            classification=Classification.STANDALONE_TEXT,
            confidence=0.5,
            region=Region.BODY,
        )
        analysis = DocumentAnalysis(page_width=612, page_height=792, body=[component])
        report = ET.fromstring(render_rdl(analysis).encode("utf-8"))

        values = texts(report, ".//r:Body/r:ReportItems/r:Textbox//r:Value")
        assert values == ['="= net ""30"" days"']


class TestColumnWidths:
    def test_clamped(self):
        widths = column_widths(["Qty", "A very long column header that goes on and on"])
        assert widths[0] == MIN_COLUMN_WIDTH_IN
        assert widths[1] == MAX_COLUMN_WIDTH_IN

    def test_scaled_to_page(self):
        widths = column_widths(["Long header number %d" % i for i in range(6)])
        assert sum(widths) <= AVAILABLE_WIDTH_IN + 1e-9

    def test_no_headers(self):
        assert column_widths([]) == [AVAILABLE_WIDTH_IN]


def test_build_query(invoice_analysis):
    assert build_query(invoice_analysis.fields[:2]) == "SELECT\n  Invoice,\n  DueDate\nFROM YourTableName"
