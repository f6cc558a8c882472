"""Tests for field identifier derivation."""

import pytest

from pdf_rdl_server.analysis.fields import (
    DEFAULT_FIELD_NAME,
    build_field_mappings,
    field_expression,
    field_name,
    infer_field_type,
)
from pdf_rdl_server.analysis.models import FieldType


class TestFieldName:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("INVOICE #:", "Invoice"),
            ("Unit price", "UnitPrice"),
            ("Bill To:", "BillTo"),
            ("DUE DATE", "DueDate"),
            ("customer id", "CustomerId"),
            ("PO Number", "PoNumber"),
            ("iPhone model", "IPhoneModel"),
            ("2nd Address", "Field2ndAddress"),
        ],
    )
    def test_derivation(self, text, expected):
        assert field_name(text) == expected

    def test_only_letters_and_digits(self):
        name = field_name("Amount ($) / Total:")
        assert name.isalnum()

    def test_fallback_for_symbols_only(self):
        assert field_name("#:") == DEFAULT_FIELD_NAME
        assert field_name("   ") == DEFAULT_FIELD_NAME
        assert field_name("", fallback="Field7") == "Field7"

    def test_idempotent(self):
        for text in ["INVOICE #:", "Unit price", "2nd Address", "e-mail", "#", "Ship To"]:
            once = field_name(text)
            assert field_name(once) == once

    def test_deterministic(self):
        assert field_name("Ship To:") == field_name("Ship To:")


class TestInferFieldType:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("InvoiceDate", FieldType.DATETIME),
            ("DueTime", FieldType.DATETIME),
            ("UnitPrice", FieldType.DECIMAL),
            ("LineTotal", FieldType.DECIMAL),
            ("Qty", FieldType.INT32),
            ("CustomerId", FieldType.INT32),
            ("Description", FieldType.STRING),
        ],
    )
    def test_types(self, name, expected):
        assert infer_field_type(name) == expected


class TestBuildFieldMappings:
    def test_mappings_and_fields(self):
        mappings, fields = build_field_mappings(["INVOICE #:", "Due Date:", "Qty"])
        assert mappings == {"INVOICE #:": "Invoice", "Due Date:": "DueDate", "Qty": "Qty"}
        assert [f.name for f in fields] == ["Invoice", "DueDate", "Qty"]
        assert fields[0].description == "INVOICE"
        assert fields[1].type_name == FieldType.DATETIME
        assert fields[2].type_name == FieldType.INT32

    def test_colliding_identifiers_yield_one_field(self):
        mappings, fields = build_field_mappings(["Total:", "TOTAL"])
        assert mappings == {"Total:": "Total", "TOTAL": "Total"}
        assert len(fields) == 1
        assert fields[0].description == "Total"

    def test_empty(self):
        assert build_field_mappings([]) == ({}, [])


def test_field_expression():
    assert field_expression("InvoiceDate") == "=Fields!InvoiceDate.Value"
