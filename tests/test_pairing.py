"""Tests for label/data proximity pairing."""

import pytest

from pdf_rdl_server.analysis.config import AnalysisConfig
from pdf_rdl_server.analysis.errors import PairingError
from pdf_rdl_server.analysis.models import (
    Classification,
    ClassifiedComponent,
    LabelDataPair,
    Region,
)
from pdf_rdl_server.analysis.pairing import (
    ProximityPairer,
    build_pairing_index,
    is_below_aligned,
    is_right_of,
)


def make_component(
    id: int,
    text: str,
    x: float,
    y: float,
    classification: Classification = Classification.DYNAMIC_DATA,
    width: float = 80,
    height: float = 12,
) -> ClassifiedComponent:
    return ClassifiedComponent(
        id=id,
        text=text,
        x=x,
        y=y,
        width=width,
        height=height,
        classification=classification,
        confidence=0.8,
        region=Region.BODY,
    )


def label(id: int, text: str, x: float, y: float, **kwargs) -> ClassifiedComponent:
    return make_component(id, text, x, y, Classification.STATIC_LABEL, **kwargs)


class TestAdjacency:
    def test_right_of_same_row(self):
        assert is_right_of(label(0, "Date:", 50, 100), make_component(1, "1/2/24", 140, 105), 20)

    def test_right_of_requires_gap(self):
        """Overlapping horizontally is not "right of"."""
        assert not is_right_of(label(0, "Date:", 50, 100), make_component(1, "x", 120, 100), 20)

    def test_right_of_different_row(self):
        assert not is_right_of(label(0, "Date:", 50, 100), make_component(1, "x", 140, 125), 20)

    def test_below_aligned(self):
        assert is_below_aligned(label(0, "Bill To:", 50, 100), make_component(1, "Jane", 60, 120), 75)

    def test_below_misaligned(self):
        assert not is_below_aligned(label(0, "Bill To:", 50, 100), make_component(1, "Jane", 200, 120), 75)

    def test_above_is_not_adjacent(self):
        pairer = ProximityPairer()
        assert not pairer.is_adjacent(label(0, "Bill To:", 50, 100), make_component(1, "Jane", 50, 60))


class TestProximityPairer:
    def test_invoice_number_pair(self):
        """A label and the data on its right are paired."""
        invoice = label(0, "INVOICE #:", 50, 20)
        number = make_component(1, "INV-2024-001", 160, 22, width=90)
        pairs = ProximityPairer().pair([invoice], [number])

        assert len(pairs) == 1
        assert pairs[0].label.id == 0
        assert pairs[0].data.id == 1
        assert pairs[0].proximity > 0.3

    def test_nearest_candidate_wins(self):
        date = label(0, "Date:", 50, 100)
        near = make_component(1, "01/02/2024", 140, 100)
        far = make_component(2, "Other", 300, 100)
        pairs = ProximityPairer().pair([date], [far, near])
        assert pairs[0].data.id == 1

    def test_candidate_used_once(self):
        """Two labels competing for one value: the first label gets it."""
        first = label(0, "Bill To:", 50, 100)
        second = label(1, "Ship To:", 60, 130, width=5)
        value = make_component(2, "Jane Doe", 60, 160)
        pairs = ProximityPairer().pair([first, second], [value])

        assert len(pairs) == 1
        assert pairs[0].label.id == 0

    def test_too_far_is_rejected(self):
        pairs = ProximityPairer().pair([label(0, "Date:", 50, 100)], [make_component(1, "x", 400, 100)])
        assert pairs == []

    def test_min_proximity_is_exclusive(self):
        config = AnalysisConfig(max_pair_distance=100, min_pair_proximity=0.5)
        # Centers are exactly 50 apart -> proximity 0.5
        date = label(0, "Date:", 0, 0, width=10, height=10)
        value = make_component(1, "x", 50, 0, width=10, height=10)
        assert ProximityPairer(config).pair([date], [value]) == []

    def test_no_candidates(self):
        assert ProximityPairer().pair([label(0, "Date:", 50, 100)], []) == []

    def test_pairs_are_exclusive(self):
        labels = [label(i, f"L{i}:", 50, 100 + i * 30) for i in range(4)]
        candidates = [make_component(10 + i, f"v{i}", 150, 100 + i * 30) for i in range(4)]
        pairs = ProximityPairer().pair(labels, candidates)

        label_ids = [p.label.id for p in pairs]
        data_ids = [p.data.id for p in pairs]
        assert len(label_ids) == len(set(label_ids))
        assert len(data_ids) == len(set(data_ids))
        assert {(p.label.id, p.data.id) for p in pairs} == {(i, 10 + i) for i in range(4)}
        assert all(0.0 <= p.proximity <= 1.0 for p in pairs)


class TestBuildPairingIndex:
    def test_index_is_symmetric(self):
        pairs = [
            LabelDataPair(label=label(0, "A:", 0, 0), data=make_component(1, "a", 100, 0), proximity=0.5),
            LabelDataPair(label=label(2, "B:", 0, 40), data=make_component(3, "b", 100, 40), proximity=0.5),
        ]
        index = build_pairing_index(pairs)
        assert index == {0: 1, 1: 0, 2: 3, 3: 2}
        for a, b in index.items():
            assert index[b] == a

    def test_duplicate_component_raises(self):
        data = make_component(1, "a", 100, 0)
        pairs = [
            LabelDataPair(label=label(0, "A:", 0, 0), data=data, proximity=0.5),
            LabelDataPair(label=label(2, "B:", 0, 40), data=data, proximity=0.5),
        ]
        with pytest.raises(PairingError, match="already paired"):
            build_pairing_index(pairs)

    def test_self_pair_raises(self):
        item = label(0, "A:", 0, 0)
        with pytest.raises(PairingError, match="itself"):
            build_pairing_index([LabelDataPair(label=item, data=item, proximity=1.0)])

    def test_empty(self):
        assert build_pairing_index([]) == {}
