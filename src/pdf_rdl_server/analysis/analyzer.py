"""Document analysis pipeline: regions, classification, tables, pairing, fields."""

import statistics
import time
from pathlib import Path

from ..logger import log_context, logger
from .classifier import ComponentClassifier
from .config import AnalysisConfig
from .fields import build_field_mappings
from .models import (
    Classification,
    ClassifiedComponent,
    DocumentAnalysis,
    LabelDataPair,
    PositionedTextItem,
    Region,
    TableStructure,
)
from .pairing import ProximityPairer, build_pairing_index
from .pdf_extractor import extract_text_items
from .regions import classify_regions
from .tables import TableDetector
from .zero_shot import ZeroShotClassifier

PAIR_CANDIDATE_CLASSES = (Classification.DYNAMIC_DATA, Classification.STANDALONE_TEXT)


def _field_sources(
    pairs: list[LabelDataPair], tables: list[TableStructure]
) -> tuple[list[str], dict[int, str]]:
    """Texts that become fields, and the source text for each component id.

    Paired labels and their data share the label's text; table headers use
    their own text.
    """
    sources: list[str] = []
    by_component: dict[int, str] = {}
    for pair in sorted(pairs, key=lambda p: p.label.id):
        sources.append(pair.label.text)
        by_component[pair.label.id] = pair.label.text
        by_component[pair.data.id] = pair.label.text
    for table in tables:
        for header in table.headers:
            sources.append(header.text)
            by_component[header.id] = header.text
    return sources, by_component


def _rebind_tables(
    tables: list[TableStructure], components: dict[int, ClassifiedComponent]
) -> list[TableStructure]:
    return [
        table.model_copy(
            update={
                "headers": [components[h.id] for h in table.headers],
                "rows": [[components[c.id] for c in row] for row in table.rows],
            }
        )
        for table in tables
    ]


def _rebind_pairs(
    pairs: list[LabelDataPair], components: dict[int, ClassifiedComponent]
) -> list[LabelDataPair]:
    return [
        LabelDataPair(
            label=components[p.label.id],
            data=components[p.data.id],
            proximity=p.proximity,
        )
        for p in pairs
    ]


class DocumentAnalyzer:
    """Turns positioned text items into a DocumentAnalysis."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        zero_shot: ZeroShotClassifier | None = None,
    ):
        """Initialize the analyzer.

        Args:
            config: Threshold configuration shared by every stage.
            zero_shot: Optional external classifier for uncertain items.
        """
        self.config = config or AnalysisConfig()
        self.classifier = ComponentClassifier(self.config, zero_shot)
        self.pairer = ProximityPairer(self.config)
        self.table_detector = TableDetector(self.config)

    def classify(self, items: list[PositionedTextItem]) -> tuple[list[ClassifiedComponent], bool]:
        """Assign region and classification to every item.

        Returns:
            Tuple of (components in input order, degraded flag).
        """
        regions = classify_regions(items, self.config)
        batch = self.classifier.classify_all(items)
        components = [
            ClassifiedComponent(
                **item.model_dump(include=set(PositionedTextItem.model_fields)),
                id=index,
                classification=result.label,
                confidence=result.confidence,
                region=region,
                reasoning=result.reasoning,
            )
            for index, (item, region, result) in enumerate(zip(items, regions, batch.results))
        ]
        return components, batch.degraded

    def analyze_items(
        self,
        items: list[PositionedTextItem],
        page_width: float,
        page_height: float,
    ) -> DocumentAnalysis:
        """Analyze the text items of one page.

        Args:
            items: Positioned text items in extraction order.
            page_width: Page width in points.
            page_height: Page height in points.

        Returns:
            The assembled DocumentAnalysis.
        """
        start = time.perf_counter()

        components, degraded = self.classify(items)

        # Regions are cut from the text span, so a table may reach into either band
        tables = self.table_detector.detect(components)
        in_tables: set[int] = set()
        for table in tables:
            in_tables |= table.component_ids

        free = [c for c in components if c.id not in in_tables]
        labels = [c for c in free if c.classification == Classification.STATIC_LABEL]
        candidates = [c for c in free if c.classification in PAIR_CANDIDATE_CLASSES]
        pairs = self.pairer.pair(labels, candidates)
        pairings = build_pairing_index(pairs)

        sources, source_by_component = _field_sources(pairs, tables)
        field_mappings, fields = build_field_mappings(sources)

        enriched = {
            c.id: (
                c.model_copy(update={"field_mapping": field_mappings[source_by_component[c.id]]})
                if c.id in source_by_component
                else c
            )
            for c in components
        }
        ordered = [enriched[c.id] for c in components]

        overall_confidence = (
            statistics.mean(c.confidence for c in ordered) if ordered else 0.0
        )

        analysis = DocumentAnalysis(
            page_width=page_width,
            page_height=page_height,
            header=[c for c in ordered if c.region == Region.HEADER],
            body=[c for c in ordered if c.region == Region.BODY],
            footer=[c for c in ordered if c.region == Region.FOOTER],
            tables=_rebind_tables(tables, enriched),
            label_data_pairs=_rebind_pairs(pairs, enriched),
            pairings=pairings,
            field_mappings=field_mappings,
            fields=fields,
            overall_confidence=overall_confidence,
            degraded=degraded,
        )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "document analyzed",
            components=len(ordered),
            header=len(analysis.header),
            body=len(analysis.body),
            footer=len(analysis.footer),
            tables=len(tables),
            pairs=len(pairs),
            fields=len(fields),
            overall_confidence=round(overall_confidence, 3),
            degraded=degraded,
            duration_ms=round(duration_ms, 2),
        )
        return analysis

    def analyze_pdf(self, file_path: str | Path) -> DocumentAnalysis:
        """Extract page 1 of a PDF and analyze it.

        Raises:
            FileNotFoundError: If the file does not exist.
            ExtractionError: If the PDF cannot be read.
        """
        page = extract_text_items(file_path)
        return self.analyze_items(page.items, page.page_width, page.page_height)


def analyze_document(
    file_path: str | Path,
    config: AnalysisConfig | None = None,
    zero_shot: ZeroShotClassifier | None = None,
) -> DocumentAnalysis:
    """Analyze the first page of a PDF file.

    Args:
        file_path: Path to the PDF file.
        config: Optional threshold configuration.
        zero_shot: Optional external classifier for uncertain items.

    Returns:
        DocumentAnalysis for page 1.
    """
    file_path = Path(file_path)
    with log_context(document=file_path.name):
        return DocumentAnalyzer(config, zero_shot).analyze_pdf(file_path)
