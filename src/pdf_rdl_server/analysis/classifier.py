"""Rule-based classification of text items with optional zero-shot refinement.

Rules are checked as a priority cascade; the first tier that matches decides:

1. table-header vocabulary
2. static-label vocabulary and structural label patterns
3. dynamic-data shapes (numbers, dates, money, emails, codes)
4. style fallback (bold, large font)
5. position fallback (left column with a trailing colon)
6. standalone text

Results at or below ``uncertain_threshold`` are sent to the injected
zero-shot classifier, if any, and merged with the rule result.
"""

import re
import statistics
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout

from pydantic import BaseModel

from ..logger import logger
from .config import AnalysisConfig
from .models import Classification, ClassificationResult, PositionedTextItem
from .zero_shot import ZeroShotClassifier, ZeroShotOutcome

TABLE_HEADER_TOKENS = frozenset(
    {
        "item",
        "items",
        "item #",
        "description",
        "qty",
        "quantity",
        "price",
        "unit price",
        "unit cost",
        "amount",
        "total",
        "line total",
        "rate",
        "hours",
        "unit",
        "units",
        "sku",
        "discount",
        "tax",
        "product",
        "service",
    }
)

KNOWN_LABELS = frozenset(
    {
        "SHIP TO", "BILL TO", "SOLD TO", "FROM", "TO",
        "DATE", "ORDER", "PO", "INVOICE", "CUSTOMER",
        "ADDRESS", "PHONE", "EMAIL", "FAX", "ACCOUNT",
        "REFERENCE", "TERMS", "DUE DATE", "TOTAL",
        "SUBTOTAL", "TAX", "AMOUNT", "QTY", "QUANTITY",
        "DESCRIPTION", "PRICE", "UNIT PRICE", "NAME",
        "COMPANY", "ATTENTION", "ATTN", "REF", "ORDER #",
        "INVOICE #", "CUSTOMER #", "PAGE", "PROJECT",
    }
)

LABEL_PHRASE_MARKERS = (" TO ", " NUMBER", " DATE", " CODE")

UPPERCASE_WORDS_RE = re.compile(r"[A-Z ]{2,}")
EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.]+")
DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
CURRENCY_RE = re.compile(r"^[$€£]\s?\d")
PHONE_RE = re.compile(r"^\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}$")
DIGIT_RUN_RE = re.compile(r"\d{2,}")
CODE_RE = re.compile(r"^[A-Za-z0-9]+(?:[-/_.][A-Za-z0-9]+)+$")


class ClassificationBatch(BaseModel):
    """Classification results for one page, in input order."""

    results: list[ClassificationResult]
    external_calls: int = 0
    external_failures: int = 0

    @property
    def degraded(self) -> bool:
        return self.external_failures > 0


def _normalize(text: str) -> str:
    return " ".join(text.split()).lower()


def is_table_header_text(text: str) -> bool:
    """True when the whole text is a known column-header token."""
    return _normalize(text) in TABLE_HEADER_TOKENS


def is_known_label(text: str) -> bool:
    base = " ".join(text.upper().split()).rstrip(":").strip()
    return base in KNOWN_LABELS or base.rstrip("#").strip() in KNOWN_LABELS


def is_structural_label(text: str, config: AnalysisConfig) -> bool:
    if text.endswith((":", "#")):
        return True
    if len(text) <= config.short_label_max_length and UPPERCASE_WORDS_RE.fullmatch(text):
        return True
    padded = f" {text.upper()} "
    return len(text) <= config.long_text_min_length and any(
        marker in padded for marker in LABEL_PHRASE_MARKERS
    )


def dynamic_data_confidence(text: str, config: AnalysisConfig) -> float | None:
    """Confidence that text is instance data, or None when no shape matches."""
    if EMAIL_RE.search(text) or DATE_RE.search(text) or CURRENCY_RE.match(text):
        return 0.85
    if PHONE_RE.match(text):
        return 0.85
    if (
        text[0].isdigit()
        or DIGIT_RUN_RE.search(text)
        or len(text) > config.long_text_min_length
        or text[0].islower()
    ):
        return 0.8
    if CODE_RE.match(text) and any(c.isdigit() for c in text):
        return 0.8
    return None


def average_font_size(items: list[PositionedTextItem]) -> float:
    sizes = [item.font_size for item in items if item.font_size > 0]
    return statistics.mean(sizes) if sizes else 0.0


def is_left_column(
    item: PositionedTextItem, all_items: list[PositionedTextItem], ratio: float
) -> bool:
    if not all_items:
        return True
    left = min(i.x for i in all_items)
    right = max(i.x + i.width for i in all_items)
    return item.x <= left + (right - left) * ratio


def rule_based_classification(
    item: PositionedTextItem,
    all_items: list[PositionedTextItem],
    config: AnalysisConfig,
    avg_font_size: float | None = None,
) -> ClassificationResult:
    """Classify an item with the rule cascade.

    Args:
        item: The item to classify.
        all_items: Every item on the page, used for font and position context.
        config: Threshold configuration.
        avg_font_size: Precomputed page average font size.

    Returns:
        ClassificationResult from the first matching tier.
    """
    text = item.text

    if is_table_header_text(text):
        return ClassificationResult(
            label=Classification.TABLE_HEADER,
            confidence=0.95,
            reasoning="matches column header vocabulary",
        )

    if is_known_label(text):
        return ClassificationResult(
            label=Classification.STATIC_LABEL,
            confidence=0.9,
            reasoning="matches known label",
        )
    if is_structural_label(text, config):
        return ClassificationResult(
            label=Classification.STATIC_LABEL,
            confidence=0.7,
            reasoning="matches label pattern",
        )

    data_confidence = dynamic_data_confidence(text, config)
    if data_confidence is not None:
        return ClassificationResult(
            label=Classification.DYNAMIC_DATA,
            confidence=data_confidence,
            reasoning="matches data pattern",
        )

    is_short = len(text) <= config.short_label_max_length
    if item.is_bold and is_short and text.endswith(":"):
        return ClassificationResult(
            label=Classification.STATIC_LABEL,
            confidence=0.8,
            reasoning="bold short text with colon",
        )
    if item.is_bold and is_short:
        return ClassificationResult(
            label=Classification.TABLE_HEADER,
            confidence=0.65,
            reasoning="bold short text",
        )

    if avg_font_size is None:
        avg_font_size = average_font_size(all_items)
    if avg_font_size > 0 and item.font_size > avg_font_size * config.large_font_ratio:
        return ClassificationResult(
            label=Classification.STATIC_LABEL,
            confidence=0.6,
            reasoning="large font",
        )

    if text.endswith(":") and is_left_column(item, all_items, config.left_column_ratio):
        return ClassificationResult(
            label=Classification.STATIC_LABEL,
            confidence=0.75,
            reasoning="left column with colon",
        )

    return ClassificationResult(
        label=Classification.STANDALONE_TEXT,
        confidence=0.5,
        reasoning="no rule matched",
    )


def combine_classifications(
    rule: ClassificationResult, outcome: ZeroShotOutcome, config: AnalysisConfig
) -> ClassificationResult:
    """Merge a rule result with an external outcome.

    A failed outcome leaves the rule result untouched. Agreeing labels get a
    weighted confidence; on disagreement the more confident side wins.
    """
    external_label = outcome.classification
    if not outcome.ok or external_label is None:
        return rule

    score = outcome.prediction.score
    if external_label == rule.label:
        confidence = rule.confidence * config.rule_weight + score * config.external_weight
        return ClassificationResult(
            label=rule.label,
            confidence=min(1.0, max(0.0, confidence)),
            reasoning=f"{rule.reasoning}; zero-shot agrees ({outcome.prediction.label})",
        )
    if score > rule.confidence:
        return ClassificationResult(
            label=external_label,
            confidence=min(1.0, max(0.0, score)),
            reasoning=f"zero-shot: {outcome.prediction.label}",
        )
    return rule


def style_hints(item: PositionedTextItem, avg_font_size: float) -> dict:
    return {
        "bold": item.is_bold,
        "italic": item.is_italic,
        "large_font": avg_font_size > 0 and item.font_size > avg_font_size,
    }


class ComponentClassifier:
    """Classifies text items; optionally refines uncertain ones externally."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        zero_shot: ZeroShotClassifier | None = None,
    ):
        """Initialize the classifier.

        Args:
            config: Threshold configuration.
            zero_shot: Optional external classifier for uncertain items.
        """
        self.config = config or AnalysisConfig()
        self.zero_shot = zero_shot

    def classify(
        self, item: PositionedTextItem, all_items: list[PositionedTextItem]
    ) -> ClassificationResult:
        """Classify a single item in the context of its page."""
        avg = average_font_size(all_items)
        rule = rule_based_classification(item, all_items, self.config, avg)
        if self.zero_shot is None or rule.confidence > self.config.uncertain_threshold:
            return rule
        outcome = self._run_external([item], avg)[0]
        if not outcome.ok:
            logger.warn("zero-shot classification degraded, kept rule-based result", error=outcome.error)
        return combine_classifications(rule, outcome, self.config)

    def classify_all(self, items: list[PositionedTextItem]) -> ClassificationBatch:
        """Classify every item on a page.

        All external calls finish (or time out) before this returns.
        """
        avg = average_font_size(items)
        results = [rule_based_classification(item, items, self.config, avg) for item in items]
        if self.zero_shot is None:
            return ClassificationBatch(results=results)

        uncertain = [
            i for i, r in enumerate(results) if r.confidence <= self.config.uncertain_threshold
        ]
        if not uncertain:
            return ClassificationBatch(results=results)

        start = time.perf_counter()
        outcomes = self._run_external([items[i] for i in uncertain], avg)
        failures = [o for o in outcomes if not o.ok]
        for i, outcome in zip(uncertain, outcomes):
            results[i] = combine_classifications(results[i], outcome, self.config)

        duration_ms = (time.perf_counter() - start) * 1000
        if failures:
            logger.warn(
                "zero-shot classification degraded, kept rule-based results",
                failed=len(failures),
                total=len(uncertain),
                error=failures[0].error,
            )
        logger.debug(
            "zero-shot refinement completed",
            uncertain=len(uncertain),
            failed=len(failures),
            duration_ms=round(duration_ms, 2),
        )
        return ClassificationBatch(
            results=results,
            external_calls=len(uncertain),
            external_failures=len(failures),
        )

    def _run_external(
        self, items: list[PositionedTextItem], avg_font_size: float
    ) -> list[ZeroShotOutcome]:
        """Call the external classifier concurrently with one shared deadline."""
        executor = ThreadPoolExecutor(max_workers=self.config.classifier_max_workers)
        try:
            futures = [
                executor.submit(
                    self.zero_shot.try_classify, item.text, style_hints(item, avg_font_size)
                )
                for item in items
            ]
            deadline = time.monotonic() + self.config.classifier_timeout_seconds
            outcomes = []
            for future in futures:
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    outcomes.append(future.result(timeout=remaining))
                except FuturesTimeout:
                    outcomes.append(ZeroShotOutcome(error="timed out"))
            return outcomes
        finally:
            # Stalled calls are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)
