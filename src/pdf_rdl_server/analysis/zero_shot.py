"""Zero-shot text classifiers used to refine uncertain rule-based results."""

import json
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from anthropic import Anthropic
from pydantic import BaseModel
from sentence_transformers import CrossEncoder

from ..logger import logger
from .models import Classification

CANDIDATE_LABELS = [
    "form label",
    "table header",
    "data value",
    "title or heading",
    "address",
    "monetary amount",
    "date or time",
    "contact information",
]

LABEL_TO_CLASSIFICATION = {
    "form label": Classification.STATIC_LABEL,
    "table header": Classification.TABLE_HEADER,
    "data value": Classification.DYNAMIC_DATA,
    "title or heading": Classification.STANDALONE_TEXT,
    "address": Classification.DYNAMIC_DATA,
    "monetary amount": Classification.DYNAMIC_DATA,
    "date or time": Classification.DYNAMIC_DATA,
    "contact information": Classification.DYNAMIC_DATA,
}


class ZeroShotPrediction(BaseModel):
    label: str
    score: float


@dataclass
class ZeroShotOutcome:
    """Result of an external classification attempt.

    Exactly one of ``prediction`` and ``error`` is set.
    """

    prediction: ZeroShotPrediction | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.prediction is not None

    @property
    def classification(self) -> Classification | None:
        if self.prediction is None:
            return None
        return LABEL_TO_CLASSIFICATION.get(self.prediction.label)


def describe_text(text: str, hints: dict | None = None) -> str:
    """Render text plus style hints as a short premise for the model."""
    features = []
    hints = hints or {}
    if hints.get("bold"):
        features.append("bold")
    if hints.get("italic"):
        features.append("italic")
    if hints.get("large_font"):
        features.append("large font")
    prompt = f'Text: "{text}"'
    if features:
        prompt += f" Features: {', '.join(features)}"
    return prompt


class ZeroShotClassifier(ABC):
    """Abstract base class for external zero-shot classifiers."""

    @abstractmethod
    def classify(self, text: str, hints: dict | None = None) -> ZeroShotPrediction:
        """Pick the best label from CANDIDATE_LABELS for a text fragment.

        Args:
            text: The text to classify.
            hints: Optional style hints (bold, italic, large_font).

        Returns:
            The winning label and its score in [0, 1].
        """

    def try_classify(self, text: str, hints: dict | None = None) -> ZeroShotOutcome:
        """Classify without raising; failures are returned as an error outcome."""
        try:
            prediction = self.classify(text, hints)
        except Exception as e:
            return ZeroShotOutcome(error=f"{type(e).__name__}: {e}")
        if prediction.label not in LABEL_TO_CLASSIFICATION:
            return ZeroShotOutcome(error=f"unknown label: {prediction.label}")
        return ZeroShotOutcome(prediction=prediction)


class CrossEncoderZeroShotClassifier(ZeroShotClassifier):
    """Zero-shot classification with a local NLI cross-encoder."""

    DEFAULT_MODEL = "cross-encoder/nli-deberta-v3-small"
    HYPOTHESIS_TEMPLATE = "This text is a {}."

    def __init__(self, model_name: str | None = None, entailment_index: int = 1):
        """Load the cross-encoder.

        Args:
            model_name: HuggingFace model name. Defaults to nli-deberta-v3-small.
            entailment_index: Column of the entailment class in the model output.
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._entailment_index = entailment_index
        start = time.perf_counter()
        self._model = CrossEncoder(self._model_name)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "zero-shot model loaded",
            model=self._model_name,
            duration_ms=round(duration_ms, 2),
        )

    def classify(self, text: str, hints: dict | None = None) -> ZeroShotPrediction:
        premise = describe_text(text, hints)
        pairs = [(premise, self.HYPOTHESIS_TEMPLATE.format(label)) for label in CANDIDATE_LABELS]
        scores = self._model.predict(pairs, apply_softmax=True)

        entailment = [float(row[self._entailment_index]) for row in scores]
        total = sum(entailment)
        if total <= 0:
            raise ValueError("model returned no entailment mass")

        best = max(range(len(CANDIDATE_LABELS)), key=lambda i: entailment[i])
        return ZeroShotPrediction(
            label=CANDIDATE_LABELS[best],
            score=entailment[best] / total,
        )


class AnthropicZeroShotClassifier(ZeroShotClassifier):
    """Zero-shot classification by asking Claude to pick a label."""

    DEFAULT_MODEL = "claude-haiku-4-5-20251001"

    SYSTEM_PROMPT = """You classify short text fragments taken from business documents such as invoices.

Answer with a JSON object and nothing else: {"label": "<label>", "score": <confidence between 0 and 1>}
The label must be one of: """ + ", ".join(CANDIDATE_LABELS)

    def __init__(self, api_key: str | None = None, model: str | None = None):
        """Initialize the client.

        Args:
            api_key: Anthropic API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Claude model name.

        Raises:
            ValueError: If no API key is available.
        """
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError(
                "Anthropic API key required: provide api_key or set ANTHROPIC_API_KEY"
            )
        self._client = Anthropic(api_key=api_key)
        self._model = model or self.DEFAULT_MODEL

    def classify(self, text: str, hints: dict | None = None) -> ZeroShotPrediction:
        response = self._client.messages.create(
            model=self._model,
            max_tokens=64,
            system=self.SYSTEM_PROMPT,
            messages=[{"role": "user", "content": describe_text(text, hints)}],
        )
        if not response.content:
            raise ValueError("Empty response from Claude API")

        payload = json.loads(response.content[0].text)
        score = min(1.0, max(0.0, float(payload["score"])))
        return ZeroShotPrediction(label=str(payload["label"]).lower(), score=score)


def load_zero_shot_classifier(backend: str) -> ZeroShotClassifier | None:
    """Construct the configured classifier backend.

    Args:
        backend: "none", "cross-encoder" or "anthropic".

    Returns:
        The classifier, or None when disabled or when loading fails. A load
        failure degrades analysis to rule-based classification.
    """
    if backend == "none":
        return None
    if backend not in ("cross-encoder", "anthropic"):
        raise ValueError(f"unknown classifier backend: {backend}")

    try:
        if backend == "cross-encoder":
            return CrossEncoderZeroShotClassifier()
        return AnthropicZeroShotClassifier()
    except Exception as e:
        logger.warn(
            "zero-shot classifier unavailable, using rule-based classification",
            backend=backend,
            error=str(e),
        )
        return None
