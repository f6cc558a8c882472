"""Label → data pairing by spatial adjacency."""

from ..logger import logger
from .config import AnalysisConfig
from .errors import PairingError
from .models import ClassifiedComponent, LabelDataPair


def is_right_of(label: ClassifiedComponent, candidate: ClassifiedComponent, row_tolerance: float) -> bool:
    """Candidate starts after the label ends, on the same row."""
    return (
        candidate.x > label.x + label.width
        and abs(candidate.y - label.y) < row_tolerance
    )


def is_below_aligned(
    label: ClassifiedComponent, candidate: ClassifiedComponent, column_tolerance: float
) -> bool:
    """Candidate starts below the label, left edges roughly aligned."""
    return (
        candidate.y > label.y + label.height
        and abs(candidate.x - label.x) < column_tolerance
    )


class ProximityPairer:
    """Greedy nearest-neighbour pairing of labels with data items.

    Labels are processed in the order given. Each label takes the closest
    adjacent candidate still available, so results depend on label order.
    """

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()

    def is_adjacent(self, label: ClassifiedComponent, candidate: ClassifiedComponent) -> bool:
        return is_right_of(label, candidate, self.config.row_tolerance) or is_below_aligned(
            label, candidate, self.config.column_tolerance
        )

    def proximity(self, label: ClassifiedComponent, candidate: ClassifiedComponent) -> float:
        """Normalized inverse distance in [0, 1]."""
        return max(0.0, 1.0 - label.distance_to(candidate) / self.config.max_pair_distance)

    def pair(
        self,
        labels: list[ClassifiedComponent],
        candidates: list[ClassifiedComponent],
    ) -> list[LabelDataPair]:
        """Pair each label with at most one candidate.

        Args:
            labels: Static-label components, in pairing priority order.
            candidates: Data or standalone components that may hold values.

        Returns:
            Accepted pairs; each label and each candidate appears at most once.
        """
        available = {c.id: c for c in candidates}
        paired_labels: set[int] = set()
        pairs: list[LabelDataPair] = []

        for label in labels:
            if label.id in paired_labels:
                continue

            best: ClassifiedComponent | None = None
            best_distance = float("inf")
            for candidate in available.values():
                if candidate.id == label.id or not self.is_adjacent(label, candidate):
                    continue
                distance = label.distance_to(candidate)
                if distance < best_distance:
                    best = candidate
                    best_distance = distance

            if best is None:
                continue

            proximity = self.proximity(label, best)
            if proximity <= self.config.min_pair_proximity:
                continue

            pairs.append(LabelDataPair(label=label, data=best, proximity=proximity))
            paired_labels.add(label.id)
            del available[best.id]

        logger.debug(
            "labels paired",
            labels=len(labels),
            candidates=len(candidates),
            pairs=len(pairs),
        )
        return pairs


def build_pairing_index(pairs: list[LabelDataPair]) -> dict[int, int]:
    """Symmetric component id → partner id map for a list of pairs.

    Raises:
        PairingError: If a component occurs in more than one pair.
    """
    index: dict[int, int] = {}
    for pair in pairs:
        label_id, data_id = pair.label.id, pair.data.id
        if label_id == data_id:
            raise PairingError(f"component {label_id} cannot pair with itself")
        for component_id in (label_id, data_id):
            if component_id in index:
                raise PairingError(f"component {component_id} is already paired")
        index[label_id] = data_id
        index[data_id] = label_id
    return index
