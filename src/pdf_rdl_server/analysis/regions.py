"""Header/body/footer segmentation by vertical position."""

from pydantic import BaseModel

from .config import AnalysisConfig
from .models import PositionedTextItem, Region


class RegionThresholds(BaseModel):
    min_y: float
    max_y: float
    header_threshold: float
    footer_threshold: float

    @property
    def span(self) -> float:
        return self.max_y - self.min_y


def region_thresholds(
    items: list[PositionedTextItem], config: AnalysisConfig
) -> RegionThresholds | None:
    """Compute header/footer cut lines relative to the occupied vertical span.

    Returns:
        None when there are no items.
    """
    if not items:
        return None
    min_y = min(item.y for item in items)
    max_y = max(item.y for item in items)
    span = max_y - min_y
    return RegionThresholds(
        min_y=min_y,
        max_y=max_y,
        header_threshold=min_y + span * config.header_ratio,
        footer_threshold=max_y - span * config.footer_ratio,
    )


def assign_region(item: PositionedTextItem, thresholds: RegionThresholds) -> Region:
    if thresholds.span <= 0:
        return Region.BODY
    if item.y < thresholds.header_threshold:
        return Region.HEADER
    if item.y + item.height > thresholds.footer_threshold:
        return Region.FOOTER
    return Region.BODY


def classify_regions(
    items: list[PositionedTextItem], config: AnalysisConfig | None = None
) -> list[Region]:
    """Assign every item exactly one region.

    Args:
        items: Text items of one page.
        config: Threshold configuration. Defaults are used when omitted.

    Returns:
        Regions in the same order as ``items``.
    """
    thresholds = region_thresholds(items, config or AnalysisConfig())
    if thresholds is None:
        return []
    return [assign_region(item, thresholds) for item in items]
