"""Table detection from row bands aligned under a header row."""

from dataclasses import dataclass, field

from ..logger import logger
from .classifier import is_table_header_text
from .config import AnalysisConfig
from .models import BoundingBox, ClassifiedComponent, TableStructure


@dataclass
class RowBand:
    """Items sharing a text line, with the running mean of their y."""

    items: list[ClassifiedComponent] = field(default_factory=list)
    y: float = 0.0

    def add(self, item: ClassifiedComponent) -> None:
        self.items.append(item)
        self.y += (item.y - self.y) / len(self.items)

    def sorted_items(self) -> list[ClassifiedComponent]:
        return sorted(self.items, key=lambda i: i.x)


def group_rows(items: list[ClassifiedComponent], tolerance: float) -> list[RowBand]:
    """Group items into horizontal bands, top to bottom.

    An item joins the current band when its y is within ``tolerance`` of the
    band's mean y, so slow drift along a line does not split it.
    """
    bands: list[RowBand] = []
    for item in sorted(items, key=lambda i: (i.y, i.x)):
        if bands and abs(item.y - bands[-1].y) <= tolerance:
            bands[-1].add(item)
        else:
            band = RowBand()
            band.add(item)
            bands.append(band)
    return bands


def has_uniform_gaps(items: list[ClassifiedComponent], uniformity: float) -> bool:
    """True when x-gaps between consecutive items are all near their mean.

    Needs at least three items; two items always have a single "uniform" gap.
    """
    if len(items) < 3:
        return False
    xs = [i.x for i in sorted(items, key=lambda i: i.x)]
    gaps = [b - a for a, b in zip(xs, xs[1:])]
    mean_gap = sum(gaps) / len(gaps)
    if mean_gap <= 0:
        return False
    return all(abs(g - mean_gap) <= mean_gap * uniformity for g in gaps)


class TableDetector:
    """Finds header rows and the aligned data rows beneath them."""

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()

    def is_header_row(self, band: RowBand) -> bool:
        items = band.items
        if len(items) < 2:
            return False
        bold = sum(1 for i in items if i.is_bold)
        if bold / len(items) >= self.config.header_bold_ratio:
            return True
        if any(is_table_header_text(i.text) for i in items):
            return True
        return has_uniform_gaps(items, self.config.header_gap_uniformity)

    def align_row(
        self, band: RowBand, headers: list[ClassifiedComponent]
    ) -> list[ClassifiedComponent] | None:
        """Assign a band's items to header columns.

        Returns:
            The assigned items sorted by x, or None if the band does not line
            up with the header.
        """
        items = band.items
        if len(items) < max(2, len(headers) * self.config.row_min_fill_ratio):
            return None

        tolerance = self.config.table_column_tolerance
        aligned = sum(1 for i in items if any(abs(i.x - h.x) <= tolerance for h in headers))
        if aligned / len(items) < self.config.row_alignment_ratio:
            return None

        # Nearest items claim columns first; extra items in a taken column stay out
        def nearest(item: ClassifiedComponent) -> tuple[float, int]:
            col = min(range(len(headers)), key=lambda c: abs(headers[c].x - item.x))
            return abs(headers[col].x - item.x), col

        taken: set[int] = set()
        assigned = []
        for item in sorted(items, key=lambda i: nearest(i)[0]):
            _, col = nearest(item)
            if col in taken:
                continue
            taken.add(col)
            assigned.append(item)
        return sorted(assigned, key=lambda i: i.x)

    def detect(self, items: list[ClassifiedComponent]) -> list[TableStructure]:
        """Detect every table in a set of components.

        Args:
            items: Components to search, normally every component on the page.

        Returns:
            Tables in top-to-bottom order. A header row with no aligned row
            directly below it produces no table.
        """
        bands = group_rows(items, self.config.table_row_tolerance)
        tables: list[TableStructure] = []

        index = 0
        while index < len(bands):
            band = bands[index]
            if not self.is_header_row(band):
                index += 1
                continue

            headers = band.sorted_items()
            rows: list[list[ClassifiedComponent]] = []
            next_index = index + 1
            while next_index < len(bands):
                row = self.align_row(bands[next_index], headers)
                if row is None:
                    break
                rows.append(row)
                next_index += 1

            if not rows:
                index += 1
                continue

            boxes = [h.bbox for h in headers] + [c.bbox for row in rows for c in row]
            tables.append(
                TableStructure(
                    headers=headers,
                    rows=rows,
                    bounds=BoundingBox.union(boxes),
                    column_count=len(headers),
                    row_count=len(rows),
                )
            )
            index = next_index

        logger.debug("tables detected", bands=len(bands), tables=len(tables))
        return tables
