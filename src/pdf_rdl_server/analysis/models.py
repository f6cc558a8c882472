"""Data models for the layout analysis pipeline."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Classification(str, Enum):
    STATIC_LABEL = "static-label"
    DYNAMIC_DATA = "dynamic-data"
    TABLE_HEADER = "table-header"
    STANDALONE_TEXT = "standalone-text"


class Region(str, Enum):
    HEADER = "header"
    BODY = "body"
    FOOTER = "footer"


class FieldType(str, Enum):
    DATETIME = "System.DateTime"
    DECIMAL = "System.Decimal"
    INT32 = "System.Int32"
    STRING = "System.String"


class BoundingBox(BaseModel):
    """Axis-aligned box in page space (top-left origin)."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float
    width: float = Field(ge=0.0)
    height: float = Field(ge=0.0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, other: "BoundingBox", tolerance: float = 1e-6) -> bool:
        return (
            other.x >= self.x - tolerance
            and other.y >= self.y - tolerance
            and other.right <= self.right + tolerance
            and other.bottom <= self.bottom + tolerance
        )

    @classmethod
    def union(cls, boxes: list["BoundingBox"]) -> "BoundingBox":
        """Smallest box covering every box; a zero box for no input."""
        if not boxes:
            return cls(x=0.0, y=0.0, width=0.0, height=0.0)
        min_x = min(b.x for b in boxes)
        min_y = min(b.y for b in boxes)
        max_x = max(b.right for b in boxes)
        max_y = max(b.bottom for b in boxes)
        return cls(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


class PositionedTextItem(BaseModel):
    """A text fragment with its position and font on page 1."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    font_size: float = 12.0
    font_family: str = "Arial"
    font_weight: str | None = None  # "bold", "normal", "light", "medium"
    is_italic: bool = False
    color: str | None = None  # "#rrggbb"

    @field_validator("text")
    @classmethod
    def _strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("text must not be empty")
        return stripped

    @field_validator("width", "height", "font_size")
    @classmethod
    def _clamp_size(cls, v: float) -> float:
        # Degenerate geometry is clamped instead of rejected
        return max(0.0, v)

    @property
    def is_bold(self) -> bool:
        return (self.font_weight or "").lower() == "bold"

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(x=self.x, y=self.y, width=self.width, height=self.height)

    def distance_to(self, other: "PositionedTextItem") -> float:
        """Euclidean distance between box centers."""
        (ax, ay), (bx, by) = self.center, other.center
        return math.hypot(ax - bx, ay - by)


class ClassifiedComponent(PositionedTextItem):
    """A text item with its semantic class, confidence and page region.

    Pairing with another component is recorded by id on DocumentAnalysis,
    not on the component itself.
    """

    id: int
    classification: Classification
    confidence: float = Field(ge=0.0, le=1.0)
    region: Region
    reasoning: str = ""
    field_mapping: str | None = None


class ClassificationResult(BaseModel):
    """Outcome of classifying a single text item."""

    model_config = ConfigDict(frozen=True)

    label: Classification
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


class LabelDataPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: ClassifiedComponent
    data: ClassifiedComponent
    proximity: float = Field(ge=0.0, le=1.0)


class TableStructure(BaseModel):
    """A header row and the data rows aligned beneath it."""

    model_config = ConfigDict(frozen=True)

    headers: list[ClassifiedComponent]
    rows: list[list[ClassifiedComponent]]
    bounds: BoundingBox
    column_count: int
    row_count: int

    @property
    def component_ids(self) -> set[int]:
        ids = {h.id for h in self.headers}
        for row in self.rows:
            ids.update(c.id for c in row)
        return ids

    def column_index(self, component: PositionedTextItem) -> int:
        """Index of the header column whose x is closest to the component."""
        return min(
            range(len(self.headers)),
            key=lambda i: abs(self.headers[i].x - component.x),
        )


class FieldDefinition(BaseModel):
    """A report dataset field derived from a label or column header."""

    model_config = ConfigDict(frozen=True)

    name: str
    data_field: str
    type_name: FieldType
    description: str = ""


class DocumentAnalysis(BaseModel):
    """Complete analysis of page 1 of a document."""

    model_config = ConfigDict(frozen=True)

    page_width: float
    page_height: float
    header: list[ClassifiedComponent] = Field(default_factory=list)
    body: list[ClassifiedComponent] = Field(default_factory=list)
    footer: list[ClassifiedComponent] = Field(default_factory=list)
    tables: list[TableStructure] = Field(default_factory=list)
    label_data_pairs: list[LabelDataPair] = Field(default_factory=list)
    pairings: dict[int, int] = Field(default_factory=dict)
    field_mappings: dict[str, str] = Field(default_factory=dict)
    fields: list[FieldDefinition] = Field(default_factory=list)
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    degraded: bool = False

    @property
    def components(self) -> list[ClassifiedComponent]:
        """All components in extraction order."""
        return sorted(self.header + self.body + self.footer, key=lambda c: c.id)

    @property
    def table_component_ids(self) -> set[int]:
        ids: set[int] = set()
        for table in self.tables:
            ids |= table.component_ids
        return ids

    def component(self, component_id: int) -> ClassifiedComponent | None:
        for c in self.header + self.body + self.footer:
            if c.id == component_id:
                return c
        return None

    def paired_with(self, component: ClassifiedComponent) -> ClassifiedComponent | None:
        partner_id = self.pairings.get(component.id)
        if partner_id is None:
            return None
        return self.component(partner_id)
