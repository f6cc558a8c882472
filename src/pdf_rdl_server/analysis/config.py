"""Tunable thresholds for the layout analysis pipeline.

Every numeric constant used by the region, classification, pairing and table
stages lives here. Values can be overridden with ``PDF_RDL_*`` environment
variables, e.g. ``PDF_RDL_HEADER_RATIO=0.25``.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Points per inch, used when converting page-space units for report output
POINTS_PER_INCH = 72.0


class AnalysisConfig(BaseSettings):
    """Configuration for a document analysis run."""

    model_config = SettingsConfigDict(env_prefix="PDF_RDL_", extra="ignore")

    # Regions
    header_ratio: float = Field(default=0.2, ge=0.0, le=1.0)
    footer_ratio: float = Field(default=0.15, ge=0.0, le=1.0)

    # Component classification
    short_label_max_length: int = Field(default=25, gt=0)
    long_text_min_length: int = Field(default=30, gt=0)
    large_font_ratio: float = Field(default=1.2, gt=0.0)
    left_column_ratio: float = Field(default=1 / 3, ge=0.0, le=1.0)
    uncertain_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    rule_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    external_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    classifier_timeout_seconds: float = Field(default=5.0, gt=0.0)
    classifier_max_workers: int = Field(default=4, ge=1)

    # Label/data pairing
    row_tolerance: float = Field(default=20.0, gt=0.0)
    column_tolerance: float = Field(default=75.0, gt=0.0)
    max_pair_distance: float = Field(default=200.0, gt=0.0)
    min_pair_proximity: float = Field(default=0.3, ge=0.0, le=1.0)

    # Table detection
    table_row_tolerance: float = Field(default=10.0, gt=0.0)
    table_column_tolerance: float = Field(default=20.0, gt=0.0)
    header_bold_ratio: float = Field(default=0.5, ge=0.0, le=1.0)
    header_gap_uniformity: float = Field(default=0.3, ge=0.0)
    row_alignment_ratio: float = Field(default=0.6, ge=0.0, le=1.0)
    row_min_fill_ratio: float = Field(default=0.5, ge=0.0, le=1.0)

    # Service
    classifier_backend: str = "none"
    max_upload_size: int = Field(default=20 * 1024 * 1024, gt=0)

    @model_validator(mode="after")
    def _check_weights(self) -> "AnalysisConfig":
        if abs(self.rule_weight + self.external_weight - 1.0) > 1e-6:
            raise ValueError("rule_weight and external_weight must sum to 1")
        if self.header_ratio + self.footer_ratio > 1.0:
            raise ValueError("header_ratio and footer_ratio must not overlap")
        return self
