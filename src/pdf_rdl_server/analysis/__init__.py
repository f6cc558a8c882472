from .analyzer import DocumentAnalyzer, analyze_document
from .classifier import ClassificationBatch, ComponentClassifier, rule_based_classification
from .config import AnalysisConfig
from .errors import AnalysisError, ExtractionError, PairingError
from .fields import build_field_mappings, field_name, infer_field_type
from .models import (
    BoundingBox,
    Classification,
    ClassificationResult,
    ClassifiedComponent,
    DocumentAnalysis,
    FieldDefinition,
    FieldType,
    LabelDataPair,
    PositionedTextItem,
    Region,
    TableStructure,
)
from .pairing import ProximityPairer, build_pairing_index
from .pdf_extractor import ExtractedPage, extract_text_items
from .projections import HeaderTextbox, TableBodyData, header_textboxes, table_body_data
from .rdl import DataSourceSpec, render_rdl
from .regions import classify_regions
from .tables import TableDetector
from .zero_shot import (
    AnthropicZeroShotClassifier,
    CrossEncoderZeroShotClassifier,
    ZeroShotClassifier,
    ZeroShotOutcome,
    load_zero_shot_classifier,
)

__all__ = [
    # Models
    "BoundingBox",
    "Classification",
    "ClassificationResult",
    "ClassifiedComponent",
    "DocumentAnalysis",
    "FieldDefinition",
    "FieldType",
    "LabelDataPair",
    "PositionedTextItem",
    "Region",
    "TableStructure",
    # Config and errors
    "AnalysisConfig",
    "AnalysisError",
    "ExtractionError",
    "PairingError",
    # Extraction
    "ExtractedPage",
    "extract_text_items",
    # Pipeline stages
    "classify_regions",
    "ClassificationBatch",
    "ComponentClassifier",
    "rule_based_classification",
    "ProximityPairer",
    "build_pairing_index",
    "TableDetector",
    "build_field_mappings",
    "field_name",
    "infer_field_type",
    "DocumentAnalyzer",
    "analyze_document",
    # Zero-shot refinement
    "ZeroShotClassifier",
    "ZeroShotOutcome",
    "CrossEncoderZeroShotClassifier",
    "AnthropicZeroShotClassifier",
    "load_zero_shot_classifier",
    # Report output
    "HeaderTextbox",
    "TableBodyData",
    "header_textboxes",
    "table_body_data",
    "DataSourceSpec",
    "render_rdl",
]
