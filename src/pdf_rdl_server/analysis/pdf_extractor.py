"""Positioned text extraction from page 1 of a PDF using PyMuPDF."""

from pathlib import Path

import fitz  # PyMuPDF
from pydantic import BaseModel

from ..logger import logger
from .errors import ExtractionError
from .models import PositionedTextItem

# PyMuPDF span flag bits
FLAG_ITALIC = 2**1
FLAG_BOLD = 2**4

DEFAULT_FONT_SIZE = 12.0


class ExtractedPage(BaseModel):
    """Text items of the first page plus its dimensions."""

    file_path: str
    page_count: int
    page_width: float
    page_height: float
    items: list[PositionedTextItem]


def normalize_font_family(font_name: str) -> str:
    """Map a PDF font name (e.g. ``ABCDEF+Arial-BoldMT``) to a family name."""
    if "+" in font_name:
        font_name = font_name.split("+", 1)[1]
    clean = font_name.replace("-", "").lower()
    if "arial" in clean:
        return "Arial"
    if "helv" in clean:
        return "Helvetica"
    if "times" in clean:
        return "Times New Roman"
    if "cour" in clean:
        return "Courier New"
    return font_name.split("-")[0] or "Arial"


def font_weight_from_span(font_name: str, flags: int) -> str:
    name = font_name.lower()
    if flags & FLAG_BOLD or "bold" in name or "black" in name:
        return "bold"
    if "light" in name:
        return "light"
    if "medium" in name:
        return "medium"
    return "normal"


def is_italic_span(font_name: str, flags: int) -> bool:
    name = font_name.lower()
    return bool(flags & FLAG_ITALIC) or "italic" in name or "oblique" in name


def _color_hex(color: int | None) -> str | None:
    if color is None:
        return None
    return f"#{color:06x}"


def _span_to_item(span: dict) -> PositionedTextItem | None:
    """Convert a PyMuPDF span into a text item, or None for blank spans.

    Args:
        span: A span dictionary from PyMuPDF's get_text("dict").

    Returns:
        PositionedTextItem in top-left page coordinates.
    """
    # Remove NUL characters that can occur with corrupted font encodings
    text = span.get("text", "").replace("\x00", "").strip()
    if not text:
        return None

    x0, y0, x1, y1 = span.get("bbox", (0.0, 0.0, 0.0, 0.0))
    font_name = span.get("font", "") or ""
    flags = span.get("flags", 0)
    font_size = span.get("size") or DEFAULT_FONT_SIZE

    return PositionedTextItem(
        text=text,
        x=x0,
        y=y0,
        width=x1 - x0,
        height=(y1 - y0) or font_size,
        font_size=font_size,
        font_family=normalize_font_family(font_name),
        font_weight=font_weight_from_span(font_name, flags),
        is_italic=is_italic_span(font_name, flags),
        color=_color_hex(span.get("color")),
    )


def extract_page_items(page_dict: dict) -> list[PositionedTextItem]:
    """Flatten a page's text dictionary into positioned items, one per span."""
    items = []
    for block in page_dict.get("blocks", []):
        if block.get("type") != 0:  # Skip image blocks
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                item = _span_to_item(span)
                if item is not None:
                    items.append(item)
    return items


def extract_text_items(file_path: str | Path) -> ExtractedPage:
    """Extract positioned text items from the first page of a PDF.

    Only page 1 is read; later pages are ignored.

    Args:
        file_path: Path to the PDF file.

    Returns:
        ExtractedPage with the page dimensions and its text items.

    Raises:
        FileNotFoundError: If the file does not exist.
        ExtractionError: If the file is not a readable PDF or has no pages.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"PDF file not found: {file_path}")

    try:
        doc = fitz.open(file_path)
    except RuntimeError as e:
        # fitz.FileDataError and friends derive from RuntimeError
        raise ExtractionError(
            f"could not analyze document: {e}", file_path=str(file_path)
        ) from e

    try:
        if doc.needs_pass:
            raise ExtractionError(
                "could not analyze document: PDF is encrypted",
                file_path=str(file_path),
            )
        if doc.page_count == 0:
            raise ExtractionError(
                "could not analyze document: PDF has no pages",
                file_path=str(file_path),
            )

        page = doc[0]
        items = extract_page_items(page.get_text("dict"))

        logger.info(
            "page text extracted",
            file_path=str(file_path),
            total_pages=doc.page_count,
            items=len(items),
            page_width=page.rect.width,
            page_height=page.rect.height,
        )

        return ExtractedPage(
            file_path=str(file_path),
            page_count=doc.page_count,
            page_width=page.rect.width,
            page_height=page.rect.height,
            items=items,
        )
    finally:
        doc.close()
