#!/usr/bin/env python3
"""Verification script for PDF layout analysis quality.

Usage:
    python scripts/verify_analysis.py <pdf_path> [--classifier BACKEND] [--rdl OUT]

Prints the classified components, pairs and tables of page 1 for manual
verification, and optionally writes the generated RDL.
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_rdl_server.analysis import analyze_document, load_zero_shot_classifier, render_rdl


def main():
    parser = argparse.ArgumentParser(description="Verify PDF layout analysis")
    parser.add_argument("pdf_path", help="Path to PDF file")
    parser.add_argument(
        "--classifier",
        choices=["none", "cross-encoder", "anthropic"],
        default="none",
        help="Zero-shot classifier backend (default: none)",
    )
    parser.add_argument("--rdl", help="Write the generated RDL to this path")
    args = parser.parse_args()

    pdf_path = Path(args.pdf_path)
    if not pdf_path.exists():
        print(f"Error: File not found: {pdf_path}")
        sys.exit(1)

    print(f"Analyzing: {pdf_path}")
    print("=" * 80)

    analysis = analyze_document(pdf_path, zero_shot=load_zero_shot_classifier(args.classifier))

    print(f"Page: {analysis.page_width:.0f} x {analysis.page_height:.0f} pt")
    print(f"Overall confidence: {analysis.overall_confidence:.2f}")
    if analysis.degraded:
        print("Warning: external classifier failed for some items")
    print("=" * 80)

    for region, components in (
        ("Header", analysis.header),
        ("Body", analysis.body),
        ("Footer", analysis.footer),
    ):
        print(f"\n--- {region} ({len(components)}) ---")
        for c in components:
            marker = {
                "static-label": "[L]",
                "dynamic-data": "[D]",
                "table-header": "[T]",
                "standalone-text": "[S]",
            }.get(c.classification.value, "[?]")
            text = c.text[:80] + "..." if len(c.text) > 80 else c.text
            mapping = f" -> {c.field_mapping}" if c.field_mapping else ""
            print(f"  {marker} ({c.confidence:.2f}) {text}{mapping}")

    if analysis.label_data_pairs:
        print("\nPairs:")
        for pair in analysis.label_data_pairs:
            print(f"  {pair.label.text!r} -> {pair.data.text!r} ({pair.proximity:.2f})")

    if analysis.tables:
        print("\nTables:")
        for i, table in enumerate(analysis.tables, 1):
            print(f"  Table {i}: {table.column_count} cols, {table.row_count} rows")
            print(f"    Headers: {[h.text for h in table.headers]}")

    if args.rdl:
        Path(args.rdl).write_text(render_rdl(analysis), encoding="utf-8")
        print(f"\nRDL written to {args.rdl}")

    print("\n" + "=" * 80)
    print("Analysis complete.")


if __name__ == "__main__":
    main()
