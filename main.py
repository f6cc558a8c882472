"""Entry point for the PDF RDL server."""

import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="PDF RDL server")
    parser.add_argument(
        "--classifier",
        choices=["none", "cross-encoder", "anthropic"],
        default=None,
        help="Zero-shot classifier backend (default: none). Overrides PDF_RDL_CLASSIFIER_BACKEND env var.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    args = parser.parse_args()

    if args.classifier:
        os.environ["PDF_RDL_CLASSIFIER_BACKEND"] = args.classifier

    from pdf_rdl_server.server import app

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
