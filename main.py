#!/usr/bin/env python3
"""
PDF Comments MCP Server
Extracts review comments (sticky-note annotations) from PDFs and exports a
selected subset as CSV, plain text or a spreadsheet-ready table on the clipboard.

Run without --export to serve the tools over stdio; with --export FILE the
comments of FILE are written once and the process exits.
"""

import asyncio
import logging
import sys

from pdf_comments.core import paths as _paths
from pdf_comments.core.extraction import DocumentError, extract_comments
from pdf_comments.core.formatters import render
from pdf_comments.core.sinks import copy_to_clipboard, save_export
from pdf_comments.core.store import CommentStore, columns_from_names

# Logs go to stderr; stdout carries the MCP transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("PDFComments")


def export_once(args) -> int:
    """Extract comments from `args.export` and write them in `args.format`. Returns an exit code."""
    path = _paths.find_file(args.export)
    if not path:
        logger.error(f"Could not find file '{args.export}' in the accessible directories.")
        return 1

    try:
        columns = columns_from_names(args.columns.split(","))
    except ValueError as e:
        logger.error(str(e))
        return 2

    store = CommentStore()
    try:
        asyncio.run(extract_comments(store, path.read_bytes(), path.name, backend=_paths.BACKEND, page_range=args.pages))
    except (DocumentError, OSError, ValueError) as e:
        logger.error(str(e))
        return 1

    records = store.effective_export_set()
    if not records:
        logger.info(f"No comments found in {path.name}.")
        return 0

    text = render(args.format, records, columns)
    if args.format == "tsv":
        if copy_to_clipboard(text):
            logger.info(f"Copied {len(records)} comments to the clipboard.")
        return 0

    try:
        saved = save_export(text, path.name, args.format, _paths.OUTPUT_DIRECTORY)
    except OSError as e:
        logger.error(f"Export to {_paths.OUTPUT_DIRECTORY} failed: {e}")
        return 1
    logger.info(f"Wrote {len(records)} comments to {saved.path}")
    return 0


def run() -> None:
    args = _paths.parse_arguments()
    logging.getLogger().setLevel(getattr(logging, args.log_level))
    _paths.setup_search_directories(args)

    if args.export:
        sys.exit(export_once(args))

    from pdf_comments.tools.mcp_tools import mcp

    logger.info("Starting PDF Comments MCP Server...")
    logger.info(f"Accessible directories: {_paths.SEARCH_DIRECTORIES}")
    logger.info(f"Output directory: {_paths.OUTPUT_DIRECTORY}")
    logger.info(f"Backend: {_paths.BACKEND}; maximum file size: {_paths.MAX_FILE_SIZE // (1024 * 1024)} MB")
    mcp.run()


if __name__ == "__main__":
    run()
