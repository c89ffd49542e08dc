import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from pdf_comments.core import paths as _paths
from pdf_comments.core.extraction import DocumentError, extract_comments
from pdf_comments.core.formatters import render
from pdf_comments.core.paths import find_file, ALLOWED_EXTENSIONS
from pdf_comments.core.sinks import FILE_FORMATS, copy_to_clipboard, save_export
from pdf_comments.core.store import CommentStore
from pdf_comments.core.types import Column, CommentRecord

logger = logging.getLogger(__name__)

mcp = FastMCP("PDF Comments")

# One document session per server process
STORE = CommentStore()

# copy_comments flavour -> formatter key
CLIPBOARD_FORMATS = {"text": "txt", "table": "tsv"}


def _rows(records: List[CommentRecord]) -> List[Dict[str, Any]]:
    return [
        {"index": i, "page": r.page, "author": r.author, "modified": r.modified, "comment": r.text}
        for i, r in enumerate(records)
    ]


def _visibility_json(store: CommentStore) -> Dict[str, bool]:
    return {c.value: v for c, v in store.column_visibility.items()}


def _parse_ids(ids: str) -> List[int]:
    out: List[int] = []
    for part in str(ids).replace(";", ",").split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part[1:]:
            s, e = (int(x) for x in part.split("-", 1))
            if e < s:
                raise ValueError(f"Invalid id range: {part}")
            out.extend(range(s, e + 1))
        else:
            out.append(int(part))
    return out


# ---------- Extraction ----------
@mcp.tool()
async def load_comments(file_path: str, page_range: Optional[str] = None) -> str:
    """Extract the review comments (sticky-note annotations) of a PDF and make
    them the current document.

    Parameters
    ----------
    file_path: str
        Filename (relative) or absolute path to the PDF. The file must reside within the configured accessible directories.
    page_range: Optional[str]
        `first`, `last`, `N`, `S-E`, a comma list such as `1,3-5`, or `None` for all pages.

    Loading replaces any previous comments and clears the selection; column
    settings are kept.
    """
    path = find_file(file_path)
    if not path:
        return (
            "Error: Could not find file '{file}'. Provide an absolute path or place the file within the configured accessible directories."
        ).format(file=file_path)

    try:
        data = path.read_bytes()
        result = await extract_comments(STORE, data, path.name, backend=_paths.BACKEND, page_range=page_range)
    except DocumentError as e:
        return f"Error: {e}"
    except (OSError, ValueError) as e:
        logger.error(f"Loading {path} failed: {e}")
        return f"Error: {e}"

    if not result.committed:
        return f"Error: Extraction of '{path.name}' was superseded by a newer load."

    payload = {
        "file_name": path.name,
        "path": str(path),
        "page_range": page_range or "all",
        "pages_scanned": result.pages_scanned,
        "total_comments": len(result.records),
        "comments": _rows(result.records),
    }
    if not result.records:
        payload["message"] = "No comments found. The PDF may have flattened comments."
    return json.dumps(payload, indent=2, ensure_ascii=False)


@mcp.tool()
async def list_comments() -> str:
    """Return the current comments with their indices, the selection and visible columns."""
    records = STORE.records
    result = {
        "file_name": STORE.source_name,
        "total_comments": len(records),
        "selection": STORE.selection or "all",
        "column_visibility": _visibility_json(STORE),
        "comments": _rows(records),
    }
    return json.dumps(result, indent=2, ensure_ascii=False)


# ---------- Selection and columns ----------
@mcp.tool()
async def select_comments(ids: str = "", mode: str = "include") -> str:
    """Choose which comments are exported or copied.

    Parameters
    ----------
    ids: str
        Comma-separated zero-based indices from `list_comments`, ranges allowed (e.g. "0,2,4-6").
        Empty clears the selection, which means every comment.
    mode: str
        "include" selects exactly `ids`; "exclude" selects every comment except `ids`.
    """
    try:
        wanted = _parse_ids(ids)
        selected = STORE.set_selection(mode, wanted)
    except ValueError as e:
        return f"Error: {e}"
    result = {
        "mode": mode,
        "selection": selected or "all",
        "export_count": len(STORE.effective_export_set()),
    }
    return json.dumps(result, indent=2, ensure_ascii=False)


@mcp.tool()
async def set_visible_columns(page: bool = True, author: bool = False, modified: bool = False) -> str:
    """Pick the columns included in exports. The Comment column is always included."""
    STORE.set_column_visibility({Column.PAGE: page, Column.AUTHOR: author, Column.MODIFIED: modified})
    return json.dumps({"column_visibility": _visibility_json(STORE)}, indent=2, ensure_ascii=False)


# ---------- Sinks ----------
@mcp.tool()
async def export_comments(fmt: str = "csv") -> str:
    """Write the selected comments to `<name>_comments.csv` or `<name>_comments.txt`
    in the configured output directory.

    Parameters
    ----------
    fmt: str
        "csv" or "txt".
    """
    fmt = str(fmt).strip().lower()
    if fmt not in FILE_FORMATS:
        return f"Error: Unknown export format '{fmt}' (expected one of {', '.join(FILE_FORMATS)})."
    records = STORE.effective_export_set()
    if not records:
        return "Error: No comments loaded. Use load_comments first."

    text = render(fmt, records, STORE.visible_columns())
    try:
        saved = save_export(text, STORE.source_name, fmt, _paths.OUTPUT_DIRECTORY)
    except OSError as e:
        logger.error(f"Export to {_paths.OUTPUT_DIRECTORY} failed: {e}")
        return f"Error: {e}"
    result = {
        "path": str(saved.path),
        "mime_type": saved.mime_type,
        "exported_comments": len(records),
        "columns": [c.value for c in STORE.visible_columns()],
    }
    return json.dumps(result, indent=2, ensure_ascii=False)


@mcp.tool()
async def copy_comments(fmt: str = "text") -> str:
    """Copy the selected comments to the system clipboard.

    Parameters
    ----------
    fmt: str
        "text" for readable lines (`P3, Author - comment`), "table" for
        tab-separated cells that paste into a spreadsheet.

    If the clipboard is unavailable the text is returned for manual copying.
    """
    key = CLIPBOARD_FORMATS.get(str(fmt).strip().lower())
    if key is None:
        return f"Error: Unknown clipboard format '{fmt}' (expected one of {', '.join(CLIPBOARD_FORMATS)})."
    records = STORE.effective_export_set()
    if not records:
        return "Error: No comments loaded. Use load_comments first."

    text = render(key, records, STORE.visible_columns())
    shown: List[str] = []
    if copy_to_clipboard(text, fallback=shown.append):
        return f"Copied {len(records)} comments to the clipboard."
    return "Clipboard unavailable; copy the text below manually.\n\n" + shown[0]


# ---------- Session ----------
@mcp.tool()
async def unload_document() -> str:
    """Forget the current comments but keep the column settings."""
    STORE.unload()
    return "Document unloaded; column settings kept."


@mcp.tool()
async def reset_session() -> str:
    """Forget the current comments and restore the default columns (Page, Comment)."""
    STORE.reset()
    return "Session reset."


@mcp.tool()
async def show_accessible_directories() -> str:
    """Return the current directory/configuration constraints as JSON."""
    info = {
        "accessible_directories": _paths.SEARCH_DIRECTORIES,
        "directory_count": len(_paths.SEARCH_DIRECTORIES),
        "output_directory": _paths.OUTPUT_DIRECTORY,
        "backend": _paths.BACKEND,
        "max_file_size_mb": _paths.MAX_FILE_SIZE // (1024 * 1024),
        "allowed_extensions": ALLOWED_EXTENSIONS,
    }
    return json.dumps(info, indent=2, ensure_ascii=False)
