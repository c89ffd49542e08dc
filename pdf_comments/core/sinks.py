import logging
import sys
from pathlib import Path, PurePath
from typing import Callable, Dict, NamedTuple, Optional, Union

import pyperclip

logger = logging.getLogger(__name__)

# format -> (file suffix, MIME type)
FILE_FORMATS: Dict[str, tuple] = {
    "csv": ("_comments.csv", "text/csv;charset=utf-8"),
    "txt": ("_comments.txt", "text/plain;charset=utf-8"),
}


class SavedExport(NamedTuple):
    path: Path
    mime_type: str


def export_file_name(source_name: str, fmt: str) -> str:
    if fmt not in FILE_FORMATS:
        raise ValueError(f"No file export for format {fmt!r} (expected one of {', '.join(FILE_FORMATS)})")
    base = PurePath(source_name).stem if source_name else ""
    return f"{base or 'document'}{FILE_FORMATS[fmt][0]}"


def save_export(text: str, source_name: str, fmt: str, output_dir: Union[str, Path]) -> SavedExport:
    """Write `text` to `<output_dir>/<base>_comments.<ext>` as UTF-8, byte for byte."""
    path = Path(output_dir) / export_file_name(source_name, fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    logger.info(f"Saved {fmt} export to {path}")
    return SavedExport(path=path, mime_type=FILE_FORMATS[fmt][1])


def _show_on_stderr(text: str) -> None:
    # stdout carries the MCP transport
    sys.stderr.write("Clipboard unavailable; copy the text below manually:\n")
    sys.stderr.write(text + "\n")
    sys.stderr.flush()


def copy_to_clipboard(text: str, fallback: Optional[Callable[[str], None]] = None) -> bool:
    """Put `text` on the system clipboard. On failure hand the same text to
    `fallback` for manual copying and return False. No retries."""
    try:
        pyperclip.copy(text)
        return True
    except pyperclip.PyperclipException as e:
        logger.warning(f"Clipboard write failed: {e}")
        (fallback or _show_on_stderr)(text)
        return False
