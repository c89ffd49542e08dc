import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Limits and filters
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_EXTENSIONS = [".pdf"]

# Default search directories (used when no args are provided)
DEFAULT_SEARCH_DIRECTORIES = [
    os.path.expanduser("~/Downloads"),
    os.path.expanduser("~/Desktop"),
    os.path.expanduser("~/Documents"),
    os.getcwd(),
]

# Actual configured directories (initialized at runtime)
SEARCH_DIRECTORIES: List[str] = []

# Where CSV/TXT exports are written
OUTPUT_DIRECTORY: str = os.getcwd()

# Parsing backend name, see pdf_comments.core.extraction.BACKENDS
BACKEND: str = "pypdf2"


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse CLI arguments: accessible directories, limits, backend and one-shot export."""
    parser = argparse.ArgumentParser(
        description="PDF Comments MCP Server: extract review comments and export them as CSV, TSV or text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "\nExamples:\n"
            "  python main.py ~/Downloads ~/Documents\n"
            "  python main.py --allow-dir ~/Work --output-dir ~/Work/exports\n"
            "  python main.py ~/Downloads --export report.pdf --format txt --columns page,author\n"
        ),
    )

    parser.add_argument(
        "directories",
        nargs="*",
        help="Accessible directories for PDFs (space-separated)",
    )
    parser.add_argument(
        "--allow-dir",
        action="append",
        dest="allowed_dirs",
        help="Add an allowed directory (can be used multiple times)",
    )
    parser.add_argument(
        "--max-file-size",
        type=int,
        default=100 * 1024 * 1024,
        help="Maximum file size in bytes (default: 100MB)",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for exported files (default: current directory)",
    )
    parser.add_argument(
        "--backend",
        choices=["pypdf2", "pdfplumber"],
        default="pypdf2",
        help="PDF parsing backend (default: pypdf2)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    one_shot = parser.add_argument_group("one-shot export (no server)")
    one_shot.add_argument(
        "--export",
        metavar="FILE",
        default=None,
        help="Extract comments from FILE, write the export and exit",
    )
    one_shot.add_argument(
        "--format",
        choices=["csv", "txt", "tsv"],
        default="csv",
        help="Export format; tsv goes to the clipboard (default: csv)",
    )
    one_shot.add_argument(
        "--pages",
        default=None,
        help="Pages to scan: first, last, N, S-E or a comma list (default: all)",
    )
    one_shot.add_argument(
        "--columns",
        default="page",
        help="Extra visible columns besides Comment: page,author,modified (default: page)",
    )

    return parser.parse_args(argv)


def _is_within(base: str, target: str) -> bool:
    base = os.path.join(os.path.realpath(base), "")  # ensure trailing separator
    target = os.path.realpath(target)
    return target.startswith(base) or target == base[:-1]


def _real(d: str) -> str:
    return os.path.realpath(os.path.abspath(os.path.expanduser(d)))


def setup_search_directories(args) -> None:
    """Apply parsed args to the module settings.
    Falls back to DEFAULT_SEARCH_DIRECTORIES when no directory is given.
    """
    global MAX_FILE_SIZE, OUTPUT_DIRECTORY, BACKEND

    MAX_FILE_SIZE = int(args.max_file_size)
    BACKEND = getattr(args, "backend", None) or BACKEND
    if getattr(args, "output_dir", None):
        OUTPUT_DIRECTORY = _real(args.output_dir)

    provided: List[str] = []
    if getattr(args, "directories", None):
        provided.extend(args.directories)
    if getattr(args, "allowed_dirs", None):
        provided.extend(args.allowed_dirs)

    validated: List[str] = []
    for d in provided:
        real_path = _real(d)
        if not os.path.isdir(real_path):
            logger.warning(f"Not a directory, skipped: {d} -> {real_path}")
            continue
        if not os.access(real_path, os.R_OK):
            logger.warning(f"Unreadable directory, skipped: {d} -> {real_path}")
            continue
        validated.append(real_path)

    if not validated:
        if provided:
            logger.warning("No valid directories from arguments; falling back to defaults.")
        else:
            logger.info("Using default search directories.")
        validated = [_real(d) for d in DEFAULT_SEARCH_DIRECTORIES]

    # mutate in place so other modules see the update
    SEARCH_DIRECTORIES.clear()
    SEARCH_DIRECTORIES.extend(validated)


def validate_and_resolve_path(file_path: str) -> Optional[Path]:
    """Return an absolute Path if `file_path` is an allowed, readable PDF inside the sandbox."""
    try:
        real_path = _real(file_path)

        is_safe = any(_is_within(allowed, real_path) for allowed in SEARCH_DIRECTORIES)
        if not is_safe or ".." in Path(file_path).parts:
            logger.warning(f"Security risk detected (outside allowed directories): {file_path}")
            return None

        resolved = Path(real_path)
        if not resolved.is_file():
            return None
        if resolved.suffix.lower() not in ALLOWED_EXTENSIONS:
            logger.warning(f"Disallowed file extension: {file_path}")
            return None
        if resolved.stat().st_size > MAX_FILE_SIZE:
            logger.warning(f"File too large: {file_path}")
            return None
        return resolved
    except OSError as e:
        logger.error(f"Error validating path {file_path}: {e}")
        return None


def find_file(file_name: str) -> Optional[Path]:
    """Resolve an absolute path or look the name up in the configured directories."""
    if os.path.isabs(file_name) or file_name.startswith("~"):
        path = validate_and_resolve_path(file_name)
        if path:
            return path

    for directory in SEARCH_DIRECTORIES:
        dir_path = Path(directory)
        path = validate_and_resolve_path(str(dir_path / file_name))
        if path:
            return path

    logger.warning(f"File not found: {file_name}")
    return None
