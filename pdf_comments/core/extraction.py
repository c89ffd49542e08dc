import asyncio
import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from pdf_comments.backends import pdfplumber_backend, pypdf2_backend
from pdf_comments.core.normalizer import normalize_page
from pdf_comments.core.page_range import parse_page_range
from pdf_comments.core.store import CommentStore
from pdf_comments.core.types import CommentRecord

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "pypdf2"

BACKENDS: Dict[str, Callable] = {
    "pypdf2": pypdf2_backend.open_document,
    "pdfplumber": pdfplumber_backend.open_document,
}


class DocumentError(Exception):
    """The backend could not open or read the document."""


class ExtractionResult(NamedTuple):
    records: List[CommentRecord]
    committed: bool      # False when a newer extraction superseded this one
    pages_scanned: int


async def extract_comments(
    store: CommentStore,
    data: bytes,
    source_name: str,
    backend: str = DEFAULT_BACKEND,
    page_range: Optional[str] = None,
) -> ExtractionResult:
    """Walk the document page by page and replace the store's records.

    Pages are visited strictly in ascending order, one backend call at a time.
    On any failure the store's records are cleared (unless a newer
    extraction already took over); backend failures surface as DocumentError.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend: {backend!r} (expected one of {', '.join(BACKENDS)})")

    token = store.begin_extraction(source_name)
    try:
        document = await asyncio.to_thread(BACKENDS[backend], data)
    except Exception as e:
        logger.error(f"{backend} could not open {source_name}: {e}")
        store.fail_extraction(token)
        raise DocumentError(f"Failed to parse PDF '{source_name}': {e}") from e

    try:
        pages = parse_page_range(document.page_count, page_range)

        records: List[CommentRecord] = []
        for page_number in pages:
            try:
                annotations = await asyncio.to_thread(document.get_annotations, page_number)
            except Exception as e:
                logger.error(f"{backend} failed reading annotations of page {page_number} in {source_name}: {e}")
                raise DocumentError(f"Failed to read page {page_number} of '{source_name}': {e}") from e
            records.extend(normalize_page(page_number, annotations))
    except BaseException:
        store.fail_extraction(token)
        raise
    finally:
        document.close()

    committed = store.commit_extraction(token, records)
    logger.info(f"Extracted {len(records)} comments from {len(pages)} pages of {source_name}")
    return ExtractionResult(records=records, committed=committed, pages_scanned=len(pages))
