import io
import logging
from typing import Any, Dict, List

import pdfplumber
from pdfminer.pdftypes import PDFObjRef
from pdfminer.psparser import PSLiteral
from pdfplumber.utils import decode_text

logger = logging.getLogger(__name__)

_SKIP_KEYS = {"P", "Parent", "Popup"}
_MAX_DEPTH = 3


def _to_plain(obj: Any, depth: int = 0) -> Any:
    """pdfminer values (PSLiteral names, PDF byte strings) to plain Python."""
    if isinstance(obj, PDFObjRef):
        # pdfplumber leaves page references unresolved
        return None
    if isinstance(obj, PSLiteral):
        name = obj.name
        return name.decode("latin-1") if isinstance(name, bytes) else str(name)
    if isinstance(obj, str):
        return obj
    if isinstance(obj, bytes):
        return decode_text(obj)
    if isinstance(obj, dict):
        if depth >= _MAX_DEPTH:
            return None
        return {str(k): _to_plain(v, depth + 1) for k, v in obj.items() if k not in _SKIP_KEYS}
    if isinstance(obj, (list, tuple)):
        if depth >= _MAX_DEPTH:
            return None
        return [_to_plain(v, depth + 1) for v in obj]
    return obj


class PdfplumberDocument:
    def __init__(self, data: bytes):
        self._pdf = pdfplumber.open(io.BytesIO(data))
        self.page_count = len(self._pdf.pages)

    def get_annotations(self, page_number: int) -> List[Dict[str, Any]]:
        page = self._pdf.pages[page_number - 1]
        items: List[Dict[str, Any]] = []
        for annot in page.annots:
            data = annot.get("data")
            if not isinstance(data, dict):
                logger.debug(f"Skipping annotation without raw data on page {page_number}")
                continue
            items.append(_to_plain(data))
        return items

    def close(self) -> None:
        self._pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def open_document(data: bytes) -> PdfplumberDocument:
    return PdfplumberDocument(data)
