import io
import logging
from typing import Any, Dict, List

import PyPDF2
from PyPDF2.generic import IndirectObject, NameObject

logger = logging.getLogger(__name__)

# Back-references that would drag the page tree into every annotation
_SKIP_KEYS = {"/P", "/Parent", "/Popup"}
_MAX_DEPTH = 3


def _to_plain(obj: Any, depth: int = 0) -> Any:
    """Convert a PyPDF2 object into plain Python values, names without the slash."""
    if isinstance(obj, IndirectObject):
        if depth >= _MAX_DEPTH:
            return None
        obj = obj.get_object()
    if isinstance(obj, NameObject):
        return str(obj).lstrip("/")
    if isinstance(obj, str):
        return str(obj)
    if isinstance(obj, bytes):
        return bytes(obj)
    if isinstance(obj, dict):
        if depth >= _MAX_DEPTH:
            return None
        return {
            str(k).lstrip("/"): _to_plain(v, depth + 1)
            for k, v in obj.items()
            if k not in _SKIP_KEYS
        }
    if isinstance(obj, list):
        if depth >= _MAX_DEPTH:
            return None
        return [_to_plain(v, depth + 1) for v in obj]
    return obj


class PyPDF2Document:
    def __init__(self, data: bytes):
        self._reader = PyPDF2.PdfReader(io.BytesIO(data))
        self.page_count = len(self._reader.pages)

    def get_annotations(self, page_number: int) -> List[Dict[str, Any]]:
        """Raw annotation dicts of a 1-based page, in /Annots order."""
        page = self._reader.pages[page_number - 1]
        if "/Annots" not in page:
            return []
        annots = page["/Annots"]
        if isinstance(annots, IndirectObject):
            annots = annots.get_object()
        items: List[Dict[str, Any]] = []
        for annot in annots or []:
            obj = annot.get_object() if isinstance(annot, IndirectObject) else annot
            if not isinstance(obj, dict):
                logger.debug(f"Skipping non-dictionary annotation on page {page_number}")
                continue
            items.append(_to_plain(obj))
        return items

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def open_document(data: bytes) -> PyPDF2Document:
    return PyPDF2Document(data)
