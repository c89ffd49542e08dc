"""Turn loosely-typed backend annotations into CommentRecord rows.

Every logical field (text, author, modified) is resolved by an ordered table of
small strategies over a plain key-value view of the annotation. Each strategy
returns a string or None; the first non-empty answer wins. Nothing in here
raises for a malformed annotation: a missing author is "", an unparsable date is
"", and an annotation without usable text is skipped.
"""

import json
import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from pdf_comments.core.types import CommentRecord, RawAnnotation

logger = logging.getLogger(__name__)

TEXT_COMMENT_SUBTYPE = "Text"

SUBTYPE_KEYS = ("subtype", "Subtype", "annotationType")
PRIMARY_CONTENTS_KEYS = ("contents", "Contents")
SECONDARY_CONTENTS_KEYS = ("contentsObj", "RC")
MODIFIED_KEYS = ("modificationDate", "modDate", "modified", "M")

ISO_FORMAT = "%Y-%m-%d %H:%M:%SZ"
_PDF_DATE_RE = re.compile(r"D:(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})")

Strategy = Callable[[RawAnnotation], Optional[str]]


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        if raw.startswith((b"\xfe\xff", b"\xff\xfe")):
            return raw.decode("utf-16", errors="replace")
        return raw.decode("utf-8", errors="replace")
    return None


def _non_empty(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _first(strategies: Sequence[Tuple[str, Strategy]], raw: RawAnnotation) -> Optional[str]:
    for name, strategy in strategies:
        value = strategy(raw)
        if _non_empty(value):
            return value
    return None


# --- Text ---

def _object_text(obj: Any) -> Optional[str]:
    """String, then nested `str`, then nested `text`, then joined array,
    then a JSON dump of whatever structure is left."""
    text = _as_text(obj)
    if text is not None:
        return text
    if isinstance(obj, Mapping):
        for key in ("str", "text"):
            nested = _as_text(obj.get(key))
            if _non_empty(nested):
                return nested
        return json.dumps(obj, ensure_ascii=False, default=str, separators=(",", ":"))
    if isinstance(obj, (list, tuple)):
        return " ".join(_as_text(item) or str(item) for item in obj)
    return None


def _contents_from(keys: Sequence[str]) -> Strategy:
    def strategy(raw: RawAnnotation) -> Optional[str]:
        for key in keys:
            value = raw.get(key)
            if value is None:
                continue
            text = _object_text(value)
            if _non_empty(text):
                return text
        return None
    return strategy


TEXT_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("contents", _contents_from(PRIMARY_CONTENTS_KEYS)),
    ("secondary_contents", _contents_from(SECONDARY_CONTENTS_KEYS)),
)


def resolve_text(raw: RawAnnotation) -> str:
    return (_first(TEXT_STRATEGIES, raw) or "").strip()


# --- Author ---

def _plain(key: str) -> Strategy:
    return lambda raw: _as_text(raw.get(key))


def _nested(key: str, sub: str) -> Strategy:
    def strategy(raw: RawAnnotation) -> Optional[str]:
        obj = raw.get(key)
        if isinstance(obj, Mapping):
            return _as_text(obj.get(sub))
        return None
    return strategy


def _plain_or_nested(key: str, sub: str) -> Strategy:
    plain, nested = _plain(key), _nested(key, sub)
    return lambda raw: plain(raw) or nested(raw)


AUTHOR_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("titleObj.str", _nested("titleObj", "str")),
    ("title", _plain("title")),
    ("T", _plain_or_nested("T", "str")),
    ("user", _plain("user")),
    ("author", _plain("author")),
    ("userName", _plain("userName")),
)


def resolve_author(raw: RawAnnotation) -> str:
    return (_first(AUTHOR_STRATEGIES, raw) or "").strip()


# --- Modified ---

def _parse_generic_date(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as e:
        raise ValueError(f"Unrecognized date: {value!r}") from e


def parse_pdf_date(value: Any) -> str:
    """Convert a PDF `D:YYYYMMDDHHMMSS` date (or any ISO-8601 / RFC 2822
    timestamp) to "YYYY-MM-DD HH:MM:SSZ". Raises ValueError when it cannot."""
    text = _as_text(value)
    if text is None:
        text = str(value)
    m = _PDF_DATE_RE.search(text)
    if m:
        dt = datetime(*(int(g) for g in m.groups()), tzinfo=timezone.utc)
    else:
        dt = _parse_generic_date(text)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def resolve_modified(raw: RawAnnotation) -> str:
    value = None
    for key in MODIFIED_KEYS:
        if raw.get(key):
            value = raw[key]
            break
    if value is None:
        return ""
    try:
        return parse_pdf_date(value)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unparsable modification date {value!r}: {e}")
        return ""


# --- Records ---

def is_text_comment(raw: RawAnnotation) -> bool:
    for key in SUBTYPE_KEYS:
        tag = raw.get(key)
        if tag:
            return _as_text(tag) == TEXT_COMMENT_SUBTYPE
    return False


def normalize_annotation(raw: RawAnnotation, page: int) -> Optional[CommentRecord]:
    if not isinstance(raw, Mapping) or not is_text_comment(raw):
        return None
    text = resolve_text(raw)
    if not text:
        return None
    return CommentRecord(
        page=page,
        author=resolve_author(raw),
        text=text,
        modified=resolve_modified(raw),
    )


def normalize_page(page: int, annotations: Iterable[RawAnnotation]) -> List[CommentRecord]:
    out: List[CommentRecord] = []
    for raw in annotations or ():
        try:
            record = normalize_annotation(raw, page)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable annotation on page {page}: {e}")
            continue
        if record is not None:
            out.append(record)
    return out


def normalize_pages(pages: Iterable[Tuple[int, Iterable[RawAnnotation]]]) -> List[CommentRecord]:
    """Records ordered by ascending page, backend order within a page."""
    records: List[CommentRecord] = []
    for page, annotations in pages:
        records.extend(normalize_page(page, annotations))
    records.sort(key=lambda r: r.page)
    return records
