from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple

# Raw per-page annotation as yielded by a backend: untyped, any field may be missing
RawAnnotation = Mapping[str, Any]


class CommentRecord(NamedTuple):
    page: int        # 1-based
    author: str
    text: str        # trimmed, never empty
    modified: str    # "YYYY-MM-DD HH:MM:SSZ" or ""


class Column(str, Enum):
    PAGE = "Page"
    AUTHOR = "Author"
    MODIFIED = "Modified"
    COMMENT = "Comment"


# Canonical column order for every export
COLUMN_ORDER = (Column.PAGE, Column.AUTHOR, Column.MODIFIED, Column.COMMENT)

# Record attribute backing each column
COLUMN_FIELDS: Dict[Column, str] = {
    Column.PAGE: "page",
    Column.AUTHOR: "author",
    Column.MODIFIED: "modified",
    Column.COMMENT: "text",
}

DEFAULT_COLUMN_VISIBILITY: Dict[Column, bool] = {
    Column.PAGE: True,
    Column.AUTHOR: False,
    Column.MODIFIED: False,
    Column.COMMENT: True,
}
