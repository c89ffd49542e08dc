from typing import Callable, Dict, List, Sequence

from pdf_comments.core.types import COLUMN_FIELDS, Column, CommentRecord


def _value(record: CommentRecord, column: Column) -> str:
    value = getattr(record, COLUMN_FIELDS[column])
    return "" if value is None else str(value)


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _csv_field(value: str, column: Column) -> str:
    # Comment text is free-form, always quoted
    if column is Column.COMMENT or any(ch in value for ch in (",", '"', "\n", "\r")):
        return _quote(value)
    return value


def to_csv(records: Sequence[CommentRecord], columns: Sequence[Column]) -> str:
    lines = [",".join(c.value for c in columns)]
    for record in records:
        lines.append(",".join(_csv_field(_value(record, c), c) for c in columns))
    return "\n".join(lines)


def to_tsv(records: Sequence[CommentRecord], columns: Sequence[Column]) -> str:
    """Tab-separated table for pasting into a spreadsheet. Every cell is
    quoted so multi-line comments stay in one cell."""
    lines = ["\t".join(_quote(c.value) for c in columns)]
    for record in records:
        lines.append("\t".join(_quote(_value(record, c)) for c in columns))
    return "\n".join(lines)


def to_text(records: Sequence[CommentRecord], columns: Sequence[Column]) -> str:
    visible = set(columns)
    blocks: List[str] = []
    for record in records:
        prefix: List[str] = []
        if Column.PAGE in visible:
            prefix.append(f"P{record.page}")
        if Column.AUTHOR in visible and record.author:
            prefix.append(record.author)
        if Column.MODIFIED in visible and record.modified:
            prefix.append(record.modified)
        head = ", ".join(prefix)
        if Column.COMMENT in visible:
            blocks.append(f"{head} - {record.text}" if head else record.text)
        else:
            blocks.append(head)
    return "\n\n".join(blocks)


FORMATTERS: Dict[str, Callable[[Sequence[CommentRecord], Sequence[Column]], str]] = {
    "csv": to_csv,
    "tsv": to_tsv,
    "txt": to_text,
}


def render(fmt: str, records: Sequence[CommentRecord], columns: Sequence[Column]) -> str:
    key = str(fmt).strip().lower().lstrip(".")
    if key not in FORMATTERS:
        raise ValueError(f"Unknown export format: {fmt!r} (expected one of {', '.join(FORMATTERS)})")
    return FORMATTERS[key](records, columns)
