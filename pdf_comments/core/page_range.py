from typing import List, Optional


def _to_int(value: str, page_range: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid page range: {page_range}") from None


def _parse_part(total_pages: int, part: str, page_range: str) -> List[int]:
    if part == "first":
        return [1]
    if part == "last":
        return [total_pages]
    if "-" in part:
        s, e = part.split("-", 1)
        s_i = _to_int(s, page_range) if s.strip() else 1
        e_i = _to_int(e, page_range) if e.strip() else total_pages
        if s_i < 1 or e_i < s_i or s_i > total_pages:
            raise ValueError(f"Invalid page range: {page_range}")
        return list(range(s_i, min(e_i, total_pages) + 1))
    p = _to_int(part, page_range)
    if p < 1 or p > total_pages:
        raise ValueError(f"Page {p} out of range (1-{total_pages})")
    return [p]


def parse_page_range(total_pages: int, page_range: Optional[str]) -> List[int]:
    """Return ascending 1-based page numbers selected by `page_range`.
    Supports: None/"all", "first", "last", "N", "S-E" and comma-separated mixes
    such as "1,3-5,last". Duplicates collapse.
    """
    if total_pages <= 0:
        return []
    if page_range is None:
        return list(range(1, total_pages + 1))

    pr = str(page_range).strip().lower()
    if pr in ("", "all"):
        return list(range(1, total_pages + 1))

    pages = set()
    for part in pr.split(","):
        part = part.strip()
        if part:
            pages.update(_parse_part(total_pages, part, page_range))
    return sorted(pages)
