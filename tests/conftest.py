import io
from typing import Dict, List

import pytest
from PyPDF2 import PdfWriter
from PyPDF2.generic import ArrayObject, DictionaryObject, NameObject, NumberObject, TextStringObject

from pdf_comments.core.types import CommentRecord


def build_pdf(pages: List[List[Dict[str, str]]]) -> bytes:
    """One blank page per entry; each dict becomes an annotation.
    `Subtype` is written as a PDF name, every other key as a text string."""
    writer = PdfWriter()
    for _ in pages:
        writer.add_blank_page(width=612, height=792)
    for index, annots in enumerate(pages):
        for fields in annots:
            annot = DictionaryObject({
                NameObject("/Type"): NameObject("/Annot"),
                NameObject("/Rect"): ArrayObject([NumberObject(50), NumberObject(700), NumberObject(70), NumberObject(720)]),
            })
            for key, value in fields.items():
                if key == "Subtype":
                    annot[NameObject("/Subtype")] = NameObject("/" + value)
                else:
                    annot[NameObject("/" + key)] = TextStringObject(value)
            writer.add_annotation(page_number=index, annotation=annot)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture
def review_pdf() -> bytes:
    """Three pages: two comments on page 1, a highlight on page 2, one comment on page 3."""
    return build_pdf([
        [
            {"Subtype": "Text", "Contents": "Fix typo", "T": "Alice", "M": "D:20230615143000Z"},
            {"Subtype": "Text", "Contents": "Cite this", "T": "Bob"},
        ],
        [
            {"Subtype": "Highlight", "Contents": "ignored", "T": "Alice"},
        ],
        [
            {"Subtype": "Text", "Contents": "  Needs, a \"quote\"  ", "T": "Carol", "M": "D:20240101000000"},
            {"Subtype": "Text", "Contents": "   "},
        ],
    ])


@pytest.fixture
def records() -> List[CommentRecord]:
    return [
        CommentRecord(page=1, author="Alice", text="Fix typo", modified="2023-06-15 14:30:00Z"),
        CommentRecord(page=2, author="", text="Line one\nline two", modified=""),
        CommentRecord(page=3, author="Smith, J.", text='He said "hi"', modified=""),
    ]
