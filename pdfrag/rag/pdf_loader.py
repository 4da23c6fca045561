"""PDF text extraction with PyMuPDF.

Produces one fragment per page. Text spans on the same line are joined with
a single space and lines with a newline; images are ignored.
"""
from pathlib import Path
from typing import Any, Dict, List, Union

import fitz  # PyMuPDF
import structlog

from pdfrag.errors import ExtractionError
from pdfrag.rag.documents import Fragment

logger = structlog.get_logger()


def extract_page_text(page: fitz.Page, item_separator: str = " ") -> str:
    """Extract the text of one page.

    Args:
        page: PyMuPDF page
        item_separator: String placed between text spans of a line

    Returns:
        Page text, one output line per PDF text line
    """
    lines = []
    for block in page.get_text("dict")["blocks"]:
        if "lines" not in block:  # image block
            continue
        for line in block["lines"]:
            spans = [span["text"] for span in line["spans"] if span["text"]]
            if spans:
                lines.append(item_separator.join(spans))
    return "\n".join(lines)


class PDFLoader:
    """Load a PDF as page-level fragments."""

    def __init__(self, item_separator: str = " "):
        self.item_separator = item_separator

    def load(self, pdf_path: Union[str, Path]) -> List[Fragment]:
        """Extract every page of a PDF.

        Args:
            pdf_path: Path to the PDF file

        Returns:
            One Fragment per page, with ``source``, ``pdf`` and
            ``loc.pageNumber`` (1-based) metadata

        Raises:
            ExtractionError: If the file is missing or cannot be parsed
        """
        path = Path(pdf_path)
        if not path.exists():
            raise ExtractionError(f"PDF file not found: {path}")

        try:
            doc = fitz.open(str(path))
        except Exception as e:
            raise ExtractionError(f"Failed to open PDF {path}: {e}") from e

        fragments = []
        try:
            pdf_info: Dict[str, Any] = {
                "totalPages": doc.page_count,
                "info": {k: v for k, v in (doc.metadata or {}).items() if v},
            }
            for page_num in range(doc.page_count):
                text = extract_page_text(doc[page_num], self.item_separator)
                fragments.append(
                    Fragment(
                        text=text,
                        metadata={
                            "source": str(path),
                            "pdf": pdf_info,
                            "loc": {"pageNumber": page_num + 1},
                        },
                    )
                )
        except Exception as e:
            raise ExtractionError(f"Failed to extract text from {path}: {e}") from e
        finally:
            doc.close()

        logger.info("pdf_loaded", path=str(path), page_count=len(fragments))
        return fragments
