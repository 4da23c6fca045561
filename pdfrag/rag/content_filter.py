"""Content filtering and text cleaning for extracted PDF text.

Decides which fragments carry enough text to be worth embedding and
normalizes the survivors into the form that gets embedded and stored.

The character allow-list keeps printable ASCII, LF/CR and the Arabic-script
blocks. Any other script (Cyrillic, CJK, ...) is removed; add its ranges to
``_ALLOWED_RANGES`` to support it.
"""
import re
from typing import Iterable, List

import structlog

from pdfrag import config
from pdfrag.rag.documents import Fragment, get_source

logger = structlog.get_logger()

_ALLOWED_RANGES = (
    "\x20-\x7e",  # printable ASCII
    "\n\r",
    "\u0600-\u06ff",  # Arabic
    "\u0750-\u077f",  # Arabic Supplement
    "\u08a0-\u08ff",  # Arabic Extended-A
    "\ufb50-\ufdff",  # Arabic Presentation Forms-A
    "\ufe70-\ufeff",  # Arabic Presentation Forms-B
)

WHITESPACE_PATTERN = re.compile(r"\s+")
DISALLOWED_CHARS_PATTERN = re.compile("[^" + "".join(_ALLOWED_RANGES) + "]")


def count_words(text: str) -> int:
    """Count whitespace-delimited words, ignoring empty tokens."""
    return len([word for word in WHITESPACE_PATTERN.split(text or "") if word])


def is_substantial(
    text: str,
    min_length: int = config.MIN_CONTENT_LENGTH,
    min_words: int = config.MIN_WORD_COUNT,
) -> bool:
    """Check whether a piece of text is worth embedding.

    Args:
        text: Raw or cleaned text
        min_length: Trimmed length must be strictly greater than this
        min_words: Word count must be at least this

    Returns:
        True if the text passes both thresholds
    """
    trimmed = (text or "").strip()
    return len(trimmed) > min_length and count_words(trimmed) >= min_words


def clean_text(text: str) -> str:
    """Collapse whitespace, trim, and drop characters outside the allow-list."""
    collapsed = WHITESPACE_PATTERN.sub(" ", text or "").strip()
    return DISALLOWED_CHARS_PATTERN.sub("", collapsed)


def filter_fragments(
    fragments: Iterable[Fragment],
    min_length: int = config.MIN_CONTENT_LENGTH,
    min_words: int = config.MIN_WORD_COUNT,
) -> List[Fragment]:
    """Keep only fragments whose text passes ``is_substantial``."""
    return [
        fragment
        for fragment in fragments
        if is_substantial(fragment.text, min_length=min_length, min_words=min_words)
    ]


def clean_fragments(fragments: Iterable[Fragment]) -> List[Fragment]:
    """Clean chunk text and stamp ``chunkIndex`` and ``source`` metadata.

    ``chunkIndex`` is the chunk's position in the splitter output, so it is
    assigned before any post-cleaning filter runs. Input fragments are left
    untouched; new fragments with copied metadata are returned.
    """
    cleaned = []
    for index, fragment in enumerate(fragments):
        metadata = dict(fragment.metadata or {})
        metadata["chunkIndex"] = index
        metadata["source"] = get_source(fragment.metadata)
        cleaned.append(Fragment(text=clean_text(fragment.text), metadata=metadata))

    logger.debug("fragments_cleaned", count=len(cleaned))
    return cleaned
