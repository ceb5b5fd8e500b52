"""Normalisation of merged extraction text before parsing.

``clean_text`` runs ``CLEANING_STEPS`` once, in order. The chain is
idempotent: cleaning already-clean text changes nothing.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from . import patterns as p

logger = logging.getLogger(__name__)


def _collapse_whitespace(text: str) -> str:
    text = p.HORIZONTAL_SPACE_RE.sub(" ", text)
    text = p.LINE_EDGE_SPACE_RE.sub("\n", text)
    return p.EXCESS_NEWLINES_RE.sub("\n\n", text)


def strip_invisible(text: str) -> str:
    """Unify line breaks, drop control, zero-width and soft-hyphen characters."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    text = p.CONTROL_CHARS_RE.sub("", text)
    return p.INVISIBLE_CHARS_RE.sub("", text)


def normalize_characters(text: str) -> str:
    """Ligatures, dashes, quotes, ellipses and non-breaking spaces."""
    return text.translate(p.CHARACTER_MAP)


def collapse_whitespace(text: str) -> str:
    """One space between words, no spaces at line edges, at most one blank line."""
    return _collapse_whitespace(text).strip()


def repair_contractions(text: str) -> str:
    """Rejoin split elisions: ``l ' article`` -> ``l'article``."""
    return p.CONTRACTION_RE.sub(r"\1'", text)


def _fix_article_word(match: re.Match[str]) -> str:
    return "article" if match.group(0)[0].islower() else "Article"


def repair_article_headers(text: str) -> str:
    """Fix OCR misreadings of the word "Article" and glued numbers."""
    text = p.ARTICLE_MISSPELLING_RE.sub(_fix_article_word, text)
    text = p.ARTICLE_UPPERCASE_RE.sub("Article", text)
    return p.ARTICLE_GLUED_NUMBER_RE.sub(r"\1 ", text)


def strip_running_headers(text: str) -> str:
    """Remove "Page N sur M" and "- N -" page furniture.

    Removal repeats until no "Page N sur M" is left, then drops "- N -"
    markers that end up alone on their line.
    """
    previous = None
    while previous != text:
        previous = text
        text = p.PAGE_OF_RE.sub(" ", text)
    text = p.PAGE_DASH_LINE_RE.sub("", collapse_whitespace(text))
    return collapse_whitespace(text)


def insert_header_breaks(text: str) -> str:
    """Start article and section headers on their own paragraph."""
    text = p.INLINE_HEADER_RE.sub("\\1\n\n", text)
    return p.LINE_HEADER_RE.sub("\n\n", text)


CLEANING_STEPS: list[tuple[str, Callable[[str], str]]] = [
    ("strip_invisible", strip_invisible),
    ("normalize_characters", normalize_characters),
    ("collapse_whitespace", collapse_whitespace),
    # header removal can join "l" and "' article"; word repairs run after it
    ("strip_running_headers", strip_running_headers),
    ("repair_contractions", repair_contractions),
    ("repair_article_headers", repair_article_headers),
    ("insert_header_breaks", insert_header_breaks),
]


def clean_text(raw_text: str) -> str:
    """Run the full normalisation chain once over ``raw_text``."""
    if not raw_text:
        return ""
    text = raw_text
    for _name, step in CLEANING_STEPS:
        text = step(text)
    text = p.EXCESS_NEWLINES_RE.sub("\n\n", text).strip()
    logger.debug("Cleaned text: %d -> %d chars", len(raw_text), len(text))
    return text
