"""Identification metadata for French legal texts.

Every field is first-match-wins over an ordered pattern list (see
``patterns``); a field nobody matches stays ``None`` or empty.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from . import patterns as p
from .schema import DocumentMetadata, Nature, TextReference

logger = logging.getLogger(__name__)


def _squash(text: str) -> str:
    return " ".join(text.split())


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

def _title_match(text: str) -> tuple[str, int] | None:
    """Return ``(title, start_offset)`` of the document title."""
    head = text[: p.TITLE_WINDOW]
    match = p.TITLE_PREAMBLE_RE.search(head)
    if match:
        return match.group(0).strip(), match.start()

    offset = 0
    for line in text.splitlines(keepends=True):
        stripped = line.strip()
        if p.TITLE_LINE_MIN <= len(stripped) <= p.TITLE_LINE_MAX:
            return stripped, offset + line.index(stripped[0])
        offset += len(line)
    return None


def extract_title(text: str) -> str | None:
    found = _title_match(text)
    if found is None:
        return None
    return found[0][: p.TITLE_MAX_LENGTH]


def extract_full_title(text: str) -> str | None:
    """Title block from the title start up to the first visa or article."""
    found = _title_match(text)
    if found is None:
        return None
    title, start = found
    end_match = p.TITLE_BLOCK_END_RE.search(text, start + len(title))
    end = end_match.start() if end_match else start + len(title)
    return _squash(text[start:end])[: p.TITLE_COMPLET_MAX_LENGTH] or None


# ---------------------------------------------------------------------------
# Numero / nature
# ---------------------------------------------------------------------------

def extract_numero(text: str) -> str | None:
    for pattern in p.NUMERO_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).upper()
    return None


def extract_nature(text: str) -> Nature | None:
    """Keyword lookup over the document head, most specific keyword first.

    The head stops at the first visa when a title precedes it.
    """
    window = text[: p.NATURE_WINDOW]
    visa = p.VISA_RE.search(window)
    if visa and window[: visa.start()].strip():
        window = window[: visa.start()]
    window = window.lower()
    for pattern, nature in p.NATURE_PATTERNS:
        if pattern.search(window):
            return nature
    return None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def _day(raw: str) -> int:
    return 1 if raw.lower() == "1er" else int(raw)


def parse_french_date(day: str, month: str, year: str) -> date | None:
    """Build a date from ``("1er", "mars", "2020")``; None when invalid."""
    month_number = p.MONTHS_FR.get(month.lower())
    if month_number is None:
        return None
    try:
        return date(int(year), month_number, _day(day))
    except ValueError:
        return None


def parse_numeric_date(day: str, month: str, year: str) -> date | None:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _first_date(pattern: re.Pattern[str], text: str, textual: bool = True) -> date | None:
    parse = parse_french_date if textual else parse_numeric_date
    for match in pattern.finditer(text):
        parsed = parse(*match.groups()[-3:])
        if parsed is not None:
            return parsed
    return None


def extract_signature_date(text: str) -> date | None:
    """Prefer "Fait à ..., le <date>", then any French date, then D/M/Y."""
    return (
        _first_date(p.SIGNATURE_DATE_RE, text)
        or _first_date(p.TEXTUAL_DATE_RE, text)
        or _first_date(p.NUMERIC_DATE_RE, text, textual=False)
    )


def extract_publication_date(text: str) -> date | None:
    return _first_date(p.PUBLICATION_DATE_RE, text)


# ---------------------------------------------------------------------------
# Signataires / visas / references
# ---------------------------------------------------------------------------

def extract_signataires(text: str) -> list[str]:
    signataires: list[str] = []
    for pattern in p.SIGNATAIRE_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(1).strip()
            if name and name not in signataires:
                signataires.append(name)
    return signataires


def extract_visas(text: str) -> list[str]:
    return [_squash(match.group(0)) for match in p.VISA_RE.finditer(text)]


def _normalize_identifier(raw: str) -> str:
    return raw.strip().upper()


def extract_references(text: str) -> list[TextReference]:
    """Abrogation/modification/completion/application phrases."""
    references: list[TextReference] = []
    seen: set[tuple[str, str, str | None]] = set()
    for pattern, ref_type in p.REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            phrase = match.group(0)
            article = p.ARTICLE_REF_RE.search(phrase)
            article_ref = _squash(article.group(1)) if article else None
            texte_ref = _normalize_identifier(match.group(1))
            key = (ref_type.value, texte_ref, article_ref)
            if key in seen:
                continue
            seen.add(key)
            references.append(
                TextReference(
                    type=ref_type,
                    texte_ref=texte_ref,
                    article_ref=article_ref,
                    description=_squash(phrase)[: p.REFERENCE_DESCRIPTION_MAX],
                )
            )
    return references


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def extract_metadata(text: str) -> DocumentMetadata:
    """Extract identification metadata from cleaned document text."""
    if not text or not text.strip():
        return DocumentMetadata()

    metadata = DocumentMetadata(
        titre=extract_title(text),
        titre_complet=extract_full_title(text),
        nature=extract_nature(text),
        numero=extract_numero(text),
        date_signature=extract_signature_date(text),
        date_publication=extract_publication_date(text),
        signataires=extract_signataires(text),
        visas=extract_visas(text),
        references=extract_references(text),
    )
    metadata.is_code = is_code(metadata, text)
    logger.info(
        "Metadata: nature=%s numero=%s date=%s visas=%d references=%d",
        metadata.nature.value if metadata.nature else None,
        metadata.numero,
        metadata.date_signature,
        len(metadata.visas),
        len(metadata.references),
    )
    return metadata


def is_code(metadata: DocumentMetadata, text: str) -> bool:
    """True for codes: nature CODE, or "code" in the title or document head."""
    if metadata.nature == Nature.CODE:
        return True
    if metadata.titre and "code" in metadata.titre.lower():
        return True
    return "code" in text[: p.NATURE_WINDOW].lower()
