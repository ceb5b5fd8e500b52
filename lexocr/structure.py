"""Section tree and article list from cleaned legal text.

Two independent passes over the same text:

* sections: every header match, sorted by offset, folded into a tree with
  a stack of ``(node, niveau)``;
* articles: line-by-line header scan, numero normalisation, filtering,
  de-duplication and numeric ordering.

Articles are then attached to the deepest section whose span contains
their header. ``extract_structure`` never raises; an empty structure is a
valid result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator

from . import patterns as p
from .metadata import extract_references, extract_visas
from .schema import (
    ArticleEtat,
    ArticleNode,
    DocumentStructure,
    SectionNode,
    SectionType,
    TextReference,
)

logger = logging.getLogger(__name__)

_MENTION_TYPES = {ref_type for _, ref_type in p.ARTICLE_MENTION_PATTERNS}


@dataclass
class _ArticleDraft:
    """Article header plus the raw body lines gathered after it."""

    numero: str
    offset: int
    header_rest: str = ""
    body: list[str] = field(default_factory=list)


def _lines_with_offsets(text: str) -> Iterator[tuple[int, str]]:
    offset = 0
    for line in text.splitlines(keepends=True):
        yield offset, line.rstrip("\r\n")
        offset += len(line)


# ---------------------------------------------------------------------------
# Numero helpers
# ---------------------------------------------------------------------------

def normalize_article_numero(raw: str) -> str:
    """``premier``/``1er`` -> ``1``, ``IV`` -> ``4``, ``5 bis`` -> ``5bis``."""
    token = " ".join(raw.split())
    lower = token.lower()
    if lower in p.ORDINAL_WORDS:
        return p.ORDINAL_WORDS[lower]
    if lower == "unique":
        return "unique"
    if token.upper() in p.ROMAN_NUMERALS:
        return p.ROMAN_NUMERALS[token.upper()]
    return token.replace(" ", "")


def numero_sort_key(numero: str) -> int:
    """Leading integer of a numero; 0 when it has none."""
    match = p.LEADING_NUMBER_RE.match(numero)
    return int(match.group(0)) if match else 0


# ---------------------------------------------------------------------------
# Section pass
# ---------------------------------------------------------------------------

def _following_heading(text: str, end: int) -> str:
    """All-caps heading on the line right after a bare section header."""
    rest = text[end:].lstrip("\n")
    line = rest.split("\n", 1)[0].strip()
    if not line or len(line) > p.TITLE_LINE_MAX or not line.isupper():
        return ""
    if p.SECTION_LINE_RE.match(line) or p.ARTICLE_HEADER_RE.match(line):
        return ""
    return line


def extract_sections(text: str) -> list[SectionNode]:
    """All section headers as unlinked nodes, in text order."""
    found: list[tuple[int, int, re.Match[str], SectionType]] = []
    for pattern, kind, niveau in p.SECTION_PATTERNS:
        for match in pattern.finditer(text):
            if p.TOC_ENTRY_RE.search(match.group(0)):
                continue
            found.append((match.start(), niveau, match, kind))
    found.sort(key=lambda item: item[0])

    nodes: list[SectionNode] = []
    for index, (offset, niveau, match, kind) in enumerate(found, start=1):
        titre = match.group(2).strip() or _following_heading(text, match.end())
        nodes.append(
            SectionNode(
                id=f"sec-{index}",
                type=kind,
                numero=match.group(1),
                titre=titre,
                niveau=niveau,
                offset=offset,
            )
        )
    return nodes


def build_section_tree(nodes: list[SectionNode]) -> list[SectionNode]:
    """Link offset-ordered nodes under their nearest shallower predecessor."""
    roots: list[SectionNode] = []
    stack: list[tuple[SectionNode, int]] = []
    for node in nodes:
        while stack and stack[-1][1] >= node.niveau:
            stack.pop()
        if stack:
            stack[-1][0].children.append(node)
        else:
            roots.append(node)
        stack.append((node, node.niveau))
    return roots


def _section_spans(nodes: list[SectionNode], text_length: int) -> list[int]:
    """End offset of each node: next node of same or shallower niveau."""
    ends: list[int] = []
    for index, node in enumerate(nodes):
        end = text_length
        for later in nodes[index + 1:]:
            if later.niveau <= node.niveau:
                end = later.offset
                break
        ends.append(end)
    return ends


def attach_articles(
    nodes: list[SectionNode], articles: list[ArticleNode], text_length: int
) -> None:
    """Append each article to the deepest section containing its offset."""
    ends = _section_spans(nodes, text_length)
    for article in articles:
        owner: SectionNode | None = None
        for node, end in zip(nodes, ends):
            if node.offset > article.offset:
                break
            if article.offset < end:
                owner = node
        if owner is not None:
            owner.articles.append(article)


# ---------------------------------------------------------------------------
# Article pass
# ---------------------------------------------------------------------------

def scan_article_headers(text: str) -> list[_ArticleDraft]:
    """Collect article headers and their body lines, in text order."""
    drafts: list[_ArticleDraft] = []
    current: _ArticleDraft | None = None
    previous = ""

    for offset, line in _lines_with_offsets(text):
        stripped = line.strip()
        if not stripped:
            continue
        header = p.ARTICLE_HEADER_RE.match(stripped)
        if header and not p.REFERENTIAL_TAIL_RE.search(previous):
            if current is not None:
                drafts.append(current)
            current = _ArticleDraft(
                numero=normalize_article_numero(header.group("num")),
                offset=offset,
                header_rest=header.group("rest").strip(),
            )
        elif p.SECTION_LINE_RE.match(stripped):
            if current is not None:
                drafts.append(current)
            current = None
        elif current is not None:
            current.body.append(stripped)
        previous = stripped

    if current is not None:
        drafts.append(current)
    return drafts


def _is_heading(rest: str, next_line: str) -> bool:
    if len(rest) > p.ARTICLE_TITLE_MAX or rest.endswith((".", ";", ":", ",")):
        return False
    # "... prévues à l'" continues on the next line
    if p.REFERENTIAL_TAIL_RE.search(rest):
        return False
    return not next_line[:1].islower()


def _article_etat(contenu: str) -> ArticleEtat:
    if p.ABROGATED_NOTE_RE.match(contenu):
        return ArticleEtat.ABROGE
    if p.AMENDED_NOTE_RE.match(contenu):
        return ArticleEtat.MODIFIE
    return ArticleEtat.VIGUEUR


def _article_references(contenu: str) -> list[TextReference]:
    references = [ref for ref in extract_references(contenu) if ref.type in _MENTION_TYPES]
    for pattern, ref_type in p.ARTICLE_MENTION_PATTERNS:
        if any(ref.type == ref_type for ref in references):
            continue
        if pattern.search(contenu):
            references.append(
                TextReference(
                    type=ref_type,
                    texte_ref=p.AUTO_REFERENCE,
                    description=p.AUTO_REFERENCE_DESCRIPTION,
                )
            )
    return references


def build_article(draft: _ArticleDraft) -> ArticleNode | None:
    """Turn a draft into an article; None for stubs and table-of-contents lines."""
    body = list(draft.body)
    titre: str | None = None
    if draft.header_rest and body and _is_heading(draft.header_rest, body[0]):
        titre = draft.header_rest
    elif draft.header_rest:
        body.insert(0, draft.header_rest)

    contenu = "\n".join(body).strip()
    if (
        len(contenu) < p.ARTICLE_MIN_LENGTH
        or p.TOC_ENTRY_RE.search(contenu)
        or p.PAGE_NUMBER_ONLY_RE.match(contenu)
    ):
        return None

    return ArticleNode(
        id=f"art-{draft.numero}",
        numero=draft.numero,
        titre=titre,
        contenu=contenu,
        alineas=[line for line in body if line],
        etat=_article_etat(contenu),
        references=_article_references(contenu),
        offset=draft.offset,
    )


def deduplicate_articles(articles: list[ArticleNode]) -> list[ArticleNode]:
    """One article per numero, keeping the longest contenu (first wins ties)."""
    best: dict[str, ArticleNode] = {}
    for article in articles:
        kept = best.get(article.numero)
        if kept is None or len(article.contenu) > len(kept.contenu):
            best[article.numero] = article
    return list(best.values())


def articles_from_drafts(drafts: list[_ArticleDraft]) -> list[ArticleNode]:
    """Build, filter, de-duplicate and sort articles by leading number."""
    articles = [a for a in (build_article(d) for d in drafts) if a is not None]
    return sorted(deduplicate_articles(articles), key=lambda a: numero_sort_key(a.numero))


def extract_articles(text: str) -> list[ArticleNode]:
    return articles_from_drafts(scan_article_headers(text))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def extract_structure(text: str) -> DocumentStructure:
    """Build the section tree, article list, preamble and visas."""
    if not text or not text.strip():
        return DocumentStructure()

    try:
        nodes = extract_sections(text)
        roots = build_section_tree(nodes)

        drafts = scan_article_headers(text)
        articles = articles_from_drafts(drafts)
        attach_articles(nodes, articles, len(text))

        preambule = text[: drafts[0].offset].strip() if drafts else ""
        structure = DocumentStructure(
            sections=roots,
            articles=articles,
            preambule=preambule or None,
            visas=extract_visas(text),
        )
    except Exception:
        logger.exception("Structure extraction failed; returning an empty structure")
        return DocumentStructure()

    logger.info(
        "Structure: %d section(s) (%d root), %d article(s)",
        len(nodes),
        len(roots),
        len(articles),
    )
    if structure.is_empty:
        logger.warning("No sections or articles detected")
    return structure
