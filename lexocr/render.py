"""JSON and HTML renderings of an extracted legal document.

Both renderers are pure functions of ``(metadata, structure)``: no clock,
no randomness, so re-rendering the same document gives the same output.
"""

from __future__ import annotations

from datetime import date
from html import escape
from typing import Any

from .patterns import MONTH_NAMES_FR
from .schema import ArticleEtat, ArticleNode, DocumentMetadata, DocumentStructure, SectionNode

RENDER_VERSION = "1.0"


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def format_date_fr(value: date) -> str:
    """``date(2020, 3, 1)`` -> ``"1er mars 2020"``."""
    day = "1er" if value.day == 1 else str(value.day)
    return f"{day} {MONTH_NAMES_FR[value.month - 1]} {value.year}"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _article_json(article: ArticleNode) -> dict[str, Any]:
    return {
        "numero": article.numero,
        "titre": article.titre,
        "contenu": article.contenu,
        "alineas": article.alineas,
        "etat": article.etat.value,
    }


def generate_json(metadata: DocumentMetadata, structure: DocumentStructure) -> dict[str, Any]:
    """Structured, JSON-serialisable view of the document."""
    return {
        "document": {
            "identification": {
                "titre": metadata.titre,
                "titre_complet": metadata.titre_complet,
                "numero": metadata.numero,
                "nature": metadata.nature.value if metadata.nature else None,
                "date_signature": _iso(metadata.date_signature),
                "date_publication": _iso(metadata.date_publication),
                "is_code": metadata.is_code,
            },
            "signataires": list(metadata.signataires),
            "visas": list(structure.visas),
            "preambule": structure.preambule,
            "references": [ref.model_dump(mode="json") for ref in metadata.references],
            "structure": {
                "sections": [section.model_dump(mode="json") for section in structure.sections],
                "articles": [_article_json(article) for article in structure.articles],
            },
        },
        "meta": {"version": RENDER_VERSION},
    }


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_STYLE = """\
        body { font-family: 'Georgia', serif; max-width: 800px; margin: 0 auto; padding: 2rem; line-height: 1.6; }
        .header { text-align: center; margin-bottom: 2rem; border-bottom: 2px solid #333; padding-bottom: 1rem; }
        .titre { font-size: 1.5rem; font-weight: bold; margin-bottom: 0.5rem; }
        .meta { color: #666; font-size: 0.9rem; }
        .visas { font-style: italic; margin: 1rem 0; padding: 1rem; background: #f5f5f5; }
        .section { margin: 2rem 0; }
        .section-titre { font-weight: bold; text-transform: uppercase; margin: 1.5rem 0 1rem; }
        .section-niveau-1 { font-size: 1.3rem; border-bottom: 1px solid #333; }
        .section-niveau-2 { font-size: 1.2rem; }
        .section-niveau-3 { font-size: 1.1rem; }
        .article { margin: 1.5rem 0; padding-left: 1rem; border-left: 3px solid #0066cc; }
        .article-numero { font-weight: bold; color: #0066cc; }
        .article-abroge { color: #999; text-decoration: line-through; }
        .article-contenu { text-align: justify; }
        .alinea { margin: 0.5rem 0; }
        .signataires { margin-top: 3rem; text-align: right; }
        .signataire { margin: 0.5rem 0; }
        @media print { body { font-size: 11pt; } }
"""


def _render_article(article: ArticleNode, indent: str = "    ") -> list[str]:
    css = "article"
    if article.etat == ArticleEtat.ABROGE:
        css += " article-abroge"
    lines = [
        f'{indent}<div class="{css}" id="article-{escape(article.numero)}">',
        f'{indent}    <div class="article-numero">Article {escape(article.numero)}</div>',
    ]
    if article.titre:
        lines.append(f'{indent}    <div class="article-titre">{escape(article.titre)}</div>')
    lines.append(f'{indent}    <div class="article-contenu">')
    for alinea in article.alineas or [article.contenu]:
        lines.append(f'{indent}        <p class="alinea">{escape(alinea)}</p>')
    lines.append(f"{indent}    </div>")
    lines.append(f"{indent}</div>")
    return lines


def _render_section(section: SectionNode, depth: int = 1) -> list[str]:
    indent = "    " * depth
    heading = f"{escape(section.type.value)} {escape(section.numero)}"
    if section.titre:
        heading += f" - {escape(section.titre)}"
    lines = [
        f'{indent}<div class="section section-niveau-{section.niveau}" id="{escape(section.id)}">',
        f'{indent}    <div class="section-titre">{heading}</div>',
    ]
    for child in section.children:
        lines.extend(_render_section(child, depth + 1))
    for article in section.articles:
        lines.extend(_render_article(article, indent + "    "))
    lines.append(f"{indent}</div>")
    return lines


def _attached_ids(sections: list[SectionNode]) -> set[str]:
    ids: set[str] = set()
    stack = list(sections)
    while stack:
        section = stack.pop()
        ids.update(article.id for article in section.articles)
        stack.extend(section.children)
    return ids


def generate_html(metadata: DocumentMetadata, structure: DocumentStructure) -> str:
    """Self-contained French HTML page; every text value is escaped."""
    titre = metadata.titre or "Document juridique"
    meta_parts: list[str] = []
    if metadata.numero:
        meta_parts.append(f"<span>N° {escape(metadata.numero)}</span>")
    if metadata.date_signature:
        meta_parts.append(f"<span> - {format_date_fr(metadata.date_signature)}</span>")

    lines = [
        "<!DOCTYPE html>",
        '<html lang="fr">',
        "<head>",
        '    <meta charset="UTF-8">',
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"    <title>{escape(titre)}</title>",
        "    <style>",
        _STYLE.rstrip("\n"),
        "    </style>",
        "</head>",
        "<body>",
        '    <div class="header">',
        f'        <div class="titre">{escape(metadata.titre or "")}</div>',
        f'        <div class="meta">{"".join(meta_parts)}</div>',
        "    </div>",
    ]

    if structure.visas:
        lines.append('    <div class="visas">')
        lines.extend(f"        <p>{escape(visa)}</p>" for visa in structure.visas)
        lines.append("    </div>")

    if structure.preambule:
        lines.append(f'    <div class="preambule"><p>{escape(structure.preambule)}</p></div>')

    for section in structure.sections:
        lines.extend(_render_section(section))

    # Articles outside any section
    attached = _attached_ids(structure.sections)
    for article in structure.articles:
        if article.id not in attached:
            lines.extend(_render_article(article))

    if metadata.signataires:
        lines.append('    <div class="signataires">')
        lines.extend(
            f'        <div class="signataire">{escape(name)}</div>' for name in metadata.signataires
        )
        lines.append("    </div>")

    lines.extend(["</body>", "</html>"])
    return "\n".join(lines)
