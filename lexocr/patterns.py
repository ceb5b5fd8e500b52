"""Regex and keyword tables for French legal texts.

Pure data: no I/O, no state. Consumed by ``cleaning``, ``metadata`` and
``structure``.
"""

from __future__ import annotations

import re

from .schema import Nature, ReferenceType, SectionType

# ---------------------------------------------------------------------------
# Text normalisation
# ---------------------------------------------------------------------------

# C0 controls except \t and \n, plus DEL
CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
# zero-width space/joiners, word joiner, BOM, soft hyphen
INVISIBLE_CHARS_RE = re.compile(r"[\u200b-\u200d\u2060\ufeff\u00ad]")

_LIGATURES = {
    "ﬁ": "fi",
    "ﬂ": "fl",
    "ﬀ": "ff",
    "ﬃ": "ffi",
    "ﬄ": "ffl",
    "œ": "oe",
    "Œ": "OE",
    "æ": "ae",
    "Æ": "AE",
}
_DASHES = {ch: "-" for ch in "\u2010\u2011\u2012\u2013\u2014\u2015\u2212"}
_QUOTES = {
    "’": "'",
    "‘": "'",
    "‚": "'",
    "′": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "«": '"',
    "»": '"',
}
_SPACES = {ch: " " for ch in "\u00a0\u202f\u2009\u2007"}

CHARACTER_MAP = str.maketrans(
    {**_LIGATURES, **_DASHES, **_QUOTES, **_SPACES, "…": "..."}
)

HORIZONTAL_SPACE_RE = re.compile(r"[ \t\u3000]+")
LINE_EDGE_SPACE_RE = re.compile(r" *\n *")
EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

# "l ' article", "qu' il", "jusqu 'au" -> "l'article", "qu'il", "jusqu'au"
CONTRACTION_RE = re.compile(
    r"\b(jusqu|lorsqu|puisqu|qu|l|d|n|s|j|c|m|t) *' *(?=\w)",
    re.IGNORECASE,
)

# Frequent OCR misreadings of "Article"
ARTICLE_MISSPELLING_RE = re.compile(
    r"\b(?:Articte|Artide|Articie|Artlcle|Arlicle|Aticle|Artic1e)(?=\d|\b)",
    re.IGNORECASE,
)
ARTICLE_UPPERCASE_RE = re.compile(r"\bARTICLE(?=\d|\b)")
ARTICLE_GLUED_NUMBER_RE = re.compile(r"\b([Aa]rticle)(?=\d)")

# Running headers/footers: "Page 3 sur 12", "Page 3/12", "- 3 -"
PAGE_OF_RE = re.compile(r" *\bPage \d+ ?(?:sur|/) ?\d+\b *", re.IGNORECASE)
PAGE_DASH_LINE_RE = re.compile(r"^ *- ?\d+ ?- *$", re.MULTILINE)

_BREAK_HEADER = (
    r"(?:Article (?:\d+|premier|1er)\b"
    r"|TITRE [IVXLC\d]+\b|TITRE PREMIER\b"
    r"|CHAPITRE [IVXLC\d]+\b|CHAPITRE PREMIER\b"
    r"|LIVRE [IVXLC\d]+\b|LIVRE PREMIER\b"
    r"|SECTION [IVXLC\d]+\b)"
)
# Header glued to a sentence end on the same line
INLINE_HEADER_RE = re.compile(r"([.;:]) +(?=" + _BREAK_HEADER + ")")
# Header at line start with only a single newline before it
LINE_HEADER_RE = re.compile(r"(?<=[^\n])\n(?=" + _BREAK_HEADER + ")")

# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

# Title search is limited to the document head
TITLE_WINDOW = 3000
TITLE_MAX_LENGTH = 500
TITLE_COMPLET_MAX_LENGTH = 2000

TITLE_PREAMBLE_RE = re.compile(
    r"\b(?:LOI|ORDONNANCE|D[ÉE]CRET|ARR[ÊE]T[ÉE])\s+"
    r"(?:(?:ORGANIQUE|CONSTITUTIONNELLE)\s+)?"
    r"(?:N[°O]?\.?\s*[A-Z0-9/\-]+\s*)?"
    r"(?:DU\s+[^\n]+?\s*)?"
    r"(?:PORTANT|RELATIVE?|FIXANT|MODIFIANT|ABROGEANT)\s+"
    r"[^\n]+?(?:\.|$)",
    re.IGNORECASE | re.MULTILINE,
)
TITLE_LINE_MIN = 30
TITLE_LINE_MAX = 200

# End of the title block: first visa or first article header
TITLE_BLOCK_END_RE = re.compile(r"^\s*(?:Vu\b|Article\b|Art\.)", re.MULTILINE)

NUMERO_PATTERNS = (
    re.compile(r"\b(?:N°|No\.?|Numéro)\s*((?:[A-Z]/)?\d{4}/\d{2,4}(?:/[A-Z]+)*)", re.IGNORECASE),
    re.compile(r"\b([LDOA]/\d{4}/\d{2,4}(?:/[A-Z]+)*)", re.IGNORECASE),
    re.compile(r"\bn°\s*(\d{2,4}-\d{1,5})\b", re.IGNORECASE),
    re.compile(r"\b(\d{4}[-/]\d{2,4})\b"),
)

NATURE_WINDOW = 1000

# Order matters: specific keywords before generic ones
NATURE_KEYWORDS: tuple[tuple[str, Nature], ...] = (
    ("constitution", Nature.LOI_CONSTITUTIONNELLE),
    ("loi constitutionnelle", Nature.LOI_CONSTITUTIONNELLE),
    ("loi organique", Nature.LOI_ORGANIQUE),
    ("ordonnance", Nature.ORDONNANCE),
    ("décret-loi", Nature.DECRET_LOI),
    ("decret-loi", Nature.DECRET_LOI),
    ("décret", Nature.DECRET),
    ("decret", Nature.DECRET),
    ("arrêté", Nature.ARRETE),
    ("arrete", Nature.ARRETE),
    ("circulaire", Nature.CIRCULAIRE),
    ("code", Nature.CODE),
    ("loi", Nature.LOI),
)
NATURE_PATTERNS: tuple[tuple[re.Pattern[str], Nature], ...] = tuple(
    (re.compile(r"\b" + re.escape(keyword) + r"\b"), nature)
    for keyword, nature in NATURE_KEYWORDS
)

MONTHS_FR = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
}
MONTH_NAMES_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)

_MONTH_ALT = "|".join(sorted(MONTHS_FR, key=len, reverse=True))
_TEXTUAL_DATE = r"(\d{1,2}|1er)\s+(" + _MONTH_ALT + r")\s+(\d{4})"

SIGNATURE_DATE_RE = re.compile(
    r"\b(?:fait|signé|donné)\s+(?:à\s+[^\n,]+?,?\s+)?le\s+" + _TEXTUAL_DATE,
    re.IGNORECASE,
)
TEXTUAL_DATE_RE = re.compile(r"\b" + _TEXTUAL_DATE + r"\b", re.IGNORECASE)
NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})\b")
PUBLICATION_DATE_RE = re.compile(
    r"\bpubli[ée]e?s?\s+au\s+journal\s+officiel[^\n]*?\bdu\s+" + _TEXTUAL_DATE,
    re.IGNORECASE,
)

_NAME = r"([A-ZÀ-Ý][A-Za-zÀ-ÿ'\-]+(?: [A-ZÀ-Ý][A-Za-zÀ-ÿ'\-]+){1,3})"
SIGNATAIRE_PATTERNS = (
    re.compile(r"(?i:(?:le\s+)?président\s+de\s+la\s+r[ée]publique)[,:]?\s*" + _NAME),
    re.compile(r"(?i:(?:le\s+)?premier\s+ministre)[,:]?\s*" + _NAME),
    re.compile(r"(?i:(?:le\s+)?ministre\s+(?:de\s+)?)[^,\n]+[,:]?\s*" + _NAME),
)

VISA_RE = re.compile(r"\bVu\s+[^;]{1,800};")

_TEXT_KIND = r"(?:loi|ordonnance|d[ée]cret|arr[êe]t[ée]|code)"
_IDENTIFIER = r"(?:n[°o]\.?\s*)?((?:[A-Z]/)?\d{4}/\d{2,4}(?:/[A-Z]+)*|\d{2,4}-\d{1,5})"

REFERENCE_PATTERNS: tuple[tuple[re.Pattern[str], ReferenceType], ...] = (
    (
        re.compile(r"\babrog(?:e|ent|eant|é|ée|és|ées)\b[^.;]{0,80}?" + _TEXT_KIND + r"[^.;]*?" + _IDENTIFIER, re.IGNORECASE),
        ReferenceType.ABROGE,
    ),
    (
        re.compile(r"\bmodifi(?:e|ent|ant|é|ée|és|ées)\b[^.;]{0,80}?" + _TEXT_KIND + r"[^.;]*?" + _IDENTIFIER, re.IGNORECASE),
        ReferenceType.MODIFIE,
    ),
    (
        re.compile(r"\bcompl[èé]t(?:e|ent|ant|é|ée|és|ées|er)\b[^.;]{0,80}?" + _TEXT_KIND + r"[^.;]*?" + _IDENTIFIER, re.IGNORECASE),
        ReferenceType.COMPLETE,
    ),
    (
        re.compile(r"\b(?:en\s+)?application\s+de\b[^.;]{0,80}?" + _TEXT_KIND + r"[^.;]*?" + _IDENTIFIER, re.IGNORECASE),
        ReferenceType.APPLIQUE,
    ),
)
ARTICLE_REF_RE = re.compile(r"\barticles?\s+(\d+(?:\s*(?:bis|ter|quater))?|premier|1er)\b", re.IGNORECASE)
REFERENCE_DESCRIPTION_MAX = 200

# Bare mentions inside an article body, when no identifier is captured
ARTICLE_MENTION_PATTERNS: tuple[tuple[re.Pattern[str], ReferenceType], ...] = (
    (re.compile(r"\babrog[ée]", re.IGNORECASE), ReferenceType.ABROGE),
    (re.compile(r"\bmodifi[ée]", re.IGNORECASE), ReferenceType.MODIFIE),
)
AUTO_REFERENCE = "AUTO"
AUTO_REFERENCE_DESCRIPTION = "Mentionné dans le texte"

# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

_SECTION_NUMBER = r"[IVXLC]+|\d+|(?i:premier|première|premiere|unique)"


def _section_re(keyword: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*(?:" + keyword + r")[ \t]+(" + _SECTION_NUMBER + r")\b"
        r"[ \t]*[-:.]?[ \t]*([^\n]*)$",
        re.MULTILINE,
    )


SECTION_PATTERNS: tuple[tuple[re.Pattern[str], SectionType, int], ...] = (
    (_section_re("LIVRE"), SectionType.LIVRE, 1),
    (_section_re("PARTIE"), SectionType.PARTIE, 1),
    (_section_re("TITRE"), SectionType.TITRE, 2),
    (_section_re("SOUS-TITRE"), SectionType.SOUS_TITRE, 2),
    (_section_re("CHAPITRE"), SectionType.CHAPITRE, 3),
    (_section_re("SECTION|Section"), SectionType.SECTION, 4),
    (_section_re("SOUS-SECTION|Sous-section"), SectionType.SOUS_SECTION, 5),
    (
        re.compile(r"^[ \t]*(?:§|PARAGRAPHE|Paragraphe)[ \t]*(\d+)\b[ \t]*[-:.]?[ \t]*([^\n]*)$", re.MULTILINE),
        SectionType.PARAGRAPHE,
        6,
    ),
)

# Any line that opens a section ends the running article
SECTION_LINE_RE = re.compile(
    r"^\s*(?:LIVRE|PARTIE|TITRE|SOUS-TITRE|CHAPITRE|SECTION|SOUS-SECTION|Section|Sous-section|PARAGRAPHE|§)"
    r"\s+(?:" + _SECTION_NUMBER + r")\b"
)

ROMAN_NUMERALS = {
    "I": "1", "II": "2", "III": "3", "IV": "4", "V": "5",
    "VI": "6", "VII": "7", "VIII": "8", "IX": "9", "X": "10",
    "XI": "11", "XII": "12", "XIII": "13", "XIV": "14", "XV": "15",
    "XVI": "16", "XVII": "17", "XVIII": "18", "XIX": "19", "XX": "20",
}

ORDINAL_WORDS = {
    "premier": "1",
    "première": "1",
    "premiere": "1",
    "1er": "1",
    "deuxième": "2",
    "deuxieme": "2",
    "second": "2",
    "seconde": "2",
    "troisième": "3",
    "troisieme": "3",
    "quatrième": "4",
    "quatrieme": "4",
    "cinquième": "5",
    "cinquieme": "5",
    "sixième": "6",
    "sixieme": "6",
    "septième": "7",
    "septieme": "7",
    "huitième": "8",
    "huitieme": "8",
    "neuvième": "9",
    "neuvieme": "9",
    "dixième": "10",
    "dixieme": "10",
    "onzième": "11",
    "onzieme": "11",
    "douzième": "12",
    "douzieme": "12",
    "treizième": "13",
    "treizieme": "13",
    "quatorzième": "14",
    "quatorzieme": "14",
    "quinzième": "15",
    "quinzieme": "15",
    "seizième": "16",
    "seizieme": "16",
    "dix-septième": "17",
    "dix-septieme": "17",
    "dix-huitième": "18",
    "dix-huitieme": "18",
    "dix-neuvième": "19",
    "dix-neuvieme": "19",
    "vingtième": "20",
    "vingtieme": "20",
}

_ORDINAL_ALT = "|".join(re.escape(w) for w in sorted(ORDINAL_WORDS, key=len, reverse=True))

ARTICLE_HEADER_RE = re.compile(
    r"^[ \t]*(?:Article|ARTICLE|Art\.?)[ \t]*"
    r"(?P<num>(?i:" + _ORDINAL_ALT + r"|unique)"
    r"|\d+(?:[ \t]*(?:bis|ter|quater))?"
    r"|[IVXLC]+)"
    r"(?!\w)[ \t]*[.:\-]?[ \t]*(?P<rest>[^\n]*)$"
)

# Line endings that make the next "Article N" a citation, not a header
REFERENTIAL_TAIL_RE = re.compile(
    r"(?:\bà l'|\bl'|\bcet|\bledit|\bdudit|\baudit|\bmême|\bprésent|\bdit)\s*$",
    re.IGNORECASE,
)

ARTICLE_MIN_LENGTH = 20
TOC_ENTRY_RE = re.compile(r"(?:\.{3,}|…)\s*\d+\s*$")
PAGE_NUMBER_ONLY_RE = re.compile(r"^\s*\d+\s*$")

ARTICLE_TITLE_MAX = 100
ABROGATED_NOTE_RE = re.compile(r"^[(\[]?\s*abrog[ée]+s?\b[^\n]{0,200}$", re.IGNORECASE)
AMENDED_NOTE_RE = re.compile(r"^[(\[]\s*modifi[ée]+s?\b[^)\]\n]*[)\]]", re.IGNORECASE)

LEADING_NUMBER_RE = re.compile(r"^\d+")
