"""Pydantic models for extraction results and structured legal documents."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class ExtractionMethod(str, Enum):
    """How the document text was obtained."""

    NATIVE = "native"
    OCR = "ocr"
    HYBRID = "hybrid"


class PageMethod(str, Enum):
    """How a single page's text was obtained."""

    NATIVE = "native"
    OCR = "ocr"


class Nature(str, Enum):
    """Legal category of a text."""

    LOI_CONSTITUTIONNELLE = "LOI_CONSTITUTIONNELLE"
    LOI_ORGANIQUE = "LOI_ORGANIQUE"
    ORDONNANCE = "ORDONNANCE"
    DECRET_LOI = "DECRET_LOI"
    DECRET = "DECRET"
    ARRETE = "ARRETE"
    CIRCULAIRE = "CIRCULAIRE"
    CODE = "CODE"
    LOI = "LOI"


class SectionType(str, Enum):
    LIVRE = "LIVRE"
    PARTIE = "PARTIE"
    TITRE = "TITRE"
    SOUS_TITRE = "SOUS_TITRE"
    CHAPITRE = "CHAPITRE"
    SECTION = "SECTION"
    SOUS_SECTION = "SOUS_SECTION"
    PARAGRAPHE = "PARAGRAPHE"


class ArticleEtat(str, Enum):
    VIGUEUR = "VIGUEUR"
    MODIFIE = "MODIFIE"
    ABROGE = "ABROGE"


class ReferenceType(str, Enum):
    ABROGE = "abroge"
    MODIFIE = "modifie"
    CITE = "cite"
    APPLIQUE = "applique"
    COMPLETE = "complete"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class PageImage(BaseModel):
    """Rendered page bitmap (PNG bytes) handed from the rasterizer to OCR."""

    page_number: int
    data: bytes = Field(repr=False)
    width: int
    height: int


class PageResult(BaseModel):
    """Page-level extraction data."""

    page_number: int
    text: str
    confidence: float = Field(ge=0, le=100)
    method: PageMethod


class ExtractionResult(BaseModel):
    """Merged output of the extraction orchestrator."""

    text: str
    confidence: float = Field(ge=0, le=100)
    method: ExtractionMethod
    pages: List[PageResult] = Field(default_factory=list)
    engine: str = ""
    processing_time_ms: int = 0


class QuotaState(BaseModel):
    """Persisted cloud OCR usage counters."""

    daily_count: int = 0
    daily_date: str
    monthly_count: int = 0
    monthly_month: str
    last_reset: str | None = None


# ---------------------------------------------------------------------------
# Legal document
# ---------------------------------------------------------------------------


class TextReference(BaseModel):
    """Cross-reference from one legal text to another."""

    type: ReferenceType
    texte_ref: str
    article_ref: str | None = None
    description: str | None = None


class DocumentMetadata(BaseModel):
    """Identification data pulled from the document text."""

    titre: str | None = None
    titre_complet: str | None = None
    nature: Nature | None = None
    numero: str | None = None
    date_signature: date | None = None
    date_publication: date | None = None
    signataires: List[str] = Field(default_factory=list)
    visas: List[str] = Field(default_factory=list)
    references: List[TextReference] = Field(default_factory=list)
    is_code: bool = False


class ArticleNode(BaseModel):
    """One article of a legal text."""

    id: str
    numero: str
    titre: str | None = None
    contenu: str
    alineas: List[str] = Field(default_factory=list)
    etat: ArticleEtat = ArticleEtat.VIGUEUR
    references: List[TextReference] = Field(default_factory=list)
    offset: int = Field(default=0, exclude=True)


class SectionNode(BaseModel):
    """A LIVRE/TITRE/CHAPITRE/... node; owns its children and articles."""

    id: str
    type: SectionType
    numero: str
    titre: str = ""
    niveau: int = Field(ge=1, le=6)
    children: List[SectionNode] = Field(default_factory=list)
    articles: List[ArticleNode] = Field(default_factory=list)
    offset: int = Field(default=0, exclude=True)


class DocumentStructure(BaseModel):
    """Section tree plus the flat, ordered article list."""

    sections: List[SectionNode] = Field(default_factory=list)
    articles: List[ArticleNode] = Field(default_factory=list)
    preambule: str | None = None
    visas: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sections and not self.articles


class ExtractedDocument(BaseModel):
    """Final artifact handed to external persistence/indexing."""

    model_config = ConfigDict(populate_by_name=True)

    raw_text: str
    cleaned_text: str
    metadata: DocumentMetadata
    structure: DocumentStructure
    json_data: dict[str, Any] = Field(default_factory=dict, alias="json")
    html: str = ""
    extraction: ExtractionResult | None = None
