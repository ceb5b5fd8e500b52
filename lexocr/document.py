"""End-to-end pipeline: PDF -> text -> cleaned text -> metadata/structure -> renderings."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .cleaning import clean_text
from .config import PipelineConfig
from .extract import ExtractionOrchestrator
from .metadata import extract_metadata
from .render import generate_html, generate_json
from .schema import ExtractedDocument, ExtractionResult
from .structure import extract_structure

logger = logging.getLogger(__name__)


def _build_document(raw_text: str, extraction: ExtractionResult | None = None) -> ExtractedDocument:
    start = time.perf_counter()
    cleaned = clean_text(raw_text)

    # Metadata and structure read the same immutable string
    with ThreadPoolExecutor(max_workers=2) as executor:
        metadata_future = executor.submit(extract_metadata, cleaned)
        structure_future = executor.submit(extract_structure, cleaned)
        metadata = metadata_future.result()
        structure = structure_future.result()

    document = ExtractedDocument(
        raw_text=raw_text,
        cleaned_text=cleaned,
        metadata=metadata,
        structure=structure,
        json_data=generate_json(metadata, structure),
        html=generate_html(metadata, structure),
        extraction=extraction,
    )
    logger.info(
        "Document processed: %d chars cleaned, %d article(s), %d root section(s) in %d ms",
        len(cleaned),
        len(structure.articles),
        len(structure.sections),
        int((time.perf_counter() - start) * 1000),
    )
    return document


def process_text(raw_text: str) -> ExtractedDocument:
    """Run cleaning, parsing and rendering on already-extracted text."""
    return _build_document(raw_text)


def process_document(
    source: bytes | str | Path,
    config: PipelineConfig | None = None,
    orchestrator: ExtractionOrchestrator | None = None,
) -> ExtractedDocument:
    """Extract a PDF and turn it into an ``ExtractedDocument``.

    Raises ``ExtractionFailure`` when no text can be obtained at all.
    """
    orchestrator = orchestrator or ExtractionOrchestrator.from_config(config)
    extraction = orchestrator.extract(source)
    return _build_document(extraction.text, extraction)
