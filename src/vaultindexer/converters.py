"""Attachment types and the content producers that index them."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from vaultindexer.config import Settings, SettingsStore
from vaultindexer.extraction.base import Extractor
from vaultindexer.extraction.gemini import (
    IMAGE_PROMPT,
    PDF_PROMPT,
    GeminiExtractor,
    RequestThrottle,
)
from vaultindexer.extraction.pdf_text import PdfTextExtractor
from vaultindexer.models import ConversionConfig, FileRecord
from vaultindexer.rendering.canvas import render_canvas
from vaultindexer.rendering.templates import (
    CANVAS_FILE_DESCRIPTION,
    DEFAULT_CANVAS_TEMPLATE,
    DEFAULT_IMAGE_TEMPLATE,
    DEFAULT_PDF_TEMPLATE,
    IMAGE_FILE_DESCRIPTION,
    PDF_FILE_DESCRIPTION,
    TemplateRenderer,
)
from vaultindexer.storage.base import FileStore
from vaultindexer.storage.vault import VaultStore
from vaultindexer.sync.coordinator import AttachmentType, SyncCoordinator
from vaultindexer.sync.engine import ContentProducer

LOGGER = logging.getLogger(__name__)

MISSING_KEY_REASON = "No Google API key configured"

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def strip_extension(name: str, extension: str) -> str:
    return re.sub(re.escape(extension) + "$", "", name, flags=re.IGNORECASE)


def template_variables(
    source: FileRecord,
    extension: str,
    extracted_content: str,
    description: str,
    today: date,
) -> Dict[str, Optional[str]]:
    return {
        "title": strip_extension(source.name, extension),
        "filename": source.name,
        "extracted_content": extracted_content,
        "description": description,
        "date": today.isoformat(),
        "size": f"{source.size} bytes",
        "path": source.path,
    }


def attachment_producer(
    store: FileStore,
    renderer: TemplateRenderer,
    extractor: Extractor,
    *,
    extension: str,
    template_path: str,
    fallback_template: str,
    description: str,
    today: Callable[[], date] = date.today,
) -> ContentProducer:
    """Extract an attachment's content and render it into its index document."""

    def produce(source: FileRecord) -> str:
        content = extractor.extract(
            source.size_mb, lambda: store.read_binary(source.path), source.path
        )
        template = renderer.load(template_path, fallback_template)
        variables = template_variables(source, extension, content, description, today())
        return renderer.render(template, variables)

    return produce


def canvas_producer(
    store: FileStore,
    renderer: TemplateRenderer,
    *,
    today: Callable[[], date] = date.today,
) -> ContentProducer:
    def produce(source: FileRecord) -> str:
        content = render_canvas(store.read(source.path), source.path)
        variables = template_variables(
            source, ".canvas", content, CANVAS_FILE_DESCRIPTION, today()
        )
        return renderer.render(DEFAULT_CANVAS_TEMPLATE, variables)

    return produce


def build_extractors(settings: Settings) -> Dict[str, Extractor]:
    """Create one extractor per attachment extension from the settings.

    Gemini extractors share one throttle because they share one API key.
    """
    throttle = RequestThrottle(settings.request_interval)
    extractors: Dict[str, Extractor] = {}
    for extension, mime_type in MIME_TYPES.items():
        if extension == ".pdf" and settings.pdf_backend == "local":
            extractors[extension] = PdfTextExtractor()
            continue
        extractors[extension] = GeminiExtractor(
            settings.api_key,
            mime_type,
            PDF_PROMPT if extension == ".pdf" else IMAGE_PROMPT,
            model=settings.gemini_model,
            throttle=throttle,
        )
    return extractors


def build_attachment_types(
    settings: Settings,
    store: FileStore,
    *,
    renderer: Optional[TemplateRenderer] = None,
    extractors: Optional[Mapping[str, Extractor]] = None,
    today: Callable[[], date] = date.today,
) -> List[AttachmentType]:
    """Return the attachment types in the order they are synchronized.

    Canvases come first since they need no extraction service, then PDFs,
    then images.
    """
    renderer = renderer or TemplateRenderer(store)
    extractors = extractors if extractors is not None else build_extractors(settings)
    index_folder = settings.index_folder

    types = [
        AttachmentType(
            name="canvas",
            config=ConversionConfig.for_extension(index_folder, ".canvas"),
            content_producer=canvas_producer(store, renderer, today=today),
        )
    ]

    template_paths = {
        ".pdf": settings.pdf_template_path,
        ".png": settings.png_template_path,
        ".jpg": settings.jpg_template_path,
        ".jpeg": settings.jpeg_template_path,
    }
    for extension in (".pdf", ".png", ".jpg", ".jpeg"):
        extractor = extractors[extension]
        is_pdf = extension == ".pdf"
        types.append(
            AttachmentType(
                name=extension.lstrip("."),
                config=ConversionConfig.for_extension(index_folder, extension),
                content_producer=attachment_producer(
                    store,
                    renderer,
                    extractor,
                    extension=extension,
                    template_path=template_paths[extension],
                    fallback_template=DEFAULT_PDF_TEMPLATE if is_pdf else DEFAULT_IMAGE_TEMPLATE,
                    description=PDF_FILE_DESCRIPTION if is_pdf else IMAGE_FILE_DESCRIPTION,
                    today=today,
                ),
                precondition=extractor.is_available,
                skip_reason=MISSING_KEY_REASON,
            )
        )
    LOGGER.debug("Configured attachment types: %s", [item.name for item in types])
    return types


def build_coordinator(vault: Path, settings: Optional[Settings] = None) -> SyncCoordinator:
    """Wire a coordinator for a vault directory using its stored settings."""
    settings = settings or SettingsStore(vault).load()
    store = VaultStore(vault)
    return SyncCoordinator(store, build_attachment_types(settings, store))
