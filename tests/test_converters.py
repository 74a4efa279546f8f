"""Tests for attachment type wiring and content producers."""

from __future__ import annotations

import json
import os
from datetime import date
from pathlib import Path
from unittest.mock import Mock

import pytest

from vaultindexer.config import Settings
from vaultindexer.converters import (
    MISSING_KEY_REASON,
    attachment_producer,
    build_attachment_types,
    build_coordinator,
    build_extractors,
    canvas_producer,
    strip_extension,
)
from vaultindexer.extraction.gemini import GeminiExtractor
from vaultindexer.extraction.pdf_text import PdfTextExtractor
from vaultindexer.models import FileRecord
from vaultindexer.rendering.templates import TemplateRenderer
from vaultindexer.sync.coordinator import RunStatus, SyncCoordinator, TypeStatus


def fixed_day() -> date:
    return date(2024, 5, 17)


def fake_extractor(text: str = "extracted", available: bool = True) -> Mock:
    extractor = Mock()
    extractor.is_available.return_value = available
    extractor.extract.side_effect = lambda size_mb, fetch, path: f"{text}:{fetch().decode()}"
    return extractor


class TestStripExtension:
    def test_case_insensitive(self) -> None:
        assert strip_extension("Photo.PNG", ".png") == "Photo"

    def test_only_suffix(self) -> None:
        assert strip_extension("a.png.backup.png", ".png") == "a.png.backup"


class TestAttachmentProducer:
    def test_renders_custom_template(self, store) -> None:
        store.add("scans/receipt.png", "PNGDATA", mtime=1)
        store.add("Templates/Visual Note.md", "{{title}}|{{filename}}|{{extracted_content}}|{{date}}|{{size}}|{{path}}")
        produce = attachment_producer(
            store,
            TemplateRenderer(store),
            fake_extractor(),
            extension=".png",
            template_path="Templates/Visual Note.md",
            fallback_template="unused",
            description="desc",
            today=fixed_day,
        )
        source = FileRecord(path="scans/receipt.png", name="receipt.png", mtime=1, size=7)

        result = produce(source)

        assert result == "receipt|receipt.png|extracted:PNGDATA|2024-05-17|7 bytes|scans/receipt.png"

    def test_falls_back_to_default_template(self, store) -> None:
        store.add("a.pdf", "PDF", mtime=1)
        produce = attachment_producer(
            store,
            TemplateRenderer(store),
            fake_extractor(),
            extension=".pdf",
            template_path="Templates/missing.md",
            fallback_template="# {{title}}\n{{description}}",
            description="A PDF",
            today=fixed_day,
        )

        result = produce(FileRecord(path="a.pdf", name="a.pdf", mtime=1, size=3))

        assert result == "# a\nA PDF"

    def test_passes_size_in_mb(self, store) -> None:
        extractor = fake_extractor()
        store.add("big.png", "x", mtime=1)
        produce = attachment_producer(
            store,
            TemplateRenderer(store),
            extractor,
            extension=".png",
            template_path="",
            fallback_template="{{extracted_content}}",
            description="",
        )

        produce(FileRecord(path="big.png", name="big.png", mtime=1, size=3 * 1024 * 1024))

        assert extractor.extract.call_args.args[0] == 3.0
        assert extractor.extract.call_args.args[2] == "big.png"


class TestCanvasProducer:
    def test_renders_canvas(self, store) -> None:
        canvas = {"nodes": [{"id": "t", "type": "text", "text": "Plan the garden"}]}
        store.add("boards/garden.canvas", json.dumps(canvas), mtime=1)
        produce = canvas_producer(store, TemplateRenderer(store), today=fixed_day)

        result = produce(
            FileRecord(path="boards/garden.canvas", name="garden.canvas", mtime=1, size=10)
        )

        assert "# garden" in result
        assert "Plan the garden" in result
        assert "[[boards/garden.canvas]]" in result
        assert "indexed: 2024-05-17" in result


class TestBuildExtractors:
    def test_gemini_for_all_by_default(self) -> None:
        extractors = build_extractors(Settings(google_api_key="key"))

        assert set(extractors) == {".pdf", ".png", ".jpg", ".jpeg"}
        assert all(isinstance(item, GeminiExtractor) for item in extractors.values())
        assert extractors[".jpg"].mime_type == "image/jpeg"
        assert extractors[".pdf"].mime_type == "application/pdf"

    def test_local_pdf_backend(self) -> None:
        extractors = build_extractors(Settings(pdf_backend="local"))

        assert isinstance(extractors[".pdf"], PdfTextExtractor)
        assert isinstance(extractors[".png"], GeminiExtractor)

    def test_gemini_extractors_share_one_throttle(self) -> None:
        """All extractors using the same key are rate limited together."""
        extractors = build_extractors(Settings(google_api_key="key", request_interval=2.5))

        throttles = {id(item.throttle) for item in extractors.values()}
        assert len(throttles) == 1
        assert extractors[".png"].throttle.interval == 2.5


class TestBuildAttachmentTypes:
    def test_priority_order_and_configs(self, store) -> None:
        extractors = {ext: fake_extractor() for ext in (".pdf", ".png", ".jpg", ".jpeg")}

        types = build_attachment_types(Settings(index_folder="idx"), store, extractors=extractors)

        assert [item.name for item in types] == ["canvas", "pdf", "png", "jpg", "jpeg"]
        assert types[0].precondition is None
        assert types[2].config.index_folder == "idx"
        assert types[2].config.target_extension == ".png.md"
        assert {item.config.target_extension for item in types} == {
            ".canvas.md",
            ".pdf.md",
            ".png.md",
            ".jpg.md",
            ".jpeg.md",
        }

    def test_end_to_end_with_missing_key(self, store) -> None:
        """Without an extraction service only canvases are indexed."""
        store.add("board.canvas", json.dumps({"nodes": []}), mtime=1)
        store.add("photo.png", "PNG", mtime=1)
        extractors = {
            ext: fake_extractor(available=False) for ext in (".pdf", ".png", ".jpg", ".jpeg")
        }
        types = build_attachment_types(Settings(), store, extractors=extractors, today=fixed_day)

        report = SyncCoordinator(store, types).run()

        assert report.status is RunStatus.SUCCESS
        assert report.results[0].status is TypeStatus.COMPLETED
        assert all(result.status is TypeStatus.SKIPPED for result in report.results[1:])
        assert report.results[1].detail == MISSING_KEY_REASON
        assert "index/board.canvas.md" in store.files
        assert "index/photo.png.md" not in store.files


class TestBuildCoordinator:
    def test_uses_vault_settings(self, tmp_path: Path) -> None:
        settings_dir = tmp_path / ".vaultindexer"
        settings_dir.mkdir()
        (settings_dir / "settings.json").write_text('{"index_folder": "search"}', encoding="utf-8")
        (tmp_path / "board.canvas").write_text('{"nodes": []}', encoding="utf-8")

        coordinator = build_coordinator(tmp_path)
        report = coordinator.run()

        assert report.results[0].status is TypeStatus.COMPLETED
        assert (tmp_path / "search" / "board.canvas.md").exists()

    def test_relative_index_folder_second_run_has_no_work(self, tmp_path: Path) -> None:
        """A ``./`` prefixed index folder still finds its own documents on the next run."""
        settings_dir = tmp_path / ".vaultindexer"
        settings_dir.mkdir()
        (settings_dir / "settings.json").write_text('{"index_folder": "./index"}', encoding="utf-8")
        source = tmp_path / "board.canvas"
        source.write_text('{"nodes": []}', encoding="utf-8")
        os.utime(source, (1_000_000, 1_000_000))

        first = build_coordinator(tmp_path).run().results[0].outcome
        (tmp_path / "index" / "gone.canvas.md").write_text("orphan", encoding="utf-8")
        second = build_coordinator(tmp_path).run().results[0].outcome

        assert first.created_names == ["board.canvas"]
        assert second.created_count == 0
        assert second.modified_count == 0
        assert second.removed_paths == ["index/gone.canvas.md"]
        assert (tmp_path / "index" / "board.canvas.md").exists()
