"""Content extraction contract."""

from __future__ import annotations

from typing import Callable, Protocol

BytesFetcher = Callable[[], bytes]


class Extractor(Protocol):
    """Turns attachment bytes into text.

    ``extract`` raises ``FatalExtractionError`` when no further attachment can
    be processed in this run and ``RecoverableExtractionError`` when only the
    current one failed. ``fetch_bytes`` is called lazily so oversized
    attachments are rejected without reading them.
    """

    def is_available(self) -> bool: ...

    def extract(self, size_mb: float, fetch_bytes: BytesFetcher, path: str) -> str: ...
