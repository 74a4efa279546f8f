"""Mapping between attachment names and index document paths."""

from __future__ import annotations

from vaultindexer.models import ConversionConfig


def derivative_source_name(derivative_name: str, config: ConversionConfig) -> str:
    """Return the attachment name an index document was generated from."""
    stem = derivative_name[: -len(config.target_extension)]
    return stem + config.source_extension


def derivative_path(source_name: str, config: ConversionConfig) -> str:
    """Return the index document path for an attachment name."""
    stem = source_name[: -len(config.source_extension)]
    return f"{config.index_folder}/{stem}{config.target_extension}"


def is_source(path: str, config: ConversionConfig) -> bool:
    return path.endswith(config.source_extension)


def is_derivative(path: str, config: ConversionConfig) -> bool:
    return path.startswith(f"{config.index_folder}/") and path.endswith(config.target_extension)
