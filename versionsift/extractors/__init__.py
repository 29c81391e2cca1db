"""Extractors turning file content into extraction results."""

from versionsift.extractors.factory import (
    BUILTIN_EXTRACTORS,
    ExtractorFactories,
    UnknownExtractorError,
    default_extractor_factories,
)
from versionsift.extractors.string_search import ContentMatch, StringSearchExtractor

__all__ = [
    "BUILTIN_EXTRACTORS",
    "ContentMatch",
    "ExtractorFactories",
    "StringSearchExtractor",
    "UnknownExtractorError",
    "default_extractor_factories",
]
