from typing import Callable

import pytest

from versionsift.config import AppSettings, get_settings, set_settings
from versionsift.models import ExtractionResult
from versionsift.pipeline.rules import ExtractorFn, RuleBuilder, RuleRegistry


@pytest.fixture(autouse=True)
def isolated_settings():
    """Give every test fresh default settings and restore the previous ones afterwards."""
    original_settings = get_settings()
    set_settings(AppSettings())

    yield

    set_settings(original_settings)


@pytest.fixture
def make_extractor() -> Callable[..., ExtractorFn]:
    """Factory for extractors that always find a fixed value."""

    def factory(value: str, confidence: float = 1.0, calls: list | None = None) -> ExtractorFn:
        def extract(content: bytes, filename: str) -> ExtractionResult:
            if calls is not None:
                calls.append(value)
            return ExtractionResult(found=True, value=value, confidence=confidence)

        return extract

    return factory


@pytest.fixture
def make_rule(make_extractor):
    """Factory for valid rules matching a filename glob."""

    def factory(
        name: str,
        priority: int = 50,
        file_pattern: str = "*",
        value: str | None = None,
        confidence: float = 1.0,
        tags: tuple[str, ...] = (),
        calls: list | None = None,
    ):
        return (
            RuleBuilder(name)
            .priority(priority)
            .file_pattern(file_pattern)
            .extractor(make_extractor(value or name, confidence, calls))
            .tags(*tags)
            .build()
        )

    return factory


@pytest.fixture
def registry() -> RuleRegistry:
    """An empty registry."""
    return RuleRegistry()
