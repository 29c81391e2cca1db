"""Factories building extractors from declarative configuration."""

import logging
import re
from typing import Any, Callable

from versionsift.models import ExtractionResult
from versionsift.pipeline.rules.models import ExtractorFn

from . import python_version
from .python_version import decode_content
from .string_search import StringSearchExtractor

logger = logging.getLogger(__name__)

ExtractorFactory = Callable[[dict[str, Any]], ExtractorFn]

# Built-in extractors that take no configuration, keyed by kind
BUILTIN_EXTRACTORS: dict[str, ExtractorFn] = {
    "python_version_file": python_version.parse_python_version_file,
    "runtime_txt": python_version.parse_runtime_txt,
    "setup_py": python_version.parse_setup_py,
    "pipfile": python_version.parse_pipfile,
    "pyproject_toml": python_version.parse_pyproject_toml,
    "dockerfile": python_version.parse_dockerfile,
    "gitlab_ci": python_version.parse_gitlab_ci,
    "tox_ini": python_version.parse_tox_ini,
    "requirements_txt": python_version.parse_requirements_txt,
}


class UnknownExtractorError(KeyError):
    """Raised when no factory is registered for an extractor kind."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown extractor type"


def _get_option(config: dict[str, Any], key: str, expected: type | tuple[type, ...], default: Any) -> Any:
    """Read an optional config value, ignoring values of the wrong type."""
    value = config.get(key, default)
    accepted = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass
    wrong_bool = isinstance(value, bool) and bool not in accepted
    if wrong_bool or not isinstance(value, accepted):
        logger.warning("Ignoring extractor option %s=%r (expected %s)", key, value, expected)
        return default
    return value


def create_regex_extractor(config: dict[str, Any]) -> ExtractorFn:
    """Extractor returning a regex capture.

    Config keys: ``pattern`` (required), ``version_group`` (named group,
    default "version"; falls back to group 1, then the whole match) and
    ``confidence`` (default 0.5).
    """
    pattern_str = config.get("pattern")
    if not isinstance(pattern_str, str) or not pattern_str:
        raise ValueError("regex extractor requires a 'pattern' string in config")
    try:
        pattern = re.compile(pattern_str)
    except re.error as e:
        raise ValueError(f"invalid regex pattern {pattern_str!r}: {e}") from e

    version_group = _get_option(config, "version_group", str, "version")
    confidence = float(_get_option(config, "confidence", (int, float), 0.5))

    def extract(content: bytes, filename: str) -> ExtractionResult:
        match = pattern.search(decode_content(content))
        if match is None:
            return ExtractionResult.not_found()

        if version_group in pattern.groupindex:
            value = match.group(version_group)
        elif pattern.groups >= 1:
            value = match.group(1)
        else:
            value = match.group(0)

        if not value:
            return ExtractionResult.not_found()
        return ExtractionResult(
            found=True,
            value=value.strip(),
            source=filename,
            confidence=confidence,
            raw_value=value,
        )

    return extract


def create_simple_version_extractor(config: dict[str, Any]) -> ExtractorFn:
    """Extractor treating the whole file as the value.

    Config keys: ``confidence`` (default 1.0), ``trim_whitespace`` (default True).
    """
    confidence = float(_get_option(config, "confidence", (int, float), 1.0))
    trim_whitespace = _get_option(config, "trim_whitespace", bool, True)

    def extract(content: bytes, filename: str) -> ExtractionResult:
        value = decode_content(content)
        if trim_whitespace:
            value = value.strip()
        if not value:
            return ExtractionResult.not_found()
        return ExtractionResult(
            found=True,
            value=value,
            source=filename,
            confidence=confidence,
            raw_value=value,
        )

    return extract


def create_string_search_extractor(config: dict[str, Any]) -> ExtractorFn:
    """Extractor reporting the first line matching a search term.

    Config keys: ``search_term`` (required), ``is_regex``, ``case_sensitive``
    and ``max_matches``.
    """
    search_term = config.get("search_term")
    if not isinstance(search_term, str) or not search_term:
        raise ValueError("string_search extractor requires a 'search_term' string in config")
    return StringSearchExtractor(
        search_term=search_term,
        is_regex=_get_option(config, "is_regex", bool, False),
        case_sensitive=_get_option(config, "case_sensitive", bool, False),
        max_matches=int(_get_option(config, "max_matches", (int, float), 0)),
    )


def _builtin_factory(extractor: ExtractorFn) -> ExtractorFactory:
    def factory(config: dict[str, Any]) -> ExtractorFn:
        return extractor

    return factory


class ExtractorFactories:
    """Maps extractor kinds to factories building configured extractors."""

    def __init__(self) -> None:
        self._factories: dict[str, ExtractorFactory] = {}

    def register(self, kind: str, factory: ExtractorFactory) -> None:
        """Add or replace the factory for an extractor kind."""
        self._factories[kind] = factory

    def get_extractor(self, kind: str, config: dict[str, Any] | None = None) -> ExtractorFn:
        """Build an extractor of the given kind.

        Raises:
            UnknownExtractorError: If no factory is registered for the kind
            ValueError: If the factory rejects the configuration
        """
        factory = self._factories.get(kind)
        if factory is None:
            raise UnknownExtractorError(f"unknown extractor type: {kind}")
        return factory(config or {})

    def kinds(self) -> list[str]:
        """All registered extractor kinds, sorted."""
        return sorted(self._factories)

    def __contains__(self, kind: object) -> bool:
        return kind in self._factories


def default_extractor_factories() -> ExtractorFactories:
    """Create a factory map holding all built-in extractor kinds."""
    factories = ExtractorFactories()
    factories.register("regex", create_regex_extractor)
    factories.register("simple_version", create_simple_version_extractor)
    factories.register("string_search", create_string_search_extractor)
    for kind, extractor in BUILTIN_EXTRACTORS.items():
        factories.register(kind, _builtin_factory(extractor))
    return factories
