"""Data models for the rules system."""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from versionsift.models import ExtractionResult

from .errors import (
    ExtractorError,
    RuleDisabledError,
    RuleValidationError,
    SizeExceededError,
)
from .matcher import rule_matches

logger = logging.getLogger(__name__)

# Extractors take the raw file content and the bare filename. They raise to
# signal a failure and return a not-found result (or None) when the file
# simply doesn't contain what they look for.
ExtractorFn = Callable[[bytes, str], Optional[ExtractionResult]]

DEFAULT_PRIORITY = 50


@dataclass(frozen=True)
class MatchCondition:
    """Predicate deciding whether a rule applies to a file."""

    file_pattern: str = ""  # Glob against the bare filename
    path_pattern: Optional[re.Pattern[str]] = None  # Regex searched in the full path
    required_content: Optional[re.Pattern[bytes]] = None  # Content pre-filter
    max_file_size: int = 0  # 0 means unlimited

    def has_location_constraint(self) -> bool:
        """True if a filename or path constraint is set."""
        return bool(self.file_pattern) or self.path_pattern is not None


@dataclass
class Rule:
    """A named, prioritized binding of a match condition to an extractor.

    Lower priority values are evaluated first.
    """

    name: str
    extractor: Optional[ExtractorFn] = None
    condition: MatchCondition = field(default_factory=MatchCondition)
    description: str = ""
    priority: int = DEFAULT_PRIORITY
    enabled: bool = True
    tags: list[str] = field(default_factory=list)

    def matches(self, filename: str, filepath: str) -> bool:
        """Check if this rule should be applied to the given file."""
        return rule_matches(self, filename, filepath)

    def has_any_tag(self, tags: Iterable[str]) -> bool:
        """Check if this rule carries at least one of the given tags."""
        wanted = set(tags)
        return any(tag in wanted for tag in self.tags)

    def apply(self, content: bytes, filename: str) -> ExtractionResult:
        """Run the extractor on file content.

        Args:
            content: Raw file content
            filename: Bare filename, passed through to the extractor

        Returns:
            The extraction result; ``found`` is False when the content
            pre-filter rejects the file or the extractor finds nothing.

        Raises:
            RuleDisabledError: If the rule is disabled
            SizeExceededError: If the content is larger than ``max_file_size``
            ExtractorError: If the extractor raises
        """
        if not self.enabled:
            raise RuleDisabledError(self.name)

        max_size = self.condition.max_file_size
        if max_size > 0 and len(content) > max_size:
            raise SizeExceededError(len(content), max_size)

        required = self.condition.required_content
        if required is not None and required.search(content) is None:
            logger.debug("Rule %s skipped %s: required content not present", self.name, filename)
            return ExtractionResult.not_found()

        if self.extractor is None:
            raise RuleValidationError(f"rule {self.name}: extractor function is required")

        try:
            result = self.extractor(content, filename)
        except Exception as e:
            raise ExtractorError(self.name, str(e)) from e

        if result is None:
            return ExtractionResult.not_found()
        if result.found and not result.source:
            result.source = filename
        return result

    def validate(self) -> None:
        """Check that the rule is properly configured.

        Raises:
            RuleValidationError: If the name, extractor or match condition is missing
        """
        if not self.name:
            raise RuleValidationError("rule name cannot be empty")

        if self.extractor is None:
            raise RuleValidationError(f"rule {self.name}: extractor function is required")

        if not self.condition.has_location_constraint():
            raise RuleValidationError(
                f"rule {self.name}: at least one match condition "
                "(file_pattern or path_pattern) is required"
            )

        if self.condition.path_pattern is not None and not self.condition.path_pattern.pattern:
            raise RuleValidationError(f"rule {self.name}: path_pattern regex is empty")

        if (
            self.condition.required_content is not None
            and not self.condition.required_content.pattern
        ):
            raise RuleValidationError(f"rule {self.name}: required_content regex is empty")

        if self.condition.max_file_size < 0:
            raise RuleValidationError(f"rule {self.name}: max_file_size cannot be negative")

    def clone(self) -> "Rule":
        """Copy the rule; tags are copied, compiled patterns are shared."""
        return replace(self, tags=list(self.tags))


class RuleBuilder:
    """Fluent constructor for rules.

    Invalid regexes are remembered and reported by ``build``.
    """

    def __init__(self, name: str):
        self._rule = Rule(name=name)
        self._error: Optional[str] = None

    def _set_condition(self, **changes) -> "RuleBuilder":
        self._rule.condition = replace(self._rule.condition, **changes)
        return self

    def _compile(self, kind: str, pattern: str | bytes) -> Optional[re.Pattern]:
        try:
            return re.compile(pattern)
        except re.error as e:
            if self._error is None:
                self._error = f"invalid {kind} pattern {pattern!r}: {e}"
            return None

    def description(self, description: str) -> "RuleBuilder":
        self._rule.description = description
        return self

    def priority(self, priority: int) -> "RuleBuilder":
        """Set the priority (lower number = evaluated earlier)."""
        self._rule.priority = priority
        return self

    def file_pattern(self, pattern: str) -> "RuleBuilder":
        return self._set_condition(file_pattern=pattern)

    def path_pattern(self, pattern: str) -> "RuleBuilder":
        compiled = self._compile("path", pattern)
        if compiled is None:
            return self
        return self._set_condition(path_pattern=compiled)

    def required_content(self, pattern: str) -> "RuleBuilder":
        """Set a regex that must occur in the content before the extractor runs."""
        compiled = self._compile("required content", pattern.encode("utf-8"))
        if compiled is None:
            return self
        return self._set_condition(required_content=compiled)

    def max_file_size(self, size: int) -> "RuleBuilder":
        return self._set_condition(max_file_size=size)

    def extractor(self, extractor: ExtractorFn) -> "RuleBuilder":
        self._rule.extractor = extractor
        return self

    def enabled(self, enabled: bool) -> "RuleBuilder":
        self._rule.enabled = enabled
        return self

    def tags(self, *tags: str) -> "RuleBuilder":
        """Set the tags; repeated tags are kept once, in first-seen order."""
        self._rule.tags = list(dict.fromkeys(tags))
        return self

    def build(self) -> Rule:
        """Validate and return the rule.

        Raises:
            RuleValidationError: If a pattern failed to compile or the rule is invalid
        """
        if self._error is not None:
            raise RuleValidationError(f"rule {self._rule.name}: {self._error}")
        self._rule.validate()
        return self._rule.clone()

    def must_build(self) -> Rule:
        """Build a rule from a static table; an invalid rule is a programming bug."""
        try:
            return self.build()
        except RuleValidationError as e:
            raise RuntimeError(f"failed to build rule: {e}") from e
