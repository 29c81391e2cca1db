"""Loader for declarative rule files (YAML or JSON)."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError

from .errors import RuleValidationError
from .models import DEFAULT_PRIORITY, ExtractorFn, Rule, RuleBuilder
from .registry import RuleRegistry

logger = logging.getLogger(__name__)


class RuleParseError(Exception):
    """Raised when a rule file cannot be parsed."""

    pass


class ExtractorProvider(Protocol):
    """Anything resolving an extractor kind and config to an extractor."""

    def get_extractor(self, kind: str, config: dict[str, Any] | None = None) -> ExtractorFn: ...


class MatchConfig(BaseModel):
    """Serialized match condition."""

    file_pattern: str = ""
    path_pattern: str = ""
    required_content: str = ""
    max_file_size: int = Field(default=0, ge=0)


class ExtractorConfig(BaseModel):
    """Serialized extractor reference."""

    type: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class RuleConfig(BaseModel):
    """Serialized rule."""

    name: str = ""
    description: str = ""
    priority: Optional[int] = None
    enabled: Optional[bool] = None
    tags: list[str] = Field(default_factory=list)
    match: MatchConfig = Field(default_factory=MatchConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)


class RulesFileSettings(BaseModel):
    """Defaults applied to rules that don't set a value themselves."""

    default_enabled: bool = True
    default_priority: int = DEFAULT_PRIORITY


class RulesFile(BaseModel):
    """A complete rule file."""

    version: str = "1.0"
    settings: RulesFileSettings = Field(default_factory=RulesFileSettings)
    rules: list[RuleConfig] = Field(default_factory=list)

    def to_rules(self, extractors: ExtractorProvider) -> list[Rule]:
        """Build every rule in the file.

        Raises:
            RuleParseError: If a rule cannot be built
        """
        return [build_rule(rule_config, extractors, self.settings) for rule_config in self.rules]

    def to_registry(
        self, extractors: ExtractorProvider, registry: Optional[RuleRegistry] = None
    ) -> RuleRegistry:
        """Register every rule in the file into a (new by default) registry.

        Raises:
            RuleParseError: If a rule cannot be built or registered
        """
        registry = registry if registry is not None else RuleRegistry()
        for rule in self.to_rules(extractors):
            try:
                registry.register(rule)
            except RuleValidationError as e:
                raise RuleParseError(f"Failed to register rule '{rule.name}': {e}") from e
        return registry


def _check_regex(rule_name: str, field: str, pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as e:
        raise RuleParseError(f"Rule '{rule_name}': invalid {field}: {e}") from e


def _validate_rule_config(index: int, rule: RuleConfig, seen: set[str]) -> None:
    """Validate a single serialized rule."""
    if not rule.name:
        raise RuleParseError(f"Rule {index}: missing required 'name' field")
    if rule.name in seen:
        raise RuleParseError(f"Duplicate rule name '{rule.name}'")
    seen.add(rule.name)

    if not rule.match.file_pattern and not rule.match.path_pattern:
        raise RuleParseError(
            f"Rule '{rule.name}': at least one match condition "
            "(file_pattern or path_pattern) is required"
        )
    if rule.match.path_pattern:
        _check_regex(rule.name, "path_pattern", rule.match.path_pattern)
    if rule.match.required_content:
        _check_regex(rule.name, "required_content", rule.match.required_content)

    if not rule.extractor.type:
        raise RuleParseError(f"Rule '{rule.name}': missing required extractor 'type'")


def validate_rules_file(rules_file: RulesFile) -> None:
    """Check a rule file for structural problems.

    Raises:
        RuleParseError: If the file has no rules, duplicate names, missing
            match conditions, invalid regexes or missing extractor types
    """
    if not rules_file.version:
        raise RuleParseError("Rule file version is required")
    if not rules_file.rules:
        raise RuleParseError("Rule file must define at least one rule")

    seen: set[str] = set()
    for index, rule in enumerate(rules_file.rules):
        _validate_rule_config(index, rule, seen)


def parse_rules_config(data: Any) -> RulesFile:
    """Parse and validate already-deserialized rule file data.

    Raises:
        RuleParseError: If the data doesn't describe a valid rule file
    """
    if not isinstance(data, dict):
        raise RuleParseError("Rule file must contain a mapping")

    try:
        rules_file = RulesFile.model_validate(data)
    except ValidationError as e:
        raise RuleParseError(f"Invalid rule file: {e}") from e

    validate_rules_file(rules_file)
    return rules_file


def build_rule(
    rule_config: RuleConfig,
    extractors: ExtractorProvider,
    defaults: Optional[RulesFileSettings] = None,
) -> Rule:
    """Convert a serialized rule into a validated Rule.

    Raises:
        RuleParseError: If the extractor can't be created or the rule is invalid
    """
    defaults = defaults or RulesFileSettings()
    builder = RuleBuilder(rule_config.name)
    builder.description(rule_config.description)
    builder.priority(
        rule_config.priority if rule_config.priority is not None else defaults.default_priority
    )
    builder.enabled(rule_config.enabled if rule_config.enabled is not None else defaults.default_enabled)
    builder.tags(*rule_config.tags)

    match = rule_config.match
    if match.file_pattern:
        builder.file_pattern(match.file_pattern)
    if match.path_pattern:
        builder.path_pattern(match.path_pattern)
    if match.required_content:
        builder.required_content(match.required_content)
    if match.max_file_size > 0:
        builder.max_file_size(match.max_file_size)

    try:
        extractor = extractors.get_extractor(rule_config.extractor.type, rule_config.extractor.config)
    except (KeyError, ValueError) as e:
        raise RuleParseError(f"Rule '{rule_config.name}': failed to create extractor: {e}") from e
    builder.extractor(extractor)

    try:
        return builder.build()
    except RuleValidationError as e:
        raise RuleParseError(f"Rule '{rule_config.name}': {e}") from e


def _load_file_data(path: Path) -> Any:
    """Deserialize a rule file by extension; unknown extensions are read as YAML."""
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise RuleParseError(f"Invalid JSON: {e}") from e

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleParseError(f"Invalid YAML: {e}") from e


def load_rules_file(file_path: str | Path) -> RulesFile:
    """
    Load and validate a rule file.

    Args:
        file_path: Path to a .yaml, .yml or .json rule file

    Returns:
        The parsed rule file

    Raises:
        RuleParseError: If the file is malformed
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(file_path)
    rules_file = parse_rules_config(_load_file_data(path))
    logger.info("Loaded %d rule definition(s) from %s", len(rules_file.rules), path)
    return rules_file
