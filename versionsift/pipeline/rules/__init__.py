"""Rules system: matching, storage and execution of extraction rules."""

from .engine import RuleEngine, filter_by_tags
from .errors import (
    CancellationError,
    ExtractorError,
    RuleDisabledError,
    RuleEngineError,
    RuleValidationError,
    SizeExceededError,
)
from .matcher import glob_to_regex, match_filename
from .models import DEFAULT_PRIORITY, ExtractorFn, MatchCondition, Rule, RuleBuilder
from .parser import RuleParseError, RulesFile, build_rule, load_rules_file, parse_rules_config
from .registry import RuleRegistry

__all__ = [
    "CancellationError",
    "DEFAULT_PRIORITY",
    "ExtractorError",
    "ExtractorFn",
    "MatchCondition",
    "Rule",
    "RuleBuilder",
    "RuleDisabledError",
    "RuleEngine",
    "RuleEngineError",
    "RuleParseError",
    "RuleRegistry",
    "RuleValidationError",
    "RulesFile",
    "SizeExceededError",
    "build_rule",
    "filter_by_tags",
    "glob_to_regex",
    "load_rules_file",
    "match_filename",
    "parse_rules_config",
]
