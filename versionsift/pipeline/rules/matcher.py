"""Filename and path matching for rules."""

import re
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Rule


def glob_to_regex(glob: str) -> str:
    """Translate a simple glob into an anchored regular expression.

    Only ``*`` (any run of characters) and ``?`` (exactly one character)
    are special; everything else is matched literally.
    """
    parts = []
    for char in glob:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=256)
def _compile_glob(glob: str) -> re.Pattern[str]:
    return re.compile(glob_to_regex(glob), re.DOTALL)


def match_filename(pattern: str, filename: str) -> bool:
    """Check if a bare filename matches a glob pattern (empty pattern matches anything)."""
    if not pattern or pattern == filename:
        return True
    return _compile_glob(pattern).fullmatch(filename) is not None


def match_path(pattern: re.Pattern[str] | None, filepath: str) -> bool:
    """Check if a full path matches an optional path regex (searched, not anchored)."""
    if pattern is None:
        return True
    return pattern.search(filepath) is not None


def rule_matches(rule: "Rule", filename: str, filepath: str) -> bool:
    """Decide whether a rule is a candidate for a file without reading its content."""
    if not rule.enabled:
        return False
    condition = rule.condition
    return match_filename(condition.file_pattern, filename) and match_path(
        condition.path_pattern, filepath
    )
