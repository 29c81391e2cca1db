"""Extractor searching file content for an arbitrary string or regex."""

import re
from dataclasses import dataclass

from pydantic import BaseModel, Field

from versionsift.models import ExtractionResult

from .python_version import decode_content


class ContentMatch(BaseModel):
    """A single line matching a search term."""

    file_path: str = Field(description="File the match was found in")
    line_number: int = Field(ge=1, description="Line number (1-indexed)")
    line_content: str = Field(description="The full matching line")
    matched_text: str = Field(description="The text that matched the search term")


@dataclass
class StringSearchExtractor:
    """Finds lines containing a literal string or regex.

    Literal searches are case-insensitive unless ``case_sensitive`` is set;
    regex searches get the ``re.IGNORECASE`` flag under the same rule.
    """

    search_term: str
    is_regex: bool = False
    case_sensitive: bool = False
    max_matches: int = 0  # 0 means unlimited

    def __post_init__(self) -> None:
        if not self.search_term:
            raise ValueError("search term cannot be empty")
        self._compiled = self._compile()

    def _compile(self) -> re.Pattern[str]:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        if not self.is_regex:
            return re.compile(re.escape(self.search_term), flags)
        try:
            return re.compile(self.search_term, flags)
        except re.error as e:
            raise ValueError(f"invalid regex pattern {self.search_term!r}: {e}") from e

    def search(self, content: bytes, filename: str) -> list[ContentMatch]:
        """Find all lines matching the search term, up to ``max_matches``."""
        matches: list[ContentMatch] = []
        for line_number, line in enumerate(decode_content(content).split("\n"), 1):
            found = self._compiled.search(line)
            if not found:
                continue
            matches.append(
                ContentMatch(
                    file_path=filename,
                    line_number=line_number,
                    line_content=line.rstrip("\r"),
                    matched_text=found.group(0),
                )
            )
            if self.max_matches > 0 and len(matches) >= self.max_matches:
                break
        return matches

    def __call__(self, content: bytes, filename: str) -> ExtractionResult:
        matches = self.search(content, filename)
        if not matches:
            return ExtractionResult.not_found()

        first = matches[0]
        return ExtractionResult(
            found=True,
            value=first.matched_text,
            source=filename,
            confidence=1.0,
            raw_value=first.line_content,
            metadata={
                "match_count": str(len(matches)),
                "line_number": str(first.line_number),
            },
        )
