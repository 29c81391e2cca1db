"""Output formatters for versionsift results."""

from versionsift.formatters.json import format_as_json

__all__ = ["format_as_json"]
