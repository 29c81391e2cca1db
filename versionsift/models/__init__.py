"""Data models for versionsift."""

from versionsift.models.extraction import (
    ExecutionOptions,
    ExecutionResult,
    ExtractionResult,
    RegistryStatistics,
    RuleFailure,
)
from versionsift.models.scan import FileScanResult, ScanReport

__all__ = [
    "ExecutionOptions",
    "ExecutionResult",
    "ExtractionResult",
    "FileScanResult",
    "RegistryStatistics",
    "RuleFailure",
    "ScanReport",
]
