"""JSON formatter for scan results."""

import json
from typing import Any

from versionsift.models import ExecutionResult, ExtractionResult, ScanReport


def _extraction_to_dict(result: ExtractionResult) -> dict[str, Any]:
    """Convert an ExtractionResult to a dictionary."""
    return {
        "value": result.value,
        "source": result.source,
        "confidence": result.confidence,
        "raw_value": result.raw_value,
        "metadata": result.metadata,
    }


def _execution_to_dict(execution: ExecutionResult) -> dict[str, Any]:
    """Convert an ExecutionResult to a dictionary."""
    best = execution.best_result
    return {
        "file": execution.file,
        "rules_applied": execution.rules_applied,
        "results": [_extraction_to_dict(r) for r in execution.results],
        "best_result": _extraction_to_dict(best) if best else None,
        "errors": [
            {"rule": failure.rule_name, "error": str(failure.error)} for failure in execution.errors
        ],
    }


def format_as_json(report: ScanReport, *, pretty: bool = True) -> str:
    """Format a scan report as JSON.

    Args:
        report: The scan report to format
        pretty: If True, format with indentation for readability

    Returns:
        JSON-formatted string
    """
    best = report.best_result
    data = {
        "root": str(report.root),
        "files_seen": report.files_seen,
        "rules_applied": report.rules_applied,
        "best_result": _extraction_to_dict(best) if best else None,
        "files": [
            {"path": str(f.path), **_execution_to_dict(f.execution)} for f in report.files
        ],
        "failed_files": [
            {"file_path": str(path), "error": error} for path, error in report.failed_files.items()
        ],
    }

    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data)
