"""Models for scanning a directory tree."""

from pathlib import Path

from pydantic import BaseModel, Field

from versionsift.models.extraction import ExecutionResult, ExtractionResult


class FileScanResult(BaseModel):
    """Rule execution outcome for one file found during a scan."""

    path: Path = Field(description="Path to the scanned file")
    execution: ExecutionResult = Field(description="Result of executing the matching rules")


class ScanReport(BaseModel):
    """Result of scanning a directory tree."""

    root: Path = Field(description="Root of the scanned tree")
    files: list[FileScanResult] = Field(
        default_factory=list, description="Files that had at least one candidate rule"
    )
    failed_files: dict[Path, str] = Field(
        default_factory=dict, description="Files that could not be read"
    )
    files_seen: int = Field(default=0, ge=0, description="Files visited during the walk")

    @property
    def best_result(self) -> ExtractionResult | None:
        """Highest confidence result across all files (ties keep the earlier path)."""
        best: ExtractionResult | None = None
        for file_result in self.files:
            candidate = file_result.execution.best_result
            if candidate is None:
                continue
            if best is None or candidate.confidence > best.confidence:
                best = candidate
        return best

    @property
    def error_count(self) -> int:
        """Number of rule failures across all files."""
        return sum(len(f.execution.errors) for f in self.files)

    @property
    def rules_applied(self) -> int:
        """Number of rule invocations across all files."""
        return sum(f.execution.rules_applied for f in self.files)
