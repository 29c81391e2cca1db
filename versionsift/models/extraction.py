"""Models for extraction results and rule execution."""

from pydantic import BaseModel, Field


class ExtractionResult(BaseModel):
    """The outcome of running a single extractor against file content."""

    found: bool = Field(default=False, description="Whether the extractor found what it looks for")
    value: str = Field(default="", description="Extracted fact (e.g. a Python version)")
    source: str = Field(default="", description="File the value came from (defaults to the filename)")
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Reliability of the result (0.0 to 1.0)"
    )
    raw_value: str = Field(default="", description="Unprocessed matched text, for auditing")
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Open-ended extractor specific details"
    )

    @classmethod
    def not_found(cls) -> "ExtractionResult":
        """Build a result reporting that nothing was found."""
        return cls(found=False)

    def __str__(self) -> str:
        """Format as human-readable string."""
        if not self.found:
            return "<not found>"
        return f"{self.value} from {self.source} ({self.confidence:.0%} confidence)"


class ExecutionOptions(BaseModel):
    """Options controlling a single rule execution batch."""

    stop_on_first_match: bool = Field(
        default=False, description="Stop after the first accepted result"
    )
    max_results: int = Field(default=0, ge=0, description="Result cap (0 = unlimited)")
    min_confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Discard results below this confidence"
    )
    tags: list[str] = Field(
        default_factory=list, description="Only run rules carrying at least one of these tags"
    )

    @classmethod
    def default(cls) -> "ExecutionOptions":
        """No stop, no cap, no confidence floor, no tag filter."""
        return cls()


class RuleFailure(BaseModel):
    """An error raised while applying one rule."""

    model_config = {"arbitrary_types_allowed": True}

    rule_name: str = Field(description="Name of the rule that failed")
    error: Exception = Field(description="The raised error")

    def __str__(self) -> str:
        return f"rule {self.rule_name}: {self.error}"


class ExecutionResult(BaseModel):
    """Result of executing the matching rules against one file."""

    file: str = Field(description="Name of the processed file")
    results: list[ExtractionResult] = Field(
        default_factory=list, description="Accepted results, in priority order"
    )
    best_result: ExtractionResult | None = Field(
        default=None, description="Highest confidence accepted result"
    )
    rules_applied: int = Field(default=0, ge=0, description="Number of rules actually invoked")
    errors: list[RuleFailure] = Field(
        default_factory=list, description="Per-rule failures, including cancellation"
    )

    @property
    def found(self) -> bool:
        """True if at least one result was accepted."""
        return self.best_result is not None

    @property
    def has_errors(self) -> bool:
        """True if any rule failed or execution was cancelled."""
        return bool(self.errors)


class RegistryStatistics(BaseModel):
    """Counts describing the contents of a rule registry."""

    total_rules: int = 0
    enabled_rules: int = 0
    disabled_rules: int = 0
    rules_by_priority: dict[int, int] = Field(default_factory=dict)
    rules_by_tag: dict[str, int] = Field(default_factory=dict)
