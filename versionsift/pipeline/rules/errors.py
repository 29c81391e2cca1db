"""Exceptions raised by the rule engine."""


class RuleEngineError(Exception):
    """Base class for rule engine errors."""

    pass


class RuleValidationError(RuleEngineError):
    """Raised when a rule is structurally invalid and cannot be registered."""

    pass


class RuleDisabledError(RuleEngineError):
    """Raised when a disabled rule is applied."""

    def __init__(self, rule_name: str):
        super().__init__(f"rule {rule_name} is disabled")
        self.rule_name = rule_name


class SizeExceededError(RuleEngineError):
    """Raised when file content is larger than a rule's size cap."""

    def __init__(self, size: int, max_size: int):
        super().__init__(f"file size {size} exceeds maximum {max_size} bytes")
        self.size = size
        self.max_size = max_size


class ExtractorError(RuleEngineError):
    """Raised when a rule's extractor fails; the original error is the __cause__."""

    def __init__(self, rule_name: str, message: str):
        super().__init__(f"extractor error in rule {rule_name}: {message}")
        self.rule_name = rule_name


class CancellationError(RuleEngineError):
    """Raised when execution is cancelled between two rule applications."""

    pass
