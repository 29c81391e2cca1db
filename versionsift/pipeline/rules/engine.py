"""Rule engine for running matching rules against file content."""

import logging
import threading
from typing import Iterable, Optional

from versionsift.models import (
    ExecutionOptions,
    ExecutionResult,
    ExtractionResult,
    RuleFailure,
)

from .errors import CancellationError, RuleEngineError
from .models import Rule
from .registry import RuleRegistry

logger = logging.getLogger(__name__)


def filter_by_tags(rules: list[Rule], tags: Iterable[str]) -> list[Rule]:
    """Keep rules carrying at least one of the given tags (no tags = keep all)."""
    wanted = set(tags)
    if not wanted:
        return rules
    return [rule for rule in rules if rule.has_any_tag(wanted)]


def _is_cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


class RuleEngine:
    """Engine applying a registry's rules to files in priority order."""

    def __init__(self, registry: RuleRegistry):
        """Initialize the rule engine with the registry it reads rules from."""
        self.registry = registry

    def select_rules(
        self, filename: str, filepath: str, options: Optional[ExecutionOptions] = None
    ) -> list[Rule]:
        """Rules that would run for a file, in evaluation order."""
        options = options or ExecutionOptions.default()
        rules = self.registry.find_matching_rules(filename, filepath)
        return filter_by_tags(rules, options.tags)

    def _accept(
        self, rule: Rule, extraction: ExtractionResult, result: ExecutionResult, options: ExecutionOptions
    ) -> bool:
        """Fold a found extraction into the result. Returns False if it was discarded."""
        if options.min_confidence > 0 and extraction.confidence < options.min_confidence:
            logger.debug(
                "Rule %s result discarded: confidence %.2f below %.2f",
                rule.name,
                extraction.confidence,
                options.min_confidence,
            )
            return False

        result.results.append(extraction)
        # Ties keep the earlier, higher priority result
        if result.best_result is None or extraction.confidence > result.best_result.confidence:
            result.best_result = extraction
        return True

    def _should_stop(self, result: ExecutionResult, options: ExecutionOptions) -> bool:
        if options.stop_on_first_match:
            return True
        return options.max_results > 0 and len(result.results) >= options.max_results

    def execute(
        self,
        content: bytes,
        filename: str,
        filepath: str,
        options: Optional[ExecutionOptions] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        """Apply all matching rules to file content.

        Rules run in priority order. A failing rule is recorded and the
        remaining rules still run; cancellation is checked before every
        rule and stops the batch.

        Args:
            content: Raw file content
            filename: Bare filename
            filepath: Full path, used by path patterns
            options: Execution options (defaults to ExecutionOptions.default())
            cancel: Event that, once set, stops evaluation at the next rule boundary

        Returns:
            ExecutionResult with accepted results, the best result and any errors
        """
        options = options or ExecutionOptions.default()
        result = ExecutionResult(file=filename)

        rules = self.select_rules(filename, filepath, options)
        logger.debug("%d rule(s) selected for %s", len(rules), filepath)

        for rule in rules:
            if _is_cancelled(cancel):
                logger.info("Execution for %s cancelled before rule %s", filepath, rule.name)
                result.errors.append(
                    RuleFailure(rule_name=rule.name, error=CancellationError("execution cancelled"))
                )
                break

            result.rules_applied += 1
            try:
                extraction = rule.apply(content, filename)
            except RuleEngineError as e:
                logger.warning("Rule %s failed on %s: %s", rule.name, filepath, e)
                result.errors.append(RuleFailure(rule_name=rule.name, error=e))
                continue

            if not extraction.found:
                continue

            if not self._accept(rule, extraction, result, options):
                continue

            logger.debug("Rule %s found %r in %s", rule.name, extraction.value, filepath)
            if self._should_stop(result, options):
                break

        return result

    def _first_error_or_best(self, result: ExecutionResult) -> ExtractionResult | None:
        if result.errors:
            raise result.errors[0].error
        return result.best_result

    def execute_first_match(
        self,
        content: bytes,
        filename: str,
        filepath: str,
        cancel: Optional[threading.Event] = None,
    ) -> ExtractionResult | None:
        """Return the first accepted result in priority order, or None.

        Raises:
            Exception: The first error collected during execution
        """
        options = ExecutionOptions(stop_on_first_match=True, max_results=1)
        result = self.execute(content, filename, filepath, options, cancel)
        return self._first_error_or_best(result)

    def execute_best_match(
        self,
        content: bytes,
        filename: str,
        filepath: str,
        cancel: Optional[threading.Event] = None,
    ) -> ExtractionResult | None:
        """Return the highest confidence result across all matching rules, or None.

        Raises:
            Exception: The first error collected during execution
        """
        result = self.execute(content, filename, filepath, ExecutionOptions.default(), cancel)
        return self._first_error_or_best(result)
