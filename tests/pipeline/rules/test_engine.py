"""Tests for the rule engine."""

import threading

import pytest

from versionsift.models import ExecutionOptions, ExtractionResult
from versionsift.pipeline.rules import (
    CancellationError,
    ExtractorError,
    RuleBuilder,
    RuleEngine,
    SizeExceededError,
    filter_by_tags,
)

TOML = ("pyproject.toml", "/p/pyproject.toml")


def _failing(content: bytes, filename: str) -> ExtractionResult:
    raise ValueError("cannot parse")


@pytest.fixture
def engine(registry):
    return RuleEngine(registry)


class TestExecute:
    """Tests for RuleEngine.execute."""

    def test_results_in_priority_order_best_by_confidence(self, registry, engine, make_rule):
        """Test that results follow priority while the best result follows confidence."""
        registry.register(make_rule("B", priority=5, file_pattern="*.toml", value="b", confidence=0.5))
        registry.register(make_rule("A", priority=10, file_pattern="*.toml", value="a", confidence=0.9))

        result = engine.execute(b"content", *TOML, ExecutionOptions.default())

        assert [r.value for r in result.results] == ["b", "a"]
        assert result.best_result.value == "a"
        assert result.rules_applied == 2
        assert result.errors == []
        assert result.file == "pyproject.toml"

    def test_source_defaults_to_filename(self, registry, engine, make_rule):
        """Test that results without source get the filename."""
        registry.register(make_rule("a", file_pattern="*.toml"))
        result = engine.execute(b"", *TOML)
        assert result.best_result.source == "pyproject.toml"

    def test_no_matching_rules(self, registry, engine, make_rule):
        """Test an empty result when nothing matches."""
        registry.register(make_rule("txt", file_pattern="*.txt"))
        result = engine.execute(b"", *TOML)
        assert result.rules_applied == 0
        assert result.results == []
        assert result.best_result is None
        assert not result.found

    def test_tie_keeps_higher_priority_result(self, registry, engine, make_rule):
        """Test that equal confidence keeps the earlier result as best."""
        registry.register(make_rule("first", priority=1, value="first", confidence=0.8))
        registry.register(make_rule("second", priority=2, value="second", confidence=0.8))
        result = engine.execute(b"", *TOML)
        assert result.best_result.value == "first"

    def test_stop_on_first_match(self, registry, engine, make_rule):
        """Test that execution stops after the first accepted result."""
        registry.register(make_rule("high", priority=1, value="high", confidence=0.2))
        registry.register(make_rule("low", priority=2, value="low", confidence=1.0))

        result = engine.execute(b"", *TOML, ExecutionOptions(stop_on_first_match=True))

        assert [r.value for r in result.results] == ["high"]
        assert result.rules_applied == 1

    def test_stop_on_first_match_skips_not_found(self, registry, engine, make_rule):
        """Test that not-found results don't stop execution."""
        registry.register(
            RuleBuilder("empty").priority(1).file_pattern("*").extractor(lambda c, f: None).build()
        )
        registry.register(make_rule("found", priority=2))

        result = engine.execute(b"", *TOML, ExecutionOptions(stop_on_first_match=True))

        assert result.rules_applied == 2
        assert result.best_result.value == "found"

    def test_max_results(self, registry, engine, make_rule):
        """Test that execution stops once max_results are accepted."""
        for priority in range(1, 5):
            registry.register(make_rule(f"r{priority}", priority=priority))

        result = engine.execute(b"", *TOML, ExecutionOptions(max_results=2))

        assert [r.value for r in result.results] == ["r1", "r2"]
        assert result.rules_applied == 2

    def test_min_confidence(self, registry, engine, make_rule):
        """Test that results below the floor are discarded but still counted as applied."""
        registry.register(make_rule("weak", priority=1, value="weak", confidence=0.3))
        registry.register(make_rule("strong", priority=2, value="strong", confidence=0.8))

        result = engine.execute(b"", *TOML, ExecutionOptions(min_confidence=0.5))

        assert [r.value for r in result.results] == ["strong"]
        assert result.best_result.value == "strong"
        assert result.rules_applied == 2

    def test_min_confidence_discard_does_not_stop(self, registry, engine, make_rule):
        """Test that a discarded result doesn't trigger stop-on-first-match."""
        registry.register(make_rule("weak", priority=1, value="weak", confidence=0.3))
        registry.register(make_rule("strong", priority=2, value="strong", confidence=0.8))

        options = ExecutionOptions(stop_on_first_match=True, min_confidence=0.5)
        result = engine.execute(b"", *TOML, options)

        assert [r.value for r in result.results] == ["strong"]

    def test_tag_filter(self, registry, engine, make_rule):
        """Test that only rules with a requested tag run."""
        registry.register(make_rule("docker", priority=1, tags=("docker",)))
        registry.register(make_rule("ci", priority=2, tags=("ci", "docker")))
        registry.register(make_rule("toml", priority=3, tags=("toml",)))

        result = engine.execute(b"", *TOML, ExecutionOptions(tags=["docker"]))

        assert result.rules_applied == 2
        assert [r.value for r in result.results] == ["docker", "ci"]

    def test_failing_rule_does_not_abort_batch(self, registry, engine, make_rule):
        """Test that extractor errors are collected and later rules still run."""
        registry.register(RuleBuilder("broken").priority(1).file_pattern("*").extractor(_failing).build())
        registry.register(make_rule("ok", priority=2, value="3.11"))

        result = engine.execute(b"", *TOML)

        assert result.rules_applied == 2
        assert result.best_result.value == "3.11"
        assert len(result.errors) == 1
        assert result.errors[0].rule_name == "broken"
        assert isinstance(result.errors[0].error, ExtractorError)
        assert result.has_errors

    def test_size_exceeded_is_collected(self, registry, engine, make_rule):
        """Test that a size cap violation is a per-rule error."""
        registry.register(
            RuleBuilder("small").priority(1).file_pattern("*").max_file_size(2).extractor(
                lambda c, f: ExtractionResult(found=True, value="x", confidence=1.0)
            ).build()
        )
        registry.register(make_rule("any", priority=2))

        result = engine.execute(b"too large", *TOML)

        assert isinstance(result.errors[0].error, SizeExceededError)
        assert result.best_result.value == "any"

    def test_cancellation_between_rules(self, registry, engine, make_rule):
        """Test that a cancel set during the first rule stops before the next one."""
        cancel = threading.Event()
        calls = []

        def cancelling(content, filename):
            calls.append("first")
            cancel.set()
            return ExtractionResult(found=True, value="first", confidence=0.5)

        registry.register(RuleBuilder("first").priority(1).file_pattern("*").extractor(cancelling).build())
        registry.register(make_rule("second", priority=2, calls=calls))
        registry.register(make_rule("third", priority=3, calls=calls))

        result = engine.execute(b"", *TOML, cancel=cancel)

        assert calls == ["first"]
        assert result.rules_applied <= 2
        assert result.rules_applied == 1
        assert [r.value for r in result.results] == ["first"]
        assert any(isinstance(f.error, CancellationError) for f in result.errors)

    def test_cancelled_before_start(self, registry, engine, make_rule):
        """Test that an already-set cancel runs no rules."""
        registry.register(make_rule("a"))
        cancel = threading.Event()
        cancel.set()

        result = engine.execute(b"", *TOML, cancel=cancel)

        assert result.rules_applied == 0
        assert len(result.errors) == 1
        assert isinstance(result.errors[0].error, CancellationError)

    def test_registry_changes_during_execution_are_not_observed(self, registry, engine, make_rule):
        """Test that a rule registered by an extractor doesn't join the running batch."""

        def registering(content, filename):
            registry.register(make_rule("late", priority=2))
            return ExtractionResult(found=True, value="first", confidence=0.5)

        registry.register(RuleBuilder("first").priority(1).file_pattern("*").extractor(registering).build())

        result = engine.execute(b"", *TOML)

        assert result.rules_applied == 1
        assert "late" in registry


class TestWrappers:
    """Tests for execute_first_match and execute_best_match."""

    def test_best_match_prefers_confidence_over_priority(self, registry, engine, make_rule):
        """Test that the best match isn't necessarily the first evaluated."""
        registry.register(make_rule("A", priority=10, value="a", confidence=0.9))
        registry.register(make_rule("B", priority=5, value="b", confidence=0.5))

        assert engine.execute_best_match(b"", *TOML).value == "a"

    def test_first_match_returns_highest_priority(self, registry, engine, make_rule):
        """Test that the first match is the highest priority found result."""
        registry.register(make_rule("A", priority=10, value="a", confidence=0.9))
        registry.register(make_rule("B", priority=5, value="b", confidence=0.5))

        assert engine.execute_first_match(b"", *TOML).value == "b"

    def test_nothing_found_returns_none(self, registry, engine):
        """Test that wrappers return None without results."""
        assert engine.execute_first_match(b"", *TOML) is None
        assert engine.execute_best_match(b"", *TOML) is None

    def test_wrappers_raise_first_error(self, registry, engine, make_rule):
        """Test that wrappers surface the first collected error."""
        registry.register(RuleBuilder("broken").priority(1).file_pattern("*").extractor(_failing).build())
        registry.register(make_rule("ok", priority=2))

        with pytest.raises(ExtractorError, match="broken"):
            engine.execute_best_match(b"", *TOML)
        with pytest.raises(ExtractorError):
            engine.execute_first_match(b"", *TOML)


class TestFilterByTags:
    """Tests for filter_by_tags."""

    def test_no_tags_keeps_all(self, make_rule):
        """Test that an empty tag filter is a no-op."""
        rules = [make_rule("a"), make_rule("b")]
        assert filter_by_tags(rules, []) == rules

    def test_intersection(self, make_rule):
        """Test that rules without any requested tag are dropped."""
        rules = [make_rule("a", tags=("x",)), make_rule("b", tags=("y",)), make_rule("c")]
        assert [r.name for r in filter_by_tags(rules, ["y", "z"])] == ["b"]
