"""Thread-safe storage of named rules."""

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from typing import Iterator

from versionsift.models import RegistryStatistics

from .errors import RuleValidationError
from .models import Rule

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """A lock allowing many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of reads cannot
    starve registration.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _sort_by_priority(rules: list[Rule]) -> list[Rule]:
    """Sort rules by ascending priority (stable)."""
    return sorted(rules, key=lambda rule: rule.priority)


class RuleRegistry:
    """A collection of uniquely named rules with priority-ordered retrieval.

    Reads share the lock, mutations take it exclusively. Extractors are
    never invoked while the lock is held.
    """

    def __init__(self) -> None:
        self._rules: dict[str, Rule] = {}
        self._lock = ReadWriteLock()

    def register(self, rule: Rule) -> None:
        """Add a rule, replacing any rule with the same name.

        Raises:
            RuleValidationError: If the rule is invalid (it is not stored)
        """
        if rule is None:
            raise RuleValidationError("cannot register None as a rule")
        rule.validate()

        with self._lock.write():
            replaced = rule.name in self._rules
            self._rules[rule.name] = rule

        logger.debug(
            "%s rule %s (priority=%d)", "Replaced" if replaced else "Registered", rule.name, rule.priority
        )

    def must_register(self, rule: Rule) -> None:
        """Register a rule from a static table; an invalid rule is a programming bug."""
        try:
            self.register(rule)
        except RuleValidationError as e:
            raise RuntimeError(f"failed to register rule: {e}") from e

    def unregister(self, name: str) -> bool:
        """Remove a rule by name. Returns True if it existed."""
        with self._lock.write():
            removed = self._rules.pop(name, None) is not None
        if removed:
            logger.debug("Unregistered rule %s", name)
        return removed

    def get(self, name: str) -> Rule | None:
        """Look up a rule by name."""
        with self._lock.read():
            return self._rules.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._rules

    def __len__(self) -> int:
        return self.count()

    def count(self) -> int:
        """Total number of registered rules."""
        with self._lock.read():
            return len(self._rules)

    def clear(self) -> None:
        """Remove all rules."""
        with self._lock.write():
            self._rules = {}

    def list_rules(self) -> list[Rule]:
        """All rules sorted by ascending priority."""
        with self._lock.read():
            rules = list(self._rules.values())
        return _sort_by_priority(rules)

    def list_enabled(self) -> list[Rule]:
        """Enabled rules sorted by ascending priority."""
        with self._lock.read():
            rules = [rule for rule in self._rules.values() if rule.enabled]
        return _sort_by_priority(rules)

    def _set_enabled(self, name: str, enabled: bool) -> bool:
        with self._lock.write():
            rule = self._rules.get(name)
            if rule is None:
                return False
            rule.enabled = enabled
        logger.debug("%s rule %s", "Enabled" if enabled else "Disabled", name)
        return True

    def enable(self, name: str) -> bool:
        """Enable a rule. Returns True if it existed."""
        return self._set_enabled(name, True)

    def disable(self, name: str) -> bool:
        """Disable a rule without removing it. Returns True if it existed."""
        return self._set_enabled(name, False)

    def find_matching_rules(self, filename: str, filepath: str) -> list[Rule]:
        """Enabled rules matching the file, sorted by ascending priority.

        The returned rules are copies taken under the lock, so later
        registry mutations don't affect a caller iterating over them.
        """
        with self._lock.read():
            matches = [
                rule.clone()
                for rule in self._rules.values()
                if rule.enabled and rule.matches(filename, filepath)
            ]
        return _sort_by_priority(matches)

    def clone(self) -> "RuleRegistry":
        """Create an independent registry holding copies of all rules."""
        clone = RuleRegistry()
        with self._lock.read():
            clone._rules = {name: rule.clone() for name, rule in self._rules.items()}
        return clone

    def get_statistics(self) -> RegistryStatistics:
        """Counts of rules overall, by enablement, by priority and by tag."""
        with self._lock.read():
            rules = list(self._rules.values())
            enabled = sum(1 for rule in rules if rule.enabled)
            by_priority = Counter(rule.priority for rule in rules)
            by_tag = Counter(tag for rule in rules for tag in set(rule.tags))

        return RegistryStatistics(
            total_rules=len(rules),
            enabled_rules=enabled,
            disabled_rules=len(rules) - enabled,
            rules_by_priority=dict(by_priority),
            rules_by_tag=dict(by_tag),
        )
