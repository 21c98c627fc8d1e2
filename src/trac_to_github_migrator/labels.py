"""
Label mapping from Trac ticket fields to GitHub labels.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, NamedTuple

from .exceptions import AmbiguousLabelRuleError, ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger: logging.Logger = logging.getLogger(__name__)


class LabelRule(NamedTuple):
    """A legacy value pattern and the label it produces."""

    pattern: re.Pattern[str]
    label: str


def compile_rules(raw_rules: Mapping[str, Sequence[Sequence[str]]] | None) -> dict[str, list[LabelRule]]:
    """Compile the ``labels`` configuration section.

    Args:
        raw_rules: Category -> ordered list of ``[pattern, label]`` pairs

    Returns:
        Category -> ordered list of compiled rules

    Raises:
        ConfigurationError: If a rule is malformed or its pattern does not compile
    """
    rules: dict[str, list[LabelRule]] = {}

    for category, pairs in (raw_rules or {}).items():
        if not isinstance(pairs, list):
            msg = f"Label rules for {category!r} must be a list of [pattern, label] pairs"
            raise ConfigurationError(msg)

        compiled: list[LabelRule] = []
        for pair in pairs:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2 or not all(isinstance(p, str) for p in pair):
                msg = f"Invalid label rule for {category!r}: {pair!r}"
                raise ConfigurationError(msg)
            pattern, label = pair
            try:
                compiled.append(LabelRule(re.compile(pattern), label))
            except re.error as e:
                msg = f"Invalid pattern {pattern!r} in {category!r} label rules: {e}"
                raise ConfigurationError(msg) from e
        rules[str(category)] = compiled

    return rules


class LabelMapper:
    """Maps legacy field values to labels, one label per category at a time."""

    def __init__(self, rules: Mapping[str, list[LabelRule]], *, log: logging.Logger | None = None) -> None:
        self.rules: dict[str, list[LabelRule]] = dict(rules)
        self._logger: logging.Logger = log or logger

    def has_category(self, category: str) -> bool:
        return category in self.rules

    def apply(self, category: str, value: str, labels: set[str]) -> set[str] | None:
        """Compute the label set after ``category`` changed to ``value``.

        Labels produced by the category's other rules are removed before the
        matching rule's label is added; labels of other categories are kept.

        Args:
            category: Trac field name (e.g. "priority")
            value: New legacy value of the field
            labels: Current labels of the issue (not modified)

        Returns:
            The new label set, or None when nothing should change

        Raises:
            AmbiguousLabelRuleError: If more than one rule of the category matches
        """
        category_rules = self.rules.get(category)
        if category_rules is None:
            self._logger.debug(f"No label rules for {category}, ignoring value {value!r}")
            return None

        if not value:
            self._logger.debug(f"{category} explicitly unset, labels left unchanged")
            return None

        hits: list[LabelRule] = []
        misses: list[LabelRule] = []
        for rule in category_rules:
            (hits if rule.pattern.search(value) else misses).append(rule)

        if not hits:
            self._logger.warning(f"No label mapping for {category} value {value!r}")
            return None
        if len(hits) > 1:
            raise AmbiguousLabelRuleError(category, value, [rule.label for rule in hits])

        stale = {rule.label for rule in misses}
        return (labels - stale) | {hits[0].label}
