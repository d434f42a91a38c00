"""
Label Selector Resolution

This module turns the structured selector of a WorkerSet spec into a predicate
over instance labels. Requirements are AND-ed: every match_labels entry and
every match_expressions entry must hold.

Supported operators:
- In: the label is present and its value is one of the values
- NotIn: the label is absent, or its value is not one of the values
- Exists: the label is present (no values allowed)
- DoesNotExist: the label is absent (no values allowed)
"""

import re
from typing import Dict, FrozenSet, List, Mapping, NamedTuple

from workerset.errors import SelectorError
from workerset.models import LabelSelector

OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"

_SET_OPERATORS = (OP_IN, OP_NOT_IN)
_EXISTENCE_OPERATORS = (OP_EXISTS, OP_DOES_NOT_EXIST)

# Qualified label key: optional DNS prefix, then a name of at most 63 chars.
_KEY_NAME = re.compile(r'^[A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?$')
_KEY_PREFIX = re.compile(r'^[a-z0-9]([-a-z0-9.]{0,251}[a-z0-9])?$')
_VALUE = re.compile(r'^([A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?)?$')


class Requirement(NamedTuple):
    key: str
    operator: str
    values: FrozenSet[str]

    def matches(self, labels: Mapping[str, str]) -> bool:
        if self.operator == OP_IN:
            return self.key in labels and labels[self.key] in self.values
        if self.operator == OP_NOT_IN:
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == OP_EXISTS:
            return self.key in labels
        return self.key not in labels

    def __str__(self) -> str:
        if self.operator == OP_EXISTS:
            return self.key
        if self.operator == OP_DOES_NOT_EXIST:
            return f"!{self.key}"
        if self.operator == OP_IN and len(self.values) == 1:
            return f"{self.key}={next(iter(self.values))}"
        op = "in" if self.operator == OP_IN else "notin"
        return f"{self.key} {op} ({','.join(sorted(self.values))})"


class Selector:
    """A parsed label selector."""

    def __init__(self, requirements: List[Requirement]):
        self.requirements = sorted(requirements, key=lambda r: (r.key, r.operator))

    def empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str]) -> bool:
        """
        Check whether a label set satisfies the selector.

        An empty selector matches nothing so that a WorkerSet never claims
        every instance in its namespace.
        """
        if self.empty():
            return False
        return all(req.matches(labels) for req in self.requirements)

    def __str__(self) -> str:
        return ",".join(str(req) for req in self.requirements)

    def __repr__(self) -> str:
        return f"Selector({self})"


def _validate_key(key: str) -> None:
    if not key:
        raise SelectorError("selector key must not be empty")
    prefix, _, name = key.rpartition("/")
    if "/" in key and not _KEY_PREFIX.match(prefix):
        raise SelectorError(f"invalid selector key prefix: {key!r}")
    if not _KEY_NAME.match(name):
        raise SelectorError(f"invalid selector key: {key!r}")


def _validate_value(key: str, value: str) -> None:
    if not isinstance(value, str) or not _VALUE.match(value):
        raise SelectorError(f"invalid value {value!r} for selector key {key!r}")


def resolve_selector(label_selector: LabelSelector) -> Selector:
    """
    Build a Selector from a structured label selector.

    Args:
        label_selector: Selector taken from a WorkerSet spec

    Returns:
        Selector object

    Raises:
        SelectorError: If the selector is malformed
    """
    if label_selector is None:
        return Selector([])

    requirements = []
    match_labels: Dict[str, str] = label_selector.match_labels or {}
    for key, value in match_labels.items():
        _validate_key(key)
        _validate_value(key, value)
        requirements.append(Requirement(key, OP_IN, frozenset([value])))

    for expr in label_selector.match_expressions:
        _validate_key(expr.key)
        if expr.operator in _SET_OPERATORS:
            if not expr.values:
                raise SelectorError(
                    f"values must be non-empty for operator {expr.operator} on key {expr.key!r}")
            for value in expr.values:
                _validate_value(expr.key, value)
        elif expr.operator in _EXISTENCE_OPERATORS:
            if expr.values:
                raise SelectorError(
                    f"values must be empty for operator {expr.operator} on key {expr.key!r}")
        else:
            raise SelectorError(f"{expr.operator!r} is not a valid selector operator")
        requirements.append(Requirement(expr.key, expr.operator, frozenset(expr.values)))

    return Selector(requirements)
