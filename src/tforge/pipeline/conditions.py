"""Condition evaluator for step gating.

Evaluates a single boolean predicate against the run's variable
bindings.  No ``eval``; the expression is split on its operator.

Supported forms, checked in this order
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
- ``VAR contains 'ITEM'``: VAR's value split on commas, each item
  trimmed, contains ITEM exactly.
- ``VAR == 'VALUE'``
- ``VAR != 'VALUE'``

Single or double quotes around the literal are stripped; unquoted
literals are used as-is.  There is no ``and``/``or``/``not``.

Examples::

    evaluate_condition("services contains 'crashlytics'", variables)
    evaluate_condition("deploy_now == 'true'", variables)
"""

from __future__ import annotations

from typing import Mapping

from tforge.pipeline.errors import (
    UnsupportedConditionSyntaxError,
    VariableNotFoundError,
)

_CONTAINS = " contains "
_EQUALS = " == "
_NOT_EQUALS = " != "


def evaluate_condition(condition: str, variables: Mapping[str, str]) -> bool:
    """Evaluate *condition* against *variables*.

    Args:
        condition: A rendered predicate string.
        variables: Flat variable bindings.

    Returns:
        The boolean result of the predicate.

    Raises:
        VariableNotFoundError: If the predicate's variable is unbound.
            An unknown variable is never treated as false.
        UnsupportedConditionSyntaxError: If no supported form matches.
    """
    condition = condition.strip()

    parsed = _split(condition, _CONTAINS)
    if parsed is not None:
        name, item = parsed
        value = _lookup(name, variables)
        return any(part.strip() == item for part in value.split(","))

    parsed = _split(condition, _EQUALS)
    if parsed is not None:
        name, literal = parsed
        return _lookup(name, variables) == literal

    parsed = _split(condition, _NOT_EQUALS)
    if parsed is not None:
        name, literal = parsed
        return _lookup(name, variables) != literal

    raise UnsupportedConditionSyntaxError(condition)


def _split(condition: str, operator: str) -> tuple[str, str] | None:
    if operator not in condition:
        return None
    name, raw = condition.split(operator, 1)
    return name.strip(), _strip_quotes(raw.strip())


def _strip_quotes(raw: str) -> str:
    return raw.strip("'").strip('"')


def _lookup(name: str, variables: Mapping[str, str]) -> str:
    try:
        return variables[name]
    except KeyError:
        raise VariableNotFoundError(name) from None
