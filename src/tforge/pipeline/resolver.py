"""Dependency ordering for template manifests.

Orders templates so that every template runs after the templates it
requires.  Traversal uses an explicit stack with three-state marking
instead of recursion, so graph depth is not bounded by the interpreter's
recursion limit.
"""

from __future__ import annotations

import enum
from typing import Sequence

from tforge.pipeline.errors import CircularDependencyError
from tforge.pipeline.models import TemplateManifest


class _Mark(enum.Enum):
    IN_PROGRESS = 1
    FINISHED = 2


def resolve_order(templates: Sequence[TemplateManifest]) -> list[str]:
    """Return template names in dependency order.

    Each template appears after every dependency that is also present in
    *templates*.  Dependencies naming templates outside the set are
    ignored.  Roots are visited in input order and dependencies in their
    declared order, so the result is deterministic for a given input.

    Args:
        templates: The candidate template set.

    Returns:
        Template names, dependencies first.

    Raises:
        CircularDependencyError: If the ``requires_templates`` edges form
            a cycle.  The error names the template that was revisited
            while still in progress.
    """
    names = {tmpl.name for tmpl in templates}
    deps: dict[str, list[str]] = {}
    for tmpl in templates:
        if tmpl.name in deps:
            continue
        deps[tmpl.name] = [
            req for req in tmpl.dependencies.requires_templates if req in names
        ]

    marks: dict[str, _Mark] = {}
    order: list[str] = []

    for root in deps:
        if root in marks:
            continue
        marks[root] = _Mark.IN_PROGRESS
        # Each frame is (node, index of the next dependency to visit).
        stack: list[tuple[str, int]] = [(root, 0)]
        while stack:
            node, idx = stack[-1]
            node_deps = deps[node]
            if idx == len(node_deps):
                stack.pop()
                marks[node] = _Mark.FINISHED
                order.append(node)
                continue
            stack[-1] = (node, idx + 1)
            dep = node_deps[idx]
            mark = marks.get(dep)
            if mark is _Mark.IN_PROGRESS:
                raise CircularDependencyError(dep)
            if mark is None:
                marks[dep] = _Mark.IN_PROGRESS
                stack.append((dep, 0))

    return order
