"""Directive dependency resolution.

Orders the directives subscribed to a lifecycle event so that, for every
edge ``a depends on b``, ``b`` runs first. Uses Kahn's algorithm; anything
left unordered when the queue drains is part of a cycle.
"""

import logging
from typing import Iterable, Mapping, Sequence

from ruleforge.exceptions import (
    DirectCircularDependencyError,
    IndirectCircularDependencyError,
    InvalidDependencyError,
)

logger = logging.getLogger(__name__)


def resolve_order(
    event: str,
    graph: Mapping[str, Sequence[str]],
    present: Iterable[str] | None = None,
    known: Iterable[str] | None = None,
) -> list[str]:
    """Topologically order the directives of ``graph`` for ``event``.

    Args:
        event: Event name, used in error messages
        graph: Directive name -> names it depends on, for the directives
            subscribed to the event
        present: Directives active on the record being processed. Only
            these are ordered, and ties keep this order. Defaults to every
            node of ``graph``.
        known: Every registered directive name. A dependency outside this
            set is invalid. Defaults to the nodes of ``graph``.

    Returns:
        The subscribed, present directives in execution order

    Raises:
        DirectCircularDependencyError: A directive depends on itself
        InvalidDependencyError: A directive depends on an unknown name
        IndirectCircularDependencyError: Two or more directives form a cycle
    """
    if present is None:
        nodes = list(graph)
    else:
        nodes = []
        for name in present:
            if name in graph and name not in nodes:
                nodes.append(name)

    known_names = set(graph) if known is None else set(known)
    active = set(nodes)

    indegree: dict[str, int] = {name: 0 for name in nodes}
    dependents: dict[str, list[str]] = {name: [] for name in nodes}

    for name in nodes:
        dependencies = list(graph.get(name) or [])
        if name in dependencies:
            raise DirectCircularDependencyError(event, name)

        missing = [d for d in dependencies if d not in known_names]
        if missing:
            raise InvalidDependencyError(event, name, missing)

        # Dependencies that are registered but not active impose no order
        for dependency in dict.fromkeys(dependencies):
            if dependency in active:
                indegree[name] += 1
                dependents[dependency].append(name)

    ordered: list[str] = []
    emitted: set[str] = set()

    while True:
        ready = next(
            (n for n in nodes if n not in emitted and indegree[n] == 0),
            None,
        )
        if ready is None:
            break
        ordered.append(ready)
        emitted.add(ready)
        for dependent in dependents[ready]:
            indegree[dependent] -= 1

    leftover = [n for n in nodes if n not in emitted]
    if leftover:
        raise IndirectCircularDependencyError(event, leftover)

    logger.debug("Resolved %s order: %s", event, ", ".join(ordered))
    return ordered
