# ============================================================================
# STRATEGY TREE WALK
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Utility - Introspection and pruning of composed strategies
# PURPOSE: Depth-first visitor over a strategy tree with stop/remove control
# CREATED: 18 OCT 2026
# ============================================================================
"""
Strategy Tree Walk

Visits a strategy and, for composites, its children depth-first in
evaluation order. The visitor returns a Visit flag set:

- CONTINUE (or None): keep going, descending into composites
- STOP: end the walk
- REMOVE: unlink this node from its parent (its children are not visited)
- REMOVE | STOP: unlink, then end the walk

The root is held in a StrategyRef so that removing it can be expressed:

    ref = StrategyRef(strategy)
    walk(ref, lambda s: Visit.REMOVE if isinstance(s, FileStrategy) else None)
    strategy = ref.strategy  # None if the root itself was removed
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Optional

from wait.all import MultiStrategy
from wait.strategy import Strategy


class Visit(IntFlag):
    """Visitor verdict."""
    CONTINUE = 0
    STOP = 1
    REMOVE = 2


@dataclass
class StrategyRef:
    """Mutable slot holding the root of a strategy tree."""
    strategy: Optional[Strategy]


VisitFunc = Callable[[Strategy], Optional[Visit]]


def walk(root: Optional[StrategyRef], visit: VisitFunc) -> None:
    """
    Walk the tree under `root`.

    Exceptions raised by `visit` propagate unchanged.

    Raises:
        ValueError: If there is no root strategy
    """
    if root is None or root.strategy is None:
        raise ValueError("root strategy is nil")

    if _walk(root.strategy, visit) & Visit.REMOVE:
        root.strategy = None


def _walk(strategy: Strategy, visit: VisitFunc) -> Visit:
    verdict = Visit(visit(strategy) or Visit.CONTINUE)
    if verdict:
        return verdict

    if isinstance(strategy, MultiStrategy):
        index = 0
        while index < len(strategy.strategies):
            child = strategy.strategies[index]
            if child is None:
                index += 1
                continue

            child_verdict = _walk(child, visit)
            if child_verdict & Visit.REMOVE:
                del strategy.strategies[index]
            else:
                index += 1

            if child_verdict & Visit.STOP:
                return Visit.STOP

    return Visit.CONTINUE


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Visit",
    "StrategyRef",
    "VisitFunc",
    "walk",
]
