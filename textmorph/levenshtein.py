# textmorph/levenshtein.py
"""
Minimal edit sequences between two ordered sequences.

Used at three granularities: lines and characters by the text patcher, and
tree nodes by the reconciler's keyed array diff (where the substitution cost
depends on whether the identity keys of the two nodes match).
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Literal, Optional, Sequence

from .errors import InvariantViolation

ChangeKind = Literal["add", "delete", "change"]


@dataclass(frozen=True)
class Change:
    """
    A single edit.

    ``index`` is a zero-based position in the *from* sequence: ``add``
    inserts before it, ``delete`` and ``change`` act on the item at it.
    ``to_index`` is the position of the new item in the *to* sequence
    (``None`` for deletes).
    """
    kind: ChangeKind
    index: int
    item: Any = None
    from_item: Any = None
    to_item: Any = None
    to_index: Optional[int] = None


def _unit_change_cost(a: Any, b: Any, from_index: int, to_index: int) -> int:
    return 1


@dataclass(frozen=True)
class LevenshteinCost:
    of_add: int = 1
    of_delete: int = 1
    of_change: Callable[[Any, Any, int, int], int] = _unit_change_cost


def levenshtein(
    from_items: Sequence[Any],
    to_items: Sequence[Any],
    are_any_equal: bool = True,
    cost: Optional[LevenshteinCost] = None,
) -> List[Change]:
    """
    Computes a minimal-cost list of changes turning ``from_items`` into
    ``to_items``.

    Changes are returned from the end of the sequences towards the start, so
    applying them in order never shifts the index of a change still to come.

    :param are_any_equal: when True, ``==`` items are kept for free and
        produce no change. When False every pair goes through
        ``cost.of_change``, which is how keyed reconciliation visits every
        surviving node.
    :param cost: add/delete costs and the substitution cost function
        ``of_change(a, b, from_index, to_index)``.
    """
    if from_items is None or to_items is None:
        raise TypeError("levenshtein() needs sequences, use [] for an empty side")

    cost = cost or LevenshteinCost()
    of_add, of_delete, of_change = cost.of_add, cost.of_delete, cost.of_change
    m, n = len(from_items), len(to_items)

    def same(i: int, j: int) -> bool:
        return are_any_equal and from_items[i - 1] == to_items[j - 1]

    # dp[i][j]: cheapest way to turn from_items[:i] into to_items[:j]
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        dp[i][0] = i * of_delete
    for j in range(1, n + 1):
        dp[0][j] = j * of_add

    for i in range(1, m + 1):
        row, prev_row = dp[i], dp[i - 1]
        for j in range(1, n + 1):
            if same(i, j):
                row[j] = prev_row[j - 1]
            else:
                row[j] = min(
                    prev_row[j] + of_delete,
                    row[j - 1] + of_add,
                    prev_row[j - 1] + of_change(from_items[i - 1], to_items[j - 1], i - 1, j - 1),
                )

    # Backtrack. Each step checks that the operation really produces the
    # current cell (prev + op cost == current); with variable change costs the
    # neighbouring cell values alone do not say which path was taken.
    # Ties resolve delete > add > change/keep.
    changes: List[Change] = []
    i, j = m, n
    while i > 0 or j > 0:
        current = dp[i][j]
        can_delete = i > 0 and dp[i - 1][j] + of_delete == current
        can_add = j > 0 and dp[i][j - 1] + of_add == current
        can_diag = False
        if i > 0 and j > 0:
            if same(i, j):
                can_diag = dp[i - 1][j - 1] == current
            else:
                can_diag = (
                    dp[i - 1][j - 1] + of_change(from_items[i - 1], to_items[j - 1], i - 1, j - 1)
                    == current
                )

        if can_delete:
            changes.append(Change("delete", index=i - 1, item=from_items[i - 1]))
            i -= 1
        elif can_add:
            changes.append(Change("add", index=i, item=to_items[j - 1], to_index=j - 1))
            j -= 1
        elif can_diag:
            if not same(i, j):
                changes.append(
                    Change(
                        "change",
                        index=i - 1,
                        from_item=from_items[i - 1],
                        to_item=to_items[j - 1],
                        to_index=j - 1,
                    )
                )
            i, j = i - 1, j - 1
        else:
            raise InvariantViolation(f"levenshtein backtrack: no valid operation at ({i}, {j})")

    return changes


def edit_distance(from_items: Sequence[Any], to_items: Sequence[Any]) -> int:
    """Plain unit-cost edit distance (the number of changes of a minimal diff)."""
    return len(levenshtein(from_items, to_items))
