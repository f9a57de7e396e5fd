"""
Completion-percentage calculation.

A task's progress is derived from its checklist and the stored progress of
its direct subtasks:

* checklist and subtasks: 50 % checklist ratio + 50 % mean subtask progress
* checklist only: share of completed items
* subtasks only: mean subtask progress
* neither: 0

Results are rounded half-up to an integer in [0, 100]. The arithmetic is
exact, so a value sitting on a .5 boundary always rounds up.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from fractions import Fraction
from typing import Protocol


class ChecklistEntry(Protocol):
    is_completed: bool


def round_half_up(value: Fraction | float) -> int:
    return math.floor(value + Fraction(1, 2))


def compute(
    checklist: Sequence[ChecklistEntry],
    subtask_progress: Iterable[int],
) -> int:
    subtask_values = list(subtask_progress)

    checklist_pct: Fraction | None = None
    if checklist:
        done = sum(1 for item in checklist if item.is_completed)
        checklist_pct = Fraction(done * 100, len(checklist))

    subtask_pct: Fraction | None = None
    if subtask_values:
        subtask_pct = Fraction(sum(subtask_values), len(subtask_values))

    if checklist_pct is not None and subtask_pct is not None:
        value = (checklist_pct + subtask_pct) / 2
    elif checklist_pct is not None:
        value = checklist_pct
    elif subtask_pct is not None:
        value = subtask_pct
    else:
        return 0

    return max(0, min(100, round_half_up(value)))
