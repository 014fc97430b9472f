# solver/domain.py
# Dominio (colocaciones legales) de una variable dado el estado actual.

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from timetabler.domain.calendar.grid import CellIndex, day_index
from timetabler.domain.solver.registry import room_key, teacher_key
from timetabler.domain.solver.state import SolverContext
from timetabler.domain.solver.variables import SchedulingVariable


@dataclass(frozen=True)
class Placement:
    day_idx: int
    start: int                      # period_idx inicial (0-based)
    cells: Tuple[CellIndex, ...]    # celdas exactas que ocuparía


def compute_domain(variable: SchedulingVariable, ctx: SolverContext) -> List[Placement]:
    grid = ctx.grid
    start, end = ctx.ranges.range_for(variable.session)
    end = min(end, grid.total_periods)
    length = max(1, variable.length)
    domain: List[Placement] = []

    fixed = variable.fixed_slot
    fixed_day = day_index(grid.days, fixed.day) if fixed is not None else None

    for d, day in enumerate(grid.days):
        if fixed_day is not None and d != fixed_day:
            continue
        # tope diario: descarta el día completo
        if ctx.count_for(d, variable.item_id) + length > variable.max_per_day:
            continue

        for s in range(start, end - length + 1):
            if fixed is not None and s != fixed.period - 1:
                continue
            cells: List[CellIndex] = []
            for p in range(s, s + length):
                if not grid.is_free(d, p):
                    break
                if variable.teacher is not None and not variable.teacher.is_available(d, p):
                    break
                if variable.teacher_id and ctx.registry.is_taken(
                    teacher_key(variable.teacher_id, day, p + 1), ctx.class_id
                ):
                    break
                if ctx.room_id and ctx.registry.is_taken(room_key(ctx.room_id, day, p + 1), ctx.class_id):
                    break
                cells.append((d, p))
            else:
                domain.append(Placement(day_idx=d, start=s, cells=tuple(cells)))

    return domain
