# solver/backtracking.py
# Búsqueda CSP por clase: MRV + forward checking + orden aleatorio con semilla.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from timetabler.domain.core.schema import ScheduleDay
from timetabler.domain.solver.domain import Placement, compute_domain
from timetabler.domain.solver.registry import room_key, teacher_key
from timetabler.domain.solver.state import SolverContext, UndoRecord, rollback
from timetabler.domain.solver.variables import SchedulingVariable

logger = logging.getLogger(__name__)

REASON_BUDGET = "budget_exceeded"
REASON_NO_DOMAIN = "no_feasible_domain"


@dataclass(frozen=True)
class SolveOutcome:
    success: bool
    iterations: int
    max_iterations: int
    budget_exceeded: bool = False
    timetable: Optional[Tuple[ScheduleDay, ...]] = None

    @property
    def reason(self) -> Optional[str]:
        if self.success:
            return None
        return REASON_BUDGET if self.budget_exceeded else REASON_NO_DOMAIN


Domains = Dict[str, List[Placement]]


# -----------------------------
# Aplicar / deshacer
# -----------------------------

def apply_placement(ctx: SolverContext, variable: SchedulingVariable, placement: Placement) -> UndoRecord:
    grid = ctx.grid
    day = grid.days[placement.day_idx]
    saved = tuple(grid.snapshot(placement.cells))
    keys = []

    for d, p in placement.cells:
        grid.occupy(d, p, item_id=variable.item_id, teacher_id=variable.teacher_id, label=variable.label)
        if variable.teacher_id:
            k = teacher_key(variable.teacher_id, day, p + 1)
            ctx.registry.register(k, ctx.class_id)
            keys.append(k)
        if ctx.room_id:
            k = room_key(ctx.room_id, day, p + 1)
            ctx.registry.register(k, ctx.class_id)
            keys.append(k)

    ctx.bump(placement.day_idx, variable.item_id, len(placement.cells))
    return UndoRecord(
        day_idx=placement.day_idx,
        item_id=variable.item_id,
        length=len(placement.cells),
        cells=saved,
        registry_keys=tuple(keys),
    )


# -----------------------------
# Búsqueda
# -----------------------------

def _domains_for(variables: Sequence[SchedulingVariable], ctx: SolverContext) -> Optional[Domains]:
    """Dominio de cada variable; None en cuanto alguna queda vacía."""
    out: Domains = {}
    for v in variables:
        dom = compute_domain(v, ctx)
        if not dom:
            return None
        out[v.id] = dom
    return out


def _backtrack(pending: List[SchedulingVariable], ctx: SolverContext, domains: Optional[Domains]) -> bool:
    ctx.iterations += 1
    if ctx.iterations > ctx.max_iterations:
        ctx.budget_exceeded = True
        return False
    if not pending:
        return True

    if domains is None:
        domains = _domains_for(pending, ctx)
        if domains is None:
            return False

    # MRV: dominio no vacío más pequeño (empates: el primero)
    best = min(pending, key=lambda v: len(domains[v.id]))
    values = list(domains[best.id])
    ctx.rng.shuffle(values)
    remaining = [v for v in pending if v.id != best.id]

    for placement in values:
        record = apply_placement(ctx, best, placement)

        # forward checking sobre el resto
        next_domains = _domains_for(remaining, ctx)
        if next_domains is not None and _backtrack(remaining, ctx, next_domains):
            return True

        rollback(ctx, record)
        if ctx.budget_exceeded:
            return False

    return False


def solve_class(variables: Sequence[SchedulingVariable], ctx: SolverContext) -> SolveOutcome:
    """
    Rellena ctx.grid con todas las variables o deja grid/registry como estaban.
    El contador de iteraciones es global a la llamada.
    """
    ctx.iterations = 0
    ctx.budget_exceeded = False

    success = _backtrack(list(variables), ctx, None)

    if success:
        logger.debug("Clase %s resuelta en %s iteraciones", ctx.class_id, ctx.iterations)
    else:
        logger.debug(
            "Clase %s sin solución (iteraciones=%s, límite=%s)",
            ctx.class_id, ctx.iterations, ctx.max_iterations,
        )

    return SolveOutcome(
        success=success,
        iterations=min(ctx.iterations, ctx.max_iterations),
        max_iterations=ctx.max_iterations,
        budget_exceeded=ctx.budget_exceeded,
        timetable=ctx.grid.to_timetable() if success else None,
    )
