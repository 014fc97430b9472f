# solver/state.py
# Estado explícito que recorre cada llamada recursiva del backtracking.

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from timetabler.domain.calendar.grid import Cell, CellIndex, Grid, SessionRanges
from timetabler.domain.solver.registry import ConflictRegistry, SlotKey

DEFAULT_MAX_ITERATIONS = 200_000


@dataclass
class SolverContext:
    grid: Grid
    ranges: SessionRanges
    registry: ConflictRegistry
    class_id: str
    room_id: Optional[str] = None
    rng: random.Random = field(default_factory=random.Random)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    iterations: int = 0
    budget_exceeded: bool = False
    # day_idx -> item_id -> periodos ya colocados
    per_day_count: Dict[int, Dict[str, int]] = field(default_factory=dict)

    def count_for(self, day_idx: int, item_id: str) -> int:
        return self.per_day_count.get(day_idx, {}).get(item_id, 0)

    def bump(self, day_idx: int, item_id: str, delta: int) -> None:
        counts = self.per_day_count.setdefault(day_idx, {})
        counts[item_id] = max(0, counts.get(item_id, 0) + delta)


@dataclass(frozen=True)
class UndoRecord:
    """Lo necesario para deshacer una colocación de forma mecánica."""
    day_idx: int
    item_id: str
    length: int
    cells: Tuple[Tuple[CellIndex, Cell], ...]
    registry_keys: Tuple[SlotKey, ...]


def rollback(ctx: SolverContext, record: UndoRecord) -> None:
    ctx.grid.restore(record.cells)
    ctx.registry.release(record.registry_keys)
    ctx.bump(record.day_idx, record.item_id, -record.length)
