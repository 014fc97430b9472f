# calendar/grid.py
# Rejilla semanal (días x periodos) de una clase y colocación previa de actividades.

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from timetabler.domain.core.periods import activity_periods
from timetabler.domain.core.schema import (
    DEFAULT_SESSION_PERIODS,
    Activity,
    ClassPeriodsOverride,
    DayConfig,
    DayName,
    GradeConfig,
    RestPeriod,
    ScheduleDay,
    ScheduledPeriod,
    Session,
    SessionRule,
)

logger = logging.getLogger(__name__)

CellIndex = Tuple[int, int]  # (day_idx, period_idx), 0-based


# ---------- Rangos de sesión ----------

@dataclass(frozen=True)
class SessionRanges:
    morning_count: int
    afternoon_count: int
    main_start: int
    main_end: int
    extra_start: int
    extra_end: int

    @property
    def total(self) -> int:
        return self.morning_count + self.afternoon_count

    def range_for(self, session: Session) -> Tuple[int, int]:
        if session == Session.EXTRA:
            return self.extra_start, self.extra_end
        return self.main_start, self.main_end


def main_session_for(rule: Optional[SessionRule]) -> SessionRule:
    """'both' se trata como mañana para la sesión principal."""
    if rule == SessionRule.AFTERNOON:
        return SessionRule.AFTERNOON
    return SessionRule.MORNING


def session_ranges(days: Sequence[DayConfig], rule: Optional[SessionRule]) -> SessionRanges:
    """Los contadores salen del primer día configurado (5/5 si no hay días)."""
    first = days[0] if days else None
    morning = first.morning_periods if first else DEFAULT_SESSION_PERIODS
    afternoon = first.afternoon_periods if first else DEFAULT_SESSION_PERIODS
    total = morning + afternoon

    if main_session_for(rule) == SessionRule.MORNING:
        return SessionRanges(morning, afternoon, 0, morning, morning, total)
    return SessionRanges(morning, afternoon, morning, total, 0, morning)


def normalize_day_name(day: str) -> str:
    return (day or "").strip().lower()[:3]


def day_index(days: Sequence[DayName], day: str) -> int:
    wanted = normalize_day_name(day)
    for i, d in enumerate(days):
        if d == day or normalize_day_name(d) == wanted:
            return i
    return -1


# ---------- Rejilla ----------

@dataclass
class Cell:
    item_id: Optional[str] = None
    teacher_id: Optional[str] = None
    label: str = ""
    locked: bool = False

    @property
    def is_free(self) -> bool:
        return self.item_id is None and not self.label and not self.locked


class Grid:
    """
    Arena de celdas indexada por (day_idx, period_idx).
    El backtracking restaura por índice con snapshot()/restore().
    """

    def __init__(self, days: Sequence[DayName], total_periods: int, rest_periods: Iterable[RestPeriod] = ()):
        self.days: Tuple[DayName, ...] = tuple(days)
        self.total_periods = total_periods
        locked: Dict[str, set] = {}
        for rp in rest_periods:
            locked.setdefault(rp.day, set()).add(rp.period)
        self._cells: List[List[Cell]] = [
            [Cell(locked=(p + 1) in locked.get(day, ())) for p in range(total_periods)]
            for day in self.days
        ]

    def cell(self, day_idx: int, period_idx: int) -> Optional[Cell]:
        if day_idx < 0 or day_idx >= len(self._cells):
            return None
        row = self._cells[day_idx]
        if period_idx < 0 or period_idx >= len(row):
            return None
        return row[period_idx]

    def is_free(self, day_idx: int, period_idx: int) -> bool:
        c = self.cell(day_idx, period_idx)
        return c is not None and c.is_free

    def occupy(self, day_idx: int, period_idx: int, *, item_id: str, teacher_id: Optional[str],
               label: str = "", lock: bool = False) -> None:
        c = self._cells[day_idx][period_idx]
        c.item_id = item_id
        c.teacher_id = teacher_id
        c.label = label
        c.locked = c.locked or lock

    def snapshot(self, cells: Iterable[CellIndex]) -> List[Tuple[CellIndex, Cell]]:
        return [((d, p), replace(self._cells[d][p])) for d, p in cells]

    def restore(self, records: Iterable[Tuple[CellIndex, Cell]]) -> None:
        for (d, p), saved in records:
            self._cells[d][p] = replace(saved)

    def iter_cells(self):
        for d, row in enumerate(self._cells):
            for p, c in enumerate(row):
                yield d, p, c

    def count_item(self, item_id: str) -> int:
        return sum(1 for _, _, c in self.iter_cells() if c.item_id == item_id)

    def to_timetable(self) -> Tuple[ScheduleDay, ...]:
        return tuple(
            ScheduleDay(
                day=day,
                periods=tuple(
                    ScheduledPeriod(
                        period=p + 1,
                        subject_id=c.item_id,
                        teacher_id=c.teacher_id,
                        label=c.label,
                        locked=c.locked,
                    )
                    for p, c in enumerate(self._cells[d])
                ),
            )
            for d, day in enumerate(self.days)
        )


def build_grid(days: Sequence[DayName], total_periods: int, rest_periods: Iterable[RestPeriod] = ()) -> Grid:
    return Grid(days, total_periods, rest_periods)


# ---------- Actividades ----------

@dataclass(frozen=True)
class ActivityPlacementReport:
    activity_id: str
    requested: int
    placed: int
    fixed_slot_failed: bool = False

    @property
    def complete(self) -> bool:
        return self.placed >= self.requested


def place_activities(
    grid: Grid,
    grade_config: Optional[GradeConfig],
    ranges: SessionRanges,
    class_id: str,
    override: Optional[ClassPeriodsOverride],
    activities: Dict[str, Activity],
    rng: random.Random,
    *,
    on_date: Optional[date] = None,
    max_attempts: int = 500,
) -> List[ActivityPlacementReport]:
    """
    Coloca las actividades del curso antes que cualquier asignatura y bloquea sus celdas.
    Los fallos (slot fijo ocupado, sesión llena) se registran, nunca abortan.
    """
    reports: List[ActivityPlacementReport] = []
    if grade_config is None:
        return reports

    for rule in grade_config.activities:
        activity = activities.get(rule.activity_id)
        if activity is not None and not activity.is_active:
            continue
        if not rule.applies_on(on_date):
            logger.debug("Actividad %s fuera de su rango de fechas; se omite", rule.activity_id)
            continue

        wanted = activity_periods(rule, class_id, override)
        if wanted <= 0:
            continue
        name = activity.name if activity is not None and activity.name else rule.activity_id

        def try_place(d: int, p: int) -> bool:
            if not grid.is_free(d, p):
                return False
            grid.occupy(d, p, item_id=rule.activity_id, teacher_id=None, label=name, lock=True)
            return True

        placed = 0
        fixed_failed = False
        if rule.fixed_slot is not None:
            d = day_index(grid.days, rule.fixed_slot.day)
            if try_place(d, rule.fixed_slot.period - 1):
                placed = 1
                logger.info(
                    "Actividad %s (clase %s) fijada en %s periodo %s",
                    name, class_id, rule.fixed_slot.day, rule.fixed_slot.period,
                )
            else:
                fixed_failed = True
                logger.warning(
                    "No se pudo fijar la actividad %s (clase %s) en %s periodo %s: celda ocupada o bloqueada",
                    name, class_id, rule.fixed_slot.day, rule.fixed_slot.period,
                )

        start, end = ranges.range_for(rule.session)
        width = max(1, end - start)
        attempts = 0
        while placed < wanted and attempts < max_attempts and grid.days:
            attempts += 1
            d = rng.randrange(len(grid.days))
            p = start + rng.randrange(width)
            if try_place(d, p):
                placed += 1

        if placed < wanted:
            logger.warning("Actividad %s: solo %s/%s periodos colocados (clase %s)", name, placed, wanted, class_id)
        else:
            logger.info("Actividad %s (clase %s): %s periodos colocados (sesión %s)",
                        name, class_id, wanted, rule.session.value)

        reports.append(
            ActivityPlacementReport(
                activity_id=rule.activity_id,
                requested=wanted,
                placed=placed,
                fixed_slot_failed=fixed_failed,
            )
        )

    return reports
