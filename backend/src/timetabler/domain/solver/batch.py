# solver/batch.py
# Orquesta la resolución de un lote de clases: orden barajado, reintentos globales,
# fallback sin bloques dobles y persistencia (borrar + insertar) de lo resuelto.

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from timetabler.domain.calendar.grid import (
    ActivityPlacementReport,
    SessionRanges,
    build_grid,
    place_activities,
    session_ranges,
)
from timetabler.domain.core.schema import (
    ClassSection,
    GradeConfig,
    Schedule,
    SchoolDataset,
    TeachingAssignment,
)
from timetabler.domain.solver.backtracking import REASON_BUDGET, SolveOutcome, solve_class
from timetabler.domain.solver.registry import ConflictRegistry, room_key, teacher_key
from timetabler.domain.solver.state import DEFAULT_MAX_ITERATIONS, SolverContext
from timetabler.domain.solver.variables import build_variables

logger = logging.getLogger(__name__)

REASON_NO_GRADE_CONFIG = "no_grade_config"
REASON_NO_ASSIGNMENTS = "no_assignments"


class MissingConfigError(ValueError):
    """No existe ScheduleConfig: error fatal para toda la petición."""

    def __init__(self) -> None:
        super().__init__("No existe configuración de horario (ScheduleConfig).")


@dataclass(frozen=True)
class BatchOptions:
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_batch_attempts: int = 5
    activity_attempts: int = 500
    seed: Optional[int] = None
    on_date: Optional[date] = None


@dataclass(frozen=True)
class ClassResult:
    class_id: str
    class_name: str
    success: bool
    reason: Optional[str] = None
    message: str = ""
    iterations: int = 0
    attempt: int = 0
    used_pairing_fallback: bool = False
    activity_reports: Tuple[ActivityPlacementReport, ...] = ()
    schedule: Optional[Schedule] = None


@dataclass(frozen=True)
class BatchResult:
    year: str
    semester: str
    results: Tuple[ClassResult, ...]
    attempts: int

    @property
    def solved(self) -> List[ClassResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ClassResult]:
        return [r for r in self.results if not r.success]


@dataclass
class _Prepared:
    section: ClassSection
    grade_config: GradeConfig
    ranges: SessionRanges
    assignments: List[TeachingAssignment]


@dataclass
class _AttemptState:
    registry: ConflictRegistry
    solved: Dict[str, ClassResult] = field(default_factory=dict)
    failed: Dict[str, ClassResult] = field(default_factory=dict)


class BatchOrchestrator:
    def __init__(self, dataset: SchoolDataset, options: Optional[BatchOptions] = None) -> None:
        if dataset.config is None:
            raise MissingConfigError()
        self._dataset = dataset
        self._config = dataset.config
        self._options = options or BatchOptions()
        self._rng = random.Random(self._options.seed)
        self._subjects = dataset.index_subjects()
        self._teachers = dataset.index_teachers()
        self._activities = dataset.index_activities()

    # -----------------------------
    # API pública
    # -----------------------------

    def run(
        self,
        classes: Sequence[ClassSection],
        assignments: Sequence[TeachingAssignment],
        committed: Sequence[Schedule],
        year: str,
        semester: str,
        persist: Optional[Callable[[Schedule], None]] = None,
        discard: Optional[Callable[[str], None]] = None,
    ) -> BatchResult:
        """
        persist recibe cada horario resuelto; discard recibe el id de cada clase del
        lote sin horario nuevo, cuyo horario anterior ya no se respetó al resolver.
        """
        batch_ids = {c.id for c in classes}
        room_by_class = {c.id: c.room_id for c in self._dataset.classes}
        seed_registry = ConflictRegistry.seeded_from(committed, room_by_class, exclude_class_ids=batch_ids)
        logger.info(
            "Lote %s/%s: %s clases, %s celdas ocupadas por horarios previos",
            year, semester, len(classes), len(seed_registry),
        )

        prepared, skipped = self._prepare(classes, assignments, year, semester)

        attempts: List[_AttemptState] = []
        for attempt in range(1, self._options.max_batch_attempts + 1):
            state = self._run_attempt(attempt, prepared, seed_registry.copy(), year, semester)
            attempts.append(state)
            logger.info(
                "Intento %s: %s resueltas, %s fallidas",
                attempt, len(state.solved), len(state.failed),
            )
            if not state.failed:
                break

        final = self._merge(attempts, seed_registry, prepared)

        results: List[ClassResult] = list(skipped)
        for p in prepared:
            result = final[p.section.id]
            if result.success and result.schedule is not None and persist is not None:
                persist(result.schedule)
                logger.info("Horario guardado para la clase %s", p.section.label)
            results.append(result)

        if discard is not None:
            for r in results:
                if not r.success:
                    discard(r.class_id)
                    logger.info("Horario anterior descartado para la clase %s", r.class_name)

        return BatchResult(year=year, semester=semester, results=tuple(results), attempts=len(attempts))

    # -----------------------------
    # Preparación por clase
    # -----------------------------

    def _prepare(
        self,
        classes: Sequence[ClassSection],
        assignments: Sequence[TeachingAssignment],
        year: str,
        semester: str,
    ) -> Tuple[List[_Prepared], List[ClassResult]]:
        by_class: Dict[str, List[TeachingAssignment]] = {}
        for a in assignments:
            if a.year == year and a.semester == semester:
                by_class.setdefault(a.class_id, []).append(a)

        prepared: List[_Prepared] = []
        skipped: List[ClassResult] = []
        for c in classes:
            grade_config = self._config.grade_config(c.grade)
            if grade_config is None:
                skipped.append(ClassResult(
                    class_id=c.id, class_name=c.label, success=False,
                    reason=REASON_NO_GRADE_CONFIG,
                    message=f"No hay configuración para el curso {c.grade}",
                ))
                continue
            own = sorted(by_class.get(c.id, []), key=lambda a: a.subject_id)
            if not own:
                skipped.append(ClassResult(
                    class_id=c.id, class_name=c.label, success=False,
                    reason=REASON_NO_ASSIGNMENTS,
                    message="La clase no tiene asignaciones docentes",
                ))
                continue
            prepared.append(_Prepared(
                section=c,
                grade_config=grade_config,
                ranges=session_ranges(self._config.days, grade_config.session_rule),
                assignments=own,
            ))
        return prepared, skipped

    # -----------------------------
    # Un intento completo del lote
    # -----------------------------

    def _run_attempt(
        self,
        attempt: int,
        prepared: List[_Prepared],
        registry: ConflictRegistry,
        year: str,
        semester: str,
    ) -> _AttemptState:
        state = _AttemptState(registry=registry)
        order = list(prepared)
        self._rng.shuffle(order)

        for p in order:
            result = self._solve_one(p, registry, year, semester, attempt)
            if result.success:
                state.solved[p.section.id] = result
            else:
                state.failed[p.section.id] = result
        return state

    def _solve_one(
        self,
        p: _Prepared,
        registry: ConflictRegistry,
        year: str,
        semester: str,
        attempt: int,
    ) -> ClassResult:
        section = p.section
        override = self._dataset.override_for(section.id, year, semester)

        def attempt_solve(allow_pairs: bool) -> Tuple[SolveOutcome, Tuple[ActivityPlacementReport, ...]]:
            grid = build_grid(self._config.day_names(), p.ranges.total, p.grade_config.rest_periods)
            reports = place_activities(
                grid, p.grade_config, p.ranges, section.id, override, self._activities, self._rng,
                on_date=self._options.on_date, max_attempts=self._options.activity_attempts,
            )
            variables = build_variables(
                p.assignments, section, p.grade_config, override, self._subjects, self._teachers,
                allow_pairs=allow_pairs,
            )
            ctx = SolverContext(
                grid=grid,
                ranges=p.ranges,
                registry=registry,
                class_id=section.id,
                room_id=section.room_id,
                rng=self._rng,
                max_iterations=self._options.max_iterations,
            )
            return solve_class(variables, ctx), tuple(reports)

        outcome, reports = attempt_solve(True)
        used_fallback = False
        if not outcome.success:
            logger.warning(
                "No se pudo resolver la clase %s con bloques dobles; reintentando sin emparejar",
                section.label,
            )
            used_fallback = True
            outcome, reports = attempt_solve(False)

        if not outcome.success:
            if outcome.reason == REASON_BUDGET:
                message = f"Se superó el límite de {outcome.max_iterations} iteraciones para la clase {section.label}"
            else:
                message = f"Backtracking no encontró solución para la clase {section.label}"
            logger.warning("%s (iteraciones=%s)", message, outcome.iterations)
            return ClassResult(
                class_id=section.id, class_name=section.label, success=False,
                reason=outcome.reason, message=message, iterations=outcome.iterations,
                attempt=attempt, used_pairing_fallback=used_fallback, activity_reports=reports,
            )

        logger.info("Clase %s resuelta (iteraciones=%s)", section.label, outcome.iterations)
        schedule = Schedule(
            class_id=section.id,
            year=year,
            semester=semester,
            timetable=outcome.timetable or (),
            class_name=section.name,
        )
        return ClassResult(
            class_id=section.id, class_name=section.label, success=True,
            iterations=outcome.iterations, attempt=attempt,
            used_pairing_fallback=used_fallback, activity_reports=reports, schedule=schedule,
        )

    # -----------------------------
    # Fusión de intentos
    # -----------------------------

    def _merge(
        self,
        attempts: List[_AttemptState],
        seed_registry: ConflictRegistry,
        prepared: List[_Prepared],
    ) -> Dict[str, ClassResult]:
        """
        Base: el intento con más clases resueltas (el último en empate). Se añaden
        clases resueltas en otros intentos solo si no chocan con lo ya aceptado.
        """
        best = max(reversed(attempts), key=lambda s: len(s.solved))
        accepted: Dict[str, ClassResult] = dict(best.solved)
        registry = seed_registry.copy()
        rooms = {p.section.id: p.section.room_id for p in prepared}
        for r in accepted.values():
            if r.schedule is not None:
                registry.commit_schedule(r.schedule, rooms.get(r.class_id))

        for state in reversed(attempts):
            if state is best:
                continue
            for class_id, r in state.solved.items():
                if class_id in accepted or r.schedule is None:
                    continue
                if _fits(r.schedule, registry, rooms.get(class_id)):
                    registry.commit_schedule(r.schedule, rooms.get(class_id))
                    accepted[class_id] = r

        final: Dict[str, ClassResult] = {}
        for p in prepared:
            cid = p.section.id
            if cid in accepted:
                final[cid] = accepted[cid]
                continue
            # una clase no aceptada falló al menos en el mejor intento
            final[cid] = next(s.failed[cid] for s in reversed(attempts) if cid in s.failed)
        return final


def _fits(schedule: Schedule, registry: ConflictRegistry, room_id: Optional[str]) -> bool:
    for day in schedule.timetable:
        for p in day.periods:
            if p.teacher_id and registry.is_taken(teacher_key(p.teacher_id, day.day, p.period), schedule.class_id):
                return False
            if room_id and p.subject_id and not p.locked and registry.is_taken(
                room_key(room_id, day.day, p.period), schedule.class_id
            ):
                return False
    return True
