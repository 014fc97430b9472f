# core/validate.py
# Validaciones "antes de generar" para detectar lotes imposibles o datos rotos.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from timetabler.domain.calendar.grid import day_index, session_ranges
from timetabler.domain.core.periods import resolve_periods, subject_rule_for
from timetabler.domain.core.schema import (
    ClassSection,
    GradeConfig,
    ScheduleConfig,
    SchoolDataset,
    Session,
    TeachingAssignment,
)


# ------------------ API pública ------------------

class ValidationError(ValueError):
    """Error de validación con múltiples mensajes."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("\n".join(errors))


@dataclass(frozen=True)
class ValidationReport:
    ok: bool
    errors: List[str]
    warnings: List[str]
    class_count: int = 0
    assignment_count: int = 0


def validate_before_generate(
    dataset: SchoolDataset,
    assignments: Iterable[TeachingAssignment],
    grades: Sequence[str],
    year: str,
    semester: str,
    *,
    raise_on_error: bool = False,
) -> ValidationReport:
    """
    Comprueba un lote (cursos, año, semestre) antes de lanzar el solver.
    - Si raise_on_error=True y hay errores -> lanza ValidationError.
    - Si no, devuelve ValidationReport con errores y warnings.
    """
    errors: List[str] = []
    warnings: List[str] = []

    classes = dataset.classes_for(year, list(grades))
    batch = [a for a in assignments if a.year == year and a.semester == semester]

    if dataset.config is None:
        errors.append("No existe configuración de horario (ScheduleConfig).")
    else:
        _validate_config(dataset.config, grades, errors, warnings)

    if not classes:
        errors.append(f"No hay clases para los cursos {sorted(str(g) for g in grades)} en el año {year}.")

    _validate_assignments(dataset, classes, batch, year, semester, errors, warnings)

    if dataset.config is not None:
        _validate_capacity_sanity(dataset, dataset.config, classes, batch, year, semester, errors, warnings)

    report = ValidationReport(
        ok=(len(errors) == 0),
        errors=errors,
        warnings=warnings,
        class_count=len(classes),
        assignment_count=len(batch),
    )
    if raise_on_error and errors:
        raise ValidationError(errors)
    return report


# ------------------ Helpers ------------------

def _validate_config(config: ScheduleConfig, grades: Sequence[str], errors: List[str], warnings: List[str]) -> None:
    if not config.days:
        errors.append("ScheduleConfig.days está vacío.")

    for d in config.days:
        if d.total_periods <= 0:
            errors.append(f"El día '{d.name}' no tiene periodos lectivos.")
        if d.total_periods > 12:
            warnings.append(f"El día '{d.name}' tiene {d.total_periods} periodos; revisa la configuración.")

    for g in grades:
        grade_config = config.grade_config(str(g))
        if grade_config is None:
            errors.append(f"No hay configuración para el curso {g}.")
            continue
        _validate_fixed_slots(config, grade_config, errors)


def _validate_fixed_slots(config: ScheduleConfig, grade_config: GradeConfig, errors: List[str]) -> None:
    """Cada periodo fijo de asignatura debe ser una celda colocable de su sesión."""
    ranges = session_ranges(config.days, grade_config.session_rule)
    rests = {(rp.day, rp.period) for rp in grade_config.rest_periods}
    days = config.day_names()

    for subject_id, rule in sorted(grade_config.subjects.items()):
        slot = rule.fixed_slot
        if slot is None:
            continue
        start, end = ranges.range_for(rule.session)
        d = day_index(days, slot.day)
        where = f"{slot.day} P{slot.period}"
        if d < 0:
            errors.append(f"Curso {grade_config.grade}: {subject_id} fijado en un día desconocido ({where}).")
        elif not start < slot.period <= end:
            errors.append(f"Curso {grade_config.grade}: {subject_id} fijado fuera de su sesión ({where}).")
        elif (days[d], slot.period) in rests:
            errors.append(f"Curso {grade_config.grade}: {subject_id} fijado en un descanso ({where}).")


def _validate_assignments(
    dataset: SchoolDataset,
    classes: List[ClassSection],
    batch: List[TeachingAssignment],
    year: str,
    semester: str,
    errors: List[str],
    warnings: List[str],
) -> None:
    teachers = dataset.index_teachers()
    subjects = dataset.index_subjects()

    by_class: Dict[str, List[TeachingAssignment]] = {}
    for a in batch:
        by_class.setdefault(a.class_id, []).append(a)
        if a.teacher_id not in teachers:
            errors.append(f"Asignación {a.subject_id}/{a.class_id} referencia un profesor desconocido '{a.teacher_id}'.")
        if a.subject_id not in subjects:
            errors.append(f"Asignación {a.subject_id}/{a.class_id} referencia una asignatura desconocida.")

    for c in classes:
        own = by_class.get(c.id, [])
        if not own:
            errors.append(f"La clase {c.label} no tiene asignaciones docentes para {year}/{semester}.")
            continue
        assigned = {a.subject_id for a in own}
        missing = [
            s.name or s.id
            for s in dataset.subjects
            if s.is_active and c.grade in s.grades and s.id not in assigned
        ]
        if missing:
            warnings.append(f"La clase {c.label} tiene asignaturas sin profesor: {sorted(missing)}.")


def _validate_capacity_sanity(
    dataset: SchoolDataset,
    config: ScheduleConfig,
    classes: List[ClassSection],
    batch: List[TeachingAssignment],
    year: str,
    semester: str,
    errors: List[str],
    warnings: List[str],
) -> None:
    teacher_load: Dict[str, int] = {}

    for c in classes:
        grade_config = config.grade_config(c.grade)
        if grade_config is None:
            continue
        override = dataset.override_for(c.id, year, semester)
        ranges = session_ranges(config.days, grade_config.session_rule)
        slots = (ranges.main_end - ranges.main_start) * len(config.days)
        rests = sum(1 for rp in grade_config.rest_periods if ranges.main_start < rp.period <= ranges.main_end)

        locked = rests + sum(
            resolve_periods(rule.activity_id, grade_config, c.id, override, is_activity=True)
            for rule in grade_config.activities
            if rule.session == Session.MAIN
        )
        load = 0
        for a in batch:
            if a.class_id != c.id:
                continue
            periods = resolve_periods(a.subject_id, grade_config, c.id, override)
            if periods == 0:
                warnings.append(
                    f"La clase {c.label}: la asignatura {a.subject_id} no tiene periodos configurados; se omitirá."
                )
            if subject_rule_for(grade_config, a.subject_id).session == Session.MAIN:
                load += periods
            teacher_load[a.teacher_id] = teacher_load.get(a.teacher_id, 0) + periods

        if load + locked > slots:
            errors.append(
                f"La clase {c.label} requiere {load} periodos (+{locked} bloqueados) "
                f"pero solo hay {slots} celdas en la sesión principal."
            )
        elif load + locked == slots:
            warnings.append(
                f"La clase {c.label} llena el 100% de la sesión principal ({slots}). "
                "Esto suele hacer el problema más duro."
            )

    teachers = dataset.index_teachers()
    for t_id, load in teacher_load.items():
        t = teachers.get(t_id)
        if t is None:
            continue
        cells = [v for row in t.availability for v in row]
        if cells:
            free = sum(1 for v in cells if v is not False)
            if load > free:
                errors.append(f"El profesor '{t_id}' tiene {load} periodos pero solo {free} celdas disponibles.")
        if t.effective_weekly_lessons and load > t.effective_weekly_lessons:
            warnings.append(
                f"El profesor '{t_id}': carga {load} > effective_weekly_lessons {t.effective_weekly_lessons}."
            )

