# core/audit.py
# Comprobación a posteriori de horarios guardados: dobles reservas, completitud,
# celdas bloqueadas, disponibilidad del profesor y tope diario.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from timetabler.domain.calendar.grid import day_index
from timetabler.domain.core.periods import resolve_periods, subject_rule_for
from timetabler.domain.core.schema import Schedule, SchoolDataset, TeachingAssignment

KIND_TEACHER_CLASH = "teacher_double_booked"
KIND_ROOM_CLASH = "room_double_booked"
KIND_INCOMPLETE = "incomplete"
KIND_LOCK = "lock_overwritten"
KIND_AVAILABILITY = "teacher_unavailable"
KIND_DAILY_CAP = "daily_cap_exceeded"


@dataclass(frozen=True)
class Violation:
    kind: str
    class_id: str
    message: str


def find_violations(
    schedules: Iterable[Schedule],
    dataset: SchoolDataset,
    assignments: Iterable[TeachingAssignment] = (),
) -> List[Violation]:
    schedules = list(schedules)
    out: List[Violation] = []
    out.extend(_double_bookings(schedules, dataset))
    out.extend(_per_class(schedules, dataset, list(assignments)))
    return out


def _double_bookings(schedules: List[Schedule], dataset: SchoolDataset) -> List[Violation]:
    rooms = {c.id: c.room_id for c in dataset.classes}
    teacher_seen: Dict[Tuple[str, str, int], str] = {}
    room_seen: Dict[Tuple[str, str, int], str] = {}
    out: List[Violation] = []

    for s in schedules:
        room = rooms.get(s.class_id)
        for day in s.timetable:
            for p in day.periods:
                if p.teacher_id:
                    key = (p.teacher_id, day.day, p.period)
                    other = teacher_seen.setdefault(key, s.class_id)
                    if other != s.class_id:
                        out.append(Violation(
                            KIND_TEACHER_CLASH, s.class_id,
                            f"Profesor {p.teacher_id} en {other} y {s.class_id} ({day.day} P{p.period})",
                        ))
                if room and p.subject_id and not p.locked:
                    key = (room, day.day, p.period)
                    other = room_seen.setdefault(key, s.class_id)
                    if other != s.class_id:
                        out.append(Violation(
                            KIND_ROOM_CLASH, s.class_id,
                            f"Aula {room} en {other} y {s.class_id} ({day.day} P{p.period})",
                        ))
    return out


def _per_class(
    schedules: List[Schedule],
    dataset: SchoolDataset,
    assignments: List[TeachingAssignment],
) -> List[Violation]:
    config = dataset.config
    if config is None:
        return []
    classes = dataset.index_classes()
    teachers = dataset.index_teachers()
    days = config.day_names()
    out: List[Violation] = []

    for s in schedules:
        section = classes.get(s.class_id)
        grade_config = config.grade_config(section.grade) if section else None
        if grade_config is None:
            continue

        rests = {(rp.day, rp.period) for rp in grade_config.rest_periods}
        counts: Dict[str, int] = {}
        per_day: Dict[Tuple[str, str], int] = {}

        for day in s.timetable:
            d_idx = day_index(days, day.day)
            for p in day.periods:
                if (day.day, p.period) in rests and (not p.locked or p.teacher_id):
                    out.append(Violation(
                        KIND_LOCK, s.class_id,
                        f"Celda bloqueada {day.day} P{p.period} modificada",
                    ))
                if not p.subject_id or p.locked:
                    continue
                counts[p.subject_id] = counts.get(p.subject_id, 0) + 1
                per_day[(day.day, p.subject_id)] = per_day.get((day.day, p.subject_id), 0) + 1

                teacher = teachers.get(p.teacher_id) if p.teacher_id else None
                if teacher is not None and d_idx >= 0 and not teacher.is_available(d_idx, p.period - 1):
                    out.append(Violation(
                        KIND_AVAILABILITY, s.class_id,
                        f"Profesor {teacher.id} no disponible en {day.day} P{p.period}",
                    ))

        for (day_name, subject_id), n in per_day.items():
            cap = subject_rule_for(grade_config, subject_id).max_per_day
            if n > cap:
                out.append(Violation(
                    KIND_DAILY_CAP, s.class_id,
                    f"{subject_id}: {n} periodos el {day_name} (máximo {cap})",
                ))

        override = dataset.override_for(s.class_id, s.year, s.semester)
        for a in assignments:
            if a.class_id != s.class_id or a.year != s.year or a.semester != s.semester:
                continue
            wanted = resolve_periods(a.subject_id, grade_config, s.class_id, override)
            got = counts.get(a.subject_id, 0)
            if wanted and got != wanted:
                out.append(Violation(
                    KIND_INCOMPLETE, s.class_id,
                    f"{a.subject_id}: {got}/{wanted} periodos colocados",
                ))

    return out
