# solver/variables.py
# Descompone cada asignación (clase, asignatura, profesor) en unidades atómicas.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from timetabler.domain.core.periods import resolve_periods, subject_rule_for
from timetabler.domain.core.schema import (
    ClassPeriodsOverride,
    ClassSection,
    FixedSlot,
    GradeConfig,
    Session,
    Subject,
    Teacher,
    TeachingAssignment,
)


@dataclass(frozen=True)
class SchedulingVariable:
    id: str
    item_id: str
    teacher_id: str
    length: int          # 1 o 2
    session: Session
    max_per_day: int     # tope compartido por todas las variables de la asignatura
    label: str = ""
    teacher: Optional[Teacher] = None
    fixed_slot: Optional[FixedSlot] = None  # solo admite esa celda


def build_variables(
    assignments: Iterable[TeachingAssignment],
    class_section: ClassSection,
    grade_config: Optional[GradeConfig],
    override: Optional[ClassPeriodsOverride],
    subjects: Dict[str, Subject],
    teachers: Dict[str, Teacher],
    *,
    allow_pairs: bool = True,
) -> List[SchedulingVariable]:
    """
    Con emparejamiento y P >= 2: floor(P/2) bloques de 2; el resto (P mod 2, o P
    completo sin emparejamiento) como unidades de 1. P = 0 no genera nada.
    Un periodo fijo de la asignatura consume una unidad de 1 anclada a su celda.
    """
    variables: List[SchedulingVariable] = []

    for a in assignments:
        if a.class_id != class_section.id or not a.teacher_id:
            continue

        periods = resolve_periods(a.subject_id, grade_config, class_section.id, override)
        if periods <= 0:
            continue

        rule = subject_rule_for(grade_config, a.subject_id)
        subject = subjects.get(a.subject_id)
        label = subject.name if subject is not None and subject.name else a.subject_id
        can_pair = allow_pairs and rule.allow_consecutive

        remaining = periods
        if rule.fixed_slot is not None:
            variables.append(
                SchedulingVariable(
                    id=f"{a.subject_id}-fixed-{class_section.id}",
                    item_id=a.subject_id,
                    teacher_id=a.teacher_id,
                    length=1,
                    session=rule.session,
                    max_per_day=rule.max_per_day,
                    label=label,
                    teacher=teachers.get(a.teacher_id),
                    fixed_slot=rule.fixed_slot,
                )
            )
            remaining -= 1

        if can_pair and remaining >= 2:
            pairs = remaining // 2
            for i in range(pairs):
                variables.append(
                    SchedulingVariable(
                        id=f"{a.subject_id}-pair-{i}-{class_section.id}",
                        item_id=a.subject_id,
                        teacher_id=a.teacher_id,
                        length=2,
                        session=rule.session,
                        max_per_day=rule.max_per_day,
                        label=label,
                        teacher=teachers.get(a.teacher_id),
                    )
                )
            remaining -= pairs * 2

        for i in range(remaining):
            variables.append(
                SchedulingVariable(
                    id=f"{a.subject_id}-single-{i}-{class_section.id}",
                    item_id=a.subject_id,
                    teacher_id=a.teacher_id,
                    length=1,
                    session=rule.session,
                    max_per_day=rule.max_per_day,
                    label=label,
                    teacher=teachers.get(a.teacher_id),
                )
            )

    return variables
