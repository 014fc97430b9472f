# assignment/assign.py
# Phân công giảng dạy: elige un profesor para cada (clase, asignatura) sin asignar.
# Algoritmo voraz; los contadores se actualizan tras cada asignación para repartir carga.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from timetabler.domain.core.periods import resolve_periods
from timetabler.domain.core.schema import SchoolDataset, Subject, Teacher, TeachingAssignment

logger = logging.getLogger(__name__)

FALLBACK_MAX_CLASSES = 5
FALLBACK_WEEKLY_LESSONS = 17


# ---------- Tipos ----------

@dataclass(frozen=True)
class AssignmentTask:
    class_id: str
    class_name: str
    grade: str
    subject_id: str
    subject_name: str


@dataclass(frozen=True)
class UnassignedTask:
    class_id: str
    class_name: str
    subject_id: str
    subject_name: str
    reason: str


@dataclass(frozen=True)
class AssignmentResult:
    created: Tuple[TeachingAssignment, ...]
    unassigned: Tuple[UnassignedTask, ...]


@dataclass
class TeacherLoad:
    """Contadores en memoria de un profesor durante la ejecución."""
    classes: int = 0
    weekly_periods: int = 0
    by_subject_grade: Dict[Tuple[str, str], int] = field(default_factory=dict)
    by_grade: Dict[str, int] = field(default_factory=dict)

    def add(self, subject_id: str, grade: str, periods: int) -> None:
        self.classes += 1
        self.weekly_periods += periods
        key = (subject_id, grade)
        self.by_subject_grade[key] = self.by_subject_grade.get(key, 0) + 1
        self.by_grade[grade] = self.by_grade.get(grade, 0) + 1


# ---------- Asignador ----------

class TeacherTaskAssigner:
    def __init__(self, dataset: SchoolDataset, year: str, semester: str) -> None:
        self._dataset = dataset
        self._year = year
        self._semester = str(semester)
        self._config = dataset.config
        self._classes = dataset.index_classes()
        self._subjects = dataset.index_subjects()
        self._teachers: List[Teacher] = list(dataset.teachers)
        self._loads: Dict[str, TeacherLoad] = {t.id: TeacherLoad() for t in self._teachers}
        self._taken: set = set()  # (teacher, subject, class, year, semester)

    # -----------------------------
    # API pública
    # -----------------------------

    def assign(self, grades: Sequence[str], existing: Iterable[TeachingAssignment]) -> AssignmentResult:
        existing = list(existing)
        same_year = [a for a in existing if a.year == self._year]
        current = [a for a in same_year if a.semester == self._semester]
        previous = {
            (a.class_id, a.subject_id): a.teacher_id
            for a in same_year
            if a.semester == "1"
        }

        assigned_pairs = self._seed_counters(current)
        tasks = self.build_tasks(grades, assigned_pairs)
        logger.info("Tareas de asignación pendientes: %s", len(tasks))

        created: List[TeachingAssignment] = []
        unassigned: List[UnassignedTask] = []

        for task in tasks:
            periods = self._periods(task.subject_id, task.grade, task.class_id)
            teacher = None

            if self._semester == "2":
                teacher = self._continuity_teacher(task, previous, periods)

            if teacher is None:
                candidates = self.candidates(task.subject_id, task.grade)
                if not candidates:
                    unassigned.append(_unassigned(task, "Ningún profesor imparte esta asignatura en este curso"))
                    continue
                valid = [t for t in candidates if self.can_teach(t, task.subject_id, task.grade, task.class_id, periods)]
                if not valid:
                    unassigned.append(_unassigned(task, "Ningún candidato cumple las restricciones de carga"))
                    continue
                teacher = min(valid, key=lambda t: self._rank(t, task.subject_id, task.grade))

            assignment = TeachingAssignment(
                teacher_id=teacher.id,
                subject_id=task.subject_id,
                class_id=task.class_id,
                year=self._year,
                semester=self._semester,
            )
            created.append(assignment)
            self._record(assignment, task.grade, periods)
            logger.info("Asignado: %s -> %s -> %s", teacher.name or teacher.id, task.subject_name, task.class_name)

        if unassigned:
            for u in unassigned:
                logger.warning("Sin asignar: %s / %s (%s)", u.class_name, u.subject_name, u.reason)
        logger.info("Asignaciones creadas: %s, sin asignar: %s", len(created), len(unassigned))

        return AssignmentResult(created=tuple(created), unassigned=tuple(unassigned))

    def build_tasks(self, grades: Sequence[str], assigned_pairs: Optional[set] = None) -> List[AssignmentTask]:
        """Un task por (clase del curso, asignatura activa del curso) todavía sin asignar."""
        wanted = {str(g) for g in grades}
        assigned_pairs = assigned_pairs or set()
        tasks: List[AssignmentTask] = []
        for cls in self._dataset.classes:
            if cls.year != self._year or cls.grade not in wanted:
                continue
            for subj in self._dataset.subjects:
                if not subj.is_active or cls.grade not in subj.grades:
                    continue
                if (cls.id, subj.id) in assigned_pairs:
                    continue
                tasks.append(AssignmentTask(
                    class_id=cls.id,
                    class_name=cls.label,
                    grade=cls.grade,
                    subject_id=subj.id,
                    subject_name=subj.name or subj.id,
                ))
        return tasks

    def candidates(self, subject_id: str, grade: str) -> List[Teacher]:
        out: List[Teacher] = []
        for t in self._teachers:
            if not t.is_assignable or not t.teaches_subject(subject_id):
                continue
            if grade in t.grades_for(subject_id) or t.main_subject == subject_id:
                out.append(t)
        return out

    def can_teach(self, teacher: Teacher, subject_id: str, grade: str, class_id: str, periods: int) -> bool:
        """Restricciones duras; todas deben cumplirse."""
        if (teacher.id, subject_id, class_id, self._year, self._semester) in self._taken:
            return False

        load = self._loads.setdefault(teacher.id, TeacherLoad())
        max_classes = teacher.max_classes or FALLBACK_MAX_CLASSES
        if load.classes >= max_classes:
            return False

        max_weekly = teacher.effective_weekly_lessons or FALLBACK_WEEKLY_LESSONS
        if load.weekly_periods + periods > max_weekly:
            return False

        grade_cap = teacher.grade_cap(grade)
        if grade_cap > 0 and load.by_grade.get(grade, 0) >= grade_cap:
            return False

        if periods > 0 and load.classes >= max_weekly // periods:
            return False

        # señal barata; el encaje exacto lo decide el solver
        return teacher.has_any_free_cell()

    def load_of(self, teacher_id: str) -> TeacherLoad:
        return self._loads.setdefault(teacher_id, TeacherLoad())

    # -----------------------------
    # Helpers
    # -----------------------------

    def _seed_counters(self, current: List[TeachingAssignment]) -> set:
        pairs = set()
        for a in current:
            cls = self._classes.get(a.class_id)
            grade = cls.grade if cls is not None else ""
            self._record(a, grade, self._periods(a.subject_id, grade, a.class_id))
            pairs.add((a.class_id, a.subject_id))
        return pairs

    def _record(self, a: TeachingAssignment, grade: str, periods: int) -> None:
        self._taken.add((a.teacher_id, a.subject_id, a.class_id, a.year, a.semester))
        self.load_of(a.teacher_id).add(a.subject_id, grade, periods)

    def _periods(self, subject_id: str, grade: str, class_id: str) -> int:
        grade_config = self._config.grade_config(grade) if self._config else None
        subject: Optional[Subject] = self._subjects.get(subject_id)
        override = self._dataset.override_for(class_id, self._year, self._semester)
        return resolve_periods(
            subject_id, grade_config, class_id, override,
            item_name=subject.name if subject else None,
            use_name_defaults=True,
        )

    def _continuity_teacher(
        self,
        task: AssignmentTask,
        previous: Dict[Tuple[str, str], str],
        periods: int,
    ) -> Optional[Teacher]:
        teacher_id = previous.get((task.class_id, task.subject_id))
        if teacher_id is None:
            return None
        teacher = next((t for t in self._teachers if t.id == teacher_id), None)
        if teacher is None or not teacher.is_assignable:
            return None
        if not self.can_teach(teacher, task.subject_id, task.grade, task.class_id, periods):
            return None
        logger.debug("Continuidad: %s mantiene %s en %s", teacher.id, task.subject_id, task.class_id)
        return teacher

    def _rank(self, teacher: Teacher, subject_id: str, grade: str) -> Tuple[int, int, int]:
        load = self.load_of(teacher.id)
        return (
            0 if teacher.main_subject == subject_id else 1,
            load.by_subject_grade.get((subject_id, grade), 0),
            load.classes,
        )


def _unassigned(task: AssignmentTask, reason: str) -> UnassignedTask:
    return UnassignedTask(
        class_id=task.class_id,
        class_name=task.class_name,
        subject_id=task.subject_id,
        subject_name=task.subject_name,
        reason=reason,
    )


def assign_teachers(
    dataset: SchoolDataset,
    grades: Sequence[str],
    year: str,
    semester: str,
    existing: Iterable[TeachingAssignment] = (),
) -> AssignmentResult:
    return TeacherTaskAssigner(dataset, year, semester).assign(grades, existing)
