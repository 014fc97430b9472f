from timetabler.domain.assignment.assign import TeacherTaskAssigner, assign_teachers
from timetabler.domain.core.schema import (
    Capability,
    ClassSection,
    Subject,
    SubjectRule,
    Teacher,
    TeacherStatus,
    TeachingAssignment,
)

from builders import YEAR, availability, make_config, make_dataset, make_grade

MATH = Subject(id="math", name="Toán", grades=frozenset({"10"}))
CONFIG = make_config(make_grade(SubjectRule(subject_id="math", periods_per_week=4)))


def _teacher(teacher_id: str, **kwargs) -> Teacher:
    return Teacher(id=teacher_id, capabilities=(Capability("math", frozenset({"10"})),), **kwargs)


def _classes(*ids: str) -> list[ClassSection]:
    return [ClassSection(id=i, grade="10", year=YEAR, name=i) for i in ids]


def _pairs(result) -> list[tuple[str, str]]:
    return [(a.class_id, a.teacher_id) for a in result.created]


def test_main_subject_teacher_ranks_first_until_capped() -> None:
    dataset = make_dataset(
        CONFIG,
        [_teacher("T2"), _teacher("T1", main_subject="math", max_classes=1)],
        _classes("10A", "10B"),
        [MATH],
    )

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert _pairs(result) == [("10A", "T1"), ("10B", "T2")]
    assert result.unassigned == ()


def test_load_is_spread_between_equal_candidates() -> None:
    dataset = make_dataset(CONFIG, [_teacher("T2"), _teacher("T3")], _classes("10A", "10B", "10C"), [MATH])

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert _pairs(result) == [("10A", "T2"), ("10B", "T3"), ("10C", "T2")]


def test_weekly_load_limit_leaves_task_unassigned() -> None:
    dataset = make_dataset(CONFIG, [_teacher("T1", effective_weekly_lessons=4)], _classes("10A", "10B"), [MATH])

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert _pairs(result) == [("10A", "T1")]
    (missing,) = result.unassigned
    assert missing.class_id == "10B"
    assert missing.subject_id == "math"


def test_grade_cap_is_enforced() -> None:
    dataset = make_dataset(
        CONFIG,
        [_teacher("T1", max_class_per_grade={"10": 1})],
        _classes("10A", "10B"),
        [MATH],
    )

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert len(result.created) == 1
    assert len(result.unassigned) == 1


def test_leaders_inactive_and_fully_busy_teachers_are_skipped() -> None:
    dataset = make_dataset(
        CONFIG,
        [
            _teacher("L1", is_leader=True),
            _teacher("I1", status=TeacherStatus.INACTIVE),
            _teacher("B1", availability=availability(set())),
        ],
        _classes("10A"),
        [MATH],
    )

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert result.created == ()
    assert result.unassigned[0].class_id == "10A"


def test_teacher_without_grade_capability_is_not_a_candidate() -> None:
    other_grade = Teacher(id="T9", capabilities=(Capability("math", frozenset({"11"})),))
    dataset = make_dataset(CONFIG, [other_grade], _classes("10A"), [MATH])

    result = assign_teachers(dataset, ["10"], YEAR, "1")

    assert result.created == ()
    assert "imparte" in result.unassigned[0].reason


def test_second_semester_keeps_first_semester_teacher() -> None:
    dataset = make_dataset(
        CONFIG,
        [_teacher("T1", main_subject="math"), _teacher("T2")],
        _classes("10A"),
        [MATH],
    )
    previous = [TeachingAssignment(teacher_id="T2", subject_id="math", class_id="10A", year=YEAR, semester="1")]

    result = assign_teachers(dataset, ["10"], YEAR, "2", previous)

    assert _pairs(result) == [("10A", "T2")]
    assert result.created[0].semester == "2"


def test_existing_assignments_are_skipped_and_counted() -> None:
    dataset = make_dataset(
        CONFIG,
        [_teacher("T1", max_classes=1), _teacher("T2")],
        _classes("10A", "10B"),
        [MATH],
    )
    existing = [TeachingAssignment(teacher_id="T1", subject_id="math", class_id="10A", year=YEAR, semester="1")]

    result = assign_teachers(dataset, ["10"], YEAR, "1", existing)

    assert _pairs(result) == [("10B", "T2")]


def test_name_defaults_size_load_when_grade_has_no_rule() -> None:
    lit = Subject(id="lit", name="Ngữ văn", grades=frozenset({"10"}))
    teacher = Teacher(id="T1", capabilities=(Capability("lit", frozenset({"10"})),), effective_weekly_lessons=6)
    dataset = make_dataset(CONFIG, [teacher], _classes("10A", "10B"), [lit])
    assigner = TeacherTaskAssigner(dataset, YEAR, "1")

    result = assigner.assign(["10"], [])

    # "Ngữ văn" = 4 periodos por la tabla de nombres: cabe una clase de 6
    assert len(result.created) == 1
    assert assigner.load_of("T1").weekly_periods == 4


def test_tasks_only_for_active_subjects_of_the_grade() -> None:
    subjects = [
        MATH,
        Subject(id="art", grades=frozenset({"10"}), is_active=False),
        Subject(id="chem", grades=frozenset({"11"})),
    ]
    dataset = make_dataset(CONFIG, [], _classes("10A"), subjects)

    tasks = TeacherTaskAssigner(dataset, YEAR, "1").build_tasks(["10"])

    assert [(t.class_id, t.subject_id) for t in tasks] == [("10A", "math")]
