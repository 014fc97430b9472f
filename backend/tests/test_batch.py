import pytest

from timetabler.domain.core.audit import find_violations
from timetabler.domain.core.schema import (
    ClassSection,
    Schedule,
    ScheduleDay,
    ScheduledPeriod,
    Subject,
    SubjectRule,
    Teacher,
    TeachingAssignment,
)
from timetabler.domain.solver.batch import (
    REASON_NO_ASSIGNMENTS,
    REASON_NO_GRADE_CONFIG,
    BatchOptions,
    BatchOrchestrator,
    ClassResult,
    MissingConfigError,
    _AttemptState,
)
from timetabler.domain.solver.registry import ConflictRegistry
from timetabler.infra.repositories.school_repository import InMemorySchoolRepository

from builders import YEAR, availability, make_config, make_dataset, make_grade

MATH = Subject(id="math", name="Toán", grades=frozenset({"10"}))
LIT = Subject(id="lit", name="Ngữ văn", grades=frozenset({"10"}))


def _section(class_id: str, grade: str = "10") -> ClassSection:
    return ClassSection(id=class_id, grade=grade, year=YEAR, name=class_id, room_id=f"R-{class_id}")


def _assign(class_id: str, teacher_id: str = "T1") -> TeachingAssignment:
    return TeachingAssignment(teacher_id=teacher_id, subject_id="math", class_id=class_id, year=YEAR, semester="1")


def _committed(class_id: str, teacher_id: str, period: int) -> Schedule:
    return Schedule(
        class_id=class_id,
        year=YEAR,
        semester="1",
        timetable=(
            ScheduleDay(
                day="Monday",
                periods=(ScheduledPeriod(period=period, subject_id="math", teacher_id=teacher_id),),
            ),
        ),
    )


def test_missing_config_is_fatal() -> None:
    with pytest.raises(MissingConfigError):
        BatchOrchestrator(make_dataset(None, [], [], []))


def test_shared_teacher_over_capacity_leaves_a_class_unsolved() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=2))
    config = make_config(grade)
    teacher = Teacher(id="T1", availability=availability({(0, 0), (0, 1)}))
    classes = [_section("10A"), _section("10B")]
    dataset = make_dataset(config, [teacher], classes, [MATH])
    persisted: list[Schedule] = []

    result = BatchOrchestrator(dataset, BatchOptions(seed=1)).run(
        classes, [_assign("10A"), _assign("10B")], [], YEAR, "1", persist=persisted.append
    )

    assert len(result.solved) == 1
    assert len(result.failed) == 1
    assert result.attempts == 5
    assert result.failed[0].used_pairing_fallback
    assert len(persisted) == 1
    assert find_violations(persisted, dataset, [_assign("10A"), _assign("10B")]) == []


def test_pairing_fallback_solves_split_availability() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=2, max_per_day=2))
    config = make_config(grade)
    teacher = Teacher(id="T1", availability=availability({(0, 0), (0, 2)}))
    classes = [_section("10A")]
    dataset = make_dataset(config, [teacher], classes, [MATH])

    result = BatchOrchestrator(dataset, BatchOptions(seed=3)).run(classes, [_assign("10A")], [], YEAR, "1")

    (only,) = result.results
    assert only.success
    assert only.used_pairing_fallback
    cells = [
        (day.day, p.period)
        for day in only.schedule.timetable for p in day.periods if p.subject_id == "math"
    ]
    assert sorted(cells) == [("Monday", 1), ("Monday", 3)]


def test_committed_schedules_outside_batch_block_the_teacher() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    teacher = Teacher(id="T1", availability=availability({(0, 0), (0, 1)}))
    classes = [_section("10A"), _section("10C")]
    dataset = make_dataset(config, [teacher], classes, [MATH])

    result = BatchOrchestrator(dataset, BatchOptions(seed=5)).run(
        [classes[0]], [_assign("10A")], [_committed("10C", "T1", 1)], YEAR, "1"
    )

    (only,) = result.results
    assert only.success
    monday = only.schedule.timetable[0]
    assert monday.periods[0].teacher_id is None
    assert monday.periods[1].teacher_id == "T1"


def test_committed_schedule_of_a_batch_class_is_ignored() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    teacher = Teacher(id="T1", availability=availability({(0, 0)}))
    classes = [_section("10A")]
    dataset = make_dataset(config, [teacher], classes, [MATH])

    result = BatchOrchestrator(dataset, BatchOptions(seed=5)).run(
        classes, [_assign("10A")], [_committed("10A", "T1", 1)], YEAR, "1"
    )

    assert result.results[0].success
    assert result.attempts == 1


def test_classes_without_grade_config_or_assignments_are_reported() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    classes = [_section("10A"), _section("11A", grade="11")]
    dataset = make_dataset(config, [Teacher(id="T1")], classes, [MATH])

    result = BatchOrchestrator(dataset, BatchOptions(seed=1)).run(classes, [], [], YEAR, "1")

    reasons = {r.class_id: r.reason for r in result.results}
    assert reasons == {"10A": REASON_NO_ASSIGNMENTS, "11A": REASON_NO_GRADE_CONFIG}
    assert result.solved == []


def test_persist_called_once_per_solved_class() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=3))
    config = make_config(grade)
    classes = [_section("10A"), _section("10B"), _section("10C")]
    teachers = [Teacher(id="T1"), Teacher(id="T2"), Teacher(id="T3")]
    dataset = make_dataset(config, teachers, classes, [MATH])
    assignments = [_assign("10A", "T1"), _assign("10B", "T2"), _assign("10C", "T1")]
    persisted: list[Schedule] = []

    result = BatchOrchestrator(dataset, BatchOptions(seed=9)).run(
        classes, assignments, [], YEAR, "1", persist=persisted.append
    )

    assert len(result.solved) == 3
    assert sorted(s.class_id for s in persisted) == ["10A", "10B", "10C"]
    assert find_violations(persisted, dataset, assignments) == []


def test_failed_batch_class_loses_its_previous_schedule() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    teachers = [
        Teacher(id="T1", availability=availability({(0, 0)})),
        Teacher(id="T2", availability=availability(set())),
    ]
    classes = [_section("10A"), _section("10B")]
    dataset = make_dataset(config, teachers, classes, [MATH])
    assignments = [_assign("10A", "T1"), _assign("10B", "T2")]
    repository = InMemorySchoolRepository()
    repository.replace_schedule(_committed("10B", "T1", 1))

    result = BatchOrchestrator(dataset, BatchOptions(seed=2)).run(
        classes, assignments, repository.list_schedules(YEAR, "1"), YEAR, "1",
        persist=repository.replace_schedule,
        discard=lambda class_id: repository.delete_schedules([class_id], YEAR, "1"),
    )

    assert [r.class_id for r in result.solved] == ["10A"]
    assert [s.class_id for s in repository.list_schedules(YEAR, "1")] == ["10A"]
    assert find_violations(repository.list_schedules(YEAR, "1"), dataset, assignments) == []


def test_order_dependent_batch_recovers_on_a_later_attempt() -> None:
    # 10B solo cabe si su Toán va en P1: el Ngữ văn (T3) solo puede en P2.
    grade = make_grade(
        SubjectRule(subject_id="math", periods_per_week=1),
        SubjectRule(subject_id="lit", periods_per_week=1),
    )
    config = make_config(grade)
    teachers = [
        Teacher(id="T1", availability=availability({(0, 0), (0, 1)})),
        Teacher(id="T3", availability=availability({(0, 1)})),
    ]
    classes = [_section("10A"), _section("10B")]
    dataset = make_dataset(config, teachers, classes, [MATH, LIT])
    assignments = [
        _assign("10A", "T1"),
        _assign("10B", "T1"),
        TeachingAssignment(teacher_id="T3", subject_id="lit", class_id="10B", year=YEAR, semester="1"),
    ]

    recovered = []
    for seed in range(30):
        persisted: list[Schedule] = []
        result = BatchOrchestrator(dataset, BatchOptions(seed=seed)).run(
            classes, assignments, [], YEAR, "1", persist=persisted.append
        )
        assert find_violations(persisted, dataset, assignments) == []
        assert sorted(s.class_id for s in persisted) == sorted(r.class_id for r in result.solved)
        if result.attempts > 1 and len(result.solved) == 2:
            recovered.append(seed)

    assert recovered


def _solved(class_id: str, teacher_id: str, period: int, attempt: int) -> ClassResult:
    return ClassResult(
        class_id=class_id, class_name=class_id, success=True, attempt=attempt,
        schedule=_committed(class_id, teacher_id, period),
    )


def _failed(class_id: str, attempt: int) -> ClassResult:
    return ClassResult(class_id=class_id, class_name=class_id, success=False, reason="no_feasible_domain", attempt=attempt)


def test_merge_adds_non_clashing_classes_from_other_attempts() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    classes = [_section("10A"), _section("10B"), _section("10C"), _section("10D")]
    dataset = make_dataset(config, [Teacher(id="T1"), Teacher(id="T2")], classes, [MATH])
    orchestrator = BatchOrchestrator(dataset)
    prepared, _ = orchestrator._prepare(classes, [_assign(c.id) for c in classes], YEAR, "1")

    first = _AttemptState(registry=ConflictRegistry())
    first.solved = {"10B": _solved("10B", "T2", 1, 1), "10D": _solved("10D", "T1", 1, 1)}
    first.failed = {"10A": _failed("10A", 1), "10C": _failed("10C", 1)}
    best = _AttemptState(registry=ConflictRegistry())
    best.solved = {
        "10A": _solved("10A", "T1", 1, 2),
        "10C": _solved("10C", "T1", 2, 2),
        "10D": _solved("10D", "T1", 3, 2),
    }
    best.failed = {"10B": _failed("10B", 2)}

    final = orchestrator._merge([first, best], ConflictRegistry(), prepared)

    assert {cid for cid, r in final.items() if r.success} == {"10A", "10B", "10C", "10D"}
    assert final["10B"].attempt == 1
    assert final["10D"].attempt == 2
    schedules = [r.schedule for r in final.values()]
    assert find_violations(schedules, dataset) == []


def test_merge_rejects_a_class_that_clashes_with_the_best_attempt() -> None:
    grade = make_grade(SubjectRule(subject_id="math", periods_per_week=1))
    config = make_config(grade)
    classes = [_section("10A"), _section("10B")]
    dataset = make_dataset(config, [Teacher(id="T1")], classes, [MATH])
    orchestrator = BatchOrchestrator(dataset)
    prepared, _ = orchestrator._prepare(classes, [_assign(c.id) for c in classes], YEAR, "1")

    first = _AttemptState(registry=ConflictRegistry())
    first.solved = {"10B": _solved("10B", "T1", 1, 1)}
    first.failed = {"10A": _failed("10A", 1)}
    best = _AttemptState(registry=ConflictRegistry())
    best.solved = {"10A": _solved("10A", "T1", 1, 2)}
    best.failed = {"10B": _failed("10B", 2)}

    final = orchestrator._merge([first, best], ConflictRegistry(), prepared)

    assert final["10A"].success
    assert not final["10B"].success
    assert final["10B"].attempt == 2
