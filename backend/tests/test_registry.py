from timetabler.domain.core.schema import Schedule, ScheduleDay, ScheduledPeriod
from timetabler.domain.solver.registry import ConflictRegistry, room_key, teacher_key


def _schedule(class_id: str, teacher_id: str, period: int, *, locked: bool = False) -> Schedule:
    return Schedule(
        class_id=class_id,
        year="2025-2026",
        semester="1",
        timetable=(
            ScheduleDay(
                day="Monday",
                periods=(ScheduledPeriod(period=period, subject_id="math", teacher_id=teacher_id, locked=locked),),
            ),
        ),
    )


def test_taken_only_for_other_classes() -> None:
    registry = ConflictRegistry()
    key = teacher_key("T1", "Monday", 1)
    registry.register(key, "10A")

    assert registry.is_taken(key, "10B")
    assert not registry.is_taken(key, "10A")
    assert not registry.is_taken(teacher_key("T1", "Monday", 2), "10B")


def test_release_and_copy_are_independent() -> None:
    registry = ConflictRegistry()
    key = teacher_key("T1", "Monday", 1)
    registry.register(key, "10A")
    clone = registry.copy()

    registry.release([key])

    assert key not in registry
    assert clone.owner(key) == "10A"


def test_seeded_from_skips_batch_classes_and_books_rooms() -> None:
    schedules = [_schedule("10A", "T1", 1), _schedule("10B", "T2", 2)]

    registry = ConflictRegistry.seeded_from(schedules, {"10A": "R1", "10B": "R2"}, exclude_class_ids=["10B"])

    assert registry.owner(teacher_key("T1", "Monday", 1)) == "10A"
    assert registry.owner(room_key("R1", "Monday", 1)) == "10A"
    assert teacher_key("T2", "Monday", 2) not in registry
    assert registry.keys_for_class("10B") == []


def test_locked_cells_do_not_book_rooms() -> None:
    registry = ConflictRegistry()
    registry.commit_schedule(_schedule("10A", "", 1, locked=True), "R1")

    assert len(registry) == 0
