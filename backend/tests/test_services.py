import pytest

from timetabler.domain.solver.batch import MissingConfigError
from timetabler.infra.repositories.school_repository import InMemorySchoolRepository
from timetabler.services.assignment_service import AssignmentService
from timetabler.services.errors import BadRequestError, DatasetNotLoadedError, NotFoundError
from timetabler.services.schedule_service import ScheduleService
from timetabler.services.school_data_service import SchoolDataService
from timetabler.settings import Settings

from builders import YEAR, school_payload

SETTINGS = Settings(
    app_name="timetabler-test",
    app_version="0.0.0",
    debug=False,
    db_backend="memory",
    database_url=None,
    solver_random_seed=11,
)


def _loaded_repository() -> InMemorySchoolRepository:
    repository = InMemorySchoolRepository()
    SchoolDataService(repository).save(school_payload())
    return repository


def test_malformed_payload_is_rejected() -> None:
    service = SchoolDataService(InMemorySchoolRepository())

    with pytest.raises(BadRequestError):
        service.save({"classes": [{"id": "10A"}]})


def test_services_need_a_loaded_dataset() -> None:
    with pytest.raises(DatasetNotLoadedError):
        AssignmentService(InMemorySchoolRepository()).auto_assign(["10"], YEAR, "1")


def test_auto_assign_then_generate_full_flow() -> None:
    repository = _loaded_repository()

    outcome = AssignmentService(repository).auto_assign(["10"], YEAR, "1")
    assert len(outcome.persisted) == 6
    assert outcome.result.unassigned == ()

    report = ScheduleService(repository, SETTINGS).generate(["10"], YEAR, "1")

    assert len(report.batch.solved) == 2
    assert report.violations == []
    schedule = repository.get_schedule("10A", YEAR, "1")
    monday_first = schedule.timetable[0].periods[0]
    assert monday_first.subject_id == "flag"
    assert monday_first.locked


def test_auto_assign_is_additive_and_can_replace() -> None:
    repository = _loaded_repository()
    service = AssignmentService(repository)
    service.auto_assign(["10"], YEAR, "1")

    again = service.auto_assign(["10"], YEAR, "1")
    assert again.persisted == []

    replaced = service.auto_assign(["10"], YEAR, "1", replace_existing=True)
    assert replaced.removed == 6
    assert len(replaced.persisted) == 6


def test_single_class_generation_respects_committed_schedules() -> None:
    repository = _loaded_repository()
    AssignmentService(repository).auto_assign(["10"], YEAR, "1")
    service = ScheduleService(repository, SETTINGS)
    service.generate_for_class("10A", YEAR, "1")

    report = service.generate_for_class("10B", YEAR, "1")

    assert report.batch.results[0].success
    assert report.violations == []
    lessons = service.teacher_schedule("T1", YEAR, "1")
    assert len(lessons) == 8
    assert {lesson["class_id"] for lesson in lessons} == {"10A", "10B"}


def test_generate_errors() -> None:
    repository = _loaded_repository()
    service = ScheduleService(repository, SETTINGS)

    with pytest.raises(NotFoundError):
        service.generate_for_class("99Z", YEAR, "1")
    with pytest.raises(BadRequestError):
        service.generate(["12"], YEAR, "1")
    with pytest.raises(NotFoundError):
        service.teacher_schedule("nobody", YEAR, "1")


def test_missing_schedule_config_is_fatal() -> None:
    repository = InMemorySchoolRepository()
    payload = school_payload()
    payload["config"] = None
    SchoolDataService(repository).save(payload)

    with pytest.raises(MissingConfigError):
        ScheduleService(repository, SETTINGS).generate(["10"], YEAR, "1")


def test_delete_schedules_by_grade() -> None:
    repository = _loaded_repository()
    AssignmentService(repository).auto_assign(["10"], YEAR, "1")
    service = ScheduleService(repository, SETTINGS)
    service.generate(["10"], YEAR, "1")

    assert service.delete_schedules(YEAR, "1", ["10"]) == 2
    assert service.list_schedules(YEAR, "1") == []
