import logging

import pytest

from timetabler.logging import configure_logging
from timetabler.settings import load_settings


def test_defaults_match_solver_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SOLVER_MAX_ITERATIONS", "SOLVER_BATCH_ATTEMPTS", "SOLVER_RANDOM_SEED", "SOLVER_TRACE", "DB_BACKEND"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.solver_max_iterations == 200_000
    assert settings.solver_batch_attempts == 5
    assert settings.solver_random_seed is None
    assert settings.solver_trace is False
    assert settings.db_backend == "memory"


def test_solver_knobs_are_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOLVER_MAX_ITERATIONS", "1000")
    monkeypatch.setenv("SOLVER_RANDOM_SEED", "42")
    monkeypatch.setenv("SOLVER_TRACE", "yes")

    settings = load_settings()

    assert settings.solver_max_iterations == 1000
    assert settings.solver_random_seed == 42
    assert settings.solver_trace is True


def test_solver_trace_keeps_solver_logger_at_debug() -> None:
    configure_logging(debug=False, solver_trace=True)

    assert logging.getLogger("timetabler.domain.solver").level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    configure_logging(debug=False)
    assert logging.getLogger("timetabler.domain.solver").level == logging.INFO
