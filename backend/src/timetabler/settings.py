from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


def _load_local_env_file() -> None:
    """Carga variables desde .env si existe, sin sobrescribir variables exportadas."""
    env_path = Path('.env')
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)


_load_local_env_file()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    debug: bool
    db_backend: str
    database_url: str | None
    solver_max_iterations: int = 200_000
    solver_batch_attempts: int = 5
    solver_activity_attempts: int = 500
    solver_random_seed: int | None = None
    solver_trace: bool = False


def load_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "timetabler"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        debug=_flag("APP_DEBUG"),
        db_backend=os.getenv("DB_BACKEND", "memory"),
        database_url=os.getenv("DATABASE_URL"),
        solver_max_iterations=int(os.getenv("SOLVER_MAX_ITERATIONS", "200000")),
        solver_batch_attempts=int(os.getenv("SOLVER_BATCH_ATTEMPTS", "5")),
        solver_activity_attempts=int(os.getenv("SOLVER_ACTIVITY_ATTEMPTS", "500")),
        solver_random_seed=_optional_int("SOLVER_RANDOM_SEED"),
        solver_trace=_flag("SOLVER_TRACE"),
    )
