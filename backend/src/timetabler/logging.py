from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Loggers de terceros que solo interesan en modo debug.
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "multipart")


def configure_logging(debug: bool = False, solver_trace: bool = False) -> None:
    """
    Configura el root logger una sola vez.
    solver_trace=True deja el backtracking en DEBUG aunque la app esté en INFO.
    """
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    logging.getLogger("timetabler.domain.solver").setLevel(
        logging.DEBUG if (debug or solver_trace) else logging.INFO
    )
