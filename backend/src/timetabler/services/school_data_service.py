from __future__ import annotations

import logging
from typing import Any

from timetabler.domain.core.io import dataset_from_dict
from timetabler.domain.core.schema import SchoolDataset
from timetabler.infra.repositories.school_repository import DatasetRecord, SchoolRepository
from timetabler.services.errors import BadRequestError, DatasetNotLoadedError, NotFoundError

logger = logging.getLogger(__name__)


class SchoolDataService:
    def __init__(self, repository: SchoolRepository) -> None:
        self._repository = repository

    def save(self, payload: dict[str, Any]) -> DatasetRecord:
        # falla antes de guardar si el payload no se puede normalizar
        try:
            dataset = dataset_from_dict(payload)
        except (KeyError, TypeError) as exc:
            raise BadRequestError(f"Invalid school data payload: missing or malformed field {exc}") from exc
        logger.info(
            "Dataset loaded: %s teachers, %s classes, %s subjects, config=%s",
            len(dataset.teachers), len(dataset.classes), len(dataset.subjects),
            "yes" if dataset.config is not None else "no",
        )
        return self._repository.save_dataset(payload)

    def get_record(self) -> DatasetRecord:
        return self._repository.get_dataset()

    def get_dataset(self) -> SchoolDataset:
        try:
            record = self._repository.get_dataset()
        except NotFoundError as exc:
            raise DatasetNotLoadedError() from exc
        return dataset_from_dict(record.payload)
