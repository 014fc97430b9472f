from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from timetabler.api.deps import get_school_data_service
from timetabler.api.schemas import SchoolDataResponse
from timetabler.services.school_data_service import SchoolDataService

router = APIRouter(prefix="/school-data", tags=["school-data"])


@router.put("", response_model=SchoolDataResponse)
def put_school_data(
    payload: dict[str, Any] = Body(...),
    service: SchoolDataService = Depends(get_school_data_service),
) -> SchoolDataResponse:
    record = service.save(payload)
    return SchoolDataResponse(payload=record.payload, updated_at=record.updated_at)


@router.get("", response_model=SchoolDataResponse)
def get_school_data(service: SchoolDataService = Depends(get_school_data_service)) -> SchoolDataResponse:
    record = service.get_record()
    return SchoolDataResponse(payload=record.payload, updated_at=record.updated_at)
