from __future__ import annotations

from fastapi import APIRouter, Depends, status

from timetabler.api.deps import get_assignment_service
from timetabler.api.schemas import (
    AssignmentResponse,
    AutoAssignRequest,
    AutoAssignResponse,
    UnassignedResponse,
)
from timetabler.services.assignment_service import AssignmentService

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("/auto", response_model=AutoAssignResponse, status_code=status.HTTP_201_CREATED)
def auto_assign(
    body: AutoAssignRequest,
    service: AssignmentService = Depends(get_assignment_service),
) -> AutoAssignResponse:
    outcome = service.auto_assign(
        body.grades, body.year, body.semester, replace_existing=body.replace_existing
    )
    return AutoAssignResponse(
        created=[AssignmentResponse.model_validate(a) for a in outcome.persisted],
        unassigned=[UnassignedResponse.model_validate(u) for u in outcome.result.unassigned],
        removed=outcome.removed,
    )


@router.get("", response_model=list[AssignmentResponse])
def list_assignments(
    year: str | None = None,
    semester: str | None = None,
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentResponse]:
    return [AssignmentResponse.model_validate(a) for a in service.list_assignments(year, semester)]
