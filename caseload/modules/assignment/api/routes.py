"""
Assignment API: triggers for the workload engine.
POST /api/v1/assignment/work-items/{item_id}/auto-assign: assign one item (item-created hook / admin action).
GET  /api/v1/assignment/work-items/{item_id}/candidates: ranked caseworker scores, read-only preview.
POST /api/v1/assignment/sweeps/escalation: escalate overdue pending items.
POST /api/v1/assignment/sweeps/rebalance: move excess items off overloaded caseworkers.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from caseload.modules.assignment.application.results import AssignmentStatus
from caseload.modules.assignment.application.workload_engine import WorkloadEngine
from caseload.modules.assignment.domain.errors import CaseloadError, WorkItemNotFound

router = APIRouter(prefix="/assignment", tags=["assignment"])


def get_engine(request: Request) -> WorkloadEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Workload engine not initialised")
    return engine


class AssignmentResponse(BaseModel):
    workitem_id: str
    status: str
    assigned: bool
    staff_id: str | None = None
    detail: str = ""


class CandidateScore(BaseModel):
    staff_id: str
    score: int
    components: dict[str, int]


class CandidatesResponse(BaseModel):
    workitem_id: str
    candidates: list[CandidateScore]


@router.post("/work-items/{item_id}/auto-assign", response_model=AssignmentResponse)
async def auto_assign(item_id: str, engine: WorkloadEngine = Depends(get_engine)):
    """Assign an unassigned item. Per-item failures are reported in the body, not as 5xx."""
    result = await engine.auto_assign(item_id)
    if result.status == AssignmentStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail=result.detail or "WorkItem not found")
    return AssignmentResponse(**result.as_dict())


@router.get("/work-items/{item_id}/candidates", response_model=CandidatesResponse)
async def list_candidates(item_id: str, engine: WorkloadEngine = Depends(get_engine)):
    try:
        ranked = await engine.rank_candidates(item_id)
    except WorkItemNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except CaseloadError as e:
        raise HTTPException(status_code=503, detail={"code": e.code, "message": e.message})
    return CandidatesResponse(
        workitem_id=item_id,
        candidates=[CandidateScore(**score.as_dict()) for score in ranked],
    )


@router.post("/sweeps/escalation")
async def run_escalation_sweep(engine: WorkloadEngine = Depends(get_engine)):
    report = await engine.check_and_escalate_overdue()
    return report.as_dict()


@router.post("/sweeps/rebalance")
async def run_rebalance_sweep(engine: WorkloadEngine = Depends(get_engine)):
    report = await engine.rebalance_workload()
    return report.as_dict()
