from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from caseload.core.config import settings
from caseload.core.observability import metrics_registry

router = APIRouter()

@router.get("/health/startup")
async def startup():
    return {"status": "started"}

@router.get("/health/live")
async def liveness():
    return {"status": "alive"}

@router.get("/health/ready")
async def readiness(request: Request):
    checks = {"store": "unhealthy"}
    engine = getattr(request.app.state, "engine", None)
    if engine is not None:
        try:
            await engine.directory.list_staff(settings.CASEWORKER_ROLE)
            checks["store"] = "healthy"
        except Exception:
            pass

    status = "healthy" if all(value == "healthy" for value in checks.values()) else "unhealthy"
    return {"status": status, "checks": checks}

@router.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    return metrics_registry.render_prometheus()
