"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """Report service health and whether generation is available."""
    supervisor = getattr(request.app.state, "supervisor", None)
    return {
        "status": "healthy",
        "service": "beautify-web",
        "gateway_configured": getattr(request.app.state, "gateway", None) is not None,
        "active_jobs": len(supervisor.active_jobs()) if supervisor is not None else 0,
    }
