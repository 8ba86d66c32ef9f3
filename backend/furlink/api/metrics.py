"""Request metrics endpoint."""

from fastapi import APIRouter, Query, Request

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics(request: Request, history: int = Query(default=100, ge=0, le=1000)) -> dict:
    """Counters, response times and the most recent requests."""
    return request.app.state.metrics.snapshot(history_limit=history)
