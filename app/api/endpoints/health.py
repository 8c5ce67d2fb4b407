from dataclasses import asdict

from fastapi import APIRouter, Depends

from app.services.request_queue import RequestQueue, get_request_queue

router = APIRouter(tags=["health"])


@router.get("/health", summary="Simple readiness probe")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", summary="Runtime metrics (lightweight)")
async def metrics(queue: RequestQueue = Depends(get_request_queue)) -> dict:
    """Return counters for the catalog request queue."""
    return {"request_queue": asdict(queue.stats())}
