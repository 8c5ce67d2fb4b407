from fastapi import APIRouter, Depends
from loguru import logger

from app.services.jikan.service import JikanService, get_jikan_service

router = APIRouter(prefix="/cache")


@router.delete("/")
async def clear_caches(jikan: JikanService = Depends(get_jikan_service)):
    """
    Clear the in-process catalog cache.
    This will force fresh data to be fetched from Jikan on next request.
    """
    jikan.clear_cache()
    logger.info("Cache cleared via API endpoint")
    return {"message": "All caches cleared successfully", "status": "success"}
