from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import text

from app.config.database import get_db
from app.config.settings import settings

router = APIRouter()

@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """
    Check the health of the service and its dependencies
    """
    health_status = {
        "service": "healthy",
        "version": settings.VERSION,
        "dependencies": {
            "database": "unhealthy",
            "llm": "configured" if settings.OPENAI_API_KEY else "missing api key",
        },
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["dependencies"]["database"] = "healthy"
    except Exception as e:
        health_status["service"] = "unhealthy"
        health_status["dependencies"]["database"] = str(e)

    return health_status
