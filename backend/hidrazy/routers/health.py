import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..settings import settings

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


@router.get("/health")
def health(db: Session = Depends(get_db)):
	try:
		db.execute(text("SELECT 1"))
		database = "ok"
	except SQLAlchemyError as e:
		logger.error("Health check database probe failed: %s", e)
		database = "unavailable"
	return {
		"status": "ok" if database == "ok" else "degraded",
		"llm_configured": bool(settings.openai_api_key),
		"database": database,
	}
