from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..counters import ensure_daily_row, get_daily_row, increment_daily, utc_today
from ..db import get_db
from ..deps import ActionRequest, parse_data
from ..models import LearningAnalytics
from .auth import User, get_current_user


router = APIRouter(prefix="/learning-analytics", tags=["learning_analytics"])

logger = logging.getLogger(__name__)

# conversation_count and engagement/confidence belong to the conversation endpoint
_COUNTERS = ("session_count", "study_duration_minutes", "grammar_mistakes")


class DailyAnalyticsData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_count: int = Field(default=0, ge=0)
    study_duration_minutes: int = Field(default=0, ge=0)
    grammar_mistakes: int = Field(default=0, ge=0)
    # percent, like the readiness profile's culturalComfort
    cultural_confidence_level: Optional[float] = Field(default=None, ge=0, le=100)


def _snapshot(row: LearningAnalytics) -> Dict[str, Any]:
    return {
        "date": row.date.isoformat(),
        "conversation_count": row.conversation_count,
        "session_count": row.session_count,
        "study_duration_minutes": row.study_duration_minutes,
        "grammar_mistakes": row.grammar_mistakes,
        "engagement_score": row.engagement_score,
        "confidence_level": row.confidence_level,
        "cultural_confidence_level": row.cultural_confidence_level,
    }


async def _update_daily_analytics(data, user: User, db: Session) -> Dict[str, Any]:
    req = parse_data(DailyAnalyticsData, data)
    day = utc_today()
    increments = {name: getattr(req, name) for name in _COUNTERS if getattr(req, name)}
    if increments:
        increment_daily(db, LearningAnalytics, user.id, day, **increments)
    else:
        ensure_daily_row(db, LearningAnalytics, user.id, day)
    row = get_daily_row(db, LearningAnalytics, user.id, day, for_update=True)
    if req.cultural_confidence_level is not None:
        row.cultural_confidence_level = req.cultural_confidence_level
    db.commit()
    return {"success": True, "analytics": _snapshot(row)}


_ACTIONS = {
    "update_daily_analytics": _update_daily_analytics,
}


@router.post("")
async def learning_analytics(
    req: ActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info("[LEARNING-ANALYTICS] Processing action: %s for user: %s", req.action, user.id)
    handler = _ACTIONS.get(req.action)
    if handler is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {req.action}")
    return await handler(req.data, user, db)
