from __future__ import annotations
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..counters import increment_daily, utc_today
from ..db import get_db
from ..deps import ActionRequest, parse_data
from ..models import LearningAnalytics, LessonProgress
from .auth import User, ensure_user_row, get_current_user


router = APIRouter(prefix="/progress-sync", tags=["progress_sync"])

logger = logging.getLogger(__name__)

COMPETENCY_SKILLS = {
    "grammar": ["grammar_level", "writing_level"],
    "vocabulary": ["vocabulary_level", "reading_level"],
    "pronunciation": ["pronunciation_level", "speaking_level"],
    "listening": ["listening_level"],
    "speaking": ["speaking_level"],
    "cultural": ["cultural_competency"],
}


class LessonCompletionData(BaseModel):
    lesson_id: str = Field(min_length=1)
    competency: str = Field(min_length=1)
    score: int = Field(ge=0, le=100)
    mistakes: List[Any] = Field(default_factory=list)
    # seconds
    time_spent: int = Field(default=0, ge=0)


def lesson_impact(competency: str, score: int, mistakes: List[Any]) -> Dict[str, Any]:
    """Small incremental improvement for the skills a lesson competency touches."""
    improvement = max(0.0, score / 100 - len(mistakes) / 10) * 0.1
    return {
        "competency_improvement": round(improvement, 3),
        "skill_areas_affected": COMPETENCY_SKILLS.get(competency, [competency]),
        "learning_efficiency": round(score / 100, 2),
    }


async def _sync_lesson_completion(data, user: User, db: Session) -> Dict[str, Any]:
    req = parse_data(LessonCompletionData, data)
    ensure_user_row(db, user)
    db.add(
        LessonProgress(
            user_id=user.id,
            lesson_id=req.lesson_id,
            competency=req.competency,
            score=req.score,
        )
    )
    db.commit()
    increment_daily(
        db,
        LearningAnalytics,
        user.id,
        utc_today(),
        session_count=1,
        study_duration_minutes=round(req.time_spent / 60),
        grammar_mistakes=len(req.mistakes) if req.competency == "grammar" else 0,
    )
    logger.info("Lesson %s (%s) recorded for user %s with score %d", req.lesson_id, req.competency, user.id, req.score)
    return {"success": True, "progress_impact": lesson_impact(req.competency, req.score, req.mistakes)}


_ACTIONS = {
    "sync_lesson_completion": _sync_lesson_completion,
}


@router.post("")
async def progress_sync(
    req: ActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info("[PROGRESS-SYNC] Processing action: %s for user: %s", req.action, user.id)
    handler = _ACTIONS.get(req.action)
    if handler is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {req.action}")
    return await handler(req.data, user, db)
