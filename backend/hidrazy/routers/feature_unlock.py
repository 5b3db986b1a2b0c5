from __future__ import annotations
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..catalog import Catalog, FeatureCriteria
from ..db import get_db
from ..deps import ActionRequest, get_catalog, get_llm_client, parse_data, require_llm
from ..llm_client import ChatCompletionClient, LLMError
from ..models import FeatureUsage, LearningAnalytics, LessonProgress, ProgressTracking, User as UserRow
from ..parsing import extract_json_object, parse_readiness_score, percentage
from ..settings import settings
from .auth import User, get_current_user


router = APIRouter(prefix="/feature-unlock-system", tags=["feature_unlock"])

logger = logging.getLogger(__name__)

CHECK_SYSTEM = (
    "You are an expert learning progression analyst. "
    "Provide precise readiness assessments with specific evidence and recommendations."
)
ASSESS_SYSTEM = (
    "You are an expert English learning assessment AI specializing in Arabic speakers. "
    "Analyze user readiness for features with precise JSON output."
)
WEEKLY_SYSTEM = "Analyze feature unlock readiness systematically."
MAX_WEEKLY_UNLOCKS = 1

# Returned by assess_readiness when the model reply holds no JSON; flagged source="placeholder"
PLACEHOLDER_ASSESSMENT: Dict[str, Any] = {
    "overall": 75,
    "confidence": 80,
    "breakdown": {
        "skillPrerequisites": 70,
        "engagementReadiness": 80,
        "confidencePsychology": 75,
        "culturalAlignment": 85,
        "optimalTiming": 70,
    },
    "evidence": [
        "Shows consistent engagement in daily conversations",
        "Demonstrates cultural curiosity and openness",
        "Building confidence through regular practice",
    ],
    "recommendation": "wait",
    "primaryGap": "Grammar accuracy and vocabulary expansion",
    "completedCriteria": ["Regular conversation practice", "Cultural comfort established"],
    "inProgressCriteria": ["Grammar accuracy improvement"],
    "futureCriteria": ["Advanced conversation skills"],
    "currentProgress": 75,
    "nextSteps": [
        "Focus on grammar accuracy in conversations",
        "Expand vocabulary through daily practice",
    ],
    "estimatedTimeline": "2-3 weeks",
}


class CheckReadinessData(BaseModel):
    feature: Optional[str] = Field(default=None, validation_alias=AliasChoices("feature", "feature_name"))


class AssessReadinessData(BaseModel):
    feature: str = Field(min_length=1, validation_alias=AliasChoices("feature", "feature_id", "feature_name"))


def feature_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def build_user_profile(db: Session, user_id: str, catalog: Catalog) -> Dict[str, Any]:
    """Aggregate users, learning_analytics, progress_tracking and lesson_progress into one snapshot."""
    user = db.get(UserRow, user_id)
    analytics = db.execute(
        select(LearningAnalytics)
        .where(LearningAnalytics.user_id == user_id)
        .order_by(LearningAnalytics.date.desc())
        .limit(7)
    ).scalars().all()
    progress = db.get(ProgressTracking, user_id)
    lessons = db.execute(
        select(LessonProgress)
        .where(LessonProgress.user_id == user_id)
        .order_by(LessonProgress.created_at.desc())
        .limit(14)
    ).scalars().all()

    level = (user.current_level if user and user.current_level else "beginner")
    created = user.created_at if user else datetime.utcnow()
    # engagement_score is stored 0-1; the readiness prompt works on a 0-10 scale
    engagement = [a.engagement_score * 10 for a in analytics if a.engagement_score is not None]
    avg_engagement = sum(engagement) / len(engagement) if engagement else 0.0
    total_minutes = sum(a.study_duration_minutes or 0 for a in analytics)
    sessions = len(analytics)
    latest = analytics[0] if analytics else None

    if avg_engagement > 7:
        trend = "improving"
    elif avg_engagement > 5:
        trend = "stable"
    else:
        trend = "declining"

    return {
        "currentLevel": level,
        "daysActive": max(0, (datetime.utcnow() - created).days),
        "totalMinutes": total_minutes,
        "performanceTrend": trend,
        "grammarAccuracy": max(0, 100 - (latest.grammar_mistakes if latest else 0) * 10),
        "vocabularyRange": catalog.proficiency_score(level),
        "speakingConfidence": round(avg_engagement * 10),
        "culturalComfort": (
            round(latest.cultural_confidence_level)
            if latest and latest.cultural_confidence_level is not None
            else 60
        ),
        "overallProficiency": progress.overall_proficiency if progress else None,
        "sessionFrequency": sessions,
        "avgSessionDuration": round(total_minutes / max(sessions, 1), 1),
        "explorationScore": 8 if sessions > 5 else 5,
        "challengeComfort": round(avg_engagement * 10),
        "helpRequests": sum(1 for a in analytics if a.session_count > 0),
        "recentLessons": [
            {
                "date": l.created_at.date().isoformat(),
                "objective": l.competency or l.lesson_id or "lesson",
                "successRate": l.score if l.score is not None else 0,
            }
            for l in lessons
        ],
    }


def readiness_prompt(profile: Dict[str, Any], feature: FeatureCriteria, threshold: int) -> str:
    lessons = "\n".join(
        f"Date: {l['date']} | Focus: {l['objective']} | Performance: {l['successRate']}%"
        for l in profile["recentLessons"]
    ) or "No lessons recorded"
    proficiency = profile["overallProficiency"]
    return f"""
FEATURE UNLOCK READINESS ASSESSMENT:

USER PROFILE:
Current Level: {profile['currentLevel']}
Overall Proficiency: {proficiency if proficiency is not None else 'not assessed'}
Days Active: {profile['daysActive']}
Total Conversation Time: {profile['totalMinutes']}
Recent Performance Trend: {profile['performanceTrend']}

COMPETENCY BREAKDOWN:
Grammar Accuracy: {profile['grammarAccuracy']}%
Vocabulary Range: {profile['vocabularyRange']}%
Speaking Confidence: {profile['speakingConfidence']}%
Cultural Bridge Comfort: {profile['culturalComfort']}%
Pronunciation Score: not measured

ENGAGEMENT PATTERNS:
Session Frequency: {profile['sessionFrequency']}
Average Session Duration: {profile['avgSessionDuration']}
Challenge Tolerance: {profile['challengeComfort']}%
Feature Exploration: {profile['explorationScore']}/10
Help-Seeking Behavior: {profile['helpRequests']}

RECENT LEARNING HISTORY (14 days):
{lessons}

PROPOSED FEATURE:
Feature: {feature.name}
Category: {feature.category}
Difficulty Level: {feature.difficulty}
Prerequisites: {', '.join(feature.requirements)}
Success Predictors: {', '.join(feature.success_factors)}

HISTORICAL SUCCESS DATA:
Similar Users Success Rate: {feature.historical_success}%

ASSESSMENT FRAMEWORK:

1. SKILL PREREQUISITES (40% weight):
   - Minimum competency thresholds met?
   - Foundational skills solidly established?
   - Critical gaps that would impede success?

2. ENGAGEMENT READINESS (25% weight):
   - Consistent activity and motivation?
   - Good feature exploration and adoption?
   - Will enhance vs overwhelm experience?

3. CONFIDENCE & PSYCHOLOGY (20% weight):
   - Confidence appropriate for challenge?
   - Handles mistakes and challenges well?
   - Will build vs diminish confidence?

4. CULTURAL & GOAL ALIGNMENT (10% weight):
   - Aligns with stated goals?
   - Cultural integration appropriate?
   - Personal relevance indicators?

5. OPTIMAL TIMING (5% weight):
   - Recent performance momentum?
   - User schedule patterns?
   - Feature sequence logic?

DECISION REQUIRED:
Calculate weighted readiness score (0-100%)
Only recommend unlock if ≥{threshold}%
State the result on its own line as "Readiness score: NN%".

OUTPUT FORMAT (JSON):
{{
  "overall": number,
  "confidence": number,
  "breakdown": {{
    "skillPrerequisites": number,
    "engagementReadiness": number,
    "confidencePsychology": number,
    "culturalAlignment": number,
    "optimalTiming": number
  }},
  "evidence": ["specific evidence point 1", "specific evidence point 2", "specific evidence point 3"],
  "recommendation": "unlock" | "wait",
  "primaryGap": "main area needing improvement",
  "completedCriteria": ["criteria already met"],
  "inProgressCriteria": ["criteria partially met"],
  "futureCriteria": ["criteria not yet started"],
  "currentProgress": number,
  "nextSteps": ["specific next action"],
  "estimatedTimeline": "time estimate"
}}

Provide definitive recommendation with pedagogical reasoning.
"""


def is_ready(score: int, threshold: Optional[int] = None) -> bool:
    return score >= (settings.readiness_threshold if threshold is None else threshold)


def unlock_message(feature: FeatureCriteria, ready: bool, score: int) -> str:
    if ready:
        return (
            f"Mashallah! I've been watching your progress, and you're ready for {feature.name}! "
            "This is going to be amazing for your learning journey."
        )
    focus = feature.requirements[0] if feature.requirements else "the prerequisites"
    return (
        f"I love that you're interested in {feature.name}! You're at {score}% readiness. "
        f"Keep working on: {focus}. You're closer than you think!"
    )


async def _score_feature(
    client: ChatCompletionClient,
    profile: Dict[str, Any],
    feature: FeatureCriteria,
    *,
    system: str,
    max_tokens: int,
) -> Dict[str, Any]:
    threshold = settings.readiness_threshold
    analysis = await client.generate(
        readiness_prompt(profile, feature, threshold),
        system=system,
        max_tokens=max_tokens,
        temperature=0.2,
    )
    extraction = parse_readiness_score(analysis)
    if extraction.source == "unparsed":
        logger.warning("No readiness score found for feature %s", feature.name)
    ready = is_ready(extraction.score, threshold)
    return {
        "feature": feature.name,
        "ready": ready,
        "score": extraction.score,
        "score_source": extraction.source,
        "analysis": analysis,
        "user_message": unlock_message(feature, ready, extraction.score),
        "unlock_date": datetime.utcnow().isoformat() if ready else None,
    }


async def _check_readiness(data, user: User, db: Session, llm, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(CheckReadinessData, data)
    if req.feature:
        feature = catalog.feature(req.feature)
        if feature is None:
            raise HTTPException(status_code=404, detail="Feature not found")
        features = [feature]
    else:
        features = list(catalog.features)
    client = require_llm(llm)
    profile = build_user_profile(db, user.id, catalog)
    results = [await _score_feature(client, profile, f, system=CHECK_SYSTEM, max_tokens=1500) for f in features]
    return {"success": True, "results": results, "profile_snapshot": profile}


def _match_feature(catalog: Catalog, query: str) -> Optional[FeatureCriteria]:
    q = query.lower()
    slug = feature_slug(query)
    for f in catalog.features:
        name = f.name.lower()
        if q in name or name in q or feature_slug(f.name) == slug:
            return f
    return None


async def _assess_readiness(data, user: User, db: Session, llm, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AssessReadinessData, data)
    feature = _match_feature(catalog, req.feature)
    if feature is None:
        raise HTTPException(status_code=404, detail="Feature not found")
    client = require_llm(llm)
    profile = build_user_profile(db, user.id, catalog)
    text = await client.generate(
        readiness_prompt(profile, feature, settings.readiness_threshold),
        system=ASSESS_SYSTEM,
        max_tokens=1000,
        temperature=0.3,
    )
    assessment = extract_json_object(text)
    overall = percentage(assessment.get("overall")) if assessment is not None else None
    if overall is None:
        logger.warning("Readiness reply for %s had no 0-100 overall score; returning placeholder assessment", feature.name)
        return {
            **PLACEHOLDER_ASSESSMENT,
            "feature": feature.name,
            "ready": False,
            "source": "placeholder",
            "success": True,
        }
    assessment["ready"] = is_ready(overall)
    return {**assessment, "feature": feature.name, "source": "llm", "success": True}


async def _weekly_review(data, user: User, db: Session, llm, catalog: Catalog) -> Dict[str, Any]:
    client = require_llm(llm)
    profile = build_user_profile(db, user.id, catalog)
    results = [await _score_feature(client, profile, f, system=WEEKLY_SYSTEM, max_tokens=1000) for f in catalog.features]
    results.sort(key=lambda r: r["score"], reverse=True)
    return {
        "success": True,
        "weekly_recommendations": [r for r in results if r["ready"]][:MAX_WEEKLY_UNLOCKS],
        "all_features_status": results,
        "next_review_date": (datetime.utcnow() + timedelta(days=7)).isoformat(),
    }


def _attempted_slugs(rows: List[FeatureUsage]) -> set:
    seen = set()
    for row in rows:
        for item in row.premium_features_attempted or []:
            fid = item.get("feature_id") if isinstance(item, dict) else item
            if isinstance(fid, str):
                seen.add(feature_slug(fid))
    return seen


async def _get_unlock_status(data, user: User, db: Session, llm, catalog: Catalog) -> Dict[str, Any]:
    rows = db.execute(
        select(FeatureUsage)
        .where(FeatureUsage.user_id == user.id)
        .order_by(FeatureUsage.date.desc())
        .limit(7)
    ).scalars().all()
    attempted = _attempted_slugs(rows)
    unlocked = [f.name for f in catalog.features if feature_slug(f.name) in attempted]
    locked = [f.name for f in catalog.features if f.name not in unlocked]
    return {
        "success": True,
        "unlocked": unlocked,
        "locked": locked,
        "total_features": len(catalog.features),
    }


_ACTIONS = {
    "check_readiness": _check_readiness,
    "assess_readiness": _assess_readiness,
    "weekly_review": _weekly_review,
    "get_unlock_status": _get_unlock_status,
}


@router.post("")
async def feature_unlock(
    req: ActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[ChatCompletionClient] = Depends(get_llm_client),
    catalog: Catalog = Depends(get_catalog),
):
    logger.info("Feature unlock action: %s for user: %s", req.action, user.id)
    handler = _ACTIONS.get(req.action)
    if handler is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    try:
        return await handler(req.data, user, db, llm, catalog)
    except LLMError as e:
        logger.error("Feature unlock %s failed: %s", req.action, e)
        raise HTTPException(status_code=500, detail=str(e))
