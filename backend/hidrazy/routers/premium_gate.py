from __future__ import annotations
import logging
from collections import Counter
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..catalog import Catalog, ConversationLimit, FeatureRule, TierRule
from ..counters import ensure_daily_row, get_daily_row, increment_daily, utc_today
from ..db import get_db
from ..deps import ActionRequest, get_catalog, parse_data
from ..models import Conversation, FeatureUsage, Subscriber, User as UserRow
from .auth import User, get_current_user


router = APIRouter(prefix="/premium-gate-enforcer", tags=["premium_gate"])

logger = logging.getLogger(__name__)

UNLIMITED = -1


class FeatureRef(BaseModel):
    feature_id: str = Field(min_length=1)


class RecordUsageData(BaseModel):
    feature_id: str = Field(min_length=1)
    usage_data: Dict[str, Any] = Field(default_factory=dict)


class AttemptData(BaseModel):
    feature_id: str = Field(min_length=1)
    context: Optional[Union[Dict[str, Any], str]] = None


class AnalyticsData(BaseModel):
    time_period: Literal["7_days", "30_days"] = "7_days"


def current_usage(usage: Optional[FeatureUsage], rule: FeatureRule) -> int:
    if usage is None or not rule.usage_field:
        return 0
    return getattr(usage, rule.usage_field, 0) or 0


def _is_limited(tier_rule: TierRule) -> bool:
    return tier_rule.daily_limit is not None and tier_rule.daily_limit > 0


def remaining_for(tier_rule: TierRule, used: int) -> int:
    if not _is_limited(tier_rule):
        return UNLIMITED
    return max(0, tier_rule.daily_limit - used)


def check_feature_access(feature_id: str, tier: str, usage: Optional[FeatureUsage], catalog: Catalog) -> Dict[str, Any]:
    """Decide access from the rule table and today's usage row. Reads only."""
    rule = catalog.rule(feature_id)
    if rule is None:
        return {"allowed": True, "reason": "feature_not_restricted", "remaining_usage": UNLIMITED}
    tier_rule = rule.for_tier(tier)
    if not tier_rule.allowed:
        return {
            "allowed": False,
            "reason": "premium_required",
            "feature_id": feature_id,
            "user_tier": tier,
            "upgrade_benefits": catalog.benefits(feature_id),
        }
    used = current_usage(usage, rule)
    if _is_limited(tier_rule) and used >= tier_rule.daily_limit:
        return {
            "allowed": False,
            "reason": "daily_limit_reached",
            "feature_id": feature_id,
            "current_usage": used,
            "daily_limit": tier_rule.daily_limit,
        }
    return {"allowed": True, "remaining_usage": remaining_for(tier_rule, used)}


def conversation_limit_status(used: int, limit: ConversationLimit, *, subscribed: bool) -> Dict[str, Any]:
    unlimited = limit.daily_limit < 0
    return {
        "can_start_conversation": True if unlimited else used < limit.daily_limit,
        "conversations_used": used,
        "conversations_remaining": UNLIMITED if unlimited else max(0, limit.daily_limit - used),
        "daily_limit": limit.daily_limit,
        "subscription_tier": limit.tier,
        "is_premium": subscribed,
    }


def _subscription(db: Session, user_id: str) -> Optional[Subscriber]:
    return db.get(Subscriber, user_id)


def resolve_tier(sub: Optional[Subscriber]) -> str:
    return sub.subscription_tier if sub is not None and sub.subscription_tier else "free"


def upgrade_prompt(catalog: Catalog, feature_id: str) -> Dict[str, Any]:
    prompt = catalog.upgrade_prompt(feature_id)
    return {
        "title": prompt.title,
        "message": prompt.message,
        "benefits": list(prompt.benefits),
        "cta": prompt.cta,
    }


def record_premium_attempt(db: Session, user_id: str, feature_id: str, context: Any = None) -> None:
    day = utc_today()
    increment_daily(db, FeatureUsage, user_id, day, upgrade_prompts_shown=1)
    row = get_daily_row(db, FeatureUsage, user_id, day, for_update=True)
    attempts = list(row.premium_features_attempted or [])
    attempts.append({"feature_id": feature_id, "attempted_at": datetime.utcnow().isoformat(), "context": context})
    row.premium_features_attempted = attempts
    db.commit()
    logger.info("Recorded premium attempt for %s by user %s", feature_id, user_id)


def _usage_increments(rule: FeatureRule, usage_data: Dict[str, Any]) -> Dict[str, int]:
    duration = int(usage_data.get("duration_minutes") or 0)
    if rule.feature_id == "unlimited_conversations":
        return {"conversations_count": 1, "conversation_minutes": duration}
    if rule.usage_field == "business_mode_minutes":
        return {"business_mode_minutes": duration}
    if rule.usage_field:
        return {rule.usage_field: 1}
    return {}


def _mark_feature_used(db: Session, user_id: str, feature_id: str) -> FeatureUsage:
    day = utc_today()
    ensure_daily_row(db, FeatureUsage, user_id, day)
    row = get_daily_row(db, FeatureUsage, user_id, day, for_update=True)
    used = list(row.features_used_today or [])
    if feature_id not in used:
        used.append(feature_id)
        row.features_used_today = used
    db.commit()
    return row


async def _check_feature_access(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(FeatureRef, data)
    tier = resolve_tier(_subscription(db, user.id))
    usage = get_daily_row(db, FeatureUsage, user.id, utc_today())
    return check_feature_access(req.feature_id, tier, usage, catalog)


async def _record_feature_usage(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(RecordUsageData, data)
    tier = resolve_tier(_subscription(db, user.id))
    day = utc_today()
    access = check_feature_access(req.feature_id, tier, get_daily_row(db, FeatureUsage, user.id, day), catalog)
    if not access["allowed"]:
        record_premium_attempt(db, user.id, req.feature_id)
        return {
            "success": False,
            "reason": access["reason"],
            "upgrade_prompt": upgrade_prompt(catalog, req.feature_id),
        }
    rule = catalog.rule(req.feature_id)
    if rule is not None:
        increment_daily(db, FeatureUsage, user.id, day, **_usage_increments(rule, req.usage_data))
    row = _mark_feature_used(db, user.id, req.feature_id)
    remaining = remaining_for(rule.for_tier(tier), current_usage(row, rule)) if rule else UNLIMITED
    return {"success": True, "usage_recorded": True, "remaining_usage": remaining}


def conversations_today(db: Session, user_id: str) -> int:
    start = datetime.combine(utc_today(), time.min)
    end = start + timedelta(days=1)
    return db.execute(
        select(func.count(Conversation.id)).where(
            Conversation.user_id == user_id,
            Conversation.created_at >= start,
            Conversation.created_at < end,
        )
    ).scalar_one()


async def _check_conversation_limit(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    sub = _subscription(db, user.id)
    limit = catalog.conversation_limit(resolve_tier(sub))
    status = conversation_limit_status(
        conversations_today(db, user.id),
        limit,
        subscribed=bool(sub and sub.subscribed),
    )
    if not status["can_start_conversation"]:
        record_premium_attempt(db, user.id, "unlimited_conversations")
    return status


async def _increment_conversation_usage(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    sub = _subscription(db, user.id)
    tier = resolve_tier(sub)
    limit = catalog.conversation_limit(tier)
    day = utc_today()
    increment_daily(db, FeatureUsage, user.id, day, conversations_count=1)
    row = get_daily_row(db, FeatureUsage, user.id, day)
    row.daily_conversation_limit = limit.daily_limit
    row.subscription_tier = tier
    used = row.conversations_count
    db.commit()
    remaining = UNLIMITED if limit.daily_limit < 0 else max(0, limit.daily_limit - used)
    return {"success": True, "conversations_used": used, "conversations_remaining": remaining}


async def _track_premium_feature_attempt(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AttemptData, data)
    record_premium_attempt(db, user.id, req.feature_id, req.context)
    return {"success": True, "feature_locked": True, "upgrade_prompt": upgrade_prompt(catalog, req.feature_id)}


def usage_trend(rows: List[FeatureUsage], start_day, days: int) -> str:
    midpoint = start_day + timedelta(days=days // 2)
    first = [r.conversations_count or 0 for r in rows if r.date < midpoint]
    second = [r.conversations_count or 0 for r in rows if r.date >= midpoint]
    first_avg = sum(first) / len(first) if first else 0.0
    second_avg = sum(second) / len(second) if second else 0.0
    if second_avg > first_avg * 1.2:
        return "increasing"
    if second_avg < first_avg * 0.8:
        return "decreasing"
    return "stable"


async def _get_usage_analytics(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AnalyticsData, data)
    days = 30 if req.time_period == "30_days" else 7
    start_day = utc_today() - timedelta(days=days)
    rows = db.execute(
        select(FeatureUsage)
        .where(FeatureUsage.user_id == user.id, FeatureUsage.date >= start_day)
        .order_by(FeatureUsage.date.asc())
    ).scalars().all()
    if not rows:
        return {"success": True, "message": "No usage data available"}
    total_conversations = sum(r.conversations_count or 0 for r in rows)
    features = Counter(f for r in rows for f in (r.features_used_today or []))
    return {
        "success": True,
        "time_period": req.time_period,
        "total_conversations": total_conversations,
        "total_study_time": sum(r.conversation_minutes or 0 for r in rows),
        "premium_features_attempted": sum(len(r.premium_features_attempted or []) for r in rows),
        "upgrade_prompts_shown": sum(r.upgrade_prompts_shown or 0 for r in rows),
        "average_daily_usage": round(total_conversations / days, 2),
        "usage_trend": usage_trend(rows, start_day, days),
        "most_used_features": [name for name, _ in features.most_common(5)],
    }


def validate_subscription(sub: Optional[Subscriber], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    is_valid = False
    status = "free"
    if sub is not None and sub.subscribed:
        if sub.subscription_end is not None:
            is_valid = sub.subscription_end > now
            status = sub.subscription_tier if is_valid else "expired"
        else:
            is_valid = True
            status = sub.subscription_tier
    return {
        "success": True,
        "is_valid": is_valid,
        "status": status,
        "tier": resolve_tier(sub),
        "subscription_end": sub.subscription_end.isoformat() if sub and sub.subscription_end else None,
        "stripe_subscription_id": sub.stripe_subscription_id if sub else None,
        "needs_renewal": bool(sub and sub.subscribed and not is_valid),
    }


async def _validate_subscription(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    return validate_subscription(_subscription(db, user.id))


def upgrade_recommendation(total_conversations: int, premium_attempts: int, learning_goal: Optional[str]) -> Dict[str, Any]:
    rec: Dict[str, Any] = {
        "priority": "medium",
        "primary_benefit": "unlimited_conversations",
        "personalized_message": "",
        "recommended_tier": "premium",
        "discount_eligible": False,
        "urgency_factor": 0.5,
    }
    if total_conversations > 25:
        rec["priority"] = "high"
        rec["personalized_message"] = "You're an active learner! Unlock unlimited conversations to accelerate your progress."
        rec["urgency_factor"] = 0.9
    if learning_goal == "business":
        rec["primary_benefit"] = "business_mode"
        rec["personalized_message"] = "Take your business English to the next level with professional communication training."
        rec["recommended_tier"] = "business"
    elif learning_goal == "ielts":
        rec["primary_benefit"] = "ielts_practice"
        rec["personalized_message"] = "Achieve your target IELTS band score with AI-powered practice tests and feedback."
    if premium_attempts > 5:
        rec["discount_eligible"] = True
        rec["urgency_factor"] = 0.8
        rec["personalized_message"] = (rec["personalized_message"] + " Special offer: Get 20% off your first month!").strip()
    return rec


async def _generate_upgrade_recommendation(data, user: User, db: Session, catalog: Catalog) -> Dict[str, Any]:
    rows = db.execute(
        select(FeatureUsage)
        .where(FeatureUsage.user_id == user.id)
        .order_by(FeatureUsage.date.desc())
        .limit(7)
    ).scalars().all()
    profile = db.get(UserRow, user.id)
    rec = upgrade_recommendation(
        sum(r.conversations_count or 0 for r in rows),
        sum(len(r.premium_features_attempted or []) for r in rows),
        profile.learning_goal if profile else None,
    )
    return {"success": True, **rec}


_ACTIONS = {
    "check_feature_access": _check_feature_access,
    "record_feature_usage": _record_feature_usage,
    "check_conversation_limit": _check_conversation_limit,
    "increment_conversation_usage": _increment_conversation_usage,
    "track_premium_feature_attempt": _track_premium_feature_attempt,
    "get_usage_analytics": _get_usage_analytics,
    "validate_subscription": _validate_subscription,
    "generate_upgrade_recommendation": _generate_upgrade_recommendation,
}


@router.post("")
async def premium_gate(
    req: ActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    logger.info("[PREMIUM-GATE-ENFORCER] Processing action: %s for user: %s", req.action, user.id)
    handler = _ACTIONS.get(req.action)
    if handler is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {req.action}")
    return await handler(req.data, user, db, catalog)
