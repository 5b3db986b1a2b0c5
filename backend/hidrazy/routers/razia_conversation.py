from __future__ import annotations
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..catalog import AdaptiveCharacteristics, Catalog
from ..counters import get_daily_row, increment_daily, running_mean, utc_today
from ..db import get_db
from ..deps import get_catalog, get_llm_client, require_llm
from ..llm_client import ChatCompletionClient, LLMError
from ..models import Conversation, ConversationHistory, LearningAnalytics
from ..settings import settings
from .auth import User, ensure_user_row, get_current_user


router = APIRouter(prefix="/razia-conversation", tags=["razia_conversation"])

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, I'm having some technical difficulties right now. Let's try again in a moment! 😊"

POSITIVE_WORDS = ("love", "like", "enjoy", "happy", "great", "good", "fun", "interesting", "excited", "wonderful")
HEDGE_WORDS = ("maybe", "perhaps", "i think", "not sure", "i don't know", "sorry", "difficult")

# (error type, pattern, fallback suggestion)
TRANSFER_PATTERNS = (
    (
        "article_missing",
        re.compile(
            r"\b(?:i am|i'm|he is|she is|it is|this is|that is|i have|i bought|i saw) "
            r"(?:student|teacher|doctor|engineer|nurse|car|book|house|pen|phone|job|problem)\b",
            re.IGNORECASE,
        ),
        'Add "a" or "the" before the noun: "I am a student"',
    ),
    (
        "tense_confusion",
        re.compile(
            r"\b(?:i am|i'm|he is|she is|we are|they are|you are) "
            r"(?:go|come|work|study|eat|like|want|play|live|read|write)\b",
            re.IGNORECASE,
        ),
        'Use "I go" or "I am going", not "I am go"',
    ),
    (
        "double_comparative",
        re.compile(r"\bmore (?:better|worse|bigger|smaller|easier|harder|faster)\b", re.IGNORECASE),
        '"Better" already means "more good", so say "better" on its own',
    ),
)

_ENCOURAGEMENT_RE = re.compile(r"(?:great|excellent|good|wonderful|fantastic|amazing|mumtaz|mashallah)", re.IGNORECASE)
_CORRECTION_RE = re.compile(r"(?:try saying|better to say|correct way|should be|instead of)", re.IGNORECASE)
_CULTURAL_TIP_RE = re.compile(r"(?:in english|arabic|culture|custom|tradition)", re.IGNORECASE)
_ARABIC_PHRASE_RE = re.compile(r"(?:mumtaz|yalla|mashallah|inshallah|ahlan)", re.IGNORECASE)
_WORD_RE = re.compile(r"[A-Za-z']+")


class RespondRequest(BaseModel):
    message: str = Field(min_length=1, validation_alias=AliasChoices("message", "userMessage"))
    conversation_id: Optional[str] = None
    conversation_type: str = Field(default="free-chat", validation_alias=AliasChoices("conversation_type", "conversationType"))
    max_response_length: int = Field(default=1000, ge=2, validation_alias=AliasChoices("max_response_length", "maxResponseLength"))
    audio_url: Optional[str] = None


def _clamp(value: float) -> float:
    return round(max(0.0, min(1.0, value)), 2)


def analyze_user_message(message: str, catalog: Optional[Catalog] = None) -> Dict[str, Any]:
    """Rough engagement/confidence scores (0-1) and transfer-error corrections for one learner turn."""
    lowered = message.lower()
    word_count = len(_WORD_RE.findall(message))
    exclamations = message.count("!")
    questions = message.count("?")
    positive_hits = sum(1 for w in POSITIVE_WORDS if re.search(rf"\b{w}\b", lowered))
    hedges = sum(1 for h in HEDGE_WORDS if h in lowered)

    corrections: List[Dict[str, str]] = []
    strategies = {s.error_type: s for s in catalog.correction_strategies} if catalog else {}
    for error_type, pattern, fallback in TRANSFER_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        strategy = strategies.get(error_type)
        corrections.append(
            {
                "type": error_type,
                "original": match.group(0),
                "suggestion": strategy.correction if strategy else fallback,
            }
        )

    engagement = (
        0.3
        + min(word_count, 40) / 40 * 0.4
        + 0.1 * min(exclamations, 2)
        + (0.1 if questions else 0.0)
        + 0.05 * min(positive_hits, 2)
    )
    confidence = 0.5 + min(word_count, 30) / 30 * 0.3 - 0.1 * min(hedges, 3) - 0.05 * min(len(corrections), 2)
    return {
        "word_count": word_count,
        "exclamations": exclamations,
        "questions": questions,
        "positive_words": positive_hits,
        "hedges": hedges,
        "engagement": _clamp(engagement),
        "confidence": _clamp(confidence),
        "corrections": corrections,
    }


def analyze_razia_reply(reply: str) -> Dict[str, Any]:
    has_encouragement = bool(_ENCOURAGEMENT_RE.search(reply))
    return {
        "has_encouragement": has_encouragement,
        "has_correction": bool(_CORRECTION_RE.search(reply)),
        "has_cultural_tip": bool(_CULTURAL_TIP_RE.search(reply)),
        "has_arabic_phrase": bool(_ARABIC_PHRASE_RE.search(reply)),
        "response_length": len(reply),
        "tone": "encouraging" if has_encouragement else "neutral",
    }


def recommendations_for(summary: Dict[str, Any]) -> List[str]:
    recs: List[str] = []
    if summary["confidence"] < 0.5:
        recs.append("Build confidence with short conversations on familiar topics")
    if summary["word_count"] < 5:
        recs.append("Try to elaborate: answer with two or three full sentences")
    seen = set()
    for c in summary["corrections"]:
        if c["type"] not in seen:
            seen.add(c["type"])
            recs.append(f"Practice {c['type'].replace('_', ' ')}")
    if not recs:
        recs.append("Keep the conversation going, you are doing great")
    return recs


def conversation_guidelines(level: str, goal: str) -> List[str]:
    level = level.upper()
    if level in ("A1", "A2"):
        lines = [
            "Use simple, high-frequency vocabulary (family, food, colors, daily activities)",
            "Speak very slowly with clear pronunciation",
            "Provide abundant positive reinforcement and encouragement",
            "Offer Arabic translations when student shows confusion",
            "Focus on present simple tense and basic question forms",
            "Use repetition and modeling for key phrases",
            "Celebrate every attempt, even with errors",
        ]
    elif level in ("B1", "B2"):
        lines = [
            "Use intermediate vocabulary with some challenging words",
            "Speak at natural pace with occasional slowing for new concepts",
            "Encourage longer, more complex responses",
            "Introduce idiomatic expressions and cultural references",
            "Focus on fluency development over perfect accuracy",
            "Discuss cultural differences and communication styles",
            "Challenge appropriately while maintaining support",
        ]
    else:
        lines = [
            "Use sophisticated vocabulary and complex grammatical structures",
            "Speak at natural, native-like pace",
            "Challenge with abstract concepts and nuanced discussions",
            "Focus on register awareness and stylistic variations",
            "Engage in debates and analytical conversations",
            "Address subtle cultural and pragmatic competence",
            "Provide minimal scaffolding, maximum challenge",
        ]
    if goal == "ielts":
        lines += [
            "Incorporate IELTS-specific vocabulary and academic language",
            "Practice test task types and assessment criteria",
            "Focus on formal register and academic writing patterns",
            "Provide band score indicators and improvement strategies",
        ]
    elif goal == "business":
        lines += [
            "Use professional terminology and workplace scenarios",
            "Practice formal presentations and business communication",
            "Discuss international business culture and etiquette",
            "Focus on negotiation and networking language",
        ]
    elif goal == "travel":
        lines += [
            "Focus on practical travel situations and survival English",
            "Practice emergency phrases and cultural navigation",
            "Discuss cultural differences in travel contexts",
            "Provide real-world application scenarios",
        ]
    return lines


def _bullets(items) -> str:
    return "\n".join(f"• {i}" for i in items)


def build_system_prompt(
    catalog: Catalog,
    *,
    level: str,
    goal: str,
    country: Optional[str],
    conversation_type: str,
    analytics: Optional[Dict[str, Any]] = None,
) -> str:
    ch: AdaptiveCharacteristics = catalog.characteristics(level)
    context = catalog.context(conversation_type)
    level_u = ch.level
    strategies = "\n\n".join(
        f"{s.error_type.upper()}: {s.approach} approach\n"
        f"  - Acknowledge: \"{s.acknowledgment}\"\n"
        f"  - Correct: \"{s.correction}\"\n"
        f"  - Explain: \"{s.explanation}\"\n"
        f"  - Reinforce: \"{s.reinforcement}\""
        for s in catalog.correction_strategies
    )
    if ch.arabic_support:
        arabic_support = "YES - Use Arabic phrases and cultural bridges"
        bridging = "Naturally weave in Arabic phrases (Mashallah, Yalla, Habibi/Habibti, Ahlan wa sahlan)"
    else:
        arabic_support = "NO - Focus on English immersion"
        bridging = "Focus on English cultural context"
    if analytics:
        recent = (
            f"- Conversations in the last week: {analytics['conversations']}\n"
            f"- Average engagement: {analytics['engagement']}\n"
            f"- Average confidence: {analytics['confidence']}"
        )
    else:
        recent = "- No recent activity recorded"

    return f"""You are Razia, an incredibly warm, patient, and culturally intelligent English teacher who specializes in helping Arabic speakers master English. You combine deep cultural understanding with adaptive AI-powered teaching methods.

CORE PERSONALITY:
- Warmth Level: 10/10 - Like a caring older sister who genuinely celebrates every small victory
- Cultural Intelligence: 10/10 - Deep understanding of Arabic culture, values, and communication styles
- Patience: 10/10 - Never rushed, always encouraging, builds confidence before correcting
- Adaptability: 9/10 - Instantly adjusts teaching style based on student level and emotional state
- Enthusiasm: 9/10 - Genuinely excited about language learning and cultural exchange

CURRENT STUDENT ADAPTIVE PROFILE:
- Level: {level_u} (Complexity: {ch.complexity_level}/10)
- Learning Goal: {goal}
- Native Language: Arabic
- Country: {country or "unknown"}
- Conversation Type: {context.conversation_type}

ADAPTIVE TEACHING FOR {level_u}:
- Vocabulary Complexity: {ch.vocabulary}
- Speaking Pace: {ch.pace}
- Encouragement Frequency: {ch.encouragement_frequency}
- Arabic Cultural Support: {arabic_support}
- Response Complexity: {ch.complexity_level}/10

CULTURAL INTELLIGENCE FRAMEWORK:
Common Arabic→English Challenges to Address:
{_bullets(catalog.common_challenges)}

Transfer Error Recognition & Correction:
{_bullets(catalog.transfer_errors)}

Cultural Values to Honor & Bridge:
{_bullets(catalog.cultural_references)}

ERROR CORRECTION STRATEGIES:
{strategies}

CONVERSATION MANAGEMENT GUIDELINES:
{_bullets(conversation_guidelines(level_u, goal))}

CONVERSATION FOCUS:
{_bullets(context.focus)}

RECENT LEARNING ANALYTICS:
{recent}

RESPONSE ARCHITECTURE:
1. WARMTH FIRST: Always begin with genuine warmth and connection
2. CULTURAL BRIDGING: {bridging}
3. ADAPTIVE TEACHING: Adjust complexity, pace, and support based on level
4. GENTLE CORRECTION: Use positive framing with clear explanations
5. PROGRESS CELEBRATION: Acknowledge growth and build confidence
6. CONVERSATION FLOW: Ask engaging follow-up questions to maintain natural dialogue

Remember: You're not just teaching English - you're building bridges between cultures, celebrating the beauty of language learning, and empowering students with confidence to communicate across the world!"""


def _recent_analytics(db: Session, user_id: str, days: int = 7) -> Optional[Dict[str, Any]]:
    rows = db.execute(
        select(LearningAnalytics)
        .where(LearningAnalytics.user_id == user_id)
        .order_by(LearningAnalytics.date.desc())
        .limit(days)
    ).scalars().all()
    if not rows:
        return None
    engagement = [r.engagement_score for r in rows if r.engagement_score is not None]
    confidence = [r.confidence_level for r in rows if r.confidence_level is not None]
    return {
        "conversations": sum(r.conversation_count for r in rows),
        "engagement": round(sum(engagement) / len(engagement), 2) if engagement else None,
        "confidence": round(sum(confidence) / len(confidence), 2) if confidence else None,
    }


def _history_messages(db: Session, conversation_id: str, window: int) -> List[Dict[str, str]]:
    rows = db.execute(
        select(ConversationHistory)
        .where(
            ConversationHistory.conversation_id == conversation_id,
            ConversationHistory.message_type != "system",
        )
        .order_by(ConversationHistory.created_at.desc())
        .limit(window)
    ).scalars().all()
    return [
        {"role": "user" if r.message_type == "user" else "assistant", "content": r.content}
        for r in reversed(rows)
    ]


@router.post("")
async def respond(
    req: RespondRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[ChatCompletionClient] = Depends(get_llm_client),
    catalog: Catalog = Depends(get_catalog),
):
    received_at = datetime.utcnow()
    profile = ensure_user_row(db, user)
    if req.conversation_id:
        conversation = db.get(Conversation, req.conversation_id)
        if conversation is None or conversation.user_id != user.id:
            raise HTTPException(status_code=404, detail="Conversation not found")
        history = _history_messages(db, conversation.id, settings.conversation_history_window)
    else:
        conversation = None
        history = []

    level = profile.current_level or "A1"
    goal = profile.learning_goal or "general"
    system_prompt = build_system_prompt(
        catalog,
        level=level,
        goal=goal,
        country=profile.country,
        conversation_type=req.conversation_type,
        analytics=_recent_analytics(db, user.id),
    )
    logger.info("Generating Razia reply for user %s (level=%s, type=%s)", user.id, level, req.conversation_type)

    client = require_llm(llm)
    try:
        reply = await client.chat(
            [{"role": "system", "content": system_prompt}, *history, {"role": "user", "content": req.message}],
            max_completion_tokens=min(500, req.max_response_length // 2),
            temperature=0.8,
        )
    except LLMError as e:
        logger.error("Razia conversation failed for user %s: %s", user.id, e)
        return JSONResponse(status_code=500, content={"error": str(e), "success": False, "response": APOLOGY})

    summary = analyze_user_message(req.message, catalog)
    if conversation is None:
        conversation = Conversation(user_id=user.id, conversation_type=catalog.context(req.conversation_type).conversation_type)
        db.add(conversation)
        db.flush()
    db.add(
        ConversationHistory(
            conversation_id=conversation.id,
            user_id=user.id,
            message_type="user",
            content=req.message,
            audio_url=req.audio_url,
            created_at=received_at,
            engagement_level=summary["engagement"],
            user_confidence_level=summary["confidence"],
        )
    )
    db.add(
        ConversationHistory(
            conversation_id=conversation.id,
            user_id=user.id,
            message_type="razia",
            content=reply,
            corrections_provided=summary["corrections"] or None,
        )
    )
    conversation_id = conversation.id
    db.commit()

    today = utc_today()
    increment_daily(
        db,
        LearningAnalytics,
        user.id,
        today,
        conversation_count=1,
        grammar_mistakes=len(summary["corrections"]),
    )
    analytics_row = get_daily_row(db, LearningAnalytics, user.id, today, for_update=True)
    # conversation_count already includes this turn
    turns = analytics_row.conversation_count
    analytics_row.engagement_score = running_mean(analytics_row.engagement_score, summary["engagement"], turns)
    analytics_row.confidence_level = running_mean(analytics_row.confidence_level, summary["confidence"], turns)
    db.commit()

    return {
        "success": True,
        "conversation_id": conversation_id,
        "response": reply,
        "analysis": analyze_razia_reply(reply),
        "analysis_summary": summary,
        "recommendations": recommendations_for(summary),
    }
