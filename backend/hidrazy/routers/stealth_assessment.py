from __future__ import annotations
import json
import logging
import random
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from ..catalog import Catalog
from ..db import get_db
from ..deps import ActionRequest, get_catalog, get_llm_client, parse_data, require_llm
from ..llm_client import ChatCompletionClient, LLMError
from ..models import Assessment, ProgressTracking, User as UserRow
from ..parsing import extract_final_level
from .auth import User, ensure_user_row, get_current_user


router = APIRouter(prefix="/stealth-assessment", tags=["stealth_assessment"])

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM = (
    "You are an expert language assessment specialist for Arabic speakers learning English. "
    "Provide detailed, objective analysis."
)
PLACEMENT_SYSTEM = (
    "You are an expert CEFR placement specialist. "
    "Provide comprehensive learner analysis and placement recommendation."
)
COMPLETION_MESSAGE = "Thank you for that wonderful conversation! Let me analyze your English journey..."
NEXT_ASSESSMENT_DAYS = 30


class AnalyzeResponseData(BaseModel):
    assessment_id: str
    question_id: int
    user_response: str = Field(validation_alias=AliasChoices("user_response", "answer"))


class AssessmentRef(BaseModel):
    assessment_id: str


def _analysis_prompt(user_response: str, question_level: str, question_focus: str) -> str:
    return f"""
STEALTH ASSESSMENT ANALYSIS:

Question Level: {question_level}
Assessment Focus: {question_focus}
User Response: "{user_response}"

COMPREHENSIVE ANALYSIS REQUIRED:

LINGUISTIC COMPETENCY:
1. Grammar accuracy (0-100%): Identify specific errors and correct usage
2. Vocabulary range (0-100%): Assess breadth and sophistication of word choice
3. Sentence complexity (0-100%): Simple, compound, complex structure usage
4. Fluency indicators (0-100%): Natural flow vs hesitation patterns

COMMUNICATION EFFECTIVENESS:
5. Task completion (0-100%): How well did they address the question
6. Coherence (0-100%): Logical organization and idea connection
7. Register appropriateness (0-100%): Formal/informal language matching context

CULTURAL COMPETENCE:
8. Cultural bridge ability (0-100%): Comfort explaining cultural concepts
9. Cross-cultural awareness (0-100%): Understanding of cultural differences
10. Identity integration (0-100%): Maintaining Arab identity while using English

ARABIC-SPECIFIC PATTERNS:
11. Identify any Arabic→English transfer errors (word order, articles, etc.)
12. Note cultural references and comfort level with cultural topics
13. Assess pronunciation challenges typical for Arabic speakers

LEARNER PROFILE INDICATORS:
14. Confidence level (1-10): Based on language choices and response length
15. Risk-taking tendency: Willingness to use complex structures
16. Error self-correction ability: Did they catch and fix mistakes?
17. Learning style clues: Visual, analytical, communicative preferences

Provide specific evidence for each assessment and recommend optimal question difficulty for next response.
"""


def _placement_prompt(responses: List[Dict[str, Any]], total_questions: int) -> str:
    return f"""
COMPREHENSIVE PLACEMENT ANALYSIS:

Complete Conversation Record: {json.dumps(responses, ensure_ascii=False)}
Response-by-Response Metrics: {json.dumps({"total_questions": total_questions})}

CEFR LEVEL DETERMINATION:
Based on consistent performance across all responses, determine:
1. Overall CEFR level (A1, A2, B1, B2, C1, C2) with confidence percentage
   Write it on its own line as "Overall CEFR level: <level>"
2. Skill-specific levels:
   - Speaking/Interaction: [level]
   - Grammar accuracy: [level]
   - Vocabulary range: [level]
   - Pronunciation: [level]
   - Cultural competence: [level]

LEARNER PROFILE CREATION:
3. Primary strengths (top 3 areas of competence)
4. Priority development areas (3 most important gaps)
5. Arabic-specific challenges identified
6. Optimal learning approach recommendations
7. Cultural integration opportunities
8. Confidence building priorities

PERSONALIZED LEARNING PATH:
9. Recommended starting focus area
10. Estimated timeline to next level
11. Suggested learning goal based on demonstrated interests
12. Cultural background integration strategy

RAZIA RELATIONSHIP SETUP:
13. Optimal Razia personality adaptation for this learner
14. Cultural sensitivity considerations
15. Motivational approach recommendations
16. Communication style preferences noted

Create a complete learner profile that will guide all future lesson planning and cultural integration.
"""


def welcome_message(level: str) -> str:
    return f"""
You know what, habibi? I've really enjoyed getting to know you! 😊

Based on our wonderful conversation, I can see you're at a solid {level.upper()} level
with some really impressive strengths. Your ability to share your thoughts and cultural
perspectives really impressed me, mashallah!

I also noticed some areas where we can work together to build even more confidence -
but don't worry, every Arabic speaker I work with has similar patterns, and we'll
make great progress together!

Here's what I'm thinking for your personalized English journey:
✨ Focus on building conversational confidence
✨ Practice cultural bridge conversations
✨ Strengthen grammar in natural contexts

The best part? All of this will happen through natural conversations like we just had.
Ready to start this adventure together? 🚀
"""


def _load_assessment(db: Session, assessment_id: str, user: User) -> Assessment:
    row = db.get(Assessment, assessment_id)
    if row is None or row.user_id != user.id:
        raise HTTPException(status_code=404, detail="Assessment not found")
    return row


def _state(row: Assessment) -> Dict[str, Any]:
    data = dict(row.assessment_data_json or {})
    data.setdefault("responses", [])
    data.setdefault("current_question", 0)
    return data


async def _start(data: Dict[str, Any], user: User, db: Session, llm: Optional[ChatCompletionClient], catalog: Catalog) -> Dict[str, Any]:
    ensure_user_row(db, user)
    row = Assessment(
        user_id=user.id,
        session_id=f"stealth_{int(time.time() * 1000)}",
        status="in_progress",
        assessment_data_json={"type": "stealth_conversation", "responses": [], "current_question": 0},
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Started stealth assessment %s for user %s", row.id, user.id)
    return {
        "success": True,
        "assessment_id": row.id,
        "greeting": catalog.razia_greeting,
        "first_question": catalog.assessment_questions[0].model_dump(),
        "total_questions": len(catalog.assessment_questions),
    }


async def _analyze_response(data: Dict[str, Any], user: User, db: Session, llm: Optional[ChatCompletionClient], catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AnalyzeResponseData, data)
    row = _load_assessment(db, req.assessment_id, user)
    if row.status == "completed":
        raise HTTPException(status_code=409, detail="Assessment already completed")
    question = catalog.question(req.question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    state = _state(row)
    total = len(catalog.assessment_questions)
    index = int(state["current_question"])
    if index >= total:
        raise HTTPException(status_code=409, detail="All questions have already been answered")
    if catalog.assessment_questions[index].id != question.id:
        raise HTTPException(status_code=400, detail="Question ID mismatch")

    client = require_llm(llm)
    analysis = await client.generate(
        _analysis_prompt(req.user_response, question.level, question.hidden_assessment),
        system=ANALYSIS_SYSTEM,
        max_tokens=1500,
        temperature=0.3,
    )

    # JSON columns are not mutation-tracked; assign a fresh dict
    responses = list(state["responses"]) + [
        {
            "question_id": question.id,
            "user_response": req.user_response,
            "analysis": analysis,
            "timestamp": datetime.utcnow().isoformat(),
        }
    ]
    state["responses"] = responses
    state["current_question"] = index + 1
    row.assessment_data_json = state
    row.questions_answered = len(responses)
    db.commit()

    if state["current_question"] >= total:
        return {
            "success": True,
            "completed": True,
            "current_question": state["current_question"],
            "message": COMPLETION_MESSAGE,
        }
    return {
        "success": True,
        "completed": False,
        "current_question": state["current_question"],
        "next_question": catalog.assessment_questions[state["current_question"]].model_dump(),
        "razia_response": random.choice(catalog.razia_encouragements),
    }


async def _complete(data: Dict[str, Any], user: User, db: Session, llm: Optional[ChatCompletionClient], catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AssessmentRef, data)
    row = _load_assessment(db, req.assessment_id, user)
    if row.status == "completed":
        raise HTTPException(status_code=409, detail="Assessment already completed")
    state = _state(row)
    if int(state["current_question"]) < len(catalog.assessment_questions):
        raise HTTPException(status_code=409, detail="Assessment still has unanswered questions")

    client = require_llm(llm)
    narrative = await client.generate(
        _placement_prompt(state["responses"], row.questions_answered),
        system=PLACEMENT_SYSTEM,
        max_tokens=2000,
        temperature=0.2,
    )
    extraction = extract_final_level(narrative)
    if extraction.source == "fallback":
        logger.warning("No CEFR level in placement analysis for assessment %s; defaulting to %s", row.id, extraction.level)

    now = datetime.utcnow()
    state["final_analysis"] = narrative
    state["placement_result"] = extraction.level
    state["level_source"] = extraction.source
    row.assessment_data_json = state
    row.status = "completed"
    row.final_level = extraction.level
    row.completed_at = now

    profile = ensure_user_row(db, user)
    profile.current_level = extraction.level
    profile.assessment_completed = True
    profile.onboarding_completed = True

    progress = db.get(ProgressTracking, user.id)
    if progress is None:
        progress = ProgressTracking(user_id=user.id)
        db.add(progress)
    progress.overall_proficiency = catalog.proficiency_score(extraction.level)
    progress.last_assessment_date = now.date()
    progress.next_assessment_due = (now + timedelta(days=NEXT_ASSESSMENT_DAYS)).date()
    db.commit()
    logger.info("Completed stealth assessment %s: level=%s (%s)", row.id, extraction.level, extraction.source)

    return {
        "success": True,
        "final_level": extraction.level,
        "level_source": extraction.source,
        "narrative": narrative,
        "welcome_message": welcome_message(extraction.level),
    }


async def _get_assessment(data: Dict[str, Any], user: User, db: Session, llm: Optional[ChatCompletionClient], catalog: Catalog) -> Dict[str, Any]:
    req = parse_data(AssessmentRef, data)
    row = _load_assessment(db, req.assessment_id, user)
    state = _state(row)
    index = int(state["current_question"])
    questions = catalog.assessment_questions
    return {
        "success": True,
        "assessment_id": row.id,
        "status": row.status,
        "current_question": index,
        "questions_answered": row.questions_answered,
        "total_questions": len(questions),
        "next_question": questions[index].model_dump() if index < len(questions) else None,
        "responses": state["responses"],
        "final_level": row.final_level,
    }


_ACTIONS = {
    "start_assessment": _start,
    "analyze_response": _analyze_response,
    "complete_assessment": _complete,
    "get_assessment": _get_assessment,
}


@router.post("")
async def stealth_assessment(
    req: ActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[ChatCompletionClient] = Depends(get_llm_client),
    catalog: Catalog = Depends(get_catalog),
):
    logger.info("Stealth assessment action: %s for user: %s", req.action, user.id)
    handler = _ACTIONS.get(req.action)
    if handler is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    try:
        return await handler(req.data, user, db, llm, catalog)
    except LLMError as e:
        db.rollback()
        logger.error("Stealth assessment %s failed: %s", req.action, e)
        raise HTTPException(status_code=500, detail=str(e))
