import pytest
from sqlalchemy import select

from hidrazy.counters import running_mean
from hidrazy.llm_client import LLMError
from hidrazy.models import Conversation, ConversationHistory, LearningAnalytics, User as UserRow
from hidrazy.routers.razia_conversation import (
    APOLOGY,
    analyze_razia_reply,
    analyze_user_message,
    build_system_prompt,
    recommendations_for,
)


def test_analyze_user_message_flags_transfer_errors(catalog):
    summary = analyze_user_message("Yesterday I am go to market. He is doctor. It is more better!", catalog)
    types = [c["type"] for c in summary["corrections"]]
    assert types == ["article_missing", "tense_confusion", "double_comparative"]
    assert summary["corrections"][1]["original"].lower() == "i am go"
    assert 0 <= summary["engagement"] <= 1
    assert 0 <= summary["confidence"] <= 1


def test_analyze_user_message_scores_engagement():
    short = analyze_user_message("ok")
    lively = analyze_user_message("I love cooking with my family! What do you like to cook? It is so much fun!")
    assert lively["engagement"] > short["engagement"]
    assert lively["corrections"] == []


def test_hedging_lowers_confidence():
    plain = analyze_user_message("I work in a bank in Amman")
    hedged = analyze_user_message("Maybe I work in a bank, I think, not sure")
    assert hedged["confidence"] < plain["confidence"]


def test_recommendations_follow_scores():
    recs = recommendations_for({"confidence": 0.3, "word_count": 2, "corrections": [{"type": "tense_confusion"}]})
    assert any("confidence" in r for r in recs)
    assert any("elaborate" in r for r in recs)
    assert "Practice tense confusion" in recs


def test_analyze_razia_reply():
    flags = analyze_razia_reply("Mashallah, excellent! Try saying 'I went'. In English we use past tense.")
    assert flags["has_encouragement"] and flags["has_correction"]
    assert flags["has_cultural_tip"] and flags["has_arabic_phrase"]
    assert flags["tone"] == "encouraging"


def test_system_prompt_adapts_to_level_and_goal(catalog):
    prompt = build_system_prompt(catalog, level="c1", goal="business", country="Jordan", conversation_type="role-play")
    assert "Level: C1 (Complexity: 8/10)" in prompt
    assert "NO - Focus on English immersion" in prompt
    assert "Use professional terminology and workplace scenarios" in prompt
    assert "Staying in character while teaching" in prompt


def test_system_prompt_unknown_level_falls_back_to_a1(catalog):
    prompt = build_system_prompt(catalog, level="expert", goal="general", country=None, conversation_type="unknown")
    assert "Level: A1 (Complexity: 1/10)" in prompt
    assert "Natural, flowing dialogue" in prompt


def test_respond_creates_conversation_and_history(client, db, fake_llm):
    fake_llm.queue("Ahlan! Wonderful to meet you. Try saying 'I am going'.")
    res = client.post("/razia-conversation", json={"message": "Hello, I am go to school every day"})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["response"].startswith("Ahlan")
    assert body["analysis"]["has_correction"] is True
    assert body["analysis_summary"]["corrections"][0]["type"] == "tense_confusion"
    assert body["recommendations"]

    call = fake_llm.calls[-1]
    assert call["temperature"] == 0.8
    assert call["max_completion_tokens"] == 500
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][-1] == {"role": "user", "content": "Hello, I am go to school every day"}

    db.expire_all()
    convo = db.get(Conversation, body["conversation_id"])
    assert convo.user_id == "user-1"
    history = db.execute(
        select(ConversationHistory).where(ConversationHistory.conversation_id == convo.id)
    ).scalars().all()
    assert sorted(h.message_type for h in history) == ["razia", "user"]
    razia = next(h for h in history if h.message_type == "razia")
    assert razia.corrections_provided[0]["type"] == "tense_confusion"

    analytics = db.execute(select(LearningAnalytics).where(LearningAnalytics.user_id == "user-1")).scalar_one()
    assert analytics.conversation_count == 1
    assert analytics.grammar_mistakes == 1
    assert analytics.engagement_score == body["analysis_summary"]["engagement"]


def test_follow_up_turn_sends_history(client, db, fake_llm):
    first = client.post("/razia-conversation", json={"message": "Hi Razia"}).json()
    client.post(
        "/razia-conversation",
        json={"message": "I live in Cairo", "conversation_id": first["conversation_id"], "maxResponseLength": 300},
    )
    call = fake_llm.calls[-1]
    roles = [m["role"] for m in call["messages"]]
    assert roles == ["system", "user", "assistant", "user"]
    assert call["max_completion_tokens"] == 150

    db.expire_all()
    analytics = db.execute(select(LearningAnalytics).where(LearningAnalytics.user_id == "user-1")).scalar_one()
    assert analytics.conversation_count == 2
    assert len(db.execute(select(Conversation)).scalars().all()) == 1


def test_history_window_is_limited(client, db, fake_llm, monkeypatch):
    from hidrazy.settings import settings

    monkeypatch.setattr(settings, "conversation_history_window", 2)
    first = client.post("/razia-conversation", json={"message": "one"}).json()
    for text in ("two", "three"):
        client.post("/razia-conversation", json={"message": text, "conversation_id": first["conversation_id"]})
    messages = fake_llm.calls[-1]["messages"]
    # system + 2 history turns + new message
    assert len(messages) == 4
    assert messages[1]["content"] == "two"


def test_prompt_uses_stored_level(client, db, fake_llm):
    db.add(UserRow(id="user-1", current_level="b2", learning_goal="ielts"))
    db.commit()
    client.post("/razia-conversation", json={"message": "Hello"})
    system = fake_llm.calls[-1]["messages"][0]["content"]
    assert "Level: B2" in system
    assert "Incorporate IELTS-specific vocabulary" in system


def test_unknown_conversation_is_404(client):
    res = client.post("/razia-conversation", json={"message": "Hi", "conversation_id": "nope"})
    assert res.status_code == 404


def test_llm_failure_returns_apology(client, db, fake_llm):
    fake_llm.queue(LLMError("LLM request failed: timeout"))
    res = client.post("/razia-conversation", json={"message": "Hello"})
    assert res.status_code == 500
    body = res.json()
    assert body["response"] == APOLOGY
    assert body["success"] is False
    assert db.execute(select(Conversation)).scalars().all() == []


def test_empty_message_is_400(client):
    res = client.post("/razia-conversation", json={"message": ""})
    assert res.status_code == 400


def test_running_mean():
    assert running_mean(None, 0.5, 1) == 0.5
    assert running_mean(0.4, 0.8, 2) == 0.6
    assert running_mean(0.6, 0.9, 3) == 0.7


def test_daily_engagement_averages_turns(client, db):
    first = client.post("/razia-conversation", json={"message": "Hi"}).json()["analysis_summary"]
    second = client.post(
        "/razia-conversation",
        json={"message": "I really love practicing English with you, it is wonderful and I want to learn more today!"},
    ).json()["analysis_summary"]
    assert first["engagement"] != second["engagement"]

    db.expire_all()
    analytics = db.execute(select(LearningAnalytics).where(LearningAnalytics.user_id == "user-1")).scalar_one()
    assert analytics.conversation_count == 2
    assert analytics.engagement_score == pytest.approx((first["engagement"] + second["engagement"]) / 2, abs=0.01)
    assert analytics.confidence_level == pytest.approx((first["confidence"] + second["confidence"]) / 2, abs=0.01)
