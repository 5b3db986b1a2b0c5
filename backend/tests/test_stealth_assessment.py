from hidrazy.llm_client import LLMError
from hidrazy.models import Assessment, ProgressTracking, User as UserRow


def _post(client, action, **data):
    return client.post("/stealth-assessment", json={"action": action, "data": data})


def _start(client):
    res = _post(client, "start_assessment")
    assert res.status_code == 200
    return res.json()


def _answer(client, assessment_id, question_id, text="I like football and my family"):
    return _post(client, "analyze_response", assessment_id=assessment_id, question_id=question_id, user_response=text)


def test_start_assessment_creates_row(client, db, catalog):
    body = _start(client)
    assert body["success"] is True
    assert body["greeting"] == catalog.razia_greeting
    assert body["first_question"]["id"] == 1
    assert body["total_questions"] == 12

    row = db.get(Assessment, body["assessment_id"])
    assert row.status == "in_progress"
    assert row.session_id.startswith("stealth_")
    assert row.assessment_data_json == {"type": "stealth_conversation", "responses": [], "current_question": 0}
    assert db.get(UserRow, "user-1") is not None


def test_twelve_answers_advance_one_question_at_a_time(client, db, fake_llm):
    assessment_id = _start(client)["assessment_id"]
    for qid in range(1, 13):
        res = _answer(client, assessment_id, qid)
        assert res.status_code == 200, res.text
        body = res.json()
        assert body["current_question"] == qid
        if qid < 12:
            assert body["completed"] is False
            assert body["next_question"]["id"] == qid + 1
            assert body["razia_response"]
        else:
            assert body["completed"] is True
            assert "next_question" not in body

    db.expire_all()
    row = db.get(Assessment, assessment_id)
    assert row.questions_answered == 12
    assert [r["question_id"] for r in row.assessment_data_json["responses"]] == list(range(1, 13))
    # analysis prompt carries the question rubric
    assert "Question Level: A1-A2" in fake_llm.calls[0]["prompt"]
    assert fake_llm.calls[0]["max_tokens"] == 1500
    assert fake_llm.calls[0]["temperature"] == 0.3


def test_answer_accepts_answer_alias(client):
    assessment_id = _start(client)["assessment_id"]
    res = _post(client, "analyze_response", assessment_id=assessment_id, question_id=1, answer="Hello")
    assert res.status_code == 200
    assert res.json()["current_question"] == 1


def test_unknown_question_is_404(client):
    assessment_id = _start(client)["assessment_id"]
    res = _answer(client, assessment_id, 99)
    assert res.status_code == 404
    assert res.json() == {"error": "Question not found", "success": False}


def test_out_of_order_question_is_rejected(client):
    assessment_id = _start(client)["assessment_id"]
    res = _answer(client, assessment_id, 2)
    assert res.status_code == 400


def test_unknown_assessment_is_404(client):
    res = _answer(client, "does-not-exist", 1)
    assert res.status_code == 404


def test_missing_fields_is_400(client):
    res = _post(client, "analyze_response", question_id=1)
    assert res.status_code == 400
    assert res.json()["success"] is False


def _answer_all(client, assessment_id):
    for qid in range(1, 13):
        assert _answer(client, assessment_id, qid).status_code == 200


def test_complete_assessment_updates_profile_and_progress(client, db, fake_llm):
    assessment_id = _start(client)["assessment_id"]
    _answer_all(client, assessment_id)
    fake_llm.queue("Great learner.\nOverall CEFR level: B2 (confidence 80%)\n...")

    res = _post(client, "complete_assessment", assessment_id=assessment_id)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["final_level"] == "b2"
    assert body["level_source"] == "parsed"
    assert "B2 level" in body["welcome_message"]
    assert fake_llm.calls[-1]["max_tokens"] == 2000
    assert fake_llm.calls[-1]["temperature"] == 0.2

    db.expire_all()
    row = db.get(Assessment, assessment_id)
    assert row.status == "completed"
    assert row.final_level == "b2"
    assert row.assessment_data_json["placement_result"] == "b2"
    user = db.get(UserRow, "user-1")
    assert user.current_level == "b2"
    assert user.assessment_completed and user.onboarding_completed
    progress = db.get(ProgressTracking, "user-1")
    assert progress.overall_proficiency == 80
    assert (progress.next_assessment_due - progress.last_assessment_date).days == 30


def test_complete_without_level_falls_back_to_a2(client, fake_llm):
    assessment_id = _start(client)["assessment_id"]
    _answer_all(client, assessment_id)
    fake_llm.queue("The learner communicates well.")
    body = _post(client, "complete_assessment", assessment_id=assessment_id).json()
    assert body["final_level"] == "a2"
    assert body["level_source"] == "fallback"


def test_completed_assessment_rejects_more_answers(client, fake_llm):
    assessment_id = _start(client)["assessment_id"]
    _answer_all(client, assessment_id)
    fake_llm.queue("Overall CEFR level: A1")
    _post(client, "complete_assessment", assessment_id=assessment_id)

    assert _answer(client, assessment_id, 1).status_code == 409
    assert _post(client, "complete_assessment", assessment_id=assessment_id).status_code == 409


def test_complete_before_all_answers_is_409(client):
    assessment_id = _start(client)["assessment_id"]
    _answer(client, assessment_id, 1)
    assert _post(client, "complete_assessment", assessment_id=assessment_id).status_code == 409


def test_llm_failure_is_500_and_does_not_advance(client, db, fake_llm):
    assessment_id = _start(client)["assessment_id"]
    fake_llm.queue(LLMError("LLM API error: 503"))
    res = _answer(client, assessment_id, 1)
    assert res.status_code == 500
    assert res.json() == {"error": "LLM API error: 503", "success": False}
    db.expire_all()
    assert db.get(Assessment, assessment_id).assessment_data_json["current_question"] == 0


def test_get_assessment_reports_state(client):
    assessment_id = _start(client)["assessment_id"]
    _answer(client, assessment_id, 1)
    body = _post(client, "get_assessment", assessment_id=assessment_id).json()
    assert body["status"] == "in_progress"
    assert body["current_question"] == 1
    assert body["next_question"]["id"] == 2
    assert len(body["responses"]) == 1


def test_start_works_without_llm_key(no_llm_client):
    res = _post(no_llm_client, "start_assessment")
    assert res.status_code == 200
    assessment_id = res.json()["assessment_id"]
    res = _answer(no_llm_client, assessment_id, 1)
    assert res.status_code == 500
    assert res.json()["error"] == "OPENAI_API_KEY is not configured"


def test_invalid_action_is_400(client):
    res = _post(client, "skip_ahead")
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid action", "success": False}
