from sqlalchemy import select

from hidrazy.models import LearningAnalytics
from hidrazy.routers.feature_unlock import build_user_profile


def _post(client, action, **data):
    return client.post("/learning-analytics", json={"action": action, "data": data})


def _today_row(db):
    db.expire_all()
    return db.execute(select(LearningAnalytics).where(LearningAnalytics.user_id == "user-1")).scalar_one()


def test_update_daily_analytics_adds_counters(client, db):
    _post(client, "update_daily_analytics", study_duration_minutes=15, session_count=1)
    body = _post(client, "update_daily_analytics", study_duration_minutes=5, grammar_mistakes=2).json()
    assert body["success"] is True
    assert body["analytics"]["study_duration_minutes"] == 20

    row = _today_row(db)
    assert row.study_duration_minutes == 20
    assert row.session_count == 1
    assert row.grammar_mistakes == 2
    assert row.cultural_confidence_level is None


def test_cultural_confidence_is_replaced(client, db):
    _post(client, "update_daily_analytics", cultural_confidence_level=40)
    _post(client, "update_daily_analytics", cultural_confidence_level=75)
    assert _today_row(db).cultural_confidence_level == 75


def test_lesson_and_daily_updates_change_profile(client, db, catalog):
    before = build_user_profile(db, "user-1", catalog)
    assert before["recentLessons"] == []
    assert before["culturalComfort"] == 60

    client.post("/progress-sync", json={"action": "sync_lesson_completion", "data": {
        "lesson_id": "l-3", "competency": "cultural", "score": 88, "mistakes": [], "time_spent": 600}})
    _post(client, "update_daily_analytics", cultural_confidence_level=75, study_duration_minutes=15)

    db.expire_all()
    after = build_user_profile(db, "user-1", catalog)
    assert after["recentLessons"][0]["objective"] == "cultural"
    assert after["totalMinutes"] == 25
    assert after["culturalComfort"] == 75
    assert after["helpRequests"] >= 1


def test_out_of_range_confidence_is_400(client, db):
    assert _post(client, "update_daily_analytics", cultural_confidence_level=130).status_code == 400
    assert db.execute(select(LearningAnalytics)).first() is None


def test_engagement_is_not_writable_here(client):
    res = _post(client, "update_daily_analytics", engagement_score=0.9)
    assert res.status_code == 400


def test_negative_increment_is_400(client):
    assert _post(client, "update_daily_analytics", study_duration_minutes=-5).status_code == 400


def test_unknown_action_is_400(client):
    assert _post(client, "analyze_learning_patterns").status_code == 400
