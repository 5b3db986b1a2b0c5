from sqlalchemy import select

from hidrazy.models import LearningAnalytics, LessonProgress
from hidrazy.routers.feature_unlock import build_user_profile
from hidrazy.routers.progress_sync import lesson_impact


def _post(client, action, **data):
    return client.post("/progress-sync", json={"action": action, "data": data})


def test_lesson_impact():
    impact = lesson_impact("grammar", 80, ["a", "b"])
    assert impact["competency_improvement"] == 0.06
    assert impact["skill_areas_affected"] == ["grammar_level", "writing_level"]
    assert impact["learning_efficiency"] == 0.8


def test_lesson_impact_never_negative():
    assert lesson_impact("idioms", 10, list(range(5)))["competency_improvement"] == 0
    assert lesson_impact("idioms", 10, [])["skill_areas_affected"] == ["idioms"]


def test_sync_lesson_completion_writes_progress(client, db):
    res = _post(client, "sync_lesson_completion", lesson_id="l-7", competency="grammar", score=90,
                mistakes=["article"], time_spent=600)
    assert res.status_code == 200, res.text
    assert res.json()["progress_impact"]["learning_efficiency"] == 0.9

    db.expire_all()
    lesson = db.execute(select(LessonProgress).where(LessonProgress.user_id == "user-1")).scalar_one()
    assert (lesson.lesson_id, lesson.competency, lesson.score) == ("l-7", "grammar", 90)
    day = db.execute(select(LearningAnalytics).where(LearningAnalytics.user_id == "user-1")).scalar_one()
    assert day.session_count == 1
    assert day.study_duration_minutes == 10
    assert day.grammar_mistakes == 1


def test_lessons_feed_readiness_profile(client, db, catalog):
    _post(client, "sync_lesson_completion", lesson_id="l-1", competency="vocabulary", score=70, time_spent=300)
    _post(client, "sync_lesson_completion", lesson_id="l-2", competency="speaking", score=85, time_spent=300)

    db.expire_all()
    profile = build_user_profile(db, "user-1", catalog)
    assert sorted(l["objective"] for l in profile["recentLessons"]) == ["speaking", "vocabulary"]
    assert sorted(l["successRate"] for l in profile["recentLessons"]) == [70, 85]
    assert profile["totalMinutes"] == 10
    assert profile["helpRequests"] == 1


def test_score_above_100_is_400(client, db):
    res = _post(client, "sync_lesson_completion", lesson_id="l-1", competency="grammar", score=101)
    assert res.status_code == 400
    assert db.execute(select(LessonProgress)).first() is None


def test_unknown_action_is_400(client):
    res = _post(client, "update_skill_progress")
    assert res.status_code == 400
    assert res.json()["success"] is False
