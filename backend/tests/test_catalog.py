import json

import pytest
from pydantic import ValidationError

from hidrazy.catalog import load_catalog


def test_catalog_is_frozen(catalog):
    with pytest.raises(ValidationError):
        catalog.razia_greeting = "Hi"
    with pytest.raises(ValidationError):
        catalog.features[0].historical_success = 1


def test_assessment_script(catalog):
    ids = [q.id for q in catalog.assessment_questions]
    assert ids == list(range(1, 13))
    assert catalog.question(12).level == "B2+"
    assert catalog.question(13) is None


def test_free_limit_override():
    catalog = load_catalog(free_daily_conversation_limit=3)
    assert catalog.conversation_limit("free").daily_limit == 3
    assert catalog.rule("unlimited_conversations").free.daily_limit == 3
    assert catalog.conversation_limit("premium").daily_limit == -1
    # unknown tiers are treated as free
    assert catalog.conversation_limit("gold").tier == "free"


def test_lookups_fall_back(catalog):
    assert catalog.characteristics("z9").level == "A1"
    assert catalog.characteristics("b2").arabic_support is False
    assert catalog.context(None).conversation_type == "free-chat"
    assert catalog.proficiency_score("B1") == 60
    assert catalog.proficiency_score("beginner") == 40
    assert catalog.upgrade_prompt("nothing").title == "Unlock Premium Features"
    assert catalog.benefits("nothing") == ["Access to premium features", "Enhanced learning experience"]


def test_feature_file_replaces_builtin_features(tmp_path):
    path = tmp_path / "features.json"
    path.write_text(json.dumps([
        {
            "name": "Debate Club",
            "category": "conversation_practice",
            "difficulty": "advanced",
            "requirements": ["B2 level"],
            "success_factors": ["Enjoys arguing"],
            "historical_success": 70,
        }
    ]))
    catalog = load_catalog(str(path))
    assert [f.name for f in catalog.features] == ["Debate Club"]
    assert catalog.feature("Debate Club").requirements == ("B2 level",)


def test_empty_feature_file_is_rejected(tmp_path):
    path = tmp_path / "features.json"
    path.write_text("[]")
    with pytest.raises(ValueError):
        load_catalog(str(path))
