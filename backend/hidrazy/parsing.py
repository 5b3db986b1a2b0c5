"""Pulling structured values out of free-form LLM replies.

Every extractor reports *how* it got its value so callers never confuse a
parsed result with a default.
"""

from __future__ import annotations
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

CEFR_LEVELS = ("a1", "a2", "b1", "b2", "c1", "c2")
DEFAULT_LEVEL = "a2"

_LEVEL_RE = re.compile(r"Overall CEFR level: ([A-C][1-2])", re.IGNORECASE)
_READINESS_RE = re.compile(r"readiness score[:\s]*(\d+)%", re.IGNORECASE)


@dataclass(frozen=True)
class LevelExtraction:
	level: str
	source: str  # "parsed" | "fallback"


@dataclass(frozen=True)
class ScoreExtraction:
	score: int
	source: str  # "regex" | "json" | "unparsed"


def _loads_dict(text: str) -> Optional[Dict[str, Any]]:
	try:
		data = json.loads(text)
	except ValueError:
		return None
	return data if isinstance(data, dict) else None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
	"""Whole reply, then a ```json fenced block, then the outermost braces."""
	data = _loads_dict(text)
	if data is not None:
		return data
	code_block = re.search(r"```json\s*([\s\S]*?)\s*```", text)
	if code_block:
		data = _loads_dict(code_block.group(1))
		if data is not None:
			return data
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last > first:
		return _loads_dict(text[first : last + 1])
	return None


def extract_final_level(text: str) -> LevelExtraction:
	match = _LEVEL_RE.search(text or "")
	if match and match.group(1).lower() in CEFR_LEVELS:
		return LevelExtraction(level=match.group(1).lower(), source="parsed")
	return LevelExtraction(level=DEFAULT_LEVEL, source="fallback")


def percentage(value: Any) -> Optional[int]:
	"""A 0-100 number as an int; None for anything else, booleans included."""
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		return None
	if not 0 <= value <= 100:
		return None
	return int(round(value))


def parse_readiness_score(text: str) -> ScoreExtraction:
	match = _READINESS_RE.search(text or "")
	if match:
		score = percentage(int(match.group(1)))
		if score is not None:
			return ScoreExtraction(score=score, source="regex")
	data = extract_json_object(text or "")
	if data is not None:
		score = percentage(data.get("overall"))
		if score is not None:
			return ScoreExtraction(score=score, source="json")
	return ScoreExtraction(score=0, source="unparsed")
