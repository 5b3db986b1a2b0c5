from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import HTTPException, Request
from pydantic import BaseModel, ValidationError

from .catalog import Catalog
from .llm_client import ChatCompletionClient

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ActionRequest(BaseModel):
	action: str
	data: Dict[str, Any] = {}


def get_catalog(request: Request) -> Catalog:
	return request.app.state.catalog


async def get_llm_client():
	# Yields None when no key is configured so LLM-free actions still work
	try:
		client = ChatCompletionClient()
	except ValueError as e:
		logger.warning("LLM client unavailable: %s", e)
		yield None
		return
	try:
		yield client
	finally:
		await client.aclose()


def require_llm(client: Optional[ChatCompletionClient]) -> ChatCompletionClient:
	if client is None:
		raise HTTPException(status_code=500, detail="OPENAI_API_KEY is not configured")
	return client


def parse_data(model: Type[M], data: Dict[str, Any]) -> M:
	try:
		return model.model_validate(data or {})
	except ValidationError as e:
		missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
		raise HTTPException(status_code=400, detail=f"Invalid or missing fields: {missing}")
