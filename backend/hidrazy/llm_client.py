from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
	"""Upstream chat-completion call failed or returned an unusable reply."""


class ChatCompletionClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.openai_api_key
		if not self.api_key:
			raise ValueError("OPENAI_API_KEY is not configured")
		self.model = model or settings.llm_model
		self.base_url = base_url or settings.llm_base_url
		timeout = timeout if timeout is not None else settings.llm_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		system: Optional[str] = None,
		max_tokens: Optional[int] = None,
		temperature: Optional[float] = None,
		model: Optional[str] = None,
	) -> str:
		messages: List[Dict[str, str]] = []
		if system:
			messages.append({"role": "system", "content": system})
		messages.append({"role": "user", "content": prompt})
		return await self.chat(messages, max_tokens=max_tokens, temperature=temperature, model=model)

	async def chat(
		self,
		messages: List[Dict[str, str]],
		*,
		max_tokens: Optional[int] = None,
		max_completion_tokens: Optional[int] = None,
		temperature: Optional[float] = None,
		model: Optional[str] = None,
		allow_fallback: bool = True,
	) -> str:
		payload: Dict[str, Any] = {"model": model or self.model, "messages": messages}
		# Newer models reject max_tokens, so callers pick one of the two
		if max_completion_tokens is not None:
			payload["max_completion_tokens"] = int(max_completion_tokens)
		elif max_tokens is not None:
			payload["max_tokens"] = int(max_tokens)
		if temperature is not None:
			payload["temperature"] = temperature
		return await self._post_payload(payload, allow_fallback=allow_fallback)

	async def _post_payload(self, payload: Dict[str, Any], *, allow_fallback: bool = True) -> str:
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.error("LLM API error %s: %s", http_err.response.status_code, http_err.response.text[:500])
			last_error = LLMError(f"LLM API error: {http_err.response.status_code}")
		except httpx.RequestError as net_err:
			logger.error("LLM request failed: %s", net_err)
			last_error = LLMError(f"LLM request failed: {net_err}")
		if last_error is None:
			try:
				data = r.json()
				return data["choices"][0]["message"]["content"]
			except (ValueError, KeyError, IndexError, TypeError):
				last_error = LLMError(f"Unexpected LLM response: {r.text[:500]}")
		if not allow_fallback or not self._fallback_enabled:
			raise last_error
		return await self._fallback_generate(payload, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, payload: Dict[str, Any], primary_error: Exception) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		fallback_payload = {**payload, "model": self._openrouter_model}
		logger.warning("Primary LLM call failed (%s); retrying via OpenRouter", primary_error)
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=fallback_payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise LLMError(
				f"LLM primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err
