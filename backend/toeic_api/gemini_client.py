from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	"""Thin async client for Gemini ``generateContent`` with an optional OpenRouter fallback."""

	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)
		self._openrouter_api_key = settings.openrouter_api_key
		self._fallback_client: Optional[httpx.AsyncClient] = None
		if self._openrouter_api_key:
			self._fallback_client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def generate(self, prompt: str) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except (httpx.HTTPError, KeyError, IndexError, ValueError) as primary_error:
			if self._fallback_client is None:
				if isinstance(primary_error, httpx.HTTPError):
					raise
				raise RuntimeError(f"Unexpected Gemini response: {r.text}") from primary_error
			logger.warning("gemini call failed, trying OpenRouter: %s", primary_error)
			return await self._fallback_generate(prompt, primary_error)

	async def _fallback_generate(self, prompt: str, primary_error: Exception) -> str:
		assert self._fallback_client is not None
		headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload: Dict[str, Any] = {
			"model": settings.openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			raise RuntimeError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()
