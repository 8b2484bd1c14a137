from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import httpx
from sqlalchemy import update
from sqlalchemy.orm import Session

from .errors import DefinitionUnavailable, QuotaExceeded
from .expiring import ExpiringStore
from .models import AuthUser
from .settings import settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
	async def generate(self, prompt: str) -> str: ...


# (word, language) -> parsed definition
definition_cache: ExpiringStore[tuple, Dict[str, Any]] = ExpiringStore(settings.definition_cache_ttl_seconds)

_LANGUAGE_NAMES = {"zh": "Simplified Chinese", "en": "English", "auto": "English"}
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def extract_json_block(text: str) -> Dict[str, Any]:
	text = _FENCE.sub("", (text or "").strip())
	try:
		return json.loads(text)
	except ValueError:
		pass
	match = re.search(r"\{[\s\S]*\}", text)
	if match:
		try:
			return json.loads(match.group(0))
		except ValueError:
			pass
	raise ValueError("Failed to parse JSON from LLM output")


def build_prompt(word: str, context: Optional[str] = None, language: str = "en") -> str:
	target = _LANGUAGE_NAMES.get(language, "English")
	context_line = f"Context sentence: {context}\n" if context else ""
	return f"""
You are a bilingual vocabulary expert helping TOEIC learners.

Word: {word}
{context_line}
Return STRICTLY JSON, no markdown, no commentary, with this schema:
{{
  "word": "{word}",
  "phonetic": string (British IPA, e.g. "/ˈeksɑːmpl/"),
  "meanings": [
    {{
      "partOfSpeech": string (noun, verb, adjective, ...),
      "definitions": [{{"definition": string, "example": string}}]
    }}
  ],
  "commonality": "common" | "uncommon" | "rare"
}}

Requirements:
- Definitions are written in {target}; examples are English sentences, preferably business or workplace related.
- Give the 1-3 main parts of speech with 1-2 definitions each, favouring senses common in TOEIC.
""".strip()


def parse_definition(data: Dict[str, Any], word: str) -> Dict[str, Any]:
	meanings = data.get("meanings")
	if not isinstance(meanings, list) or not meanings:
		raise ValueError("definition has no meanings")
	cleaned: List[Dict[str, Any]] = []
	for meaning in meanings:
		if not isinstance(meaning, dict):
			continue
		definitions = [
			{"definition": str(d.get("definition", "")).strip(), "example": str(d.get("example", "")).strip()}
			for d in (meaning.get("definitions") or [])
			if isinstance(d, dict) and str(d.get("definition", "")).strip()
		]
		if definitions:
			cleaned.append({"partOfSpeech": str(meaning.get("partOfSpeech", "")).strip(), "definitions": definitions})
	if not cleaned:
		raise ValueError("definition has no usable meanings")
	phonetic = data.get("phonetic")
	return {
		"word": word,
		"phonetic": str(phonetic).strip() if phonetic else None,
		"meanings": cleaned,
		"commonality": data.get("commonality"),
	}


def fallback_definition(word: str, context: Optional[str] = None) -> Dict[str, Any]:
	"""Placeholder shown until the user refreshes the definition."""
	return {
		"word": word,
		"phonetic": None,
		"meanings": [
			{
				"partOfSpeech": "noun",
				"definitions": [
					{
						"definition": f"Definition of {word} unavailable, use refresh to fetch it",
						"example": context or "",
					}
				],
			}
		],
		"commonality": None,
	}


def charge_quota(db: Session, username: str) -> None:
	# Single conditional UPDATE so concurrent requests cannot overshoot the limit
	res = db.execute(
		update(AuthUser)
		.where(AuthUser.username == username, AuthUser.requests_used < AuthUser.requests_limit)
		.values(requests_used=AuthUser.requests_used + 1)
		.execution_options(synchronize_session=False)
	)
	db.commit()
	if res.rowcount:
		return
	if db.get(AuthUser, username) is not None:
		raise QuotaExceeded(username)


async def fetch_definition(
	client: TextGenerator,
	word: str,
	context: Optional[str] = None,
	language: str = "en",
	*,
	max_attempts: Optional[int] = None,
) -> Dict[str, Any]:
	attempts = max_attempts or settings.definition_max_attempts
	prompt = build_prompt(word, context, language)
	last_error: Optional[Exception] = None
	for _ in range(max(1, attempts)):
		try:
			raw = await client.generate(prompt)
		except (httpx.HTTPError, RuntimeError) as e:
			raise DefinitionUnavailable(f"LLM request failed: {e}") from e
		try:
			return parse_definition(extract_json_block(raw), word)
		except ValueError as e:
			logger.info("unusable definition for %r: %s", word, e)
			last_error = e
	raise DefinitionUnavailable(f"LLM parse/format error: {last_error}")


async def define_word(
	db: Session,
	username: str,
	client: TextGenerator,
	word: str,
	context: Optional[str] = None,
	language: str = "en",
	*,
	use_cache: bool = True,
) -> Dict[str, Any]:
	"""Cached definition lookup; only LLM calls are charged to the user's quota.

	``use_cache=False`` always asks the LLM and replaces the cached entry.
	"""
	key = (word.lower(), language)
	if use_cache:
		cached = definition_cache.get(key)
		if cached is not None:
			return cached
	charge_quota(db, username)
	definition = await fetch_definition(client, word, context, language)
	definition_cache.set(key, definition)
	return definition
