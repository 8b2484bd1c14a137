from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from .. import vocabulary_store as store
from ..db import get_db
from ..definitions import TextGenerator, define_word, fallback_definition
from ..errors import DefinitionUnavailable, DuplicateWord, QuotaExceeded, WordNotFound
from ..gemini_client import GeminiClient
from ..models import VocabularyItem
from ..settings import settings
from .auth import User, get_current_user


router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])
logger = logging.getLogger(__name__)


async def get_llm_client() -> AsyncIterator[Optional[TextGenerator]]:
    # None when no Gemini key is configured; callers fall back or report 503
    try:
        client = GeminiClient()
    except ValueError:
        yield None
        return
    try:
        yield client
    finally:
        await client.aclose()


class AddWordRequest(BaseModel):
    word: str = Field(min_length=1, max_length=100)
    context: Optional[str] = Field(default=None, max_length=500)
    sourceType: Literal["practice", "review", "manual"] = "practice"
    sourceId: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    language: Literal["zh", "en", "auto"] = "en"


class ReviewRequest(BaseModel):
    correct: bool
    # 1 = very hard ... 5 = very easy; required when correct
    difficulty: Optional[int] = Field(default=None, ge=1, le=5, strict=True)

    @model_validator(mode="after")
    def _difficulty_for_correct(self) -> "ReviewRequest":
        if self.correct and self.difficulty is None:
            raise ValueError("difficulty is required for a correct review")
        return self


class UpdateWordRequest(BaseModel):
    notes: Optional[str] = None
    mastered: Optional[bool] = None


class DefinitionRequest(BaseModel):
    word: str = Field(min_length=1, max_length=100)
    language: Literal["zh", "en", "auto"] = "zh"


class VocabularyWord(BaseModel):
    id: str
    word: str
    definition: Optional[str] = None
    phonetic: Optional[str] = None
    context: Optional[str] = None
    sourceType: str
    sourceId: Optional[str] = None
    meanings: Optional[Any] = None
    language: str
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    mastered: bool
    definitionError: bool
    reviewCount: int
    correctCount: int
    incorrectCount: int
    easeIndex: float
    intervalDays: int
    nextReviewDate: datetime
    lastReviewDate: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class WordListResponse(BaseModel):
    data: List[VocabularyWord]
    pagination: Pagination


class VocabularyStats(BaseModel):
    totalWords: int
    masteredWords: int
    recentWords: int
    wordsNeedingReview: int
    reviewedToday: int


class DefinitionResponse(BaseModel):
    word: str
    definition: str
    phonetic: Optional[str] = None
    partOfSpeech: str = ""
    meanings: List[Dict[str, Any]] = Field(default_factory=list)


def to_response(item: VocabularyItem) -> VocabularyWord:
    return VocabularyWord(
        id=item.id,
        word=item.word,
        definition=item.definition,
        phonetic=item.phonetic,
        context=item.context,
        sourceType=item.source_type,
        sourceId=item.source_id,
        meanings=item.meanings,
        language=item.language,
        tags=list(item.tags or []),
        notes=item.notes or "",
        mastered=bool(item.mastered),
        definitionError=bool(item.definition_error),
        reviewCount=item.review_count,
        correctCount=item.correct_count,
        incorrectCount=item.incorrect_count,
        easeIndex=item.ease_factor,
        intervalDays=item.interval,
        nextReviewDate=item.next_review_date,
        lastReviewDate=item.last_reviewed_at,
        createdAt=item.added_at,
        updatedAt=item.updated_at,
    )


def _owned(db: Session, user: User, word_id: str) -> VocabularyItem:
    try:
        return store.get_word(db, user.username, word_id)
    except WordNotFound:
        raise HTTPException(status_code=404, detail="word not found")


@router.post("/words", response_model=VocabularyWord, status_code=201)
async def add_word(
    req: AddWordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[TextGenerator] = Depends(get_llm_client),
):
    word = store.normalize_word(req.word)
    if not word:
        raise HTTPException(status_code=400, detail="word must not be blank")
    if store.find_by_text(db, user.username, word) is not None:
        raise HTTPException(status_code=409, detail="word is already in your vocabulary")

    definition: Optional[Dict[str, Any]] = None
    if llm is not None:
        try:
            definition = await define_word(db, user.username, llm, word, req.context, req.language)
        except (DefinitionUnavailable, QuotaExceeded) as e:
            logger.warning("definition lookup failed for %r, using placeholder: %s", word, e)
    definition_error = definition is None
    if definition is None:
        definition = fallback_definition(word, req.context)

    try:
        item = store.add_word(
            db,
            user.username,
            word,
            context=req.context,
            source_type=req.sourceType,
            source_id=req.sourceId,
            language=req.language,
            tags=req.tags,
            definition=definition,
            definition_error=definition_error,
        )
    except DuplicateWord:
        raise HTTPException(status_code=409, detail="word is already in your vocabulary")
    return to_response(item)


@router.get("/words", response_model=WordListResponse)
async def list_words(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sortBy: Literal["createdAt", "updatedAt", "word", "reviewCount", "nextReviewDate"] = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = store.list_words(db, user.username, page=page, limit=limit, sort_by=sortBy, sort_order=sortOrder)
    return WordListResponse(
        data=[to_response(i) for i in items],
        pagination=Pagination(page=page, limit=limit, total=total, totalPages=(total + limit - 1) // limit),
    )


@router.get("/review", response_model=List[VocabularyWord])
async def words_to_review(
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [to_response(i) for i in store.due_words(db, user.username, limit=limit)]


@router.get("/stats", response_model=VocabularyStats)
async def vocabulary_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return VocabularyStats(**store.stats(db, user.username, utc_offset_hours=settings.stats_utc_offset_hours))


@router.post("/definition", response_model=DefinitionResponse)
async def lookup_definition(
    req: DefinitionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[TextGenerator] = Depends(get_llm_client),
):
    word = store.normalize_word(req.word)
    existing = store.find_by_text(db, user.username, word)
    if existing is not None and existing.meanings and not existing.definition_error:
        meanings = list(existing.meanings)
        return DefinitionResponse(
            word=word,
            definition=existing.definition or word,
            phonetic=existing.phonetic,
            partOfSpeech=(meanings[0] or {}).get("partOfSpeech", "") if meanings else "",
            meanings=meanings,
        )
    if llm is None:
        raise HTTPException(status_code=503, detail="definition service is not configured")
    try:
        definition = await define_word(db, user.username, llm, word, None, req.language)
    except QuotaExceeded:
        raise HTTPException(status_code=429, detail="request limit reached")
    except DefinitionUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    meanings = definition["meanings"]
    first = meanings[0]
    return DefinitionResponse(
        word=word,
        definition=first["definitions"][0]["definition"],
        phonetic=definition.get("phonetic"),
        partOfSpeech=first.get("partOfSpeech", ""),
        meanings=meanings,
    )


@router.post("/{word_id}/review", response_model=VocabularyWord)
async def submit_review(
    word_id: str,
    req: ReviewRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        item = store.record_review(db, user.username, word_id, req.correct, req.difficulty)
    except WordNotFound:
        raise HTTPException(status_code=404, detail="word not found")
    return to_response(item)


@router.put("/{word_id}", response_model=VocabularyWord)
async def update_word(
    word_id: str,
    req: UpdateWordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        item = store.update_word(db, user.username, word_id, notes=req.notes, mastered=req.mastered)
    except WordNotFound:
        raise HTTPException(status_code=404, detail="word not found")
    return to_response(item)


@router.post("/{word_id}/refresh-definition", response_model=VocabularyWord)
async def refresh_definition(
    word_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: Optional[TextGenerator] = Depends(get_llm_client),
):
    item = _owned(db, user, word_id)
    if llm is None:
        raise HTTPException(status_code=503, detail="definition service is not configured")
    try:
        definition = await define_word(db, user.username, llm, item.word, item.context, item.language, use_cache=False)
    except QuotaExceeded:
        raise HTTPException(status_code=429, detail="request limit reached")
    except DefinitionUnavailable as e:
        logger.warning("refresh failed for %s: %s", item.word, e)
        store.mark_definition_failed(db, item)
        raise HTTPException(status_code=502, detail="definition lookup failed, try again later")
    return to_response(store.apply_definition(db, item, definition))


@router.delete("/{word_id}")
async def delete_word(word_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        store.delete_word(db, user.username, word_id)
    except WordNotFound:
        raise HTTPException(status_code=404, detail="word not found")
    return {"ok": True}
