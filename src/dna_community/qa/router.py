"""Q&A endpoints: /api/v1/qa/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session
from dna_community.db.models import User
from dna_community.dependencies import require_self
from dna_community.qa.schemas import (
    AcceptAnswerRequest,
    AnswerResponse,
    CreateAnswerRequest,
    CreateQuestionRequest,
    QuestionResponse,
    ReactionRequest,
)
from dna_community.qa.service import QAService, SortBy
from dna_community.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/qa", tags=["Q&A"])


def _service(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_optional_redis),
) -> QAService:
    return QAService(db, redis)


@router.post("/{uid}/questions", status_code=201)
async def create_question(
    uid: str,
    body: CreateQuestionRequest,
    _user: User = Depends(require_self),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    question = await svc.create_question(uid, body)
    return {"message": "Question created successfully", "question": QuestionResponse.model_validate(question)}


@router.get("/questions")
async def list_questions(
    tags: list[str] | None = Query(None),
    resolved: bool | None = Query(None),
    author_id: str | None = Query(None, alias="authorId"),
    sort_by: SortBy = Query("recent", alias="sortBy"),
    search: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    _user: User = Depends(get_current_user),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    questions = await svc.list_questions(
        tags=tags, resolved=resolved, author_id=author_id, sort_by=sort_by, search=search, limit=limit,
    )
    return {
        "questions": [QuestionResponse.model_validate(q) for q in questions],
        "count": len(questions),
        "filters": {
            "tags": tags,
            "resolved": resolved,
            "authorId": author_id,
            "sortBy": sort_by,
            "search": search,
            "limit": limit,
        },
    }


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(
    question_id: str,
    viewer_id: str | None = Query(None, alias="viewerId"),
    user: User = Depends(get_current_user),
    svc: QAService = Depends(_service),
) -> QuestionResponse:
    """A view is counted unless the viewer (the caller by default) is the author."""
    question = await svc.get_question(question_id, viewer_id=viewer_id or user.id)
    return QuestionResponse.model_validate(question)


@router.get("/questions/{question_id}/answers")
async def list_answers(
    question_id: str,
    _user: User = Depends(get_current_user),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    answers = await svc.list_answers(question_id)
    return {"answers": [AnswerResponse.model_validate(a) for a in answers], "count": len(answers)}


@router.post("/{uid}/answers", status_code=201)
async def create_answer(
    uid: str,
    body: CreateAnswerRequest,
    _user: User = Depends(require_self),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    answer = await svc.create_answer(uid, body)
    return {"message": "Answer created successfully", "answer": AnswerResponse.model_validate(answer)}


@router.post("/{uid}/answers/accept")
async def accept_answer(
    uid: str,
    body: AcceptAnswerRequest,
    _user: User = Depends(require_self),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    answer = await svc.accept_answer(uid, body.question_id, body.answer_id)
    return {"message": "Answer accepted successfully", "answer": AnswerResponse.model_validate(answer)}


@router.post("/{uid}/reactions")
async def toggle_reaction(
    uid: str,
    body: ReactionRequest,
    _user: User = Depends(require_self),
    svc: QAService = Depends(_service),
) -> dict[str, object]:
    return await svc.toggle_reaction(uid, body.target_id, body.target_type, body.reaction_type)
