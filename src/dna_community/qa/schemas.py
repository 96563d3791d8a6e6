"""Request/response schemas for Q&A endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from dna_community.schemas import CamelModel

ReactionType = Literal["like", "helpful", "insightful", "thanks"]


class Mention(CamelModel):
    user_id: str
    user_name: str = ""
    start_index: int = 0
    end_index: int = 0


class CreateQuestionRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=256)
    content: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    mentions: list[Mention] = Field(default_factory=list)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class CreateAnswerRequest(CamelModel):
    question_id: str
    content: str = Field(..., min_length=1)
    mentions: list[Mention] = Field(default_factory=list)


class AcceptAnswerRequest(CamelModel):
    question_id: str
    answer_id: str


class ReactionRequest(CamelModel):
    target_id: str
    target_type: Literal["question", "answer"]
    reaction_type: ReactionType


class QuestionResponse(CamelModel):
    id: str
    author_id: str
    author_name: str
    title: str
    content: str
    tags: list[str]
    mentions: list[dict[str, Any]]
    reactions: list[dict[str, Any]]
    answers_count: int
    views_count: int
    is_resolved: bool
    accepted_answer_id: str | None = None
    created_at: datetime
    updated_at: datetime


class AnswerResponse(CamelModel):
    id: str
    question_id: str
    author_id: str
    author_name: str
    content: str
    mentions: list[dict[str, Any]]
    reactions: list[dict[str, Any]]
    is_accepted: bool
    created_at: datetime
    updated_at: datetime
