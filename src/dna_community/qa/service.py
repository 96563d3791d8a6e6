"""Q&A service: questions, answers, accepted answers and reactions."""

from __future__ import annotations

import logging
from typing import Any, Literal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.config import get_settings
from dna_community.db.base import utcnow
from dna_community.db.models import Answer, Question, User
from dna_community.errors import NotFoundError, PermissionDeniedError, StateConflictError
from dna_community.gamification.xp_service import grant_xp
from dna_community.qa.schemas import CreateAnswerRequest, CreateQuestionRequest, Mention
from dna_community.social.notification_service import NotificationDraft, send_notifications_safely
from dna_community.users.service import require_user

logger = logging.getLogger(__name__)

SortBy = Literal["recent", "popular", "unanswered"]


def _mention_drafts(
    mentions: list[Mention],
    author: User,
    target_id: str,
    target_type: str,
) -> list[NotificationDraft]:
    where = "a question" if target_type == "question" else "an answer"
    seen: set[str] = set()
    drafts = []
    for mention in mentions:
        if mention.user_id == author.id or mention.user_id in seen:
            continue
        seen.add(mention.user_id)
        drafts.append(NotificationDraft(
            user_id=mention.user_id,
            type="mention",
            from_user_id=author.id,
            from_user_name=author.name,
            target_id=target_id,
            target_type=target_type,
            message=f"{author.name} mentioned you in {where}",
        ))
    return drafts


def _matches_search(question: Question, term: str) -> bool:
    term = term.lower()
    return (
        term in question.title.lower()
        or term in question.content.lower()
        or any(term in tag for tag in question.tags or [])
    )


class QAService:
    """Forum engine: posting, browsing, accepting and reacting."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    # --- Questions ---

    async def create_question(self, uid: str, body: CreateQuestionRequest) -> Question:
        """Post a question (+XP to the author), then notify mentioned users."""
        author = await require_user(self.db, uid)
        question = Question(
            author_id=author.id,
            author_name=author.name,
            title=body.title,
            content=body.content,
            tags=[t.strip().lower() for t in body.tags if t.strip()],
            mentions=[m.model_dump(by_alias=True) for m in body.mentions],
            reactions=[],
        )
        self.db.add(question)
        await self.db.flush()
        await grant_xp(self.db, author.id, get_settings().xp_question, "question_created")
        await self.db.commit()
        logger.info("Question %s created by %s", question.id, author.id)

        await send_notifications_safely(
            _mention_drafts(body.mentions, author, question.id, "question"), self.redis
        )
        return question

    async def list_questions(
        self,
        tags: list[str] | None = None,
        resolved: bool | None = None,
        author_id: str | None = None,
        sort_by: SortBy = "recent",
        search: str | None = None,
        limit: int = 20,
    ) -> list[Question]:
        query = select(Question)
        if resolved is not None:
            query = query.where(Question.is_resolved.is_(resolved))
        if author_id:
            query = query.where(Question.author_id == author_id)
        if sort_by == "popular":
            query = query.order_by(Question.views_count.desc(), Question.created_at.desc())
        elif sort_by == "unanswered":
            query = query.where(Question.answers_count == 0).order_by(Question.created_at.desc())
        else:
            query = query.order_by(Question.created_at.desc())

        result = await self.db.execute(query)
        questions = list(result.scalars().all())

        if tags:
            wanted = {t.lower() for t in tags}
            questions = [q for q in questions if wanted & set(q.tags or [])]
        if search:
            questions = [q for q in questions if _matches_search(q, search)]
        return questions[:limit]

    async def get_question(self, question_id: str, viewer_id: str | None = None) -> Question:
        """Fetch a question, counting a view when the viewer is not the author."""
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        if viewer_id and viewer_id != question.author_id:
            await self.db.execute(
                update(Question)
                .where(Question.id == question_id)
                .values(views_count=Question.views_count + 1)
                .execution_options(synchronize_session="fetch")
            )
            await self.db.commit()
            await self.db.refresh(question)
        return question

    # --- Answers ---

    async def create_answer(self, uid: str, body: CreateAnswerRequest) -> Answer:
        """Answer a question; notifies the question author and mentioned users."""
        question = await self.db.get(Question, body.question_id)
        if question is None:
            raise NotFoundError("Question not found")
        author = await require_user(self.db, uid)

        answer = Answer(
            question_id=question.id,
            author_id=author.id,
            author_name=author.name,
            content=body.content.strip(),
            mentions=[m.model_dump(by_alias=True) for m in body.mentions],
            reactions=[],
            is_accepted=False,
        )
        self.db.add(answer)
        await self.db.flush()
        await self.db.execute(
            update(Question)
            .where(Question.id == question.id)
            .values(answers_count=Question.answers_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await grant_xp(self.db, author.id, get_settings().xp_answer, "answer_created")
        await self.db.commit()
        logger.info("Answer %s posted on question %s by %s", answer.id, question.id, author.id)

        drafts = []
        if question.author_id != author.id:
            drafts.append(NotificationDraft(
                user_id=question.author_id,
                type="answer",
                from_user_id=author.id,
                from_user_name=author.name,
                target_id=question.id,
                target_type="question",
                message=f'{author.name} answered your question: "{question.title}"',
                metadata={"answerId": answer.id},
            ))
        drafts.extend(_mention_drafts(body.mentions, author, answer.id, "answer"))
        await send_notifications_safely(drafts, self.redis)
        return answer

    async def list_answers(self, question_id: str) -> list[Answer]:
        """Accepted answer first, then oldest first."""
        if await self.db.get(Question, question_id) is None:
            raise NotFoundError("Question not found")
        result = await self.db.execute(
            select(Answer)
            .where(Answer.question_id == question_id)
            .order_by(Answer.is_accepted.desc(), Answer.created_at.asc())
        )
        return list(result.scalars().all())

    async def accept_answer(self, uid: str, question_id: str, answer_id: str) -> Answer:
        """Question author marks an answer as the accepted one."""
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        if question.author_id != uid:
            raise PermissionDeniedError("Only the question author can accept answers")

        answer = await self.db.get(Answer, answer_id)
        if answer is None or answer.question_id != question_id:
            raise NotFoundError("Answer not found")
        if answer.is_accepted:
            raise StateConflictError("Answer is already accepted")

        if question.accepted_answer_id:
            await self.db.execute(
                update(Answer)
                .where(Answer.id == question.accepted_answer_id)
                .values(is_accepted=False)
                .execution_options(synchronize_session="fetch")
            )
        answer.is_accepted = True
        question.accepted_answer_id = answer.id
        question.is_resolved = True
        await grant_xp(self.db, answer.author_id, get_settings().xp_answer_accepted, "answer_accepted")
        await self.db.commit()
        logger.info("Answer %s accepted on question %s", answer.id, question.id)
        return answer

    # --- Reactions ---

    async def toggle_reaction(
        self,
        uid: str,
        target_id: str,
        target_type: Literal["question", "answer"],
        reaction_type: str,
    ) -> dict[str, Any]:
        """One reaction per user per target: same type removes it, another type replaces it."""
        model = Question if target_type == "question" else Answer
        target = await self.db.get(model, target_id)
        if target is None:
            raise NotFoundError(f"{target_type.capitalize()} not found")

        reactions: list[dict[str, Any]] = list(target.reactions or [])
        existing = next((r for r in reactions if r.get("userId") == uid), None)
        others = [r for r in reactions if r.get("userId") != uid]

        if existing is not None and existing.get("type") == reaction_type:
            target.reactions = others
            message = "Reaction removed"
        else:
            target.reactions = [
                *others,
                {"userId": uid, "type": reaction_type, "createdAt": utcnow().isoformat()},
            ]
            message = "Reaction added"
        await self.db.commit()
        return {"message": message, "reactionsCount": len(target.reactions)}
