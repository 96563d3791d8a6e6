"""Admin reporting: user directory, activity feed, Q&A moderation and stats."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Literal

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.db.base import utcnow
from dna_community.db.models import (
    Answer,
    Follow,
    Notification,
    Question,
    User,
    WorkshopEnrollment,
)
from dna_community.errors import NotFoundError
from dna_community.users.service import require_user

logger = logging.getLogger(__name__)

Period = Literal["7d", "30d", "90d"]
PERIOD_DAYS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}


def period_range(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Start/end of a reporting window; unknown periods fall back to 7 days."""
    end = now or utcnow()
    return end - timedelta(days=PERIOD_DAYS.get(period, 7)), end


def _top(counter: Counter[str], key: str, count_key: str, n: int = 10) -> list[dict[str, Any]]:
    return [{key: name, count_key: count} for name, count in counter.most_common(n)]


def _by_day(timestamps: list[datetime]) -> dict[str, int]:
    return dict(sorted(Counter(ts.date().isoformat() for ts in timestamps).items()))


class AdminService:
    """Read-mostly queries over every collection, for administrators."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- Users ---

    async def set_admin(self, uid: str, is_admin: bool) -> User:
        user = await require_user(self.db, uid)
        user.is_admin = is_admin
        await self.db.commit()
        logger.info("Admin flag for %s set to %s", uid, is_admin)
        return user

    async def list_admins(self) -> list[User]:
        result = await self.db.execute(
            select(User)
            .where(or_(User.is_admin.is_(True), User.role == "admin"))
            .order_by(User.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: str | None = None,
        onboarded: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        query = select(User)
        if role:
            query = query.where(User.role == role)
        if onboarded is not None:
            query = query.where(User.has_completed_onboarding.is_(onboarded))
        result = await self.db.execute(query.order_by(User.created_at.desc()))
        users = list(result.scalars().all())
        if search:
            term = search.lower()
            users = [u for u in users if term in u.name.lower() or term in u.email.lower()]
        start = (page - 1) * limit
        return users[start:start + limit], len(users)

    async def _count(self, model: type, *criteria: Any) -> int:  # noqa: ANN401
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()

    async def user_details(self, uid: str) -> tuple[User, dict[str, int]]:
        user = await require_user(self.db, uid)
        stats = {
            "followersCount": await self._count(Follow, Follow.following_id == uid),
            "followingCount": await self._count(Follow, Follow.follower_id == uid),
            "questionsCount": await self._count(Question, Question.author_id == uid),
            "answersCount": await self._count(Answer, Answer.author_id == uid),
            "workshopsEnrolled": await self._count(WorkshopEnrollment, WorkshopEnrollment.user_id == uid),
        }
        return user, stats

    # --- Activity (notifications) ---

    async def list_activity(
        self,
        notification_type: str | None = None,
        user_id: str | None = None,
        read: bool | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[tuple[Notification, str | None]], int]:
        """Notifications newest first, each with its recipient's name."""
        criteria = []
        if notification_type:
            criteria.append(Notification.type == notification_type)
        if user_id:
            criteria.append(Notification.user_id == user_id)
        if read is not None:
            criteria.append(Notification.read.is_(read))
        if start_date:
            criteria.append(Notification.created_at >= start_date)
        if end_date:
            criteria.append(Notification.created_at <= end_date)

        total = await self._count(Notification, *criteria)
        result = await self.db.execute(
            select(Notification, User.name)
            .outerjoin(User, User.id == Notification.user_id)
            .where(*criteria)
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()], total

    async def activity_stats(self, period: str = "7d") -> dict[str, Any]:
        start, end = period_range(period)
        result = await self.db.execute(select(Notification).where(Notification.created_at >= start))
        notifications = list(result.scalars().all())
        read = sum(1 for n in notifications if n.read)
        return {
            "period": period,
            "dateRange": {"startDate": start, "endDate": end},
            "stats": {
                "totalNotifications": len(notifications),
                "readNotifications": read,
                "unreadNotifications": len(notifications) - read,
                "notificationsByType": dict(Counter(n.type for n in notifications)),
                "notificationsByDay": _by_day([n.created_at for n in notifications]),
                "mostActiveUsers": _top(Counter(n.user_id for n in notifications), "userId", "notificationCount"),
                "systemNotifications": sum(1 for n in notifications if n.from_user_id is None),
            },
        }

    async def notification_details(self, notification_id: str) -> dict[str, Any]:
        notification = await self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        recipient = await self.db.get(User, notification.user_id)
        sender = await self.db.get(User, notification.from_user_id) if notification.from_user_id else None
        return {
            "notification": notification,
            "recipient": recipient,
            "sender": sender,
        }

    # --- Q&A moderation ---

    async def list_questions(
        self,
        resolved: bool | None = None,
        author_id: str | None = None,
        tag: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Question], int]:
        query = select(Question)
        if resolved is not None:
            query = query.where(Question.is_resolved.is_(resolved))
        if author_id:
            query = query.where(Question.author_id == author_id)
        result = await self.db.execute(query.order_by(Question.created_at.desc()))
        questions = list(result.scalars().all())
        if tag:
            questions = [q for q in questions if tag.lower() in (q.tags or [])]
        if search:
            term = search.lower()
            questions = [q for q in questions if term in q.title.lower() or term in q.content.lower()]
        start = (page - 1) * limit
        return questions[start:start + limit], len(questions)

    async def question_details(self, question_id: str) -> tuple[Question, list[Answer]]:
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        result = await self.db.execute(
            select(Answer)
            .where(Answer.question_id == question_id)
            .order_by(Answer.is_accepted.desc(), Answer.created_at.asc())
        )
        return question, list(result.scalars().all())

    async def delete_question(self, question_id: str) -> dict[str, Any]:
        """Delete a question with its answers and every notification pointing at either."""
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        title = question.title

        answer_ids = list((await self.db.execute(
            select(Answer.id).where(Answer.question_id == question_id)
        )).scalars().all())
        notifications = await self.db.execute(
            delete(Notification).where(Notification.target_id.in_([question_id, *answer_ids]))
        )
        await self.db.execute(delete(Answer).where(Answer.question_id == question_id))
        await self.db.delete(question)
        await self.db.commit()
        logger.info(
            "Deleted question %s with %d answers and %d notifications",
            question_id, len(answer_ids), notifications.rowcount,
        )
        return {
            "questionId": question_id,
            "questionTitle": title,
            "deletedAnswers": len(answer_ids),
            "deletedNotifications": notifications.rowcount,
        }

    async def question_stats(self, period: str = "30d") -> dict[str, Any]:
        start, end = period_range(period)
        questions = list((await self.db.execute(
            select(Question).where(Question.created_at >= start)
        )).scalars().all())
        answers = list((await self.db.execute(
            select(Answer).where(Answer.created_at >= start)
        )).scalars().all())

        answered_ids = {a.question_id for a in answers}
        answered = sum(1 for q in questions if q.id in answered_ids)
        return {
            "period": period,
            "dateRange": {"startDate": start, "endDate": end},
            "stats": {
                "totalQuestions": len(questions),
                "totalAnswers": len(answers),
                "answeredQuestions": answered,
                "unansweredQuestions": len(questions) - answered,
                "resolvedQuestions": sum(1 for q in questions if q.is_resolved),
                "questionsByTag": dict(Counter(t for q in questions for t in (q.tags or []))),
                "questionsByDay": _by_day([q.created_at for q in questions]),
                "averageAnswersPerQuestion": round(len(answers) / len(questions), 2) if questions else 0,
                "mostActiveAskers": _top(Counter(q.author_name for q in questions), "authorName", "questionCount"),
            },
        }
