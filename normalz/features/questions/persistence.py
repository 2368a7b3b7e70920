"""
normalz/features/questions/persistence.py

SQL persistence for questions and tallies (PostgreSQL in production,
SQLite locally).

Same contract as InMemoryQuestionStore. Votes use in-database increments
(count = count + 1) for the option row and the question total inside one
transaction, so concurrent submissions never lose updates and no reader sees
one without the other.
"""

from typing import Iterable, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from normalz.core.database import (
    question_options,
    questions,
    session_scope,
    vote_receipts,
)
from normalz.core.errors import (
    InvalidOptionsError,
    NotFoundError,
    QuestionRetiredError,
    UnknownOptionError,
)
from normalz.features.questions.store import QuestionStore, new_question_id, validate_options
from normalz.models.question import Question, TallySnapshot, UpdatedTally


class SqlQuestionStore(QuestionStore):
    """
    SQLAlchemy Core backed question store.

    Takes a session factory so the composition root decides which engine
    (and which database) the store talks to.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, options: Iterable[str], *, prompt: Optional[str] = None, question_id: Optional[str] = None) -> Question:
        labels = validate_options(options)
        qid = question_id or new_question_id()
        try:
            with session_scope(self._session_factory) as session:
                session.execute(
                    insert(questions).values(
                        question_id=qid,
                        prompt=prompt,
                        active=True,
                        total_answers=0,
                    )
                )
                session.execute(
                    insert(question_options),
                    [
                        {"question_id": qid, "label": label, "position": position, "vote_count": 0}
                        for position, label in enumerate(labels)
                    ],
                )
        except IntegrityError:
            raise InvalidOptionsError(f"Question {qid} already exists")
        return self.get(qid)

    def get(self, question_id: str) -> Question:
        with session_scope(self._session_factory) as session:
            return self._load_question(session, question_id)

    def snapshot(self, question_id: str) -> TallySnapshot:
        with session_scope(self._session_factory) as session:
            return self._load_snapshot(session, question_id)

    def increment(self, question_id: str, option: str, *, receipt_key: Optional[str] = None) -> UpdatedTally:
        try:
            with session_scope(self._session_factory) as session:
                if receipt_key:
                    previous = self._load_receipt(session, question_id, receipt_key)
                    if previous is not None:
                        return previous

                question = self._load_question(session, question_id)
                if not question.active:
                    raise QuestionRetiredError(f"Question {question_id} is retired")

                result = session.execute(
                    update(question_options)
                    .where(
                        question_options.c.question_id == question_id,
                        question_options.c.label == option,
                    )
                    .values(vote_count=question_options.c.vote_count + 1)
                )
                if result.rowcount == 0:
                    raise UnknownOptionError(question_id, option)

                session.execute(
                    update(questions)
                    .where(questions.c.question_id == question_id)
                    .values(total_answers=questions.c.total_answers + 1)
                )

                snapshot = self._load_snapshot(session, question_id)
                if receipt_key:
                    session.execute(
                        insert(vote_receipts).values(
                            question_id=question_id,
                            idempotency_key=receipt_key,
                            option=option,
                            answer_counts=snapshot.answer_counts(),
                            total_answers=snapshot.total,
                        )
                    )
                return UpdatedTally(snapshot=snapshot, option=option, idempotency_key=receipt_key)
        except IntegrityError:
            # A concurrent request committed the same receipt first; our vote was rolled back
            if not receipt_key:
                raise
            with session_scope(self._session_factory) as session:
                previous = self._load_receipt(session, question_id, receipt_key)
            if previous is None:
                raise
            return previous

    def streak_recorded(self, question_id: str, receipt_key: str) -> bool:
        with session_scope(self._session_factory) as session:
            flag = session.execute(
                select(vote_receipts.c.streak_recorded).where(
                    vote_receipts.c.question_id == question_id,
                    vote_receipts.c.idempotency_key == receipt_key,
                )
            ).scalar()
        return bool(flag)

    def mark_streak_recorded(self, question_id: str, receipt_key: str) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(vote_receipts)
                .where(
                    vote_receipts.c.question_id == question_id,
                    vote_receipts.c.idempotency_key == receipt_key,
                )
                .values(streak_recorded=True)
            )

    def active_ids(self) -> List[str]:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(questions.c.question_id)
                .where(questions.c.active.is_(True))
                .order_by(questions.c.created_at, questions.c.question_id)
            ).all()
            return [row.question_id for row in rows]

    def retire(self, question_id: str) -> Question:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(questions)
                .where(questions.c.question_id == question_id)
                .values(active=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Question {question_id} not found")
        return self.get(question_id)

    # Internal helpers -------------------------------------------------
    @staticmethod
    def _load_question(session: Session, question_id: str) -> Question:
        row = session.execute(
            select(questions).where(questions.c.question_id == question_id)
        ).first()
        if row is None:
            raise NotFoundError(f"Question {question_id} not found")
        labels = session.execute(
            select(question_options.c.label)
            .where(question_options.c.question_id == question_id)
            .order_by(question_options.c.position)
        ).scalars().all()
        return Question(
            question_id=row.question_id,
            options=tuple(labels),
            prompt=row.prompt,
            active=bool(row.active),
            created_at=row.created_at,
        )

    @staticmethod
    def _load_snapshot(session: Session, question_id: str) -> TallySnapshot:
        # Single statement so total and per-option counts come from one snapshot
        rows = session.execute(
            select(
                questions.c.total_answers,
                question_options.c.label,
                question_options.c.vote_count,
            )
            .select_from(questions.join(question_options, questions.c.question_id == question_options.c.question_id))
            .where(questions.c.question_id == question_id)
            .order_by(question_options.c.position)
        ).all()
        if not rows:
            raise NotFoundError(f"Question {question_id} not found")
        return TallySnapshot(
            question_id=question_id,
            options=tuple(row.label for row in rows),
            counts={row.label: row.vote_count for row in rows},
            total=rows[0].total_answers,
        )

    @staticmethod
    def _load_receipt(session: Session, question_id: str, receipt_key: str) -> Optional[UpdatedTally]:
        row = session.execute(
            select(vote_receipts).where(
                vote_receipts.c.question_id == question_id,
                vote_receipts.c.idempotency_key == receipt_key,
            )
        ).first()
        if row is None:
            return None
        options = tuple(
            session.execute(
                select(question_options.c.label)
                .where(question_options.c.question_id == question_id)
                .order_by(question_options.c.position)
            ).scalars().all()
        )
        snapshot = TallySnapshot(
            question_id=question_id,
            options=options,
            counts=dict(row.answer_counts),
            total=row.total_answers,
        )
        return UpdatedTally(snapshot=snapshot, option=row.option, replayed=True, idempotency_key=receipt_key)
