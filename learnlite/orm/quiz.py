"""
learnlite/orm/quiz.py
Quizzes, their multiple-choice questions, and append-only submissions
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Numeric, JSON, Index

from learnlite.orm.base import Base, utcnow, isoformat


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Quiz(id={self.id}, course_id={self.course_id}, title='{self.title}')>"

    def to_dict(self, questions=None, include_answers: bool = False):
        result = {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "created_at": isoformat(self.created_at),
        }
        if questions is not None:
            result["questions"] = [q.to_dict(include_answer=include_answers) for q in questions]
        return result


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    quiz_id = Column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    prompt = Column(Text, nullable=False)
    choices = Column(JSON, nullable=False)
    correct_index = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, quiz_id={self.quiz_id})>"

    def to_dict(self, include_answer: bool = True):
        result = {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "prompt": self.prompt,
            "choices": list(self.choices or []),
        }
        if include_answer:
            result["correct_index"] = self.correct_index
        return result


class QuizSubmission(Base):
    """A single attempt. Rows are never updated; the latest attempt wins."""
    __tablename__ = "quiz_submissions"

    __table_args__ = (
        Index("ix_quiz_submissions_quiz_user", "quiz_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    quiz_id = Column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    answers = Column(JSON, nullable=False)
    score = Column(Numeric(5, 2), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<QuizSubmission(id={self.id}, quiz_id={self.quiz_id}, user_id={self.user_id}, score={self.score})>"

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "user_id": self.user_id,
            "answers": list(self.answers or []),
            "score": float(self.score) if self.score is not None else None,
            "created_at": isoformat(self.created_at),
        }
