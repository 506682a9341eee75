from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from app.db import Base

class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True, index=True)
    question_text = Column(Text, nullable=False)
    choices = Column(JSON, nullable=False)                   # exactamente 4 opciones, el orden importa
    correct_choice = Column(Integer, nullable=False)         # índice 1-based (1..4)
    explanation = Column(Text, nullable=True)
    difficulty_level = Column(Enum("easy", "medium", "hard", name="question_difficulty"),
                              index=True, nullable=False)
    category = Column(String(120), nullable=True)
    status = Column(Enum("pending", "approved", "rejected", name="question_status"),
                    index=True, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)   # soft delete

    @validates("choices")
    def _check_choices(self, key, value):
        values = [str(c) for c in (value or [])]
        if len(values) != 4:
            raise ValueError("Una pregunta debe tener exactamente 4 opciones")
        if len(set(values)) != 4:
            raise ValueError("Las opciones de una pregunta no pueden repetirse")
        return values

    @validates("correct_choice")
    def _check_correct_choice(self, key, value):
        if not 1 <= int(value) <= 4:
            raise ValueError("correct_choice debe estar entre 1 y 4")
        return int(value)

    @property
    def correct_answer(self) -> str | None:
        try:
            return self.choices[self.correct_choice - 1]
        except (IndexError, TypeError):
            return None
