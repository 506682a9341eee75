from sqlalchemy import Column, Integer, ForeignKey, DateTime, JSON, Enum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db import Base

SESSION_STATUSES = ("in_progress", "completed", "abandoned")
END_REASONS = ("timer", "lives_exhausted", "completed", "user_exit")

class GameSession(Base):
    __tablename__ = "game_sessions"
    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), index=True, nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(Enum(*SESSION_STATUSES, name="game_session_status"),
                    nullable=False, default="in_progress")
    score = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    incorrect_answers = Column(Integer, nullable=False, default=0)   # vidas = MAX_LIVES - esto
    questions_answered = Column(Integer, nullable=False, default=0)
    time_remaining = Column(Integer, nullable=True)        # segundos; se fija en la primera carga
    total_time_taken = Column(Integer, nullable=False, default=0)
    question_ids = Column(JSON(none_as_null=True), nullable=True)  # set servido, en orden; se fija en la primera carga
    play_started_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    end_reason = Column(Enum(*END_REASONS, name="game_session_end_reason"), nullable=True)
    exam_data = Column(JSON, nullable=False, default=list)  # [{question_id, selected_answer, is_correct, ...}]

    game = relationship("Game")

    __table_args__ = (
        # una sola sesión activa por (cliente, juego)
        Index(
            "uq_game_sessions_active", "client_id", "game_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )

    def is_active(self) -> bool:
        return self.status == "in_progress"
