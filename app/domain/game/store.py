from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.models.game_session import GameSession

log = logging.getLogger(__name__)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite devuelve datetimes sin tz; los tratamos como UTC."""
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class SessionStore:
    """Persistencia de GameSession. Todas las escrituras hacen commit."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, session_id: int) -> Optional[GameSession]:
        return self.db.get(GameSession, session_id)

    def get_active(self, client_id: int, game_id: int) -> Optional[GameSession]:
        return self.db.execute(
            select(GameSession)
            .where(
                GameSession.client_id == client_id,
                GameSession.game_id == game_id,
                GameSession.status == "in_progress",
            )
            .order_by(GameSession.id.desc())
        ).scalars().first()

    def create_active(self, client_id: int, game_id: int, now: datetime) -> tuple[GameSession, bool]:
        """
        Devuelve (sesión, creada). Si ya hay una activa se reutiliza; si otra
        request la insertó entre medio, el índice único parcial rechaza la
        nuestra y devolvemos la ganadora.
        """
        existing = self.get_active(client_id, game_id)
        if existing:
            return existing, False

        sess = GameSession(
            client_id=client_id,
            game_id=game_id,
            status="in_progress",
            score=0,
            correct_answers=0,
            incorrect_answers=0,
            questions_answered=0,
            total_time_taken=0,
            exam_data=[],
            started_at=now,
        )
        self.db.add(sess)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = self.get_active(client_id, game_id)
            if winner is None:
                raise
            log.info("start race for client=%s game=%s resolved to session %s", client_id, game_id, winner.id)
            return winner, False
        self.db.refresh(sess)
        return sess, True

    def claim_question_set(self, sess: GameSession, values: dict) -> bool:
        """
        Fija el set de preguntas sólo si nadie lo fijó antes. Si otra carga
        concurrente ganó, la sesión queda refrescada con el set ganador.
        """
        res = self.db.execute(
            update(GameSession)
            .where(
                GameSession.id == sess.id,
                GameSession.status == "in_progress",
                GameSession.question_ids.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(sess)
        return res.rowcount == 1

    def update_if_unchanged(self, sess: GameSession, expected_answered: int, values: dict) -> bool:
        """Escritura optimista: sólo aplica si la sesión sigue activa y nadie registró otra respuesta."""
        res = self.db.execute(
            update(GameSession)
            .where(
                GameSession.id == sess.id,
                GameSession.status == "in_progress",
                GameSession.questions_answered == expected_answered,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(sess)
        return res.rowcount == 1

    def finish_if_active(self, sess: GameSession, values: dict) -> bool:
        """
        Transición in_progress -> terminal en un único UPDATE condicionado.
        Sólo una llamada concurrente ve rowcount == 1; la otra queda como no-op.
        """
        res = self.db.execute(
            update(GameSession)
            .where(GameSession.id == sess.id, GameSession.status == "in_progress")
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(sess)
        return res.rowcount == 1

    def completed_for_client(self, client_id: int) -> list[GameSession]:
        return list(self.db.execute(
            select(GameSession)
            .options(selectinload(GameSession.game))
            .where(GameSession.client_id == client_id, GameSession.status == "completed")
            .order_by(GameSession.ended_at.desc(), GameSession.id.desc())
        ).scalars().all())
