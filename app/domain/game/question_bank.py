from __future__ import annotations

import logging
import random
from typing import Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.settings_game import TIERS
from app.domain.game.errors import InsufficientQuestions
from app.models.question import Question

log = logging.getLogger(__name__)


class QuestionBank:
    """Acceso de sólo lectura a preguntas aprobadas, agrupadas por dificultad."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def _approved_ids(self, tier: str) -> list[int]:
        return list(self.db.execute(
            select(Question.id)
            .where(
                Question.status == "approved",
                Question.difficulty_level == tier,
                Question.deleted_at.is_(None),
            )
            .order_by(Question.id)
        ).scalars().all())

    def select_question_set(
        self, required_counts: Mapping[str, int]
    ) -> tuple[list[Question], list[InsufficientQuestions]]:
        """
        Sortea `count` preguntas por tramo (sin reemplazo) y concatena
        fácil -> media -> difícil. Si un tramo no alcanza se devuelven todas
        las disponibles y se reporta el faltante; nunca falla.
        """
        chosen_ids: list[int] = []
        shortfalls: list[InsufficientQuestions] = []

        for tier in TIERS:
            count = int(required_counts.get(tier, 0) or 0)
            if count <= 0:
                continue
            pool = self._approved_ids(tier)
            if len(pool) < count:
                shortfalls.append(InsufficientQuestions(tier, count, len(pool)))
                log.warning(
                    "Not enough %s questions available. Required: %s, Available: %s",
                    tier, count, len(pool),
                )
                picked = list(pool)
                self.rng.shuffle(picked)
            else:
                picked = self.rng.sample(pool, count)
            chosen_ids.extend(picked)

        by_id = self.get_many(chosen_ids)
        return [by_id[i] for i in chosen_ids if i in by_id], shortfalls

    def get_many(self, ids: Iterable[int], include_deleted: bool = False) -> dict[int, Question]:
        """Una sola consulta para todos los ids (sin N+1)."""
        wanted = {int(i) for i in ids if i is not None}
        if not wanted:
            return {}
        q = select(Question).where(Question.id.in_(wanted))
        if not include_deleted:
            q = q.where(Question.deleted_at.is_(None))
        return {row.id: row for row in self.db.execute(q).scalars().all()}

    def resolve(self, ids: Iterable[int], include_deleted: bool = False) -> list[Question]:
        """ids -> filas, respetando el orden; las que ya no existen se omiten."""
        ordered = [int(i) for i in ids]
        by_id = self.get_many(ordered, include_deleted=include_deleted)
        return [by_id[i] for i in ordered if i in by_id]
