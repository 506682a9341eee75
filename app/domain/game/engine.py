from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.core import settings_game
from app.domain.game.errors import (
    GameUnavailable,
    InsufficientQuestions,
    ConcurrentUpdate,
    StatsRecomputeFailure,
    SubmissionInvalid,
    Unauthorized,
)
from app.domain.game.question_bank import QuestionBank
from app.domain.game.scoring import points_for
from app.domain.game.stats import recompute_stats
from app.domain.game.store import SessionStore, as_utc
from app.models.game import Game
from app.models.game_session import GameSession
from app.models.question import Question
from app.schemas.play import FinishIn

log = logging.getLogger("game.engine")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------------------------------
# Reglas puras (compartidas por submit_answer y finish)
# --------------------------------------------------------------------------

def lives_left(incorrect_answers: int, max_lives: int = settings_game.MAX_LIVES) -> int:
    return max(0, max_lives - int(incorrect_answers or 0))


def index_of_choice(question: Question, selected_answer: str) -> Optional[int]:
    """Texto de la opción -> índice 0-based; None si no coincide con ninguna."""
    wanted = (selected_answer or "").strip()
    for i, choice in enumerate(question.choices or []):
        if str(choice).strip() == wanted:
            return i
    return None


def check_answer(question: Question, selected_index: Optional[int]) -> bool:
    if selected_index is None:
        return False
    return int(selected_index) + 1 == int(question.correct_choice)


def build_record(question: Question, selected_answer: str, is_correct: bool,
                 time_taken: int, answered_at: datetime) -> dict:
    return {
        "question_id": question.id,
        "selected_answer": selected_answer,
        "is_correct": bool(is_correct),
        "time_taken": max(0, int(time_taken or 0)),
        # los puntos siempre salen de la dificultad guardada, nunca del front
        "points_earned": points_for(question.difficulty_level) if is_correct else 0,
        "difficulty_level": question.difficulty_level,
        "answered_at": answered_at.isoformat(),
    }


def resolve_end_reason(
    *,
    incorrect: int,
    answered: int,
    total_questions: int,
    seconds_left: Optional[int],
    requested: Optional[str] = None,
    max_lives: int = settings_game.MAX_LIVES,
) -> Optional[str]:
    """
    Motivo de cierre según el estado del log. Devuelve None si la partida
    sigue (sólo cuando no hay `requested`).
    """
    if incorrect >= max_lives:
        return "lives_exhausted"
    if total_questions and answered >= total_questions:
        return "completed"
    if seconds_left is not None and seconds_left <= 0:
        return "timer"
    if requested in ("user_exit", "timer"):
        return requested
    # "completed"/"lives_exhausted" que el log no respalda
    return "user_exit" if requested else None


def first_unanswered(questions: Iterable[Question], exam_data: Iterable[dict]) -> Optional[Question]:
    answered = {int(a.get("question_id")) for a in (exam_data or [])}
    return next((q for q in questions if q.id not in answered), None)


@dataclass
class PlayState:
    session: GameSession
    questions: list[Question]
    current_question: Optional[Question]
    lives_remaining: int
    time_limit_seconds: int
    time_remaining: int
    shortfalls: list[InsufficientQuestions] = field(default_factory=list)


@dataclass
class AnswerVerdict:
    session: GameSession
    recorded: bool
    is_correct: bool
    points_earned: int
    correct_choice: int
    lives_remaining: int
    finished: bool
    end_reason: Optional[str] = None
    next_question: Optional[Question] = None


class GameSessionEngine:
    """
    Ciclo de vida de una GameSession: in_progress -> completed.
    `finish` (y el cierre automático de `submit_answer`) es la única transición.
    """

    def __init__(
        self,
        db: Session,
        *,
        bank: Optional[QuestionBank] = None,
        store: Optional[SessionStore] = None,
        clock: Callable[[], datetime] = _utcnow,
        trust_client: Optional[bool] = None,
        max_lives: Optional[int] = None,
    ):
        self.db = db
        self.bank = bank or QuestionBank(db)
        self.store = store or SessionStore(db)
        self.clock = clock
        self.trust_client = settings_game.TRUST_CLIENT_SCORING if trust_client is None else trust_client
        self.max_lives = settings_game.MAX_LIVES if max_lives is None else max_lives

    # ---------------------------------------------------------------- guards

    def ensure_owner(self, session: GameSession, client_id: int, game: Game) -> None:
        if session.client_id != client_id or session.game_id != game.id:
            raise Unauthorized("Unauthorized access to this game session.")

    def ensure_playable(self, session: GameSession, client_id: int, game: Game) -> None:
        self.ensure_owner(session, client_id, game)
        if not session.is_active():
            raise Unauthorized("Unauthorized access to this game session.")

    def session_questions(self, session: GameSession) -> list[Question]:
        """
        Set persistido de la sesión, en orden. Incluye preguntas borradas
        después de servirse: el set de una partida no cambia a mitad de juego.
        """
        return self.bank.resolve(session.question_ids or [], include_deleted=True)

    def seconds_left(self, session: GameSession, game: Game, now: Optional[datetime] = None) -> int:
        limit = int(game.time_limit) * 60
        started = as_utc(session.play_started_at)
        if started is None:
            return limit if session.time_remaining is None else int(session.time_remaining)
        elapsed = int(((now or self.clock()) - started).total_seconds())
        return max(0, limit - max(0, elapsed))

    # ----------------------------------------------------------------- start

    def start(self, client_id: int, game: Game) -> tuple[GameSession, bool]:
        """Devuelve (sesión, creada). Reutiliza la sesión activa si existe, aunque el juego ya no esté activo."""
        existing = self.store.get_active(client_id, game.id)
        if existing:
            return existing, False
        if not game.is_active:
            raise GameUnavailable(game.slug)
        sess, created = self.store.create_active(client_id, game.id, self.clock())
        if created:
            log.info("session %s started (client=%s game=%s)", sess.id, client_id, game.id)
        return sess, created

    # ------------------------------------------------------------------ play

    def load_for_play(self, session: GameSession, client_id: int, game: Game) -> PlayState:
        self.ensure_playable(session, client_id, game)

        shortfalls: list[InsufficientQuestions] = []
        if session.question_ids is None:
            # primera carga: se sortea el set y se fija junto con el reloj
            questions, shortfalls = self.bank.select_question_set(settings_game.quotas_for(game))
            claimed = self.store.claim_question_set(session, {
                "question_ids": [q.id for q in questions],
                "time_remaining": int(game.time_limit) * 60 if session.time_remaining is None else session.time_remaining,
                "play_started_at": session.play_started_at or self.clock(),
            })
            if not claimed:
                # otra carga concurrente fijó el set antes: se sirve el suyo
                log.info("session %s: question set already fixed by another load", session.id)
                questions, shortfalls = self.session_questions(session), []
        else:
            questions = self.session_questions(session)

        current = first_unanswered(questions, session.exam_data)

        return PlayState(
            session=session,
            questions=questions,
            current_question=current,
            lives_remaining=lives_left(session.incorrect_answers, self.max_lives),
            time_limit_seconds=int(game.time_limit) * 60,
            time_remaining=self.seconds_left(session, game),
            shortfalls=shortfalls,
        )

    def submit_answer(
        self,
        session: GameSession,
        client_id: int,
        game: Game,
        *,
        question_id: int,
        selected_index: int,
        time_taken: int = 0,
    ) -> AnswerVerdict:
        """Registra una respuesta en el servidor y cierra la partida si corresponde."""
        self.ensure_playable(session, client_id, game)

        served = self.session_questions(session)
        if question_id not in {q.id for q in served}:
            raise SubmissionInvalid.single(("body", "question_id"), "La pregunta no pertenece a esta sesión")
        if any(int(a.get("question_id")) == question_id for a in (session.exam_data or [])):
            raise SubmissionInvalid.single(("body", "question_id"), "La pregunta ya fue respondida")

        question = next(q for q in served if q.id == question_id)

        now = self.clock()
        if self.seconds_left(session, game, now) <= 0:
            self._close(session, game, "timer", now)
            return AnswerVerdict(
                session=session, recorded=False, is_correct=False, points_earned=0,
                correct_choice=question.correct_choice,
                lives_remaining=lives_left(session.incorrect_answers, self.max_lives),
                finished=True, end_reason=session.end_reason,
            )

        is_correct = check_answer(question, selected_index)
        choices = question.choices or []
        choice_text = str(choices[selected_index]) if 0 <= selected_index < len(choices) else ""
        record = build_record(question, choice_text, is_correct, time_taken, now)

        expected = int(session.questions_answered or 0)
        values = {
            "exam_data": list(session.exam_data or []) + [record],
            "questions_answered": expected + 1,
            "correct_answers": int(session.correct_answers or 0) + (1 if is_correct else 0),
            "incorrect_answers": int(session.incorrect_answers or 0) + (0 if is_correct else 1),
            "score": int(session.score or 0) + record["points_earned"],
            "total_time_taken": int(session.total_time_taken or 0) + record["time_taken"],
        }
        if not self.store.update_if_unchanged(session, expected, values):
            raise ConcurrentUpdate(session.id)

        reason = resolve_end_reason(
            incorrect=session.incorrect_answers,
            answered=session.questions_answered,
            total_questions=len(served),
            seconds_left=self.seconds_left(session, game, now),
            max_lives=self.max_lives,
        )
        if reason:
            self._close(session, game, reason, now)

        next_q = None if reason else first_unanswered(served, session.exam_data)

        return AnswerVerdict(
            session=session,
            recorded=True,
            is_correct=is_correct,
            points_earned=record["points_earned"],
            correct_choice=question.correct_choice,
            lives_remaining=lives_left(session.incorrect_answers, self.max_lives),
            finished=reason is not None,
            end_reason=session.end_reason,
            next_question=next_q,
        )

    # ---------------------------------------------------------------- finish

    def finish(self, session: GameSession, client_id: int, game: Game,
               submission: FinishIn) -> tuple[GameSession, bool]:
        """
        Cierra la sesión con el envío del front. Devuelve (sesión, aplicado).
        Sesión ya cerrada -> (estado guardado, False), sin tocar nada.
        """
        self.ensure_owner(session, client_id, game)
        if not session.is_active():
            log.info("finish on session %s ignored: status=%s", session.id, session.status)
            return session, False

        questions = self.bank.get_many((a.question_id for a in submission.answers), include_deleted=True)
        errors = [
            {"loc": ["body", "answers", i, "question_id"], "msg": "La pregunta no existe", "type": "value_error"}
            for i, a in enumerate(submission.answers)
            if a.question_id not in questions
        ]
        if errors:
            raise SubmissionInvalid(errors)

        now = self.clock()
        if self.trust_client:
            values = self._trusted_values(submission, questions, now)
        else:
            values = self._reconciled_values(session, game, submission, questions, now)

        values.update(status="completed", ended_at=now)
        if not self.store.finish_if_active(session, values):
            log.info("finish race on session %s: already closed", session.id)
            return session, False

        log.info("session %s finished: reason=%s score=%s", session.id, session.end_reason, session.score)
        self._refresh_stats(game)
        return session, True

    def _trusted_values(self, submission: FinishIn, questions: dict[int, Question], now: datetime) -> dict:
        # modo confianza: totales e is_correct tal cual los manda el front
        return {
            "exam_data": [
                build_record(questions[a.question_id], a.selected_answer, a.is_correct, a.time_taken, now)
                for a in submission.answers
            ],
            "score": submission.final_score,
            "correct_answers": submission.correct_answers,
            "incorrect_answers": submission.incorrect_answers,
            "questions_answered": submission.questions_answered,
            "time_remaining": submission.time_remaining,
            "total_time_taken": submission.total_time_taken,
            "end_reason": submission.end_reason,
        }

    def _reconciled_values(self, session: GameSession, game: Game, submission: FinishIn,
                           questions: dict[int, Question], now: datetime) -> dict:
        served = [q.id for q in self.session_questions(session)]
        log_entries = list(session.exam_data or [])
        seen = {int(a.get("question_id")) for a in log_entries}
        incorrect = sum(1 for a in log_entries if not a.get("is_correct"))

        errors = []
        for i, a in enumerate(submission.answers):
            if served and a.question_id not in served:
                errors.append({"loc": ["body", "answers", i, "question_id"],
                               "msg": "La pregunta no pertenece a esta sesión", "type": "value_error"})
        if errors:
            raise SubmissionInvalid(errors)

        for a in submission.answers:
            if a.question_id in seen:
                continue   # lo registrado por submit_answer manda
            if incorrect >= self.max_lives:
                break      # tras la tercera falla no se sirven más preguntas
            q = questions[a.question_id]
            idx = a.selected_index if a.selected_index is not None else index_of_choice(q, a.selected_answer)
            is_correct = check_answer(q, idx)
            if a.is_correct != is_correct:
                log.warning("session %s: client is_correct=%s overridden for question %s",
                            session.id, a.is_correct, q.id)
            log_entries.append(build_record(q, a.selected_answer, is_correct, a.time_taken, now))
            seen.add(q.id)
            incorrect += 0 if is_correct else 1

        correct = sum(1 for a in log_entries if a.get("is_correct"))
        answered = len(log_entries)
        total = len(served) or sum(settings_game.quotas_for(game).values())
        seconds = self.seconds_left(session, game, now) if session.play_started_at else submission.time_remaining

        return {
            "exam_data": log_entries,
            "score": sum(int(a.get("points_earned") or 0) for a in log_entries),
            "correct_answers": correct,
            "incorrect_answers": answered - correct,
            "questions_answered": answered,
            "time_remaining": seconds,
            "total_time_taken": submission.total_time_taken,
            "end_reason": resolve_end_reason(
                incorrect=answered - correct,
                answered=answered,
                total_questions=total,
                seconds_left=seconds,
                requested=submission.end_reason,
                max_lives=self.max_lives,
            ),
        }

    def _close(self, session: GameSession, game: Game, reason: str, now: datetime) -> bool:
        applied = self.store.finish_if_active(session, {
            "status": "completed",
            "ended_at": now,
            "end_reason": reason,
            "time_remaining": self.seconds_left(session, game, now),
        })
        if applied:
            log.info("session %s closed by server: reason=%s", session.id, reason)
            self._refresh_stats(game)
        return applied

    def _refresh_stats(self, game: Game) -> None:
        # best-effort: si falla, la sesión ya quedó guardada
        try:
            recompute_stats(self.db, game)
        except StatsRecomputeFailure as e:
            log.warning("stats recompute failed for game %s: %s", game.id, e)

