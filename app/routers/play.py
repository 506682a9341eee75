import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core import settings_game
from app.deps import get_db, get_current_client
from app.models.client import Client
from app.models.game import Game
from app.models.game_session import GameSession
from app.models.question import Question
from app.schemas.play import (
    AnswerVerdictOut,
    FinishIn,
    FinishOut,
    GameOut,
    PlayOut,
    QuestionOut,
    SessionOut,
    StartOut,
    SubmitAnswerIn,
)
from app.domain.game.engine import GameSessionEngine
from app.domain.game.errors import ConcurrentUpdate, GameUnavailable, SubmissionInvalid, Unauthorized
from app.domain.game.results import ResultProjector

log = logging.getLogger("play")

router = APIRouter(prefix="/play", tags=["play"])

def get_game_engine(db: Session = Depends(get_db)) -> GameSessionEngine:
    return GameSessionEngine(db)

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _game_or_404(db: Session, slug: str) -> Game:
    g = db.execute(select(Game).where(Game.slug == slug)).scalar_one_or_none()
    if not g:
        raise HTTPException(404, "Juego no encontrado")
    return g

def _session_or_404(db: Session, session_id: int) -> GameSession:
    s = db.get(GameSession, session_id)
    if not s:
        raise HTTPException(404, "Sesión no encontrada")
    return s

def _forbidden(e: Exception) -> HTTPException:
    return HTTPException(status.HTTP_403_FORBIDDEN, str(e) or "Unauthorized access to this game session.")

def _question_out(q: Question, expose_answer: bool) -> QuestionOut:
    out = QuestionOut.model_validate(q)
    # correct_choice viaja al front sólo si el front es quien puntúa
    return out if expose_answer else out.model_copy(update={"correct_choice": None})

def _expose_answers(engine: GameSessionEngine) -> bool:
    return settings_game.EXPOSE_CORRECT_CHOICE or engine.trust_client

# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.post("/{slug}/start", response_model=StartOut)
def start(
    slug: str,
    db: Session = Depends(get_db),
    me: Client = Depends(get_current_client),
    engine: GameSessionEngine = Depends(get_game_engine),
):
    game = _game_or_404(db, slug)
    try:
        sess, created = engine.start(me.id, game)
    except GameUnavailable:
        raise HTTPException(status.HTTP_409_CONFLICT, "Juego no disponible")
    return StartOut(sessionId=sess.id, gameSlug=game.slug, resumed=not created)

@router.get("/{slug}/sessions/{session_id}", response_model=PlayOut)
def play(
    slug: str,
    session_id: int,
    db: Session = Depends(get_db),
    me: Client = Depends(get_current_client),
    engine: GameSessionEngine = Depends(get_game_engine),
):
    game = _game_or_404(db, slug)
    sess = _session_or_404(db, session_id)
    try:
        state = engine.load_for_play(sess, me.id, game)
    except Unauthorized as e:
        raise _forbidden(e)

    expose = _expose_answers(engine)
    return PlayOut(
        game=GameOut.model_validate(game),
        session=SessionOut.model_validate(state.session),
        questions=[_question_out(q, expose) for q in state.questions],
        currentQuestion=_question_out(state.current_question, expose) if state.current_question else None,
        remainingLives=state.lives_remaining,
        timeLimit=state.time_limit_seconds,
        timeRemaining=state.time_remaining,
    )

@router.post("/{slug}/sessions/{session_id}/answer", response_model=AnswerVerdictOut)
def answer(
    slug: str,
    session_id: int,
    body: SubmitAnswerIn,
    db: Session = Depends(get_db),
    me: Client = Depends(get_current_client),
    engine: GameSessionEngine = Depends(get_game_engine),
):
    game = _game_or_404(db, slug)
    sess = _session_or_404(db, session_id)
    try:
        verdict = engine.submit_answer(
            sess, me.id, game,
            question_id=body.question_id,
            selected_index=body.selected_index,
            time_taken=body.time_taken,
        )
    except Unauthorized as e:
        raise _forbidden(e)
    except SubmissionInvalid as e:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, e.errors)
    except ConcurrentUpdate:
        log.info("answer conflict on session %s (client=%s)", session_id, me.id)
        raise HTTPException(status.HTTP_409_CONFLICT, "La sesión cambió, recarga la partida")

    s = verdict.session
    return AnswerVerdictOut(
        isCorrect=verdict.is_correct,
        pointsEarned=verdict.points_earned,
        correctChoice=verdict.correct_choice,
        score=int(s.score or 0),
        remainingLives=verdict.lives_remaining,
        finished=verdict.finished,
        endReason=verdict.end_reason,
        nextQuestion=_question_out(verdict.next_question, _expose_answers(engine)) if verdict.next_question else None,
    )

@router.post("/{slug}/sessions/{session_id}/finish", response_model=FinishOut)
def finish(
    slug: str,
    session_id: int,
    body: FinishIn,
    db: Session = Depends(get_db),
    me: Client = Depends(get_current_client),
    engine: GameSessionEngine = Depends(get_game_engine),
):
    """
    Cierra la partida con lo acumulado en el front.
    Si la sesión ya estaba cerrada responde ok con applied=False (idempotente).
    """
    game = _game_or_404(db, slug)
    sess = _session_or_404(db, session_id)
    try:
        sess, applied = engine.finish(sess, me.id, game, body)
    except Unauthorized as e:
        raise _forbidden(e)
    except SubmissionInvalid as e:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, e.errors)

    return FinishOut(
        ok=True,
        applied=applied,
        sessionId=sess.id,
        resultUrl=f"/play/{game.slug}/sessions/{sess.id}/result",
    )

@router.get("/{slug}/sessions/{session_id}/result")
def result(
    slug: str,
    session_id: int,
    db: Session = Depends(get_db),
    me: Client = Depends(get_current_client),
    engine: GameSessionEngine = Depends(get_game_engine),
):
    game = _game_or_404(db, slug)
    sess = _session_or_404(db, session_id)
    try:
        engine.ensure_owner(sess, me.id, game)
    except Unauthorized as e:
        raise _forbidden(e)
    return ResultProjector(db, engine.bank).project(sess, game)
