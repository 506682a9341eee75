from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.game.errors import StatsRecomputeFailure
from app.models.game import Game
from app.models.game_session import GameSession

EMPTY_STATS = {
    "total_players": 0,
    "average_score": 0,
    "completion_rate": "0%",
    "total_sessions": 0,
    "total_questions_answered": 0,
    "total_correct_answers": 0,
    "average_time_per_question": 0,
}


def _round(value: float, ndigits: int = 0):
    """Redondeo half-up (2.25 -> 2.3), no el bancario de round()."""
    q = Decimal(1).scaleb(-ndigits)
    out = Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP)
    return int(out) if ndigits == 0 else float(out)


def compute_stats(db: Session, game_id: int) -> dict:
    """
    Recalcula desde cero sobre las sesiones completadas del juego.
    No es incremental: O(n) por cada finalización.
    """
    completed = db.execute(
        select(GameSession.score, GameSession.questions_answered,
               GameSession.correct_answers, GameSession.exam_data)
        .where(GameSession.game_id == game_id, GameSession.status == "completed")
    ).all()

    total_sessions = len(completed)
    if total_sessions == 0:
        return dict(EMPTY_STATS)

    all_sessions = db.execute(
        select(func.count(GameSession.id)).where(GameSession.game_id == game_id)
    ).scalar_one() or total_sessions

    total_score = sum(int(r.score or 0) for r in completed)
    total_answered = sum(int(r.questions_answered or 0) for r in completed)
    total_correct = sum(int(r.correct_answers or 0) for r in completed)
    # tiempo por pregunta sale del log de respuestas, no de total_time_taken
    total_time = sum(
        int((a or {}).get("time_taken") or 0)
        for r in completed
        for a in (r.exam_data or [])
    )

    return {
        "total_players": total_sessions,
        "average_score": _round(total_score / total_sessions, 1),
        "completion_rate": f"{_round(total_sessions / all_sessions * 100)}%",
        "total_sessions": total_sessions,
        "total_questions_answered": total_answered,
        "total_correct_answers": total_correct,
        "average_time_per_question": _round(total_time / total_answered, 1) if total_answered > 0 else 0,
    }


def recompute_stats(db: Session, game: Game) -> dict:
    game_id = game.id
    try:
        game.stats = compute_stats(db, game_id)
        db.add(game)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StatsRecomputeFailure(f"game {game_id}: {e}") from e
    db.refresh(game)
    return game.stats


def formatted_stats(stats: dict | None) -> dict:
    s = stats or {}
    return {
        "total_players": f"{int(s.get('total_players') or 0):,}",
        "average_score": f"{float(s.get('average_score') or 0):.1f}",
        "completion_rate": s.get("completion_rate") or "0%",
    }
