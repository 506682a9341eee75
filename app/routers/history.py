from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.deps import get_db, get_current_client
from app.models.client import Client
from app.schemas.play import HistoryRow
from app.domain.game.store import SessionStore

router = APIRouter(prefix="/me", tags=["me"])

@router.get("/history", response_model=list[HistoryRow])
def game_history(db: Session = Depends(get_db), me: Client = Depends(get_current_client)):
    """Partidas terminadas del cliente, la más reciente primero."""
    sessions = SessionStore(db).completed_for_client(me.id)
    out = []
    for s in sessions:
        g = s.game
        out.append(HistoryRow(
            id=s.id,
            score=int(s.score or 0),
            correct_answers=int(s.correct_answers or 0),
            questions_answered=int(s.questions_answered or 0),
            total_time_taken=int(s.total_time_taken or 0),
            ended_at=s.ended_at,
            end_reason=s.end_reason,
            game={
                "id": g.id, "name": g.name, "slug": g.slug, "difficulty": g.difficulty,
            } if g else {},
        ))
    return out
