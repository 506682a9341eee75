from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.game import Game
from app.schemas.play import GameOut
from app.domain.game.stats import formatted_stats

router = APIRouter(prefix="/games", tags=["games"])

def _game_out(g: Game) -> GameOut:
    return GameOut.model_validate(g).model_copy(update={"formatted_stats": formatted_stats(g.stats)})

@router.get("", response_model=list[GameOut])
def list_games(db: Session = Depends(get_db)):
    """Catálogo: sólo juegos activos."""
    rows = db.execute(select(Game).where(Game.is_active.is_(True)).order_by(Game.id)).scalars().all()
    return [_game_out(g) for g in rows]

@router.get("/{slug}", response_model=GameOut)
def show_game(slug: str, db: Session = Depends(get_db)):
    g = db.execute(select(Game).where(Game.slug == slug)).scalar_one_or_none()
    if not g or not g.is_active:
        raise HTTPException(404, "Juego no encontrado")
    return _game_out(g)
