from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Enum
from sqlalchemy.sql import func
from app.db import Base

class Game(Base):
    __tablename__ = "games"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    long_description = Column(Text, nullable=False, default="")
    image_path = Column(String(255), nullable=True)

    difficulty = Column(Enum("easy", "medium", "hard", name="game_difficulty"),
                        nullable=False, default="medium")   # etiqueta nominal del juego
    time_limit = Column(Integer, nullable=False)             # minutos
    question_count = Column(Integer, nullable=False)         # total objetivo por sesión
    points_per_question = Column(Integer, nullable=False, default=10)  # legado, el motor no lo usa
    skip_limit = Column(Integer, nullable=False, default=3)  # declarado, aún sin regla de salto
    tier_quotas = Column(JSON, nullable=True)                # {"easy":10,"medium":6,"hard":5}; None = global

    topics = Column(JSON, nullable=True)                     # ["Grammar & Syntax", ...]
    rules = Column(JSON, nullable=True)                      # ["You have 6 minutes ...", ...]
    stats = Column(JSON, nullable=True)                      # ver domain.game.stats
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
