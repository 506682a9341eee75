import os

# antes de importar app.*: app.db exige DATABASE_URL al importarse
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["GAME_TRUST_CLIENT_SCORING"] = "0"
os.environ["GAME_EXPOSE_CORRECT_CHOICE"] = "0"

import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, build_engine, get_db
from app.models.client import Client
from app.models.game import Game
from app.models.game_session import GameSession  # noqa: F401
from app.models.question import Question
from app.domain.game.engine import GameSessionEngine
from app.domain.game.question_bank import QuestionBank
from app.domain.game.stats import EMPTY_STATS
from app.security import create_access_token

CHOICES = ["alpha", "beta", "gamma", "delta"]
RIGHT = "beta"      # correct_choice = 2
WRONG = "alpha"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_question(db, level: str, n: int = 0, **extra) -> Question:
    q = Question(
        question_text=f"{level} question #{n}",
        choices=list(CHOICES),
        correct_choice=2,
        difficulty_level=level,
        category="Grammar & Syntax",
        status=extra.pop("status", "approved"),
        **extra,
    )
    db.add(q)
    db.commit()
    db.refresh(q)
    return q


@pytest.fixture
def sql_engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def SessionTest(sql_engine):
    return sessionmaker(bind=sql_engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(SessionTest):
    s = SessionTest()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def game(db) -> Game:
    g = Game(
        name="Time-based English Quiz",
        slug="time-based-english-quiz",
        description="Test your English knowledge with this time-based quiz.",
        difficulty="medium",
        time_limit=6,
        question_count=21,
        points_per_question=10,
        skip_limit=3,
        tier_quotas={"easy": 10, "medium": 6, "hard": 5},
        topics=["Grammar & Syntax"],
        rules=["Three wrong answers end the game"],
        stats=dict(EMPTY_STATS),
        is_active=True,
    )
    db.add(g)
    db.commit()
    db.refresh(g)
    return g


@pytest.fixture
def questions(db) -> dict[str, list[Question]]:
    counts = {"easy": 12, "medium": 7, "hard": 6}
    return {lvl: [make_question(db, lvl, i) for i in range(n)] for lvl, n in counts.items()}


@pytest.fixture
def player(db) -> Client:
    c = Client(name="Ana", email="ana@example.com")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture
def other_player(db) -> Client:
    c = Client(name="Luis", email="luis@example.com")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture
def make_engine(db, clock):
    def _make(**kwargs) -> GameSessionEngine:
        kwargs.setdefault("trust_client", False)
        kwargs.setdefault("max_lives", 3)
        return GameSessionEngine(db, bank=QuestionBank(db, rng=random.Random(42)), clock=clock, **kwargs)
    return _make


@pytest.fixture
def game_engine(make_engine) -> GameSessionEngine:
    return make_engine()


@pytest.fixture
def api(SessionTest, clock):
    from app.main import app
    from app.routers import play as play_router

    def _get_db():
        s = SessionTest()
        try:
            yield s
        finally:
            s.close()

    def _get_engine(db=Depends(get_db)):
        return GameSessionEngine(db, bank=QuestionBank(db, rng=random.Random(7)), clock=clock,
                                 trust_client=False, max_lives=3)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[play_router.get_game_engine] = _get_engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth(client: Client) -> dict:
    return {"Authorization": f"Bearer {create_access_token(client.email)}"}
