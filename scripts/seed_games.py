# scripts/seed_games.py
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import select
from app.db import SessionLocal
from app.models.game import Game
from app.models.client import Client
from app.domain.game.stats import EMPTY_STATS
from app.security import create_access_token

SEEDS = [
    {
        "slug": "time-based-english-quiz",
        "name": "Time-based English Quiz",
        "description": "Test your English knowledge with this time-based quiz. Challenge yourself with questions about grammar, vocabulary, and comprehension.",
        "long_description": "This comprehensive English quiz is designed to test your language skills under time pressure. You'll face questions covering grammar rules, vocabulary usage, reading comprehension, and common idioms.",
        "image_path": "games/english-quiz.jpg",
        "difficulty": "medium",
        "time_limit": 6,
        "question_count": 21,
        "points_per_question": 10,
        "skip_limit": 3,
        "tier_quotas": {"easy": 10, "medium": 6, "hard": 5},
        "topics": [
            "Grammar & Syntax",
            "Vocabulary & Usage",
            "Reading Comprehension",
            "Common Idioms",
            "Sentence Structure",
        ],
        "rules": [
            "You have 6 minutes to complete all 21 questions",
            "Questions are distributed as: 10 easy (3pts), 6 medium (5pts), 5 hard (8pts)",
            "Three wrong answers end the game",
            "Points are awarded based on correct answers",
            "No external resources allowed during the quiz",
        ],
        "is_active": True,
    },
]

DEMO_CLIENT = {"name": "Demo Player", "email": "player@example.com"}

def upsert_game(db, data):
    row = db.execute(select(Game).where(Game.slug == data["slug"])).scalar_one_or_none()
    if row:
        for k, v in data.items():
            setattr(row, k, v)
    else:
        row = Game(**data, stats=dict(EMPTY_STATS)); db.add(row)
    db.commit()

def upsert_client(db, data) -> Client:
    row = db.execute(select(Client).where(Client.email == data["email"])).scalar_one_or_none()
    if not row:
        row = Client(**data); db.add(row); db.commit(); db.refresh(row)
    return row

def main():
    db = SessionLocal()
    try:
        for d in SEEDS: upsert_game(db, d)
        c = upsert_client(db, DEMO_CLIENT)
        print("Games seed OK")
        print(f"Demo token ({c.email}): {create_access_token(c.email)}")
    finally:
        db.close()

if __name__ == "__main__":
    main()
