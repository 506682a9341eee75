# scripts/seed_questions.py
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import select
from app.db import SessionLocal
from app.models.question import Question

# (nivel, enunciado, opciones, correcta 1-based, categoría)
SEEDS = [
    ("easy",   "Choose the correct article: ___ apple a day keeps the doctor away.", ["A", "An", "The", "No article"], 2, "Grammar & Syntax"),
    ("easy",   "What is the plural of 'child'?", ["Childs", "Childes", "Children", "Childrens"], 3, "Vocabulary & Usage"),
    ("easy",   "She ___ to school every day.", ["go", "goes", "going", "gone"], 2, "Grammar & Syntax"),
    ("easy",   "Which word is a synonym of 'happy'?", ["Sad", "Joyful", "Angry", "Tired"], 2, "Vocabulary & Usage"),
    ("easy",   "Which word is the opposite of 'cold'?", ["Hot", "Cool", "Icy", "Chilly"], 1, "Vocabulary & Usage"),
    ("easy",   "They ___ playing football now.", ["is", "am", "are", "be"], 3, "Grammar & Syntax"),
    ("easy",   "Pick the correctly spelled word.", ["Recieve", "Receive", "Receeve", "Riceive"], 2, "Vocabulary & Usage"),
    ("easy",   "I have lived here ___ 2010.", ["for", "since", "from", "at"], 2, "Grammar & Syntax"),
    ("easy",   "What is the past tense of 'eat'?", ["Eated", "Ate", "Eaten", "Eat"], 2, "Grammar & Syntax"),
    ("easy",   "Which is a question word?", ["Because", "Where", "And", "But"], 2, "Sentence Structure"),
    ("easy",   "The cat is ___ the table (on top of it).", ["in", "on", "at", "by"], 2, "Grammar & Syntax"),
    ("easy",   "Choose the adjective.", ["Quickly", "Run", "Beautiful", "Slowly"], 3, "Vocabulary & Usage"),
    ("medium", "If I ___ rich, I would travel the world.", ["am", "was", "were", "be"], 3, "Grammar & Syntax"),
    ("medium", "'Break the ice' means:", ["Destroy something", "Start a conversation", "Feel cold", "Stop working"], 2, "Common Idioms"),
    ("medium", "Neither the teacher nor the students ___ ready.", ["was", "is", "were", "be"], 3, "Grammar & Syntax"),
    ("medium", "Choose the correct form: He suggested ___ early.", ["to leave", "leaving", "leave", "left"], 2, "Grammar & Syntax"),
    ("medium", "'A piece of cake' means something is:", ["Delicious", "Very easy", "Expensive", "Small"], 2, "Common Idioms"),
    ("medium", "By the time we arrived, the film ___.", ["started", "has started", "had started", "starts"], 3, "Grammar & Syntax"),
    ("medium", "Which sentence is in the passive voice?", ["They built the bridge.", "The bridge was built.", "They are building.", "Build the bridge."], 2, "Sentence Structure"),
    ("hard",   "Hardly ___ the house when it started to rain.", ["I had left", "had I left", "I left", "did I leave"], 2, "Sentence Structure"),
    ("hard",   "'To beat around the bush' means:", ["To avoid the main topic", "To garden", "To win easily", "To hide"], 1, "Common Idioms"),
    ("hard",   "Choose the correct word: The data ___ inconclusive.", ["was being", "were", "is been", "are be"], 2, "Grammar & Syntax"),
    ("hard",   "Which word means 'lasting a very short time'?", ["Ephemeral", "Perennial", "Eternal", "Durable"], 1, "Vocabulary & Usage"),
    ("hard",   "Not only ___ late, but he also forgot the tickets.", ["he was", "was he", "he is", "is he"], 2, "Sentence Structure"),
    ("hard",   "Which is a correct use of the subjunctive?", ["I insist he goes.", "I insist that he go.", "I insist he going.", "I insist he went."], 2, "Grammar & Syntax"),
]

def upsert_question(db, level, text, choices, correct, category):
    row = db.execute(select(Question).where(Question.question_text == text)).scalar_one_or_none()
    if row:
        row.choices = choices
        row.correct_choice = correct
        row.difficulty_level = level
        row.category = category
    else:
        row = Question(
            question_text=text, choices=choices, correct_choice=correct,
            difficulty_level=level, category=category, status="approved",
        )
        db.add(row)
    db.commit()

def main():
    db = SessionLocal()
    try:
        for level, text, choices, correct, category in SEEDS:
            upsert_question(db, level, text, choices, correct, category)
        print("Questions seed OK")
    finally:
        db.close()

if __name__ == "__main__":
    main()
