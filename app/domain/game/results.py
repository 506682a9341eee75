from typing import Optional

from sqlalchemy.orm import Session

from app.core import settings_game
from app.domain.game.question_bank import QuestionBank
from app.domain.game.scoring import max_score
from app.models.game import Game
from app.models.game_session import GameSession
from app.models.question import Question


def _question_view(q: Optional[Question]) -> Optional[dict]:
    if q is None:
        return None
    return {
        "id": q.id,
        "question_text": q.question_text,
        "choices": list(q.choices or []),
        "correct_choice": q.correct_choice,
        "correct_answer": q.correct_answer,
        "explanation": q.explanation,
        "difficulty_level": q.difficulty_level,
        "category": q.category,
    }


class ResultProjector:
    """Vista de resultado: log de respuestas + datos de cada pregunta."""

    def __init__(self, db: Session, bank: Optional[QuestionBank] = None):
        self.bank = bank or QuestionBank(db)

    def project(self, session: GameSession, game: Game) -> dict:
        exam_data = list(session.exam_data or [])
        # incluye borradas: el resultado se sigue pudiendo ver
        questions = self.bank.get_many((a.get("question_id") for a in exam_data), include_deleted=True)

        answers = []
        for a in exam_data:
            row = dict(a)
            row["question"] = _question_view(questions.get(int(a.get("question_id") or 0)))
            answers.append(row)

        return {
            "game": {
                "id": game.id,
                "name": game.name,
                "slug": game.slug,
                "difficulty": game.difficulty,
                "time_limit": game.time_limit,
                "question_count": game.question_count,
                "points_per_question": game.points_per_question,
            },
            "session": {
                "id": session.id,
                "status": session.status,
                "score": session.score,
                "correct_answers": session.correct_answers,
                "incorrect_answers": session.incorrect_answers,
                "questions_answered": session.questions_answered,
                "ended_at": session.ended_at,
                "end_reason": session.end_reason,
                "total_time_taken": session.total_time_taken or 0,
                "exam_data": exam_data,
            },
            "answers": answers,
            "maxScore": max_score(settings_game.quotas_for(game)),
        }
