from typing import Iterable, Mapping

# Puntos por acierto según dificultad de la pregunta
POINTS_BY_DIFFICULTY = {
    "easy": 3,
    "medium": 5,
    "hard": 8,
}


def points_for(difficulty) -> int:
    """Dificultad desconocida vale 0; nunca lanza."""
    return POINTS_BY_DIFFICULTY.get(difficulty, 0) if isinstance(difficulty, str) else 0


def max_score(quotas: Mapping[str, int]) -> int:
    """Puntaje teórico máximo para unos cupos (10/6/5 -> 100)."""
    return sum(int(count or 0) * points_for(tier) for tier, count in (quotas or {}).items())


def score_of(exam_data: Iterable[dict]) -> int:
    return sum(int((a or {}).get("points_earned") or 0) for a in (exam_data or []))
