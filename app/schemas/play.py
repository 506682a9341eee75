from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal, List, Any
from datetime import datetime

EndReason = Literal["timer", "lives_exhausted", "completed", "user_exit"]

class AnswerIn(BaseModel):
    question_id: int
    selected_answer: str                       # texto literal de la opción elegida
    is_correct: bool                           # lo que creyó el front; en modo estricto se recalcula
    time_taken: int = Field(ge=0)
    selected_index: Optional[int] = Field(default=None, ge=0, le=3)   # 0-based, opcional

class FinishIn(BaseModel):
    answers: List[AnswerIn]
    final_score: int = Field(ge=0)
    lives_remaining: int = Field(ge=0)
    time_remaining: int = Field(ge=0)
    total_time_taken: int = Field(ge=0)
    end_reason: EndReason
    questions_answered: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    incorrect_answers: int = Field(ge=0)

class SubmitAnswerIn(BaseModel):
    question_id: int
    selected_index: int = Field(ge=0, le=3)
    time_taken: int = Field(default=0, ge=0)

class QuestionOut(BaseModel):
    id: int
    question_text: str
    choices: List[str]
    difficulty_level: str
    category: Optional[str] = None
    correct_choice: Optional[int] = None       # sólo si GAME_EXPOSE_CORRECT_CHOICE=1
    model_config = ConfigDict(from_attributes=True)

class GameOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    long_description: Optional[str] = None
    image_path: Optional[str] = None
    difficulty: str
    time_limit: int
    question_count: int
    points_per_question: int
    skip_limit: int
    topics: Optional[List[str]] = None
    rules: Optional[List[str]] = None
    stats: Optional[dict] = None
    formatted_stats: Optional[dict] = None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)

class SessionOut(BaseModel):
    id: int
    client_id: int
    game_id: int
    status: str
    score: int
    correct_answers: int
    incorrect_answers: int
    questions_answered: int
    time_remaining: Optional[int] = None
    total_time_taken: int = 0
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    end_reason: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class StartOut(BaseModel):
    sessionId: int
    gameSlug: str
    resumed: bool

class PlayOut(BaseModel):
    game: GameOut
    session: SessionOut
    questions: List[QuestionOut]
    currentQuestion: Optional[QuestionOut] = None
    remainingLives: int
    timeLimit: int
    timeRemaining: int

class AnswerVerdictOut(BaseModel):
    isCorrect: bool
    pointsEarned: int
    correctChoice: int
    score: int
    remainingLives: int
    finished: bool
    endReason: Optional[EndReason] = None
    nextQuestion: Optional[QuestionOut] = None

class FinishOut(BaseModel):
    ok: bool
    applied: bool
    sessionId: int
    resultUrl: str

class HistoryRow(BaseModel):
    id: int
    score: int
    correct_answers: int
    questions_answered: int
    total_time_taken: int
    ended_at: Optional[datetime] = None
    end_reason: Optional[str] = None
    game: dict[str, Any]
