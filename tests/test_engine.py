import logging
import random
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.game import stats as stats_mod
from app.domain.game.errors import GameUnavailable, SubmissionInvalid, Unauthorized
from app.domain.game.engine import GameSessionEngine
from app.domain.game.question_bank import QuestionBank
from app.models.game_session import GameSession
from app.models.question import Question
from app.schemas.play import AnswerIn, FinishIn

from conftest import RIGHT, WRONG, make_question


def _answer(q, text, claimed=None, time_taken=5) -> AnswerIn:
    return AnswerIn(
        question_id=q.id,
        selected_answer=text,
        is_correct=(text == RIGHT) if claimed is None else claimed,
        time_taken=time_taken,
    )


def _finish(answers, **over) -> FinishIn:
    data = dict(
        answers=answers,
        final_score=0,
        lives_remaining=3,
        time_remaining=300,
        total_time_taken=sum(a.time_taken for a in answers),
        end_reason="user_exit",
        questions_answered=len(answers),
        correct_answers=sum(1 for a in answers if a.is_correct),
        incorrect_answers=sum(1 for a in answers if not a.is_correct),
    )
    data.update(over)
    return FinishIn(**data)


@pytest.fixture
def playing(game_engine, game, player, questions):
    """Sesión iniciada y cargada: (sesión, preguntas servidas)."""
    sess, _ = game_engine.start(player.id, game)
    state = game_engine.load_for_play(sess, player.id, game)
    return sess, state.questions


# ------------------------------------------------------------------ start

def test_start_reuses_active_session(game_engine, game, player):
    first, created = game_engine.start(player.id, game)
    again, created_again = game_engine.start(player.id, game)

    assert created is True and created_again is False
    assert again.id == first.id
    assert first.status == "in_progress"
    assert first.exam_data == [] and first.score == 0


def test_start_inactive_game(game_engine, game, player, db):
    game.is_active = False
    db.commit()
    with pytest.raises(GameUnavailable):
        game_engine.start(player.id, game)


def test_start_resumes_session_after_game_deactivated(game_engine, game, player, db):
    first, _ = game_engine.start(player.id, game)
    game.is_active = False
    db.commit()

    again, created = game_engine.start(player.id, game)

    assert created is False
    assert again.id == first.id


def test_start_after_finish_opens_new_session(game_engine, game, player, playing):
    sess, _ = playing
    game_engine.finish(sess, player.id, game, _finish([]))

    fresh, created = game_engine.start(player.id, game)
    assert created is True
    assert fresh.id != sess.id


# ------------------------------------------------------------------- load

def test_first_load_fixes_question_set_and_clock(game_engine, game, player, questions, clock):
    sess, _ = game_engine.start(player.id, game)
    state = game_engine.load_for_play(sess, player.id, game)

    assert len(state.questions) == 21
    assert sess.question_ids == [q.id for q in state.questions]
    assert sess.play_started_at is not None
    assert sess.time_remaining == 360
    assert state.time_limit_seconds == 360
    assert state.time_remaining == 360
    assert state.lives_remaining == 3
    assert state.current_question.id == state.questions[0].id
    assert state.shortfalls == []


def test_reload_serves_same_questions(make_engine, game, player, playing, clock):
    sess, served = playing
    clock.advance(seconds=40)

    state = make_engine().load_for_play(sess, player.id, game)

    assert [q.id for q in state.questions] == [q.id for q in served]
    assert state.time_remaining == 320


def test_load_other_client_rejected(game_engine, game, other_player, playing):
    sess, _ = playing
    with pytest.raises(Unauthorized):
        game_engine.load_for_play(sess, other_player.id, game)


def test_load_completed_session_rejected(game_engine, game, player, playing):
    sess, _ = playing
    game_engine.finish(sess, player.id, game, _finish([]))
    with pytest.raises(Unauthorized):
        game_engine.load_for_play(sess, player.id, game)


def test_concurrent_first_loads_share_one_question_set(SessionTest, game, player, questions, clock):
    db_a, db_b = SessionTest(), SessionTest()
    try:
        engine_a = GameSessionEngine(db_a, bank=QuestionBank(db_a, rng=random.Random(1)), clock=clock,
                                     trust_client=False, max_lives=3)
        engine_b = GameSessionEngine(db_b, bank=QuestionBank(db_b, rng=random.Random(2)), clock=clock,
                                     trust_client=False, max_lives=3)
        sess_a, _ = engine_a.start(player.id, game)
        # la segunda request leyó la sesión antes de que la primera fijara el set
        sess_b = db_b.get(GameSession, sess_a.id)
        assert sess_b.question_ids is None

        state_a = engine_a.load_for_play(sess_a, player.id, game)
        state_b = engine_b.load_for_play(sess_b, player.id, game)

        assert [q.id for q in state_b.questions] == [q.id for q in state_a.questions]
        assert sess_b.question_ids == [q.id for q in state_a.questions]

        v = engine_b.submit_answer(sess_b, player.id, game,
                                   question_id=state_a.questions[0].id, selected_index=1)
        assert v.recorded is True
    finally:
        db_a.close()
        db_b.close()


def test_load_with_short_bank_reports_shortfall(game_engine, game, player, db):
    for i in range(10):
        make_question(db, "easy", i)

    sess, _ = game_engine.start(player.id, game)
    state = game_engine.load_for_play(sess, player.id, game)

    assert len(state.questions) == 10
    assert {s.tier for s in state.shortfalls} == {"medium", "hard"}


# ------------------------------------------------------------- answering

def test_correct_answer_scores_by_difficulty(game_engine, game, player, playing):
    sess, served = playing
    v = game_engine.submit_answer(sess, player.id, game, question_id=served[0].id, selected_index=1, time_taken=4)

    assert v.recorded and v.is_correct and not v.finished
    assert v.points_earned == 3
    assert v.correct_choice == 2
    assert v.session.score == 3
    assert v.lives_remaining == 3
    assert v.next_question.id == served[1].id
    rec = sess.exam_data[0]
    assert rec["question_id"] == served[0].id
    assert rec["selected_answer"] == RIGHT
    assert rec["difficulty_level"] == "easy"
    assert rec["time_taken"] == 4


def test_third_wrong_answer_ends_game(game_engine, game, player, playing):
    sess, served = playing
    for q in served[:2]:
        v = game_engine.submit_answer(sess, player.id, game, question_id=q.id, selected_index=0)
        assert not v.finished
    v = game_engine.submit_answer(sess, player.id, game, question_id=served[2].id, selected_index=0)

    assert v.finished and v.end_reason == "lives_exhausted"
    assert v.lives_remaining == 0
    assert v.next_question is None
    assert sess.status == "completed"
    assert sess.ended_at is not None
    assert game.stats["total_sessions"] == 1

    with pytest.raises(Unauthorized):
        game_engine.submit_answer(sess, player.id, game, question_id=served[3].id, selected_index=1)


def test_all_answered_completes_with_max_score(game_engine, game, player, playing):
    sess, served = playing
    for q in served:
        v = game_engine.submit_answer(sess, player.id, game, question_id=q.id, selected_index=1)

    assert v.finished and v.end_reason == "completed"
    assert sess.score == 100
    assert sess.correct_answers == 21 and sess.incorrect_answers == 0


def test_question_soft_deleted_mid_game_is_still_served(game_engine, game, player, playing, db):
    sess, served = playing
    served[-1].deleted_at = datetime.now(timezone.utc)
    db.commit()

    state = game_engine.load_for_play(sess, player.id, game)
    assert [q.id for q in state.questions] == [q.id for q in served]

    for q in served:
        v = game_engine.submit_answer(sess, player.id, game, question_id=q.id, selected_index=1)

    assert v.finished and v.end_reason == "completed"
    assert sess.status == "completed"
    assert sess.score == 100


def test_question_removed_mid_game_is_not_waited_for(game_engine, game, player, playing, db):
    sess, served = playing
    gone = served[-1].id
    db.delete(db.get(Question, gone))
    db.commit()

    for q in served[:-1]:
        v = game_engine.submit_answer(sess, player.id, game, question_id=q.id, selected_index=1)

    assert v.finished and v.end_reason == "completed"
    assert sess.questions_answered == 20
    with pytest.raises(Unauthorized):
        game_engine.submit_answer(sess, player.id, game, question_id=gone, selected_index=1)


def test_answer_after_time_limit_closes_by_timer(game_engine, game, player, playing, clock):
    sess, served = playing
    clock.advance(minutes=6, seconds=1)

    v = game_engine.submit_answer(sess, player.id, game, question_id=served[0].id, selected_index=1)

    assert v.recorded is False
    assert v.finished and v.end_reason == "timer"
    assert sess.status == "completed"
    assert sess.questions_answered == 0
    assert sess.time_remaining == 0


def test_answer_outside_served_set_rejected(game_engine, game, player, playing, questions):
    sess, _ = playing
    stranger = next(q for q in questions["easy"] if q.id not in sess.question_ids)
    with pytest.raises(SubmissionInvalid):
        game_engine.submit_answer(sess, player.id, game, question_id=stranger.id, selected_index=1)


def test_repeated_answer_rejected(game_engine, game, player, playing):
    sess, served = playing
    game_engine.submit_answer(sess, player.id, game, question_id=served[0].id, selected_index=1)
    with pytest.raises(SubmissionInvalid):
        game_engine.submit_answer(sess, player.id, game, question_id=served[0].id, selected_index=0)
    assert sess.questions_answered == 1


# ---------------------------------------------------------------- finish

def test_one_correct_per_tier_then_exit(game_engine, game, player, playing):
    sess, served = playing
    easy, medium, hard = served[0], served[10], served[16]
    assert [q.difficulty_level for q in (easy, medium, hard)] == ["easy", "medium", "hard"]

    out, applied = game_engine.finish(sess, player.id, game, _finish(
        [_answer(easy, RIGHT), _answer(medium, RIGHT), _answer(hard, RIGHT)],
        final_score=16, end_reason="user_exit",
    ))

    assert applied is True
    assert out.status == "completed"
    assert out.end_reason == "user_exit"
    assert out.score == 16
    assert out.questions_answered == 3
    assert out.correct_answers == 3 and out.incorrect_answers == 0


def test_finish_recomputes_from_stored_questions(game_engine, game, player, playing, caplog):
    sess, served = playing
    answers = [
        _answer(served[0], RIGHT), _answer(served[1], RIGHT),
        _answer(served[10], RIGHT), _answer(served[11], RIGHT),
        _answer(served[2], WRONG, claimed=True),
    ]
    with caplog.at_level(logging.WARNING):
        out, applied = game_engine.finish(sess, player.id, game, _finish(answers, final_score=999))

    assert applied is True
    assert out.status == "completed"
    assert out.end_reason == "user_exit"
    assert out.score == 16
    assert out.correct_answers == 4
    assert out.incorrect_answers == 1
    assert out.questions_answered == 5
    assert out.total_time_taken == 25
    assert out.exam_data[4]["is_correct"] is False
    assert [a["points_earned"] for a in out.exam_data] == [3, 3, 5, 5, 0]
    assert "overridden" in caplog.text
    assert game.stats["total_sessions"] == 1


def test_finish_trusting_client_keeps_submitted_totals(make_engine, game, player, playing):
    sess, served = playing
    answers = [_answer(served[0], RIGHT), _answer(served[1], WRONG, claimed=True)]

    out, applied = make_engine(trust_client=True).finish(
        sess, player.id, game,
        _finish(answers, final_score=42, correct_answers=2, incorrect_answers=0, end_reason="completed"),
    )

    assert applied is True
    assert out.score == 42
    assert out.correct_answers == 2
    assert out.end_reason == "completed"
    assert out.exam_data[1]["is_correct"] is True


def test_finish_twice_is_a_noop(game_engine, game, player, playing):
    sess, served = playing
    game_engine.finish(sess, player.id, game, _finish([_answer(served[0], RIGHT)]))

    out, applied = game_engine.finish(
        sess, player.id, game,
        _finish([_answer(served[0], RIGHT), _answer(served[1], RIGHT)], final_score=500),
    )

    assert applied is False
    assert out.score == 3
    assert out.questions_answered == 1
    assert game.stats["total_sessions"] == 1


def test_finish_claim_not_backed_by_log_becomes_user_exit(game_engine, game, player, playing):
    sess, served = playing
    out, _ = game_engine.finish(sess, player.id, game,
                                _finish([_answer(served[0], RIGHT)], end_reason="completed"))
    assert out.end_reason == "user_exit"


def test_finish_ignores_answers_after_third_wrong(game_engine, game, player, playing):
    sess, served = playing
    answers = [_answer(q, WRONG) for q in served[:3]] + [_answer(served[3], RIGHT)]

    out, _ = game_engine.finish(sess, player.id, game, _finish(answers, end_reason="lives_exhausted"))

    assert out.questions_answered == 3
    assert out.score == 0
    assert out.end_reason == "lives_exhausted"


def test_finish_keeps_answers_recorded_by_server(game_engine, game, player, playing):
    sess, served = playing
    game_engine.submit_answer(sess, player.id, game, question_id=served[0].id, selected_index=0)

    out, _ = game_engine.finish(sess, player.id, game, _finish([
        _answer(served[0], RIGHT), _answer(served[1], RIGHT),
    ]))

    assert out.questions_answered == 2
    assert out.correct_answers == 1 and out.incorrect_answers == 1
    assert out.score == 3


def test_finish_after_time_limit_is_timer(game_engine, game, player, playing, clock):
    sess, served = playing
    clock.advance(minutes=7)
    out, _ = game_engine.finish(sess, player.id, game, _finish([_answer(served[0], RIGHT)]))
    assert out.end_reason == "timer"
    assert out.time_remaining == 0


def test_finish_unknown_question_rejected(game_engine, game, player, playing):
    sess, served = playing
    bogus = AnswerIn(question_id=987654, selected_answer=RIGHT, is_correct=True, time_taken=1)

    with pytest.raises(SubmissionInvalid) as exc:
        game_engine.finish(sess, player.id, game, _finish([_answer(served[0], RIGHT), bogus]))

    assert exc.value.errors[0]["loc"] == ["body", "answers", 1, "question_id"]
    assert sess.status == "in_progress"


def test_finish_question_outside_served_set_rejected(game_engine, game, player, playing, questions):
    sess, _ = playing
    stranger = next(q for q in questions["hard"] if q.id not in sess.question_ids)
    with pytest.raises(SubmissionInvalid):
        game_engine.finish(sess, player.id, game, _finish([_answer(stranger, RIGHT)]))


def test_finish_other_client_rejected(game_engine, game, other_player, playing):
    sess, _ = playing
    with pytest.raises(Unauthorized):
        game_engine.finish(sess, other_player.id, game, _finish([]))


def test_finish_without_loading_uses_submitted_clock(game_engine, game, player, questions):
    sess, _ = game_engine.start(player.id, game)
    q = questions["easy"][0]
    out, applied = game_engine.finish(sess, player.id, game,
                                      _finish([_answer(q, RIGHT)], time_remaining=0))
    assert applied is True
    assert out.end_reason == "timer"
    assert out.score == 3


def test_stats_failure_does_not_undo_finish(game_engine, game, player, playing, monkeypatch, caplog):
    sess, served = playing

    def boom(db, game_id):
        raise OperationalError("SELECT ...", {}, Exception("db down"))

    monkeypatch.setattr(stats_mod, "compute_stats", boom)
    with caplog.at_level(logging.WARNING):
        out, applied = game_engine.finish(sess, player.id, game, _finish([_answer(served[0], RIGHT)]))

    assert applied is True
    assert out.status == "completed"
    assert out.score == 3
    assert "stats recompute failed" in caplog.text
