"""Unit tests for the pure grading engine."""

import uuid

import pytest

from classquiz.db.models import QuestionTypeEnum, QuizQuestion, SubmissionAnswer
from classquiz.services.grading import (
    apply_manual_grade,
    auto_grade,
    grade_objective,
    is_fully_graded,
    is_manually_gradable,
    recompute_totals,
    score_percentage,
    summarize,
)


def _question(question_type: QuestionTypeEnum, correct=None, points: int = 1, options=None) -> QuizQuestion:
    return QuizQuestion(
        id=uuid.uuid4(),
        question_type=question_type,
        options=options or [],
        correct_answer=correct,
        points=points,
    )


def _answer(question: QuizQuestion, is_correct, points: int = 0) -> SubmissionAnswer:
    return SubmissionAnswer(question_id=question.id, answer="x", is_correct=is_correct, points=points)


class TestObjectiveGrading:
    def test_multiple_choice_correct(self):
        q = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "B", points=2, options=["A", "B"])
        result = grade_objective(q, "B")
        assert result.is_correct is True
        assert result.points == 2

    def test_multiple_choice_is_case_sensitive(self):
        q = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "B", points=2, options=["A", "B"])
        result = grade_objective(q, "b")
        assert result.is_correct is False
        assert result.points == 0

    def test_true_false_string_matches_stored_bool(self):
        q = _question(QuestionTypeEnum.TRUE_FALSE, True, points=3)
        assert grade_objective(q, "true").is_correct is True
        assert grade_objective(q, "true").points == 3

    def test_true_false_stored_string_matches_bool(self):
        q = _question(QuestionTypeEnum.TRUE_FALSE, "false")
        assert grade_objective(q, False).is_correct is True

    def test_true_false_unrecognized_is_wrong(self):
        q = _question(QuestionTypeEnum.TRUE_FALSE, True)
        result = grade_objective(q, "yes")
        assert result.is_correct is False
        assert result.points == 0

    def test_short_answer_cannot_be_auto_graded(self):
        with pytest.raises(ValueError):
            grade_objective(_question(QuestionTypeEnum.SHORT_ANSWER), "anything")


class TestAutoGrade:
    def test_short_answer_is_pending(self):
        result = auto_grade(_question(QuestionTypeEnum.SHORT_ANSWER, points=3), "Photosynthesis")
        assert result.is_correct is None
        assert result.points == 0

    def test_dispatches_objective(self):
        q = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "A", options=["A", "B"])
        assert auto_grade(q, "A").is_correct is True


class TestManualGrade:
    def test_clamps_to_maximum(self):
        q = _question(QuestionTypeEnum.SHORT_ANSWER, points=3)
        result = apply_manual_grade(q, 10, "Great")
        assert result.points == 3
        assert result.is_correct is True
        assert result.feedback == "Great"

    def test_negative_and_missing_points_become_zero(self):
        q = _question(QuestionTypeEnum.SHORT_ANSWER, points=3)
        assert apply_manual_grade(q, -2).points == 0
        assert apply_manual_grade(q, None).points == 0

    def test_zero_points_with_feedback_is_incorrect(self):
        q = _question(QuestionTypeEnum.SHORT_ANSWER, points=3)
        result = apply_manual_grade(q, 0, "Missing key idea")
        assert result.is_correct is False
        assert result.feedback == "Missing key idea"

    def test_eligibility(self):
        short = _question(QuestionTypeEnum.SHORT_ANSWER)
        mc = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "A", options=["A", "B"])
        assert is_manually_gradable(short, _answer(short, True, 1)) is True
        assert is_manually_gradable(mc, _answer(mc, None)) is True
        assert is_manually_gradable(mc, _answer(mc, False)) is False


class TestRollups:
    def test_total_points_ignores_answers(self):
        q1 = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "A", points=2, options=["A", "B"])
        q2 = _question(QuestionTypeEnum.SHORT_ANSWER, points=3)
        totals = recompute_totals([], [q1, q2])
        assert totals.total_points == 5
        assert totals.total_score == 0

    def test_total_score_skips_orphaned_answers(self):
        q1 = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "A", points=2, options=["A", "B"])
        orphan = _question(QuestionTypeEnum.SHORT_ANSWER, points=9)
        answers = [_answer(q1, True, 2), _answer(orphan, True, 9)]
        assert recompute_totals(answers, [q1]).total_score == 2

    def test_fully_graded(self):
        q = _question(QuestionTypeEnum.SHORT_ANSWER)
        assert is_fully_graded([]) is True
        assert is_fully_graded([_answer(q, False)]) is True
        assert is_fully_graded([_answer(q, None)]) is False

    def test_score_percentage(self):
        assert score_percentage(2, 5) == 40
        assert score_percentage(2, 3) == 67
        assert score_percentage(0, 0) == 0

    @pytest.mark.parametrize(
        "score, points, expected",
        [(1, 8, 13), (5, 8, 63), (1, 200, 1), (1, 3, 33), (8, 8, 100)],
    )
    def test_score_percentage_rounds_halves_up(self, score, points, expected):
        assert score_percentage(score, points) == expected

    def test_summarize(self):
        q1 = _question(QuestionTypeEnum.MULTIPLE_CHOICE, "A", points=2, options=["A", "B"])
        q2 = _question(QuestionTypeEnum.SHORT_ANSWER, points=3)
        q3 = _question(QuestionTypeEnum.TRUE_FALSE, True)
        summary = summarize([_answer(q1, True, 2), _answer(q2, None)], [q1, q2, q3], 2, 6)
        assert summary.total_questions == 3
        assert summary.answered_questions == 2
        assert summary.auto_graded_questions == 1
        assert summary.pending_manual_questions == 1
        assert summary.is_fully_graded is False
        assert summary.score_percentage == 33
