"""Response builders.

Routes serialize with ``response_model_exclude_unset=True``: a field left
unset here never reaches the client. Answer keys and provisional grading
are withheld that way, so every other field is always set explicitly.
"""

from dataclasses import asdict
from datetime import datetime

from classquiz.db.models import (
    Quiz,
    QuizQuestion,
    Submission,
    SubmissionAnswer,
    SubmissionStatusEnum,
)
from classquiz.schemas.quiz import QuestionRead, QuestionType, QuizRead, QuizStatus
from classquiz.schemas.submission import (
    AnswerRead,
    GradingSummary,
    QuizReviewRead,
    ReviewedQuestionRead,
    SubmissionRead,
    SubmissionStatus,
    SubmissionView,
)
from classquiz.services.grading import summarize
from classquiz.services.quizzes import derive_status
from classquiz.services.submissions import SubmissionLookup, deadline_for


def question_to_read(question: QuizQuestion, reveal_answer: bool) -> QuestionRead:
    fields = dict(
        id=question.id,
        position=question.position,
        text=question.text,
        question_type=QuestionType(question.question_type.value),
        options=list(question.options or []),
        points=question.points,
    )
    if reveal_answer:
        fields["correct_answer"] = question.correct_answer
    return QuestionRead(**fields)


def quiz_to_read(quiz: Quiz, now: datetime, reveal_answers: bool) -> QuizRead:
    return QuizRead(
        id=quiz.id,
        class_id=quiz.class_id,
        created_by=quiz.created_by,
        title=quiz.title,
        description=quiz.description,
        duration_minutes=quiz.duration_minutes,
        start_time=quiz.start_time,
        end_time=quiz.end_time,
        is_published=quiz.is_published,
        status=QuizStatus(derive_status(quiz, now).value),
        question_count=len(quiz.questions),
        total_points=sum(q.points for q in quiz.questions),
        questions=[question_to_read(q, reveal_answers) for q in quiz.questions],
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    )


def answer_to_read(answer: SubmissionAnswer, reveal_grading: bool) -> AnswerRead:
    fields = dict(
        question_id=answer.question_id,
        answer=answer.answer,
        answered_at=answer.answered_at,
    )
    if reveal_grading:
        fields.update(
            is_correct=answer.is_correct,
            points=answer.points,
            feedback=answer.feedback or "",
        )
    return AnswerRead(**fields)


def submission_to_read(
    submission: Submission,
    reveal_grading: bool,
    include_student: bool = False,
    with_summary: bool = False,
) -> SubmissionRead:
    """Provisional grading is hidden from students until they complete."""
    quiz = submission.quiz
    fields = dict(
        id=submission.id,
        quiz_id=submission.quiz_id,
        student_id=submission.student_id,
        status=SubmissionStatus(submission.status.value),
        total_score=submission.total_score,
        total_points=submission.total_points,
        is_graded=submission.is_graded,
        started_at=submission.started_at,
        completed_at=submission.completed_at,
        deadline=deadline_for(submission, quiz),
        answers=[answer_to_read(a, reveal_grading) for a in submission.answers],
    )
    if include_student and submission.student is not None:
        fields["student_name"] = submission.student.full_name
        fields["student_email"] = submission.student.email
    if with_summary:
        summary = summarize(
            submission.answers,
            quiz.questions,
            submission.total_score,
            submission.total_points,
        )
        fields["grading_summary"] = GradingSummary(**asdict(summary))
    return SubmissionRead(**fields)


def build_review(quiz: Quiz, submission: Submission, reveal_answers: bool) -> QuizReviewRead:
    """Questions merged with the student's answers, in question order."""
    answers = {a.question_id: a for a in submission.answers}
    questions = []
    for question in quiz.questions:
        answer = answers.get(question.id)
        fields = dict(
            id=question.id,
            text=question.text,
            question_type=QuestionType(question.question_type.value),
            options=list(question.options or []),
            max_points=question.points,
            submitted_answer=answer.answer if answer else None,
            is_correct=answer.is_correct if answer else None,
            points=answer.points if answer else 0,
            feedback=(answer.feedback or "") if answer else "",
        )
        if reveal_answers:
            fields["correct_answer"] = question.correct_answer
        questions.append(ReviewedQuestionRead(**fields))

    return QuizReviewRead(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        total_points=sum(q.points for q in quiz.questions),
        questions=questions,
    )


def submission_view(lookup: SubmissionLookup, now: datetime) -> SubmissionView:
    """Shape a lookup for GET /api/quizzes/{id}/submission."""
    quiz, submission = lookup.quiz, lookup.submission
    status = QuizStatus(lookup.quiz_status.value)

    if submission is None:
        # Nothing started yet: show the quiz itself, keys withheld.
        return SubmissionView(quiz_status=status, quiz=quiz_to_read(quiz, now, reveal_answers=False))

    in_progress = submission.status == SubmissionStatusEnum.IN_PROGRESS
    if lookup.viewer_is_creator:
        fields = dict(
            quiz_status=status,
            submission=submission_to_read(
                submission, reveal_grading=True, include_student=True, with_summary=True
            ),
        )
        if not in_progress:
            fields["review"] = build_review(quiz, submission, reveal_answers=True)
        return SubmissionView(**fields)

    if in_progress:
        return SubmissionView(
            quiz_status=status,
            quiz=quiz_to_read(quiz, now, reveal_answers=False),
            submission=submission_to_read(submission, reveal_grading=False),
        )
    return SubmissionView(
        quiz_status=status,
        submission=submission_to_read(submission, reveal_grading=True, with_summary=True),
        review=build_review(quiz, submission, reveal_answers=False),
    )
