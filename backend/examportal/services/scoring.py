"""
Scoring for multiple-choice attempts.

Pure functions: nothing here touches the store, so an attempt can be scored
once and its persistence retried any number of times.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from ..models import Question, QuestionReview


@dataclass(frozen=True)
class ScoreBreakdown:
    matches: int
    total: int
    score: int


def percent_round_half_up(matches: int, total: int) -> int:
    """round(matches / total * 100) with halves rounded up, in exact integer arithmetic."""
    if total <= 0:
        raise ValueError("Cannot score an exam without questions")
    return (200 * matches + total) // (2 * total)


def score_answers(questions: Mapping[str, Question], answers: Mapping[str, str]) -> ScoreBreakdown:
    """
    Compare each question's recorded selection to its correct label.

    Every question stays in the denominator; unanswered ones simply never match.
    Answers for ids that are not questions of this exam are ignored.
    """
    matches = sum(
        1 for question_id, question in questions.items()
        if answers.get(question_id) == question.correct_answer
    )
    total = len(questions)
    return ScoreBreakdown(matches=matches, total=total, score=percent_round_half_up(matches, total))


def question_status(question: Question, selected: Optional[str]) -> str:
    if not selected:
        return "unanswered"
    return "correct" if selected == question.correct_answer else "incorrect"


def build_review(questions: Mapping[str, Question], answers: Dict[str, str]) -> List[QuestionReview]:
    """Per-question review; the correct label is always included."""
    return [
        QuestionReview(
            question_id=question_id,
            text=question.text,
            options=question.options,
            selected=answers.get(question_id),
            correct_answer=question.correct_answer,
            status=question_status(question, answers.get(question_id)),
        )
        for question_id, question in questions.items()
    ]
