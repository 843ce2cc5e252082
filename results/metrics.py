from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

# (inclusive lower bound, grade), highest first
GRADE_THRESHOLDS = (
    (97, "A+"),
    (93, "A"),
    (90, "B+"),
    (87, "B"),
    (83, "C+"),
    (80, "C"),
    (70, "D"),
)
FAILING_GRADE = "F"

GRADE_ORDER = tuple(g for _, g in GRADE_THRESHOLDS) + (FAILING_GRADE,)


def grade_for(percentage: float) -> str:
    for lower, grade in GRADE_THRESHOLDS:
        if percentage >= lower:
            return grade
    return FAILING_GRADE


def percentage_of(obtained: float, total: float) -> float:
    if not total:
        return 0.0
    return obtained / total * 100


@dataclass(frozen=True)
class AttemptMetrics:
    obtained_marks: float
    percentage: float
    grade: str
    is_passed: bool
    analytics: Dict[str, Any] = field(default_factory=dict)

    def as_update(self) -> Dict[str, Any]:
        return {
            "obtained_marks": self.obtained_marks,
            "percentage": self.percentage,
            "grade": self.grade,
            "is_passed": self.is_passed,
            "analytics": dict(self.analytics),
        }


def derive_metrics(answers: Iterable, *, total_marks: float, passing_marks: float) -> AttemptMetrics:
    """
    Recompute every derived attempt field from its answer slots.

    ``answers`` is any iterable of objects exposing the StudentAnswer fields
    (is_answered, is_correct, marks_obtained, time_spent_seconds,
    is_marked_for_review). Same input, same output.
    """
    answers = list(answers)

    obtained = float(sum(a.marks_obtained or 0 for a in answers))

    correct = sum(1 for a in answers if a.is_correct)
    wrong = sum(1 for a in answers if a.is_answered and not a.is_correct)
    unanswered = sum(1 for a in answers if not a.is_answered)
    marked = sum(1 for a in answers if a.is_marked_for_review)

    answered = correct + wrong
    accuracy = (correct / answered * 100) if answered else 0.0

    times = [a.time_spent_seconds or 0 for a in answers]
    average_time = (sum(times) / len(times)) if times else 0.0
    timed = [t for t in times if t > 0]

    percentage = percentage_of(obtained, total_marks)

    return AttemptMetrics(
        obtained_marks=obtained,
        percentage=percentage,
        grade=grade_for(percentage),
        is_passed=obtained >= passing_marks,
        analytics={
            "correct_answers": correct,
            "wrong_answers": wrong,
            "unanswered_questions": unanswered,
            "marked_for_review": marked,
            "accuracy": accuracy,
            "average_time_per_question": average_time,
            "fastest_answer": min(timed) if timed else 0,
            "slowest_answer": max(timed) if timed else 0,
        },
    )
