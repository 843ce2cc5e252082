"""
Read-side rollups over finalized attempts. Disqualified attempts count
nowhere.

Nothing here writes. Every function returns plain dicts/lists, rounds figures
to two decimals, orders its output deterministically and returns zero-valued
structures for empty input.
"""
from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from django.db.models import Avg, Count, F, Max, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.exceptions import NotFound

from exams.models import Question
from results.metrics import GRADE_ORDER, percentage_of
from results.models import ExamAttempt, StudentAnswer
from results.services.attempt_service import engine_setting

# (label, inclusive upper bound); None closes the last bucket
SCORE_BUCKETS = (("0-20", 20), ("21-40", 40), ("41-60", 60), ("61-80", 80), ("81-100", None))
TIME_BUCKETS = (("0-30min", 30), ("30-60min", 60), ("60-90min", 90), ("90min+", None))

TIMEFRAME_DAYS = {"7d": 7, "30d": 30, "90d": 90}
FALLBACK_TIMEFRAME_DAYS = 90

IMPROVEMENT_WINDOW = 5
RECENT_PERFORMANCE_LIMIT = 10
STRENGTH_THRESHOLD = 80
WEAKNESS_THRESHOLD = 60


def _r2(value: Any) -> float:
    return round(float(value or 0), 2)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def finalized_attempts():
    return ExamAttempt.objects.filter(
        status__in=ExamAttempt.FINALIZED_STATUSES, is_disqualified=False
    )


def timeframe_days(timeframe: Union[str, int, None]) -> int:
    if isinstance(timeframe, int):
        return timeframe
    return TIMEFRAME_DAYS.get(str(timeframe), FALLBACK_TIMEFRAME_DAYS)


def histogram(values: Iterable[float], buckets: Tuple[Tuple[str, Optional[int]], ...]) -> Dict[str, int]:
    counts = {label: 0 for label, _ in buckets}
    for value in values:
        for label, upper in buckets:
            if upper is None or value <= upper:
                counts[label] += 1
                break
    return counts


def _student_name(first_name: str, last_name: str, username: str) -> str:
    full = f"{first_name or ''} {last_name or ''}".strip()
    return full or username


# ============================================================
# exam
# ============================================================

def exam_statistics(exam_id: int) -> Dict[str, Any]:
    rows = list(
        finalized_attempts()
        .filter(exam_id=exam_id)
        .order_by("id")
        .values_list("obtained_marks", "percentage", "is_passed", "time_spent_minutes", "grade")
    )

    if not rows:
        return {
            "total_attempts": 0,
            "average_score": 0,
            "average_percentage": 0,
            "pass_rate": 0,
            "average_time": 0,
            "grade_distribution": {},
            "score_distribution": {},
            "time_distribution": {},
        }

    total = len(rows)
    scores = [r[0] for r in rows]
    percentages = [r[1] for r in rows]
    passed = sum(1 for r in rows if r[2])
    times = [r[3] for r in rows]
    grades = Counter(r[4] for r in rows)

    return {
        "total_attempts": total,
        "average_score": _r2(_mean(scores)),
        "average_percentage": _r2(_mean(percentages)),
        "pass_rate": _r2(passed / total * 100),
        "average_time": _r2(_mean(times)),
        "grade_distribution": {g: grades[g] for g in GRADE_ORDER if grades[g]},
        "score_distribution": histogram(percentages, SCORE_BUCKETS),
        "time_distribution": histogram(times, TIME_BUCKETS),
    }


# ============================================================
# student
# ============================================================

def student_statistics(student_id: int) -> Dict[str, Any]:
    attempts = list(
        finalized_attempts()
        .filter(student_id=student_id)
        .select_related("exam__course")
        .order_by("-started_at", "-id")
    )

    if not attempts:
        return {
            "total_exams": 0,
            "average_score": 0,
            "average_percentage": 0,
            "pass_rate": 0,
            "improvement": 0,
            "subject_performance": {},
            "recent_performance": [],
            "strengths": [],
            "weaknesses": [],
        }

    total = len(attempts)
    percentages = [a.percentage for a in attempts]

    # newest first: head is the recent window, tail the oldest
    window = min(IMPROVEMENT_WINDOW, total)
    improvement = _mean(percentages[:window]) - _mean(percentages[-window:])

    subjects: Dict[str, Dict[str, Any]] = {}
    for a in attempts:
        perf = subjects.setdefault(a.exam.subject, {
            "total_exams": 0,
            "total_marks": 0.0,
            "total_possible_marks": 0.0,
            "passed_count": 0,
        })
        perf["total_exams"] += 1
        perf["total_marks"] += a.obtained_marks
        perf["total_possible_marks"] += a.total_marks
        if a.is_passed:
            perf["passed_count"] += 1

    strengths, weaknesses = [], []
    subject_performance = {}
    for subject in sorted(subjects):
        perf = subjects[subject]
        average = percentage_of(perf["total_marks"], perf["total_possible_marks"])
        if average >= STRENGTH_THRESHOLD:
            strengths.append(subject)
        elif average < WEAKNESS_THRESHOLD:
            weaknesses.append(subject)
        subject_performance[subject] = {
            "total_exams": perf["total_exams"],
            "total_marks": _r2(perf["total_marks"]),
            "total_possible_marks": _r2(perf["total_possible_marks"]),
            "passed_count": perf["passed_count"],
            "average_percentage": _r2(average),
            "pass_rate": _r2(perf["passed_count"] / perf["total_exams"] * 100),
        }

    recent_performance = [
        {
            "attempt_id": a.pk,
            "exam_id": a.exam_id,
            "exam_name": a.exam.name,
            "subject": a.exam.subject,
            "percentage": _r2(a.percentage),
            "grade": a.grade,
            "date": a.submitted_at.isoformat() if a.submitted_at else None,
        }
        for a in attempts[:RECENT_PERFORMANCE_LIMIT]
    ]

    return {
        "total_exams": total,
        "average_score": _r2(_mean([a.obtained_marks for a in attempts])),
        "average_percentage": _r2(_mean(percentages)),
        "pass_rate": _r2(sum(1 for a in attempts if a.is_passed) / total * 100),
        "improvement": _r2(improvement),
        "subject_performance": subject_performance,
        "recent_performance": recent_performance,
        "strengths": strengths,
        "weaknesses": weaknesses,
    }


# ============================================================
# leaderboard / trends / subjects / questions
# ============================================================

def leaderboard(
    *,
    exam_id: Optional[int] = None,
    subject: Optional[str] = None,
    timeframe: Union[str, int, None] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    qs = finalized_attempts()
    if exam_id:
        qs = qs.filter(exam_id=exam_id)
    if subject:
        qs = qs.filter(exam__course__name__icontains=subject)
    if timeframe:
        qs = qs.filter(submitted_at__gte=timezone.now() - timedelta(days=timeframe_days(timeframe)))

    limit = int(limit or engine_setting("LEADERBOARD_LIMIT", 50))

    rows = (
        qs.values("student_id", "student__username", "student__first_name", "student__last_name")
        .annotate(
            average_percentage=Avg("percentage"),
            total_exams=Count("id"),
            best_percentage=Max("percentage"),
            total_obtained_marks=Sum("obtained_marks"),
            total_possible_marks=Sum("total_marks"),
        )
        .order_by("-average_percentage", "student_id")[:limit]
    )

    return [
        {
            "rank": rank,
            "student_id": row["student_id"],
            "student_name": _student_name(
                row["student__first_name"], row["student__last_name"], row["student__username"]
            ),
            "average_percentage": _r2(row["average_percentage"]),
            "total_exams": row["total_exams"],
            "best_percentage": _r2(row["best_percentage"]),
            "total_marks": _r2(row["total_obtained_marks"]),
            "total_possible_marks": _r2(row["total_possible_marks"]),
        }
        for rank, row in enumerate(rows, start=1)
    ]


def performance_trends(timeframe: Union[str, int, None] = None) -> List[Dict[str, Any]]:
    days = timeframe_days(timeframe or engine_setting("DEFAULT_TRENDS_TIMEFRAME", "30d"))
    since = timezone.now() - timedelta(days=days)

    rows = (
        finalized_attempts()
        .filter(submitted_at__gte=since)
        .annotate(day=TruncDate("submitted_at"))
        .values("day")
        .annotate(
            total_attempts=Count("id"),
            average_percentage=Avg("percentage"),
            passed=Count("id", filter=Q(is_passed=True)),
        )
        .order_by("day")
    )

    return [
        {
            "date": row["day"].isoformat(),
            "total_attempts": row["total_attempts"],
            "average_percentage": _r2(row["average_percentage"]),
            "pass_rate": _r2(row["passed"] / row["total_attempts"] * 100),
        }
        for row in rows
    ]


def subject_performance() -> List[Dict[str, Any]]:
    rows = (
        finalized_attempts()
        .values(subject=F("exam__course__name"))
        .annotate(
            total_attempts=Count("id"),
            average_percentage=Avg("percentage"),
            passed=Count("id", filter=Q(is_passed=True)),
            average_time=Avg("time_spent_minutes"),
        )
        .order_by("-total_attempts", "subject")
    )

    return [
        {
            "subject": row["subject"],
            "total_attempts": row["total_attempts"],
            "average_percentage": _r2(row["average_percentage"]),
            "pass_rate": _r2(row["passed"] / row["total_attempts"] * 100),
            "average_time": _r2(row["average_time"]),
        }
        for row in rows
    ]


def question_statistics(question_id: int) -> Dict[str, Any]:
    question = Question.objects.filter(pk=question_id).first()
    if question is None:
        raise NotFound("Question not found.")

    timed = Q(time_spent_seconds__gt=0)
    agg = (
        StudentAnswer.objects
        .filter(question_id=question_id, attempt__in=finalized_attempts())
        .aggregate(
            total=Count("id"),
            correct=Count("id", filter=Q(is_correct=True)),
            timed_count=Count("id", filter=timed),
            timed_sum=Sum("time_spent_seconds", filter=timed),
        )
    )

    total = agg["total"] or 0
    timed_count = agg["timed_count"] or 0
    return {
        "question_id": question.pk,
        "total_attempts": total,
        "correct_attempts": agg["correct"] or 0,
        "accuracy": _r2((agg["correct"] or 0) / total * 100) if total else 0,
        "average_time": _r2((agg["timed_sum"] or 0) / timed_count) if timed_count else 0,
        "difficulty": question.difficulty,
    }


def question_difficulty_analysis() -> List[Dict[str, Any]]:
    """Active questions grouped by difficulty, easy to hard."""
    bank = {
        row["difficulty"]: row
        for row in (
            Question.objects.filter(is_active=True)
            .values("difficulty")
            .annotate(total_questions=Count("id"), average_marks=Avg("marks"))
            .order_by()
        )
    }

    timed = Q(time_spent_seconds__gt=0)
    usage = {
        row["question__difficulty"]: row
        for row in (
            StudentAnswer.objects
            .filter(question__is_active=True, attempt__in=finalized_attempts())
            .values("question__difficulty")
            .annotate(
                usage_count=Count("id"),
                answered=Count("id", filter=Q(is_answered=True)),
                correct=Count("id", filter=Q(is_correct=True)),
                timed_count=Count("id", filter=timed),
                timed_sum=Sum("time_spent_seconds", filter=timed),
            )
            .order_by()
        )
    }

    analysis = []
    for difficulty in Question.Difficulty.values:
        if difficulty not in bank:
            continue
        used = usage.get(difficulty, {})
        answered = used.get("answered") or 0
        timed_count = used.get("timed_count") or 0
        analysis.append({
            "difficulty": difficulty,
            "total_questions": bank[difficulty]["total_questions"],
            "average_marks": _r2(bank[difficulty]["average_marks"]),
            "usage_count": used.get("usage_count") or 0,
            "success_rate": _r2((used.get("correct") or 0) / answered * 100) if answered else 0,
            "average_time": _r2((used.get("timed_sum") or 0) / timed_count) if timed_count else 0,
        })
    return analysis


def student_progress(student_id: int, timeframe: Union[str, int, None] = None) -> List[Dict[str, Any]]:
    """One row per day the student finished attempts inside the window, oldest first."""
    days = timeframe_days(timeframe or engine_setting("DEFAULT_TRENDS_TIMEFRAME", "30d"))
    since = timezone.now() - timedelta(days=days)

    attempts = (
        finalized_attempts()
        .filter(student_id=student_id, submitted_at__gte=since)
        .select_related("exam__course")
        .order_by("submitted_at", "id")
    )

    by_day: Dict[Any, List[ExamAttempt]] = {}
    for attempt in attempts:
        by_day.setdefault(timezone.localdate(attempt.submitted_at), []).append(attempt)

    return [
        {
            "date": day.isoformat(),
            "total_exams": len(group),
            "average_percentage": _r2(_mean([a.percentage for a in group])),
            "subjects": sorted({a.exam.subject for a in group}),
        }
        for day, group in by_day.items()
    ]
