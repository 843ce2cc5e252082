from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Any, List, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from exams.models import Exam, Question
from results.exceptions import (
    AttemptLimitExceeded,
    AttemptNotFound,
    AttemptNotInProgress,
    AttemptNotOwnedByCaller,
    AttemptStartConflict,
    ExamNotAvailable,
    ExamNotFound,
    QuestionNotInAttempt,
)
from results.grading import QuestionSpec, validate_answer
from results.metrics import derive_metrics
from results.models import ExamAttempt, StudentAnswer
from results.notifications import notify_result_ready

logger = logging.getLogger(__name__)

Status = ExamAttempt.Status

TAB_SWITCH = "tab-switch"
FULLSCREEN_EXIT = "fullscreen-exit"
INCIDENT = "incident"
PROCTORING_EVENTS = (TAB_SWITCH, FULLSCREEN_EXIT, INCIDENT)

LIST_ORDERINGS = tuple(
    prefix + name
    for name in ("started_at", "submitted_at", "obtained_marks", "percentage")
    for prefix in ("", "-")
)


def engine_setting(key: str, default: Any) -> Any:
    return getattr(settings, "EXAM_ENGINE", {}).get(key, default)


def _minutes_between(start, end) -> int:
    # half-up, not banker's rounding
    seconds = (end - start).total_seconds()
    return max(0, int(math.floor(seconds / 60 + 0.5)))


def _lock_attempt(attempt_id) -> ExamAttempt:
    attempt = ExamAttempt.objects.select_for_update().filter(pk=attempt_id).first()
    if attempt is None:
        raise AttemptNotFound()
    return attempt


def _ensure_owner(attempt: ExamAttempt, caller) -> None:
    # caller=None is the system itself (timeout sweep)
    if caller is None or attempt.student_id == caller.pk:
        return
    raise AttemptNotOwnedByCaller()


def _apply_metrics(attempt: ExamAttempt, expected_status: str) -> bool:
    """
    Re-derive the aggregate fields from the answer slots and write them only
    while the attempt is still in ``expected_status``.
    """
    metrics = derive_metrics(
        attempt.answers.all(),
        total_marks=attempt.total_marks,
        passing_marks=attempt.passing_marks,
    )
    values = metrics.as_update()
    values["updated_at"] = timezone.now()

    updated = (
        ExamAttempt.objects
        .filter(pk=attempt.pk, status=expected_status)
        .update(**values)
    )
    if updated:
        for name, value in values.items():
            setattr(attempt, name, value)
    return bool(updated)


class AttemptService:
    """
    Attempt lifecycle: start, answer, finalize, proctoring, review.

    Every mutation runs inside ``transaction.atomic`` with the attempt row
    locked, and every state transition is a conditional update guarded on
    ``status=in-progress``. Two requests racing on the same attempt therefore
    serialize: the loser of a finalize race sees the winner's terminal state
    and returns it unchanged.
    """

    # -------------------------------------------------
    # start
    # -------------------------------------------------
    @staticmethod
    def start_attempt(*, exam_id: int, student) -> Tuple[ExamAttempt, bool]:
        """Return ``(attempt, created)``; an open attempt is resumed, not duplicated."""
        exam = Exam.objects.filter(pk=exam_id).first()
        if exam is None:
            raise ExamNotFound()

        now = timezone.now()
        if not exam.is_available(now):
            raise ExamNotAvailable()

        question_ids = exam.ordered_question_ids()
        retries = max(1, int(engine_setting("START_RETRIES", 3)))

        for try_no in range(1, retries + 1):
            try:
                with transaction.atomic():
                    attempt, created = AttemptService._open_attempt(exam, student, question_ids, now)
            except IntegrityError:
                # a concurrent start took the number or opened an attempt first
                logger.warning(
                    "attempt start collided exam=%s student=%s try=%s/%s",
                    exam.pk, student.pk, try_no, retries,
                )
                continue

            if created:
                logger.info(
                    "attempt started exam=%s student=%s attempt=%s #%s",
                    exam.pk, student.pk, attempt.pk, attempt.attempt_number,
                )
            return attempt, created

        raise AttemptStartConflict()

    @staticmethod
    def _open_attempt(exam: Exam, student, question_ids: List[int], now) -> Tuple[ExamAttempt, bool]:
        # 1. lock this student's attempts at this exam
        rows = list(
            ExamAttempt.objects
            .select_for_update()
            .filter(exam=exam, student=student)
            .values_list("id", "attempt_number", "status")
        )

        # 2. resume
        for attempt_id, _, status in rows:
            if status == Status.IN_PROGRESS:
                return ExamAttempt.objects.get(pk=attempt_id), False

        # 3. retake policy
        finalized = sum(1 for _, _, status in rows if status in ExamAttempt.FINALIZED_STATUSES)
        if finalized >= exam.allowed_attempts:
            raise AttemptLimitExceeded()

        # 4. numbering; the unique constraint rejects a duplicate number
        next_number = max((number for _, number, _ in rows), default=0) + 1

        attempt = ExamAttempt.objects.create(
            exam=exam,
            student=student,
            attempt_number=next_number,
            status=Status.IN_PROGRESS,
            total_marks=exam.total_marks,
            passing_marks=exam.passing_marks,
            started_at=now,
        )

        # 5. one slot per exam question, in exam order
        answers = StudentAnswer.objects.bulk_create([
            StudentAnswer(attempt=attempt, question_id=question_id, position=position)
            for position, question_id in enumerate(question_ids)
        ])

        values = derive_metrics(
            answers, total_marks=attempt.total_marks, passing_marks=attempt.passing_marks
        ).as_update()
        for name, value in values.items():
            setattr(attempt, name, value)
        attempt.save(update_fields=list(values))

        return attempt, True

    # -------------------------------------------------
    # answer
    # -------------------------------------------------
    @staticmethod
    def record_answer(
        *,
        attempt_id: int,
        caller,
        question_id: int,
        selected_answer: Any = None,
        time_spent_seconds: Optional[int] = 0,
        is_marked_for_review: bool = False,
    ) -> StudentAnswer:
        with transaction.atomic():
            attempt = _lock_attempt(attempt_id)
            _ensure_owner(attempt, caller)

            if attempt.status != Status.IN_PROGRESS:
                raise AttemptNotInProgress()

            slot = attempt.answers.filter(question_id=question_id).first()
            if slot is None:
                raise QuestionNotInAttempt()

            question = Question.objects.prefetch_related("options").get(pk=slot.question_id)
            verdict = validate_answer(
                QuestionSpec.from_question(question),
                selected_answer,
                allow_option_text=engine_setting("ALLOW_OPTION_TEXT_ANSWERS", True),
            )

            # None withdraws the answer; the slot counts as unanswered again
            slot.selected_answer = selected_answer
            slot.is_answered = selected_answer is not None
            slot.is_correct = verdict.is_correct
            slot.marks_obtained = verdict.marks_delta
            slot.time_spent_seconds = max(0, int(time_spent_seconds or 0))
            slot.is_marked_for_review = bool(is_marked_for_review)
            slot.save(update_fields=[
                "selected_answer",
                "is_answered",
                "is_correct",
                "marks_obtained",
                "time_spent_seconds",
                "is_marked_for_review",
            ])

            if not _apply_metrics(attempt, Status.IN_PROGRESS):
                # only reachable on backends without row locks; rolls the slot back
                raise AttemptNotInProgress()

        return slot

    # -------------------------------------------------
    # finalize
    # -------------------------------------------------
    @staticmethod
    def finalize(*, attempt_id: int, caller, reason: str) -> ExamAttempt:
        attempt, _ = AttemptService._finalize(attempt_id=attempt_id, caller=caller, reason=reason)
        return attempt

    @staticmethod
    def _finalize(*, attempt_id: int, caller, reason: str) -> Tuple[ExamAttempt, bool]:
        if reason not in ExamAttempt.FINALIZED_STATUSES:
            raise ValidationError({"reason": f"Unsupported finalize reason: {reason!r}"})

        with transaction.atomic():
            attempt = _lock_attempt(attempt_id)
            _ensure_owner(attempt, caller)

            if attempt.is_terminal:
                return attempt, False
            if attempt.status != Status.IN_PROGRESS:
                raise AttemptNotInProgress()

            now = timezone.now()
            minutes = _minutes_between(attempt.started_at, now)

            won = (
                ExamAttempt.objects
                .filter(pk=attempt.pk, status=Status.IN_PROGRESS)
                .update(status=reason, submitted_at=now, time_spent_minutes=minutes, updated_at=now)
            )
            if not won:
                attempt.refresh_from_db()
                return attempt, False

            attempt.status = reason
            attempt.submitted_at = now
            attempt.time_spent_minutes = minutes
            _apply_metrics(attempt, reason)

            if attempt.exam.show_results_immediately:
                transaction.on_commit(lambda: notify_result_ready(attempt))

        logger.info(
            "attempt finalized attempt=%s exam=%s student=%s status=%s obtained=%s/%s",
            attempt.pk, attempt.exam_id, attempt.student_id, attempt.status,
            attempt.obtained_marks, attempt.total_marks,
        )
        return attempt, True

    @staticmethod
    def overdue_attempts(*, now=None) -> List[ExamAttempt]:
        now = now or timezone.now()
        grace = timedelta(seconds=int(engine_setting("AUTO_SUBMIT_GRACE_SECONDS", 0)))

        candidates = (
            ExamAttempt.objects
            .filter(status=Status.IN_PROGRESS)
            .select_related("exam")
            .order_by("started_at", "id")
        )
        return [c for c in candidates if c.deadline + grace <= now]

    @staticmethod
    def auto_submit_overdue(*, now=None) -> List[ExamAttempt]:
        """Finalize every open attempt whose time is up; returns the ones this call closed."""
        closed = []
        for candidate in AttemptService.overdue_attempts(now=now):
            attempt, transitioned = AttemptService._finalize(
                attempt_id=candidate.pk, caller=None, reason=Status.AUTO_SUBMITTED
            )
            if transitioned:
                closed.append(attempt)
        return closed

    # -------------------------------------------------
    # read
    # -------------------------------------------------
    @staticmethod
    def get_attempt(*, attempt_id: int, caller) -> ExamAttempt:
        attempt = ExamAttempt.objects.select_related("exam").filter(pk=attempt_id).first()
        if attempt is None:
            raise AttemptNotFound()
        if caller is not None and attempt.student_id != caller.pk and not caller.is_privileged:
            raise AttemptNotOwnedByCaller()
        return attempt

    @staticmethod
    def list_attempts(
        *,
        caller,
        student_id: Optional[int] = None,
        exam_id: Optional[int] = None,
        status: Optional[str] = None,
        ordering: Optional[str] = None,
    ):
        """
        Attempts visible to ``caller``, newest first unless ``ordering`` names
        one of ``LIST_ORDERINGS``. Students may only list their own; listing a
        whole exam needs a teacher or admin.
        """
        privileged = caller.is_privileged
        if student_id is None and exam_id is not None and not privileged:
            raise PermissionDenied("Only teachers and admins can list an exam's attempts.")
        if student_id is not None and student_id != caller.pk and not privileged:
            raise PermissionDenied("Access denied")
        if student_id is None and exam_id is None:
            student_id = caller.pk

        qs = ExamAttempt.objects.select_related("exam", "student")
        if student_id is not None:
            qs = qs.filter(student_id=student_id)
        if exam_id is not None:
            qs = qs.filter(exam_id=exam_id)
        if status:
            if status not in Status.values:
                raise ValidationError({"status": f"Unknown attempt status: {status!r}"})
            qs = qs.filter(status=status)

        if ordering and ordering not in LIST_ORDERINGS:
            raise ValidationError({"ordering": f"Cannot order by {ordering!r}"})
        return qs.order_by(ordering or "-started_at", "-id")

    # -------------------------------------------------
    # proctoring
    # -------------------------------------------------
    @staticmethod
    def record_proctoring_event(
        *,
        attempt_id: int,
        caller,
        event: str,
        description: str = "",
    ) -> ExamAttempt:
        if event not in PROCTORING_EVENTS:
            raise ValidationError({"event": f"Unknown proctoring event: {event!r}"})

        with transaction.atomic():
            attempt = _lock_attempt(attempt_id)
            _ensure_owner(attempt, caller)
            if attempt.status != Status.IN_PROGRESS:
                raise AttemptNotInProgress()

            now = timezone.now()
            values = {
                "incident_log": list(attempt.incident_log or []) + [{
                    "type": event,
                    "description": description or "",
                    "timestamp": now.isoformat(),
                }],
                "updated_at": now,
            }
            if event == TAB_SWITCH:
                values["tab_switches"] = F("tab_switches") + 1
            elif event == FULLSCREEN_EXIT:
                values["fullscreen_exits"] = F("fullscreen_exits") + 1

            ExamAttempt.objects.filter(pk=attempt.pk, status=Status.IN_PROGRESS).update(**values)
            attempt.refresh_from_db()

        return attempt

    # -------------------------------------------------
    # review
    # -------------------------------------------------
    @staticmethod
    def review(
        *,
        attempt_id: int,
        reviewer,
        review_comments: str = "",
        is_disqualified: bool = False,
        disqualification_reason: str = "",
    ) -> ExamAttempt:
        """
        Mark an attempt reviewed, disqualifying it on request or when the
        exam's proctoring violation limit was exceeded. A disqualified attempt
        that is still open is abandoned; a finalized one keeps its status.
        """
        if reviewer is None or not reviewer.is_privileged:
            raise PermissionDenied("Only teachers and admins can review attempts.")

        with transaction.atomic():
            attempt = _lock_attempt(attempt_id)
            exam = attempt.exam
            now = timezone.now()

            over_limit = (
                exam.proctoring_enabled
                and attempt.proctoring_violations > exam.max_proctoring_violations
            )

            attempt.is_reviewed = True
            attempt.reviewed_by = reviewer
            attempt.reviewed_at = now
            attempt.review_comments = review_comments or ""
            fields = ["is_reviewed", "reviewed_by", "reviewed_at", "review_comments", "updated_at"]

            if is_disqualified or over_limit:
                if not disqualification_reason and over_limit:
                    disqualification_reason = (
                        f"Proctoring violations ({attempt.proctoring_violations}) "
                        f"exceeded the limit of {exam.max_proctoring_violations}."
                    )
                attempt.is_disqualified = True
                attempt.disqualification_reason = disqualification_reason or ""
                fields += ["is_disqualified", "disqualification_reason"]

                if attempt.status == Status.IN_PROGRESS:
                    minutes = _minutes_between(attempt.started_at, now)
                    abandoned = (
                        ExamAttempt.objects
                        .filter(pk=attempt.pk, status=Status.IN_PROGRESS)
                        .update(status=Status.ABANDONED, submitted_at=now, time_spent_minutes=minutes)
                    )
                    if abandoned:
                        attempt.status = Status.ABANDONED
                        attempt.submitted_at = now
                        attempt.time_spent_minutes = minutes

            attempt.save(update_fields=fields)

        logger.info(
            "attempt reviewed attempt=%s reviewer=%s disqualified=%s status=%s",
            attempt.pk, reviewer.pk, attempt.is_disqualified, attempt.status,
        )
        return attempt
