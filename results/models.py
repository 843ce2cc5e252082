from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from exams.models import Exam, Question

class ExamAttempt(models.Model):
    """
    One student's one attempt at one exam.

    Marks are snapshotted from the exam at start, so later edits to the exam
    never change an attempt. Attempts are never deleted; a finalized attempt
    is frozen and only its review block may still change.
    """

    class Status(models.TextChoices):
        IN_PROGRESS = "in-progress", "In Progress"
        SUBMITTED = "submitted", "Submitted"
        AUTO_SUBMITTED = "auto-submitted", "Auto Submitted"
        ABANDONED = "abandoned", "Abandoned"

    class Grade(models.TextChoices):
        A_PLUS = "A+", "A+"
        A = "A", "A"
        B_PLUS = "B+", "B+"
        B = "B", "B"
        C_PLUS = "C+", "C+"
        C = "C", "C"
        D = "D", "D"
        F = "F", "F"

    # Counted against the exam's allowed attempts
    FINALIZED_STATUSES = (Status.SUBMITTED, Status.AUTO_SUBMITTED)
    TERMINAL_STATUSES = (Status.SUBMITTED, Status.AUTO_SUBMITTED, Status.ABANDONED)

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='attempts')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    attempt_number = models.PositiveIntegerField(help_text="Starts at 1")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)

    total_marks = models.FloatField()
    passing_marks = models.FloatField()
    obtained_marks = models.FloatField(default=0.0)
    percentage = models.FloatField(default=0.0)
    grade = models.CharField(max_length=2, choices=Grade.choices, default=Grade.F)
    is_passed = models.BooleanField(default=False)

    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    time_spent_minutes = models.PositiveIntegerField(default=0)

    analytics = models.JSONField(default=dict, blank=True)

    # Proctoring counters, accumulated while the attempt is open
    tab_switches = models.PositiveIntegerField(default=0)
    fullscreen_exits = models.PositiveIntegerField(default=0)
    incident_log = models.JSONField(default=list, blank=True)

    is_reviewed = models.BooleanField(default=False)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_comments = models.TextField(blank=True)
    is_disqualified = models.BooleanField(default=False)
    disqualification_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-started_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student', 'attempt_number'],
                name='unique_attempt_number_per_student',
            ),
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=Q(status='in-progress'),
                name='one_in_progress_attempt_per_student',
            ),
        ]
        indexes = [
            models.Index(fields=['exam', 'status'], name='results_attempt_exam_status'),
            models.Index(fields=['student', 'status'], name='results_attempt_student_status'),
            models.Index(fields=['submitted_at'], name='results_attempt_submitted_at'),
        ]

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def deadline(self):
        return self.exam.deadline_for(self.started_at)

    @property
    def proctoring_violations(self):
        return self.tab_switches + self.fullscreen_exits

    def __str__(self):
        return f"{self.student} - {self.exam} #{self.attempt_number}"

class StudentAnswer(models.Model):
    """Answer slot for one question; created with the attempt, overwritten on re-answer."""
    attempt = models.ForeignKey(ExamAttempt, on_delete=models.CASCADE, related_name='answers')
    question = models.ForeignKey(Question, on_delete=models.CASCADE)
    position = models.PositiveIntegerField()

    selected_answer = models.JSONField(null=True, blank=True)
    is_answered = models.BooleanField(default=False)
    is_correct = models.BooleanField(default=False)
    marks_obtained = models.FloatField(default=0.0)
    time_spent_seconds = models.PositiveIntegerField(default=0)
    is_marked_for_review = models.BooleanField(default=False)

    class Meta:
        ordering = ['position']
        unique_together = ('attempt', 'question')
