from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from academics.models import Course

class Question(models.Model):
    class Type(models.TextChoices):
        MULTIPLE_CHOICE = "multiple-choice", "Multiple Choice"
        TRUE_FALSE = "true-false", "True/False"
        FILL_IN_BLANK = "fill-in-blank", "Fill in the Blank"
        ESSAY = "essay", "Essay"
        MATCHING = "matching", "Matching"
        ORDERING = "ordering", "Ordering"

    class Difficulty(models.TextChoices):
        EASY = "easy", "Easy"
        MEDIUM = "medium", "Medium"
        HARD = "hard", "Hard"

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='questions')
    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=Type.choices, default=Type.MULTIPLE_CHOICE)
    # Type-dependent: "true"/"false", blank text, a list for ordering, a mapping for matching
    correct_answer = models.JSONField(null=True, blank=True)
    marks = models.FloatField(default=1, validators=[MinValueValidator(0.5)])
    negative_marks = models.FloatField(default=0, validators=[MinValueValidator(0)])
    difficulty = models.CharField(max_length=10, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def clean(self):
        if self.negative_marks > self.marks:
            raise ValidationError({'negative_marks': 'Negative marks cannot exceed marks.'})

    def __str__(self):
        return f"{self.text[:50]}..."

class QuestionOption(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='options')
    text = models.CharField(max_length=500)
    is_correct = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.text

class Exam(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        ARCHIVED = "archived", "Archived"

    name = models.CharField(max_length=200)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='exams')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)

    duration_minutes = models.PositiveIntegerField()
    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField()

    allowed_attempts = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    total_marks = models.FloatField()
    passing_marks = models.FloatField(default=0)

    negative_marking_enabled = models.BooleanField(default=False)
    negative_marking_percentage = models.FloatField(default=0.25) # e.g. 0.25 of the question marks

    show_correct_answers = models.BooleanField(default=True)
    show_results_immediately = models.BooleanField(default=True)

    proctoring_enabled = models.BooleanField(default=False)
    max_proctoring_violations = models.PositiveIntegerField(default=3)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    is_active = models.BooleanField(default=True)

    questions = models.ManyToManyField(Question, through='ExamQuestion')

    def clean(self):
        if self.passing_marks is not None and self.total_marks is not None and self.passing_marks > self.total_marks:
            raise ValidationError({'passing_marks': 'Passing marks cannot exceed total marks.'})
        if self.start_datetime and self.end_datetime and self.end_datetime <= self.start_datetime:
            raise ValidationError({'end_datetime': 'End date must be after start date.'})

    def is_available(self, now=None):
        now = now or timezone.now()
        return (
            self.status == self.Status.PUBLISHED
            and self.is_active
            and self.start_datetime <= now <= self.end_datetime
        )

    def deadline_for(self, started_at):
        """An attempt ends after its duration or when the exam window closes, whichever is first."""
        return min(started_at + timedelta(minutes=self.duration_minutes), self.end_datetime)

    def ordered_question_ids(self):
        return list(
            ExamQuestion.objects.filter(exam=self)
            .order_by('order', 'id')
            .values_list('question_id', flat=True)
        )

    @property
    def subject(self):
        return self.course.name

    def __str__(self):
        return self.name

class ExamQuestion(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order']
        unique_together = ('exam', 'question')
