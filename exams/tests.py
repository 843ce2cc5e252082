from datetime import timedelta

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from academics.models import Course
from .models import Exam, ExamQuestion, Question

class ExamModelTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.course = Course.objects.create(name="Python Basics", code="CS101")
        self.exam = Exam.objects.create(
            name="Python Quiz",
            course=self.course,
            duration_minutes=30,
            start_datetime=self.now - timedelta(hours=1),
            end_datetime=self.now + timedelta(hours=1),
            total_marks=10,
            passing_marks=5,
            status=Exam.Status.PUBLISHED,
        )

    # --- Feature: Exam availability ---
    def test_published_exam_in_window_is_available(self):
        self.assertTrue(self.exam.is_available(self.now))

    def test_unavailable_outside_window_or_unpublished(self):
        """Test window bounds, draft status and deactivation"""
        self.assertFalse(self.exam.is_available(self.now + timedelta(hours=2)))
        self.assertFalse(self.exam.is_available(self.now - timedelta(hours=2)))

        self.exam.status = Exam.Status.DRAFT
        self.assertFalse(self.exam.is_available(self.now))

        self.exam.status = Exam.Status.PUBLISHED
        self.exam.is_active = False
        self.assertFalse(self.exam.is_available(self.now))

    # --- Feature: Attempt deadline ---
    def test_deadline_is_duration_or_window_end(self):
        self.assertEqual(self.exam.deadline_for(self.now), self.now + timedelta(minutes=30))
        late_start = self.now + timedelta(minutes=50)
        self.assertEqual(self.exam.deadline_for(late_start), self.exam.end_datetime)

    # --- Feature: Validation ---
    def test_passing_marks_cannot_exceed_total(self):
        self.exam.passing_marks = 11
        with self.assertRaises(ValidationError):
            self.exam.clean()

    def test_end_must_follow_start(self):
        self.exam.end_datetime = self.exam.start_datetime
        with self.assertRaises(ValidationError):
            self.exam.clean()

    def test_negative_marks_cannot_exceed_marks(self):
        question = Question(course=self.course, text="2+2?", marks=1, negative_marks=2)
        with self.assertRaises(ValidationError):
            question.clean()

    # --- Feature: Question order ---
    def test_questions_follow_exam_order(self):
        first = Question.objects.create(course=self.course, text="First", marks=1)
        second = Question.objects.create(course=self.course, text="Second", marks=1)
        ExamQuestion.objects.create(exam=self.exam, question=first, order=2)
        ExamQuestion.objects.create(exam=self.exam, question=second, order=1)

        self.assertEqual(self.exam.ordered_question_ids(), [second.id, first.id])
        self.assertEqual(self.exam.subject, "Python Basics")
