from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from academics.models import Course
from exams.models import Exam, ExamQuestion, Question, QuestionOption
from results.metrics import grade_for
from results.models import ExamAttempt

User = get_user_model()

NOTIFIED = []


def collect_notification(attempt):
    NOTIFIED.append(attempt.pk)


def broken_notification(attempt):
    raise RuntimeError("mail server down")


class ExamFixtureMixin:
    """
    A published geography exam worth 10 marks (pass at 4):
    MCQ 4 (-1), true/false 2, fill-in-blank 2, essay 2.
    """

    def create_users(self):
        self.teacher = User.objects.create_user(
            username='teacher', email='teacher@test.com', password='password', role=User.Role.TEACHER
        )
        self.student = User.objects.create_user(
            username='student', email='student@test.com', password='password',
            role=User.Role.STUDENT, first_name='John', last_name='Doe'
        )
        self.student2 = User.objects.create_user(
            username='student2', email='student2@test.com', password='password', role=User.Role.STUDENT
        )

    def create_exam(self, **overrides):
        now = timezone.now()
        self.course = Course.objects.create(name="Geography", code="GEO101")

        self.q_mcq = Question.objects.create(
            course=self.course, text="Capital of France?", question_type=Question.Type.MULTIPLE_CHOICE,
            marks=4, negative_marks=1, created_by=self.teacher
        )
        self.opt_paris = QuestionOption.objects.create(question=self.q_mcq, text="Paris", is_correct=True, order=1)
        self.opt_london = QuestionOption.objects.create(question=self.q_mcq, text="London", order=2)

        self.q_tf = Question.objects.create(
            course=self.course, text="The Nile flows north.", question_type=Question.Type.TRUE_FALSE,
            marks=2, correct_answer=True, created_by=self.teacher
        )
        self.q_blank = Question.objects.create(
            course=self.course, text="The longest river in South America is the ____.",
            question_type=Question.Type.FILL_IN_BLANK, marks=2, correct_answer="Amazon", created_by=self.teacher
        )
        self.q_essay = Question.objects.create(
            course=self.course, text="Describe plate tectonics.", question_type=Question.Type.ESSAY,
            marks=2, created_by=self.teacher
        )

        fields = dict(
            name="Geography Midterm",
            course=self.course,
            created_by=self.teacher,
            duration_minutes=60,
            start_datetime=now - timedelta(days=1),
            end_datetime=now + timedelta(days=1),
            allowed_attempts=2,
            total_marks=10,
            passing_marks=4,
            status=Exam.Status.PUBLISHED,
        )
        fields.update(overrides)
        self.exam = Exam.objects.create(**fields)
        for order, question in enumerate([self.q_mcq, self.q_tf, self.q_blank, self.q_essay], start=1):
            ExamQuestion.objects.create(exam=self.exam, question=question, order=order)
        return self.exam

    def finalized_attempt(self, student, obtained, *, exam=None, number=1, minutes=30,
                          started_at=None, submitted_at=None, status=ExamAttempt.Status.SUBMITTED,
                          is_disqualified=False):
        exam = exam or self.exam
        now = timezone.now()
        percentage = obtained / exam.total_marks * 100
        return ExamAttempt.objects.create(
            exam=exam,
            student=student,
            attempt_number=number,
            status=status,
            total_marks=exam.total_marks,
            passing_marks=exam.passing_marks,
            obtained_marks=obtained,
            percentage=percentage,
            grade=grade_for(percentage),
            is_passed=obtained >= exam.passing_marks,
            started_at=started_at or now - timedelta(minutes=minutes),
            submitted_at=submitted_at or now,
            time_spent_minutes=minutes,
            is_disqualified=is_disqualified,
        )
