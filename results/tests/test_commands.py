from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from results.models import ExamAttempt
from results.services.attempt_service import AttemptService
from results.tests.mixins import ExamFixtureMixin

class AutoSubmitCommandTests(ExamFixtureMixin, TestCase):
    def setUp(self):
        self.create_users()
        self.create_exam()
        self.attempt, _ = AttemptService.start_attempt(exam_id=self.exam.id, student=self.student)
        ExamAttempt.objects.filter(pk=self.attempt.pk).update(started_at=timezone.now() - timedelta(hours=2))

    def test_command_submits_overdue_attempts(self):
        out = StringIO()
        call_command('autosubmit_expired_attempts', stdout=out)

        self.assertIn("Auto-submitted 1 attempt(s)", out.getvalue())
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, ExamAttempt.Status.AUTO_SUBMITTED)

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('autosubmit_expired_attempts', '--dry-run', stdout=out)

        self.assertIn(f"attempt {self.attempt.pk}", out.getvalue())
        self.assertIn("1 overdue attempt(s)", out.getvalue())
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, ExamAttempt.Status.IN_PROGRESS)
