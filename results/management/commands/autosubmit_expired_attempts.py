from django.core.management.base import BaseCommand
from results.services.attempt_service import AttemptService

class Command(BaseCommand):
    help = 'Auto-submits every in-progress attempt whose time has run out'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='List overdue attempts without closing them')

    def handle(self, *args, **options):
        if options['dry_run']:
            overdue = AttemptService.overdue_attempts()
            for attempt in overdue:
                self.stdout.write(f"attempt {attempt.pk} (exam {attempt.exam_id}, student {attempt.student_id}) is overdue")
            self.stdout.write(self.style.WARNING(f"{len(overdue)} overdue attempt(s), nothing submitted"))
            return

        closed = AttemptService.auto_submit_overdue()
        self.stdout.write(self.style.SUCCESS(f"Auto-submitted {len(closed)} attempt(s)"))
