from django.contrib import admin, messages
from .models import ExamAttempt, StudentAnswer
from .services.attempt_service import AttemptService

class StudentAnswerInline(admin.TabularInline):
    model = StudentAnswer
    extra = 0
    can_delete = False
    readonly_fields = ('question', 'position', 'selected_answer', 'is_answered', 'is_correct',
                       'marks_obtained', 'time_spent_seconds', 'is_marked_for_review')

    def has_add_permission(self, request, obj=None):
        return False

@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'attempt_number', 'status', 'obtained_marks', 'percentage',
                    'grade', 'is_passed', 'is_disqualified', 'started_at', 'submitted_at')
    list_filter = ('status', 'grade', 'is_passed', 'is_disqualified', 'exam')
    search_fields = ('student__username', 'exam__name')
    inlines = [StudentAnswerInline]
    actions = ['disqualify_attempts']

    def get_readonly_fields(self, request, obj=None):
        # scores and status only change through AttemptService
        return [field.name for field in self.model._meta.concrete_fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # attempts are kept for audit and analytics
        return False

    @admin.action(description='Disqualify selected attempts')
    def disqualify_attempts(self, request, queryset):
        count = 0
        for attempt_id in queryset.values_list('id', flat=True):
            AttemptService.review(
                attempt_id=attempt_id,
                reviewer=request.user,
                is_disqualified=True,
                disqualification_reason=f"Disqualified by {request.user.display_name} from the admin.",
            )
            count += 1
        self.message_user(request, f"Disqualified {count} attempt(s).", messages.SUCCESS)
