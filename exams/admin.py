from django.contrib import admin
from django.db.models import Sum
from .models import Question, QuestionOption, Exam, ExamQuestion

class QuestionOptionInline(admin.TabularInline):
    model = QuestionOption
    extra = 0
    fields = ('order', 'text', 'is_correct')

@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('short_text', 'course', 'question_type', 'difficulty', 'marks', 'negative_marks', 'is_active')
    list_filter = ('question_type', 'difficulty', 'course', 'is_active')
    search_fields = ('text', 'course__code')
    inlines = [QuestionOptionInline]

    @admin.display(description='Question')
    def short_text(self, obj):
        return obj.text if len(obj.text) <= 60 else obj.text[:57] + "..."

class ExamQuestionInline(admin.TabularInline):
    model = ExamQuestion
    extra = 0
    autocomplete_fields = ('question',)

@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('name', 'course', 'status', 'start_datetime', 'end_datetime',
                    'allowed_attempts', 'total_marks', 'question_marks')
    list_filter = ('status', 'course', 'proctoring_enabled', 'is_active')
    search_fields = ('name', 'course__name')
    fieldsets = (
        (None, {'fields': ('name', 'course', 'status', 'is_active', 'created_by')}),
        ('Schedule', {'fields': ('start_datetime', 'end_datetime', 'duration_minutes', 'allowed_attempts')}),
        ('Marking', {'fields': ('total_marks', 'passing_marks', 'negative_marking_enabled', 'negative_marking_percentage')}),
        ('Results', {'fields': ('show_results_immediately', 'show_correct_answers')}),
        ('Proctoring', {'fields': ('proctoring_enabled', 'max_proctoring_violations')}),
    )
    inlines = [ExamQuestionInline]

    @admin.display(description='Sum of question marks')
    def question_marks(self, obj):
        # differs from total_marks when the question list was edited without updating the exam
        return obj.questions.aggregate(total=Sum('marks'))['total'] or 0
