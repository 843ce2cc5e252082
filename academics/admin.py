from django.contrib import admin
from django.db.models import Count
from .models import Course

@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'exam_count', 'question_count')
    search_fields = ('name', 'code')

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _exams=Count('exams', distinct=True),
            _questions=Count('questions', distinct=True),
        )

    @admin.display(ordering='_exams', description='Exams')
    def exam_count(self, obj):
        return obj._exams

    @admin.display(ordering='_questions', description='Questions')
    def question_count(self, obj):
        return obj._questions
