from django.urls import path
from .models import ExamAttempt
from .views import (
    StartAttemptView, AttemptDetailView, RecordAnswerView, FinalizeAttemptView,
    ProctoringEventView, ReviewAttemptView, ExamStatisticsView, StudentStatisticsView,
    QuestionStatisticsView, SubjectPerformanceView, LeaderboardView, TrendsView,
    AttemptListView, StudentProgressView, QuestionDifficultyView,
)

urlpatterns = [
    # Attempt lifecycle
    path('exams/<int:exam_id>/start/', StartAttemptView.as_view(), name='start-attempt'),
    path('attempts/', AttemptListView.as_view(), name='my-attempts'),
    path('attempts/<int:attempt_id>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<int:attempt_id>/answer/', RecordAnswerView.as_view(), name='record-answer'),
    path('attempts/<int:attempt_id>/submit/',
         FinalizeAttemptView.as_view(reason=ExamAttempt.Status.SUBMITTED), name='submit-attempt'),
    path('attempts/<int:attempt_id>/auto-submit/',
         FinalizeAttemptView.as_view(reason=ExamAttempt.Status.AUTO_SUBMITTED), name='auto-submit-attempt'),
    path('attempts/<int:attempt_id>/proctoring/', ProctoringEventView.as_view(), name='proctoring-event'),
    path('attempts/<int:attempt_id>/review/', ReviewAttemptView.as_view(), name='review-attempt'),

    # Listings
    path('exams/<int:exam_id>/attempts/', AttemptListView.as_view(), name='exam-attempts'),
    path('students/<int:student_id>/attempts/', AttemptListView.as_view(), name='student-attempts'),

    # Analytics
    path('exams/<int:exam_id>/statistics/', ExamStatisticsView.as_view(), name='exam-statistics'),
    path('students/<int:student_id>/statistics/', StudentStatisticsView.as_view(), name='student-statistics'),
    path('questions/<int:question_id>/statistics/', QuestionStatisticsView.as_view(), name='question-statistics'),
    path('subjects/', SubjectPerformanceView.as_view(), name='subject-performance'),
    path('leaderboard/', LeaderboardView.as_view(), name='leaderboard'),
    path('trends/', TrendsView.as_view(), name='trends'),
    path('students/<int:student_id>/progress/', StudentProgressView.as_view(), name='student-progress'),
    path('questions/difficulty/', QuestionDifficultyView.as_view(), name='question-difficulty'),
]
