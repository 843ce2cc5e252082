from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status, views
from rest_framework.exceptions import PermissionDenied
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from exams.models import Exam
from .permissions import IsTeacherOrAdmin
from .serializers import (
    ExamAttemptSerializer, ExamAttemptSummarySerializer, StudentAnswerSerializer, RecordAnswerSerializer,
    ProctoringEventSerializer, ReviewSerializer,
)
from .services import statistics
from .services.attempt_service import AttemptService

User = get_user_model()


def _attempt_response(attempt, user, status_code=status.HTTP_200_OK):
    context = ExamAttemptSerializer.visibility_for(attempt, user)
    return Response(ExamAttemptSerializer(attempt, context=context).data, status=status_code)

# --- Attempt lifecycle ---

class StartAttemptView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, exam_id):
        attempt, created = AttemptService.start_attempt(exam_id=exam_id, student=request.user)
        return _attempt_response(
            attempt, request.user, status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )

class AttemptDetailView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, attempt_id):
        attempt = AttemptService.get_attempt(attempt_id=attempt_id, caller=request.user)
        return _attempt_response(attempt, request.user)

class RecordAnswerView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, attempt_id):
        # Expects: { "question_id": 5, "selected_answer": 12, "time_spent_seconds": 40, "is_marked_for_review": false }
        serializer = RecordAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        answer = AttemptService.record_answer(
            attempt_id=attempt_id, caller=request.user, **serializer.validated_data
        )
        attempt = answer.attempt
        context = ExamAttemptSerializer.visibility_for(attempt, request.user)
        return Response({
            "answer": StudentAnswerSerializer(answer, context=context).data,
            "attempt": ExamAttemptSerializer(attempt, context=context).data,
        })

    post = put

class FinalizeAttemptView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    reason = None

    def post(self, request, attempt_id):
        # A second submit, or a submit racing the timeout, gets the stored result back
        attempt = AttemptService.finalize(attempt_id=attempt_id, caller=request.user, reason=self.reason)
        return _attempt_response(attempt, request.user)

class ProctoringEventView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, attempt_id):
        serializer = ProctoringEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attempt = AttemptService.record_proctoring_event(
            attempt_id=attempt_id, caller=request.user, **serializer.validated_data
        )
        return Response({
            "tab_switches": attempt.tab_switches,
            "fullscreen_exits": attempt.fullscreen_exits,
        })

class ReviewAttemptView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def put(self, request, attempt_id):
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attempt = AttemptService.review(
            attempt_id=attempt_id, reviewer=request.user, **serializer.validated_data
        )
        return _attempt_response(attempt, request.user)

# --- Result listings ---

class ResultsPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = "page_size"
    max_page_size = 100

class AttemptListView(generics.ListAPIView):
    """
    GET attempts/                       -> the caller's own attempts
    GET exams/<exam_id>/attempts/       -> every attempt at an exam (teachers, admins)
    GET students/<student_id>/attempts/ -> one student's attempts (self, teachers, admins)
    Query params: exam_id, status, ordering.
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExamAttemptSummarySerializer
    pagination_class = ResultsPagination

    def get_queryset(self):
        params = self.request.query_params
        student_id = self.kwargs.get('student_id')
        exam_id = self.kwargs.get('exam_id')
        if not self.kwargs:
            student_id = self.request.user.id
        if exam_id is None and (params.get('exam_id') or '').isdigit():
            exam_id = int(params['exam_id'])
        if 'exam_id' in self.kwargs:
            get_object_or_404(Exam, id=exam_id)
        return AttemptService.list_attempts(
            caller=self.request.user,
            student_id=student_id,
            exam_id=exam_id,
            status=params.get('status') or None,
            ordering=params.get('ordering') or None,
        )

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['viewer'] = self.request.user
        return context

# --- Analytics ---

class ExamStatisticsView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request, exam_id):
        exam = get_object_or_404(Exam, id=exam_id)
        return Response({"exam_id": exam.id, "analytics": statistics.exam_statistics(exam.id)})

class StudentStatisticsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, student_id):
        if not request.user.is_privileged and request.user.id != student_id:
            raise PermissionDenied("Access denied")
        student = get_object_or_404(User, id=student_id)
        return Response({"student_id": student.id, "analytics": statistics.student_statistics(student.id)})

class QuestionStatisticsView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request, question_id):
        return Response({"analytics": statistics.question_statistics(question_id)})

class SubjectPerformanceView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request):
        return Response({"subjects": statistics.subject_performance()})

class LeaderboardView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        params = request.query_params
        limit = params.get('limit')
        exam_id = params.get('exam_id')
        rows = statistics.leaderboard(
            exam_id=int(exam_id) if exam_id and exam_id.isdigit() else None,
            subject=params.get('subject') or None,
            timeframe=params.get('timeframe') or None,
            limit=int(limit) if limit and limit.isdigit() else None,
        )
        return Response({"leaderboard": rows})

class TrendsView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request):
        return Response({"trends": statistics.performance_trends(request.query_params.get('timeframe'))})

class StudentProgressView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, student_id):
        if not request.user.is_privileged and request.user.id != student_id:
            raise PermissionDenied("Access denied")
        progress = statistics.student_progress(student_id, request.query_params.get('timeframe'))
        return Response({"student_id": student_id, "progress": progress})

class QuestionDifficultyView(views.APIView):
    permission_classes = [IsTeacherOrAdmin]

    def get(self, request):
        return Response({"analysis": statistics.question_difficulty_analysis()})
