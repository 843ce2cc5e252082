from django.utils import timezone
from rest_framework import serializers
from .models import ExamAttempt, StudentAnswer
from .services.attempt_service import PROCTORING_EVENTS

SCORE_FIELDS = ('obtained_marks', 'percentage', 'grade', 'is_passed', 'analytics')
CORRECTNESS_FIELDS = ('is_correct', 'marks_obtained')

class StudentAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentAnswer
        fields = [
            'question', 'position', 'selected_answer', 'is_answered', 'is_correct',
            'marks_obtained', 'time_spent_seconds', 'is_marked_for_review',
        ]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # per-answer marks add up to the withheld score
        if self.context.get('hide_correctness') or self.context.get('hide_scores'):
            for name in CORRECTNESS_FIELDS:
                data.pop(name, None)
        return data

class ExamAttemptSerializer(serializers.ModelSerializer):
    answers = StudentAnswerSerializer(many=True, read_only=True)
    exam_name = serializers.CharField(source='exam.name', read_only=True)
    student_name = serializers.CharField(source='student.display_name', read_only=True)
    remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = ExamAttempt
        fields = [
            'id', 'exam', 'exam_name', 'student', 'student_name', 'attempt_number', 'status',
            'total_marks', 'passing_marks', 'obtained_marks', 'percentage', 'grade', 'is_passed',
            'started_at', 'submitted_at', 'time_spent_minutes', 'remaining_seconds',
            'analytics', 'tab_switches', 'fullscreen_exits',
            'is_reviewed', 'is_disqualified', 'disqualification_reason',
            'answers',
        ]

    def get_remaining_seconds(self, obj):
        if obj.status != ExamAttempt.Status.IN_PROGRESS:
            return 0
        now = self.context.get('now')
        if now is None:
            now = timezone.now()
        return max(0, int((obj.deadline - now).total_seconds()))

    def to_representation(self, instance):
        data = super().to_representation(instance)
        hide_scores = self.context.get('hide_scores')
        viewer = self.context.get('viewer')
        if viewer is not None:
            # list pages mix exams, so visibility is decided per attempt
            hide_scores = self.visibility_for(instance, viewer)['hide_scores']
        if hide_scores:
            for name in SCORE_FIELDS:
                data.pop(name, None)
        return data

    @staticmethod
    def visibility_for(attempt, user):
        """
        Serializer context flags for what ``user`` may see of ``attempt``.

        Teachers and admins see everything. A student sees no scores while the
        attempt is open (a re-answer would otherwise reveal the right option),
        nor after it while results are held back and nobody has reviewed it.
        """
        if user is not None and user.is_privileged:
            return {'hide_scores': False, 'hide_correctness': False}
        exam = attempt.exam
        hide_scores = (
            attempt.status == ExamAttempt.Status.IN_PROGRESS
            or (not exam.show_results_immediately and not attempt.is_reviewed)
        )
        return {
            'hide_scores': hide_scores,
            'hide_correctness': hide_scores or not exam.show_correct_answers,
        }

class ExamAttemptSummarySerializer(ExamAttemptSerializer):
    """List rows: the attempt without its answer slots."""

    class Meta(ExamAttemptSerializer.Meta):
        fields = [name for name in ExamAttemptSerializer.Meta.fields if name != 'answers']

class RecordAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField(min_value=1)
    # null clears the slot back to unanswered
    selected_answer = serializers.JSONField(required=False, allow_null=True, default=None)
    time_spent_seconds = serializers.IntegerField(required=False, min_value=0, default=0)
    is_marked_for_review = serializers.BooleanField(required=False, default=False)

class ProctoringEventSerializer(serializers.Serializer):
    event = serializers.ChoiceField(choices=PROCTORING_EVENTS)
    description = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')

class ReviewSerializer(serializers.Serializer):
    review_comments = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')
    is_disqualified = serializers.BooleanField(required=False, default=False)
    disqualification_reason = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')
