from rest_framework import status
from rest_framework.exceptions import APIException


class ExamNotAvailable(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Exam is not currently available."
    default_code = "exam_not_available"


class ExamNotFound(ExamNotAvailable):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Exam not found."
    default_code = "exam_not_found"


class AttemptLimitExceeded(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Maximum attempts reached for this exam."
    default_code = "attempt_limit_exceeded"


class AttemptStartConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Could not start the attempt, please retry."
    default_code = "attempt_start_conflict"


class AttemptNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Attempt not found."
    default_code = "attempt_not_found"


class AttemptNotOwnedByCaller(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized to access this attempt."
    default_code = "not_owner"


class AttemptNotInProgress(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Exam is not in progress."
    default_code = "attempt_not_in_progress"


class QuestionNotInAttempt(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Question not found in this exam."
    default_code = "question_not_in_attempt"
