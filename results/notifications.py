import logging

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

DEFAULT_NOTIFIER = "results.notifications.log_result_ready"


def log_result_ready(attempt):
    logger.info(
        "result ready: attempt=%s exam=%s student=%s status=%s percentage=%.2f",
        attempt.pk, attempt.exam_id, attempt.student_id, attempt.status, attempt.percentage,
    )


def get_result_notifier():
    return import_string(getattr(settings, "EXAM_RESULT_NOTIFIER", DEFAULT_NOTIFIER))


def notify_result_ready(attempt):
    """Fire-and-forget: a failing sink is logged and never reaches the caller."""
    try:
        get_result_notifier()(attempt)
    except Exception:
        logger.exception("result notification failed for attempt %s", attempt.pk)
