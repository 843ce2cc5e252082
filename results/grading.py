"""
Answer validation: (question spec, submitted value) -> (is_correct, marks delta).

Pure functions, no database access. ``QuestionSpec.from_question`` is the only
place that touches the ORM, and only to copy an already-loaded question.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from exams.models import Question

logger = logging.getLogger(__name__)

QType = Question.Type


@dataclass(frozen=True)
class OptionSpec:
    id: int
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionSpec:
    id: int
    question_type: str
    marks: float
    negative_marks: float = 0.0
    correct_answer: Any = None
    options: Tuple[OptionSpec, ...] = field(default_factory=tuple)

    @classmethod
    def from_question(cls, question: Question) -> "QuestionSpec":
        return cls(
            id=question.id,
            question_type=question.question_type,
            marks=float(question.marks),
            negative_marks=float(question.negative_marks or 0),
            correct_answer=question.correct_answer,
            options=tuple(
                OptionSpec(id=o.id, text=o.text, is_correct=o.is_correct)
                for o in question.options.all()
            ),
        )


@dataclass(frozen=True)
class Verdict:
    is_correct: bool
    marks_delta: float


def _check_multiple_choice(spec: QuestionSpec, submitted: Any, allow_option_text: bool) -> bool:
    correct = next((o for o in spec.options if o.is_correct), None)
    if correct is None:
        return False

    # Option ids are ints; bool is an int subclass and never an id
    if isinstance(submitted, int) and not isinstance(submitted, bool):
        selected = next((o for o in spec.options if o.id == submitted), None)
        return bool(selected and selected.is_correct)

    if isinstance(submitted, str):
        if not allow_option_text:
            return False
        logger.warning(
            "question %s answered by option text; submit the option id instead", spec.id
        )
        return submitted == correct.text

    return False


def _check_true_false(spec: QuestionSpec, submitted: Any) -> bool:
    # No case folding and no "true" == True coercion
    return type(submitted) is type(spec.correct_answer) and submitted == spec.correct_answer


def _check_fill_in_blank(spec: QuestionSpec, submitted: Any) -> bool:
    if spec.correct_answer is None:
        return False
    given = str(submitted).strip().lower()
    if given == "":
        return False
    return given == str(spec.correct_answer).strip().lower()


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _check_structural(spec: QuestionSpec, submitted: Any) -> bool:
    try:
        return _canonical(submitted) == _canonical(spec.correct_answer)
    except (TypeError, ValueError):
        return False


def marks_for(spec: QuestionSpec, is_correct: bool) -> float:
    if is_correct:
        return float(spec.marks)
    if spec.negative_marks > 0:
        return -float(spec.negative_marks)
    return 0.0


def validate_answer(
    spec: QuestionSpec,
    submitted: Any,
    *,
    allow_option_text: Optional[bool] = True,
) -> Verdict:
    if submitted is None:
        return Verdict(is_correct=False, marks_delta=0.0)

    qtype = spec.question_type

    if qtype == QType.ESSAY:
        # graded by hand, never automatically
        return Verdict(is_correct=False, marks_delta=0.0)

    if qtype == QType.MULTIPLE_CHOICE:
        is_correct = _check_multiple_choice(spec, submitted, bool(allow_option_text))
    elif qtype == QType.TRUE_FALSE:
        is_correct = _check_true_false(spec, submitted)
    elif qtype == QType.FILL_IN_BLANK:
        is_correct = _check_fill_in_blank(spec, submitted)
    else:
        is_correct = _check_structural(spec, submitted)

    return Verdict(is_correct=is_correct, marks_delta=marks_for(spec, is_correct))
