"""
Completeness gate for synthesized assessments
"""
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Sequence

from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_FIELD_LENGTH = 10


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    missing_fields: List[str] = field(default_factory=list)


def answers_of(assessment: Mapping[str, Any]) -> Mapping[str, Any]:
    """The per-question answer block of an assessment"""
    detailed = assessment.get("detailed_analysis")
    if isinstance(detailed, Mapping):
        answers = detailed.get("core_psychological_assessment")
        if isinstance(answers, Mapping):
            return answers
    return {}


class AssessmentValidator:
    """
    Checks that every required answer is present and non-trivial.

    A field is missing when absent, null, not a string, or shorter than
    ``min_length`` once trimmed. Content is not judged.
    """

    def __init__(self, min_length: int = DEFAULT_MIN_FIELD_LENGTH):
        self.min_length = min_length

    def validate(self, answers: Mapping[str, Any], required_fields: Sequence[str]) -> ValidationOutcome:
        missing = [
            name for name in required_fields
            if not self._is_present(answers.get(name))
        ]
        if missing:
            logger.warning(f"Assessment incomplete: {len(missing)}/{len(required_fields)} fields missing",
                           extra={"missing_fields": missing})
            return ValidationOutcome(valid=False, missing_fields=missing)
        return ValidationOutcome(valid=True)

    def validate_assessment(self, assessment: Mapping[str, Any], required_fields: Sequence[str]) -> ValidationOutcome:
        return self.validate(answers_of(assessment), required_fields)

    def _is_present(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        return len(value.strip()) >= self.min_length
