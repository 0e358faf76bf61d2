from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .pose_analyzer import AnalysisResult, HandsCheck


@dataclass(frozen=True)
class FormFeedback:
    status: str
    reason: str
    css_class: str


NO_FEEDBACK = FormFeedback("", "", "")


def synthesize_feedback(result: Optional[Union[AnalysisResult, HandsCheck]]) -> FormFeedback:
    if result is None:
        return NO_FEEDBACK
    if isinstance(result, HandsCheck):
        if result.hands_on_floor:
            return FormFeedback("Hands on floor ✓", result.reason, "correct")
        return FormFeedback("Hands not on floor", result.reason, "incorrect")
    if result.is_valid:
        return FormFeedback("Correct", "", "correct")
    return FormFeedback("Incorrect", result.reason, "incorrect")
