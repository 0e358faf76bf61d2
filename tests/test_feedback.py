from formtrack.feedback import NO_FEEDBACK, FormFeedback, synthesize_feedback
from formtrack.pose_analyzer import (
    REASON_HANDS_ON_FLOOR,
    REASON_RAISE_HANDS,
    REASON_STAND_UP,
    AnalysisResult,
    HandsCheck,
)


def test_valid_result_is_correct_without_reason():
    result = AnalysisResult(True, reason="ignored")
    assert synthesize_feedback(result) == FormFeedback("Correct", "", "correct")


def test_invalid_result_carries_reason():
    feedback = synthesize_feedback(AnalysisResult(False, REASON_STAND_UP))
    assert feedback == FormFeedback("Incorrect", REASON_STAND_UP, "incorrect")


def test_missing_result_clears_feedback():
    assert synthesize_feedback(None) == NO_FEEDBACK
    assert NO_FEEDBACK == FormFeedback("", "", "")


def test_hands_check_feedback():
    on_floor = synthesize_feedback(HandsCheck(True, REASON_HANDS_ON_FLOOR))
    assert on_floor == FormFeedback("Hands on floor ✓", REASON_HANDS_ON_FLOOR, "correct")

    raised = synthesize_feedback(HandsCheck(False, REASON_RAISE_HANDS))
    assert raised == FormFeedback("Hands not on floor", REASON_RAISE_HANDS, "incorrect")
