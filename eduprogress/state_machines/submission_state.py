"""
Submission State Machine

State Flow: draft → submitted → graded → returned

Extra edges:
- submitted → submitted   re-submission before grading
- graded → graded         explicit re-grade
- returned → submitted    student revises returned work
- returned → graded       re-grade of returned work

Content is frozen once graded: only a return hands it back for editing.
"""
from typing import Dict, List
import logging

from eduprogress.exceptions import InvalidStateTransitionError
from eduprogress.orm.submission import SubmissionStatus

logger = logging.getLogger(__name__)


class SubmissionStateMachine:
    """Pure transition rules for submissions. No I/O."""

    TRANSITIONS: Dict[SubmissionStatus, List[SubmissionStatus]] = {
        SubmissionStatus.DRAFT: [SubmissionStatus.SUBMITTED],
        SubmissionStatus.SUBMITTED: [SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED],
        SubmissionStatus.GRADED: [SubmissionStatus.GRADED, SubmissionStatus.RETURNED],
        SubmissionStatus.RETURNED: [SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED],
    }

    # First grade only; graded/returned work goes through re-grade
    GRADABLE_STATES = (SubmissionStatus.SUBMITTED,)
    REGRADABLE_STATES = (SubmissionStatus.GRADED, SubmissionStatus.RETURNED)
    EDITABLE_STATES = (SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED, SubmissionStatus.RETURNED)
    RETURNABLE_STATES = (SubmissionStatus.GRADED,)

    @classmethod
    def can_transition(cls, from_state: SubmissionStatus, to_state: SubmissionStatus) -> bool:
        return to_state in cls.TRANSITIONS.get(from_state, [])

    @classmethod
    def validate_transition(cls, from_state: SubmissionStatus, to_state: SubmissionStatus) -> None:
        if not cls.can_transition(from_state, to_state):
            logger.info(f"[SUBMISSION] Rejected transition {from_state.value} -> {to_state.value}")
            raise InvalidStateTransitionError(from_state.value, to_state.value)

    @classmethod
    def allowed_transitions(cls, from_state: SubmissionStatus) -> List[SubmissionStatus]:
        return list(cls.TRANSITIONS.get(from_state, []))

    @classmethod
    def is_editable(cls, state: SubmissionStatus) -> bool:
        return state in cls.EDITABLE_STATES
