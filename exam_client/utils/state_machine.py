import logging
from typing import Dict, Set

from exam_client.models.session_state import Phase

logger = logging.getLogger(__name__)


class PhaseMachine:
    """State machine for the exam-taking phase"""

    def __init__(self):
        self.current = Phase.IDLE
        self._transitions: Dict[Phase, Set[Phase]] = {
            Phase.IDLE: {Phase.LOADING},
            Phase.LOADING: {Phase.IN_PROGRESS, Phase.LOAD_ERROR, Phase.EMPTY_QUESTIONS},
            Phase.IN_PROGRESS: {Phase.SUBMITTING},
            Phase.SUBMITTING: {Phase.SUBMITTED, Phase.SUBMIT_ERROR},
            Phase.SUBMIT_ERROR: {Phase.SUBMITTING},
            # explicit reload only
            Phase.LOAD_ERROR: {Phase.LOADING},
            Phase.EMPTY_QUESTIONS: {Phase.LOADING},
        }

    def can_transition(self, target: Phase) -> bool:
        """Check if transition to target phase is allowed"""
        allowed = self._transitions.get(self.current, set())
        return target in allowed

    def transition(self, target: Phase) -> bool:
        """Attempt to transition to target phase"""
        if self.can_transition(target):
            logger.info(f"phase: {self.current.value} -> {target.value}")
            self.current = target
            return True
        logger.warning(f"허용되지 않은 전이 무시: {self.current.value} -> {target.value}")
        return False

    def is_terminal(self) -> bool:
        return self.current in (Phase.SUBMITTED, Phase.EMPTY_QUESTIONS, Phase.LOAD_ERROR)
