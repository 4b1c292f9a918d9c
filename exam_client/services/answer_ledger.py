"""
services/answer_ledger.py

답안지: {question.id: 선택한 보기 문자열}.

- 정답 여부는 검사하지 않는다 (제출 전에는 정답을 모름).
- lock() 이후의 변경은 예외 없이 무시된다 (IN_PROGRESS 이탈 후 편집 차단).
- 로드된 문제에 없는 id는 저장하지 않는다.
"""

import logging
from typing import Dict, Optional, Sequence

from exam_client.models.question_model import Question

logger = logging.getLogger(__name__)


class AnswerLedger:

    def __init__(self, questions: Sequence[Question]) -> None:
        self._question_ids = {q.id for q in questions}
        self._total = len(questions)
        self._answers: Dict[int, str] = {}
        self._locked = False

    @property
    def total(self) -> int:
        return self._total

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True

    def set_answer(self, question_id: int, value: str) -> bool:
        """
        답안 저장 (같은 값 재저장은 무해한 덮어쓰기).
        빈 문자열이면 해당 문제의 답을 지운다.

        Returns:
            실제로 답안지가 변경 가능한 상태였으면 True.
        """
        if self._locked:
            logger.info(f"잠긴 답안지 변경 무시: Q{question_id}")
            return False
        if question_id not in self._question_ids:
            logger.warning(f"존재하지 않는 문제 id 무시: {question_id}")
            return False

        if value:
            self._answers[question_id] = value
        else:
            self._answers.pop(question_id, None)
        return True

    def get(self, question_id: int) -> Optional[str]:
        return self._answers.get(question_id)

    def is_answered(self, question_id: int) -> bool:
        return question_id in self._answers

    def progress(self) -> float:
        """응답 비율 (0.0 ~ 1.0). 문제 0개면 0.0."""
        if self._total == 0:
            return 0.0
        return self.answered_count / self._total

    def is_complete(self) -> bool:
        return self._total > 0 and self.answered_count == self._total

    def snapshot(self) -> Dict[int, str]:
        """전송용 복사본. 미응답 문제는 키 자체가 없다."""
        return dict(self._answers)
