"""
services/session_loader.py

액세스 토큰 → 시험 정보 + 문제 목록 (2단계 순차 로드).

  1단계: get_test_by_access_id(access_id)   → TestDefinition
  2단계: get_questions_by_test_id(test.id)  → List[Question]   (1단계 성공 시에만)

결과는 LoadResult 하나로 반환한다 — READY / EMPTY_QUESTIONS / LOAD_ERROR.
예외를 밖으로 던지지 않는다 (모든 실패는 사용자에게 보여줄 메시지를 가진 LOAD_ERROR).
"""

import asyncio
import logging
import re
from typing import Any, Callable, TypeVar

from config import LOAD_TIMEOUT
from exam_client.errors import ForbiddenError, NetworkError, NotFoundError, RejectedError
from exam_client.models.session_state import LoadErrorKind, LoadOutcome, LoadResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ACCESS_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,128}$")
_PLACEHOLDER_IDS = {"undefined", "null", "none"}


def is_valid_access_id(access_id: str) -> bool:
    """네트워크 호출 없이 판정 가능한 형식 검사."""
    if not access_id:
        return False
    if access_id.lower() in _PLACEHOLDER_IDS:
        return False
    return bool(_ACCESS_ID_PATTERN.match(access_id))


class SessionLoader:
    """
    2단계 로드 파이프라인.

    Args:
        gateway: ExamGateway와 같은 인터페이스의 동기 클라이언트.
        timeout: 단계별 상한 (초). 초과 시 LOAD_ERROR(NETWORK).
    """

    def __init__(self, gateway: Any, timeout: float = LOAD_TIMEOUT) -> None:
        self.gateway = gateway
        self.timeout = timeout

    async def load(self, access_id: str) -> LoadResult:
        access_id = (access_id or "").strip()
        if not is_valid_access_id(access_id):
            logger.warning(f"잘못된 액세스 ID 거부 (네트워크 호출 없음): {access_id!r}")
            return LoadResult.failed(LoadErrorKind.NOT_FOUND, "잘못된 시험 식별자입니다.")

        # ── 1단계: 시험 정보 ──────────────────────────────────────────────────
        try:
            definition = await self._call(self.gateway.get_test_by_access_id, access_id)
        except Exception as e:
            return self._failure(e, stage="test")

        if not definition.duration_minutes:
            logger.warning(f"시험 {definition.id}: 제한 시간이 없음 → 로드 거부")
            return LoadResult.failed(
                LoadErrorKind.INVALID,
                "시험 제한 시간이 설정되지 않았습니다. 담당 교사에게 문의하세요.",
                definition=definition,
            )

        # ── 2단계: 문제 목록 ──────────────────────────────────────────────────
        try:
            questions = await self._call(self.gateway.get_questions_by_test_id, definition.id)
        except Exception as e:
            result = self._failure(e, stage="questions")
            return result.model_copy(update={"definition": definition})

        if not questions:
            logger.info(f"시험 {definition.id}: 문제 0개")
            return LoadResult(outcome=LoadOutcome.EMPTY_QUESTIONS, definition=definition,
                              message="풀 문제가 없습니다.")

        if definition.total_questions != len(questions):
            logger.warning(
                f"시험 {definition.id}: totalQuestions={definition.total_questions}, "
                f"실제 문제 수={len(questions)} → 실제 값으로 교정"
            )
            definition = definition.model_copy(update={"total_questions": len(questions)})

        logger.info(f"로드 완료: 시험 {definition.id} ({len(questions)}문제, {definition.duration_minutes}분)")
        return LoadResult(outcome=LoadOutcome.READY, definition=definition, questions=questions)

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)

    def _failure(self, exc: Exception, stage: str) -> LoadResult:
        if isinstance(exc, NotFoundError):
            kind, message = LoadErrorKind.NOT_FOUND, exc.message
        elif isinstance(exc, ForbiddenError):
            kind, message = LoadErrorKind.FORBIDDEN, exc.message
        elif isinstance(exc, NetworkError):
            kind, message = LoadErrorKind.NETWORK, exc.message
        elif isinstance(exc, asyncio.TimeoutError):
            kind = LoadErrorKind.NETWORK
            message = f"서버 응답 시간 초과 ({self.timeout:.0f}초). 다시 시도해 주세요."
        elif isinstance(exc, RejectedError):
            kind, message = LoadErrorKind.INVALID, exc.message
        else:
            logger.error(f"로드 중 예상치 못한 오류 ({stage}): {exc!r}", exc_info=exc)
            kind = LoadErrorKind.NETWORK
            message = "시험 정보를 불러오지 못했습니다. 다시 시도해 주세요."
        logger.error(f"로드 실패 ({stage}): {kind.value} — {message}")
        return LoadResult.failed(kind, message)
