"""
services/exam_session.py

응시 세션 1회분: 로더 → 타이머 → 답안지 → 제출 코디네이터를 묶는 상태 머신.

    IDLE → LOADING → IN_PROGRESS | LOAD_ERROR | EMPTY_QUESTIONS
    IN_PROGRESS → SUBMITTING        (수동 제출 허용 시 또는 시간 종료)
    SUBMITTING  → SUBMITTED | SUBMIT_ERROR
    SUBMIT_ERROR → SUBMITTING       (수동 재시도만)

규칙:
- IN_PROGRESS를 벗어나는 모든 전이에서 타이머 정지 + 답안지 잠금.
- close() 이후 도착한 로드/제출 응답은 버린다.
- 재로드는 새 ExamSession을 만든다 (api.session.replace_exam 참고).
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from config import LOAD_TIMEOUT, SUBMIT_TIMEOUT, TICK_INTERVAL, WARNING_SECONDS
from exam_client.errors import SubmitError
from exam_client.models.question_model import Question, TestDefinition
from exam_client.models.session_state import (
    LoadErrorKind, LoadOutcome, Phase, SubmissionResult,
)
from exam_client.services.answer_ledger import AnswerLedger
from exam_client.services.countdown import CountdownClock
from exam_client.services.session_loader import SessionLoader
from exam_client.services.submission import SubmissionCoordinator
from exam_client.utils.state_machine import PhaseMachine

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class ExamSession:
    """
    Args:
        access_id:     시험 액세스 토큰 (라우트 파라미터 등에서 전달)
        gateway:       채점 서버 클라이언트 (services.gateway.ExamGateway)
        load_timeout:  로드 단계별 상한 (초)
        submit_timeout: 제출 상한 (초)
        tick_interval: 타이머 주기 (초). 테스트에서 줄여 쓴다.

    이벤트 (subscribe로 등록한 리스너에 (name, payload)로 전달):
        "phase"    Phase
        "tick"     남은 초 (int)
        "expired"  None
        "submitted" SubmissionResult
        "submit_error" 오류 메시지 (str)
    """

    def __init__(
        self,
        access_id: str,
        gateway: Any,
        load_timeout: float = LOAD_TIMEOUT,
        submit_timeout: float = SUBMIT_TIMEOUT,
        tick_interval: float = TICK_INTERVAL,
    ) -> None:
        self.access_id = (access_id or "").strip()
        self._machine = PhaseMachine()
        self._loader = SessionLoader(gateway, timeout=load_timeout)
        self.coordinator = SubmissionCoordinator(gateway, timeout=submit_timeout)
        self._tick_interval = tick_interval

        self.definition: Optional[TestDefinition] = None
        self.questions: List[Question] = []
        self.ledger: Optional[AnswerLedger] = None
        self.clock: Optional[CountdownClock] = None
        self.current_index = 0

        self.error: Optional[str] = None
        self.load_error_kind: Optional[LoadErrorKind] = None
        self.result: Optional[SubmissionResult] = None
        self.submitted_by_expiry = False

        self._listeners: List[Listener] = []
        self._expiry_task: Optional[asyncio.Task] = None
        self._closed = False

    # ── 조회 ─────────────────────────────────────────────────────────────────

    @property
    def phase(self) -> Phase:
        return self._machine.current

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def remaining_seconds(self) -> int:
        if self.clock is not None:
            return self.clock.remaining_seconds
        return 0

    @property
    def is_warning(self) -> bool:
        return self.phase is Phase.IN_PROGRESS and self.remaining_seconds < WARNING_SECONDS

    @property
    def time_fraction(self) -> float:
        """남은 시간 / 전체 시간 (0.0 ~ 1.0). 시간 막대 색상용."""
        if self.definition is None or not self.definition.duration_seconds:
            return 0.0
        return self.remaining_seconds / self.definition.duration_seconds

    @property
    def is_editable(self) -> bool:
        return (
            not self._closed
            and self.phase is Phase.IN_PROGRESS
            and self.ledger is not None
            and not self.ledger.is_locked
        )

    def can_submit(self) -> bool:
        """
        수동 제출 버튼 활성화 조건.
        IN_PROGRESS에서는 모든 문제에 답했을 때만, SUBMIT_ERROR에서는 재시도로 항상.
        """
        if self._closed or self.ledger is None:
            return False
        if self.phase is Phase.IN_PROGRESS:
            return self.ledger.is_complete()
        return self.phase is Phase.SUBMIT_ERROR

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ── 로드 ─────────────────────────────────────────────────────────────────

    async def load(self) -> Phase:
        """2단계 로드 후 IN_PROGRESS면 타이머를 시작한다. 진행 중인 세션에서는 무시."""
        if not self._enter(Phase.LOADING):
            return self.phase

        try:
            result = await self._loader.load(self.access_id)
        except asyncio.CancelledError:
            if not self._closed:
                self.error = "시험 정보를 불러오는 중 중단되었습니다. 다시 시도해 주세요."
                self.load_error_kind = LoadErrorKind.NETWORK
                self._enter(Phase.LOAD_ERROR)
            raise
        if self._closed:
            logger.info(f"종료된 세션의 로드 응답 폐기: {self.access_id}")
            return self.phase

        self.definition = result.definition
        if result.outcome is LoadOutcome.LOAD_ERROR:
            self.error = result.message
            self.load_error_kind = result.error_kind
            self._enter(Phase.LOAD_ERROR)
        elif result.outcome is LoadOutcome.EMPTY_QUESTIONS:
            self.error = result.message
            self._enter(Phase.EMPTY_QUESTIONS)
        else:
            self.questions = list(result.questions)
            self.ledger = AnswerLedger(self.questions)
            self.clock = CountdownClock(
                self.definition.duration_seconds,
                on_tick=self._on_tick,
                on_expired=self._on_expired,
                interval=self._tick_interval,
            )
            self._enter(Phase.IN_PROGRESS)
            self.clock.start()
        return self.phase

    # ── 응시 중 조작 ─────────────────────────────────────────────────────────

    def set_answer(self, question_id: int, value: str) -> bool:
        """
        답 선택. IN_PROGRESS가 아니면 아무 일도 하지 않고 False.
        선택 후 현재 위치를 다음 문제로 옮긴다 (마지막 문제면 그 자리).
        """
        if not self.is_editable:
            logger.info(f"편집 불가 상태({self.phase.value})의 답안 변경 무시")
            return False
        changed = self.ledger.set_answer(question_id, value)
        if changed and value:
            idx = self.index_of(question_id)
            if idx is not None:
                self.current_index = min(idx + 1, len(self.questions) - 1)
        return changed

    def go_to(self, index: int) -> int:
        if not self.questions:
            return 0
        self.current_index = max(0, min(index, len(self.questions) - 1))
        return self.current_index

    def index_of(self, question_id: int) -> Optional[int]:
        for i, q in enumerate(self.questions):
            if q.id == question_id:
                return i
        return None

    # ── 제출 ─────────────────────────────────────────────────────────────────

    async def submit(self) -> bool:
        """수동 제출 / 재시도. 제출 조건을 만족하지 않으면 False."""
        if not self.can_submit():
            logger.info(f"수동 제출 불가 (phase={self.phase.value})")
            return False
        return await self._submit(forced=False)

    async def force_submit(self) -> bool:
        """시간 종료 경로. 응답 완료 여부와 관계없이 제출한다."""
        return await self._submit(forced=True)

    async def _submit(self, forced: bool) -> bool:
        # 첫 await 전까지가 원자 구간: 확인 → 플래그 설정 → 상태 전이
        if self._closed or not self._machine.can_transition(Phase.SUBMITTING):
            return False
        if not self.coordinator.begin():
            return False
        self._enter(Phase.SUBMITTING)
        self.submitted_by_expiry = self.submitted_by_expiry or forced
        self.error = None
        answers = self.ledger.snapshot()

        try:
            result = await self.coordinator.transmit(self.access_id, answers)
        except SubmitError as e:
            if self._closed:
                logger.info("종료된 세션의 제출 실패 응답 폐기")
                return False
            self._submit_failed(e.message)
            return False
        except asyncio.CancelledError:
            if not self._closed:
                self._submit_failed(self.coordinator.last_error.message)
            raise

        if self._closed:
            logger.info("종료된 세션의 제출 응답 폐기")
            return False
        self.result = result
        self._enter(Phase.SUBMITTED)
        self._emit("submitted", result)
        return True

    # ── 종료 ─────────────────────────────────────────────────────────────────

    def close(self) -> None:
        """화면 이탈 / 토큰 변경. 타이머를 즉시 멈추고 이후 응답을 무시한다."""
        if self._closed:
            return
        self._closed = True
        if self.clock is not None:
            self.clock.stop()
        if self.ledger is not None:
            self.ledger.lock()
        self._listeners.clear()
        logger.info(f"세션 종료: {self.access_id} (phase={self.phase.value})")

    # ── 내부 ─────────────────────────────────────────────────────────────────

    def _enter(self, target: Phase) -> bool:
        if not self._machine.transition(target):
            return False
        if target is not Phase.IN_PROGRESS:
            if self.clock is not None:
                self.clock.stop()
            if self.ledger is not None:
                self.ledger.lock()
        self._emit("phase", target)
        return True

    def _submit_failed(self, message: str) -> None:
        self.error = message
        self._enter(Phase.SUBMIT_ERROR)
        self._emit("submit_error", message)

    def _on_tick(self, remaining: int) -> None:
        self._emit("tick", remaining)

    def _on_expired(self) -> None:
        logger.info(f"시간 종료 → 자동 제출: {self.access_id}")
        self._emit("expired", None)
        self._expiry_task = asyncio.get_running_loop().create_task(self.force_submit())
        self._expiry_task.add_done_callback(self._expiry_done)

    def _expiry_done(self, task: asyncio.Task) -> None:
        # 아무도 await하지 않는 태스크라 예외를 여기서 꺼내 기록한다
        if task.cancelled():
            logger.warning(f"자동 제출 태스크 취소: {self.access_id}")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"자동 제출 중 오류: {exc!r}", exc_info=exc)

    def _emit(self, name: str, payload: Any) -> None:
        for listener in list(self._listeners):
            listener(name, payload)
