"""
services/submission.py

최종 답안 전송 코디네이터 (세션당 최대 1회 전송).

수동 제출과 시간 종료 자동 제출이 같은 틱에 동시에 들어올 수 있다.
이벤트 루프가 콜백을 직렬화하므로 락 대신 단일 상태 플래그로 해결한다:

    NOT_STARTED --begin()--> IN_FLIGHT --성공--> DONE
                                  └────실패────> NOT_STARTED (수동 재시도 1회 허용)

begin()은 await 없이 확인과 설정을 한 번에 하므로, 먼저 도착한 호출자만 통과한다.
실패 시 자동 재시도는 하지 않는다.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from config import SUBMIT_TIMEOUT
from exam_client.errors import ExamClientError, SubmitError
from exam_client.models.session_state import SubmissionResult, SubmissionState
from exam_client.services.result_service import calculate_percentage, round_half_up

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    """
    Attributes:
        state:      현재 제출 플래그
        result:     성공한 제출 결과 (없으면 None)
        last_error: 마지막 실패 (없으면 None)
        attempts:   실제 네트워크 전송 횟수
    """

    def __init__(self, gateway: Any, timeout: float = SUBMIT_TIMEOUT) -> None:
        self.gateway = gateway
        self.timeout = timeout
        self.state = SubmissionState.NOT_STARTED
        self.result: Optional[SubmissionResult] = None
        self.last_error: Optional[SubmitError] = None
        self.attempts = 0

    def begin(self) -> bool:
        """확인 후 설정. 이미 전송 중이거나 완료되었으면 False."""
        if self.state is not SubmissionState.NOT_STARTED:
            logger.info(f"중복 제출 요청 무시 (state={self.state.value})")
            return False
        self.state = SubmissionState.IN_FLIGHT
        return True

    async def transmit(self, access_id: str, answers: Dict[int, str]) -> SubmissionResult:
        """
        begin()이 True를 돌려준 호출자만 호출한다.

        Raises:
            SubmitError: 네트워크 실패, 시간 초과, 서버 거부, 그 밖의 예외. 플래그는 NOT_STARTED로 복귀.
            asyncio.CancelledError: 그대로 전파. 플래그는 NOT_STARTED로 복귀.
        """
        if self.state is not SubmissionState.IN_FLIGHT:
            raise RuntimeError("begin() 없이 transmit()이 호출되었습니다.")

        self.attempts += 1
        logger.info(f"답안 제출 #{self.attempts}: {len(answers)}개 응답")
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.gateway.submit_answers, access_id, dict(answers)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self._fail(SubmitError(f"제출 응답 시간 초과 ({self.timeout:.0f}초). 다시 제출해 주세요.", e))
            raise self.last_error from e
        except ExamClientError as e:
            self._fail(SubmitError(f"제출 실패: {e.message}", e))
            raise self.last_error from e
        except asyncio.CancelledError as e:
            # 취소는 호출자에게 그대로 전파하되 플래그는 되돌린다
            self._fail(SubmitError("제출이 중단되었습니다. 다시 제출해 주세요.", e))
            raise
        except Exception as e:
            logger.exception("제출 중 예상치 못한 오류")
            self._fail(SubmitError(f"제출 실패: {e}", e))
            raise self.last_error from e

        self.state = SubmissionState.DONE
        self.result = result
        self.last_error = None
        _check_score(result)
        return result

    async def submit(self, access_id: str, answers: Dict[int, str]) -> Optional[SubmissionResult]:
        """
        begin() + transmit(). 다른 호출이 이미 진행 중이거나 완료되었으면 None.
        """
        if not self.begin():
            return None
        return await self.transmit(access_id, answers)

    def _fail(self, error: SubmitError) -> None:
        self.state = SubmissionState.NOT_STARTED
        self.last_error = error
        logger.error(error.message)


def _check_score(result: SubmissionResult) -> None:
    """서버 score 필드와 문제별 결과에서 계산한 백분율이 다르면 경고만 남긴다."""
    if not result.question_results:
        return
    derived = calculate_percentage(result.question_results)
    if round_half_up(result.score) != derived:
        logger.warning(f"서버 점수({result.score})와 계산 점수({derived}%)가 다릅니다. 계산 점수를 표시합니다.")
