"""
services/gateway.py

채점 서버(외부 협력자) HTTP 클라이언트.
Public API:
  - get_test_by_access_id(access_id) -> TestDefinition
  - get_questions_by_test_id(test_id) -> List[Question]
  - submit_answers(access_id, answers) -> SubmissionResult

설계 원칙:
- requests 예외와 HTTP 상태 코드는 여기서만 errors 계층으로 변환한다.
- 모든 호출은 동기(blocking)다. 이벤트 루프에서는 asyncio.to_thread로 감싸서 호출.
- 자동 재시도 없음 (제출 중복 채점 방지).
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from config import AUTH_TOKEN, BACKEND_URL, HTTP_TIMEOUT
from exam_client.errors import ForbiddenError, NetworkError, NotFoundError, RejectedError
from exam_client.models.question_model import Question, TestDefinition
from exam_client.models.session_state import SubmissionResult

logger = logging.getLogger(__name__)


class ExamGateway:
    """채점 서버 REST API 래퍼."""

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        token: str = AUTH_TOKEN,
        timeout: float = HTTP_TIMEOUT,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http or requests.Session()
        self._http.headers.update({"Content-Type": "application/json"})
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"

    # ── Public API ───────────────────────────────────────────────────────────

    def get_test_by_access_id(self, access_id: str) -> TestDefinition:
        data = self._request("GET", f"/tests/{quote(access_id, safe='')}")
        try:
            return TestDefinition.model_validate(data)
        except ValidationError as e:
            raise RejectedError(f"시험 정보 형식 오류: {e.error_count()}개 필드") from e

    def get_questions_by_test_id(self, test_id: int) -> List[Question]:
        data = self._request("GET", f"/questions/{test_id}")
        if not isinstance(data, list):
            raise RejectedError("문제 목록 응답이 배열 형식이 아닙니다.")

        questions: List[Question] = []
        for idx, item in enumerate(data):
            try:
                questions.append(Question.model_validate(item))
            except ValidationError as e:
                raise RejectedError(f"questions[{idx}] 형식 오류: {e.error_count()}개 필드") from e
        return questions

    def submit_answers(self, access_id: str, answers: Dict[int, str]) -> SubmissionResult:
        """
        최종 답안 전송. 미응답 문제는 맵에 포함하지 않는다.

        Args:
            access_id: 시험 액세스 토큰
            answers:   {question.id: 선택한 보기 문자열}
        """
        body = {str(qid): value for qid, value in answers.items()}
        data = self._request("POST", f"/test-results/submit/{quote(access_id, safe='')}", json=body)
        try:
            return SubmissionResult.from_payload(data)
        except (ValidationError, ValueError, AttributeError) as e:
            raise RejectedError(f"제출 결과 형식 오류: {e}") from e

    def close(self) -> None:
        self._http.close()

    # ── 내부 ─────────────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        logger.info(f"{method} {url}")
        try:
            resp = self._http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise NetworkError(f"서버 응답 시간 초과 ({self.timeout:.0f}초)") from e
        except requests.ConnectionError as e:
            raise NetworkError("서버에 연결할 수 없습니다. 인터넷 연결을 확인해 주세요.") from e
        except requests.RequestException as e:
            raise NetworkError(f"요청 실패: {e}") from e

        status = resp.status_code
        if status == 404:
            raise NotFoundError("시험을 찾을 수 없습니다. 식별자가 잘못되었거나 삭제된 시험입니다.", status)
        if status == 403:
            raise ForbiddenError("이 시험에 대한 권한이 없습니다. 담당 교사에게 문의하세요.", status)
        if status >= 500:
            raise NetworkError(f"서버 오류: {status}. {_server_message(resp)}", status)
        if status >= 400:
            raise RejectedError(f"요청 거부: {status}. {_server_message(resp)}", status)

        try:
            return resp.json()
        except ValueError as e:
            raise RejectedError("서버 응답이 JSON 형식이 아닙니다.", status) from e


def _server_message(resp: requests.Response) -> str:
    """에러 응답 본문의 message 필드 (없으면 기본 문구)."""
    try:
        data = resp.json()
    except ValueError:
        return "No information"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return "No information"
