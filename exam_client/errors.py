"""
errors.py

응시 클라이언트 예외 계층.

  ExamClientError
    ├─ NotFoundError    : 잘못되었거나 만료된 액세스 토큰 (종료 상태)
    ├─ ForbiddenError   : 유효한 토큰이지만 응시 권한 없음 (종료 상태)
    ├─ NetworkError     : 일시적 전송 실패 (사용자 조작으로만 재시도)
    ├─ RejectedError    : 채점 서버가 요청/응답을 거부 (형식 오류 등)
    └─ SubmitError      : 제출 실패. NetworkError / RejectedError를 감싼다.

미응답 문제는 오류가 아니다 — 제출 버튼 활성화 조건일 뿐이다.
"""

from typing import Optional


class ExamClientError(Exception):
    """응시 클라이언트의 모든 예외의 기반 클래스."""

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ExamClientError):
    pass


class ForbiddenError(ExamClientError):
    pass


class NetworkError(ExamClientError):
    pass


class RejectedError(ExamClientError):
    pass


class SubmitError(ExamClientError):
    """
    답안 제출 실패.

    Attributes:
        cause: 원인 예외 (NetworkError, RejectedError, TimeoutError 등). 없으면 None.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        status = getattr(cause, "status_code", None)
        super().__init__(message, status_code=status)
        self.cause = cause
