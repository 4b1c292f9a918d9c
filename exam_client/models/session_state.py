"""
models/session_state.py

응시 세션의 상태값과 채점 결과 모델.
Pydantic BaseModel / Enum 기반 — UI 코드 없음.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from exam_client.models.question_model import Question, TestDefinition


class Phase(str, Enum):
    """세션 상태 머신의 현재 단계."""

    IDLE = "idle"
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    LOAD_ERROR = "load_error"
    SUBMIT_ERROR = "submit_error"
    EMPTY_QUESTIONS = "empty_questions"


class SubmissionState(Enum):
    """제출 코디네이터의 단일 쓰기 플래그."""

    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    DONE = "done"


class LoadErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    NETWORK = "network"
    INVALID = "invalid"


class LoadOutcome(str, Enum):
    READY = "ready"
    EMPTY_QUESTIONS = "empty_questions"
    LOAD_ERROR = "load_error"


class LoadResult(BaseModel):
    """
    SessionLoader.load()의 결과.

    Attributes:
        outcome:     READY / EMPTY_QUESTIONS / LOAD_ERROR
        definition:  1단계에서 받은 시험 정보 (1단계 실패 시 None)
        questions:   2단계에서 받은 문제 리스트 (READY일 때만 비어 있지 않음)
        error_kind:  LOAD_ERROR일 때의 오류 종류
        message:     사용자에게 보여줄 메시지
    """

    outcome: LoadOutcome
    definition: Optional[TestDefinition] = None
    questions: List[Question] = Field(default_factory=list)
    error_kind: Optional[LoadErrorKind] = None
    message: str = ""

    @classmethod
    def failed(cls, kind: LoadErrorKind, message: str,
               definition: Optional[TestDefinition] = None) -> "LoadResult":
        return cls(
            outcome=LoadOutcome.LOAD_ERROR,
            error_kind=kind,
            message=message,
            definition=definition,
        )


class QuestionResult(BaseModel):
    """채점 결과의 문제별 행."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question_id: int = Field(..., validation_alias=AliasChoices("questionId", "question_id"))
    question_text: str = Field("", validation_alias=AliasChoices("questionText", "question_text"))
    student_answer: str = Field("", validation_alias=AliasChoices("studentAnswer", "student_answer"))
    correct_answer: str = Field("", validation_alias=AliasChoices("correctAnswer", "correct_answer"))
    is_correct: bool = Field(False, validation_alias=AliasChoices("isCorrect", "is_correct"))

    @field_validator("question_text", "student_answer", "correct_answer", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class SubmissionResult(BaseModel):
    """
    채점 서버가 돌려준 최종 결과.

    score 필드는 서버 값을 그대로 보관한다. 화면에 표시하는 백분율은
    question_results에서 다시 계산한다 (result_service.calculate_percentage).
    """

    model_config = ConfigDict(frozen=True)

    result_id: Optional[int] = None
    title: str = ""
    description: str = ""
    score: float = 0.0
    submitted_at: Optional[datetime] = None
    question_results: List[QuestionResult] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SubmissionResult":
        """
        서버 응답을 모델로 변환한다.

        지원 형식:
          {"testResult": {"id", "test": {"title", "description"}, "score", "submissionTime"},
           "questionResults": [...]}
          또는 평탄화된 {"score", "submittedAt", "questionResults": [...]}
        """
        if not isinstance(payload, dict):
            raise ValueError("제출 결과 응답이 객체 형식이 아닙니다.")

        head = payload.get("testResult") or payload
        test_info = head.get("test") or {}
        return cls(
            result_id=head.get("id"),
            title=test_info.get("title") or "",
            description=test_info.get("description") or "",
            score=head.get("score") or 0.0,
            submitted_at=head.get("submissionTime") or head.get("submittedAt"),
            question_results=payload.get("questionResults") or [],
        )
