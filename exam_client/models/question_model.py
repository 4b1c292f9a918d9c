from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TestDefinition(BaseModel):
    """
    예약된 시험의 메타데이터.
    채점 서버의 camelCase JSON을 그대로 받는다. 로드 후에는 변경 불가.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(
        ...,
        description="서버 내부 시험 식별자 (문제 목록 조회 키)"
    )
    title: str = Field(
        "",
        description="시험 제목"
    )
    description: str = Field(
        "",
        description="시험 설명"
    )
    duration_minutes: Optional[int] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("durationMinutes", "duration", "duration_minutes"),
        description="응시 제한 시간 (분). 0 또는 누락이면 로더가 거부한다."
    )
    total_questions: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("totalQuestions", "questionCount", "total_questions"),
        description="문제 수. 로드 성공 후에는 실제 문제 개수로 교정된다."
    )

    @field_validator("title", "description", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def duration_seconds(self) -> int:
        return (self.duration_minutes or 0) * 60


class Question(BaseModel):
    """
    단일 객관식 문제.
    정답 필드는 서버가 보내더라도 읽지 않는다 (제출 전에는 정답을 알 수 없음).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(
        ...,
        description="문제 식별자 (답안지 키)"
    )
    text: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("text", "questionText", "question_text"),
        description="발문"
    )
    options: List[str] = Field(
        default_factory=list,
        description="보기 리스트 (순서 유지)"
    )

    @field_validator("options", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        """보기가 null로 오는 경우 빈 리스트로 취급한다."""
        return [] if v is None else v
