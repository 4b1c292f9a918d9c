"""
models/result_model.py

결과 화면용 뷰 모델. result_service.present_result()가 생성한다.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ResultRow(BaseModel):
    number: int = Field(..., description="표시 번호 (1-based)")
    question_id: int
    question_text: str
    student_answer: str = Field(..., description="미응답이면 'No answer provided'")
    correct_answer: Optional[str] = Field(
        None,
        description="오답일 때만 채워진다"
    )
    is_correct: bool


class ResultView(BaseModel):
    title: str
    description: str
    percentage: int = Field(..., ge=0, le=100)
    correct_count: int
    total: int
    submitted_at: str = Field("", description="표시용 제출 시각 문자열")
    rows: List[ResultRow] = Field(default_factory=list)
