"""
services/result_service.py

채점 결과 표시 및 진행 현황 계산 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.
"""

import math
from typing import List, Sequence

from exam_client.models.result_model import ResultRow, ResultView
from exam_client.models.session_state import QuestionResult, SubmissionResult

NO_ANSWER_TEXT = "No answer provided"


def round_half_up(value: float) -> int:
    """
    0.5를 올림하는 반올림 (12.5 → 13).
    내장 round()는 은행가 반올림이라 사용하지 않는다.
    """
    return int(math.floor(value + 0.5))


def correct_count(rows: Sequence[QuestionResult]) -> int:
    return sum(1 for r in rows if r.is_correct)


def calculate_percentage(rows: Sequence[QuestionResult]) -> int:
    """
    문제별 결과에서 백분율 점수를 계산한다.

    percentage = round(정답 수 / 전체 문항 수 * 100)
    서버가 보낸 score 필드와는 무관한 순수 함수.

    Returns:
        0 ~ 100 정수. rows가 비어 있으면 0.
    """
    if not rows:
        return 0
    return round_half_up(correct_count(rows) / len(rows) * 100)


def progress_percent(answered: int, total: int) -> int:
    """진행률 표시용 백분율. 문제 0개면 0."""
    if total <= 0:
        return 0
    return round_half_up(answered / total * 100)


def format_remaining(seconds: int) -> str:
    """남은 시간을 mm:ss 문자열로. 음수는 0으로 본다."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def get_incorrect_rows(rows: Sequence[QuestionResult]) -> List[QuestionResult]:
    """오답 (미응답 포함) 행만, 원본 순서 유지."""
    return [r for r in rows if not r.is_correct]


def present_result(result: SubmissionResult) -> ResultView:
    """
    SubmissionResult → 결과 화면 뷰 모델.

    - 학생 답이 비어 있으면 NO_ANSWER_TEXT로 표시
    - 정답은 오답 행에만 노출
    """
    rows = result.question_results
    view_rows = [
        ResultRow(
            number=i,
            question_id=r.question_id,
            question_text=r.question_text,
            student_answer=r.student_answer or NO_ANSWER_TEXT,
            correct_answer=None if r.is_correct else r.correct_answer,
            is_correct=r.is_correct,
        )
        for i, r in enumerate(rows, start=1)
    ]
    submitted_at = (
        result.submitted_at.strftime("%Y-%m-%d %H:%M:%S") if result.submitted_at else ""
    )
    return ResultView(
        title=result.title,
        description=result.description,
        percentage=calculate_percentage(rows),
        correct_count=correct_count(rows),
        total=len(rows),
        submitted_at=submitted_at,
        rows=view_rows,
    )
