from datetime import datetime

from exam_client.models.session_state import QuestionResult, SubmissionResult
from exam_client.services.result_service import (
    NO_ANSWER_TEXT, calculate_percentage, format_remaining, get_incorrect_rows,
    present_result, progress_percent, round_half_up,
)


def _rows(flags):
    return [
        QuestionResult(questionId=i, questionText=f"Q{i}", studentAnswer="A" if f else "",
                       correctAnswer="A", isCorrect=f)
        for i, f in enumerate(flags, start=1)
    ]


def test_percentage_matches_correct_ratio():
    for n in range(1, 13):
        for k in range(n + 1):
            rows = _rows([True] * k + [False] * (n - k))
            assert calculate_percentage(rows) == int(k / n * 100 + 0.5)


def test_percentage_rounds_half_up():
    # 1/8 = 12.5%
    assert calculate_percentage(_rows([True] + [False] * 7)) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.666) == 67


def test_percentage_of_empty_breakdown():
    assert calculate_percentage([]) == 0


def test_progress_percent():
    assert progress_percent(0, 3) == 0
    assert progress_percent(1, 3) == 33
    assert progress_percent(2, 3) == 67
    assert progress_percent(3, 3) == 100
    assert progress_percent(0, 0) == 0


def test_format_remaining():
    assert format_remaining(0) == "00:00"
    assert format_remaining(59) == "00:59"
    assert format_remaining(60) == "01:00"
    assert format_remaining(3599) == "59:59"
    assert format_remaining(-5) == "00:00"


def test_present_result_rows():
    result = SubmissionResult(
        title="중간고사",
        description="설명",
        score=67,
        submitted_at=datetime(2024, 5, 1, 10, 0, 0),
        question_results=[
            QuestionResult(questionId=1, questionText="Q1", studentAnswer="A", correctAnswer="A", isCorrect=True),
            QuestionResult(questionId=2, questionText="Q2", studentAnswer="C", correctAnswer="B", isCorrect=False),
            QuestionResult(questionId=3, questionText="Q3", studentAnswer=None, correctAnswer="D", isCorrect=False),
        ],
    )

    view = present_result(result)

    assert view.percentage == 33
    assert view.correct_count == 1
    assert view.total == 3
    assert view.submitted_at == "2024-05-01 10:00:00"
    assert [r.number for r in view.rows] == [1, 2, 3]
    assert view.rows[0].correct_answer is None
    assert view.rows[1].correct_answer == "B"
    assert view.rows[2].student_answer == NO_ANSWER_TEXT


def test_incorrect_rows_keep_order():
    rows = _rows([False, True, False])
    assert [r.question_id for r in get_incorrect_rows(rows)] == [1, 3]


def test_from_payload_flat_shape():
    result = SubmissionResult.from_payload({
        "score": 50,
        "submittedAt": "2024-05-01T10:00:00Z",
        "questionResults": [
            {"questionId": 1, "questionText": "Q1", "studentAnswer": "A", "correctAnswer": "A", "isCorrect": True},
            {"questionId": 2, "questionText": "Q2", "studentAnswer": "", "correctAnswer": "B", "isCorrect": False},
        ],
    })

    assert result.score == 50
    assert result.submitted_at.year == 2024
    assert calculate_percentage(result.question_results) == 50
