import asyncio
import time

import pytest

from exam_client.errors import NetworkError, NotFoundError
from exam_client.models.question_model import Question, TestDefinition as ExamDefinition
from exam_client.models.session_state import SubmissionResult


def make_definition(test_id=7, duration=1, total=3):
    return ExamDefinition(id=test_id, title="중간고사", description="설명",
                          durationMinutes=duration, totalQuestions=total)


def make_questions(n=3):
    return [
        Question(id=i, text=f"문제 {i}", options=["A", "B", "C", "D"])
        for i in range(1, n + 1)
    ]


class FakeGateway:
    """
    채점 서버 대역. 호출 기록을 남기고, 정답 키로 직접 채점한다.

    known:          {access_id: TestDefinition}
    questions:      {test_id: [Question]}
    answer_key:     {question_id: 정답}
    submit_failures: 앞에서부터 실패시킬 제출 횟수
    submit_error:   다음 제출 1회에 그대로 던질 예외
    """

    def __init__(self, definition=None, questions=None, answer_key=None):
        if definition is None:
            definition = make_definition()
        self.known = {"abc123": definition}
        self.questions = {definition.id: questions if questions is not None else make_questions()}
        self.answer_key = answer_key or {1: "A", 2: "B", 3: "C"}
        self.submit_failures = 0
        self.submit_error = None
        self.test_error = None
        self.questions_error = None
        self.delay = 0.0
        self.submit_delay = 0.0
        self.calls = []
        self.submitted = []

    def get_test_by_access_id(self, access_id):
        self.calls.append(("test", access_id))
        time.sleep(self.delay)
        if self.test_error:
            raise self.test_error
        if access_id not in self.known:
            raise NotFoundError("not found", 404)
        return self.known[access_id]

    def get_questions_by_test_id(self, test_id):
        self.calls.append(("questions", test_id))
        time.sleep(self.delay)
        if self.questions_error:
            raise self.questions_error
        return list(self.questions.get(test_id, []))

    def submit_answers(self, access_id, answers):
        self.calls.append(("submit", access_id))
        self.submitted.append(dict(answers))
        time.sleep(self.submit_delay)
        if self.submit_error is not None:
            error, self.submit_error = self.submit_error, None
            raise error
        if self.submit_failures > 0:
            self.submit_failures -= 1
            raise NetworkError("connection reset")

        test_id = self.known[access_id].id
        rows = []
        for q in self.questions[test_id]:
            given = answers.get(q.id, "")
            rows.append({
                "questionId": q.id,
                "questionText": q.text,
                "studentAnswer": given,
                "correctAnswer": self.answer_key[q.id],
                "isCorrect": given == self.answer_key[q.id],
            })
        correct = sum(1 for r in rows if r["isCorrect"])
        return SubmissionResult.from_payload({
            "testResult": {
                "id": 1,
                "test": {"title": "중간고사", "description": "설명"},
                "score": round(correct / len(rows) * 100),
                "submissionTime": "2024-05-01T10:00:00",
            },
            "questionResults": rows,
        })

    def count(self, kind):
        return sum(1 for c in self.calls if c[0] == kind)


async def wait_for_phase(exam, phase, timeout=3.0):
    deadline = time.monotonic() + timeout
    while exam.phase is not phase:
        if time.monotonic() > deadline:
            raise AssertionError(f"phase {exam.phase} != {phase}")
        await asyncio.sleep(0.005)


@pytest.fixture()
def gateway():
    return FakeGateway()
