"""
api/routes.py — FastAPI 엔드포인트 (렌더링 계층용)

화면은 /api/state 를 주기적으로 읽어 phase, 남은 시간(mm:ss), 진행률을 그린다.
로드/제출 실패는 HTTP 오류가 아니라 phase + error 메시지로 전달한다.
HTTPException은 세션 없음, 잘못된 인덱스 같은 호출자 쪽 문제에만 사용.
"""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

import api.session as session
from exam_client.models.question_model import Question
from exam_client.models.session_state import Phase
from exam_client.services.exam_session import ExamSession
from exam_client.services.result_service import format_remaining, present_result, progress_percent

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class LoadBody(BaseModel):
    access_id: str

class SaveAnswerBody(BaseModel):
    question_id: int
    answer: str

class NavigateBody(BaseModel):
    index: int = 0


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _sid(request: Request) -> str:
    return request.state.session_id


def _require_exam(request: Request) -> ExamSession:
    exam = session.get_exam(_sid(request))
    if exam is None:
        raise HTTPException(status_code=404, detail="시험 세션이 없습니다.")
    return exam


def _question_to_dict(q: Question) -> dict:
    return {
        "id": q.id,
        "text": q.text,
        "options": q.options,
    }


def _state_to_dict(exam: ExamSession) -> dict:
    definition = exam.definition
    answered = exam.ledger.answered_count if exam.ledger else 0
    total = len(exam.questions)
    return {
        "access_id": exam.access_id,
        "phase": exam.phase.value,
        "title": definition.title if definition else "",
        "description": definition.description if definition else "",
        "remaining": format_remaining(exam.remaining_seconds),
        "remaining_seconds": exam.remaining_seconds,
        "time_fraction": round(exam.time_fraction, 4),
        "is_warning": exam.is_warning,
        "progress": progress_percent(answered, total),
        "answered_count": answered,
        "total": total,
        "current_index": exam.current_index,
        "editable": exam.is_editable,
        "can_submit": exam.can_submit(),
        "error": exam.error,
        "error_kind": exam.load_error_kind.value if exam.load_error_kind else None,
        "submitted_by_expiry": exam.submitted_by_expiry,
    }


async def _start_exam(request: Request, access_id: str) -> ExamSession:
    """새 ExamSession을 만들어 기존 것을 교체하고 로드까지 진행."""
    factory = request.app.state.exam_factory
    exam: ExamSession = factory(access_id)
    session.replace_exam(_sid(request), exam)
    await exam.load()
    return exam


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/load")
async def load_exam(body: LoadBody, request: Request):
    # 같은 토큰으로 다시 들어오면 진행 중인 세션을 그대로 돌려준다 (타이머 재시작 방지)
    current = session.get_exam(_sid(request))
    if current is not None and current.access_id == body.access_id.strip():
        return _state_to_dict(current)

    exam = await _start_exam(request, body.access_id)
    return _state_to_dict(exam)


@router.post("/api/reload")
async def reload_exam(request: Request):
    """로드 파이프라인 전체를 새 세션으로 다시 실행 (문제 단계만 재시도하지 않음)."""
    old = _require_exam(request)
    if old.phase not in (Phase.LOAD_ERROR, Phase.EMPTY_QUESTIONS):
        raise HTTPException(status_code=400, detail="다시 불러올 수 있는 상태가 아닙니다.")
    exam = await _start_exam(request, old.access_id)
    return _state_to_dict(exam)


@router.get("/api/state")
async def get_state(request: Request):
    return _state_to_dict(_require_exam(request))


@router.get("/api/question/{index}")
async def get_question(index: int, request: Request):
    exam = _require_exam(request)
    questions = exam.questions
    if not questions or not (0 <= index < len(questions)):
        raise HTTPException(status_code=404, detail="문제를 찾을 수 없습니다.")

    q = questions[index]
    saved_answer = exam.ledger.get(q.id) if exam.ledger else None

    d = _question_to_dict(q)
    d.update({"saved_answer": saved_answer or "", "index": index, "total": len(questions)})
    return d


@router.post("/api/answer")
async def save_answer(body: SaveAnswerBody, request: Request):
    exam = _require_exam(request)
    idx = exam.index_of(body.question_id)
    if idx is None:
        raise HTTPException(status_code=404, detail="문제를 찾을 수 없습니다.")
    options = exam.questions[idx].options
    if body.answer and options and body.answer not in options:
        raise HTTPException(status_code=400, detail="보기에 없는 답입니다.")

    saved = exam.set_answer(body.question_id, body.answer)
    state = _state_to_dict(exam)
    state["saved"] = saved
    return state


@router.post("/api/navigate")
async def navigate(body: NavigateBody, request: Request):
    exam = _require_exam(request)
    idx = exam.go_to(body.index)
    return {"index": idx, "ok": True}


@router.post("/api/submit")
async def submit_exam(request: Request):
    exam = _require_exam(request)
    if exam.phase is Phase.SUBMITTING:
        raise HTTPException(status_code=409, detail="이미 제출 중입니다.")
    if exam.phase is Phase.SUBMITTED:
        raise HTTPException(status_code=409, detail="이미 제출된 시험입니다.")
    if not exam.can_submit():
        if exam.phase is Phase.IN_PROGRESS:
            raise HTTPException(status_code=400, detail="모든 문제에 답해야 제출할 수 있습니다.")
        raise HTTPException(status_code=400, detail="제출할 수 없는 상태입니다.")

    await exam.submit()
    return _state_to_dict(exam)


@router.get("/api/results")
async def get_results(request: Request):
    exam = _require_exam(request)
    if exam.phase is not Phase.SUBMITTED or exam.result is None:
        raise HTTPException(status_code=400, detail="시험이 아직 제출되지 않았습니다.")
    return present_result(exam.result).model_dump()


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(_sid(request))
    return {"ok": True}
