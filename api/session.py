"""
api/session.py — 브라우저별 인메모리 세션 (쿠키 기반)

각 브라우저에 UUID 세션 ID를 발급하고, 세션마다 현재 응시 중인 ExamSession 하나를 보관.
TTL(기본 1시간) 경과 시 만료되며, 만료/교체/초기화 시 ExamSession.close()로 타이머를 정리한다.

close()는 asyncio 태스크를 취소하므로 이 모듈의 함수는 이벤트 루프 스레드에서만 호출한다.
"""

import threading
import time
import uuid
from typing import Any, Optional

from config import SESSION_TTL
from exam_client.services.exam_session import ExamSession

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state() -> dict[str, Any]:
    return {
        "access_id": "",
        "exam": None,
    }


def _close_state(state: dict[str, Any]) -> None:
    exam: Optional[ExamSession] = state.get("exam")
    if exam is not None:
        exam.close()


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            _close_state(_sessions.pop(sid))
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # 접근 시 갱신
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    """세션에서 값 읽기."""
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def get_exam(sid: str) -> Optional[ExamSession]:
    return get(sid, "exam")


def replace_exam(sid: str, exam: ExamSession) -> None:
    """현재 ExamSession을 닫고 새 것으로 교체 (토큰 변경 / 재로드)."""
    with _lock:
        if sid not in _sessions:
            _sessions[sid] = _new_state()
        state = _sessions[sid]
        _close_state(state)
        state["access_id"] = exam.access_id
        state["exam"] = exam
        _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """화면 이탈: 현재 ExamSession을 닫고 세션 초기화."""
    with _lock:
        if sid in _sessions:
            _close_state(_sessions[sid])
            _sessions[sid] = _new_state()
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """만료된 세션을 정리. 제거된 수 반환."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            _close_state(_sessions.pop(sid))
            del _timestamps[sid]
            removed += 1
    return removed


def close_all() -> None:
    """서버 종료 시 모든 타이머 정리."""
    with _lock:
        for state in _sessions.values():
            _close_state(state)
        _sessions.clear()
        _timestamps.clear()
