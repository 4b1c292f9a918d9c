"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + static 파일 서빙
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from config import CLEANUP_INTERVAL, LOAD_TIMEOUT, STATIC_DIR, SUBMIT_TIMEOUT, TICK_INTERVAL, SESSION_TTL
from api.routes import router
import api.session as session
from exam_client.services.exam_session import ExamSession
from exam_client.services.gateway import ExamGateway

SESSION_COOKIE = "cbt_session"

logger = logging.getLogger(__name__)


def create_app(
    gateway: Optional[Any] = None,
    load_timeout: float = LOAD_TIMEOUT,
    submit_timeout: float = SUBMIT_TIMEOUT,
    tick_interval: float = TICK_INTERVAL,
) -> FastAPI:
    """
    Args:
        gateway: 채점 서버 클라이언트. None이면 config의 BACKEND_URL로 ExamGateway 생성.
        나머지:  ExamSession에 그대로 전달 (테스트에서 줄여 쓴다).
    """
    gateway = gateway or ExamGateway()

    # 만료 세션 주기적 정리 (5분마다). 타이머 태스크와 같은 이벤트 루프에서 실행.
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"만료 세션 {removed}개 정리")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            task.cancel()
            session.close_all()

    app = FastAPI(title="CBT Exam Client", docs_url=None, redoc_url=None, lifespan=lifespan)

    def _exam_factory(access_id: str) -> ExamSession:
        return ExamSession(
            access_id,
            gateway,
            load_timeout=load_timeout,
            submit_timeout=submit_timeout,
            tick_interval=tick_interval,
        )

    app.state.gateway = gateway
    app.state.exam_factory = _exam_factory

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=SESSION_TTL,
        )
        return response

    app.include_router(router)

    # static 파일 마운트
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # 루트 → index.html (?access=<id> 는 페이지 스크립트가 읽는다)
    @app.get("/")
    async def serve_index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    return app
