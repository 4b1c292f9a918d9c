"""
main.py — CBT 응시 클라이언트 진입점

로컬 FastAPI 서버(uvicorn)를 백그라운드 스레드로 띄우고 브라우저로 응시 화면을 연다.

사용법:
    python main.py              # 첫 화면
    python main.py <access_id>  # 해당 시험 응시 화면으로 바로 이동

환경 변수: CBT_BACKEND_URL, CBT_AUTH_TOKEN, CBT_*_TIMEOUT (config.py 참고)
"""

import logging
import os
import socket
import sys
import threading
import time
import traceback
import webbrowser
from urllib.parse import quote

# 프로젝트 루트를 모듈 경로에 추가 (PyInstaller 번들 / 직접 실행 공통)
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BACKEND_URL, BASE_DIR, DEFAULT_HOST, DEFAULT_PORT, LOG_FILE

logger = logging.getLogger("exam_client.launcher")


def _configure_logging() -> None:
    handlers: list[logging.Handler] = []
    # 콘솔 없는 실행 파일에서는 stdout이 None
    if sys.stdout is not None:
        handlers.append(logging.StreamHandler(sys.stdout))
    try:
        handlers.append(logging.FileHandler(LOG_FILE, encoding="utf-8"))
    except PermissionError:
        pass  # 로그 파일 점유 시 콘솔 출력만 사용

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers or [logging.NullHandler()],
    )


def _pick_port() -> int:
    if DEFAULT_PORT:
        return DEFAULT_PORT
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]


def _port_ready(port: int, timeout: float = 15.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def _serve(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app

        logger.info(f"로컬 서버 시작 - {DEFAULT_HOST}:{port} / 채점 서버: {BACKEND_URL}")
        uvicorn.run(create_app(), host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")


def _entry_url(port: int, access_id: str = "") -> str:
    url = f"http://{DEFAULT_HOST}:{port}/"
    if access_id:
        url += f"?access={quote(access_id, safe='')}"
    return url


def run(access_id: str = "") -> int:
    _configure_logging()
    logger.info("=== CBT Exam Client Started ===")
    os.chdir(BASE_DIR)

    port = _pick_port()
    threading.Thread(target=_serve, args=(port,), daemon=True).start()

    if not _port_ready(port):
        logger.error(f"서버가 {port}번 포트에서 응답하지 않습니다. 기존 프로세스를 종료해 보세요.")
        return 1

    url = _entry_url(port, access_id)
    logger.info(f"브라우저 열기: {url}")
    webbrowser.open(url)

    try:
        while True:
            time.sleep(10)
    except KeyboardInterrupt:
        logger.info("사용자에 의해 종료되었습니다.")
    return 0


if __name__ == "__main__":
    sys.exit(run(sys.argv[1].strip() if len(sys.argv) > 1 else ""))
