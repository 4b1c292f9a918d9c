import os
import sys

# 기본 디렉토리 설정
IF_FROZEN = getattr(sys, "frozen", False)
BASE_DIR = sys._MEIPASS if IF_FROZEN else os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 로컬 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "0"))   # 0이면 빈 포트 자동 선택

# 채점 서버 (외부 협력자) 설정
BACKEND_URL = os.getenv("CBT_BACKEND_URL", "http://localhost:8080/api")
AUTH_TOKEN = os.getenv("CBT_AUTH_TOKEN", "")   # 인증 토큰 발급/갱신은 상위 앱 담당

# 타임아웃 (초)
HTTP_TIMEOUT = float(os.getenv("CBT_HTTP_TIMEOUT", "15.0"))      # requests 소켓 타임아웃
LOAD_TIMEOUT = float(os.getenv("CBT_LOAD_TIMEOUT", "20.0"))      # 로드 단계별 상한
SUBMIT_TIMEOUT = float(os.getenv("CBT_SUBMIT_TIMEOUT", "30.0"))  # 제출 호출 상한

# 타이머
TICK_INTERVAL = 1.0        # 1 Hz
WARNING_SECONDS = 60       # 1분 미만이면 경고 표시

# 세션
SESSION_TTL = 3600         # 1시간
CLEANUP_INTERVAL = 300     # 만료 세션 정리 주기 (5분)
