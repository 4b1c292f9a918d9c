"""
services/countdown.py

세션 하나가 소유하는 1 Hz 카운트다운 타이머.

- start()  : IN_PROGRESS 진입 시 1회만. 두 번째 호출은 무시.
- stop()   : 세션 종료 / IN_PROGRESS 이탈 시 반드시 호출. 여러 번 불러도 안전.
- on_tick(remaining)  : 1초마다, 남은 초가 줄어든 직후.
- on_expired()        : 0초 도달 시 정확히 1회. 이후 타이머는 비활성.

asyncio 태스크 위에서 동작하므로 start()는 실행 중인 이벤트 루프 안에서 호출해야 한다.
"""

import asyncio
import logging
from typing import Callable, Optional

from config import TICK_INTERVAL

logger = logging.getLogger(__name__)


class CountdownClock:

    def __init__(
        self,
        seconds: int,
        on_tick: Optional[Callable[[int], None]] = None,
        on_expired: Optional[Callable[[], None]] = None,
        interval: float = TICK_INTERVAL,
    ) -> None:
        if seconds < 0:
            raise ValueError(f"남은 시간은 음수일 수 없습니다: {seconds}")
        self._remaining = seconds
        self._on_tick = on_tick
        self._on_expired = on_expired
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._started = False
        self._stopped = False
        self._expired = False

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    @property
    def has_expired(self) -> bool:
        return self._expired

    def start(self) -> bool:
        """타이머 시작. 이미 한 번 시작된 타이머는 다시 시작하지 않는다."""
        if self._started:
            logger.warning("타이머 재시작 요청 무시")
            return False
        self._started = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"타이머 시작: {self._remaining}초")
        return True

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(f"타이머 정지: 남은 시간 {self._remaining}초")

    def tick(self) -> None:
        """
        1초 경과 처리. 내부 루프가 호출한다.
        정지/만료 후, 또는 시작 전에는 아무 일도 하지 않는다.
        """
        if not self._started or self._stopped:
            return
        if self._remaining > 0:
            self._remaining -= 1
            if self._on_tick:
                self._on_tick(self._remaining)
        # on_tick 콜백 안에서 stop()이 불렸을 수 있음
        if self._remaining == 0 and not self._stopped:
            self._expire()

    def _expire(self) -> None:
        if self._expired:
            return
        self._expired = True
        self._stopped = True
        logger.info("시간 종료")
        if self._on_expired:
            self._on_expired()

    async def _run(self) -> None:
        # 마감 시각은 시작 시각 기준으로 interval씩 누적
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self._interval
        while not self._stopped:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            self.tick()
            next_at += self._interval
