# thetrains/animation.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .view_state import TimeCursor

logger = logging.getLogger(__name__)

# 1秒あたりの再計算回数（シミュレーション時間は実時間の 60 倍で進む）
PER_SECOND = 10


class AnimationHandle:
    """実行中のアニメーションループ。stop() でタイマーを止める。"""

    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def running(self) -> bool:
        return not self._task.done()

    def stop(self) -> None:
        if not self._task.done():
            self._task.cancel()


class AnimationDriver:
    """
    一定間隔で時刻カーソルを進める。

    状態は「実行中」のみで、一時停止はない。
    ユーザーの時刻選択（select_time）はカーソルを直接書き換えるが、
    tick の間隔には影響しない。
    """

    def __init__(self, cursor: TimeCursor, tick_rate: float = PER_SECOND) -> None:
        if tick_rate <= 0:
            raise ValueError(f"tick_rate must be positive: {tick_rate}")
        self.cursor = cursor
        self.tick_rate = tick_rate
        self.ticks = 0

    @property
    def step(self) -> float:
        return 60.0 / self.tick_rate

    @property
    def interval_sec(self) -> float:
        return 1.0 / self.tick_rate

    def tick(self) -> float:
        self.ticks += 1
        return self.cursor.advance(self.step)

    def select_time(self, time: float) -> float:
        return self.cursor.select(time)

    def start(self, on_tick: Callable[[float], None]) -> AnimationHandle:
        """
        実行中のイベントループ上でアニメーションを開始する。

        on_tick が例外を出してもループは止めない（ログだけ出す）。
        """
        task = asyncio.get_running_loop().create_task(self._run(on_tick))
        return AnimationHandle(task)

    async def _run(self, on_tick: Callable[[float], None]) -> None:
        logger.info(
            "Animation started (tick_rate=%.1f/s, step=%.1fs)", self.tick_rate, self.step
        )
        try:
            while True:
                time = self.tick()
                try:
                    on_tick(time)
                except Exception as e:
                    logger.warning("Tick at t=%.0f failed: %s", time, e)
                await asyncio.sleep(self.interval_sec)
        except asyncio.CancelledError:
            logger.info("Animation stopped after %d ticks", self.ticks)
            raise


def run_ticks(driver: AnimationDriver, on_tick: Callable[[float], None], count: int) -> Optional[float]:
    """tick を count 回だけ同期的に回す（タイマーなし）。最後の時刻を返す。"""
    time: Optional[float] = None
    for _ in range(count):
        time = driver.tick()
        on_tick(time)
    return time
