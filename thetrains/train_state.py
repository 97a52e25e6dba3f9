# thetrains/train_state.py
from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import List

from .timetable_models import Trip

logger = logging.getLogger(__name__)


# ============================================================================
# Dataclass 定義
# ============================================================================

@dataclass
class TrainSectionState:
    """
    列車が今どの駅間にいて、どこまで進んでいるかを表す抽象状態。

    停車イベント間の区間は閉区間 [segment_start, segment_end] で扱う。
    """
    trip: Trip

    from_station_id: str
    to_station_id: str
    ratio: float  # 0.0〜1.0

    # 区間情報（デバッグ用）
    segment_index: int
    segment_start: float
    segment_end: float
    current_time: float

    @property
    def is_degenerate(self) -> bool:
        """到着と発車が同時刻の区間（データ異常）"""
        return self.segment_end <= self.segment_start


# ============================================================================
# 区間探索
# ============================================================================

def locate_segment(trip: Trip, time: float) -> int:
    """
    stops[i].time <= time <= stops[i+1].time となる i を返す。

    - time が停車時刻と一致する場合は、その停車を始点とする区間（ratio 0）を選ぶ。
    - time == trip.end の場合は最後の区間を返す。
    - 停車が1つしかない列車は 0 を返す。
    - 呼び出し側で begin <= time <= end を保証すること。
    """
    last = len(trip.stops) - 1
    if last <= 0:
        return 0

    i = bisect.bisect_right(trip.stop_times, time) - 1
    if i < 0:
        i = 0
    if i >= last:
        i = last - 1
    return i


def compute_ratio(start: float, end: float, time: float) -> float:
    """
    区間内の進捗率を 0.0〜1.0 で返す。

    到着と発車が同時刻（ゼロ長区間）の場合はゼロ除算せずに 0.0 とする。
    """
    duration = end - start
    if duration <= 0:
        return 0.0

    ratio = (time - start) / duration
    # 浮動小数点誤差を防ぐため軽くクリップ
    if ratio < 0.0:
        ratio = 0.0
    elif ratio > 1.0:
        ratio = 1.0
    return ratio


# ============================================================================
# メイン関数
# ============================================================================

def trip_state_at(trip: Trip, time: float) -> TrainSectionState | None:
    """
    指定時刻における1本の列車の抽象状態を返す。

    - time が [begin, end] の外なら None（描画しない）。
    """
    if time < trip.begin or time > trip.end:
        return None

    i = locate_segment(trip, time)
    from_stop = trip.stops[i]
    to_stop = trip.stops[i + 1] if i + 1 < len(trip.stops) else from_stop

    return TrainSectionState(
        trip=trip,
        from_station_id=from_stop.station_id,
        to_station_id=to_stop.station_id,
        ratio=compute_ratio(from_stop.time, to_stop.time, time),
        segment_index=i,
        segment_start=from_stop.time,
        segment_end=to_stop.time,
        current_time=time,
    )


def trip_states_at(trips: List[Trip], time: float) -> List[TrainSectionState]:
    """複数列車の状態をまとめて計算する（運行時間外の列車は含めない）"""
    result: List[TrainSectionState] = []
    degenerate = 0

    for trip in trips:
        state = trip_state_at(trip, time)
        if state is None:
            continue
        if state.is_degenerate:
            degenerate += 1
        result.append(state)

    if degenerate:
        logger.debug("%d trains are on zero-duration segments at t=%.0f", degenerate, time)

    return result
