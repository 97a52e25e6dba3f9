# thetrains/train_position.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from .errors import EngineError
from .network import Network
from .network_models import Point
from .schedule import Schedule
from .timetable_models import Trip
from .train_state import TrainSectionState, trip_state_at, trip_states_at

logger = logging.getLogger(__name__)


@dataclass
class TrainPosition:
    """
    列車グリフの「地図上の位置」と付随情報

    - 描画レイヤーに渡しやすいように、プリミティブ型のみを持つ
    """
    trip_id: str
    line: str

    from_station_id: str
    to_station_id: str
    ratio: float

    # 描画座標（線路から radius だけ垂直方向にずらした位置）
    x: float
    y: float

    current_time: float

    @property
    def point(self) -> Point:
        return (self.x, self.y)


# ============================================================================
# ジオメトリ
# ============================================================================

def _linear_interpolate(from_pos: Point, to_pos: Point, ratio: float) -> Point:
    x = from_pos[0] + ratio * (to_pos[0] - from_pos[0])
    y = from_pos[1] + ratio * (to_pos[1] - from_pos[1])
    return (x, y)


def place_with_offset(from_pos: Point, to_pos: Point, ratio: float, radius: float) -> Point:
    """
    2駅間の進捗 ratio に対応する点を、進行方向に垂直な向きへ radius だけずらして返す。

    進行方向を90度回した向きにずらすので、同じ区間を逆向きに走る列車は
    線路の反対側に描かれる。
    """
    mid = _linear_interpolate(from_pos, to_pos, ratio)
    angle = math.atan2(to_pos[1] - from_pos[1], to_pos[0] - from_pos[0]) + math.pi / 2
    return (mid[0] + math.cos(angle) * radius, mid[1] + math.sin(angle) * radius)


# ============================================================================
# 列車状態 → 座標
# ============================================================================

def train_state_to_position(
    state: TrainSectionState,
    network: Network,
    radius: float,
) -> TrainPosition:
    """
    1本の列車状態を描画座標付きの TrainPosition に変換する。

    駅がネットワークに無い場合は UnknownStation を送出する
    （誤った位置に点を描かないため）。
    """
    from_pos = network.position_of(state.from_station_id)
    to_pos = network.position_of(state.to_station_id)
    x, y = place_with_offset(from_pos, to_pos, state.ratio, radius)

    return TrainPosition(
        trip_id=state.trip.trip_id,
        line=state.trip.line,
        from_station_id=state.from_station_id,
        to_station_id=state.to_station_id,
        ratio=state.ratio,
        x=x,
        y=y,
        current_time=state.current_time,
    )


def position_at(trip: Trip, time: float, network: Network, radius: float) -> Optional[Point]:
    """
    指定時刻の列車グリフの座標を返す。運行時間外なら None。
    """
    state = trip_state_at(trip, time)
    if state is None:
        return None
    return train_state_to_position(state, network, radius).point


def get_train_positions(
    time: float,
    schedule: Schedule,
    network: Network,
    radius: float,
) -> List[TrainPosition]:
    """
    指定時刻に運行中の全列車の位置を返す。

    - 座標が計算できない列車はスキップし、WARNING を出す。
    """
    result: List[TrainPosition] = []
    skipped = 0

    for state in trip_states_at(schedule.trips_active_at(time), time):
        try:
            result.append(train_state_to_position(state, network, radius))
        except EngineError as e:
            logger.warning(
                "Failed to place train %s at t=%.0f: %s",
                state.trip.trip_id,
                time,
                e,
            )
            skipped += 1

    if skipped > 0:
        logger.info("Skipped %d trains due to errors", skipped)

    return result


def debug_dump_positions_at(
    time: float,
    schedule: Schedule,
    network: Network,
    radius: float,
    limit: int = 10,
) -> None:
    """
    指定時刻の列車位置をコンソールにダンプするデバッグ用関数。
    """
    positions = get_train_positions(time, schedule, network, radius)

    print("\n" + "=" * 60)
    print(f"time (unix): {time:.0f}")
    print(f"列車数: {len(positions)}")
    print("=" * 60 + "\n")

    for i, pos in enumerate(positions[:limit], start=1):
        print(
            f"{i:2d}. {pos.trip_id:>12s} {pos.line:>8s} "
            f"{pos.from_station_id} → {pos.to_station_id} "
            f"({pos.ratio * 100:5.1f}%) "
            f"({pos.x:.2f}, {pos.y:.2f})"
        )

    if len(positions) > limit:
        print(f"\n... 他 {len(positions) - limit} 本\n")
