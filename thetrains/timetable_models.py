# thetrains/timetable_models.py
from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import FrozenSet, List, Optional


def header_key(station_id: str, line: str) -> str:
    """Station Header Table のキー（例: "place-pktrm|red"）"""
    return f"{station_id}|{line}"


@dataclass(frozen=True)
class StopEvent:
    """1駅分の停車イベント（時刻は unix 秒）"""

    station_id: str
    line: str
    time: float

    @property
    def key(self) -> str:
        return header_key(self.station_id, self.line)


@dataclass
class Trip:
    """1本の列車の運行（停車イベントは時刻順）"""

    # 例: "R-5480A3D4"
    trip_id: str
    # 例: "red"
    line: str

    # 停車駅のリスト（時刻の昇順、空ではない）
    stops: List[StopEvent]

    # 最初 / 最後の停車時刻
    begin: float
    end: float

    # 元データで停車が欠けていた位置（stops[i] の直前でパスを切る）
    gap_before: FrozenSet[int] = frozenset()

    # Marey 上の基準 y 座標（初回計算時に一度だけ書き込まれるキャッシュ）
    orig_y: Optional[float] = field(default=None, compare=False, repr=False)

    @property
    def duration(self) -> float:
        return self.end - self.begin

    def is_active_at(self, time: float) -> bool:
        return self.begin <= time <= self.end

    @cached_property
    def stop_times(self) -> List[float]:
        """停車時刻の列（二分探索用）"""
        return [s.time for s in self.stops]
