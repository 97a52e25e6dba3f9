# thetrains/view_state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set


@dataclass
class TimeCursor:
    """
    表示中の時刻（unix 秒）。

    書き込むのはアニメーションの tick（advance）とユーザーの時刻選択（select）だけ。
    """
    value: float
    min_time: float
    max_time: float

    @property
    def span(self) -> float:
        return self.max_time - self.min_time

    def advance(self, step: float) -> float:
        """
        step 秒進める。max_time を超えたら min_time から折り返す
        （超過分は剰余として持ち越す）。
        """
        nxt = self.value + step
        if nxt > self.max_time:
            if self.span > 0:
                nxt = self.min_time + (nxt - self.min_time) % self.span
            else:
                nxt = self.min_time
        self.value = nxt
        return nxt

    def select(self, time: float) -> float:
        self.value = time
        return time


@dataclass
class SelectionState:
    """
    ハイライト・ホバー中の列車と、ハイライトの固定状態。

    frozen の間はハイライト中の列車を差し替えない（ホバーは変わる）。
    """
    highlighted_trip: Optional[str] = None
    hovered_trip: Optional[str] = None
    frozen: bool = False

    @property
    def is_active(self) -> bool:
        return self.highlighted_trip is not None

    def highlight(self, trip_id: Optional[str]) -> bool:
        """固定中はハイライトを変えない。変えたら True。"""
        if self.frozen:
            return False
        self.highlighted_trip = trip_id
        return True

    def hover(self, trip_id: str) -> None:
        self.hovered_trip = trip_id

    def unhover(self) -> None:
        self.hovered_trip = None

    def toggle_frozen(self, frozen: Optional[bool] = None) -> bool:
        self.frozen = (not self.frozen) if frozen is None else frozen
        return self.frozen

    def is_highlighted(self, trip_id: str) -> bool:
        return trip_id == self.highlighted_trip

    def is_hovered(self, trip_id: str) -> bool:
        return trip_id == self.hovered_trip


def visible_station_labels(
    label_keys: Iterable[str],
    end_keys: Set[str],
    title: Optional[str] = None,
    lines: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    表示すべき駅ラベル（ヘッダーキー）を返す。

    - 終点駅は常に表示する。
    - title（"stationId|line"）が指定されたら、そのキーも表示する。
    - lines が指定されたら "title|line" の各キーも表示する。
    """
    titles: Set[str] = set()
    if title:
        titles.add(title)
        if lines:
            titles.update(f"{title}|{line}" for line in lines)
        else:
            titles.add(title.split("|", 1)[0])

    result: List[str] = []
    for key in label_keys:
        if key in end_keys or key in titles:
            result.append(key)
    return result
