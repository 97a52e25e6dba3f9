# thetrains/marey.py
"""
Marey ダイアグラム（時間-距離図）への投影

- x 軸: 路線上の距離（Station Header Table の縦軸座標）
- y 軸: 時刻（unix 秒を線形に写像）

各列車の停車列を (x, y) の点列に変換する。ヘッダーに無い停車は BREAK
（ペンを上げる印）として出力し、列車全体を捨てることはしない。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config import EngineConfig, Margin, get_line_config
from .network import Network
from .network_models import Point
from .scales import LinearScale, distance_scale, extent, time_scale
from .schedule import Schedule
from .timetable_models import Trip, header_key

logger = logging.getLogger(__name__)


class _Break:
    """パスの切れ目"""

    _instance: Optional["_Break"] = None

    def __new__(cls) -> "_Break":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BREAK"


BREAK = _Break()

PathPoint = Union[Point, _Break]


# ============================================================================
# Station Header Table
# ============================================================================

class StationHeader:
    """
    "stationId|line" → 路線上の距離（縦軸座標）の対応表

    元データは {key: [ordinate, ...]} の形で、先頭要素だけを使う。
    """

    def __init__(self, table: Mapping[str, Sequence[float]]) -> None:
        self._ordinates: Dict[str, float] = {}
        for key, value in table.items():
            if not value:
                logger.warning("Header entry %s has no ordinate; ignoring", key)
                continue
            self._ordinates[key] = float(value[0])

        # x 座標 → キーの逆引き（ホバー中の駅を求める）。同じ座標なら後のキーが勝つ
        self._by_ordinate: Dict[float, str] = {}
        for key, ordinate in self._ordinates.items():
            self._by_ordinate[ordinate] = key

    def __len__(self) -> int:
        return len(self._ordinates)

    def __contains__(self, key: str) -> bool:
        return key in self._ordinates

    def keys(self) -> List[str]:
        return list(self._ordinates)

    def ordinate(self, key: str) -> Optional[float]:
        return self._ordinates.get(key)

    def extent(self) -> tuple[float, float]:
        if not self._ordinates:
            return (0.0, 0.0)
        return extent(self._ordinates.values())

    def key_at_ordinate(self, ordinate: float) -> Optional[str]:
        return self._by_ordinate.get(ordinate)


# ============================================================================
# 投影
# ============================================================================

def anchor_y(trip: Trip, y_scale: LinearScale) -> float:
    """
    列車の基準 y 座標（最初の停車時刻の y）を返す。

    初回だけ計算して trip.orig_y に保存し、以降はその値を返す。
    """
    if trip.orig_y is None:
        trip.orig_y = y_scale(trip.stops[0].time)
    return trip.orig_y


def project_trip(
    trip: Trip,
    header: StationHeader,
    x_scale: LinearScale,
    y_scale: LinearScale,
    relative: bool = False,
) -> List[PathPoint]:
    """
    1本の列車の停車列を Marey 座標の点列に変換する。

    - ヘッダーに無い停車は BREAK にする。
    - 元データで欠けていた停車の位置にも BREAK を入れる。
    - relative=True の場合、最初の点が (0, 0) になるよう平行移動する
      （最初の停車がヘッダーに無い場合は、最初に座標が決まった停車を原点にする）。
    """
    points: List[PathPoint] = []
    origin: Optional[Point] = None
    breaks = 0

    for i, stop in enumerate(trip.stops):
        if i in trip.gap_before:
            points.append(BREAK)

        ordinate = header.ordinate(header_key(stop.station_id, trip.line))
        if ordinate is None:
            points.append(BREAK)
            breaks += 1
            continue

        x = x_scale(ordinate)
        y = y_scale(stop.time)
        if origin is None:
            origin = (x, y)

        if relative:
            points.append((x - origin[0], y - origin[1]))
        else:
            points.append((x, y))

    if breaks:
        logger.debug("Trip %s has %d stops without header ordinates", trip.trip_id, breaks)

    return points


def split_runs(points: Iterable[PathPoint]) -> List[List[Point]]:
    """BREAK で区切って、連続した点列（1本のストローク）のリストにする"""
    runs: List[List[Point]] = []
    current: List[Point] = []
    for p in points:
        if p is BREAK:
            if current:
                runs.append(current)
            current = []
            continue
        current.append(p)
    if current:
        runs.append(current)
    return runs


# ============================================================================
# 描画命令
# ============================================================================

@dataclass
class MareyPath:
    """1本の列車の描画命令（trip_id をキーにする）"""
    trip_id: str
    line: str
    anchor_y: float
    points: List[PathPoint]

    def segments(self) -> List[List[Point]]:
        return split_runs(self.points)


@dataclass
class StationLabel:
    key: str
    station_id: str
    name: str
    x: float
    is_end: bool


@dataclass
class MareyLayout:
    """Marey ダイアグラムの外枠と描画領域のサイズ"""
    outer_width: float
    outer_height: float
    margin: Margin
    top_padding: float = 15.0

    @property
    def width(self) -> float:
        return self.outer_width - self.margin.left - self.margin.right

    @property
    def height(self) -> float:
        return self.outer_height - self.margin.top - self.margin.bottom


@dataclass
class MareyFrame:
    """1回分のレンダリング結果"""
    layout: MareyLayout
    x_scale: LinearScale
    y_scale: LinearScale
    paths: List[MareyPath]
    lined_up_y_scale: LinearScale
    lined_up_paths: List[MareyPath]
    labels: List[StationLabel] = field(default_factory=list)


def lined_up_scale(span_start: float, longest: float, height: float) -> LinearScale:
    """
    揃えた Marey 用の時間スケール。最長の列車がちょうど高さに収まる。
    """
    return LinearScale(domain=(span_start, span_start + longest), range=(0.0, height))


class MareyProjector:
    """
    全列車の Marey 投影を管理する。

    - 幅が変わったときだけ render() で再計算する（同じ幅なら None を返す）。
    - 列車の基準 y 座標は一度だけ計算してキャッシュする。
    """

    def __init__(
        self,
        header: StationHeader,
        schedule: Schedule,
        network: Network,
        config: EngineConfig,
    ) -> None:
        self.header = header
        self.schedule = schedule
        self.network = network
        self.config = config
        self.last_width: Optional[int] = None
        self.frame: Optional[MareyFrame] = None

    def layout_for(self, outer_width: float) -> MareyLayout:
        return MareyLayout(
            outer_width=outer_width,
            outer_height=self.config.marey_outer_height,
            margin=self.config.marey_margin,
            top_padding=self.config.marey_top_padding,
        )

    def render(self, outer_width: float) -> Optional[MareyFrame]:
        width = int(round(outer_width))
        if width == self.last_width:
            return None
        self.last_width = width

        layout = self.layout_for(width)
        x_scale = distance_scale(self.header.extent(), layout.width)
        y_scale = time_scale(self.schedule.time_span(), layout.top_padding, layout.height)
        lined_scale = lined_up_scale(
            self.schedule.time_span()[0],
            self.schedule.longest_duration(),
            layout.height,
        )

        paths: List[MareyPath] = []
        lined_up: List[MareyPath] = []
        for trip in self.schedule:
            anchor = anchor_y(trip, y_scale)
            paths.append(
                MareyPath(
                    trip_id=trip.trip_id,
                    line=trip.line,
                    anchor_y=anchor,
                    points=project_trip(trip, self.header, x_scale, y_scale),
                )
            )
            lined_up.append(
                MareyPath(
                    trip_id=trip.trip_id,
                    line=trip.line,
                    anchor_y=0.0,
                    points=project_trip(trip, self.header, x_scale, lined_scale, relative=True),
                )
            )

        self.frame = MareyFrame(
            layout=layout,
            x_scale=x_scale,
            y_scale=y_scale,
            paths=paths,
            lined_up_y_scale=lined_scale,
            lined_up_paths=lined_up,
            labels=self._station_labels(x_scale),
        )
        logger.info("Rendered Marey diagram at width %d (%d trips)", width, len(paths))
        return self.frame

    def _station_labels(self, x_scale: LinearScale) -> List[StationLabel]:
        labels: List[StationLabel] = []
        for key in self.header.keys():
            station_id, _, line = key.partition("|")
            if not self.network.has_station(station_id):
                continue
            conf = get_line_config(line)
            labels.append(
                StationLabel(
                    key=key,
                    station_id=station_id,
                    name=self.network.station_by_id(station_id).name,
                    x=x_scale(self.header.ordinate(key)),
                    is_end=bool(conf and station_id in conf.end_stations),
                )
            )
        return labels

    # ========================================================================
    # ポインタ位置 → 駅 / 時刻
    # ========================================================================

    def station_at(self, pixel_x: float) -> Optional[str]:
        """ポインタの x 座標にある駅のヘッダーキーを返す（無ければ None）"""
        if self.frame is None:
            return None
        return self.header.key_at_ordinate(round(self.frame.x_scale.invert(pixel_x)))

    def time_at(self, pixel_x: float, pixel_y: float) -> Optional[float]:
        """ポインタ位置の時刻を返す。描画領域の外なら None。"""
        if self.frame is None:
            return None
        if not (0 < pixel_x < self.frame.layout.width):
            return None
        return self.frame.y_scale.invert(pixel_y)
