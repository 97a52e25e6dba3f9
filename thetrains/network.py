# thetrains/network.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

from .config import Margin, get_line_config
from .errors import UnknownStation
from .network_models import Link, Point, Station

logger = logging.getLogger(__name__)


@dataclass
class EndDot:
    """路線の終点に打つドット"""
    station_id: str
    line: str
    color: str
    position: Point
    radius: float


@dataclass
class MapLayout:
    """
    地図グリフの描画用レイアウト（描画レイヤーにそのまま渡す）
    """
    svg_width: float
    svg_height: float
    margin: Margin
    scale: float
    stations: Dict[str, Point]
    links: List[tuple[Link, Point, Point]]
    end_dots: List[EndDot]
    end_dot_radius: float


class Network:
    """
    駅と路線区間からなる静的ネットワーク。

    - 駅・リンクは読み込み後に変更しない。
    - normalize() は駅の描画座標（positions）だけを差し替える。
    """

    def __init__(self, stations: Iterable[Station], links: Iterable[Link]) -> None:
        self._stations: Dict[str, Station] = {}
        for station in stations:
            if station.id in self._stations:
                logger.warning("Duplicate station id %s; keeping the first one", station.id)
                continue
            self._stations[station.id] = station

        self._links_by_line: Dict[str, List[Link]] = {}
        for link in links:
            for station_id in (link.source_station_id, link.target_station_id):
                if station_id not in self._stations:
                    raise UnknownStation(station_id, f"link on line {link.line}")
            self._links_by_line.setdefault(link.line, []).append(link)

        # 描画座標（初期値は元データの座標そのまま）
        self.positions: Dict[str, Point] = {s.id: s.position for s in self._stations.values()}
        # normalize() で選ばれた一様スケール
        self.scale: float = 1.0

    # ========================================================================
    # 参照系
    # ========================================================================

    @property
    def stations(self) -> List[Station]:
        return list(self._stations.values())

    @property
    def lines(self) -> List[str]:
        return sorted(self._links_by_line)

    def has_station(self, station_id: str) -> bool:
        return station_id in self._stations

    def station_by_id(self, station_id: str) -> Station:
        station = self._stations.get(station_id)
        if station is None:
            raise UnknownStation(station_id)
        return station

    def position_of(self, station_id: str) -> Point:
        """駅の描画座標を返す。存在しなければ UnknownStation。"""
        pos = self.positions.get(station_id)
        if pos is None:
            raise UnknownStation(station_id)
        return pos

    def segments_for_line(self, line: str) -> List[Link]:
        return list(self._links_by_line.get(line, []))

    def lines_at(self, station_id: str) -> List[str]:
        """駅を通る路線（路線名順）"""
        return [
            line
            for line, links in sorted(self._links_by_line.items())
            if any(station_id in (l.source_station_id, l.target_station_id) for l in links)
        ]

    # ========================================================================
    # 正規化・レイアウト
    # ========================================================================

    def extent(self) -> tuple[float, float, float, float]:
        """元データ座標の (min_x, max_x, min_y, max_y)"""
        if not self._stations:
            return (0.0, 0.0, 0.0, 0.0)
        xs = [s.position[0] for s in self._stations.values()]
        ys = [s.position[1] for s in self._stations.values()]
        return (min(xs), max(xs), min(ys), max(ys))

    def normalize(self, width: float, height: float) -> float:
        """
        全駅の座標を width x height の箱に収まるよう一様スケールで拡縮する。

        - スケールは x/y それぞれの倍率の小さい方（縦横比を保つ）。
        - 幅または高さがゼロの軸は倍率の候補から外す。
        - 選んだスケールは self.scale に記録して返す。
        """
        min_x, max_x, min_y, max_y = self.extent()
        x_range = max_x - min_x
        y_range = max_y - min_y

        candidates = []
        if x_range > 0:
            candidates.append(width / x_range)
        if y_range > 0:
            candidates.append(height / y_range)
        scale = min(candidates) if candidates else 1.0

        self.positions = {
            s.id: ((s.position[0] - min_x) * scale, (s.position[1] - min_y) * scale)
            for s in self._stations.values()
        }
        self.scale = scale
        logger.debug("Normalized %d stations with scale %.4f", len(self.positions), scale)
        return scale

    def map_layout(
        self,
        outer_width: float,
        outer_height: float,
        margin: Margin,
        min_width: float = 250.0,
    ) -> MapLayout:
        """
        地図グリフ全体のレイアウトを計算する（正規化も行う）。
        """
        width = outer_width - margin.left - margin.right
        height = outer_height - margin.top - margin.bottom
        scale = self.normalize(width, height)

        min_x, max_x, min_y, max_y = self.extent()
        svg_width = max(min_width, scale * (max_x - min_x) + margin.left + margin.right)
        svg_height = scale * (max_y - min_y) + margin.top + margin.bottom
        end_dot_radius = max(0.2 * scale, 3.0)

        links = [
            (link, self.positions[link.source_station_id], self.positions[link.target_station_id])
            for line in self.lines
            for link in self._links_by_line[line]
        ]

        end_dots: List[EndDot] = []
        for line in self.lines:
            conf = get_line_config(line)
            if conf is None:
                continue
            for station_id in conf.end_stations:
                if station_id not in self.positions:
                    logger.warning("End station %s of line %s is not in the network", station_id, line)
                    continue
                end_dots.append(
                    EndDot(
                        station_id=station_id,
                        line=line,
                        color=conf.color,
                        position=self.positions[station_id],
                        radius=end_dot_radius,
                    )
                )

        return MapLayout(
            svg_width=svg_width,
            svg_height=svg_height,
            margin=margin,
            scale=scale,
            stations=dict(self.positions),
            links=links,
            end_dots=end_dots,
            end_dot_radius=end_dot_radius,
        )
