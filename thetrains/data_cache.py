# thetrains/data_cache.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import EngineError, UnknownStation
from .marey import StationHeader
from .network import Network
from .network_models import Link, Station
from .schedule import Schedule
from .timetable_models import StopEvent, Trip

logger = logging.getLogger(__name__)

NETWORK_FILE = "station-network.json"
TRIPS_FILE = "marey-trips.json"
HEADER_FILE = "marey-header.json"


@dataclass
class LoadReport:
    """読み込み時に捨てたデータの記録（最後にまとめて1回だけログに出す）"""
    errors: List[str] = field(default_factory=list)
    skipped_links: int = 0
    skipped_trips: int = 0

    def add(self, what: str, error: Exception) -> None:
        self.errors.append(f"{what}: {error}")

    @property
    def ok(self) -> bool:
        return not self.errors

    def log_summary(self) -> None:
        if self.ok:
            logger.info("All network links and trips loaded without errors")
            return
        logger.warning(
            "Skipped %d links and %d trips due to data errors (first 10): %s",
            self.skipped_links,
            self.skipped_trips,
            self.errors[:10],
        )


# ============================================================================
# ネットワーク
# ============================================================================

def _parse_stations(raw_nodes: Sequence[Mapping[str, Any]], report: LoadReport) -> List[Station]:
    """
    raw_nodes: [{"id": ..., "name": ..., "x": ..., "y": ...}, ...]
    """
    stations: List[Station] = []
    for idx, node in enumerate(raw_nodes):
        try:
            station_id = node.get("id")
            if not station_id:
                raise ValueError("node has no 'id'")
            stations.append(
                Station(
                    id=str(station_id),
                    name=str(node.get("name") or station_id),
                    position=(float(node["x"]), float(node["y"])),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            report.add(f"node[{idx}]", e)
    return stations


def _resolve_endpoint(
    value: Any,
    node_ids: Sequence[Optional[str]],
    known_ids: set[str],
) -> str:
    """
    リンクの source/target を駅IDに解決する。

    - 駅ID文字列、nodes のインデックス（d3 force レイアウト形式）、
      {"id": ...} の辞書のいずれも受け付ける。
    - インデックスは読み込み前の nodes の並びで数える。
      読み込めなかった node を指していれば UnknownStation。
    """
    if isinstance(value, Mapping):
        value = value.get("id")
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value < len(node_ids):
            raise UnknownStation(str(value), "node index out of range")
        value = node_ids[value]
        if value is None:
            raise UnknownStation("None", "node has no id")
    if value is None:
        raise UnknownStation("None", "link endpoint is missing")
    station_id = str(value)
    if station_id not in known_ids:
        raise UnknownStation(station_id)
    return station_id


def parse_network(raw: Mapping[str, Any], report: Optional[LoadReport] = None) -> Network:
    """
    {"nodes": [...], "links": [{"source", "target", "line"}]} を Network に変換する。

    存在しない駅を参照するリンクは捨てて report に記録する。
    """
    report = report if report is not None else LoadReport()
    raw_nodes = raw.get("nodes") or []
    stations = _parse_stations(raw_nodes, report)
    known_ids = {s.id for s in stations}
    node_ids = [
        str(node["id"]) if isinstance(node, Mapping) and node.get("id") else None
        for node in raw_nodes
    ]

    links: List[Link] = []
    for idx, row in enumerate(raw.get("links") or []):
        try:
            line = row.get("line")
            if not line:
                raise ValueError("link has no 'line'")
            links.append(
                Link(
                    line=str(line),
                    source_station_id=_resolve_endpoint(row.get("source"), node_ids, known_ids),
                    target_station_id=_resolve_endpoint(row.get("target"), node_ids, known_ids),
                )
            )
        except (UnknownStation, ValueError) as e:
            report.add(f"link[{idx}]", e)
            report.skipped_links += 1

    network = Network(stations, links)
    logger.info("Loaded network: %d stations, %d links", len(stations), len(links))
    return network


# ============================================================================
# 時刻表
# ============================================================================

def _validate_trip(trip: Trip) -> List[str]:
    """
    列車データの簡易妥当性チェック。
    問題があれば warning メッセージのリストを返す（致命的なものは ValueError）。
    """
    warnings: List[str] = []

    if not trip.stops:
        raise ValueError("trip has no stops")

    prev: Optional[float] = None
    for i, stop in enumerate(trip.stops):
        if prev is not None and stop.time < prev:
            raise ValueError(f"non-monotonic time at stop index {i} ({stop.station_id})")
        prev = stop.time

    if len(trip.stops) < 2:
        warnings.append("only one stop")

    return warnings


def parse_trip(trip_id: str, row: Mapping[str, Any], network: Network) -> Tuple[Trip, List[str]]:
    """
    {"line": ..., "begin": ..., "end": ..., "stops": [{"stop": ..., "time": ...}]}
    を Trip に変換する。

    - stops 中の null は捨て、その位置を gap_before に記録する。
    - begin/end は停車時刻から求め直す（元データの値と違えば warning）。
    - ネットワークに無い駅があれば UnknownStation。
    """
    line = row.get("line")
    if not line:
        raise ValueError("trip has no 'line'")
    line = str(line)

    stops: List[StopEvent] = []
    gaps: set[int] = set()
    for raw_stop in row.get("stops") or []:
        if not raw_stop:
            gaps.add(len(stops))
            continue
        station_id = raw_stop.get("stop")
        if station_id is None or raw_stop.get("time") is None:
            raise ValueError(f"stop entry is missing 'stop' or 'time': {raw_stop}")
        station_id = str(station_id)
        if not network.has_station(station_id):
            raise UnknownStation(station_id, f"trip {trip_id}")
        stops.append(StopEvent(station_id=station_id, line=line, time=float(raw_stop["time"])))

    # 先頭・末尾の欠けはパスの切れ目にならない
    gaps = {g for g in gaps if 0 < g < len(stops)}

    if not stops:
        raise ValueError("trip has no stops")

    trip = Trip(
        trip_id=trip_id,
        line=line,
        stops=stops,
        begin=stops[0].time,
        end=stops[-1].time,
        gap_before=frozenset(gaps),
    )
    warnings = _validate_trip(trip)

    for name, derived in (("begin", trip.begin), ("end", trip.end)):
        given = row.get(name)
        if given is not None and float(given) != derived:
            warnings.append(f"'{name}' {given} differs from stop times ({derived:.0f})")

    return trip, warnings


def _iter_trip_rows(raw: Any) -> Iterable[Tuple[str, Mapping[str, Any]]]:
    """{trip_id: {...}} と [{"trip": trip_id, ...}] の両方を受け付ける"""
    if isinstance(raw, Mapping):
        for trip_id, row in raw.items():
            yield str(trip_id), row
        return
    for idx, row in enumerate(raw or []):
        # 辞書でない行は parse_trip 側で弾く
        trip_id = row.get("trip", idx) if isinstance(row, Mapping) else idx
        yield str(trip_id), row


def parse_trips(raw: Any, network: Network, report: Optional[LoadReport] = None) -> Schedule:
    """
    時刻表データを Schedule に変換する。不正な列車はスキップし、report に記録する。
    """
    report = report if report is not None else LoadReport()
    trips: List[Trip] = []

    for trip_id, row in _iter_trip_rows(raw):
        try:
            trip, warnings = parse_trip(trip_id, row, network)
        except (EngineError, ValueError, TypeError, AttributeError) as e:
            report.add(f"trip {trip_id}", e)
            report.skipped_trips += 1
            continue

        if warnings:
            logger.warning("Trip %s validation warnings: %s", trip_id, "; ".join(warnings))
        trips.append(trip)

    schedule = Schedule(trips)
    logger.info("Loaded %d trips", len(schedule))
    return schedule


def parse_header(raw: Mapping[str, Sequence[float]]) -> StationHeader:
    header = StationHeader(raw)
    logger.info("Loaded %d station header entries", len(header))
    return header


def build_models(
    raw_network: Mapping[str, Any],
    raw_trips: Any,
    raw_header: Mapping[str, Sequence[float]],
) -> Tuple[Network, Schedule, StationHeader, LoadReport]:
    """読み込み済みの辞書からモデル一式を作り、エラーをまとめて報告する"""
    report = LoadReport()
    network = parse_network(raw_network, report)
    schedule = parse_trips(raw_trips, network, report)
    header = parse_header(raw_header)
    report.log_summary()
    return network, schedule, header, report


# ============================================================================
# ファイル読み込み
# ============================================================================

class DataCache:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.raw_network: Dict[str, Any] = {}
        self.raw_trips: Any = {}
        self.raw_header: Dict[str, Any] = {}

    def _load_json(self, rel_path: str) -> Any:
        path = self.data_dir / rel_path
        if not path.exists():
            raise FileNotFoundError(f"JSON file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def load_all(self) -> None:
        """静的データを全て読み込む"""
        self.raw_network = self._load_json(NETWORK_FILE)
        self.raw_trips = self._load_json(TRIPS_FILE)
        self.raw_header = self._load_json(HEADER_FILE)

        logger.info(
            "Loaded raw data from %s: %d nodes, %d trips, %d header entries",
            self.data_dir,
            len(self.raw_network.get("nodes") or []),
            len(self.raw_trips),
            len(self.raw_header),
        )
