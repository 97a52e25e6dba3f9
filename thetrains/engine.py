# thetrains/engine.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence

from .animation import AnimationDriver, AnimationHandle
from .config import EngineConfig
from .data_cache import LoadReport, build_models
from .errors import EmptySchedule, EngineError
from .marey import MareyFrame, MareyProjector, StationHeader
from .network import MapLayout, Network
from .render import Glyph, NullRenderer, Renderer
from .schedule import Schedule
from .train_position import train_state_to_position
from .train_state import trip_state_at
from .view_state import SelectionState, TimeCursor, visible_station_labels

logger = logging.getLogger(__name__)


class EngineHandle:
    """
    ホストアプリケーションから操作するエンジン本体。

    - tick(): 時刻カーソルを進め、地図グリフの位置を描画レイヤーに渡す。
    - on_resize(): Marey ダイアグラムを再計算する（最後の幅だけを描画する）。
    - select_time(): ユーザーのスクラブで時刻カーソルを直接書き換える。
    - hover_trip() / highlight_trip() / visible_labels_at(): ホバー・ハイライトを描画レイヤーに伝える。
    - teardown(): タイマーと保留中のリサイズを取り消す。
    """

    def __init__(
        self,
        network: Network,
        schedule: Schedule,
        header: StationHeader,
        renderer: Optional[Renderer] = None,
        config: Optional[EngineConfig] = None,
        report: Optional[LoadReport] = None,
    ) -> None:
        if len(schedule) == 0:
            raise EmptySchedule("Cannot start the engine without trips")

        self.config = config or EngineConfig()
        self.network = network
        self.schedule = schedule
        self.header = header
        self.renderer: Renderer = renderer or NullRenderer()
        self.report = report or LoadReport()

        min_time, max_time = schedule.time_span()
        self.cursor = TimeCursor(value=min_time, min_time=min_time, max_time=max_time)
        self.selection = SelectionState()
        self.driver = AnimationDriver(self.cursor, self.config.tick_rate)
        self.projector = MareyProjector(header, schedule, network, self.config)

        self.map_layout: MapLayout = network.map_layout(
            self.config.map_width,
            self.config.map_height,
            self.config.map_margin,
            self.config.map_min_width,
        )

        self._animation: Optional[AnimationHandle] = None
        self._resize_handle: Optional[asyncio.TimerHandle] = None
        self._pending_width: Optional[float] = None
        self._torn_down = False
        self._visible_labels: List[str] = []

    # ========================================================================
    # 地図グリフ
    # ========================================================================

    def render_trains_at(self, time: float) -> List[Glyph]:
        """
        指定時刻の全列車グリフを計算して描画レイヤーに渡す。

        - 運行時間外の列車は hidden に入る。
        - 位置が計算できない列車も hidden にし、WARNING を出す（ループは止めない）。
        """
        glyphs: List[Glyph] = []
        hidden: List[str] = []
        failed = 0

        for trip in self.schedule:
            try:
                state = trip_state_at(trip, time)
                if state is None:
                    hidden.append(trip.trip_id)
                    continue
                pos = train_state_to_position(state, self.network, self.config.radius)
            except EngineError as e:
                logger.warning("Hiding train %s at t=%.0f: %s", trip.trip_id, time, e)
                hidden.append(trip.trip_id)
                failed += 1
                continue
            glyphs.append((trip.trip_id, pos.point))

        if failed:
            logger.info("Hid %d trains due to errors", failed)

        self.renderer.place_glyphs(glyphs, hidden)
        return glyphs

    def tick(self) -> List[Glyph]:
        time = self.driver.tick()
        return self.render_trains_at(time)

    def select_time(self, time: float) -> List[Glyph]:
        self.driver.select_time(time)
        return self.render_trains_at(time)

    def select_pixel(self, pixel_x: float, pixel_y: float) -> Optional[float]:
        """Marey 上のポインタ位置から時刻を選ぶ。描画領域の外なら何もしない。"""
        time = self.projector.time_at(pixel_x, pixel_y)
        if time is None:
            return None
        self.select_time(time)
        return time

    def start(self) -> AnimationHandle:
        """実行中のイベントループ上でアニメーションを開始する"""
        if self._animation is not None and self._animation.running:
            return self._animation
        self.render_trains_at(self.cursor.value)
        self._animation = self.driver.start(self.render_trains_at)
        return self._animation

    # ========================================================================
    # Marey ダイアグラム
    # ========================================================================

    def render_marey(self, width: float) -> Optional[MareyFrame]:
        frame = self.projector.render(width)
        if frame is not None:
            self.renderer.draw_paths(frame.paths, frame.lined_up_paths)
        return frame

    def on_resize(self, width: float) -> None:
        """
        幅の変更を受け取る。

        イベントループが動いていれば resize_debounce_sec だけ待ってから
        最後の幅で描画する。ループが無ければその場で描画する。
        """
        if self._torn_down:
            return
        self._pending_width = width

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._flush_resize()
            return

        if self._resize_handle is not None:
            self._resize_handle.cancel()
        self._resize_handle = loop.call_later(self.config.resize_debounce_sec, self._flush_resize)

    def _flush_resize(self) -> None:
        self._resize_handle = None
        width = self._pending_width
        self._pending_width = None
        if width is None:
            return
        try:
            self.render_marey(width)
        except EngineError as e:
            logger.error("Failed to render Marey diagram at width %.0f: %s", width, e)

    # ========================================================================
    # ホバー・ハイライト
    # ========================================================================

    def hover_trip(self, trip_id: str) -> None:
        self.selection.hover(trip_id)
        self._publish_selection()

    def unhover_trip(self) -> None:
        self.selection.unhover()
        self._publish_selection()

    def highlight_trip(self, trip_id: Optional[str]) -> bool:
        """
        クリックされた列車をハイライトする（None で解除）。
        固定中は何もしないで False を返す。
        """
        if trip_id is not None and self.schedule.get(trip_id) is None:
            logger.warning("Ignoring highlight of unknown trip %s", trip_id)
            return False
        changed = self.selection.highlight(trip_id)
        if changed:
            self._publish_selection()
        return changed

    def toggle_frozen(self, frozen: Optional[bool] = None) -> bool:
        return self.selection.toggle_frozen(frozen)

    def _publish_selection(self) -> None:
        self.renderer.mark_trips(self.selection.highlighted_trip, self.selection.hovered_trip)

    @property
    def visible_labels(self) -> List[str]:
        return list(self._visible_labels)

    def visible_labels_at(self, pixel_x: float) -> List[str]:
        """
        ポインタの x 座標にある駅のラベルを表示する。
        駅が無ければ表示を変えずに現在のラベルを返す。
        """
        title = self.projector.station_at(pixel_x)
        if title is None:
            return self.visible_labels
        return self._show_labels(title)

    def highlight_station(self, station_id: str) -> List[str]:
        """地図上の駅に対応する、その駅を通る全路線のラベルを表示する"""
        return self._show_labels(station_id, self.network.lines_at(station_id))

    def _show_labels(self, title: Optional[str], lines: Optional[List[str]] = None) -> List[str]:
        frame = self.projector.frame
        if frame is None:
            return []
        end_keys = {label.key for label in frame.labels if label.is_end}
        self._visible_labels = visible_station_labels(
            [label.key for label in frame.labels], end_keys, title, lines
        )
        self.renderer.show_labels(self._visible_labels)
        return self.visible_labels

    # ========================================================================
    # 後片付け
    # ========================================================================

    def teardown(self) -> None:
        self._torn_down = True
        if self._animation is not None:
            self._animation.stop()
            self._animation = None
        if self._resize_handle is not None:
            self._resize_handle.cancel()
            self._resize_handle = None
        self._pending_width = None
        logger.info("Engine torn down after %d ticks", self.driver.ticks)


def init(
    network: Mapping[str, Any],
    trips: Any,
    header: Mapping[str, Sequence[float]],
    renderer: Optional[Renderer] = None,
    config: Optional[EngineConfig] = None,
) -> EngineHandle:
    """
    読み込み済みのデータからエンジンを組み立てる。

    不正な列車・リンクはスキップしてまとめてログに出す。
    列車が1本も残らなければ EmptySchedule。
    """
    net, schedule, station_header, report = build_models(network, trips, header)
    return EngineHandle(net, schedule, station_header, renderer=renderer, config=config, report=report)
