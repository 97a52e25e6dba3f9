# thetrains/render.py
from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

from .marey import MareyPath
from .network_models import Point

logger = logging.getLogger(__name__)

Glyph = Tuple[str, Point]


class Renderer(Protocol):
    """
    描画レイヤー側のインターフェース。

    エンジンはキー付きの描画命令だけを渡し、DOM/SVG などの更新方法には関与しない。

    - place_glyphs: 地図上の列車グリフ（trip_id, 座標）と非表示にする trip_id
    - draw_paths: Marey の全列車パスと、揃えた（相対）Marey のパス
    - mark_trips: ハイライト中・ホバー中の trip_id（無ければ None）
    - show_labels: 表示する駅ラベルのヘッダーキー
    """

    def place_glyphs(self, glyphs: List[Glyph], hidden: List[str]) -> None:
        ...

    def draw_paths(self, paths: List[MareyPath], lined_up_paths: List[MareyPath]) -> None:
        ...

    def mark_trips(self, highlighted: Optional[str], hovered: Optional[str]) -> None:
        ...

    def show_labels(self, keys: List[str]) -> None:
        ...


class NullRenderer:
    """何も描画しない"""

    def place_glyphs(self, glyphs: List[Glyph], hidden: List[str]) -> None:
        pass

    def draw_paths(self, paths: List[MareyPath], lined_up_paths: List[MareyPath]) -> None:
        pass

    def mark_trips(self, highlighted: Optional[str], hovered: Optional[str]) -> None:
        pass

    def show_labels(self, keys: List[str]) -> None:
        pass


class LoggingRenderer:
    """描画命令の件数をログに出すだけのレンダラー（動作確認用）"""

    def __init__(self) -> None:
        self.frames = 0

    def place_glyphs(self, glyphs: List[Glyph], hidden: List[str]) -> None:
        self.frames += 1
        logger.debug("Frame %d: %d glyphs shown, %d hidden", self.frames, len(glyphs), len(hidden))

    def draw_paths(self, paths: List[MareyPath], lined_up_paths: List[MareyPath]) -> None:
        strokes = sum(len(p.segments()) for p in paths)
        logger.info(
            "Drawing %d Marey paths (%d strokes), %d lined-up paths",
            len(paths),
            strokes,
            len(lined_up_paths),
        )

    def mark_trips(self, highlighted: Optional[str], hovered: Optional[str]) -> None:
        logger.debug("Highlighted trip: %s, hovered trip: %s", highlighted, hovered)

    def show_labels(self, keys: List[str]) -> None:
        logger.debug("Station labels: %s", ", ".join(keys))
