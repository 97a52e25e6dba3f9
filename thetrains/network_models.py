# thetrains/network_models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

# 平面座標 (x, y)
Point = Tuple[float, float]


@dataclass(frozen=True)
class Station:
    """1駅分の静的情報（読み込み後は変更しない）"""

    # 例: "place-pktrm"
    id: str
    # 例: "Park Street"
    name: str
    # 元データの平面座標（正規化前）
    position: Point


@dataclass(frozen=True)
class Link:
    """
    1路線の隣接2駅を結ぶ描画単位の辺。

    垂直方向のオフセットなどの派生ジオメトリは保持せず、必要なときに計算する。
    """

    # 例: "red"
    line: str
    source_station_id: str
    target_station_id: str
