# thetrains/scales.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class LinearScale:
    """
    domain → range の線形写像（invert で逆写像）

    - clamp=True の場合、入力を domain（invert では range）の範囲に丸める。
    - domain の幅がゼロの場合は range の始点を返す。
    """
    domain: Tuple[float, float]
    range: Tuple[float, float]
    clamp: bool = False

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return r0
        t = (value - d0) / (d1 - d0)
        if self.clamp:
            t = max(0.0, min(1.0, t))
        return r0 + t * (r1 - r0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return d0
        t = (pixel - r0) / (r1 - r0)
        if self.clamp:
            t = max(0.0, min(1.0, t))
        return d0 + t * (d1 - d0)


def extent(values: Iterable[float]) -> Tuple[float, float]:
    """(min, max)。空なら ValueError。"""
    values = list(values)
    if not values:
        raise ValueError("extent of an empty sequence")
    return (min(values), max(values))


def distance_scale(ordinate_extent: Tuple[float, float], width: float) -> LinearScale:
    """ヘッダーの縦軸座標（路線上の距離）→ x ピクセル"""
    return LinearScale(domain=ordinate_extent, range=(0.0, width))


def time_scale(span: Tuple[float, float], top: float, height: float) -> LinearScale:
    """unix 秒 → y ピクセル（カレンダーを考慮しない線形写像）"""
    return LinearScale(domain=span, range=(top, height), clamp=True)
