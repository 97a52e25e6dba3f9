# thetrains/config.py
"""
エンジン設定と路線定義モジュール

路線定義は SUPPORTED_LINES に追記する。
実行時の設定値は環境変数（.env も可）の THETRAINS_* で上書きできる。
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "THETRAINS_"


class LineConfig(BaseModel):
    """路線ごとの設定"""
    name: str                 # 表示名
    color: str                # 路線色（終点ドットの色）
    end_stations: List[str]   # 終点駅ID（地図に路線色のドットを打つ）


# サポートする路線の定義
SUPPORTED_LINES: Dict[str, LineConfig] = {
    "red": LineConfig(
        name="Red Line",
        color="#E12D27",
        end_stations=["place-asmnl", "place-alfcl", "place-brntn"],
    ),
    "orange": LineConfig(
        name="Orange Line",
        color="#E87200",
        end_stations=["place-forhl", "place-ogmnl"],
    ),
    "blue": LineConfig(
        name="Blue Line",
        color="#2F5DA6",
        end_stations=["place-wondl", "place-bomnl"],
    ),
}


def get_line_config(line: str) -> Optional[LineConfig]:
    """
    路線IDから設定を取得する。

    Returns:
        対応する LineConfig、未サポートの場合は None
    """
    return SUPPORTED_LINES.get(line)


class Margin(BaseModel):
    top: float
    right: float
    bottom: float
    left: float


class EngineConfig(BaseModel):
    """エンジン全体の設定"""

    # 1秒あたりの再計算回数（シミュレーション時間は 60 / tick_rate 秒ずつ進む）
    tick_rate: float = Field(default=10.0, gt=0)

    # 列車グリフを線路から垂直方向にずらす量（地図座標系）
    radius: float = Field(default=2.0, ge=0)

    data_dir: Path = Path("data")

    # 地図グリフ
    map_width: float = Field(default=283.0, gt=0)
    map_height: float = Field(default=283.0, gt=0)
    map_margin: Margin = Margin(top=20, right=30, bottom=10, left=10)
    map_min_width: float = 250.0

    # Marey ダイアグラム
    marey_width: float = Field(default=1200.0, gt=0)
    marey_outer_height: float = Field(default=3000.0, gt=0)
    marey_margin: Margin = Margin(top=100, right=10, bottom=0, left=260)
    marey_top_padding: float = 15.0

    # リサイズ通知をまとめる待ち時間（秒）
    resize_debounce_sec: float = Field(default=0.1, ge=0)

    log_level: str = "INFO"

    @property
    def step_seconds(self) -> float:
        """1 tick で進むシミュレーション時間（秒）"""
        return 60.0 / self.tick_rate

    @property
    def tick_interval_sec(self) -> float:
        """tick の実時間間隔（秒）"""
        return 1.0 / self.tick_rate


def load_config(env_file: Optional[Path] = None) -> EngineConfig:
    """
    環境変数から EngineConfig を組み立てる。

    - THETRAINS_TICK_RATE, THETRAINS_RADIUS, THETRAINS_DATA_DIR,
      THETRAINS_MAREY_WIDTH, THETRAINS_LOG_LEVEL などを読む。
    - 値の検証は pydantic に任せる（不正値は ValidationError）。
    """
    load_dotenv(env_file)

    overrides: Dict[str, str] = {}
    for name in EngineConfig.model_fields:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is None or not raw.strip():
            continue
        if name in ("map_margin", "marey_margin"):
            continue
        overrides[name] = raw.strip()

    return EngineConfig(**overrides)
