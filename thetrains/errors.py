# thetrains/errors.py
from __future__ import annotations


class EngineError(Exception):
    """エンジン内で発生するエラーの基底クラス"""


class UnknownStation(EngineError):
    """
    停車イベントまたはリンクが、ネットワークに存在しない駅IDを参照している。

    データ整合性エラー。読み込み時に該当の列車/リンクだけを捨てて記録する。
    """

    def __init__(self, station_id: str, context: str | None = None) -> None:
        self.station_id = station_id
        self.context = context
        msg = f"Unknown station id: {station_id}"
        if context:
            msg += f" ({context})"
        super().__init__(msg)


class EmptySchedule(EngineError):
    """列車が1本もない（時間軸が作れない）"""
