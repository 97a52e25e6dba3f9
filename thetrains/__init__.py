# thetrains/__init__.py
"""
the-trains: 列車位置の時間補間と Marey ダイアグラム投影エンジン
"""
from .engine import EngineHandle, init

__all__ = ["EngineHandle", "init"]
