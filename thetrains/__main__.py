# thetrains/__main__.py
"""
データディレクトリを読み込み、ログ出力だけのレンダラーでエンジンを動かす。

    python -m thetrains --ticks 100
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from .config import load_config
from .data_cache import DataCache
from .engine import init
from .render import LoggingRenderer
from .train_position import debug_dump_positions_at

logger = logging.getLogger("thetrains")


async def run(ticks: int, data_dir: Path | None, dump: bool) -> None:
    config = load_config()
    if data_dir is not None:
        config = config.model_copy(update={"data_dir": data_dir})

    cache = DataCache(config.data_dir)
    cache.load_all()

    engine = init(
        cache.raw_network,
        cache.raw_trips,
        cache.raw_header,
        renderer=LoggingRenderer(),
        config=config,
    )
    engine.on_resize(config.marey_width)

    handle = engine.start()
    try:
        await asyncio.sleep(ticks * config.tick_interval_sec)
    finally:
        engine.teardown()

    if dump:
        debug_dump_positions_at(engine.cursor.value, engine.schedule, engine.network, config.radius)
    logger.info("Stopped at t=%.0f (running=%s)", engine.cursor.value, handle.running)


def main() -> None:
    parser = argparse.ArgumentParser(prog="thetrains")
    parser.add_argument("--ticks", type=int, default=100, help="number of animation ticks to run")
    parser.add_argument("--data-dir", type=Path, default=None)
    parser.add_argument("--dump", action="store_true", help="print train positions at the end")
    args = parser.parse_args()

    logging.basicConfig(level=load_config().log_level.upper())

    try:
        asyncio.run(run(args.ticks, args.data_dir, args.dump))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
