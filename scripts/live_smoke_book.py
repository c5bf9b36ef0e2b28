from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from l2book.config import AppConfig
from l2book.main import App, _validate_ws_url
from l2book.ws_client import CoinbaseWsClient


async def run_smoke(product_id: str, duration_sec: int) -> App:
    cfg = AppConfig(product_id=product_id, heartbeat_interval_sec=1.0, print_book=False)
    _validate_ws_url(cfg.ws_url)
    app = App(cfg)
    ws_client = CoinbaseWsClient(cfg=cfg, logger=app.logger)

    ws_task = asyncio.create_task(ws_client.run(app.on_message, on_connect=app.on_connect, on_disconnect=app.on_disconnect))
    hb_task = asyncio.create_task(app.heartbeat_loop())

    try:
        await asyncio.sleep(duration_sec)
    except asyncio.CancelledError:
        pass
    finally:
        ws_task.cancel()
        hb_task.cancel()
        await asyncio.gather(ws_task, hb_task, return_exceptions=True)
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run live order book smoke check")
    parser.add_argument("--product", default="BTC-USD", help="Product id")
    parser.add_argument("--duration", type=int, default=30, help="Duration in seconds")
    args = parser.parse_args()
    try:
        app = asyncio.run(run_smoke(args.product, args.duration))
    except KeyboardInterrupt:
        return
    print(f"synced={app.synced} updates={app.updates_applied} rejected={app.entries_rejected} dropped={app.frames_dropped}")
    levels = app.orderbook.top_levels(5)
    print("asks:", levels.asks)
    print("bids:", levels.bids)


if __name__ == "__main__":
    main()
