from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import TextIO
from urllib.parse import urlparse

from l2book.config import AppConfig
from l2book.display import render_levels
from l2book.errors import FeedDecodeError, StreamError
from l2book.logger import setup_logger
from l2book.messages import FeedError, decode_message
from l2book.orderbook import IncrementalUpdate, OrderBook, Snapshot
from l2book.ws_client import CoinbaseWsClient


def _validate_ws_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("ws", "wss") or not parsed.netloc:
        raise ValueError(f"Unsupported websocket url {url!r}. Use ws:// or wss://")


class App:
    def __init__(self, cfg: AppConfig, out: TextIO | None = None) -> None:
        self.cfg = cfg
        self.logger = setup_logger(cfg.log_file, cfg.log_level)
        self.out = out if out is not None else sys.stdout
        self.orderbook = OrderBook()
        self.synced = False
        self.updates_applied = 0
        self.updates_skipped = 0
        self.entries_rejected = 0
        self.frames_dropped = 0
        self.state_lock = asyncio.Lock()

    async def on_connect(self) -> None:
        self.logger.info("Waiting for level2 snapshot for %s", self.cfg.product_id)
        async with self.state_lock:
            self.synced = False
            self.orderbook.clear()

    async def on_disconnect(self) -> None:
        async with self.state_lock:
            self.synced = False

    async def on_message(self, text: str | bytes) -> None:
        try:
            message = decode_message(text)
        except FeedDecodeError as exc:
            self.frames_dropped += 1
            self.logger.warning("Feed frame dropped: %s", exc)
            return

        if message is None:
            return
        if isinstance(message, FeedError):
            raise StreamError(message.message, message.reason)

        async with self.state_lock:
            if isinstance(message, Snapshot):
                self._handle_snapshot(message)
            elif isinstance(message, IncrementalUpdate):
                self._handle_update(message)

    def _handle_snapshot(self, snapshot: Snapshot) -> None:
        self.orderbook.load_snapshot(snapshot)
        self.synced = True
        asks, bids = self.orderbook.level_counts()
        self.logger.info("Snapshot loaded | asks=%d bids=%d", asks, bids)
        self._publish()

    def _handle_update(self, update: IncrementalUpdate) -> None:
        if not self.synced:
            self.updates_skipped += 1
            self.logger.debug("l2update before snapshot skipped | changes=%d", len(update.changes))
            return
        rejected = self.orderbook.apply(update)
        self.updates_applied += 1
        self.entries_rejected += len(rejected)
        self._publish()

    def _publish(self) -> None:
        if not self.cfg.print_book:
            return
        levels = self.orderbook.top_levels(self.cfg.book_depth)
        print(render_levels(levels), file=self.out, flush=True)

    async def heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cfg.heartbeat_interval_sec)
            best_bid, best_ask = self.orderbook.best_bid_ask()
            asks, bids = self.orderbook.level_counts()
            self.logger.info(
                "heartbeat | synced=%s best_bid=%s best_ask=%s ask_levels=%d bid_levels=%d updates=%d rejected=%d dropped=%d",
                self.synced,
                f"{best_bid.price:.2f}" if best_bid is not None else "n/a",
                f"{best_ask.price:.2f}" if best_ask is not None else "n/a",
                asks,
                bids,
                self.updates_applied,
                self.entries_rejected,
                self.frames_dropped,
            )


async def async_main(cfg: AppConfig) -> None:
    _validate_ws_url(cfg.ws_url)
    app = App(cfg)
    ws_client = CoinbaseWsClient(cfg=cfg, logger=app.logger)

    app.logger.info("Starting l2book for %s", cfg.product_id)
    hb_task = asyncio.create_task(app.heartbeat_loop())
    try:
        await ws_client.run(app.on_message, on_connect=app.on_connect, on_disconnect=app.on_disconnect)
    finally:
        hb_task.cancel()
        await asyncio.gather(hb_task, return_exceptions=True)


def parse_args(argv: list[str] | None = None) -> AppConfig:
    defaults = AppConfig()
    parser = argparse.ArgumentParser(description="Live level2 order book for one Coinbase product")
    parser.add_argument("product_id", nargs="?", default=defaults.product_id, help="Product id, e.g. BTC-GBP")
    parser.add_argument("--depth", type=int, default=defaults.book_depth, help="Levels per side to print")
    parser.add_argument("--quiet", action="store_true", help="Do not print the book on every update")
    parser.add_argument(
        "--reconnect-on-error",
        action="store_true",
        default=defaults.reconnect_on_stream_error,
        help="Reconnect instead of exiting when the feed sends an error message",
    )
    args = parser.parse_args(argv)
    if args.depth <= 0:
        parser.error("--depth must be positive")
    return AppConfig(
        product_id=args.product_id.upper(),
        book_depth=args.depth,
        print_book=not args.quiet,
        reconnect_on_stream_error=args.reconnect_on_error,
    )


def main(argv: list[str] | None = None) -> int:
    cfg = parse_args(argv)
    try:
        asyncio.run(async_main(cfg))
    except KeyboardInterrupt:
        print("Stopped by user at", time.strftime("%Y-%m-%d %H:%M:%S"))
    except StreamError as exc:
        print(f"Feed error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
