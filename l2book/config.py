from __future__ import annotations

from dataclasses import dataclass, field
import json
import os

WS_URL = os.getenv("WS_URL", "wss://ws-feed.exchange.coinbase.com").strip()
PRODUCT_ID = os.getenv("PRODUCT_ID", "BTC-GBP").strip().upper()

CHANNELS = ("level2", "heartbeat")
ENABLE_TICKER = True

BOOK_DEPTH = int(os.getenv("BOOK_DEPTH", "10"))
if BOOK_DEPTH <= 0:
    raise ValueError(f"Unsupported BOOK_DEPTH={BOOK_DEPTH}. Use a positive integer.")

PRINT_BOOK = True
HEARTBEAT_INTERVAL_SEC = 5.0

LOG_FILE = os.getenv("LOG_FILE", "logs/l2book.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

RECONNECT_BASE_DELAY_SEC = 1.0
RECONNECT_MAX_DELAY_SEC = 30.0
RECONNECT_ON_STREAM_ERROR = False


@dataclass(frozen=True)
class AppConfig:
    ws_url: str = WS_URL
    product_id: str = PRODUCT_ID
    channels: tuple[str, ...] = field(default=CHANNELS)
    enable_ticker: bool = ENABLE_TICKER
    book_depth: int = BOOK_DEPTH
    print_book: bool = PRINT_BOOK
    heartbeat_interval_sec: float = HEARTBEAT_INTERVAL_SEC
    reconnect_base_delay_sec: float = RECONNECT_BASE_DELAY_SEC
    reconnect_max_delay_sec: float = RECONNECT_MAX_DELAY_SEC
    reconnect_on_stream_error: bool = RECONNECT_ON_STREAM_ERROR
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def channel_specs(cfg: AppConfig) -> list[str | dict[str, object]]:
    channels: list[str | dict[str, object]] = list(cfg.channels)
    if cfg.enable_ticker:
        channels.append({"name": "ticker", "product_ids": [cfg.product_id]})
    return channels


def subscribe_message(cfg: AppConfig) -> str:
    message = {
        "type": "subscribe",
        "product_ids": [cfg.product_id],
        "channels": channel_specs(cfg),
    }
    return json.dumps(message)
