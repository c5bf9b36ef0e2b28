from __future__ import annotations

import asyncio
import logging

import websockets
from websockets import WebSocketException

from l2book.config import AppConfig, subscribe_message
from l2book.errors import StreamError


class CoinbaseWsClient:
    def __init__(self, cfg: AppConfig, logger: logging.Logger) -> None:
        self.cfg = cfg
        self.logger = logger

    async def run(self, handler, on_connect=None, on_disconnect=None) -> None:
        delay = self.cfg.reconnect_base_delay_sec
        url = self.cfg.ws_url

        while True:
            try:
                self.logger.info("Connecting to %s", url)
                async with websockets.connect(url, ping_interval=20, ping_timeout=20) as ws:
                    self.logger.info("WebSocket connected")
                    if on_connect is not None:
                        await on_connect()
                    await ws.send(subscribe_message(self.cfg))
                    self.logger.info("Level2 subscription sent for %s", self.cfg.product_id)
                    delay = self.cfg.reconnect_base_delay_sec
                    async for message in ws:
                        await handler(message)
            except StreamError as exc:
                if on_disconnect is not None:
                    await on_disconnect()
                if not self.cfg.reconnect_on_stream_error:
                    self.logger.error("Feed reported an error, stopping: %s", exc)
                    raise
                self.logger.warning("Feed reported an error, reconnecting: %s", exc)
                self.logger.info("Reconnecting in %.1f sec", delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.cfg.reconnect_max_delay_sec)
            except (ConnectionError, OSError, asyncio.TimeoutError, WebSocketException) as exc:
                if on_disconnect is not None:
                    await on_disconnect()
                self.logger.warning("WebSocket disconnected: %s", exc)
                self.logger.info("Reconnecting in %.1f sec", delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.cfg.reconnect_max_delay_sec)
