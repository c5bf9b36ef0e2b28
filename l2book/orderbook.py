from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import math
from operator import neg
import threading
from typing import Any, Mapping, NamedTuple

from sortedcontainers import SortedDict

from l2book.errors import InvalidEntryError

logger = logging.getLogger(__name__)


class Side(str, Enum):
    BID = "bid"
    ASK = "ask"


_SIDE_ALIASES = {
    "bid": Side.BID,
    "buy": Side.BID,
    "ask": Side.ASK,
    "sell": Side.ASK,
}


def parse_side(value: Any) -> Side:
    if isinstance(value, Side):
        return value
    if isinstance(value, str):
        side = _SIDE_ALIASES.get(value.strip().lower())
        if side is not None:
            return side
    raise InvalidEntryError(f"invalid side: {value!r}")


def _parse_amount(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise InvalidEntryError(f"invalid {what}: {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidEntryError(f"invalid {what}: {value!r}") from None
    if not math.isfinite(amount):
        raise InvalidEntryError(f"non-finite {what}: {value!r}")
    if amount < 0:
        raise InvalidEntryError(f"negative {what}: {value!r}")
    return amount


def parse_price(value: Any) -> float:
    return _parse_amount(value, "price")


def parse_size(value: Any) -> float:
    return _parse_amount(value, "size")


class PriceLevel(NamedTuple):
    price: float
    size: float


class LevelChange(NamedTuple):
    """One (side, price, size) change as received; fields may still be raw feed values."""

    side: Any
    price: Any
    size: Any


@dataclass(frozen=True)
class IncrementalUpdate:
    changes: tuple[LevelChange, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    asks: Mapping[Any, Any] = field(default_factory=dict)
    bids: Mapping[Any, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvalidEntry:
    index: int
    change: LevelChange
    reason: str


@dataclass
class BookLevels:
    asks: list[PriceLevel]
    bids: list[PriceLevel]


class OrderBook:
    """Aggregated price level book for one instrument.

    Asks are kept ascending and bids descending, so the best N levels of either
    side are the first N keys of its map. Every stored size is strictly
    positive: a zero size removes the level. All reads and writes take the same
    lock, so a reader never observes a partially applied batch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._asks: SortedDict = SortedDict()
        self._bids: SortedDict = SortedDict(neg)

    @classmethod
    def bootstrap(cls, snapshot: Snapshot) -> OrderBook:
        book = cls()
        book.load_snapshot(snapshot)
        return book

    def load_snapshot(self, snapshot: Snapshot) -> None:
        asks = _snapshot_side(snapshot.asks or {}, Side.ASK)
        bids = _snapshot_side(snapshot.bids or {}, Side.BID)
        with self._lock:
            self._asks = SortedDict(asks)
            self._bids = SortedDict(neg, bids)

    def clear(self) -> None:
        with self._lock:
            self._asks.clear()
            self._bids.clear()

    def apply(self, update: IncrementalUpdate) -> list[InvalidEntry]:
        rejected: list[InvalidEntry] = []
        with self._lock:
            for idx, change in enumerate(update.changes):
                try:
                    side = parse_side(change.side)
                    price = parse_price(change.price)
                    size = parse_size(change.size)
                except InvalidEntryError as exc:
                    rejected.append(InvalidEntry(index=idx, change=change, reason=str(exc)))
                    continue
                _apply_level(self._side_book(side), price, size)

        for entry in rejected:
            logger.warning("Update entry rejected: index=%d change=%r reason=%s", entry.index, entry.change, entry.reason)
        return rejected

    def top_levels(self, depth: int) -> BookLevels:
        if depth <= 0:
            return BookLevels(asks=[], bids=[])
        with self._lock:
            asks = [PriceLevel(price, self._asks[price]) for price in self._asks.islice(0, depth)]
            bids = [PriceLevel(price, self._bids[price]) for price in self._bids.islice(0, depth)]
        return BookLevels(asks=asks, bids=bids)

    def best_bid_ask(self) -> tuple[PriceLevel | None, PriceLevel | None]:
        with self._lock:
            bid = PriceLevel(*self._bids.peekitem(0)) if self._bids else None
            ask = PriceLevel(*self._asks.peekitem(0)) if self._asks else None
        return bid, ask

    def qty_at(self, side: Side | str, price: float) -> float:
        side = parse_side(side)
        with self._lock:
            return self._side_book(side).get(price, 0.0)

    def level_counts(self) -> tuple[int, int]:
        with self._lock:
            return len(self._asks), len(self._bids)

    def _side_book(self, side: Side) -> SortedDict:
        if side is Side.BID:
            return self._bids
        return self._asks


def _snapshot_side(raw_levels: Mapping[Any, Any], side: Side) -> dict[float, float]:
    levels: dict[float, float] = {}
    for raw_price, raw_size in raw_levels.items():
        try:
            price = parse_price(raw_price)
            size = parse_size(raw_size)
        except InvalidEntryError as exc:
            logger.warning("Snapshot %s level dropped: %s", side.value, exc)
            continue
        if size == 0:
            logger.debug("Snapshot %s level dropped: zero size at %s", side.value, price)
            continue
        levels[price] = size
    return levels


def _apply_level(side_book: SortedDict, price: float, size: float) -> None:
    if size == 0:
        side_book.pop(price, None)
    else:
        side_book[price] = size
