from __future__ import annotations

import threading

from l2book.orderbook import (
    IncrementalUpdate,
    LevelChange,
    OrderBook,
    PriceLevel,
    Side,
    Snapshot,
)


def _update(*changes: tuple[object, object, object]) -> IncrementalUpdate:
    return IncrementalUpdate(changes=tuple(LevelChange(*change) for change in changes))


def _book() -> OrderBook:
    return OrderBook.bootstrap(
        Snapshot(
            asks={100.5: 2.0, 101.0: 3.0},
            bids={100.0: 5.0, 99.5: 1.0},
        )
    )


def test_bootstrap_and_depth_one() -> None:
    levels = _book().top_levels(1)
    assert levels.asks == [PriceLevel(100.5, 2.0)]
    assert levels.bids == [PriceLevel(100.0, 5.0)]


def test_update_removes_and_overwrites() -> None:
    book = _book()
    rejected = book.apply(_update((Side.ASK, 100.5, 0), (Side.BID, 99.5, 4)))
    levels = book.top_levels(2)

    assert rejected == []
    assert levels.asks == [PriceLevel(101.0, 3.0)]
    assert levels.bids == [PriceLevel(100.0, 5.0), PriceLevel(99.5, 4.0)]


def test_invalid_entry_skipped_rest_of_batch_applied() -> None:
    book = _book()
    rejected = book.apply(_update(("buy", "NaN", "1"), ("bid", "100.0", "7")))

    assert len(rejected) == 1
    assert rejected[0].index == 0
    assert "price" in rejected[0].reason
    assert book.top_levels(1).bids == [PriceLevel(100.0, 7.0)]


def test_unknown_side_and_bad_numbers_rejected_without_writes() -> None:
    book = _book()
    rejected = book.apply(
        _update(
            ("hold", "100.25", "1"),
            ("sell", "abc", "1"),
            ("sell", "100.75", "-2"),
            ("sell", "100.75", "inf"),
            ("sell", None, "1"),
        )
    )

    assert [entry.index for entry in rejected] == [0, 1, 2, 3, 4]
    assert book.level_counts() == (2, 2)
    assert book.qty_at(Side.ASK, 100.75) == 0.0


def test_coinbase_side_names_and_string_values() -> None:
    book = OrderBook()
    book.apply(_update(("buy", "10.5", "0.25"), ("sell", "11.0", "1.5")))

    assert book.top_levels(5).bids == [PriceLevel(10.5, 0.25)]
    assert book.top_levels(5).asks == [PriceLevel(11.0, 1.5)]


def test_sortedness_and_truncation() -> None:
    book = OrderBook()
    book.apply(
        _update(
            ("bid", 10, 1), ("bid", 12, 2), ("bid", 11, 3), ("bid", 9, 1),
            ("ask", 20, 4), ("ask", 19, 5), ("ask", 25, 1),
        )
    )

    levels = book.top_levels(3)
    ask_prices = [level.price for level in levels.asks]
    bid_prices = [level.price for level in levels.bids]
    assert ask_prices == [19.0, 20.0, 25.0]
    assert bid_prices == [12.0, 11.0, 10.0]
    assert all(a < b for a, b in zip(ask_prices, ask_prices[1:]))
    assert all(a > b for a, b in zip(bid_prices, bid_prices[1:]))


def test_short_side_returns_available_levels() -> None:
    book = OrderBook.bootstrap(Snapshot(asks={1.0: 1.0}, bids={0.9: 1.0, 0.8: 2.0, 0.7: 3.0}))
    levels = book.top_levels(10)

    assert len(levels.asks) == 1
    assert len(levels.bids) == 3


def test_zero_depth_and_empty_book() -> None:
    assert _book().top_levels(0).asks == []
    assert _book().top_levels(0).bids == []
    levels = OrderBook().top_levels(5)
    assert levels.asks == [] and levels.bids == []


def test_remove_absent_price_is_noop() -> None:
    book = _book()
    rejected = book.apply(_update(("ask", 555.0, 0), ("bid", 1.0, "0")))

    assert rejected == []
    assert book.level_counts() == (2, 2)


def test_overwrite_does_not_accumulate() -> None:
    book = _book()
    book.apply(_update(("ask", 101.0, 8)))
    assert book.qty_at(Side.ASK, 101.0) == 8.0


def test_batch_last_write_wins() -> None:
    book = _book()
    book.apply(_update(("bid", 98.0, 1), ("bid", 98.0, 3)))
    assert book.qty_at(Side.BID, 98.0) == 3.0

    book.apply(_update(("bid", 98.0, 6), ("bid", 98.0, 0)))
    assert book.qty_at(Side.BID, 98.0) == 0.0
    assert 98.0 not in [level.price for level in book.top_levels(10).bids]

    book.apply(_update(("ask", 102.0, 0), ("ask", 102.0, 2)))
    assert book.qty_at(Side.ASK, 102.0) == 2.0


def test_snapshot_replaces_prior_state_and_drops_zero_sizes() -> None:
    book = _book()
    book.apply(_update(("ask", 150.0, 1), ("bid", 50.0, 1)))
    book.load_snapshot(Snapshot(asks={"200.0": "1.5", "201.0": "0"}, bids={"199.0": "2", "bad": "1"}))

    levels = book.top_levels(10)
    assert levels.asks == [PriceLevel(200.0, 1.5)]
    assert levels.bids == [PriceLevel(199.0, 2.0)]


def test_snapshot_missing_side_is_empty() -> None:
    book = OrderBook.bootstrap(Snapshot(asks={1.0: 1.0}))
    assert book.level_counts() == (1, 0)
    assert book.best_bid_ask() == (None, PriceLevel(1.0, 1.0))


def test_stored_sizes_stay_positive() -> None:
    book = OrderBook.bootstrap(Snapshot(asks={1.0: 0.0, 2.0: 1.0}, bids={0.5: 0.0}))
    book.apply(_update(("ask", 2.0, 0), ("ask", 3.0, 0.1), ("bid", 0.4, 0), ("bid", 0.3, "-1")))

    levels = book.top_levels(100)
    assert all(level.size > 0 for level in levels.asks + levels.bids)
    assert levels.asks == [PriceLevel(3.0, 0.1)]
    assert levels.bids == []


def test_best_bid_ask_and_clear() -> None:
    book = _book()
    assert book.best_bid_ask() == (PriceLevel(100.0, 5.0), PriceLevel(100.5, 2.0))
    book.clear()
    assert book.best_bid_ask() == (None, None)


def test_reader_thread_sees_whole_batches() -> None:
    book = OrderBook()
    stop = threading.Event()
    torn: list[tuple[int, int]] = []

    def reader() -> None:
        while not stop.is_set():
            levels = book.top_levels(50)
            if len(levels.asks) != len(levels.bids):
                torn.append((len(levels.asks), len(levels.bids)))

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(1, 500):
            book.apply(_update(("ask", 100 + i, 1), ("bid", 100 - i * 0.1, 1)))
    finally:
        stop.set()
        thread.join()

    assert torn == []


def test_out_of_range_integer_rejected_rest_of_batch_applied() -> None:
    book = OrderBook()
    huge = int("9" * 400)
    rejected = book.apply(_update(("buy", 2, 1), ("buy", huge, 1), ("buy", 3, 1), ("sell", 5, huge)))

    assert [entry.index for entry in rejected] == [1, 3]
    assert [level.price for level in book.top_levels(10).bids] == [3.0, 2.0]
    assert book.top_levels(10).asks == []


def test_out_of_range_integer_dropped_from_snapshot() -> None:
    book = OrderBook.bootstrap(Snapshot(asks={10**400: 1, 101.0: 2}, bids={100.0: 10**400}))

    assert book.top_levels(5).asks == [PriceLevel(101.0, 2.0)]
    assert book.top_levels(5).bids == []


def test_qty_at_accepts_side_names() -> None:
    book = OrderBook.bootstrap(Snapshot(asks={100.0: 9.0}, bids={100.0: 1.0}))

    assert book.qty_at("bid", 100.0) == 1.0
    assert book.qty_at("buy", 100.0) == 1.0
    assert book.qty_at("sell", 100.0) == 9.0
    assert book.qty_at(Side.ASK, 100.0) == 9.0
