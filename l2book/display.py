from __future__ import annotations

from l2book.orderbook import BookLevels, PriceLevel

SEPARATOR = "-" * 20


def _cell(level: PriceLevel | None) -> str:
    if level is None:
        return ""
    return f"{level.price:.2f} x {level.size:.8g}"


def render_levels(levels: BookLevels) -> str:
    """Two-column Ask/Bid table; the shorter side is padded with blanks."""
    rows = ["1. Ask\t2. Bid"]
    for idx in range(max(len(levels.asks), len(levels.bids))):
        ask = levels.asks[idx] if idx < len(levels.asks) else None
        bid = levels.bids[idx] if idx < len(levels.bids) else None
        rows.append(f"{_cell(ask)}\t{_cell(bid)}")
    rows.append(SEPARATOR)
    return "\n".join(rows)
