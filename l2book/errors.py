"""Exception hierarchy for the order book and its feed."""


class L2BookError(Exception):
    """Base error for order book failures."""


class InvalidEntryError(L2BookError):
    """A single price level change that cannot be applied."""


class FeedDecodeError(L2BookError):
    """Feed frame is not valid JSON or does not have the expected shape."""


class StreamError(L2BookError):
    """The feed reported an error; the session cannot continue as is."""

    def __init__(self, message: str, reason: str = "") -> None:
        super().__init__(f"{message}: {reason}" if reason else message)
        self.message = message
        self.reason = reason
