"""Exception hierarchy for the exchange-rate bot."""


class RateBotError(Exception):
    """Base exception for all bot errors."""


class ConfigError(RateBotError):
    """Required startup configuration is missing or malformed."""


class TransportError(RateBotError):
    """Messaging transport failed: network, timeout or non-success reply."""


class SourceError(RateBotError):
    """A rate source or directory failed or returned unparsable data."""


class StoreError(RateBotError):
    """Session store read or write failed."""
