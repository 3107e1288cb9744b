"""Market catalog: question id -> condition id, owner-gated market creation."""

from ctfmarket.market.catalog import OUTCOME_PAYOUTS, MarketCatalog

__all__ = ["MarketCatalog", "OUTCOME_PAYOUTS"]
