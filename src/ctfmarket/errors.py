"""Ledger error taxonomy. Every failure the core surfaces is a LedgerError."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class. `code` is the machine-readable name used by the API and CLI."""

    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str = "", **context: object) -> None:
        super().__init__(message or self.code)
        self.context = context


class InvalidAmount(LedgerError):
    code = "invalid_amount"
    status_code = 422


class InvalidOutcome(LedgerError):
    code = "invalid_outcome"
    status_code = 422


class InvalidAddress(LedgerError):
    code = "invalid_address"
    status_code = 422


class InvalidIdentifier(LedgerError):
    code = "invalid_identifier"
    status_code = 422


class InsufficientCollateral(LedgerError):
    code = "insufficient_collateral"
    status_code = 422


class InsufficientAllowance(LedgerError):
    code = "insufficient_allowance"
    status_code = 422


class InsufficientBalance(LedgerError):
    code = "insufficient_balance"
    status_code = 422


class InvalidPayouts(LedgerError):
    code = "invalid_payouts"
    status_code = 422


class UnknownCondition(LedgerError):
    code = "unknown_condition"
    status_code = 404


class AlreadyPrepared(LedgerError):
    code = "already_prepared"
    status_code = 409


class AlreadyResolved(LedgerError):
    code = "already_resolved"
    status_code = 409


class ConditionNotResolved(LedgerError):
    code = "condition_not_resolved"
    status_code = 409


class NotOracle(LedgerError):
    code = "not_oracle"
    status_code = 403


# Catalog (market wrapper) errors
class NotOwner(LedgerError):
    code = "not_owner"
    status_code = 403


class MarketExists(LedgerError):
    code = "market_exists"
    status_code = 409


class UnknownMarket(LedgerError):
    code = "unknown_market"
    status_code = 404


def check_amount(amount: int) -> None:
    """Raise InvalidAmount unless amount is a positive int (bools rejected)."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Amount must be a positive integer, got {amount!r}", amount=amount)
