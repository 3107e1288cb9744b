"""Fungible collateral (ERC20-style): balances, allowances, and custody debit/credit."""

from __future__ import annotations

import structlog

from ctfmarket.errors import InsufficientAllowance, InsufficientCollateral, InvalidAmount, check_amount
from ctfmarket.ledger.journal import Journal

log = structlog.get_logger(__name__)


class CollateralLedger:
    """Balance per account plus owner -> spender allowances.

    `debit`/`credit` move collateral between a holder and the custody account,
    which is also the spender the holder must approve before a split.
    """

    def __init__(self, custody: str, journal: Journal | None = None, symbol: str = "USDC") -> None:
        self.custody = custody
        self.symbol = symbol
        self.journal = journal or Journal()
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values())

    def mint(self, account: str, amount: int) -> None:
        """Faucet: create collateral out of thin air (test/dev token only)."""
        check_amount(amount)
        self.journal.write(self.balances, account, self.balance_of(account) + amount)
        log.debug("collateral_mint", account=account, amount=amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise InvalidAmount(f"Allowance must be a non-negative integer, got {amount!r}")
        self.journal.write(self.allowances, (owner, spender), amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        check_amount(amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientCollateral(
                f"{sender} holds {balance} {self.symbol}, needs {amount}",
                account=sender, balance=balance, amount=amount,
            )
        self.journal.write(self.balances, sender, balance - amount)
        self.journal.write(self.balances, recipient, self.balance_of(recipient) + amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        check_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{owner} approved {allowed} {self.symbol} to {spender}, needs {amount}",
                account=owner, allowance=allowed, amount=amount,
            )
        self.transfer(owner, recipient, amount)
        self.journal.write(self.allowances, (owner, spender), allowed - amount)

    def debit(self, account: str, amount: int) -> None:
        """Pull `amount` from account into custody. Balance is checked before allowance."""
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientCollateral(
                f"{account} holds {balance} {self.symbol}, needs {amount}",
                account=account, balance=balance, amount=amount,
            )
        self.transfer_from(self.custody, account, self.custody, amount)

    def credit(self, account: str, amount: int) -> None:
        """Pay `amount` out of custody to account."""
        self.transfer(self.custody, account, amount)
