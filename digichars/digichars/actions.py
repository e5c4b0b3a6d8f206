"""
Auction actions

Bid, withdraw, and claim are submitted through a `LedgerWriter`. Failures are caught here and returned as failed
`ActionResult`s. Actions are never retried.
"""
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Callable

from digichars.core.logging import get_logger
from digichars.ledger.client import LedgerWriter
from digichars.ledger.model import (
    CHARACTER_SLOTS,
    AuctionId,
    CharacterIndex,
    TxHash,
    Wei,
)


class ActionKind(StrEnum):
    BID = auto()
    WITHDRAW = auto()
    CLAIM = auto()


@dataclass(slots=True)
class IdentityNotConnected(Exception):
    """
    Action requires a connected account
    """

    action: ActionKind

    def __str__(self) -> str:
        return f"[{self.action}] no account is connected"


@dataclass(slots=True)
class InvalidActionArgs(Exception):
    action: ActionKind
    message: str

    def __str__(self) -> str:
        return f"[{self.action}] {self.message}"


@dataclass(slots=True, frozen=True)
class ActionResult:
    action: ActionKind
    success: bool
    tx_hash: TxHash | None = None
    error: str | None = None


class AuctionActions:
    """
    Ledger write boundary
    """

    def __init__(self, writer: LedgerWriter):
        self._writer = writer
        self._logger = get_logger(self)

    def bid(self, character_index: int, value: int) -> ActionResult:
        def submit() -> TxHash:
            self._check_character_index(ActionKind.BID, character_index)
            self._check_amount(ActionKind.BID, value)
            return self._writer.submit_bid(CharacterIndex(character_index), Wei(value))

        return self._execute(ActionKind.BID, submit)

    def withdraw(self, auction_id: int, character_index: int, amount: int) -> ActionResult:
        def submit() -> TxHash:
            self._check_auction_id(ActionKind.WITHDRAW, auction_id)
            self._check_character_index(ActionKind.WITHDRAW, character_index)
            self._check_amount(ActionKind.WITHDRAW, amount)
            return self._writer.submit_withdraw(
                AuctionId(auction_id), CharacterIndex(character_index), Wei(amount)
            )

        return self._execute(ActionKind.WITHDRAW, submit)

    def claim(self, auction_id: int) -> ActionResult:
        def submit() -> TxHash:
            self._check_auction_id(ActionKind.CLAIM, auction_id)
            return self._writer.submit_claim(AuctionId(auction_id))

        return self._execute(ActionKind.CLAIM, submit)

    def _execute(self, action: ActionKind, submit: Callable[[], TxHash]) -> ActionResult:
        try:
            if self._writer.account is None:
                raise IdentityNotConnected(action)
            tx_hash = submit()
        except Exception as err:  # pylint: disable=broad-exception-caught
            self._logger.error("%s failed: %s", action, err)
            return ActionResult(action=action, success=False, error=str(err))

        self._logger.info("%s succeeded: %s", action, tx_hash)
        return ActionResult(action=action, success=True, tx_hash=tx_hash)

    @staticmethod
    def _check_character_index(action: ActionKind, character_index: int):
        if not 0 <= character_index < CHARACTER_SLOTS:
            raise InvalidActionArgs(
                action, f"character index must be in [0, {CHARACTER_SLOTS - 1}]"
            )

    @staticmethod
    def _check_amount(action: ActionKind, amount: int):
        if amount <= 0:
            raise InvalidActionArgs(action, "amount must be > 0")

    @staticmethod
    def _check_auction_id(action: ActionKind, auction_id: int):
        if auction_id < 0:
            raise InvalidActionArgs(action, "auction ID must be >= 0")
