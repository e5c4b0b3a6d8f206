"""
Ledger interfaces

The AuctionVault ledger is an external collaborator. These interfaces describe the narrow surface that the
reconciliation layer depends on:

- `LedgerClient`: synchronous per-field reads
- `LedgerEventSource`: historical event logs
- `LedgerWriter`: fire-and-await transaction submission

Implementations raise `LedgerCallRejected` when the ledger refuses a call and `LedgerUnavailable` when the ledger
cannot be reached.
"""
from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from digichars.ledger.model import (
    Address,
    AuctionId,
    CharacterData,
    CharacterIndex,
    LedgerEventKind,
    TxHash,
    Wei,
)

# raw log entry, shaped like a web3 event log entry
RawLogEntry = Mapping[str, Any]


class LedgerClient(ABC):
    """
    Ledger read interface
    """

    @abstractmethod
    def read_current_auction_id(self) -> AuctionId:
        """
        :return: ID of the currently open auction
        """

    @abstractmethod
    def read_character(
        self, auction_id: AuctionId, character_index: CharacterIndex
    ) -> CharacterData:
        ...

    @abstractmethod
    def read_auction_end_time(self, auction_id: AuctionId) -> int:
        """
        :return: unix timestamp in seconds
        """

    @abstractmethod
    def read_token_address(self, auction_id: AuctionId) -> Address:
        """
        :return: the zero address if no token has been deployed for the auction winner
        """

    @abstractmethod
    def read_user_bid_balance(
        self, user: Address, auction_id: AuctionId, character_index: CharacterIndex
    ) -> Wei:
        ...

    @abstractmethod
    def read_unclaimed_tokens(self, user: Address, auction_id: AuctionId) -> int:
        ...

    @abstractmethod
    def read_field(self, auction_id: AuctionId | None, field_name: str) -> Any:
        """
        Generic read of a named contract field.

        :param auction_id: if None, then the field is read without arguments
        """


class LedgerEventSource(ABC):
    """
    Ledger event interface
    """

    @abstractmethod
    def get_event_log(
        self, kind: LedgerEventKind, from_block: int = 0
    ) -> Sequence[RawLogEntry]:
        """
        :return: raw log entries in ledger order
        """


class LedgerWriter(ABC):
    """
    Ledger write interface

    Each call submits a transaction and waits for it to be confirmed.
    """

    @property
    @abstractmethod
    def account(self) -> Address | None:
        """
        :return: the account that transactions are submitted from, or None if no account is connected
        """

    @abstractmethod
    def submit_bid(self, character_index: CharacterIndex, value: Wei) -> TxHash:
        ...

    @abstractmethod
    def submit_withdraw(
        self, auction_id: AuctionId, character_index: CharacterIndex, amount: Wei
    ) -> TxHash:
        ...

    @abstractmethod
    def submit_claim(self, auction_id: AuctionId) -> TxHash:
        ...


class Ledger(LedgerClient, LedgerEventSource, LedgerWriter, ABC):
    """
    Full ledger surface: reads, event logs, and writes.

    Writes are submitted on behalf of the bound `account`, which can be rebound when the connected identity changes.
    """

    @property
    @abstractmethod
    def account(self) -> Address | None:
        ...

    @account.setter
    @abstractmethod
    def account(self, account: Address | None):
        ...
