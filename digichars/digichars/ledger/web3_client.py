"""
AuctionVault ledger client backed by web3
"""
from typing import Any, Callable, Sequence, TypeVar

from web3 import HTTPProvider, Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, Web3Exception

from digichars.core.logging import get_logger
from digichars.ledger.abi import AUCTION_VAULT_ABI
from digichars.ledger.client import Ledger, RawLogEntry
from digichars.ledger.model import (
    Address,
    AuctionId,
    CharacterData,
    CharacterIndex,
    LedgerCallRejected,
    LedgerEventKind,
    LedgerUnavailable,
    TxHash,
    Wei,
)

T = TypeVar("T")


def connect(rpc_url: str, request_timeout_secs: int = 30) -> Web3:
    """
    :return: Web3 connected to the JSON-RPC endpoint
    """
    return Web3(
        HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout_secs})
    )


class Web3LedgerClient(Ledger):
    """
    Reads, event logs, and writes against the AuctionVault contract.

    Notes
    -----
    - Contract reverts are raised as `LedgerCallRejected`.
    - Transport errors are raised as `LedgerUnavailable`.
    - Transactions are submitted from `account`, which must be unlocked on the node. Signing is out of scope.
    """

    def __init__(
        self,
        w3: Web3,
        contract_address: str,
        abi: list[dict[str, Any]] | None = None,
        account: Address | None = None,
    ):
        self._w3 = w3
        self._contract: Contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=abi if abi else AUCTION_VAULT_ABI,
        )
        self._account = account
        self._block_timestamps: dict[int, int] = {}
        self._logger = get_logger(self)

    @property
    def account(self) -> Address | None:
        return self._account

    @account.setter
    def account(self, account: Address | None):
        self._account = account

    def _invoke(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except ContractLogicError as err:
            raise LedgerCallRejected(operation, err) from err
        except (Web3Exception, OSError) as err:
            raise LedgerUnavailable(operation, err) from err

    def _call(self, function_name: str, *args: Any) -> Any:
        function = getattr(self._contract.functions, function_name)
        return self._invoke(function_name, lambda: function(*args).call())

    def read_current_auction_id(self) -> AuctionId:
        return AuctionId(self._call("auctionId"))

    def read_character(
        self, auction_id: AuctionId, character_index: CharacterIndex
    ) -> CharacterData:
        uri, name, symbol, pool_balance, is_winner = self._call(
            "getAuctionCharacterData", auction_id, character_index
        )
        return CharacterData(
            uri=uri,
            name=name,
            symbol=symbol,
            pool_balance=Wei(pool_balance),
            is_winner=is_winner,
        )

    def read_auction_end_time(self, auction_id: AuctionId) -> int:
        return int(self._call("getAuctionEndTime", auction_id))

    def read_token_address(self, auction_id: AuctionId) -> Address:
        return Address(self._call("getCharacterTokenAddress", auction_id))

    def read_user_bid_balance(
        self, user: Address, auction_id: AuctionId, character_index: CharacterIndex
    ) -> Wei:
        return Wei(
            self._call(
                "getUserBidBalance",
                Web3.to_checksum_address(user),
                auction_id,
                character_index,
            )
        )

    def read_unclaimed_tokens(self, user: Address, auction_id: AuctionId) -> int:
        return int(
            self._call(
                "checkUnclaimedTokens", Web3.to_checksum_address(user), auction_id
            )
        )

    def read_field(self, auction_id: AuctionId | None, field_name: str) -> Any:
        if auction_id is None:
            return self._call(field_name)
        return self._call(field_name, auction_id)

    def get_event_log(
        self, kind: LedgerEventKind, from_block: int = 0
    ) -> Sequence[RawLogEntry]:
        """
        Each log entry is returned as a dict with the block timestamp attached under `block.timestamp`.
        """
        event = getattr(self._contract.events, kind.value)
        entries = self._invoke(
            f"get_event_log({kind.value})",
            lambda: event.get_logs(from_block=from_block),
        )
        self._logger.debug("%s log entries: %s", kind.value, len(entries))
        return [
            {**dict(entry), "block": {"timestamp": self._block_timestamp(entry)}}
            for entry in entries
        ]

    def _block_timestamp(self, entry: RawLogEntry) -> int | None:
        block_number = entry.get("blockNumber")
        if block_number is None:
            return None
        if block_number not in self._block_timestamps:
            block = self._invoke(
                "get_block", lambda: self._w3.eth.get_block(block_number)
            )
            self._block_timestamps[block_number] = block["timestamp"]
        return self._block_timestamps[block_number]

    def _transact(self, function_name: str, *args: Any, value: int = 0) -> TxHash:
        if self._account is None:
            raise LedgerCallRejected(function_name, "no account is connected")

        function = getattr(self._contract.functions, function_name)
        tx_params: dict[str, Any] = {"from": self._account}
        if value:
            tx_params["value"] = value

        def submit() -> TxHash:
            tx_hash = function(*args).transact(tx_params)
            receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash)
            if receipt["status"] == 0:
                raise ContractLogicError(f"transaction reverted: {Web3.to_hex(tx_hash)}")
            return TxHash(Web3.to_hex(tx_hash))

        tx_hash = self._invoke(function_name, submit)
        self._logger.info("%s confirmed: %s", function_name, tx_hash)
        return tx_hash

    def submit_bid(self, character_index: CharacterIndex, value: Wei) -> TxHash:
        return self._transact("bid", character_index, value=value)

    def submit_withdraw(
        self, auction_id: AuctionId, character_index: CharacterIndex, amount: Wei
    ) -> TxHash:
        return self._transact("withdrawBid", auction_id, character_index, amount)

    def submit_claim(self, auction_id: AuctionId) -> TxHash:
        return self._transact("claimTokens", auction_id)
