"""
Converts raw ledger log entries into typed events.

Parsing is lenient: the ledger does not guarantee that every field is populated for every log entry.
Missing fields are coerced to neutral values, i.e., 0 and "", and logged at DEBUG level. Normalization never raises
for a missing field.
"""
import logging
from typing import Any, Mapping

from digichars.events.model import BidEvent, ClaimEvent, WithdrawEvent
from digichars.ledger.client import RawLogEntry
from digichars.ledger.model import Address, AuctionId, CharacterIndex, TxHash, Wei

logger = logging.getLogger(__name__)


def _args(raw: RawLogEntry) -> Mapping[str, Any]:
    args = raw.get("args")
    return args if args is not None else {}


def _first(args: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = args.get(name)
        if value is not None:
            return value
    return None


def _int(raw: RawLogEntry, value: Any, field_name: str) -> int:
    if value is None:
        logger.debug("missing field '%s' defaulted to 0: %s", field_name, raw)
        return 0
    return int(value)


def _address(raw: RawLogEntry, value: Any, field_name: str) -> Address:
    if value is None:
        logger.debug("missing field '%s' defaulted to '': %s", field_name, raw)
        return Address("")
    return Address(str(value))


def _tx_hash(raw: RawLogEntry) -> TxHash:
    value = raw.get("transactionHash")
    if value is None:
        logger.debug("missing field 'transactionHash' defaulted to '': %s", raw)
        return TxHash("")
    if isinstance(value, (bytes, bytearray)):
        return TxHash("0x" + bytes(value).hex())
    return TxHash(str(value))


def _timestamp(raw: RawLogEntry) -> int:
    block = raw.get("block")
    timestamp = block.get("timestamp") if block is not None else None
    return _int(raw, timestamp, "block.timestamp")


def to_bid_event(raw: RawLogEntry) -> BidEvent:
    """
    BidPlaced(_user, _auctionId, _characterId, _amount)
    """
    args = _args(raw)
    return BidEvent(
        bidder=_address(raw, args.get("_user"), "_user"),
        auction_id=AuctionId(_int(raw, args.get("_auctionId"), "_auctionId")),
        character_index=CharacterIndex(
            _int(raw, args.get("_characterId"), "_characterId")
        ),
        amount=Wei(_int(raw, args.get("_amount"), "_amount")),
        timestamp=_timestamp(raw),
        block_number=_int(raw, raw.get("blockNumber"), "blockNumber"),
        tx_hash=_tx_hash(raw),
    )


def to_withdraw_event(raw: RawLogEntry) -> WithdrawEvent:
    """
    BidWithdrawn(user, _auctionId, _characterId, _withdrawAmount)

    The withdrawing account is published as `user`. `_user` is also accepted.
    """
    args = _args(raw)
    return WithdrawEvent(
        user=_address(raw, _first(args, "user", "_user"), "user"),
        auction_id=AuctionId(_int(raw, args.get("_auctionId"), "_auctionId")),
        amount=Wei(_int(raw, args.get("_withdrawAmount"), "_withdrawAmount")),
        timestamp=_timestamp(raw),
        block_number=_int(raw, raw.get("blockNumber"), "blockNumber"),
        tx_hash=_tx_hash(raw),
    )


def to_claim_event(raw: RawLogEntry) -> ClaimEvent:
    """
    TokensClaimed(_user, _auctionId, _amount)
    """
    args = _args(raw)
    return ClaimEvent(
        user=_address(raw, _first(args, "_user", "user"), "_user"),
        auction_id=AuctionId(_int(raw, args.get("_auctionId"), "_auctionId")),
        amount=_int(raw, args.get("_amount"), "_amount"),
        timestamp=_timestamp(raw),
        block_number=_int(raw, raw.get("blockNumber"), "blockNumber"),
        tx_hash=_tx_hash(raw),
    )
