"""
Auction event model

Events are immutable and append-only. They are ingested once per session from the ledger's event logs.
"""
from dataclasses import dataclass

from digichars.ledger.model import Address, AuctionId, CharacterIndex, TxHash, Wei


@dataclass(slots=True, frozen=True)
class BidEvent:
    """
    BidPlaced
    """

    bidder: Address
    auction_id: AuctionId
    character_index: CharacterIndex
    amount: Wei
    # unix seconds
    timestamp: int
    block_number: int
    tx_hash: TxHash


@dataclass(slots=True, frozen=True)
class WithdrawEvent:
    """
    BidWithdrawn
    """

    user: Address
    auction_id: AuctionId
    amount: Wei
    timestamp: int
    block_number: int
    tx_hash: TxHash


@dataclass(slots=True, frozen=True)
class ClaimEvent:
    """
    TokensClaimed
    """

    user: Address
    auction_id: AuctionId
    # token amount
    amount: int
    timestamp: int
    block_number: int
    tx_hash: TxHash
