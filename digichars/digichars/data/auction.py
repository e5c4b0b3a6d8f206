"""
Closed auction data model
"""
from datetime import datetime, UTC
from typing import cast

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from digichars.auctions.domain import AuctionRecord, Character
from digichars.data import Base
from digichars.ledger.model import CHARACTER_SLOTS, Address, AuctionId, Wei


class TAuction(Base):
    """
    Closed auction database table model

    Only complete records are stored, i.e., all character slots are resolved.
    """

    __tablename__ = "auction"

    auction_id: Mapped[AuctionId] = mapped_column(primary_key=True)
    end_time: Mapped[int] = mapped_column(index=True)

    # when the record was last stored
    stored_at: Mapped[datetime] = mapped_column()

    winner_index: Mapped[int | None] = mapped_column(default=None)
    token_address: Mapped[Address | None] = mapped_column(
        String(42), index=True, default=None
    )

    characters: Mapped[list["TCharacter"]] = relationship(
        back_populates="auction",
        cascade="all, delete-orphan",
        order_by="TCharacter.slot",
        default_factory=list,
    )

    @classmethod
    def create(cls, record: AuctionRecord) -> "TAuction":
        """
        Converts AuctionRecord -> TAuction
        """
        if not record.is_complete:
            raise AssertionError(f"auction record is incomplete: {record.auction_id}")

        return cls(
            auction_id=record.auction_id,
            end_time=record.end_time,
            stored_at=datetime.now(UTC),
            winner_index=record.winner_index,
            token_address=record.token_address,
            characters=TCharacter.create_all(record),
        )

    def update(self, record: AuctionRecord):
        """
        Replaces the stored state with the specified record
        """
        if self.auction_id != record.auction_id:
            raise AssertionError("auction_id does not match")
        if not record.is_complete:
            raise AssertionError(f"auction record is incomplete: {record.auction_id}")

        self.end_time = cast(Mapped[int], record.end_time)
        self.stored_at = cast(Mapped[datetime], datetime.now(UTC))
        self.winner_index = cast(Mapped[int | None], record.winner_index)
        self.token_address = cast(Mapped[Address | None], record.token_address)
        self.characters = cast(
            Mapped[list[TCharacter]], TCharacter.create_all(record)
        )

    def to_auction_record(self) -> AuctionRecord:
        """
        Converts this instance into an AuctionRecord instance
        """
        characters: list[Character | None] = [None] * CHARACTER_SLOTS
        for character in self.characters:
            characters[character.slot] = character.to_character(
                character.slot == self.winner_index
            )

        return AuctionRecord(
            auction_id=AuctionId(self.auction_id),
            characters=tuple(characters),
            end_time=self.end_time,
            winner_index=self.winner_index,
            token_address=(
                Address(self.token_address) if self.token_address else None
            ),
        )


class TCharacter(Base):
    """
    Auction character database table model
    """

    __tablename__ = "auction_character"

    auction_id: Mapped[AuctionId] = mapped_column(
        ForeignKey("auction.auction_id"),
        primary_key=True,
    )
    slot: Mapped[int] = mapped_column(primary_key=True)

    uri: Mapped[str] = mapped_column()
    name: Mapped[str] = mapped_column(index=True)
    symbol: Mapped[str] = mapped_column(index=True)
    pool_balance: Mapped[Wei] = mapped_column()

    auction: Mapped["TAuction"] = relationship(back_populates="characters", default=None)

    @classmethod
    def create_all(cls, record: AuctionRecord) -> list["TCharacter"]:
        return [
            cls(
                auction_id=record.auction_id,
                slot=slot,
                uri=character.uri,
                name=character.name,
                symbol=character.symbol,
                pool_balance=character.pool_balance,
            )
            for slot, character in enumerate(record.characters)
            if character is not None
        ]

    def to_character(self, is_winner: bool) -> Character:
        return Character(
            uri=self.uri,
            name=self.name,
            symbol=self.symbol,
            pool_balance=Wei(self.pool_balance),
            is_winner=is_winner,
        )
