"""
Retrieves closed auction records from the database
"""
from typing import Sequence

from sqlalchemy import select

from digichars.auctions.domain import AuctionRecord
from digichars.commands.data import SqlAlchemySupport
from digichars.core.command import Command
from digichars.data.auction import TAuction
from digichars.ledger.model import AuctionId


class GetAuctionRecords(
    Command[Sequence[AuctionId], dict[AuctionId, AuctionRecord]], SqlAlchemySupport
):
    """
    Auction IDs that are not stored are omitted from the result.
    """

    def __call__(
        self, auction_ids: Sequence[AuctionId]
    ) -> dict[AuctionId, AuctionRecord]:
        if len(auction_ids) == 0:
            return {}

        with self._session_factory() as session:
            query = select(TAuction).where(TAuction.auction_id.in_(auction_ids))
            return {
                AuctionId(auction.auction_id): auction.to_auction_record()
                for auction in session.scalars(query)
            }


class GetAuctionRecord(Command[AuctionId, AuctionRecord | None], SqlAlchemySupport):
    """
    Retrieves a closed auction record by its ID
    """

    def __call__(self, auction_id: AuctionId) -> AuctionRecord | None:
        with self._session_factory() as session:
            auction = session.get(TAuction, auction_id)
            if auction is None:
                return None

            return auction.to_auction_record()
