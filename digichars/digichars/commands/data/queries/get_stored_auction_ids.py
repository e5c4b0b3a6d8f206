"""
Provides command to list the IDs of the stored auctions
"""
from sqlalchemy import select

from digichars.commands.data import SqlAlchemySupport
from digichars.core.command import Command
from digichars.ledger.model import AuctionId
from digichars.data.auction import TAuction


class GetStoredAuctionIds(Command[None, list[AuctionId]], SqlAlchemySupport):
    """
    Returns stored auction IDs, most recent first
    """

    def __call__(self, _args: None = None) -> list[AuctionId]:
        with self._session_factory() as session:
            query = select(TAuction.auction_id).order_by(TAuction.auction_id.desc())
            return [AuctionId(auction_id) for auction_id in session.scalars(query)]
