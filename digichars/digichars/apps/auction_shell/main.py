"""
DigiChars auction shell
"""
import json
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path

import click
from click_shell import shell  # type: ignore
from web3 import Web3

from digichars.actions import ActionResult
from digichars.apps.auction_shell.app import App, AccountNotConnected
from digichars.auctions.domain import AuctionRecord
from digichars.auctions.history import PastAuctionStats
from digichars.auctions.leaderboard import AuctionFilter, LeaderboardStats
from digichars.ledger.model import Address, AuctionId, Read

__app: App | None = None
__config_file: Path | None = None


class AppNotInitialized(Exception):
    pass


def _eth(wei: int) -> str:
    return f"{Web3.from_wei(wei, 'ether')} ETH"


def _echo_record(record: AuctionRecord):
    status = "closed" if record.is_closed() else "open"
    click.echo(
        f"Auction #{record.auction_id} [{status}] ends {record.end_datetime.isoformat()} "
        f"pool={_eth(record.total_pool)}"
    )
    for index, character in enumerate(record.characters):
        if character is None:
            click.echo(f"  [{index}] loading ...")
            continue
        winner = " (winner)" if character.is_winner else ""
        click.echo(
            f"  [{index}] {character.name} ({character.symbol}) {_eth(character.pool_balance)}{winner}"
        )
    if record.token_address:
        click.echo(f"  token: {record.token_address}")


def _echo_read(label: str, read: Read[AuctionRecord]):
    if read.is_resolved:
        _echo_record(read.get())
    elif read.is_pending:
        click.echo(f"{label}: loading ...")
    else:
        click.echo(f"{label}: not found")


def _echo_result(result: ActionResult):
    if result.success:
        click.echo(f"{result.action} succeeded - transaction: {result.tx_hash}")
    else:
        click.echo(f"{result.action} failed: {result.error}")


def _on_finished(_ctx: click.Context):
    if __app is not None:
        __app.stop()


@shell(
    prompt="digichars > ",
    intro="DigiChars Auction Shell",
    on_finished=_on_finished,
)
@click.option(
    "--config-file",
    required=True,
    prompt="Config File",
    type=click.Path(exists=True, resolve_path=True, readable=True, path_type=Path),
)
def app(config_file: Path | None = None):
    if config_file is None:
        return

    global __app
    global __config_file

    __app = App.from_config_file(config_file)
    __config_file = config_file
    __app.start()


@app.command
def show_config():
    """
    Displays the application config as JSON
    """

    if __app is None:
        raise AppNotInitialized

    click.echo(__config_file)
    click.echo(json.dumps(asdict(__app.config), indent=3, default=str))


@app.command
def current_auction():
    """
    Displays the open auction and the previous auction results
    """

    if __app is None:
        raise AppNotInitialized

    view = __app.get_current_auction()
    _echo_read("Current auction", view.current)
    if view.previous is not None:
        click.echo("Previous auction results:")
        _echo_read("Previous auction", view.previous)


@app.command
@click.option("--page", default=1, type=click.INT, help="Page number")
@click.option(
    "--offset",
    default=0,
    type=click.INT,
    help="Number of most recent past auctions to skip",
)
@click.option(
    "--filter",
    "auction_filter",
    default=AuctionFilter.ALL.value,
    type=click.Choice([value.value for value in AuctionFilter]),
    help="Auction filter",
)
def past_auctions(page: int, offset: int, auction_filter: str):
    """
    Lists past auctions, most recent first
    """

    if __app is None:
        raise AppNotInitialized

    view, result = __app.get_past_auctions_page(
        page=page, offset=offset, auction_filter=AuctionFilter(auction_filter)
    )
    stats = PastAuctionStats.compute(view.records)
    click.echo(
        f"Past auctions: {view.total_past_auctions} | completed: {stats.completed_auctions} "
        f"| characters created: {stats.characters_created} | volume: {_eth(stats.total_volume)}"
    )
    if view.is_loading:
        click.echo("some auctions are still loading ...")
    for record in result.items:
        _echo_record(record)
    click.echo(f"page {result.page} of {result.total_pages}")
    if view.has_more:
        click.echo(f"older auctions: --offset {view.next_offset}")


@app.command
@click.option("--auction-id", required=True, prompt="Auction ID", type=click.INT)
def auction(auction_id: int):
    """
    Displays an auction by its ID
    """

    if __app is None:
        raise AppNotInitialized

    _echo_read(f"Auction #{auction_id}", __app.get_auction(AuctionId(auction_id)))


@app.command
def stored_auctions():
    """
    Lists the IDs of the closed auctions that are stored in the database
    """

    if __app is None:
        raise AppNotInitialized

    auction_ids = __app.get_stored_auction_ids()
    click.echo(f"stored auctions: {len(auction_ids)}")
    if auction_ids:
        click.echo(", ".join(str(auction_id) for auction_id in auction_ids))


@app.command
def sync_status():
    """
    Displays the state of the background auction sync
    """

    if __app is None:
        raise AppNotInitialized

    snapshot = __app.auction_snapshot
    if snapshot is None:
        click.echo("auction sync has not completed a pass yet")
        return

    status = "syncing" if snapshot.is_loading else "in sync"
    click.echo(
        f"{status} | version: {snapshot.version} "
        f"| past auctions: {snapshot.past_auctions.total_past_auctions} "
        f"| leaderboard: {len(snapshot.leaderboard)} "
        f"| stored auctions: {len(__app.get_stored_auction_ids())}"
    )
    if snapshot.current_auction is not None:
        _echo_read("Current auction", snapshot.current_auction.current)


@app.command
@click.option(
    "--offset",
    default=0,
    type=click.INT,
    help="Number of most recent past auctions to skip",
)
def leaderboard(offset: int):
    """
    Ranks winning characters by pool balance
    """

    if __app is None:
        raise AppNotInitialized

    entries = __app.get_leaderboard(offset)
    stats = LeaderboardStats.compute(entries)
    click.echo(
        f"characters: {stats.count} | total volume: {_eth(stats.total_volume)} "
        f"| average volume: {_eth(stats.average_volume)}"
    )
    for entry in entries:
        click.echo(
            f"#{entry.rank} {entry.name} ({entry.symbol}) auction #{entry.auction_id} "
            f"{_eth(entry.pool_balance)} token: {entry.token_address}"
        )


@app.command
@click.option("--auction-id", required=True, prompt="Auction ID", type=click.INT)
def activity(auction_id: int):
    """
    Displays auction bid activity
    """

    if __app is None:
        raise AppNotInitialized

    summary = __app.get_auction_activity(AuctionId(auction_id))
    click.echo(
        f"bids: {summary.total_bids} | volume: {_eth(summary.total_volume)} "
        f"| bidders: {len(summary.unique_bidders)} | withdrawals: {len(summary.withdrawals)}"
    )
    for index, bids in summary.bids_by_character.items():
        click.echo(f"[{index}]")
        for bid in bids:
            timestamp = datetime.fromtimestamp(bid.timestamp, UTC).isoformat()
            click.echo(f"  {timestamp} {bid.bidder} {_eth(bid.amount)}")
    click.echo("top bidders:")
    for bidder in summary.top_bidders():
        click.echo(f"  {bidder.bidder} bids={bidder.bid_count} {_eth(bidder.total_amount)}")


@app.command
@click.option("--account", required=True, prompt="Account", help="Ethereum account")
def connect_account(account: str):
    """
    Connects an account. Transactions are submitted from the connected account.
    """

    if __app is None:
        raise AppNotInitialized

    __app.connect_account(Address(Web3.to_checksum_address(account.strip())))


@app.command
def disconnect_account():
    """
    Disconnects the connected account
    """

    if __app is None:
        raise AppNotInitialized

    __app.disconnect_account()


@app.command
@click.option(
    "--offset",
    default=0,
    type=click.INT,
    help="Number of most recent past auctions to skip",
)
def my_auctions(offset: int):
    """
    Displays the connected account's auction history
    """

    if __app is None:
        raise AppNotInitialized

    if __app.connected_account is None:
        raise AccountNotConnected

    view = __app.get_user_history(offset)
    stats = view.stats
    click.echo(
        f"auctions: {stats.auctions_participated} | bids: {stats.total_bids} "
        f"| bid amount: {_eth(stats.total_bid_amount)} "
        f"| claimable tokens: {stats.total_claimable_tokens} "
        f"({stats.auctions_with_claimable_tokens} auctions)"
    )
    if view.is_loading:
        click.echo("some auctions are still loading ...")
    for ledger in view.ledgers:
        claimed = " (claimed)" if ledger.has_claimed_tokens else ""
        click.echo(
            f"Auction #{ledger.auction_id}: claimable tokens={ledger.claimable_tokens}{claimed}"
        )
        for bid in ledger.character_bids:
            click.echo(f"  [{bid.character_index}] {_eth(bid.bid_amount)}")


@app.command
@click.option(
    "--character-index", required=True, prompt="Character Index", type=click.INT
)
@click.option("--amount", required=True, prompt="Amount (ETH)", type=click.STRING)
def bid(character_index: int, amount: str):
    """
    Bids on a character in the open auction
    """

    if __app is None:
        raise AppNotInitialized

    value = Web3.to_wei(amount, "ether")
    if click.confirm(f"Please confirm bid of {amount} ETH on character {character_index}"):
        _echo_result(__app.bid(character_index, value))
    else:
        click.echo("Bid has been cancelled")


@app.command
@click.option("--auction-id", required=True, prompt="Auction ID", type=click.INT)
@click.option(
    "--character-index", required=True, prompt="Character Index", type=click.INT
)
@click.option("--amount", required=True, prompt="Amount (ETH)", type=click.STRING)
def withdraw(auction_id: int, character_index: int, amount: str):
    """
    Withdraws a bid
    """

    if __app is None:
        raise AppNotInitialized

    _echo_result(
        __app.withdraw(auction_id, character_index, Web3.to_wei(amount, "ether"))
    )


@app.command
@click.option("--auction-id", required=True, prompt="Auction ID", type=click.INT)
def claim(auction_id: int):
    """
    Claims the winning character's tokens
    """

    if __app is None:
        raise AppNotInitialized

    _echo_result(__app.claim(auction_id))


if __name__ == "__main__":
    app()
