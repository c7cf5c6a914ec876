"""
shipbid CLI - one command per auction lifecycle step.

Every command connects as <USER> of <ORG>, runs a single step and
disconnects, whatever the outcome. Usage errors and failed steps
exit with status 1.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, TypeVar

import click

from shipbid.cli.render import render_auction, render_bid
from shipbid.core.auction import AuctionLifecycleDriver, get_selector
from shipbid.core.auction.endorsement import ALL_POLICY
from shipbid.core.config import OrgProfile, ShipBidConfig, load_config
from shipbid.core.errors import LedgerError
from shipbid.gateway import HttpGateway, InMemoryGateway, InMemoryLedger, LedgerGateway
from shipbid.utils.logger import get_logger, setup_logging


logger = get_logger("cli")

USAGE_EXIT_CODE = 1
FAILURE_EXIT_CODE = 1

T = TypeVar("T")


class LifecycleGroup(click.Group):
    """Click group that reports usage errors with exit status 1."""

    def main(self, *args, **kwargs):
        kwargs["standalone_mode"] = False
        try:
            rv = super().main(*args, **kwargs)
        except click.UsageError as e:
            e.show()
            sys.exit(USAGE_EXIT_CODE)
        except click.ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except click.Abort:
            click.echo("Aborted!", err=True)
            sys.exit(FAILURE_EXIT_CODE)
        sys.exit(rv if isinstance(rv, int) else 0)


def open_gateway(config: ShipBidConfig, profile: OrgProfile, user: str) -> LedgerGateway:
    """Build an unconnected gateway for the configured backend."""
    if config.backend == "local":
        ledger = InMemoryLedger(state_path=config.local_state)
        return InMemoryGateway(ledger, profile.name, profile.msp_id, user)

    return HttpGateway(
        org=profile.name,
        msp_id=profile.msp_id,
        identity=user,
        base_url=profile.gateway_url,
        channel=config.channel,
        wallet_dir=profile.wallet_dir,
        timeout=config.request_timeout,
    )


def make_driver(config: ShipBidConfig, gateway: LedgerGateway) -> AuctionLifecycleDriver:
    return AuctionLifecycleDriver(
        gateway,
        config.contract,
        selector=get_selector(config.endorsement_policy),
        max_retries=config.max_retries,
        retry_backoff=config.retry_backoff,
    )


def run_step(
    ctx: click.Context,
    org: str,
    user: str,
    step: str,
    action: Callable[[AuctionLifecycleDriver], T],
) -> T:
    """
    Connect, run one lifecycle step and always disconnect.

    Ledger failures are logged and end the process with status 1.
    """
    config: ShipBidConfig = ctx.obj["config"]
    try:
        profile = config.resolve_org(org)
    except KeyError as e:
        raise click.BadParameter(e.args[0], param_hint="ORG") from None

    try:
        with open_gateway(config, profile, user) as gateway:
            return action(make_driver(config, gateway))
    except (LedgerError, ValueError) as e:
        logger.error(f"FAILED to {step} as {user}@{profile.name}: {e}")
        sys.exit(FAILURE_EXIT_CODE)


@click.group(cls=LifecycleGroup)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False), help="JSON config file")
@click.option("--backend", type=click.Choice(["rest", "local"]), default=None, help="Ledger backend")
@click.option("--state-file", default=None, type=click.Path(dir_okay=False), help="Local backend state file")
@click.option("--endorse-all", is_flag=True, help="Require every auction organization to endorse")
@click.option("--retries", default=None, type=click.IntRange(min=0), help="Retries on write conflicts")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path, backend, state_file, endorse_all, retries):
    """Sealed-bid shipment auction client"""
    try:
        config = load_config(config_path)
    except (OSError, ValueError, KeyError) as e:
        raise click.BadParameter(f"cannot load config: {e}", param_hint="--config")

    if backend:
        config.backend = backend
    if state_file:
        config.local_state = Path(state_file)
    if endorse_all:
        config.endorsement_policy = ALL_POLICY
    if retries is not None:
        config.max_retries = retries

    setup_logging(
        level=logging.DEBUG if debug else logging.INFO,
        log_dir=str(config.log_dir) if config.log_dir else None,
        log_to_file=config.log_dir is not None,
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Lifecycle Commands
# =============================================================================


@cli.command("create")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.argument("item_name")
@click.argument("dest")
@click.argument("weight", type=int)
@click.argument("days", type=int)
@click.pass_context
def create(ctx, org, user, auction_id, item_name, dest, weight, days):
    """Create a shipment auction"""
    auction = run_step(
        ctx, org, user, "create auction",
        lambda driver: driver.create(auction_id, item_name, dest, weight, days),
    )
    click.echo("*** Result: committed")
    click.echo(render_auction(auction))


@cli.command("place")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.argument("price", type=click.IntRange(min=1))
@click.pass_context
def place(ctx, org, user, auction_id, price):
    """Place a private bid; prints the bid id"""
    bid_id = run_step(
        ctx, org, user, "place bid",
        lambda driver: driver.place_bid(auction_id, price),
    )
    click.echo(f"Bid ID: {bid_id}")


@cli.command("bid")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.argument("bid_id")
@click.pass_context
def bid(ctx, org, user, auction_id, bid_id):
    """Commit the hash of a placed bid to the auction"""
    placed = run_step(
        ctx, org, user, "submit bid",
        lambda driver: driver.submit_bid(auction_id, bid_id),
    )
    click.echo(render_bid(placed))


@cli.command("reveal")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.argument("bid_id")
@click.pass_context
def reveal(ctx, org, user, auction_id, bid_id):
    """Reveal a submitted bid"""
    auction = run_step(
        ctx, org, user, "reveal bid",
        lambda driver: driver.reveal_bid(auction_id, bid_id),
    )
    click.echo(render_auction(auction))


@cli.command("close")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.pass_context
def close(ctx, org, user, auction_id):
    """Close bidding (seller only)"""
    auction = run_step(
        ctx, org, user, "close auction",
        lambda driver: driver.close(auction_id),
    )
    click.echo("*** Result: committed")
    click.echo(render_auction(auction))


@cli.command("end")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.pass_context
def end(ctx, org, user, auction_id):
    """End the auction and settle the winner (seller only)"""
    auction = run_step(
        ctx, org, user, "end auction",
        lambda driver: driver.end(auction_id),
    )
    click.echo("*** Result: committed")
    click.echo(render_auction(auction))


@cli.command("query")
@click.argument("org")
@click.argument("user")
@click.argument("auction_id")
@click.pass_context
def query(ctx, org, user, auction_id):
    """Show the current auction record"""
    auction = run_step(
        ctx, org, user, "query auction",
        lambda driver: driver.query(auction_id),
    )
    click.echo(render_auction(auction))


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--price", default=100, type=click.IntRange(min=1), help="Bid price")
@click.pass_context
def demo(ctx, price):
    """Run a full auction against an in-memory ledger"""
    config: ShipBidConfig = ctx.obj["config"]
    selector = get_selector(config.endorsement_policy)
    ledger = InMemoryLedger()
    org1 = config.resolve_org("org1")
    org2 = config.resolve_org("org2")

    click.echo("=" * 60)
    click.echo("  SEALED-BID SHIPMENT AUCTION - DEMO")
    click.echo("=" * 60)

    try:
        with InMemoryGateway(ledger, org1.name, org1.msp_id, "seller") as seller_gw, \
                InMemoryGateway(ledger, org2.name, org2.msp_id, "bidder") as bidder_gw:
            seller = AuctionLifecycleDriver(seller_gw, config.contract, selector=selector)
            bidder = AuctionLifecycleDriver(bidder_gw, config.contract, selector=selector)

            click.echo(f"\n--> {org1.name} creates auction A1")
            seller.create("A1", "Box", "Osaka", 20, 3)

            click.echo(f"--> {org2.name} places a private bid of {price}")
            bid_id = bidder.place_bid("A1", price)
            click.echo(f"    bid id {bid_id[:16]}...")

            click.echo(f"--> {org2.name} submits the bid hash")
            bidder.submit_bid("A1", bid_id)
            auction = bidder.query("A1")
            click.echo(f"    organizations now {auction.organizations}")

            click.echo(f"--> {org2.name} reveals the bid")
            bidder.reveal_bid("A1", bid_id)

            click.echo(f"--> {org1.name} closes and ends the auction")
            seller.close("A1")
            auction = seller.end("A1")
    except (LedgerError, ValueError) as e:
        logger.error(f"FAILED to run demo: {e}")
        sys.exit(FAILURE_EXIT_CODE)

    click.echo()
    click.echo(render_auction(auction))
    click.echo()
    click.echo("Demo complete!")


def main():
    cli()


if __name__ == "__main__":
    main()
