"""
Auction State Reader - fresh reads of auction and bid records.

Every call is a new QueryShipping/QueryBid evaluation. Nothing is cached:
organization membership and status change under concurrent writers.
"""

from pydantic import ValidationError

from shipbid.core.auction.models import Auction, Bid
from shipbid.core.errors import DecodeError
from shipbid.gateway.base import LedgerGateway
from shipbid.utils.logger import get_logger


logger = get_logger("reader")


def read_auction(gateway: LedgerGateway, contract: str, auction_id: str) -> Auction:
    """
    Read the current public record of an auction.

    Raises:
        NotFoundError: The auction does not exist
        DecodeError: The payload is not a shipping record
    """
    payload = gateway.evaluate(contract, "QueryShipping", auction_id)
    try:
        auction = Auction.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(
            f"Malformed shipping record for {auction_id}: {e.error_count()} error(s): {e}",
            "QueryShipping",
        ) from e

    auction.id = auction_id
    logger.debug(
        f"Auction {auction_id}: status={auction.status.value} "
        f"orgs={auction.organizations} sealed={len(auction.sealed_bids)} "
        f"revealed={len(auction.revealed_bids)}"
    )
    return auction


def read_bid(gateway: LedgerGateway, contract: str, auction_id: str, bid_id: str) -> Bid:
    """
    Read one of the caller's own bids from their organization's collection.

    Raises:
        NotFoundError: The bid does not exist
        DecodeError: The payload is not a bid record
    """
    payload = gateway.evaluate(contract, "QueryBid", auction_id, bid_id)
    try:
        bid = Bid.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(
            f"Malformed bid record {bid_id} in {auction_id}: {e}",
            "QueryBid",
        ) from e

    bid.id = bid_id
    return bid
