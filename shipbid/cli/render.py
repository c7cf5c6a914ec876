"""Human-readable summaries of auction and bid records."""

import base64
import binascii
from typing import List

from shipbid.core.auction.models import Auction, Bid, BidDisclosure


def short_identity(identity: str) -> str:
    """
    Condense a client identity to its common name.

    Client ids are base64("x509::CN=<user>,...::<issuer>"); anything
    that does not decode that way is shown truncated.
    """
    try:
        decoded = base64.b64decode(identity, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return identity[:16]

    for part in decoded.replace("::", ",").split(","):
        if part.startswith("CN="):
            return part[3:]
    return identity[:16]


def _bid_line(bid: BidDisclosure) -> str:
    return f"{short_identity(bid.bidder)} ({bid.org}): {bid.price}"


def render_bid(bid: Bid) -> str:
    """Summary of a caller's own bid."""
    lines = [
        f"Bid: {bid.id}",
        f"  Bidder: {short_identity(bid.bidder)}",
        f"  Org:    {bid.org}",
        f"  Price:  {bid.price}",
    ]
    return "\n".join(lines)


def render_auction(auction: Auction) -> str:
    """Summary of a shipment auction record."""
    item = auction.item
    lines: List[str] = [
        f"Shipment auction: {auction.id}",
        f"  Status:        {auction.status.value}",
        f"  Item:          {item.name}",
        f"  Destination:   {item.dest}",
        f"  Weight:        {item.weight}",
        f"  Transit days:  {item.days}",
        f"  Seller:        {short_identity(auction.seller)}",
        f"  Organizations: {', '.join(auction.organizations) or '-'}",
    ]

    sealed = auction.sealed_bids
    lines.append(f"  Sealed bids ({len(sealed)}):")
    for commitment in sealed.values():
        lines.append(f"    {commitment.org or '?'} {commitment.hash}")

    lines.append(f"  Revealed bids ({len(auction.revealed_bids)}):")
    for disclosure in auction.revealed_bids.values():
        lines.append(f"    {_bid_line(disclosure)}")

    if auction.is_ended:
        lines.append(f"  Winner:        {short_identity(auction.winner) or '-'}")
        lines.append(f"  Price:         {auction.price}")

    return "\n".join(lines)
