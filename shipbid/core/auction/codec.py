"""
Bid Commit Codec - canonical bid payloads for commit-reveal.

The private bid placed in the bidder's collection and the payload sent
at reveal time must be byte-identical: the chaincode compares the
SHA-256 of the revealed bytes against the private-data hash recorded
when the bid was submitted. Both paths therefore go through encode_bid().

Payloads travel only as transient data, never as transaction
arguments, so the plaintext stays out of the public transaction log.
"""

import hashlib
import json
from typing import Dict

from shipbid.core.auction.models import BID_KEY_TYPE, BidDisclosure


# Transient map key the chaincode reads the bid from
TRANSIENT_BID_KEY = "bid"


def encode_bid(bid: BidDisclosure) -> bytes:
    """
    Serialize a bid to its canonical byte form.

    Key order is objectType, price, org, bidder with compact separators,
    the same bytes JSON.stringify produces for the bid object.

    Raises:
        ValueError: If the price is not a positive integer
    """
    price = bid.price
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise ValueError(f"Bid price must be a positive integer, got {price!r}")

    canonical = {
        "objectType": BID_KEY_TYPE,
        "price": price,
        "org": bid.org,
        "bidder": bid.bidder,
    }
    return json.dumps(canonical, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def package_reveal(bid: BidDisclosure) -> Dict[str, bytes]:
    """Build the transient map for RevealBid."""
    return {TRANSIENT_BID_KEY: encode_bid(bid)}


def package_bid(bid: BidDisclosure) -> Dict[str, bytes]:
    """Build the transient map for the private Bid placement."""
    return {TRANSIENT_BID_KEY: encode_bid(bid)}


def commitment_hash(payload: bytes) -> str:
    """Lowercase hex SHA-256, as the peer reports private-data hashes."""
    return hashlib.sha256(payload).hexdigest()
