"""
Shipment auction module.

This module provides the client-side protocol logic:
- Auction/bid records decoded from the chaincode
- Fresh state reads
- Endorsing organization selection
- Canonical commit-reveal bid payloads
- Lifecycle driver
"""

from shipbid.core.auction.models import (
    Auction,
    AuctionStatus,
    Bid,
    BidCommitment,
    BidDisclosure,
    Item,
)

from shipbid.core.auction.reader import read_auction, read_bid

from shipbid.core.auction.endorsement import (
    select_endorsers,
    select_all_endorsers,
    get_selector,
    PAIR_POLICY,
    ALL_POLICY,
)

from shipbid.core.auction.codec import (
    encode_bid,
    package_bid,
    package_reveal,
    commitment_hash,
    TRANSIENT_BID_KEY,
)

from shipbid.core.auction.driver import AuctionLifecycleDriver

__all__ = [
    # Models
    "Auction",
    "AuctionStatus",
    "Bid",
    "BidCommitment",
    "BidDisclosure",
    "Item",
    # Reader
    "read_auction",
    "read_bid",
    # Endorsement
    "select_endorsers",
    "select_all_endorsers",
    "get_selector",
    "PAIR_POLICY",
    "ALL_POLICY",
    # Codec
    "encode_bid",
    "package_bid",
    "package_reveal",
    "commitment_hash",
    "TRANSIENT_BID_KEY",
    # Driver
    "AuctionLifecycleDriver",
]
