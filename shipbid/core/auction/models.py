"""
Auction records as stored by the shipping chaincode.

Field aliases follow the chaincode's JSON tags, including the item
weight which is serialized under "org".

A bid exists in one of two forms:
- BidCommitment: only the hash of the private bid is public
- BidDisclosure: price, org and bidder made public by a reveal
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Fabric composite keys are delimited by this character
COMPOSITE_KEY_SEPARATOR = "\x00"
BID_KEY_TYPE = "bid"


class AuctionStatus(str, Enum):
    """Lifecycle status of a shipment auction."""
    OPEN = "open"
    CLOSED = "closed"
    ENDED = "ended"

    def can_advance_to(self, other: "AuctionStatus") -> bool:
        """Status only moves forward one step at a time."""
        order = list(AuctionStatus)
        return order.index(other) == order.index(self) + 1


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Item(_Record):
    """The shipment being auctioned. Immutable once created."""
    name: str = Field(alias="item")
    dest: str
    weight: int = Field(alias="org")
    days: int


class BidCommitment(_Record):
    """A sealed bid: only the private-data hash is public."""
    org: str = ""
    hash: str


class BidDisclosure(_Record):
    """A bid whose plaintext has been revealed (or read by its owner)."""
    object_type: str = Field(default=BID_KEY_TYPE, alias="objectType")
    price: int = Field(gt=0)
    org: str
    bidder: str


class Bid(BidDisclosure):
    """A bid as returned by QueryBid, tagged with its bid id."""
    id: str = ""


def bid_key_matches(key: str, bid_id: str) -> bool:
    """
    Whether a privateBids/revealedBids key refers to bid_id.

    Keys are either the bare bid id or a composite key
    \\x00bid\\x00<auction>\\x00<bid id>\\x00.
    """
    if key == bid_id:
        return True
    parts = [p for p in key.split(COMPOSITE_KEY_SEPARATOR) if p]
    return len(parts) >= 2 and parts[0] == BID_KEY_TYPE and parts[-1] == bid_id


class Auction(_Record):
    """
    Public shipment auction record.

    Clients never hold authoritative copies; read it again before
    every decision that depends on it.
    """
    id: str = ""
    object_type: str = Field(default="shipping", alias="objectType")
    item: Item
    seller: str = ""
    organizations: list[str] = Field(default_factory=list)
    private_bids: Dict[str, BidCommitment] = Field(default_factory=dict, alias="privateBids")
    revealed_bids: Dict[str, BidDisclosure] = Field(default_factory=dict, alias="revealedBids")
    winner: str = ""
    price: int = 0
    status: AuctionStatus

    # Go marshals nil slices and maps as null
    @field_validator("private_bids", "revealed_bids", mode="before")
    @classmethod
    def _null_bids(cls, value):
        return {} if value is None else value

    @field_validator("organizations", mode="before")
    @classmethod
    def _null_orgs(cls, value):
        return [] if value is None else value

    def find_private_bid(self, bid_id: str) -> Optional[BidCommitment]:
        """Commitment for bid_id, if one was submitted."""
        for key, commitment in self.private_bids.items():
            if bid_key_matches(key, bid_id):
                return commitment
        return None

    def find_revealed_bid(self, bid_id: str) -> Optional[BidDisclosure]:
        """Disclosure for bid_id, if it has been revealed."""
        for key, disclosure in self.revealed_bids.items():
            if bid_key_matches(key, bid_id):
                return disclosure
        return None

    @property
    def sealed_bids(self) -> Dict[str, BidCommitment]:
        """Commitments that have not been revealed yet."""
        return {
            key: commitment
            for key, commitment in self.private_bids.items()
            if key not in self.revealed_bids
        }

    @property
    def is_ended(self) -> bool:
        return self.status == AuctionStatus.ENDED
