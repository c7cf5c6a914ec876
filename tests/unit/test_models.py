"""
Tests for auction record decoding.
"""

import json

import pytest
from pydantic import ValidationError

from shipbid.core.auction import Auction, AuctionStatus, Bid
from shipbid.core.auction.models import bid_key_matches


BID_KEY = "\x00bid\x00A1\x00tx1\x00"


@pytest.fixture
def shipping_json():
    """A shipping record as the contract marshals it."""
    return json.dumps({
        "objectType": "shipping",
        "item": {"item": "Widget", "dest": "Tokyo", "org": 10, "days": 5},
        "seller": "c2VsbGVy",
        "organizations": ["Org1MSP", "Org2MSP"],
        "privateBids": {
            BID_KEY: {"org": "Org2MSP", "hash": "ab" * 32},
            "\x00bid\x00A1\x00tx2\x00": {"org": "Org1MSP", "hash": "cd" * 32},
        },
        "revealedBids": {
            BID_KEY: {"objectType": "bid", "price": 100, "org": "Org2MSP", "bidder": "YmlkZGVy"},
        },
        "winner": "",
        "price": 100000000,
        "status": "open",
    })


class TestAuctionDecoding:
    """Tests for Auction parsing."""

    def test_item_fields(self, shipping_json):
        """Weight is carried under the 'org' JSON tag."""
        auction = Auction.model_validate_json(shipping_json)
        assert auction.item.name == "Widget"
        assert auction.item.dest == "Tokyo"
        assert auction.item.weight == 10
        assert auction.item.days == 5

    def test_status_and_orgs(self, shipping_json):
        auction = Auction.model_validate_json(shipping_json)
        assert auction.status == AuctionStatus.OPEN
        assert auction.organizations == ["Org1MSP", "Org2MSP"]

    def test_null_collections(self):
        """Go nil maps and slices decode as empty."""
        auction = Auction.model_validate_json(json.dumps({
            "item": {"item": "Box", "dest": "Osaka", "org": 20, "days": 3},
            "organizations": None,
            "privateBids": None,
            "revealedBids": None,
            "status": "open",
        }))
        assert auction.organizations == []
        assert auction.private_bids == {}
        assert auction.revealed_bids == {}

    def test_unknown_status_rejected(self, shipping_json):
        data = json.loads(shipping_json)
        data["status"] = "paused"
        with pytest.raises(ValidationError):
            Auction.model_validate(data)

    def test_missing_item_rejected(self):
        with pytest.raises(ValidationError):
            Auction.model_validate_json('{"status": "open"}')


class TestBidLookup:
    """Tests for finding bids by id."""

    def test_composite_key_matches_bid_id(self):
        assert bid_key_matches(BID_KEY, "tx1")
        assert not bid_key_matches(BID_KEY, "tx2")

    def test_bare_key_matches(self):
        assert bid_key_matches("B1", "B1")

    def test_find_private_and_revealed(self, shipping_json):
        auction = Auction.model_validate_json(shipping_json)
        assert auction.find_private_bid("tx1").hash == "ab" * 32
        assert auction.find_revealed_bid("tx1").price == 100
        assert auction.find_revealed_bid("tx2") is None
        assert auction.find_private_bid("missing") is None

    def test_sealed_bids_exclude_revealed(self, shipping_json):
        auction = Auction.model_validate_json(shipping_json)
        assert list(auction.sealed_bids) == ["\x00bid\x00A1\x00tx2\x00"]


class TestStatus:
    """Tests for status ordering."""

    def test_forward_steps(self):
        assert AuctionStatus.OPEN.can_advance_to(AuctionStatus.CLOSED)
        assert AuctionStatus.CLOSED.can_advance_to(AuctionStatus.ENDED)

    def test_no_skipping_or_regressing(self):
        assert not AuctionStatus.OPEN.can_advance_to(AuctionStatus.ENDED)
        assert not AuctionStatus.ENDED.can_advance_to(AuctionStatus.OPEN)
        assert not AuctionStatus.CLOSED.can_advance_to(AuctionStatus.CLOSED)


class TestBid:
    def test_decode_query_bid(self):
        bid = Bid.model_validate_json(
            '{"objectType":"bid","price":42,"org":"Org1MSP","bidder":"YQ=="}'
        )
        assert bid.price == 42
        assert bid.id == ""

    def test_zero_price_rejected(self):
        with pytest.raises(ValidationError):
            Bid.model_validate_json('{"price":0,"org":"Org1MSP","bidder":"YQ=="}')
