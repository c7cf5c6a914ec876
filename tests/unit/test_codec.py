"""
Tests for canonical bid payloads.
"""

import hashlib
import json

import pytest

from shipbid.core.auction import (
    BidDisclosure,
    encode_bid,
    package_bid,
    package_reveal,
    commitment_hash,
    TRANSIENT_BID_KEY,
)
from shipbid.core.auction.models import Bid


@pytest.fixture
def disclosure():
    return BidDisclosure(price=100, org="Org2MSP", bidder="eDUwOTo6Q049YmlkZGVy")


class TestEncodeBid:
    """Tests for the canonical byte form."""

    def test_exact_bytes(self, disclosure):
        """Key order and compact separators are fixed."""
        assert encode_bid(disclosure) == (
            b'{"objectType":"bid","price":100,"org":"Org2MSP","bidder":"eDUwOTo6Q049YmlkZGVy"}'
        )

    def test_price_is_json_integer(self, disclosure):
        decoded = json.loads(encode_bid(disclosure))
        assert decoded["price"] == 100
        assert isinstance(decoded["price"], int)

    def test_query_result_reencodes_identically(self, disclosure):
        """A bid read back with an id encodes to the same bytes as when placed."""
        read_back = Bid(id="tx1", price=100, org="Org2MSP", bidder="eDUwOTo6Q049YmlkZGVy")
        assert encode_bid(read_back) == encode_bid(disclosure)

    def test_non_positive_price_rejected(self, disclosure):
        bad = disclosure.model_copy(update={"price": 0})
        with pytest.raises(ValueError, match="positive integer"):
            encode_bid(bad)


class TestTransientPayloads:
    """Tests for the transient maps."""

    def test_reveal_uses_bid_key(self, disclosure):
        transient = package_reveal(disclosure)
        assert list(transient) == [TRANSIENT_BID_KEY]
        assert transient[TRANSIENT_BID_KEY] == encode_bid(disclosure)

    def test_placement_and_reveal_match(self, disclosure):
        """The hash check on reveal relies on identical bytes."""
        assert package_bid(disclosure) == package_reveal(disclosure)

    def test_commitment_hash_is_hex_sha256(self, disclosure):
        payload = encode_bid(disclosure)
        assert commitment_hash(payload) == hashlib.sha256(payload).hexdigest()

    def test_different_price_different_hash(self, disclosure):
        other = disclosure.model_copy(update={"price": 101})
        assert commitment_hash(encode_bid(other)) != commitment_hash(encode_bid(disclosure))
