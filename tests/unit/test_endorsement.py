"""
Tests for endorsing organization selection.

Tests cover:
1. Pair rule for one, two and three organizations
2. All-organizations policy
3. Policy lookup
"""

import pytest

from shipbid.core.auction import (
    Auction,
    AuctionStatus,
    Item,
    select_endorsers,
    select_all_endorsers,
    get_selector,
)


# =============================================================================
# Fixtures
# =============================================================================


def make_auction(*orgs):
    return Auction(
        id="A1",
        item=Item(name="Box", dest="Osaka", weight=20, days=3),
        organizations=list(orgs),
        status=AuctionStatus.OPEN,
    )


# =============================================================================
# Pair Rule Tests
# =============================================================================


class TestPairRule:
    """Tests for the two-organization rule."""

    def test_single_org_selects_it(self):
        """One organization endorses alone."""
        assert select_endorsers(make_auction("Org1MSP")) == ["Org1MSP"]

    def test_two_orgs_select_both_in_order(self):
        """Exactly two organizations both endorse, in record order."""
        assert select_endorsers(make_auction("Org2MSP", "Org1MSP")) == ["Org2MSP", "Org1MSP"]

    def test_three_orgs_select_only_first(self):
        """Any count other than two falls back to the first organization."""
        auction = make_auction("Org1MSP", "Org2MSP", "Org3MSP")
        assert select_endorsers(auction) == ["Org1MSP"]

    def test_no_orgs_rejected(self):
        """An auction without organizations cannot be endorsed."""
        with pytest.raises(ValueError):
            select_endorsers(make_auction())

    def test_recomputed_from_each_read(self):
        """Selection follows membership changes between reads."""
        auction = make_auction("Org1MSP")
        assert select_endorsers(auction) == ["Org1MSP"]

        joined = make_auction("Org1MSP", "Org2MSP")
        assert select_endorsers(joined) == ["Org1MSP", "Org2MSP"]


# =============================================================================
# All Organizations Tests
# =============================================================================


class TestAllOrganizations:
    """Tests for the generalized policy."""

    def test_three_orgs_all_selected(self):
        auction = make_auction("Org1MSP", "Org2MSP", "Org3MSP")
        assert select_all_endorsers(auction) == ["Org1MSP", "Org2MSP", "Org3MSP"]

    def test_duplicates_collapsed(self):
        auction = make_auction("Org1MSP", "Org2MSP", "Org1MSP")
        assert select_all_endorsers(auction) == ["Org1MSP", "Org2MSP"]

    def test_matches_pair_rule_for_two(self):
        """Both policies agree when two organizations participate."""
        auction = make_auction("Org1MSP", "Org2MSP")
        assert select_all_endorsers(auction) == select_endorsers(auction)


class TestGetSelector:
    """Tests for policy name lookup."""

    def test_known_policies(self):
        assert get_selector("pair") is select_endorsers
        assert get_selector("all") is select_all_endorsers

    def test_unknown_policy(self):
        with pytest.raises(ValueError, match="Unknown endorsement policy"):
            get_selector("majority")
