"""
Endorsement Policy Selector.

The chaincode attaches a state-based endorsement policy to each auction
and adds every bidding organization to it. The set of organizations a
write must be endorsed by therefore depends on the auction's current
membership, which only a fresh read can tell us.

Selectors are pure functions Auction -> [org]; the driver calls one
after every read and never reuses the result for another write.
"""

from typing import Callable, Dict, List

from shipbid.core.auction.models import Auction


EndorserSelector = Callable[[Auction], List[str]]

PAIR_POLICY = "pair"
ALL_POLICY = "all"


def select_endorsers(auction: Auction) -> List[str]:
    """
    Pair rule: both organizations when exactly two participate,
    otherwise only the first.

    Organizations beyond the second are dropped, so with three or more
    participants the ledger will reject the write. Use
    select_all_endorsers() where that matters.

    Raises:
        ValueError: If the auction lists no organizations
    """
    orgs = auction.organizations
    if not orgs:
        raise ValueError(f"Auction {auction.id or '?'} has no organizations to endorse")

    if len(orgs) == 2:
        return [orgs[0], orgs[1]]
    return [orgs[0]]


def select_all_endorsers(auction: Auction) -> List[str]:
    """Every organization currently party to the auction, in record order."""
    if not auction.organizations:
        raise ValueError(f"Auction {auction.id or '?'} has no organizations to endorse")

    # dict preserves first-seen order
    return list(dict.fromkeys(auction.organizations))


_SELECTORS: Dict[str, EndorserSelector] = {
    PAIR_POLICY: select_endorsers,
    ALL_POLICY: select_all_endorsers,
}


def get_selector(policy: str) -> EndorserSelector:
    """Resolve an endorsement policy name to its selector."""
    try:
        return _SELECTORS[policy]
    except KeyError:
        raise ValueError(
            f"Unknown endorsement policy {policy!r}, expected one of {sorted(_SELECTORS)}"
        ) from None
