"""
Auction Lifecycle Driver - one client step of a shipment auction.

Lifecycle (advanced by independent invocations, possibly from
different organizations):

    create ──> open ──(place, bid, reveal)──> close ──> closed ──> end ──> ended

Every state-changing step follows the same shape:
1. Read the auction (and the bid, for reveal) fresh from the ledger
2. Select the endorsing organizations from what was just read
3. Submit exactly one write with those endorsers
4. Read back the post-state for rendering

A failure at any step raises and aborts the rest of the step.
"""

import time
from typing import Callable, Optional

from shipbid.core.auction.codec import package_bid, package_reveal
from shipbid.core.auction.endorsement import EndorserSelector, select_endorsers
from shipbid.core.auction.models import Auction, Bid, BidDisclosure
from shipbid.core.auction.reader import read_auction, read_bid
from shipbid.core.errors import ConflictError
from shipbid.gateway.base import LedgerGateway
from shipbid.utils.logger import get_logger


logger = get_logger("driver")


class AuctionLifecycleDriver:
    """
    Runs lifecycle operations through a connected gateway.

    Attributes:
        gateway: Connected ledger gateway for the acting identity
        contract: Chaincode name
        selector: Endorsement policy, Auction -> [org]
        max_retries: Extra attempts on ConflictError (0 = single attempt)
        retry_backoff: Initial delay between attempts, doubled each retry
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        contract: str,
        selector: EndorserSelector = select_endorsers,
        max_retries: int = 0,
        retry_backoff: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.contract = contract
        self.selector = selector
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    # =========================================================================
    # Reads
    # =========================================================================

    def query(self, auction_id: str) -> Auction:
        """Read an auction without writing."""
        return read_auction(self.gateway, self.contract, auction_id)

    def query_bid(self, auction_id: str, bid_id: str) -> Bid:
        """Read one of the caller's own bids."""
        return read_bid(self.gateway, self.contract, auction_id, bid_id)

    # =========================================================================
    # Writes
    # =========================================================================

    def _submit_endorsed(
        self,
        auction_id: str,
        transaction: str,
        *args: str,
        transient: Optional[dict] = None,
    ) -> bytes:
        """
        Read the auction, pick endorsers and submit one write.

        On ConflictError the auction is read again and endorsers are
        recomputed before the next attempt, up to max_retries times.
        """
        attempt = 0
        while True:
            auction = read_auction(self.gateway, self.contract, auction_id)
            endorsers = self.selector(auction)
            logger.info(f"Submitting {transaction} for {auction_id}, endorsers={endorsers}")
            try:
                return self.gateway.submit(
                    self.contract,
                    transaction,
                    *args,
                    endorsers=endorsers,
                    transient=transient,
                )
            except ConflictError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"{transaction} on {auction_id} conflicted ({e}); "
                    f"retry {attempt}/{self.max_retries} in {delay:.2f}s"
                )
                self._sleep(delay)

    def create(
        self,
        auction_id: str,
        item_name: str,
        dest: str,
        weight: int,
        days: int,
    ) -> Auction:
        """
        Create a shipment auction owned by the caller.

        No endorsers are imposed; the creating organization endorses and
        becomes the auction's first member.
        """
        self.gateway.submit(
            self.contract,
            "CreateShipping",
            auction_id,
            item_name,
            dest,
            str(weight),
            str(days),
        )
        logger.info(f"Created auction {auction_id}")
        return self.query(auction_id)

    def place_bid(self, auction_id: str, price: int) -> str:
        """
        Place a private bid in the caller's organization collection.

        Returns:
            Bid id (the placing transaction id) to pass to submit_bid
        """
        bidder = self.gateway.evaluate(self.contract, "GetSubmittingClientIdentity")
        bid = BidDisclosure(
            price=price,
            org=self.gateway.msp_id,
            bidder=bidder.decode("utf-8"),
        )
        result = self.gateway.submit(
            self.contract,
            "Bid",
            auction_id,
            endorsers=[self.gateway.msp_id],
            transient=package_bid(bid),
        )
        bid_id = result.decode("utf-8")
        logger.info(f"Placed private bid {bid_id} on {auction_id}")
        return bid_id

    def submit_bid(self, auction_id: str, bid_id: str) -> Bid:
        """Commit the hash of a placed bid to the auction."""
        self._submit_endorsed(auction_id, "SubmitBid", auction_id, bid_id)
        logger.info(f"Submitted bid {bid_id} to {auction_id}")
        return self.query_bid(auction_id, bid_id)

    def reveal_bid(self, auction_id: str, bid_id: str) -> Auction:
        """
        Disclose a bid's plaintext.

        The plaintext goes only in the transient map; endorsers come from
        the auction's organizations, not the bid's.
        """
        bid = self.query_bid(auction_id, bid_id)
        self._submit_endorsed(
            auction_id,
            "RevealBid",
            auction_id,
            bid_id,
            transient=package_reveal(bid),
        )
        logger.info(f"Revealed bid {bid_id} on {auction_id}")
        return self.query(auction_id)

    def close(self, auction_id: str) -> Auction:
        """Stop accepting bids (open -> closed)."""
        self._submit_endorsed(auction_id, "CloseShipping", auction_id)
        logger.info(f"Closed auction {auction_id}")
        return self.query(auction_id)

    def end(self, auction_id: str) -> Auction:
        """Settle the auction (closed -> ended); the ledger picks the winner."""
        self._submit_endorsed(auction_id, "EndShipping", auction_id)
        auction = self.query(auction_id)
        logger.info(f"Ended auction {auction_id}: price={auction.price}")
        return auction
