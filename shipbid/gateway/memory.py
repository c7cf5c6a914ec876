"""
In-memory ledger - a stand-in for the shipping chaincode.

Reproduces what a client can observe of the deployed contract:

1. **Public state**: one shipping record per auction id
2. **Implicit private collections**: one per organization, holding the
   plaintext bids placed by that organization's members
3. **State-based endorsement**: every organization in an auction's
   organization list must endorse writes to it
4. **Commit-reveal checks**: SHA-256 of the revealed transient payload
   must equal the private-data hash recorded at SubmitBid

Useful for tests, demos and a file-backed local sandbox. It does no
consensus, ordering or cryptographic identity handling.
"""

import base64
import copy
import json
import os
import secrets
from pathlib import Path
from typing import Dict, List, Optional

from shipbid.core.auction.codec import TRANSIENT_BID_KEY, commitment_hash
from shipbid.core.auction.models import (
    BID_KEY_TYPE,
    COMPOSITE_KEY_SEPARATOR,
    AuctionStatus,
)
from shipbid.core.errors import classify_error
from shipbid.gateway.base import LedgerGateway
from shipbid.utils.logger import get_logger


logger = get_logger("ledger")


# Reverse auction: bids must come in under this ceiling
STARTING_PRICE = 100_000_000


class ChaincodeError(Exception):
    """A transaction was rejected by contract logic or validation."""


def composite_key(object_type: str, *attributes: str) -> str:
    """Build a Fabric-style composite key."""
    sep = COMPOSITE_KEY_SEPARATOR
    return sep + object_type + sep + "".join(a + sep for a in attributes)


def client_id(user: str, msp_id: str) -> str:
    """Submitting client identity, encoded the way the contract reports it."""
    org = msp_id[:-3].lower() if msp_id.endswith("MSP") else msp_id.lower()
    subject = f"x509::CN={user},OU=client::CN=ca.{org}.example.com"
    return base64.b64encode(subject.encode()).decode("ascii")


def _marshal(record: dict) -> bytes:
    # Map keys are sorted on output, struct fields keep their order
    shipping = dict(record)
    shipping["privateBids"] = dict(sorted(record["privateBids"].items()))
    shipping["revealedBids"] = dict(sorted(record["revealedBids"].items()))
    return json.dumps(shipping, separators=(",", ":")).encode("utf-8")


def _decode_private_bid(bid_json: bytes) -> dict:
    """Parse a stored private bid, rejecting malformed payloads."""
    try:
        bid = json.loads(bid_json)
        return {
            "objectType": str(bid.get("objectType", BID_KEY_TYPE)),
            "price": int(bid["price"]),
            "org": str(bid["org"]),
            "bidder": str(bid["bidder"]),
        }
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ChaincodeError(f"failed to unmarshal private bid JSON: {e}") from e


class InMemoryLedger:
    """
    Shipping contract state held in process memory.

    Attributes:
        public: Auction id -> shipping record
        private: MSP id -> (bid key -> private bid bytes)
        endorsement: Auction id -> organizations required to endorse
        state_path: Optional JSON file the state is loaded from and saved to
    """

    def __init__(self, state_path: Optional[Path] = None):
        self.public: Dict[str, dict] = {}
        self.private: Dict[str, Dict[str, bytes]] = {}
        self.endorsement: Dict[str, List[str]] = {}
        self.state_path = Path(state_path) if state_path else None

        if self.state_path and self.state_path.exists():
            self._load()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> None:
        data = json.loads(self.state_path.read_text())
        self.public = data.get("public", {})
        self.endorsement = data.get("endorsement", {})
        self.private = {
            msp: {key: base64.b64decode(value) for key, value in bids.items()}
            for msp, bids in data.get("private", {}).items()
        }
        logger.debug(f"Loaded {len(self.public)} auctions from {self.state_path}")

    def _save(self) -> None:
        if not self.state_path:
            return
        data = {
            "public": self.public,
            "endorsement": self.endorsement,
            "private": {
                msp: {key: base64.b64encode(value).decode("ascii") for key, value in bids.items()}
                for msp, bids in self.private.items()
            },
        }
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        # Readers never see a half-written file; concurrent writers still race
        tmp_path = self.state_path.with_name(self.state_path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        os.replace(tmp_path, self.state_path)

    # =========================================================================
    # Entry points
    # =========================================================================

    def evaluate(self, transaction: str, args: List[str], user: str, msp_id: str) -> bytes:
        """Run a read-only transaction."""
        if transaction == "QueryShipping":
            self._expect_args(transaction, args, 1)
            return _marshal(self._get_shipping(args[0]))
        if transaction == "QueryBid":
            self._expect_args(transaction, args, 2)
            return self._query_bid(args[0], args[1], user, msp_id)
        if transaction == "GetSubmittingClientIdentity":
            return client_id(user, msp_id).encode("utf-8")
        raise ChaincodeError(f"Function {transaction} not found in contract SmartContract")

    def submit(
        self,
        transaction: str,
        args: List[str],
        user: str,
        msp_id: str,
        endorsers: Optional[List[str]] = None,
        transient: Optional[Dict[str, bytes]] = None,
    ) -> bytes:
        """
        Run a write transaction and commit it if every check passes.

        Nothing is mutated when a check fails.
        """
        endorsers = list(endorsers) if endorsers else [msp_id]
        transient = transient or {}

        handlers = {
            "CreateShipping": (5, self._create_shipping),
            "Bid": (1, self._bid),
            "SubmitBid": (2, self._submit_bid),
            "RevealBid": (2, self._reveal_bid),
            "CloseShipping": (1, self._close_shipping),
            "EndShipping": (1, self._end_shipping),
        }
        if transaction not in handlers:
            raise ChaincodeError(f"Function {transaction} not found in contract SmartContract")

        arity, handler = handlers[transaction]
        self._expect_args(transaction, args, arity)

        if transaction not in ("CreateShipping", "Bid"):
            self._check_endorsement(args[0], endorsers)

        result = handler(args, user, msp_id, endorsers, transient)
        self._save()
        logger.debug(f"Committed {transaction}{tuple(args)} endorsed by {endorsers}")
        return result

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _expect_args(transaction: str, args: List[str], count: int) -> None:
        if len(args) != count:
            raise ChaincodeError(
                f"{transaction} expects {count} argument(s), got {len(args)}"
            )

    def _get_shipping(self, shipping_id: str) -> dict:
        record = self.public.get(shipping_id)
        if record is None:
            raise ChaincodeError("shipping does not exist")
        return record

    def _check_endorsement(self, shipping_id: str, endorsers: List[str]) -> None:
        required = self.endorsement.get(shipping_id)
        if required is None:
            # Let the handler report the missing shipping
            return
        missing = [org for org in required if org not in endorsers]
        if missing:
            raise ChaincodeError(
                f"ENDORSEMENT_POLICY_FAILURE: shipping {shipping_id} requires "
                f"endorsement from {required}, missing {missing}"
            )

    def _private_hash(self, msp_id: str, bid_key: str) -> bytes:
        bid_json = self.private.get(msp_id, {}).get(bid_key)
        if bid_json is None:
            raise ChaincodeError(f"bid hash does not exist: {bid_key!r}")
        return bid_json

    @staticmethod
    def _transient_bid(transient: Dict[str, bytes]) -> bytes:
        bid_json = transient.get(TRANSIENT_BID_KEY)
        if bid_json is None:
            raise ChaincodeError("bid key not found in the transient map")
        return bid_json

    @staticmethod
    def _parse_int(name: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise ChaincodeError(f"{name} must be an integer, got {value!r}") from None

    # =========================================================================
    # Transactions
    # =========================================================================

    def _create_shipping(self, args, user, msp_id, endorsers, transient) -> bytes:
        shipping_id, name, dest, weight, days = args
        if shipping_id in self.public:
            raise ChaincodeError(f"shipping {shipping_id} already exists")

        self.public[shipping_id] = {
            "objectType": "shipping",
            "item": {
                "item": name,
                "dest": dest,
                "org": self._parse_int("itemWeight", weight),
                "days": self._parse_int("itemDays", days),
            },
            "seller": client_id(user, msp_id),
            "organizations": [msp_id],
            "privateBids": {},
            "revealedBids": {},
            "winner": "",
            "price": STARTING_PRICE,
            "status": AuctionStatus.OPEN.value,
        }
        self.endorsement[shipping_id] = [msp_id]
        return b""

    def _bid(self, args, user, msp_id, endorsers, transient) -> bytes:
        (shipping_id,) = args
        bid_json = self._transient_bid(transient)

        # The bid lands in the bidder's own collection, so only their peer endorses
        if endorsers != [msp_id]:
            raise ChaincodeError(
                "Cannot store bid on this peer, not a member of this org"
            )

        tx_id = secrets.token_hex(32)
        bid_key = composite_key(BID_KEY_TYPE, shipping_id, tx_id)
        self.private.setdefault(msp_id, {})[bid_key] = bytes(bid_json)
        return tx_id.encode("ascii")

    def _submit_bid(self, args, user, msp_id, endorsers, transient) -> bytes:
        shipping_id, tx_id = args
        shipping = copy.deepcopy(self._get_shipping(shipping_id))

        if shipping["status"] != AuctionStatus.OPEN.value:
            raise ChaincodeError("cannot join closed or ended shipping")

        bid_key = composite_key(BID_KEY_TYPE, shipping_id, tx_id)
        bid_hash = commitment_hash(self._private_hash(msp_id, bid_key))

        shipping["privateBids"][bid_key] = {"org": msp_id, "hash": bid_hash}
        if msp_id not in shipping["organizations"]:
            shipping["organizations"].append(msp_id)
            self.endorsement[shipping_id] = list(self.endorsement[shipping_id]) + [msp_id]

        self.public[shipping_id] = shipping
        return b""

    def _reveal_bid(self, args, user, msp_id, endorsers, transient) -> bytes:
        shipping_id, tx_id = args
        revealed_json = self._transient_bid(transient)

        bid_key = composite_key(BID_KEY_TYPE, shipping_id, tx_id)
        on_chain_hash = commitment_hash(self._private_hash(msp_id, bid_key))
        shipping = copy.deepcopy(self._get_shipping(shipping_id))

        if shipping["status"] == AuctionStatus.ENDED.value:
            raise ChaincodeError("cannot reveal bid for ended shipping")

        calculated_hash = commitment_hash(revealed_json)
        if calculated_hash != on_chain_hash:
            raise ChaincodeError(
                f"hash {calculated_hash} for bid JSON does not match hash in shipping: {on_chain_hash}"
            )

        committed = shipping["privateBids"].get(bid_key)
        if committed is None or committed["hash"] != on_chain_hash:
            raise ChaincodeError(
                f"hash for bid {tx_id} does not match hash in shipping, bidder must have changed bid"
            )

        try:
            bid_input = json.loads(revealed_json)
            revealed = {
                "objectType": BID_KEY_TYPE,
                "price": int(bid_input["price"]),
                "org": str(bid_input["org"]),
                "bidder": str(bid_input["bidder"]),
            }
        except (ValueError, KeyError, TypeError) as e:
            raise ChaincodeError(f"failed to unmarshal JSON: {e}") from e

        caller = client_id(user, msp_id)
        if revealed["bidder"] != caller:
            raise ChaincodeError(
                f"Permission denied, client id {caller} is not the owner of the bid"
            )

        shipping["revealedBids"][bid_key] = revealed
        self.public[shipping_id] = shipping
        return b""

    def _close_shipping(self, args, user, msp_id, endorsers, transient) -> bytes:
        (shipping_id,) = args
        shipping = copy.deepcopy(self._get_shipping(shipping_id))

        if shipping["seller"] != client_id(user, msp_id):
            raise ChaincodeError("shipping can only be closed by seller")
        if not AuctionStatus(shipping["status"]).can_advance_to(AuctionStatus.CLOSED):
            raise ChaincodeError("cannot close shipping that is not open")

        shipping["status"] = AuctionStatus.CLOSED.value
        self.public[shipping_id] = shipping
        return b""

    def _end_shipping(self, args, user, msp_id, endorsers, transient) -> bytes:
        (shipping_id,) = args
        shipping = copy.deepcopy(self._get_shipping(shipping_id))

        if shipping["seller"] != client_id(user, msp_id):
            raise ChaincodeError("shipping can only be ended by seller")
        if not AuctionStatus(shipping["status"]).can_advance_to(AuctionStatus.ENDED):
            raise ChaincodeError("Can only end a closed shipping")
        if not shipping["revealedBids"]:
            raise ChaincodeError("No bids have been revealed, cannot end shipping")

        for _, bid in sorted(shipping["revealedBids"].items()):
            if bid["price"] < shipping["price"]:
                shipping["winner"] = bid["bidder"]
                shipping["price"] = bid["price"]

        self._check_for_better_bid(shipping, endorsers)

        shipping["status"] = AuctionStatus.ENDED.value
        self.public[shipping_id] = shipping
        return b""

    def _check_for_better_bid(self, shipping: dict, endorsers: List[str]) -> None:
        """
        Refuse to end while an unrevealed bid undercuts the winner.

        Each endorsing peer can only read its own organization's
        collection, so only those bids are inspected in plaintext.
        """
        for bid_key, commitment in shipping["privateBids"].items():
            if bid_key in shipping["revealedBids"]:
                continue
            if commitment["org"] not in endorsers:
                continue
            bid_json = self.private.get(commitment["org"], {}).get(bid_key)
            if bid_json is None:
                raise ChaincodeError(f"bid {bid_key!r} does not exist")
            if _decode_private_bid(bid_json)["price"] < shipping["price"]:
                raise ChaincodeError(
                    "Cannot end shipping, an unrevealed bid has a lower price"
                )

    def _query_bid(self, shipping_id: str, tx_id: str, user: str, msp_id: str) -> bytes:
        bid_key = composite_key(BID_KEY_TYPE, shipping_id, tx_id)
        bid_json = self.private.get(msp_id, {}).get(bid_key)
        if bid_json is None:
            raise ChaincodeError(f"bid {bid_key!r} does not exist")

        bid = _decode_private_bid(bid_json)
        caller = client_id(user, msp_id)
        if bid["bidder"] != caller:
            raise ChaincodeError(
                f"Permission denied, client id {caller} is not the owner of the bid"
            )
        return json.dumps(bid, separators=(",", ":")).encode("utf-8")


class InMemoryGateway(LedgerGateway):
    """LedgerGateway bound to an InMemoryLedger."""

    def __init__(self, ledger: InMemoryLedger, org: str, msp_id: str, identity: str):
        super().__init__(org, msp_id, identity)
        self.ledger = ledger

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass

    def _evaluate(self, contract: str, transaction: str, args: list) -> bytes:
        try:
            return self.ledger.evaluate(transaction, args, self.identity, self.msp_id)
        except ChaincodeError as e:
            raise classify_error(str(e), transaction, write=False) from e

    def _submit(
        self,
        contract: str,
        transaction: str,
        args: list,
        endorsers: Optional[list],
        transient: Optional[dict],
    ) -> bytes:
        try:
            return self.ledger.submit(
                transaction,
                args,
                self.identity,
                self.msp_id,
                endorsers=endorsers,
                transient=transient,
            )
        except ChaincodeError as e:
            raise classify_error(str(e), transaction, write=True) from e
