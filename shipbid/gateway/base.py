"""
LedgerGateway - connection to the ledger for one identity.

Exposes the two primitives everything else is built on:
- evaluate: read-only query against a single peer
- submit: proposal, endorsement by a chosen set of organizations,
  ordering and commit

Both block until the ledger answers. A gateway is a scoped resource:
use it as a context manager so disconnect() runs on every exit path.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, Mapping, Optional

from shipbid.core.errors import LedgerConnectionError
from shipbid.utils.logger import get_logger


logger = get_logger("gateway")


class GatewayState(Enum):
    """Connection state of a gateway."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class LedgerGateway(ABC):
    """
    Base class for ledger gateways.

    Attributes:
        org: Organization name the identity belongs to (e.g. Org1)
        msp_id: Membership service provider id of that organization
        identity: User id within the organization's wallet
        state: Current connection state
    """

    def __init__(self, org: str, msp_id: str, identity: str):
        self.org = org
        self.msp_id = msp_id
        self.identity = identity
        self.state = GatewayState.DISCONNECTED

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(self) -> "LedgerGateway":
        """
        Open the connection.

        Raises:
            LedgerConnectionError: If the ledger or the identity is unavailable
        """
        if self.state == GatewayState.CONNECTED:
            return self
        self._open()
        self.state = GatewayState.CONNECTED
        logger.debug(f"Connected as {self.identity}@{self.org}")
        return self

    def disconnect(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self.state == GatewayState.DISCONNECTED:
            return
        try:
            self._close()
        finally:
            self.state = GatewayState.DISCONNECTED
            logger.debug(f"Disconnected {self.identity}@{self.org}")

    def __enter__(self) -> "LedgerGateway":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _require_connected(self) -> None:
        if self.state != GatewayState.CONNECTED:
            raise LedgerConnectionError("Gateway is not connected")

    # =========================================================================
    # Transactions
    # =========================================================================

    def evaluate(self, contract: str, transaction: str, *args: str) -> bytes:
        """
        Evaluate a read-only transaction.

        Raises:
            NotFoundError: The queried record does not exist
            QueryError: Any other query failure
        """
        self._require_connected()
        logger.debug(f"Evaluate {contract}.{transaction}{args}")
        return self._evaluate(contract, transaction, [str(a) for a in args])

    def submit(
        self,
        contract: str,
        transaction: str,
        *args: str,
        endorsers: Optional[Iterable[str]] = None,
        transient: Optional[Mapping[str, bytes]] = None,
    ) -> bytes:
        """
        Submit a write transaction.

        Args:
            contract: Chaincode name
            transaction: Transaction function name
            args: Positional transaction arguments
            endorsers: Organizations (MSP ids) that must endorse. None lets
                the gateway pick the submitting organization.
            transient: Private data passed alongside the proposal; it is
                never written to the transaction log

        Raises:
            ConflictError: A concurrent write invalidated this one
            SubmitError: Any other endorsement/ordering/commit failure
        """
        self._require_connected()
        endorsing = list(endorsers) if endorsers is not None else None
        logger.debug(
            f"Submit {contract}.{transaction}{args} endorsers={endorsing} "
            f"transient_keys={sorted(transient) if transient else []}"
        )
        return self._submit(
            contract,
            transaction,
            [str(a) for a in args],
            endorsing,
            dict(transient) if transient else None,
        )

    # =========================================================================
    # Adapter hooks
    # =========================================================================

    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...

    @abstractmethod
    def _evaluate(self, contract: str, transaction: str, args: list) -> bytes:
        ...

    @abstractmethod
    def _submit(
        self,
        contract: str,
        transaction: str,
        args: list,
        endorsers: Optional[list],
        transient: Optional[dict],
    ) -> bytes:
        ...
