"""
HTTP gateway - LedgerGateway over a REST gateway in front of the peers.

Request shape (JSON body, one POST per transaction):

    POST {gateway_url}/channels/{channel}/contracts/{contract}/evaluate
        {"transaction": str, "args": [str]}

    POST {gateway_url}/channels/{channel}/contracts/{contract}/submit
        {"transaction": str, "args": [str],
         "endorsingOrganizations": [str] | null,
         "transient": {key: base64} | null}

The caller's identity travels in headers, taken from the organization's
wallet. A 2xx response body is the raw transaction result; errors carry
{"error": message}.
"""

import base64
import json
from pathlib import Path
from typing import Optional

import httpx

from shipbid.core.errors import (
    ConflictError,
    LedgerConnectionError,
    NotFoundError,
    classify_error,
)
from shipbid.gateway.base import LedgerGateway
from shipbid.utils.logger import get_logger


logger = get_logger("gateway.rest")


class HttpGateway(LedgerGateway):
    """
    Gateway speaking to a REST ledger gateway with httpx.

    Attributes:
        base_url: Gateway endpoint for this organization
        channel: Channel the contract is deployed on
        wallet_dir: Directory holding <user>.id credential files
    """

    def __init__(
        self,
        org: str,
        msp_id: str,
        identity: str,
        base_url: str,
        channel: str,
        wallet_dir: Path,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(org, msp_id, identity)
        self.base_url = base_url.rstrip("/")
        self.channel = channel
        self.wallet_dir = Path(wallet_dir)
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._certificate: str = ""

    # =========================================================================
    # Connection
    # =========================================================================

    def _load_identity(self) -> None:
        path = self.wallet_dir / f"{self.identity}.id"
        if not path.exists():
            raise LedgerConnectionError(
                f"Identity {self.identity} not found in wallet {self.wallet_dir}"
            )
        try:
            data = json.loads(path.read_text())
            certificate = data["credentials"]["certificate"]
        except (ValueError, KeyError) as e:
            raise LedgerConnectionError(f"Unreadable identity file {path}: {e}") from e

        wallet_msp = data.get("mspId")
        if wallet_msp and wallet_msp != self.msp_id:
            raise LedgerConnectionError(
                f"Identity {self.identity} belongs to {wallet_msp}, not {self.msp_id}"
            )
        self._certificate = base64.b64encode(certificate.encode()).decode("ascii")

    def _open(self) -> None:
        self._load_identity()
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "X-Identity": self.identity,
                "X-MSP-ID": self.msp_id,
                "X-Certificate": self._certificate,
            },
        )
        logger.info(f"Gateway {self.base_url} ready for {self.identity}@{self.org}")

    def _close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # =========================================================================
    # Transactions
    # =========================================================================

    def _post(self, contract: str, action: str, transaction: str, body: dict) -> httpx.Response:
        path = f"/channels/{self.channel}/contracts/{contract}/{action}"
        try:
            return self._client.post(path, json=body)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise LedgerConnectionError(f"Cannot reach {self.base_url}: {e}", transaction) from e
        except httpx.HTTPError as e:
            raise LedgerConnectionError(f"Transport failure: {e}", transaction) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return response.text or response.reason_phrase

    def _evaluate(self, contract: str, transaction: str, args: list) -> bytes:
        response = self._post(
            contract, "evaluate", transaction, {"transaction": transaction, "args": args}
        )
        if response.is_success:
            return response.content

        message = self._error_message(response)
        if response.status_code == 404:
            raise NotFoundError(message, transaction)
        raise classify_error(message, transaction, write=False)

    def _submit(
        self,
        contract: str,
        transaction: str,
        args: list,
        endorsers: Optional[list],
        transient: Optional[dict],
    ) -> bytes:
        body = {
            "transaction": transaction,
            "args": args,
            "endorsingOrganizations": endorsers,
            "transient": (
                {k: base64.b64encode(v).decode("ascii") for k, v in transient.items()}
                if transient
                else None
            ),
        }
        response = self._post(contract, "submit", transaction, body)
        if response.is_success:
            return response.content

        message = self._error_message(response)
        if response.status_code == 409:
            raise ConflictError(message, transaction)
        raise classify_error(message, transaction, write=True)
