"""
Ledger gateway module - connections to the shipping contract.

Provides the LedgerGateway interface and its adapters:
- HttpGateway: REST gateway in front of the ledger peers
- InMemoryGateway: in-process stand-in for the shipping chaincode
"""

from shipbid.gateway.base import LedgerGateway, GatewayState
from shipbid.gateway.rest import HttpGateway
from shipbid.gateway.memory import (
    InMemoryLedger,
    InMemoryGateway,
    ChaincodeError,
    STARTING_PRICE,
    client_id,
    composite_key,
)

__all__ = [
    "LedgerGateway",
    "GatewayState",
    "HttpGateway",
    "InMemoryLedger",
    "InMemoryGateway",
    "ChaincodeError",
    "STARTING_PRICE",
    "client_id",
    "composite_key",
]
