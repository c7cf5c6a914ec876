"""
Client configuration for shipbid.

Defines the ledger channel/contract, per-organization connection
profiles, endorsement policy and write retry parameters.

Values come from, in increasing precedence: dataclass defaults, an
optional JSON config file, a .env file, and SHIPBID_* environment variables.
"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv


ENDORSEMENT_POLICIES = ("pair", "all")
BACKENDS = ("rest", "local")


@dataclass
class OrgProfile:
    """Connection profile and credential store for one organization"""

    name: str
    msp_id: str
    gateway_url: str
    wallet_dir: Path  # Holds <user>.id credential files


def _default_orgs() -> Dict[str, OrgProfile]:
    return {
        "org1": OrgProfile(
            name="Org1",
            msp_id="Org1MSP",
            gateway_url="http://localhost:8801",
            wallet_dir=Path("wallet/org1"),
        ),
        "org2": OrgProfile(
            name="Org2",
            msp_id="Org2MSP",
            gateway_url="http://localhost:8802",
            wallet_dir=Path("wallet/org2"),
        ),
    }


@dataclass
class ShipBidConfig:
    """Client-wide configuration parameters"""

    # Ledger target
    channel: str = "mychannel"
    contract: str = "ship-supplychain_v2"

    # Gateway
    backend: str = "rest"  # rest | local
    request_timeout: float = 30.0  # Seconds per evaluate/submit
    local_state: Path = Path("shipbid-ledger.json")  # Used by the local backend

    # Endorsement
    endorsement_policy: str = "pair"  # pair | all

    # Conflict retry (0 = single attempt)
    max_retries: int = 0
    retry_backoff: float = 0.5  # Seconds, doubled on each retry

    # Logging
    log_dir: Optional[Path] = None

    orgs: Dict[str, OrgProfile] = field(default_factory=_default_orgs)

    def __post_init__(self):
        if self.endorsement_policy not in ENDORSEMENT_POLICIES:
            raise ValueError(
                f"endorsement_policy must be one of {ENDORSEMENT_POLICIES}, "
                f"got {self.endorsement_policy!r}"
            )
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    def resolve_org(self, name: str) -> OrgProfile:
        """
        Look up an organization profile by name, case-insensitively.

        Raises:
            KeyError: If the organization is not configured
        """
        try:
            return self.orgs[name.lower()]
        except KeyError:
            known = ", ".join(p.name for p in self.orgs.values())
            raise KeyError(f"Org must be one of {known}, got {name!r}") from None


def _orgs_from_dict(data: Dict[str, dict]) -> Dict[str, OrgProfile]:
    orgs = {}
    for name, profile in data.items():
        orgs[name.lower()] = OrgProfile(
            name=profile.get("name", name),
            msp_id=profile["msp_id"],
            gateway_url=profile["gateway_url"],
            wallet_dir=Path(profile["wallet_dir"]),
        )
    return orgs


def _apply_env(values: dict, orgs: Dict[str, OrgProfile]) -> None:
    """Overlay SHIPBID_* environment variables onto raw config values."""
    env = os.environ
    for key, cast in (
        ("channel", str),
        ("contract", str),
        ("backend", str),
        ("request_timeout", float),
        ("local_state", Path),
        ("endorsement_policy", str),
        ("max_retries", int),
        ("retry_backoff", float),
        ("log_dir", Path),
    ):
        raw = env.get(f"SHIPBID_{key.upper()}")
        if raw:
            values[key] = cast(raw)

    for key, profile in orgs.items():
        url = env.get(f"SHIPBID_GATEWAY_URL_{key.upper()}")
        if url:
            profile.gateway_url = url
        wallet = env.get(f"SHIPBID_WALLET_DIR_{key.upper()}")
        if wallet:
            profile.wallet_dir = Path(wallet)


def load_config(config_path: Optional[str] = None) -> ShipBidConfig:
    """
    Load configuration from file, .env and environment.

    Args:
        config_path: Optional path to a JSON config file

    Returns:
        ShipBidConfig instance
    """
    values: dict = {}
    if config_path:
        values = json.loads(Path(config_path).read_text())

    orgs = _orgs_from_dict(values.pop("orgs")) if "orgs" in values else _default_orgs()

    load_dotenv(find_dotenv(usecwd=True))
    _apply_env(values, orgs)

    known = {f.name for f in fields(ShipBidConfig)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    for key in ("local_state", "log_dir"):
        if values.get(key) is not None:
            values[key] = Path(values[key])

    return ShipBidConfig(orgs=orgs, **values)
