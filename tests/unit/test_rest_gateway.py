"""
Tests for the HTTP gateway, using httpx.MockTransport.
"""

import base64
import json

import httpx
import pytest

from shipbid.core.errors import (
    ConflictError,
    LedgerConnectionError,
    NotFoundError,
    QueryError,
    SubmitError,
)
from shipbid.gateway import GatewayState, HttpGateway


CONTRACT = "ship-supplychain_v2"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def wallet(tmp_path):
    wallet_dir = tmp_path / "wallet" / "org1"
    wallet_dir.mkdir(parents=True)
    (wallet_dir / "user1.id").write_text(json.dumps({
        "credentials": {"certificate": "-----BEGIN CERTIFICATE-----\nMIIB\n", "privateKey": "secret"},
        "mspId": "Org1MSP",
        "type": "X.509",
        "version": 1,
    }))
    return wallet_dir


def make_gateway(wallet, handler, identity="user1"):
    return HttpGateway(
        org="Org1",
        msp_id="Org1MSP",
        identity=identity,
        base_url="http://gateway.test",
        channel="mychannel",
        wallet_dir=wallet,
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# Connection Tests
# =============================================================================


class TestConnection:
    def test_missing_identity(self, wallet):
        gw = make_gateway(wallet, lambda request: httpx.Response(200), identity="ghost")
        with pytest.raises(LedgerConnectionError, match="not found in wallet"):
            gw.connect()
        assert gw.state == GatewayState.DISCONNECTED

    def test_wrong_msp(self, wallet):
        data = json.loads((wallet / "user1.id").read_text())
        data["mspId"] = "Org2MSP"
        (wallet / "user1.id").write_text(json.dumps(data))

        with pytest.raises(LedgerConnectionError, match="Org2MSP"):
            make_gateway(wallet, lambda request: httpx.Response(200)).connect()

    def test_context_manager_disconnects_on_error(self, wallet):
        gw = make_gateway(wallet, lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(QueryError):
            with gw:
                gw.evaluate(CONTRACT, "QueryShipping", "A1")
        assert gw.state == GatewayState.DISCONNECTED

    def test_calls_require_connection(self, wallet):
        gw = make_gateway(wallet, lambda request: httpx.Response(200))
        with pytest.raises(LedgerConnectionError):
            gw.evaluate(CONTRACT, "QueryShipping", "A1")

    def test_unreachable(self, wallet):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_gateway(wallet, refuse) as gw:
            with pytest.raises(LedgerConnectionError, match="Cannot reach"):
                gw.evaluate(CONTRACT, "QueryShipping", "A1")


# =============================================================================
# Request Shape Tests
# =============================================================================


class TestRequests:
    def test_evaluate_request(self, wallet):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["identity"] = request.headers["X-Identity"]
            seen["msp"] = request.headers["X-MSP-ID"]
            return httpx.Response(200, content=b'{"status":"open"}')

        with make_gateway(wallet, handler) as gw:
            result = gw.evaluate(CONTRACT, "QueryBid", "A1", "tx1")

        assert result == b'{"status":"open"}'
        assert seen["path"] == f"/channels/mychannel/contracts/{CONTRACT}/evaluate"
        assert seen["body"] == {"transaction": "QueryBid", "args": ["A1", "tx1"]}
        assert seen["identity"] == "user1"
        assert seen["msp"] == "Org1MSP"

    def test_submit_request(self, wallet):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"")

        payload = b'{"objectType":"bid","price":100}'
        with make_gateway(wallet, handler) as gw:
            gw.submit(
                CONTRACT, "RevealBid", "A1", "tx1",
                endorsers=["Org1MSP", "Org2MSP"], transient={"bid": payload},
            )

        body = seen["body"]
        assert seen["path"].endswith("/submit")
        assert body["args"] == ["A1", "tx1"]
        assert body["endorsingOrganizations"] == ["Org1MSP", "Org2MSP"]
        assert base64.b64decode(body["transient"]["bid"]) == payload

    def test_submit_without_constraints(self, wallet):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200)

        with make_gateway(wallet, handler) as gw:
            gw.submit(CONTRACT, "CreateShipping", "A1", "Box", "Osaka", "20", "3")

        assert seen["body"]["endorsingOrganizations"] is None
        assert seen["body"]["transient"] is None


# =============================================================================
# Error Mapping Tests
# =============================================================================


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status, message, expected",
        [
            (404, "shipping does not exist", NotFoundError),
            (500, "shipping does not exist", NotFoundError),
            (500, "peer unavailable", QueryError),
        ],
    )
    def test_evaluate_errors(self, wallet, status, message, expected):
        handler = lambda request: httpx.Response(status, json={"error": message})
        with make_gateway(wallet, handler) as gw:
            with pytest.raises(expected, match=message):
                gw.evaluate(CONTRACT, "QueryShipping", "A1")

    @pytest.mark.parametrize(
        "status, message, expected",
        [
            (409, "transaction invalidated", ConflictError),
            (500, "MVCC_READ_CONFLICT on key A1", ConflictError),
            (500, "ENDORSEMENT_POLICY_FAILURE", ConflictError),
            (500, "Can only end a closed shipping", SubmitError),
        ],
    )
    def test_submit_errors(self, wallet, status, message, expected):
        handler = lambda request: httpx.Response(status, json={"error": message})
        with make_gateway(wallet, handler) as gw:
            with pytest.raises(expected):
                gw.submit(CONTRACT, "EndShipping", "A1", endorsers=["Org1MSP"])

    def test_plain_text_error_body(self, wallet):
        handler = lambda request: httpx.Response(502, text="bad gateway")
        with make_gateway(wallet, handler) as gw:
            with pytest.raises(QueryError, match="bad gateway"):
                gw.evaluate(CONTRACT, "QueryShipping", "A1")

    @pytest.mark.parametrize("body", ['"chaincode failed"', '["boom"]', "null"])
    def test_non_object_json_error_body(self, wallet, body):
        """An error body that is JSON but not an object is reported verbatim."""
        handler = lambda request: httpx.Response(500, text=body)
        with make_gateway(wallet, handler) as gw:
            with pytest.raises(QueryError) as exc_info:
                gw.evaluate(CONTRACT, "QueryShipping", "A1")
        assert body in str(exc_info.value)

    def test_non_object_json_conflict_on_submit(self, wallet):
        handler = lambda request: httpx.Response(500, text='"MVCC_READ_CONFLICT"')
        with make_gateway(wallet, handler) as gw:
            with pytest.raises(ConflictError):
                gw.submit(CONTRACT, "CloseShipping", "A1", endorsers=["Org1MSP"])
