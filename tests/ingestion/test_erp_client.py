"""OdooClient JSON-RPC transport, against a mocked HTTP endpoint."""

import json

import httpx
import pytest
import respx

from coop_ingestion.domain.types import ErpCredentials
from coop_ingestion.erp.client import OdooClient
from coop_kernel.exceptions import ErpAuthenticationError, ErpTransportError

CREDS = ErpCredentials(
    url="https://erp.example.coop/",
    database="coop_db",
    username="integracion@example.coop",
    api_key="secret-key",
)
ENDPOINT = "https://erp.example.coop/jsonrpc"


def _rpc(result=None, error=None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result(body["params"]) if callable(result) else result
        return httpx.Response(200, json=payload)

    return handler


@respx.mock
def test_authenticate_caches_uid():
    route = respx.post(ENDPOINT).mock(side_effect=_rpc(7))
    client = OdooClient(CREDS)
    assert client.authenticate() == 7
    assert client.authenticate() == 7
    assert client.uid == 7
    assert route.call_count == 1

    params = json.loads(route.calls[0].request.content)["params"]
    assert params["service"] == "common"
    assert params["method"] == "authenticate"
    assert params["args"] == ["coop_db", "integracion@example.coop", "secret-key", {}]


@respx.mock
def test_falsy_uid_is_authentication_error(captured_logs):
    respx.post(ENDPOINT).mock(side_effect=_rpc(False))
    with pytest.raises(ErpAuthenticationError):
        OdooClient(CREDS).authenticate()
    assert any(r["message"] == "erp_authentication_failed" for r in captured_logs())


@respx.mock
def test_search_read_sends_execute_kw():
    def result(params):
        if params["service"] == "common":
            return 7
        return [{"id": 1, "name": "Caja"}]

    route = respx.post(ENDPOINT).mock(side_effect=_rpc(result))
    rows = OdooClient(CREDS).search_read(
        "account.account", [["code", "=", "1101"]], ["name"], order="code"
    )
    assert rows == [{"id": 1, "name": "Caja"}]

    args = json.loads(route.calls[1].request.content)["params"]["args"]
    assert args[:5] == ["coop_db", 7, "secret-key", "account.account", "search_read"]
    assert args[5] == [[["code", "=", "1101"]]]
    assert args[6] == {"fields": ["name"], "order": "code"}


@respx.mock
def test_rpc_error_message_from_data():
    respx.post(ENDPOINT).mock(
        side_effect=_rpc(error={"message": "Odoo Server Error", "data": {"message": "Access Denied"}})
    )
    with pytest.raises(ErpTransportError, match="Access Denied"):
        OdooClient(CREDS).authenticate()


@respx.mock
def test_http_500_is_transport_error():
    respx.post(ENDPOINT).mock(return_value=httpx.Response(500, text="boom"))
    with pytest.raises(ErpTransportError, match="HTTP 500"):
        OdooClient(CREDS).authenticate()


@respx.mock
def test_non_json_body_is_transport_error():
    respx.post(ENDPOINT).mock(return_value=httpx.Response(200, text="<html>login</html>"))
    with pytest.raises(ErpTransportError, match="not valid JSON"):
        OdooClient(CREDS).authenticate()


@respx.mock
def test_connection_error_is_transport_error():
    respx.post(ENDPOINT).mock(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(ErpTransportError, match="connection refused"):
        OdooClient(CREDS).authenticate()


@respx.mock
def test_non_list_search_result_rejected():
    def result(params):
        return 7 if params["service"] == "common" else {"unexpected": True}

    respx.post(ENDPOINT).mock(side_effect=_rpc(result))
    with pytest.raises(ErpTransportError, match="returned dict"):
        OdooClient(CREDS).search_read("res.partner", [], ["name"])


def test_injected_http_client_is_not_closed():
    http = httpx.Client()
    client = OdooClient(CREDS, http_client=http)
    client.close()
    assert not http.is_closed
    http.close()
