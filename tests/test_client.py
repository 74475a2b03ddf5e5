"""
客户端单元测试：token 交换、auth_hash 签名、字段优先级与错误转换。
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import threading
import time

import httpx
import pytest

from pydioapi import ProtocolError, PydioClient, TransportError
from pydioapi.client import ACTIONS

from tests.config import (
    PYDIO_API_URL,
    PYDIO_PASSWORD,
    PYDIO_USERNAME,
    PYDIO_WORKSPACE,
    SIM_PRIVATE,
    SIM_TOKEN,
)
from tests.sim_server import SimPydioServer


def _make_client(handler, **kwargs) -> PydioClient:
    return PydioClient(
        PYDIO_USERNAME,
        PYDIO_PASSWORD,
        PYDIO_API_URL,
        PYDIO_WORKSPACE,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_api_url_gets_trailing_slash() -> None:
    """api_url 末尾无 / 时自动补上，token 地址拼接正确。"""
    c = PydioClient("u", "p", "http://pydio.test/api", "ws", device_id="dev1")
    assert c.api_url == "http://pydio.test/api/"
    assert c.token_url == "http://pydio.test/api/pydio/keystore_generate_auth_token/dev1"


def test_action_url_joins_fragment_and_path() -> None:
    c = PydioClient("u", "p", PYDIO_API_URL, PYDIO_WORKSPACE)
    assert c.action_url("ls", "docs/a.txt") == "/ls/docs/a.txt"
    assert c.action_url("mkdir", "/a/b") == "/mkdir/a/b"
    assert c.action_url("put_content", "x") == "/put_content/put/x"
    assert c.action_url("ls") == "/ls/"


def test_unknown_action_raises_value_error() -> None:
    c = PydioClient("u", "p", PYDIO_API_URL, PYDIO_WORKSPACE)
    with pytest.raises(ValueError):
        c.request("format_disk", "")


def test_action_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        ACTIONS["ls"] = "/other/"  # type: ignore[index]


def test_auth_hash_is_valid_hmac(client: PydioClient) -> None:
    """auth_hash = nonce:HMAC-SHA256(token, "/api/{ws}{action_url}:{nonce}:{私钥}")。"""
    auth_hash = client.get_auth_hash("/ls/docs")
    nonce, digest = auth_hash.split(":")
    assert len(nonce) == 40
    int(nonce, 16)
    message = f"/api/{PYDIO_WORKSPACE}/ls/docs:{nonce}:{SIM_PRIVATE}"
    expected = hmac.new(SIM_TOKEN.encode(), message.encode(), hashlib.sha256).hexdigest()
    assert digest == expected


def test_auth_hash_changes_while_token_is_reused(client: PydioClient, server: SimPydioServer) -> None:
    """同一实例内 token 只交换一次，但每次的 auth_hash 都不同。"""
    hashes = {client.get_auth_hash("/ls/") for _ in range(20)}
    assert len(hashes) == 20
    client.request("ls", "", {"dir": "/"})
    client.request("ls", "", {"dir": "/"})
    assert server.token_requests == 1
    assert len(set(server.auth_hashes)) == 2


def test_authenticate_returns_token_once(client: PydioClient, server: SimPydioServer) -> None:
    assert client.authenticate() == SIM_TOKEN
    assert client.authenticate() == SIM_TOKEN
    assert server.token_requests == 1


def test_concurrent_first_use_exchanges_token_once() -> None:
    """多个线程同时首次使用时只发一次 token 请求。"""
    count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal count
        count += 1
        time.sleep(0.05)
        return httpx.Response(200, json={"t": "tok", "p": "priv"})

    c = _make_client(handler)
    threads = [threading.Thread(target=c.authenticate) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert count == 1


def test_token_request_uses_basic_auth_and_get() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"t": "tok", "p": "priv"})

    _make_client(handler).authenticate()
    assert seen[0].method == "GET"
    assert seen[0].headers["authorization"].startswith("Basic ")
    assert str(seen[0].url) == f"{PYDIO_API_URL}pydio/keystore_generate_auth_token/"


def test_token_rejected_raises_protocol_error() -> None:
    """密码错误（状态码 >= 400）时抛 ProtocolError，携带状态码与响应体。"""
    server = SimPydioServer(password="other")
    c = _make_client(server)
    with pytest.raises(ProtocolError) as exc:
        c.request("ls", "", {"dir": "/"})
    assert exc.value.status_code == 401
    assert exc.value.body == b"invalid credentials"


def test_token_response_not_json_raises_protocol_error() -> None:
    c = _make_client(lambda request: httpx.Response(200, text="<html>login page</html>"))
    with pytest.raises(ProtocolError):
        c.authenticate()


def test_token_response_missing_fields_raises_protocol_error() -> None:
    c = _make_client(lambda request: httpx.Response(200, json={"t": "only-token"}))
    with pytest.raises(ProtocolError):
        c.authenticate()


def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    c = _make_client(handler)
    with pytest.raises(TransportError):
        c.request("ls", "", {"dir": "/"})


def test_request_transport_failure_after_token() -> None:
    """token 已取得后，动作请求失败同样转为 TransportError。"""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"t": "tok", "p": "priv"})
        raise httpx.ReadTimeout("timed out", request=request)

    c = _make_client(handler)
    with pytest.raises(TransportError):
        c.request("download", "a.txt")


def test_error_status_raises_protocol_error_with_body(client: PydioClient) -> None:
    with pytest.raises(ProtocolError) as exc:
        client.request("download", "missing.txt")
    assert exc.value.status_code == 404
    assert exc.value.body == b"not found"


def test_request_returns_raw_body(client: PydioClient, server: SimPydioServer) -> None:
    server.add_file("a.bin", b"\x00\x01binary")
    assert client.request("download", "a.bin") == b"\x00\x01binary"


def test_fixed_fields_cannot_be_overridden(client: PydioClient, server: SimPydioServer) -> None:
    """force_post/auth_hash/auth_token 为固定字段；auto_rename 为可覆盖的默认值。"""
    client.request(
        "ls",
        "",
        {"dir": "/", "force_post": "false", "auth_token": "forged", "auth_hash": "x:y", "auto_rename": "true"},
    )
    fields = server.requests[-1]
    assert fields["force_post"] == "true"
    assert fields["auth_token"] == SIM_TOKEN
    assert fields["auth_hash"] != "x:y"
    assert fields["auto_rename"] == "true"


def test_default_auto_rename_is_false(client: PydioClient, server: SimPydioServer) -> None:
    client.request("ls", "", {"dir": "/"})
    assert server.requests[-1]["auto_rename"] == "false"


def test_context_manager_closes_client() -> None:
    with _make_client(SimPydioServer()) as c:
        c.authenticate()
        inner = c._client
    assert inner is not None and inner.is_closed
    assert c._client is None


def test_debug_log_omits_secrets(client: PydioClient, caplog: pytest.LogCaptureFixture) -> None:
    """DEBUG 日志记录动作，但不包含密码与 token。"""
    with caplog.at_level(logging.DEBUG, logger="pydioapi.client"):
        client.request("ls", "docs", {"dir": "/docs"})
    assert "POST ls /ls/docs" in caplog.text
    assert PYDIO_PASSWORD not in caplog.text
    assert SIM_TOKEN not in caplog.text
