"""
pytest 配置与共享 fixture。

server 为内存模拟的 Pydio 服务器，adapter / client 通过 httpx.MockTransport 与其通信。
"""

from __future__ import annotations

from typing import Iterator

import httpx
import pytest

from pydioapi import PydioAdapter, PydioClient

from tests.config import PYDIO_API_URL, PYDIO_PASSWORD, PYDIO_USERNAME, PYDIO_WORKSPACE
from tests.sim_server import SimPydioServer


@pytest.fixture
def server() -> SimPydioServer:
    return SimPydioServer()


@pytest.fixture
def client(server: SimPydioServer) -> Iterator[PydioClient]:
    c = PydioClient(
        PYDIO_USERNAME,
        PYDIO_PASSWORD,
        PYDIO_API_URL,
        PYDIO_WORKSPACE,
        transport=httpx.MockTransport(server),
    )
    yield c
    c.close()


@pytest.fixture
def adapter(client: PydioClient) -> PydioAdapter:
    """基于模拟服务器的适配器。"""
    return PydioAdapter(client=client)
