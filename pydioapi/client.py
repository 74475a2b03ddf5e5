"""
Pydio REST API 客户端：认证与请求分发。

认证流程：
1. 首次请求前，用 Basic 认证 GET pydio/keystore_generate_auth_token/{device_id}，
   取 JSON 中的 t（token）与 p（私钥），在实例生命周期内缓存，不刷新。
2. 每次请求生成随机 nonce，对 "/api/{workspace}{action_url}:{nonce}:{私钥}" 做以 token 为密钥的
   HMAC-SHA256，得到 auth_hash = "{nonce}:{hash}"，与 auth_token 一起作为 POST 字段发送。
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import random
import threading
from types import MappingProxyType
from typing import Any, Mapping

import httpx

from pydioapi.exceptions import ProtocolError, TransportError

logger = logging.getLogger(__name__)

# 操作名 -> URL 路径片段
ACTIONS: Mapping[str, str] = MappingProxyType({
    "upload": "/upload/",
    "mkfile": "/mkfile/",
    "mkdir": "/mkdir/",
    "purge": "/purge/",
    "ls": "/ls/",
    "download": "/download/",
    "get_content": "/get_content/",
    "put_content": "/put_content/put/",
    "rename": "/rename/",
    "copy": "/copy/",
    "move": "/move/",
    "delete": "/delete/",
    "chmod": "/chmod/",
})

GENERATE_AUTH_TOKEN_URL = "pydio/keystore_generate_auth_token"

# 调用方可覆盖的默认字段
DEFAULT_FIELDS: Mapping[str, str] = MappingProxyType({"auto_rename": "false"})


class PydioClient:
    """
    Pydio 服务器 REST 客户端。

    示例： PydioClient("alice", "secret", "https://pydio.example.com/api/", "my-files")
    """

    def __init__(
        self,
        username: str,
        password: str,
        api_url: str,
        workspace_id: str,
        *,
        device_id: str = "",
        timeout: float = 30.0,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        :param username: API 用户名
        :param password: API 密码
        :param api_url: API 根地址，如 https://host/api/（末尾 / 可省略）
        :param workspace_id: 目标 workspace id，所有路径都在其下解析
        :param device_id: 生成 token 时附加在 URL 末尾的设备 id
        :param timeout: 请求超时秒数
        :param verify: 是否验证 HTTPS 证书
        :param transport: 自定义 httpx transport（测试时注入 MockTransport）
        """
        self.username = username
        self.password = password
        self.api_url = api_url.rstrip("/") + "/"
        self.workspace_id = workspace_id
        self.device_id = device_id
        self.timeout = timeout
        self.verify = verify
        self._transport = transport
        self._client: httpx.Client | None = None
        self._auth_token: str | None = None
        self._auth_private: str | None = None
        self._token_lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=self.timeout,
                verify=self.verify,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """关闭底层 HTTP 客户端。"""
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> PydioClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------- 认证 -------------------------

    @property
    def token_url(self) -> str:
        return f"{self.api_url}{GENERATE_AUTH_TOKEN_URL}/{self.device_id}"

    def authenticate(self) -> str:
        """
        确保已取得会话 token（只交换一次），返回 token。

        可在首次操作前显式调用；未调用时由第一次请求自动触发。
        """
        with self._token_lock:
            if self._auth_token is None:
                self._auth_token, self._auth_private = self._generate_token()
            return self._auth_token

    def _generate_token(self) -> tuple[str, str]:
        logger.debug("requesting auth token for %s", self.username)
        try:
            r = self._get_client().get(self.token_url, auth=(self.username, self.password))
        except httpx.HTTPError as e:
            raise TransportError(f"token request failed: {e}") from e
        if r.status_code >= 400:
            raise ProtocolError(
                f"token request returned {r.status_code}: {r.text}",
                status_code=r.status_code,
                body=r.content,
            )
        try:
            data = r.json()
            return data["t"], data["p"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProtocolError(f"unexpected token response: {r.text}", status_code=r.status_code, body=r.content) from e

    def get_auth_hash(self, action_url: str) -> str:
        """
        生成本次请求的认证串 "{nonce}:{hmac}"。

        nonce 每次重新生成，因此即使 token 复用，返回值也每次不同。
        :param action_url: 动作路径，如 "/ls/docs"
        """
        self.authenticate()
        nonce = hashlib.sha1(str(random.random()).encode()).hexdigest()
        uri = f"/api/{self.workspace_id}{action_url}"
        message = f"{uri}:{nonce}:{self._auth_private}"
        digest = hmac.new(self._auth_token.encode(), message.encode(), hashlib.sha256).hexdigest()
        return f"{nonce}:{digest}"

    # ------------------------- 请求分发 -------------------------

    def action_url(self, action: str, path: str = "") -> str:
        """操作名 + 路径 -> 动作路径，如 ("ls", "docs/a") -> "/ls/docs/a"。"""
        try:
            fragment = ACTIONS[action]
        except KeyError:
            raise ValueError(f"unknown action: {action}") from None
        return fragment + path.lstrip("/")

    def request(
        self,
        action: str,
        path: str = "",
        fields: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> bytes:
        """
        发一次带签名的 POST，返回原始响应体。

        字段优先级：DEFAULT_FIELDS（可被覆盖）< fields < 固定字段 force_post/auth_hash/auth_token（不可覆盖）。

        :param action: ACTIONS 中的操作名
        :param path: 追加在动作路径后的路径
        :param fields: 额外 POST 字段
        :param files: multipart 文件部分（上传时使用），格式同 httpx files
        :return: 响应体 bytes，不做解析
        """
        action_url = self.action_url(action, path)
        url = f"{self.api_url}{self.workspace_id}{action_url}"
        data: dict[str, Any] = {**DEFAULT_FIELDS, **(fields or {})}
        data["force_post"] = "true"
        data["auth_hash"] = self.get_auth_hash(action_url)
        data["auth_token"] = self._auth_token
        logger.debug("POST %s %s", action, action_url)
        try:
            r = self._get_client().post(url, data=data, files=files)
        except httpx.HTTPError as e:
            raise TransportError(f"{action} request failed: {e}") from e
        if r.status_code >= 400:
            raise ProtocolError(
                f"{action} returned {r.status_code}: {r.text}",
                status_code=r.status_code,
                body=r.content,
            )
        return r.content
