"""
Pydio 文件系统适配器：把 write/read/ls/move/copy/delete/chmod/mkdir 等文件系统操作映射到 Pydio REST 动作。

路径均为 workspace 内的相对路径，如 "docs/a.txt"；空路径表示 workspace 根目录（总是存在）。
"""

from __future__ import annotations

import io
import logging
import posixpath
from types import MappingProxyType
from typing import Any, BinaryIO, Mapping

from pydioapi.client import PydioClient
from pydioapi.exceptions import ProtocolError
from pydioapi.models import (
    TYPE_DIR,
    FileMetadata,
    child_nodes,
    normalize_file_info,
    parse_listing,
)

logger = logging.getLogger(__name__)

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"

# 可见性 -> chmod_value
PERMISSIONS: Mapping[str, int] = MappingProxyType({
    VISIBILITY_PUBLIC: 744,
    VISIBILITY_PRIVATE: 700,
})

# 上传时 multipart 文件部分的字段名与占位文件名（真实文件名由 urlencoded_filename 给出）
UPLOAD_FIELD = "userfile_0"
UPLOAD_FAKE_NAME = "fake-name"


def _dirname(path: str) -> str:
    """父目录；位于根目录时为空字符串。"""
    d = posixpath.dirname(path)
    return "" if d == "." else d


def _byte_size(contents: str | bytes) -> int:
    """内容的字节数；str 按 UTF-8 计。"""
    return len(contents.encode("utf-8")) if isinstance(contents, str) else len(contents)


class PydioAdapter:
    """
    基于 PydioClient 的文件系统适配器。

    可直接传入连接参数，也可传入已构造好的 client::

        fs = PydioAdapter("alice", "secret", "https://pydio.example.com/api/", "my-files")
        fs.write("docs/hello.txt", "hello", {"visibility": "public"})
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        api_url: str | None = None,
        workspace_id: str | None = None,
        *,
        client: PydioClient | None = None,
        **client_options: Any,
    ):
        """
        :param username: API 用户名
        :param password: API 密码
        :param api_url: API 根地址
        :param workspace_id: workspace id
        :param client: 已有的 PydioClient；提供时忽略上面四个参数
        :param client_options: 透传给 PydioClient 的关键字参数（timeout、verify、transport 等）
        """
        if client is None:
            if username is None or password is None or api_url is None or workspace_id is None:
                raise ValueError("username, password, api_url and workspace_id are required without client")
            client = PydioClient(username, password, api_url, workspace_id, **client_options)
        self.client = client

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> PydioAdapter:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _ensure_parent(self, path: str, config: Mapping[str, Any] | None = None) -> None:
        parent = _dirname(path)
        if parent and not self.has(parent):
            self.create_dir(parent, config)

    def _apply_visibility(self, path: str, config: Mapping[str, Any] | None, result: dict[str, Any]) -> None:
        visibility = (config or {}).get("visibility")
        if visibility:
            self.set_visibility(path, visibility)
            result["visibility"] = visibility

    # ------------------------- 写入 -------------------------

    def write(self, path: str, contents: str | bytes, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        新建文件并写入内容；父目录不存在时逐级创建。

        顺序：mkdir（按需）-> mkfile -> put_content -> chmod（config 中有 visibility 时）。
        """
        self._ensure_parent(path, config)
        self.client.request("mkfile", path)
        self._put_content(path, contents)
        result: dict[str, Any] = {"type": "file", "path": path, "size": _byte_size(contents), "contents": contents}
        self._apply_visibility(path, config, result)
        return result

    def update(self, path: str, contents: str | bytes, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """覆盖已有文件内容；文件不存在时抛 FileNotFoundError。"""
        if not self.has(path):
            raise FileNotFoundError(f"File not found: {path}")
        self._put_content(path, contents)
        meta = self.get_mimetype(path)
        result: dict[str, Any] = {
            "path": path,
            "size": _byte_size(contents),
            "contents": contents,
            "mimetype": meta.mimetype if meta else "",
        }
        self._apply_visibility(path, config, result)
        return result

    def _put_content(self, path: str, contents: str | bytes) -> bytes:
        """str 作为普通表单字段发送；bytes 作为无文件名的 multipart 部分发送，字节原样保留。"""
        fields = {"file": "/" + path, "_method": "put"}
        if isinstance(contents, bytes):
            return self.client.request("put_content", path, fields, files={"content": (None, contents)})
        fields["content"] = contents
        return self.client.request("put_content", path, fields)

    def write_stream(self, path: str, stream: BinaryIO, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        从文件对象上传。整个流先读入内存，再以 multipart 发 upload。

        :param stream: 可读的二进制文件对象
        """
        self._ensure_parent(path, config)
        content = stream.read()
        parent = _dirname(path)
        fields = {
            "dir": parent,
            "file": "/" + path,
            "xhr_uploader": "true",
            "auto_rename": "false",
            "urlencoded_filename": "/" + posixpath.basename(path),
        }
        files = {UPLOAD_FIELD: (UPLOAD_FAKE_NAME, content, "application/octet-stream")}
        url_path = f"put/{parent}" if parent else path
        self.client.request("upload", url_path, fields, files=files)
        result: dict[str, Any] = {"path": path}
        self._apply_visibility(path, config, result)
        return result

    def update_stream(self, path: str, stream: BinaryIO, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self.write_stream(path, stream, config)

    # ------------------------- 读取 -------------------------

    def read(self, path: str) -> bytes:
        """下载文件，返回原始内容。"""
        return self.client.request("download", path)

    def read_stream(self, path: str) -> BinaryIO:
        """下载文件并包装为内存中的可读流。"""
        return io.BytesIO(self.read(path))

    # ------------------------- 移动 / 重命名 / 复制 / 删除 -------------------------

    def move(self, path: str, new_path: str) -> dict[str, Any]:
        """移动文件到 new_path（目标父目录不存在时创建）。"""
        self._ensure_parent(new_path)
        fields = {
            "file": "/" + path,
            "filename_new": "/" + posixpath.basename(new_path),
            "dest": "/" + _dirname(new_path),
            "dir": "/" + _dirname(path),
        }
        contents = self.client.request("move", path, fields)
        return {"path": path, "contents": contents}

    def rename(self, path: str, new_path: str) -> dict[str, Any]:
        """重命名；只发送新文件名，不带 dest/dir。"""
        self._ensure_parent(new_path)
        fields = {
            "file": "/" + path,
            "filename_new": "/" + posixpath.basename(new_path),
        }
        contents = self.client.request("rename", path, fields)
        return {"path": path, "contents": contents}

    def copy(self, path: str, new_path: str) -> bytes:
        """复制文件到 new_path 所在目录，返回服务端响应体。"""
        self._ensure_parent(new_path)
        fields = {
            "file": "/" + path,
            "dest": "/" + _dirname(new_path),
            "dir": "/" + _dirname(path),
        }
        return self.client.request("copy", path, fields)

    def delete(self, path: str) -> dict[str, Any]:
        contents = self.client.request("delete", path, {"file": "/" + path})
        return {"path": path, "contents": contents}

    def delete_dir(self, dirname: str) -> dict[str, Any]:
        """删除目录；与 delete 同一个动作，由服务端负责递归删除。"""
        return self.delete(dirname)

    # ------------------------- 列表与元数据 -------------------------

    def list_contents(self, directory: str = "", recursive: bool = False) -> list[FileMetadata]:
        """
        列出目录下的条目，每个子节点一条记录。

        :param directory: 目录路径，"" 为根目录
        :param recursive: 为 True 时深度优先展开子目录，子目录条目紧跟在该目录之后
        :raises ProtocolError: 响应不是合法 XML
        """
        body = self.client.request("ls", directory, {"dir": "/" + directory})
        root = parse_listing(body)
        entries: list[FileMetadata] = []
        for node in child_nodes(root):
            meta = normalize_file_info(node)
            entries.append(meta)
            if recursive and meta.type == TYPE_DIR and meta.path.strip("/"):
                entries.extend(self.list_contents(meta.path.strip("/"), recursive=True))
        return entries

    def get_metadata(self, path: str) -> FileMetadata | None:
        """
        获取单个路径的元数据；不存在时返回 None。

        空路径视为根目录，直接返回目录记录而不发请求。
        """
        if not path:
            return FileMetadata(type=TYPE_DIR, path="")
        body = self.client.request("ls", path, {"file": "/" + path})
        root = parse_listing(body)
        nodes = child_nodes(root)
        if not nodes:
            return None
        return normalize_file_info(nodes[0])

    def get_size(self, path: str) -> FileMetadata | None:
        return self.get_metadata(path)

    def get_mimetype(self, path: str) -> FileMetadata | None:
        return self.get_metadata(path)

    def get_timestamp(self, path: str) -> FileMetadata | None:
        return self.get_metadata(path)

    def get_permission(self, path: str) -> FileMetadata | None:
        return self.get_metadata(path)

    def has(self, path: str) -> bool:
        """路径是否存在；空路径（根目录）总是存在。"""
        if not path:
            return True
        return self.get_metadata(path) is not None

    # ------------------------- 可见性 -------------------------

    def get_visibility(self, path: str) -> str | None:
        """
        由权限位推导可见性：组或其他用户可读（0o044）为 public，否则 private。

        :return: "public" / "private"；路径不存在时为 None
        """
        meta = self.get_permission(path)
        if meta is None:
            return None
        try:
            perms = int(meta.permission, 8) if meta.permission else 0
        except ValueError as e:
            raise ProtocolError(f"invalid file_perms for {path}: {meta.permission!r}") from e
        return VISIBILITY_PUBLIC if perms & 0o044 else VISIBILITY_PRIVATE

    def set_visibility(self, path: str, visibility: str) -> dict[str, Any]:
        """对父目录发 chmod，把 path 的权限设为 PERMISSIONS[visibility]。"""
        if visibility not in PERMISSIONS:
            raise ValueError(f"unknown visibility: {visibility}")
        fields = {
            "file": "/" + path,
            "chmod_value": PERMISSIONS[visibility],
        }
        self.client.request("chmod", _dirname(path), fields)
        return {"path": path, "visibility": visibility}

    # ------------------------- 目录 -------------------------

    def create_dir(self, dirname: str, config: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        """
        创建目录（含所有上级目录）。已存在时不发 mkdir，直接返回成功。

        从根到叶依次对 "/a"、"/a/b" ... 发 mkdir，已存在的上级目录跳过；
        任一步返回空响应则中止并返回 None。
        """
        if self.has(dirname):
            return {"path": dirname, "type": TYPE_DIR}
        create = ""
        for part in dirname.split("/"):
            if not part:
                continue
            create += "/" + part
            if self.has(create.lstrip("/")):
                continue
            logger.debug("mkdir %s", create)
            if not self.client.request("mkdir", create):
                return None
        return {"path": create, "type": TYPE_DIR}
