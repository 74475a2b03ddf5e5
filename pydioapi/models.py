"""
Pydio 数据模型：把 ls 返回的 XML <tree> 节点归一化为统一的元数据记录。

ls 响应示例（目录列表，子节点即目录下的条目）::

    <tree filename="/docs" is_file="false" ...>
        <tree filename="/docs/a.txt" is_file="true" bytesize="5" file_perms="0644"
              ajxp_modiftime="1700000000" mimestring_id="8" mimestring="Text file"/>
    </tree>

属性与记录字段对应：
- is_file -> type（"true" 为 file，其余为 dir）
- filename -> path
- ajxp_modiftime -> timestamp
- file_perms -> permission（八进制字符串，如 "0644"）
- mimestring_id / mimestring -> mime 标识与名称
- bytesize -> size（仅文件）
缺失的属性归一化为空字符串。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any

from pydioapi.exceptions import ProtocolError

TYPE_FILE = "file"
TYPE_DIR = "dir"


@dataclass(frozen=True)
class FileMetadata:
    """单个文件/目录的元数据；size 仅文件有值，目录为 None。"""

    type: str
    path: str
    timestamp: str = ""
    permission: str = ""
    mimestring_id: str = ""
    mimestring: str = ""
    size: str | None = None

    @property
    def mimetype(self) -> str:
        return self.mimestring

    @property
    def is_file(self) -> bool:
        return self.type == TYPE_FILE

    def to_dict(self) -> dict[str, Any]:
        """转为扁平 dict（与 normalize 后的 PHP 数组同形）；目录不含 size 键。"""
        record: dict[str, Any] = {
            "type": self.type,
            "path": self.path,
            "timestamp": self.timestamp,
            "permission": self.permission,
            "mimestring_id": self.mimestring_id,
            "mimestring": self.mimestring,
            "mimetype": self.mimetype,
        }
        if self.size is not None:
            record["size"] = self.size
        return record


def parse_listing(body: bytes | str) -> ET.Element:
    """解析 ls 响应为根元素；不是合法 XML 时抛 ProtocolError。"""
    if isinstance(body, str):
        body = body.encode("utf-8")
    try:
        return ET.fromstring(body)
    except ET.ParseError as e:
        raise ProtocolError(f"invalid XML in listing response: {e}", body=body) from e


def normalize_file_info(node: ET.Element) -> FileMetadata:
    """将一个 <tree> 节点的属性归一化为 FileMetadata。"""
    attrs = node.attrib
    kind = TYPE_FILE if attrs.get("is_file") == "true" else TYPE_DIR
    return FileMetadata(
        type=kind,
        path=attrs.get("filename", ""),
        timestamp=attrs.get("ajxp_modiftime", ""),
        permission=attrs.get("file_perms", ""),
        mimestring_id=attrs.get("mimestring_id", ""),
        mimestring=attrs.get("mimestring", ""),
        size=attrs.get("bytesize", "") if kind == TYPE_FILE else None,
    )


def child_nodes(root: ET.Element) -> list[ET.Element]:
    """根元素下的直接子 <tree> 节点。"""
    return root.findall("tree")


def entry_size(entry: FileMetadata) -> int:
    """条目大小（字节），目录或未提供时为 0。"""
    return int(entry.size or 0)


def entry_timestamp(entry: FileMetadata) -> int | None:
    """修改时间（Unix 秒）；未提供时为 None。"""
    return int(entry.timestamp) if entry.timestamp else None


def entry_permissions(entry: FileMetadata) -> str:
    """权限字符串，如 '0644'。"""
    return entry.permission or ""


def entry_is_dir(entry: FileMetadata) -> bool:
    return entry.type == TYPE_DIR
