"""Pydio REST API 文件系统适配器 - https://pydio.com"""

from pydioapi.adapter import PERMISSIONS, VISIBILITY_PRIVATE, VISIBILITY_PUBLIC, PydioAdapter
from pydioapi.client import ACTIONS, PydioClient
from pydioapi.exceptions import ProtocolError, PydioError, TransportError
from pydioapi.models import (
    FileMetadata,
    entry_is_dir,
    entry_permissions,
    entry_size,
    entry_timestamp,
    normalize_file_info,
)

__all__ = [
    "PydioAdapter",
    "PydioClient",
    "ACTIONS",
    "PERMISSIONS",
    "VISIBILITY_PUBLIC",
    "VISIBILITY_PRIVATE",
    "PydioError",
    "TransportError",
    "ProtocolError",
    "FileMetadata",
    "normalize_file_info",
    "entry_size",
    "entry_timestamp",
    "entry_permissions",
    "entry_is_dir",
]
