"""
CLI 认证配置（cli_config）单元测试。URL/账号均从 tests.config 读取。
"""

from __future__ import annotations

import pytest

from pydioapi.cli_config import clear_config, load_config, save_config

from tests.config import PYDIO_API_URL, PYDIO_PASSWORD, PYDIO_USERNAME, PYDIO_WORKSPACE


@pytest.fixture(autouse=True)
def _patch_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path: pytest.TempPathFactory) -> None:
    """将配置路径指向临时目录，避免污染用户 ~/.config/pydioapi。"""
    config_dir = tmp_path / "pydioapi"
    config_dir.mkdir(parents=True, exist_ok=True)

    def _config_dir():
        return config_dir

    monkeypatch.setattr("pydioapi.cli_config._config_dir", _config_dir)


def test_load_config_missing_returns_none() -> None:
    """无配置文件时 load_config 返回 None。"""
    assert load_config() is None


def test_load_config_invalid_json_returns_none(tmp_path: pytest.TempPathFactory) -> None:
    """无效 JSON 时 load_config 返回 None。"""
    config_file = tmp_path / "pydioapi" / "config.json"
    config_file.write_text("not json", encoding="utf-8")
    assert load_config() is None


def test_load_config_not_a_dict_returns_none(tmp_path: pytest.TempPathFactory) -> None:
    config_file = tmp_path / "pydioapi" / "config.json"
    config_file.write_text('["api_url", "workspace"]', encoding="utf-8")
    assert load_config() is None


@pytest.mark.parametrize("content", ['{"workspace": "w"}', '{"api_url": "http://x/api/"}'])
def test_load_config_missing_required_key_returns_none(tmp_path: pytest.TempPathFactory, content: str) -> None:
    """缺少 api_url 或 workspace 时 load_config 返回 None。"""
    config_file = tmp_path / "pydioapi" / "config.json"
    config_file.write_text(content, encoding="utf-8")
    assert load_config() is None


def test_save_config_creates_dir_and_file() -> None:
    """save_config 写入 config.json，读回内容一致。"""
    save_config(PYDIO_API_URL, PYDIO_WORKSPACE, PYDIO_USERNAME, PYDIO_PASSWORD)
    cfg = load_config()
    assert cfg == {
        "api_url": PYDIO_API_URL,
        "workspace": PYDIO_WORKSPACE,
        "username": PYDIO_USERNAME,
        "password": PYDIO_PASSWORD,
    }


def test_save_config_normalizes_trailing_slash() -> None:
    """api_url 统一以单个 / 结尾。"""
    save_config(PYDIO_API_URL.rstrip("/"), PYDIO_WORKSPACE)
    assert load_config()["api_url"] == PYDIO_API_URL
    save_config(PYDIO_API_URL + "/", PYDIO_WORKSPACE)
    assert load_config()["api_url"] == PYDIO_API_URL


def test_save_config_optional_username_password() -> None:
    """save_config 可不传 username/password。"""
    save_config(PYDIO_API_URL, PYDIO_WORKSPACE)
    cfg = load_config()
    assert cfg is not None
    assert "username" not in cfg
    assert "password" not in cfg


def test_clear_config_removes_file() -> None:
    """clear_config 删除配置文件并返回 True。"""
    save_config(PYDIO_API_URL, PYDIO_WORKSPACE, "u", "p")
    assert load_config() is not None
    assert clear_config() is True
    assert load_config() is None


def test_clear_config_when_missing_returns_false() -> None:
    """无配置文件时 clear_config 返回 False。"""
    assert clear_config() is False
