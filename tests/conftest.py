import json

import pytest

import codex_notify.config as config_module
from codex_notify.config import NotifySettings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """テストごとに設定キャッシュと通知サービスを破棄"""
    import codex_notify.ui.notifications as notifications

    config_module.reset_settings()
    monkeypatch.setattr(notifications, "_default_service", None)
    yield
    config_module.reset_settings()


@pytest.fixture
def settings(tmp_path):
    """キャッシュを一時ディレクトリに向けた設定"""
    return NotifySettings(cache_dir=tmp_path / "cache", executable="codex-notify")


@pytest.fixture
def approval_payload():
    """承認要求ペイロード"""
    return json.dumps(
        {
            "type": "approval-requested",
            "thread-id": "t1",
            "last-assistant-message": "Run rm -rf build?",
            "approval-options": ["Yes", "No"],
        }
    )


@pytest.fixture
def turn_complete_payload():
    """ターン完了ペイロード"""
    return json.dumps(
        {
            "type": "agent-turn-complete",
            "thread-id": "t2",
            "last-assistant-message": "Done.",
        }
    )
