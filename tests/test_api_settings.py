from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from shareden.api.routers.settings import router
from shareden.shares.errors import ConfigValidationError, ShareValidationError
from shareden.shares.models import AppSettings, FilesystemUsage


def _client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


SETTINGS = {
    "share_config_base_path": "/etc/shareden/shares",
    "default_parent_path": "/srv",
    "default_mountpoint_name": "smbdatastore",
    "theme": "dark",
}


def test_get_settings():
    engine = MagicMock()
    engine.get_settings.return_value = AppSettings(**SETTINGS)
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().get("/settings")

    assert response.status_code == 200
    assert response.json()["data"] == SETTINGS


def test_save_settings():
    engine = MagicMock()
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().put("/settings", json=dict(SETTINGS, theme="light"))

    assert response.status_code == 200
    assert engine.save_settings.call_args[0][0].theme == "light"


def test_save_settings_rejects_bad_paths():
    engine = MagicMock()
    engine.save_settings.side_effect = ShareValidationError(
        {"default_parent_path": 'Path should not end with "/".'}
    )
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().put("/settings", json=dict(SETTINGS, default_parent_path="/srv/"))

    assert response.status_code == 400
    assert "default_parent_path" in response.json()["detail"]["errors"]


def test_save_settings_rejected_by_samba():
    engine = MagicMock()
    engine.save_settings.side_effect = ConfigValidationError("testparm not found. Is samba installed?")
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().put("/settings", json=SETTINGS)

    assert response.status_code == 409


def test_invalid_theme_is_rejected_before_the_engine():
    engine = MagicMock()
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().put("/settings", json=dict(SETTINGS, theme="purple"))

    assert response.status_code == 422
    engine.save_settings.assert_not_called()


def test_usage():
    engine = MagicMock()
    engine.get_filesystem_usage.return_value = FilesystemUsage(
        filesystem="/dev/sdb1", mountpoint="/srv", size="1048576", available="524288",
        used="524288", used_percent="50%",
    )
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().get("/settings/usage")

    assert response.json()["data"]["used_percent"] == "50%"


def test_usage_preview_uses_unsaved_settings():
    engine = MagicMock()
    engine.get_filesystem_usage.return_value = FilesystemUsage()
    with patch("shareden.api.routers.settings.get_engine", return_value=engine):
        response = _client().post("/settings/usage", json=dict(SETTINGS, default_parent_path="/mnt/pool"))

    assert response.json()["data"]["size"] == "N/A"
    assert engine.get_filesystem_usage.call_args[0][0].default_parent_path == "/mnt/pool"
