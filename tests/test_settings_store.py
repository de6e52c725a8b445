import pytest
import yaml

from shareden.config.settings import config
from shareden.shares.errors import ShareValidationError
from shareden.shares.models import AppSettings
from shareden.shares.settings_store import SettingsStore, default_settings, parse_settings


@pytest.fixture
def store(tmp_path):
    return SettingsStore(str(tmp_path / "etc" / "settings.yaml"))


def test_defaults_come_from_config(store):
    settings = store.load()
    assert settings.share_config_base_path == config.share_config_base_path
    assert settings.default_parent_path == config.default_parent_path
    assert settings == default_settings()


def test_save_and_load(store):
    settings = AppSettings(
        share_config_base_path="/data/shares",
        default_parent_path="/data",
        default_mountpoint_name="pool",
        theme="light",
    )
    store.save(settings)

    assert store.load() == settings
    with open(store.path) as f:
        assert yaml.safe_load(f)["theme"] == "light"


def test_partial_file_is_merged_with_defaults(store, tmp_path):
    (tmp_path / "etc").mkdir()
    with open(store.path, "w") as f:
        f.write("default_parent_path: /mnt/pool\nunknown_key: 1\n")

    settings = store.load()
    assert settings.default_parent_path == "/mnt/pool"
    assert settings.share_config_base_path == config.share_config_base_path


@pytest.mark.parametrize("content", ["[not, a, mapping]\n", "theme: purple\n", "key: [unclosed\n"])
def test_bad_file_falls_back_to_defaults(store, tmp_path, content):
    (tmp_path / "etc").mkdir()
    with open(store.path, "w") as f:
        f.write(content)

    assert store.load() == default_settings()


def test_parse_settings_reports_fields():
    with pytest.raises(ShareValidationError) as exc:
        parse_settings({"share_config_base_path": "/etc/shares", "default_parent_path": "/srv", "theme": "purple"})
    assert list(exc.value.errors) == ["theme"]

    with pytest.raises(ShareValidationError) as exc:
        parse_settings({"theme": "dark"})
    assert set(exc.value.errors) == {"share_config_base_path", "default_parent_path"}
