import logging
import pytest
import yaml
from unittest.mock import MagicMock
from canvasforge import setup_logging
from canvasforge.config import Config, ConfigManager, getflag


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config" / "config.yaml"


def test_defaults():
    config = Config()
    assert config.history_limit == 20
    assert config.arrange_padding == 10.0
    assert config.duplicate_offset == 10.0
    assert config.default_image_pos == (100.0, 100.0)


def test_missing_file_gives_defaults(config_file):
    manager = ConfigManager(config_file)
    assert manager.config.to_dict() == Config().to_dict()
    assert not config_file.exists()


def test_save_and_load(config_file):
    manager = ConfigManager(config_file)
    manager.config.set("history_limit", 5)
    manager.config.set("default_image_pos", (1.0, 2.0))
    manager.save()

    with open(config_file) as f:
        assert yaml.safe_load(f)["history_limit"] == 5

    reloaded = ConfigManager(config_file)
    assert reloaded.config.history_limit == 5
    assert reloaded.config.default_image_pos == (1.0, 2.0)


def test_from_dict_clamps_history_limit():
    assert Config.from_dict({"history_limit": 0}).history_limit == 1


def test_broken_file_is_logged_and_ignored(config_file, caplog):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("history_limit: [unclosed")
    manager = ConfigManager(config_file)
    assert manager.config.history_limit == 20
    assert "Could not read config" in caplog.text


def test_set_rejects_unknown_keys():
    with pytest.raises(AttributeError):
        Config().set("no_such_key", 1)


def test_manager_relays_config_changes(config_file):
    manager = ConfigManager(config_file)
    handler = MagicMock()
    manager.changed.connect(handler)
    manager.config.set("arrange_padding", 4.0)
    handler.assert_called_once_with(manager, key="arrange_padding")

    # Setting the same value again is not a change.
    manager.config.set("arrange_padding", 4.0)
    assert handler.call_count == 1


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("true", True), ("TRUE", True), ("0", False), ("no", False)],
)
def test_getflag(monkeypatch, value, expected):
    monkeypatch.setenv("CANVASFORGE_TEST_FLAG", value)
    assert getflag("CANVASFORGE_TEST_FLAG") is expected


def test_getflag_default(monkeypatch):
    monkeypatch.delenv("CANVASFORGE_TEST_FLAG", raising=False)
    assert getflag("CANVASFORGE_TEST_FLAG") is False
    assert getflag("CANVASFORGE_TEST_FLAG", default=True) is True


@pytest.mark.parametrize(
    "flag, level", [("1", logging.DEBUG), ("0", logging.INFO)]
)
def test_setup_logging_follows_debug_flag(monkeypatch, flag, level):
    basic_config = MagicMock()
    monkeypatch.setattr(logging, "basicConfig", basic_config)
    monkeypatch.setenv("CANVASFORGE_DEBUG", flag)
    setup_logging()
    assert basic_config.call_args.kwargs["level"] == level


def test_setup_logging_explicit_level(monkeypatch):
    basic_config = MagicMock()
    monkeypatch.setattr(logging, "basicConfig", basic_config)
    monkeypatch.setenv("CANVASFORGE_DEBUG", "1")
    setup_logging(logging.WARNING)
    assert basic_config.call_args.kwargs["level"] == logging.WARNING
