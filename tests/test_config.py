import pytest

from stickerkit.config import get_config, reset_config
from stickerkit.exceptions import ConfigurationError


def test_defaults():
    config = get_config()
    assert config.slicing.sticker_size == (370, 320)
    assert config.slicing.main_size == 240
    assert config.export.archive_folder == "line_stickers"
    assert config.default_tolerance == 25


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("STICKER_WIDTH", "100")
    monkeypatch.setenv("DEBUG", "yes")
    monkeypatch.setenv("PNG_COMPRESSION", "not-a-number")
    reset_config()

    config = get_config()
    assert config.slicing.sticker_width == 100
    assert config.debug is True
    assert config.export.png_compression == 3


@pytest.mark.parametrize("key, value", [
    ("PNG_COMPRESSION", "12"),
    ("STICKER_HEIGHT", "0"),
    ("MAIN_IMAGE_SIZE", "-5"),
])
def test_invalid_values_raise(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    reset_config()

    with pytest.raises(ConfigurationError) as excinfo:
        get_config()
    assert excinfo.value.details == {"config_key": key}
