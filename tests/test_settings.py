import logging

from mrp.engine.settings import Settings, load_settings, save_settings
from mrp.util.logging_utils import level_from_name


def test_load_creates_defaults(tmp_path):
    path = tmp_path / "mrp" / "settings.json"
    settings = load_settings(path)
    assert path.exists()
    assert settings == Settings()


def test_round_trip_and_render_options(tmp_path):
    path = tmp_path / "settings.json"
    save_settings(Settings(abbreviate=True, include_school=False, cache_max_entries=10), path)
    settings = load_settings(path)
    options = settings.render_options()
    assert options.abbreviate and not options.include_school
    assert settings.cache_max_entries == 10


def test_level_from_name():
    assert level_from_name("DEBUG") == logging.DEBUG
    assert level_from_name("nonsense") == logging.INFO
