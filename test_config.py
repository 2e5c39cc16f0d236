"""Tests for settings validation and loading."""
import json

import pytest

from config import (
    Config,
    ConfigurationError,
    InteractionSettings,
    PROBABILITY_FIELDS,
    validate_probability,
)


def test_defaults_are_valid():
    settings = InteractionSettings()

    assert settings.like_probability == 50
    assert settings.comment_probability == 10
    assert all(0 <= settings.get_probability(name) <= 100 for name in PROBABILITY_FIELDS)


@pytest.mark.parametrize("value", [-1, 101, 50.5, True, "50", None])
def test_invalid_probabilities_are_rejected(value):
    with pytest.raises(ConfigurationError):
        validate_probability("like_probability", value)


def test_whole_float_probability_is_accepted():
    assert validate_probability("like_probability", 40.0) == 40


def test_set_probability_rejects_and_keeps_old_value():
    settings = InteractionSettings()

    with pytest.raises(ConfigurationError):
        settings.set_probability("like_probability", 150)
    assert settings.like_probability == 50

    assert settings.set_probability("like_probability", 0) == 0
    assert settings.get_probability("like_probability") == 0


def test_unknown_probability_name():
    with pytest.raises(ConfigurationError):
        InteractionSettings().set_probability("share_probability", 10)


def test_timing_validation():
    with pytest.raises(ConfigurationError):
        InteractionSettings(min_watch_seconds=10, max_watch_seconds=5)
    with pytest.raises(ConfigurationError):
        InteractionSettings(live_min_interval=0)
    with pytest.raises(ConfigurationError):
        InteractionSettings(feed_comments=[])


def test_from_file_missing_gives_defaults(tmp_path):
    settings = InteractionSettings.from_file(str(tmp_path / "missing.json"))
    assert settings == InteractionSettings()


def test_from_file_reads_weights_and_keywords(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "like_probability": 70,
        "live_gift_probability": 0,
        "keywords": [{"text": "猫", "boost_factor": 20}],
        "not_a_setting": True,
    }, ensure_ascii=False), encoding="utf-8")

    settings = InteractionSettings.from_file(str(path))

    assert settings.like_probability == 70
    assert settings.live_gift_probability == 0
    assert settings.keywords == [{"text": "猫", "boost_factor": 20}]


def test_from_file_bad_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        InteractionSettings.from_file(str(path))


def test_from_dict_rejects_bad_values():
    with pytest.raises(ConfigurationError):
        InteractionSettings.from_dict({"comment_probability": 300})
    with pytest.raises(ConfigurationError):
        InteractionSettings.from_dict(["not", "a", "dict"])


@pytest.mark.parametrize("keywords", [
    [{"text": "猫", "boost_factor": -5}],
    [{"boost_factor": 10}],
    [{"text": "   "}],
    ["猫"],
    {"text": "猫"},
])
def test_bad_keyword_entries_are_rejected_on_load(tmp_path, keywords):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"keywords": keywords}, ensure_ascii=False), encoding="utf-8")

    with pytest.raises(ConfigurationError):
        InteractionSettings.from_file(str(path))


def test_resolve_relative_position():
    assert Config.resolve((0.5, 0.25), (1080, 1920)) == (540, 480)
