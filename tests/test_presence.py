"""Tests for registry presence checks."""

import json

import pytest

from beat_upm.manifest.presence import (
    is_present_structural,
    is_present_textual,
    is_registry_present,
    read_registries,
)

MANIFEST = """{
  "scopedRegistries": [
    {
      "name": "Beat",
      "url": "https://beat-unity.com/",
      "scopes": ["beat"]
    }
  ],
  "dependencies": {}
}
"""


def test_textual_matches_any_spacing():
    assert is_present_textual('{"name":"Beat"}', "Beat")
    assert is_present_textual('{"name" : "Beat"}', "Beat")
    assert is_present_textual('{"name":\n      "Beat"}', "Beat")


def test_textual_requires_exact_value():
    assert not is_present_textual('{"name": "Beatbox"}', "Beat")
    assert not is_present_textual('{"name": "beat"}', "Beat")
    assert not is_present_textual('{"title": "Beat"}', "Beat")


def test_textual_escapes_regex_characters():
    assert is_present_textual('{"name": "my.registry"}', "my.registry")
    assert not is_present_textual('{"name": "myXregistry"}', "my.registry")


def test_textual_matches_outside_registries():
    # The text scan cannot tell where the field lives.
    text = '{"dependencies": {}, "meta": {"name": "Beat"}}'
    assert is_present_textual(text, "Beat")
    assert not is_present_structural(text, "Beat")


def test_structural_finds_entry():
    assert is_present_structural(MANIFEST, "Beat")
    assert not is_present_structural(MANIFEST, "OpenUPM")


def test_structural_absent_or_empty_array():
    assert not is_present_structural('{"dependencies": {}}', "Beat")
    assert not is_present_structural('{"scopedRegistries": []}', "Beat")
    assert not is_present_structural('{"scopedRegistries": null}', "Beat")
    assert not is_present_structural("[]", "Beat")


def test_structural_raises_on_invalid_json():
    with pytest.raises(json.JSONDecodeError):
        is_present_structural('{"scopedRegistries": [],}', "Beat")


def test_registry_present_falls_back_to_text_scan():
    lenient = '{\n  "scopedRegistries": [\n    {"name": "Beat", "scopes": ["beat"]},\n  ],\n}'
    assert is_registry_present(lenient, "Beat")
    assert not is_registry_present(lenient, "OpenUPM")


def test_registry_present_prefers_structure_for_valid_json():
    assert is_registry_present(MANIFEST, "Beat")
    assert not is_registry_present('{"meta": {"name": "Beat"}}', "Beat")


def test_read_registries():
    registries = read_registries(MANIFEST)
    assert len(registries) == 1
    assert registries[0].name == "Beat"
    assert registries[0].url == "https://beat-unity.com/"
    assert registries[0].scopes == ["beat"]


def test_read_registries_skips_incomplete_entries():
    text = json.dumps({
        "scopedRegistries": [
            {"name": "NoUrl", "scopes": ["a"]},
            "not-an-object",
            {"name": "Ok", "url": "https://example.com", "scopes": ["com.ok"]},
        ]
    })
    assert [r.name for r in read_registries(text)] == ["Ok"]


def test_read_registries_without_key():
    assert read_registries('{"dependencies": {}}') == []
