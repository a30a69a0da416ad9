"""Tests for the registry patcher."""

import json

import pytest

from beat_upm.errors import MalformedStructureError
from beat_upm.manifest.patcher import (
    PatchStrategy,
    detect_indent,
    find_matching_bracket,
    patch_manifest,
    patch_structural,
    patch_textual,
    render_entry,
)
from beat_upm.models import BEAT_REGISTRY

BEAT = {"name": "Beat", "url": "https://beat-unity.com/", "scopes": ["beat"]}

UNITY_MANIFEST = """{
  "dependencies": {
    "com.unity.collab-proxy": "2.0.5",
    "com.unity.textmeshpro": "3.0.6"
  }
}
"""

WITH_REGISTRIES = """{
  "scopedRegistries": [
    {
      "name": "OpenUPM",
      "url": "https://package.openupm.com",
      "scopes": [
        "com.cysharp",
        "com.neuecc"
      ]
    }
  ],
  "dependencies": {
    "com.unity.textmeshpro": "3.0.6"
  }
}
"""

OPENUPM = {
    "name": "OpenUPM",
    "url": "https://package.openupm.com",
    "scopes": ["com.cysharp", "com.neuecc"],
}


# --- Case B: no scopedRegistries key ---


def test_minimal_manifest_gets_registry_block_first():
    text = '{"dependencies":{"a":"1.0.0"}}'
    updated = patch_manifest(text, BEAT_REGISTRY)

    assert updated == (
        "{\n"
        '  "scopedRegistries": [\n'
        "    {\n"
        '      "name": "Beat",\n'
        '      "url": "https://beat-unity.com/",\n'
        '      "scopes": [\n'
        '        "beat"\n'
        "      ]\n"
        "    }\n"
        "  ],"
        '"dependencies":{"a":"1.0.0"}}'
    )
    data = json.loads(updated)
    assert list(data) == ["scopedRegistries", "dependencies"]
    assert data["scopedRegistries"] == [BEAT]
    assert data["dependencies"] == {"a": "1.0.0"}


def test_new_block_preserves_rest_of_document():
    updated = patch_textual(UNITY_MANIFEST, BEAT_REGISTRY)

    assert updated.startswith('{\n  "scopedRegistries": [\n')
    assert updated.endswith("  ]," + UNITY_MANIFEST[1:])
    assert json.loads(updated)["scopedRegistries"] == [BEAT]


def test_empty_object_stays_strict_json():
    assert json.loads(patch_textual("{}", BEAT_REGISTRY)) == {"scopedRegistries": [BEAT]}
    assert json.loads(patch_textual("{\n}\n", BEAT_REGISTRY)) == {"scopedRegistries": [BEAT]}


def test_no_root_object_is_malformed():
    with pytest.raises(MalformedStructureError):
        patch_textual("[1, 2, 3]", BEAT_REGISTRY)


# --- Case A: existing scopedRegistries ---


def test_empty_array_gets_single_entry():
    text = '{\n  "scopedRegistries": [],\n  "dependencies": {}\n}\n'
    updated = patch_textual(text, BEAT_REGISTRY)

    data = json.loads(updated)
    assert data["scopedRegistries"] == [BEAT]
    assert updated.endswith('  ],\n  "dependencies": {}\n}\n')


def test_whitespace_only_array_gets_single_entry():
    text = '{\n  "scopedRegistries": [\n\n  ]\n}'
    data = json.loads(patch_textual(text, BEAT_REGISTRY))
    assert data["scopedRegistries"] == [BEAT]


def test_existing_entries_are_kept_in_order():
    updated = patch_textual(WITH_REGISTRIES, BEAT_REGISTRY)

    data = json.loads(updated)
    assert data["scopedRegistries"] == [OPENUPM, BEAT]
    assert data["dependencies"] == {"com.unity.textmeshpro": "3.0.6"}

    # Everything up to the end of the existing entry is untouched.
    existing_end = WITH_REGISTRIES.index("    }\n  ],") + len("    }")
    assert updated[:existing_end] == WITH_REGISTRIES[:existing_end]
    assert updated[existing_end:].startswith(",\n    {\n")
    assert updated.endswith(WITH_REGISTRIES[WITH_REGISTRIES.index("],"):])


def test_non_object_array_content_is_appended_after():
    updated = patch_textual('{"scopedRegistries": ["legacy"]}', BEAT_REGISTRY)
    assert json.loads(updated)["scopedRegistries"] == ["legacy", BEAT]


def test_already_present_is_a_no_op():
    once = patch_textual(WITH_REGISTRIES, BEAT_REGISTRY)
    assert patch_textual(once, BEAT_REGISTRY) == once


def test_already_present_with_spaced_colon_is_a_no_op():
    text = '{"scopedRegistries": [{"name" : "Beat", "url": "x", "scopes": ["beat"]}]}'
    assert patch_textual(text, BEAT_REGISTRY) == text


def test_unterminated_array_is_malformed():
    text = '{\n  "scopedRegistries": [\n    {"name": "OpenUPM", "scopes": ["a"]}\n'
    with pytest.raises(MalformedStructureError):
        patch_textual(text, BEAT_REGISTRY)


def test_key_not_followed_by_array_is_malformed():
    text = '{"scopedRegistries": {}, "testables": ["com.beat"]}'
    with pytest.raises(MalformedStructureError):
        patch_textual(text, BEAT_REGISTRY)


def test_key_without_any_bracket_is_malformed():
    with pytest.raises(MalformedStructureError):
        patch_textual('{"scopedRegistries": null}', BEAT_REGISTRY)


# --- Formatting ---


def test_crlf_line_endings_are_kept():
    text = UNITY_MANIFEST.replace("\n", "\r\n")
    updated = patch_textual(text, BEAT_REGISTRY)

    assert "\n" not in updated.replace("\r\n", "")
    assert json.loads(updated)["scopedRegistries"] == [BEAT]


def test_four_space_indent_is_detected():
    text = '{\n    "dependencies": {\n        "a": "1.0.0"\n    }\n}\n'
    assert detect_indent(text) == "    "

    updated = patch_textual(text, BEAT_REGISTRY)
    assert '\n    "scopedRegistries": [\n        {\n            "name": "Beat",' in updated


def test_render_entry_default_layout():
    assert render_entry(BEAT_REGISTRY) == (
        "    {\n"
        '      "name": "Beat",\n'
        '      "url": "https://beat-unity.com/",\n'
        '      "scopes": [\n'
        '        "beat"\n'
        "      ]\n"
        "    }"
    )


def test_find_matching_bracket_skips_nested():
    text = "a[1,[2,3],[4]]b"
    assert find_matching_bracket(text, 1) == 13
    assert find_matching_bracket(text, 4) == 8


def test_find_matching_bracket_unmatched():
    assert find_matching_bracket("[[]", 0) == -1


# --- Structural strategy ---


def test_structural_appends_entry():
    updated = patch_structural(WITH_REGISTRIES, BEAT_REGISTRY)
    data = json.loads(updated)
    assert data["scopedRegistries"] == [OPENUPM, BEAT]
    assert list(data) == ["scopedRegistries", "dependencies"]
    assert updated.endswith("}\n")


def test_structural_creates_key_first():
    data = json.loads(patch_structural(UNITY_MANIFEST, BEAT_REGISTRY))
    assert list(data) == ["scopedRegistries", "dependencies"]
    assert data["scopedRegistries"] == [BEAT]


def test_structural_replaces_null_in_place():
    data = json.loads(patch_structural('{"a": 1, "scopedRegistries": null}', BEAT_REGISTRY))
    assert list(data) == ["a", "scopedRegistries"]
    assert data["scopedRegistries"] == [BEAT]


def test_structural_already_present_is_a_no_op():
    once = patch_structural(UNITY_MANIFEST, BEAT_REGISTRY)
    assert patch_structural(once, BEAT_REGISTRY) == once


def test_structural_rejects_wrong_shapes():
    with pytest.raises(MalformedStructureError):
        patch_structural("[1, 2]", BEAT_REGISTRY)
    with pytest.raises(MalformedStructureError):
        patch_structural('{"scopedRegistries": {}}', BEAT_REGISTRY)


def test_structural_falls_back_to_textual_for_lenient_json():
    text = '{\n  "scopedRegistries": [\n  ],\n  "dependencies": {},\n}\n'
    updated = patch_manifest(text, BEAT_REGISTRY, PatchStrategy.STRUCTURAL)

    assert '"name": "Beat"' in updated
    assert updated.endswith('  ],\n  "dependencies": {},\n}\n')


def test_textual_is_the_default_strategy():
    assert patch_manifest(UNITY_MANIFEST, BEAT_REGISTRY) == patch_textual(
        UNITY_MANIFEST, BEAT_REGISTRY
    )
