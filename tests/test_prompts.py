from __future__ import annotations

import pytest

from meshwire_engine.prompts import (
    AESTHETIC_RULESET,
    MODE_ANIMATE,
    MODE_CREATE,
    MODE_EDIT,
    compose_prompt,
)


def test_create_prompt_contains_user_text_and_full_ruleset() -> None:
    text = "A vintage rotary telephone with internal AI components"
    prompt = compose_prompt(MODE_CREATE, text)
    assert prompt == f"Generate a stylized CAD wireframe rendering of: {text}. {AESTHETIC_RULESET}"
    assert text in prompt
    assert AESTHETIC_RULESET in prompt


def test_compose_prompt_is_pure() -> None:
    first = compose_prompt(MODE_CREATE, "drone")
    compose_prompt(MODE_EDIT, "add rotors")
    compose_prompt(MODE_CREATE, "drone", has_reference_image=True)
    assert compose_prompt(MODE_CREATE, "drone") == first


def test_reference_guidance_precedes_create_instruction() -> None:
    prompt = compose_prompt(MODE_CREATE, "a chair", has_reference_image=True)
    create_at = prompt.index("Generate a stylized CAD wireframe rendering of: a chair.")
    assert "silhouette" in prompt[:create_at]
    assert "Do NOT trace" in prompt[:create_at]
    assert "primary" in prompt[:create_at]
    assert prompt.endswith(AESTHETIC_RULESET)


def test_edit_prompt_format() -> None:
    prompt = compose_prompt(MODE_EDIT, "add a second antenna")
    assert prompt.startswith("Apply this modification to the wireframe schematic: add a second antenna.")
    assert "Maintain mesh aesthetic." in prompt
    assert AESTHETIC_RULESET in prompt


def test_animate_prompt_ignores_user_text_and_requests_silence() -> None:
    prompt = compose_prompt(MODE_ANIMATE, "ignored text")
    assert prompt == compose_prompt(MODE_ANIMATE)
    assert "ignored text" not in prompt
    assert "360-degree" in prompt
    assert "orbit" in prompt
    assert "no audio" in prompt


def test_ruleset_lists_palette_and_background() -> None:
    for token in ("#00FFFF", "#FF00FF", "#FFFF00", "#000000", "wireframe mesh", "CAD UI"):
        assert token in AESTHETIC_RULESET


def test_unknown_mode_rejected() -> None:
    with pytest.raises(ValueError):
        compose_prompt("sculpt", "anything")
