"""Prompt composition for wireframe generation."""

from __future__ import annotations


MODE_CREATE = "create"
MODE_EDIT = "edit"
MODE_ANIMATE = "animate"
MODES = (MODE_CREATE, MODE_EDIT, MODE_ANIMATE)

AESTHETIC_RULESET = """
CORE AESTHETIC REQUIREMENTS:
1. Geometric Wireframe Mesh: Depict the object solely as a wireframe mesh. NO solid surfaces, shading, textures, or photorealistic elements. Show the underlying geometric structure.
2. Color Palette: Use strictly Cyan (#00FFFF), Magenta (#FF00FF), and Electric Yellow/Amber (#FFFF00). No other colors.
3. Retro-Futuristic Style: Evoke classic CAD software from the 80s/90s, sharp and clean technical blueprint look.
4. Background: Pure black (#000000) only.
5. No Interface Elements: Do NOT include any CAD UI, text, coordinates, or frames. Just the object.
"""

REFERENCE_GUIDANCE = (
    "REFERENCE IMAGE GUIDANCE:\n"
    "The attached image is a loose hint for silhouette, proportions and scale only.\n"
    "Do NOT trace, copy or reproduce the reference image. Build a new wireframe mesh.\n"
    "The text specification below is the primary source of truth; when it conflicts "
    "with the reference, follow the text."
)

ORBIT_PROMPT = (
    "A smooth 360-degree cinematic rotation of this 3D wireframe mesh object. "
    "The camera orbits the object at a constant speed and distance. Smooth motion. "
    "Keep the wireframe colors and the pure black background unchanged. "
    "The output video must have no audio track: silent, no music, no sound effects."
)


def compose_prompt(mode: str, user_text: str = "", has_reference_image: bool = False) -> str:
    if mode == MODE_CREATE:
        create = f"Generate a stylized CAD wireframe rendering of: {user_text}. {AESTHETIC_RULESET}"
        if has_reference_image:
            return f"{REFERENCE_GUIDANCE}\n\n{create}"
        return create
    if mode == MODE_EDIT:
        return (
            f"Apply this modification to the wireframe schematic: {user_text}. "
            f"Maintain mesh aesthetic. {AESTHETIC_RULESET}"
        )
    if mode == MODE_ANIMATE:
        return ORBIT_PROMPT
    raise ValueError(f"Unknown generation mode: {mode!r}")
