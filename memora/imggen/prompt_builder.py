"""Built-in sticker style prompt offered to clients."""

from __future__ import annotations

from typing import Iterable

STICKER_STYLE_SECTIONS: dict[str, str] = {
    "Visual Aesthetic": (
        "A vibrant, sticker-like illustration style. Apply bold outlines, smooth shading, and "
        "slightly exaggerated, cartoonish proportions. Maintain a warm, approachable, playful, "
        "yet stylish and polished edge."
    ),
    "Character Design": (
        "Simplify features but keep them expressive (big eyes, strong brows, soft smiles, dynamic "
        "poses). Detail hair textures, accessories, and clothing in a stylized manner. Capture "
        "characters in lively, candid moments for personality."
    ),
    "Color Palette": (
        "Use predominantly rich, warm tones (earthy browns, sunset oranges, muted blues and "
        "greens). Apply soft but noticeable gradient shading to give a 'puffy sticker' 3D effect."
    ),
    "Fashion Focus": (
        "Style outfits as trendy and individualized (streetwear, Y2K, casual chic). Emphasize and "
        "detail accessories like purses, jewelry, and sneakers. Recreate branding and patterns "
        "playfully and stylistically."
    ),
    "Backgrounds": (
        "Render backgrounds as lightly detailed environments that complement the character and "
        "match the warm, nostalgic tone, but keep them muted enough to maintain focus on the "
        "subject. Apply a secondary 2-3px off-white outline outside the main subject's black "
        "stroke for a die-cut sticker feel."
    ),
    "Overall Vibe": (
        "Blend classic animation style with modern fashion-influencer aesthetics. Aim for a style "
        "that is nostalgic yet modern, highly expressive, making the everyday look iconic."
    ),
}


class StickerPromptBuilder:
    """Assembles the Memora sticker instruction sent by the web client."""

    def __init__(self, sections: dict[str, str] | None = None) -> None:
        self._sections = dict(sections or STICKER_STYLE_SECTIONS)

    def build(self, *, size: str = "1024x1024", extra_instructions: Iterable[str] | None = None) -> str:
        """Return the full style prompt for a square sticker of ``size``."""

        intro = (
            "Render the provided image subject and background composition in the Memora Style, "
            "preserving the original content as accurately as possible while applying the "
            "stylization. Ensure the main subject is fully visible and centered within the square "
            f"output. Generate a {size} sticker."
        )
        details = "\n\n".join(f"{title}: {body}" for title, body in self._sections.items())
        extras = " ".join(extra_instructions or [])
        return "\n\n".join(
            part for part in [intro, "Memora Style Details:", details, extras] if part
        ).strip()
