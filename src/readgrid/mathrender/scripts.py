"""Unicode super/subscript tables for collapsing simple scripts onto one row."""

from __future__ import annotations


SUBSCRIPTS: dict[str, str] = {
    "0": "₀", "1": "₁", "2": "₂", "3": "₃", "4": "₄",
    "5": "₅", "6": "₆", "7": "₇", "8": "₈", "9": "₉",
    "a": "ₐ", "e": "ₑ", "h": "ₕ", "i": "ᵢ", "j": "ⱼ",
    "k": "ₖ", "l": "ₗ", "m": "ₘ", "n": "ₙ", "o": "ₒ",
    "p": "ₚ", "r": "ᵣ", "s": "ₛ", "t": "ₜ", "u": "ᵤ",
    "v": "ᵥ", "x": "ₓ", "ə": "ₔ",
    "+": "₊", "-": "₋", "−": "₋", "=": "₌", "(": "₍", ")": "₎",
    ",": ",", " ": " ",
}

SUPERSCRIPTS: dict[str, str] = {
    "0": "⁰", "1": "¹", "2": "²", "3": "³", "4": "⁴",
    "5": "⁵", "6": "⁶", "7": "⁷", "8": "⁸", "9": "⁹",
    "a": "ᵃ", "b": "ᵇ", "c": "ᶜ", "d": "ᵈ", "e": "ᵉ",
    "f": "ᶠ", "g": "ᵍ", "h": "ʰ", "i": "ⁱ", "j": "ʲ",
    "k": "ᵏ", "l": "ˡ", "m": "ᵐ", "n": "ⁿ", "o": "ᵒ",
    "p": "ᵖ", "r": "ʳ", "s": "ˢ", "t": "ᵗ", "u": "ᵘ",
    "v": "ᵛ", "w": "ʷ", "x": "ˣ", "y": "ʸ", "z": "ᶻ",
    "A": "ᴬ", "B": "ᴮ", "D": "ᴰ", "E": "ᴱ", "G": "ᴳ",
    "H": "ᴴ", "I": "ᴵ", "J": "ᴶ", "K": "ᴷ", "L": "ᴸ",
    "M": "ᴹ", "N": "ᴺ", "O": "ᴼ", "P": "ᴾ", "R": "ᴿ",
    "T": "ᵀ", "U": "ᵁ", "V": "ⱽ", "W": "ᵂ",
    "+": "⁺", "-": "⁻", "−": "⁻", "=": "⁼", "(": "⁽", ")": "⁾",
    "θ": "ᶿ", "'": "′", "⊺": "ᵀ", "*": "·", " ": " ",
}

# Already superscript-sized; kept as-is inside a collapsed superscript.
INLINE_SUPERSCRIPT_SYMBOLS = frozenset("′″‴†‡°")


def to_subscript(text: str) -> str | None:
    """Return the Unicode subscript form of ``text`` or None if any char has none."""

    if not text:
        return None
    converted: list[str] = []
    for char in text:
        mapped = SUBSCRIPTS.get(char)
        if mapped is None:
            return None
        converted.append(mapped)
    return "".join(converted)


def to_superscript(text: str) -> str | None:
    """Return the Unicode superscript form of ``text`` or None if any char has none."""

    if not text:
        return None
    if any(char in "*/=" for char in text):
        text = "".join(text.split())
    else:
        text = " ".join(text.split())

    converted: list[str] = []
    for char in text:
        if char in INLINE_SUPERSCRIPT_SYMBOLS:
            converted.append(char)
            continue
        mapped = SUPERSCRIPTS.get(char)
        if mapped is None:
            return None
        converted.append(mapped)
    return "".join(converted)
