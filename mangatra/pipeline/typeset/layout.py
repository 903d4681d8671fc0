from __future__ import annotations

from typing import List

from mangatra import DEFAULT_PADDING
from mangatra.pipeline.model import Scale, TextBlock
from mangatra.pipeline.typeset.font import FontAsset, ScaledFont

HYPHEN = "-"

# (minimum word count, height divisor for x, height divisor for y), first match wins
_WORD_COUNT_RULES = (
    (16, 14.0, 16.0),
    (14, 12.0, 14.0),
    (12, 10.0, 12.0),
    (10, 8.0, 10.0),
)


def choose_scale(text: str, width: int, height: int) -> Scale:
    """Pick the font scale for a region from its size and the word count of ``text``.

    Width rules run first; word-count rules override them.
    """
    h = float(height)
    scale = Scale(h / 9.0, h / 12.0)
    if width < 55:
        scale = Scale(h / 8.0, h / 12.0)
    elif width < 100:
        scale = Scale(h / 10.0, h / 14.0)

    n = len(text.split())
    for min_words, div_x, div_y in _WORD_COUNT_RULES:
        if n >= min_words:
            return Scale(h / div_x, h / div_y)
    if n <= 2:
        scale = Scale(h / 7.0, h / 9.0)
    return scale


def _greedy_lines(words: List[str], font: ScaledFont, available_width: int) -> List[str]:
    space_width = font.text_width(" ")
    lines: List[str] = []
    current: List[str] = []
    current_width = 0
    for word in words:
        word_width = font.text_width(word)
        if not current:
            current, current_width = [word], word_width
        elif current_width + word_width + space_width <= available_width:
            current.append(word)
            current_width += space_width + word_width
        else:
            lines.append(" ".join(current))
            current, current_width = [word], word_width
    if current:
        lines.append(" ".join(current))
    return lines


def _hyphenate(word: str, font: ScaledFont, available_width: int) -> List[str]:
    chars = list(word)
    moved: List[str] = []
    # A line always keeps at least one character
    while len(chars) > 1 and font.text_width("".join(chars) + HYPHEN) > available_width:
        moved.insert(0, chars.pop())
    head = "".join(chars)
    if not moved:
        return [head]
    return [head + HYPHEN, "".join(moved)]


def _break_line(line: str, font: ScaledFont, available_width: int) -> List[str]:
    words = line.split(" ")
    if len(words) == 1:
        return _hyphenate(line, font, available_width)

    moved: List[str] = []
    while len(words) > 1 and font.text_width(" ".join(words)) > available_width:
        moved.insert(0, words.pop())
    head = " ".join(words)
    if len(words) == 1 and font.text_width(head) > available_width:
        out = _hyphenate(head, font, available_width)
    else:
        out = [head]
    if moved:
        out.append(" ".join(moved))
    return out


def wrap_text(text: str, font: ScaledFont, available_width: int) -> List[str]:
    """Word-wrap ``text`` to ``available_width`` pixels.

    The first pass fills lines greedily. The second pass splits lines that are
    still too wide: single words are hyphenated, multi-word lines shed
    trailing words. Split-off remainders follow their source line and are not
    wrapped again.
    """
    words = text.split()
    if not words:
        return []
    lines: List[str] = []
    for line in _greedy_lines(words, font, available_width):
        if font.text_width(line) > available_width:
            lines.extend(_break_line(line, font, available_width))
        else:
            lines.append(line)
    return lines


def layout_text(
    text: str,
    width: int,
    height: int,
    font: FontAsset,
    padding: int = DEFAULT_PADDING,
) -> TextBlock:
    scale = choose_scale(text, width, height)
    scaled = font.scaled(scale)
    available_width = max(0, width - 2 * padding)
    return TextBlock(lines=wrap_text(text, scaled, available_width), scale=scale)
