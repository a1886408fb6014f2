"""Text rendering of the framebuffer for terminal hosts and the demo."""

from typing import Sequence


def display_to_text(display: Sequence[Sequence[int]], on: str = "#", off: str = ".") -> str:
    """Render a display grid (rows of 0/1 pixels) as lines of text.

    Args:
        display: Pixel grid indexed display[y][x]
        on: Character for lit pixels
        off: Character for dark pixels

    Returns:
        One line per display row, joined with newlines
    """
    return "\n".join("".join(on if pixel else off for pixel in row) for row in display)
