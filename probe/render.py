"""Terminal rendering for hueping.

Contains:
- render_rtt: Colour a round-trip time by latency
- label: Grey bold label text
- report_line: Print one line to the console
"""

import colorsys

from rich.console import Console
from rich.style import Style
from rich.text import Text

# 0 ms maps to this hue (degrees); every millisecond moves one degree towards red
MAX_HUE_DEG = 100.0
LABEL_STYLE = Style(color="color(240)", bold=True)

console = Console(highlight=False)


def rtt_color(rtt_us: int) -> tuple[int, int, int]:
    """Return the RGB colour for a round-trip time in microseconds."""
    hue = max(0.0, MAX_HUE_DEG - rtt_us / 1000)
    red, green, blue = colorsys.hls_to_rgb(hue / 360, 0.5, 1.0)
    return round(red * 255), round(green * 255), round(blue * 255)


def format_rtt(rtt_us: int) -> str:
    """Format a round-trip time as milliseconds.

    Sub-millisecond values keep up to five characters ("0.123"), everything
    else is whole milliseconds.
    """
    if rtt_us < 1000:
        return f"{str(rtt_us / 1000):.5}"
    return str(rtt_us // 1000)


def render_rtt(rtt_us: int) -> Text:
    """Return the round-trip time as coloured text."""
    red, green, blue = rtt_color(rtt_us)
    return Text(format_rtt(rtt_us), style=Style(color=f"rgb({red},{green},{blue})"))


def label(text: str) -> Text:
    return Text(text, style=LABEL_STYLE)


def report_line(text: Text | str, out: Console | None = None) -> None:
    """Print one report line."""
    (out or console).print(text)
