"""
Plain-text rendering for CLI run summaries and instance listings.

Renderers return uncolored text; colorize() adds ANSI styling afterwards
when the terminal supports it.
"""

import os
import sys
from typing import Any, Optional, Sequence, Tuple


def supports_color() -> bool:
    """Whether stdout should get ANSI colors (honors NO_COLOR / FORCE_COLOR)."""
    if os.environ.get('NO_COLOR') is not None:
        return False
    if os.environ.get('FORCE_COLOR') is not None:
        return True
    return bool(getattr(sys.stdout, 'isatty', lambda: False)())


_RULE = '─'
_BANNER = '═'
_BAR = '│'
_MARKER = '▸'

# (left, join, right) per horizontal border row
_BORDERS = {
    'top': ('┌', '┬', '┐'),
    'mid': ('├', '┼', '┤'),
    'bottom': ('└', '┴', '┘'),
}


def title(text: str, width: int = 60) -> str:
    """Banner line centered on text, e.g. ``═══ m5.large ═══``."""
    fill = max(width - len(text) - 2, 4)
    return f"{_BANNER * (fill // 2)} {text} {_BANNER * (fill - fill // 2)}"


def kv_block(items: Sequence[Tuple[str, str]], indent: int = 2) -> str:
    """Key/value lines with dot leaders so the values line up."""
    if not items:
        return ""
    key_width = max(len(k) for k, _ in items)
    return "\n".join(
        f"{' ' * indent}{key} {'·' * (key_width - len(key) + 2)} {value}"
        for key, value in items
    )


def _pad(value: Any, width: int, align: str) -> str:
    text = str(value)
    if align == 'r':
        return f" {text.rjust(width)} "
    return f" {text.ljust(width)} "


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    aligns: Optional[Sequence[str]] = None,
) -> str:
    """
    Bordered table.

    Args:
        headers: Column headers
        rows: Row values; short rows are padded with blanks
        aligns: 'l' or 'r' per column (default all 'l')
    """
    if not headers:
        return ""
    aligns = list(aligns) if aligns is not None else ['l'] * len(headers)
    grid = [[str(c) for c in row[:len(headers)]] for row in rows]
    grid = [row + [''] * (len(headers) - len(row)) for row in grid]

    widths = [
        max([len(h)] + [len(row[i]) for row in grid])
        for i, h in enumerate(headers)
    ]

    def border(kind: str) -> str:
        left, join, right = _BORDERS[kind]
        return left + join.join(_RULE * (w + 2) for w in widths) + right

    def line(cells: Sequence[str]) -> str:
        return _BAR + _BAR.join(_pad(c, w, a) for c, w, a in zip(cells, widths, aligns)) + _BAR

    out = [border('top'), line(headers), border('mid')]
    out.extend(line(row) for row in grid)
    out.append(border('bottom'))
    return "\n".join(out)


def badge(label: str, value: str, indent: int = 2) -> str:
    """Highlighted headline figure, e.g. ``▸ Energy: 0.0025 kWh``."""
    return f"{' ' * indent}{_MARKER} {label}: {value}"


_RESET = '\033[0m'
_BOLD_CYAN = '\033[1m\033[36m'
_DIM = '\033[2m'
_YELLOW = '\033[33m'


def colorize(text: str) -> str:
    """Bold banners, dim table borders and yellow badge markers."""
    return '\n'.join(_colorize_line(line) for line in text.split('\n'))


def _colorize_line(line: str) -> str:
    stripped = line.lstrip()
    if stripped.startswith(_BANNER):
        return f"{_BOLD_CYAN}{line}{_RESET}"
    if stripped[:1] in {left for left, _, _ in _BORDERS.values()}:
        return f"{_DIM}{line}{_RESET}"
    if _BAR in line:
        return f"{_DIM}{_BAR}{_RESET}".join(line.split(_BAR))
    if _MARKER in line:
        return line.replace(_MARKER, f"{_YELLOW}{_MARKER}{_RESET}")
    return line
