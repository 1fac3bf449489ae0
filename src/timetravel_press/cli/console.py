"""Rich console singleton and shared markup for CLI output."""

import sys

from rich.console import Console
from rich.theme import Theme

PRESS_THEME = Theme({
    "press.ok": "green",
    "press.fail": "red",
    "press.notice": "yellow",
    "press.stage": "bold",
    "press.percent": "cyan",
    "press.price": "green",
    "press.muted": "dim",
})

# Windows cp1252 consoles cannot draw Unicode box characters
console = Console(theme=PRESS_THEME, safe_box=sys.platform == "win32")


def format_yen(amount: int) -> str:
    """Format a JPY amount, e.g. 1500 -> ¥1,500."""
    return f"¥{amount:,}"


def status_tag(ok: bool) -> str:
    """Markup for the [OK] / [FAIL] prefix on event lines."""
    if ok:
        return "[press.ok]\\[OK][/press.ok]"
    return "[press.fail]\\[FAIL][/press.fail]"
