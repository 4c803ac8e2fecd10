"""Runtime configuration for reading sessions and command-line tools."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from readgrid.layout.config import DEFAULT_MARGIN, DEFAULT_TAB_WIDTH, StyleConfig, WrapMode
from readgrid.session.history import DEFAULT_HISTORY_SIZE
from readgrid.session.search import DEFAULT_FUZZY_THRESHOLD
from readgrid.session.timers import DEFAULT_AUTOSCROLL_INTERVAL_MS, DEFAULT_WHEEL_WINDOW_MS


DEFAULT_DB_PATH = ".readgrid-annotations.db"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_int(*, name: str, raw_value: str, minimum: int) -> int:
    try:
        value = int(raw_value)
    except ValueError:
        raise ValueError(f"{name} must be an integer") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_bool(*, name: str, raw_value: str) -> bool:
    lowered = raw_value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: 1, 0, true, false")


def _parse_threshold(*, name: str, raw_value: str) -> float:
    try:
        value = float(raw_value)
    except ValueError:
        raise ValueError(f"{name} must be a number") from None
    if not 0 < value <= 1:
        raise ValueError(f"{name} must be in (0, 1]")
    return value


@dataclass(frozen=True, slots=True)
class ReaderSettings:
    """Validated reader settings; layout-affecting values become a :class:`StyleConfig`."""

    margin: int = DEFAULT_MARGIN
    tab_width: int = DEFAULT_TAB_WIDTH
    wrap_mode: WrapMode = WrapMode.WORD
    unicode_math: bool = True
    wheel_window_ms: int = DEFAULT_WHEEL_WINDOW_MS
    autoscroll_interval_ms: int = DEFAULT_AUTOSCROLL_INTERVAL_MS
    history_size: int = DEFAULT_HISTORY_SIZE
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    db_path: Path = Path(DEFAULT_DB_PATH)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ReaderSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        raw = {
            "READGRID_MARGIN": source.get("READGRID_MARGIN", str(DEFAULT_MARGIN)).strip(),
            "READGRID_TAB_WIDTH": source.get("READGRID_TAB_WIDTH", str(DEFAULT_TAB_WIDTH)).strip(),
            "READGRID_WRAP_MODE": source.get("READGRID_WRAP_MODE", WrapMode.WORD.value).strip(),
            "READGRID_UNICODE_MATH": source.get("READGRID_UNICODE_MATH", "true").strip(),
            "READGRID_WHEEL_WINDOW_MS": source.get("READGRID_WHEEL_WINDOW_MS", str(DEFAULT_WHEEL_WINDOW_MS)).strip(),
            "READGRID_AUTOSCROLL_INTERVAL_MS": source.get(
                "READGRID_AUTOSCROLL_INTERVAL_MS", str(DEFAULT_AUTOSCROLL_INTERVAL_MS)
            ).strip(),
            "READGRID_HISTORY_SIZE": source.get("READGRID_HISTORY_SIZE", str(DEFAULT_HISTORY_SIZE)).strip(),
            "READGRID_FUZZY_THRESHOLD": source.get("READGRID_FUZZY_THRESHOLD", str(DEFAULT_FUZZY_THRESHOLD)).strip(),
            "READGRID_DB_PATH": source.get("READGRID_DB_PATH", DEFAULT_DB_PATH).strip(),
        }
        for name, value in raw.items():
            if not value:
                raise ValueError(f"{name} cannot be empty")

        try:
            wrap_mode = WrapMode(raw["READGRID_WRAP_MODE"].lower())
        except ValueError:
            raise ValueError("READGRID_WRAP_MODE must be 'word' or 'char'") from None

        return cls(
            margin=_parse_int(name="READGRID_MARGIN", raw_value=raw["READGRID_MARGIN"], minimum=0),
            tab_width=_parse_int(name="READGRID_TAB_WIDTH", raw_value=raw["READGRID_TAB_WIDTH"], minimum=1),
            wrap_mode=wrap_mode,
            unicode_math=_parse_bool(name="READGRID_UNICODE_MATH", raw_value=raw["READGRID_UNICODE_MATH"]),
            wheel_window_ms=_parse_int(
                name="READGRID_WHEEL_WINDOW_MS",
                raw_value=raw["READGRID_WHEEL_WINDOW_MS"],
                minimum=1,
            ),
            autoscroll_interval_ms=_parse_int(
                name="READGRID_AUTOSCROLL_INTERVAL_MS",
                raw_value=raw["READGRID_AUTOSCROLL_INTERVAL_MS"],
                minimum=1,
            ),
            history_size=_parse_int(name="READGRID_HISTORY_SIZE", raw_value=raw["READGRID_HISTORY_SIZE"], minimum=1),
            fuzzy_threshold=_parse_threshold(
                name="READGRID_FUZZY_THRESHOLD",
                raw_value=raw["READGRID_FUZZY_THRESHOLD"],
            ),
            db_path=Path(raw["READGRID_DB_PATH"]),
        )

    def style(self) -> StyleConfig:
        return StyleConfig(
            tab_width=self.tab_width,
            wrap_mode=self.wrap_mode,
            margin=self.margin,
            unicode_math=self.unicode_math,
        )
