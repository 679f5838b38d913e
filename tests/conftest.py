"""Shared test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from src.strategies.signal_trader_rl.data import Bar, RateSeries, Signal

WINDOW = 50


# ============================================================================
# Series Fixtures
# ============================================================================


def build_series(count: int, signals: Optional[dict] = None, with_ema: bool = False) -> RateSeries:
    """Series where bar ``i`` has open=i, high=i+0.5, low=i-0.5, close=i+0.25."""
    signals = signals or {}
    bars = []
    for i in range(count):
        bars.append(
            Bar(
                time=f"2024.01.01 {i:05d}",
                open=float(i),
                high=i + 0.5,
                low=i - 0.5,
                close=i + 0.25,
                signal=Signal(signals.get(i, Signal.NEUTRAL)),
                fast_ema=(i + 0.1) if with_ema else None,
                slow_ema=(i + 0.2) if with_ema else None,
            )
        )
    return RateSeries(bars=tuple(bars))


@pytest.fixture
def make_series() -> Callable[..., RateSeries]:
    return build_series


@pytest.fixture
def series() -> RateSeries:
    """60 bars with a handful of labelled turning points."""
    return build_series(
        60,
        {
            50: Signal.FAST_PEAK,
            51: Signal.SLOW_VALLEY,
            53: Signal.FAST_VALLEY,
            55: Signal.SLOW_PEAK,
        },
    )


# ============================================================================
# Rates File Fixtures
# ============================================================================


@pytest.fixture
def write_rates(tmp_path: Path) -> Callable[..., Path]:
    """Write a rates file (header + rows) and return its path."""

    def _write(rows: Sequence[str], header: str = "time,open,high,low,close,signal", name: str = "rates.DAT") -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def rates_file(write_rates) -> Path:
    """Code-layout file with 51 bars: exactly one step per episode."""
    rows = [f"2024.01.01 {i:02d}:00,{i}.5,{i + 1}.0,{i}.0,{i}.75,0" for i in range(50)]
    rows.append("2024.01.03 02:00,50.5,51.0,50.0,50.75,4")
    return write_rates(rows)
