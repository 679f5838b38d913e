from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TextIO, Tuple, Union

import numpy as np
import pandas as pd


class Signal(IntEnum):
    """Ground-truth turning-point label of a bar (also the discrete action set)."""

    NEUTRAL = 0
    FAST_VALLEY = 1
    SLOW_VALLEY = 2
    FAST_PEAK = 3
    SLOW_PEAK = 4

    @property
    def is_fast(self) -> bool:
        return self in (Signal.FAST_VALLEY, Signal.FAST_PEAK)

    @property
    def is_slow(self) -> bool:
        return self in (Signal.SLOW_VALLEY, Signal.SLOW_PEAK)

    @property
    def is_peak(self) -> bool:
        return self in (Signal.FAST_PEAK, Signal.SLOW_PEAK)

    @property
    def is_valley(self) -> bool:
        return self in (Signal.FAST_VALLEY, Signal.SLOW_VALLEY)


# Arity marker, never a valid label.
SIGNAL_COUNT = len(Signal)

# Flag columns of the wide layout, in precedence order.
FLAG_ORDER = (Signal.FAST_VALLEY, Signal.SLOW_VALLEY, Signal.FAST_PEAK, Signal.SLOW_PEAK)

LAYOUT_CODE = 6
LAYOUT_CODE_EMA = 8
LAYOUT_FLAGS = 9

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")


class LoadError(ValueError):
    """Raised when the rates file cannot be turned into a valid series."""


@dataclass(frozen=True)
class Bar:
    """One OHLC record plus its turning-point label."""

    time: str
    open: float
    high: float
    low: float
    close: float
    signal: Signal = Signal.NEUTRAL
    fast_ema: Optional[float] = None
    slow_ema: Optional[float] = None

    @property
    def has_ema(self) -> bool:
        return self.fast_ema is not None and self.slow_ema is not None

    def prices(self) -> Tuple[float, float, float, float]:
        return (self.open, self.high, self.low, self.close)

    def features(self, include_ema: bool = False) -> Tuple[float, ...]:
        """Per-bar slice of the observation vector.

        With ``include_ema`` the moving averages come first, then the prices.
        """

        if not include_ema:
            return self.prices()
        if not self.has_ema:
            raise LoadError(f"Barra {self.time!r} não possui colunas de EMA.")
        return (self.fast_ema, self.slow_ema) + self.prices()


@dataclass(frozen=True)
class RateSeries:
    """Immutable, ordered sequence of bars replayed by the trader.

    A series is loaded once and may be shared by any number of ``Trader``
    instances; it never changes after construction.
    """

    bars: Tuple[Bar, ...]
    source: Optional[str] = None
    _features: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.bars)

    def __getitem__(self, index: int) -> Bar:
        return self.bars[index]

    def __iter__(self) -> Iterator[Bar]:
        return iter(self.bars)

    @property
    def has_ema(self) -> bool:
        return bool(self.bars) and all(bar.has_ema for bar in self.bars)

    @property
    def signals(self) -> np.ndarray:
        return np.fromiter((int(bar.signal) for bar in self.bars), dtype=np.int64, count=len(self.bars))

    def feature_matrix(self, include_ema: bool = False) -> np.ndarray:
        """Return an ``(N, 4)`` (or ``(N, 6)`` with EMAs) float32 matrix, cached per layout."""

        cached = self._features.get(include_ema)
        if cached is None:
            width = 6 if include_ema else 4
            if not self.bars:
                cached = np.zeros((0, width), dtype=np.float32)
            else:
                cached = np.asarray([bar.features(include_ema) for bar in self.bars], dtype=np.float32)
            cached.setflags(write=False)
            self._features[include_ema] = cached
        return cached

    def to_frame(self) -> pd.DataFrame:
        """Tabular view used by reports and notebooks."""

        columns = ["time", "open", "high", "low", "close", "signal", "fast_ema", "slow_ema"]
        rows = [
            (bar.time, bar.open, bar.high, bar.low, bar.close, bar.signal.name, bar.fast_ema, bar.slow_ema)
            for bar in self.bars
        ]
        df = pd.DataFrame(rows, columns=columns)
        if not self.has_ema:
            df = df.drop(columns=["fast_ema", "slow_ema"])
        return df


def _parse_float(text: str, line: int, column: str) -> float:
    value = text.strip()
    if not _NUMBER_RE.match(value):
        raise LoadError(f"Linha {line}: valor numérico inválido para '{column}': {text!r}")
    return float(value)


def _parse_signal_code(text: str, line: int) -> Signal:
    value = text.strip()
    if not _INT_RE.match(value):
        raise LoadError(f"Linha {line}: código de sinal inválido: {text!r}")
    code = int(value)
    if not 0 <= code < SIGNAL_COUNT:
        raise LoadError(f"Linha {line}: código de sinal fora do intervalo 0-{SIGNAL_COUNT - 1}: {code}")
    return Signal(code)


def _parse_signal_flags(flags: Sequence[str], line: int) -> Signal:
    for flag, signal in zip(flags, FLAG_ORDER):
        value = flag.strip()
        if not value:
            raise LoadError(f"Linha {line}: flag de sinal vazia.")
        if value != "0":
            return signal
    return Signal.NEUTRAL


def parse_bar(fields: Sequence[str], line: int = 0) -> Bar:
    """Build a ``Bar`` from the raw fields of one data row.

    The field count selects the layout: 6 (single signal code), 8 (signal
    code plus fast/slow EMA) or 9 (four signal flag columns).
    """

    if len(fields) not in (LAYOUT_CODE, LAYOUT_CODE_EMA, LAYOUT_FLAGS):
        raise LoadError(
            f"Linha {line}: quantidade de campos inválida ({len(fields)}); "
            f"esperado {LAYOUT_CODE}, {LAYOUT_CODE_EMA} ou {LAYOUT_FLAGS}."
        )

    open_, high, low, close = (
        _parse_float(fields[i], line, name) for i, name in enumerate(("open", "high", "low", "close"), start=1)
    )

    fast_ema = slow_ema = None
    if len(fields) == LAYOUT_FLAGS:
        signal = _parse_signal_flags(fields[5:9], line)
    else:
        signal = _parse_signal_code(fields[5], line)
        if len(fields) == LAYOUT_CODE_EMA:
            fast_ema = _parse_float(fields[6], line, "fast_ema")
            slow_ema = _parse_float(fields[7], line, "slow_ema")

    return Bar(
        time=fields[0],
        open=open_,
        high=high,
        low=low,
        close=close,
        signal=signal,
        fast_ema=fast_ema,
        slow_ema=slow_ema,
    )


def _read_text(source: Union[str, Path, TextIO]) -> str:
    try:
        if isinstance(source, (str, Path)):
            return Path(source).read_text(encoding="utf-8")
        return source.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(f"Não foi possível ler o arquivo de cotações {source}: {exc}") from exc


def _read_rows(text: str) -> Tuple[List[int], pd.DataFrame]:
    """Split the data rows into raw string fields; the header line is skipped.

    Returns the physical (1-based) line number of every data row together with
    the frame, so that errors can point at the offending line.
    """

    numbered = [(number, line) for number, line in enumerate(text.splitlines()[1:], start=2) if line.strip()]
    if not numbered:
        return [], pd.DataFrame()

    # Every row must use the layout of the first one; pandas would pad short rows.
    expected = len(numbered[0][1].split(","))
    for number, line in numbered:
        count = len(line.split(","))
        if count != expected:
            raise LoadError(f"Linha {number}: quantidade de campos inválida ({count}); esperado {expected}.")

    try:
        # Rows keep their raw text so that number parsing stays locale-free.
        df = pd.read_csv(
            io.StringIO("\n".join(line for _, line in numbered)),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except pd.errors.ParserError as exc:
        raise LoadError(f"Arquivo de cotações malformado: {exc}") from exc
    return [number for number, _ in numbered], df


def load_rate_series(source: Union[str, Path, TextIO]) -> RateSeries:
    """Load the replayed bar series from a comma-separated rates file.

    Args:
        source: Path to the file or an open text handle.

    Returns:
        A ``RateSeries`` with the bars in file order.

    Raises:
        LoadError: If the file is unreadable or any row is malformed. No
            partial series is ever returned.
    """

    line_numbers, df = _read_rows(_read_text(source))

    bars: List[Bar] = []
    for line, row in zip(line_numbers, df.itertuples(index=False, name=None)):
        bars.append(parse_bar(list(row), line))

    source_name = str(source) if isinstance(source, (str, Path)) else getattr(source, "name", None)
    return RateSeries(bars=tuple(bars), source=source_name)
