from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .data import SIGNAL_COUNT, LoadError, RateSeries, Signal, load_rate_series

DEFAULT_WINDOW_SIZE = 50

# Returned for any (action, truth) pair the rules below do not cover.
FALLBACK_REWARD = 1


class StepOutOfRangeError(IndexError):
    """Raised when stepping past the end of the series or scoring before observing."""


class InvalidActionError(ValueError):
    """Raised when a discrete action is not a valid ``Signal`` code."""


def _build_payoff_table() -> Dict[Tuple[Signal, Signal], int]:
    table: Dict[Tuple[Signal, Signal], int] = {}
    directional = [s for s in Signal if s is not Signal.NEUTRAL]
    for action in directional:
        table[(action, Signal.NEUTRAL)] = -100
        for truth in directional:
            same_timing = action.is_fast == truth.is_fast
            same_direction = action.is_peak == truth.is_peak
            if same_timing and same_direction:
                table[(action, truth)] = 1
            elif same_direction:
                table[(action, truth)] = -1
            elif same_timing:
                table[(action, truth)] = -10
            else:
                table[(action, truth)] = -100
    for truth in directional:
        table[(Signal.NEUTRAL, truth)] = -10 if truth.is_fast else -100
    return table


PAYOFF_TABLE: Dict[Tuple[Signal, Signal], int] = _build_payoff_table()


def payoff(action: Signal, truth: Signal) -> int:
    """Score a predicted label against the true one."""

    return PAYOFF_TABLE.get((Signal(action), Signal(truth)), FALLBACK_REWARD)


def to_signal(action: Union[int, Signal]) -> Signal:
    """Validate a discrete action coming from a policy or the host."""

    if isinstance(action, bool):
        raise InvalidActionError(f"Ação inválida: {action!r}")
    try:
        code = int(action)
    except (TypeError, ValueError) as exc:
        raise InvalidActionError(f"Ação inválida: {action!r}") from exc
    if code != action:
        raise InvalidActionError(f"Ação não inteira: {action!r}")
    if not 0 <= code < SIGNAL_COUNT:
        raise InvalidActionError(f"Ação fora do intervalo 0-{SIGNAL_COUNT - 1}: {code}")
    return Signal(code)


@dataclass(frozen=True)
class RewardOutcome:
    """Tagged result of scoring one action: either ``value`` or ``error`` is set."""

    value: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Trader:
    """Replays a ``RateSeries`` and scores turning-point predictions.

    The cursor starts at ``window_size`` on every reset. Each ``observe()``
    returns the window of bars ending at the cursor (inclusive, oldest first)
    and then moves the cursor forward by one bar; the paired ``reward()``
    scores an action against the label of the bar the cursor just passed.

    The series is read-only and may be shared between traders; the cursor
    belongs to the instance.
    """

    def __init__(
        self,
        series: RateSeries,
        window_size: int = DEFAULT_WINDOW_SIZE,
        include_ema: bool = False,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"window_size deve ser positivo (recebido {window_size}).")
        if len(series) < window_size + 1:
            raise LoadError(
                "Quantidade de barras insuficiente para construir a janela de "
                f"observação ({len(series)} < {window_size + 1})."
            )
        if include_ema and not series.has_ema:
            raise LoadError("A série carregada não possui as colunas de EMA exigidas por include_ema.")

        self.series = series
        self.window_size = int(window_size)
        self.include_ema = bool(include_ema)
        self._features = series.feature_matrix(include_ema=self.include_ema)
        self._signals = series.signals
        self._cursor = self.window_size
        self._current_signal = Signal.NEUTRAL

        self.reset()

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        window_size: int = DEFAULT_WINDOW_SIZE,
        include_ema: bool = False,
    ) -> "Trader":
        return cls(load_rate_series(path), window_size=window_size, include_ema=include_ema)

    def reset(self) -> None:
        self._cursor = self.window_size
        self._current_signal = Signal.NEUTRAL

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current_step_index(self) -> int:
        return self._cursor - self.window_size

    @property
    def is_last_step(self) -> bool:
        # Another observe() would read past the final bar.
        return self._cursor >= len(self.series)

    @property
    def maximum_reward_count(self) -> int:
        return len(self.series) - self.window_size

    @property
    def features_per_bar(self) -> int:
        return int(self._features.shape[1])

    @property
    def observation_size(self) -> int:
        return self.window_size * self.features_per_bar

    @property
    def current_signal(self) -> Signal:
        """Latest non-neutral label seen inside an emitted observation window."""

        return self._current_signal

    def observe(self) -> np.ndarray:
        if self._cursor >= len(self.series):
            raise StepOutOfRangeError(
                f"observe() chamado após o fim da série (cursor={self._cursor}, barras={len(self.series)})."
            )

        start = self._cursor - self.window_size + 1
        window = self._features[start : self._cursor + 1]

        labels = self._signals[start : self._cursor + 1]
        active = labels[labels != Signal.NEUTRAL]
        if active.size:
            self._current_signal = Signal(int(active[-1]))

        self._cursor += 1
        return window.reshape(-1).copy()

    def _scored_index(self) -> int:
        if self._cursor <= self.window_size:
            raise StepOutOfRangeError("reward() chamado antes de observe() neste episódio.")
        return self._cursor - 1

    def reward(self, action: Union[int, Signal]) -> int:
        signal = to_signal(action)
        truth = self.series[self._scored_index()].signal
        return payoff(signal, truth)

    def score(self, action: Union[int, Signal]) -> RewardOutcome:
        try:
            return RewardOutcome(value=self.reward(action))
        except (StepOutOfRangeError, InvalidActionError) as exc:
            return RewardOutcome(error=exc)

    def target(self) -> Signal:
        """Label of the bar the next ``reward()`` call scores."""

        if self._cursor <= self.window_size:
            return self.series[self._cursor].signal
        return self.series[self._cursor - 1].signal
