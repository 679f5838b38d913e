from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from .data import SIGNAL_COUNT, Signal

POLICY_NAMES = ("heuristic", "neutral", "random", "swing")


class ConstantPolicy:
    """Always prefers the same label; ``neutral`` is the do-nothing baseline."""

    def __init__(self, signal: Signal = Signal.NEUTRAL) -> None:
        self.signal = Signal(signal)

    def __call__(self, obs: np.ndarray) -> np.ndarray:
        logits = np.zeros(SIGNAL_COUNT, dtype=np.float32)
        logits[int(self.signal)] = 1.0
        return logits


class RandomPolicy:
    """Uniform random logits, useful as a lower bound for accuracy reports."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.rng = np.random.default_rng(seed)

    def __call__(self, obs: np.ndarray) -> np.ndarray:
        return self.rng.random(SIGNAL_COUNT).astype(np.float32)


def swing_signal_from_window(closes: np.ndarray, fast_bars: int = 5) -> Signal:
    """Label the newest close using only prices.

    Heuristic (customisable):
      - newest close is the extreme of the whole window -> slow peak/valley
      - newest close is the extreme of the last ``fast_bars`` closes -> fast peak/valley
      - otherwise neutral
    """
    if len(closes) < 2:
        return Signal.NEUTRAL
    last = closes[-1]
    recent = closes[-fast_bars:]
    if last >= closes.max() and last > closes[0]:
        return Signal.SLOW_PEAK
    if last <= closes.min() and last < closes[0]:
        return Signal.SLOW_VALLEY
    if len(recent) > 1 and last >= recent.max() and last > recent[0]:
        return Signal.FAST_PEAK
    if len(recent) > 1 and last <= recent.min() and last < recent[0]:
        return Signal.FAST_VALLEY
    return Signal.NEUTRAL


class SwingPolicy:
    """Price-only baseline built on ``swing_signal_from_window``."""

    def __init__(self, features_per_bar: int = 4, fast_bars: int = 5) -> None:
        self.features_per_bar = int(features_per_bar)
        self.fast_bars = int(fast_bars)

    def __call__(self, obs: np.ndarray) -> np.ndarray:
        # Close is the last feature of every bar slice.
        closes = np.asarray(obs, dtype=np.float32).reshape(-1, self.features_per_bar)[:, -1]
        logits = np.zeros(SIGNAL_COUNT, dtype=np.float32)
        logits[int(swing_signal_from_window(closes, self.fast_bars))] = 1.0
        return logits


def build_policy(
    name: str, seed: Optional[int] = None, features_per_bar: int = 4
) -> Optional[Callable[[np.ndarray], np.ndarray]]:
    """Return the logits function for ``name``.

    ``heuristic`` returns ``None``: the scripted heuristic needs the ground
    truth, so callers fall back to the agent's ``heuristic()``.
    """

    key = name.strip().lower()
    if key == "heuristic":
        return None
    if key == "neutral":
        return ConstantPolicy(Signal.NEUTRAL)
    if key == "random":
        return RandomPolicy(seed)
    if key == "swing":
        return SwingPolicy(features_per_bar=features_per_bar)
    raise ValueError(f"Política desconhecida: {name!r} (opções: {', '.join(POLICY_NAMES)})")


def as_decider(policy: Optional[Callable[[np.ndarray], np.ndarray]]) -> Optional[Callable[[np.ndarray], int]]:
    """Turn a logits policy into a function returning the argmax action."""

    if policy is None:
        return None

    def decide(obs: np.ndarray) -> int:
        return int(np.argmax(policy(obs)))

    return decide
