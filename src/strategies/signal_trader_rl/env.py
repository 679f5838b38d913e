from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from ...utils.metrics import hit_rate, reward_breakdown
from .data import SIGNAL_COUNT, RateSeries
from .trader import DEFAULT_WINDOW_SIZE, Trader


@dataclass
class StepResult:
    obs: np.ndarray
    reward: float
    done: bool
    info: Dict[str, Any]


class SignalTradingEnv:
    """Step-style RL environment over the signal ``Trader``.

    Observation (float32 vector):
      - open, high, low, close of the last ``window_size`` bars, oldest first
        (fast/slow EMA prepended per bar when ``include_ema`` is set)

    Actions (discrete, same codes as ``Signal``):
      0 = Neutral
      1 = Fast valley
      2 = Slow valley
      3 = Fast peak
      4 = Slow peak

    Reward = payoff-table score of the action against the label of the newest
    bar in the observation that preceded it.
    """

    def __init__(
        self,
        series: RateSeries,
        window_size: int = DEFAULT_WINDOW_SIZE,
        include_ema: bool = False,
    ) -> None:
        self.trader = Trader(series, window_size=window_size, include_ema=include_ema)
        self._obs: Optional[np.ndarray] = None
        self._done = True

    @property
    def observation_size(self) -> int:
        return self.trader.observation_size

    @property
    def action_size(self) -> int:
        return SIGNAL_COUNT

    def reset(self) -> np.ndarray:
        self.trader.reset()
        self._obs = self.trader.observe()
        self._done = False
        return self._obs

    def step(self, action: int) -> StepResult:
        if self._done:
            raise RuntimeError("A chamada de step() ocorreu após o episódio terminar.")

        target = self.trader.target()
        reward = float(self.trader.reward(action))
        info: Dict[str, Any] = {
            "step": self.trader.current_step_index,
            "target": int(target),
            "signal": int(self.trader.current_signal),
        }

        done = self.trader.is_last_step
        if not done:
            self._obs = self.trader.observe()
        self._done = done
        return StepResult(self._obs, reward, done, info)

    def run_episode(
        self, policy_fn: Callable[[np.ndarray], np.ndarray], max_steps: Optional[int] = None
    ) -> Dict[str, Any]:
        """Play one episode with argmax over the policy logits and summarise it."""

        records: List[Dict[str, Any]] = []
        obs = self.reset()
        done = False
        while not done and (max_steps is None or len(records) < max_steps):
            action = int(np.argmax(policy_fn(obs)))
            res = self.step(action)
            records.append({"action": action, "truth": res.info["target"], "reward": res.reward})
            obs, done = res.obs, res.done
        return {
            "reward": float(sum(r["reward"] for r in records)),
            "steps": len(records),
            "hit_rate": hit_rate(records),
            "reward_breakdown": reward_breakdown(records),
        }
