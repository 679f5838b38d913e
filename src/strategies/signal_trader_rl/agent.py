from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from .trader import Trader

logger = logging.getLogger(__name__)


@dataclass
class StepRecord:
    """One scored decision, kept for the end-of-episode reports."""

    step: int
    action: int
    truth: int
    reward: int


@dataclass
class EpisodeSummary:
    """Summary of a finished episode."""

    epoch: int
    steps: int
    reward: float
    maximum_reward: int
    accuracy: float
    average_accuracy: float
    failed_actions: int = 0


class SignalTraderAgent:
    """Bridge between a training host and the ``Trader`` state machine.

    The host calls ``on_episode_begin`` once per episode, then alternates
    ``collect_observations`` and ``on_action_received`` until the agent reports
    the episode as done. Failures while scoring an action are logged and the
    step is treated as reward-free so that a bad action never stops training.
    """

    def __init__(self, trader: Trader) -> None:
        self.trader = trader
        self.cumulative_reward = 0.0
        self.epoch = 0
        self.accuracy_sum = 0.0
        self.episode_done = False
        self.failed_actions = 0
        self.records: List[StepRecord] = []
        self.summaries: List[EpisodeSummary] = []

    def on_episode_begin(self) -> None:
        logger.debug("Episódio iniciado.")
        self.trader.reset()
        self.cumulative_reward = 0.0
        self.failed_actions = 0
        self.episode_done = False
        self.records = []

    def collect_observations(self, sensor: Optional[List[float]] = None) -> List[float]:
        observation = self.trader.observe().tolist()
        if sensor is None:
            return observation
        sensor.extend(observation)
        return sensor

    def add_reward(self, value: float) -> None:
        self.cumulative_reward += value

    def on_action_received(self, action: int) -> None:
        outcome = self.trader.score(action)
        if outcome.ok:
            self.add_reward(outcome.value)
            self.records.append(
                StepRecord(
                    step=self.trader.current_step_index,
                    action=int(action),
                    truth=int(self.trader.target()),
                    reward=outcome.value,
                )
            )
        else:
            self.failed_actions += 1
            logger.error("Falha ao processar a ação recebida: %s", outcome.error)

        if self.trader.is_last_step:
            self.on_end_episode()

    def heuristic(self) -> int:
        action = self.trader.target()
        logger.debug("Heurística sugeriu %s no passo %d", action.name, self.trader.current_step_index)
        return int(action)

    def on_end_episode(self) -> EpisodeSummary:
        self.epoch += 1

        maximum_reward = self.trader.maximum_reward_count
        accuracy = self.cumulative_reward / maximum_reward * 100.0
        self.accuracy_sum += accuracy

        summary = EpisodeSummary(
            epoch=self.epoch,
            steps=self.trader.current_step_index,
            reward=self.cumulative_reward,
            maximum_reward=maximum_reward,
            accuracy=accuracy,
            average_accuracy=self.accuracy_sum / self.epoch,
            failed_actions=self.failed_actions,
        )
        self.summaries.append(summary)

        logger.info(
            "Episódio %d finalizado | recompensa=%.2f/%d | acurácia=%.1f%% | acurácia média=%.1f%%",
            summary.epoch,
            summary.reward,
            summary.maximum_reward,
            summary.accuracy,
            summary.average_accuracy,
        )
        if self.failed_actions:
            logger.warning("%d ações falharam durante o episódio %d.", self.failed_actions, summary.epoch)

        self.episode_done = True
        return summary


def run_host_episode(
    agent: SignalTraderAgent,
    decide: Optional[Callable[[np.ndarray], int]] = None,
) -> EpisodeSummary:
    """Drive one episode in the order a training host would.

    Args:
        agent: The agent bridge wrapping a ``Trader``.
        decide: Optional function mapping the observation to a discrete action.
            Defaults to the agent's scripted heuristic.

    Returns:
        The ``EpisodeSummary`` produced when the episode ended.
    """

    agent.on_episode_begin()
    while not agent.episode_done:
        observation = np.asarray(agent.collect_observations(), dtype=np.float32)
        action = agent.heuristic() if decide is None else int(decide(observation))
        agent.on_action_received(action)
    return agent.summaries[-1]
