"""Turning-point signal environment for reinforcement learning experiments.

This package provides:
- A loader for rate files (OHLC bars labelled with fast/slow peaks and valleys).
- ``Trader``: a deterministic state machine that replays the bars, emits a
  sliding window of prices as observation and scores the predicted label with
  a fixed payoff table.
- ``SignalTraderAgent``: the bridge used by a training host (episode begin,
  observations, actions, heuristic).

Evaluate a scripted policy:
  poetry run python -m src.strategies.signal_trader_rl.evaluate \
    --data data/rates_rates.DAT --policy heuristic --episodes 3
"""
