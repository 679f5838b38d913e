import pytest

from src.utils.metrics import (
    calculate_episode_metrics,
    confusion_matrix,
    generate_summary_report,
    hit_rate,
    reward_breakdown,
)

RECORDS = [
    {"step": 1, "action": 3, "truth": 3, "reward": 1},
    {"step": 2, "action": 0, "truth": 2, "reward": -100},
    {"step": 3, "action": 0, "truth": 0, "reward": 1},
    {"step": 4, "action": 4, "truth": 3, "reward": -1},
]


def test_episode_metrics():
    episodes = [
        {"epoch": 1, "reward": 10.0, "maximum_reward": 10, "accuracy": 100.0},
        {"epoch": 2, "reward": -5.0, "maximum_reward": 10, "accuracy": -50.0},
    ]

    metrics = calculate_episode_metrics(episodes)

    assert metrics["episodes"] == 2
    assert metrics["total_reward"] == 5.0
    assert metrics["avg_accuracy"] == pytest.approx(25.0)
    assert metrics["best_accuracy"] == 100.0
    assert metrics["worst_accuracy"] == -50.0
    assert metrics["best_episode"] == 1


def test_episode_metrics_empty():
    assert calculate_episode_metrics([])["episodes"] == 0


def test_confusion_matrix():
    matrix = confusion_matrix(RECORDS)

    assert matrix.shape == (5, 5)
    assert matrix.loc["FAST_PEAK", "FAST_PEAK"] == 1
    assert matrix.loc["SLOW_VALLEY", "NEUTRAL"] == 1
    assert matrix.loc["FAST_PEAK", "SLOW_PEAK"] == 1
    assert int(matrix.values.sum()) == len(RECORDS)


def test_confusion_matrix_empty():
    assert int(confusion_matrix([]).values.sum()) == 0


def test_hit_rate_and_breakdown():
    assert hit_rate(RECORDS) == 0.5
    assert hit_rate([]) == 0.0
    assert reward_breakdown(RECORDS) == {-100: 1, -1: 1, 1: 2}


def test_summary_report_mentions_matrix():
    report = generate_summary_report(calculate_episode_metrics([{"reward": 1, "accuracy": 10.0}]), confusion_matrix(RECORDS))

    assert "Acurácia Média: 10.0%" in report
    assert "SLOW_VALLEY" in report
