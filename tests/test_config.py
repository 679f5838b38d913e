import json

import pytest

from src.strategies.signal_trader_rl.config import (
    SignalTraderConfig,
    active_config_path,
    load_active_config,
    save_active_config,
)


def test_defaults():
    cfg = SignalTraderConfig()

    assert cfg.window_size == 50
    assert cfg.policy == "heuristic"
    assert cfg.include_ema is False


def test_save_and_load_active_config(tmp_path):
    cfg = SignalTraderConfig(data_path="rates.DAT", episodes=3, policy="swing", seed=11)

    path = save_active_config(cfg, "eurusd", reports_dir=str(tmp_path))

    assert path == active_config_path("eurusd", str(tmp_path))
    assert load_active_config("eurusd", reports_dir=str(tmp_path)) == cfg


def test_missing_active_config_returns_none(tmp_path):
    assert load_active_config("nope", reports_dir=str(tmp_path)) is None


def test_unknown_keys_are_rejected(tmp_path):
    path = active_config_path("bad", str(tmp_path))
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"window": 10}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_active_config("bad", reports_dir=str(tmp_path))


def test_malformed_json_is_rejected(tmp_path):
    path = active_config_path("broken", str(tmp_path))
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        load_active_config("broken", reports_dir=str(tmp_path))


@pytest.mark.parametrize("payload", [{"window_size": None}, {"episodes": None}, {"seed": "abc"}])
def test_non_integer_fields_are_rejected(tmp_path, payload):
    path = active_config_path("nulls", str(tmp_path))
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="Configuração inválida"):
        load_active_config("nulls", reports_dir=str(tmp_path))
