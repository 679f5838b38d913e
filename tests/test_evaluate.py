import json
import logging

from src.strategies.signal_trader_rl.config import load_active_config
from src.strategies.signal_trader_rl.evaluate import main


def test_heuristic_run_writes_report(rates_file, tmp_path):
    reports = tmp_path / "reports"

    code = main(["--data", str(rates_file), "--episodes", "2", "--reports-dir", str(reports), "--save-config", "demo"])

    assert code == 0
    [report] = list(reports.glob("signal_trader_heuristic_*.json"))
    data = json.loads(report.read_text(encoding="utf-8"))
    assert data["metrics"]["episodes"] == 2
    assert data["metrics"]["avg_accuracy"] == 100.0
    assert data["last_episode"]["hit_rate"] == 1.0

    cfg = load_active_config("demo", reports_dir=str(reports))
    assert cfg.episodes == 2
    assert cfg.data_path == str(rates_file)


def test_neutral_run_with_plot(rates_file, tmp_path):
    reports = tmp_path / "reports"

    code = main(["--data", str(rates_file), "--policy", "neutral", "--reports-dir", str(reports), "--plot"])

    assert code == 0
    [report] = list(reports.glob("signal_trader_neutral_*.json"))
    assert report.with_suffix(".png").exists()
    data = json.loads(report.read_text(encoding="utf-8"))
    # The only scored bar is a slow peak.
    assert data["episodes"][0]["reward"] == -100


def test_load_error_aborts(write_rates, tmp_path, caplog):
    path = write_rates(["t0,1.0,2.0,0.5,bad,0"])

    with caplog.at_level(logging.ERROR):
        code = main(["--data", str(path), "--reports-dir", str(tmp_path)])

    assert code == 1
    assert not list(tmp_path.glob("*.json"))


def test_short_series_aborts(write_rates, tmp_path):
    path = write_rates(["t0,1.0,2.0,0.5,1.5,0", "t1,1.0,2.0,0.5,1.5,0"])

    assert main(["--data", str(path), "--reports-dir", str(tmp_path)]) == 1


def test_config_overrides(rates_file, tmp_path):
    reports = tmp_path / "reports"
    main(["--data", str(rates_file), "--policy", "random", "--seed", "3", "--reports-dir", str(reports), "--save-config", "rnd"])

    code = main(["--config", "rnd", "--policy", "swing", "--reports-dir", str(reports)])

    assert code == 0
    assert list(reports.glob("signal_trader_swing_*.json"))


def test_null_field_in_active_config_exits_with_config_error(rates_file, tmp_path):
    reports = tmp_path / "reports"
    active = reports / "active"
    active.mkdir(parents=True)
    (active / "nulls.json").write_text(json.dumps({"window_size": None}), encoding="utf-8")

    code = main(["--data", str(rates_file), "--config", "nulls", "--reports-dir", str(reports)])

    assert code == 2
    assert not list(reports.glob("*.json"))


def test_report_is_written_without_plot(rates_file, tmp_path):
    reports = tmp_path / "reports"

    assert main(["--data", str(rates_file), "--reports-dir", str(reports)]) == 0

    assert len(list(reports.glob("signal_trader_heuristic_*.json"))) == 1
    assert not list(reports.glob("*.png"))
