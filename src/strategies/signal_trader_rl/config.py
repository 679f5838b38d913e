from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .trader import DEFAULT_WINDOW_SIZE


@dataclass
class SignalTraderConfig:
    """Config for evaluating policies on the signal-trading environment."""

    data_path: str = "data/rates_rates.DAT"
    window_size: int = DEFAULT_WINDOW_SIZE
    include_ema: bool = False

    # Evaluation
    episodes: int = 1
    policy: str = "heuristic"  # heuristic | neutral | random | swing
    seed: Optional[int] = None

    # Reports
    reports_dir: str = "reports"
    plot: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_config(data: Dict[str, Any]) -> SignalTraderConfig:
    known = {f.name for f in fields(SignalTraderConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Chaves de configuração desconhecidas: {', '.join(unknown)}")
    cfg = SignalTraderConfig(**data)
    try:
        cfg.window_size = int(cfg.window_size)
        cfg.episodes = int(cfg.episodes)
        cfg.seed = int(cfg.seed) if cfg.seed is not None else None
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Configuração inválida: {exc}") from exc
    cfg.include_ema = bool(cfg.include_ema)
    cfg.plot = bool(cfg.plot)
    return cfg


def active_config_path(name: str, reports_dir: str = "reports") -> Path:
    return Path(reports_dir) / "active" / f"{name}.json"


def load_active_config(name: str, reports_dir: str = "reports") -> Optional[SignalTraderConfig]:
    path = active_config_path(name, reports_dir)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Configuração inválida em {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuração inválida em {path}: esperado um objeto JSON.")
    return _parse_config(data)


def save_active_config(cfg: SignalTraderConfig, name: str, reports_dir: Optional[str] = None) -> Path:
    path = active_config_path(name, reports_dir or cfg.reports_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    return path
