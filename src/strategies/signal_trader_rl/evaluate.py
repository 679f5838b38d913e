from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path
from typing import List, Optional, Sequence

from ...utils.metrics import (
    calculate_episode_metrics,
    confusion_matrix,
    generate_summary_report,
    hit_rate,
    reward_breakdown,
)
from .agent import EpisodeSummary, SignalTraderAgent, run_host_episode
from .config import SignalTraderConfig, load_active_config, save_active_config
from .data import LoadError
from .policy import POLICY_NAMES, as_decider, build_policy
from .trader import Trader

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line flags into a structured namespace."""

    parser = argparse.ArgumentParser(
        description="Avalia uma política no ambiente de sinais (picos/vales) sobre um arquivo de cotações.",
    )
    parser.add_argument("--data", dest="data_path", default=None, help="Arquivo de cotações (CSV com cabeçalho)")
    parser.add_argument("--config", default=None, help="Nome da configuração ativa em <reports>/active/")
    parser.add_argument("--episodes", type=int, default=None, help="Quantidade de episódios")
    parser.add_argument("--policy", choices=POLICY_NAMES, default=None, help="Política usada nas decisões")
    parser.add_argument("--window-size", type=int, default=None, help="Barras por observação (default: 50)")
    parser.add_argument(
        "--include-ema",
        action="store_true",
        default=None,
        help="Inclui as EMAs rápida/lenta na observação (requer arquivo com EMAs)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Semente para a política aleatória")
    parser.add_argument("--reports-dir", default=None, help="Diretório dos relatórios (default: reports)")
    parser.add_argument("--plot", action="store_true", default=None, help="Salva o gráfico de acurácia por episódio")
    parser.add_argument("--save-config", default=None, help="Salva a configuração final com este nome")
    parser.add_argument("--log-level", default="INFO", help="Nível de log (DEBUG, INFO, WARNING...)")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    """Set up console logging with a friendly format."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


def resolve_config(args: argparse.Namespace) -> SignalTraderConfig:
    """Start from the saved active config (if any) and apply CLI overrides."""

    cfg = None
    if args.config:
        cfg = load_active_config(args.config, reports_dir=args.reports_dir or "reports")
        if cfg is None:
            logger.warning("Configuração ativa '%s' não encontrada; usando valores padrão.", args.config)
    cfg = cfg or SignalTraderConfig()

    overrides = {
        "data_path": args.data_path,
        "episodes": args.episodes,
        "policy": args.policy,
        "window_size": args.window_size,
        "include_ema": args.include_ema,
        "seed": args.seed,
        "reports_dir": args.reports_dir,
        "plot": args.plot,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(cfg, key, value)
    return cfg


def plot_accuracy(summaries: List[EpisodeSummary], path: Path) -> Path:
    """Save the per-episode accuracy curve as a PNG."""

    import matplotlib

    matplotlib.use("Agg", force=True)
    from matplotlib import pyplot as plt

    epochs = [s.epoch for s in summaries]
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(epochs, [s.accuracy for s in summaries], marker="o", label="Acurácia")
    ax.plot(epochs, [s.average_accuracy for s in summaries], linestyle="--", label="Acurácia média")
    ax.set_xlabel("Episódio")
    ax.set_ylabel("%")
    ax.set_title("Acurácia por episódio")
    ax.grid(True, alpha=0.3)
    ax.legend()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120, bbox_inches="tight")
    plt.close(fig)
    return path


def write_report(cfg: SignalTraderConfig, summaries: List[EpisodeSummary], agent: SignalTraderAgent) -> Path:
    records = [asdict(r) for r in agent.records]
    rec = {
        "config": cfg.to_dict(),
        "metrics": calculate_episode_metrics([asdict(s) for s in summaries]),
        "last_episode": {
            "hit_rate": hit_rate(records),
            "reward_breakdown": reward_breakdown(records),
            "confusion_matrix": json.loads(confusion_matrix(records).to_json()),
        },
        "episodes": [asdict(s) for s in summaries],
    }

    outdir = Path(cfg.reports_dir)
    outdir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    json_path = outdir / f"signal_trader_{cfg.policy}_{ts}.json"
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(rec, f, ensure_ascii=False, indent=2)
    return json_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry-point used by ``python -m`` execution."""

    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        cfg = resolve_config(args)
        policy = build_policy(cfg.policy, seed=cfg.seed, features_per_bar=6 if cfg.include_ema else 4)
    except ValueError as exc:
        logging.error("Erro de configuração: %s", exc)
        return 2

    logging.info("Carregando cotações de %s...", cfg.data_path)
    try:
        trader = Trader.from_file(cfg.data_path, window_size=cfg.window_size, include_ema=cfg.include_ema)
    except (LoadError, ValueError) as exc:
        logging.error("Erro ao carregar as cotações: %s", exc)
        return 1

    logging.info(
        "Série com %d barras | janela=%d | passos por episódio=%d",
        len(trader.series),
        trader.window_size,
        trader.maximum_reward_count,
    )

    agent = SignalTraderAgent(trader)
    decide = as_decider(policy)

    logging.info("Iniciando avaliação da política '%s' por %d episódios...", cfg.policy, cfg.episodes)
    summaries = [run_host_episode(agent, decide) for _ in range(cfg.episodes)]

    if not summaries:
        logging.warning("Nenhum episódio executado. Verifique os parâmetros.")
        return 0

    records = [asdict(r) for r in agent.records]
    metrics = calculate_episode_metrics([asdict(s) for s in summaries])
    logging.info("")
    logging.info(generate_summary_report(metrics, confusion_matrix(records)))

    report_path = write_report(cfg, summaries, agent)
    logging.info("Relatório salvo em: %s", report_path)

    if cfg.plot:
        png = plot_accuracy(summaries, report_path.with_suffix(".png"))
        logging.info("Gráfico salvo em: %s", png)

    if args.save_config:
        active_path = save_active_config(cfg, args.save_config)
        logging.info("Config ativa atualizada: %s", active_path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
