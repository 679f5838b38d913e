"""
Funções utilitárias para cálculo de métricas dos episódios de sinais
"""

import pandas as pd
import numpy as np
from typing import Dict, List, Any, Optional, Sequence


SIGNAL_LABELS = ['NEUTRAL', 'FAST_VALLEY', 'SLOW_VALLEY', 'FAST_PEAK', 'SLOW_PEAK']


def calculate_episode_metrics(episodes: List[Dict[str, Any]]) -> Dict[str, float]:
    """
    Calcula métricas agregadas a partir de uma lista de episódios

    Args:
        episodes: Lista de dicionários com 'reward', 'maximum_reward' e 'accuracy'

    Returns:
        Dicionário com as métricas calculadas
    """
    if not episodes:
        return {
            'episodes': 0,
            'total_reward': 0.0,
            'avg_reward': 0.0,
            'avg_accuracy': 0.0,
            'best_accuracy': 0.0,
            'worst_accuracy': 0.0,
            'std_accuracy': 0.0,
            'best_episode': 0
        }

    rewards = np.array([float(e['reward']) for e in episodes])
    accuracies = np.array([float(e['accuracy']) for e in episodes])

    best_index = int(np.argmax(accuracies))

    return {
        'episodes': len(episodes),
        'total_reward': float(rewards.sum()),
        'avg_reward': float(rewards.mean()),
        'avg_accuracy': float(accuracies.mean()),
        'best_accuracy': float(accuracies.max()),
        'worst_accuracy': float(accuracies.min()),
        'std_accuracy': float(accuracies.std()),
        'best_episode': int(episodes[best_index].get('epoch', best_index + 1))
    }


def confusion_matrix(records: List[Dict[str, Any]], labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Monta a matriz de confusão (previsto x real) dos passos de um episódio

    Args:
        records: Lista de dicionários com 'action' e 'truth' (códigos inteiros)
        labels: Nomes dos rótulos, indexados pelo código

    Returns:
        DataFrame com os rótulos reais nas linhas e os previstos nas colunas
    """
    labels = list(labels or SIGNAL_LABELS)

    matrix = pd.DataFrame(0, index=pd.Index(labels, name='real'), columns=pd.Index(labels, name='previsto'))
    if not records:
        return matrix

    df = pd.DataFrame(records)
    counts = pd.crosstab(df['truth'].map(lambda c: labels[int(c)]), df['action'].map(lambda c: labels[int(c)]))
    matrix.loc[counts.index, counts.columns] = counts.values
    return matrix


def hit_rate(records: List[Dict[str, Any]]) -> float:
    """
    Fração de passos em que a ação prevista coincide com o rótulo real
    """
    if not records:
        return 0.0
    hits = sum(1 for r in records if int(r['action']) == int(r['truth']))
    return hits / len(records)


def reward_breakdown(records: List[Dict[str, Any]]) -> Dict[int, int]:
    """
    Conta quantas vezes cada valor da tabela de pagamentos foi recebido
    """
    if not records:
        return {}
    counts = pd.Series([int(r['reward']) for r in records]).value_counts().sort_index()
    return {int(k): int(v) for k, v in counts.items()}


def generate_summary_report(metrics: Dict[str, float],
                           matrix: Optional[pd.DataFrame] = None) -> str:
    """
    Gera um relatório resumo das métricas

    Args:
        metrics: Dicionário retornado por calculate_episode_metrics
        matrix: Matriz de confusão do último episódio (opcional)

    Returns:
        String formatada com o relatório
    """
    report = []
    report.append("=" * 60)
    report.append("RELATÓRIO DE MÉTRICAS DOS EPISÓDIOS")
    report.append("=" * 60)

    report.append(f"Episódios: {metrics['episodes']}")
    report.append(f"Recompensa Total: {metrics['total_reward']:.2f}")
    report.append(f"Recompensa Média: {metrics['avg_reward']:.2f}")
    report.append(f"")

    report.append(f"Acurácia Média: {metrics['avg_accuracy']:.1f}%")
    report.append(f"Melhor Acurácia: {metrics['best_accuracy']:.1f}% (episódio {metrics['best_episode']})")
    report.append(f"Pior Acurácia: {metrics['worst_accuracy']:.1f}%")
    report.append(f"Desvio Padrão: {metrics['std_accuracy']:.2f}")

    if matrix is not None:
        report.append("=" * 60)
        report.append("MATRIZ DE CONFUSÃO (real x previsto)")
        report.append("=" * 60)
        report.append(matrix.to_string())

    report.append("=" * 60)

    return "\n".join(report)
