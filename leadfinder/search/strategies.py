"""Search strategies: how many batches to run and which slice each one targets."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Strategy:
    label: str
    hint: str


@dataclass(frozen=True)
class BatchPlan:
    index: int
    strategy: Strategy
    batch_size: int


# Alphabetical slices push each parallel request toward a different part of
# the map; the last two target businesses the popular results tend to hide.
STRATEGIES: List[Strategy] = [
    Strategy("names_a_d", "cujos nomes começam com as letras A, B, C ou D"),
    Strategy("names_e_h", "cujos nomes começam com as letras E, F, G ou H"),
    Strategy("names_i_l", "cujos nomes começam com as letras I, J, K ou L"),
    Strategy("names_m_q", "cujos nomes começam com as letras M, N, O, P ou Q"),
    Strategy("names_r_v", "cujos nomes começam com as letras R, S, T, U ou V"),
    Strategy("names_w_z", "cujos nomes começam com as letras W, X, Y, Z ou números"),
    Strategy("hidden_gems", "que são novos ou pouco avaliados (Hidden Gems)"),
    Strategy("outskirts", "que estão localizados em bairros periféricos"),
]


def count_batches(target_count: int, batch_size: int, max_batches: Optional[int] = None) -> int:
    """Return ceil(target_count / batch_size) clamped to [1, max_batches].

    Non-positive targets are tolerated and yield a single batch.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    limit = len(STRATEGIES) if max_batches is None else max(1, max_batches)
    if target_count <= 0:
        return 1
    return min(math.ceil(target_count / batch_size), limit)


def assign_strategies(count: int) -> List[Strategy]:
    """Rotate through STRATEGIES, reusing them cyclically past the end."""
    return [STRATEGIES[i % len(STRATEGIES)] for i in range(count)]


def plan_batches(target_count: int, batch_size: int, max_batches: Optional[int] = None) -> List[BatchPlan]:
    count = count_batches(target_count, batch_size, max_batches)
    return [
        BatchPlan(index=i, strategy=strategy, batch_size=batch_size)
        for i, strategy in enumerate(assign_strategies(count))
    ]
