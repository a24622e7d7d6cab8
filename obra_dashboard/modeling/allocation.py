"""
Proportional allocation of executed quantity across workers.

A worker's share of an activity's executed quantity is
``metrado_e x (worker hours on the activity / all hours on the activity)``.
Activities with no logged hours allocate nothing.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from typing import List, Sequence


def allocate_executed(executed: float, hours: Sequence[float]) -> List[float]:
    """
    Split ``executed`` across workers in proportion to their hours.

    Returns one share per entry in ``hours``; all zeros when total hours is 0.
    """
    total = float(sum(hours))
    if total <= 0:
        return [0.0] * len(hours)
    return [executed * (h / total) for h in hours]


def add_allocation(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add ``metrado_asignado`` to a labor-activity frame.

    Expects ``metrado_e``, ``horas`` and ``horas_actividad`` columns (see
    ``obra_dashboard.data.semantic.labor_activity_frame``).
    """
    df = df.copy()
    if len(df) == 0:
        df["metrado_asignado"] = pd.Series(dtype=float)
        return df

    df["metrado_asignado"] = np.where(
        (df["horas_actividad"] > 0) & (df["horas"] > 0) & (df["metrado_e"] > 0),
        df["metrado_e"] * df["horas"] / df["horas_actividad"].where(df["horas_actividad"] > 0, 1.0),
        0.0,
    )
    return df
