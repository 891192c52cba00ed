"""
Dormancy analysis for the spike detector.
Decides whether a token stayed quiet over its baseline window.
"""

import logging
from dataclasses import asdict
from typing import Sequence

import numpy as np
import pandas as pd

from models import Snapshot

logger = logging.getLogger("dormancy_analyzer")

MIN_SNAPSHOTS = 3
MAX_STEP_CHANGE_PCT = 10.0


def is_dormant(snapshots: Sequence[Snapshot], volatility_threshold: float, volume_threshold: float) -> bool:
    """
    A token is dormant over the window when all of these hold:
    - cumulative 5m volume stays under `volume_threshold`
    - net drift from first to last price stays under `volatility_threshold` percent
    - no step between consecutive snapshots jumps more than +10%

    Fewer than 3 snapshots never counts as dormant.
    """
    if len(snapshots) < MIN_SNAPSHOTS:
        return False

    df = pd.DataFrame([asdict(s) for s in snapshots])

    total_volume = df["volume_5m"].sum()
    if total_volume >= volume_threshold:
        return False

    prices = df["price"]
    first_price = prices.iloc[0]
    if first_price <= 0:
        return False
    drift = abs(prices.iloc[-1] - first_price) / first_price * 100
    if drift >= volatility_threshold:
        return False

    prev = prices.shift(1).iloc[1:]
    curr = prices.iloc[1:]
    with np.errstate(divide="ignore", invalid="ignore"):
        steps = (curr - prev) / prev * 100
    # A zero previous price makes the step undefined, treat it as a jump
    if (prev <= 0).any() or (steps > MAX_STEP_CHANGE_PCT).any():
        return False

    return True


def describe_window(snapshots: Sequence[Snapshot]) -> dict:
    """Summary of a baseline window, used in debug logs."""
    if not snapshots:
        return {"snapshots": 0}
    df = pd.DataFrame([asdict(s) for s in snapshots])
    first_price = df["price"].iloc[0]
    return {
        "snapshots": len(df),
        "volume_5m_total": float(df["volume_5m"].sum()),
        "drift_pct": float(abs(df["price"].iloc[-1] - first_price) / first_price * 100) if first_price > 0 else None,
        "max_step_pct": float(df["price"].pct_change().max() * 100) if len(df) > 1 else 0.0,
    }
