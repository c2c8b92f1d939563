"""
analytics.py — Cross-report analytics over submitted score breakdowns.

Computes:
- Category gap analysis (mean score vs maximum, weakest / strongest)
- Rating distribution (reports per rating)
- Score distribution (reports per rating score range, in points)

All breakdowns in one call must come from the same scoring model.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from core.models import ScoreBreakdown, rating_label
from core.rubrics import (
    MODEL_CATEGORIES,
    MODEL_RATING_THRESHOLDS,
    MODEL_TOTAL_MAX,
    ScoringModel,
    category_label,
    category_max,
)


def _safe_float(val) -> Optional[float]:
    try:
        v = float(val)
        return None if np.isnan(v) or np.isinf(v) else round(v, 2)
    except (TypeError, ValueError):
        return None


def _pct(part: float, whole: float) -> int:
    return int(np.floor(part / whole * 100 + 0.5)) if whole else 0


def _single_model(breakdowns: Sequence[ScoreBreakdown]) -> Optional[ScoringModel]:
    models = {b.model for b in breakdowns}
    if len(models) > 1:
        raise ValueError("Breakdowns from different scoring models cannot be analysed together.")
    return models.pop() if models else None


def _category_frame(breakdowns: Sequence[ScoreBreakdown]) -> pd.DataFrame:
    rows = [
        {"report": idx, "category": c.category.value, "score": c.score}
        for idx, b in enumerate(breakdowns)
        for c in b.categories
    ]
    return pd.DataFrame(rows, columns=["report", "category", "score"])


# ── Category gaps ───────────────────────────────────────────────────

def _filled_ratio(gap: Dict[str, Any]) -> float:
    return gap["mean_score"] / gap["max_score"]


def compute_category_gap_analysis(
    breakdowns: Sequence[ScoreBreakdown],
    model: Optional[ScoringModel] = None,
) -> Dict[str, Any]:
    """Average score of each category against its maximum."""
    model = _single_model(breakdowns) or model or ScoringModel.STANDARD
    df = _category_frame(breakdowns)
    means = df.groupby("category")["score"].mean() if not df.empty else pd.Series(dtype=float)

    gaps: List[Dict[str, Any]] = []
    for category in MODEL_CATEGORIES[model]:
        maximum = category_max(category)
        mean = _safe_float(means.get(category.value, 0.0)) or 0.0
        average = int(np.floor(mean + 0.5))
        gap = maximum - average
        gaps.append({
            "category": category.value,
            "label": category_label(category),
            "average_score": average,
            "mean_score": mean,
            "max_score": maximum,
            "gap": gap,
            "gap_percentage": _pct(gap, maximum),
            "filled_percentage": _pct(average, maximum),
        })

    # ties go to the category listed first in the rubric
    return {
        "model": model.value,
        "report_count": len(breakdowns),
        "gaps": gaps,
        "weakest_category": min(gaps, key=_filled_ratio)["label"] if breakdowns else None,
        "strongest_category": max(gaps, key=_filled_ratio)["label"] if breakdowns else None,
    }


# ── Distributions ───────────────────────────────────────────────────

def compute_rating_distribution(
    breakdowns: Sequence[ScoreBreakdown],
    model: Optional[ScoringModel] = None,
) -> Dict[str, Any]:
    """Reports per rating, best rating first."""
    model = _single_model(breakdowns) or model or ScoringModel.STANDARD
    counts = pd.Series([b.rating.value for b in breakdowns], dtype=object).value_counts()
    total = len(breakdowns)
    distribution = [
        {
            "rating": t.rating.value,
            "label": rating_label(t.rating),
            "count": int(counts.get(t.rating.value, 0)),
            "percentage": _pct(int(counts.get(t.rating.value, 0)), total),
        }
        for t in reversed(MODEL_RATING_THRESHOLDS[model])
    ]
    return {"model": model.value, "total_reports": total, "distribution": distribution}


def compute_score_distribution(
    breakdowns: Sequence[ScoreBreakdown],
    model: Optional[ScoringModel] = None,
) -> Dict[str, Any]:
    """Histogram of total scores over the point range of each rating band."""
    model = _single_model(breakdowns) or model or ScoringModel.STANDARD
    total_max = MODEL_TOTAL_MAX[model]
    thresholds = MODEL_RATING_THRESHOLDS[model]
    # lowest whole score that reaches each cutoff
    mins = [-(-t.min_percentage * total_max // 100) for t in thresholds]
    maxs = [m - 1 for m in mins[1:]] + [total_max]

    scores = pd.Series([b.total_score for b in breakdowns], dtype=float)
    total = len(scores)
    distribution = []
    for t, lo, hi in zip(thresholds, mins, maxs):
        count = int(((scores >= lo) & (scores <= hi)).sum())
        distribution.append({
            "range": f"{lo}-{hi} ({t.label})",
            "rating": t.rating.value,
            "min_score": lo,
            "max_score": hi,
            "count": count,
            "percentage": _pct(count, total),
        })
    return {"model": model.value, "total_reports": total, "distribution": distribution}
