"""
Rota Export
===========
Flatten a week of rota documents into a table, or export it to JSON for
the presentation layer and for offline analysis.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import pandas as pd

from pharmrota.models.schedule import RotaDocument
from pharmrota.models.staff import StaffMember
from pharmrota.solver.conflicts import summarize
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.io.results_export")

RESULTS_DIR = Path("results")

WEEK_COLUMNS = [
    "date", "weekday", "status", "type", "location", "start_time", "end_time",
    "staff_id", "staff_name", "category",
]


def week_to_dataframe(
    documents: Sequence[RotaDocument],
    staff: Optional[Mapping[str, StaffMember]] = None,
) -> pd.DataFrame:
    """One row per assignment across the week; gaps have an empty staff name."""
    rows = []
    for doc in sorted(documents, key=lambda d: d.date):
        for a in doc.assignments:
            member = staff.get(a.staff_id) if staff and a.staff_id else None
            rows.append({
                "date": a.date.isoformat(),
                "weekday": doc.weekday,
                "status": doc.status.value,
                "type": a.type.value,
                "location": a.location,
                "start_time": a.start_time,
                "end_time": a.end_time,
                "staff_id": a.staff_id,
                "staff_name": member.name if member else "",
                "category": a.category,
            })
    return pd.DataFrame(rows, columns=WEEK_COLUMNS)


def staff_matrix(documents: Sequence[RotaDocument]) -> pd.DataFrame:
    """Staff × date matrix of locations, as the weekly grid shows it."""
    df = week_to_dataframe(documents)
    df = df[df["staff_id"].notna()]
    if df.empty:
        return pd.DataFrame()
    df = df.assign(cell=df["location"] + " " + df["start_time"] + "-" + df["end_time"])
    return df.pivot_table(
        index="staff_id",
        columns="date",
        values="cell",
        aggfunc=lambda x: " / ".join(sorted(set(x))),
        fill_value="",
    )


def build_export(documents: Sequence[RotaDocument]) -> Dict[str, Any]:
    """JSON-ready payload for a week."""
    ordered = sorted(documents, key=lambda d: d.date)
    summary = summarize(ordered)
    return {
        "meta": {
            "exported_at": datetime.now().isoformat(),
            "week_start": ordered[0].week_start.isoformat() if ordered else None,
            "documents": len(ordered),
        },
        "summary": {
            "errors": summary.errors,
            "warnings": summary.warnings,
            "by_type": summary.by_type,
        },
        "documents": [doc.to_dict() for doc in ordered],
    }


def export_week(
    documents: Sequence[RotaDocument],
    path: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Export a week to JSON.

    Returns:
        Path to the exported file
    """
    if path is None:
        RESULTS_DIR.mkdir(exist_ok=True)
        week = documents[0].week_start.isoformat() if documents else "empty"
        path = RESULTS_DIR / f"rota_{week}.json"
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_export(documents), f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {len(documents)} rotas to {path}")
    return path
