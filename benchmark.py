# bikematch/benchmark.py
"""
Batch benchmark for the BikeMatch matching engine.

Runs many seeded matching sessions per scenario with the simulated delays
disabled and writes CSV files and a JSON dump for statistical analysis.
"""

import asyncio
import csv
import json
import os
import random
import statistics
from datetime import datetime
from typing import Dict, List, Optional

from bikematch import config, utils
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchRequest, MatchStatus

# Define all test scenarios
SCENARIOS = [
    {
        "name": "Zocalo_Default",
        "pickup": config.FALLBACK_LOCATION,
        "activity": None,
        "max_distance_km": config.DEFAULT_MAX_DISTANCE_KM,
    },
    {
        "name": "Zocalo_Casual",
        "pickup": config.FALLBACK_LOCATION,
        "activity": "Paseo casual",
        "max_distance_km": config.DEFAULT_MAX_DISTANCE_KM,
    },
    {
        "name": "Zocalo_Sport",
        "pickup": config.FALLBACK_LOCATION,
        "activity": "Ruta deportiva",
        "max_distance_km": config.DEFAULT_MAX_DISTANCE_KM,
    },
    {
        "name": "Zocalo_Unknown_Activity",
        "pickup": config.FALLBACK_LOCATION,
        "activity": "Descenso extremo",
        "max_distance_km": config.DEFAULT_MAX_DISTANCE_KM,
    },
    {
        "name": "Zocalo_Tight_Radius",
        "pickup": config.FALLBACK_LOCATION,
        "activity": None,
        "max_distance_km": 0.5,
    },
]

RUNS_PER_SCENARIO = 200

# Per-run columns for the detailed CSV
RUN_COLUMNS = [
    "scenario",
    "seed",
    "success",
    "error",
    "candidate_id",
    "activity_label",
    "activity_hit",
    "retried",
    "eta_min",
    "price",
    "distance_km",
]

# All KPIs for the summary CSV
CSV_KPIS = [
    "runs",
    "success_rate_pct",
    "retry_rate_pct",
    "activity_hit_rate_pct",
    "avg_eta_min",
    "median_eta_min",
    "p90_eta_min",
    "avg_price",
    "max_price",
    "avg_distance_km",
    "max_distance_km",
]


def _percentile(values: List[float], pct: float) -> float:
    """Nearest-rank percentile of a non-empty list."""
    ordered = sorted(values)
    rank = max(0, min(len(ordered) - 1, int(round(pct / 100 * len(ordered))) - 1))
    return ordered[rank]


async def run_once(scenario: dict, seed: int) -> Dict:
    """Run one negotiation and flatten its outcome into a row."""
    engine = MatchingEngine(rng=random.Random(seed), time_scale=0.0)
    request = MatchRequest(
        requester_id=f"bench-{seed}",
        pickup_location=Coordinate.from_tuple(scenario["pickup"]),
        activity_type=scenario["activity"],
        max_distance_km=scenario["max_distance_km"],
    )

    statuses: List[MatchStatus] = []
    result = await engine.request_match(request, lambda status, payload: statuses.append(status))

    row = {column: "" for column in RUN_COLUMNS}
    row.update({
        "scenario": scenario["name"],
        "seed": seed,
        "success": result.success,
        "retried": statuses.count(MatchStatus.SEARCHING) > 1,
    })
    if result.success:
        candidate = result.candidate
        row.update({
            "candidate_id": candidate.candidate_id,
            "activity_label": candidate.activity_label,
            "activity_hit": bool(scenario["activity"]) and candidate.offers(scenario["activity"]),
            "eta_min": result.estimated_arrival_minutes,
            "price": result.estimated_price,
            "distance_km": result.distance_km,
        })
    else:
        row["error"] = result.error.value if result.error else ""
    return row


def run_scenario(scenario: dict, runs: int = RUNS_PER_SCENARIO) -> List[Dict]:
    """Run all seeds of a single scenario and return the per-run rows."""
    print(f"\n{'='*60}")
    print(f"SCENARIO: {scenario['name']}")
    print(f"Pickup: {scenario['pickup']}  Activity: {scenario['activity'] or '-'}  Radius: {scenario['max_distance_km']} km")
    print(f"{'='*60}")

    async def _run_all() -> List[Dict]:
        return [await run_once(scenario, seed) for seed in range(runs)]

    rows = asyncio.run(_run_all())
    summary = summarize_runs(rows)
    print(
        f"    ✓ {summary['success_rate_pct']:.1f}% matched, "
        f"avg ETA {summary['avg_eta_min']:.2f} min, avg price {summary['avg_price']:.2f}"
    )
    return rows


def summarize_runs(rows: List[Dict]) -> Dict:
    """Aggregate per-run rows into the summary KPIs."""
    matched = [r for r in rows if r["success"]]
    etas = [float(r["eta_min"]) for r in matched]
    prices = [float(r["price"]) for r in matched]
    distances = [float(r["distance_km"]) for r in matched]

    def pct(part: int, whole: int) -> float:
        return round(part / whole * 100, 2) if whole else 0.0

    return {
        "runs": len(rows),
        "success_rate_pct": pct(len(matched), len(rows)),
        "retry_rate_pct": pct(sum(1 for r in matched if r["retried"]), len(matched)),
        "activity_hit_rate_pct": pct(sum(1 for r in matched if r["activity_hit"]), len(matched)),
        "avg_eta_min": round(statistics.mean(etas), 2) if etas else 0.0,
        "median_eta_min": statistics.median(etas) if etas else 0.0,
        "p90_eta_min": _percentile(etas, 90) if etas else 0.0,
        "avg_price": round(statistics.mean(prices), 2) if prices else 0.0,
        "max_price": max(prices) if prices else 0.0,
        "avg_distance_km": round(statistics.mean(distances), 3) if distances else 0.0,
        "max_distance_km": max(distances) if distances else 0.0,
    }


def save_runs_csv(rows: List[Dict], output_dir: str, timestamp: str) -> str:
    """Save every run of every scenario in a flat CSV."""
    filename = f"{output_dir}/RUNS_{timestamp}.csv"
    with open(filename, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=RUN_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
    print(f"✓ Saved runs: {filename}")
    return filename


def save_summary_csv(summaries: Dict[str, Dict], output_dir: str, timestamp: str) -> str:
    """Save one row of KPIs per scenario."""
    filename = f"{output_dir}/SUMMARY_{timestamp}.csv"
    with open(filename, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(["scenario"] + CSV_KPIS)
        for name, summary in summaries.items():
            writer.writerow([name] + [summary.get(kpi, "") for kpi in CSV_KPIS])
    print(f"✓ Saved summary: {filename}")
    return filename


def main(output_dir: str = "results", runs: Optional[int] = None) -> Dict[str, Dict]:
    runs = runs or RUNS_PER_SCENARIO
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    print(f"Pricing: base {config.BASE_FARE:g} + {config.PER_KM_RATE:g}/km, "
          f"speed {config.AVG_SPEED_KMH:g} km/h ({utils.estimated_arrival_minutes(1.0)} min per km)")

    all_rows: List[Dict] = []
    summaries: Dict[str, Dict] = {}
    for scenario in SCENARIOS:
        rows = run_scenario(scenario, runs)
        all_rows.extend(rows)
        summaries[scenario["name"]] = summarize_runs(rows)

    save_runs_csv(all_rows, output_dir, timestamp)
    save_summary_csv(summaries, output_dir, timestamp)

    json_file = f"{output_dir}/benchmark_{timestamp}.json"
    with open(json_file, 'w') as f:
        json.dump({"scenarios": SCENARIOS, "summary": summaries}, f, indent=2, default=str)
    print(f"✓ Saved JSON: {json_file}")

    return summaries


if __name__ == "__main__":
    main()
