"""Export functionality for CSV and JSON."""

import json

import pandas as pd

from ..engine.ledger import PRECISION
from ..simulation.runner import SimulationResult


def snapshots_frame(result: SimulationResult) -> pd.DataFrame:
    """Per-action pool snapshots as a DataFrame, with whole-token helper columns."""
    df = pd.DataFrame(result.snapshots)
    if df.empty:
        return df
    df['t_days'] = df['t'] / 86_400
    df['total_staked_tokens'] = df['total_staked'].astype(float) / PRECISION
    df['reserved_b_tokens'] = df['reserved_b'].astype(float) / PRECISION
    return df


def export_csv(result: SimulationResult, filepath: str):
    """Export simulation snapshots to CSV."""
    snapshots_frame(result).to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'snapshots': result.snapshots,
        'final_metrics': result.final_metrics,
        'rejected': result.rejected,
        'warnings': [
            {
                'severity': w.severity,
                'category': w.category,
                'message': w.message,
                'details': w.details,
            }
            for w in result.warnings
        ],
        'events': [
            {
                'name': e.name,
                'timestamp': e.timestamp,
                'account': e.account,
                'amount': e.amount,
                'data': e.data,
            }
            for e in result.events
        ],
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
