"""
Dashboard statistics computed from stored score reports.
"""

import logging
from typing import Dict, List

import pandas as pd

from config import DISTRIBUTION_BUCKETS

logger = logging.getLogger(__name__)

WEEKDAYS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

HISTOGRAM_BINS = 10


def overall_bucket(value) -> str:
    """Label an overall percentage as Low / Acceptable / High."""
    try:
        number = min(100.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        number = 0.0
    for label, upper in DISTRIBUTION_BUCKETS:
        if upper is None or number < upper:
            return label
    return DISTRIBUTION_BUCKETS[-1][0]


def histogram_bin(value) -> int:
    """Index of the 10-point bucket (0-9, 10-19, ..., 90-100) for an overall percentage."""
    try:
        number = min(100.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        number = 0.0
    return min(HISTOGRAM_BINS - 1, int(number // 10))


def histogram_labels():
    return [f"{i * 10}-{i * 10 + 9}" if i < HISTOGRAM_BINS - 1 else f"{i * 10}-100" for i in range(HISTOGRAM_BINS)]


def _empty_summary():
    return {
        'count': 0,
        'average': {'overall': 0, 'onboard': 0, 'ashore': 0},
        'best': 0,
        'worst': 0,
        'distribution': {label: 0 for label, _ in DISTRIBUTION_BUCKETS},
        'histogram': [0] * HISTOGRAM_BINS,
        'weekdays': {day: 0 for day in WEEKDAYS},
        'serviceAreas': [],
    }


def _service_area_frame(rows) -> pd.DataFrame:
    records = []
    for row in rows:
        breakdown = (row.get('scores') or {}).get('breakdown') or {}
        for area, totals in breakdown.items():
            records.append({
                'serviceArea': area,
                'section': totals.get('section'),
                'percent': float(totals.get('percent') or 0),
            })
    return pd.DataFrame(records, columns=['serviceArea', 'section', 'percent'])


def build_summary(rows: List[Dict]) -> Dict:
    """
    Aggregate KPIs for the admin dashboard.

    Args:
        rows: dicts with ``created_at`` (epoch ms) and ``scores`` (a stored
            score report), as returned by ``Submission.all_scores()``

    Returns:
        Dict with submission count, average section scores, best/worst
        overall, Low/Acceptable/High distribution, a 10-point histogram of
        overall scores, submissions per weekday and the mean percent of every
        service area.
    """
    if not rows:
        return _empty_summary()

    df = pd.DataFrame([
        {
            'created_at': row['created_at'],
            'overall': float((row.get('scores') or {}).get('overall') or 0),
            'onboard': float((row.get('scores') or {}).get('onboard') or 0),
            'ashore': float((row.get('scores') or {}).get('ashore') or 0),
        }
        for row in rows
    ])

    distribution = df['overall'].map(overall_bucket).value_counts()
    histogram = df['overall'].map(histogram_bin).value_counts()

    # pandas counts Monday as 0; the dashboard starts the week on Sunday
    weekday_index = (pd.to_datetime(df['created_at'], unit='ms', utc=True).dt.dayofweek + 1) % 7
    weekday_counts = weekday_index.value_counts()

    areas = _service_area_frame(rows)
    service_areas = []
    if not areas.empty:
        grouped = areas.groupby('serviceArea', sort=False).agg(
            section=('section', 'first'),
            percent=('percent', 'mean'),
            responses=('percent', 'size'),
        )
        for name, area in grouped.iterrows():
            service_areas.append({
                'serviceArea': name,
                'section': area['section'],
                'percent': round(float(area['percent']), 2),
                'responses': int(area['responses']),
            })

    return {
        'count': int(len(df)),
        'average': {
            'overall': round(float(df['overall'].mean()), 2),
            'onboard': round(float(df['onboard'].mean()), 2),
            'ashore': round(float(df['ashore'].mean()), 2),
        },
        'best': float(df['overall'].max()),
        'worst': float(df['overall'].min()),
        'distribution': {label: int(distribution.get(label, 0)) for label, _ in DISTRIBUTION_BUCKETS},
        'histogram': [int(histogram.get(i, 0)) for i in range(HISTOGRAM_BINS)],
        'weekdays': {day: int(weekday_counts.get(i, 0)) for i, day in enumerate(WEEKDAYS)},
        'serviceAreas': service_areas,
    }
