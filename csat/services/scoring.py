"""
Scoring engine for survey answers.

Each relevant answer contributes ``quantized satisfaction * importance
weight`` out of a maximum of ``5 * weight``. Totals are kept overall, per
section (ONBOARD / ASHORE) and per service area, then turned into
percentages with two decimals.
"""

import math
from typing import Dict, Iterable, Mapping, Optional

IMPORTANCE_WEIGHTS = {'HIGH': 3, 'MEDIUM': 2, 'LOW': 1}

TEMPLATE_MAX = 5


def _clamp(value, low, high):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if number != number:  # NaN
        return low
    return max(low, min(high, number))


def map_slider_to_template(raw) -> int:
    """
    Collapse the 0-5 slider into the three template levels.

    0-2 => Low (1), 3 => Acceptable (3), 4-5 => High (5)
    """
    value = _clamp(raw, 0, 5)
    if value <= 2:
        return 1
    if value == 3:
        return 3
    return 5


def pct(score, maximum) -> float:
    """Percentage with two decimals; 0 when nothing was scored."""
    if not maximum:
        return 0
    return math.floor(score / maximum * 10000 + 0.5) / 100


def _field(answer, name):
    if isinstance(answer, Mapping):
        return answer.get(name)
    return getattr(answer, name, None)


def _index_answers(answers: Optional[Iterable]) -> Dict[str, object]:
    # later answers for the same code replace earlier ones
    indexed = {}
    for answer in answers or []:
        code = _field(answer, 'code')
        if code is not None:
            indexed[code] = answer
    return indexed


def compute_scores(questions: Iterable, answers: Optional[Iterable]) -> dict:
    """
    Compute the score report for one set of answers.

    Args:
        questions: catalog questions (``Question`` objects or dicts with
            ``code``, ``section`` and ``serviceArea``), in display order
        answers: answer dicts/objects with ``code``, ``relevant``,
            ``importance`` and ``satisfaction``

    Returns:
        Dict with ``overall``, ``onboard``, ``ashore`` percentages, the
        ``raw`` totals and a per service area ``breakdown``.
    """
    by_code = _index_answers(answers)

    total_score = total_max = 0
    onboard_score = onboard_max = 0
    ashore_score = ashore_max = 0
    areas = {}

    for question in questions:
        answer = by_code.get(_field(question, 'code'))
        if answer is None or not _field(answer, 'relevant'):
            continue

        weight = IMPORTANCE_WEIGHTS.get(_field(answer, 'importance'))
        if not weight:
            continue

        score = map_slider_to_template(_field(answer, 'satisfaction')) * weight
        maximum = TEMPLATE_MAX * weight

        total_score += score
        total_max += maximum

        section = _field(question, 'section')
        if section == 'ONBOARD':
            onboard_score += score
            onboard_max += maximum
        elif section == 'ASHORE':
            ashore_score += score
            ashore_max += maximum

        area_name = _field(question, 'serviceArea')
        area = areas.setdefault(area_name, {'score': 0, 'max': 0, 'section': section})
        area['score'] += score
        area['max'] += maximum

    breakdown = {
        name: {**totals, 'percent': pct(totals['score'], totals['max'])}
        for name, totals in areas.items()
    }

    return {
        'overall': pct(total_score, total_max),
        'onboard': pct(onboard_score, onboard_max),
        'ashore': pct(ashore_score, ashore_max),
        'raw': {
            'totalScore': total_score,
            'totalMax': total_max,
            'onboardScore': onboard_score,
            'onboardMax': onboard_max,
            'ashoreScore': ashore_score,
            'ashoreMax': ashore_max,
        },
        'breakdown': breakdown,
    }


def describe_level(raw) -> str:
    """Template label for a slider value, as shown next to the slider."""
    return {1: 'Low', 3: 'Acceptable', 5: 'High'}[map_slider_to_template(raw)]
