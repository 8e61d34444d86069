"""
Result aggregation for batch analysis runs.
"""

from collections import Counter
from typing import Dict, Iterable, Tuple

from ideabox.email_processing.models import AnalysisOutcome, AnalysisSuccess


def fold_outcomes(outcomes: Iterable[AnalysisOutcome]) -> Tuple[Dict[str, int], int]:
    """
    Fold per-email outcomes into a category histogram and an actionable count.

    Only successful outcomes contribute. An outcome adds one to its category
    bucket when it carries a categorization, and one to the actionable count
    when its action extraction found an action. The result does not depend
    on the order of the outcomes.

    Args:
        outcomes: Per-email outcomes from a batch run

    Returns:
        Tuple of (category -> count, number of emails with an action)
    """
    categorized: Counter = Counter()
    actions_created = 0

    for outcome in outcomes:
        if not isinstance(outcome, AnalysisSuccess):
            continue
        analysis = outcome.analysis
        if analysis.categorization and analysis.categorization.category:
            categorized[analysis.categorization.category] += 1
        if analysis.action_extraction and analysis.action_extraction.has_action:
            actions_created += 1

    return dict(categorized), actions_created
