# app/services/cohort_classifier.py
from __future__ import annotations

from typing import Optional, Sequence


def classify_cohort(title: str | None, cohort_names: Sequence[str]) -> Optional[str]:
    """
    Return the first collective whose name occurs in the event title.

    Comparison is case-insensitive substring containment. The configured
    order breaks ties when a title mentions several collectives. Titles that
    mention none return None and are left out of all reporting.
    """
    lowered = (title or "").lower()
    for name in cohort_names:
        if name and name.lower() in lowered:
            return name
    return None
