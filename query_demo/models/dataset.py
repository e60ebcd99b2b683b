"""
Default record collection served by the demo.

The collection is a tuple of frozen records built once at import time.
Engines receive it by injection; nothing in the package mutates it.
"""

from typing import Tuple

from .entities import Record


DEFAULT_RECORDS: Tuple[Record, ...] = (
    Record(id=1, name="Acme Analytics Suite", category="Analytics", score=92),
    Record(id=2, name="Beacon Billing", category="FinTech", score=84),
    Record(id=3, name="Cinder CRM", category="Sales", score=88),
    Record(id=4, name="Delta Docs", category="Docs", score=77),
    Record(id=5, name="Echo ETL", category="Data", score=81),
    Record(id=6, name="Flux Forecast", category="Analytics", score=90),
    Record(id=7, name="Glint Gateway", category="FinTech", score=73),
    Record(id=8, name="Helio Helpdesk", category="Support", score=85),
    Record(id=9, name="Iota Insights", category="Analytics", score=89),
    Record(id=10, name="Jolt Jira Sync", category="DevTools", score=80),
)


def get_default_records() -> Tuple[Record, ...]:
    """Return the compiled-in record collection."""
    return DEFAULT_RECORDS
