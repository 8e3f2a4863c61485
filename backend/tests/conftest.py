"""
Shared datasets for the test suite.
"""
from datetime import date, timedelta

import numpy as np
import pytest


@pytest.fixture
def skewed_rows():
    """One numeric column: 1..99 plus a single extreme value."""
    return [{"amount": v} for v in list(range(1, 100)) + [10000]]


@pytest.fixture
def order_rows():
    """Sequential order ids next to a real measure."""
    return [{"order_id": i, "amount": (i * 37) % 50 + 5} for i in range(1, 101)]


@pytest.fixture
def concentrated_rows():
    """A country column where one value holds 80% of the rows."""
    countries = ["US"] * 400 + ["UK"] * 25 + ["DE"] * 25 + ["FR"] * 25 + ["CA"] * 25
    return [{"country": c} for c in countries]


@pytest.fixture
def mixed_rows():
    """
    120 rows with a date, four measures, two categories and a customer key.

    Seeded, so every run sees the same values.
    """
    rng = np.random.default_rng(7)
    start = date(2023, 1, 1)
    regions = ["North", "South", "East", "West"]
    channels = ["web", "store"]

    rows = []
    for i in range(120):
        revenue = round(float(rng.gamma(2.0, 150.0)) + 1, 2)
        rows.append({
            "date": (start + timedelta(days=3 * i)).isoformat(),
            "revenue": revenue,
            "units": int(rng.integers(1, 50)),
            "cost": round(revenue * 0.6 + float(rng.normal(0, 10)), 2),
            "discount": round(float(rng.uniform(0, 0.3)), 3),
            "region": regions[int(rng.integers(0, 4))],
            "channel": channels[int(rng.integers(0, 2))],
            "customer_id": f"C{i:05d}",
        })
    return rows
