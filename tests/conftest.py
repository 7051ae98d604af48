"""
Shared fixtures for the SIMNET test suite.
"""

import numpy as np
import pytest

from simnet.core.graph import Record
from simnet.core.series import build_series_index


YEARS = list(range(2010, 2016))

# Zero-mean, mutually orthogonal directions over six points
E1 = np.array([1, -1, 1, -1, 1, -1], dtype=float)
E2 = np.array([1, 1, -1, -1, 0, 0], dtype=float)
E3 = np.array([1, 1, 1, 1, -2, -2], dtype=float)
E4 = np.array([1, -1, -1, 1, 0, 0], dtype=float)

# Mixing weights giving r(A,B)=0.95, r(C,D)=0.6, r(A,C)=0.3
B_MIX = 0.40256
C_MIX = 0.444749
D_MIX = 2.42090


def make_records(entity_id, name, years, values):
    return [Record(entity_id, name, year, float(value)) for year, value in zip(years, values)]


def scenario_series():
    """Four entities with known pairwise correlations over 2010-2015."""
    a = 70 + E1
    b = 70 + E1 + B_MIX * E2
    c = 65 + E3 + C_MIX * E1
    d = 65 + E3 + C_MIX * E1 + D_MIX * E4
    return {"AAA": a, "BBB": b, "CCC": c, "DDD": d}


@pytest.fixture
def scenario_records():
    records = []
    for entity_id, values in scenario_series().items():
        records.extend(make_records(entity_id, f"Country {entity_id}", YEARS, values))
    return records


@pytest.fixture
def scenario_index(scenario_records):
    return build_series_index(scenario_records)


@pytest.fixture
def scenario_regions():
    return {"AAA": "Europe", "BBB": "Europe", "CCC": "Asia", "DDD": "Africa"}


@pytest.fixture
def random_records():
    """Twelve random-walk entities over 2000-2020 with a few gaps."""
    rng = np.random.default_rng(42)
    years = list(range(2000, 2021))
    records = []
    for k in range(12):
        entity_id = "E" + chr(ord("A") + k) + "X"
        values = 60 + np.cumsum(rng.normal(0.3, 1.0, len(years)))
        for year, value in zip(years, values):
            # Entity EBX misses a mid-window year, ECX misses the last year
            if (entity_id == "EBX" and year == 2010) or (entity_id == "ECX" and year == 2020):
                continue
            records.append(Record(entity_id, f"Entity {k}", year, float(value)))
    return records


@pytest.fixture
def random_index(random_records):
    return build_series_index(random_records)
