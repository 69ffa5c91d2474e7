"""
pytest configuration and shared fixtures.
"""

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


def make_colon_frame(n_patients: int = 300, seed: int = 7) -> pd.DataFrame:
    """Colon-shaped raw data (numeric codes, two rows per patient).

    Treatment with Lev+5FU and fewer positive nodes lengthen survival.
    A few nodes/differ values are missing, as in the real data.
    """
    rng = np.random.default_rng(seed)
    rx = rng.choice(["Obs", "Lev", "Lev+5FU"], size=n_patients)
    sex = rng.integers(0, 2, n_patients)
    age = np.round(rng.normal(60, 11, n_patients)).clip(18, 85)
    obstruct = rng.binomial(1, 0.2, n_patients)
    perfor = rng.binomial(1, 0.03, n_patients)
    adhere = rng.binomial(1, 0.15, n_patients)
    nodes = rng.poisson(3.5, n_patients).astype(np.float64)
    differ = rng.choice([1, 2, 3], size=n_patients, p=[0.1, 0.75, 0.15]).astype(np.float64)
    extent = rng.choice([1, 2, 3, 4], size=n_patients, p=[0.05, 0.12, 0.78, 0.05])
    surg = rng.binomial(1, 0.25, n_patients)
    node4 = (nodes > 4).astype(int)

    log_hazard = (
        -7.5
        + np.where(rx == "Lev+5FU", -0.45, 0.0)
        + 0.8 * node4
        + 0.25 * obstruct
    )

    rows = []
    for etype, shift in ((1, 0.2), (2, 0.0)):
        event_time = rng.exponential(np.exp(-(log_hazard + shift)))
        censor_time = rng.uniform(1000, 3300, n_patients)
        time = np.minimum(event_time, censor_time).round().clip(1, None)
        status = (event_time <= censor_time).astype(int)
        for i in range(n_patients):
            rows.append({
                'id': i + 1, 'study': 1, 'rx': rx[i], 'sex': sex[i],
                'age': age[i], 'obstruct': obstruct[i], 'perfor': perfor[i],
                'adhere': adhere[i], 'nodes': nodes[i], 'status': status[i],
                'differ': differ[i], 'extent': extent[i], 'surg': surg[i],
                'node4': node4[i], 'time': time[i], 'etype': etype,
            })

    df = pd.DataFrame(rows)
    df.loc[[3, n_patients + 40], 'nodes'] = np.nan
    df.loc[[n_patients + 11], 'differ'] = np.nan
    return df


@pytest.fixture(scope="session")
def colon_frame():
    """Raw colon-shaped DataFrame."""
    return make_colon_frame()


@pytest.fixture(scope="session")
def colon_deaths(colon_frame):
    """EventTable of death events, rows with missing values dropped."""
    from pysurvstats.datasets import colon_table
    return colon_table(colon_frame, etype="death")
