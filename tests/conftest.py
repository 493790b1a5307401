"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import pandas as pd

LEVELS = ["never_smoker", "smoker", "device_gen_a", "device_gen_b"]
GROUP_SIZES = {"never_smoker": 26, "smoker": 26, "device_gen_a": 26, "device_gen_b": 25}


def make_exposure_data(seed: int = 0, shift: float = 3.0) -> pd.DataFrame:
    """Four exposure groups with mediators whose means move with group."""
    rng = np.random.RandomState(seed)
    frames = []
    for code, (group, n) in enumerate(GROUP_SIZES.items()):
        frames.append(
            pd.DataFrame(
                {
                    "group": group,
                    "il6": rng.randn(n) + shift * code,
                    "tnf": rng.randn(n) + shift * (code % 2),
                    "crp": rng.randn(n),
                    "il8": rng.randn(n) * (1 + code),
                    "age": rng.randint(20, 60, size=n).astype(float),
                    "sex": rng.randint(0, 2, size=n).astype(float),
                }
            )
        )
    df = pd.concat(frames, ignore_index=True)
    return df.sample(frac=1.0, random_state=seed).reset_index(drop=True)


@pytest.fixture
def levels():
    return list(LEVELS)


@pytest.fixture
def exposure_data():
    """103 rows in four groups sized 26/26/26/25."""
    return make_exposure_data()


@pytest.fixture
def exposure_csv(tmp_path, exposure_data):
    path = tmp_path / "cleaned.csv"
    exposure_data.to_csv(path, index=False)
    return path


@pytest.fixture
def temp_outdir(tmp_path):
    """Provide temporary output directory."""
    outdir = tmp_path / "derived"
    outdir.mkdir()
    return outdir


@pytest.fixture
def make_data():
    """Factory for exposure tables with a chosen seed and group separation."""
    return make_exposure_data
