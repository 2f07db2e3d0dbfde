import matplotlib

matplotlib.use("Agg")

import pytest

from rube_sims.utils.random import seed_all


@pytest.fixture(autouse=True)
def seeded():
    """Every test starts from the same named random streams."""
    seed_all(1234)
    yield
    seed_all(None)
