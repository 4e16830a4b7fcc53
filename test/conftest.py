import logging

import pytest

from splitarchitect.elements.split import Split


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture
def square_splits():
    """Two incompatible splits on four taxa, 12|34 and 13|24."""
    return [Split([1, 2], [3, 4]), Split([1, 3], [2, 4])]


@pytest.fixture
def trivial4():
    return [Split.from_cluster([t], 4) for t in range(1, 5)]


@pytest.fixture
def labels4():
    names = {1: "a", 2: "b", 3: "c", 4: "d"}
    return names.__getitem__
