import os
from pathlib import Path

import pytest

# Test directory name -> marker applied to every test collected under it
_MARKERS_BY_DIR = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
    "bdd": pytest.mark.bdd,
}


def pytest_addoption(parser):
    parser.addoption("--env", action="store", default="test", help="PROTEAN_ENV to run the suite under")


def pytest_sessionstart(session):
    """Fix the environment and the fake gateway before the domain module is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["PAYMENT_GATEWAY"] = "fake"


def pytest_collection_modifyitems(config, items):
    for item in items:
        parts = Path(item.fspath).parts
        for directory, marker in _MARKERS_BY_DIR.items():
            if directory in parts:
                item.add_marker(marker)
                break
        if "integration" in parts and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def fresh_gateway():
    """Each test talks to a newly built gateway with default behaviour."""
    from storefront.payments.gateway import reset_gateway

    reset_gateway()
    yield
    reset_gateway()
