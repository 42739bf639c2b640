"""Storefront load testing: Locust entry point.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Checkout journeys across card, QR and cash on delivery:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Oversell check: many buyers racing for one product
    locust -f loadtests/locustfile.py ScarceStockUser --headless -u 100 -r 20 -t 60s

Run ``POST /payments/gateway/configure`` with ``{"should_succeed": false}``
during a run to mix declines into the card journeys.
"""

import logging
import time

import requests
from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.contention import ScarceStockUser  # noqa: F401
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401

logger = logging.getLogger("loadtest")

# Statuses that are valid answers under load rather than server faults
EXPECTED_REJECTIONS = {400, 402, 503}


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        level = logging.INFO if response.status_code in EXPECTED_REJECTIONS else logging.ERROR
        logger.log(level, "[%s] %s %s: %s", response.status_code, request_type, name, extract_error_detail(response))


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')} against {environment.host}\n")


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Report the gateway mode and API health once the run is over."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        health = requests.get(f"{environment.host}/health", timeout=5)
        print(f"[LOADTEST] Health after run: {health.status_code} {health.text}")
    except requests.RequestException as exc:
        print(f"[LOADTEST] Could not reach the API after the run: {exc}")
