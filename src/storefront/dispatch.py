"""Synchronous command dispatch under the domain write guard.

Every mutating command runs its whole Unit of Work while holding
``write_guard``, so within one process stock decrements are linearizable
per product and no handler ever reads data another handler is about to
overwrite.

The guard only covers one process. Across several API processes sharing a
SQL database no rows are locked; each aggregate carries a ``_version`` and
Protean refuses a stale write with ``ExpectedVersionError``. Protean re-runs
the handler a few times on such a conflict, which re-reads the stock, so a
lost race ends in ``InsufficientStock``. A conflict that outlives those
retries reaches the API as a retryable 409.

Gateway calls never happen while the guard is held.
"""

import threading

from protean.utils.globals import current_domain

write_guard = threading.RLock()


def dispatch(command):
    """Process ``command`` synchronously and return the handler's result."""
    with write_guard:
        return current_domain.process(command, asynchronous=False)
