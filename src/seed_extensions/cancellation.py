"""Cancellation signal shared between the harness and a reconcile."""

import threading

from seed_extensions.exceptions import ReconcileCancelledError


def check_cancelled(stop: threading.Event | None, seed_name: str) -> None:
    """Raise if the harness asked the reconcile to stop.

    Args:
        stop: The cancellation event, or None if the reconcile cannot be cancelled.
        seed_name: The seed being reconciled, for the error message.

    Raises:
        ReconcileCancelledError: If the event is set.

    """
    if stop is not None and stop.is_set():
        raise ReconcileCancelledError(f"reconciliation of seed {seed_name!r} was cancelled")
