"""
Test helpers for Qt event-driven code.

wait_until() spins the event loop until a condition holds, so timers fire
and signals queued from worker threads get delivered.
process_for() spins it for a fixed time (to prove something did NOT happen).
"""
import time

from PyQt5.QtCore import QCoreApplication


def wait_until(predicate, timeout=2.0, interval=0.005):
    """Process events until predicate() is truthy. Returns False on timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(interval)
    QCoreApplication.processEvents()
    return bool(predicate())


def process_for(seconds):
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        time.sleep(0.005)
