"""
Layout drivers.

Iterative layout algorithms never stop on their own. These helpers decide
how many steps to run: ``relax()`` runs a fixed budget on the calling
thread, and LayoutRunner steps an algorithm on a background thread until it
is stopped, the way an animated view keeps a layout moving while it draws.
"""

import logging
import threading
from typing import Callable, Optional

from .abstraction import IterativeProcess

logger = logging.getLogger(__name__)


def relax(algorithm: IterativeProcess, iterations: int,
          callback: Optional[Callable[[int], None]] = None) -> int:
    """
    Run up to ``iterations`` steps of an attached algorithm.

    Args:
        algorithm: Iterative layout algorithm, already attached
        iterations: Maximum number of steps
        callback: Optional function called after each step with its index

    Returns:
        Number of steps executed
    """
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")

    algorithm.initialize()
    executed = 0
    log_every = 50

    for iteration in range(iterations):
        if algorithm.done():
            break
        algorithm.step()
        executed += 1

        if callback:
            callback(iteration)

        if logger.isEnabledFor(logging.DEBUG) and iteration % log_every == 0:
            logger.debug("Relax iteration %d/%d", iteration, iterations)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Relax finished after %d steps (done=%s)",
                     executed, algorithm.done())
    return executed


class LayoutRunner:
    """Steps an iterative algorithm on a daemon thread.

    The algorithm itself stays single-threaded; the runner is just another
    caller of ``step()``. Readers that want a consistent picture of the
    layout take the layout model's lock.
    """

    def __init__(self, algorithm: IterativeProcess, interval: float = 0.0,
                 max_iterations: Optional[int] = None):
        if interval < 0:
            raise ValueError(f"interval must be non-negative, got {interval}")
        self.algorithm = algorithm
        self.interval = interval
        self.max_iterations = max_iterations
        self._iterations = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> Optional[BaseException]:
        """Exception that ended the background thread, if any."""
        return self._error

    def start(self):
        if self.is_running:
            raise RuntimeError("Layout runner already started")
        self._stop_event.clear()
        self._error = None
        self.algorithm.initialize()
        self._thread = threading.Thread(
            target=self._run, name="layout-runner", daemon=True
        )
        self._thread.start()
        logger.debug("Layout runner started (interval=%.3fs max_iterations=%s)",
                     self.interval, self.max_iterations)

    def stop(self, timeout: Optional[float] = None):
        """Ask the thread to stop and wait for it."""
        self._stop_event.set()
        self.join(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the thread. Returns True if it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self):
        try:
            while not self._stop_event.is_set():
                if self.algorithm.done():
                    break
                if self.max_iterations is not None and self._iterations >= self.max_iterations:
                    break
                self.algorithm.step()
                self._iterations += 1
                if self.interval:
                    self._stop_event.wait(self.interval)
        except Exception as e:
            self._error = e
            logger.error("Layout runner stopped after %d steps: %s",
                         self._iterations, e)
            return
        logger.debug("Layout runner finished after %d steps", self._iterations)

    def __enter__(self) -> 'LayoutRunner':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
