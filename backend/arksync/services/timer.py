import threading
import time
from typing import Callable

from flask import current_app

from arksync.errors import SyncError
from .locks import GLOBAL_KEY


class TimerController:
    """Shared countdown: NotStarted -> Running -> Ended, restartable.

    start/force_end/poll all serialize on the global record lock. `clock`
    returns epoch seconds and is swappable for tests.
    """

    def __init__(self, store, locks, broadcaster, clock: Callable[[], float] = time.time):
        self.store = store
        self.locks = locks
        self.broadcaster = broadcaster
        self.clock = clock

    def start(self) -> None:
        with self.locks.hold(GLOBAL_KEY):
            state = self.store.get_global()
            started, duration = self.clock(), state.duration
            state.start_time = started
            state.is_ended = False
            self.store.save_global(state)
        current_app.logger.info(f"[timer-start] start={started} duration={duration}s")
        self.broadcaster.broadcast_global()

    def force_end(self) -> None:
        # start_time is kept so elapsed time stays inspectable
        with self.locks.hold(GLOBAL_KEY):
            state = self.store.get_global()
            was_ended = bool(state.is_ended)
            state.is_ended = True
            self.store.save_global(state)
        current_app.logger.info(f"[timer-end] forced already_ended={was_ended}")
        self.broadcaster.broadcast_global()

    def poll(self, now: float = None) -> bool:
        """Expire a running countdown whose duration has elapsed.

        Returns True only on the poll that performs the Running -> Ended
        transition; later polls are no-ops.
        """
        now = self.clock() if now is None else now
        with self.locks.hold(GLOBAL_KEY):
            state = self.store.get_global()
            elapsed, duration = state.elapsed(now), state.duration
            if not state.is_running or elapsed < duration:
                return False
            state.is_ended = True
            self.store.save_global(state)
        current_app.logger.info(f"[timer-expired] elapsed={elapsed:.1f}s duration={duration}s")
        self.broadcaster.broadcast_global()
        return True


_pollers = {}


def start_poller(app):
    """Start the fixed-interval expiry poll as a Socket.IO background task.

    - No-ops in TESTING mode unless ENABLE_POLLER_IN_TESTS is set
    - At most one poller per app
    Returns the stop event of a newly started poller, else None.
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_POLLER_IN_TESTS'):
        return None
    if id(app) in _pollers:
        return None
    stop = threading.Event()
    _pollers[id(app)] = stop

    services = app.extensions['arksync']
    interval = float(app.config.get('TIMER_POLL_INTERVAL_SEC', 5))

    def _worker():
        app.logger.info(f"[timer-poller] started interval={interval}s")
        while not stop.is_set():
            services.socketio.sleep(interval)
            if stop.is_set():
                break
            with app.app_context():
                try:
                    services.timer.poll()
                except SyncError as exc:
                    # Store hiccups must not kill the loop; next tick retries
                    app.logger.error(f"[timer-poller] poll failed: {exc.message}")
                except Exception:
                    app.logger.exception("[timer-poller] unexpected error during poll")
        app.logger.info("[timer-poller] stopped")

    services.socketio.start_background_task(_worker)
    return stop


def stop_poller(app) -> bool:
    stop = _pollers.pop(id(app), None)
    if stop is None:
        return False
    stop.set()
    return True
