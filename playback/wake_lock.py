"""Wake-lock providers.

A provider hands out lock objects with a ``release()`` method. The default
provider keeps the display awake with ``systemd-inhibit`` for as long as a
child process lives, which is how a Linux kiosk keeps a channel on screen.
"""
import logging
import subprocess
import threading
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)

# Global list to track held inhibitor processes for cleanup on exit
_running_processes: List[subprocess.Popen] = []
_process_lock = threading.Lock()


class WakeLock(Protocol):
    def release(self) -> None: ...


class WakeLockProvider(Protocol):
    def acquire(self) -> WakeLock: ...


class WakeLockError(Exception):
    """Raised when a wake-lock can't be acquired."""


class InhibitorLock:
    """Lock held by a running systemd-inhibit process."""

    def __init__(self, proc: subprocess.Popen):
        self._proc: Optional[subprocess.Popen] = proc

    @property
    def held(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def release(self) -> None:
        proc = self._proc
        if proc is None:
            return
        self._proc = None
        with _process_lock:
            if proc in _running_processes:
                _running_processes.remove(proc)
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()


class SystemdInhibitProvider:
    """Acquire idle/sleep inhibitor locks through systemd-inhibit."""

    def __init__(self, what: str = "idle:sleep", who: str = "channel", why: str = "Channel playback"):
        self.what = what
        self.who = who
        self.why = why

    def acquire(self) -> InhibitorLock:
        cmd = [
            'systemd-inhibit',
            f'--what={self.what}',
            f'--who={self.who}',
            f'--why={self.why}',
            '--mode=block',
            'sleep', 'infinity',
        ]
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except FileNotFoundError as e:
            raise WakeLockError("systemd-inhibit not found") from e
        except OSError as e:
            raise WakeLockError(f"Failed to start systemd-inhibit: {e}") from e

        with _process_lock:
            _running_processes.append(proc)
        logger.debug(f"systemd-inhibit started (pid {proc.pid})")
        return InhibitorLock(proc)


def release_all_locks() -> None:
    """Terminate every inhibitor process still running (called on shutdown)."""
    with _process_lock:
        procs = list(_running_processes)
        _running_processes.clear()
    for proc in procs:
        if proc.poll() is None:
            try:
                proc.terminate()
            except OSError as e:
                logger.debug(f"Failed to terminate inhibitor {proc.pid}: {e}")
    if procs:
        logger.info(f"Released {len(procs)} wake-lock process(es)")
