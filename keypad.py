"""Hex keypad state provider."""

import queue
import threading


class KeyWaitTimeout(Exception):
    def __init__(self, timeout: float):
        self.timeout = timeout

    def __str__(self):
        return "No key pressed within %.2fs" % self.timeout


class Keypad:
    """16-key keypad.

    press() and release() may be called from an input thread while the CPU
    runs; wait_for_key() blocks until a key is held or freshly pressed.
    """

    NUM_KEYS = 16

    def __init__(self):
        self._pressed = [False] * self.NUM_KEYS
        self._lock = threading.Lock()
        self._presses = queue.Queue()

        # Presses are only queued while a wait is pending
        self._waiters = 0

    @classmethod
    def _check(cls, key: int) -> None:
        if key < 0 or key >= cls.NUM_KEYS:
            raise ValueError("Invalid key: %d" % key)

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        with self._lock:
            return self._pressed[key]

    def press(self, key: int) -> None:
        self._check(key)
        with self._lock:
            self._pressed[key] = True
            if self._waiters:
                self._presses.put(key)

    def release(self, key: int) -> None:
        self._check(key)
        with self._lock:
            self._pressed[key] = False

    def wait_for_key(self, timeout: float = None) -> int:
        """Block until a key is pressed and return it.

        A key already held down satisfies the wait at once (lowest first);
        keys pressed and released before the wait started do not.
        """
        with self._lock:
            for key, pressed in enumerate(self._pressed):
                if pressed:
                    return key
            while not self._presses.empty():
                self._presses.get_nowait()
            self._waiters += 1

        try:
            return self._presses.get(timeout=timeout)
        except queue.Empty:
            raise KeyWaitTimeout(timeout)
        finally:
            with self._lock:
                self._waiters -= 1
