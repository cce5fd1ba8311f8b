"""Small thread-safe primitives shared by capture and transcription sessions."""

import threading


class AtomicFlag:
    """Boolean with compare-and-set semantics.

    Used wherever several threads race to perform a one-shot action
    (release a device, report an error, close a session): only the
    caller whose ``compare_and_set(False, True)`` succeeds performs it.
    """

    def __init__(self, initial: bool = False):
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> bool:
        with self._lock:
            return self._value

    def set(self, value: bool = True) -> None:
        with self._lock:
            self._value = value

    def compare_and_set(self, expected: bool, new_value: bool) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new_value
            return True

    def __bool__(self) -> bool:
        return self.get()

    def __repr__(self) -> str:
        return f"AtomicFlag({self.get()})"
