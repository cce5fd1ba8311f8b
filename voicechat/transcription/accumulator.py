"""Merging of incremental transcript results."""

import threading


class TranscriptAccumulator:
    """Append buffer that merges overlapping partial transcripts.

    Services revise their partials: a later partial usually extends an
    earlier one, but may also repeat a shorter prefix of it or overlap
    its tail. Growth is not assumed to be monotonic.
    """

    def __init__(self):
        self._text = ""
        self._lock = threading.Lock()

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def merge(self, incoming: str) -> str:
        """Merge ``incoming`` into the buffer and return the new contents."""
        candidate = (incoming or "").strip()
        with self._lock:
            if candidate:
                self._text = self._merged(self._text, candidate)
            return self._text

    @staticmethod
    def _merged(current: str, candidate: str) -> str:
        if not current or current in candidate:
            return candidate
        if candidate in current:
            return current
        overlap = _overlap_length(current, candidate)
        if overlap:
            return current + candidate[overlap:]
        return f"{current} {candidate}"

    def clear(self) -> None:
        with self._lock:
            self._text = ""

    def __len__(self) -> int:
        return len(self.text)


def _overlap_length(head: str, tail: str) -> int:
    """Longest whole-word suffix of ``head`` that is also a prefix of ``tail``."""
    for size in range(min(len(head), len(tail)), 0, -1):
        if not head.endswith(tail[:size]):
            continue
        starts_word = size == len(head) or head[-size - 1] == " "
        ends_word = size == len(tail) or tail[size] == " "
        if starts_word and ends_word:
            return size
    return 0
