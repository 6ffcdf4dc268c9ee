"""In-memory play queue."""


class PlayQueue:
    """Ordered list of track ids waiting to be played.

    The queue is not persisted and, like playlists, does not check ids
    against the library.
    """

    def __init__(self):
        self._items: list[str] = []

    def items(self) -> list[str]:
        return list(self._items)

    def extend(self, track_ids: list[str]) -> list[str]:
        """Append track ids to the end of the queue."""
        self._items.extend(track_ids)
        return self.items()

    def replace(self, track_ids: list[str]) -> list[str]:
        """Replace the whole queue."""
        self._items = list(track_ids)
        return self.items()

    def clear(self) -> list[str]:
        self._items = []
        return []

    def __len__(self) -> int:
        return len(self._items)
