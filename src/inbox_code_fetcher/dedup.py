"""Per-session record of messages that have already been evaluated."""

from __future__ import annotations

from typing import Iterable


class SeenSet:
    """Evaluated ``(folder, uid)`` pairs, scoped to one retrieval session.

    UIDs are only unique within a folder, so every lookup names the folder.
    """

    def __init__(self) -> None:
        self._keys: set[tuple[str | None, int]] = set()

    def mark(self, folder: str | None, uid: int) -> None:
        self._keys.add((folder, uid))

    def forget(self, folder: str | None, uid: int) -> None:
        """Make ``uid`` eligible again, e.g. after its body fetch failed."""
        self._keys.discard((folder, uid))

    def is_seen(self, folder: str | None, uid: int) -> bool:
        return (folder, uid) in self._keys

    def unseen(self, folder: str | None, uids: Iterable[int]) -> list[int]:
        """Return the uids of ``folder`` not evaluated yet, preserving their order."""
        return [uid for uid in uids if (folder, uid) not in self._keys]

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
