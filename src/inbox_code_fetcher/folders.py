"""Folder catalog helpers and the junk-folder fallback decision."""

from __future__ import annotations

from typing import Iterable

from .constants import JUNK_FOLDER_ALIASES, JUNK_SWITCH_AFTER, PRIMARY_FOLDER
from .models import FolderInfo

NOSELECT_FLAGS = {"\\noselect", "\\nonexistent"}


def flatten_folder_names(folders: Iterable[FolderInfo]) -> list[str]:
    """Return selectable folder names in listing order."""
    names: list[str] = []
    for folder in folders:
        if any(flag.lower() in NOSELECT_FLAGS for flag in folder.flags):
            continue
        names.append(folder.name)
    return names


def find_junk_folder(
    names: Iterable[str],
    aliases: Iterable[str] = JUNK_FOLDER_ALIASES,
    exclude: str | None = None,
) -> str | None:
    """Return the first folder whose name contains a junk alias (case-insensitive)."""
    lowered_aliases = [alias.lower() for alias in aliases]
    for name in names:
        if exclude is not None and name == exclude:
            continue
        lowered = name.lower()
        if any(alias in lowered for alias in lowered_aliases):
            return name
    return None


class MailboxSwitcher:
    """Decides when to leave the primary folder and where to go."""

    def __init__(
        self,
        switch_after: float = JUNK_SWITCH_AFTER,
        aliases: Iterable[str] = JUNK_FOLDER_ALIASES,
        primary_folder: str = PRIMARY_FOLDER,
    ) -> None:
        self.switch_after = switch_after
        self.aliases = list(aliases)
        self.primary_folder = primary_folder

    def should_switch(self, folder: str | None, elapsed: float, switched: bool) -> bool:
        """Only once per session, only from the primary folder, only after the sub-deadline."""
        if switched or folder != self.primary_folder:
            return False
        return elapsed > self.switch_after

    def pick_folder(self, folders: Iterable[FolderInfo]) -> str | None:
        return find_junk_folder(
            flatten_folder_names(folders),
            aliases=self.aliases,
            exclude=self.primary_folder,
        )
