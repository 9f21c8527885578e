"""Sync actions, the events reporting them and the run's action log."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from ..utils import format_exception_chain

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Mutations the engine performs on the destination tree."""

    CREATE_FOLDER = "create_folder"
    ADD_FILE = "add_file"
    UPDATE_FILE = "update_file"
    DELETE_FILE = "delete_file"
    DELETE_FOLDER = "delete_folder"

    @property
    def verb(self) -> str:
        """Human readable form used in log lines."""
        return _VERBS[self]


_VERBS: dict[SyncAction, str] = {
    SyncAction.CREATE_FOLDER: "Creating folder",
    SyncAction.ADD_FILE: "Adding file",
    SyncAction.UPDATE_FILE: "Updating file",
    SyncAction.DELETE_FILE: "Deleting file",
    SyncAction.DELETE_FOLDER: "Deleting folder",
}

_STAT_KEYS: dict[SyncAction, str] = {
    SyncAction.CREATE_FOLDER: "folders_created",
    SyncAction.ADD_FILE: "files_added",
    SyncAction.UPDATE_FILE: "files_updated",
    SyncAction.DELETE_FILE: "files_deleted",
    SyncAction.DELETE_FOLDER: "folders_deleted",
}


@dataclass(frozen=True)
class SyncEvent:
    """One mutating decision taken by the engine."""

    action: SyncAction
    """What is being done"""

    path: Path
    """Path the action is about (the source file for add/update)"""

    @property
    def verb(self) -> str:
        return self.action.verb

    @property
    def message(self) -> str:
        """Log line for this event."""
        return f"{self.verb}: {self.path}"


@dataclass
class SyncJournal:
    """Ordered, append-only record of what a run did.

    The journal is owned by whoever starts the run; it is written to disk
    once the run ends, whether or not it succeeded.
    """

    lines: list[str] = field(default_factory=list)
    """Log lines in the order they were recorded"""

    stats: dict[str, int] = field(
        default_factory=lambda: {key: 0 for key in _STAT_KEYS.values()}
    )
    """Number of recorded events per action"""

    errors: int = 0
    """Number of recorded errors"""

    def record(self, event: SyncEvent) -> None:
        self.lines.append(event.message)
        self.stats[_STAT_KEYS[event.action]] += 1

    def record_error(self, exc: BaseException) -> None:
        """Append the display form of an exception chain."""
        self.lines.append(format_exception_chain(exc))
        self.errors += 1

    def add(self, message: str) -> None:
        """Append a free-form line."""
        self.lines.append(message)

    @property
    def total_actions(self) -> int:
        return sum(self.stats.values())

    def write(self, path: Union[str, Path]) -> Path:
        """Write all lines to ``path``, replacing any previous content.

        Returns:
            The path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for line in self.lines:
                f.write(line)
                f.write("\n")
        logger.debug("Wrote %d log line(s) to %s", len(self.lines), path)
        return path
