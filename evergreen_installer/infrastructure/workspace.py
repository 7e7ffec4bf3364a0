"""Filesystem implementation of the Workspace port."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from ..application.domain import Workspace
from ..application.exceptions import WorkspaceError

from .decorators import retry_on_locked_file

DEFAULT_DIR_NAME = "evergreen-installer"


class TempWorkspace(Workspace):
    """A scratch directory that is emptied before a run and deleted after it."""

    def __init__(self, path: Optional[Path] = None):
        """Initializes the workspace; defaults to a directory under the temp dir."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.path = Path(path) if path else Path(tempfile.gettempdir()) / DEFAULT_DIR_NAME

    @retry_on_locked_file
    def _delete_tree(self):
        if self.path.exists():
            shutil.rmtree(self.path)

    def prepare(self) -> Path:
        """
        Guarantee an empty workspace directory exists.

        Anything left behind by an earlier, interrupted run is deleted first.

        Returns:
            The workspace path.

        Raises:
            WorkspaceError: If leftovers cannot be purged or the directory
                            cannot be created.
        """

        if self.path.exists():
            self.logger.info(f"Purging stale workspace {self.path}")

        try:
            self._delete_tree()
            self.path.mkdir(parents=True)
        except OSError as e:
            raise WorkspaceError(
                f"Could not prepare workspace {self.path}: {e}"
            ) from e

        self.logger.info(f"Workspace ready at {self.path}")
        return self.path

    def remove(self):
        """Delete the workspace, logging instead of raising on failure."""
        try:
            self._delete_tree()
        except OSError as e:
            self.logger.error(f"Could not remove workspace {self.path}: {e}")
        else:
            self.logger.info(f"Removed workspace {self.path}")
