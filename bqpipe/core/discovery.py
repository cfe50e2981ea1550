"""SQL file discovery for bqpipe."""

import os
from dataclasses import dataclass
from typing import List

from bqpipe.exceptions import DiscoveryError, InvalidPathError
from bqpipe.logging import get_logger

logger = get_logger(__name__)

SQL_EXTENSION = ".sql"


@dataclass(frozen=True)
class Unit:
    """One SQL file to render and execute.

    The file content is not read at discovery time; call read_text() when the
    unit is about to run.
    """

    path: str
    root: str

    @property
    def relative_path(self) -> str:
        return os.path.relpath(self.path, self.root)

    def resolve(self) -> str:
        """Return the real path of the unit, checking it stays under root.

        Raises:
            InvalidPathError: If the path escapes the root, through a symlink
                or a relative component
        """
        real_root = os.path.realpath(self.root)
        real_path = os.path.realpath(self.path)
        try:
            inside = os.path.commonpath([real_root, real_path]) == real_root
        except ValueError:
            inside = False
        if not inside or real_path == real_root:
            raise InvalidPathError(self.path, self.root)
        return real_path

    def read_text(self) -> str:
        with open(self.resolve(), "r", encoding="utf-8") as f:
            return f.read()


def is_sql_file(filename: str) -> bool:
    return os.path.splitext(filename)[1].lower() == SQL_EXTENSION


def _raise_walk_error(error: OSError) -> None:
    raise error


def discover_units(directory: str) -> List[Unit]:
    """Find every .sql file under directory, recursively.

    Units are returned in ascending order of their full path string so that
    the run order never depends on filesystem iteration order. Any traversal
    error aborts discovery.

    Args:
        directory: Root directory to scan

    Returns:
        Sorted list of units, possibly empty

    Raises:
        DiscoveryError: If the directory tree cannot be traversed
    """
    paths = []
    try:
        for dirpath, _dirnames, filenames in os.walk(
            directory, onerror=_raise_walk_error
        ):
            for filename in filenames:
                if is_sql_file(filename):
                    paths.append(os.path.join(dirpath, filename))
    except OSError as e:
        raise DiscoveryError(directory, e) from e

    paths.sort()
    logger.debug(f"Discovered {len(paths)} SQL file(s) under {directory}")
    return [Unit(path=path, root=directory) for path in paths]
