"""
Text sources - Where the loader gets table text from

A source maps a table name (e.g. "characters.csv") to its full text, or
None when it has no such table. Sources never search for files.
"""
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from loguru import logger

from tabledata.errors import RecordSourceNotFoundError


class TextSource(Protocol):
    def read(self, name: str) -> Optional[str]:
        ...


class InMemorySource:
    """Tables held in a dict, keyed by table name."""

    def __init__(self, tables: Optional[Dict[str, str]] = None):
        self.tables: Dict[str, str] = dict(tables or {})

    def add(self, name: str, text: str) -> None:
        self.tables[name] = text

    def read(self, name: str) -> Optional[str]:
        return self.tables.get(name)

    def __repr__(self):
        return f"InMemorySource({sorted(self.tables)})"


class DirectorySource:
    """Tables stored as files directly under one directory."""

    def __init__(self, root: Union[str, Path], encoding: str = 'utf-8'):
        self.root = Path(root)
        self.encoding = encoding

    def read(self, name: str) -> Optional[str]:
        path = (self.root / name).resolve()
        root = self.root.resolve()

        if root not in path.parents:
            logger.warning(f"Refusing to read '{name}' outside {root}")
            return None
        if not path.is_file():
            logger.debug(f"Table file not found: {path}")
            return None

        return path.read_text(encoding=self.encoding)

    def __repr__(self):
        return f"DirectorySource({str(self.root)!r})"


def read_table(source: TextSource, name: str) -> str:
    """
    Read a table's text from a source.

    Raises:
        RecordSourceNotFoundError: If the source has no such table
    """
    text = source.read(name)
    if text is None:
        raise RecordSourceNotFoundError(f"Table '{name}' not found in {source!r}")
    return text
