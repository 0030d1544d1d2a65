"""
Ledger store boundary and the bundled CSV implementation.

Engines talk to a ``LedgerStore``: read the whole table (header row plus
data rows), append rows, and update cells of one row. Remote stores (a shared
spreadsheet, an object-store CSV) implement the same methods.

``CsvLedgerStore`` keeps the ledger in a local CSV file and serialises
read-decide-write sequences across processes with an exclusive lock on a
sidecar ``.lock`` file.
"""

import csv
import fcntl
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Tuple

from .models import LEDGER_COLUMNS

logger = logging.getLogger(__name__)

Table = Tuple[List[str], List[List[str]]]


class LedgerError(Exception):
    """Raised when ledger operations fail."""
    pass


class LedgerStore(ABC):
    """Append-and-point-update table with a header row."""

    @abstractmethod
    def read_table(self) -> Table:
        """
        Read the header row and all data rows.

        Returns:
            (header, rows); both empty if the ledger has no content yet

        Raises:
            LedgerError: If the store cannot be read
        """

    @abstractmethod
    def append_rows(self, rows: Sequence[Sequence[str]]) -> None:
        """Append data rows in one write. Raises LedgerError on failure."""

    @abstractmethod
    def update_cells(self, row_index: int, values: Dict[str, str]) -> None:
        """
        Overwrite several cells of one row in a single write.

        Either every cell is written or none is.

        Args:
            row_index: 0-based index into the data rows of ``read_table``
            values: Header text of each target column -> new cell value

        Raises:
            LedgerError: If the row or a column does not exist or the write fails
        """

    def update_cell(self, row_index: int, column_name: str, value: str) -> None:
        """Overwrite one cell. Raises LedgerError like ``update_cells``."""
        self.update_cells(row_index, {column_name: value})

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold exclusive access for a read-decide-write sequence.

        The base implementation does nothing; stores without a locking
        primitive leave concurrent runs able to race.
        """
        yield


class CsvLedgerStore(LedgerStore):
    """Ledger kept in a local CSV file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock_depth = 0
        self._lock_file = None

    def __repr__(self) -> str:
        return f"CsvLedgerStore({str(self.path)!r})"

    @contextmanager
    def lock(self) -> Iterator[None]:
        # Re-entrant: flock on a second descriptor from this process would block
        if self._lock_depth > 0:
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
            return

        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            self._lock_file = open(self.lock_path, "a")
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            if self._lock_file is not None:
                self._lock_file.close()
                self._lock_file = None
            raise LedgerError(f"Failed to lock ledger {self.path}: {e}")

        self._lock_depth = 1
        try:
            yield
        finally:
            self._lock_depth = 0
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
            self._lock_file.close()
            self._lock_file = None

    def initialize(self, columns: Sequence[str] = LEDGER_COLUMNS) -> bool:
        """
        Write the header row if the ledger file is missing or empty.

        Returns:
            True if a header was written
        """
        with self.lock():
            header, _ = self.read_table()
            if header:
                return False
            self._write_all(list(columns), [])
            logger.info(f"Initialized ledger {self.path} with headers")
            return True

    def read_table(self) -> Table:
        if not self.path.exists():
            return [], []
        try:
            # utf-8-sig drops the BOM that spreadsheet exports put before the first header
            with open(self.path, "r", newline="", encoding="utf-8-sig") as f:
                rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise LedgerError(f"Failed to read ledger {self.path}: {e}")
        if not rows:
            return [], []
        return rows[0], rows[1:]

    def _ends_with_newline(self) -> bool:
        with open(self.path, "rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return True
            f.seek(-1, os.SEEK_END)
            return f.read(1) == b"\n"

    def append_rows(self, rows: Sequence[Sequence[str]]) -> None:
        if not rows:
            return
        with self.lock():
            header, _ = self.read_table()
            if not header:
                raise LedgerError(f"No header row in ledger {self.path}")
            try:
                # Hand-edited files often lack a final newline
                needs_newline = not self._ends_with_newline()
                with open(self.path, "a", newline="", encoding="utf-8") as f:
                    if needs_newline:
                        f.write("\n")
                    writer = csv.writer(f, lineterminator="\n")
                    writer.writerows(rows)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise LedgerError(f"Failed to append to ledger {self.path}: {e}")

    def update_cells(self, row_index: int, values: Dict[str, str]) -> None:
        with self.lock():
            header, rows = self.read_table()
            for column_name in values:
                if column_name not in header:
                    raise LedgerError(f"Column {column_name!r} not in ledger {self.path}")
            if not 0 <= row_index < len(rows):
                raise LedgerError(f"Row {row_index} out of range for ledger {self.path}")

            row = list(rows[row_index])
            for column_name, value in values.items():
                column = header.index(column_name)
                if len(row) <= column:
                    row.extend([""] * (column + 1 - len(row)))
                row[column] = value
            rows[row_index] = row
            self._write_all(header, rows)

    def _write_all(self, header: List[str], rows: List[List[str]]) -> None:
        """Replace the file atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                    writer = csv.writer(f, lineterminator="\n")
                    writer.writerow(header)
                    writer.writerows(rows)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise LedgerError(f"Failed to write ledger {self.path}: {e}")
