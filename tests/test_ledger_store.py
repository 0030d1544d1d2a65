"""
Tests for shiptracker/ledger/store.py and the ledger schema in models.py.
"""

import pytest

from shiptracker.ledger.models import (
    LEDGER_COLUMNS,
    ColumnMap,
    ShipmentRecord,
    identity_key,
    normalize_header,
)
from shiptracker.ledger.store import CsvLedgerStore, LedgerError


@pytest.fixture
def store(tmp_path):
    """Initialized CSV ledger with the default header."""
    store = CsvLedgerStore(tmp_path / "ledger.csv")
    store.initialize()
    return store


class TestCsvLedgerStore:
    """Tests for the CSV-backed store."""

    def test_initialize_writes_header(self, tmp_path):
        """Test that initialize creates the file and parent dir with the default header."""
        store = CsvLedgerStore(tmp_path / "data" / "ledger.csv")

        assert store.initialize() is True
        header, rows = store.read_table()
        assert header == LEDGER_COLUMNS
        assert rows == []

    def test_initialize_keeps_existing_header(self, tmp_path):
        """Test that initialize leaves an existing ledger untouched."""
        path = tmp_path / "ledger.csv"
        path.write_text("Vessel Name,IMO\nARCTIC VOYAGER,9123456\n")
        store = CsvLedgerStore(path)

        assert store.initialize() is False
        header, rows = store.read_table()
        assert header == ["Vessel Name", "IMO"]
        assert rows == [["ARCTIC VOYAGER", "9123456"]]

    def test_initialize_empty_file(self, tmp_path):
        """Test that an empty file gets a header."""
        path = tmp_path / "ledger.csv"
        path.write_text("")
        assert CsvLedgerStore(path).initialize() is True

    def test_missing_file_reads_empty(self, tmp_path):
        """Test that a missing ledger reads as no header and no rows."""
        assert CsvLedgerStore(tmp_path / "absent.csv").read_table() == ([], [])

    def test_append_rows(self, store):
        """Test that appended rows accumulate in order."""
        store.append_rows([["A"] * 12, ["B"] * 12])
        store.append_rows([["C"] * 12])

        _, rows = store.read_table()
        assert [r[0] for r in rows] == ["A", "B", "C"]

    def test_append_after_missing_final_newline(self, tmp_path):
        """Test that appending to a file without a trailing newline starts a new line."""
        path = tmp_path / "ledger.csv"
        path.write_text("vessel_name,imo_number,departure_date\nOLD SHIP,9000001,2024-12-01T00:00:00Z")
        store = CsvLedgerStore(path)

        store.append_rows([["ARCTIC VOYAGER", "9123456", "2025-01-10T08:00:00Z"]])

        _, rows = store.read_table()
        assert rows == [
            ["OLD SHIP", "9000001", "2024-12-01T00:00:00Z"],
            ["ARCTIC VOYAGER", "9123456", "2025-01-10T08:00:00Z"],
        ]

    def test_append_nothing_is_noop(self, tmp_path):
        """Test that an empty append does not create the file."""
        store = CsvLedgerStore(tmp_path / "ledger.csv")
        store.append_rows([])
        assert not store.path.exists()

    def test_append_without_header_fails(self, tmp_path):
        """Test that appending to a headerless ledger raises LedgerError."""
        store = CsvLedgerStore(tmp_path / "ledger.csv")
        with pytest.raises(LedgerError):
            store.append_rows([["x"]])

    def test_blank_lines_skipped(self, tmp_path):
        """Test that blank and all-empty lines are not returned as rows."""
        path = tmp_path / "ledger.csv"
        path.write_text("vessel_name,imo_number\n\nARCTIC VOYAGER,9123456\n,\n")
        _, rows = CsvLedgerStore(path).read_table()
        assert rows == [["ARCTIC VOYAGER", "9123456"]]

    def test_byte_order_mark_stripped(self, tmp_path):
        """Test that a spreadsheet export BOM does not leak into the first header."""
        path = tmp_path / "ledger.csv"
        path.write_bytes(b"\xef\xbb\xbfimo_number,vessel_name\n9123456,ARCTIC VOYAGER\n")

        header, _ = CsvLedgerStore(path).read_table()
        assert header == ["imo_number", "vessel_name"]

    def test_undecodable_file_raises_ledger_error(self, tmp_path):
        """Test that a non-UTF-8 ledger is reported as LedgerError."""
        path = tmp_path / "ledger.csv"
        path.write_bytes("vessel_name,destination_port\nARCTIC VOYAGER,D\xdcSSELDORF\n".encode("cp1252"))

        with pytest.raises(LedgerError, match="Failed to read"):
            CsvLedgerStore(path).read_table()

    def test_values_with_commas_round_trip(self, store):
        """Test that quoted values containing commas survive a write and read."""
        store.append_rows([["ARCTIC VOYAGER", "9123456", "", "", "", "", "Tokyo, Japan"] + [""] * 5])
        _, rows = store.read_table()
        assert rows[0][6] == "Tokyo, Japan"

    def test_update_cell(self, store):
        """Test that update_cell changes only the addressed cell."""
        store.append_rows([[""] * 12, [""] * 12])
        store.update_cell(1, "actual_arrival", "2025-01-25T12:00:00Z")

        header, rows = store.read_table()
        column = header.index("actual_arrival")
        assert rows[1][column] == "2025-01-25T12:00:00Z"
        assert rows[0][column] == ""

    def test_update_cells_single_write(self, store, monkeypatch):
        """Test that several cells of one row are replaced in one file rewrite."""
        store.append_rows([[""] * 12])
        writes = []
        original = store._write_all

        def counting_write(header, rows):
            writes.append(1)
            original(header, rows)

        monkeypatch.setattr(store, "_write_all", counting_write)
        store.update_cells(0, {"actual_arrival": "2025-01-25T12:00:00Z", "flagged": "TRUE"})

        header, rows = store.read_table()
        assert rows[0][header.index("actual_arrival")] == "2025-01-25T12:00:00Z"
        assert rows[0][header.index("flagged")] == "TRUE"
        assert len(writes) == 1

    def test_update_cells_unknown_column_writes_nothing(self, store):
        """Test that one bad column rejects the whole update."""
        store.append_rows([[""] * 12])

        with pytest.raises(LedgerError, match="Column"):
            store.update_cells(0, {"actual_arrival": "2025-01-25T12:00:00Z", "no_such_column": "x"})

        header, rows = store.read_table()
        assert rows[0][header.index("actual_arrival")] == ""

    def test_update_cell_pads_short_row(self, tmp_path):
        """Test that a short row is padded out to the target column."""
        path = tmp_path / "ledger.csv"
        path.write_text("vessel_name,imo_number,actual_arrival\nARCTIC VOYAGER,9123456\n")
        store = CsvLedgerStore(path)

        store.update_cell(0, "actual_arrival", "2025-01-25T12:00:00Z")
        _, rows = store.read_table()
        assert rows[0] == ["ARCTIC VOYAGER", "9123456", "2025-01-25T12:00:00Z"]

    def test_update_unknown_column(self, store):
        """Test that updating a column missing from the header raises LedgerError."""
        store.append_rows([[""] * 12])
        with pytest.raises(LedgerError, match="Column"):
            store.update_cell(0, "no_such_column", "x")

    def test_update_row_out_of_range(self, store):
        """Test that updating a row that does not exist raises LedgerError."""
        with pytest.raises(LedgerError, match="out of range"):
            store.update_cell(0, "notes", "x")

    def test_lock_is_reentrant(self, store):
        """Test that writes inside a held lock do not deadlock."""
        with store.lock():
            with store.lock():
                store.append_rows([[""] * 12])
        assert len(store.read_table()[1]) == 1
        assert store.lock_path.exists()

    def test_no_temp_files_left(self, store):
        """Test that atomic rewrites clean up their temp files."""
        store.append_rows([[""] * 12])
        store.update_cell(0, "notes", "checked")
        leftovers = [p.name for p in store.path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []


class TestColumnMap:
    """Tests for header-driven column mapping."""

    def test_normalize_header(self):
        """Test case, spacing and alias normalisation of header names."""
        assert normalize_header("Vessel Name") == "vessel_name"
        assert normalize_header(" CER_reported_payload ") == "cer_reported_payload"
        assert normalize_header("IMO") == "imo_number"
        assert normalize_header("Destination") == "destination_port"

    def test_normalize_header_drops_byte_order_mark(self):
        """Test that a BOM handed over by a non-CSV store is ignored."""
        assert normalize_header("\ufeffimo_number") == "imo_number"

    def test_reordered_header(self):
        """Test that records map through a header in any order."""
        columns = ColumnMap(["notes", "IMO", "Vessel Name", "departure_date"])
        record = columns.to_record(["manual", "9123456", "ARCTIC VOYAGER", "2025-01-10T08:00:00Z"])

        assert record.imo_number == "9123456"
        assert record.vessel_name == "ARCTIC VOYAGER"
        assert record.notes == "manual"
        assert columns.to_row(record) == ["manual", "9123456", "ARCTIC VOYAGER", "2025-01-10T08:00:00Z"]

    def test_unknown_columns_left_empty(self):
        """Test that columns with no logical field are written empty."""
        columns = ColumnMap(["vessel_name", "Buyer", "imo_number"])
        row = columns.to_row(ShipmentRecord(vessel_name="ARCTIC VOYAGER", imo_number="9123456"))
        assert row == ["ARCTIC VOYAGER", "", "9123456"]

    def test_short_row_reads_empty(self):
        """Test that missing trailing cells read as empty strings."""
        record = ColumnMap(["vessel_name", "imo_number", "notes"]).to_record(["ARCTIC VOYAGER"])
        assert record.imo_number == ""
        assert record.notes == ""

    def test_column_name_returns_physical_header(self):
        """Test that column_name returns the header text as written in the ledger."""
        columns = ColumnMap(["Vessel Name", "Actual Arrival"])
        assert columns.column_name("actual_arrival") == "Actual Arrival"
        assert columns.column_name("flagged") is None
        assert "vessel_name" in columns
        assert "flagged" not in columns


class TestShipmentRecord:
    """Tests for record values and identity."""

    @pytest.mark.parametrize("raw,expected", [
        ("TRUE", True), ("yes", True), ("x", True), ("1", True),
        ("", False), ("FALSE", False), ("no", False),
    ])
    def test_flagged_parsing(self, raw, expected):
        """Test which hand-typed flag values count as flagged."""
        assert ShipmentRecord.from_values({"flagged": raw}).flagged is expected

    def test_flag_serialization(self):
        """Test that the flag is written as TRUE or left empty."""
        assert ShipmentRecord(flagged=True).to_values()["flagged"] == "TRUE"
        assert ShipmentRecord().to_values()["flagged"] == ""

    def test_identity_key_uses_utc_calendar_day(self):
        """Test that the key's day is the UTC calendar day of departure."""
        assert identity_key("9123456", "2025-01-10T08:00:00Z") == ("9123456", "2025-01-10")
        assert identity_key("9123456", "2025-01-10T23:00:00-05:00") == ("9123456", "2025-01-11")
        assert identity_key("9123456", "") == ("9123456", "")

    def test_en_route(self):
        """Test that only records without an actual arrival are en route."""
        assert ShipmentRecord(imo_number="9123456").is_en_route
        assert not ShipmentRecord(actual_arrival="2025-01-25T12:00:00Z").is_en_route
