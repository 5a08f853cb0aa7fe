import io
import tempfile
import unittest
from pathlib import Path

from fx_deals.ingestion.deal_csv import (
    DEAL_AMOUNT_COLUMN,
    DEAL_ID_COLUMN,
    FROM_CURRENCY_COLUMN,
    REQUIRED_HEADERS,
    DealRowParser,
    StructuralRowError,
    read_deal_table,
)

CSV_TEXT = (
    "Deal Unique Id,From Currency ISO Code,To Currency ISO Code,Deal timestamp,Deal Amount\n"
    "D001, usd,EUR,2025-11-13T10:00:00,100.00\n"
    "\n"
    "D002,GBP,JPY,2025-11-13T11:00:00,5\n"
)


class ReadDealTableTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        self.tmp_dir.cleanup()

    def test_reads_path_and_skips_blank_lines(self) -> None:
        csv_path = Path(self.tmp_dir.name) / "deals.csv"
        csv_path.write_text(CSV_TEXT, encoding="utf-8")

        table = read_deal_table(csv_path)

        self.assertEqual(table.header, list(REQUIRED_HEADERS))
        self.assertEqual([number for number, _ in table.rows], [2, 4])
        self.assertEqual(table.rows[0][1][1], " usd")

    def test_reads_str_path(self) -> None:
        csv_path = Path(self.tmp_dir.name) / "deals.csv"
        csv_path.write_text(CSV_TEXT, encoding="utf-8")

        self.assertEqual(len(read_deal_table(str(csv_path)).rows), 2)

    def test_reads_bytes_and_strips_bom(self) -> None:
        table = read_deal_table(b"\xef\xbb\xbf" + CSV_TEXT.encode("utf-8"))

        self.assertEqual(table.header[0], DEAL_ID_COLUMN)
        self.assertEqual(len(table.rows), 2)

    def test_reads_text_and_binary_streams(self) -> None:
        text_table = read_deal_table(io.StringIO("\ufeff" + CSV_TEXT))
        binary_table = read_deal_table(io.BytesIO(CSV_TEXT.encode("utf-8")))

        self.assertEqual(text_table.header, binary_table.header)
        self.assertEqual(text_table.rows, binary_table.rows)

    def test_empty_source_has_no_rows(self) -> None:
        table = read_deal_table(b"")

        self.assertEqual(table.header, [])
        self.assertEqual(table.rows, [])

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            read_deal_table(Path(self.tmp_dir.name) / "missing.csv")

    def test_undecodable_bytes(self) -> None:
        with self.assertRaises(UnicodeDecodeError):
            read_deal_table(b"\xff\xfe\xfa")


class DealRowParserTests(unittest.TestCase):
    def test_parse_trims_fields_and_keeps_raw_values(self) -> None:
        parser = DealRowParser(list(REQUIRED_HEADERS))

        candidate = parser.parse(
            ["D001 ", " usd", "EUR", " 2025-11-13T10:00:00", "100.00 "], source_row=2
        )

        self.assertEqual(candidate.deal_id, "D001")
        self.assertEqual(candidate.from_currency, "usd")
        self.assertEqual(candidate.deal_timestamp, "2025-11-13T10:00:00")
        self.assertEqual(candidate.amount, "100.00")
        self.assertEqual(candidate.raw[FROM_CURRENCY_COLUMN], " usd")
        self.assertEqual(candidate.raw[DEAL_AMOUNT_COLUMN], "100.00 ")
        self.assertEqual(candidate.source_row, 2)

    def test_parse_matches_labels_regardless_of_order(self) -> None:
        header = [" Deal Amount", "Deal timestamp", "Note", "To Currency ISO Code",
                  "From Currency ISO Code", "Deal Unique Id "]
        parser = DealRowParser(header)

        candidate = parser.parse(["9.5", "2025-11-13T10:00:00", "x", "JPY", "GBP", "D7"])

        self.assertEqual(
            candidate.values(), ("D7", "GBP", "JPY", "2025-11-13T10:00:00", "9.5")
        )
        self.assertEqual(parser.missing_labels, ())

    def test_wrong_column_count_is_structural(self) -> None:
        parser = DealRowParser(list(REQUIRED_HEADERS))

        with self.assertRaises(StructuralRowError):
            parser.parse(["D001", "USD", "EUR", "2025-11-13T10:00:00"])
        with self.assertRaises(StructuralRowError):
            parser.parse(["D001", "USD", "EUR", "2025-11-13T10:00:00", "1", "extra"])

    def test_missing_header_label_is_structural(self) -> None:
        parser = DealRowParser(list(REQUIRED_HEADERS[:4]))

        self.assertEqual(parser.missing_labels, (DEAL_AMOUNT_COLUMN,))
        with self.assertRaises(StructuralRowError):
            parser.parse(["D001", "USD", "EUR", "2025-11-13T10:00:00"])

    def test_structural_error_is_a_value_error(self) -> None:
        self.assertTrue(issubclass(StructuralRowError, ValueError))

    def test_raw_values_fill_absent_cells_with_none(self) -> None:
        parser = DealRowParser(list(REQUIRED_HEADERS))

        raw = parser.raw_values(["D001", "USD"])

        self.assertEqual(raw[DEAL_ID_COLUMN], "D001")
        self.assertEqual(raw[FROM_CURRENCY_COLUMN], "USD")
        self.assertIsNone(raw[DEAL_AMOUNT_COLUMN])


if __name__ == "__main__":  # pragma: no cover - manual debugging helper
    unittest.main()
