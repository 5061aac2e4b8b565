from __future__ import annotations

import unittest

from load_profile.models import DelimiterSet, DetectedFormat
from load_profile.format_detector import detect, infer_delimiters, split_lines


class TestSplitLines(unittest.TestCase):
    def test_strips_bom_carriage_returns_and_blank_lines(self) -> None:
        self.assertEqual(split_lines("\ufeffa,b\r\n\r\n  \nc,d\r\n"), ["a,b", "c,d"])

    def test_empty_text_has_no_lines(self) -> None:
        self.assertEqual(split_lines(""), [])


class TestVendorPreamble(unittest.TestCase):
    def test_preamble_sets_header_row_meter_name_and_range(self) -> None:
        text = ',"Shop12",2024-01-01,2024-01-31\nRDate,RTime,kWh\n2024-01-01,00:00,1.2'

        detection = detect(split_lines(text))

        self.assertEqual(detection.start_row, 2)
        self.assertEqual(detection.delimiters.chars, frozenset({","}))
        self.assertEqual(detection.quote_char, '"')
        self.assertEqual(detection.preamble_meter_name, "Shop12")
        self.assertEqual(detection.preamble_date_range, ("2024-01-01", "2024-01-31"))
        self.assertEqual(detection.detected_format, DetectedFormat.VENDOR_PREAMBLE)

    def test_preamble_without_vendor_header_is_not_recognized(self) -> None:
        text = '"Shop12",2024-01-01,2024-01-31\nDate,Time,Value\n2024-01-01,00:00,1.2'

        detection = detect(split_lines(text))

        self.assertIsNone(detection.preamble_meter_name)
        self.assertEqual(detection.detected_format, DetectedFormat.GENERIC)
        self.assertEqual(detection.start_row, 2)

    def test_vendor_marker_line_supplies_meter_name(self) -> None:
        text = "PnPScada export,Meter 7\nDate,Time,kWh\n2024-01-01,00:00,1.2"

        detection = detect(split_lines(text))

        self.assertEqual(detection.preamble_meter_name, "Meter 7")
        self.assertEqual(detection.start_row, 2)
        self.assertEqual(detection.detected_format, DetectedFormat.VENDOR_PREAMBLE)


class TestHeaderRow(unittest.TestCase):
    def test_header_on_first_line(self) -> None:
        detection = detect(["Date,Time,kWh", "01/01/2024,00:00,1"])

        self.assertEqual(detection.start_row, 1)
        self.assertEqual(detection.detected_format, DetectedFormat.GENERIC)

    def test_metadata_lines_before_header_are_skipped(self) -> None:
        lines = ["Meter export", "Serial 12345", "Date;Time;kW", "01/01/2024;00:00;1,5"]

        detection = detect(lines)

        self.assertEqual(detection.start_row, 3)
        self.assertEqual(detection.delimiters.chars, frozenset({";"}))

    def test_excel_sep_directive_sets_delimiter(self) -> None:
        detection = detect(["sep=;", "Date;Time;kWh", "01/01/2024;00:00;1"])

        self.assertEqual(detection.start_row, 2)
        self.assertEqual(detection.delimiters.chars, frozenset({";"}))

    def test_no_signal_degrades_to_generic_defaults(self) -> None:
        detection = detect(["hello world", "1 2"])

        self.assertEqual(detection.start_row, 1)
        self.assertEqual(detection.delimiters.chars, frozenset({","}))
        self.assertFalse(detection.collapse_consecutive)
        self.assertEqual(detection.quote_char, '"')

    def test_scan_window_is_configurable(self) -> None:
        lines = [f"note {i}" for i in range(12)] + ["Date,Time,kWh", "01/01/2024,00:00,1"]

        self.assertEqual(detect(lines).start_row, 1)
        self.assertEqual(detect(lines, scan_lines=20).start_row, 13)

    def test_empty_input_does_not_raise(self) -> None:
        detection = detect([])

        self.assertEqual(detection.start_row, 1)
        self.assertEqual(detection.delimiters, DelimiterSet(comma=True))


class TestInferDelimiters(unittest.TestCase):
    def test_single_candidate(self) -> None:
        self.assertEqual(infer_delimiters("Date\tTime\tkWh"), (DelimiterSet(tab=True), False))

    def test_strict_pass_drops_rare_candidate(self) -> None:
        delimiters, _ = infer_delimiters("Date;Time;Energy, kWh")

        self.assertEqual(delimiters.chars, frozenset({";"}))

    def test_tie_below_strict_threshold_uses_priority_order(self) -> None:
        delimiters, _ = infer_delimiters("a;b,c")

        self.assertEqual(delimiters.chars, frozenset({";"}))

    def test_pipe_is_a_custom_delimiter(self) -> None:
        delimiters, _ = infer_delimiters("Date|Time|kWh")

        self.assertEqual(delimiters.custom, "|")
        self.assertEqual(delimiters.chars, frozenset({"|"}))

    def test_space_padded_line_enables_collapse(self) -> None:
        delimiters, collapse = infer_delimiters("Date        Time      kWh")

        self.assertTrue(delimiters.space)
        self.assertTrue(collapse)

    def test_no_candidate_defaults_to_comma(self) -> None:
        self.assertEqual(infer_delimiters("Date Time kWh"), (DelimiterSet(comma=True), False))


if __name__ == "__main__":
    unittest.main()
