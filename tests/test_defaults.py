import unittest
import sys
from pathlib import Path

# Ensure src/ is importable when running tests without installation
SYS_PATH_ADDED = str(Path(__file__).resolve().parents[1] / "src")
if SYS_PATH_ADDED not in sys.path:
    sys.path.insert(0, SYS_PATH_ADDED)

from ruter_departures.defaults import as_string_array, get_defaults, normalize_defaults, sort_line_codes  # noqa: E402
from ruter_departures.settings_store import MemorySettingsStore  # noqa: E402


class AsStringArrayTests(unittest.TestCase):
    def test_non_list_is_empty(self):
        self.assertEqual(as_string_array(None), [])
        self.assertEqual(as_string_array("12"), [])
        self.assertEqual(as_string_array({"a": 1}), [])

    def test_trims_and_drops_empty(self):
        self.assertEqual(as_string_array([12, " 31 ", "", "   ", None, "N1"]), ["12", "31", "N1"])

    def test_javascript_spellings(self):
        self.assertEqual(as_string_array([True, 1.0, 2.5, False]), ["true", "1", "2.5", "false"])


class SortLineCodesTests(unittest.TestCase):
    def test_numeric_order(self):
        self.assertEqual(sort_line_codes(["31", "2", "12", "110"]), ["2", "12", "31", "110"])

    def test_dedup_and_letters(self):
        self.assertEqual(sort_line_codes(["12", "12", "N12", "12A", "2"]), ["2", "12", "12A", "N12"])

    def test_case_insensitive(self):
        self.assertEqual(sort_line_codes(["b", "A", "c"]), ["A", "b", "c"])

    def test_norwegian_letters_after_z(self):
        self.assertEqual(sort_line_codes(["Å", "Z", "Ø", "Æ", "A"]), ["A", "Z", "Æ", "Ø", "Å"])


class NormalizeDefaultsTests(unittest.TestCase):
    def test_empty_store_gets_all_defaults(self):
        store = MemorySettingsStore()
        self.assertTrue(normalize_defaults(store))
        self.assertEqual(
            store.as_dict(),
            {
                "defaultStopId": "",
                "defaultStopName": "",
                "defaultLines": [],
                "defaultMaxResults": 50,
                "defaultMinutesAhead": 120,
                "defaultDirection": "any",
                "defaultTimeFormat": "auto",
            },
        )

    def test_malformed_stop_values_reset(self):
        store = MemorySettingsStore({"defaultStopId": 42, "defaultStopName": ["x"]})
        normalize_defaults(store)
        self.assertEqual(store.get("defaultStopId"), "")
        self.assertEqual(store.get("defaultStopName"), "")

    def test_lines_canonicalized(self):
        store = MemorySettingsStore({"defaultLines": ["31", 12, " 12 ", "", "2"]})
        normalize_defaults(store)
        self.assertEqual(store.get("defaultLines"), ["2", "12", "31"])

    def test_existing_display_values_kept_even_if_malformed(self):
        store = MemorySettingsStore({"defaultMaxResults": "lots", "defaultDirection": "inbound"})
        normalize_defaults(store)
        self.assertEqual(store.get("defaultMaxResults"), "lots")
        self.assertEqual(store.get("defaultDirection"), "inbound")

    def test_idempotent(self):
        store = MemorySettingsStore({"defaultStopId": None, "defaultLines": ["9", "9", " 1"], "defaultMinutesAhead": 30})
        normalize_defaults(store)
        snapshot = store.as_dict()
        writes = len(store.writes)

        self.assertFalse(normalize_defaults(store))
        self.assertEqual(len(store.writes), writes)
        self.assertEqual(store.as_dict(), snapshot)

    def test_get_defaults(self):
        store = MemorySettingsStore({"defaultStopId": "NSR:StopPlace:1", "defaultLines": ["12"]})
        d = get_defaults(store)
        self.assertEqual(d.stop_id, "NSR:StopPlace:1")
        self.assertEqual(d.stop_name, "")
        self.assertEqual(d.lines, ["12"])


if __name__ == "__main__":
    unittest.main()
