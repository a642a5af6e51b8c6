"""Tests for font catalog loading and lookup."""
import shutil
import tempfile
import unittest
from pathlib import Path

from fonts import FONT_FILES, FontAsset, FontCatalog, Script, Weight
from support import VERA_BOLD, VERA_REGULAR, vera_catalog


class FontCatalogLoadTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.fonts_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_registers_present_files_and_skips_missing(self) -> None:
        shutil.copy(VERA_BOLD, self.fonts_dir / "Inter_18pt-SemiBold.ttf")
        shutil.copy(VERA_REGULAR, self.fonts_dir / "Inter_18pt-Light.ttf")

        catalog = FontCatalog.load(self.fonts_dir)

        self.assertEqual(catalog.families, ["Inter-Light", "Inter-SemiBold"])
        asset = catalog.asset("Inter-SemiBold")
        self.assertEqual(asset.script, Script.LATIN)
        self.assertEqual(asset.weight, Weight.BOLD)
        self.assertIsNone(catalog.asset("Amiri-Bold"))

    def test_unreadable_font_file_is_skipped(self) -> None:
        (self.fonts_dir / "Amiri-Bold.ttf").write_bytes(b"not a font")
        shutil.copy(VERA_REGULAR, self.fonts_dir / "Amiri-Regular.ttf")

        catalog = FontCatalog.load(self.fonts_dir)

        self.assertEqual(catalog.families, ["Amiri-Regular"])

    def test_table_covers_two_weights_per_script(self) -> None:
        pairs = {(script, weight) for _, script, weight, _ in FONT_FILES}
        self.assertEqual(len(pairs), 4)


class FontCatalogLookupTest(unittest.TestCase):
    def test_font_is_sized(self) -> None:
        catalog = vera_catalog()
        small = catalog.font("Inter-SemiBold", 20)
        large = catalog.font("Inter-SemiBold", 80)
        self.assertEqual(small.size, 20)
        self.assertGreater(large.getlength("Dear"), small.getlength("Dear"))

    def test_same_size_returns_shared_font(self) -> None:
        catalog = vera_catalog()
        self.assertIs(catalog.font("Inter-Light", 64), catalog.font("Inter-Light", 64))

    def test_unknown_family_falls_back_to_default_font(self) -> None:
        catalog = FontCatalog([])
        font = catalog.font("Nope-Bold", 40)
        self.assertGreater(font.getlength("Dear"), 0)

    def test_unknown_family_warned_once_per_family(self) -> None:
        catalog = FontCatalog([])
        with self.assertLogs("fonts", level="WARNING") as logs:
            for size in (128, 115, 103, 92):
                catalog.font("Nope-Bold", size)
                catalog.font("Nope-Light", size)
        self.assertEqual(len(logs.records), 2)
        self.assertIn("Nope-Bold", logs.output[0])
        self.assertIn("Nope-Light", logs.output[1])

    def test_duplicate_family_rejected(self) -> None:
        asset = FontAsset("Inter-Light", Script.LATIN, Weight.REGULAR, VERA_REGULAR)
        with self.assertRaises(ValueError):
            FontCatalog([asset, asset])


if __name__ == "__main__":
    unittest.main()
