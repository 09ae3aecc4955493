"""
End-to-end tests for the command-line interface.
"""

import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from PIL import Image

import duotone_cli
from duotone_config import ConfigValidationError
from duotone_lib import PALETTES, PaletteKind


class TestCli(unittest.TestCase):
    """Run main() against job files in a scratch directory."""

    def setUp(self):
        root = logging.getLogger()
        self.saved_handlers = list(root.handlers)
        self.saved_level = root.level
        self.tmpdir = Path(tempfile.mkdtemp())
        Image.linear_gradient('L').resize((40, 30)).save(self.tmpdir / "photo.png")

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if handler not in self.saved_handlers:
                handler.close()
            root.removeHandler(handler)
        for handler in self.saved_handlers:
            root.addHandler(handler)
        root.setLevel(self.saved_level)
        shutil.rmtree(self.tmpdir)

    def run_main(self, *argv):
        with self.assertRaises(SystemExit) as cm:
            duotone_cli.main(list(argv))
        return cm.exception.code

    def write_config(self, config):
        path = self.tmpdir / "job.json"
        path.write_text(json.dumps(config), encoding='utf-8')
        return str(path)

    def test_single_image(self):
        """A single image job writes its output and exits 0."""
        path = self.write_config({"input": "photo.png", "output": "out/photo.png", "workers": 1})
        self.assertEqual(self.run_main(path, "-q"), 0)
        with Image.open(self.tmpdir / "out" / "photo.png") as img:
            self.assertEqual(img.size, (40, 30))

    def test_raster_mode(self):
        """Raster jobs write a two-color image."""
        path = self.write_config({
            "input": "photo.png", "output": "raster.png", "mode": "raster",
            "raster": {"style": "screen_print", "cell_size": 4}, "workers": 1
        })
        self.assertEqual(self.run_main(path, "-q"), 0)
        with Image.open(self.tmpdir / "raster.png") as img:
            colors = {px[:3] for px in img.convert('RGBA').getdata()}
        self.assertTrue(colors <= set(PALETTES[PaletteKind.OPTIMIZED]))

    def test_folder(self):
        """Folder jobs render every image with the duotone suffix."""
        folder = self.tmpdir / "photos"
        folder.mkdir()
        for name in ("one.png", "two.jpg"):
            Image.new('RGB', (12, 9), (90, 120, 30)).save(folder / name)
        (folder / "readme.txt").write_text("skip me")
        path = self.write_config({"input": "photos", "output": "rendered", "workers": 1})
        self.assertEqual(self.run_main(path, "-q"), 0)
        outputs = sorted(p.name for p in (self.tmpdir / "rendered").iterdir())
        self.assertEqual(outputs, ["one_duotone.png", "two_duotone.png"])

    def test_empty_folder_fails(self):
        """A folder without images fails."""
        (self.tmpdir / "empty").mkdir()
        path = self.write_config({"input": "empty", "output": "rendered"})
        self.assertEqual(self.run_main(path, "-q"), 1)

    def test_unreadable_image_fails(self):
        """An undecodable image fails the job."""
        (self.tmpdir / "broken.png").write_bytes(b"garbage")
        path = self.write_config({"input": "broken.png", "output": "out.png"})
        self.assertEqual(self.run_main(path, "-q"), 1)

    def test_invalid_config(self):
        """An invalid config exits 1 without writing output."""
        path = self.write_config({"input": "photo.png", "output": "out.png", "mode": "sepia"})
        self.assertEqual(self.run_main(path, "-q"), 1)
        self.assertFalse((self.tmpdir / "out.png").exists())

    def test_missing_config(self):
        """A missing config file exits 1."""
        self.assertEqual(self.run_main(str(self.tmpdir / "absent.json"), "-q"), 1)

    def test_no_config(self):
        """Running without a config exits 1."""
        self.assertEqual(self.run_main("-q"), 1)

    def test_example_config(self):
        """The example config is printed and exits 0."""
        self.assertEqual(self.run_main("--example-config"), 0)

    def test_help(self):
        """Help is printed and exits 0."""
        self.assertEqual(self.run_main("--help"), 0)

    def test_log_file(self):
        """Log messages are also written to the log file."""
        log_path = self.tmpdir / "run.log"
        path = self.write_config({"input": "photo.png", "output": "logged.png", "workers": 1})
        self.assertEqual(self.run_main(path, "--log-file", str(log_path)), 0)
        for handler in logging.getLogger().handlers:
            handler.flush()
        self.assertIn("Saved to", log_path.read_text(encoding='utf-8'))

    def test_detect_mode(self):
        """Folders and image files are told apart."""
        self.assertEqual(duotone_cli.detect_mode(self.tmpdir), "folder")
        self.assertEqual(duotone_cli.detect_mode(self.tmpdir / "photo.png"), "image")
        notes = self.tmpdir / "notes.txt"
        notes.write_text("x")
        with self.assertRaises(ConfigValidationError):
            duotone_cli.detect_mode(notes)


if __name__ == '__main__':
    unittest.main()
