import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from yolo_postkit.cli import format_detection, main
from yolo_postkit.types import Detection


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)

        config = {
            "num_classes": 2,
            "letterbox_rows": 64,
            "letterbox_cols": 64,
            "anchors": [8] * 18,
            "prob_threshold": 0.25,
        }
        self.config_path = self.root / "post.json"
        self.config_path.write_text(json.dumps(config), encoding="utf-8")

        self.output_paths = []
        for stride in (8, 16, 32):
            feat = np.full((3, 64 // stride, 64 // stride, 7), -20.0, dtype=np.float32)
            if stride == 8:
                feat[0, 2, 3, 0:4] = 0.0
                feat[0, 2, 3, 4] = 5.0
                feat[0, 2, 3, 6] = 5.0
            path = self.root / f"stride{stride}.npy"
            np.save(path, feat.reshape(-1))
            self.output_paths.append(str(path))

        self.names_path = self.root / "metadata.yaml"
        self.names_path.write_text("names:\n  0: person\n  1: bicycle\n", encoding="utf-8")

    def test_format_detection(self) -> None:
        det = Detection(x=10, y=20, width=30, height=40, score=0.875, label=1)
        self.assertEqual(format_detection(det, {1: "bicycle"}), " 1:  88%, [  10,   20,   40,   60], bicycle")

    def test_main_prints_detections(self) -> None:
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            rc = main(
                [
                    *self.output_paths,
                    "--src-size",
                    "64",
                    "64",
                    "--config",
                    str(self.config_path),
                    "--names",
                    str(self.names_path),
                ]
            )
        self.assertEqual(rc, 0)
        lines = buf.getvalue().strip().splitlines()
        self.assertEqual(len(lines), 1)
        self.assertTrue(lines[0].startswith(" 1:"))
        self.assertTrue(lines[0].endswith("bicycle"))
        self.assertIn("[  24,   16,   32,   24]", lines[0])

    def test_threshold_override(self) -> None:
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            main([*self.output_paths, "--src-size", "64", "64", "--config", str(self.config_path), "--conf", "1.0"])
        self.assertEqual(buf.getvalue(), "")

    def test_missing_dump(self) -> None:
        with self.assertRaises(FileNotFoundError):
            main([str(self.root / "nope.npy"), "--src-size", "64", "64", "--config", str(self.config_path)])


if __name__ == "__main__":
    unittest.main()
