import tempfile
import unittest
from pathlib import Path

from yolo_postkit.metadata import class_name, load_class_names


class TestClassNames(unittest.TestCase):
    def test_load_names_block(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "metadata.yaml"
        path.write_text(
            "description: test model\n"
            "names:\n"
            "  0: person\n"
            "  # comment\n"
            "  1: 'bicycle'\n"
            '  2: "car"\n'
            "imgsz:\n"
            "  0: 640\n",
            encoding="utf-8",
        )
        names = load_class_names(str(path))
        self.assertEqual(names, {0: "person", 1: "bicycle", 2: "car"})

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_class_names("does/not/exist.yaml")

    def test_class_name_fallback(self) -> None:
        self.assertEqual(class_name({0: "person"}, 0), "person")
        self.assertEqual(class_name({0: "person"}, 7), "7")
        self.assertEqual(class_name(None, 3), "3")


if __name__ == "__main__":
    unittest.main()
