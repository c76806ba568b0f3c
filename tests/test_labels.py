import tempfile
import unittest
from pathlib import Path

from yolo_live.labels import COCO_CLASS_NAMES, label_for, load_class_names


class TestLabels(unittest.TestCase):
    def test_coco_table(self) -> None:
        self.assertEqual(len(COCO_CLASS_NAMES), 80)
        self.assertEqual(COCO_CLASS_NAMES[0], "person")
        self.assertEqual(COCO_CLASS_NAMES[5], "bus")
        self.assertEqual(COCO_CLASS_NAMES[79], "toothbrush")

    def test_label_for_fallback(self) -> None:
        self.assertEqual(label_for(COCO_CLASS_NAMES, 2), "car")
        self.assertEqual(label_for(COCO_CLASS_NAMES, 80), "80")
        self.assertEqual(label_for(["a", "b"], 1), "b")
        self.assertEqual(label_for(["a", "b"], 5), "5")

    def test_load_class_names(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "metadata.yaml"
            path.write_text(
                "description: exported model\n"
                "names:\n"
                "  0: person\n"
                "  # comment\n"
                "  1: 'hard hat'\n"
                "  2: \"vest\"\n"
                "imgsz:\n"
                "  - 640\n",
                encoding="utf-8",
            )
            names = load_class_names(str(path))
        self.assertEqual(names, {0: "person", 1: "hard hat", 2: "vest"})


if __name__ == "__main__":
    unittest.main()
