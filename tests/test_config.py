import json
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path

from yolo_live.config import DetectorConfig, detector_config_from_dict, load_detector_config


class TestDetectorConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = DetectorConfig(model_path="models/yolov8n.onnx")
        self.assertEqual(cfg.input_size, (640, 640))
        self.assertEqual(cfg.score_threshold, 0.2)
        self.assertEqual(cfg.iou_threshold, 0.45)
        self.assertEqual(cfg.tick_period_s, 0.1)
        self.assertTrue(cfg.class_agnostic_nms)

    def test_pipeline_config(self) -> None:
        cfg = DetectorConfig(model_path="m.onnx", input_size=(320, 256), score_threshold=0.3, max_outputs=10, num_classes=3)
        pc = cfg.pipeline_config()
        self.assertEqual(pc.input_size, (320, 256))
        self.assertEqual(pc.score_threshold, 0.3)
        self.assertEqual(pc.max_outputs, 10)
        self.assertEqual(pc.num_classes, 3)

    def test_validation(self) -> None:
        bad = [
            {"model_path": ""},
            {"model_path": "m.onnx", "score_threshold": 1.5},
            {"model_path": "m.onnx", "iou_threshold": -0.1},
            {"model_path": "m.onnx", "tick_period_s": 0},
            {"model_path": "m.onnx", "input_size": (0, 640)},
            {"model_path": "m.onnx", "max_outputs": 0},
            {"model_path": "m.onnx", "num_classes": 0},
            {"model_path": "m.onnx", "backend": "tensorflow"},
            {"model_path": "m.onnx", "log_level": "LOUD"},
        ]
        for kwargs in bad:
            with self.assertRaises(ValueError, msg=str(kwargs)):
                DetectorConfig(**kwargs)

    def test_replace_revalidates(self) -> None:
        cfg = DetectorConfig(model_path="m.onnx")
        with self.assertRaises(ValueError):
            replace(cfg, score_threshold=2.0)


class TestLoadDetectorConfig(unittest.TestCase):
    def _write(self, payload) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        path = Path(tmp.name) / "detector.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load(self) -> None:
        path = self._write(
            {
                "model_path": "models/yolov8n.onnx",
                "input_size": 512,
                "score_threshold": 0.25,
                "onnx_providers": "CUDAExecutionProvider, CPUExecutionProvider",
                "log_level": "debug",
            }
        )
        cfg = load_detector_config(path)
        self.assertEqual(cfg.input_size, (512, 512))
        self.assertEqual(cfg.score_threshold, 0.25)
        self.assertEqual(cfg.onnx_providers, ("CUDAExecutionProvider", "CPUExecutionProvider"))
        self.assertEqual(cfg.log_level, "DEBUG")

    def test_unknown_keys(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"model_path": "m.onnx", "fps": 10}))

    def test_wrong_types(self) -> None:
        for payload in [
            {"model_path": 3},
            {"model_path": "m.onnx", "score_threshold": "high"},
            {"model_path": "m.onnx", "score_threshold": True},
            {"model_path": "m.onnx", "input_size": [640]},
            {"model_path": "m.onnx", "class_agnostic_nms": "yes"},
            {"model_path": "m.onnx", "max_outputs": 2.5},
        ]:
            with self.assertRaises(ValueError, msg=str(payload)):
                detector_config_from_dict(payload)

    def test_missing_model_path(self) -> None:
        with self.assertRaises(ValueError):
            detector_config_from_dict({})

    def test_not_an_object(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write([1, 2, 3]))

    def test_invalid_json(self) -> None:
        path = self._write({})
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_detector_config(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_detector_config(Path("does/not/exist.json"))


if __name__ == "__main__":
    unittest.main()
