from __future__ import annotations

from typing import Dict, Mapping, Sequence, Union


# 80-class COCO label set used by the reference YOLOv8n export.
COCO_CLASS_NAMES: Dict[int, str] = dict(
    enumerate(
        [
            "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
            "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat",
            "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack",
            "umbrella", "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball",
            "kite", "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket",
            "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
            "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair",
            "couch", "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
            "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
            "refrigerator", "book", "clock", "vase", "scissors", "teddy bear", "hair drier",
            "toothbrush",
        ]
    )
)


ClassNames = Union[Mapping[int, str], Sequence[str]]


def label_for(class_names: ClassNames, class_id: int) -> str:
    """Human-readable label for `class_id`; falls back to the id itself."""
    if isinstance(class_names, Mapping):
        return str(class_names.get(class_id, class_id))
    if 0 <= class_id < len(class_names):
        return str(class_names[class_id])
    return str(class_id)


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from the lightweight `metadata.yaml` format exported next to
    YOLO models:

        names:
          0: person
          1: bicycle
          ...

    Only the `names:` block is read, so no YAML parser is needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            # A new top-level key ends the block.
            if not raw[:1].isspace() and not line[:1].isdigit():
                break
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names
