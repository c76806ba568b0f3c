from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Sequence

from .backends import model_loader
from .config import DetectorConfig, load_detector_config
from .labels import COCO_CLASS_NAMES, load_class_names
from .logs import setup_logging
from .model_cache import ModelCache
from .pipeline import DetectionPipeline, detect_image
from .render import OpenCVRenderer
from .scheduler import FrameScheduler
from .sources import OpenCVCaptureSource, read_image


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Real-time YOLO object detection on a webcam, video or image.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image (single-shot detection).")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--config", default=None, help="Detector config JSON; CLI flags override its values.")
    parser.add_argument("--model", default=None, help="Path to a YOLO model (.onnx/.pt/.torchscript).")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument("--metadata", default=None, help="Path to class metadata (names mapping).")
    parser.add_argument("--imgsz", type=int, default=None, help="Letterbox input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Score threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--per-class-nms", action="store_true", help="Run NMS per class instead of across classes.")
    parser.add_argument("--period", type=float, default=None, help="Tick period in seconds for streaming sources.")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop streaming after N seconds (0 = until Ctrl+C).")
    parser.add_argument("--log-level", default=None, help="DEBUG / INFO / WARNING / ERROR.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path for the annotated image.")
    return parser


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    if args.config:
        cfg = load_detector_config(Path(args.config))
    elif args.model:
        cfg = DetectorConfig(model_path=args.model)
    else:
        raise ValueError("Provide --model or --config.")

    overrides: Dict[str, object] = {}
    if args.model:
        overrides["model_path"] = args.model
    if args.backend:
        overrides["backend"] = args.backend
    if args.metadata:
        overrides["class_names_path"] = args.metadata
    if args.imgsz is not None:
        if args.imgsz < 32:
            raise ValueError("--imgsz must be >= 32")
        overrides["input_size"] = (int(args.imgsz), int(args.imgsz))
    if args.conf is not None:
        overrides["score_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    if args.per_class_nms:
        overrides["class_agnostic_nms"] = False
    if args.period is not None:
        overrides["tick_period_s"] = float(args.period)
    if args.log_level:
        overrides["log_level"] = str(args.log_level).upper()
    return replace(cfg, **overrides) if overrides else cfg


def build_pipeline(cfg: DetectorConfig) -> DetectionPipeline:
    class_names = load_class_names(cfg.class_names_path) if cfg.class_names_path else COCO_CLASS_NAMES
    loader = model_loader(
        cfg.model_path,
        backend=cfg.backend,
        onnx_providers=list(cfg.onnx_providers) if cfg.onnx_providers else None,
    )
    return DetectionPipeline(ModelCache(loader), class_names=class_names, cfg=cfg.pipeline_config())


async def run_image(pipeline: DetectionPipeline, image_path: str, *, out: Optional[str], show: bool) -> int:
    frame = read_image(image_path)
    renderer = OpenCVRenderer(show=False)
    result = await detect_image(pipeline, frame, renderer)

    for det in result.detections:
        print(det.label, f"{det.score:.3f}", tuple(round(v, 1) for v in det.box.as_xywh()))
    print(f"Inference Time: {result.inference_ms:.2f} ms | Objects detected: {len(result)}")

    if out or show:
        import cv2  # type: ignore

        vis = cv2.cvtColor(renderer.last_image, cv2.COLOR_RGB2BGR)
        if out:
            if not cv2.imwrite(out, vis):
                raise RuntimeError(f"Failed to write output image: {out}")
        if show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()
    return 0


async def run_stream(
    pipeline: DetectionPipeline,
    source: OpenCVCaptureSource,
    *,
    period_s: float,
    duration: float,
    show: bool,
) -> int:
    renderer = OpenCVRenderer(show=show)
    scheduler = FrameScheduler(source, pipeline, renderer, period_s=period_s, on_status=print)
    try:
        async with scheduler:
            if duration > 0:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
    finally:
        renderer.close()
        logger.info(
            "ticks=%d detect_calls=%d skipped=%d",
            scheduler.ticks,
            scheduler.detect_calls,
            scheduler.skipped_ticks,
        )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = resolve_config(args)
    except ValueError as exc:
        parser.error(str(exc))
    setup_logging(cfg.log_level)

    pipeline = build_pipeline(cfg)

    if args.image is not None:
        return asyncio.run(run_image(pipeline, args.image, out=args.out, show=args.show))

    if args.video is not None:
        source = OpenCVCaptureSource(video=args.video)
    else:
        source = OpenCVCaptureSource(webcam=int(args.webcam))

    try:
        return asyncio.run(
            run_stream(pipeline, source, period_s=cfg.tick_period_s, duration=float(args.duration), show=args.show)
        )
    except KeyboardInterrupt:
        print("Webcam detection stopped")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
