import argparse
import logging
import sys
from typing import List, Optional

import cv2

from core.config import ConfigError
from core.frame_processor import FrameProcessor
from core.renderer import OverlayRenderer
from core.video_capture import FrameSource, IntervalThrottle
from utils.config_manager import DEFAULT_CONFIG_PATH, ConfigManager
from utils.logging_setup import setup_logging

logger = logging.getLogger("app")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Estimate a smoothed horizon line from video or images.")
    parser.add_argument("source", help="Video file, image file or camera index")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML configuration file")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config value, e.g. --set horizon.smooth_frames=7",
    )
    parser.add_argument("--output", help="Write the annotated frames to this video file (or image for still input)")
    parser.add_argument("--show", action="store_true", help="Display the annotated stream in a window")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after this many processed frames")
    parser.add_argument("--log-level", help="Overrides logging.level from the config")
    parser.add_argument(
        "--debug-view",
        action="store_true",
        help="Draw every detected segment colored by class (same as renderer.debug.enabled)",
    )
    parser.add_argument("--debug-output", help="Write the gray/edges/segments panel of the last processed frame here")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    try:
        config = ConfigManager(args.config)
        for assignment in args.overrides:
            config.apply_override(assignment)
        if args.debug_view:
            config.set_value("renderer.debug.enabled", True)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    setup_logging(
        level=args.log_level or config.get_value("logging.level", "INFO"),
        log_file=config.get_value("logging.log_file", ""),
        module_levels=config.get_value("logging.levels", {}),
    )

    try:
        processing = config.processing_config()
        processor = FrameProcessor(config.horizon_config(), config.detector_config())
        renderer = OverlayRenderer(config.renderer_config())
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    throttle = IntervalThrottle(processing.process_interval_ms)
    source = FrameSource(args.source, process_size=processing.size)
    # Live cameras carry no usable container timestamps
    use_wall_clock = isinstance(source.source, int)

    writer: Optional[cv2.VideoWriter] = None
    analysis = None
    processed = 0

    try:
        source.open()
    except IOError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Starting horizon estimation on %r", args.source)
    try:
        for ts, frame, small in source.frames():
            if throttle.ready(None if use_wall_clock else ts):
                analysis = processor.process(small)
                processed += 1
                if analysis.horizon is not None:
                    hz = analysis.horizon
                    logger.info(
                        "t=%.0fms horizon y=%.1f angle=%.2f confidence=%.2f segments=%d walls=%d",
                        ts,
                        hz.y,
                        hz.angle,
                        hz.confidence,
                        hz.segment_count,
                        len(analysis.walls),
                    )
                else:
                    logger.info("t=%.0fms no horizon (walls=%d)", ts, len(analysis.walls))

            layers = processor.last_layers
            base = frame
            if renderer.show_debug and layers is not None:
                base = renderer.render_segments(frame, layers.segments, processor.classifier, processing.size)
            annotated = renderer.render(base, analysis, processing.size)

            if args.debug_output and layers is not None:
                cv2.imwrite(args.debug_output, renderer.render_debug_panel(layers, processor.classifier))

            if args.output:
                if source.is_image:
                    cv2.imwrite(args.output, annotated)
                else:
                    if writer is None:
                        fps = source.fps or 1000.0 / max(processing.process_interval_ms, 1.0)
                        h, w = annotated.shape[:2]
                        writer = cv2.VideoWriter(args.output, cv2.VideoWriter_fourcc(*"mp4v"), fps, (w, h))
                    writer.write(annotated)

            if args.show:
                cv2.imshow("horizon", annotated)
                if renderer.show_debug and layers is not None:
                    cv2.imshow("horizon debug", renderer.render_debug_panel(layers, processor.classifier))
                if cv2.waitKey(0 if source.is_image else 1) & 0xFF in (27, ord("q")):
                    break

            if args.max_frames and processed >= args.max_frames:
                break
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        source.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    logger.info(
        "Processed %d frame(s), horizon found in %.0f%%",
        processor.frames_processed,
        processor.detection_rate * 100.0,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    try:
        return run(parse_args(argv))
    except ValueError as exc:
        logging.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
