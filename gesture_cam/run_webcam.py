#!/usr/bin/env python3
"""Classify a webcam frame on a fixed timer and log the top prediction.

Loads the TorchScript model and its metadata labels once, opens the default
camera, then captures, classifies and prints one line every interval until
the process is stopped.

Usage:
    python -m gesture_cam.run_webcam --config config/config.yaml
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import yaml

from gesture_cam.scheduler import CaptureScheduler
from gesture_cam.utils.config import load_config, create_directories
from gesture_cam.utils.errors import CaptureError, FatalStartupError
from gesture_cam.utils.frame_source import OpenCVFrameSource
from gesture_cam.utils.logger import setup_logger
from gesture_cam.utils.model_provider import load_model_and_labels, resolve_device


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Periodically classify webcam frames.")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to the YAML configuration file.")
    parser.add_argument("--interval-ms", type=int, default=None,
                        help="Milliseconds between captures (overrides config).")
    parser.add_argument("--camera-index", type=int, default=None,
                        help="Camera device index (overrides config).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, OSError, yaml.YAMLError) as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1
    create_directories(config)

    capture = config["capture"]
    if args.interval_ms is not None:
        if args.interval_ms <= 0:
            print("ERROR: --interval-ms must be positive", file=sys.stderr)
            return 1
        capture["interval_ms"] = args.interval_ms
    if args.camera_index is not None:
        capture["camera_index"] = args.camera_index

    # Setup logging for the whole package
    try:
        logger = setup_logger("gesture_cam", log_dir=config["paths"]["logs"])
    except OSError as e:
        print(f"WARNING: Could not setup file logging: {e}", file=sys.stderr)
        logger = setup_logger("gesture_cam", log_dir=None)

    inference = config["inference"]
    device = resolve_device(inference["device"])
    logger.info(f"Using device: {device}")

    try:
        model, labels = load_model_and_labels(
            config["paths"]["model"], config["paths"]["metadata"], device
        )
    except FatalStartupError as e:
        logger.error(f"Failed to start: {e}")
        return 1
    logger.debug(f"Labels: {list(labels)}")

    try:
        source = OpenCVFrameSource(
            camera_index=capture["camera_index"],
            width=capture["image_size"],
            height=capture["image_size"],
            encoding=capture["encoding"],
        )
    except CaptureError as e:
        logger.error(f"Failed to start: {e}")
        return 1

    interval_s = capture["interval_ms"] / 1000.0
    scheduler = CaptureScheduler(
        source,
        model,
        labels,
        interval_s=interval_s,
        input_size=capture["image_size"],
        device=device,
        channels_first=inference["channels_first"],
        apply_softmax=inference["apply_softmax"],
        capture_timeout=capture["timeout_s"],
    )

    print(f"Model loaded. Capturing from webcam every {interval_s:g} seconds...", flush=True)

    try:
        asyncio.run(scheduler.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        source.close()
        logger.info(
            f"Cycles completed: {scheduler.completed_cycles}, "
            f"failed: {scheduler.failed_cycles}, dropped ticks: {scheduler.dropped_ticks}"
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
