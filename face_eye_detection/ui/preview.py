"""Pygame window showing the annotated grayscale face/eye preview."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
import pygame

from face_eye_detection.camera import DEFAULT_HEIGHT, DEFAULT_WIDTH, CameraSource
from face_eye_detection.driver import PreviewDriver
from face_eye_detection.errors import InitializationError
from face_eye_detection.vision import (
    EYE_CASCADE,
    FACE_CASCADE,
    FACTOR_SCALE_EYE,
    FACTOR_SCALE_FACE,
    MIN_NEIGHBORS,
    MIN_SIZE,
    DetectionParams,
    DetectionPipeline,
)

# Display layout
WINDOW_WIDTH, WINDOW_HEIGHT = 688, 600
VIDEO_SIZE = (640, 480)
PADDING = 24
BG_COLOR = (16, 18, 24)
VIDEO_BG = (26, 29, 36)
TEXT_COLOR = (230, 233, 240)
FPS = 30
QUIT_KEYS = (pygame.K_ESCAPE, pygame.K_x)


@dataclass(frozen=True)
class Layout:
    """UI sizing and spacing configuration."""

    window_width: int = WINDOW_WIDTH
    window_height: int = WINDOW_HEIGHT
    video_size: tuple[int, int] = VIDEO_SIZE
    padding: int = PADDING


def buffer_to_surface(buffer: np.ndarray, video_size: tuple[int, int], mirror: bool = False) -> pygame.Surface:
    """Convert an (H, W, 4) RGBA buffer to a pygame surface sized to the video viewport."""
    rgb = cv2.resize(np.ascontiguousarray(buffer[:, :, :3]), video_size, interpolation=cv2.INTER_NEAREST)
    if mirror:
        rgb = cv2.flip(rgb, 1)
    # surfarray indexes pixels as [x][y]
    return pygame.surfarray.make_surface(np.transpose(rgb, (1, 0, 2)))


class PygameSink:
    """Keeps the most recently presented buffer as a surface; display thread only."""

    def __init__(self, video_size: tuple[int, int], mirror: bool = False):
        self.video_size = video_size
        self.mirror = mirror
        self.surface: Optional[pygame.Surface] = None

    def present(self, buffer: np.ndarray, width: int, height: int) -> None:
        if buffer.shape[:2] != (height, width):
            raise ValueError(f"Buffer shape {buffer.shape[:2]} does not match {width}x{height}")
        if width == 0 or height == 0:
            return
        self.surface = buffer_to_surface(buffer, self.video_size, self.mirror)


def status_line(driver: PreviewDriver) -> str:
    stats = driver.scheduler.stats
    result = driver.last_result
    if result is None:
        return f"Waiting for first frame... (skipped {stats.skipped}, failed {stats.failed})"
    return (
        f"Faces: {len(result.faces)}  Eyes: {len(result.eyes)}  "
        f"Latency: {result.elapsed_ms:.0f} ms  Skipped: {stats.skipped}  Failed: {stats.failed}"
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """CLI entry point arguments."""
    parser = argparse.ArgumentParser(description="Live face and eye detection preview")
    parser.add_argument("--camera-index", type=int, default=0, help="OpenCV camera device index")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Capture width in pixels")
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT, help="Capture height in pixels")
    parser.add_argument(
        "--face-cascade",
        default=FACE_CASCADE,
        help="Face cascade XML (path, or file name inside OpenCV's haarcascades directory)",
    )
    parser.add_argument(
        "--eye-cascade",
        default=EYE_CASCADE,
        help="Eye cascade XML (path, or file name inside OpenCV's haarcascades directory)",
    )
    parser.add_argument("--face-scale-factor", type=float, default=FACTOR_SCALE_FACE)
    parser.add_argument("--eye-scale-factor", type=float, default=FACTOR_SCALE_EYE)
    parser.add_argument(
        "--min-size",
        type=int,
        default=MIN_SIZE,
        help="Smallest detection window in pixels, used by both passes",
    )
    parser.add_argument(
        "--min-neighbors",
        type=int,
        default=MIN_NEIGHBORS,
        help="Neighbouring candidates required to keep a detection",
    )
    parser.add_argument("--workers", type=int, default=1, help="Detection worker threads")
    parser.add_argument("--mirror", action="store_true", help="Mirror the preview horizontally")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity for diagnostics",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure root logger output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def build_pipeline(args: argparse.Namespace) -> DetectionPipeline:
    try:
        face_params = DetectionParams(args.face_scale_factor, args.min_size, args.min_neighbors)
        eye_params = DetectionParams(args.eye_scale_factor, args.min_size, args.min_neighbors)
    except ValueError as exc:
        raise InitializationError(str(exc)) from exc
    return DetectionPipeline.from_cascades(args.face_cascade, args.eye_cascade, face_params, eye_params)


def open_window(layout: Layout) -> pygame.Surface:
    try:
        screen = pygame.display.set_mode((layout.window_width, layout.window_height))
    except pygame.error as exc:
        raise InitializationError(f"No display available: {exc}") from exc
    pygame.display.set_caption("Face & Eye Detection")
    return screen


def run(args: argparse.Namespace) -> None:
    pipeline = build_pipeline(args)

    pygame.init()
    layout = Layout()
    screen = open_window(layout)
    text_font = pygame.font.SysFont("Arial", 16)
    clock = pygame.time.Clock()

    sink = PygameSink(layout.video_size, mirror=args.mirror)
    source = CameraSource(args.camera_index, args.width, args.height)
    driver = PreviewDriver(source, pipeline, sink, max_workers=args.workers)
    driver.start()

    video_rect = pygame.Rect(layout.padding, layout.padding, layout.video_size[0], layout.video_size[1])
    running = True
    try:
        while running:
            clock.tick(FPS)
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key in QUIT_KEYS:
                    running = False

            driver.tick()

            screen.fill(BG_COLOR)
            pygame.draw.rect(screen, VIDEO_BG, video_rect, border_radius=12)
            if sink.surface:
                screen.blit(sink.surface, video_rect)
            else:
                placeholder = text_font.render(source.status or "Waiting for video...", True, TEXT_COLOR)
                screen.blit(placeholder, placeholder.get_rect(center=video_rect.center))
            screen.blit(
                text_font.render(status_line(driver), True, TEXT_COLOR),
                (video_rect.left, video_rect.bottom + 20),
            )
            pygame.display.flip()
    finally:
        driver.stop()


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        run(args)
    except InitializationError as exc:
        logging.error("Preview disabled: %s", exc)
        pygame.quit()
        sys.exit(1)
    except KeyboardInterrupt:
        pygame.quit()
        sys.exit()
    except Exception as exc:  # noqa: BLE001
        logging.exception("Fatal error: %s", exc)
        pygame.quit()
        sys.exit(1)
    pygame.quit()


if __name__ == "__main__":
    main()
