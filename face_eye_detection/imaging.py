"""Pure pixel-format conversions between camera frames, working images and display buffers."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True)
class Frame:
    """Immutable RGBA snapshot from the frame source.

    ``pixels`` has shape (height, width, 4). ``bottom_up`` tells whether the
    first stored row is the bottom row of the picture (texture convention)
    rather than the top one (OpenCV convention).
    """

    pixels: np.ndarray
    bottom_up: bool = False

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Frame pixels must be (H, W, 4), got {self.pixels.shape}")
        pixels = np.array(self.pixels, dtype=np.uint8, copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


def frame_to_working_image(frame: Frame) -> np.ndarray:
    """Return a top-to-bottom (H, W, 3) RGB uint8 image; alpha is dropped."""
    rgb = frame.pixels[:, :, :3]
    if frame.bottom_up:
        rgb = rgb[::-1]
    return np.array(rgb, dtype=np.uint8, order="C")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an (H, W, 3) RGB image to a single-channel (H, W) image."""
    if image.size == 0:
        return np.zeros(image.shape[:2], dtype=np.uint8)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def gray_to_rgba(gray: np.ndarray) -> np.ndarray:
    """Replicate gray into R, G and B with an opaque alpha channel."""
    rgba = np.empty((*gray.shape[:2], 4), dtype=np.uint8)
    rgba[:, :, :3] = gray[:, :, np.newaxis]
    rgba[:, :, 3] = 255
    return rgba


def bgr_to_frame(image: np.ndarray) -> Frame:
    """Wrap an OpenCV BGR capture as a top-down RGBA Frame."""
    return Frame(cv2.cvtColor(image, cv2.COLOR_BGR2RGBA), bottom_up=False)
