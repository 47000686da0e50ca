"""Exact pixel comparison of screenshots."""

from __future__ import annotations

import io
from functools import reduce

from PIL import Image, ImageChops


class ImageComparison:
    def __init__(self, same_size: bool, pixel_diff: int, diff: Image.Image | None = None):
        self.same_size = same_size
        self.pixel_diff = pixel_diff
        self.diff = diff

    @property
    def identical(self) -> bool:
        return self.same_size and self.pixel_diff == 0


def decode_png(data: bytes) -> Image.Image:
    """Decode screenshot bytes into an RGBA image."""
    with Image.open(io.BytesIO(data)) as img:
        return img.convert("RGBA")


def difference_mask(baseline: Image.Image, current: Image.Image) -> Image.Image:
    """Return an 'L' image holding the largest per-channel difference of each pixel."""
    diff = ImageChops.difference(baseline.convert("RGBA"), current.convert("RGBA"))
    return reduce(ImageChops.lighter, diff.split())


def highlight(baseline: Image.Image, mask: Image.Image) -> Image.Image:
    """Faded grayscale baseline with differing pixels painted red."""
    faded = Image.blend(
        baseline.convert("L").convert("RGB"),
        Image.new("RGB", baseline.size, (255, 255, 255)),
        0.7,
    )
    faded.paste((255, 0, 0), mask=mask.point(lambda v: 255 if v else 0))
    return faded


def compare_images(
    baseline: Image.Image, current: Image.Image, with_diff: bool = True
) -> ImageComparison:
    """Zero-tolerance comparison. Sizes are checked before any pixel work."""
    if baseline.size != current.size:
        bw, bh = baseline.size
        cw, ch = current.size
        return ImageComparison(False, abs(cw * ch - bw * bh))

    mask = difference_mask(baseline, current)
    pixel_diff = baseline.width * baseline.height - mask.histogram()[0]
    diff = highlight(baseline, mask) if with_diff and pixel_diff else None
    return ImageComparison(True, pixel_diff, diff)
