"""
Thumbnail generation via FFmpeg (ffmpeg-python).

Produces a square JPEG from a downloaded EPIC PNG. The source frames are
square (2048x2048), so scaling to size x size keeps the aspect ratio.
"""

import ffmpeg
import tempfile
from pathlib import Path

from epic_sync.errors import ResizeError


def resize_image(
    original: str | Path,
    size: int,
    name: str,
    output_dir: str | Path | None = None,
) -> Path:
    """
    Write ``{output_dir}/{name}_{size}x{size}.jpg`` scaled from *original*.

    *output_dir* defaults to the system temp directory.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")

    output_dir = Path(output_dir) if output_dir else Path(tempfile.gettempdir())
    output_dir.mkdir(parents=True, exist_ok=True)
    out = output_dir / f"{name}_{size}x{size}.jpg"

    stream = ffmpeg.input(str(original))
    stream = ffmpeg.filter(stream, "scale", size, size)
    stream = ffmpeg.output(stream, str(out), vframes=1)
    stream = ffmpeg.overwrite_output(stream)

    try:
        ffmpeg.run(stream, quiet=True)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else ""
        raise ResizeError(f"ffmpeg failed resizing {original}: {stderr.strip()}") from e
    except FileNotFoundError as e:
        raise ResizeError("ffmpeg executable not found on PATH") from e

    print(f"[RESIZE] {Path(original).name} -> {out.name}")
    return out
