"""Drawing tracked regions onto frames and encoding annotated videos."""

from __future__ import annotations

import logging
import shutil
import subprocess
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from time import perf_counter
from typing import Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from track_overlay.effect import RegionProducer
from track_overlay.models import Rectangle


class BoxRenderer:
    """Draw a fractional-coordinate rectangle onto a BGR image."""

    def __init__(
        self,
        *,
        color: Tuple[int, int, int] = (255, 0, 0),
        thickness: int = 2,
    ) -> None:
        self.color = color
        self.thickness = max(1, thickness)

    def draw(self, image: np.ndarray, rectangle: Optional[Rectangle]) -> np.ndarray:
        """Draw ``rectangle`` in place. Empty images and ``None`` pass through untouched."""
        if rectangle is None or image is None or image.size == 0:
            return image

        frame_height, frame_width = image.shape[:2]
        x, y, width, height = rectangle.to_pixels(frame_width, frame_height)
        cv2.rectangle(image, (x, y), (x + width, y + height), self.color, self.thickness, cv2.LINE_8)
        return image


class VideoOverlayRenderer:
    """Run every frame of a video through a region producer and encode the result.

    Frame numbers handed to the producer start at 1.
    """

    def __init__(
        self,
        effect: RegionProducer,
        box_renderer: BoxRenderer,
        *,
        logger: logging.Logger,
        render_workers: int = 1,
        quality: int = 23,
    ) -> None:
        self.effect = effect
        self.box_renderer = box_renderer
        self.logger = logger
        self.render_workers = max(1, render_workers)
        self.quality = quality

    # ------------------------------------------------------------------
    # Frame annotation
    # ------------------------------------------------------------------

    def annotate_frame(self, frame_number: int, image: np.ndarray) -> np.ndarray:
        return self.box_renderer.draw(image, self.effect.compute(frame_number))

    def annotate_frames(
        self,
        images: Sequence[np.ndarray],
        *,
        first_frame: int = 1,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> List[np.ndarray]:
        """Annotate a batch of frames concurrently, preserving order."""
        if not images:
            return []
        if executor is None:
            with ThreadPoolExecutor(max_workers=self.render_workers) as owned:
                return self.annotate_frames(images, first_frame=first_frame, executor=owned)

        frame_numbers = range(first_frame, first_frame + len(images))
        return list(executor.map(self.annotate_frame, frame_numbers, images))

    # ------------------------------------------------------------------
    # Video pipeline
    # ------------------------------------------------------------------

    @staticmethod
    def iter_video_frames(input_path: Path) -> Iterator[np.ndarray]:
        capture = cv2.VideoCapture(str(input_path))
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"Failed to open video: {input_path}")
        try:
            while True:
                success, frame = capture.read()
                if not success:
                    break
                yield frame
        finally:
            capture.release()

    @staticmethod
    def probe_fps(input_path: Path, default: float = 30.0) -> float:
        capture = cv2.VideoCapture(str(input_path))
        try:
            fps = capture.get(cv2.CAP_PROP_FPS) if capture.isOpened() else 0.0
        finally:
            capture.release()
        return fps if fps and fps > 0 else default

    def encoded_frames(self, input_path: Path, *, batch_size: int = 32) -> Iterator[bytes]:
        """Yield PNG-encoded annotated frames, annotating ``batch_size`` at a time."""
        progress_start = perf_counter()
        frame_number = 1
        batch: List[np.ndarray] = []

        with ThreadPoolExecutor(max_workers=self.render_workers) as executor:

            def flush() -> Iterator[bytes]:
                nonlocal frame_number
                annotated = self.annotate_frames(batch, first_frame=frame_number, executor=executor)
                for offset, image in enumerate(annotated):
                    success, buffer = cv2.imencode(".png", image)
                    if not success:
                        raise RuntimeError(
                            f"Failed to encode frame {frame_number + offset} of {input_path}"
                        )
                    yield buffer.tobytes()
                frame_number += len(batch)
                batch.clear()
                elapsed = perf_counter() - progress_start
                self.logger.info(
                    "Overlay progress for '%s': %s frames (%0.1f fps)",
                    input_path.name,
                    frame_number - 1,
                    (frame_number - 1) / elapsed if elapsed > 0 else 0.0,
                )

            for image in self.iter_video_frames(input_path):
                batch.append(image)
                if len(batch) >= batch_size:
                    yield from flush()
            if batch:
                yield from flush()

    def render_video(self, input_path: Path, output_path: Path) -> None:
        input_path = Path(input_path)
        output_path = Path(output_path)
        fps = self.probe_fps(input_path)
        self.logger.info("Rendering overlay for '%s' at %0.3f fps", input_path, fps)
        self.encode_with_ffmpeg(self.encoded_frames(input_path), output_path, fps)
        self.logger.info("Wrote annotated video to '%s'", output_path)

    def encode_with_ffmpeg(
        self,
        frame_iter: Iterator[bytes],
        output_path: Path,
        fps: float,
    ) -> None:
        if shutil.which("ffmpeg") is None:
            raise RuntimeError("ffmpeg not found on PATH. Install ffmpeg with libx264.")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        temp_output = output_path.with_name(f".tmp_{uuid.uuid4().hex}_{output_path.name}")

        cmd = [
            "ffmpeg",
            "-y",
            "-loglevel",
            "error",
            "-nostats",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "-r",
            f"{fps:g}",
            "-i",
            "-",
            "-c:v",
            "libx264",
            "-crf",
            str(self.quality),
            "-pix_fmt",
            "yuv420p",
            "-movflags",
            "+faststart",
            str(temp_output),
        ]

        process = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )

        try:
            if process.stdin is None:
                raise RuntimeError("FFmpeg stdin unavailable")
            for frame_bytes in frame_iter:
                process.stdin.write(frame_bytes)
        except BaseException:
            process.kill()
            self._close_pipes(process)
            process.wait()
            temp_output.unlink(missing_ok=True)
            raise

        if process.stdin is not None:
            try:
                process.stdin.close()
            except OSError:
                pass

        stderr_bytes = process.stderr.read() if process.stderr is not None else b""
        if process.stderr is not None:
            process.stderr.close()

        return_code = process.wait()
        if return_code != 0:
            temp_output.unlink(missing_ok=True)
            raise subprocess.CalledProcessError(return_code, cmd, stderr=stderr_bytes)

        temp_output.replace(output_path)

    @staticmethod
    def _close_pipes(process: subprocess.Popen) -> None:
        for pipe in (process.stdin, process.stderr):
            if pipe is None:
                continue
            try:
                pipe.close()
            except OSError:
                pass


__all__ = ["BoxRenderer", "VideoOverlayRenderer"]
