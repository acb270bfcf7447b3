"""
FFmpeg adapter for scene rendering and final assembly.

The encoder is treated as an opaque, slow external command. Every operation
has a pure ``build_*_command`` counterpart that returns the argument list
without executing it, so command construction can be tested without FFmpeg.

Operations:
1. render_video_scene - loop a downloaded clip to a fixed duration
2. render_image_scene - turn a still image into a fixed-duration clip
3. concatenate       - join segments in order without re-encoding
4. mux_audio         - copy the video stream and add an AAC audio track
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from storyreel.config import get_settings
from storyreel.exceptions import EncoderError, MissingSegmentFileError

logger = logging.getLogger(__name__)

# Keep the end of FFmpeg's stderr; the useful diagnostics are printed last
STDERR_TAIL_CHARS = 2000


def _stderr_tail(stderr_text: str) -> str:
    text = stderr_text.strip()
    if len(text) <= STDERR_TAIL_CHARS:
        return text
    return "..." + text[-STDERR_TAIL_CHARS:]


class MediaEncoder:
    """Runs FFmpeg with explicit parameters for each pipeline stage."""

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fps: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.width = width if width is not None else settings.render_width
        self.height = height if height is not None else settings.render_height
        self.fps = fps if fps is not None else settings.render_fps
        self.timeout_s = timeout_s if timeout_s is not None else settings.ffmpeg_timeout_s
        self.video_codec = settings.render_video_codec
        self.audio_codec = settings.render_audio_codec
        self.audio_bitrate = settings.render_audio_bitrate

    # ========================================================================
    # Command builders
    # ========================================================================

    def _normalize_filter(self) -> str:
        """Fit any frame into the output size so segments can be stream-copied."""
        return (
            f"scale=w={self.width}:h={self.height}:force_original_aspect_ratio=decrease,"
            f"pad={self.width}:{self.height}:(ow-iw)/2:(oh-ih)/2,"
            f"fps={self.fps},setsar=1,format=yuv420p"
        )

    def build_image_filter(self) -> str:
        """Build the filter graph for a still image.

        The image is fitted inside the frame and centered over a blurred,
        stretched copy of itself, so letterbox bars are filled.
        """
        w, h = self.width, self.height
        return ";".join([
            f"[0:v]scale=w={w}:h={h}:force_original_aspect_ratio=decrease:flags=fast_bilinear[scaled]",
            "[scaled]split[original][copy]",
            "[copy]scale=w=32:h=18:force_original_aspect_ratio=increase:flags=fast_bilinear[scaled_copy]",
            "[scaled_copy]gblur=sigma=10[blurred]",
            f"[blurred]scale=w={w}:h={h}:flags=fast_bilinear[blurred_full]",
            "[blurred_full][original]overlay=x=(main_w-overlay_w)/2:y=(main_h-overlay_h)/2[overlaid]",
            "[overlaid]setsar=1[out]",
        ])

    def build_video_scene_command(
        self, input_path: str, output_path: str, duration: float
    ) -> list[str]:
        """Build the command that loops a clip until it lasts ``duration`` seconds."""
        return [
            self.ffmpeg_path,
            "-y",
            "-stream_loop", "-1",
            "-i", input_path,
            "-an",
            "-t", f"{duration:.3f}",
            "-vf", self._normalize_filter(),
            "-c:v", self.video_codec,
            "-pix_fmt", "yuv420p",
            output_path,
        ]

    def build_image_scene_command(
        self, image_path: str, output_path: str, duration: float
    ) -> list[str]:
        """Build the command that holds a still image for ``duration`` seconds."""
        return [
            self.ffmpeg_path,
            "-y",
            "-loop", "1",
            "-framerate", str(self.fps),
            "-i", image_path,
            "-filter_complex", self.build_image_filter(),
            "-map", "[out]",
            "-t", f"{duration:.3f}",
            "-c:v", self.video_codec,
            "-r", str(self.fps),
            "-pix_fmt", "yuv420p",
            output_path,
        ]

    def build_concat_command(self, concat_list_path: str, output_path: str) -> list[str]:
        """Build the concat demuxer command (stream copy, no re-encode)."""
        return [
            self.ffmpeg_path,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", concat_list_path,
            "-c", "copy",
            "-movflags", "+faststart",
            output_path,
        ]

    def build_mux_command(self, video_path: str, audio_path: str, output_path: str) -> list[str]:
        """Build the command that copies video and re-encodes the audio track."""
        return [
            self.ffmpeg_path,
            "-y",
            "-i", video_path,
            "-i", audio_path,
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", self.audio_codec,
            "-b:a", self.audio_bitrate,
            "-movflags", "+faststart",
            output_path,
        ]

    @staticmethod
    def write_concat_list(segment_paths: list[str], list_path: str) -> str:
        """Write an FFmpeg concat list file."""
        with open(list_path, "w") as f:
            for segment in segment_paths:
                # FFmpeg concat requires escaped paths
                escaped = os.path.abspath(segment).replace("'", "'\\''")
                f.write(f"file '{escaped}'\n")
        return list_path

    # ========================================================================
    # Execution
    # ========================================================================

    async def _run(self, cmd: list[str], stage: str) -> None:
        """Run one FFmpeg invocation, bounded by the configured timeout."""
        logger.info(f"[ENCODE] {stage}: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise EncoderError(stage, f"encoder executable not found: {self.ffmpeg_path}")

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.error(f"[ENCODE] {stage} timed out after {self.timeout_s:.0f}s")
            raise EncoderError(stage, f"timed out after {self.timeout_s:.0f}s")
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise

        if proc.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace")
            logger.error(f"[ENCODE] {stage} failed (exit {proc.returncode}): {stderr_text}")
            raise EncoderError(stage, _stderr_tail(stderr_text))

        logger.info(f"[ENCODE] {stage} finished: {cmd[-1]}")

    async def render_video_scene(self, input_path: str, output_path: str, duration: float) -> str:
        """Render a looped, silent, fixed-duration segment from a video clip."""
        cmd = self.build_video_scene_command(input_path, output_path, duration)
        await self._run(cmd, "Video scene render")
        return output_path

    async def render_image_scene(self, image_path: str, output_path: str, duration: float) -> str:
        """Render a fixed-duration segment from a still image."""
        cmd = self.build_image_scene_command(image_path, output_path, duration)
        await self._run(cmd, "Image scene render")
        return output_path

    async def concatenate(self, segment_paths: list[str], output_path: str) -> str:
        """Concatenate segments in list order.

        Raises:
            MissingSegmentFileError: If a segment is missing; raised before FFmpeg runs
            EncoderError: If FFmpeg fails
        """
        if not segment_paths:
            raise MissingSegmentFileError("no segments to concatenate")
        for segment in segment_paths:
            if not os.path.exists(segment):
                raise MissingSegmentFileError(segment)

        list_path = os.path.join(os.path.dirname(output_path), "concat_list.txt")
        self.write_concat_list(segment_paths, list_path)

        cmd = self.build_concat_command(list_path, output_path)
        await self._run(cmd, "Concatenation")
        return output_path

    async def mux_audio(
        self, video_path: str, audio_path: Optional[str], output_path: str
    ) -> str:
        """Add the audio track to the concatenated video.

        Without an audio file the concatenated video is the final artifact.
        """
        if not os.path.exists(video_path):
            raise MissingSegmentFileError(video_path)

        if audio_path is None:
            if Path(video_path) != Path(output_path):
                shutil.move(video_path, output_path)
            return output_path

        if not os.path.exists(audio_path):
            raise EncoderError("Audio mux", f"audio file not found: {audio_path}")

        cmd = self.build_mux_command(video_path, audio_path, output_path)
        await self._run(cmd, "Audio mux")
        return output_path
