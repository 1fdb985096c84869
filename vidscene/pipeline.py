"""Main pipeline orchestrator for scene-based video processing."""

import shutil
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from .config import Settings
from .modules.compressor import CompressedVideo, compress_video
from .modules.extractor import FrameExtractionResult, extract_frames, reassemble_video
from .modules.grouper import FrameGroup, group_frames_by_histogram
from .modules.lut import apply_lut_to_frames, compute_color_lut
from .utils.exceptions import FrameDecodeError, OperationCancelledError, VidsceneError
from .utils.temp_resources import create_temp_dir
from .utils.video_utils import VideoProperties

logger = logging.getLogger(__name__)

# Receives a group and its index, returns the path of an edited
# representative frame or None to leave the group untouched.
FrameEditor = Callable[[FrameGroup, int], Optional[Path]]


def copy_group_frames(group: FrameGroup, output_dir: Path):
    """Copy a group's original frames into ``output_dir`` under their own names."""
    for frame_path in group.frame_paths:
        frame_path = Path(frame_path)
        shutil.copyfile(frame_path, Path(output_dir) / frame_path.name)


class ScenePipeline:
    """Extract, group, edit and reassemble video frames; compress videos for upload."""

    def __init__(self, settings: Settings):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings
        """
        self.settings = settings

    def _check_cancelled(self, cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Pipeline cancelled")

    def extract(
        self,
        video_path: Path,
        properties: Optional[VideoProperties] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> FrameExtractionResult:
        """Extract frames. The caller owns the result and must release it."""
        return extract_frames(
            video_path,
            properties=properties,
            temp_dir=self.settings.temp_dir,
            quality=self.settings.frame_jpeg_quality,
            ffmpeg_path=self.settings.ffmpeg_path,
            cancel_event=cancel_event,
            timeout=self.settings.tool_timeout_seconds,
        )

    def group(
        self,
        video_path: Path,
        properties: Optional[VideoProperties] = None,
        threshold: Optional[float] = None,
        show_progress: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> Tuple[FrameExtractionResult, List[FrameGroup]]:
        """
        Extract frames and group them into scenes.

        The returned extraction still owns the frame directory the groups
        point into; the caller must release it.
        """
        extraction = self.extract(video_path, properties, cancel_event)
        try:
            self._check_cancelled(cancel_event)
            groups = group_frames_by_histogram(
                extraction.frame_paths,
                threshold=threshold or self.settings.similarity_threshold,
                bins_per_channel=self.settings.histogram_bins,
                show_progress=show_progress,
            )
        except BaseException:
            extraction.release_resources()
            raise
        return extraction, groups

    def _propagate_edit(
        self,
        group: FrameGroup,
        edited_path: Path,
        output_dir: Path,
        cancel_event: Optional[threading.Event]
    ) -> bool:
        """Apply an edited representative to the whole group. Returns False if the edit could not be used."""
        try:
            lut = compute_color_lut(Path(group.representative_path), Path(edited_path), self.settings.lut_size)
        except (FrameDecodeError, ValueError) as e:
            logger.warning(f"LUT computation failed, edit won't propagate: {e}")
            return False

        apply_lut_to_frames(
            [Path(p) for p in group.frame_paths],
            lut,
            output_dir,
            ffmpeg_path=self.settings.ffmpeg_path,
            temp_dir=self.settings.temp_dir,
            cancel_event=cancel_event,
            timeout=self.settings.tool_timeout_seconds,
        )
        return True

    def run(
        self,
        video_path: Path,
        output_path: Path,
        frame_editor: Optional[FrameEditor] = None,
        properties: Optional[VideoProperties] = None,
        threshold: Optional[float] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        """
        Run the scene pipeline end to end.

        Args:
            video_path: Source video
            output_path: Destination for the reassembled video
            frame_editor: Optional editor called once per group
            properties: Source properties (frame rate, duration)
            threshold: Similarity threshold override
            progress_callback: Optional callback(stage, message)
            cancel_event: Optional cancellation signal

        Returns:
            Dictionary with results:
                - output_video: Path to the output video
                - total_frames / total_groups / extraction_fps
                - groups: List of FrameGroup
                - edited_groups: Indices of groups whose edit was propagated
                - elapsed_seconds
        """
        def update_progress(stage: str, message: str):
            """Update progress."""
            logger.info(f"[{stage}] {message}")
            if progress_callback:
                progress_callback(stage, message)

        start = time.monotonic()
        video_path = Path(video_path)
        output_path = Path(output_path)

        try:
            update_progress("EXTRACT", f"Extracting frames from {video_path.name}...")
            extraction, groups = self.group(video_path, properties, threshold, cancel_event=cancel_event)

            with extraction, create_temp_dir("edited-frames-", base_dir=self.settings.temp_dir) as edited_dir:
                update_progress(
                    "GROUP",
                    f"{extraction.total_frames} frames at {extraction.extraction_fps:.2f} fps in {len(groups)} scene groups"
                )

                edited_groups = []
                for i, group in enumerate(groups):
                    self._check_cancelled(cancel_event)

                    edited_path = None
                    if frame_editor is not None:
                        update_progress("EDIT", f"Group {i + 1}/{len(groups)} ({group.frame_count} frames)")
                        try:
                            edited_path = frame_editor(group, i)
                        except Exception as e:
                            logger.error(f"Editing group {i} failed, using original frames: {e}")

                    if edited_path and self._propagate_edit(group, edited_path, edited_dir.path, cancel_event):
                        edited_groups.append(i)
                    else:
                        copy_group_frames(group, edited_dir.path)

                self._check_cancelled(cancel_event)
                update_progress("REASSEMBLE", f"Reassembling video to {output_path}")
                output_path.parent.mkdir(parents=True, exist_ok=True)
                reassemble_video(
                    edited_dir.path,
                    video_path,
                    output_path,
                    extraction.extraction_fps,
                    crf=self.settings.reassembly_crf,
                    preset=self.settings.reassembly_preset,
                    ffmpeg_path=self.settings.ffmpeg_path,
                    cancel_event=cancel_event,
                    timeout=self.settings.tool_timeout_seconds,
                )

            elapsed = time.monotonic() - start
            update_progress("COMPLETE", f"Done in {elapsed:.1f}s: {output_path}")

            return {
                'output_video': output_path,
                'total_frames': extraction.total_frames,
                'total_groups': len(groups),
                'extraction_fps': extraction.extraction_fps,
                'groups': groups,
                'edited_groups': edited_groups,
                'elapsed_seconds': elapsed,
            }

        except VidsceneError as e:
            logger.error(f"Pipeline failed: {type(e).__name__}: {e}")
            raise

    def compress(
        self,
        video_path: Path,
        properties: Optional[VideoProperties] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> CompressedVideo:
        """Compress a video. The caller owns the result and must release it."""
        return compress_video(
            video_path,
            properties=properties,
            temp_dir=self.settings.temp_dir,
            ffmpeg_path=self.settings.ffmpeg_path,
            cancel_event=cancel_event,
            timeout=self.settings.tool_timeout_seconds,
        )
