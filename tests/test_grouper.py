"""Tests for scene grouping."""

import pytest

from vidscene.modules.grouper import (
    DEFAULT_SIMILARITY_THRESHOLD,
    FrameGroup,
    group_frames_by_histogram,
    representative_index,
)
from vidscene.utils.exceptions import FrameDecodeError, InputValidationError

from .conftest import BLUE, GREEN, RED, write_frames


def assert_partition(groups, n):
    """Groups must be ordered, contiguous, non-overlapping and cover [0, n-1]."""
    assert groups[0].start_index == 0
    assert groups[-1].end_index == n - 1
    for prev, nxt in zip(groups, groups[1:]):
        assert nxt.start_index == prev.end_index + 1
    for g in groups:
        assert g.start_index <= g.representative_index <= g.end_index
        assert g.frame_count == g.end_index - g.start_index + 1 == len(g.frame_paths)


def test_two_scenes(tmp_path):
    """Frames 0-4 one color and 5-9 another form exactly two groups."""
    paths = write_frames(tmp_path, [RED] * 5 + [BLUE] * 5)

    groups = group_frames_by_histogram(paths, threshold=0.92)

    assert [(g.start_index, g.end_index) for g in groups] == [(0, 4), (5, 9)]
    assert [g.representative_index for g in groups] == [2, 7]
    assert groups[0].representative_path == str(paths[2])
    assert groups[1].representative_path == str(paths[7])
    assert groups[1].frame_paths == tuple(str(p) for p in paths[5:])


def test_single_frame(tmp_path):
    paths = write_frames(tmp_path, [RED])

    groups = group_frames_by_histogram(paths)

    assert groups == [FrameGroup(0, 0, 0, str(paths[0]), (str(paths[0]),), 1)]


def test_uniform_sequence_is_one_group(tmp_path):
    paths = write_frames(tmp_path, [GREEN] * 10)

    groups = group_frames_by_histogram(paths)

    assert len(groups) == 1
    assert groups[0].representative_index == 5


def test_empty_sequence():
    with pytest.raises(InputValidationError):
        group_frames_by_histogram([])


def test_partition_over_many_scene_changes(tmp_path):
    colors = [RED, RED, BLUE, GREEN, GREEN, GREEN, RED, BLUE, BLUE, BLUE, BLUE]
    paths = write_frames(tmp_path, colors)

    groups = group_frames_by_histogram(paths, show_progress=False)

    assert_partition(groups, len(colors))
    assert [(g.start_index, g.end_index) for g in groups] == [(0, 1), (2, 2), (3, 5), (6, 6), (7, 10)]


def test_undecodable_frame_starts_new_group(tmp_path):
    paths = write_frames(tmp_path, [RED] * 6)
    paths[3].write_bytes(b"corrupt")

    groups = group_frames_by_histogram(paths)

    # The bad frame opens a group; the next frame cannot be compared and joins it
    assert [(g.start_index, g.end_index) for g in groups] == [(0, 2), (3, 5)]
    assert_partition(groups, 6)


def test_consecutive_undecodable_frames(tmp_path):
    paths = write_frames(tmp_path, [RED] * 5)
    paths[1].write_bytes(b"corrupt")
    paths[2].write_bytes(b"corrupt")

    groups = group_frames_by_histogram(paths)

    assert [(g.start_index, g.end_index) for g in groups] == [(0, 0), (1, 1), (2, 4)]


def test_undecodable_first_frame(tmp_path):
    paths = write_frames(tmp_path, [RED] * 3)
    paths[0].write_bytes(b"corrupt")

    with pytest.raises(FrameDecodeError):
        group_frames_by_histogram(paths)


@pytest.mark.parametrize("threshold", [0, -0.5, 1.5])
def test_out_of_range_threshold_uses_default(tmp_path, threshold):
    paths = write_frames(tmp_path, [RED] * 3 + [BLUE] * 3)

    assert group_frames_by_histogram(paths, threshold=threshold) == group_frames_by_histogram(
        paths, threshold=DEFAULT_SIMILARITY_THRESHOLD
    )


@pytest.mark.parametrize("start,end,expected", [
    (0, 9, 5),
    (0, 2, 1),
    (4, 4, 4),
    (5, 9, 7),
    (3, 6, 5),
])
def test_representative_index(start, end, expected):
    assert representative_index(start, end) == expected


def test_to_dict(tmp_path):
    paths = write_frames(tmp_path, [RED] * 2)
    group = group_frames_by_histogram(paths)[0]

    data = group.to_dict()
    assert data['frame_count'] == 2
    assert data['frame_paths'] == [str(p) for p in paths]
