"""
Tests for canonical ordering, grouping and navigation (core/services/sort_service.py)
"""

import pytest

from core.services.sort_service import (
    NO_BUCKET_LABEL,
    NO_DAY_LABEL,
    get_photo_index,
    is_video_photo,
    navigate_photos,
    photo_sort_key,
    sort_photos,
)


@pytest.fixture
def mixed_photos(make_photo):
    return [
        make_photo("b/IMG_2.jpg", timestamp=500, id="z"),
        make_photo("a/IMG_2.jpg", timestamp=500, id="y"),
        make_photo("a/IMG_1.jpg", timestamp=100, id="x"),
        make_photo("a/IMG_1.jpg", timestamp=100, id="w"),
        make_photo("clip.mp4", timestamp=50, id="v", mime_type="video/mp4"),
    ]


class TestBaseOrder:
    def test_timestamp_then_path_then_id(self, mixed_photos):
        result = sort_photos(mixed_photos)
        assert [p.id for p in result.photos] == ["v", "w", "x", "y", "z"]

    def test_strict_total_order(self, mixed_photos):
        keys = [photo_sort_key(p) for p in mixed_photos]
        assert len(set(keys)) == len(keys)

    def test_sorting_is_idempotent(self, mixed_photos):
        once = sort_photos(mixed_photos)
        twice = sort_photos(once.photos)
        assert [p.id for p in once.photos] == [p.id for p in twice.photos]

    def test_input_order_does_not_matter(self, mixed_photos):
        forward = sort_photos(mixed_photos)
        backward = sort_photos(list(reversed(mixed_photos)))
        assert [p.id for p in forward.photos] == [p.id for p in backward.photos]

    def test_index_map_matches_positions(self, mixed_photos):
        result = sort_photos(mixed_photos)
        for index, photo in enumerate(result.photos):
            assert result.index_map[photo.id] == index
        assert result.groups is None

    def test_original_name_used_without_path(self, make_photo):
        photos = [
            make_photo("", timestamp=1, id="1", original_name="b.jpg"),
            make_photo("", timestamp=1, id="2", original_name="a.jpg"),
        ]
        assert [p.id for p in sort_photos(photos).photos] == ["2", "1"]


class TestVideoSeparation:
    def test_stills_before_videos(self, mixed_photos):
        result = sort_photos(mixed_photos, separate_videos=True)
        assert [p.id for p in result.photos] == ["w", "x", "y", "z", "v"]
        assert result.index_map["v"] == 4

    def test_is_video_by_extension(self, make_photo):
        assert is_video_photo(make_photo("trip/clip.MOV"))
        assert not is_video_photo(make_photo("trip/img.heic"))
        assert not is_video_photo(make_photo("clip.mp4", mime_type="image/jpeg"))

    def test_custom_video_predicate(self, mixed_photos):
        result = sort_photos(mixed_photos, separate_videos=True, is_video=lambda p: p.id == "w")
        assert result.photos[-1].id == "w"


class TestGrouping:
    def test_bucket_groups_in_canonical_order(self, make_photo):
        photos = [
            make_photo(timestamp=1, id="none", bucket=None),
            make_photo(timestamp=2, id="x", bucket="X", archived=True),
            make_photo(timestamp=3, id="m", bucket="M"),
            make_photo(timestamp=4, id="a", bucket="A"),
            make_photo(timestamp=5, id="q", bucket="Q"),
        ]
        result = sort_photos(photos, group_by="bucket")
        assert [g.label for g in result.groups] == ["A", "M", "X", "Q", NO_BUCKET_LABEL]
        assert [p.id for p in result.photos] == ["a", "m", "x", "q", "none"]
        assert [g.start_index for g in result.groups] == [0, 1, 2, 3, 4]

    def test_day_groups_with_no_day_last(self, make_photo):
        photos = [
            make_photo(timestamp=1, id="n", day=None),
            make_photo(timestamp=2, id="d2", day=2),
            make_photo(timestamp=3, id="d1", day=1),
            make_photo(timestamp=4, id="d1b", day=1),
        ]
        result = sort_photos(photos, group_by="day")
        assert [g.label for g in result.groups] == ["Day 01", "Day 02", NO_DAY_LABEL]
        assert [p.id for p in result.photos] == ["d1", "d1b", "d2", "n"]
        assert result.groups[1].start_index == 2

    def test_subfolder_groups_day_root_first(self, make_photo):
        photos = [
            make_photo("Day 1/zoo/1.jpg", timestamp=1, id="zoo"),
            make_photo("Day 1/2.jpg", timestamp=2, id="root"),
            make_photo("Day 1/beach/3.jpg", timestamp=3, id="beach"),
        ]

        def grouper(photo, day):
            parts = photo.file_path.split("/")
            return parts[1] if len(parts) > 2 else "Day Root"

        result = sort_photos(photos, group_by="subfolder", selected_day=1, get_subfolder_group=grouper)
        assert [g.label for g in result.groups] == ["Day Root", "beach", "zoo"]
        assert [p.id for p in result.photos] == ["root", "beach", "zoo"]

    def test_subfolder_without_selected_day_is_flat(self, make_photo):
        photos = [make_photo(timestamp=2, id="b"), make_photo(timestamp=1, id="a")]
        result = sort_photos(photos, group_by="subfolder", get_subfolder_group=lambda p, d: "x")
        assert result.groups is None
        assert [p.id for p in result.photos] == ["a", "b"]

    def test_videos_separated_within_each_group(self, make_photo):
        photos = [
            make_photo("v1.mp4", timestamp=1, id="v1", day=1),
            make_photo("s1.jpg", timestamp=2, id="s1", day=1),
            make_photo("v2.mp4", timestamp=3, id="v2", day=2),
            make_photo("s2.jpg", timestamp=4, id="s2", day=2),
        ]
        result = sort_photos(photos, group_by="day", separate_videos=True)
        assert [p.id for p in result.photos] == ["s1", "v1", "s2", "v2"]
        assert [p.id for p in result.groups[1].photos] == ["s2", "v2"]


class TestNavigation:
    def test_end_to_end_scan_order_and_next(self, make_photo):
        photos = [
            make_photo("Day 1/IMG_01.jpg", timestamp=1000, id="IMG_01"),
            make_photo("Day 1/IMG_02.jpg", timestamp=900, id="IMG_02"),
        ]
        result = sort_photos(photos)
        assert [p.id for p in result.photos] == ["IMG_02", "IMG_01"]
        assert navigate_photos("IMG_02", "next", result).id == "IMG_01"

    def test_next_then_prev_round_trip(self, mixed_photos):
        result = sort_photos(mixed_photos)
        for photo in result.photos[:-1]:
            forward = navigate_photos(photo.id, "next", result)
            assert navigate_photos(forward.id, "prev", result).id == photo.id

    def test_boundaries_return_none(self, mixed_photos):
        result = sort_photos(mixed_photos)
        assert navigate_photos(result.photos[0].id, "prev", result) is None
        assert navigate_photos(result.photos[-1].id, "next", result) is None

    def test_unknown_id_or_direction(self, mixed_photos):
        result = sort_photos(mixed_photos)
        assert navigate_photos("missing", "next", result) is None
        assert navigate_photos("w", "sideways", result) is None
        assert get_photo_index("missing", result.index_map) == -1

    def test_predicate_skips_non_matching(self, make_photo):
        photos = [
            make_photo(timestamp=1, id="a", bucket="A"),
            make_photo(timestamp=2, id="b", bucket="B"),
            make_photo(timestamp=3, id="c"),
            make_photo(timestamp=4, id="d", bucket="A"),
        ]
        result = sort_photos(photos)
        unassigned = lambda p: p.bucket is None  # noqa: E731
        assert navigate_photos("a", "next", result, unassigned).id == "c"
        assert navigate_photos("c", "next", result, unassigned) is None
        assert navigate_photos("d", "prev", result, lambda p: p.bucket == "A").id == "a"
