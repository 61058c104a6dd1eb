"""Tests for the subframe filter."""

import pytest

from sslm.core.types import SubframeMode
from sslm.library.filters import SubframeFilter, is_subframe_non_fit
from tests.helpers import make_record


class TestIsSubframeNonFit:
    """Tests for the subframe-expurge rule."""

    @pytest.mark.parametrize(
        "relative_path",
        [
            "M 42_sub/Light_001.jpg",
            "M 42_sub/Light_001_thn.jpg",
            "M 42_SUB/preview.png",
            "deep/NGC 7000_mosaic_sub/nested/file.txt",
        ],
    )
    def test_non_fit_under_sub_directory_is_dropped(self, relative_path: str) -> None:
        assert is_subframe_non_fit(relative_path) is True

    @pytest.mark.parametrize(
        "relative_path",
        [
            "M 42_sub/Light_001.fit",
            "M 42_sub/Light_001.FIT",
            "M 42/Stacked_M 42.jpg",
            "M 42/preview_sub",
            "M 42_subset/file.jpg",
            "file.jpg",
        ],
    )
    def test_other_files_are_kept(self, relative_path: str) -> None:
        assert is_subframe_non_fit(relative_path) is False


class TestSubframeFilter:
    """Tests for SubframeFilter."""

    def test_all_mode_keeps_everything(self) -> None:
        subframe_filter = SubframeFilter(SubframeMode.ALL)
        records = [make_record("M 42_sub/a.jpg"), make_record("M 42_sub/a.fit")]

        kept, excluded = subframe_filter.apply(records)

        assert kept == records
        assert excluded == 0

    def test_fit_only_mode_drops_non_fit_subframes(self) -> None:
        subframe_filter = SubframeFilter("fit_only")
        jpg = make_record("M 42_sub/a.jpg")
        fit = make_record("M 42_sub/a.fit")
        stacked = make_record("M 42/Stacked.jpg")

        kept, excluded = subframe_filter.apply([jpg, fit, stacked])

        assert kept == [fit, stacked]
        assert excluded == 1
        assert subframe_filter.mode is SubframeMode.FIT_ONLY
