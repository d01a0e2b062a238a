"""Unit tests for format-list parsing and the FormatRegistry."""

import pytest
from structlog.testing import capture_logs

from magick_bridge.core.constants import RAW_OUTPUT_LOG_LIMIT
from magick_bridge.core.exceptions import ToolFailureError
from magick_bridge.core.tools.formats import FormatRegistry, is_mode_token, parse_formats
from magick_bridge.core.tools.runner import RunResult

from tests.helpers.fake_runner import FakeMagickRunner
from tests.helpers.sample_output import (
    HEADER_ONLY_OUTPUT,
    SAMPLE_OUTPUT,
    SAMPLE_OUTPUT_3COL,
)


class TestModeToken:
    @pytest.mark.parametrize("token", ["rw-", "r--", "rw+", "-w-", "-w+", "---", "r-+"])
    def test_valid_tokens(self, token):
        assert is_mode_token(token)

    @pytest.mark.parametrize("token", ["rw", "rw--", "RW-", "wr-", "r-x", "PNG", "---x"])
    def test_invalid_tokens(self, token):
        assert not is_mode_token(token)


class TestParseFourColumnLayout:
    """Format  Module  Mode  Description."""

    def test_readable_formats_are_included(self):
        extensions = parse_formats(SAMPLE_OUTPUT)

        for ext in ["aai", "arw", "avi", "bmp", "gif", "jpeg", "pdf", "png", "svg", "tiff"]:
            assert ext in extensions, ext

    def test_write_only_formats_are_excluded(self):
        extensions = parse_formats(SAMPLE_OUTPUT)

        assert "ai" not in extensions
        assert "bmp2" not in extensions

    def test_neither_readable_nor_writable_is_excluded(self):
        assert "3g2" not in parse_formats(SAMPLE_OUTPUT)

    def test_star_suffix_is_stripped(self):
        extensions = parse_formats(SAMPLE_OUTPUT)

        assert "aai" in extensions
        assert "aai*" not in extensions

    def test_extensions_are_lower_cased(self):
        extensions = parse_formats(SAMPLE_OUTPUT)

        assert "png" in extensions
        assert "PNG" not in extensions


class TestParseThreeColumnLayout:
    """Format  Mode  Description, no Module column."""

    def test_readable_formats_are_included(self):
        extensions = parse_formats(SAMPLE_OUTPUT_3COL)

        for ext in ["3fr", "3g2", "avi", "bmp", "gif", "jpeg", "png", "svg", "tiff", "xcf"]:
            assert ext in extensions, ext

    def test_write_only_is_excluded(self):
        assert "ashlar" not in parse_formats(SAMPLE_OUTPUT_3COL)

    def test_star_suffix_is_stripped(self):
        extensions = parse_formats(SAMPLE_OUTPUT_3COL)

        assert "bmp" in extensions
        assert "bmp*" not in extensions

    def test_same_rows_in_both_layouts_give_same_result(self):
        four_col = (
            "      PNG  PNG        rw-  Portable Network Graphics\n"
            "      AI   PDF        -w-  Adobe Illustrator CS2\n"
            "      XCF  XCF        r--  GIMP image\n"
        )
        three_col = (
            "      PNG* rw-   Portable Network Graphics\n"
            "      AI   -w-   Adobe Illustrator CS2\n"
            "      XCF  r--   GIMP image\n"
        )

        assert parse_formats(four_col) == parse_formats(three_col) == {"png", "xcf"}


class TestParseEdgeCases:
    def test_empty_output_gives_empty_set(self):
        result = parse_formats("")

        assert result == frozenset()
        assert isinstance(result, frozenset)

    def test_header_only_gives_empty_set(self):
        assert parse_formats(HEADER_ONLY_OUTPUT) == frozenset()

    def test_result_is_immutable(self):
        extensions = parse_formats(SAMPLE_OUTPUT)

        with pytest.raises(AttributeError):
            extensions.add("test")

    @pytest.mark.parametrize("decorated", ["PNG*", "PNG!", "PNG+", "PNG@", "*PNG*"])
    def test_all_decorations_are_stripped(self, decorated):
        assert parse_formats(f"  {decorated}  rw-  Portable Network Graphics\n") == {"png"}

    def test_token_that_is_only_decoration_is_discarded(self):
        assert parse_formats("  *  rw-  nothing\n") == frozenset()

    def test_preamble_lines_are_ignored(self):
        output = (
            "magick: unable to open module file `/usr/lib/ImageMagick/coders/foo.la'\n"
            "Path: /usr/lib/ImageMagick-7/config-Q16HDRI/\n"
            + SAMPLE_OUTPUT
        )
        assert parse_formats(output) == parse_formats(SAMPLE_OUTPUT)

    def test_mode_token_in_first_column_is_not_a_match(self):
        assert parse_formats("r--\n") == frozenset()

    def test_windows_line_endings(self):
        output = SAMPLE_OUTPUT.replace("\n", "\r\n")
        assert parse_formats(output) == parse_formats(SAMPLE_OUTPUT)


class TestFormatRegistry:
    def test_load_formats_runs_list_format(self, test_settings):
        runner = FakeMagickRunner()
        registry = FormatRegistry(runner, test_settings)

        formats = registry.load_formats("/fake/magick")

        assert "png" in formats
        assert runner.commands == [["/fake/magick", "-list", "format"]]
        assert runner.timeouts == [test_settings.detect_timeout_seconds]

    def test_non_zero_exit_raises_tool_failure(self, test_settings):
        runner = FakeMagickRunner()
        runner.list_format_result = RunResult(1, "", "magick: no decode delegate\nmore\n")
        registry = FormatRegistry(runner, test_settings)

        with pytest.raises(ToolFailureError) as exc_info:
            registry.load_formats("/fake/magick")

        assert "exit 1" in str(exc_info.value)
        assert "no decode delegate" in str(exc_info.value)
        assert exc_info.value.details["exit_code"] == 1

    def test_empty_result_is_not_an_error(self, test_settings):
        runner = FakeMagickRunner(format_output="garbage without a table\n")
        registry = FormatRegistry(runner, test_settings)

        assert registry.load_formats("/fake/magick") == frozenset()

    def test_empty_result_logs_clipped_raw_output(self, test_settings):
        noise = "magick: warning, no table here\n" * 200
        runner = FakeMagickRunner(format_output=noise)
        registry = FormatRegistry(runner, test_settings)

        with capture_logs() as logs:
            formats = registry.load_formats("/fake/magick")

        assert formats == frozenset()
        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert len(warnings) == 1
        assert len(warnings[0]["raw_output"]) == RAW_OUTPUT_LOG_LIMIT + 1
        assert warnings[0]["raw_output"].endswith("…")
        assert warnings[0]["executable"] == "/fake/magick"

    def test_short_raw_output_is_logged_whole(self, test_settings):
        runner = FakeMagickRunner(format_output="nothing useful\n")
        registry = FormatRegistry(runner, test_settings)

        with capture_logs() as logs:
            registry.load_formats("/fake/magick")

        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert warnings[0]["raw_output"] == "nothing useful\n"
