"""Tests for path normalization and the allowed-roots policy."""

import pytest

from shellgate.exec.errors import PathNotAbsoluteError, PathOutsideAllowedRootsError
from shellgate.exec.paths import (
    canonicalize_roots,
    enforce_working_directory,
    is_absolute_path,
    is_path_allowed,
    normalize_path,
    validate_directories,
    validate_directories_or_raise,
)

SAMPLE_PATHS = [
    "C:/Users/test",
    "c:\\users\\test\\",
    "/c/Users/test",
    "/mnt/d/x",
    "\\Users\\test",
    "C:\\a\\.\\b\\..\\c",
    "C:",
    "/d",
    "\\\\server\\share\\dir",
    "\\\\server\\share",
    "//server",
    "//",
    "///",
    "\\\\server\\",
    "//srv/share/../../x/",
    "//?/C:/dir",
    "relative\\dir",
    "",
]


# ── Normalization ───────────────────────────────────────────────────


class TestNormalizePath:
    def test_forward_slashes(self):
        assert normalize_path("C:/a/b") == "C:\\a\\b"

    def test_posix_drive_spelling(self):
        assert normalize_path("/c/a/b") == "C:\\a\\b"
        assert normalize_path("/d") == "D:\\"

    def test_rooted_without_drive_uses_default_drive(self):
        assert normalize_path("\\a\\b") == "C:\\a\\b"
        assert normalize_path("/mnt/d/x") == "C:\\mnt\\d\\x"

    def test_drive_letter_uppercased(self):
        assert normalize_path("c:\\Users") == "C:\\Users"

    def test_case_of_rest_preserved(self):
        assert normalize_path("C:\\Users\\MixedCase") == "C:\\Users\\MixedCase"

    def test_dot_segments_resolved(self):
        assert normalize_path("C:\\a\\.\\b\\..\\c") == "C:\\a\\c"

    def test_trailing_separator_preserved_only_if_given(self):
        assert normalize_path("C:\\a\\") == "C:\\a\\"
        assert normalize_path("C:\\a") == "C:\\a"

    def test_bare_drive(self):
        assert normalize_path("C:") == "C:\\"
        assert normalize_path("c:\\") == "C:\\"

    def test_unc(self):
        assert normalize_path("//server/share/dir") == "\\\\server\\share\\dir"
        assert normalize_path("\\\\server\\share") == "\\\\server\\share\\"

    def test_unc_without_share_is_a_fixed_point(self):
        assert normalize_path("//server") == "\\\\server\\"
        assert normalize_path("\\\\server\\") == "\\\\server\\"
        assert normalize_path("//") == "\\\\"

    def test_unc_dot_dot_stays_on_share(self):
        assert normalize_path("//srv/share/../../x") == "\\\\srv\\share\\x"

    def test_empty(self):
        assert normalize_path("") == ""

    @pytest.mark.parametrize("path", SAMPLE_PATHS)
    def test_idempotent(self, path):
        once = normalize_path(path)
        assert normalize_path(once) == once

    def test_equivalent_spellings(self):
        spellings = ["C:/a/b", "C:\\a\\b", "/c/a/b", "\\a\\b", "c:/a/./b"]
        assert {normalize_path(p) for p in spellings} == {"C:\\a\\b"}


class TestIsAbsolutePath:
    @pytest.mark.parametrize("path", [
        "C:\\x", "c:/x", "/c/Users", "\\Users", "\\\\server\\share", "C:",
    ])
    def test_absolute(self, path):
        assert is_absolute_path(path)

    @pytest.mark.parametrize("path", ["x\\y", "projects", "C:x", "", "..\\up", "//server", "//"])
    def test_not_absolute(self, path):
        assert not is_absolute_path(path)

    def test_nul_rejected(self):
        assert not is_absolute_path("C:\\a\0b")


# ── Allowed roots ───────────────────────────────────────────────────


class TestCanonicalizeRoots:
    def test_descendant_dropped(self):
        roots = canonicalize_roots(["C:\\Users\\test", "C:\\Users\\test\\sub"])
        assert roots == ["C:\\Users\\test"]

    def test_descendant_dropped_in_either_order(self):
        roots = canonicalize_roots(["C:\\Users\\test\\sub", "C:\\Users\\test"])
        assert roots == ["C:\\Users\\test"]

    def test_duplicates_first_spelling_wins(self):
        roots = canonicalize_roots(["C:\\Users\\Test", "c:/users/test/"])
        assert roots == ["C:\\Users\\Test"]

    def test_sibling_prefix_not_ancestor(self):
        roots = canonicalize_roots(["C:\\Users\\test", "C:\\Users\\testXYZ"])
        assert roots == ["C:\\Users\\test", "C:\\Users\\testXYZ"]

    def test_drive_root_absorbs_everything_on_drive(self):
        roots = canonicalize_roots(["C:\\Users", "D:\\data", "C:\\"])
        assert roots == ["D:\\data", "C:\\"]

    def test_relative_and_empty_skipped(self):
        assert canonicalize_roots(["relative", "", "  ", "C:\\ok"]) == ["C:\\ok"]

    def test_unc_without_share_skipped(self):
        roots = canonicalize_roots(["//srv", "//", "C:\\ok"])
        assert roots == ["C:\\ok"]
        assert is_path_allowed("//srv/share/x", canonicalize_roots(["//srv", "//srv/share"]))

    def test_idempotent_and_no_ancestor_pairs(self):
        raw = [
            "C:\\a", "c:\\a\\b", "/c/a/b/c", "D:\\x\\", "D:\\x\\y",
            "\\\\srv\\share\\p", "\\\\srv\\share", "E:\\e1", "E:\\e10",
        ]
        once = canonicalize_roots(raw)
        assert canonicalize_roots(once) == once
        for i, a in enumerate(once):
            for j, b in enumerate(once):
                if i != j:
                    assert not is_path_allowed(b, [a]), f"{a} contains {b}"


class TestIsPathAllowed:
    def test_exact_root(self):
        assert is_path_allowed("C:\\Users\\test", ["C:\\Users\\test"])

    def test_descendant(self):
        assert is_path_allowed("C:\\Users\\test\\projects\\app", ["C:\\Users\\test"])

    def test_case_insensitive(self):
        assert is_path_allowed("c:/USERS/TEST/x", ["C:\\Users\\test"])

    def test_sibling_with_common_prefix_rejected(self):
        assert not is_path_allowed("C:\\Users\\testXYZ", ["C:\\Users\\test"])

    def test_trailing_separator_on_root(self):
        assert is_path_allowed("C:\\Users\\test\\x", ["C:\\Users\\test\\"])

    def test_dot_dot_escape_rejected(self):
        assert not is_path_allowed("C:\\Users\\test\\..\\other", ["C:\\Users\\test"])

    def test_no_roots(self):
        assert not is_path_allowed("C:\\anything", [])

    def test_unc(self):
        assert is_path_allowed("\\\\srv\\share\\dir", ["//srv/share"])
        assert not is_path_allowed("\\\\srv\\other", ["\\\\srv\\share"])


class TestEnforceWorkingDirectory:
    def test_returns_normalized(self):
        result = enforce_working_directory("c:/users/test/proj", ["C:\\Users\\test"], True)
        assert result == "C:\\users\\test\\proj"

    def test_relative_rejected_even_unrestricted(self):
        with pytest.raises(PathNotAbsoluteError):
            enforce_working_directory("projects", ["C:\\Users\\test"], False)

    def test_outside_rejected_when_restricted(self):
        with pytest.raises(PathOutsideAllowedRootsError) as exc:
            enforce_working_directory("C:\\Windows", ["C:\\Users\\test"], True)
        assert "C:\\Windows" in str(exc.value)
        assert "C:\\Users\\test" in str(exc.value)

    def test_outside_allowed_when_unrestricted(self):
        assert enforce_working_directory("C:\\Windows", ["C:\\Users\\test"], False) == "C:\\Windows"


class TestValidateDirectories:
    def test_all_pass(self):
        result = validate_directories(["C:\\a\\b", "c:/a"], ["C:\\a"])
        assert result.all_pass
        assert result.failing == []

    def test_failing_keep_original_spelling(self):
        result = validate_directories(["C:\\a\\b", "d:/elsewhere", "relative"], ["C:\\a"])
        assert not result.all_pass
        assert result.failing == ["d:/elsewhere", "relative"]

    def test_or_raise_lists_every_failure(self):
        with pytest.raises(PathOutsideAllowedRootsError) as exc:
            validate_directories_or_raise(["D:\\x", "E:\\y"], ["C:\\a"])
        assert exc.value.paths == ["D:\\x", "E:\\y"]
        assert "directories are outside" in str(exc.value)
