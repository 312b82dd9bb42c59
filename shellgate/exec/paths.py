"""Canonical Windows path normalization and allowed-root enforcement."""

import ntpath
import re

from loguru import logger

from shellgate.exec.errors import PathNotAbsoluteError, PathOutsideAllowedRootsError
from shellgate.exec.types import DirectoryCheck

SEP = "\\"
DEFAULT_DRIVE = "C:"

# \c\Users or \c  (Git Bash / MSYS drive spelling, after slash conversion)
_POSIX_DRIVE = re.compile(r"^\\([a-zA-Z])(?=\\|$)")
_DRIVE_ABSOLUTE = re.compile(r"^[a-zA-Z]:\\")
_DRIVE_LETTER = re.compile(r"^[a-z]:")
_UNC_SHARE = re.compile(r"^\\\\[^\\]+\\[^\\]+")


def _is_unc(path: str) -> bool:
    return path.startswith(SEP * 2)


def normalize_path(path: str) -> str:
    """
    Convert any accepted spelling of a Windows path into its canonical form.

    ``C:/a/b``, ``C:\\a\\b``, ``/c/a/b`` and ``\\a\\b`` (on the default
    drive) all normalize to ``C:\\a\\b``. A trailing separator survives only
    if the input had one; drive and share roots always keep theirs.
    Idempotent and side-effect free.
    """
    if not path:
        return path

    had_trailing = path.endswith(("/", SEP))
    candidate = path.replace("/", SEP)

    if _is_unc(candidate):
        return _normalize_unc(candidate, had_trailing)

    match = _POSIX_DRIVE.match(candidate)
    if match:
        candidate = f"{match.group(1).upper()}:{candidate[2:]}"
    elif candidate.startswith(SEP):
        candidate = DEFAULT_DRIVE + candidate

    normalized = ntpath.normpath(candidate)
    if _DRIVE_LETTER.match(normalized):
        normalized = normalized[0].upper() + normalized[1:]

    drive, tail = ntpath.splitdrive(normalized)
    tail = tail.rstrip(SEP)
    if drive and not tail:
        # Bare drive or share root
        return drive + SEP
    if had_trailing:
        tail += SEP
    return drive + tail


def _normalize_unc(candidate: str, had_trailing: bool) -> str:
    """
    Canonical \\\\server\\share\\rest form. Empty segments collapse and
    ``..`` never climbs above the share. An incomplete prefix
    (``\\\\`` or ``\\\\server``) is kept as a fixed point.
    """
    parts = [part for part in candidate.split(SEP) if part]
    if not parts:
        return SEP * 2
    if len(parts) == 1:
        return SEP * 2 + parts[0] + SEP

    share = SEP * 2 + parts[0] + SEP + parts[1]
    rest = parts[2:]
    tail = ntpath.normpath(SEP + SEP.join(rest)) if rest else SEP
    if tail == SEP:
        return share + SEP
    return share + tail + (SEP if had_trailing else "")


def is_absolute_path(path: str) -> bool:
    """True for drive-letter-absolute paths and UNC paths naming a share."""
    if not path or "\0" in path:
        return False
    normalized = normalize_path(path)
    return bool(_DRIVE_ABSOLUTE.match(normalized)) or bool(_UNC_SHARE.match(normalized))


def _strip_trailing(normalized: str) -> str:
    drive, tail = ntpath.splitdrive(normalized)
    return drive + tail.rstrip(SEP)


def _comparison_key(path: str) -> str:
    return _strip_trailing(normalize_path(path)).casefold()


def _is_within(key: str, root_key: str) -> bool:
    return key == root_key or key.startswith(root_key + SEP)


def canonicalize_roots(roots: list[str]) -> list[str]:
    """
    Normalize and prune a list of allowed directory roots.

    Exact duplicates (case-insensitive) are dropped, the first spelling wins.
    Any root that lies under another root is dropped, whichever order they
    were given in. Relative roots cannot be enforced and are skipped.
    """
    kept: list[tuple[str, str]] = []

    for root in roots:
        if not root or not root.strip():
            continue
        root = root.strip()
        if not is_absolute_path(root):
            logger.warning(f"Ignoring allowed path that is not absolute: {root}")
            continue

        normalized = normalize_path(root)
        key = _comparison_key(normalized)

        if any(_is_within(key, existing) for existing, _ in kept):
            continue

        kept = [(existing, shown) for existing, shown in kept if not _is_within(existing, key)]
        drive, tail = ntpath.splitdrive(normalized)
        shown = drive + (tail.rstrip(SEP) or SEP)
        kept.append((key, shown))

    return [shown for _, shown in kept]


def is_path_allowed(candidate: str, roots: list[str]) -> bool:
    """True iff candidate equals an allowed root or lies beneath one."""
    if not candidate or not roots:
        return False
    key = _comparison_key(candidate)
    return any(_is_within(key, _comparison_key(root)) for root in roots)


def enforce_working_directory(
    directory: str,
    roots: list[str],
    restrict: bool,
) -> str:
    """
    Validate a working directory and return its canonical form.

    Raises PathNotAbsoluteError for relative paths whether or not the
    restriction is enabled, and PathOutsideAllowedRootsError when the
    restriction is enabled and the directory is outside every root.
    """
    if not is_absolute_path(directory):
        raise PathNotAbsoluteError(directory)

    normalized = normalize_path(directory)
    if restrict and not is_path_allowed(normalized, roots):
        logger.warning(f"Working directory rejected: {normalized}")
        raise PathOutsideAllowedRootsError([directory], list(roots))

    return normalized


def validate_directories(directories: list[str], roots: list[str]) -> DirectoryCheck:
    """Check directories against the allowed roots, keeping failing spellings."""
    failing = [
        directory for directory in directories
        if not is_absolute_path(directory) or not is_path_allowed(directory, roots)
    ]
    return DirectoryCheck(all_pass=not failing, failing=failing)


def validate_directories_or_raise(directories: list[str], roots: list[str]) -> None:
    """Raise PathOutsideAllowedRootsError listing every failing directory."""
    result = validate_directories(directories, roots)
    if not result.all_pass:
        raise PathOutsideAllowedRootsError(result.failing, list(roots))
