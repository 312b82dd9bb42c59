"""Split raw command strings into executable and arguments."""

import re

from shellgate.exec.types import EXECUTABLE_SUFFIXES, ParsedCommand

_DRIVE_PREFIX = re.compile(r"^[a-zA-Z]:")


def split_tokens(raw: str) -> list[str]:
    """
    Split on whitespace outside single- or double-quoted spans.

    Quote characters are consumed. A quoted span ends at the next quote of
    the same kind; an unterminated quote runs to the end of input.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_token = False
    quote: str | None = None

    for ch in raw:
        if quote:
            if ch == quote:
                quote = None
            else:
                current.append(ch)
        elif ch in ('"', "'"):
            quote = ch
            in_token = True
        elif ch.isspace():
            if in_token:
                tokens.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(ch)
            in_token = True

    if in_token:
        tokens.append("".join(current))
    return tokens


def _looks_like_path(token: str) -> bool:
    return "\\" in token or "/" in token or bool(_DRIVE_PREFIX.match(token))


def _has_executable_suffix(token: str) -> bool:
    return token.lower().endswith(EXECUTABLE_SUFFIXES)


def tokenize(raw: str) -> ParsedCommand:
    """
    Parse a raw command into a ParsedCommand.

    An unquoted Windows path containing spaces such as
    ``C:\\Program Files\\Git\\bin\\bash.exe -c ls`` is re-assembled into a
    single executable token when a later token reaches a recognised
    executable suffix. Otherwise the first token is the executable.
    """
    tokens = split_tokens(raw)
    if not tokens:
        return ParsedCommand(executable="", args=[])

    first = tokens[0]
    if _looks_like_path(first) and not _has_executable_suffix(first):
        accumulated = first
        for index in range(1, len(tokens)):
            accumulated = f"{accumulated} {tokens[index]}"
            if _has_executable_suffix(accumulated):
                return ParsedCommand(executable=accumulated, args=tokens[index + 1:])

    return ParsedCommand(executable=first, args=tokens[1:])
