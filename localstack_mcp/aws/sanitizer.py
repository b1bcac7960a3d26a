"""Validation and tokenising of AWS CLI commands run through ``awslocal``."""

from __future__ import annotations

import re

FORBIDDEN_SHELL_SYNTAX = re.compile(r"(\|\||&&|;|`|\$\([^)]*\)|\||>|<|\n)")


def sanitize_aws_cli_command(raw_command: str) -> str:
    """Trim the command and reject shell chaining, substitution or redirection.

    Raises:
        ValueError: if the command contains forbidden shell characters
    """
    command = raw_command.strip()
    if FORBIDDEN_SHELL_SYNTAX.search(command):
        raise ValueError("Command contains forbidden shell characters.")
    return command


def split_args(command: str) -> list[str]:
    """Split on whitespace while keeping single- or double-quoted runs together.

    Quote characters are removed; a quote of one kind inside the other is
    kept literally. Backslashes have no special meaning.

    Example:
        >>> split_args("s3api put-object --key 'my file.txt'")
        ['s3api', 'put-object', '--key', 'my file.txt']
    """
    args: list[str] = []
    current = ""
    quote: str | None = None

    for ch in command:
        if ch in "'\"" and quote in (None, ch):
            quote = None if quote else ch
            continue
        if quote is None and ch.isspace():
            if current:
                args.append(current)
                current = ""
            continue
        current += ch

    if current:
        args.append(current)
    return args
