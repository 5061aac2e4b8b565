"""
load_profile/tokenizer.py

Quote-aware line splitting.

An unbalanced quote keeps the scanner "in quotes" until the end of the line
and yields fewer, larger fields instead of raising.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from load_profile.constants import DEFAULT_DELIMITER, DEFAULT_QUOTE_CHAR
from load_profile.models import DelimiterSet, ParseConfig, Row


def tokenize(
    line: str,
    delimiters: DelimiterSet | Iterable[str],
    quote_char: str | None = DEFAULT_QUOTE_CHAR,
    collapse_consecutive: bool = False,
) -> Row:
    """
    Split one physical line into trimmed fields.

    Args:
        line: Raw text of one line without its terminator.
        delimiters: Enabled separator characters.
        quote_char: Field quote character, or ``None`` to disable quoting.
        collapse_consecutive: Treat a run of separators as one separator.
            A run at the very start of the line is ignored.

    Returns:
        Tuple of fields. The final field is always emitted, so an empty line
        yields ``("",)``.
    """

    if isinstance(delimiters, DelimiterSet):
        separators = delimiters.chars
    else:
        separators = frozenset(delimiters) or frozenset({DEFAULT_DELIMITER})

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    field_started = False
    previous_was_separator = False
    length = len(line)
    index = 0

    while index < length:
        char = line[index]

        if quote_char and char == quote_char:
            if in_quotes and index + 1 < length and line[index + 1] == quote_char:
                current.append(quote_char)
                index += 2
                previous_was_separator = False
                continue
            in_quotes = not in_quotes
            field_started = True
            previous_was_separator = False
            index += 1
            continue

        if not in_quotes and char in separators:
            if collapse_consecutive and (previous_was_separator or not fields and not field_started):
                previous_was_separator = True
                index += 1
                continue
            fields.append("".join(current).strip())
            current = []
            field_started = False
            previous_was_separator = True
            index += 1
            continue

        current.append(char)
        field_started = True
        previous_was_separator = False
        index += 1

    fields.append("".join(current).strip())
    return tuple(fields)


def serialize(
    fields: Sequence[str],
    delimiter: str = DEFAULT_DELIMITER,
    quote_char: str | None = DEFAULT_QUOTE_CHAR,
) -> str:
    """
    Join fields into one line that :func:`tokenize` splits back unchanged.

    Fields holding the delimiter or the quote character are quoted, with
    embedded quotes doubled. Edge whitespace does not survive the trip since
    tokenized fields are trimmed.
    """

    encoded: list[str] = []
    for value in fields:
        needs_quotes = bool(quote_char) and (delimiter in value or quote_char in value)
        if needs_quotes:
            doubled = value.replace(quote_char, quote_char * 2)
            encoded.append(f"{quote_char}{doubled}{quote_char}")
        else:
            encoded.append(value)
    return delimiter.join(encoded)


def tokenize_lines(lines: Iterable[str], config: ParseConfig) -> list[Row]:
    return [
        tokenize(
            line,
            config.delimiters,
            quote_char=config.quote_char,
            collapse_consecutive=config.collapse_consecutive,
        )
        for line in lines
    ]
