"""Single-line CSV field splitting.

Dialect: comma delimiter, double-quote quoting, ``""`` as an escaped quote
inside a quoted field. Quoted fields cannot span physical lines.
"""

from __future__ import annotations

DELIMITER: str = ","
QUOTE: str = '"'


def parse_line(line: str) -> list[str]:
    """Split one line of text into its ordered field strings.

    A double quote toggles quoted mode. Inside quoted mode a doubled quote
    is emitted as one literal quote and a comma does not split. The last
    field is always emitted, so ``""`` yields ``[""]`` and ``"a,"`` yields
    ``["a", ""]``.

    Malformed quoting never raises: a quote that is never closed keeps
    the field quoted to the end of the line.

    Args:
        line: One line of text without its trailing newline.

    Returns:
        List of raw (untrimmed) field values.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        ch = line[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < length and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(ch)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == DELIMITER:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return fields


def is_blank(line: str) -> bool:
    """Return True when a line holds nothing but whitespace."""
    return line.strip() == ""
