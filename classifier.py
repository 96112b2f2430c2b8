"""
Classification of raw hosts-file lines into muko entries and foreign lines
"""

import ipaddress
import re
from typing import List, Union

from models import Entry, ForeignLine, MUKO_TAG
from logger import logger

# [#] <ip> <host> [<host> ...] #muko: [<alias>] [anything]
OWNED_LINE_RE = re.compile(
    r"^(?P<comment>#)?\s*"
    r"(?P<ip>[0-9A-Fa-f.:]+)\s+"
    r"(?P<domain>[^\s#]+)"
    r"(?:\s+[^\s#]+)*\s+"
    + re.escape(MUKO_TAG) +
    r"(?:[ \t]*(?P<alias>[^\s#]+))?"
)

Line = Union[Entry, ForeignLine]

# Only "\n" ends a line; other Unicode line breaks stay inside the text
LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")


def split_newline(line: str):
    """Split a line into its text and its terminator ('\\r\\n', '\\n' or '')"""
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1], line[-1]
    return line, ""


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def classify_line(line: str, position: int = -1) -> Line:
    """Classify one line of the hosts file.

    Lines carrying the muko tag with a usable IP and host become an
    Entry; everything else, including tagged lines that fail to parse,
    is returned as a ForeignLine holding the original text.
    """
    text, newline = split_newline(line)

    if MUKO_TAG not in text:
        return ForeignLine(text, newline)

    match = OWNED_LINE_RE.match(text)
    if not match or not is_valid_ip(match.group("ip")):
        logger.debug("Tagged line is malformed, keeping it untouched",
                     operation="malformed_line",
                     line=text,
                     position=position)
        return ForeignLine(text, newline)

    return Entry(
        domain=match.group("domain"),
        ip=match.group("ip"),
        alias=match.group("alias"),
        active=match.group("comment") is None,
        newline=newline,
        raw=text,
        position=position,
    )


def classify_lines(text: str) -> List[Line]:
    """Classify every line of a hosts file, keeping order"""
    return [classify_line(line, position)
            for position, line in enumerate(LINE_RE.findall(text))]
