"""Plain text filters: user regex substitutions and comment removal."""

import logging
import re
from typing import Callable, Iterable, List, Optional

from garden_publisher.config import CustomFilter
from garden_publisher.transforms.grammar import SegmentKind, tokenize

logger = logging.getLogger(__name__)

COMMENT_DELIMITER = '%%'


def apply_custom_filters(
    text: str,
    filters: Iterable[CustomFilter],
    warn: Optional[Callable[[str], None]] = None,
) -> str:
    """Run the user's regex substitutions over ``text`` in order.

    A filter with an invalid pattern or replacement is skipped.
    """
    for custom_filter in filters:
        try:
            pattern = custom_filter.compile()
            text = pattern.sub(custom_filter.replacement, text, count=custom_filter.count)
        except re.error as e:
            message = (
                f"Your custom filters contain an invalid regex: "
                f"{custom_filter.pattern} ({e}). Skipping it."
            )
            if warn:
                warn(message)
            else:
                logger.warning(message)
    return text


def remove_comments(text: str) -> str:
    """Drop ``%%...%%`` comments.

    Delimiters inside code, frontmatter or drawing scripts do not count, and
    an unclosed comment is kept as written.
    """
    output: List[str] = []
    pending: Optional[List[str]] = None

    for segment in tokenize(text):
        if segment.kind is not SegmentKind.TEXT:
            (output if pending is None else pending).append(segment.raw)
            continue

        chunk = segment.raw
        position = 0
        while True:
            index = chunk.find(COMMENT_DELIMITER, position)
            if pending is None:
                if index == -1:
                    output.append(chunk[position:])
                    break
                output.append(chunk[position:index])
                pending = [COMMENT_DELIMITER]
            else:
                if index == -1:
                    pending.append(chunk[position:])
                    break
                pending = None
            position = index + len(COMMENT_DELIMITER)

    if pending is not None:
        output.extend(pending)
    return ''.join(output)
