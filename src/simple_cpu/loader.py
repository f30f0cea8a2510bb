"""Program image loader.

A program image is plain text. Instruction lines start with a decimal
digit (a line number); the text between the first ``.`` and the first
``;`` holds a three-hex-digit address followed by the instruction word.
Whitespace is ignored everywhere, and every other line is a comment::

    Add five to itself
    1. 100 6005 ; LOAD_REG_OPERAND 5
    2. 101 3000 ; LOAD_AC_REG
    3. 102 7000 ; ADD_AC_REG
    4. 103 F000 ; HALT

The first loaded address becomes the entry point.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .decode import WORD_MASK


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_HEX = re.compile(r"[0-9A-Fa-f]+")


class ProgramImageError(ValueError):
    """Malformed instruction line in a program image."""

    def __init__(self, line_number: int, message: str):
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


@dataclass
class ProgramImage:
    """Parsed program image.

    Attributes:
        words: ``(address, word)`` pairs in file order
        entry_point: Address of the first loaded word, None if the image is empty
    """
    words: List[Tuple[int, int]] = field(default_factory=list)
    entry_point: Optional[int] = None

    def __len__(self) -> int:
        return len(self.words)


def parse_line(line: str, line_number: int = 0) -> Optional[Tuple[int, int]]:
    """Parse one line of a program image.

    Returns:
        ``(address, word)`` for an instruction line, None for anything else

    Raises:
        ProgramImageError: If an instruction line is malformed
    """
    text = _WHITESPACE.sub("", line)
    if not text or not text[0].isdigit():
        return None

    start = text.find(".")
    end = text.find(";")
    if start < 0:
        raise ProgramImageError(line_number, "missing '.' after line number")
    if end < 0:
        end = len(text)
    if end <= start:
        raise ProgramImageError(line_number, "';' before '.'")

    body = text[start + 1:end]
    if len(body) < 4 or not _HEX.fullmatch(body):
        raise ProgramImageError(line_number, f"expected address and word in hex, got {body!r}")

    address = int(body[:3], 16)
    word = int(body[3:], 16)
    if word > WORD_MASK:
        raise ProgramImageError(line_number, f"word does not fit in 16 bits: {body[3:]}")
    return address, word


def parse_program_image(text: str) -> ProgramImage:
    """Parse a whole program image.

    Raises:
        ProgramImageError: On the first malformed instruction line
    """
    image = ProgramImage()
    for line_number, line in enumerate(text.splitlines(), start=1):
        parsed = parse_line(line, line_number)
        if parsed is None:
            continue
        image.words.append(parsed)
        if image.entry_point is None:
            image.entry_point = parsed[0]
    return image


def load_program_image(cpu, text: str) -> ProgramImage:
    """Parse ``text`` and load it into ``cpu``."""
    image = parse_program_image(text)
    cpu.load_program(image.words, image.entry_point)
    if image.entry_point is None:
        logger.warning("program image contains no instructions")
    else:
        logger.info("loaded %d words, entry point %03X", len(image), image.entry_point)
    return image


def load_program_file(cpu, path: Union[str, Path]) -> ProgramImage:
    """Read a program image file and load it into ``cpu``.

    Raises:
        FileNotFoundError: If the file does not exist
        ProgramImageError: If the image is malformed
    """
    return load_program_image(cpu, Path(path).read_text())
