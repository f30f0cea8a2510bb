"""Main memory: a flat store of 4096 words."""

from typing import List, Tuple

from .decode import ADDRESS_MASK, is_address, is_word


MEMORY_SIZE = ADDRESS_MASK + 1

# Cells shown in every status report
INSPECTION_WINDOW = range(0x940, 0x942 + 1)


class Memory:
    """Word-addressed memory covering addresses 000-FFF.

    Every cell starts at zero. ``write`` is the only way memory changes.
    """

    def __init__(self):
        self._cells: List[int] = [0] * MEMORY_SIZE

    def __len__(self) -> int:
        return MEMORY_SIZE

    def read(self, address: int) -> int:
        """Return the word stored at ``address``.

        Raises:
            ValueError: If the address is outside 000-FFF
        """
        self._check_address(address)
        return self._cells[address]

    def write(self, address: int, value: int) -> None:
        """Overwrite the word stored at ``address``.

        Raises:
            ValueError: If the address or value is out of range
        """
        self._check_address(address)
        if not is_word(value):
            raise ValueError(f"Value does not fit in a word: {value!r}")
        self._cells[address] = value

    def dump(self, start: int = 0, end: int = ADDRESS_MASK) -> List[Tuple[int, int]]:
        """List ``(address, value)`` pairs from ``start`` to ``end`` inclusive."""
        self._check_address(start)
        self._check_address(end)
        return [(address, self._cells[address]) for address in range(start, end + 1)]

    def status_lines(self) -> List[str]:
        """Contents of the inspection window, one ``Memory 940 = 0000`` line per cell."""
        return [
            f"Memory {address:03X} = {self._cells[address]:04X}"
            for address in INSPECTION_WINDOW
        ]

    @staticmethod
    def _check_address(address: int) -> None:
        if not is_address(address):
            raise ValueError(f"Address out of range: {address!r}")
