"""ExecutionStack: saved register state for subroutine calls.

The stack grows downwards through synthetic addresses 3FF..000. The CPU
pushes and pops whole frames of four words, but the stack itself knows
nothing about frames.
"""

from typing import List, Optional

from .decode import is_word
from .errors import StackOverflow, StackUnderflow


# Maximum stack address is 0x3FF
STACK_CAPACITY = 0x3FF + 1


class ExecutionStack:
    """Bounded last-in-first-out store of words.

    Attributes:
        capacity: Maximum number of words held at once
    """

    def __init__(self, capacity: int = STACK_CAPACITY):
        self.capacity = capacity
        self._slots: List[int] = [0] * capacity
        self._top = capacity

    def __len__(self) -> int:
        return self.capacity - self._top

    @property
    def free(self) -> int:
        """Number of words that can still be pushed."""
        return self._top

    def is_empty(self) -> bool:
        return self._top == self.capacity

    def push(self, value: int, address: Optional[int] = None) -> None:
        """Push a word.

        Args:
            value: Word to store
            address: Faulting instruction address, reported on overflow

        Raises:
            StackOverflow: If the stack already holds ``capacity`` words
            ValueError: If ``value`` is not a word
        """
        if not is_word(value):
            raise ValueError(f"Value does not fit in a word: {value!r}")
        if self._top == 0:
            raise StackOverflow(address)
        self._top -= 1
        self._slots[self._top] = value

    def pop(self, address: Optional[int] = None) -> int:
        """Remove and return the most recently pushed word.

        Raises:
            StackUnderflow: If the stack is empty
        """
        if self.is_empty():
            raise StackUnderflow(address)
        value = self._slots[self._top]
        self._top += 1
        return value

    def status_lines(self) -> List[str]:
        """Occupied slots from 3FF downwards, or a single line if empty."""
        if self.is_empty():
            return ["Nothing in the stack!"]
        return [
            f"Stack contents at {slot:03X} = {self._slots[slot]:04X}"
            for slot in range(self.capacity - 1, self._top - 1, -1)
        ]
