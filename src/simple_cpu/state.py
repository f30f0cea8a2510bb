"""RegisterFile: the four CPU registers.

Registers:
    - accumulator: primary arithmetic operand and result
    - instruction_register: most recently fetched instruction word
    - program_counter: address of the next instruction to fetch
    - general_register: secondary operand and relay register

All registers hold 16-bit words. The register file is owned by a single
CPU and only its opcode handlers write to it.
"""

from dataclasses import asdict, dataclass
from typing import Dict, List

from .decode import is_address, is_word


# Report labels, in frame push order
REGISTER_LABELS = {
    "program_counter": "Program Counter",
    "instruction_register": "Instruction Register",
    "accumulator": "Accumulator",
    "general_register": "General Register",
}


@dataclass
class RegisterFile:
    """Mutable register state of a CPU."""
    accumulator: int = 0
    instruction_register: int = 0
    program_counter: int = 0
    general_register: int = 0

    def snapshot(self) -> Dict[str, int]:
        """Copy of all register values for tracing."""
        return asdict(self)

    def dump(self) -> Dict[str, int]:
        """Register values keyed by name, in frame push order."""
        return {name: getattr(self, name) for name in REGISTER_LABELS}

    def get(self, name: str) -> int:
        """Get a register by name (case insensitive, spaces or underscores).

        Raises:
            KeyError: If no such register exists
        """
        key = name.strip().lower().replace(" ", "_")
        if key not in REGISTER_LABELS:
            raise KeyError(f"Invalid register: {name}")
        return getattr(self, key)

    def validate(self) -> bool:
        """Check every register holds a word and the PC a valid address."""
        if not all(is_word(value) for value in self.dump().values()):
            return False
        return is_address(self.program_counter)

    def status_lines(self) -> List[str]:
        """``Accumulator = 000A`` style lines in fixed-width hex."""
        return [
            f"{label} = {getattr(self, name):04X}"
            for name, label in REGISTER_LABELS.items()
        ]

    def __str__(self) -> str:
        return " ".join(
            f"{name.upper()}={value:04X}" for name, value in self.dump().items()
        )
