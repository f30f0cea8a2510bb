"""Fatal faults raised by the simulated machine.

Every fault is unrecoverable: the CPU stops at the faulting instruction and
the exception travels up through ``step()`` and ``run()`` to whoever started
the run. Each fault carries the address of the instruction that caused it
(``None`` when raised outside a running CPU, e.g. by a bare stack).
"""

from typing import Optional


class CPUFault(Exception):
    """Base class for faults in the simulated machine."""

    def __init__(self, message: str, address: Optional[int] = None):
        super().__init__(message)
        self.address = address

    def __str__(self) -> str:
        message = super().__str__()
        if self.address is None:
            return message
        return f"{message} (at {self.address:03X})"


class UnrecognizedOpcode(CPUFault):
    """Decoded opcode is not part of the instruction set."""

    def __init__(self, opcode: int, address: Optional[int] = None):
        super().__init__(f"Fatal error, opcode not recognized: {opcode:X}", address)
        self.opcode = opcode


class DivisionByZero(CPUFault):
    """DIV_AC_REG executed with a zero general register."""

    def __init__(self, address: Optional[int] = None):
        super().__init__("Division by zero, program terminated", address)


class StackOverflow(CPUFault):
    """Push onto a full execution stack."""

    def __init__(self, address: Optional[int] = None):
        super().__init__("Stack overflow, program terminated", address)


class StackUnderflow(CPUFault):
    """Pop from an empty execution stack."""

    def __init__(self, address: Optional[int] = None):
        super().__init__("Stack underflow, program terminated", address)
