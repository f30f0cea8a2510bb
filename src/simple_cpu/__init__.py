"""SIMPLE-CPU: a minimal 16-bit accumulator machine.

Instructions are 16-bit words: a 4-bit opcode followed by a 12-bit
address/operand. The CPU runs a classic fetch-decode-execute loop over
4096 words of memory, four registers and a bounded execution stack that
saves register state across subroutine calls.

Architecture:
    MEMORY -> FETCH -> DECODE -> DISPATCH -> HANDLER -> REGISTERS/MEMORY/STACK
                                                 |
                                      StatusReport at RET and HALT

Modules:
    decode: Opcode enum and instruction field extraction
    memory: Flat 4096-word memory
    stack: Bounded execution stack
    state: RegisterFile dataclass
    report: StatusReport snapshots
    errors: Fatal machine faults
    cpu: The CPU orchestrator
    loader: Program image parsing and loading
    cli: Command line interface
"""

__version__ = "0.1.0"

from .decode import Opcode, decode_address, decode_opcode, encode_instruction
from .errors import CPUFault, DivisionByZero, StackOverflow, StackUnderflow, UnrecognizedOpcode
from .memory import Memory
from .stack import ExecutionStack
from .state import RegisterFile
from .report import StatusReport
from .cpu import CPU
from .loader import ProgramImage, ProgramImageError, load_program_image, parse_program_image

__all__ = [
    "Opcode", "decode_address", "decode_opcode", "encode_instruction",
    "CPUFault", "DivisionByZero", "StackOverflow", "StackUnderflow", "UnrecognizedOpcode",
    "Memory", "ExecutionStack", "RegisterFile", "StatusReport", "CPU",
    "ProgramImage", "ProgramImageError", "load_program_image", "parse_program_image",
]
