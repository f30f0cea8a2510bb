"""CPU: fetch-decode-execute engine for SIMPLE-CPU.

Each cycle performs:
    FETCH   -> IR := MEM[PC]; PC := PC + 1
    DECODE  -> opcode := IR[15:12]; address := IR[11:0]
    EXECUTE -> dispatch to exactly one opcode handler

The loop runs until HALT or until a fault is raised. Faults are never
handled here: the CPU records the fault, stops, and re-raises it so a
single top-level handler decides how to terminate and flush reports.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .decode import (
    ADDRESS_MASK,
    Opcode,
    decode_address,
    decode_opcode,
    disassemble,
    is_address,
    to_word,
)
from .errors import CPUFault, DivisionByZero, UnrecognizedOpcode
from .memory import Memory
from .report import StatusReport
from .stack import ExecutionStack
from .state import REGISTER_LABELS, RegisterFile


logger = logging.getLogger(__name__)

ReportSink = Callable[[StatusReport], None]
ProgramWords = Union[Mapping[int, int], Iterable[Tuple[int, int]]]


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Number of instructions completed before this one
        address: Address the instruction was fetched from
        instruction: Raw instruction word
        mnemonic: Disassembled instruction text
        pre_state: Registers before the fetch
        post_state: Registers after execution
        error: Fault message if the instruction faulted
    """
    cycle: int
    address: int
    instruction: int
    mnemonic: str
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


class CPU:
    """Accumulator machine with a general register and an execution stack.

    Attributes:
        registers: RegisterFile owned by this CPU
        memory: Main memory
        stack: Execution stack used by subroutine calls
        report_sink: Optional callable receiving every StatusReport
        reports: Every StatusReport emitted so far
        trace: Per-instruction trace entries (when tracing is enabled)
        instructions_executed: Instructions completed in the current run
        subroutine_calls: JUMP_TO_SUBROUT instructions in the current run
        fault: The fault that stopped the CPU, if any
    """

    # Registers saved per subroutine call
    FRAME = ("program_counter", "instruction_register", "accumulator", "general_register")

    def __init__(self, report_sink: Optional[ReportSink] = None, trace: bool = False):
        """Initialize the CPU with zeroed registers, memory and stack.

        Args:
            report_sink: Called with each StatusReport as it is emitted
            trace: Record an ExecutionTraceEntry per instruction
        """
        self.registers = RegisterFile()
        self.memory = Memory()
        self.stack = ExecutionStack()
        self.report_sink = report_sink
        self.trace_enabled = trace
        self.reports: List[StatusReport] = []
        self.trace: List[ExecutionTraceEntry] = []
        self.instructions_executed = 0
        self.subroutine_calls = 0
        self.halted = False
        self.fault: Optional[CPUFault] = None
        self._fetched_from = 0
        self._handlers = self._build_dispatch_table()

    def _build_dispatch_table(self) -> Dict[Opcode, Callable[[int], None]]:
        handlers = {
            Opcode.LOAD_AC_MEM: self._op_load_ac_mem,
            Opcode.STORE_AC_MEM: self._op_store_ac_mem,
            Opcode.LOAD_AC_REG: self._op_load_ac_reg,
            Opcode.STORE_AC_REG: self._op_store_ac_reg,
            Opcode.ADD_AC_MEM: self._op_add_ac_mem,
            Opcode.LOAD_REG_OPERAND: self._op_load_reg_operand,
            Opcode.ADD_AC_REG: self._op_add_ac_reg,
            Opcode.MULT_AC_REG: self._op_mult_ac_reg,
            Opcode.SUBT_AC_REG: self._op_subt_ac_reg,
            Opcode.DIV_AC_REG: self._op_div_ac_reg,
            Opcode.JUMP_TO_SUBROUT: self._op_jump_to_subrout,
            Opcode.RET_FRM_SUBROUT: self._op_ret_frm_subrout,
            Opcode.HALT: self._op_halt,
        }
        missing = set(Opcode) - set(handlers)
        if missing:
            names = ", ".join(sorted(op.name for op in missing))
            raise RuntimeError(f"No handler for opcodes: {names}")
        return handlers

    # =========================================================================
    # Loading
    # =========================================================================

    def load_word(self, address: int, value: int) -> None:
        """Seed one memory cell before execution.

        Raises:
            ValueError: If the address or value is out of range
        """
        self.memory.write(address, value)

    def set_entry_point(self, address: int) -> None:
        """Set the address of the first instruction to execute.

        Raises:
            ValueError: If the address is outside 000-FFF
        """
        if not is_address(address):
            raise ValueError(f"Address out of range: {address!r}")
        self.registers.program_counter = address

    def load_program(self, words: ProgramWords, entry_point: Optional[int] = None) -> None:
        """Load ``(address, word)`` pairs and set the entry point.

        Args:
            words: Mapping or iterable of address/word pairs
            entry_point: First instruction address (default: first loaded address)
        """
        pairs = words.items() if hasattr(words, "items") else words
        first = None
        for address, value in pairs:
            self.load_word(address, value)
            if first is None:
                first = address
        if entry_point is None:
            entry_point = first
        if entry_point is not None:
            self.set_entry_point(entry_point)

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> ExecutionTraceEntry:
        """Execute a single fetch-decode-execute cycle.

        Returns:
            ExecutionTraceEntry for the cycle (also recorded when tracing)

        Raises:
            RuntimeError: If the CPU has already stopped
            CPUFault: If the instruction faults
        """
        if self.halted:
            raise RuntimeError("CPU is halted")

        regs = self.registers
        pre_state = regs.snapshot()

        # FETCH
        self._fetched_from = regs.program_counter
        regs.instruction_register = self.memory.read(regs.program_counter)
        regs.program_counter = (regs.program_counter + 1) & ADDRESS_MASK

        # DECODE
        opcode = decode_opcode(regs.instruction_register)
        address = decode_address(regs.instruction_register)
        mnemonic = disassemble(regs.instruction_register)
        logger.debug("@%03X: %s", self._fetched_from, mnemonic)

        entry = ExecutionTraceEntry(
            cycle=self.instructions_executed,
            address=self._fetched_from,
            instruction=regs.instruction_register,
            mnemonic=mnemonic,
            pre_state=pre_state,
            post_state={},
        )

        # EXECUTE
        try:
            handler = self._handlers.get(opcode)
            if handler is None:
                raise UnrecognizedOpcode(opcode, self._fetched_from)
            handler(address)
        except CPUFault as e:
            self.halted = True
            self.fault = e
            entry.error = str(e)
            entry.post_state = regs.snapshot()
            self._record(entry)
            raise

        self.instructions_executed += 1
        entry.post_state = regs.snapshot()
        self._record(entry)
        return entry

    def run(self) -> List[StatusReport]:
        """Run from the current program counter until HALT.

        Returns:
            Every StatusReport emitted during the run

        Raises:
            RuntimeError: If the CPU has already stopped
            CPUFault: On the first fault; the CPU is stopped afterwards
        """
        if self.halted:
            raise RuntimeError("CPU is halted")

        self.instructions_executed = 0
        self.subroutine_calls = 0
        logger.info("run start at %03X", self.registers.program_counter)
        try:
            while not self.halted:
                self.step()
        finally:
            logger.info("run stop after %d instructions", self.instructions_executed)

        return self.reports

    def _record(self, entry: ExecutionTraceEntry) -> None:
        if self.trace_enabled:
            self.trace.append(entry)

    # =========================================================================
    # Opcode handlers
    # =========================================================================

    def _op_load_ac_mem(self, address: int) -> None:
        self.registers.accumulator = self.memory.read(address)

    def _op_store_ac_mem(self, address: int) -> None:
        self.memory.write(address, self.registers.accumulator)

    def _op_load_ac_reg(self, address: int) -> None:
        self.registers.accumulator = self.registers.general_register

    def _op_store_ac_reg(self, address: int) -> None:
        self.registers.general_register = self.registers.accumulator

    def _op_add_ac_mem(self, address: int) -> None:
        regs = self.registers
        regs.accumulator = to_word(regs.accumulator + self.memory.read(address))

    def _op_load_reg_operand(self, address: int) -> None:
        # The address field is an immediate operand here
        self.registers.general_register = address

    def _op_add_ac_reg(self, address: int) -> None:
        regs = self.registers
        regs.accumulator = to_word(regs.accumulator + regs.general_register)

    def _op_mult_ac_reg(self, address: int) -> None:
        regs = self.registers
        regs.accumulator = to_word(regs.accumulator * regs.general_register)

    def _op_subt_ac_reg(self, address: int) -> None:
        regs = self.registers
        regs.accumulator = to_word(regs.accumulator - regs.general_register)

    def _op_div_ac_reg(self, address: int) -> None:
        """Integer division; words are unsigned so floor and truncation agree."""
        regs = self.registers
        if regs.general_register == 0:
            raise DivisionByZero(self._fetched_from)
        regs.accumulator = regs.accumulator // regs.general_register

    def _op_jump_to_subrout(self, address: int) -> None:
        """Save the register frame, then continue at ``address``."""
        for name in self.FRAME:
            self.stack.push(getattr(self.registers, name), self._fetched_from)
        self.subroutine_calls += 1
        self.registers.program_counter = address

    def _op_ret_frm_subrout(self, address: int) -> None:
        """Report, then restore the register frame saved by the matching call."""
        self.emit_report(f"Status before return from subroutine {self.subroutine_calls}")
        for name in reversed(self.FRAME):
            setattr(self.registers, name, self.stack.pop(self._fetched_from))

    def _op_halt(self, address: int) -> None:
        self.emit_report("Status at HALT")
        self.halted = True

    # =========================================================================
    # Reporting
    # =========================================================================

    def status_report(self, title: str) -> StatusReport:
        """Build a StatusReport of the current machine state."""
        return StatusReport(
            title=title,
            instructions_executed=self.instructions_executed,
            stack_lines=self.stack.status_lines(),
            register_lines=self.registers.status_lines(),
            memory_lines=self.memory.status_lines(),
        )

    def emit_report(self, title: str) -> StatusReport:
        """Build a StatusReport, record it and hand it to the report sink."""
        report = self.status_report(title)
        self.reports.append(report)
        logger.info("%s (%d instructions executed)", title, self.instructions_executed)
        if self.report_sink is not None:
            self.report_sink(report)
        return report

    def register_status(self) -> str:
        return "\n".join(self.registers.status_lines()) + "\n"

    def stack_status(self) -> str:
        return "\n".join(self.stack.status_lines()) + "\n"

    def memory_status(self) -> str:
        return "\n".join(self.memory.status_lines()) + "\n"

    def get_register(self, name: str) -> int:
        """Get a register value by name, e.g. ``"accumulator"``.

        Raises:
            KeyError: If no such register exists
        """
        return self.registers.get(name)

    def dump_registers(self) -> Dict[str, int]:
        return self.registers.dump()

    def get_pc(self) -> int:
        return self.registers.program_counter

    def get_instruction_count(self) -> int:
        return self.instructions_executed

    def is_halted(self) -> bool:
        return self.halted

    def format_trace(self) -> str:
        """Render the execution trace in human-readable form."""
        lines = []
        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            lines.append(f"[{entry.cycle}] {entry.address:03X}: {entry.instruction:04X} "
                         f"{entry.mnemonic:<22} {status}")

            changes = []
            for name in REGISTER_LABELS:
                before = entry.pre_state.get(name)
                after = entry.post_state.get(name, before)
                if name != "instruction_register" and before != after:
                    changes.append(f"{name}: {before:04X} -> {after:04X}")
            if changes:
                lines.append(f"      {', '.join(changes)}")
        return "\n".join(lines) + "\n" if lines else ""

    def get_summary(self) -> Dict:
        """Execution statistics and final register values."""
        return {
            "instructions_executed": self.instructions_executed,
            "subroutine_calls": self.subroutine_calls,
            "halted": self.halted,
            "registers": self.dump_registers(),
            "stack_depth": len(self.stack),
            "reports": len(self.reports),
            "fault": str(self.fault) if self.fault else None,
        }
