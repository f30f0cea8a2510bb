"""Tests for the CPU fetch-decode-execute engine."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from simple_cpu import CPU
from simple_cpu.errors import DivisionByZero, StackOverflow, StackUnderflow, UnrecognizedOpcode


def make_cpu(words, **kwargs):
    cpu = CPU(**kwargs)
    cpu.load_program(words)
    return cpu


class TestLoading:
    """Test the load interface."""

    def test_load_word(self):
        cpu = CPU()
        cpu.load_word(0x940, 0x1234)
        assert cpu.memory.read(0x940) == 0x1234

    def test_load_program_sets_entry_point(self):
        """Entry point defaults to the first loaded address."""
        cpu = make_cpu({0x300: 0xF000, 0x100: 0xF000})
        assert cpu.get_pc() == 0x300

    def test_explicit_entry_point(self):
        cpu = CPU()
        cpu.load_program([(0x100, 0x6005), (0x101, 0xF000)], entry_point=0x101)
        assert cpu.get_pc() == 0x101

    def test_entry_point_out_of_range(self):
        with pytest.raises(ValueError):
            CPU().set_entry_point(0x1000)


class TestFetch:
    """Test the fetch half of the cycle."""

    def test_fetch_updates_ir_and_pc(self):
        cpu = make_cpu({0x100: 0x6005, 0x101: 0xF000})
        entry = cpu.step()
        assert cpu.registers.instruction_register == 0x6005
        assert cpu.get_pc() == 0x101
        assert entry.address == 0x100
        assert entry.mnemonic == "LOAD_REG_OPERAND 005"

    def test_pc_wraps_at_end_of_memory(self):
        """The word after FFF is fetched from 000."""
        cpu = make_cpu([(0xFFF, 0x6005), (0x000, 0xF000)])
        cpu.run()
        assert cpu.get_register("general_register") == 5
        assert cpu.is_halted() is True


class TestDataMovement:
    """Test load/store opcodes."""

    def test_load_ac_mem(self):
        cpu = make_cpu({0x100: 0x1940, 0x101: 0xF000, 0x940: 0x0042})
        cpu.run()
        assert cpu.get_register("accumulator") == 0x42

    def test_store_ac_mem(self):
        cpu = make_cpu({0x100: 0x6007, 0x101: 0x3000, 0x102: 0x2941, 0x103: 0xF000})
        cpu.run()
        assert cpu.memory.read(0x941) == 7

    def test_load_then_store_is_idempotent(self):
        """LOAD_AC_MEM then STORE_AC_MEM to the same address leaves memory unchanged."""
        cpu = make_cpu({0x100: 0x1942, 0x101: 0x2942, 0x102: 0xF000, 0x942: 0xBEEF})
        cpu.run()
        assert cpu.memory.read(0x942) == 0xBEEF

    def test_load_ac_reg(self):
        cpu = make_cpu({0x100: 0x6123, 0x101: 0x3000, 0x102: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 0x123

    def test_store_ac_reg(self):
        cpu = make_cpu({0x100: 0x1940, 0x101: 0x4000, 0x102: 0xF000, 0x940: 0x0321})
        cpu.run()
        assert cpu.get_register("general_register") == 0x321

    def test_load_reg_operand_uses_address_as_immediate(self):
        cpu = make_cpu({0x100: 0x6FFF, 0x101: 0xF000})
        cpu.run()
        assert cpu.get_register("general_register") == 0xFFF


class TestArithmetic:
    """Test arithmetic opcodes."""

    def test_add_ac_mem(self):
        cpu = make_cpu({0x100: 0x1940, 0x101: 0x5941, 0x102: 0xF000,
                        0x940: 10, 0x941: 32})
        cpu.run()
        assert cpu.get_register("accumulator") == 42

    def test_add_ac_reg(self):
        cpu = make_cpu({0x100: 0x6004, 0x101: 0x3000, 0x102: 0x7000, 0x103: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 8

    def test_mult_ac_reg(self):
        cpu = make_cpu({0x100: 0x6007, 0x101: 0x3000, 0x102: 0x6006,
                        0x103: 0x8000, 0x104: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 42

    def test_subt_ac_reg(self):
        cpu = make_cpu({0x100: 0x6009, 0x101: 0x3000, 0x102: 0x6002,
                        0x103: 0x9000, 0x104: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 7

    def test_div_ac_reg_truncates(self):
        cpu = make_cpu({0x100: 0x6007, 0x101: 0x3000, 0x102: 0x6002,
                        0x103: 0xA000, 0x104: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 3

    def test_subtraction_wraps(self):
        """3 - 5 wraps around to FFFE."""
        cpu = make_cpu({0x100: 0x6003, 0x101: 0x3000, 0x102: 0x6005,
                        0x103: 0x9000, 0x104: 0xF000})
        cpu.run()
        assert cpu.get_register("accumulator") == 0xFFFE

    def test_multiplication_wraps(self):
        cpu = make_cpu({0x100: 0x1940, 0x101: 0x6010, 0x102: 0x8000,
                        0x103: 0xF000, 0x940: 0x1000})
        cpu.run()
        assert cpu.get_register("accumulator") == 0

    def test_addition_wraps(self):
        cpu = make_cpu({0x100: 0x1940, 0x101: 0x6001, 0x102: 0x7000,
                        0x103: 0xF000, 0x940: 0xFFFF})
        cpu.run()
        assert cpu.get_register("accumulator") == 0


class TestSubroutines:
    """Test JUMP_TO_SUBROUT / RET_FRM_SUBROUT."""

    @pytest.mark.parametrize("accumulator,operand", [
        (0x0000, 0x000),
        (0x0007, 0x007),
        (0xFFFF, 0xABC),
        (0x1234, 0xFFF),
    ])
    def test_call_then_return_restores_registers(self, accumulator, operand):
        """Every register is restored to its value at the jump."""
        cpu = make_cpu({
            0x100: 0x1900,             # AC := MEM[900]
            0x101: 0x6000 | operand,   # GR := operand
            0x102: 0xB200,             # call 200
            0x103: 0xF000,
            0x200: 0xC000,             # return immediately
            0x900: accumulator,
        })
        for _ in range(3):
            cpu.step()
        assert cpu.get_pc() == 0x200
        assert len(cpu.stack) == 4

        cpu.step()
        assert cpu.dump_registers() == {
            "program_counter": 0x103,
            "instruction_register": 0xB200,
            "accumulator": accumulator,
            "general_register": operand,
        }
        assert cpu.stack.is_empty()

    def test_return_discards_subroutine_registers(self):
        """Registers changed inside the subroutine are overwritten on return."""
        cpu = make_cpu({
            0x100: 0x6007, 0x101: 0x3000, 0x102: 0xB200, 0x103: 0xF000,
            0x200: 0x6009, 0x201: 0x3000, 0x202: 0xC000,
        })
        cpu.run()
        assert cpu.get_register("accumulator") == 7
        assert cpu.get_register("general_register") == 7

    def test_frame_push_order(self):
        """PC, IR, AC, GR are pushed in that order."""
        cpu = make_cpu({
            0x100: 0x1940, 0x101: 0x6005, 0x102: 0xB200,
            0x200: 0xF000, 0x940: 0x0011,
        })
        cpu.run()
        assert cpu.stack.status_lines() == [
            "Stack contents at 3FF = 0103",
            "Stack contents at 3FE = B200",
            "Stack contents at 3FD = 0011",
            "Stack contents at 3FC = 0005",
        ]

    def test_nested_calls(self):
        cpu = make_cpu({
            0x100: 0xB200, 0x101: 0xF000,
            0x200: 0xB300, 0x201: 0xC000,
            0x300: 0xC000,
        })
        cpu.run()
        assert cpu.subroutine_calls == 2
        assert cpu.stack.is_empty()
        assert [r.title for r in cpu.reports] == [
            "Status before return from subroutine 2",
            "Status before return from subroutine 2",
            "Status at HALT",
        ]


class TestReports:
    """Test status reports at RET_FRM_SUBROUT and HALT."""

    def test_halt_report(self):
        cpu = make_cpu({0x100: 0x6005, 0x101: 0x3000, 0x102: 0x7000, 0x103: 0xF000})
        reports = cpu.run()

        assert len(reports) == 1
        report = reports[0]
        assert report.title == "Status at HALT"
        # HALT itself is counted after its report
        assert report.instructions_executed == 3
        assert cpu.get_instruction_count() == 4
        assert report.stack_lines == ["Nothing in the stack!"]
        assert "Accumulator = 000A" in report.register_lines
        assert "General Register = 0005" in report.register_lines
        assert report.memory_lines == [
            "Memory 940 = 0000", "Memory 941 = 0000", "Memory 942 = 0000",
        ]

    def test_return_report_precedes_restore(self):
        """The RET report still shows the saved frame on the stack."""
        cpu = make_cpu({0x100: 0xB200, 0x101: 0xF000, 0x200: 0x6009, 0x201: 0xC000})
        reports = cpu.run()

        ret_report = reports[0]
        assert ret_report.title == "Status before return from subroutine 1"
        assert ret_report.instructions_executed == 2
        assert len(ret_report.stack_lines) == 4
        assert "General Register = 0009" in ret_report.register_lines
        assert reports[1].stack_lines == ["Nothing in the stack!"]

    def test_report_sink_receives_reports(self):
        received = []
        cpu = make_cpu({0x100: 0xB200, 0x101: 0xF000, 0x200: 0xC000},
                       report_sink=received.append)
        cpu.run()
        assert received == cpu.reports
        assert len(received) == 2

    def test_emit_report_reaches_sink(self):
        """Reports emitted from outside the run loop go through the same sink."""
        received = []
        cpu = make_cpu({0x100: 0xA000}, report_sink=received.append)
        with pytest.raises(DivisionByZero):
            cpu.run()

        report = cpu.emit_report("Status at fault")
        assert received == [report]
        assert cpu.reports == [report]
        assert report.title == "Status at fault"
        assert report.instructions_executed == 0

    def test_status_accessors(self):
        cpu = make_cpu({0x100: 0xF000})
        assert cpu.stack_status() == "Nothing in the stack!\n"
        assert cpu.memory_status().startswith("Memory 940 = 0000\n")
        assert "Program Counter = 0100" in cpu.register_status()


class TestFaults:
    """Test fatal faults."""

    def test_division_by_zero(self):
        """DIV with GR = 0 stops the run and leaves AC untouched."""
        cpu = make_cpu({0x100: 0x602A, 0x101: 0x3000, 0x102: 0x6000,
                        0x103: 0xA000, 0x104: 0x6001, 0x105: 0xF000})
        with pytest.raises(DivisionByZero) as excinfo:
            cpu.run()

        assert excinfo.value.address == 0x103
        assert cpu.get_register("accumulator") == 0x2A
        assert cpu.get_register("general_register") == 0
        assert cpu.is_halted() is True
        assert cpu.get_instruction_count() == 3
        assert cpu.reports == []

    def test_unrecognized_opcode(self):
        """No instruction after the bad opcode executes."""
        cpu = make_cpu({0x100: 0x6005, 0x101: 0xD000, 0x102: 0x3000, 0x103: 0xF000})
        with pytest.raises(UnrecognizedOpcode) as excinfo:
            cpu.run()

        assert excinfo.value.opcode == 0xD
        assert "D" in str(excinfo.value)
        assert cpu.get_register("accumulator") == 0
        assert cpu.get_instruction_count() == 1
        assert isinstance(cpu.fault, UnrecognizedOpcode)

    @pytest.mark.parametrize("word", [0x0000, 0xD123, 0xEFFF])
    def test_every_unassigned_opcode_faults(self, word):
        cpu = make_cpu({0x100: word})
        with pytest.raises(UnrecognizedOpcode):
            cpu.run()

    def test_running_into_empty_memory_faults(self):
        """Zeroed memory decodes as opcode 0."""
        cpu = make_cpu({0x100: 0x6005})
        with pytest.raises(UnrecognizedOpcode) as excinfo:
            cpu.run()
        assert excinfo.value.address == 0x101

    def test_return_without_call_underflows(self):
        cpu = make_cpu({0x100: 0xC000, 0x101: 0xF000})
        with pytest.raises(StackUnderflow):
            cpu.run()
        # The report is emitted before the restore is attempted
        assert len(cpu.reports) == 1

    def test_runaway_recursion_overflows(self):
        """256 frames fill the stack; the 257th call overflows."""
        cpu = make_cpu({0x100: 0xB200, 0x200: 0xB200})
        with pytest.raises(StackOverflow):
            cpu.run()
        assert cpu.subroutine_calls == 256
        assert len(cpu.stack) == 1024

    def test_step_after_fault(self):
        cpu = make_cpu({0x100: 0xE000})
        with pytest.raises(UnrecognizedOpcode):
            cpu.step()
        with pytest.raises(RuntimeError, match="halted"):
            cpu.step()

    def test_run_after_halt(self):
        cpu = make_cpu({0x100: 0xF000})
        cpu.run()
        with pytest.raises(RuntimeError, match="halted"):
            cpu.run()


class TestExecutionTrace:
    """Test execution trace recording."""

    def test_trace_disabled_by_default(self):
        cpu = make_cpu({0x100: 0x6001, 0x101: 0xF000})
        cpu.run()
        assert cpu.trace == []

    def test_trace_records_all_cycles(self):
        cpu = make_cpu({0x100: 0x6001, 0x101: 0x3000, 0x102: 0xF000}, trace=True)
        cpu.run()

        assert [e.mnemonic for e in cpu.trace] == [
            "LOAD_REG_OPERAND 001", "LOAD_AC_REG 000", "HALT 000",
        ]
        assert cpu.trace[1].pre_state["accumulator"] == 0
        assert cpu.trace[1].post_state["accumulator"] == 1
        assert "accumulator: 0000 -> 0001" in cpu.format_trace()

    def test_trace_records_fault(self):
        cpu = make_cpu({0x100: 0xA000}, trace=True)
        with pytest.raises(DivisionByZero):
            cpu.run()
        assert cpu.trace[-1].error is not None
        assert "ERROR" in cpu.format_trace()


class TestSummary:
    """Test get_summary()."""

    def test_summary(self):
        cpu = make_cpu({0x100: 0xB200, 0x101: 0xF000, 0x200: 0xC000})
        cpu.run()
        summary = cpu.get_summary()
        assert summary["instructions_executed"] == 3
        assert summary["subroutine_calls"] == 1
        assert summary["halted"] is True
        assert summary["stack_depth"] == 0
        assert summary["reports"] == 2
        assert summary["fault"] is None
