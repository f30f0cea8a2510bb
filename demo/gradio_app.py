"""SIMPLE-CPU Interactive Demo.

A Gradio web interface for running program images on SIMPLE-CPU.

Usage:
    cd /path/to/simple-cpu
    python demo/gradio_app.py

Features:
    - Write or load program images
    - See the status reports emitted at RET_FRM_SUBROUT and HALT
    - Step-by-step execution trace with register changes
    - Fault reporting (division by zero, stack overflow/underflow, bad opcodes)
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from simple_cpu import CPU, CPUFault, ProgramImageError, load_program_image


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Add five": """Add five to itself: GR = 5, AC = 10
1. 100 6005 ; LOAD_REG_OPERAND 5
2. 101 3000 ; LOAD_AC_REG
3. 102 7000 ; ADD_AC_REG
4. 103 F000 ; HALT""",

    "Subroutine x2": """Call a subroutine twice, total kept at 940
1. 100 6003 ; LOAD_REG_OPERAND 3
2. 101 B200 ; JUMP_TO_SUBROUT 200
3. 102 B200 ; JUMP_TO_SUBROUT 200
4. 103 1940 ; LOAD_AC_MEM 940
5. 104 F000 ; HALT
6. 200 1940 ; LOAD_AC_MEM 940
7. 201 7000 ; ADD_AC_REG
8. 202 2940 ; STORE_AC_MEM 940
9. 203 C000 ; RET_FRM_SUBROUT""",

    "Arithmetic": """((7 * 6) - 2) / 4 stored at 941
1. 100 6007 ; LOAD_REG_OPERAND 7
2. 101 3000 ; LOAD_AC_REG
3. 102 6006 ; LOAD_REG_OPERAND 6
4. 103 8000 ; MULT_AC_REG
5. 104 2940 ; STORE_AC_MEM 940
6. 105 6002 ; LOAD_REG_OPERAND 2
7. 106 9000 ; SUBT_AC_REG
8. 107 6004 ; LOAD_REG_OPERAND 4
9. 108 A000 ; DIV_AC_REG
10. 109 2941 ; STORE_AC_MEM 941
11. 10A F000 ; HALT""",

    "Divide by zero": """1. 100 6000 ; LOAD_REG_OPERAND 0
2. 101 A000 ; DIV_AC_REG
3. 102 F000 ; HALT""",

    "Custom": ""
}

MAX_TRACE_LINES = 200


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str) -> tuple:
    """Load and run a program image.

    Args:
        program: Program image text

    Returns:
        Tuple of (summary_text, reports_text, trace_text)
    """
    if not program.strip():
        return "Error: No program provided", "", ""

    cpu = CPU(trace=True)
    try:
        image = load_program_image(cpu, program)
    except ProgramImageError as e:
        return f"Error: {e}", "", ""
    if image.entry_point is None:
        return "Error: Program image contains no instructions", "", ""

    fault = None
    try:
        cpu.run()
    except CPUFault as e:
        fault = e
        cpu.emit_report("Status at fault")

    summary = cpu.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Words loaded: {len(image)}",
        f"Entry point: {image.entry_point:03X}",
        f"Instructions executed: {summary['instructions_executed']}",
        f"Subroutine calls: {summary['subroutine_calls']}",
        f"Halted normally: {'Yes' if fault is None else 'No'}",
    ]
    if fault is not None:
        summary_lines.append(f"\nFault: {fault}")
    summary_text = "\n".join(summary_lines)

    reports_text = "\n".join(report.render() for report in cpu.reports)

    trace_lines = cpu.format_trace().splitlines()
    if len(trace_lines) > MAX_TRACE_LINES:
        extra = len(trace_lines) - MAX_TRACE_LINES
        trace_lines = trace_lines[:MAX_TRACE_LINES] + [f"... ({extra} more lines)"]
    trace_text = "\n".join(trace_lines)

    return summary_text, reports_text, trace_text


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="SIMPLE-CPU Demo") as demo:
        gr.Markdown("""
        # SIMPLE-CPU: 16-bit Accumulator Machine

        Each instruction is a 16-bit word: a 4-bit opcode and a 12-bit address/operand.
        The CPU fetches, decodes and executes until `HALT` or a fault.

        **Program image lines**: `N. AAA WWWW ; comment` (address `AAA`, word `WWWW`, hex).
        Lines not starting with a digit are comments.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program Image")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Add five",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Add five"],
                    label="Program",
                    lines=15,
                    placeholder="1. 100 6005 ; LOAD_REG_OPERAND 5"
                )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    reports_output = gr.Textbox(
                        label="Status Reports",
                        lines=10,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Opcode | Mnemonic | Effect |
            |--------|----------|--------|
            | `1` | `LOAD_AC_MEM` | AC := MEM[addr] |
            | `2` | `STORE_AC_MEM` | MEM[addr] := AC |
            | `3` | `LOAD_AC_REG` | AC := GR |
            | `4` | `STORE_AC_REG` | GR := AC |
            | `5` | `ADD_AC_MEM` | AC += MEM[addr] |
            | `6` | `LOAD_REG_OPERAND` | GR := operand |
            | `7` | `ADD_AC_REG` | AC += GR |
            | `8` | `MULT_AC_REG` | AC *= GR |
            | `9` | `SUBT_AC_REG` | AC -= GR |
            | `A` | `DIV_AC_REG` | AC := AC / GR (faults if GR = 0) |
            | `B` | `JUMP_TO_SUBROUT` | push PC, IR, AC, GR; PC := addr |
            | `C` | `RET_FRM_SUBROUT` | report; pop GR, AC, IR, PC |
            | `F` | `HALT` | report; stop |

            **Memory**: 4096 words (000-FFF). Report window: 940-942.
            **Execution stack**: 1024 words, four per subroutine call.
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input],
            outputs=[summary_output, reports_output, trace_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
