"""SIMPLE-CPU command line interface.

Load a program image, run it, and write every status report to the
console or to a file.

Usage:
    simple-cpu programs/add_five.txt
    simple-cpu programs/subroutine.txt --output report.txt --trace
"""

import argparse
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .cpu import CPU
from .errors import CPUFault
from .loader import ProgramImageError, load_program_file


logger = logging.getLogger("simple_cpu")

LOGGING_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "error": logging.ERROR,
}

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_BAD_INPUT = 2


def configure_logging(level: str) -> None:
    """Use ``$XDG_CONFIG_HOME/simple_cpu/logging.cfg`` if present, else basicConfig."""
    cfg = os.path.expandvars("${XDG_CONFIG_HOME}/simple_cpu/logging.cfg")
    if os.path.exists(cfg):
        logging.config.fileConfig(cfg, disable_existing_loggers=False)
    else:
        logging.basicConfig()
    logger.setLevel(LOGGING_LEVELS[level])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simple-cpu",
        description="SIMPLE-CPU: 16-bit accumulator machine emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a program image and print the status reports
    simple-cpu programs/add_five.txt

    # Write reports to a file and show the execution trace
    simple-cpu programs/subroutine.txt --output report.txt --trace
        """
    )
    parser.add_argument("program", help="Path to program image file")
    parser.add_argument(
        "--output", "-o",
        help="Write status reports to this file instead of stdout"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print the per-instruction execution trace"
    )
    parser.add_argument(
        "--dump", "-d",
        action="store_true",
        help="Dump every non-zero memory cell after the run"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=sorted(LOGGING_LEVELS),
        default="error",
        help="Logging level. Default: error"
    )
    return parser


def write_reports(cpu: CPU, sink: TextIO) -> None:
    for report in cpu.reports:
        sink.write(report.render())
        sink.write("\n")


def write_dump(cpu: CPU, sink: TextIO) -> None:
    for address, value in cpu.memory.dump():
        if value:
            sink.write(f"[{address:03X}] {value:04X}\n")


def execute(cpu: CPU, sink: TextIO, trace: bool = False, dump: bool = False) -> int:
    """Run a loaded CPU and write its reports to ``sink``.

    This is the single place faults are turned into an exit status.
    """
    status = EXIT_OK
    try:
        cpu.run()
    except CPUFault as e:
        print(f"Execution fault: {e}", file=sys.stderr)
        cpu.emit_report("Status at fault")
        status = EXIT_FAULT

    write_reports(cpu, sink)
    if trace:
        sink.write(cpu.format_trace())
    if dump:
        write_dump(cpu, sink)
    return status


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    cpu = CPU(trace=args.trace)
    try:
        image = load_program_file(cpu, args.program)
    except FileNotFoundError:
        print(f"Error: Program file not found: {args.program}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except ProgramImageError as e:
        print(f"Error: {args.program}: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    if image.entry_point is None:
        print(f"Error: {args.program}: program image contains no instructions", file=sys.stderr)
        return EXIT_BAD_INPUT

    if args.output:
        try:
            sink = Path(args.output).open("w")
        except OSError as e:
            print(f"Error: Cannot write reports to {args.output}: {e.strerror}", file=sys.stderr)
            return EXIT_BAD_INPUT
        with sink:
            return execute(cpu, sink, trace=args.trace, dump=args.dump)
    return execute(cpu, sys.stdout, trace=args.trace, dump=args.dump)


if __name__ == "__main__":
    sys.exit(main())
