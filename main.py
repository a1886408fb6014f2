#!/usr/bin/env python3
"""chip8-vm Command Line Interface.

Run CHIP-8 programs headless with the chip8-vm interpreter.

Usage:
    python main.py --rom roms/IBM_Logo.ch8 --display
    python main.py --hex "6001 6103 8014 0000" --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_vm import (
    Chip8Config,
    Chip8VM,
    ExecutionFault,
    ProgramTooLargeError,
    disassemble,
    parse_hex_program,
)
from chip8_vm.render import display_to_text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="chip8-vm: CHIP-8 virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM and print the final display
    python main.py --rom roms/IBM_Logo.ch8 --display

    # Run inline hex with full trace output
    python main.py --hex "6001 6103 8014 0000" --trace

    # List the instructions of a ROM
    python main.py --rom roms/IBM_Logo.ch8 --disassemble
        """
    )

    parser.add_argument(
        "--rom", "-r",
        type=str,
        help="Path to a CHIP-8 program image"
    )
    parser.add_argument(
        "--hex", "-x",
        type=str,
        help="Inline program as hex words (e.g. \"00E0 1200\")"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=100000,
        help="Maximum executed instructions (safety limit). Default: 100000"
    )
    parser.add_argument(
        "--hz",
        type=float,
        default=500.0,
        help="Simulated instruction rate used to advance the timers. Default: 500"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the random number instruction (Cxkk)"
    )
    parser.add_argument(
        "--timer-mode",
        choices=["reset", "subtract"],
        default="reset",
        help="Timer accumulator behaviour. Default: reset"
    )
    parser.add_argument(
        "--no-halt-on-zero",
        action="store_true",
        help="Treat opcode 0000 as a no-op instead of a halt"
    )
    parser.add_argument(
        "--no-add-carry",
        action="store_true",
        help="7xkk leaves VF untouched"
    )
    parser.add_argument(
        "--shift-vy",
        action="store_true",
        help="8xy6/8xyE shift Vy into Vx"
    )
    parser.add_argument(
        "--increment-index",
        action="store_true",
        help="Fx55/Fx65 advance I past the last register"
    )
    parser.add_argument(
        "--display", "-d",
        action="store_true",
        help="Print the final display"
    )
    parser.add_argument(
        "--disassemble",
        action="store_true",
        help="Print a listing of the program and exit"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (nonzero registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)"
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate arguments
    if not args.rom and not args.hex:
        parser.error("Either --rom or --hex is required")
    if args.hz <= 0:
        parser.error("--hz must be positive")
    if args.max_cycles <= 0:
        parser.error("--max-cycles must be positive")

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    # Load program
    if args.rom:
        rom_path = Path(args.rom)
        if not rom_path.exists():
            print(f"Error: ROM file not found: {args.rom}")
            return 1
        program = rom_path.read_bytes()
        if not args.quiet:
            print(f"Loading ROM: {args.rom} ({len(program)} bytes)")
    else:
        try:
            program = parse_hex_program(args.hex)
        except ValueError as e:
            parser.error(str(e))
        if not args.quiet:
            print("Running inline program")

    if args.disassemble:
        for line in disassemble(program):
            print(line)
        return 0

    config = Chip8Config(
        max_cycles=args.max_cycles,
        timer_mode=args.timer_mode,
        halt_on_zero=not args.no_halt_on_zero,
        add_immediate_sets_carry=not args.no_add_carry,
        shift_uses_vy=args.shift_vy,
        load_store_increments_index=args.increment_index,
        seed=args.seed,
        trace=args.trace,
        trace_limit=max(1, args.max_cycles) if args.trace else 1000,
    )
    vm = Chip8VM(config)

    try:
        vm.load(program)
    except ProgramTooLargeError as e:
        print(f"Error: {e}")
        return 1

    # Run
    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    failed = False
    try:
        vm.run(elapsed=1.0 / args.hz)
    except (RuntimeError, ExecutionFault) as e:
        print(f"Execution error: {e}")
        failed = True

    # Output
    if args.trace:
        vm.print_trace()
    elif not args.quiet:
        print()
        summary = vm.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        if summary["waiting_for_key"]:
            print("Waiting for key: True")
        print(f"Registers: {summary['registers']}")
        print(f"I: {summary['index']:03X}  PC: {summary['pc']:03X}")
    else:
        # Quiet mode - just print nonzero registers
        regs = vm.dump_registers()
        for reg in sorted(regs.keys()):
            if regs[reg] != 0:
                print(f"{reg}={regs[reg]}")

    if args.display:
        print()
        print(display_to_text(vm.display))

    # Return exit code based on halted state
    return 0 if vm.is_halted() and not failed else 1


if __name__ == "__main__":
    sys.exit(main())
