"""chip8-vm Interactive Demo.

A Gradio web interface for running and inspecting CHIP-8 programs.

Usage:
    cd /path/to/chip8-vm
    python demo/gradio_app.py

Features:
    - Upload a ROM or enter a program as hex words
    - Run headless and view the final display
    - See the per-instruction trace with mnemonics
    - Inspect registers, index, stack and timers
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from chip8_vm import Chip8Config, Chip8VM, ExecutionFault, ProgramTooLargeError, parse_hex_program
from chip8_vm.render import display_to_text


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Add via subroutine": """6001 6103 2208 0000
8014 8014 8014 00EE""",

    "Draw digits": """00E0 6000 6100 6205 6301 F329 D015
6307 F329 8024 D015 0000""",

    "BCD of 234": """60EA A300 F033 F265 0000""",

    "Delay countdown": """603C F015 F007 3000 1204 0000""",

    "Custom": ""
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, rom_file, max_cycles: int, hz: float, seed) -> tuple:
    """Execute a program and return results.

    Args:
        program: Program as hex words (ignored when a ROM is uploaded)
        rom_file: Uploaded ROM path, or None
        max_cycles: Maximum execution cycles
        hz: Simulated instruction rate for the timers
        seed: Seed for Cxkk, or None (empty field) for an unseeded generator

    Returns:
        Tuple of (summary_text, display_text, trace_text, registers_text)
    """
    try:
        if rom_file is not None:
            data = Path(rom_file if isinstance(rom_file, str) else rom_file.name).read_bytes()
        else:
            if not program.strip():
                return "Error: No program provided", "", "", ""
            data = parse_hex_program(program)
    except (OSError, ValueError) as e:
        return f"Error: {e}", "", "", ""

    seed = None if seed is None else int(seed)
    vm = Chip8VM(Chip8Config(max_cycles=int(max_cycles), seed=seed, trace=True, trace_limit=200))
    try:
        vm.load(data)
    except ProgramTooLargeError as e:
        return f"Error: {e}", "", "", ""

    error_msg = None
    try:
        vm.run(elapsed=1.0 / hz)
    except (RuntimeError, ExecutionFault) as e:
        error_msg = str(e)

    # Format summary
    summary = vm.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
        f"Waiting for key: {'Yes' if summary['waiting_for_key'] else 'No'}",
        f"Lit pixels: {summary['lit_pixels']}",
    ]
    if error_msg:
        summary_lines.append(f"\nRuntime: {error_msg}")
    summary_text = "\n".join(summary_lines)

    # Format trace (last entries only)
    trace_lines = [
        "EXECUTION TRACE",
        "=" * 60,
    ]
    for entry in vm.trace:
        if entry.decode_result is None:
            line = f"[{entry.cycle:>6}] {entry.pc:03X}: ????  (fetch failed)"
        else:
            line = f"[{entry.cycle:>6}] {entry.pc:03X}: {entry.opcode:04X}  {entry.decode_result.mnemonic}"
        if entry.error:
            line += f"  !! {entry.error}"
        trace_lines.append(line)
    trace_text = "\n".join(trace_lines)

    # Format registers
    regs = vm.dump_registers()
    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    for reg in sorted(regs.keys()):
        marker = " *" if regs[reg] != 0 else ""
        reg_lines.append(f"  {reg}: {regs[reg]:02X}{marker}")
    reg_lines.append("")
    reg_lines.append(f"  I:  {summary['index']:03X}")
    reg_lines.append(f"  PC: {summary['pc']:03X}")
    reg_lines.append(f"  SP: {summary['stack_depth']}")
    reg_lines.append(f"  DT: {summary['delay']}  ST: {summary['sound']}")
    registers_text = "\n".join(reg_lines)

    return summary_text, display_to_text(vm.display, on="█", off=" "), trace_text, registers_text


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="chip8-vm Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # chip8-vm: CHIP-8 Virtual Machine

        Runs a CHIP-8 program headless and shows the final framebuffer,
        register file and instruction trace.

        **Pipeline**: `fetch -> decode -> key -> registry -> execute -> timers`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Add via subroutine",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Add via subroutine"],
                    label="Hex Words",
                    lines=8,
                    placeholder="00E0 A20A 6000 6100 D015 ..."
                )

                rom_input = gr.File(label="Or upload a ROM", type="filepath")

                gr.Markdown("### Settings")

                with gr.Row():
                    max_cycles = gr.Slider(
                        minimum=100,
                        maximum=200000,
                        value=10000,
                        step=100,
                        label="Max Cycles"
                    )
                    hz = gr.Slider(
                        minimum=60,
                        maximum=2000,
                        value=500,
                        step=10,
                        label="Instructions per Second"
                    )
                seed = gr.Number(value=0, label="Random Seed", precision=0)

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                display_output = gr.Textbox(
                    label="Display (64x32)",
                    lines=32,
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=8,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=8,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Execution Trace (last 200)",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("Instruction Reference", open=False):
            gr.Markdown("""
            | Opcode | Mnemonic | Effect |
            |--------|----------|--------|
            | `00E0` | `CLS` | Clear display |
            | `00EE` | `RET` | Return from subroutine |
            | `1nnn` | `JP nnn` | Jump |
            | `2nnn` | `CALL nnn` | Call subroutine |
            | `3xkk` / `4xkk` | `SE` / `SNE Vx, kk` | Skip if equal / not equal |
            | `6xkk` / `7xkk` | `LD` / `ADD Vx, kk` | Load / add immediate |
            | `8xyN` | ALU | LD, OR, AND, XOR, ADD, SUB, SHR, SUBN, SHL |
            | `Annn` | `LD I, nnn` | Set index |
            | `Dxyn` | `DRW Vx, Vy, n` | XOR sprite, VF = collision |
            | `Fx0A` | `LD Vx, K` | Wait for key |
            | `Fx33` | `LD B, Vx` | BCD |

            **Registers**: V0-VF (8-bit), I (16-bit). VF is the flag register.
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, rom_input, max_cycles, hz, seed],
            outputs=[summary_output, display_output, trace_output, registers_output]
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
