"""
sicasm - SIC Assembler Command-Line Interface
=============================================

This module implements the command-line interface for the SIC assembler.

Usage Examples
--------------
Basic assembly:
    $ sicasm copy.asm

With output file:
    $ sicasm copy.asm -o copy.obj

Generate all output files:
    $ sicasm copy.asm -o copy.obj -l copy.lst -s copy.sym

Stricter checking:
    $ sicasm --unknown-opcode error copy.asm

Verbose mode:
    $ sicasm -v copy.asm

Exit Codes
----------
    0   assembled without errors (warnings allowed)
    1   errors were reported; the object file is still written
    2   invalid arguments or unreadable input
    3   internal error
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from sicasm import __version__
from sicasm.assembler import Assembler
from sicasm.cli.errors import ExitCode, handle_cli_exception
from sicasm.config import AssemblerConfig, UnknownOpcodePolicy


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output object file (default: input.obj)",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate listing file",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "--max-text-bytes",
    type=click.IntRange(1, 255),
    default=30,
    show_default=True,
    help="Maximum number of code bytes in one Text record",
)
@click.option(
    "--unknown-opcode",
    type=click.Choice([p.value for p in UnknownOpcodePolicy], case_sensitive=False),
    default=UnknownOpcodePolicy.WARN.value,
    show_default=True,
    help="How to report opcodes that are neither mnemonics nor directives",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="sicasm")
def main(
    input_file: Path,
    output: Optional[Path],
    listing: Optional[Path],
    symbols: Optional[Path],
    max_text_bytes: int,
    unknown_opcode: str,
    verbose: bool,
) -> None:
    """
    Assemble SIC source code into an object program.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    The object program holds one Header record, Text records with the
    object code, and one End record.

    \b
    Examples:
        sicasm copy.asm              # Outputs copy.obj
        sicasm copy.asm -o out.obj   # Specify output file
        sicasm copy.asm -l copy.lst  # Also write a listing
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    output_file = output if output is not None else input_file.with_suffix(".obj")

    config = AssemblerConfig(
        max_text_bytes=max_text_bytes,
        unknown_opcode_policy=UnknownOpcodePolicy.from_name(unknown_opcode),
    )
    asm = Assembler(config=config, verbose=verbose)

    try:
        if verbose:
            click.echo(f"Assembling {input_file}...")

        program = asm.assemble_file(input_file)

        # Outputs are written even when errors were reported, so the
        # listing can be used to find them.
        asm.write_object(output_file)
        if verbose:
            click.echo(f"Wrote {len(program.text_records)} text records to {output_file}")

        if listing:
            asm.write_listing(listing)
            if verbose:
                click.echo(f"Wrote listing to {listing}")

        if symbols:
            asm.write_symbols(symbols)
            if verbose:
                click.echo(f"Wrote symbols to {symbols}")

        if asm.has_errors() or asm.has_warnings():
            click.echo(asm.get_error_report(), err=True)

        if verbose:
            click.echo(
                f"Assembly complete: {program.program_length} bytes "
                f"at {program.start_address:04X}"
            )
            click.echo(f"Defined {len(asm.get_symbols())} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")

    if asm.has_errors():
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
