import logging
import subprocess
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from tblbind import __version__
from tblbind._internal.defs import SegmentSizes
from tblbind._internal.exceptions import TblbindError
from tblbind._internal.ingest import find_executable, load_records
from tblbind.generate import dialect_names, emit_dialect_module

app = typer.Typer(
    name="tblbind",
    help="Generate typed Python bindings from TableGen operation definitions.",
    add_completion=True,
    pretty_exceptions_enable=False,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Routes library logging through rich; `verbose` enables debug output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def resolve_include_directories(
    include_directories: list[str], llvm_include_directory: Path | None
) -> list[str]:
    """
    Resolves include directories against the LLVM include directory.

    Directories whose first component is `.` or `..` are relative to the working
    directory and kept as given; all others are joined under
    `llvm_include_directory` when one is configured.
    """
    if llvm_include_directory is None:
        return list(include_directories)
    resolved = [str(llvm_include_directory)]
    for directory in include_directories:
        if Path(directory).parts[:1] in ((".",), ("..",)):
            resolved.append(directory)
        else:
            resolved.append(str(llvm_include_directory / directory))
    return resolved


def format_with_ruff(source: str) -> str:
    """Format a Python file with ruff."""
    args = ["ruff", "format", "--stdin-filename", "bindings.py", "-"]
    process = subprocess.run(args, input=source, capture_output=True, text=True)
    if process.returncode != 0:
        return source
    return process.stdout


def format_python_file(source: str) -> str:
    """
    Tries to format a Python file with `ruff` if it is available.
    Otherwise, returns the source unmodified.
    """
    if find_executable("ruff") is not None:
        return format_with_ruff(source)
    return source


FilesOption = typer.Option(
    ...,
    "--file",
    "-f",
    help="Schema files: .td sources, or .json record dumps from llvm-tblgen.",
)
IncludeOption = typer.Option(
    [],
    "--include",
    "-I",
    help="Include directories for the table parser.",
)
LlvmIncludeOption = typer.Option(
    None,
    "--llvm-include-dir",
    envvar="LLVM_INCLUDE_DIRECTORY",
    help="LLVM include directory; other include directories are resolved under it.",
    file_okay=False,
    dir_okay=True,
)
TblgenOption = typer.Option(
    None,
    "--tblgen",
    envvar="LLVM_TBLGEN",
    help="The llvm-tblgen executable to run.",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose output.")


@app.command()
def generate(
    namespace: str = typer.Argument(..., help="The dialect to generate bindings for."),
    files: list[str] = FilesOption,
    include: list[str] = IncludeOption,
    llvm_include_dir: Path = LlvmIncludeOption,  # noqa: B008
    tblgen: str = TblgenOption,
    operand_segment_sizes: str = typer.Option(
        "operandSegmentSizes",
        "--operand-segment-sizes",
        help="Name of the attribute recording operand group sizes.",
    ),
    result_segment_sizes: str = typer.Option(
        "resultSegmentSizes",
        "--result-segment-sizes",
        help="Name of the attribute recording result group sizes.",
    ),
    output: Path = typer.Option(  # noqa: B008
        None,
        "--output",
        "-o",
        help="The output path for the bindings. Prints to stdout by default.",
        file_okay=True,
        dir_okay=False,
        writable=True,
    ),
    format_output: bool = typer.Option(
        False, "--format/--no-format", help="Format the bindings with ruff if available."
    ),
    verbose: bool = VerboseOption,
) -> None:
    """
    Generate the Python bindings of one dialect namespace.
    """
    configure_logging(verbose)
    segment_sizes = SegmentSizes(
        operands=operand_segment_sizes, results=result_segment_sizes
    )

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task("Loading records...", total=None)
            keeper = load_records(
                files,
                resolve_include_directories(include, llvm_include_dir),
                tblgen,
            )
            progress.update(
                task, description=f"Generating [cyan]{namespace}[/cyan] bindings..."
            )
            module = emit_dialect_module(keeper, namespace, segment_sizes=segment_sizes)
    except TblbindError as e:
        err_console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from e

    source = format_python_file(module.source) if format_output else module.source

    for warning in module.warnings:
        err_console.print(f"[yellow]Warning:[/] {warning}")

    if output:
        output.write_text(source)
        err_console.print(
            f"[bold green]Success![/] {len(module.operations)} operation(s) of "
            f"[bold cyan]'{namespace}'[/bold cyan] written to [cyan]{output}[/cyan]."
        )
    else:
        typer.echo(source, nl=False)


@app.command()
def dialects(
    files: list[str] = FilesOption,
    include: list[str] = IncludeOption,
    llvm_include_dir: Path = LlvmIncludeOption,  # noqa: B008
    tblgen: str = TblgenOption,
    verbose: bool = VerboseOption,
) -> None:
    """
    List the dialects declared in the schema files.
    """
    configure_logging(verbose)
    try:
        keeper = load_records(
            files, resolve_include_directories(include, llvm_include_dir), tblgen
        )
    except TblbindError as e:
        err_console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from e

    names = dialect_names(keeper)
    if not names:
        err_console.print("[dim]No dialects found.[/dim]")
    for name in names:
        console.print(name, markup=False, highlight=False)


@app.command()
def version() -> None:
    """
    Print the tblbind version.
    """
    console.print(f"tblbind {__version__}", highlight=False)


if __name__ == "__main__":
    app()
