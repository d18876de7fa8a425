import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from viewdeb_core.config import settings
from viewdeb_core.errors import ViewdebError
from viewdeb_core.models.package_info import Report
from viewdeb_core.output.writer import FORMATS, report_to_json, save_report
from viewdeb_core.pipeline import PackageInspector

console = Console()
err_console = Console(stderr=True)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {value}")
    return number


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or more, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="viewdeb",
        description="""
            VIEWDEB:
            Inspects a Debian package without installing it. Reports the
            package metadata, the full file manifest, maintainer scripts,
            control files and an ELF / desktop entry summary of the
            binaries it ships.
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show pipeline log messages.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser(
        "inspect",
        help="Analyze a .deb / .udeb package and print a report.",
    )
    inspect.add_argument("package", help="Path to the package file.")
    inspect.add_argument(
        "--save-file",
        type=str,
        default="",
        help="""
            Writes the full report to this path, for later processing
            or integrations.
        """
    )
    inspect.add_argument(
        "--format",
        choices=FORMATS,
        default="json",
        help="Format of the file written by --save-file (default json).",
    )
    inspect.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON report instead of tables.",
    )
    inspect.add_argument(
        "--max-elf",
        type=non_negative_int,
        default=None,
        help=f"Maximum number of binaries to analyze (default {settings.limits.max_elf_analysis}).",
    )
    inspect.add_argument(
        "--workers",
        type=positive_int,
        default=None,
        help=f"Worker threads for per-file analysis (default {settings.analysis.workers}).",
    )
    inspect.add_argument(
        "--files",
        action="store_true",
        help="Also print the full file manifest.",
    )

    show = subparsers.add_parser(
        "show",
        help="Print the content of one file inside a package.",
    )
    show.add_argument("package", help="Path to the package file.")
    show.add_argument("path", help="Path of the file inside the package, e.g. usr/share/doc/foo/copyright.")
    show.add_argument(
        "--max-lines",
        type=positive_int,
        default=None,
        help=f"Truncate after this many lines (default {settings.analysis.preview_max_lines}).",
    )
    return parser


def format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def print_report(report: Report, show_files: bool = False):
    meta = report.metadata.to_dict()
    table = Table(title="Package", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    for key, value in meta.items():
        table.add_row(key, escape(value))
    console.print(table)

    stats = report.stats
    table = Table(title="Statistics", show_header=True, header_style="bold magenta")
    table.add_column("Files")
    table.add_column("ELF")
    table.add_column("Desktop")
    table.add_column("Package size")
    table.add_column("Extracted size")
    table.add_column("Time")
    table.add_row(
        str(stats.file_count),
        str(stats.elf_count),
        str(stats.desktop_count),
        format_size(stats.original_size),
        format_size(stats.extracted_size),
        f"{stats.parse_time} ms",
    )
    console.print(table)

    if report.scripts is not None:
        console.print(f"[bold]Maintainer scripts:[/bold] {', '.join(report.scripts.to_dict())}")

    if report.elf_info:
        table = Table(title="ELF binaries", show_header=True, header_style="bold magenta")
        table.add_column("Path", style="dim")
        table.add_column("Type")
        table.add_column("Machine")
        table.add_column("Entry")
        table.add_column("Interpreter")
        table.add_column("Needed")
        for path, info in report.elf_info.items():
            table.add_row(
                escape(path),
                escape(info.elf_type),
                escape(info.machine),
                info.entry,
                escape(info.interpreter or ""),
                escape("\n".join(info.dependencies or [])),
            )
        console.print(table)

    if report.desktop_info:
        table = Table(title="Desktop entries", show_header=True, header_style="bold magenta")
        table.add_column("Path", style="dim")
        table.add_column("Name")
        table.add_column("Exec")
        table.add_column("Categories")
        for path, entry in report.desktop_info.items():
            table.add_row(
                escape(path),
                escape(entry.get("Name", "")),
                escape(entry.get("Exec", "")),
                escape(entry.get("Categories", "")),
            )
        console.print(table)

    if show_files:
        table = Table(title="Files", show_header=True, header_style="bold magenta")
        table.add_column("Mode")
        table.add_column("Size", justify="right")
        table.add_column("Type")
        table.add_column("Path")
        for entry in report.files:
            table.add_row(entry.mode, str(entry.size), entry.file_type.value, escape(entry.path))
        console.print(table)


def run_inspect(args, config) -> int:
    if args.max_elf is not None:
        config.limits.max_elf_analysis = args.max_elf
    if args.workers is not None:
        config.analysis.workers = args.workers

    report = PackageInspector(config=config).inspect(args.package)

    if args.json:
        # plain print so the output stays machine readable
        print(report_to_json(report))
    else:
        print_report(report, show_files=args.files)

    if args.save_file:
        save_report(report, args.save_file, args.format)
        # keep stdout clean for --json
        out = err_console if args.json else console
        out.print(f"Report saved to {escape(args.save_file)} ({args.format.upper()})")
    return 0


def run_show(args, config) -> int:
    content = PackageInspector(config=config).read_file(args.package, args.path, args.max_lines)
    if content.is_text:
        console.print(content.content, markup=False, highlight=False)
    else:
        console.print(f"[yellow]{escape(content.path)}: binary file, {content.size} bytes[/yellow]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )

    config = settings.model_copy(deep=True)
    try:
        if args.command == "inspect":
            return run_inspect(args, config)
        return run_show(args, config)
    except ViewdebError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        return 1


def start():
    sys.exit(main())


if __name__ == "__main__":
    start()
