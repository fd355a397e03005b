# smartbuild/modules/cli.py
"""
Command line entry point.

Builds every package of the pnpm workspace in the current directory, in
dependency order.

Environment toggles:
  SKIP_BUILD=yes   compute and print the order, launch nothing
  DEBUG=yes        full diagnostics on failure

Usage examples:
  smartbuild
  SKIP_BUILD=yes smartbuild
  smartbuild --root ../monorepo --graph deps.dot --report build-report.json
"""

from __future__ import annotations
import argparse
import dataclasses
import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from smartbuild.modules import logger as _logger
from smartbuild.modules.config import RunOptions, config, config_locations
from smartbuild.modules.errors import BuildError, SmartBuildError
from smartbuild.modules.ignore import IGNORE_FILE, load_ignore_file
from smartbuild.modules.pipeline import BuildPipeline, BuildReport
from smartbuild.modules.workspace import Workspace

STATUS_STYLES = {
    "succeeded": "green",
    "failed": "bold red",
    "skipped": "yellow",
    "pending": "bright_black",
    "running": "blue",
}


def pad(text: str) -> str:
    return f" {text} "


def make_console(no_color: bool) -> Console:
    if no_color:
        return Console(color_system=None, highlight=False)
    return Console(highlight=False)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="smartbuild",
                                 description="Build workspace packages in dependency order")
    ap.add_argument("--root", default=".", help="Workspace root (default: current directory)")
    ap.add_argument("--skip-build", action="store_true", help="Print the build order without building")
    ap.add_argument("-v", "--verbose", action="store_true", help="Full diagnostics on failure")
    ap.add_argument("--command", help="Build command template, {package} is replaced by the package name")
    ap.add_argument("--strict", action="store_true",
                    help="Fail when a package depends on an unknown workspace package")
    ap.add_argument("--ignore-file", help=f"Ignore list (default: {IGNORE_FILE} in the root)")
    ap.add_argument("--graph", metavar="FILE", help="Write the dependency graph as DOT")
    ap.add_argument("--report", metavar="FILE", help="Write a JSON run report")
    ap.add_argument("--no-color", action="store_true")
    return ap


def resolve_options(args, environ=None) -> RunOptions:
    options = RunOptions.from_config(config, os.environ if environ is None else environ)
    changes = {}
    if args.skip_build:
        changes["skip_execution"] = True
    if args.verbose:
        changes["verbose"] = True
    if args.command:
        changes["build_command"] = args.command
    if args.strict:
        changes["missing_policy"] = "error"
    return dataclasses.replace(options, **changes) if changes else options


def print_summary(console: Console, report: BuildReport):
    table = Table(title="Build order", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Package", style="cyan")
    table.add_column("Status")
    for idx, build in enumerate(report.packages, start=1):
        status = build.status.value
        style = STATUS_STYLES.get(status, "")
        table.add_row(str(idx), build.name, f"[{style}]{status}[/{style}]")
    console.print(table)
    if report.ignored:
        console.print(f"[yellow]Ignored:[/yellow] {', '.join(report.ignored)}")


def print_failure(console: Console, error: SmartBuildError, verbose: bool):
    console.print(f"[bold bright_red]Build failed:[/bold bright_red] [on bright_red]{escape(pad(str(error)))}[/on bright_red]")
    if not verbose:
        return
    if isinstance(error, BuildError) and error.detail:
        console.print(Panel(escape(error.detail), title=f"{error.package} output", style="red"))
    if sys.exc_info()[0] is not None:
        console.print_exception()


def write_outputs(console: Console, pipeline: BuildPipeline, args) -> bool:
    """Write the requested DOT graph and JSON report; False when a file cannot be written."""
    report_file = args.report or config.get("build", "report_file", fallback=None)
    try:
        if args.graph and pipeline.graph is not None:
            pipeline.graph.export_dot(args.graph)
        if report_file:
            pipeline.report.write_json(report_file)
    except OSError as e:
        console.print(f"[bold bright_red]Output failed:[/bold bright_red] [on bright_red]{escape(pad(str(e)))}[/on bright_red]")
        return False
    return True


def main(argv: Optional[List[str]] = None, environ=None) -> int:
    args = build_parser().parse_args(argv)
    console = make_console(args.no_color)
    config.reload(config_locations(args.root))

    try:
        options = resolve_options(args, environ)
    except SmartBuildError as e:
        print_failure(console, e, args.verbose)
        return 1

    if options.verbose:
        _logger.set_level("debug")

    workspace = Workspace(root=args.root)
    ignore_path = args.ignore_file or os.path.join(
        workspace.root, config.get("workspace", "ignore_file", fallback=IGNORE_FILE)
    )
    pipeline = BuildPipeline(workspace=workspace, options=options, ignoring=load_ignore_file(ignore_path))

    try:
        report = pipeline.run()
    except SmartBuildError as e:
        if pipeline.report.packages:
            print_summary(console, pipeline.report)
        print_failure(console, e, options.verbose)
        write_outputs(console, pipeline, args)
        return 1

    if not write_outputs(console, pipeline, args):
        return 1

    print_summary(console, report)
    if report.skipped_execution:
        console.print("[yellow]Skip build is set, nothing was built[/yellow]")
    console.print(Panel(f"{len(report.build_list)} package(s) processed", title="smartbuild", style="green"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
