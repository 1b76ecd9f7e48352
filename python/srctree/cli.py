import argparse
import functools
import json
import logging
import pathlib
import sys
import typing

import pydantic
import yaml
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from srctree.console import console, err_console
from srctree.errors import SrcTreeError
from srctree.tree import render_tree
from srctree.workspace import STAMP_NAME, Workspace


class SrcTreeCommand:
    """Base class for srctree subcommands."""

    name: typing.ClassVar[str]
    help: typing.ClassVar[str]

    def __init__(self, args: argparse.Namespace) -> None:
        self.args = args

    @classmethod
    def configure(cls, parser: argparse.ArgumentParser) -> None:
        pass

    @functools.cached_property
    def workspace(self) -> Workspace:
        return Workspace.find(self.args.workspace)

    def run(self) -> int:
        raise NotImplementedError


class Generate(SrcTreeCommand):
    name = "generate"
    help = "Compose the tree and write unpack/prepare/debug scripts"

    @classmethod
    def configure(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-o", "--output", type=pathlib.Path, help="Output directory (default: outputDir)"
        )

    def run(self) -> int:
        written = self.workspace.generate(self.args.output)
        for name, path in written.items():
            console.print(f"[green]wrote[/] {name} [dim]→ {path}[/]")
        return 0


class Tree(SrcTreeCommand):
    name = "tree"
    help = "Show the composed tree of enabled directories"

    def run(self) -> int:
        composition = self.workspace.compose()
        console.print(render_tree(composition.dirs, label=str(self.workspace.root)))
        return 0


class Dirs(SrcTreeCommand):
    name = "dirs"
    help = "List directories and whether they are enabled"

    @classmethod
    def configure(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--all", action="store_true", help="Include disabled directories")
        parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    def run(self) -> int:
        composition = self.workspace.compose()
        dirs = composition.dirs if self.args.all else composition.enabled

        if self.args.json:
            data = [d.model_dump(mode="json") for d in dirs]
            print(json.dumps(data, indent=2, sort_keys=True))
            return 0

        table = Table("name", "relpath", "enabled", "source", "groups")
        for d in dirs:
            table.add_row(
                d.name,
                d.relpath,
                "yes" if d.enable else "[dim]no[/]",
                d.src.kind,
                ",".join(d.groups),
            )
        console.print(table)
        return 0


class Check(SrcTreeCommand):
    name = "check"
    help = "Compose without writing anything; fail on configuration errors"

    def run(self) -> int:
        composition = self.workspace.compose()
        console.print(
            f"{len(composition.enabled)} of {len(composition)} directories enabled"
        )
        if self.workspace.is_up_to_date():
            console.print(f"[green]{STAMP_NAME} is up to date[/]")
        else:
            console.print(f"[yellow]{STAMP_NAME} is stale, run generate[/]")
        return 0


COMMANDS: tuple[type[SrcTreeCommand], ...] = (Generate, Tree, Dirs, Check)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srctree",
        description="Compose multi-repository source trees from manifests and lockfiles.",
    )
    parser.add_argument(
        "-C",
        "--workspace",
        type=pathlib.Path,
        default=None,
        help="Start searching for srctree.yaml here instead of the current directory",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in COMMANDS:
        sub = subparsers.add_parser(command.name, help=command.help)
        command.configure(sub)
        sub.set_defaults(command_class=command)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )

    try:
        return args.command_class(args).run()
    except (SrcTreeError, pydantic.ValidationError, yaml.YAMLError, OSError) as e:
        err_console.print(f"[bold red]error:[/] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
