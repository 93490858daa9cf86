"""CLI for compiling a vault and checking its publish status."""

import argparse
import asyncio
import base64
import json
import sys
from pathlib import Path

from rich.markup import escape

from garden_publisher.config import CompilerSettings, load_settings
from garden_publisher.core.models import BatchResult
from garden_publisher.core.processor import PageCompiler
from garden_publisher.core.status import PublishStatusManager
from garden_publisher.core.vault import FileSystemVault
from garden_publisher.errors import PublisherError
from garden_publisher.logger import console, setup_logging, success


def load_cli_settings(args) -> CompilerSettings:
    if args.config:
        return load_settings(args.config)
    return CompilerSettings()


def compile_vault(args) -> BatchResult:
    settings = load_cli_settings(args)
    vault = FileSystemVault(Path(args.vault))
    compiler = PageCompiler(vault, settings)

    if args.notes:
        return asyncio.run(compiler.compile_many(args.notes))
    return asyncio.run(compiler.compile_marked())


def cmd_compile(args):
    """Compile notes and write them, with their assets, to the output directory."""
    result = compile_vault(args)
    output_dir = Path(args.output)

    for path, document in sorted(result.compiled.items()):
        target = output_dir / 'notes' / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document.text, encoding='utf-8')

        for asset in document.assets:
            asset_target = output_dir / asset.publish_path.lstrip('/')
            asset_target.parent.mkdir(parents=True, exist_ok=True)
            asset_target.write_bytes(base64.b64decode(asset.content))

        for warning in document.warnings:
            console.print(f"[yellow]![/yellow] {escape(path)}: {escape(warning)}", markup=True, highlight=False)

    for failure in result.failures:
        console.print(f"[red]✗[/red] {escape(failure.path)}: {escape(failure.error)}", markup=True, highlight=False)

    success(f"Compiled {len(result.compiled)} notes to {output_dir}")
    if result.failures:
        sys.exit(1)


def cmd_status(args):
    """Compare compiled notes against a JSON file of remote hashes.

    The file holds ``{"notes": {path: sha}, "assets": {path: sha}}``.
    """
    remote_file = Path(args.remote_hashes)
    try:
        remote = json.loads(remote_file.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        print(f"Error: Cannot read remote hashes from {remote_file}: {e}")
        sys.exit(1)

    result = compile_vault(args)
    status = PublishStatusManager(load_cli_settings(args)).get_publish_status(
        result.compiled.values(),
        remote.get('notes', {}),
        remote.get('assets', {}),
    )

    sections = (
        ("Unpublished", [d.path for d in status.unpublished]),
        ("Changed", [d.path for d in status.changed]),
        ("Published", [d.path for d in status.published]),
        ("Deleted notes", [d.path for d in status.deleted_notes]),
        ("Deleted assets", [d.path for d in status.deleted_assets]),
    )
    for title, paths in sections:
        print(f"{title} ({len(paths)}):")
        for path in paths:
            print(f"  {path}")


def main():
    """Main entry point for the garden-publisher CLI."""
    parser = argparse.ArgumentParser(
        description="Compile Obsidian notes for a digital garden site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO, or $LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile notes to an output directory",
        description=(
            "Compile notes marked for publishing.\n\n"
            "Compiled notes go to OUTPUT/notes/<vault path>; assets go to\n"
            "OUTPUT/<publish path>, e.g. OUTPUT/img/user/pics/cat.png.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    compile_parser.add_argument(
        "--output",
        "-o",
        required=True,
        help="Directory to write compiled notes and assets to",
    )

    status_parser = subparsers.add_parser(
        "status",
        help="Show which notes differ from the published site",
    )
    status_parser.add_argument(
        "--remote-hashes",
        "-r",
        required=True,
        help="JSON file with the published note and asset hashes",
    )

    for sub in (compile_parser, status_parser):
        sub.add_argument("vault", help="Path to the vault directory")
        sub.add_argument(
            "notes",
            nargs="*",
            help="Vault paths of notes to compile (default: all marked notes)",
        )
        sub.add_argument(
            "--config",
            "-c",
            help="YAML settings file",
        )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)

    try:
        if args.command == "compile":
            cmd_compile(args)
        elif args.command == "status":
            cmd_status(args)
    except PublisherError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
