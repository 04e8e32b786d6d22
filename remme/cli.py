#!/usr/bin/env python3
"""
remme - a local bookmark manager.

Command-line front end over the record store, normalizer and import/export
operations.
"""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from remme.config import RemmeConfig, get_config, init_config
from remme.errors import StoreError
from remme.exporters import default_export_filename, export_json
from remme.filters import all_tags, filter_links, sort_links
from remme.importers import ImportOutcome, import_file
from remme.models import Link
from remme.normalize import FormValues, build_new_link, build_updated_link, format_domain
from remme.store import RecordStore

logger = logging.getLogger(__name__)


console = Console()


def open_store(args) -> RecordStore:
    return RecordStore(path=args.db) if args.db else RecordStore()


def _format_time(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def output_links(links: List[Link], format: str = "table"):
    """Output links in the specified format."""
    config = get_config()

    if format == "json":
        print(json.dumps([link.to_dict() for link in links], indent=2 if config.export_pretty else None,
                         ensure_ascii=False))
    elif format == "urls":
        for link in links:
            print(link.url)
    else:
        table = Table(title="Links")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Domain", style="blue")
        table.add_column("Tags", style="yellow")
        table.add_column("Added", style="magenta")

        for link in links:
            table.add_row(
                link.id[:8],
                link.title[:50],
                format_domain(link.url),
                ", ".join(sorted(link.tags))[:30],
                _format_time(link.created_at),
            )

        console.print(table)


async def _find_link(store: RecordStore, link_id: str) -> Optional[Link]:
    """Resolve a full id or a unique id prefix as shown in the table."""
    link = await store.get(link_id)
    if link:
        return link
    candidates = [c for c in await store.get_all() if c.id.startswith(link_id)]
    return candidates[0] if len(candidates) == 1 else None


async def cmd_add(args):
    """Add a new link."""
    link = build_new_link(FormValues(url=args.url, title=args.title or "", note=args.note or "",
                                     tags=args.tags or ""))
    async with open_store(args) as store:
        await store.add(link)

    if args.quiet:
        print(link.id)
    else:
        output_links([link], args.output)


async def cmd_list(args):
    """List links, newest first."""
    async with open_store(args) as store:
        links = sort_links(await store.get_all())

    links = filter_links(links, search=args.search or "", tag=args.tag)
    if args.limit:
        links = links[:args.limit]
    output_links(links, args.output)


async def cmd_get(args):
    """Show a single link."""
    async with open_store(args) as store:
        link = await _find_link(store, args.id)

    if not link:
        console.print(f"[red]Link not found: {args.id}[/red]")
        sys.exit(1)
    output_links([link], args.output)


async def cmd_edit(args):
    """Edit a link. Options left out keep their current value."""
    async with open_store(args) as store:
        existing = await _find_link(store, args.id)
        if not existing:
            console.print(f"[red]Link not found: {args.id}[/red]")
            sys.exit(1)

        form = FormValues(
            url=args.url if args.url is not None else existing.url,
            title=args.title if args.title is not None else existing.title,
            note=args.note if args.note is not None else existing.note,
            tags=args.tags if args.tags is not None else ", ".join(existing.tags),
        )
        updated = build_updated_link(existing, form)
        await store.update(updated)

    if not args.quiet:
        console.print(f"[green]Updated link {updated.id}[/green]")


async def cmd_delete(args):
    """Delete one or more links."""
    missing = []
    async with open_store(args) as store:
        for link_id in args.ids:
            link = await _find_link(store, link_id)
            if not link:
                console.print(f"[red]Link not found or id prefix ambiguous: {link_id}[/red]")
                missing.append(link_id)
                continue
            await store.delete(link.id)
            if not args.quiet:
                console.print(f"[green]Deleted link {link.id}[/green]")

    if missing:
        sys.exit(1)


async def cmd_tags(args):
    """List tags with their usage counts."""
    async with open_store(args) as store:
        links = await store.get_all()

    counts = {tag: sum(1 for link in links if tag in link.tags) for tag in all_tags(links)}

    if args.output == "json":
        print(json.dumps([{"tag": tag, "count": count} for tag, count in counts.items()], indent=2))
    else:
        table = Table(title="Tags")
        table.add_column("Tag", style="cyan")
        table.add_column("Count", style="green")
        for tag, count in counts.items():
            table.add_row(tag, str(count))
        console.print(table)


async def cmd_export(args):
    """Export all links to a JSON file."""
    path = Path(args.file or default_export_filename())
    async with open_store(args) as store:
        links = await store.get_all()

    count = export_json(links, path, pretty=get_config().export_pretty)
    if not args.quiet:
        console.print(f"[green]Exported {count} links to {path}[/green]")


async def cmd_import(args):
    """Import links from a JSON export file."""
    async with open_store(args) as store:
        result = await import_file(store, Path(args.file))

    if args.quiet:
        print(result.inserted)
    elif result.outcome is ImportOutcome.IMPORTED:
        console.print(f"[green]{result.message}[/green]")
    else:
        console.print(f"[yellow]{result.message}[/yellow]")

    if result.outcome is ImportOutcome.PARSE_ERROR:
        sys.exit(1)


async def cmd_config(args):
    """Show or change configuration."""
    config = get_config()
    names = [f.name for f in fields(config)]

    if args.action == "show":
        if args.key:
            if args.key not in names:
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            print(json.dumps(asdict(config), indent=2))

    elif args.action == "set":
        if not args.key or args.value is None:
            console.print("[red]Usage: remme config set KEY VALUE[/red]")
            sys.exit(1)
        # Command-line overrides must not end up in the saved file
        saved = RemmeConfig.load()
        try:
            saved.set(args.key, args.value)
        except KeyError:
            console.print(f"[red]Unknown config key: {args.key}[/red]")
            sys.exit(1)
        saved.save()
        if not args.quiet:
            console.print(f"[green]Set {args.key} = {getattr(saved, args.key)}[/green]")

    elif args.action == "init":
        path = Path.home() / ".config" / "remme" / "config.toml"
        RemmeConfig().save(path)
        if not args.quiet:
            console.print(f"[green]Created config at {path}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remme",
        description="remme - save links with notes and tags",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  remme add example.com --title "Example" --tags "web, demo"
  remme list --search python --tag docs
  remme edit 1a2b3c4d --note "read later"
  remme delete 1a2b3c4d
  remme export backup.json
  remme import backup.json
  remme config set output_format json

Configuration:
  Default database: ./remme.db or from config
  Config file: ~/.config/remme/config.toml
  Environment: REMME_DATABASE, REMME_OUTPUT_FORMAT, REMME_LOG_LEVEL
        """
    )

    parser.add_argument("--db", help="Database file (default: remme.db)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-o", "--output", choices=["table", "json", "urls"], help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Save a link")
    add.add_argument("url", help="URL (https:// is assumed when no scheme is given)")
    add.add_argument("--title", help="Title (defaults to the URL)")
    add.add_argument("--note", help="Free-text note")
    add.add_argument("--tags", help="Comma separated tags")
    add.set_defaults(func=cmd_add)

    lst = subparsers.add_parser("list", help="List saved links")
    lst.add_argument("--search", "-s", help="Search title, URL, note and tags")
    lst.add_argument("--tag", "-t", help="Only links with this tag")
    lst.add_argument("--limit", "-n", type=int, help="Maximum number of links")
    lst.set_defaults(func=cmd_list)

    get = subparsers.add_parser("get", help="Show a link")
    get.add_argument("id", help="Link id or id prefix")
    get.set_defaults(func=cmd_get)

    edit = subparsers.add_parser("edit", help="Edit a link")
    edit.add_argument("id", help="Link id or id prefix")
    edit.add_argument("--url")
    edit.add_argument("--title")
    edit.add_argument("--note")
    edit.add_argument("--tags", help="Comma separated tags (replaces all tags)")
    edit.set_defaults(func=cmd_edit)

    delete = subparsers.add_parser("delete", help="Delete links")
    delete.add_argument("ids", nargs="+", help="Link ids or id prefixes")
    delete.set_defaults(func=cmd_delete)

    tags = subparsers.add_parser("tags", help="List tags")
    tags.set_defaults(func=cmd_tags)

    export = subparsers.add_parser("export", help="Export links to JSON")
    export.add_argument("file", nargs="?", help="Output file (default: remme-links-<date>.json)")
    export.set_defaults(func=cmd_export)

    imp = subparsers.add_parser("import", help="Import links from a JSON export")
    imp.add_argument("file", help="JSON file to import")
    imp.set_defaults(func=cmd_import)

    config_parser = subparsers.add_parser("config", help="Show or change configuration")
    config_parser.add_argument("action", choices=["show", "set", "init"],
                               help="show: print settings, set: save one setting, init: write a default config file")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_args = {}
    if args.output:
        config_args["output_format"] = args.output
    config = init_config(
        database=args.db,
        config_file=Path(args.config) if args.config else None,
        **config_args
    )

    if not args.output:
        args.output = config.output_format
    console.no_color = not config.color_output

    logging.basicConfig(level=config.log_level.upper(), format='%(levelname)s: %(message)s')

    try:
        asyncio.run(args.func(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except (StoreError, ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
