"""Command-line interface for pagemarks.

Usage:
    pagemarks capture page.html --url https://example.com/a --text "brown fox"
    pagemarks apply page.html --url https://example.com/a --output marked.html
    pagemarks list [--url URL]
    pagemarks remove <url> <anchor-id>
    pagemarks clear <url>
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from pagemarks.highlighter import RestoreReport
    from pagemarks.models import Anchor
    from pagemarks.storage import AnchorStoreProtocol

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for pagemarks subcommands."""
    parser = argparse.ArgumentParser(
        prog="pagemarks",
        description="Capture, re-apply and manage text highlights on HTML pages.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # capture
    capture_p = sub.add_parser("capture", help="Highlight a span of a saved page")
    capture_p.add_argument("file", type=Path, help="HTML file of the page")
    capture_p.add_argument("--url", required=True, help="URL the page was loaded from")
    capture_p.add_argument("--text", required=True, help="Text to highlight")
    capture_p.add_argument(
        "--occurrence",
        type=int,
        default=1,
        help="Which occurrence of the text to select (default: 1)",
    )
    capture_p.add_argument("--comment", default=None, help="Note for the highlight")
    capture_p.add_argument(
        "--tag", dest="tags", action="append", default=None, help="Label (repeatable)"
    )
    capture_p.add_argument(
        "--output", type=Path, default=None, help="Write the highlighted page here"
    )

    # apply
    apply_p = sub.add_parser("apply", help="Re-apply stored highlights to a page")
    apply_p.add_argument("file", type=Path, help="HTML file of the page")
    apply_p.add_argument("--url", required=True, help="URL the page was loaded from")
    apply_p.add_argument(
        "--output", type=Path, default=None, help="Write the highlighted page here"
    )

    # list
    list_p = sub.add_parser("list", help="List stored highlights")
    list_p.add_argument("--url", default=None, help="Only this page")

    # remove
    remove_p = sub.add_parser("remove", help="Delete one stored highlight")
    remove_p.add_argument("url", help="Page URL")
    remove_p.add_argument("anchor_id", help="Highlight id")

    # clear
    clear_p = sub.add_parser("clear", help="Delete every highlight of a page")
    clear_p.add_argument("url", help="Page URL")

    return parser


def _read_page(path: Path, con: Console):
    """Parse an HTML file or exit with an error."""
    from pagemarks.anchoring import parse_document

    try:
        return parse_document(path.read_bytes())
    except OSError as exc:
        con.print(f"[red]Error:[/] cannot read {path}: {exc.strerror}")
        sys.exit(1)


def _write_page(document, path: Path | None, con: Console) -> None:
    from pagemarks.anchoring import serialize_document

    if path is None:
        return
    path.write_text(serialize_document(document), encoding="utf-8")
    con.print(f"Wrote [cyan]{path}[/]")


def _print_report(report: RestoreReport, con: Console) -> None:
    """Show a restoration report as a Rich table."""
    from rich.table import Table

    table = Table(title="Restored highlights")
    table.add_column("ID", style="cyan")
    table.add_column("Result")

    for anchor_id, tier in report.materialized.items():
        table.add_row(anchor_id, f"[green]{tier.value}[/]")
    for anchor_id in report.skipped:
        table.add_row(anchor_id, "[dim]already shown[/]")
    for anchor_id in report.unresolved:
        table.add_row(anchor_id, "[yellow]not found[/]")
    for anchor_id in report.failed:
        table.add_row(anchor_id, "[red]could not mark[/]")

    con.print(table)


def _preview(anchor: Anchor, width: int = 40) -> str:
    """Single-line excerpt of the highlighted text."""
    text = " ".join(anchor.text.split())
    return text if len(text) <= width else text[: width - 1] + "…"


async def _cmd_capture(
    file: Path,
    url: str,
    text: str,
    *,
    occurrence: int = 1,
    comment: str | None = None,
    tags: list[str] | None = None,
    output: Path | None = None,
    store: AnchorStoreProtocol,
    console: Console | None = None,
) -> None:
    """Store a highlight for the n-th occurrence of *text* on a page."""
    from pagemarks.anchoring import find_text_range
    from pagemarks.highlighter import PageHighlighter

    con = console or globals()["console"]
    document = _read_page(file, con)
    highlighter = PageHighlighter(document, url, store)
    await highlighter.restore()

    selection = find_text_range(document.body or document, text, occurrence - 1)
    if selection is None:
        con.print(f"[red]Error:[/] occurrence {occurrence} of {text!r} not found")
        sys.exit(1)

    anchor = await highlighter.save_selection(
        selection, comment=comment, tags=tags or []
    )
    if anchor is None:
        con.print("[yellow]Nothing to highlight:[/] selection is blank")
        sys.exit(1)

    con.print(f"[green]Saved[/] {anchor.id} at {anchor.container_path}")
    _write_page(document, output, con)


async def _cmd_apply(
    file: Path,
    url: str,
    *,
    output: Path | None = None,
    store: AnchorStoreProtocol,
    console: Console | None = None,
) -> None:
    """Re-apply the stored highlights of *url* to a page."""
    from pagemarks.highlighter import PageHighlighter

    con = console or globals()["console"]
    document = _read_page(file, con)
    report = await PageHighlighter(document, url, store).restore()

    if report.total == 0:
        con.print("[yellow]No highlights stored for this page.[/]")
    else:
        _print_report(report, con)
    _write_page(document, output, con)


async def _cmd_list(
    *,
    url: str | None = None,
    store: AnchorStoreProtocol,
    console: Console | None = None,
) -> None:
    """List stored highlights as a Rich table."""
    from rich.table import Table

    from pagemarks.models import PageRecord, normalize_page_id

    con = console or globals()["console"]
    if url is None:
        pages = await store.list_all_pages()
    else:
        page_id = normalize_page_id(url)
        pages = [PageRecord(page_id=page_id, anchors=await store.load_anchors(page_id))]

    rows = [(page.page_id, anchor) for page in pages for anchor in page.anchors]
    if not rows:
        con.print("[yellow]No highlights found.[/]")
        return

    table = Table(title="Highlights")
    table.add_column("Page", style="cyan")
    table.add_column("ID")
    table.add_column("Text")
    table.add_column("Tags")
    table.add_column("Created")

    for page_id, anchor in sorted(rows, key=lambda r: (r[0], r[1].created_at)):
        table.add_row(
            page_id,
            anchor.id,
            _preview(anchor),
            ", ".join(anchor.tags) or "[dim]-[/]",
            anchor.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    con.print(table)


async def _cmd_remove(
    url: str,
    anchor_id: str,
    *,
    store: AnchorStoreProtocol,
    console: Console | None = None,
) -> None:
    """Delete one stored highlight."""
    from pagemarks.storage import remove_anchor

    con = console or globals()["console"]
    if await remove_anchor(store, url, anchor_id):
        con.print(f"[green]Removed[/] {anchor_id}")
    else:
        con.print(f"[red]Error:[/] no highlight {anchor_id} stored for {url}")
        sys.exit(1)


async def _cmd_clear(
    url: str,
    *,
    store: AnchorStoreProtocol,
    console: Console | None = None,
) -> None:
    """Delete every stored highlight of a page."""
    from pagemarks.storage import clear_page

    con = console or globals()["console"]
    count = await clear_page(store, url)
    con.print(f"Removed {count} highlight{'s' if count != 1 else ''}")


def main(argv: list[str] | None = None) -> None:
    """Capture, re-apply and manage text highlights on HTML pages."""
    from pagemarks import _setup_logging
    from pagemarks.config import get_settings
    from pagemarks.storage import StorageUnavailableError, get_anchor_store

    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    settings = get_settings()
    _setup_logging(settings.app.log_dir, settings.app.log_level)
    store = get_anchor_store()

    async def _run() -> None:
        match args.command:
            case "capture":
                await _cmd_capture(
                    args.file,
                    args.url,
                    args.text,
                    occurrence=args.occurrence,
                    comment=args.comment,
                    tags=args.tags,
                    output=args.output,
                    store=store,
                )
            case "apply":
                await _cmd_apply(args.file, args.url, output=args.output, store=store)
            case "list":
                await _cmd_list(url=args.url, store=store)
            case "remove":
                await _cmd_remove(args.url, args.anchor_id, store=store)
            case "clear":
                await _cmd_clear(args.url, store=store)

    try:
        asyncio.run(_run())
    except StorageUnavailableError as exc:
        console.print(f"[red]Error:[/] storage unavailable: {exc}")
        sys.exit(1)
