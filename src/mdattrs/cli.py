"""Command-line entry points.

Usage:
    uv run mdattrs-render page.html                      # print decorated HTML
    uv run mdattrs-render page.html --source page.md -o out.html
    uv run mdattrs-scan notes.md                         # list annotations
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mdattrs import setup_logging
from mdattrs.grammar import probe_whole, scan_line

console = Console()

_FENCE_MARKERS = ("```", "~~~")


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[red]Error:[/] cannot read {path}: {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# mdattrs-render
# ---------------------------------------------------------------------------


def render(argv: list[str] | None = None) -> None:
    """Apply annotations to a rendered HTML file."""
    from mdattrs.tree import render_html  # noqa: PLC0415

    parser = argparse.ArgumentParser(
        description="Apply {...} attribute annotations to rendered HTML.",
    )
    parser.add_argument("html", type=Path, help="Rendered HTML fragment.")
    parser.add_argument(
        "--source",
        type=Path,
        help="Markdown source of the HTML; enables code/table/math recovery.",
    )
    parser.add_argument(
        "-o", "--output", type=Path, help="Write here instead of stdout."
    )
    args = parser.parse_args(argv)

    setup_logging()

    html = _read(args.html)
    source = _read(args.source) if args.source is not None else None
    rendered, bindings = render_html(html, source)

    if args.output is None:
        # Plain write so rich markup never touches the HTML.
        sys.stdout.write(rendered)
        if not rendered.endswith("\n"):
            sys.stdout.write("\n")
        return

    args.output.write_text(rendered, encoding="utf-8")
    applied = sum(1 for b in bindings if b.stripped)
    console.print(
        f"Wrote [bold]{args.output}[/]: {applied} annotation(s) applied, "
        f"{len(bindings) - applied} left in place."
    )


# ---------------------------------------------------------------------------
# mdattrs-scan
# ---------------------------------------------------------------------------


def scan(argv: list[str] | None = None) -> None:
    """List the annotations found in a Markdown file."""
    parser = argparse.ArgumentParser(
        description="List {...} attribute annotations in a Markdown file.",
    )
    parser.add_argument("markdown", type=Path, help="Markdown source file.")
    args = parser.parse_args(argv)

    text = _read(args.markdown)

    table = Table(title=f"Annotations in {args.markdown.name}")
    table.add_column("Line", justify="right", style="cyan")
    table.add_column("Col", justify="right")
    table.add_column("Kind")
    table.add_column("Annotation", style="green")
    table.add_column("Attributes")

    found = 0
    in_fence = False
    for lineno, line in enumerate(text.split("\n"), start=1):
        if line.lstrip().startswith(_FENCE_MARKERS):
            # The opening fence line may still carry an annotation.
            in_fence = not in_fence
            if not in_fence:
                continue
        elif in_fence:
            continue

        kind = "block" if probe_whole(line.strip()) else "inline"
        for match in scan_line(line):
            found += 1
            attrs = ", ".join(
                key if value is None else f"{key}={value}"
                for key, value in match.attributes
            )
            table.add_row(
                str(lineno),
                str(match.annotation_start + 1),
                kind,
                escape(match.annotation),
                escape(attrs) if attrs else "[dim](none)[/]",
            )

    if not found:
        console.print("[green]No annotations found.[/]")
        return
    console.print(table)
    console.print(f"{found} annotation(s).")
