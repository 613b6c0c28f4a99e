"""
Command line interface.

    voterroll extract roll.pdf --out roll.csv --strategy ocr --concurrency 4
    voterroll import roll.csv
    voterroll mark roll.csv ABC1234567 --party INC
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from .config import LOCAL_STRATEGIES, get_config
from .exceptions import VoterRollError
from .logger import setup_logger
from .models import Voter
from .processors import ProcessingContext, StrategyCoordinator
from .tracking import DEFAULT_PARTIES, find_by_epic, mark_voted, sort_by_serial, toggle_vote
from .utils.tabular import export_voters, import_voters
from .utils.timing import format_duration

console = Console()


def get_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        console=console,
    )


def _read_voters(path: Path) -> List[Voter]:
    return import_voters(path.read_text(encoding="utf-8"))


def _write_voters(path: Path, voters: List[Voter]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(export_voters(voters))


def cmd_extract(args: argparse.Namespace) -> int:
    config = get_config()
    settings = config.coordinator
    if args.concurrency is not None:
        settings.concurrency = args.concurrency
    if args.strategy:
        settings.local_strategy = args.strategy
    if args.skip_pages is not None:
        settings.skip_leading_pages = args.skip_pages
    if args.photos:
        settings.include_photos = True

    logger = setup_logger()
    pdf_path = Path(args.pdf)
    out_path = Path(args.out) if args.out else pdf_path.with_suffix(".csv")

    logger.info(
        f"🛡️ Extracting {pdf_path.name} "
        f"(strategy={settings.local_strategy}, concurrency={settings.concurrency})"
    )
    start_time = time.perf_counter()

    context = ProcessingContext(config=config)
    progress = get_progress()

    with progress:
        task = progress.add_task("Starting...", total=None)

        def on_status(ctx: ProcessingContext) -> None:
            status = ctx.status
            progress.update(
                task,
                description=status.message,
                total=status.total or None,
                completed=status.current,
            )

        coordinator = StrategyCoordinator(
            context,
            on_status=on_status,
            use_remote=not args.local_only,
        )
        result = coordinator.process(pdf_path)

    voters = sort_by_serial(result.voters)
    _write_voters(out_path, voters)

    if args.stats:
        Path(args.stats).write_text(
            json.dumps(result.stats.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    elapsed = time.perf_counter() - start_time
    logger.info(f"✅ {len(voters)} voters ({result.source}) written to {out_path}")
    logger.info(f"🎉 Completed in {format_duration(elapsed)}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    voters = _read_voters(Path(args.csv))

    voted = [v for v in voters if v.is_voted]
    table = Table(title=f"{Path(args.csv).name}: {len(voters)} voters")
    table.add_column("Party")
    table.add_column("Votes", justify="right")
    for party in DEFAULT_PARTIES:
        table.add_row(party, str(sum(1 for v in voted if v.voted_party == party)))
    table.add_row("(none)", str(sum(1 for v in voted if not v.voted_party)))

    console.print(table)
    console.print(
        f"Voted: {len(voted)} / {len(voters)}  "
        f"EPIC valid: {sum(1 for v in voters if v.epic_valid)}"
    )
    return 0


def cmd_mark(args: argparse.Namespace) -> int:
    path = Path(args.csv)
    voters = _read_voters(path)

    voter = find_by_epic(voters, args.epic)
    if voter is None:
        console.print(f"[red]No voter with EPIC {args.epic}[/red]")
        return 1

    if args.party:
        mark_voted(voter, args.party)
    elif args.unvote:
        if voter.is_voted:
            toggle_vote(voter)
    else:
        toggle_vote(voter)

    _write_voters(path, voters)
    state = f"voted ({voter.voted_party or 'no party'})" if voter.is_voted else "not voted"
    console.print(f"{voter.epic_no} {voter.name_en}: {state}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voterroll", description="Electoral roll digitizer")
    sub = parser.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Extract voters from a PDF into CSV")
    p_extract.add_argument("pdf", help="Electoral roll PDF")
    p_extract.add_argument("--out", help="Output CSV (default: next to the PDF)")
    p_extract.add_argument("--concurrency", type=int, help="Pages in flight during local fallback")
    p_extract.add_argument("--strategy", choices=LOCAL_STRATEGIES, help="Local fallback strategy")
    p_extract.add_argument("--photos", action="store_true", help="Crop voter photos")
    p_extract.add_argument("--skip-pages", type=int, help="Leading pages to skip locally")
    p_extract.add_argument("--local-only", action="store_true", help="Do not call the conversion endpoint")
    p_extract.add_argument("--stats", help="Write processing stats JSON to this path")
    p_extract.set_defaults(func=cmd_extract)

    p_import = sub.add_parser("import", help="Validate and summarize a voter CSV")
    p_import.add_argument("csv")
    p_import.set_defaults(func=cmd_import)

    p_mark = sub.add_parser("mark", help="Record a vote in a voter CSV")
    p_mark.add_argument("csv")
    p_mark.add_argument("epic")
    group = p_mark.add_mutually_exclusive_group()
    group.add_argument("--party", help="Mark voted for this party")
    group.add_argument("--unvote", action="store_true", help="Clear the vote")
    p_mark.set_defaults(func=cmd_mark)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except VoterRollError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
