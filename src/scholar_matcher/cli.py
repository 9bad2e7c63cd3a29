"""
CLI entry point

`scholar-matcher` subcommands operate on the saved session in the configured
state directory, so records and interests persist between invocations.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional

from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.table import Table

from scholar_matcher.agents.publication_source import scholar_search_url
from scholar_matcher.batch_runner import BatchReport
from scholar_matcher.coordinator import ResearcherAnalysisCoordinator
from scholar_matcher.errors import RecordNotFoundError, ScholarMatcherError
from scholar_matcher.models.researcher import ResearcherRecord, ResearcherStatus

load_dotenv(find_dotenv(usecwd=True), override=False)

console = Console()

CoordinatorFactory = Callable[[argparse.Namespace], ResearcherAnalysisCoordinator]

STATUS_STYLES = {
    ResearcherStatus.AWAITING_SOURCE_ID: "dim",
    ResearcherStatus.PENDING: "yellow",
    ResearcherStatus.ANALYZING: "cyan",
    ResearcherStatus.COMPLETED: "green",
    ResearcherStatus.ERROR: "red",
}


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="scholar-matcher",
        description="Match researchers' publication records against your research interests",
    )
    parser.add_argument("--config", "-c", help="Path to system_params.json")
    parser.add_argument("--env-file", default=".env", help="Path to .env with SERPAPI_API_KEY")
    parser.add_argument(
        "--interactive", action="store_true", help="Prompt for missing credentials"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add researchers by name")
    add_parser.add_argument("names", nargs="+", help="Researcher names")
    add_parser.add_argument("--source-id", help="Google Scholar author id (single name only)")

    extract_parser = subparsers.add_parser(
        "extract", help="Extract researcher names from a text file (use - for stdin)"
    )
    extract_parser.add_argument("path", help="Text file with a staff listing")

    link_parser = subparsers.add_parser("link", help="Link a Google Scholar author id")
    link_parser.add_argument("record_id", help="Record id (or unique prefix)")
    link_parser.add_argument("source_id", help="Google Scholar author id")

    unlink_parser = subparsers.add_parser("unlink", help="Remove a linked author id")
    unlink_parser.add_argument("record_id", help="Record id (or unique prefix)")

    interests_parser = subparsers.add_parser("interests", help="Show or set research interests")
    interests_parser.add_argument("text", nargs="?", help="Comma or semicolon separated interests")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze one researcher")
    analyze_parser.add_argument("record_id", help="Record id (or unique prefix)")

    subparsers.add_parser("analyze-all", help="Analyze every linked researcher not yet completed")
    subparsers.add_parser("retry-failed", help="Re-analyze researchers whose analysis failed")

    favorite_parser = subparsers.add_parser("favorite", help="Toggle favorite")
    favorite_parser.add_argument("record_id", help="Record id (or unique prefix)")

    delete_parser = subparsers.add_parser("delete", help="Delete a researcher")
    delete_parser.add_argument("record_id", help="Record id (or unique prefix)")

    subparsers.add_parser("clear", help="Delete every non-favorite researcher")

    list_parser = subparsers.add_parser("list", help="List researchers")
    list_parser.add_argument("--matches-only", action="store_true", help="Only show matches")
    list_parser.add_argument("--details", action="store_true", help="Show summaries and evidence")

    find_parser = subparsers.add_parser("find-id", help="Search Google Scholar for a researcher's author id")
    find_parser.add_argument("record_id", help="Record id (or unique prefix)")
    find_parser.add_argument("--university", "-u", help="University to narrow the search")

    return parser


def _default_factory(parsed: argparse.Namespace) -> ResearcherAnalysisCoordinator:
    return ResearcherAnalysisCoordinator.from_config(
        config_path=parsed.config,
        env_file=Path(parsed.env_file),
        interactive=parsed.interactive,
    )


def resolve_record_id(coordinator: ResearcherAnalysisCoordinator, value: str) -> str:
    """Accept a full record id or a unique prefix of one."""
    if value in coordinator.store:
        return value

    matches = [record.id for record in coordinator.records() if record.id.startswith(value)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ScholarMatcherError(f"Record id prefix '{value}' is ambiguous ({len(matches)} matches)")
    raise RecordNotFoundError(value)


def _describe_match(record: ResearcherRecord) -> str:
    if record.match is None:
        return "-"
    label = record.match.match_type.value
    if record.match.matched_interests:
        label += f" ({', '.join(record.match.matched_interests)})"
    return label


def render_records(records: list[ResearcherRecord], details: bool = False) -> None:
    table = Table(title=f"Researchers ({len(records)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Scholar ID")
    table.add_column("Match")
    table.add_column("Fav", justify="center")

    for record in records:
        style = STATUS_STYLES.get(record.status, "")
        table.add_row(
            record.id[:8],
            record.name,
            f"[{style}]{record.status.value}[/{style}]" if style else record.status.value,
            record.source_id or "-",
            _describe_match(record),
            "*" if record.is_favorite else "",
        )
    console.print(table)

    if not details:
        return

    for record in records:
        if record.status == ResearcherStatus.ERROR:
            console.print(f"\n[bold]{record.name}[/bold] [red]{record.error_kind}: {record.error_message}[/red]")
        if record.status != ResearcherStatus.COMPLETED:
            continue
        console.print(f"\n[bold]{record.name}[/bold] {record.profile_url}")
        console.print(record.summary)
        if record.match_reason:
            console.print(f"[italic]{record.match_reason}[/italic]")
        for evidence in record.keyword_evidence:
            console.print(f"  - [cyan]{evidence.keyword}[/cyan]: {evidence.reasoning}")
            for ref in evidence.supporting_references:
                year = f" ({ref.year})" if ref.year else ""
                console.print(f"      {ref.title}{year}")


def _print_report(report: BatchReport) -> None:
    console.print(
        f"{report.succeeded} succeeded, {report.failed} failed, "
        f"{report.skipped} skipped (of {report.total + report.skipped})"
    )
    for failure in report.failures:
        console.print(f"  [red]{failure.record_id[:8]}[/red] {failure.error_kind}: {failure.error_message}")


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


async def _dispatch(parsed: argparse.Namespace, coordinator: ResearcherAnalysisCoordinator) -> int:
    command = parsed.command

    if command == "add":
        if parsed.source_id and len(parsed.names) != 1:
            console.print("[red]--source-id can only be used with a single name[/red]")
            return 2
        if parsed.source_id:
            record = coordinator.create_record(parsed.names[0], source_id=parsed.source_id)
            if record is None:
                console.print(f"[yellow]Source id not applied: {parsed.names[0]} already exists (use `link`)[/yellow]")
                return 1
            console.print(f"Added {record.name} -> {record.source_id}")
            return 0

        created = coordinator.create_records(parsed.names)
        console.print(f"Added {len(created)} researcher(s)")
        return 0

    if command == "extract":
        created = await coordinator.extract_and_create(_read_text(parsed.path))
        console.print(f"Extracted {len(created)} researcher(s)")
        render_records(coordinator.records())
        return 0

    if command == "link":
        record = coordinator.link_source_id(resolve_record_id(coordinator, parsed.record_id), parsed.source_id)
        console.print(f"Linked {record.name} -> {record.source_id}")
        return 0

    if command == "unlink":
        record = coordinator.unlink_source_id(resolve_record_id(coordinator, parsed.record_id))
        console.print(f"Unlinked {record.name}")
        return 0

    if command == "interests":
        if parsed.text is not None:
            interests = coordinator.set_interests(parsed.text)
        else:
            interests = coordinator.user_interests
        console.print(f"Interests ({len(interests)}): {', '.join(interests) or '-'}")
        return 0

    if command == "analyze":
        record = await coordinator.submit(resolve_record_id(coordinator, parsed.record_id))
        if record is None:
            console.print("[yellow]Record was deleted during analysis[/yellow]")
            return 0
        render_records([record], details=True)
        return 1 if record.status == ResearcherStatus.ERROR else 0

    if command == "analyze-all":
        report = await coordinator.analyze_all()
        _print_report(report)
        return 1 if report.failed else 0

    if command == "retry-failed":
        report = await coordinator.retry_failed()
        _print_report(report)
        return 1 if report.failed else 0

    if command == "favorite":
        record = coordinator.toggle_favorite(resolve_record_id(coordinator, parsed.record_id))
        console.print(f"{record.name}: {'favorite' if record.is_favorite else 'not favorite'}")
        return 0

    if command == "delete":
        record = coordinator.delete(resolve_record_id(coordinator, parsed.record_id))
        console.print(f"Deleted {record.name}")
        return 0

    if command == "clear":
        removed = coordinator.clear_non_favorites()
        console.print(f"Removed {removed} researcher(s)")
        return 0

    if command == "list":
        records = coordinator.records()
        if parsed.matches_only:
            records = [record for record in records if record.is_match]
        render_records(records, details=parsed.details)
        return 0

    if command == "find-id":
        record = coordinator.store.get(resolve_record_id(coordinator, parsed.record_id))
        candidates = await coordinator.find_source_id_candidates(record.name, parsed.university)
        table = Table(title=f"Scholar profiles for {record.name}")
        table.add_column("Author ID", no_wrap=True)
        table.add_column("Name")
        table.add_column("Affiliation")
        table.add_column("Cited by", justify="right")
        for candidate in candidates:
            table.add_row(
                candidate.source_id,
                candidate.name,
                candidate.affiliations or "",
                str(candidate.cited_by) if candidate.cited_by is not None else "",
            )
        console.print(table)
        console.print(f"Search manually: {scholar_search_url(record.name, record.id, parsed.university)}")
        return 0

    return 2


def run_cli(
    args: Optional[list[str]] = None,
    coordinator_factory: CoordinatorFactory = _default_factory,
) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        coordinator = coordinator_factory(parsed)
        return asyncio.run(_dispatch(parsed, coordinator))
    except (ScholarMatcherError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
