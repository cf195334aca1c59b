"""Command-line interface for qualitarr."""

from __future__ import annotations

import asyncio
import json
import os
from enum import Enum
from functools import partial
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from qualitarr.clients.trash import TrashGuidesClient
from qualitarr.config import Config, ConfigurationError
from qualitarr.decision import Decision, DecisionAction
from qualitarr.importer import ImportResult
from qualitarr.logging_config import configure_logging, parse_log_level
from qualitarr.models.formats import MediaType
from qualitarr.models.release import ExistingFile, ReleaseCandidate
from qualitarr.scoring import ScoreResult
from qualitarr.service import FormatTestResult, ReleaseEvaluator
from qualitarr.store import ConfigStore, NotFoundError, StoreError

app = typer.Typer(
    name="qualitarr",
    help="Evaluate releases against quality profiles and custom formats.",
    no_args_is_help=True,
)
qualities_app = typer.Typer(help="Inspect quality tiers.")
app.add_typer(qualities_app, name="qualities")

profiles_app = typer.Typer(help="Inspect quality profiles.")
app.add_typer(profiles_app, name="profiles")

formats_app = typer.Typer(help="Inspect and test custom formats.")
app.add_typer(formats_app, name="formats")

import_app = typer.Typer(help="Import custom formats from external catalogs.")
app.add_typer(import_app, name="import")

console = Console()
error_console = Console(stderr=True)


class OutputFormat(str, Enum):
    """Output format options."""

    JSON = "json"
    TABLE = "table"
    SIMPLE = "simple"


class MediaTypeChoice(str, Enum):
    """Media types accepted by ``import trash``."""

    MOVIE = "movie"
    TV = "tv"
    ANIME = "anime"
    ALL = "all"


FormatOpt = Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format")]
TitleArg = Annotated[str, typer.Argument(help="Raw release title")]
ProfileOpt = Annotated[str, typer.Option("--profile", "-p", help="Quality profile ID or name")]
SourceOpt = Annotated[str | None, typer.Option("--source", help="Source, e.g. WEB-DL or BluRay")]
ResolutionOpt = Annotated[str | None, typer.Option("--resolution", help="Resolution, e.g. 1080p")]
GroupOpt = Annotated[str | None, typer.Option("--group", help="Release group")]
CodecOpt = Annotated[str | None, typer.Option("--codec", help="Video codec")]
AudioCodecOpt = Annotated[str | None, typer.Option("--audio-codec", help="Audio codec")]
AudioChannelsOpt = Annotated[str | None, typer.Option("--audio-channels", help="Audio channels")]
LanguageOpt = Annotated[str | None, typer.Option("--language", help="Language")]
EditionOpt = Annotated[str | None, typer.Option("--edition", help="Edition")]
SizeOpt = Annotated[float | None, typer.Option("--size", help="Size in MB per minute")]
FlagOpt = Annotated[list[str] | None, typer.Option("--flag", help="Indexer flag (repeatable)")]


def build_candidate(
    title: str,
    *,
    source: str | None = None,
    resolution: str | None = None,
    group: str | None = None,
    codec: str | None = None,
    audio_codec: str | None = None,
    audio_channels: str | None = None,
    language: str | None = None,
    edition: str | None = None,
    size: float | None = None,
    flags: list[str] | None = None,
) -> ReleaseCandidate:
    """Build a release candidate from CLI options."""
    return ReleaseCandidate(
        raw_title=title,
        release_group=group,
        source=source,
        resolution=resolution,
        codec=codec,
        audio_codec=audio_codec,
        audio_channels=audio_channels,
        language=language,
        edition=edition,
        size=size,
        indexer_flags=tuple(flags) if flags else None,
    )


def get_store(config: Config) -> ConfigStore:
    """Create a ConfigStore from config."""
    return ConfigStore(config.store.path)


def get_evaluator(config: Config) -> ReleaseEvaluator:
    """Create a ReleaseEvaluator from config."""
    return ReleaseEvaluator(
        get_store(config),
        config.evaluation.to_settings(),
        client_factory=partial(
            TrashGuidesClient,
            config.trash.base_url,
            timeout=config.trash.timeout,
            cache_ttl=config.trash.cache_ttl,
            max_retries=config.trash.max_retries,
        ),
        import_batch_size=config.trash.batch_size,
    )


def resolve_profile_id(store: ConfigStore, profile: str) -> int:
    """Turn a profile ID or name into an ID.

    Raises:
        NotFoundError: If no profile matches
    """
    if profile.isdigit():
        return store.get_profile(int(profile)).id
    return store.get_profile_by_name(profile).id


def _fail(e: Exception) -> typer.Exit:
    if isinstance(e, ConfigurationError):
        error_console.print(f"[red]Configuration error:[/red] {e}")
    elif isinstance(e, NotFoundError):
        error_console.print(f"[red]Not found:[/red] {e}")
        error_console.print("[dim]Run 'qualitarr init' to seed the default profiles.[/dim]")
    else:
        error_console.print(f"[red]Error:[/red] {e}")
    return typer.Exit(2)


# --- Formatters ---


def _score_data(result: ScoreResult) -> dict[str, object]:
    return {
        "total": result.total,
        "matched_formats": [
            {"format_id": m.format_id, "name": m.name, "score": m.score}
            for m in result.matched_formats
        ],
    }


def format_decision_json(decision: Decision) -> str:
    """Format a decision as JSON."""
    data: dict[str, object] = {
        "title": decision.candidate.raw_title,
        "action": decision.action.value,
        "reason": decision.reason,
        "quality": decision.quality.name if decision.quality else None,
        "rank": decision.rank,
    }
    if decision.score is not None:
        data["score"] = _score_data(decision.score)
    if decision.size_check is not None:
        data["size_check"] = {"ok": decision.size_check.ok, "reason": decision.size_check.reason}
    if decision.restrictions is not None and decision.restrictions.failed:
        data["restrictions"] = [
            {"name": r.restriction_name, "reason": r.reason} for r in decision.restrictions.failed
        ]
    return json.dumps(data, indent=2)


def format_decision_table(decision: Decision) -> Table:
    """Format a decision as a rich table."""
    table = Table(title=f"Decision: {decision.candidate.raw_title}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green" if decision.accepted else "red")

    table.add_row("Action", decision.action.value)
    table.add_row("Reason", decision.reason)
    table.add_row("Quality", decision.quality.name if decision.quality else "-")
    table.add_row("Rank", str(decision.rank) if decision.rank is not None else "-")
    if decision.score is not None:
        table.add_row("Score", str(decision.score.total))
        table.add_row("Formats", ", ".join(decision.score.format_names) or "-")
    if decision.size_check is not None and not decision.size_check.ok:
        table.add_row("Size", decision.size_check.reason or "out of bounds")
    return table


def format_decision_simple(decision: Decision) -> str:
    """Format a decision as one line of text."""
    quality = f" [{decision.quality.name}]" if decision.quality else ""
    return escape(
        f"{decision.action.value.upper()}{quality} {decision.candidate.raw_title}: {decision.reason}"
    )


def print_decision(decision: Decision, output_format: OutputFormat) -> None:
    """Print a decision in the specified format."""
    if output_format == OutputFormat.JSON:
        console.print_json(format_decision_json(decision))
    elif output_format == OutputFormat.TABLE:
        console.print(format_decision_table(decision))
    else:
        console.print(format_decision_simple(decision))


def print_score(result: ScoreResult, output_format: OutputFormat) -> None:
    """Print a score result in the specified format."""
    if output_format == OutputFormat.JSON:
        console.print_json(data=_score_data(result))
        return
    if output_format == OutputFormat.TABLE:
        table = Table(title=f"Format Score: {result.total}")
        table.add_column("ID", style="dim")
        table.add_column("Format", style="cyan")
        table.add_column("Score", justify="right")
        for m in result.matched_formats:
            table.add_row(str(m.format_id), m.name, str(m.score))
        console.print(table)
        return
    names = ", ".join(f"{m.name} ({m.score:+d})" for m in result.matched_formats)
    console.print(f"Total: {result.total}" + (f" [{names}]" if names else ""))


def print_format_tests(results: list[FormatTestResult], output_format: OutputFormat) -> None:
    """Print matched formats and their traces."""
    if output_format == OutputFormat.JSON:
        data = [
            {
                "format_id": r.format_id,
                "name": r.name,
                "conditions": [
                    {
                        "type": c.type.value,
                        "pattern": c.pattern,
                        "negate": c.negate,
                        "required": c.required,
                        "matched": c.matched,
                    }
                    for c in r.match.trace
                ],
            }
            for r in results
        ]
        console.print_json(data=data)
        return
    if output_format == OutputFormat.TABLE:
        table = Table(title=f"Matched Formats ({len(results)})")
        table.add_column("ID", style="dim")
        table.add_column("Format", style="cyan")
        table.add_column("Conditions")
        for r in results:
            trace = ", ".join(
                f"{'!' if c.negate else ''}{c.type.value}:{'ok' if c.matched else 'no'}"
                for c in r.match.trace
            )
            table.add_row(str(r.format_id), r.name, trace)
        console.print(table)
        return
    if not results:
        console.print("No formats matched")
    for r in results:
        console.print(f"{r.format_id}: {r.name}")


def print_import_result(result: ImportResult, output_format: OutputFormat) -> None:
    """Print the outcome of an import run."""
    if output_format == OutputFormat.JSON:
        data = {
            "imported_count": result.imported_count,
            "created_count": result.created_count,
            "updated_count": result.updated_count,
            "errors": [
                {
                    "media_type": e.media_type.value,
                    "external_id": e.external_id,
                    "batch": e.batch,
                    "message": e.message,
                }
                for e in result.errors
            ],
        }
        console.print_json(data=data)
        return
    console.print(
        f"Imported {result.imported_count} formats "
        f"({result.created_count} new, {result.updated_count} updated)"
    )
    for issue in result.errors:
        target = issue.external_id or (f"batch {issue.batch}" if issue.batch is not None else "fetch")
        error_console.print(f"[yellow]{issue.media_type.value} {target}:[/yellow] {issue.message}")


# --- Commands ---


@app.command()
def version() -> None:
    """Show version information."""
    from qualitarr import __version__

    console.print(f"qualitarr version {__version__}")


@app.command()
def init() -> None:
    """Seed the default quality tiers and profiles into the store."""
    try:
        config = Config.load()
        store = get_store(config)
        if store.seed_defaults():
            console.print(f"[green]Initialized store at {config.store.path}[/green]")
        else:
            console.print(f"[dim]Store at {config.store.path} is already initialized[/dim]")
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e


@qualities_app.command("list")
def list_qualities(output_format: FormatOpt = OutputFormat.TABLE) -> None:
    """List quality tiers from worst to best."""
    try:
        definitions = get_store(Config.load()).list_quality_definitions()
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    if output_format == OutputFormat.JSON:
        console.print_json(data=[d.model_dump(mode="json") for d in definitions])
    elif output_format == OutputFormat.TABLE:
        table = Table(title="Quality Definitions")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Source")
        table.add_column("Resolution")
        table.add_column("Size (MB/min)", justify="right")
        table.add_column("Weight", justify="right")
        for d in definitions:
            preferred = f" ({d.preferred_size:g})" if d.preferred_size is not None else ""
            table.add_row(
                str(d.id),
                d.name,
                d.source.value,
                d.resolution.value,
                f"{d.min_size:g}-{d.max_size:g}{preferred}",
                str(d.weight),
            )
        console.print(table)
    else:
        for d in definitions:
            console.print(f"{d.id}: {d.name}")


@profiles_app.command("list")
def list_profiles(output_format: FormatOpt = OutputFormat.TABLE) -> None:
    """List quality profiles."""
    try:
        store = get_store(Config.load())
        profiles = store.list_profiles()
        names = {d.id: d.name for d in store.list_quality_definitions()}
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    if output_format == OutputFormat.JSON:
        console.print_json(data=[p.model_dump(mode="json") for p in profiles])
        return
    if output_format == OutputFormat.TABLE:
        table = Table(title="Quality Profiles")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Cutoff")
        table.add_column("Upgrades")
        table.add_column("Enabled Qualities")
        for p in profiles:
            enabled = [names.get(i.quality_id, str(i.quality_id)) for i in p.items if i.enabled]
            table.add_row(
                str(p.id),
                p.name,
                names.get(p.cutoff_quality_id, "-") if p.cutoff_quality_id else "-",
                "Yes" if p.upgrade_allowed else "No",
                ", ".join(enabled),
            )
        console.print(table)
        return
    for p in profiles:
        console.print(f"{p.id}: {p.name}")


@formats_app.command("list")
def list_formats(
    output_format: FormatOpt = OutputFormat.TABLE,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Only show this category")
    ] = None,
) -> None:
    """List custom formats."""
    try:
        formats = get_store(Config.load()).list_formats()
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    if category is not None:
        formats = [f for f in formats if f.category == category]

    if output_format == OutputFormat.JSON:
        console.print_json(data=[f.model_dump(mode="json") for f in formats])
    elif output_format == OutputFormat.TABLE:
        table = Table(title="Custom Formats")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Conditions", justify="right")
        table.add_column("Category")
        table.add_column("Recommended", justify="right")
        for f in formats:
            table.add_row(
                str(f.id),
                f.name,
                str(len(f.conditions)),
                f.category or "-",
                str(f.recommended_score) if f.recommended_score is not None else "-",
            )
        console.print(table)
    else:
        for f in formats:
            console.print(f"{f.id}: {f.name}")


@formats_app.command("test")
def test_formats(
    title: TitleArg,
    source: SourceOpt = None,
    resolution: ResolutionOpt = None,
    group: GroupOpt = None,
    codec: CodecOpt = None,
    audio_codec: AudioCodecOpt = None,
    audio_channels: AudioChannelsOpt = None,
    language: LanguageOpt = None,
    edition: EditionOpt = None,
    size: SizeOpt = None,
    flag: FlagOpt = None,
    output_format: FormatOpt = OutputFormat.TABLE,
) -> None:
    """Show which custom formats a release matches.

    Examples:
        qualitarr formats test "Movie.2020.2160p.WEB-DL.DV.HDR10-GRP"
        qualitarr formats test "Movie.2020.1080p.BluRay-GRP" --size 60 --format json
    """
    candidate = build_candidate(
        title,
        source=source,
        resolution=resolution,
        group=group,
        codec=codec,
        audio_codec=audio_codec,
        audio_channels=audio_channels,
        language=language,
        edition=edition,
        size=size,
        flags=flag,
    )
    try:
        results = get_evaluator(Config.load()).test_formats(candidate)
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    print_format_tests(results, output_format)


@app.command()
def score(
    title: TitleArg,
    profile: ProfileOpt,
    source: SourceOpt = None,
    resolution: ResolutionOpt = None,
    group: GroupOpt = None,
    codec: CodecOpt = None,
    audio_codec: AudioCodecOpt = None,
    audio_channels: AudioChannelsOpt = None,
    language: LanguageOpt = None,
    edition: EditionOpt = None,
    size: SizeOpt = None,
    flag: FlagOpt = None,
    output_format: FormatOpt = OutputFormat.SIMPLE,
) -> None:
    """Compute a release's custom format score under a profile.

    Example:
        qualitarr score "Movie.2020.2160p.WEB-DL.DV-GRP" --profile Ultra-HD
    """
    candidate = build_candidate(
        title,
        source=source,
        resolution=resolution,
        group=group,
        codec=codec,
        audio_codec=audio_codec,
        audio_channels=audio_channels,
        language=language,
        edition=edition,
        size=size,
        flags=flag,
    )
    try:
        evaluator = get_evaluator(Config.load())
        profile_id = resolve_profile_id(evaluator.store, profile)
        result = evaluator.compute_score(candidate, profile_id)
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    print_score(result, output_format)


@app.command()
def evaluate(
    title: TitleArg,
    profile: ProfileOpt,
    source: SourceOpt = None,
    resolution: ResolutionOpt = None,
    group: GroupOpt = None,
    codec: CodecOpt = None,
    audio_codec: AudioCodecOpt = None,
    audio_channels: AudioChannelsOpt = None,
    language: LanguageOpt = None,
    edition: EditionOpt = None,
    size: SizeOpt = None,
    flag: FlagOpt = None,
    existing_quality: Annotated[
        str | None,
        typer.Option("--existing-quality", help="Quality ID or name of the file on disk"),
    ] = None,
    existing_score: Annotated[
        int, typer.Option("--existing-score", help="Custom format score of the file on disk")
    ] = 0,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Media tag for restrictions (repeatable)")
    ] = None,
    output_format: FormatOpt = OutputFormat.TABLE,
) -> None:
    """Decide whether to grab, upgrade to, or reject a release.

    Exits 0 for grab or upgrade, 1 for reject or skip, 2 on errors.

    Examples:
        qualitarr evaluate "Movie.2020.1080p.WEB-DL-GRP" -p HD-1080p --source webdl --resolution 1080p
        qualitarr evaluate "Movie.2020.1080p.BluRay-GRP" -p 4 --source bluray --resolution 1080p \\
            --existing-quality "WEB-DL 1080p" --existing-score 50
    """
    candidate = build_candidate(
        title,
        source=source,
        resolution=resolution,
        group=group,
        codec=codec,
        audio_codec=audio_codec,
        audio_channels=audio_channels,
        language=language,
        edition=edition,
        size=size,
        flags=flag,
    )
    try:
        evaluator = get_evaluator(Config.load())
        profile_id = resolve_profile_id(evaluator.store, profile)
        existing = None
        if existing_quality is not None:
            existing = ExistingFile(
                quality_id=_resolve_quality_id(evaluator.store, existing_quality),
                score=existing_score,
            )
        decision = evaluator.evaluate(candidate, profile_id, existing, tag or ())
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    print_decision(decision, output_format)
    raise typer.Exit(0 if decision.action in (DecisionAction.GRAB, DecisionAction.UPGRADE) else 1)


def _resolve_quality_id(store: ConfigStore, quality: str) -> int:
    if quality.isdigit():
        return store.get_quality_definition(int(quality)).id
    for definition in store.list_quality_definitions():
        if definition.name == quality:
            return definition.id
    raise NotFoundError("Quality definition", quality)


@import_app.command("trash")
def import_trash(
    media_type: Annotated[
        MediaTypeChoice, typer.Option("--media-type", "-m", help="Catalog to import")
    ] = MediaTypeChoice.ALL,
    apply_category: Annotated[
        str | None,
        typer.Option("--apply-category", help="Copy this category's recommended scores into --profile"),
    ] = None,
    profile: Annotated[
        str | None, typer.Option("--profile", "-p", help="Profile that receives recommended scores")
    ] = None,
    output_format: FormatOpt = OutputFormat.SIMPLE,
) -> None:
    """Import custom formats from TRaSH Guides.

    Re-running the import refreshes existing formats in place.

    Examples:
        qualitarr import trash --media-type movie
        qualitarr import trash --apply-category "HDR Formats" --profile Ultra-HD
    """
    if apply_category is not None and profile is None:
        error_console.print("[red]Error:[/red] --apply-category requires --profile")
        raise typer.Exit(2)

    media_types = (
        list(MediaType) if media_type == MediaTypeChoice.ALL else [MediaType(media_type.value)]
    )

    try:
        evaluator = get_evaluator(Config.load())
        importer = evaluator.importer()
        result = asyncio.run(importer.sync(media_types))
        print_import_result(result, output_format)

        if apply_category is not None and profile is not None:
            profile_id = resolve_profile_id(evaluator.store, profile)
            applied = importer.apply_recommended_scores(apply_category, profile_id)
            console.print(f"Applied {applied} recommended scores from '{apply_category}'")
    except (ConfigurationError, StoreError) as e:
        raise _fail(e) from e

    raise typer.Exit(0 if result.ok else 1)


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Logging level (debug, info, warning, error).",
        ),
    ] = None,
) -> None:
    """Evaluate releases against quality profiles and custom formats."""
    level = log_level or os.environ.get("QUALITARR_LOG_LEVEL")
    if level is None:
        try:
            level = Config.load().logging.level
        except ConfigurationError:
            level = "info"

    try:
        parse_log_level(level)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    configure_logging(level)


if __name__ == "__main__":
    app()
