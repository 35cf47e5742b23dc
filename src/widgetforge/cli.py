"""WidgetForge CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from widgetforge.observability import (
    LLMLogger,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

# Load environment variables from .env file
load_dotenv()

if TYPE_CHECKING:
    from widgetforge.pipeline import PipelineOrchestrator, PipelineRun
    from widgetforge.providers import Provider

app = typer.Typer(
    name="wf",
    help="WidgetForge: turn a widget request into audited FlutterFlow code.",
    no_args_is_help=True,
)
console = Console()

STAGE_LABELS = {
    1: "Drafting specification",
    2: "Generating code",
    3: "Auditing code",
}

# Global state for logging flags (set by callback, used by commands)
_verbose: int = 0
_log_enabled: bool = False


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to {output}/logs/ (debug.jsonl, llm_calls.jsonl).",
        ),
    ] = False,
) -> None:
    """WidgetForge: turn a widget request into audited FlutterFlow code."""
    global _verbose, _log_enabled
    _verbose = verbose
    _log_enabled = log

    # Console logging now; file logging once the output directory is known
    configure_logging(verbosity=verbose)


def _configure_file_logging(base_dir: Path) -> LLMLogger | None:
    """Enable file logging under base_dir/logs if --log was given.

    Returns:
        LLM call logger, or None when file logging is off.
    """
    if not _log_enabled:
        return None
    log_dir = base_dir / "logs"
    configure_logging(verbosity=_verbose, log_to_file=True, log_dir=log_dir)
    atexit.register(close_file_logging)
    return LLMLogger(log_dir)


def _confirm_image_request(message: str, _provider: object) -> bool:
    console.print()
    console.print(Panel(message, title="[yellow]Image reference[/yellow]", border_style="yellow"))
    return typer.confirm("Continue anyway?", default=False)


def _build_orchestrator(
    config_path: Path | None,
    credentials_path: Path | None,
    *,
    assume_yes: bool,
    llm_logger: LLMLogger | None,
) -> PipelineOrchestrator:
    """Create the orchestrator used by ``wf run``.

    Raises:
        ConfigError: If the config file can't be loaded.
    """
    from widgetforge.pipeline import (
        AutoContinueGate,
        ImageReferenceGate,
        PipelineOrchestrator,
        load_config,
    )
    from widgetforge.providers import CredentialResolver, YAMLCredentialStore

    config = load_config(config_path)
    credentials = CredentialResolver(YAMLCredentialStore(credentials_path))
    gate = AutoContinueGate() if assume_yes else ImageReferenceGate(_confirm_image_request)
    return PipelineOrchestrator(config, credentials, gate=gate, llm_logger=llm_logger)


def _print_progress(run: PipelineRun) -> None:
    from widgetforge.pipeline import RunStatus

    stage = run.current_stage
    if stage is not None:
        console.print(f"[dim]{stage}/3 {STAGE_LABELS[stage]}...[/dim]")
        return
    if run.status is RunStatus.COMPLETED:
        console.print("[green]✓[/green] All stages completed")


async def _run_async(
    orchestrator: PipelineOrchestrator,
    prompt: str,
    provider: Provider,
) -> PipelineRun | None:
    try:
        return await orchestrator.run(prompt, provider, on_progress=_print_progress)
    finally:
        await orchestrator.close()


def _show_run(run: PipelineRun) -> None:
    from widgetforge.artifacts import extract_code_block
    from widgetforge.models import parse_audit_report

    if run.stage1_output is not None:
        console.print()
        console.print(Panel(Markdown(run.stage1_output), title="Specification"))

    if run.stage2_output is not None:
        source = run.stage2_provider.display_name if run.stage2_provider else "?"
        console.print()
        console.print(
            Panel(
                Syntax(extract_code_block(run.stage2_output), "dart", word_wrap=True),
                title=f"Code ({source} / {run.stage2_model})",
            )
        )
        if run.used_fallback_provider:
            console.print(
                f"[yellow]Note:[/yellow] {run.selected_provider.display_name} rejected the "
                f"API key; code was generated by {source} instead."
            )

    if run.stage3_output is not None:
        report = parse_audit_report(run.stage3_output)
        title = "Audit" if report.score is None else f"Audit (score {report.score}/100)"
        console.print()
        console.print(Panel(Markdown(run.stage3_output), title=title))


def _show_failure(run: PipelineRun) -> None:
    from widgetforge.providers import ErrorKind

    failure = run.failure
    if failure is None:
        return
    console.print()
    console.print(
        f"[red]✗[/red] Stage {failure.stage} ({failure.stage_name}) failed: "
        f"[bold]{failure.category}[/bold]"
    )
    console.print(f"  [red]•[/red] {failure.message}")
    if failure.kind is ErrorKind.UNSUPPORTED_MODALITY:
        console.print(
            "  [yellow]Hint:[/yellow] this model can't handle the requested content.\n"
            "  Retry with [cyan]--provider gemini[/cyan]."
        )


@app.command()
def run(
    prompt: Annotated[str, typer.Argument(help="Describe the FlutterFlow widget to build.")],
    provider: Annotated[
        str,
        typer.Option(
            "--provider",
            "-p",
            help="Provider for code generation: gemini, anthropic or openai.",
        ),
    ] = "gemini",
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the image-reference confirmation."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write spec.md, code, audit.md and run.yaml here."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file (default: ./widgetforge.yaml)."),
    ] = None,
    credentials: Annotated[
        Path | None,
        typer.Option(
            "--credentials",
            help="User credential file (default: ~/.config/widgetforge/credentials.yaml).",
            envvar="WF_CREDENTIALS",
        ),
    ] = None,
) -> None:
    """Run spec drafting, code generation and audit for a widget request."""
    from widgetforge.artifacts import ArtifactWriteError, ArtifactWriter
    from widgetforge.pipeline import ConfigError, EmptyInputError
    from widgetforge.providers import ProviderError, parse_provider

    log = get_logger(__name__)

    try:
        selected = parse_provider(provider)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    llm_logger = _configure_file_logging(output or Path())

    try:
        orchestrator = _build_orchestrator(
            config, credentials, assume_yes=yes, llm_logger=llm_logger
        )
        result = asyncio.run(_run_async(orchestrator, prompt, selected))
    except (ConfigError, EmptyInputError, ProviderError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if result is None:
        console.print("[yellow]Cancelled.[/yellow] Nothing was sent.")
        raise typer.Exit(0)

    _show_run(result)

    if output is not None:
        try:
            written = ArtifactWriter(output).write_run(result)
        except ArtifactWriteError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None
        console.print()
        for name, path in written.items():
            console.print(f"  {name}: [cyan]{path}[/cyan]")

    if result.failure is not None:
        log.error("pipeline_failed", stage=result.failed_stage, kind=result.failure.category)
        _show_failure(result)
        raise typer.Exit(1)

    logs_dir = get_logs_dir()
    if _log_enabled and logs_dir is not None:
        console.print(f"  Logs: [dim]{logs_dir}[/dim]")


@app.command()
def providers(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file (default: ./widgetforge.yaml)."),
    ] = None,
    credentials: Annotated[
        Path | None,
        typer.Option("--credentials", help="User credential file.", envvar="WF_CREDENTIALS"),
    ] = None,
) -> None:
    """Show providers, where their API keys come from, and code generation models."""
    from widgetforge.pipeline import ConfigError, load_config
    from widgetforge.providers import (
        DEFAULT_PROVIDER,
        CredentialResolver,
        CredentialSource,
        YAMLCredentialStore,
        get_model_properties,
    )

    try:
        pipeline_config = load_config(config)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    sources = CredentialResolver(YAMLCredentialStore(credentials)).describe()

    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("API key")
    table.add_column("Code generation model")
    table.add_column("Images")

    for provider, source in sources.items():
        name = provider.display_name
        if provider is DEFAULT_PROVIDER:
            name += " (default)"
        key_status = {
            CredentialSource.USER_CONFIGURED: "[green]user[/green]",
            CredentialSource.ENVIRONMENT_DEFAULT: "[green]environment[/green]",
            CredentialSource.ABSENT: "[red]missing[/red]",
        }[source]
        selection = pipeline_config.code_generation.get(provider)
        if selection is None:
            table.add_row(name, key_status, "-", "-")
            continue
        vision = get_model_properties(provider, selection.primary).supports_vision
        table.add_row(name, key_status, selection.primary, "yes" if vision else "no")

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from widgetforge import __version__

    console.print(f"WidgetForge v{__version__}")
