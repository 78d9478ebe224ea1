"""Hierarchy CLI commands.

Provides commands for:
- Running the hierarchy over a session bundle and printing per-phase metrics
- Printing the top-K outline of the final hierarchy
- Showing the effective parameters and their hash
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from causeway.configuration.settings import (
    DEFAULT_CONFIG_PATH,
    CausewaySettings,
    bootstrap_settings,
    load_params_file,
)
from causeway.errors import CausewayError, NothingToAnalyzeError
from causeway.errors.user_messages import format_error_for_cli
from causeway.hierarchy.params import HierarchyParams
from causeway.hierarchy.provenance import build_provenance
from causeway.hierarchy.rounds import run_hierarchy
from causeway.hierarchy.types import HierarchyResult
from causeway.ingestion.session import SessionBundle, load_session_bundle
from causeway.render.artifacts import write_hierarchy_artifacts
from causeway.render.outline import OutlineMode, render_hierarchy_outline

logger = logging.getLogger(__name__)

console = Console()
hierarchy_app = typer.Typer(help="Causal hierarchy extraction commands")


def _effective_settings(
    config_path: Path,
    params_path: Optional[Path],
    max_rounds: Optional[int],
    converge: Optional[bool],
) -> CausewaySettings:
    """Stored settings plus env overrides, parameter file and CLI flags."""
    settings = bootstrap_settings(path=config_path, persist=False)
    params = load_params_file(params_path) if params_path else settings.params

    updates: Dict[str, Any] = {}
    if max_rounds is not None:
        updates["max_rounds"] = max_rounds
    if converge is not None:
        updates["converge"] = converge
    if updates:
        params = HierarchyParams.from_mapping({**params.model_dump(), **updates})
    return settings.model_copy(update={"params": params})


def _load_bundle(bundle_path: Path) -> SessionBundle:
    bundle = load_session_bundle(bundle_path)
    if not bundle.transcript or bundle.eligible_count == 0:
        raise NothingToAnalyzeError(
            f"Session {bundle.session_id} has {len(bundle.transcript)} lines and "
            f"{bundle.eligible_count} eligible lines",
            details={"session_id": bundle.session_id},
        )
    return bundle


def _run(bundle: SessionBundle, settings: CausewaySettings, traces: bool) -> HierarchyResult:
    return run_hierarchy(
        bundle.transcript,
        bundle.mask,
        bundle.registry(),
        settings.params,
        session_id=bundle.session_id,
        emit_traces=traces,
    )


def _fail(error: CausewayError) -> None:
    logger.debug(f"Command failed: {error.message}")
    typer.echo(format_error_for_cli(error), err=True)
    raise typer.Exit(1)


def _metrics_table(result: HierarchyResult) -> Table:
    table = Table(title=f"Hierarchy {result.session_id} (params {result.provenance.short_hash})")
    table.add_column("Phase", style="cyan", no_wrap=True)
    table.add_column("Nodes", justify="right")
    table.add_column("Formed", justify="right", style="green")
    table.add_column("Absorbed", justify="right", style="yellow")
    table.add_column("Mass p50", justify="right")
    table.add_column("Mass max", justify="right")

    for state in result.rounds:
        counts = state.metrics.counts
        mass = state.metrics.stats.get("mass")
        table.add_row(
            state.metrics.label,
            str(counts.get("nodes_total", counts.get("nodes", 0))),
            str(counts.get("pairs_formed", "")),
            str(counts.get("absorptions_this_round", "")),
            f"{mass.p50:.2f}" if mass else "",
            f"{mass.max:.2f}" if mass else "",
        )
    return table


@hierarchy_app.command("run")
def run_command(
    bundle_path: Path = typer.Argument(..., help="Session bundle (JSON or YAML)"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Settings file"),
    params_path: Optional[Path] = typer.Option(None, "--params", help="Parameter file overriding the settings"),
    max_rounds: Optional[int] = typer.Option(None, "--max-rounds", help="Maximum rounds (1-10)"),
    converge: Optional[bool] = typer.Option(None, "--converge/--no-converge", help="Stop once a round adds nothing"),
    traces: bool = typer.Option(False, "--traces", help="Record per-cause Level-1 traces"),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", help="Artifacts root directory"),
    no_artifacts: bool = typer.Option(False, "--no-artifacts", help="Skip writing artifacts"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Build the causal hierarchy of a session.

    Examples:
        causeway hierarchy run session.yaml
        causeway hierarchy run session.json --max-rounds 5 --traces --json
    """
    try:
        settings = _effective_settings(config_path, params_path, max_rounds, converge)
        bundle = _load_bundle(bundle_path)
        result = _run(bundle, settings, traces)

        run_dir = None
        if settings.output.write_artifacts and not no_artifacts:
            manifest = write_hierarchy_artifacts(
                result,
                bundle.transcript,
                out_dir or settings.output.artifacts_dir,
                outline_top_k=settings.output.outline_top_k,
            )
            run_dir = manifest.run_dir
    except CausewayError as e:
        _fail(e)
        return
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if output_json:
        typer.echo(
            json.dumps(
                {
                    "session_id": result.session_id,
                    "param_hash": result.provenance.param_hash,
                    "kernel_version": result.provenance.kernel_version,
                    "converged": result.converged,
                    "rounds_completed": result.rounds_completed,
                    "final_nodes": len(result.final_nodes),
                    "unabsorbed": len(result.unabsorbed),
                    "phases": [s.metrics.model_dump(mode="json") for s in result.rounds],
                    "artifacts_dir": str(run_dir) if run_dir else None,
                },
                indent=2,
            )
        )
        return

    console.print(_metrics_table(result))
    status = "converged" if result.converged else "stopped at max rounds"
    console.print(
        f"Rounds: {result.rounds_completed} ({status}), "
        f"final nodes: {len(result.final_nodes)}, unabsorbed: {len(result.unabsorbed)}"
    )
    if run_dir:
        console.print(f"[green]✓ Artifacts written to {run_dir}[/green]")


@hierarchy_app.command("outline")
def outline_command(
    bundle_path: Path = typer.Argument(..., help="Session bundle (JSON or YAML)"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Settings file"),
    params_path: Optional[Path] = typer.Option(None, "--params", help="Parameter file overriding the settings"),
    top_k: int = typer.Option(10, "--top-k", "-k", help="Root nodes to show"),
    all_nodes: bool = typer.Option(False, "--all-nodes", help="Let level-1 links compete with composites"),
    max_depth: int = typer.Option(3, "--max-depth", help="Deepest member level expanded"),
) -> None:
    """Print the top-K outline of the final hierarchy."""
    try:
        settings = _effective_settings(config_path, params_path, None, None)
        bundle = _load_bundle(bundle_path)
        result = _run(bundle, settings, False)
    except CausewayError as e:
        _fail(e)
        return
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        render_hierarchy_outline(
            result.final_nodes,
            bundle.transcript,
            top_k=top_k,
            mode=OutlineMode.ALL_NODES if all_nodes else OutlineMode.COMPOSITES_ONLY,
            node_index=result.node_index(),
            max_depth=max_depth,
        )
    )


@hierarchy_app.command("params")
def params_command(
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Settings file"),
    params_path: Optional[Path] = typer.Option(None, "--params", help="Parameter file overriding the settings"),
) -> None:
    """Show the effective parameters and their hash."""
    try:
        settings = _effective_settings(config_path, params_path, None, None)
    except CausewayError as e:
        _fail(e)
        return
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    provenance = build_provenance(settings.params)
    typer.echo(f"kernel: {provenance.kernel_version}")
    typer.echo(f"param_hash: {provenance.param_hash}")
    typer.echo(json.dumps(settings.params.model_dump(mode="json"), indent=2, sort_keys=True))
