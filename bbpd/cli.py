"""CLI 진입점 — Typer 서브커맨드."""

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import RunConfig, SimulationConfig
from .errors import BBPDError

app = typer.Typer(
    name="bbpd",
    help="1D 본드 기반 페리다이나믹스 양해법 시뮬레이션",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _make_progress_callback(progress: Progress, task_id):
    """Rich Progress 콜백 생성."""
    def callback(stage: str, details: dict):
        msg = details.get("message", "")
        progress.update(task_id, description=f"[cyan]{stage}[/] {msg}")
    return callback


def _load_config(config_path: Optional[Path]):
    if config_path is not None:
        return SimulationConfig.from_toml(config_path)
    return SimulationConfig.default()


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="설정 파일 경로 (TOML)"),
    n_timesteps: Optional[int] = typer.Option(None, "--steps", help="시간 단계 수 (설정 파일 값 덮어쓰기)"),
    export_freq: Optional[int] = typer.Option(None, "--export-freq", help="스냅샷 저장 주기 [steps]"),
    output_dir: Optional[Path] = typer.Option(None, "-o", "--output", help="출력 디렉토리"),
    order: Optional[str] = typer.Option(None, "--order", help="갱신 순서 (synchronized/sequential)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="디버그 로그 출력"),
):
    """시뮬레이션 실행 (스냅샷 + logfile.log 저장)."""
    from .simulation import simulate

    _setup_logging(verbose)

    try:
        cfg = _load_config(config_path)
        overrides = {
            "n_timesteps": n_timesteps,
            "export_freq": export_freq,
            "export_path": str(output_dir) if output_dir is not None else None,
            "order": order,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        run_cfg = RunConfig(**{**cfg.run.model_dump(), **overrides})
        cfg = cfg.model_copy(update={"run": run_cfg})
        pc, mat, bcs = cfg.build()
    except (FileNotFoundError, ValidationError, BBPDError) as e:
        console.print(f"[red]설정 오류[/]: {e}")
        raise typer.Exit(1)

    try:
        with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console) as progress:
            task = progress.add_task("[cyan]simulate[/] 시작...", total=None)
            result = simulate(
                pc, mat, bcs,
                n_timesteps=cfg.run.n_timesteps,
                export_freq=cfg.run.export_freq,
                export_path=cfg.run.export_path,
                order=cfg.update_order,
                binary=cfg.run.binary,
                progress_callback=_make_progress_callback(progress, task),
            )
    except BBPDError as e:
        console.print(f"[red]실패[/]: {e}")
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]저장 실패[/]: {e}")
        raise typer.Exit(2)

    console.print(
        f"[green]완료[/]: {result.n_points} points, {result.n_bonds} bonds, "
        f"dt={result.dt:.4e}, {len(result.snapshots)} snapshots → {cfg.run.export_path} "
        f"({result.walltime:.1f}s)"
    )


@app.command()
def info(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="설정 파일 경로 (TOML)"),
):
    """본드 토폴로지와 안정 시간 간격 요약 (시간 적분 없이)."""
    from . import runtime
    from .core.bonds import BondTopology
    from .solver.timestep import calc_stable_timestep

    _setup_logging(False)

    try:
        cfg = _load_config(config_path)
        pc, mat, bcs = cfg.build()
        for bc in bcs:
            bc.validate(pc.n_points)
        runtime.init()
        topology = BondTopology.build(pc, mat.horizon)
        dt = calc_stable_timestep(pc, mat, topology)
    except (FileNotFoundError, ValidationError, BBPDError) as e:
        console.print(f"[red]설정 오류[/]: {e}")
        raise typer.Exit(1)

    table = Table(title="bbpd")
    table.add_column("항목")
    table.add_column("값", justify="right")
    table.add_row("number of points", str(pc.n_points))
    table.add_row("number of bonds", str(topology.n_bonds))
    table.add_row("horizon", f"{mat.horizon:.6g}")
    table.add_row("bond constant", f"{mat.bond_constant:.6g}")
    table.add_row("Δt", f"{dt:.6e}")
    table.add_row("simulated time", f"{dt * cfg.run.n_timesteps:.6e}")
    table.add_row("boundary conditions", str(len(bcs)))
    console.print(table)


if __name__ == "__main__":
    app()
