"""
simulation.py

Driver for a Grid: run ticks, print periodic reports, keep a per-tick history
(optionally streamed to CSV), and plot the results with matplotlib.

Usage
-----
$ python -m life_engine                          # 100x100 world, origin of life
$ python -m life_engine --steps 2000 --seed 42 --history output/history.csv
$ python -m life_engine --plot                   # live matplotlib view
"""

from __future__ import annotations

import argparse
import csv
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .config import WorldConfig, load_config
from .world import Grid


# ============================================================
# CONFIG
# ============================================================

W, H = 100, 100
STEPS = 1000
REPORT_EVERY = 100
PLOT_INTERVAL = 0.01

HISTORY_FIELDS = [
    "tick",
    "population",
    "births",
    "deaths",
    "kills",
    "hits",
    "eaten",
    "food_tiles",
    "mean_cells",
    "mean_food",
]


# ============================================================
# RUN LOOP
# ============================================================

def summarize(grid: Grid, stats: Dict[str, int]) -> Dict[str, float]:
    """Per-tick history row: step stats plus population-wide means."""
    alive = grid.alive_organisms()
    row: Dict[str, float] = {name: stats.get(name, 0) for name in HISTORY_FIELDS}
    row["food_tiles"] = grid.counts()["food"]
    row["mean_cells"] = float(np.mean([len(org.cells) for org in alive])) if alive else 0.0
    row["mean_food"] = float(np.mean([org.food_collected for org in alive])) if alive else 0.0
    return row


def open_history_writer(path: str | Path, overwrite: bool = True) -> Tuple[csv.DictWriter, TextIO]:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    need_header = overwrite or (not out_path.exists()) or out_path.stat().st_size == 0

    mode = "w" if overwrite else "a"
    handle = out_path.open(mode, newline="", encoding="utf-8")
    writer = csv.DictWriter(handle, fieldnames=HISTORY_FIELDS)
    if need_header:
        writer.writeheader()
    return writer, handle


def run(
    grid: Grid,
    steps: int = STEPS,
    report_every: int = REPORT_EVERY,
    history_writer: Optional[csv.DictWriter] = None,
    stop_when_empty: bool = True,
) -> List[Dict[str, float]]:
    history: List[Dict[str, float]] = []
    for _ in range(steps):
        stats = grid.step()
        row = summarize(grid, stats)
        history.append(row)
        if history_writer is not None:
            history_writer.writerow(row)

        if report_every > 0 and grid.ticks % report_every == 0:
            print(
                f"t={grid.ticks:04d}  organisms={row['population']:5d}  "
                f"births={row['births']:3d}  deaths={row['deaths']:3d}  "
                f"food={row['food_tiles']:6d}  mean_cells={row['mean_cells']:.2f}"
            )

        if stop_when_empty and row["population"] == 0:
            print(f"Extinction at tick {grid.ticks}")
            break
    return history


# ============================================================
# PLOTS
# ============================================================

def plot_population(history: List[Dict[str, float]]) -> None:
    if not history:
        print("No history to plot.")
        return
    t = [row["tick"] for row in history]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10.0, 7.0), sharex=True)
    ax1.plot(t, [row["population"] for row in history], label="Organisms")
    ax1.plot(t, [row["food_tiles"] for row in history], label="Food tiles")
    ax1.set_ylabel("Count")
    ax1.set_title("Population and food")
    ax1.grid(alpha=0.25)
    ax1.legend(loc="upper right")

    ax2.plot(t, [row["mean_cells"] for row in history], label="Mean body size")
    ax2.plot(t, [row["births"] for row in history], label="Births")
    ax2.plot(t, [row["deaths"] for row in history], label="Deaths")
    ax2.set_xlabel("Tick")
    ax2.grid(alpha=0.25)
    ax2.legend(loc="upper right")

    fig.tight_layout()
    plt.show()


def demo_plot(grid: Grid, steps: int = STEPS, interval: float = PLOT_INTERVAL) -> List[Dict[str, float]]:
    history: List[Dict[str, float]] = []
    plt.ion()
    fig, ax = plt.subplots()
    im = ax.imshow(grid.as_rgb(), interpolation="nearest")
    ax.set_title(f"Life engine | t={grid.ticks}")
    ax.set_axis_off()
    fig.tight_layout()
    for _ in range(steps):
        if not plt.fignum_exists(fig.number):
            break
        history.append(summarize(grid, grid.step()))
        im.set_data(grid.as_rgb())
        ax.set_title(f"Life engine | t={grid.ticks}  organisms={grid.organism_count}")
        plt.pause(interval)
        if grid.organism_count == 0:
            break
    plt.ioff()
    plt.show()
    plt.close(fig)
    return history


# ============================================================
# MAIN
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Evolving cellular organisms on a 2D grid.")
    ap.add_argument("--width", type=int, default=W)
    ap.add_argument("--height", type=int, default=H)
    ap.add_argument("--steps", type=int, default=STEPS)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--config", type=str, default=None, help="JSON file of WorldConfig overrides")
    ap.add_argument("--food-prob", type=float, default=None)
    ap.add_argument("--max-organisms", type=int, default=None)
    ap.add_argument("--lifespan", type=int, default=None, help="lifespan multiplier (ticks per cell)")
    ap.add_argument("--insta-kill", action="store_true", default=None)
    ap.add_argument("--food-blocks-reproduction", dest="food_blocks_reproduction", action="store_true", default=None)
    ap.add_argument("--no-food-blocks-reproduction", dest="food_blocks_reproduction", action="store_false")
    ap.add_argument("--report-every", type=int, default=REPORT_EVERY)
    ap.add_argument("--history", type=str, default=None, help="write per-tick history to this CSV file")
    ap.add_argument("--plot", action="store_true", default=False, help="show live visualization (matplotlib)")
    return ap


def config_from_args(args: argparse.Namespace) -> WorldConfig:
    config = load_config(args.config) if args.config else WorldConfig()
    overrides = {
        "food_production_prob": args.food_prob,
        "max_organisms": args.max_organisms,
        "lifespan_multiplier": args.lifespan,
        "insta_kill": args.insta_kill,
        "food_blocks_reproduction": args.food_blocks_reproduction,
    }
    return config.replace(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: Sequence[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        config = config_from_args(args)
    except (OSError, ValueError) as exc:
        ap.error(str(exc))

    grid = Grid(args.width, args.height, config=config, seed=args.seed)
    if not grid.origin_of_life():
        print(f"Could not place the first organism on a {args.width}x{args.height} grid.")
        return 1

    if args.plot:
        history = demo_plot(grid, steps=args.steps)
        plot_population(history)
        return 0

    writer, handle = open_history_writer(args.history) if args.history else (None, None)
    try:
        run(grid, steps=args.steps, report_every=args.report_every, history_writer=writer)
    finally:
        if handle is not None:
            handle.close()

    print(f"Simulation finished after {grid.ticks} ticks.")
    print(f"Organisms remaining: {grid.organism_count}")
    if args.history:
        print(f"History saved to: {args.history}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
