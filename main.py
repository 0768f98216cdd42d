"""Entry point for the infinite spiral.

Usage:
    python main.py                              # One minute in the spiral
    python main.py --duration 120 --visitor     # Simulated visitor clicking around
    python main.py --time-scale 0.05 --seed 7   # Same schedule, 20x faster, repeatable
    python main.py --verbose                    # Debug logging
"""

from __future__ import annotations

import asyncio
import logging
import random
import sys

import click

from spiral.config import load_config
from spiral.metrics import GameMode
from spiral.narrator import NarratorMessage
from spiral.session import SpiralSession


def _setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s — %(name)s — %(levelname)s — %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    # Timer start/stop lines are noise outside of debugging
    if not verbose:
        logging.getLogger("spiral.timers").setLevel(logging.WARNING)


def _echo_message(message: NarratorMessage) -> None:
    click.echo(f"  [{message.label}] {message.text}")


async def _simulate_visitor(session: SpiralSession, rng: random.Random, interval: float) -> None:
    """Click around, fail a lot, and occasionally finish a challenge."""
    session.next_pattern()
    while True:
        await asyncio.sleep(interval)
        session.record_interaction("error" if rng.random() < 0.25 else "click")
        if rng.random() < 0.2:
            session.bump_suspicion()
        if rng.random() < 0.15:
            if rng.random() < 0.4:
                session.on_complete()
            else:
                session.on_fail()
            session.next_pattern()


async def _run(
    cfg: dict,
    mode: str | None,
    alignment: str | None,
    duration: float,
    visitor: bool,
    visitor_interval: float,
) -> None:
    mirror = asyncio.Event()
    session = SpiralSession(config=cfg, mode=mode, alignment=alignment, on_mirror=mirror.set)
    session.channel.subscribe(_echo_message)

    seed = cfg.get("session", {}).get("seed")

    async with session:
        tasks = []
        if visitor:
            rng = random.Random(seed)
            tasks.append(asyncio.create_task(_simulate_visitor(session, rng, visitor_interval)))
        try:
            await asyncio.wait_for(mirror.wait(), timeout=duration)
            _resolve_mirror(session, seed)
        except asyncio.TimeoutError:
            pass
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            session.channel.flush()

    _print_summary(session)


def _resolve_mirror(session: SpiralSession, seed: str | int | None) -> str:
    """Pick one of the two mirrored instances; the same seed picks the same one."""
    version = random.Random(seed).choice(("a", "b"))
    click.echo("\n  The mirror opens. Two versions of you look back.")
    session.on_mirror_resolved(version)
    return version


def _print_summary(session: SpiralSession) -> None:
    view = session.view()
    metrics, derived = view["metrics"], view["derived"]
    click.echo("")
    click.echo(f"  {session.scrambled('LET ME OUT', multiplier=1.5).display}")
    click.echo(f"  Depth {metrics['spiral_depth']} | chaos {metrics['chaos_level']} | "
               f"suspicion {metrics['suspicion_level']} | frustration {metrics['frustration_score']:.1f}")
    click.echo(f"  Phase: {metrics['experience_phase']} | narrator: {derived['narrator_phase']} "
               f"{derived['expression']}")
    click.echo(f"  Corruption: {derived['meter_corruption']:.0f}% ({derived['corruption_status']}) | "
               f"integrity {derived['system_integrity']:.0f}%")
    click.echo(f"  Badges: {', '.join(metrics['earned_badges']) or 'none'}")


@click.command()
@click.option("--duration", type=float, default=60.0, show_default=True, help="Seconds to run")
@click.option("--time-scale", type=float, default=None, help="Multiply every timer period")
@click.option("--seed", default=None, help="Seed for the random source")
@click.option("--mode", type=click.Choice([m.value for m in GameMode]), default=None, help="Game mode")
@click.option("--alignment", default=None, help="Visitor alignment")
@click.option("--visitor", is_flag=True, help="Simulate a visitor interacting")
@click.option("--visitor-interval", type=float, default=2.0, show_default=True,
              help="Seconds between simulated interactions")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config-dir", type=click.Path(), default=None, help="Config directory")
def main(
    duration: float,
    time_scale: float | None,
    seed: str | None,
    mode: str | None,
    alignment: str | None,
    visitor: bool,
    visitor_interval: float,
    verbose: bool,
    config_dir: str | None,
) -> None:
    """Let Me Out - the infinite spiral, narrated in a terminal."""

    cfg = load_config(config_dir)

    log_file = cfg.get("storage", {}).get("log_file")
    _setup_logging(verbose=verbose, log_file=log_file)

    session_cfg = cfg.setdefault("session", {})
    if time_scale is not None:
        session_cfg["time_scale"] = time_scale
    if seed is not None:
        session_cfg["seed"] = seed

    try:
        asyncio.run(_run(cfg, mode, alignment, duration, visitor, visitor_interval))
    except KeyboardInterrupt:
        click.echo("\nYou left. The spiral keeps turning without you.")


if __name__ == "__main__":
    main()
