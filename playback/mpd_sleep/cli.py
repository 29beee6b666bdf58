"""
CLI for manual control and testing of the sleep timer
"""

import click
import json
import sys
import threading
import time

from .config import SleepTimerConfig
from .coordinator import SleepTimerCoordinator
from .fade import run_fade
from .player_control import PlayerControl, PlayerError
from .logging_utils import setup_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.option('--log-level', default=None, help='Log level (defaults to LOG_LEVEL)')
@click.option('--log-format', default=None, type=click.Choice(['text', 'json', 'simple']), help='Log format')
@click.pass_context
def cli(ctx, log_level, log_format):
    """MPD Sleep Timer CLI - control the player and the sleep timer"""
    ctx.ensure_object(dict)
    config = SleepTimerConfig.from_env()
    if log_level:
        config.log_level = log_level
    if log_format:
        config.log_format = log_format

    setup_logging(log_level=config.log_level, log_format=config.log_format)
    ctx.obj['config'] = config


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the status as JSON')
@click.pass_context
def status(ctx, as_json):
    """Show the player status"""
    player = PlayerControl(ctx.obj['config'].player)
    try:
        player_status = player.read_status()
    except PlayerError as e:
        click.echo(f"Error reading status: {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(player_status.to_dict(), indent=2))
        return

    click.echo("Player status:")
    click.echo(f"  State: {player_status.state.value}")
    volume = f"{player_status.volume}%" if player_status.has_mixer else "n/a (no mixer)"
    click.echo(f"  Volume: {volume}")
    if player_status.elapsed is not None:
        click.echo(f"  Elapsed: {player_status.elapsed:.1f}s")


@cli.command()
@click.pass_context
def pause(ctx):
    """Toggle pause"""
    player = PlayerControl(ctx.obj['config'].player)
    try:
        state = player.toggle_pause()
    except PlayerError as e:
        click.echo(f"Error toggling pause: {e}")
        sys.exit(1)
    click.echo(f"State is now {state.value}!")


@cli.command()
@click.option('--floor', type=click.IntRange(0, 100), default=None, help='Volume to fade down to')
@click.option('--step-interval', type=float, default=None, help='Seconds between volume steps')
@click.pass_context
def fade(ctx, floor, step_interval):
    """Run the fade-and-pause sequence now"""
    config = ctx.obj['config']
    settings = config.fade.model_copy()
    if floor is not None:
        settings.floor_volume = floor
    if step_interval is not None:
        settings.step_interval_s = step_interval

    try:
        metrics = run_fade(PlayerControl(config.player), settings)
    except PlayerError as e:
        click.echo(f"Fade failed: {e}")
        sys.exit(1)

    click.echo(f"Faded {len(metrics.steps)} step(s) from volume {metrics.start_volume} and paused")
    click.echo(f"Total duration: {metrics.duration_ms}ms")


@cli.command()
@click.argument('seconds', type=click.IntRange(min=0))
@click.pass_context
def sleep(ctx, seconds):
    """Arm a sleep timer in-process and wait for it to fire"""
    config = ctx.obj['config']
    coordinator = SleepTimerCoordinator(PlayerControl(config.player), config.fade)
    coordinator.start()
    try:
        coordinator.start_timer(seconds)
    except ValueError as e:
        coordinator.stop()
        click.echo(f"Invalid duration: {e}")
        sys.exit(1)
    click.echo(f"Sleeping for {seconds} seconds… (Ctrl-C to cancel)")

    fade_allowance = (100 - config.fade.floor_volume) * config.fade.step_interval_s
    try:
        # time.sleep overflows past threading.TIMEOUT_MAX
        time.sleep(min(seconds + fade_allowance + 1, threading.TIMEOUT_MAX))
    except KeyboardInterrupt:
        coordinator.cancel()
        click.echo("Canceling sleep timer…")
    finally:
        coordinator.stop()


@cli.command(name='config')
@click.pass_context
def show_config(ctx):
    """Show the effective configuration"""
    config = ctx.obj['config']
    data = config.model_dump()
    if data['player'].get('password'):
        data['player']['password'] = '***'
    click.echo(json.dumps(data, indent=2))


if __name__ == '__main__':
    cli()
