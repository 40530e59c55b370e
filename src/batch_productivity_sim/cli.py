"""Command-line interface for the batch productivity simulator."""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click

from .config import Config
from .errors import ConfigurationError, InvalidArgumentError
from .mqtt_client import MQTTClient
from .simulator import ProductivitySimulator
from .stats import estimated_completions, series_statistics

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def _load_config(ctx, seed=None, points=None) -> Config:
    """Return the loaded config with command-line overrides applied to a copy."""
    config = ctx.obj["config"]
    if seed is not None:
        config = replace(config, simulation=replace(config.simulation, random_seed=seed))
    if points is not None:
        config = replace(config, shift=replace(config.shift, num_points=points))
    return config


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


batch_option = click.option(
    "--batch", "-b", "batch_size", type=int, default=None, help="Batch size (30, 15 or 5)"
)
variance_option = click.option(
    "--variance", "-v", "variance_pct", type=float, default=None, help="Variance percentage (1-20)"
)
seed_option = click.option("--seed", type=int, default=None, help="Random seed for a repeatable run")
points_option = click.option(
    "--points", "-n", type=int, default=None, help="Minutes to simulate (default: 480)"
)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=Path("config/config.yaml"),
    help="Configuration file (defaults are used if it does not exist)",
)
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def main(ctx, config_path, debug):
    """Batch Productivity Simulator - per-minute worker productivity over a shift.

    Simulates an 8-hour shift for a job role at a given batch size. The
    variance percentage controls both how often productivity dips happen at
    cycle boundaries and how deep they are.

    Roles: fridge, pharma, shippers, tech
    Batch sizes: 30, 15, 5
    """
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = Config.from_env(Config.from_yaml(config_path))
    except ConfigurationError as e:
        _fail(e)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.pass_context
def roles(ctx):
    """List the role parameter table."""
    config = _load_config(ctx)
    batch_sizes = config.roles.batch_sizes

    click.echo(f"{'ROLE':<10} {'NAME':<26} {'S/UNIT':>7}  CYCLES (min)      DEPTHS")
    click.echo("-" * 72)
    for profile in config.roles:
        cycles = " / ".join(str(profile.cycles_by_batch[b]) for b in batch_sizes)
        depths = " / ".join(str(profile.depths_by_batch[b]) for b in batch_sizes)
        click.echo(
            f"{profile.role_id:<10} {profile.name:<26} {profile.time_per_unit:>7}  "
            f"{cycles:<17} {depths}"
        )
    click.echo()
    click.echo(f"Batch sizes: {', '.join(str(b) for b in batch_sizes)}")


@main.command()
@click.argument("role", required=False)
@batch_option
@variance_option
@seed_option
@points_option
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "csv"]),
    default="json",
    help="Output format",
)
@click.pass_context
def generate(ctx, role, batch_size, variance_pct, seed, points, output_format):
    """Generate one productivity series and print it."""
    config = _load_config(ctx, seed, points)

    try:
        result = ProductivitySimulator(config).run(role, batch_size, variance_pct, compare=False)
    except (ConfigurationError, InvalidArgumentError) as e:
        _fail(e)

    if output_format == "csv":
        click.echo("minute,productivity")
        for sample in result.series:
            click.echo(f"{sample.minute},{sample.productivity}")
    else:
        click.echo(json.dumps([s.to_dict() for s in result.series]))


@main.command()
@click.argument("role", required=False)
@batch_option
@variance_option
@points_option
@click.pass_context
def summary(ctx, role, batch_size, variance_pct, points):
    """Show cycle time, dip depth and estimated completions."""
    config = _load_config(ctx, points=points)

    try:
        result = ProductivitySimulator(config).run(role, batch_size, variance_pct, compare=False)
    except (ConfigurationError, InvalidArgumentError) as e:
        _fail(e)

    s = result.summary
    profile = config.roles.get(result.role)
    click.echo(f"{profile.name} - Batch {s.batch_size}")
    click.echo("=" * 40)
    click.echo(f"  Cycle time:      {s.cycle_time} min per unit")
    click.echo(f"  Variance dip:    {s.variance_dip}% productivity drop")
    click.echo(f"  Units/shift:     ~{s.estimated_completions} over {s.shift_hours:g}h")
    click.echo(f"  Variance:        {s.variance_pct:g}% event probability")


@main.command()
@click.argument("role", required=False)
@variance_option
@seed_option
@points_option
@click.pass_context
def compare(ctx, role, variance_pct, seed, points):
    """Compare all batch sizes for a role."""
    config = _load_config(ctx, seed, points)
    simulator = ProductivitySimulator(config)
    role = role or config.simulation.default_role
    if variance_pct is None:
        variance_pct = config.simulation.default_variance_pct

    try:
        profile = config.roles.get(role)
        comparison = simulator.compare(role, variance_pct)
    except (ConfigurationError, InvalidArgumentError) as e:
        _fail(e)

    click.echo(f"All Batch Sizes - {profile.name} at {variance_pct:g}% variance")
    click.echo("=" * 60)
    click.echo(f"{'BATCH':>6} {'CYCLE':>7} {'UNITS':>6} {'MEAN':>7} {'MIN':>6} {'<50%':>6}")
    for batch_size, samples in comparison.items():
        stats = series_statistics(samples)
        cycle = profile.cycle_for(batch_size)
        units = estimated_completions(profile, batch_size, config.shift.num_points)
        click.echo(
            f"{batch_size:>6} {cycle:>7} {units:>6} {stats['mean_pct']:>7} "
            f"{stats['min_pct']:>6} {stats['minutes_below_threshold']:>6}"
        )


@main.command()
@click.argument("role", required=False)
@batch_option
@variance_option
@seed_option
@click.option("--broker", default=None, help="MQTT broker address")
@click.option("--port", "-p", type=int, default=None, help="MQTT broker port")
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Log messages instead of sending them",
)
@click.pass_context
def publish(ctx, role, batch_size, variance_pct, seed, broker, port, dry_run):
    """Simulate a selection and publish it over MQTT.

    Publishes the summary, the selected series and one comparison series per
    batch size under {prefix}/{enterprise}/{site}/_productivity/{role}/.
    """
    config = _load_config(ctx, seed)
    if broker or port:
        config = replace(
            config,
            mqtt=replace(
                config.mqtt,
                broker=broker or config.mqtt.broker,
                port=port or config.mqtt.port,
            ),
        )

    mqtt_client = MQTTClient(config.mqtt, config.uns)
    simulator = ProductivitySimulator(config, mqtt_client=mqtt_client)

    try:
        result = simulator.run(role, batch_size, variance_pct)
    except (ConfigurationError, InvalidArgumentError) as e:
        _fail(e)

    if not mqtt_client.connect(dry_run=dry_run):
        click.echo(
            f"Error: could not connect to {config.mqtt.broker}:{config.mqtt.port}", err=True
        )
        sys.exit(1)

    try:
        queued = simulator.publish(result)
    finally:
        mqtt_client.disconnect()

    click.echo(f"Published {queued} messages")
    click.echo(f"  Topic: {mqtt_client.base_topic}/{simulator.NAMESPACE}/{result.role}/#")


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("config"),
    help="Output directory for config files",
)
@click.pass_context
def init(ctx, output):
    """Generate a sample configuration file.

    Creates config.yaml with the shift shape, variance normalisation, MQTT
    settings and the full role table.
    """
    output.mkdir(parents=True, exist_ok=True)

    cfg = Config.default()
    config_path = output / "config.yaml"
    cfg.to_yaml(config_path)

    click.echo(f"Created: {config_path}")
    click.echo()
    click.echo("Edit the config file to customize:")
    click.echo("  - Role cycle times and dip depths")
    click.echo("  - Break schedule and shift length")
    click.echo("  - MQTT broker and UNS names")
    click.echo()
    click.echo(f"Run with: batch-productivity-sim --config {config_path} summary fridge")


if __name__ == "__main__":
    main()
