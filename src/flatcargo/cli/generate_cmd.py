"""
flatcargo.cli.generate_cmd — flatcargo generate command.

  flatcargo generate                         — Cargo.lock → cargo-sources.json
  flatcargo generate path/Cargo.lock -o x.json
  flatcargo generate --format yaml -o cargo-sources.yaml
"""

import sys
import click

from flatcargo.config import load_config, CONFIG_ENV
from flatcargo.errors import PlanError
from flatcargo.lock import parse_lock
from flatcargo.plan import OUTPUT_FORMATS, dump_plan, generate_plan, git_checkouts
from flatcargo.sources import GitCache, SourceResolver


@click.command("generate")
@click.argument("lockfile", default="Cargo.lock",
                type=click.Path(dir_okay=False))
@click.option("-o", "--output", default="cargo-sources.json",
              help="Output file (default: cargo-sources.json)")
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS),
              default=None, help="Output format (default: from extension)")
@click.option("--config", "config_file", default=None,
              help=f"Config file (default: ${CONFIG_ENV})")
@click.option("--checkout-dir", default=None,
              help="Where git sources are cloned")
def generate_cmd(lockfile, output, fmt, config_file, checkout_dir):
    """Generate flatpak-builder sources from a Cargo.lock."""
    from dataclasses import replace

    try:
        config = load_config(config_file)
        if checkout_dir:
            config = replace(config, checkout_dir=checkout_dir)

        entries = parse_lock(lockfile)
        click.echo(f"Resolving {len(entries)} packages from {lockfile}...", err=True)

        resolver = SourceResolver(config, GitCache(config.checkout_path))
        descriptors = generate_plan(entries, resolver, config)
    except PlanError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if fmt is None:
        fmt = "yaml" if output.endswith((".yaml", ".yml")) else "json"

    try:
        with open(output, "w") as f:
            f.write(dump_plan(descriptors, fmt))
    except OSError as e:
        click.echo(f"Error: Could not write {output}: {e}", err=True)
        sys.exit(1)

    click.echo(
        f"✓ {len(descriptors)} sources "
        f"({len(git_checkouts(descriptors))} git) written to {output}",
        err=True,
    )
