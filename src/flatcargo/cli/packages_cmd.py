"""
flatcargo.cli.packages_cmd — flatcargo packages command.

Lists the packages found by walking a checkout's Cargo.toml,
the same way git sources are resolved.
"""

import sys
import click

from flatcargo.workspace import load_manifest, resolve_packages, WorkspaceError


@click.command("packages")
@click.argument("directory", default=".",
                type=click.Path(exists=True, file_okay=False))
@click.option("--normalized", "show_manifest", default=None, metavar="NAME",
              help="Print the normalized Cargo.toml of a package")
def packages_cmd(directory, show_manifest):
    """List packages of a repository checkout."""
    from pathlib import Path
    import tomli_w

    root = Path(directory)
    try:
        packages = resolve_packages(load_manifest(root), root)
    except WorkspaceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if show_manifest:
        package = packages.get(show_manifest)
        if package is None:
            click.echo(f"Error: Package '{show_manifest}' not found.", err=True)
            sys.exit(1)
        click.echo(tomli_w.dumps(package.normalized()), nl=False)
        return

    if not packages:
        click.echo("No packages found.")
        return

    width = max(len(name) for name in packages)
    for name in sorted(packages):
        click.echo(f"{name:<{width}}  {packages[name].path}")
