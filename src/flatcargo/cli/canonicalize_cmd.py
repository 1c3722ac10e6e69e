"""
flatcargo.cli.canonicalize_cmd — flatcargo canonicalize command.

  flatcargo canonicalize git+https://github.com/Owner/Repo.git?rev=abc
"""

import sys
import click

from flatcargo.url import canonicalize, UrlParseError


@click.command("canonicalize")
@click.argument("url")
def canonicalize_cmd(url):
    """Print the canonical form Cargo uses for a source URL."""
    try:
        canonical = canonicalize(url)
    except UrlParseError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(canonical.url)
    if canonical.disambiguator:
        d = canonical.disambiguator
        click.echo(f"{d.kind}: {d.value}")
