"""
flatcargo.cli — CLI entry point.

Commands:
  flatcargo generate [Cargo.lock] [flags]  — Write the offline fetch plan
  flatcargo canonicalize <url>             — Show Cargo's canonical URL
  flatcargo packages [dir]                 — List packages in a checkout
"""

import click

from flatcargo.cli.generate_cmd import generate_cmd
from flatcargo.cli.canonicalize_cmd import canonicalize_cmd
from flatcargo.cli.packages_cmd import packages_cmd


@click.group()
@click.version_option(package_name="flatcargo")
def main():
    """flatcargo — Cargo.lock to offline flatpak sources."""
    pass


main.add_command(generate_cmd, "generate")
main.add_command(canonicalize_cmd, "canonicalize")
main.add_command(packages_cmd, "packages")
