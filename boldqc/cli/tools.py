"""Check that the FSL executables needed by the pipeline are available."""

from __future__ import annotations

import click

from boldqc.toolkit.fsl import REQUIRED_TOOLS, FslToolkit


@click.command(name="check-tools")
@click.pass_obj
def cli(ctx_obj) -> None:
    """List required FSL tools and fail when any of them is missing."""
    toolkit = FslToolkit(ctx_obj["cfg"].fsl)
    missing = set(toolkit.missing_tools())
    for name in REQUIRED_TOOLS:
        if name in missing:
            click.secho(f"✗ {name:<22} not found", fg="red")
        else:
            click.secho(f"✓ {name:<22} {toolkit.exe(name)}", fg="green")
    if missing:
        raise click.ClickException(
            f"{len(missing)} FSL tool(s) missing – install FSL or set fsl.fsldir in the config"
        )


__all__ = ["cli"]
