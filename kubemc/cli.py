"""kubemc command line interface."""

import asyncio
from typing import Optional

import click
from rich.console import Console

from kubemc import debug
from kubemc.client import DEFAULT_NAMESPACE, ClientFactory
from kubemc.config import MCConfig, Settings, config_path
from kubemc.discovery import ResourceResolver
from kubemc.errors import ConfigError
from kubemc.fanout import FanOutExecutor
from kubemc.output import OUTPUT_FORMATS, render_outcomes


def build_executor(settings: Settings) -> FanOutExecutor:
    """Wire the resolver, client factory and executor from resolved settings."""
    factory = ClientFactory(
        settings.kubeconfig,
        default_namespace=settings.default_namespace,
        request_timeout=settings.timeout,
    )
    resolver = ResourceResolver.default(
        settings.cache_root,
        builtin=settings.builtin_resources,
        request_timeout=settings.timeout,
    )
    return FanOutExecutor(
        factory,
        resolver,
        timeout=settings.timeout,
        max_concurrency=settings.max_concurrency,
    )


def _load_config(ctx: click.Context) -> MCConfig:
    try:
        return MCConfig.load_or_default(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@click.group(
    help="kubemc - query the same resource across many Kubernetes clusters."
)
@click.option(
    "--config",
    "config_file",
    metavar="PATH",
    help="mcconfig file (defaults to $MCCONFIG or ~/.kube/mcconfig).",
)
@click.option(
    "--kubeconfig",
    metavar="PATH",
    help="kubeconfig file (defaults to $KUBECONFIG or ~/.kube/config).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Optional[str],
    kubeconfig: Optional[str],
    verbose: bool,
) -> None:
    """Root command for the kubemc CLI."""
    debug.configure_root()
    if verbose:
        debug.enable()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path(config_file)
    ctx.obj["kubeconfig"] = kubeconfig


@cli.command(help="List a resource in every cluster of a clusterset.")
@click.argument("resource")
@click.option("-n", "--namespace", metavar="NS", help="Namespace for namespaced resources.")
@click.option(
    "-A",
    "--all-namespaces",
    is_flag=True,
    help="List namespaced resources across all namespaces.",
)
@click.option("--clusterset", metavar="NAME", help="Clusterset to query instead of the current one.")
@click.option(
    "-o",
    "--output",
    type=click.Choice(OUTPUT_FORMATS),
    default="table",
    show_default=True,
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Per-cluster timeout in seconds.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    help="Maximum number of clusters queried at once.",
)
@click.option("--cache-dir", metavar="PATH", help="kubectl cache directory (defaults to ~/.kube/cache).")
@click.pass_context
def get(
    ctx: click.Context,
    resource: str,
    namespace: Optional[str],
    all_namespaces: bool,
    clusterset: Optional[str],
    output: str,
    timeout: Optional[float],
    max_concurrency: Optional[int],
    cache_dir: Optional[str],
) -> None:
    """Fan a list request out to the clusterset and print what came back."""
    mcconfig = _load_config(ctx)
    try:
        targets = mcconfig.get_clusterset(clusterset).targets()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if not targets:
        click.echo("Error: clusterset has no clusters.", err=True)
        ctx.exit(1)

    settings = Settings.resolve(
        mcconfig,
        kubeconfig=ctx.obj["kubeconfig"],
        cache_dir=cache_dir,
        timeout=timeout,
        max_concurrency=max_concurrency,
    )
    executor = build_executor(settings)
    result = asyncio.run(executor.run(targets, resource, namespace, all_namespaces))

    if result.all_failed:
        click.echo(f"Error: no cluster returned {resource}:", err=True)
        for failure in result.failures:
            click.echo(f"  {failure.cluster_name}: {failure.error}", err=True)
        ctx.exit(1)

    render_outcomes(result, Console(), output)


@cli.command(help="Show or persist the default namespace.")
@click.argument("namespace", required=False)
@click.pass_context
def namespace(ctx: click.Context, namespace: Optional[str]) -> None:
    """Print the default namespace, or store a new one in the config."""
    mcconfig = _load_config(ctx)
    if not namespace:
        click.echo(mcconfig.namespace or DEFAULT_NAMESPACE)
        return

    mcconfig.namespace = namespace
    try:
        mcconfig.save(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Default namespace set to {namespace}")


@cli.command(help="List configured clustersets and mark the current one.")
@click.pass_context
def clustersets(ctx: click.Context) -> None:
    mcconfig = _load_config(ctx)
    if not mcconfig.clustersets:
        click.echo("No clustersets configured.")
        return

    click.echo("Clustersets:")
    for clusterset in mcconfig.clustersets:
        marker = " (current)" if clusterset.name == mcconfig.current_clusterset else ""
        click.echo(f"  - {clusterset.name}{marker}")
        for entry in clusterset.clusters:
            click.echo(f"      {entry.display_name}")


@cli.command("use-clusterset", help="Persist the clusterset queried by default.")
@click.argument("name")
@click.pass_context
def use_clusterset(ctx: click.Context, name: str) -> None:
    mcconfig = _load_config(ctx)
    try:
        mcconfig.get_clusterset(name)
        mcconfig.current_clusterset = name
        mcconfig.save(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Switched to clusterset {name}")


@cli.command("generate-config", help="Print a default mcconfig document.")
@click.option("--write", is_flag=True, help="Write it to the config path instead of printing.")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def generate_config(ctx: click.Context, write: bool, force: bool) -> None:
    document = MCConfig()
    if not write:
        click.echo(document.yaml(), nl=False)
        return

    path = ctx.obj["config_path"]
    if path.exists() and not force:
        click.echo(f"Error: {path} already exists (use --force to overwrite).", err=True)
        ctx.exit(1)
    try:
        document.save(path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Wrote {path}")


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
