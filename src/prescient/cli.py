"""
Command-line interface for prescient.
"""

import asyncio
import sys
from functools import wraps
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .client import Client
from .config import Configuration, get_configuration, reset_configuration
from .exceptions import PrescientError
from .logging_config import setup_logging


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PrescientError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    default=None,
    help="Configuration file path",
)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
@handle_errors
def main(ctx, config: Optional[str], debug: bool):
    """prescient: one interface for Ollama, OpenAI, Anthropic and HuggingFace."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if config:
        prescient_config = reset_configuration(Configuration.from_yaml(config))
    else:
        prescient_config = get_configuration()

    logging_config = prescient_config.logging
    if debug:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)

    ctx.obj["config"] = prescient_config


@main.command()
@click.pass_context
@handle_errors
def providers(ctx):
    """List registered providers and whether they are reachable."""
    config: Configuration = ctx.obj["config"]

    if not config.providers:
        console.print("[yellow]No providers registered[/yellow]")
        return

    available = set(asyncio.run(config.available_providers()))

    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Backend", style="magenta")
    table.add_column("Default", style="yellow")
    table.add_column("Status", style="green")

    for name, registration in config.providers.items():
        table.add_row(
            name,
            registration.backend_name,
            "*" if name == config.default_provider else "",
            "[green]available[/green]" if name in available else "[red]unavailable[/red]",
        )

    console.print(table)


@main.command()
@click.option("--provider", "-p", default=None, help="Provider name")
@click.pass_context
@handle_errors
def health(ctx, provider: Optional[str]):
    """Check the health of a provider."""
    config: Configuration = ctx.obj["config"]

    async def run_health_check() -> Dict[str, Any]:
        async with Client(provider, config=config, enable_fallback=False) as client:
            return await client.health_check()

    result = asyncio.run(run_health_check())
    status = result.get("status")
    color = {"healthy": "green", "partial": "yellow"}.get(status, "red")

    console.print(f"[bold]{result.get('provider')}[/bold]: [{color}]{status}[/{color}]")
    for key, value in result.items():
        if key not in ("status", "provider"):
            console.print(f"  {key}: {escape(str(value))}")


@main.command()
@click.argument("text")
@click.option("--provider", "-p", default=None, help="Provider name")
@click.option("--no-fallback", is_flag=True, help="Only use the named provider")
@click.pass_context
@handle_errors
def embed(ctx, text: str, provider: Optional[str], no_fallback: bool):
    """Generate an embedding for TEXT."""
    config: Configuration = ctx.obj["config"]

    async def run_embedding():
        async with Client(provider, config=config, enable_fallback=not no_fallback) as client:
            return client.provider_name, await client.generate_embedding(text)

    name, embedding = asyncio.run(run_embedding())
    preview = ", ".join(f"{value:.4f}" for value in embedding[:5])

    console.print(f"[green]✓[/green] Embedding from {name}: {len(embedding)} dimensions")
    console.print(f"  [{preview}{', ...' if len(embedding) > 5 else ''}]")


@main.command()
@click.argument("prompt")
@click.option(
    "--context",
    "context_items",
    multiple=True,
    help="Context passage (can be given several times)",
)
@click.option("--provider", "-p", default=None, help="Provider name")
@click.option("--no-fallback", is_flag=True, help="Only use the named provider")
@click.option("--temperature", type=float, default=None, help="Sampling temperature")
@click.option("--max-tokens", type=int, default=None, help="Maximum tokens to generate")
@click.pass_context
@handle_errors
def generate(
    ctx,
    prompt: str,
    context_items: Tuple[str, ...],
    provider: Optional[str],
    no_fallback: bool,
    temperature: Optional[float],
    max_tokens: Optional[int],
):
    """Generate a response to PROMPT."""
    config: Configuration = ctx.obj["config"]

    async def run_generation():
        async with Client(provider, config=config, enable_fallback=not no_fallback) as client:
            return await client.generate_response(
                prompt,
                list(context_items) or None,
                temperature=temperature,
                max_tokens=max_tokens,
            )

    result = asyncio.run(run_generation())

    console.print(result.response, markup=False)
    details = f"{result.provider} / {result.model}"
    if result.processing_time is not None:
        details += f" ({result.processing_time:.2f}s)"
    console.print(f"\n[dim]{details}[/dim]")


@main.command()
@click.option("--provider", "-p", default=None, help="Provider name")
@click.pass_context
@handle_errors
def models(ctx, provider: Optional[str]):
    """List the models a provider offers."""
    config: Configuration = ctx.obj["config"]

    async def run_listing():
        async with Client(provider, config=config, enable_fallback=False) as client:
            if not hasattr(client, "list_models"):
                raise PrescientError(
                    f"Provider {client.provider_name} does not support model listing"
                )
            return client.provider_name, await client.list_models()

    name, model_list = asyncio.run(run_listing())

    table = Table(title=f"Models ({name})")
    columns = sorted({key for model in model_list for key in model})
    columns.sort(key=lambda column: column != "name")
    for column in columns:
        table.add_column(column.replace("_", " ").title())
    for model in model_list:
        table.add_row(*(str(model.get(column, "")) for column in columns))

    console.print(table)


if __name__ == "__main__":
    main()
