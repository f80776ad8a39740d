#!/usr/bin/env python3
"""
FeedBridge - Resilient RSS Proxy
================================

Main application entry point with CLI interface for serving and testing.

Usage:
    python main.py --help                          # Show all commands
    python main.py check-config                    # Validate configuration
    python main.py serve                           # Run the HTTP API
    python main.py fetch user --username jack      # Run the pipeline once
    python main.py build-url search --query python # Print the proxy URL
    python main.py mirrors --family nitter         # List configured mirrors
"""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
import feedparser
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedbridge.config.settings import get_settings
from feedbridge.models import MirrorFamily
from feedbridge.processing.pipeline import FeedPipeline
from feedbridge.processing.url_builder import build_proxy_url
from feedbridge.utils.logging import configure_application_logging
from feedbridge.utils.exceptions import (
    AllInstancesFailedError,
    FeedBridgeError,
    ValidationError,
)
from feedbridge.utils.validators import RequestValidator

console = Console()
logger = logging.getLogger(__name__)

FEED_TYPES = click.Choice(["user", "search", "hashtag", "list"], case_sensitive=False)
FAMILIES = click.Choice([family.value for family in MirrorFamily], case_sensitive=False)


def feed_request_options(func):
    """Options shared by commands that take a feed request."""
    options = [
        click.option('--username', '-u', help='Account name (user and list feeds)'),
        click.option('--query', '-q', help='Search query (search feeds)'),
        click.option('--hashtag', help='Hashtag without # (hashtag feeds)'),
        click.option('--list', 'list_slug', help='List slug or id (list feeds)'),
        click.option('--exclude-replies', is_flag=True, help='Drop replies (user feeds)'),
        click.option('--exclude-retweets', is_flag=True, help='Drop retweets (user feeds)'),
        click.option('--lang', help='Language code (search feeds)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_request(feed_type, username, query, hashtag, list_slug,
                   exclude_replies, exclude_retweets, lang):
    """Validate CLI options exactly like the HTTP endpoint validates query parameters."""
    params = {
        "type": feed_type,
        "username": username,
        "q": query,
        "hashtag": hashtag,
        "list": list_slug,
        "exclude_replies": "true" if exclude_replies else None,
        "exclude_retweets": "true" if exclude_retweets else None,
        "lang": lang,
    }
    try:
        return RequestValidator.validate({k: v for k, v in params.items() if v is not None})
    except ValidationError as e:
        console.print(f"[bold red]❌ Invalid {e.field_name or 'request'}: {e.reason}[/bold red]")
        sys.exit(2)


def _public_base_url(settings) -> str:
    return settings.server.public_base_url or f"http://{settings.server.host}:{settings.server.port}"


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedBridge - RSS feeds for Twitter/X via public mirrors."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())


def _setup_logging(ctx, settings) -> None:
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking FeedBridge Configuration[/bold blue]")

    try:
        settings = get_settings()
    except FeedBridgeError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    for family in MirrorFamily:
        mirrors = settings.get_mirror_config(family)
        table.add_row(
            f"{family.value} mirrors",
            f"{len(mirrors)} instances, primary {mirrors.instances[0]}, "
            f"timeout {settings.get_timeout(family):g}s",
        )
    table.add_row("Server", f"{settings.server.host}:{settings.server.port} -> {settings.server.upstream_family.value}")
    table.add_row("Public URL", settings.server.public_base_url or "(derived from request)")
    table.add_row("Feed", f"ttl {settings.feed.ttl_minutes}min, error max-age {settings.feed.error_max_age}s")
    table.add_row("Logging", f"{settings.get_effective_log_level()} -> {settings.logging.file_path or 'console'}")

    console.print(table)
    console.print("[bold green]✅ All configuration checks passed![/bold green]")


@cli.command()
@click.option('--host', help='Interface to bind (default from settings)')
@click.option('--port', type=int, help='Port to listen on (default from settings)')
@click.option('--family', type=FAMILIES, help='Mirror family to proxy')
@click.pass_context
def serve(ctx, host, port, family):
    """Run the HTTP API."""
    from feedbridge.api.server import run_server

    settings = get_settings()
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port
    if family:
        settings.server.upstream_family = MirrorFamily(family.lower())

    _setup_logging(ctx, settings)
    console.print(
        f"[bold blue]🚀 Serving {settings.server.upstream_family.value} feeds on "
        f"http://{settings.server.host}:{settings.server.port}/api/rss[/bold blue]"
    )
    run_server(settings)


@cli.command()
@click.argument('feed_type', type=FEED_TYPES)
@feed_request_options
@click.option('--family', type=FAMILIES, help='Mirror family to fetch from')
@click.option('--raw', is_flag=True, help='Print the final XML instead of a summary')
@click.pass_context
def fetch(ctx, feed_type, username, query, hashtag, list_slug,
          exclude_replies, exclude_retweets, lang, family, raw):
    """Run the fetch pipeline once and show the result."""
    settings = get_settings()
    _setup_logging(ctx, settings)

    request = _build_request(feed_type.lower(), username, query, hashtag, list_slug,
                             exclude_replies, exclude_retweets, lang)
    pipeline = FeedPipeline.from_settings(settings, family.lower() if family else None)
    feed_url = build_proxy_url(request, _public_base_url(settings))

    if not raw:
        console.print(
            f"[bold blue]📡 Fetching {request.kind.value} feed "
            f"'{request.identifier}' via {pipeline.family.value}[/bold blue]"
        )

    try:
        result = asyncio.run(pipeline.run(request, feed_url))
    except AllInstancesFailedError as e:
        console.print(f"[bold red]❌ All {e.family} instances failed[/bold red]")
        for instance, reason in e.per_instance_reasons:
            console.print(f"  • {instance}: {reason}")
        sys.exit(1)

    if raw:
        click.echo(result.xml)
        return

    parsed = feedparser.parse(result.xml)
    console.print(
        f"[bold green]✅ {parsed.feed.get('title', 'Untitled feed')} "
        f"from {result.document.instance}[/bold green]"
    )

    table = Table(title=f"Entries ({len(parsed.entries)})")
    table.add_column("Published", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Link")

    for entry in parsed.entries[:20]:
        title = entry.get('title', '')
        if len(title) > 80:
            title = title[:77] + "..."
        table.add_row(entry.get('published', ''), title, entry.get('link', ''))

    console.print(table)
    if parsed.bozo:
        console.print(f"[yellow]⚠️ Feed still has XML issues: {parsed.get('bozo_exception')}[/yellow]")


@cli.command()
@click.argument('feed_type', type=FEED_TYPES)
@feed_request_options
@click.option('--base-url', help='Public origin of the proxy (default from settings)')
def build_url(feed_type, username, query, hashtag, list_slug,
              exclude_replies, exclude_retweets, lang, base_url):
    """Print the proxy URL for a feed request."""
    request = _build_request(feed_type.lower(), username, query, hashtag, list_slug,
                             exclude_replies, exclude_retweets, lang)
    click.echo(build_proxy_url(request, base_url or _public_base_url(get_settings())))


@cli.command()
@click.option('--family', type=FAMILIES, help='Only show one mirror family')
def mirrors(family: Optional[str]):
    """List configured mirror instances in fallback order."""
    settings = get_settings()
    families = [MirrorFamily(family.lower())] if family else list(MirrorFamily)

    for mirror_family in families:
        config = settings.get_mirror_config(mirror_family)
        table = Table(title=f"{mirror_family.value} mirrors (timeout {settings.get_timeout(mirror_family):g}s)")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Instance", style="green")

        for position, instance in enumerate(config, 1):
            table.add_row(str(position), instance)
        console.print(table)


if __name__ == "__main__":
    cli()
