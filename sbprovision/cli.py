"""
sbprovision Command-Line Interface

Create and delete Service Bus namespaces, queues, topics and subscriptions.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import functools
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from sbprovision import __version__
from sbprovision.backends.factory import create_provisioner
from sbprovision.core.config_manager import ConfigManager
from sbprovision.core.logging_config import SensitiveDataFilter, setup_logging
from sbprovision.provisioning.exceptions import EntityValidationError, ProvisioningError
from sbprovision.provisioning.models import DeletionResult, EntityHandle
from sbprovision.provisioning.reconciler import EntityProvisioner


@click.group()
@click.version_option(version=__version__, prog_name="sbprovision")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (YAML or JSON)",
)
@click.option(
    "--backend",
    type=click.Choice(["azure", "memory"], case_sensitive=False),
    help="Broker backend (memory validates and simulates without touching a broker)",
)
@click.option(
    "--namespace",
    "-n",
    help="Namespace to operate on (default: configured default namespace)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Log output format",
)
@click.pass_context
def cli(ctx, config: Optional[Path], backend: Optional[str], namespace: Optional[str],
        log_level: Optional[str], log_format: Optional[str]):
    """
    sbprovision - Service Bus entity provisioning

    Create entities idempotently and delete them without silently
    discarding in-flight messages.
    """
    ctx.ensure_object(dict)
    ctx.obj["namespace"] = namespace

    # A provisioner injected by the caller (tests, embedding) wins
    if "provisioner" in ctx.obj:
        return

    overrides: Dict[str, Any] = {"backend": backend.lower() if backend else None}
    logging_overrides = {}
    if log_level:
        logging_overrides["level"] = log_level.upper()
    if log_format:
        logging_overrides["format"] = log_format.lower()
    if logging_overrides:
        overrides["logging"] = logging_overrides

    try:
        settings = ConfigManager().load(
            config_file=str(config) if config else None,
            cli_overrides=overrides,
        )
    except (ValidationError, ValueError) as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(2)

    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        log_file=settings.logging.file,
        rotation_size=settings.logging.rotation_size,
        rotation_count=settings.logging.rotation_count,
        module_levels=settings.logging.module_levels,
    )
    ctx.obj["config"] = settings


def _provisioner(ctx: click.Context) -> EntityProvisioner:
    obj = ctx.find_root().obj
    if "provisioner" not in obj:
        obj["provisioner"] = create_provisioner(obj["config"])
    return obj["provisioner"]


def _namespace(ctx: click.Context) -> Optional[str]:
    return ctx.find_root().obj.get("namespace")


def handle_errors(func):
    """Report provisioning failures as [ERROR] lines with a non-zero exit code."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EntityValidationError as e:
            click.echo(f"[ERROR] {e.message}", err=True)
            sys.exit(2)
        except ProvisioningError as e:
            click.echo(f"[ERROR] {e.message} ({e.error_code})", err=True)
            sys.exit(1)
    return wrapper


def _report_created(entity: EntityHandle, as_json: bool) -> None:
    if as_json:
        payload = {
            "namespace": entity.namespace,
            "kind": entity.kind.value,
            "entity_name": entity.entity_name,
            "description": entity.description.to_dict() if entity.description else None,
        }
        click.echo(json.dumps(payload, indent=2))
        return
    click.echo(f"[OK] Created {entity.kind.value} '{entity.entity_name}' in namespace '{entity.namespace}'")


def _report_deleted(result: DeletionResult, as_json: bool) -> None:
    if as_json:
        click.echo(result.model_dump_json(indent=2))
        return
    name = result.path
    if result.subscription_name:
        name = f"{result.path}/Subscriptions/{result.subscription_name}"
    click.echo(f"[OK] Deleted {result.kind.value} '{name}' from namespace '{result.namespace}'")
    if result.forced:
        click.echo(f"   Discarded {result.message_count} in-flight message(s)")


# ========== Shared Options ==========

def common_entity_options(func):
    """Options every entity kind accepts."""
    options = [
        click.option("--auto-delete-on-idle", type=int,
                     help="Minutes of inactivity before the entity is deleted (minimum 5; lower disables)"),
        click.option("--default-message-ttl", "default_message_time_to_live", type=int,
                     help="Default message time-to-live in minutes (0 or less uses the broker default)"),
        click.option("--batched-operations/--no-batched-operations", "enable_batched_operations", default=None,
                     help="Enable server-side batched operations (default: enabled)"),
        click.option("--duplicate-detection/--no-duplicate-detection", "requires_duplicate_detection", default=None,
                     help="Require duplicate detection"),
        click.option("--duplicate-detection-window", "duplicate_detection_history_time_window", type=int,
                     help="Duplicate detection history window in minutes (default 10)"),
        click.option("--support-ordering/--no-support-ordering", default=None,
                     help="Support ordered delivery (ignored when partitioning is enabled)"),
        click.option("--metadata", "user_metadata", help="Free-form metadata string"),
        click.option("--json", "as_json", is_flag=True, help="Print the result as JSON"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def partitioned_entity_options(func):
    """Options shared by queues and topics."""
    options = [
        click.option("--max-size", "max_size_in_megabytes", type=int, help="Maximum size in megabytes (default 1024)"),
        click.option("--partitioning/--no-partitioning", "enable_partitioning", default=None,
                     help="Partition the entity across message brokers"),
        click.option("--anonymous-access/--no-anonymous-access", "is_anonymous_accessible", default=None,
                     help="Allow anonymous access"),
        click.option("--forward-to", help="Path of an entity to auto-forward messages to"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def receiver_options(func):
    """Options shared by queues and subscriptions."""
    options = [
        click.option("--lock-duration", type=int, help="Peek-lock duration in seconds (max 300)"),
        click.option("--max-delivery-count", type=int, help="Deliveries before dead-lettering (default 10)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


# ========== Create Commands ==========

@cli.group()
def create():
    """Create a queue, topic or subscription."""


@create.command("queue")
@click.argument("path")
@common_entity_options
@partitioned_entity_options
@receiver_options
@click.pass_context
@handle_errors
def create_queue(ctx, path: str, as_json: bool, **params):
    """
    Create a queue.

    Examples:
        sbprovision -n orders create queue incoming
        sbprovision create queue incoming --lock-duration 120 --partitioning
    """
    entity = _provisioner(ctx).create_queue(path, namespace=_namespace(ctx), **params)
    _report_created(entity, as_json)


@create.command("topic")
@click.argument("path")
@common_entity_options
@partitioned_entity_options
@click.pass_context
@handle_errors
def create_topic(ctx, path: str, as_json: bool, **params):
    """
    Create a topic.

    Example:
        sbprovision -n orders create topic events --duplicate-detection
    """
    entity = _provisioner(ctx).create_topic(path, namespace=_namespace(ctx), **params)
    _report_created(entity, as_json)


@create.command("subscription")
@click.argument("topic_name")
@click.argument("subscription_name")
@common_entity_options
@receiver_options
@click.option("--dead-letter-on-expiration/--no-dead-letter-on-expiration",
              "dead_lettering_on_message_expiration", default=None,
              help="Dead-letter expired messages")
@click.option("--dead-letter-on-filter-exception/--no-dead-letter-on-filter-exception",
              "dead_lettering_on_filter_evaluation_exceptions", default=None,
              help="Dead-letter messages whose filter evaluation fails")
@click.option("--requires-session/--no-requires-session", default=None, help="Require sessions")
@click.option("--forward-to", help="Path of an entity to auto-forward messages to")
@click.option("--rule-name", help="Name of the custom rule (default: $Default)")
@click.option("--filter", "rule_filter", help="SQL filter expression (default: 1=1 when an action is given)")
@click.option("--action", "rule_action", help="SQL action expression; creates a custom rule")
@click.pass_context
@handle_errors
def create_subscription(ctx, topic_name: str, subscription_name: str, as_json: bool, **params):
    """
    Create a subscription on a topic.

    Examples:
        sbprovision -n orders create subscription events audit
        sbprovision create subscription events eu --filter "region = 'eu'" --action "SET routed = 1"
    """
    entity = _provisioner(ctx).create_subscription(
        topic_name, subscription_name, namespace=_namespace(ctx), **params
    )
    _report_created(entity, as_json)


# ========== Delete Commands ==========

def delete_options(func):
    options = [
        click.option("--force", is_flag=True, help="Delete even if messages are still in flight"),
        click.option("--json", "as_json", is_flag=True, help="Print the result as JSON"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.group()
def delete():
    """Delete a queue, topic or subscription."""


@delete.command("queue")
@click.argument("path")
@delete_options
@click.pass_context
@handle_errors
def delete_queue(ctx, path: str, force: bool, as_json: bool):
    """Delete a queue. Refuses if messages remain, unless --force."""
    result = _provisioner(ctx).delete_queue(path, namespace=_namespace(ctx), force=force)
    _report_deleted(result, as_json)


@delete.command("topic")
@click.argument("path")
@delete_options
@click.pass_context
@handle_errors
def delete_topic(ctx, path: str, force: bool, as_json: bool):
    """Delete a topic and its subscriptions. Refuses if messages remain, unless --force."""
    result = _provisioner(ctx).delete_topic(path, namespace=_namespace(ctx), force=force)
    _report_deleted(result, as_json)


@delete.command("subscription")
@click.argument("topic_name")
@click.argument("subscription_name")
@delete_options
@click.pass_context
@handle_errors
def delete_subscription(ctx, topic_name: str, subscription_name: str, force: bool, as_json: bool):
    """Delete a subscription. Refuses if messages remain, unless --force."""
    result = _provisioner(ctx).delete_subscription(
        topic_name, subscription_name, namespace=_namespace(ctx), force=force
    )
    _report_deleted(result, as_json)


# ========== Namespace Commands ==========

@cli.group()
def namespace():
    """Inspect namespaces."""


@namespace.command("show")
@click.argument("name", required=False)
@click.option("--show-secret", is_flag=True, help="Print the connection string unredacted")
@click.pass_context
@handle_errors
def namespace_show(ctx, name: Optional[str], show_secret: bool):
    """
    Resolve a namespace (creating it if absent) and print its connection details.

    Example:
        sbprovision namespace show orders
    """
    handle = _provisioner(ctx).resolve_namespace(name or _namespace(ctx))
    connection_string = handle.connection_string
    if not show_secret:
        connection_string = SensitiveDataFilter.redact(connection_string)

    click.echo(f"Namespace:         {handle.name}")
    click.echo(f"Endpoint:          {handle.endpoint or '-'}")
    click.echo(f"Connection string: {connection_string}")


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the active configuration (connection strings redacted)."""
    settings = ctx.find_root().obj.get("config")
    if settings is None:
        click.echo("No configuration loaded.")
        return

    data = settings.model_dump()
    data["namespaces"] = {name: SensitiveDataFilter.redact(value) for name, value in data["namespaces"].items()}
    if data.get("connection_string_template"):
        data["connection_string_template"] = SensitiveDataFilter.redact(data["connection_string_template"])
    click.echo(json.dumps(data, indent=2))


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
