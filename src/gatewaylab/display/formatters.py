"""Output formatting utilities for the Gateway API lab.

This module provides functions to format lab state and guidance into
Rich-formatted output for the console.
"""

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gatewaylab.lab import LabStatus


def format_step(index: int, total: int, description: str) -> Text:
    """Format a setup step header like ``[3/7] Installing addons``."""
    text = Text()
    text.append(f"[{index}/{total}] ", style="bold blue")
    text.append(description, style="bold")
    return text


def format_lab_status(status: LabStatus) -> Table:
    """Format lab status as a Rich table.

    Args:
        status: Lab status snapshot

    Returns:
        Rich Table with cluster and Gateway API resource status
    """
    table = Table(title=f"Lab Status: {status.cluster_name}")

    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    if status.cluster_exists:
        cluster_state = "[green]✓ running[/green]"
    else:
        cluster_state = "[red]✗ not found[/red]"
    table.add_row("Cluster", cluster_state)

    if not status.cluster_exists:
        return table

    table.add_row("Nodes", str(len(status.nodes)))
    for node in status.nodes:
        table.add_row("", f"  {node}")

    table.add_row("Gateway IP", status.gateway_ip or "[yellow]pending[/yellow]")

    if status.resources:
        table.add_row("", "")
        table.add_row("[bold]Gateway API resources", "")
        for resource in status.resources:
            location = (
                f"{resource['namespace']}/{resource['name']}"
                if resource["namespace"]
                else resource["name"]
            )
            table.add_row(f"  {resource['kind']}", f"{location} - {resource['status']}")

    return table


def format_test_commands(gateway_ip: str | None, domain: str, hostname: str = "webapp") -> Panel:
    """Format the post-setup guide with test, inspection and routing commands."""
    host = f"{hostname}.{domain}"
    ip = gateway_ip or "<gateway-ip>"

    test = Text.from_markup(
        f"[dim]# HTTP test (if hosts file configured):[/dim]\n"
        f"curl http://{host}/\n\n"
        f"[dim]# HTTP test (using Host header):[/dim]\n"
        f"curl -H 'Host: {host}' http://{ip}/\n\n"
        f"[dim]# HTTPS test (self-signed cert, use -k to skip verification):[/dim]\n"
        f"curl -k https://{host}/"
    )
    resources = Text(
        "kubectl get gatewayclass,gateway,httproute -A\n"
        "kubectl get pods -n envoy-gateway-system\n"
        "kubectl get pods -n demo-app"
    )
    routing = Text.from_markup(
        "[dim]# Traffic splitting (90% stable, 10% canary):[/dim]\n"
        "gateway-lab route canary\n\n"
        "[dim]# Header-based routing (X-Canary: true → canary):[/dim]\n"
        "gateway-lab route header"
    )

    body = Group(
        Text(f"Gateway IP: {ip}", style="bold"),
        Text(""),
        Text("Test Commands", style="bold cyan"),
        test,
        Text(""),
        Text("View Resources", style="bold cyan"),
        resources,
        Text(""),
        Text("Advanced Routing Examples", style="bold cyan"),
        routing,
    )
    return Panel(
        body,
        title="Gateway API Lab Setup Complete!",
        border_style="green",
        title_align="left",
    )


def format_error(message: str) -> Panel:
    """Format error message as a Rich panel."""
    return Panel(
        message,
        title="Error",
        border_style="red",
        title_align="left",
    )


def format_success(message: str) -> Panel:
    """Format success message as a Rich panel."""
    return Panel(
        message,
        title="Success",
        border_style="green",
        title_align="left",
    )
