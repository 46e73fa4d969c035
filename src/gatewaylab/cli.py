"""CLI interface for the Gateway API lab.

This module provides the ``gateway-lab`` command: setup and cleanup of the lab,
status inspection, routing examples, optional addons and hosts file entries.
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from gatewaylab import __version__
from gatewaylab.config import LabConfig
from gatewaylab.display import (
    format_error,
    format_lab_status,
    format_step,
    format_success,
    format_test_commands,
)
from gatewaylab.lab import GatewayLab, SetupStep
from gatewaylab.manifests import ROUTES
from gatewaylab.utils.errors import ConfigurationError, LabError

console = Console()


def setup_logging(log_level: str = "info") -> None:
    """Setup logging with Rich handler.

    Args:
        log_level: Logging level (debug, info, warning, error)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                show_time=False,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="gateway-lab",
        description="Kubernetes Gateway API lab on KinD with Cilium, MetalLB and Envoy Gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Minimal output mode",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output with every command that is run",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Gateway API Lab {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    setup = subparsers.add_parser("setup", help="Create the complete lab environment")
    setup.add_argument(
        "--reuse-cluster",
        action="store_true",
        help="Keep an existing cluster instead of recreating it",
    )
    setup.add_argument(
        "--skip-hosts",
        action="store_true",
        help="Do not add the lab hostnames to the hosts file",
    )

    subparsers.add_parser("cleanup", help="Delete the cluster and remove hosts entries")
    subparsers.add_parser("status", help="Show cluster, Gateway IP and Gateway API resources")

    route = subparsers.add_parser("route", help="Apply a routing example")
    route.add_argument("name", choices=sorted(ROUTES), help="Routing example to apply")

    addons = subparsers.add_parser("addons", help="Install optional addons (e.g. agentgateway)")
    addons_sub = addons.add_subparsers(dest="addons_command", required=True)
    install = addons_sub.add_parser("install", help="Install addons into the lab cluster")
    install.add_argument("names", nargs="+", help="Addon names, e.g. agentgateway")

    hosts = subparsers.add_parser("hosts", help="Manage hosts file entries for lab hostnames")
    hosts.add_argument("action", choices=["add", "remove"])

    return parser


def _render_banner(title: str, subtitle: str | None = None) -> None:
    console.print("=" * 46)
    console.print(f"[bold]{title}[/bold]")
    console.print("=" * 46)
    if subtitle:
        console.print(subtitle)
    console.print()


def _print_step(index: int, total: int, step: SetupStep) -> None:
    console.print()
    console.print(format_step(index, total, step.description))


def run_setup(lab: GatewayLab, args: argparse.Namespace) -> None:
    if not args.quiet:
        _render_banner(
            "Kubernetes Gateway API Lab Setup",
            "This will create a complete Gateway API lab environment.\n"
            "Estimated time: 5-10 minutes",
        )
        lab.on_step = _print_step

    status = lab.setup(reuse_cluster=args.reuse_cluster, configure_hosts=not args.skip_hosts)

    console.print()
    console.print(format_test_commands(status.gateway_ip, lab.config.domain))


def run_cleanup(lab: GatewayLab, args: argparse.Namespace) -> None:
    if not args.quiet:
        _render_banner("Kubernetes Gateway API Lab Cleanup")

    result = lab.cleanup()

    summary = "Cleanup complete!"
    if not result["cluster_deleted"]:
        summary += f"\nCluster '{lab.config.cluster_name}' was already gone."
    summary += "\n\nTo start fresh, run: gateway-lab setup"
    console.print(format_success(summary))


def run_status(lab: GatewayLab, args: argparse.Namespace) -> None:
    console.print(format_lab_status(lab.status()))


def run_route(lab: GatewayLab, args: argparse.Namespace) -> None:
    lab.apply_route(args.name)
    console.print(format_success(f"Applied '{args.name}' routing for webapp.{lab.config.domain}"))


def run_addons(lab: GatewayLab, args: argparse.Namespace) -> None:
    result = lab.install_addons(args.names)
    console.print(format_success(result["message"]))


def run_hosts(lab: GatewayLab, args: argparse.Namespace) -> None:
    if args.action == "add":
        changed = lab.configure_hosts()
        message = "Hosts configured!" if changed else "Hosts file unchanged."
    else:
        removed = lab.hosts.remove_entries(lab.config.domain)
        message = f"Removed {removed} host entries." if removed else "No host entries found."
    console.print(format_success(message))


COMMANDS = {
    "setup": run_setup,
    "cleanup": run_cleanup,
    "status": run_status,
    "route": run_route,
    "addons": run_addons,
    "hosts": run_hosts,
}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = LabConfig()
        config.validate()

        log_level = "debug" if args.verbose else ("warning" if args.quiet else config.log_level)
        setup_logging(log_level)

        COMMANDS[args.command](GatewayLab(config), args)

    except ConfigurationError as e:
        console.print(format_error(f"Configuration Error: {e}"))
        console.print("\n[yellow]Please check your .env file or environment variables.[/yellow]")
        sys.exit(1)

    except (LabError, ValueError) as e:
        console.print(format_error(str(e)))
        if args.verbose:
            console.print_exception()
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted[/dim]")
        sys.exit(130)


if __name__ == "__main__":
    main()
