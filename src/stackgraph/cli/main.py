"""
stackgraph command line entry point.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from stackgraph.config.settings import get_settings
from stackgraph.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackgraph",
        description="Plan, deploy and tear down declarative resource stacks",
    )
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser(
        "plan", help="Validate a stack and preview its deployment order (dry-run)"
    )
    plan_parser.add_argument("stack_yaml", help="Path to stack YAML file")
    plan_parser.add_argument("--output", choices=["text", "json"], default="text",
                             help="Output format")
    plan_parser.add_argument("-v", "--verbose", action="store_true",
                             help="Show resource configs with reference placeholders")

    for name, help_text in (
        ("apply", "Provision every resource of a stack"),
        ("destroy", "Tear down provisioned resources in reverse order"),
    ):
        cmd_parser = subparsers.add_parser(name, help=help_text)
        cmd_parser.add_argument("stack_yaml", help="Path to stack YAML file")
        cmd_parser.add_argument("--provider", help="Registered provider name (default: settings)")
        cmd_parser.add_argument("--concurrency", type=int,
                                help="Maximum provider calls in flight")
        cmd_parser.add_argument("--state-file", help="State file path")
        cmd_parser.add_argument("--output", choices=["text", "json"], default="text",
                                help="Output format")
        cmd_parser.add_argument("-v", "--verbose", action="store_true",
                                help="Also list unchanged resources")

    graph_parser = subparsers.add_parser("graph", help="Export the dependency graph")
    graph_parser.add_argument("stack_yaml", help="Path to stack YAML file")
    graph_parser.add_argument("--format", choices=["json", "mermaid", "dot"], default="json",
                              help="Output format")
    graph_parser.add_argument("-o", "--output-file", help="Write to file instead of stdout")

    subparsers.add_parser("providers", help="List registered providers")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_format == "json")

    if args.command == "plan":
        from stackgraph.cli.plan import plan_command

        sys.exit(plan_command(args.stack_yaml, output_format=args.output, verbose=args.verbose))

    if args.command in ("apply", "destroy"):
        if args.command == "apply":
            from stackgraph.cli.apply import apply_command as command
        else:
            from stackgraph.cli.destroy import destroy_command as command

        sys.exit(command(
            args.stack_yaml,
            provider_name=args.provider,
            concurrency=args.concurrency,
            state_file=args.state_file,
            output_format=args.output,
            verbose=args.verbose,
        ))

    if args.command == "graph":
        from stackgraph.cli.graph import graph_command

        sys.exit(graph_command(
            args.stack_yaml,
            output_format=args.format,
            output_file=args.output_file,
        ))

    if args.command == "providers":
        from stackgraph.cli.ux import print_table
        from stackgraph.providers import list_providers

        print_table(
            "Providers",
            ["Name", "Version", "Description"],
            [spec.row() for spec in list_providers()],
        )
        sys.exit(0)

    parser.print_help()
    sys.exit(0)
