"""
CLI - render saved graphs from the command line.

Thin wrapper over GraphEngine.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="soundgraph",
        description="Node-based audio processing graphs",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # render command
    render_parser = subparsers.add_parser("render", help="Evaluate a saved graph and write WAV")
    render_parser.add_argument("snapshot", help="Graph snapshot (.yaml, .yml or .json)")
    render_parser.add_argument(
        "-s", "--source",
        action="append",
        default=[],
        metavar="NODE=FILE",
        help="Load a WAV file into a source node (repeatable)",
    )
    render_parser.add_argument("-n", "--node", required=True, help="Node whose output to render")
    render_parser.add_argument("-o", "--output", required=True, help="Output WAV (or directory with --all)")
    render_parser.add_argument(
        "--bit-depth",
        type=int,
        choices=(16, 24, 32),
        help="PCM bit depth (default: from config, 16)",
    )
    render_parser.add_argument("--all", action="store_true", help="Write every file of a multi-file output")
    render_parser.add_argument("-c", "--config", help="Engine config (.yaml, .yml or .json)")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Check a saved graph for problems")
    validate_parser.add_argument("snapshot", help="Graph snapshot (.yaml, .yml or .json)")

    # nodes command
    subparsers.add_parser("nodes", help="List node kinds with ports and parameters")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from soundgraph import __version__
        print(f"soundgraph {__version__}")
        return 0

    if parsed.command == "nodes":
        return _cmd_nodes()

    if parsed.command == "validate":
        return _cmd_validate(parsed)

    if parsed.command == "render":
        return _cmd_render(parsed)

    return 1


def _parse_source(spec: str) -> tuple[str, Path]:
    node_id, sep, filename = spec.partition("=")
    if not sep or not node_id or not filename:
        raise ValueError(f"--source expects NODE=FILE, got {spec!r}")
    return node_id, Path(filename)


def _cmd_render(args: argparse.Namespace) -> int:
    """Handle render command."""
    from soundgraph.engine import GraphEngine
    from soundgraph.errors import DecodeError, SoundGraphError
    from soundgraph.graph import LoadSource
    from soundgraph.runtime import load_config

    try:
        config = load_config(args.config)
        engine = GraphEngine.load(args.snapshot, config)

        for spec in args.source:
            node_id, path = _parse_source(spec)
            loaded = engine.apply(LoadSource(node_id, path.read_bytes(), path.name))
            if isinstance(loaded, DecodeError):
                print(f"Error: {loaded}", file=sys.stderr)
                return 1

        output = Path(args.output)
        if args.all:
            files = asyncio.run(engine.export_all(args.node, args.bit_depth))
            output.mkdir(parents=True, exist_ok=True)
            for filename, data in files:
                (output / filename).write_bytes(data)
                print(f"Wrote: {output / filename}")
        else:
            data = asyncio.run(engine.export_final(args.node, args.bit_depth))
            output.write_bytes(data)
            print(f"Wrote: {output}")

        for node_id, warning in engine.warnings().items():
            print(f"Warning: {node_id}: {warning.message}", file=sys.stderr)
        return 0

    except (SoundGraphError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    from soundgraph.errors import SoundGraphError
    from soundgraph.graph import load_snapshot

    try:
        graph = load_snapshot(args.snapshot, strict=True)
    except (SoundGraphError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = graph.validate()
    print(result)
    return 0 if result.is_valid else 1


def _cmd_nodes() -> int:
    """List node kinds."""
    from soundgraph.nodes import NODE_SPECS

    print("Node kinds:")
    print()
    for kind, spec in NODE_SPECS.items():
        print(f"  {kind.value:<10} {spec.description}")
        for port in spec.inputs:
            flags = " (multi)" if port.multi_source else ""
            print(f"      in:  {port.name}{flags}")
        for param in spec.params:
            print(f"      param: {param.describe()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
