"""
Command line entry point.

Usage
-----
    python -m blockflow_core compile workspace.json [-o out.py] [--run-ticks N]
    python -m blockflow_core blocks [--category NAME]

Both commands accept ``--catalog catalog.json`` to replace the bundled block
catalog and ``--log-level LEVEL``.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .block_registry import BlockRegistry, get_default_registry
from .code_generator import ProgramGenerator
from .config import GeneratorConfig
from .exceptions import BlockFlowError
from .host import run_program
from .workspace_io import load_workspace


logger = logging.getLogger("blockflow")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='blockflow', description='Compile block graphs to Python programs.')
    parser.add_argument('--catalog', help='JSON block catalog replacing the bundled one')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    subparsers = parser.add_subparsers(dest='command', required=True)

    compile_parser = subparsers.add_parser('compile', help='Compile a workspace document')
    compile_parser.add_argument('workspace', help='Workspace JSON file')
    compile_parser.add_argument('-o', '--output', help='Write the program here instead of stdout')
    compile_parser.add_argument('--run-ticks', type=int, default=0, metavar='N',
                                help='Run the program headless for N ticks after compiling')

    blocks_parser = subparsers.add_parser('blocks', help='List the block catalog')
    blocks_parser.add_argument('--category', help='Only list one category')
    return parser


def _registry(path: Optional[str]) -> BlockRegistry:
    return BlockRegistry.from_file(path) if path else get_default_registry()


def cmd_compile(args: argparse.Namespace) -> int:
    registry = _registry(args.catalog)
    imported = load_workspace(args.workspace, registry)
    for block_id in imported.skipped_blocks:
        logger.warning(f"Skipped block {block_id}")
    for conn_id in imported.skipped_connections:
        logger.warning(f"Skipped connection {conn_id}")

    program = ProgramGenerator(registry, GeneratorConfig.from_env()).generate(imported.graph)
    for warning in program.warnings:
        logger.warning(warning)
    if not program.is_valid:
        for error in program.errors:
            logger.error(error)
        return 1

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(program.code)
        logger.info(f"Wrote {args.output} ({len(program.entries)} entries, "
                    f"{len(program.coroutines)} actor loops)")
    else:
        sys.stdout.write(program.code)

    if args.run_ticks > 0:
        result = run_program(program.code, args.run_ticks)
        if not result.success:
            logger.error(f"Run failed: {result.error}")
            return 1
        summary = {
            'frames': result.frames,
            'draw_commands': len(result.draw_commands),
            'actors': result.actors,
            'variables': result.variables,
        }
        sys.stderr.write(json.dumps(summary, indent=2, default=str) + '\n')
    return 0


def cmd_blocks(args: argparse.Namespace) -> int:
    registry = _registry(args.catalog)
    for category in registry.get_categories():
        if args.category and category.name != args.category:
            continue
        sys.stdout.write(f"{category.name}\n")
        for definition in category.blocks:
            sys.stdout.write(f"  {definition.id:<22} {definition.kind.value:<8} {definition.label}\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        if args.command == 'compile':
            return cmd_compile(args)
        return cmd_blocks(args)
    except (BlockFlowError, ValueError) as e:
        logger.error(str(e))
        return 2


if __name__ == '__main__':
    sys.exit(main())
