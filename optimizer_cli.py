#!/usr/bin/env python3
"""
Run the mod optimizer from the command line.

Usage:
    python optimizer_cli.py run.json [--threshold N] [--quiet] [--output mods.csv]

The run file lists characters in priority order, each with inline weights or
a named strategy, and either inline mods or a "mods_csv" path.
"""

import argparse
import dataclasses
import sys

from allocator import optimize
from errors import InventoryIntegrityViolation
from inventory_loader import load_run_file, write_mods_csv


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Mod Optimizer')
    parser.add_argument('run_file', help='JSON run description')
    parser.add_argument('--threshold', type=int, default=None,
                        help='Override the change threshold (0-100 percent)')
    parser.add_argument('--quiet', action='store_true', help='Only print the summary')
    parser.add_argument('--output', default=None,
                        help='Write the inventory with updated owners to this CSV')
    args = parser.parse_args(argv)

    try:
        run_input = load_run_file(args.run_file)
        if args.threshold is not None:
            run_input = dataclasses.replace(run_input, threshold=args.threshold)
    except (InventoryIntegrityViolation, ValueError) as e:
        print(f"✗ Could not load {args.run_file}: {e}")
        return 1

    try:
        result = optimize(run_input, verbose=not args.quiet)
    except InventoryIntegrityViolation as e:
        print(f"✗ Inventory integrity violation: {e}")
        return 1

    if args.quiet:
        print(result.summary())

    moved = result.moved_mod_count(list(run_input.mods))
    print(f"\n{moved} mods need to be moved")
    for error in result.errors:
        print(f"  ⚠ {error}")

    if args.output:
        write_mods_csv(args.output, result.updated_mods(list(run_input.mods)))
        print(f"✓ Wrote {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
