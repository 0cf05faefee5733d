# app/cli.py
"""
Maintenance commands for the catalog data files.

    builders-lab validate [--data-dir DIR]
    builders-lab readme   [--data-dir DIR] [--output README.md]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .catalog.store import load_catalog, render_catalog_markdown, validate_catalog_dir


def _validate(data_dir: Path) -> int:
    results = validate_catalog_dir(data_dir)
    failed: List[str] = []
    for filename, errors in results.items():
        if errors:
            failed.append(filename)
            for error in errors:
                print(f"✖ Error in {filename}: {error}", file=sys.stderr)
        else:
            print(f"✔ Valid: {filename}")
    if failed:
        print(f"\nValidation failed for {len(failed)} files.", file=sys.stderr)
        return 1
    print("\nAll data files valid.")
    return 0


def _readme(data_dir: Path, output: Optional[Path]) -> int:
    text = render_catalog_markdown(load_catalog(data_dir))
    if output is None:
        print(text)
    else:
        output.write_text(text, encoding="utf-8")
        print(f"✅ {output} updated")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="builders-lab")
    sub = ap.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate", help="check the catalog data files")
    p_validate.add_argument("--data-dir", type=Path, default=config.CATALOG_DATA_DIR)

    p_readme = sub.add_parser("readme", help="render the catalog as markdown tables")
    p_readme.add_argument("--data-dir", type=Path, default=config.CATALOG_DATA_DIR)
    p_readme.add_argument("--output", type=Path, default=None)

    args = ap.parse_args(argv)
    if args.command == "validate":
        return _validate(args.data_dir)
    return _readme(args.data_dir, args.output)


if __name__ == "__main__":
    sys.exit(main())
