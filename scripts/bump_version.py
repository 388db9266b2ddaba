#!/usr/bin/env python3
"""Set the release version in the integration manifest and pyproject.toml."""

from __future__ import annotations

import argparse
import json
import re
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
MANIFEST = ROOT / "custom_components" / "workout_rotation" / "manifest.json"
PYPROJECT = ROOT / "pyproject.toml"

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")
_PYPROJECT_VERSION_RE = re.compile(r'^version = "[^"]*"$', re.MULTILINE)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser()
    p.add_argument("--version", required=True, help="New version, e.g. 0.2.0")
    p.add_argument("--dry-run", action="store_true", help="Only report what would change")
    return p.parse_args()


def bump_manifest(version: str, *, dry_run: bool) -> str:
    manifest = json.loads(MANIFEST.read_text(encoding="utf-8"))
    previous = str(manifest.get("version") or "")
    manifest["version"] = version
    if not dry_run:
        MANIFEST.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    return previous


def bump_pyproject(version: str, *, dry_run: bool) -> None:
    raw = PYPROJECT.read_text(encoding="utf-8")
    updated, count = _PYPROJECT_VERSION_RE.subn(f'version = "{version}"', raw, count=1)
    if count != 1:
        raise SystemExit(f"No version line found in {PYPROJECT}")
    if not dry_run:
        PYPROJECT.write_text(updated, encoding="utf-8")


def main() -> int:
    args = parse_args()
    version = str(args.version).strip()
    if not _VERSION_RE.match(version):
        raise SystemExit("Invalid --version, expected MAJOR.MINOR.PATCH")

    previous = bump_manifest(version, dry_run=args.dry_run)
    bump_pyproject(version, dry_run=args.dry_run)
    prefix = "Would update" if args.dry_run else "Updated"
    print(f"{prefix} version {previous or '?'} -> {version}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
