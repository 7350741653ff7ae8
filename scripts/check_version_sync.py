#!/usr/bin/env python3
"""Check that keysmith.__version__ matches [project].version in pyproject.toml."""

import re
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def package_version() -> str:
    text = (ROOT / "keysmith" / "__init__.py").read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*"([^"]+)"', text, re.M)
    return match.group(1) if match else ""


def project_version() -> str:
    text = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    section = re.search(r"^\[project\]\s*$(.*?)(?=^\[|\Z)", text, re.M | re.S)
    if not section:
        return ""
    match = re.search(r'^version\s*=\s*"([^"]+)"', section.group(1), re.M)
    return match.group(1) if match else ""


def main() -> int:
    package = package_version()
    project = project_version()

    if not package:
        print("ERROR: no __version__ in keysmith/__init__.py")
        return 1
    if not project:
        print("ERROR: no [project] version in pyproject.toml")
        return 1
    if package != project:
        print(f"VERSION MISMATCH: keysmith/__init__.py={package} vs pyproject.toml={project}")
        return 1

    print(f"version OK: {package}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
