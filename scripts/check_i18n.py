#!/usr/bin/env python3
"""Check that every t() key used in keysmith exists in strings_en.py.

Runs keysmith's own Python parser over the package. Unused strings are
listed as a warning; missing keys fail the check.

Exit code 0 = all OK, 1 = missing keys found.
"""

import ast
import sys
from pathlib import Path

from keysmith.dynamic_keys import compile_key_globs, matches_any_glob
from keysmith.parsers.python import PythonParser

ROOT = Path(__file__).resolve().parent.parent

# Keys built at runtime, e.g. t(f"common_severity_{severity}")
DYNAMIC_KEY_GLOBS = ["common_severity_*"]


def extract_keys(filepath: Path) -> set[str]:
    """Extract STRINGS dict keys from a strings file using AST parsing."""
    source = filepath.read_text(encoding="utf-8")
    tree = ast.parse(source, filename=str(filepath))

    for node in ast.walk(tree):
        if isinstance(node, ast.AnnAssign):
            target = node.target
            value = node.value
        elif isinstance(node, ast.Assign) and len(node.targets) == 1:
            target = node.targets[0]
            value = node.value
        else:
            continue

        if isinstance(target, ast.Name) and target.id == "STRINGS" and isinstance(value, ast.Dict):
            return {
                key.value
                for key in value.keys
                if isinstance(key, ast.Constant) and isinstance(key.value, str)
            }

    return set()


def used_keys(package: Path) -> tuple[dict[str, list[str]], list[str]]:
    """Map of t() key -> locations, plus descriptions of dynamic calls."""
    parser = PythonParser()
    used: dict[str, list[str]] = {}
    dynamic: list[str] = []
    for path in sorted(package.rglob("*.py")):
        if path.name.startswith("strings_"):
            continue
        rel = path.relative_to(ROOT).as_posix()
        result = parser.parse_file(rel, path.read_text(encoding="utf-8"), "t", ROOT)
        for ref in result.references:
            used.setdefault(ref.key, []).append(f"{rel}:{ref.position.line}")
        for warning in result.dynamic_key_warnings:
            dynamic.append(
                f"{rel}:{warning.position.line} {warning.expression} ({warning.reason.value})"
            )
    return used, dynamic


def main() -> int:
    package = ROOT / "keysmith"
    en_path = package / "strings_en.py"

    if not en_path.exists():
        print("String file not found")
        return 1

    defined = extract_keys(en_path)
    used, dynamic = used_keys(package)
    globs = compile_key_globs(DYNAMIC_KEY_GLOBS)

    missing = sorted(set(used) - defined)
    unused = sorted(k for k in defined - set(used) if not matches_any_glob(k, globs))

    if missing:
        print(f"Keys missing from strings_en.py ({len(missing)}):")
        for key in missing:
            print(f"  - {key} ({', '.join(used[key])})")

    if unused:
        print(f"Unused keys in strings_en.py ({len(unused)}):")
        for key in unused:
            print(f"  - {key}")

    if dynamic:
        print(f"Dynamic t() calls ({len(dynamic)}):")
        for line in dynamic:
            print(f"  - {line}")

    if not missing:
        print(f"i18n OK: {len(used)} keys used, {len(defined)} defined")

    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
