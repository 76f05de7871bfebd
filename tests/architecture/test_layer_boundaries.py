"""
Import-boundary enforcement.

1. Engine purity     -- coop_engines/** may not import DB, ORM, models,
                        services, HTTP clients or the config loader.
2. Normalizer purity -- coop_ingestion/mapping and coop_ingestion/domain may
                        not import DB, HTTP or file-parsing code.
3. Kernel direction  -- coop_kernel/** may not import coop_ingestion or
                        coop_engines.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(*roots: str) -> list[Path]:
    files: list[str] = []
    for root in roots:
        files.extend(glob.glob(str(ROOT / root / "**" / "*.py"), recursive=True))
    return [Path(f) for f in sorted(files)]


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    tree = ast.parse(filepath.read_text(encoding="utf-8"), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(roots: tuple[str, ...], forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(*roots):
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


def test_engines_are_pure():
    violations = _violations(
        ("coop_engines",),
        (
            "sqlalchemy",
            "psycopg",
            "sqlite3",
            "httpx",
            "openpyxl",
            "coop_kernel.db",
            "coop_kernel.models",
            "coop_kernel.services",
            "coop_kernel.selectors",
            "coop_config.loader",
            "coop_ingestion",
        ),
    )
    assert not violations, "coop_engines must stay I/O free:\n" + "\n".join(violations)


def test_normalizer_and_ingestion_types_are_pure():
    violations = _violations(
        ("coop_ingestion/mapping", "coop_ingestion/domain"),
        (
            "sqlalchemy",
            "httpx",
            "openpyxl",
            "csv",
            "coop_kernel.db",
            "coop_kernel.models",
            "coop_kernel.services",
            "coop_ingestion.erp",
            "coop_ingestion.adapters",
            "coop_ingestion.services",
        ),
    )
    assert not violations, "normalizer must stay I/O free:\n" + "\n".join(violations)


def test_kernel_does_not_depend_on_outer_layers():
    violations = _violations(("coop_kernel",), ("coop_ingestion", "coop_engines"))
    assert not violations, "coop_kernel must not import outer layers:\n" + "\n".join(violations)


def test_scan_finds_files():
    assert _python_files("coop_engines")
    assert _python_files("coop_ingestion/mapping")
