"""Static check that only the plugins package touches the module loader and runtime internals."""

from __future__ import annotations

import ast
from pathlib import Path

INTERNAL_MODULES = (
    "deskhost.plugins.native",
    "deskhost.plugins.runtime",
)


class _ImportScanner(ast.NodeVisitor):
    def __init__(self, rel_path: str):
        self.rel_path = rel_path
        self.violations: list[str] = []

    def _flag(self, node: ast.AST, kind: str, name: str) -> None:
        self.violations.append(f"{self.rel_path}:{getattr(node, 'lineno', 0)} {kind}: {name}")

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.name.startswith(INTERNAL_MODULES):
                self._flag(node, "forbidden-import", alias.name)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = node.module or ""
        if node.level == 0 and module.startswith(INTERNAL_MODULES):
            self._flag(node, "forbidden-import-from", module)
        elif node.level > 0 and any(name.split(".", 1)[1] in module for name in INTERNAL_MODULES):
            self._flag(node, "forbidden-relative-import-from", module)


def collect_plugin_boundary_violations(package_root: Path) -> list[str]:
    """`<file>:<line> <kind>: <module>` rows for modules outside plugins/ importing internals."""
    root = package_root.resolve()
    violations: list[str] = []
    for source in sorted(root.rglob("*.py")):
        rel_path = source.resolve().relative_to(root).as_posix()
        if rel_path.startswith("plugins/"):
            continue
        try:
            tree = ast.parse(source.read_text(encoding="utf-8"), filename=str(source))
        except SyntaxError as exc:
            violations.append(f"{rel_path}:0 parse-error: {exc.msg}")
            continue
        scanner = _ImportScanner(rel_path)
        scanner.visit(tree)
        violations.extend(scanner.violations)
    return violations
