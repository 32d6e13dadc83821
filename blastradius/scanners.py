"""Lightweight lexical scanners that turn file content into a FileInsight.

Scanning is deliberately shallow: regular expressions (and, for Python,
the stdlib ``ast`` module restricted to imports and top-level names) pick
out imports, exports, outbound HTTP calls, events and store actions.  No
symbol binding is attempted.

Each scanner handles a fixed set of extensions; :func:`scanner_for` picks
the one registered for a path.
"""

from __future__ import annotations

import ast
import logging
import re
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .models import FileInsight

logger = logging.getLogger(__name__)

_HTTP_VERBS = ("get", "post", "put", "delete", "patch")


# ===================================================================
# Abstract Scanner Interface
# ===================================================================

class Scanner(ABC):
    """Extract a :class:`FileInsight` from the text of one file."""

    extensions: FrozenSet[str] = frozenset()

    def handles(self, path: str) -> bool:
        return PurePosixPath(path).suffix.lower() in self.extensions

    def scan(self, path: str, content: str) -> FileInsight:
        insight = FileInsight()
        self.scan_into(path, content, insight)
        return insight

    @abstractmethod
    def scan_into(self, path: str, content: str, insight: FileInsight) -> None:
        """Add everything found in *content* to *insight*."""
        ...


# ===================================================================
# JavaScript / TypeScript
# ===================================================================

_ES_IMPORT_RE = re.compile(r"""import\s+(?!type\b)([\w$*{}\s,]+?)\s+from\s+['"]([^'"]+)['"]""")
_SIDE_EFFECT_IMPORT_RE = re.compile(r"""^\s*import\s+['"]([^'"]+)['"]""", re.MULTILINE)
_REQUIRE_RE = re.compile(
    r"""(?:const|let|var)\s+([\w$]+|\{[^}]+\})\s*=\s*require\(\s*['"]([^'"]+)['"]\s*\)"""
)
_API_CALL_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"""(?:fetch|axios|http)\s*\(\s*['"`]([^'"`]+)['"`]""", re.IGNORECASE),
    re.compile(r"""\$(?:get|post|put|delete|patch)\s*\(\s*['"`]([^'"`]+)['"`]""", re.IGNORECASE),
    re.compile(r"""(?:axios|http|\$http)\s*\.\s*(?:get|post|put|delete|patch)\s*\(\s*['"`]([^'"`]+)['"`]""", re.IGNORECASE),
    re.compile(r"""api\s*\.\s*\w+\s*\(\s*['"`]?([^'"`\s,)]+)""", re.IGNORECASE),
)
_EMIT_RE = re.compile(r"""(?:\$emit|\bemit)\s*\(\s*['"]([^'"]+)['"]""")
_STORE_RE = re.compile(r"""\b(?:dispatch|commit)\s*\(\s*['"]([^'"]+)['"]""")
_EXPORT_DECL_RE = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?(?:const|let|var|function\*?|class|interface|type|enum)\s+([\w$]+)"
)
_EXPORT_LIST_RE = re.compile(r"export\s*\{([^}]+)\}")

_SCRIPT_ARCHETYPES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(?:defineStore|createStore|createSlice)\s*\("), "State Store"),
    (re.compile(r"\b(?:createRouter|express\.Router|Router)\s*\("), "Router"),
    (re.compile(r"\b(?:app|router)\.(?:get|post|put|delete|patch)\s*\("), "API Route"),
    (re.compile(r"\b(?:describe|it|test)\s*\(\s*['\"`]"), "Test Suite"),
    (re.compile(r"return\s*\(\s*<|React\.|from\s+['\"]react['\"]"), "UI Component"),
)


def _clause_names(clause: str) -> List[str]:
    """Split an import clause like ``X, { a as b, c }`` into imported names."""
    names: List[str] = []
    for raw in clause.replace("{", ",").replace("}", ",").split(","):
        part = raw.strip()
        if not part:
            continue
        if part.startswith("* as "):
            names.append(part[5:].strip())
        elif " as " in part:
            names.append(part.split(" as ", 1)[0].strip())
        else:
            names.append(part)
    return names


class ScriptScanner(Scanner):
    """ES modules, CommonJS and TypeScript sources."""

    extensions = frozenset({".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"})

    def scan_into(self, path: str, content: str, insight: FileInsight) -> None:
        for clause, source in _ES_IMPORT_RE.findall(content):
            for name in _clause_names(clause):
                insight.add_import(name, "import", source)
        for source in _SIDE_EFFECT_IMPORT_RE.findall(content):
            insight.add_import(source, "import", source)
        for clause, source in _REQUIRE_RE.findall(content):
            for name in _clause_names(clause):
                insight.add_import(name, "import", source)

        for pattern in _API_CALL_PATTERNS:
            for target in pattern.findall(content):
                if target:
                    insight.add_api_call(target)

        for name in _EMIT_RE.findall(content):
            insight.add_event("emit", name)
        for name in _STORE_RE.findall(content):
            insight.add_store_action(name)

        for name in _EXPORT_DECL_RE.findall(content):
            insight.add_export(name)
        for clause in _EXPORT_LIST_RE.findall(content):
            for name in _clause_names(clause):
                insight.add_export(name)

        if insight.component_type is None:
            for pattern, label in _SCRIPT_ARCHETYPES:
                if pattern.search(content):
                    insight.component_type = label
                    break


# ===================================================================
# Single-file components (Vue / Svelte)
# ===================================================================

_SCRIPT_BLOCK_RE = re.compile(r"<script[^>]*>([\s\S]*?)</script>", re.IGNORECASE)
_STYLE_BLOCK_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TEMPLATE_BLOCK_RE = re.compile(r"<template[^>]*>([\s\S]*)</template>", re.IGNORECASE)
_CHILD_COMPONENT_RE = re.compile(r"<([A-Z][a-zA-Z0-9]+)")
_LISTENER_RE = re.compile(r"(?:@|v-on:|\bon:)(\w+)(?:[.|][\w.|]+)?=")
_TWO_WAY_RE = re.compile(r'(?:v-model|bind:\w+)(?::[\w-]+)?(?:\.\w+)*="[^"]+"')

_FUNCTIONALITY_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("modal", "dialog"), "Modal/Dialog component"),
    (("form", "input", "v-model"), "Form handling"),
    (("fetch", "axios", "api"), "API integration"),
    (("router", "$route"), "Navigation/Routing"),
    (("store", "vuex", "pinia"), "State management"),
    (("emit",), "Event emission"),
    (("props",), "Receives props from parent"),
    (("slot",), "Uses slots for content injection"),
    (("error", "catch"), "Error handling"),
    (("loading", "spinner"), "Loading states"),
    (("validation", "validate"), "Form validation"),
)


class ComponentFileScanner(Scanner):
    """Single-file UI components: script block plus template markup."""

    extensions = frozenset({".vue", ".svelte"})

    def __init__(self, script_scanner: Optional[ScriptScanner] = None) -> None:
        self.script_scanner = script_scanner or ScriptScanner()

    def scan_into(self, path: str, content: str, insight: FileInsight) -> None:
        for block in _SCRIPT_BLOCK_RE.findall(content):
            self.script_scanner.scan_into(path, block, insight)
        insight.component_type = "UI Component"

        template = self._template(content)
        if template:
            known = set(insight.imported_names())
            for name in _CHILD_COMPONENT_RE.findall(template):
                if name not in known:
                    insight.add_import(name, "component")
                    known.add(name)
            for name in _LISTENER_RE.findall(template):
                insight.add_event("listener", name)
            for binding in _TWO_WAY_RE.findall(template):
                insight.add_functionality(f"Two-way binding: {binding}")

        lower = content.lower()
        for keywords, tag in _FUNCTIONALITY_KEYWORDS:
            if any(k in lower for k in keywords):
                insight.add_functionality(tag)

    @staticmethod
    def _template(content: str) -> str:
        match = _TEMPLATE_BLOCK_RE.search(content)
        if match:
            return match.group(1)
        # Svelte keeps markup at the top level.
        return _STYLE_BLOCK_RE.sub("", _SCRIPT_BLOCK_RE.sub("", content))


# ===================================================================
# Class-oriented sources (C# / Java)
# ===================================================================

_CS_USING_RE = re.compile(r"^\s*(?:global\s+)?using\s+(?:static\s+)?([\w.]+)\s*;", re.MULTILINE)
_CS_CLASS_RE = re.compile(r"\bclass\s+(\w+)(?:<[^>]*>)?\s*(?::\s*([^{]+))?")
_CS_ROUTE_RE = re.compile(r"""\[Http(Get|Post|Put|Delete|Patch)\s*(?:\(\s*"([^"]*)"[^)]*\))?\]""")

_JAVA_IMPORT_RE = re.compile(r"^\s*import\s+(?:static\s+)?([\w.*]+)\s*;", re.MULTILINE)
_JAVA_CLASS_RE = re.compile(
    r"\bclass\s+(\w+)(?:<[^>]*>)?\s*(?:extends\s+([\w.<>]+))?\s*(?:implements\s+([^{]+))?"
)
_JAVA_ROUTE_RE = re.compile(
    r"""@(Get|Post|Put|Delete|Patch)Mapping\s*(?:\(\s*(?:(?:value|path)\s*=\s*)?"([^"]*)"[^)]*\))?"""
)

_CLASS_ARCHETYPES: Tuple[Tuple[str, str], ...] = (
    ("controller", "API Controller"),
    ("service", "Service"),
    ("repository", "Repository"),
    ("handler", "Handler"),
)


def _split_type_list(text: str) -> List[str]:
    text = re.split(r"\bwhere\b", text, maxsplit=1)[0]
    names: List[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            names.append(current.strip())
            current = ""
        else:
            current += ch
    names.append(current.strip())
    return [n for n in names if n]


class ClassFileScanner(Scanner):
    """C# and Java: declared imports, class hierarchy and HTTP routes."""

    extensions = frozenset({".cs", ".java"})

    def scan_into(self, path: str, content: str, insight: FileInsight) -> None:
        if PurePosixPath(path).suffix.lower() == ".java":
            self._scan_java(content, insight)
        else:
            self._scan_csharp(content, insight)

        lower = content.lower()
        for keyword, label in _CLASS_ARCHETYPES:
            if keyword in lower:
                insight.component_type = label
                break

    @staticmethod
    def _scan_csharp(content: str, insight: FileInsight) -> None:
        for name in _CS_USING_RE.findall(content):
            insight.add_import(name, "using")

        match = _CS_CLASS_RE.search(content)
        if match:
            insight.add_export(match.group(1))
            if match.group(2):
                for base in _split_type_list(match.group(2)):
                    insight.add_import(base, "inherits")

        for verb, route in _CS_ROUTE_RE.findall(content):
            insight.add_api_call(f"{verb.upper()} {route or '/'}")

    @staticmethod
    def _scan_java(content: str, insight: FileInsight) -> None:
        for name in _JAVA_IMPORT_RE.findall(content):
            insight.add_import(name, "import")

        match = _JAVA_CLASS_RE.search(content)
        if match:
            insight.add_export(match.group(1))
            if match.group(2):
                insight.add_import(match.group(2).strip(), "inherits")
            if match.group(3):
                for iface in _split_type_list(match.group(3)):
                    insight.add_import(iface, "inherits")

        for verb, route in _JAVA_ROUTE_RE.findall(content):
            insight.add_api_call(f"{verb.upper()} {route or '/'}")


# ===================================================================
# Python
# ===================================================================

_PY_IMPORT_FALLBACK_RE = re.compile(
    r"^\s*(?:from\s+(\.*[\w.]*)\s+import[ \t]+([\w \t,*()]+)|import\s+([\w.]+))", re.MULTILINE
)
_PY_HTTP_CLIENTS = {"requests", "httpx", "session", "client", "aiohttp"}


def _relative_source(level: int, module: Optional[str]) -> str:
    prefix = "./" if level == 1 else "../" * (level - 1)
    tail = (module or "").replace(".", "/")
    return f"{prefix}{tail}".rstrip("/") or "."


class PythonScanner(Scanner):
    """Python modules via ``ast``: imports, public names, requests and routes."""

    extensions = frozenset({".py"})

    def scan_into(self, path: str, content: str, insight: FileInsight) -> None:
        try:
            tree = ast.parse(content)
        except SyntaxError as exc:
            logger.debug("SyntaxError in %s (%s), using regex imports", path, exc)
            self._scan_imports_regex(content, insight)
            return

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    insight.add_import(alias.name, "import", alias.name)
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    base = _relative_source(node.level, node.module)
                else:
                    base = node.module or ""
                for alias in node.names:
                    source = base
                    if node.module is None and node.level:
                        source = _relative_source(node.level, alias.name)
                    insight.add_import(alias.name, "import", source or None)
            elif isinstance(node, ast.Call):
                target = self._http_call_target(node)
                if target:
                    insight.add_api_call(target)

        for stmt in tree.body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                if not stmt.name.startswith("_"):
                    insight.add_export(stmt.name)
                for route in self._routes(stmt):
                    insight.add_api_call(route)
                if isinstance(stmt, ast.ClassDef):
                    for member in stmt.body:
                        if isinstance(member, (ast.FunctionDef, ast.AsyncFunctionDef)):
                            for route in self._routes(member):
                                insight.add_api_call(route)

        if self._has_routes(tree):
            insight.component_type = "API Controller"
        else:
            lower = content.lower()
            for keyword, label in _CLASS_ARCHETYPES:
                if keyword in lower:
                    insight.component_type = label
                    break

    @staticmethod
    def _http_call_target(call: ast.Call) -> Optional[str]:
        func = call.func
        if not isinstance(func, ast.Attribute) or func.attr not in _HTTP_VERBS:
            return None
        owner = func.value
        if not (isinstance(owner, ast.Name) and owner.id.lower() in _PY_HTTP_CLIENTS):
            return None
        if call.args and isinstance(call.args[0], ast.Constant) and isinstance(call.args[0].value, str):
            return call.args[0].value
        return None

    @staticmethod
    def _routes(func: ast.AST) -> List[str]:
        routes: List[str] = []
        for deco in getattr(func, "decorator_list", []):
            if not (isinstance(deco, ast.Call) and isinstance(deco.func, ast.Attribute)):
                continue
            if not (deco.args and isinstance(deco.args[0], ast.Constant)
                    and isinstance(deco.args[0].value, str)):
                continue
            route = deco.args[0].value
            attr = deco.func.attr
            if attr in _HTTP_VERBS:
                routes.append(f"{attr.upper()} {route}")
            elif attr == "route":
                methods = ["GET"]
                for kw in deco.keywords:
                    if kw.arg == "methods" and isinstance(kw.value, (ast.List, ast.Tuple)):
                        methods = [
                            elt.value.upper() for elt in kw.value.elts
                            if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
                        ] or methods
                routes.extend(f"{m} {route}" for m in methods)
        return routes

    def _has_routes(self, tree: ast.Module) -> bool:
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and self._routes(node):
                return True
        return False

    @staticmethod
    def _scan_imports_regex(content: str, insight: FileInsight) -> None:
        for from_mod, names, plain in _PY_IMPORT_FALLBACK_RE.findall(content):
            if plain:
                insight.add_import(plain, "import", plain)
                continue
            level = len(from_mod) - len(from_mod.lstrip("."))
            module = from_mod.lstrip(".")
            source = _relative_source(level, module) if level else module
            for name in names.replace("(", " ").replace(")", " ").split(","):
                name = name.strip().split(" as ")[0].strip()
                if not name:
                    continue
                if level and not module:
                    insight.add_import(name, "import", _relative_source(level, name))
                else:
                    insight.add_import(name, "import", source or None)


# ===================================================================
# Registry
# ===================================================================

DEFAULT_SCANNERS: Sequence[Scanner] = (
    ComponentFileScanner(),
    ScriptScanner(),
    ClassFileScanner(),
    PythonScanner(),
)

_BY_EXTENSION: Dict[str, Scanner] = {
    ext: scanner for scanner in DEFAULT_SCANNERS for ext in scanner.extensions
}


def scanner_for(path: str, scanners: Optional[Sequence[Scanner]] = None) -> Optional[Scanner]:
    """Return the scanner registered for *path*'s extension, if any."""
    if scanners is None:
        return _BY_EXTENSION.get(PurePosixPath(path).suffix.lower())
    for scanner in scanners:
        if scanner.handles(path):
            return scanner
    return None
