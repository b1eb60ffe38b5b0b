"""Find translation key usage in application source files.

The scanner works on lines of text with regular expressions instead of a
parser.  Per file it:

1. collects translation function declarations, either factory assignments
   (``const T = useTranslations('common')``) that carry a namespace or
   composable destructuring (``const { t, te: exists } = useI18n()``) that
   does not;
2. matches calls such as ``T('save')``, ``$t("a.b")``, ``i18n.t(`x.${y}`)``
   or ``T(key)``, where a bare variable is treated like the template literal
   ``${key}``;
3. matches key attributes (``keypath="a.b"``, ``:keypath="'a.b'"``,
   ``:keypath="expr"``) and page metadata fields (``title: 'a.b'``).

A call counts when its base identifier is a global translation function or is
declared anywhere in the file.  It takes the namespace of the nearest
declaration at or before the call's line, or no namespace for library method
names such as ``t``; block scoping is not modelled.  Template literals are
resolved against simple ``const name = 'value'`` assignments of the same file
and are flagged dynamic when an interpolation remains.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from i18n_keyguard.utils import display_path, logger

DEFAULT_TRANSLATION_FACTORIES: tuple[str, ...] = ("useTranslations", "getTranslations")

I18N_LIBRARIES: dict[str, dict[str, tuple[str, ...]]] = {
    "vue-i18n": {
        # composables returning translation methods, no namespace support
        "composables": ("useI18n",),
        "methods": ("t", "te", "tm", "rt"),
        "global_methods": ("$t", "$te", "$tm", "$rt"),
        "key_attributes": ("keypath",),
        "page_meta_fields": ("title",),
    },
}

SOURCE_SUFFIXES = frozenset({".ts", ".tsx", ".js", ".jsx", ".vue"})
IGNORED_DIRS = frozenset({"node_modules", ".nuxt", "dist"})
DECLARATION_SUFFIX = ".d.ts"

PAGE_META_PREFIX = "definePageMeta."

ERR_UNKNOWN_LIBRARY = "Unknown i18n library {name!r}; expected one of: {choices}"

_IDENT = r"[a-zA-Z_$][a-zA-Z0-9_$]*"
_IDENT_RE = re.compile(_IDENT)
_PLACEHOLDER_RE = re.compile(r"\$\{(" + _IDENT + r")\}")
_ARG_LITERAL_RE = re.compile(r"['\"`]([^'\"`]+)['\"`]")
# any quoted value, used to resolve factory namespace arguments
_NAMESPACE_VAR_RE = re.compile(r"const\s+(" + _IDENT + r")\s*=\s*['\"`]([^'\"`]+)['\"`]")
# identifier-like values only, used to resolve ${name} inside keys
_KEY_VAR_RE = re.compile(r"const\s+(" + _IDENT + r")\s*=\s*['\"`]([a-zA-Z][a-zA-Z0-9_.]*?)['\"`]")
_KEY_VAR_VALUE_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*")
_QUOTED_EXPR_RE = re.compile(r"(['\"`])(.*)\1")
_DYNAMIC_PREFIX_RE = re.compile(r"(?::|v-bind:)\s*$")

_CALL_RE = re.compile(
    r"(?<![a-zA-Z0-9_])(\$?[a-zA-Z_$][a-zA-Z0-9_$.]*)\s*\(\s*(?:"
    r"`((?:[^`\\]|\\.)*)`"  # template literal, may contain quotes
    r"|(['\"])([^'\"]+?)\3"  # single or double quoted string
    r"|([a-zA-Z_$][a-zA-Z0-9_$.]*)"  # variable reference
    r")\s*(?:,|\))"
)


@dataclass(frozen=True)
class ScannerConfig:
    """Names the scanner treats as translation functions and attributes."""

    translation_factories: tuple[str, ...] = DEFAULT_TRANSLATION_FACTORIES
    composables: tuple[str, ...] = ()
    methods: tuple[str, ...] = ()
    global_methods: tuple[str, ...] = ()
    key_attributes: tuple[str, ...] = ()
    page_meta_fields: tuple[str, ...] = ()

    @classmethod
    def for_library(
        cls,
        name: str = "vue-i18n",
        translation_factories: tuple[str, ...] | list[str] | None = None,
    ) -> ScannerConfig:
        """Build a configuration from the ``I18N_LIBRARIES`` preset ``name``."""
        preset = I18N_LIBRARIES.get(name)
        if preset is None:
            choices = ", ".join(sorted(I18N_LIBRARIES))
            raise ValueError(ERR_UNKNOWN_LIBRARY.format(name=name, choices=choices))
        factories = (
            DEFAULT_TRANSLATION_FACTORIES
            if translation_factories is None
            else tuple(translation_factories)
        )
        return cls(translation_factories=factories, **preset)


@dataclass
class VariableDeclaration:
    """A local binding that translates keys under ``namespace``."""

    name: str
    namespace: str
    line: int


@dataclass
class KeyUsage:
    """One occurrence of a translation key in a source file."""

    file: str
    line: int
    column: int
    key: str
    full_key: str
    namespace: str
    function_name: str
    quote: str
    is_dynamic: bool


@dataclass
class _KeyMatch:
    key: str
    quote: str
    function_name: str
    column: int
    kind: str = "call"


@dataclass(frozen=True)
class _Patterns:
    factory: re.Pattern[str] | None
    destructuring: re.Pattern[str] | None
    attributes: tuple[tuple[str, re.Pattern[str], re.Pattern[str]], ...]
    page_meta: tuple[tuple[str, re.Pattern[str]], ...]


def _alternation(names: tuple[str, ...]) -> str:
    return "|".join(re.escape(name) for name in names)


@lru_cache(maxsize=32)
def _compile(config: ScannerConfig) -> _Patterns:
    factory = None
    if config.translation_factories:
        factory = re.compile(
            r"const\s+(" + _IDENT + r")\s*=\s*(?:await\s+)?"
            r"(" + _alternation(config.translation_factories) + r")\s*\("
            r"((?:[^)'\"`]|'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|`(?:[^`\\]|\\.)*`)*)\)"
        )
    destructuring = None
    if config.composables:
        destructuring = re.compile(
            r"\{\s*([a-zA-Z_$][a-zA-Z0-9_$,:\s]*)\}\s*=\s*"
            r"(" + _alternation(config.composables) + r")\s*\(\s*\)"
        )
    attributes = tuple(
        (
            name,
            re.compile(r"\b" + re.escape(name) + r"\s*=\s*(['\"])([^'\"]+?)\1"),
            re.compile(r"(?::+|v-bind:)" + re.escape(name) + r"\s*=\s*(['\"])(.*?)\1"),
        )
        for name in config.key_attributes
    )
    page_meta = tuple(
        (name, re.compile(r"\b" + re.escape(name) + r"\s*:\s*(['\"`])([^'\"`]+?)\1"))
        for name in config.page_meta_fields
    )
    return _Patterns(factory, destructuring, attributes, page_meta)


def extract_string_variables(text: str) -> dict[str, str]:
    """Return ``const name = 'value'`` bindings usable inside keys.

    Only values that look like keys are kept: identifiers or dotted paths.
    """
    variables: dict[str, str] = {}
    for match in _KEY_VAR_RE.finditer(text):
        name, value = match.group(1), match.group(2)
        if "." in value or _KEY_VAR_VALUE_RE.fullmatch(value):
            variables[name] = value
    return variables


def replace_variables(key: str, variables: Mapping[str, str]) -> str:
    """Substitute known ``${name}`` placeholders in ``key``; keep the rest."""
    return _PLACEHOLDER_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), key)


def extract_namespace_from_args(args: str, variables: Mapping[str, str]) -> str:
    """Guess the namespace passed to a translation factory.

    A quoted literal wins, preferring one that contains a dot; otherwise the
    last bare identifier is looked up in ``variables``.
    """
    if not args.strip():
        return ""
    literals = _ARG_LITERAL_RE.findall(args)
    if literals:
        return next((value for value in literals if "." in value), literals[-1])
    identifiers = [
        part.strip() for part in args.split(",") if _IDENT_RE.fullmatch(part.strip())
    ]
    if identifiers:
        return variables.get(identifiers[-1], "")
    return ""


def extract_declarations(text: str, config: ScannerConfig) -> list[VariableDeclaration]:
    """Return factory and composable declarations of ``text`` with 1-based lines."""
    patterns = _compile(config)
    namespace_vars = {m.group(1): m.group(2) for m in _NAMESPACE_VAR_RE.finditer(text)}
    declarations: list[VariableDeclaration] = []
    for index, line in enumerate(text.split("\n"), start=1):
        if patterns.factory is not None:
            for match in patterns.factory.finditer(line):
                namespace = extract_namespace_from_args(match.group(3), namespace_vars)
                declarations.append(VariableDeclaration(match.group(1), namespace, index))
        if patterns.destructuring is not None:
            for match in patterns.destructuring.finditer(line):
                for part in match.group(1).split(","):
                    # { t: myT } binds myT
                    name = part.split(":")[-1].strip()
                    if name:
                        declarations.append(VariableDeclaration(name, "", index))
    return declarations


def find_nearest_declaration(
    line: int, name: str, declarations: list[VariableDeclaration]
) -> VariableDeclaration | None:
    """Return the last declaration of ``name`` at or before ``line``."""
    nearest: VariableDeclaration | None = None
    for decl in declarations:
        if decl.name != name or decl.line > line:
            continue
        if nearest is None or decl.line >= nearest.line:
            nearest = decl
    return nearest


def _call_matches(
    line: str,
    declarations: list[VariableDeclaration],
    config: ScannerConfig,
) -> list[_KeyMatch]:
    matches: list[_KeyMatch] = []
    for match in _CALL_RE.finditer(line):
        function_name = match.group(1)
        template, quote, quoted, variable = match.group(2, 3, 4, 5)
        if template is not None:
            key, key_quote = template, "`"
        elif quoted is not None:
            key, key_quote = quoted, quote
        elif variable:
            key, key_quote = "${" + variable + "}", "`"
        else:  # pragma: no cover - the pattern always captures one form
            continue

        parts = function_name.split(".")
        base = parts[0]
        # template markup may precede the script block declaring the function
        if base not in config.global_methods and not any(
            decl.name == base for decl in declarations
        ):
            continue
        if len(parts) > 1 and parts[-1] not in config.methods:
            continue
        matches.append(_KeyMatch(key, key_quote, function_name, match.start() + 1))
    return matches


def _attribute_matches(line: str, config: ScannerConfig) -> list[_KeyMatch]:
    matches: list[_KeyMatch] = []
    for name, static_re, dynamic_re in _compile(config).attributes:
        for match in static_re.finditer(line):
            before = line[max(0, match.start() - 10) : match.start()]
            if _DYNAMIC_PREFIX_RE.search(before):
                # right-hand side of :keypath, handled below
                continue
            matches.append(
                _KeyMatch(match.group(2), match.group(1), name, match.start() + 1, "attribute")
            )
        for match in dynamic_re.finditer(line):
            expression = match.group(2)
            quoted = _QUOTED_EXPR_RE.fullmatch(expression)
            if quoted:
                key, quote = quoted.group(2), quoted.group(1)
            else:
                key, quote = "${" + expression + "}", "`"
            matches.append(_KeyMatch(key, quote, f":{name}", match.start() + 1, "attribute"))
    return matches


def _page_meta_matches(line: str, config: ScannerConfig) -> list[_KeyMatch]:
    matches: list[_KeyMatch] = []
    for name, pattern in _compile(config).page_meta:
        for match in pattern.finditer(line):
            key = match.group(2)
            # plain strings like layout names are not keys
            if "." in key:
                matches.append(
                    _KeyMatch(
                        key,
                        match.group(1),
                        PAGE_META_PREFIX + name,
                        match.start() + 1,
                        "page_meta",
                    )
                )
    return matches


def _resolve_namespace(
    match: _KeyMatch,
    line_no: int,
    declarations: list[VariableDeclaration],
    config: ScannerConfig,
) -> str | None:
    """Return the namespace for ``match`` or ``None`` if it is not a translation."""
    if match.kind != "call":
        return ""
    parts = match.function_name.split(".")
    base, method = parts[0], parts[-1]
    declaration = find_nearest_declaration(line_no, base, declarations)
    if declaration is not None:
        return declaration.namespace
    if base in config.global_methods or method in config.methods:
        return ""
    return None


def scan_text(
    text: str,
    file: str,
    config: ScannerConfig,
    usage: dict[str, list[KeyUsage]] | None = None,
) -> dict[str, list[KeyUsage]]:
    """Collect key usage of one source text into ``usage`` keyed by full key."""
    if usage is None:
        usage = {}
    declarations = extract_declarations(text, config)
    variables = extract_string_variables(text)
    for line_no, line in enumerate(text.split("\n"), start=1):
        found = [
            *_call_matches(line, declarations, config),
            *_attribute_matches(line, config),
            *_page_meta_matches(line, config),
        ]
        for match in found:
            namespace = _resolve_namespace(match, line_no, declarations, config)
            if namespace is None:
                continue
            key = match.key
            if match.quote == "`" and "${" in key:
                key = replace_variables(key, variables)
            is_dynamic = match.quote == "`" and "${" in key
            full_key = f"{namespace}.{key}" if namespace else key
            usage.setdefault(full_key, []).append(
                KeyUsage(
                    file=file,
                    line=line_no,
                    column=match.column,
                    key=key,
                    full_key=full_key,
                    namespace=namespace,
                    function_name=match.function_name,
                    quote=match.quote,
                    is_dynamic=is_dynamic,
                )
            )
    return usage


def iter_source_files(src_dir: str | Path) -> Iterator[Path]:
    """Yield scannable source files below ``src_dir`` in sorted order."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in Path(src_dir).walk():
        dirnames[:] = [name for name in dirnames if name not in IGNORED_DIRS]
        found.extend(
            dirpath / name
            for name in filenames
            if Path(name).suffix in SOURCE_SUFFIXES and not name.endswith(DECLARATION_SUFFIX)
        )
    yield from sorted(found)


def find_i18n_usage(src_dir: str | Path, config: ScannerConfig) -> dict[str, list[KeyUsage]]:
    """Scan every source file under ``src_dir`` and return usage by full key.

    Raises:
        UnicodeDecodeError: If a source file is not valid UTF-8.
    """
    usage: dict[str, list[KeyUsage]] = {}
    count = 0
    for path in iter_source_files(src_dir):
        text = path.read_text(encoding="utf-8")
        scan_text(text, display_path(path), config, usage)
        count += 1
    logger.debug("Scanned %d source files in %s", count, src_dir)
    return usage


def merge_usage(
    target: dict[str, list[KeyUsage]], source: Mapping[str, list[KeyUsage]]
) -> dict[str, list[KeyUsage]]:
    """Append the entries of ``source`` to ``target`` per full key."""
    for full_key, entries in source.items():
        target.setdefault(full_key, []).extend(entries)
    return target


def find_usage_in_dirs(
    src_dirs: list[Path] | list[str], config: ScannerConfig
) -> dict[str, list[KeyUsage]]:
    """Scan several source roots and merge their usage."""
    usage: dict[str, list[KeyUsage]] = {}
    for src_dir in src_dirs:
        merge_usage(usage, find_i18n_usage(src_dir, config))
    return usage


__all__ = [
    "DEFAULT_TRANSLATION_FACTORIES",
    "I18N_LIBRARIES",
    "KeyUsage",
    "ScannerConfig",
    "VariableDeclaration",
    "extract_declarations",
    "extract_namespace_from_args",
    "extract_string_variables",
    "find_i18n_usage",
    "find_nearest_declaration",
    "find_usage_in_dirs",
    "iter_source_files",
    "merge_usage",
    "replace_variables",
    "scan_text",
]
