"""Compile the Handlebars-style template vocabulary to Jinja2 source.

Templates are authored with ``{{path}}`` lookups, ``{{helper arg}}`` calls,
``{{#if}}``/``{{#unless}}``/``{{#each}}``/``{{#with}}`` blocks, partials and
comments.  :func:`compile_template` turns such a source into a Jinja2 template
string plus a table of constants (literals, lookup paths and helper names).
The Jinja2 side only ever sees generated expressions over a handful of
runtime functions; literal template text is escaped so that Dart, YAML or
JSON content is never interpreted by Jinja2.

Runtime names referenced by the generated source:

* ``_scopes`` -- tuple of context objects, innermost last
* ``_data``   -- mapping of ``@`` variables (``index``, ``key``, ``first``...)
* ``_k``      -- the constants table
* ``_lookup``, ``_value``, ``_call``, ``_partial``, ``_iterate``,
  ``_truthy``, ``_frame`` -- see :mod:`flutter_pwa_builder.templating.engine`
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from flutter_pwa_builder.errors import TemplateSyntaxError


# ---------------------------------------------------------------------------
# Expression AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathRef:
    """A resolved lookup path.

    ``depth`` counts ``../`` hops, ``root`` marks ``@root`` paths and
    ``data_var`` names an ``@`` variable such as ``index``.
    """

    parts: tuple[str, ...] = ()
    depth: int = 0
    root: bool = False
    data_var: Optional[str] = None

    @property
    def helper_candidate(self) -> Optional[str]:
        """Name to try as a zero-argument helper, for bare single identifiers."""
        if self.depth or self.root or self.data_var or len(self.parts) != 1:
            return None
        return self.parts[0]


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Lookup:
    ref: PathRef
    ambiguous: bool = False


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Expr", ...] = ()


Expr = Union[Literal, Lookup, Call]


@dataclass
class CompiledTemplate:
    """Output of :func:`compile_template`."""

    source: str
    constants: list[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Tokenising
# ---------------------------------------------------------------------------

_EXPR_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<lparen>\()
      | (?P<rparen>\))
      | "(?P<dq>(?:[^"\\]|\\.)*)"
      | '(?P<sq>(?:[^'\\]|\\.)*)'
      | (?P<number>-?\d+(?:\.\d+)?)(?=[\s()]|$)
      | (?P<word>[^\s()"']+)
    )
    """,
    re.VERBOSE,
)

_SEGMENT = re.compile(r"^[A-Za-z_$][\w$\-]*$|^\d+$|^\[[^\]]+\]$")

_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None, "undefined": None}

_BLOCK_NAMES = ("if", "unless", "each", "with")


@dataclass
class _Text:
    value: str
    strip_head: bool = False
    strip_tail: bool = False


@dataclass
class _Tag:
    kind: str  # "mustache", "open", "close", "else", "comment", "partial"
    body: str
    offset: int
    indent: str = ""
    standalone: bool = False


def _line_of(source: str, offset: int) -> int:
    return source.count("\n", 0, offset) + 1


def _split(source: str) -> list[Union[_Text, _Tag]]:
    """Split *source* into alternating text and tag tokens."""
    tokens: list[Union[_Text, _Tag]] = []
    pos = 0
    length = len(source)
    while pos < length:
        start = source.find("{{", pos)
        if start == -1:
            tokens.append(_Text(source[pos:]))
            break
        tokens.append(_Text(source[pos:start]))

        if source.startswith("{{{", start):
            end = source.find("}}}", start + 3)
            if end == -1:
                raise TemplateSyntaxError(
                    f"Unclosed '{{{{{{' at line {_line_of(source, start)}", source
                )
            tokens.append(_Tag("mustache", source[start + 3 : end], start))
            pos = end + 3
            continue

        inner_start = start + 2
        if source.startswith("~", inner_start):
            inner_start += 1
            _strip_right(tokens[-1])
        if source.startswith("!--", inner_start):
            end = source.find("--", inner_start + 3)
            while end != -1 and not re.match(r"--~?}}", source[end:]):
                end = source.find("--", end + 1)
            if end == -1:
                raise TemplateSyntaxError(
                    f"Unclosed comment at line {_line_of(source, start)}", source
                )
            close = source.find("}}", end)
            body = source[inner_start:end]
            trailing_tilde = source[close - 1] == "~"
            tokens.append(_Tag("comment", body, start))
            pos = close + 2
        else:
            end = source.find("}}", inner_start)
            if end == -1:
                raise TemplateSyntaxError(
                    f"Unclosed '{{{{' at line {_line_of(source, start)}", source
                )
            body = source[inner_start:end]
            trailing_tilde = body.endswith("~")
            if trailing_tilde:
                body = body[:-1]
            tokens.append(_classify(body, start, source))
            pos = end + 2

        if trailing_tilde:
            match = re.match(r"\s*", source[pos:])
            pos += match.end() if match else 0

    if not tokens or isinstance(tokens[-1], _Tag):
        tokens.append(_Text(""))
    return tokens


def _strip_right(token: Union[_Text, _Tag]) -> None:
    if isinstance(token, _Text):
        token.value = token.value.rstrip()


def _classify(body: str, offset: int, source: str) -> _Tag:
    stripped = body.strip()
    if not stripped:
        raise TemplateSyntaxError(f"Empty tag at line {_line_of(source, offset)}", source)
    head = stripped[0]
    if head == "!":
        return _Tag("comment", stripped[1:], offset)
    if head == "#":
        return _Tag("open", stripped[1:].strip(), offset)
    if head == "/":
        return _Tag("close", stripped[1:].strip(), offset)
    if head == ">":
        return _Tag("partial", stripped[1:].strip(), offset)
    if head == "^" and stripped == "^":
        return _Tag("else", "", offset)
    if stripped == "else" or stripped.startswith("else "):
        return _Tag("else", stripped[4:].strip(), offset)
    if head == "&":
        return _Tag("mustache", stripped[1:].strip(), offset)
    return _Tag("mustache", stripped, offset)


def _mark_standalone(tokens: list[Union[_Text, _Tag]]) -> None:
    """Flag block-level tags that sit alone on their line.

    Such a tag swallows its line: the leading indentation and the trailing
    newline are dropped from the surrounding text.
    """
    last = len(tokens) - 1
    for index, token in enumerate(tokens):
        if not isinstance(token, _Tag) or token.kind == "mustache":
            continue
        before = tokens[index - 1] if index > 0 else None
        after = tokens[index + 1] if index < last else None
        if not isinstance(before, _Text) or not isinstance(after, _Text):
            continue

        prev_line = before.value.rsplit("\n", 1)[-1]
        at_start = index == 1
        if prev_line.strip(" \t") or not ("\n" in before.value or at_start):
            continue

        next_line = after.value.split("\n", 1)[0]
        at_end = index + 1 == last
        if next_line.strip(" \t\r") or not ("\n" in after.value or at_end):
            continue

        token.standalone = True
        token.indent = prev_line
        before.strip_tail = True
        after.strip_head = True

    for token in tokens:
        if isinstance(token, _Text):
            if token.strip_head:
                newline = token.value.find("\n")
                token.value = "" if newline == -1 else token.value[newline + 1 :]
            if token.strip_tail:
                newline = token.value.rfind("\n")
                token.value = token.value[: newline + 1]


# ---------------------------------------------------------------------------
# Expression parsing
# ---------------------------------------------------------------------------


def _parse_path(word: str, source: str, offset: int) -> PathRef:
    data_var: Optional[str] = None
    root = False
    depth = 0
    text = word

    if text.startswith("@"):
        text = text[1:]
        if text == "root" or text.startswith("root.") or text.startswith("root/"):
            root = True
            text = text[5:]
        else:
            name, _, rest = text.partition(".")
            if rest:
                raise TemplateSyntaxError(
                    f"Unsupported data path '{word}' at line {_line_of(source, offset)}",
                    source,
                )
            return PathRef(data_var=name)

    while text.startswith("../"):
        depth += 1
        text = text[3:]
    if text == "..":
        return PathRef(depth=depth + 1)

    if text in ("this", ".", ""):
        return PathRef(depth=depth, root=root)
    for prefix in ("this.", "this/", "./"):
        if text.startswith(prefix):
            text = text[len(prefix) :]
            break

    parts = tuple(part for part in re.split(r"[./]", text))
    for part in parts:
        if not _SEGMENT.match(part):
            raise TemplateSyntaxError(
                f"Invalid path '{word}' at line {_line_of(source, offset)}", source
            )
    parts = tuple(p[1:-1] if p.startswith("[") else p for p in parts)
    return PathRef(parts=parts, depth=depth, root=root)


def _tokenize_expression(body: str, source: str, offset: int) -> list[tuple[str, Any]]:
    tokens: list[tuple[str, Any]] = []
    pos = 0
    text = body.strip()
    while pos < len(text):
        match = _EXPR_TOKEN.match(text, pos)
        if not match or match.end() == pos:
            raise TemplateSyntaxError(
                f"Cannot parse '{body.strip()}' at line {_line_of(source, offset)}", source
            )
        pos = match.end()
        kind = match.lastgroup
        if kind in ("dq", "sq"):
            tokens.append(("literal", re.sub(r"\\(.)", r"\1", match.group(kind))))
        elif kind == "number":
            raw = match.group(kind)
            tokens.append(("literal", float(raw) if "." in raw else int(raw)))
        elif kind == "word":
            word = match.group(kind)
            if word in _KEYWORDS:
                tokens.append(("literal", _KEYWORDS[word]))
            elif "=" in word:
                raise TemplateSyntaxError(
                    f"Hash arguments are not supported: '{word}' "
                    f"at line {_line_of(source, offset)}",
                    source,
                )
            else:
                tokens.append(("word", word))
        else:
            tokens.append((kind, None))
    return tokens


class _ExpressionParser:
    def __init__(self, tokens: list[tuple[str, Any]], source: str, offset: int) -> None:
        self.tokens = tokens
        self.pos = 0
        self.source = source
        self.offset = offset

    def error(self, message: str) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            f"{message} at line {_line_of(self.source, self.offset)}", self.source
        )

    def parse_statement(self) -> Expr:
        """Parse the body of a mustache or block opener."""
        if not self.tokens:
            raise self.error("Empty expression")
        kind, value = self.tokens[0]
        if kind == "word" and len(self.tokens) > 1:
            self.pos = 1
            args = self.parse_args()
            return Call(value, tuple(args))
        expr = self.parse_param()
        if self.pos != len(self.tokens):
            raise self.error("Unexpected tokens after expression")
        if isinstance(expr, Lookup) and expr.ref.helper_candidate:
            return Lookup(expr.ref, ambiguous=True)
        return expr

    def parse_args(self) -> list[Expr]:
        args: list[Expr] = []
        while self.pos < len(self.tokens) and self.tokens[self.pos][0] != "rparen":
            args.append(self.parse_param())
        return args

    def parse_param(self) -> Expr:
        if self.pos >= len(self.tokens):
            raise self.error("Missing argument")
        kind, value = self.tokens[self.pos]
        self.pos += 1
        if kind == "literal":
            return Literal(value)
        if kind == "word":
            return Lookup(_parse_path(value, self.source, self.offset))
        if kind == "lparen":
            if self.pos >= len(self.tokens) or self.tokens[self.pos][0] != "word":
                raise self.error("Sub-expression must start with a helper name")
            name = self.tokens[self.pos][1]
            self.pos += 1
            args = self.parse_args()
            if self.pos >= len(self.tokens):
                raise self.error("Unclosed sub-expression")
            self.pos += 1
            return Call(name, tuple(args))
        raise self.error("Unexpected ')'")


def parse_expression(body: str, source: str = "", offset: int = 0) -> Expr:
    """Parse a tag body such as ``snakeCase name`` into an expression tree."""
    tokens = _tokenize_expression(body, source or body, offset)
    return _ExpressionParser(tokens, source or body, offset).parse_statement()


def parse_argument(body: str, source: str = "", offset: int = 0) -> Expr:
    """Parse a single block argument; bare names are always paths here."""
    tokens = _tokenize_expression(body, source or body, offset)
    parser = _ExpressionParser(tokens, source or body, offset)
    expr = parser.parse_param()
    if parser.pos != len(tokens):
        raise parser.error("Block helpers take exactly one argument")
    return expr


# ---------------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------------


def _escape_text(text: str) -> str:
    """Escape literal text so Jinja2 never sees a delimiter in it."""
    if "{" not in text:
        return text
    out: list[str] = []
    for index, char in enumerate(text):
        following = text[index + 1 : index + 2]
        if char == "{" and following in ("", "{", "%", "#"):
            out.append('{{ "{" }}')
        else:
            out.append(char)
    return "".join(out)


@dataclass
class _Block:
    name: str
    kind: str
    offset: int
    has_else: bool = False


class _CodeGenerator:
    def __init__(self, source: str) -> None:
        self.source = source
        self.constants: list[Any] = []
        self.out: list[str] = []
        self.stack: list[_Block] = []

    def const(self, value: Any) -> str:
        self.constants.append(value)
        return f"_k[{len(self.constants) - 1}]"

    def expr(self, node: Expr) -> str:
        if isinstance(node, Literal):
            return self.const(node.value)
        if isinstance(node, Lookup):
            function = "_value" if node.ambiguous else "_lookup"
            return f"{function}(_scopes, _data, {self.const(node.ref)})"
        args = "".join(f", {self.expr(arg)}" for arg in node.args)
        return f"_call({self.const(node.name)}{args})"

    def error(self, message: str, offset: int) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            f"{message} at line {_line_of(self.source, offset)}", self.source
        )

    def parse(self, body: str, offset: int) -> Expr:
        return parse_expression(body, self.source, offset)

    # -- Tags --------------------------------------------------------------

    def emit_tag(self, tag: _Tag) -> None:
        if tag.kind == "comment":
            return
        if tag.kind == "mustache":
            self.out.append("{{ " + self.expr(self.parse(tag.body, tag.offset)) + " }}")
        elif tag.kind == "partial":
            self.emit_partial(tag)
        elif tag.kind == "open":
            self.emit_open(tag)
        elif tag.kind == "else":
            self.emit_else(tag)
        elif tag.kind == "close":
            self.emit_close(tag)

    def emit_partial(self, tag: _Tag) -> None:
        name, _, rest = tag.body.partition(" ")
        if not name:
            raise self.error("Partial name missing", tag.offset)
        if name.startswith(("'", '"')) and name.endswith(name[0]) and len(name) > 1:
            name = name[1:-1]
        scopes = "_scopes"
        if rest.strip():
            scopes = f"_scopes + ({self.expr(parse_argument(rest, self.source, tag.offset))},)"
        indent = self.const(tag.indent if tag.standalone else "")
        self.out.append(
            "{{ _partial(" + f"{self.const(name)}, {scopes}, _data, {indent}" + ") }}"
        )

    def emit_open(self, tag: _Tag) -> None:
        name, _, rest = tag.body.partition(" ")
        rest = rest.strip()
        if name in _BLOCK_NAMES:
            if not rest:
                raise self.error(f"'#{name}' requires an argument", tag.offset)
            value = self.expr(parse_argument(rest, self.source, tag.offset))
        else:
            value = self.expr(self.parse(tag.body, tag.offset))

        depth = len(self.stack)
        if name == "each":
            self.out.append(
                f"{{% for _key, _item in _iterate({value}) %}}"
                "{% with _scopes = _scopes + (_item,), _data = _frame(_data, _key, loop) %}"
            )
        elif name == "with":
            self.out.append(
                f"{{% with _w{depth} = {value} %}}{{% if _truthy(_w{depth}) %}}"
                f"{{% with _scopes = _scopes + (_w{depth},) %}}"
            )
        elif name == "unless":
            self.out.append(f"{{% if not _truthy({value}) %}}")
        else:
            self.out.append(f"{{% if _truthy({value}) %}}")
        self.stack.append(_Block(name, name if name in _BLOCK_NAMES else "helper", tag.offset))

    def emit_else(self, tag: _Tag) -> None:
        if not self.stack:
            raise self.error("'else' outside of a block", tag.offset)
        block = self.stack[-1]
        if block.has_else:
            raise self.error(f"Duplicate 'else' in '#{block.name}'", tag.offset)

        chained = tag.body
        if chained:
            keyword, _, rest = chained.partition(" ")
            if block.kind in ("each", "with") or keyword not in ("if", "unless") or not rest:
                raise self.error(f"Unsupported 'else {chained}'", tag.offset)
            value = self.expr(parse_argument(rest, self.source, tag.offset))
            negate = "not " if keyword == "unless" else ""
            self.out.append(f"{{% elif {negate}_truthy({value}) %}}")
            return

        block.has_else = True
        if block.kind in ("each", "with"):
            self.out.append("{% endwith %}{% else %}")
        else:
            self.out.append("{% else %}")

    def emit_close(self, tag: _Tag) -> None:
        if not self.stack:
            raise self.error(f"Unexpected '/{tag.body}'", tag.offset)
        block = self.stack.pop()
        if tag.body != block.name:
            raise self.error(
                f"'#{block.name}' opened at line {_line_of(self.source, block.offset)} "
                f"closed by '/{tag.body}'",
                tag.offset,
            )
        closing = "" if block.has_else or block.kind not in ("each", "with") else "{% endwith %}"
        if block.kind == "each":
            self.out.append(closing + "{% endfor %}")
        elif block.kind == "with":
            self.out.append(closing + "{% endif %}{% endwith %}")
        else:
            self.out.append("{% endif %}")


def compile_template(source: str) -> CompiledTemplate:
    """Translate Handlebars-style *source* to Jinja2 source and constants.

    Raises:
        TemplateSyntaxError: On malformed tags or unbalanced blocks.
    """
    tokens = _split(source)
    _mark_standalone(tokens)

    generator = _CodeGenerator(source)
    for token in tokens:
        if isinstance(token, _Text):
            generator.out.append(_escape_text(token.value))
        else:
            generator.emit_tag(token)

    if generator.stack:
        block = generator.stack[-1]
        raise TemplateSyntaxError(
            f"Unclosed '#{block.name}' opened at line {_line_of(source, block.offset)}",
            source,
        )
    return CompiledTemplate("".join(generator.out), generator.constants)
