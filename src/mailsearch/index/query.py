"""Query language for the mail index.

A query is a sequence of terms combined with ``and``, ``or`` and ``not``
(case-insensitive) and grouped with parentheses. Terms are either
``prefix:value`` pairs, free-text words, or the universal ``*``. Values
containing spaces, parentheses, quotes or non-ASCII characters are
double-quoted, with an embedded quote written as ``""``.

Juxtaposed terms are and-ed together, except that consecutive terms with
the same exclusive prefix (``id:``, ``thread:``) are or-ed, since a
message has exactly one id and one thread. This makes
``id:a@x id:b@y`` select both messages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import PurePath

from mailsearch.exceptions import QuerySyntaxError
from mailsearch.models import MessageRecord

BOOLEAN_PREFIXES = frozenset({"id", "thread", "tag", "path"})
PROBABILISTIC_PREFIXES = frozenset({"from", "to", "subject"})
EXCLUSIVE_PREFIXES = frozenset({"id", "thread"})

MATCH_ALL = "*"

_PREFIX_RE = re.compile(r"([A-Za-z]+):")
_OPERATORS = {"and", "or", "not"}


def make_boolean_term(prefix: str, value: str) -> str:
    """Return ``prefix:value``, quoting the value when the parser needs it to."""
    if value == "" or any(
        ch.isspace() or ch in '()"' or ord(ch) > 127 for ch in value
    ):
        return '%s:"%s"' % (prefix, value.replace('"', '""'))
    return f"{prefix}:{value}"


def parse_boolean_term(text: str) -> tuple[str, str]:
    """Inverse of :func:`make_boolean_term`."""
    tokens = _tokenize(text)
    if len(tokens) != 1 or tokens[0].kind != "term" or tokens[0].prefix is None:
        raise QuerySyntaxError(f"Not a single boolean term: {text!r}")
    return tokens[0].prefix, tokens[0].value


# --- AST ---


@dataclass(frozen=True)
class MatchAll:
    def matches(self, record: MessageRecord) -> bool:
        return True

    def mentioned_tags(self) -> frozenset[str]:
        return frozenset()


@dataclass(frozen=True)
class Term:
    """A single ``prefix:value`` or free-text term (``prefix`` is None)."""

    prefix: str | None
    value: str

    def matches(self, record: MessageRecord) -> bool:
        if self.prefix == "id":
            return record.message_id == self.value
        if self.prefix == "thread":
            return record.thread_id == self.value
        if self.prefix == "tag":
            return self.value in record.tags
        if self.prefix == "path":
            return any(_path_matches(self.value, f) for f in record.filenames)

        needle = self.value.lower()
        if self.prefix == "from":
            fields = ["from"]
        elif self.prefix == "to":
            fields = ["to", "cc", "bcc"]
        elif self.prefix == "subject":
            fields = ["subject"]
        else:
            fields = ["subject", "from", "to", "cc"]
        return any(needle in (record.header(name) or "").lower() for name in fields)

    def mentioned_tags(self) -> frozenset[str]:
        if self.prefix == "tag":
            return frozenset({self.value})
        return frozenset()


@dataclass(frozen=True)
class Not:
    child: "Node"

    def matches(self, record: MessageRecord) -> bool:
        return not self.child.matches(record)

    def mentioned_tags(self) -> frozenset[str]:
        return self.child.mentioned_tags()


@dataclass(frozen=True)
class And:
    children: tuple["Node", ...]

    def matches(self, record: MessageRecord) -> bool:
        return all(child.matches(record) for child in self.children)

    def mentioned_tags(self) -> frozenset[str]:
        return frozenset().union(*(c.mentioned_tags() for c in self.children))


@dataclass(frozen=True)
class Or:
    children: tuple["Node", ...]

    def matches(self, record: MessageRecord) -> bool:
        return any(child.matches(record) for child in self.children)

    def mentioned_tags(self) -> frozenset[str]:
        return frozenset().union(*(c.mentioned_tags() for c in self.children))


Node = MatchAll | Term | Not | And | Or


def _path_matches(pattern: str, filename: str) -> bool:
    parent = str(PurePath(filename).parent)
    return parent == pattern.rstrip("/") or fnmatchcase(filename, pattern)


# --- tokenizer ---


@dataclass(frozen=True)
class _Token:
    kind: str  # "term", "lparen", "rparen", "and", "or", "not", "all"
    prefix: str | None = None
    value: str = ""


def _read_quoted(text: str, i: int) -> tuple[str, int]:
    # text[i] is the opening quote
    chars: list[str] = []
    i += 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            if text.startswith('""', i):
                chars.append('"')
                i += 2
                continue
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise QuerySyntaxError(f"Unterminated quoted string in query: {text!r}")


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch == "(":
            tokens.append(_Token("lparen"))
            i += 1
            continue
        if ch == ")":
            tokens.append(_Token("rparen"))
            i += 1
            continue

        prefix = None
        m = _PREFIX_RE.match(text, i)
        if m and m.group(1).lower() in BOOLEAN_PREFIXES | PROBABILISTIC_PREFIXES:
            prefix = m.group(1).lower()
            i = m.end()

        if i < n and text[i] == '"':
            value, i = _read_quoted(text, i)
            tokens.append(_Token("term", prefix, value))
            continue

        start = i
        while i < n and not text[i].isspace() and text[i] not in "()":
            i += 1
        word = text[start:i]

        if prefix is None and word.lower() in _OPERATORS:
            tokens.append(_Token(word.lower()))
        elif prefix is None and word == MATCH_ALL:
            tokens.append(_Token("all"))
        else:
            tokens.append(_Token("term", prefix, word))
    return tokens


# --- parser ---


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._pos = 0

    def _peek(self) -> _Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _take(self) -> _Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def parse(self) -> Node:
        if not self._tokens:
            raise QuerySyntaxError("Empty query")
        node = self._parse_or()
        if self._peek() is not None:
            raise QuerySyntaxError(f"Unexpected ')' in query: {self._text!r}")
        return node

    def _parse_or(self) -> Node:
        children = [self._parse_and()]
        while (token := self._peek()) is not None and token.kind == "or":
            self._take()
            children.append(self._parse_and())
        return children[0] if len(children) == 1 else Or(tuple(children))

    def _parse_and(self) -> Node:
        children = [self._parse_unary()]
        while (token := self._peek()) is not None and token.kind not in ("or", "rparen"):
            explicit = token.kind == "and"
            if explicit:
                self._take()
            node = self._parse_unary()
            last = children[-1]
            if not explicit and _shares_exclusive_prefix(last, node):
                children[-1] = Or(_or_children(last) + (node,))
            else:
                children.append(node)
        return children[0] if len(children) == 1 else And(tuple(children))

    def _parse_unary(self) -> Node:
        token = self._peek()
        if token is None:
            raise QuerySyntaxError(f"Unexpected end of query: {self._text!r}")
        if token.kind == "not":
            self._take()
            return Not(self._parse_unary())
        if token.kind == "lparen":
            self._take()
            node = self._parse_or()
            closing = self._peek()
            if closing is None or closing.kind != "rparen":
                raise QuerySyntaxError(f"Missing ')' in query: {self._text!r}")
            self._take()
            return node
        if token.kind == "all":
            self._take()
            return MatchAll()
        if token.kind == "term":
            self._take()
            return Term(token.prefix, token.value)
        raise QuerySyntaxError(f"Unexpected '{token.kind}' in query: {self._text!r}")


def _exclusive_prefix(node: Node) -> str | None:
    if isinstance(node, Term) and node.prefix in EXCLUSIVE_PREFIXES:
        return node.prefix
    if isinstance(node, Or) and node.children:
        prefixes = {_exclusive_prefix(c) for c in node.children if isinstance(c, Term)}
        if len(prefixes) == 1 and all(isinstance(c, Term) for c in node.children):
            return prefixes.pop()
    return None


def _shares_exclusive_prefix(left: Node, right: Node) -> bool:
    prefix = _exclusive_prefix(right)
    return prefix is not None and isinstance(right, Term) and _exclusive_prefix(left) == prefix


def _or_children(node: Node) -> tuple[Node, ...]:
    return node.children if isinstance(node, Or) else (node,)


def parse_query(text: str) -> Node:
    """Compile a query string into a matcher tree."""
    return _Parser(text).parse()
