"""A tiny interpreter for the href expressions emitted by stylesheet loaders.

Only literals, object literals, scope lookups, property access, string
concatenation, `||` and literal `.replace(a, b)` are understood. Anything else
raises ExpressionError instead of being executed.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Tuple

from .errors import ExpressionError

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<number>\d+(?:\.\d+)?)
  | (?P<ident>[A-Za-z_$][\w$]*)
  | (?P<punct>\|\||[+\[\](){},:.;=])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}

Token = Tuple[str, str]


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    out: List[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char != "\\":
            out.append(char)
            index += 1
            continue
        nxt = body[index + 1]
        if nxt == "u":
            digits = body[index + 2 : index + 6]
            if not re.fullmatch(r"[0-9A-Fa-f]{4}", digits):
                raise ExpressionError(f"Malformed unicode escape in {literal}")
            out.append(chr(int(digits, 16)))
            index += 6
            continue
        out.append(_ESCAPES.get(nxt, nxt))
        index += 2
    return "".join(out)


def tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(source):
        match = _TOKEN_RE.match(source, position)
        if not match:
            raise ExpressionError(f"Unexpected character {source[position]!r} at {position}")
        kind = match.lastgroup
        if kind != "ws":
            tokens.append((kind, match.group()))
        position = match.end()
    return tokens


def to_js_string(value: Any) -> str:
    """String conversion following the loader runtime's coercion rules."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _truthy(value: Any) -> bool:
    return value not in (None, "", 0) and value is not False


class _Parser:
    def __init__(self, tokens: List[Token], scope: Mapping[str, Any]) -> None:
        self.tokens = tokens
        self.scope = scope
        self.index = 0

    def peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def take(self, expected: str | None = None) -> Token:
        token = self.peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression")
        if expected is not None and token[1] != expected:
            raise ExpressionError(f"Expected {expected!r} but found {token[1]!r}")
        self.index += 1
        return token

    def at(self, value: str) -> bool:
        token = self.peek()
        return token is not None and token[0] == "punct" and token[1] == value

    def expression(self) -> Any:
        left = self.concatenation()
        while self.at("||"):
            self.take()
            right = self.concatenation()
            left = left if _truthy(left) else right
        return left

    def concatenation(self) -> Any:
        left = self.postfix()
        while self.at("+"):
            self.take()
            right = self.postfix()
            if isinstance(left, str) or isinstance(right, str):
                left = to_js_string(left) + to_js_string(right)
            elif isinstance(left, (int, float)) and isinstance(right, (int, float)):
                left = left + right
            else:
                raise ExpressionError("Unsupported operands for +")
        return left

    def postfix(self) -> Any:
        value = self.primary()
        while True:
            if self.at("["):
                self.take()
                key = self.expression()
                self.take("]")
                value = self._lookup(value, key)
            elif self.at("."):
                self.take()
                kind, name = self.take()
                if kind != "ident":
                    raise ExpressionError(f"Expected property name but found {name!r}")
                if name == "replace" and self.at("("):
                    value = self._replace(value)
                else:
                    value = self._lookup(value, name)
            else:
                return value

    def _lookup(self, target: Any, key: Any) -> Any:
        if not isinstance(target, dict):
            raise ExpressionError(f"Cannot read property {to_js_string(key)!r} of {to_js_string(target)}")
        return target.get(to_js_string(key))

    def _replace(self, target: Any) -> str:
        self.take("(")
        pattern = self.expression()
        self.take(",")
        replacement = self.expression()
        self.take(")")
        if not all(isinstance(item, str) for item in (target, pattern, replacement)):
            raise ExpressionError("replace() is only supported on string literals")
        return target.replace(pattern, replacement, 1)

    def primary(self) -> Any:
        kind, text = self.take()
        if kind == "string":
            return _unquote(text)
        if kind == "number":
            return float(text) if "." in text else int(text)
        if kind == "ident":
            if text not in self.scope:
                raise ExpressionError(f"Unknown identifier {text!r}")
            return self.scope[text]
        if text == "(":
            value = self.expression()
            self.take(")")
            return value
        if text == "{":
            return self.object_literal()
        raise ExpressionError(f"Unexpected token {text!r}")

    def object_literal(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        while not self.at("}"):
            kind, text = self.take()
            if kind == "string":
                key = _unquote(text)
            elif kind in ("number", "ident"):
                key = text
            else:
                raise ExpressionError(f"Invalid object key {text!r}")
            self.take(":")
            result[key] = self.expression()
            if self.at(","):
                self.take()
            elif not self.at("}"):
                raise ExpressionError("Expected ',' or '}' in object literal")
        self.take("}")
        return result


def evaluate(source: str, scope: Mapping[str, Any] | None = None) -> Any:
    """Evaluate a single expression against the given bindings."""
    parser = _Parser(tokenize(source), scope or {})
    value = parser.expression()
    if parser.peek() is not None:
        raise ExpressionError(f"Unexpected trailing token {parser.peek()[1]!r}")
    return value


def evaluate_assignment(statement: str, scope: Mapping[str, Any] | None = None) -> Tuple[str, Any]:
    """Evaluate `var <name> = <expr>;` and return the bound name and value."""
    match = re.match(r"\s*(?:var|let|const)\s+([A-Za-z_$][\w$]*)\s*=(.*?);?\s*$", statement, re.DOTALL)
    if not match:
        raise ExpressionError(f"Not a variable declaration: {statement!r}")
    return match.group(1), evaluate(match.group(2), scope)
