"""Parse formulas in the complex variable `z` into expression trees.

>>> parse("2*z").expr
BinaryOperation(operator='*', left=Constant(value=(2+0j)), right=Variable())
>>> parse("sin(z")
ParseFailure(reason="expected ')'")
"""
import logging
import os
import re
from contextlib import contextmanager
from typing import Literal, NamedTuple, Optional, Union

log = logging.getLogger(__name__)

# Deepest tree `parse` will build, and how many parentheses or function calls
# may be open at once. Both keep parsing and evaluation off the recursion limit.
# Every binary operator adds a level, so a flat sum of n terms is n deep.
MAX_DEPTH = int(os.getenv("COMPLEX_EXPR_MAX_DEPTH", 512))
MAX_NESTING = int(os.getenv("COMPLEX_EXPR_MAX_NESTING", 64))

Operator = Literal["+", "-", "*", "/", "^"]
FunctionName = Literal["sin", "cos", "exp", "log"]
Reason = Literal[
    "empty input",
    "unrecognized character",
    "unexpected token",
    "unexpected end of input",
    "expected '('",
    "expected ')'",
    "trailing tokens",
    "nesting too deep",
]

FUNCTION_NAMES = ("sin", "cos", "exp", "log")
# Lowest binding first; ^ deliberately shares a level with * and /.
PRECEDENCE = (("+", "-"), ("*", "/", "^"))


class BinaryOperation(NamedTuple):
    operator: Operator
    left: "Expression"
    right: "Expression"


class FunctionCall(NamedTuple):
    name: FunctionName
    argument: "Expression"


class Constant(NamedTuple):
    value: complex


class Variable(NamedTuple):
    """The free variable `z`. NB: an empty tuple, so it is falsy."""


Expression = Union[BinaryOperation, FunctionCall, Constant, Variable]


class Parsed(NamedTuple):
    expr: Expression
    ok = True


class ParseFailure(NamedTuple):
    reason: Reason
    ok = False
    expr = None


ParseResult = Union[Parsed, ParseFailure]


class ParseError(ValueError):
    """Raised by `tokenize`; `parse` turns it into a `ParseFailure`."""

    def __init__(self, reason: Reason):
        super().__init__(reason)
        self.reason = reason


TOKEN_RE = re.compile(r"\d+(?:\.\d*)?|\w+|[-+*/^()]", re.ASCII)
NUMBER_RE = re.compile(r"\d+(?:\.\d*)?", re.ASCII)


def tokenize(text):
    """Split `text` into tokens, ignoring whitespace.

    >>> tokenize("sin(z) * 1.5")
    ['sin', '(', 'z', ')', '*', '1.5']

    Characters that cannot start a token raise `ParseError`, rather than
    being skipped and silently changing what the formula means.
    """
    text = "".join(text.split())
    tokens, pos = [], 0
    while pos < len(text):
        if not (m := TOKEN_RE.match(text, pos)):
            raise ParseError("unrecognized character")
        tokens.append(m.group())
        pos = m.end()
    return tokens


class TokenStream:
    """Cursor over the tokens of one formula, threaded through the parse functions."""

    def __init__(self, tokens, max_depth, max_nesting):
        self.tokens = tokens
        self.pos = 0
        self.max_depth = max_depth
        self.max_nesting = max_nesting
        self.nesting = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def next(self) -> str:
        if (tok := self.peek()) is None:
            raise ParseError("unexpected end of input")
        self.pos += 1
        return tok

    def expect(self, tok):
        if self.peek() != tok:
            raise ParseError(f"expected {tok!r}")
        self.pos += 1

    def deeper(self, depth):
        """Depth of a node whose deepest child has `depth`."""
        if depth >= self.max_depth:
            raise ParseError("nesting too deep")
        return depth + 1

    @contextmanager
    def nested(self):
        if self.nesting >= self.max_nesting:
            raise ParseError("nesting too deep")
        self.nesting += 1
        try:
            yield
        finally:
            self.nesting -= 1


# Each parse function returns (node, depth of the subtree rooted at node).


def _fold(stream, operators, operand):
    left, depth = operand(stream)
    while stream.peek() in operators:
        op = stream.next()
        right, right_depth = operand(stream)
        left = BinaryOperation(op, left, right)
        depth = stream.deeper(max(depth, right_depth))
    return left, depth


def _expression(stream):
    return _fold(stream, PRECEDENCE[0], _term)


def _term(stream):
    return _fold(stream, PRECEDENCE[1], _factor)


def _factor(stream):
    tok = stream.next()
    if tok == "(":
        with stream.nested():
            node = _expression(stream)
        stream.expect(")")
        return node
    if tok == "z":
        return Variable(), 1
    if tok in FUNCTION_NAMES:
        stream.expect("(")
        with stream.nested():
            argument, depth = _expression(stream)
        stream.expect(")")
        return FunctionCall(tok, argument), stream.deeper(depth)
    if NUMBER_RE.fullmatch(tok):
        return Constant(complex(float(tok))), 1
    raise ParseError("unexpected token")


def parse(text, max_depth=None, max_nesting=None) -> ParseResult:
    """Parse `text` into an expression tree.

    Never raises on malformed input; returns `ParseFailure` with a coarse
    reason instead. The whole input must be consumed:

    >>> parse("(z)z").reason
    'trailing tokens'

    Whitespace is dropped before tokenizing, so "z z" is the word "zz":

    >>> parse("z z").reason
    'unexpected token'
    >>> parse("(z+1)*(z-1)").ok
    True
    """
    try:
        stream = TokenStream(
            tokenize(text),
            MAX_DEPTH if max_depth is None else max_depth,
            MAX_NESTING if max_nesting is None else max_nesting,
        )
        if stream.peek() is None:
            raise ParseError("empty input")
        expr, _ = _expression(stream)
        if stream.peek() is not None:
            raise ParseError("trailing tokens")
    except ParseError as err:
        log.debug("cannot parse %r: %s", text, err.reason)
        return ParseFailure(err.reason)
    return Parsed(expr)
