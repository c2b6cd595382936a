"""Evaluate parsed expression trees at complex points.

The tree is parsed once and can then be evaluated as often as needed:

>>> f = make_evaluator(parse("(z+1)*(z-1)"))
>>> f(2)
(3+0j)
>>> f(1j)
(-2+0j)

All arithmetic follows IEEE-754, so numeric edge cases come back as
inf/nan instead of raising:

>>> evaluate(parse("log(z)"), 0)
(-inf+0j)
>>> evaluate(parse("1/(z-z)"), 5)
(nan+nanj)
"""
import numpy as np

from expr_parser import (
    FUNCTION_NAMES,
    BinaryOperation,
    Constant,
    FunctionCall,
    ParseFailure,
    Parsed,
    Variable,
    parse,
)

# Values are carried around as (re, im) pairs of float64 scalars or arrays.


def _add(a, b):
    (ar, ai), (br, bi) = a, b
    return ar + br, ai + bi


def _sub(a, b):
    (ar, ai), (br, bi) = a, b
    return ar - br, ai - bi


def _mul(a, b):
    (ar, ai), (br, bi) = a, b
    return ar * br - ai * bi, ar * bi + ai * br


def _div(a, b):
    (ar, ai), (br, bi) = a, b
    denom = br * br + bi * bi
    return (ar * br + ai * bi) / denom, (ai * br - ar * bi) / denom


def _pow(a, b):
    """a^b through polar form, principal branch."""
    (ar, ai), (br, bi) = a, b
    r = np.hypot(ar, ai)
    theta = np.arctan2(ai, ar)
    modulus = r**br * np.exp(-bi * theta)
    angle = br * theta + bi * np.log(r)
    return modulus * np.cos(angle), modulus * np.sin(angle)


def _sin(a):
    re, im = a
    return np.sin(re) * np.cosh(im), np.cos(re) * np.sinh(im)


def _cos(a):
    re, im = a
    return np.cos(re) * np.cosh(im), -np.sin(re) * np.sinh(im)


def _exp(a):
    re, im = a
    return np.exp(re) * np.cos(im), np.exp(re) * np.sin(im)


def _log(a):
    re, im = a
    return np.log(np.hypot(re, im)), np.arctan2(im, re)


OPERATORS = {"+": _add, "-": _sub, "*": _mul, "/": _div, "^": _pow}
FUNCTIONS = {"sin": _sin, "cos": _cos, "exp": _exp, "log": _log}

assert FUNCTIONS.keys() == set(FUNCTION_NAMES)


def _eval(expr, z):
    t = type(expr)
    if t is Constant:
        return np.float64(expr.value.real), np.float64(expr.value.imag)
    if t is Variable:
        return z
    if t is BinaryOperation:
        left = _eval(expr.left, z)
        right = _eval(expr.right, z)
        return OPERATORS[expr.operator](left, right)
    if t is FunctionCall:
        return FUNCTIONS[expr.name](_eval(expr.argument, z))
    raise TypeError(f"Not an expression node: {expr!r}")


def evaluate(expr, z):
    """Evaluate `expr` at `z`.

    `expr` is an expression tree, a `parse` result or None; None (and a
    failed parse) evaluate to 0 everywhere. `z` is a number or an array of
    numbers; arrays are evaluated elementwise and give an array back.

    >>> evaluate(parse("2+3*4"), 0)
    (14+0j)
    >>> evaluate(None, 3+4j)
    0j
    """
    if isinstance(expr, (Parsed, ParseFailure)):
        expr = expr.expr
    z = np.asarray(z, dtype=complex)
    if expr is None:
        re = im = 0.0
    else:
        with np.errstate(all="ignore"):
            re, im = _eval(expr, (z.real, z.imag))
    if z.shape == ():
        return complex(float(re), float(im))
    out = np.empty(z.shape, dtype=complex)
    out.real, out.imag = re, im
    return out


def make_evaluator(expr, name="f"):
    """Return a function (named `name`) of one argument `z` that evaluates `expr`.

    >>> f = make_evaluator(parse("z^2"), name="square")
    >>> f.__name__
    'square'
    >>> f(np.array([1, 2, 3]))
    array([1.+0.j, 4.+0.j, 9.+0.j])
    """
    if isinstance(expr, (Parsed, ParseFailure)):
        expr = expr.expr

    def f(z):
        return evaluate(expr, z)

    f.__name__ = name

    return f
