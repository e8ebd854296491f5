# DecimalProjector.py
"""
Local reading: a truncated decimal string for an exact tree.

The tree is only read, never rewritten. Rational results are truncated with
integer arithmetic; everything else is evaluated with the decimal module at
two working precisions sized from the largest partial result, and only
returned when both agree on the requested digits; on disagreement the
precision is raised a bounded number of times. Anything the reader
cannot represent safely becomes a Refusal.
"""

import logging
from decimal import ROUND_DOWN, Decimal, DivisionByZero, InvalidOperation, Overflow, localcontext
from fractions import Fraction
from functools import lru_cache

from . import config_manager
from . import error as E
from .Expression import (Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig, Undefined,
                         contains_undefined, flatten)

logger = logging.getLogger(__name__)

GUARD_DIGITS = 10
# working precision doubles after each disagreement
READING_ATTEMPTS = 3


class Refusal:
    """Why no decimal reading was produced. Compares equal to its reason text."""
    def __init__(self, reason, code):
        self.reason = reason
        self.code = code

    def __eq__(self, other):
        if isinstance(other, Refusal):
            return self.reason == other.reason and self.code == other.code
        if isinstance(other, str):
            return self.reason == other
        return NotImplemented

    def __hash__(self):
        return hash(self.reason)

    def __str__(self):
        return self.reason

    def __repr__(self):
        return f"Refusal({self.reason!r}, {self.code!r})"


def refuse(reason, code):
    logger.debug("Projection refused (%s): %s", code, reason)
    raise E.ProjectionRefused(reason, code=code)


# -----------------------------
# π
# -----------------------------

def _arccot(x, unity):
    """unity * arccot(x) in fixed point, for an integer x > 1."""
    total = power = unity // x
    x_squared = x * x
    n = 3
    sign = -1
    while power:
        power //= x_squared
        total += sign * (power // n)
        sign = -sign
        n += 2
    return total


@lru_cache(maxsize=32)
def pi_decimal(digits):
    """π to at least `digits` significant digits, by Machin's formula."""
    extra = digits + GUARD_DIGITS
    unity = 10 ** extra
    value = 4 * (4 * _arccot(5, unity) - _arccot(239, unity))
    with localcontext() as ctx:
        ctx.prec = extra + 2
        return Decimal(value).scaleb(-extra)


# -----------------------------
# Checks on the tree
# -----------------------------

def _is_irrational_node(expr):
    if isinstance(expr, Sqrt):
        return True
    return isinstance(expr, Pow) and not (isinstance(expr.exponent, Rational) and expr.exponent.is_integer())


def irrational_depth(expr):
    """Largest number of radicals nested inside each other."""
    deepest = 0
    stack = [(expr, 0)]
    while stack:
        node, depth = stack.pop()
        if _is_irrational_node(node):
            depth += 1
        deepest = max(deepest, depth)
        stack.extend((child, depth) for child in node.children())
    return deepest


def check_readable(expr, limits):
    """Refuse trees containing Undefined, unresolved trig values or radicals nested too deeply."""
    if contains_undefined(expr):
        refuse("undefined operand", E.UNDEFINED_OPERAND)
    stack = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, Trig):
            refuse(f"unresolved trigonometric value {node.kind}", E.UNRESOLVED_TRIG)
        stack.extend(node.children())
    depth = irrational_depth(expr)
    if depth > limits.max_irrational_depth:
        refuse(f"irrational sub-expression nested {depth} deep", E.IRRATIONAL_TOO_DEEP)


# -----------------------------
# Evaluation
# -----------------------------

class DecimalReader:
    """Evaluates a tree with the decimal module at a fixed working precision."""

    def __init__(self, precision):
        self.precision = precision
        # largest adjusted exponent of any partial result read so far
        self.magnitude = 0

    def read(self, expr):
        with localcontext() as ctx:
            ctx.prec = self.precision
            try:
                return self.value(expr)
            except DivisionByZero:
                refuse("division by zero", E.PROJECTION_DIVISION_BY_ZERO)
            except (Overflow, InvalidOperation):
                refuse("value out of representable range", E.UNSTABLE_READING)

    def value(self, expr):
        result = self._value(expr)
        if result:
            self.magnitude = max(self.magnitude, result.adjusted())
        return result

    def _value(self, expr):
        if isinstance(expr, Rational):
            return Decimal(expr.numerator) / Decimal(expr.denominator)
        if isinstance(expr, PiMultiple):
            c = expr.coefficient
            return pi_decimal(self.precision) * Decimal(c.numerator) / Decimal(c.denominator)
        if isinstance(expr, Add):
            total = Decimal(0)
            for operand in flatten(expr, Add):
                total += self.value(operand)
            return total
        if isinstance(expr, Mul):
            product = Decimal(1)
            for operand in flatten(expr, Mul):
                product *= self.value(operand)
            return product
        if isinstance(expr, Sqrt):
            radicand = self.value(expr.operand)
            if radicand < 0:
                refuse("negative radicand", E.NEGATIVE_RADICAND)
            return radicand.sqrt()
        if isinstance(expr, Pow):
            return self.power(expr)
        if isinstance(expr, Undefined):
            refuse("undefined operand", E.UNDEFINED_OPERAND)
        if isinstance(expr, Trig):
            refuse(f"unresolved trigonometric value {expr.kind}", E.UNRESOLVED_TRIG)
        raise E.MathError(f"Unknown expression node: {expr!r}", code="9999")

    def power(self, expr):
        if not isinstance(expr.exponent, Rational):
            refuse("exponent is not rational", E.TRANSCENDENTAL_EXPONENT)
        exponent = expr.exponent.value
        base = self.value(expr.base)
        if base == 0:
            if exponent < 0:
                refuse("division by zero", E.PROJECTION_DIVISION_BY_ZERO)
            return Decimal(0)
        if exponent.denominator == 1:
            return base ** int(exponent)
        sign = 1
        if base < 0:
            if exponent.denominator % 2 == 0:
                refuse("negative radicand", E.NEGATIVE_RADICAND)
            base = -base
            if exponent.numerator % 2:
                sign = -1
        if exponent == Fraction(1, 2):
            result = base.sqrt()
        else:
            result = (base.ln() * exponent.numerator / exponent.denominator).exp()
        return result if sign > 0 else -result


# -----------------------------
# Text
# -----------------------------

def rational_text(value, precision):
    """Exact truncation of a Fraction to `precision` places."""
    scaled = abs(value.numerator) * 10 ** precision // value.denominator
    digits = str(scaled)
    if precision:
        digits = digits.rjust(precision + 1, "0")
        text = digits[:-precision] + "." + digits[-precision:]
    else:
        text = digits
    if value < 0 and scaled:
        text = "-" + text
    return text


def truncate(value, precision):
    with localcontext() as ctx:
        ctx.prec = max(value.adjusted(), 0) + precision + GUARD_DIGITS
        quantized = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_DOWN)
    if quantized == 0:
        quantized = abs(quantized)
    return format(quantized, "f")


def project(expr, precision, limits=None):
    """Decimal text of expr truncated to `precision` places, or raise ProjectionRefused."""
    if limits is None:
        limits = config_manager.load_limits()
    check_readable(expr, limits)
    if isinstance(expr, Rational):
        return rational_text(expr.value, precision)

    # digits lost to cancellation are bounded by the largest partial result
    estimator = DecimalReader(precision + GUARD_DIGITS)
    estimator.read(expr)
    working = precision + GUARD_DIGITS + max(estimator.magnitude + 1, 0)

    for attempt in range(READING_ATTEMPTS):
        first = truncate(DecimalReader(working).read(expr), precision)
        second = truncate(DecimalReader(working + GUARD_DIGITS).read(expr), precision)
        if first == second:
            return first
        logger.debug("Readings disagree at %d digits (attempt %d)", working, attempt + 1)
        working *= 2
    refuse(f"reading not stable at {precision} places", E.UNSTABLE_READING)


def local_reading(expr, precision, limits=None):
    """Like project(), but a refusal is returned as a Refusal instead of raised."""
    try:
        return project(expr, precision, limits)
    except E.ProjectionRefused as e:
        return Refusal(e.message, e.code)
