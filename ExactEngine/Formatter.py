# Formatter.py
"""
Canonical text of an expression tree.

format_expr is a pure function of the tree: equal trees always give equal
text. Output uses radical notation (√2/2), a leading '-' for negative terms,
' + ' / ' - ' between terms and parentheses only where precedence needs them.
The text is valid input again: tokenizing and simplifying it gives back the
same canonical tree.
"""

from fractions import Fraction

from .Expression import (Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig, Undefined,
                         chain, flatten)

UNDEFINED_MARKER = "undefined"


def format_rational(value):
    value = Fraction(value)
    if value.denominator == 1:
        return str(value.numerator)
    return f"{value.numerator}/{value.denominator}"


def format_angle(coefficient):
    """coefficient·π as text: 0, π, -π, 3π, π/4, -3π/4"""
    coefficient = Fraction(coefficient)
    if coefficient == 0:
        return "0"
    sign = "-" if coefficient < 0 else ""
    magnitude = abs(coefficient)
    numerator = "π" if magnitude.numerator == 1 else f"{magnitude.numerator}π"
    if magnitude.denominator == 1:
        return sign + numerator
    return f"{sign}{numerator}/{magnitude.denominator}"


def split_sign(expr):
    """Return (negative, magnitude) so that expr == -magnitude when negative."""
    if isinstance(expr, Rational) and expr.value < 0:
        return True, Rational(-expr.value)
    if isinstance(expr, PiMultiple) and expr.coefficient < 0:
        return True, PiMultiple(-expr.coefficient)
    if isinstance(expr, Mul):
        factors = flatten(expr, Mul)
        if isinstance(factors[0], (Rational, PiMultiple)):
            negative, magnitude = split_sign(factors[0])
            if negative:
                rest = factors[1:]
                if isinstance(magnitude, Rational) and magnitude.value == 1 and rest:
                    return True, chain(rest, Mul)
                return True, chain([magnitude] + rest, Mul)
    return False, expr


def format_expr(expr):
    if isinstance(expr, Add):
        return _render_sum(expr)
    negative, magnitude = split_sign(expr)
    text = _render_term(magnitude)
    return "-" + text if negative else text


# -----------------------------
# Sums and products
# -----------------------------

def _render_sum(expr):
    parts = []
    for index, term in enumerate(flatten(expr, Add)):
        negative, magnitude = split_sign(term)
        text = _render_term(magnitude)
        if index == 0:
            parts.append("-" + text if negative else text)
        else:
            parts.append((" - " if negative else " + ") + text)
    return "".join(parts)


def _render_term(expr):
    if isinstance(expr, Add):
        return "(" + _render_sum(expr) + ")"
    if isinstance(expr, Rational):
        return format_rational(expr.value)
    if isinstance(expr, PiMultiple):
        return format_angle(expr.coefficient)
    if isinstance(expr, Mul):
        return _render_product(flatten(expr, Mul))
    if _is_reciprocal(expr):
        return _render_product([expr])
    return _render_factor(expr)


def _is_reciprocal(expr):
    return isinstance(expr, Pow) and isinstance(expr.exponent, Rational) and expr.exponent.value < 0


def _join(pieces):
    """Juxtapose π and √ after a number, π or ')' (2π, 3√2, π√3), use '*' elsewhere."""
    text = pieces[0]
    for piece in pieces[1:]:
        if piece[0] in "π√" and (text[-1].isdigit() or text[-1] in "π)"):
            text += piece
        else:
            text += "*" + piece
    return text


def _render_product(factors):
    coefficient = Fraction(1)
    has_pi = False
    rest = factors
    if isinstance(factors[0], Rational):
        coefficient = factors[0].value
        rest = factors[1:]
    elif isinstance(factors[0], PiMultiple):
        coefficient = factors[0].coefficient
        has_pi = True
        rest = factors[1:]

    above = []
    below = []
    for factor in rest:
        if _is_reciprocal(factor):
            inverse = -factor.exponent.value
            below.append(factor.base if inverse == 1 else Pow(factor.base, Rational(inverse)))
        else:
            above.append(factor)

    sign = "-" if coefficient < 0 else ""
    coefficient = abs(coefficient)

    numerator = []
    if coefficient.numerator != 1 or not (has_pi or above):
        numerator.append(str(coefficient.numerator))
    if has_pi:
        numerator.append("π")
    numerator += [_render_factor(factor) for factor in above]

    denominator = []
    if coefficient.denominator != 1:
        denominator.append(str(coefficient.denominator))
    denominator += [_render_factor(factor) for factor in below]

    text = _join(numerator)
    if denominator:
        if len(denominator) == 1:
            text += "/" + denominator[0]
        else:
            text += "/(" + _join(denominator) + ")"
    return sign + text


# -----------------------------
# Factors
# -----------------------------

def _is_plain_integer(expr):
    return isinstance(expr, Rational) and expr.value.denominator == 1 and expr.value >= 0


def _is_pi(expr):
    return isinstance(expr, PiMultiple) and expr.coefficient == 1


def _render_factor(expr):
    """Text of expr as one factor of a product."""
    if isinstance(expr, Rational):
        if _is_plain_integer(expr):
            return str(expr.value.numerator)
        return "(" + format_rational(expr.value) + ")"
    if isinstance(expr, PiMultiple):
        if _is_pi(expr):
            return "π"
        return "(" + format_angle(expr.coefficient) + ")"
    if isinstance(expr, Undefined):
        return UNDEFINED_MARKER
    if isinstance(expr, Sqrt):
        if _is_plain_integer(expr.operand) or _is_pi(expr.operand):
            return "√" + _render_factor(expr.operand)
        return "√(" + format_expr(expr.operand) + ")"
    if isinstance(expr, Trig):
        return f"{expr.kind}({format_expr(expr.operand)})"
    if isinstance(expr, Pow):
        if _is_reciprocal(expr):
            return "(" + _render_product([expr]) + ")"
        return _render_base(expr.base) + "^" + _render_exponent(expr.exponent)
    return "(" + format_expr(expr) + ")"


def _render_base(expr):
    if _is_plain_integer(expr) or _is_pi(expr) or isinstance(expr, (Trig, Undefined)):
        return _render_factor(expr)
    return "(" + format_expr(expr) + ")"


def _render_exponent(expr):
    if _is_plain_integer(expr) or _is_pi(expr):
        return _render_factor(expr)
    return "(" + format_expr(expr) + ")"
