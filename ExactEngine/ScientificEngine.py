# ScientificEngine.py
"""
Special-angle resolver for sin, cos and tan.

resolve() walks a simplified tree and rewrites
- Trig(kind, c·π) for multiples of π/12 into their exact value, or Undefined
  where tan has a pole (odd multiples of π/2)
- every other c·π into a canonical atom with 0 < c <= 1/4, using periodicity,
  reflection and the co-function identities
- Trig(kind, x + c·π) with parity and the quarter-period shifts
- sin(x)^2 + cos(x)^2 = 1 and sin(x)/cos(x) = tan(x) inside sums and products
Each rewrite appends a proof line. The caller simplifies the result again and
calls resolve() until it reports no more proofs.
"""

import logging
from fractions import Fraction

from . import config_manager
from .Expression import (Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig, UNDEFINED,
                         chain, flatten, negate)
from .Formatter import format_angle, format_expr
from .Simplifier import Normaliser, Term, simplify

logger = logging.getLogger(__name__)

ONE = Fraction(1)
HALF = Fraction(1, 2)
QUARTER = Fraction(1, 4)
PI_KEY = PiMultiple(1).key

PERIOD = {"sin": Fraction(2), "cos": Fraction(2), "tan": Fraction(1)}


def _root(n):
    return Sqrt(Rational(n))


# sin(c·π) for the multiples of π/12 in [0, π/2]; cos(c·π) = sin((1/2 - c)·π)
SIN_VALUES = {
    Fraction(0): Rational(0),
    Fraction(1, 12): Mul(Add(_root(6), negate(_root(2))), Rational(1, 4)),
    Fraction(1, 6): Rational(1, 2),
    Fraction(1, 4): Mul(_root(2), Rational(1, 2)),
    Fraction(1, 3): Mul(_root(3), Rational(1, 2)),
    Fraction(5, 12): Mul(Add(_root(6), _root(2)), Rational(1, 4)),
    Fraction(1, 2): Rational(1),
}

TAN_VALUES = {
    Fraction(0): Rational(0),
    Fraction(1, 12): Add(Rational(2), negate(_root(3))),
    Fraction(1, 6): Mul(_root(3), Rational(1, 3)),
    Fraction(1, 4): Rational(1),
    Fraction(1, 3): _root(3),
    Fraction(5, 12): Add(Rational(2), _root(3)),
}

# f(y + k·π/2) for k = 0..3, as (function, sign); tan(y + π/2) = -1/tan(y)
SHIFTS = {
    "sin": [("sin", 1), ("cos", 1), ("sin", -1), ("cos", -1)],
    "cos": [("cos", 1), ("sin", -1), ("cos", -1), ("sin", 1)],
    "tan": [("tan", 1), ("cot", -1)],
}

CO_FUNCTION = {"sin": "cos", "cos": "sin", "tan": "cot"}


def is_special(coefficient):
    """True for multiples of π/12, the angles with a tabulated closed form."""
    return (coefficient * 12).denominator == 1


def reduce_angle(kind, coefficient):
    """Map kind(coefficient·π) to sign · kind(r·π) with 0 <= r <= 1/2.

    sin and cos use period 2 and the reflections sin(π - x) = sin(x),
    cos(π - x) = -cos(x); tan uses period 1 and is odd.
    """
    sign = 1
    if kind == "tan":
        reduced = coefficient % 1
        if reduced > HALF:
            reduced = 1 - reduced
            sign = -1
        return sign, reduced

    reduced = coefficient % 2
    if reduced >= 1:
        reduced -= 1
        sign = -sign
    if reduced > HALF:
        reduced = 1 - reduced
        if kind == "cos":
            sign = -sign
    return sign, reduced


def special_value(kind, reduced):
    """Exact value of kind(reduced·π) for a reduced special angle, None at a pole."""
    if kind == "sin":
        return SIN_VALUES[reduced]
    if kind == "cos":
        return SIN_VALUES[HALF - reduced]
    if reduced == HALF:
        return None
    return TAN_VALUES[reduced]


def _apply(kind, operand):
    """kind(operand) where kind may be 'cot', written as 1/tan."""
    if kind == "cot":
        return Pow(Trig("tan", operand), Rational(-1))
    return Trig(kind, operand)


def _signed(sign, expr):
    return negate(expr) if sign < 0 else expr


def _signed_text(sign, text):
    return "-" + text if sign < 0 else text


def _sorted_factors(factors):
    return sorted(factors, key=lambda factor: factor[0].key)


class TrigResolver:
    """One resolution pass over a canonical tree."""

    def __init__(self, limits):
        self.limits = limits
        self.normaliser = Normaliser(limits)
        self.proofs = []

    def prove(self, text):
        logger.debug("Trig: %s", text)
        self.proofs.append(text)

    # -----------------------------
    # tree walk
    # -----------------------------

    def visit(self, expr):
        if isinstance(expr, Trig):
            operand = self.visit(expr.operand)
            if operand != expr.operand:
                # the rewritten angle may itself be resolvable in this pass
                expr = Trig(expr.kind, simplify(operand, self.limits))
            return self.resolve_trig(expr)
        if isinstance(expr, Sqrt):
            operand = self.visit(expr.operand)
            return expr if operand == expr.operand else Sqrt(operand)
        if isinstance(expr, Pow):
            base = self.visit(expr.base)
            exponent = self.visit(expr.exponent)
            if base == expr.base and exponent == expr.exponent:
                return expr
            return Pow(base, exponent)
        if isinstance(expr, (Add, Mul)):
            cls = type(expr)
            operands = flatten(expr, cls)
            rewritten = [self.visit(operand) for operand in operands]
            if any(new != old for new, old in zip(rewritten, operands)):
                return chain(rewritten, cls)
            return self.apply_identities(expr)
        return expr

    # -----------------------------
    # Trig(kind, angle)
    # -----------------------------

    def resolve_trig(self, node):
        operand = node.operand
        if isinstance(operand, PiMultiple):
            return self.resolve_angle(node.kind, operand.coefficient)
        terms = self.normaliser.terms_of(operand)
        if terms is None:
            return UNDEFINED
        coefficient = Fraction(0)
        rest = []
        for term in terms:
            if term.signature == ((PI_KEY, ONE),):
                coefficient = term.coefficient
            else:
                rest.append(term)
        if not rest:
            return self.resolve_angle(node.kind, coefficient)
        return self.resolve_shift(node, coefficient, rest)

    def resolve_angle(self, kind, coefficient):
        sign, reduced = reduce_angle(kind, coefficient)
        original = f"{kind}({format_angle(coefficient)})"
        step = _signed_text(sign, f"{kind}({format_angle(reduced)})")
        unchanged = sign == 1 and reduced == coefficient

        if is_special(reduced):
            value = special_value(kind, reduced)
            if value is None:
                self.prove(f"{original} undefined because cos({format_angle(coefficient)}) = 0")
                return UNDEFINED
            result = simplify(_signed(sign, value), self.limits)
            if unchanged:
                self.prove(f"{original} = {format_expr(result)}")
            else:
                self.prove(f"{original} = {step} = {format_expr(result)}")
            return result

        target_kind = kind
        if reduced > QUARTER:
            target_kind = CO_FUNCTION[kind]
            reduced = HALF - reduced
            unchanged = False
        if unchanged:
            return Trig(kind, PiMultiple(coefficient))
        result = _signed(sign, _apply(target_kind, PiMultiple(reduced)))
        self.prove(f"{original} = {format_expr(result)}")
        return result

    def resolve_shift(self, node, coefficient, rest):
        """kind(x + c·π): make x start with a positive term, then take c modulo π/2."""
        kind = node.kind
        sign = 1
        flipped = rest[0].coefficient < 0
        if flipped:
            rest = [Term(-term.coefficient, term.factors) for term in rest]
            coefficient = -coefficient
            if kind in ("sin", "tan"):
                sign = -1

        reduced = coefficient % PERIOD[kind]
        quarter = int(reduced / HALF)
        reduced -= quarter * HALF
        if not flipped and quarter == 0 and reduced == coefficient:
            return node

        target_kind, shift_sign = SHIFTS[kind][quarter]
        angle_terms = list(rest)
        if reduced:
            angle_terms.append(Term(reduced, ((PiMultiple(1), ONE),)))
        angle = self.normaliser.from_terms(angle_terms)
        result = _signed(sign * shift_sign, _apply(target_kind, angle))
        self.prove(f"{kind}({format_expr(node.operand)}) = {format_expr(result)}")
        return result

    # -----------------------------
    # identities on sums and products
    # -----------------------------

    def apply_identities(self, expr):
        terms = self.normaliser.terms_of(expr)
        if terms is None:
            return expr
        if isinstance(expr, Add):
            combined = self.pythagorean(terms)
            if combined is not None:
                return self.normaliser.from_terms(combined)
        for index, term in enumerate(terms):
            fused = self.tangent(term)
            if fused is not None:
                return self.normaliser.from_terms(terms[:index] + [fused] + terms[index + 1:])
        return expr

    def pythagorean(self, terms):
        """Replace a·sin(x)^2·R + a·cos(x)^2·R by a·R."""
        for i, term in enumerate(terms):
            for base, exponent in term.factors:
                if not (isinstance(base, Trig) and base.kind == "sin" and exponent == 2):
                    continue
                rest = [(b, e) for b, e in term.factors if b != base]
                partner = Term(term.coefficient, _sorted_factors(rest + [(Trig("cos", base.operand), Fraction(2))]))
                for j, other in enumerate(terms):
                    if j != i and other.coefficient == term.coefficient and other.signature == partner.signature:
                        angle = format_expr(base.operand)
                        self.prove(f"sin({angle})^2 + cos({angle})^2 = 1")
                        kept = [t for k, t in enumerate(terms) if k not in (i, j)]
                        return kept + [Term(term.coefficient, _sorted_factors(rest))]
        return None

    def tangent(self, term):
        """Replace sin(x)^e·cos(x)^-e inside one term by tan(x)^e."""
        for base, exponent in term.factors:
            if not (isinstance(base, Trig) and base.kind == "sin"):
                continue
            cosine = Trig("cos", base.operand)
            for other, other_exponent in term.factors:
                if other == cosine and other_exponent == -exponent:
                    angle = format_expr(base.operand)
                    if exponent == 1:
                        self.prove(f"sin({angle})/cos({angle}) = tan({angle})")
                    else:
                        self.prove(f"sin({angle})^({exponent})·cos({angle})^({-exponent}) = tan({angle})^({exponent})")
                    factors = [(b, e) for b, e in term.factors if b != base and b != cosine]
                    factors.append((Trig("tan", base.operand), exponent))
                    return Term(term.coefficient, _sorted_factors(factors))
        return None


def resolve(expr, limits=None):
    """One resolution pass. Returns (tree, proofs); no proofs means nothing changed."""
    if limits is None:
        limits = config_manager.load_limits()
    resolver = TrigResolver(limits)
    result = resolver.visit(expr)
    return result, resolver.proofs
