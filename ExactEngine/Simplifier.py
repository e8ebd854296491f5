# Simplifier.py
"""
Exact simplifier.

Every tree is expanded into a sum of terms

    coefficient * base_1^e_1 * ... * base_n^e_n

with a Fraction coefficient, Fraction exponents and bases that are primes
(radicals), π, unresolved trig values, primitive sums or opaque powers.
Like terms are collected, equal bases multiply by adding exponents and the
integer part of a prime's exponent moves into the coefficient, and the
reciprocal factors of a term are joined into one expanded denominator.
Rebuilding the tree from that form sorts terms and factors by key, so equal
values written differently end in one canonical tree.

A sum is a dict {signature: Term}; None stands for Undefined and absorbs
every operation. simplify() repeats the round trip until the tree is stable.
"""

import logging
import math
from fractions import Fraction
from functools import lru_cache

from . import config_manager
from . import error as E
from .Expression import (Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig, Undefined, UNDEFINED,
                         MAX_INTEGER_BITS, chain, check_bounds, flatten)

logger = logging.getLogger(__name__)

ONE = Fraction(1)
HALF = Fraction(1, 2)
PI = PiMultiple(1)

# Trial division bound for radicands; larger cofactors are kept whole
TRIAL_DIVISION_LIMIT = 10000
MAX_ROOT_DEGREE = 64


# -----------------------------
# Integer helpers
# -----------------------------

def integer_root(n, k):
    """Largest r with r**k <= n, for n >= 0."""
    if n < 2:
        return n
    if k == 2:
        return math.isqrt(n)
    x = 1 << ((n.bit_length() + k - 1) // k)
    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            return x
        x = y


@lru_cache(maxsize=4096)
def factorize(n):
    """Return {base: multiplicity} for n >= 1 as a sorted tuple of pairs.

    Bases are primes below TRIAL_DIVISION_LIMIT plus at most one cofactor,
    which is reduced to its root when it is a perfect power.
    """
    factors = {}
    d = 2
    while d <= TRIAL_DIVISION_LIMIT and d * d <= n:
        while n % d == 0:
            factors[d] = factors.get(d, 0) + 1
            n //= d
        d += 1 if d == 2 else 2
    if n > 1:
        base, multiplicity = n, 1
        for k in range(min(MAX_ROOT_DEGREE, n.bit_length()), 1, -1):
            root = integer_root(n, k)
            if root ** k == n:
                base, multiplicity = root, k
                break
        factors[base] = factors.get(base, 0) + multiplicity
    return tuple(sorted(factors.items()))


def rational_power(value, n):
    """value ** n for a Fraction and an int, refusing results that would not fit a Rational."""
    if n == 0:
        return ONE
    if abs(value) == 1:
        return value ** n
    size = max(value.numerator.bit_length(), value.denominator.bit_length())
    if size * abs(n) > MAX_INTEGER_BITS:
        raise E.StructuralLimitExceeded(f"Number too big: power {n} of a {size}-bit number.", code="3026")
    return value ** n


# -----------------------------
# Terms
# -----------------------------

class Term:
    """coefficient * product(base ** exponent for base, exponent in factors)"""
    def __init__(self, coefficient, factors=()):
        self.coefficient = coefficient
        self.factors = tuple(factors)
        self.signature = tuple((base.key, exponent) for base, exponent in self.factors)

    def is_constant(self):
        return not self.factors

    def __repr__(self):
        return f"Term({self.coefficient}, {list(self.factors)})"


def _only(terms):
    return next(iter(terms.values()))


def _unexpanded(terms):
    """True for a one-term sum carrying a sum to a positive integer power."""
    if len(terms) != 1:
        return False
    return any(isinstance(base, Add) and exponent.denominator == 1 and exponent > 0
               for base, exponent in _only(terms).factors)


def _by_base(factor):
    return factor[0].key


def _ordering(term):
    # constants last, everything else by signature
    return (term.is_constant(), term.signature)


class Normaliser:
    """Converts trees to sums of terms and back, under one set of limits."""

    def __init__(self, limits):
        self.limits = limits
        # sums of subtrees converted so far
        self._sums = {}

    # --- small constructors ---

    def constant(self, value):
        if value == 0:
            return {}
        return {(): Term(Fraction(value))}

    def single(self, term):
        if term.coefficient == 0:
            return {}
        return {term.signature: term}

    def ordered(self, terms):
        return sorted(terms.values(), key=_ordering)

    # -----------------------------
    # tree -> sum
    # -----------------------------

    def to_sum(self, expr):
        if expr in self._sums:
            return self._sums[expr]
        result = self._to_sum(expr)
        self._sums[expr] = result
        return result

    def _to_sum(self, expr):
        if isinstance(expr, Undefined):
            return None
        if isinstance(expr, Rational):
            return self.constant(expr.value)
        if isinstance(expr, PiMultiple):
            return self.single(Term(expr.coefficient, ((PI, ONE),)))
        if isinstance(expr, Add):
            parts = []
            for operand in flatten(expr, Add):
                part = self.to_sum(operand)
                if part is None:
                    return None
                parts.append(part)
            result = {}
            for part in parts:
                result = self.add(result, part)
            return result
        if isinstance(expr, Mul):
            parts = []
            for operand in flatten(expr, Mul):
                part = self.to_sum(operand)
                if part is None:
                    return None
                parts.append(part)
            result = self.constant(1)
            for part in parts:
                result = self.mul(result, part)
                if result is None:
                    return None
            return result
        if isinstance(expr, Sqrt):
            base = self.to_sum(expr.operand)
            if base is None:
                return None
            return self.power(base, HALF)
        if isinstance(expr, Pow):
            return self._power_node(expr)
        if isinstance(expr, Trig):
            operand = self.to_sum(expr.operand)
            if operand is None:
                return None
            return self.single(Term(ONE, ((Trig(expr.kind, self.from_sum(operand)), ONE),)))
        raise E.MathError(f"Unknown expression node: {expr!r}", code="9999")

    def _power_node(self, expr):
        base = self.to_sum(expr.base)
        exponent = self.to_sum(expr.exponent)
        if base is None or exponent is None:
            return None
        if not exponent:
            return self.power(base, Fraction(0))
        if len(exponent) == 1 and _only(exponent).is_constant():
            return self.power(base, _only(exponent).coefficient)
        # non-rational exponent: kept as an opaque power
        if len(base) == 1 and _only(base).is_constant() and _only(base).coefficient == 1:
            return base
        opaque = Pow(self.from_sum(base), self.from_sum(exponent))
        return self.single(Term(ONE, ((opaque, ONE),)))

    # -----------------------------
    # arithmetic on sums
    # -----------------------------

    def add(self, a, b):
        result = dict(a)
        for signature, term in b.items():
            if signature in result:
                coefficient = result[signature].coefficient + term.coefficient
                if coefficient == 0:
                    del result[signature]
                else:
                    result[signature] = Term(coefficient, term.factors)
            else:
                result[signature] = term
        return result

    def mul(self, a, b):
        if not a or not b:
            return {}
        if len(a) == 1 and len(b) == 1:
            return self.mul_terms(_only(a), _only(b))
        if len(b) == 1:
            merged = self._absorb(a, _only(b))
            if merged is not None:
                return merged
        if len(a) == 1:
            merged = self._absorb(b, _only(a))
            if merged is not None:
                return merged
        # a product already kept unexpanded takes further sums as factors
        if _unexpanded(a) or _unexpanded(b):
            return self.keep_product(a, b)
        product = self.distribute(a, b)
        if product is not None:
            return product
        # too many terms: keep the product of the two sums unexpanded
        return self.keep_product(a, b)

    def keep_product(self, a, b):
        left, right = self.as_factor(a), self.as_factor(b)
        return self.make_term(left.coefficient * right.coefficient, left.factors + right.factors, expand=False)

    def distribute(self, a, b):
        """Multiply out a * b, or None when the result would exceed max_terms."""
        if len(a) * len(b) > self.limits.max_terms:
            return None
        result = {}
        for left in a.values():
            for right in b.values():
                result = self.add(result, self.mul_terms(left, right))
        return result

    def _absorb(self, terms, term):
        """Multiply a sum into a term that already carries that sum as a power base."""
        for keep_sign in (False, True):
            content, base = self.primitive(terms, keep_sign)
            for factor, exponent in term.factors:
                if factor == base:
                    return self.mul_terms(Term(content, ((base, ONE),)), term)
        return None

    def as_factor(self, terms):
        if len(terms) == 1:
            return _only(terms)
        content, base = self.primitive(terms)
        return Term(content, ((base, ONE),))

    def mul_terms(self, left, right):
        exponents = {}
        for base, exponent in left.factors + right.factors:
            entry = exponents.get(base.key)
            if entry is None:
                exponents[base.key] = [base, exponent]
            else:
                entry[1] += exponent
        return self.make_term(left.coefficient * right.coefficient, exponents.values())

    def make_term(self, coefficient, factor_pairs, expand=True):
        """Normalise one term: drop zero exponents, move whole prime powers into the coefficient.

        Positive integer powers of sums are multiplied out when expand is set
        and the result stays within max_terms; negative ones are joined into a
        single denominator (see divide). The result is therefore a sum.
        """
        merged = {}
        for base, exponent in factor_pairs:
            entry = merged.get(base.key)
            if entry is None:
                merged[base.key] = [base, Fraction(exponent)]
            else:
                entry[1] += exponent

        factors = []
        pending = []
        denominators = []
        for base, exponent in merged.values():
            if exponent == 0:
                continue
            if isinstance(base, Rational):
                whole = math.floor(exponent)
                if whole:
                    coefficient *= rational_power(base.value, whole)
                    exponent -= whole
                if exponent:
                    factors.append((base, exponent))
            elif expand and isinstance(base, Add) and exponent.denominator == 1:
                if exponent > 0:
                    pending.append((base, int(exponent)))
                else:
                    denominators.append((base, int(-exponent)))
            else:
                factors.append((base, exponent))

        factors.sort(key=_by_base)
        result = self.single(Term(coefficient, factors))
        if denominators and result:
            result = self.divide(_only(result), denominators)
        kept = []
        for base, count in pending:
            expanded = self.expand_power(self.to_sum(base), count)
            product = self.distribute(result, expanded) if expanded is not None else None
            if product is None:
                kept.append((base, Fraction(count)))
            else:
                result = product
        if kept:
            grown = {}
            for term in result.values():
                grown = self.add(grown, self.make_term(term.coefficient, term.factors + tuple(kept),
                                                       expand=False))
            result = grown
        return result

    def divide(self, term, denominators):
        """term / product(base ** count), with one expanded denominator.

        Every reciprocal factor of the term is multiplied into the denominator
        too, so 1/((π + 1)·cos(3)) becomes 1/(π·cos(3) + cos(3)): the form the
        same value takes when its denominator is written out as one product.
        Denominators of the shape a + b√N are rationalised. Past max_terms the
        factors stay as they are.
        """
        numerator = [(base, exponent) for base, exponent in term.factors if exponent > 0]
        denominator = self.constant(1)
        for base, exponent in term.factors:
            if exponent < 0 and denominator is not None:
                denominator = self.distribute(denominator, self.single(Term(ONE, ((base, -exponent),))))
        for base, count in denominators:
            expanded = self.expand_power(self.to_sum(base), count)
            if expanded is None or denominator is None:
                denominator = None
                break
            denominator = self.distribute(denominator, expanded)

        if denominator and (len(denominator) == 1 or self.reciprocal(denominator) is not None):
            product = self.distribute(self.single(Term(term.coefficient, numerator)),
                                      self.integer_power(denominator, -1))
            if product is not None:
                return product
        elif denominator:
            content, base = self.primitive(denominator)
            numerator.append((base, Fraction(-1)))
            return self.single(Term(term.coefficient / content, sorted(numerator, key=_by_base)))
        kept = list(term.factors) + [(base, Fraction(-count)) for base, count in denominators]
        return self.single(Term(term.coefficient, sorted(kept, key=_by_base)))

    def expand_power(self, terms, count):
        """terms ** count multiplied out, or None when it would grow past the limits."""
        if count > self.limits.max_expand_exponent:
            return None
        result = self.constant(1)
        for _ in range(count):
            result = self.distribute(result, terms)
            if result is None:
                return None
        return result

    # -----------------------------
    # powers
    # -----------------------------

    def power(self, terms, exponent):
        if exponent == 0:
            if not terms:
                logger.debug("0^0 is undefined")
                return None
            return self.constant(1)
        if not terms:
            if exponent < 0:
                logger.debug("Division by zero becomes Undefined")
                return None
            return {}
        if exponent.denominator == 1:
            return self.integer_power(terms, int(exponent))
        if len(terms) == 1:
            return self.term_root(_only(terms), exponent)
        return self.sum_root(terms, exponent)

    def integer_power(self, terms, n):
        if len(terms) == 1:
            term = _only(terms)
            return self.make_term(rational_power(term.coefficient, n),
                                  [(base, exponent * n) for base, exponent in term.factors])
        if n > 0:
            expanded = self.expand_power(terms, n)
            if expanded is not None:
                return expanded
            content, base = self.primitive(terms)
            return self.make_term(rational_power(content, n), [(base, Fraction(n))], expand=False)
        inverse = self.reciprocal(terms)
        if inverse is not None:
            return self.integer_power(inverse, -n)
        content, base = self.primitive(terms)
        return self.make_term(rational_power(content, n), [(base, Fraction(n))])

    def reciprocal(self, terms):
        """1 / (a + b√N) = (a - b√N) / (a² - b²N); None for any other shape."""
        if len(terms) != 2:
            return None
        radical, constant = self.ordered(terms)
        if not constant.is_constant():
            return None
        if not all(isinstance(base, Rational) and exponent == HALF for base, exponent in radical.factors):
            return None
        radicand = 1
        for base, _ in radical.factors:
            radicand *= base.value.numerator
        a, b = constant.coefficient, radical.coefficient
        norm = a * a - b * b * radicand
        if norm == 0:
            return None
        return {(): Term(a / norm), radical.signature: Term(-b / norm, radical.factors)}

    def positive_root(self, value, exponent):
        """value ** exponent for a positive Fraction, as a Term of prime radicals."""
        exponents = {}
        for prime, multiplicity in factorize(value.numerator):
            exponents[prime] = exponents.get(prime, 0) + multiplicity * exponent
        for prime, multiplicity in factorize(value.denominator):
            exponents[prime] = exponents.get(prime, 0) - multiplicity * exponent
        coefficient = ONE
        factors = []
        for prime, total in sorted(exponents.items()):
            whole = math.floor(total)
            coefficient *= rational_power(Fraction(prime), whole)
            if total - whole:
                factors.append((Rational(prime), total - whole))
        return Term(coefficient, factors)

    def term_root(self, term, exponent):
        """Non-integer power of a single term.

        Odd roots split over every factor. Even roots split over factors known
        to be positive; the rest stays together under one opaque base.
        """
        odd = exponent.denominator % 2 == 1
        coefficient = term.coefficient
        positive = [(b, e) for b, e in term.factors if self.is_positive(b)]
        unknown = [(b, e) for b, e in term.factors if not self.is_positive(b)]
        sign = 1
        if coefficient < 0 and (odd or not unknown):
            if not odd:
                logger.debug("Even root of a negative value is undefined")
                return None
            if exponent.numerator % 2:
                sign = -1
            coefficient = -coefficient

        factors = [(b, e * exponent) for b, e in positive]
        if odd:
            factors += [(b, e * exponent) for b, e in unknown]
        elif coefficient > 0 and len(unknown) == 1 and unknown[0][1].numerator % 2 == 1:
            factors.append((unknown[0][0], unknown[0][1] * exponent))
        elif unknown or coefficient < 0:
            inner_sign = -1 if coefficient < 0 else 1
            inner = self.make_term(Fraction(inner_sign), unknown, expand=False)
            factors.append((self.from_sum(inner), exponent))
            coefficient = abs(coefficient)

        root = self.positive_root(coefficient, exponent)
        return self.mul_terms(Term(Fraction(sign) * root.coefficient, root.factors), Term(ONE, factors))

    def sum_root(self, terms, exponent):
        sign = self.sign_of(terms)
        outer = 1
        if sign < 0:
            if exponent.denominator % 2 == 0:
                logger.debug("Even root of a negative sum is undefined")
                return None
            terms = {signature: Term(-term.coefficient, term.factors) for signature, term in terms.items()}
            outer = -1 if exponent.numerator % 2 else 1
        content, base = self.primitive(terms, keep_sign=True)
        root = self.positive_root(content, exponent)
        return self.mul_terms(Term(Fraction(outer) * root.coefficient, root.factors), Term(ONE, ((base, exponent),)))

    def primitive(self, terms, keep_sign=False):
        """Split a sum into content * primitive sum with coprime integer coefficients.

        Unless keep_sign is set, the sign goes into the content so the primitive
        sum starts with a positive term. Returns (content, primitive sum as tree).
        """
        ordered = self.ordered(terms)
        numerators = 0
        denominators = 1
        for term in ordered:
            numerators = math.gcd(numerators, term.coefficient.numerator)
            denominators = denominators * term.coefficient.denominator // math.gcd(denominators, term.coefficient.denominator)
        content = Fraction(numerators, denominators)
        if not keep_sign and ordered[0].coefficient < 0:
            content = -content
        primitive = {signature: Term(term.coefficient / content, term.factors) for signature, term in terms.items()}
        return content, self.from_sum(primitive)

    # -----------------------------
    # signs
    # -----------------------------

    def is_positive(self, base):
        """True for bases known to be > 0: primes, π, first-octant trig values and positive sums."""
        if isinstance(base, Rational):
            return base.value > 0
        if isinstance(base, PiMultiple):
            return base.coefficient > 0
        if isinstance(base, Trig):
            angle = base.operand
            return isinstance(angle, PiMultiple) and 0 < angle.coefficient < HALF
        if isinstance(base, Add):
            terms = self.to_sum(base)
            return terms is not None and self.sign_of(terms) > 0
        if isinstance(base, Pow):
            return self.is_positive(base.base)
        return False

    def sign_of(self, terms):
        """+1 or -1 when every term has that sign for sure, 0 when unknown."""
        signs = set()
        for term in terms.values():
            if not all(self.is_positive(base) for base, _ in term.factors):
                return 0
            signs.add(1 if term.coefficient > 0 else -1)
        if len(signs) == 1:
            return signs.pop()
        return 0

    # -----------------------------
    # sum -> tree
    # -----------------------------

    def from_sum(self, terms):
        if terms is None:
            return UNDEFINED
        if not terms:
            return Rational(0)
        tree = chain([self.term_to_expr(term) for term in self.ordered(terms)], Add)
        # every intermediate tree is built here, so this bounds them all
        if tree.size > self.limits.max_nodes:
            raise E.StructuralLimitExceeded(
                f"Expression too large ({tree.size} > {self.limits.max_nodes} nodes).", code="3032")
        return tree

    def from_terms(self, terms):
        result = {}
        for term in terms:
            result = self.add(result, self.single(term))
        return self.from_sum(result)

    def term_to_expr(self, term):
        coefficient = term.coefficient
        pi_exponent = None
        radicals = {}
        others = []
        for base, exponent in term.factors:
            if base == PI:
                pi_exponent = exponent
            elif isinstance(base, Rational):
                radicals.setdefault(exponent.denominator, []).append((base.value.numerator, exponent.numerator))
            else:
                others.append((base, exponent))

        parts = []
        if pi_exponent == 1:
            parts.append(PiMultiple(coefficient))
        else:
            if coefficient != 1 or not term.factors:
                parts.append(Rational(coefficient))
            if pi_exponent is not None:
                others.insert(0, (PI, pi_exponent))

        # radicals sharing a root degree are written under one sign: √2·√3 -> √6
        for degree in sorted(radicals):
            radicand = 1
            for prime, power in radicals[degree]:
                radicand *= prime ** power
            if degree == 2:
                parts.append(Sqrt(Rational(radicand)))
            else:
                parts.append(Pow(Rational(radicand), Rational(1, degree)))

        for base, exponent in others:
            if exponent == 1:
                parts.append(base)
            elif exponent == HALF:
                parts.append(Sqrt(base))
            else:
                parts.append(Pow(base, Rational(exponent)))
        return chain(parts, Mul)

    def normalise(self, expr):
        return self.from_sum(self.to_sum(expr))

    def terms_of(self, expr):
        """Ordered terms of a tree, or None when it is Undefined."""
        terms = self.to_sum(expr)
        if terms is None:
            return None
        return self.ordered(terms)


# -----------------------------
# Public entry point
# -----------------------------

def simplify(expr, limits=None):
    """Rewrite expr to its canonical tree, iterating until it no longer changes.

    simplify(simplify(e)) == simplify(e): the loop only returns a tree that
    normalises to itself.
    """
    if limits is None:
        limits = config_manager.load_limits()
    normaliser = Normaliser(limits)
    current = expr
    for iteration in range(limits.max_iterations):
        result = normaliser.normalise(current)
        check_bounds(result, limits)
        if result == current:
            logger.debug("Simplified after %d pass(es)", iteration + 1)
            return current
        current = result
    raise E.StructuralLimitExceeded("Simplification did not converge.", code="3033")
