# Expression.py
"""
Immutable expression tree of the exact engine, and the builder that turns a
postfix token stream into a raw tree.

Every node caches at construction time
- key:   nested tuple used for equality, hashing and canonical ordering
- depth: nesting depth, a chain of Add (or of Mul) counts as one level
- size:  number of nodes
Nothing is ever mutated after __init__; rewriting always builds new nodes.
"""

import logging
from fractions import Fraction

from . import Tokenizer as T
from . import error as E

logger = logging.getLogger(__name__)

# Largest numerator/denominator (in bits) a Rational may hold
MAX_INTEGER_BITS = 12000

TRIG_FUNCTIONS = ("sin", "cos", "tan")


# -----------------------------
# AST node types
# -----------------------------

class Expr:
    """Base class of all nodes."""

    def _finish(self, key, children, node_hash):
        self.key = key
        self._hash = node_hash
        self.size = 1 + sum(child.size for child in children)
        depth = 1
        for child in children:
            if type(child) is type(self) and isinstance(self, (Add, Mul)):
                depth = max(depth, child.depth)
            else:
                depth = max(depth, child.depth + 1)
        self.depth = depth

    def children(self):
        return ()

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Expr):
            return NotImplemented
        return self._hash == other._hash and self.key == other.key

    def __hash__(self):
        return self._hash


class Rational(Expr):
    """Exact rational literal, always in lowest terms with a positive denominator."""
    def __init__(self, numerator, denominator=1):
        if denominator == 0:
            raise E.EvaluationUndefined("Division by Zero", code="3003")
        value = Fraction(numerator, denominator)
        if max(value.numerator.bit_length(), value.denominator.bit_length()) > MAX_INTEGER_BITS:
            raise E.StructuralLimitExceeded("Number too big.", code="3026")
        self.value = value
        key = ("Q", value.numerator, value.denominator)
        self._finish(key, (), hash(key))

    @property
    def numerator(self):
        return self.value.numerator

    @property
    def denominator(self):
        return self.value.denominator

    def is_integer(self):
        return self.value.denominator == 1

    def __repr__(self):
        return f"Rational({self.value})"


class PiMultiple(Expr):
    """coefficient * π"""
    def __init__(self, coefficient):
        self.coefficient = Fraction(coefficient)
        key = ("P", self.coefficient.numerator, self.coefficient.denominator)
        self._finish(key, (), hash(key))

    def __repr__(self):
        return f"PiMultiple({self.coefficient})"


class Sqrt(Expr):
    def __init__(self, operand):
        self.operand = operand
        self._finish(("S", operand.key), (operand,), hash(("S", operand._hash)))

    def children(self):
        return (self.operand,)

    def __repr__(self):
        return f"Sqrt({self.operand!r})"


class _Binary(Expr):
    tag = "?"

    def __init__(self, left, right):
        self.left = left
        self.right = right
        # left-leaning chains share one flat key, so comparing long sums does not recurse per term
        if type(left) is type(self):
            key = left.key + (right.key,)
        else:
            key = (self.tag, left.key, right.key)
        self._finish(key, (left, right), hash((self.tag, left._hash, right._hash)))

    def children(self):
        return (self.left, self.right)

    def __repr__(self):
        return f"{type(self).__name__}({self.left!r}, {self.right!r})"


class Add(_Binary):
    tag = "A"


class Mul(_Binary):
    tag = "M"


class Pow(Expr):
    """base ^ exponent. The exponent is a Rational in canonical trees."""
    def __init__(self, base, exponent):
        if not isinstance(exponent, Expr):
            exponent = Rational(exponent)
        self.base = base
        self.exponent = exponent
        self._finish(("W", base.key, exponent.key), (base, exponent),
                     hash(("W", base._hash, exponent._hash)))

    def children(self):
        return (self.base, self.exponent)

    def __repr__(self):
        return f"Pow({self.base!r}, {self.exponent!r})"


class Trig(Expr):
    """Unresolved sin/cos/tan application."""
    def __init__(self, kind, operand):
        if kind not in TRIG_FUNCTIONS:
            raise E.MathError(f"Unknown trigonometric function: {kind}", code="9999")
        self.kind = kind
        self.operand = operand
        self._finish(("T", kind, operand.key), (operand,), hash(("T", kind, operand._hash)))

    def children(self):
        return (self.operand,)

    def __repr__(self):
        return f"Trig({self.kind!r}, {self.operand!r})"


class Undefined(Expr):
    """Absorbing value of a mathematically undefined result."""
    def __init__(self):
        self._finish(("U",), (), hash(("U",)))

    def __repr__(self):
        return "Undefined()"


UNDEFINED = Undefined()


# -----------------------------
# Tree helpers
# -----------------------------

def flatten(expr, cls):
    """Return the operands of an Add (or Mul) chain from left to right, without recursion."""
    operands = []
    stack = [expr]
    while stack:
        node = stack.pop()
        if type(node) is cls:
            stack.append(node.right)
            stack.append(node.left)
        else:
            operands.append(node)
    return operands


def chain(operands, cls):
    """Inverse of flatten: left-leaning chain of cls over operands."""
    result = operands[0]
    for operand in operands[1:]:
        result = cls(result, operand)
    return result


def negate(expr):
    if isinstance(expr, Rational):
        return Rational(-expr.value)
    if isinstance(expr, PiMultiple):
        return PiMultiple(-expr.coefficient)
    return Mul(Rational(-1), expr)


def contains_undefined(expr):
    stack = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, Undefined):
            return True
        stack.extend(node.children())
    return False


def check_bounds(expr, limits):
    """Raise StructuralLimitExceeded when expr is deeper or larger than the limits allow."""
    if expr.depth > limits.max_depth:
        raise E.StructuralLimitExceeded(
            f"Expression nested too deeply ({expr.depth} > {limits.max_depth}).", code="3031")
    if expr.size > limits.max_nodes:
        raise E.StructuralLimitExceeded(
            f"Expression too large ({expr.size} > {limits.max_nodes} nodes).", code="3032")


# -----------------------------
# Builder (postfix → tree)
# -----------------------------

def _pop_operand(stack, token):
    if not stack:
        raise E.SyntaxError(f"Missing Number for '{token.text}'.", code=E.MISSING_OPERAND,
                            position=token.position)
    return stack.pop()


def _binary(operator, left, right):
    if operator == "+":
        return Add(left, right)
    if operator == "-":
        return Add(left, negate(right))
    if operator == "*":
        return Mul(left, right)
    if operator == "/":
        return Mul(left, Pow(right, Rational(-1)))
    if operator == "^":
        return Pow(left, right)
    raise E.SyntaxError(f"Unexpected Token: {operator}", code=E.UNEXPECTED_TOKEN)


def build_ast(rpn, limits):
    """Reduce a postfix token list to a raw tree.

    Binary operators pop two operands, 'neg' and functions pop one. Stack
    underflow or operands left over at the end raise SyntaxError.
    """
    stack = []
    for token in rpn:
        if token.kind == T.NUMBER:
            node = Rational(token.value)
        elif token.kind == T.CONSTANT:
            node = PiMultiple(1)
        elif token.kind == T.FUNCTION:
            operand = _pop_operand(stack, token)
            node = Sqrt(operand) if token.value == "sqrt" else Trig(token.value, operand)
        elif token.kind == T.OPERATOR and token.value == "neg":
            node = negate(_pop_operand(stack, token))
        elif token.kind == T.OPERATOR:
            right = _pop_operand(stack, token)
            left = _pop_operand(stack, token)
            node = _binary(token.value, left, right)
        else:
            raise E.SyntaxError(f"Unexpected Token: {token.text}", code=E.UNEXPECTED_TOKEN,
                                position=token.position)
        check_bounds(node, limits)
        stack.append(node)

    if not stack:
        raise E.SyntaxError("Empty expression.", code=E.EMPTY_EXPRESSION)
    if len(stack) > 1:
        raise E.SyntaxError("Missing operator between operands.", code=E.UNEXPECTED_TOKEN)
    logger.debug("Built tree of %d nodes, depth %d", stack[0].size, stack[0].depth)
    return stack[0]
