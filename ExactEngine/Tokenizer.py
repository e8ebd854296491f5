# Tokenizer.py
"""
Tokenizer: converts raw input text into a flat list of Token objects.

- whitespace is ignored, names are case-insensitive
- π is accepted as 'pi' or 'π', √ as 'sqrt'
- integer, decimal ('1.25') and fraction ('12/34') literals become exact Fractions
- implicit multiplication is made explicit ('2π' -> '2', '*', 'π')
Unary and binary minus are not told apart here, that is the RPN converter's job.
"""

import logging
from fractions import Fraction

from . import config_manager
from . import error as E

logger = logging.getLogger(__name__)

# Token kinds
NUMBER = "number"
CONSTANT = "constant"
FUNCTION = "function"
OPERATOR = "operator"
LEFT_PAREN = "("
RIGHT_PAREN = ")"

DIGITS = "0123456789"
NAME_START = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_"
NAME_CHARS = NAME_START + DIGITS

Operations = ["+", "-", "*", "/", "^"]
Science_Operations = ["sin", "cos", "tan", "sqrt"]
Constants = ["pi"]

# Typographic operators accepted as their ASCII counterpart
OPERATOR_ALIASES = {"×": "*", "·": "*", "÷": "/", "−": "-"}


class Token:
    """One lexical unit. value is a Fraction for numbers, a lower-case name or operator otherwise."""
    def __init__(self, kind, value, text, position):
        self.kind = kind
        self.value = value
        self.text = text
        self.position = position

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value

    def __hash__(self):
        return hash((self.kind, self.value))

    def __str__(self):
        return self.text

    def __repr__(self):
        return f"Token({self.kind}, {self.text!r}, {self.position})"


def format_tokens(tokens):
    """Space separated display form used by the trace."""
    return " ".join(token.text for token in tokens)


def _decimal_value(literal):
    integer_part, _, fraction_part = literal.partition(".")
    scale = 10 ** len(fraction_part)
    return Fraction(int(integer_part or "0") * scale + int(fraction_part or "0"), scale)


def _literal_too_long(digit_count, limits, position):
    if digit_count > limits.max_literal_digits:
        raise E.StructuralLimitExceeded(
            f"Number too big: literal with {digit_count} digits.", code="3026", position=position)


def _fraction_allowed(tokens):
    """A literal 'a/b' may be folded into one token only where it means the same as a / b."""
    index = len(tokens) - 1
    # skip signs directly in front of the literal
    while index >= 0 and tokens[index].kind == OPERATOR and tokens[index].value in ("+", "-"):
        if index == 0 or tokens[index - 1].kind in (OPERATOR, LEFT_PAREN, FUNCTION):
            index -= 1
        else:
            break
    if index < 0:
        return True
    previous = tokens[index]
    if previous.kind == FUNCTION:
        return False
    if previous.kind == OPERATOR and previous.value in ("^", "/"):
        return False
    return True


def _read_number(problem, b, tokens, limits):
    """Read the literal starting at b. Returns (token, index after the literal)."""
    start = b
    has_dot = False
    while b < len(problem) and (problem[b] in DIGITS or problem[b] == "."):
        if problem[b] == ".":
            if has_dot:
                raise E.LexError("More than one '.' in one number.", code="3008", position=b)
            has_dot = True
        b += 1

    literal = problem[start:b]
    if literal == ".":
        raise E.LexError("Invalid character: '.'", code="3001", position=start)
    _literal_too_long(len(literal) - has_dot, limits, start)
    value = _decimal_value(literal)

    # --- Literal fraction: digits '/' digits, no spaces ---
    if (not has_dot and b + 1 < len(problem) and problem[b] == "/"
            and problem[b + 1] in DIGITS and _fraction_allowed(tokens)):
        end = b + 1
        while end < len(problem) and problem[end] in DIGITS:
            end += 1
        following = problem[end:].lstrip()[:1]
        if following not in (".", "^"):
            _literal_too_long(end - b - 1, limits, b + 1)
            denominator = int(problem[b + 1:end])
            if denominator == 0:
                raise E.EvaluationUndefined(
                    f"Division by Zero in fraction '{problem[start:end]}'.", code="3003", position=start)
            return Token(NUMBER, Fraction(int(literal), denominator), problem[start:end], start), end

    return Token(NUMBER, value, literal, start), b


def _read_name(problem, b):
    start = b
    while b < len(problem) and problem[b] in NAME_CHARS:
        b += 1
    text = problem[start:b]
    name = text.lower()
    if name in Constants:
        return Token(CONSTANT, "pi", "π", start), b
    if name in Science_Operations:
        return Token(FUNCTION, name, name, start), b
    raise E.LexError(f"Unknown name: '{text}'", code="3002", position=start)


# --- Implicit multiplication ---
# number, π or ')' followed by π, a function or '(' ; π or ')' followed by a number
VALUE_END = (NUMBER, CONSTANT, RIGHT_PAREN)
VALUE_START = (CONSTANT, FUNCTION, LEFT_PAREN)


def _insert_implicit_multiplication(tokens):
    result = []
    for token in tokens:
        if result:
            previous = result[-1]
            if (previous.kind in VALUE_END and token.kind in VALUE_START) or \
                    (previous.kind in (CONSTANT, RIGHT_PAREN) and token.kind == NUMBER):
                result.append(Token(OPERATOR, "*", "*", token.position))
        result.append(token)
    return result


def tokenize(problem, limits=None):
    """Convert raw input text into a token list, or raise LexError at the first bad character."""
    if limits is None:
        limits = config_manager.load_limits()
    tokens = []
    b = 0

    while b < len(problem):
        current_char = problem[b]

        # --- Whitespace (ignored) ---
        if current_char.isspace():
            b += 1
            continue

        # --- Numbers: digits, decimal separator, literal fractions ---
        if current_char in DIGITS or current_char == ".":
            token, b = _read_number(problem, b, tokens, limits)

        # --- Constant π and the root sign ---
        elif current_char == "π":
            token = Token(CONSTANT, "pi", "π", b)
            b += 1
        elif current_char == "√":
            token = Token(FUNCTION, "sqrt", "√", b)
            b += 1

        # --- Names: pi, sin, cos, tan, sqrt ---
        elif current_char in NAME_START:
            token, b = _read_name(problem, b)

        # --- Operators ---
        elif current_char in Operations:
            token = Token(OPERATOR, current_char, current_char, b)
            b += 1
        elif current_char in OPERATOR_ALIASES:
            operator = OPERATOR_ALIASES[current_char]
            token = Token(OPERATOR, operator, operator, b)
            b += 1

        # --- Parentheses ---
        elif current_char == "(":
            token = Token(LEFT_PAREN, "(", "(", b)
            b += 1
        elif current_char == ")":
            token = Token(RIGHT_PAREN, ")", ")", b)
            b += 1

        else:
            raise E.LexError(f"Invalid character: '{current_char}'", code="3001", position=b)

        tokens.append(token)
        if len(tokens) > limits.max_tokens:
            raise E.StructuralLimitExceeded(
                f"Expression too large: more than {limits.max_tokens} tokens.", code="3032", position=b)

    tokens = _insert_implicit_multiplication(tokens)
    if len(tokens) > limits.max_tokens:
        raise E.StructuralLimitExceeded(
            f"Expression too large: more than {limits.max_tokens} tokens.", code="3032")
    logger.debug("Tokens: %s", format_tokens(tokens))
    return tokens
