# RpnConverter.py
"""
Shunting-yard conversion of the token list into postfix (RPN) order.

Precedence, highest first:
    function application > '^' (right-assoc) > unary minus > '* /' > '+ -'
Functions wait on the operator stack and leave it together with their
closing parenthesis; a function written without parentheses ('√2') applies
to the next operand only. Unary minus is emitted as the operator 'neg'.
"""

import logging

from . import Tokenizer as T
from . import error as E

logger = logging.getLogger(__name__)

PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2, "neg": 3, "^": 4}
FUNCTION_PRECEDENCE = 5
RIGHT_ASSOCIATIVE = ["^"]


def format_rpn(rpn):
    return " ".join(token.text for token in rpn)


def _precedence(token):
    if token.kind == T.FUNCTION:
        return FUNCTION_PRECEDENCE
    return PRECEDENCE[token.value]


def _pops_before(top, incoming):
    """True when the operator on top of the stack must be output before incoming is pushed."""
    if top.kind == T.LEFT_PAREN:
        return False
    if _precedence(top) > _precedence(incoming):
        return True
    return _precedence(top) == _precedence(incoming) and incoming.value not in RIGHT_ASSOCIATIVE


def _missing_operand(previous, token=None):
    """Pick the error for a place where an operand was expected but none came."""
    position = token.position if token is not None else None
    if previous is None:
        return E.SyntaxError("Empty expression.", code=E.EMPTY_EXPRESSION)
    if previous.kind == T.OPERATOR:
        return E.SyntaxError(f"Missing Number after operator: '{previous.text}'",
                             code=E.TRAILING_OPERATOR, position=previous.position)
    return E.SyntaxError(f"Missing Number after '{previous.text}'.", code=E.MISSING_OPERAND,
                         position=position if position is not None else previous.position)


def to_rpn(tokens):
    """Return the tokens in postfix order or raise SyntaxError."""
    output = []
    operators = []
    expect_operand = True
    previous = None
    open_parens = 0

    for token in tokens:
        if token.kind in (T.NUMBER, T.CONSTANT):
            if not expect_operand:
                raise E.SyntaxError(f"Unexpected Token: {token.text}", code=E.UNEXPECTED_TOKEN,
                                    position=token.position)
            output.append(token)
            expect_operand = False

        elif token.kind in (T.FUNCTION, T.LEFT_PAREN):
            if not expect_operand:
                raise E.SyntaxError(f"Unexpected Token: {token.text}", code=E.UNEXPECTED_TOKEN,
                                    position=token.position)
            if token.kind == T.LEFT_PAREN:
                open_parens += 1
            operators.append(token)

        elif token.kind == T.RIGHT_PAREN:
            if open_parens == 0:
                raise E.SyntaxError("Missing '('. ", code=E.UNMATCHED_CLOSING, position=token.position)
            if expect_operand:
                raise _missing_operand(previous, token)
            while operators[-1].kind != T.LEFT_PAREN:
                output.append(operators.pop())
            operators.pop()
            open_parens -= 1
            # the function owning this parenthesis is complete now
            if operators and operators[-1].kind == T.FUNCTION:
                output.append(operators.pop())
            expect_operand = False

        elif token.kind == T.OPERATOR:
            if expect_operand:
                if token.value == "-":
                    operators.append(T.Token(T.OPERATOR, "neg", "neg", token.position))
                elif token.value != "+":
                    raise E.SyntaxError(f"Missing Number before '{token.text}'.", code=E.MISSING_OPERAND,
                                        position=token.position)
                # unary '+' is dropped
            else:
                while operators and _pops_before(operators[-1], token):
                    output.append(operators.pop())
                operators.append(token)
                expect_operand = True

        else:
            raise E.SyntaxError(f"Unexpected Token: {token.text}", code=E.UNEXPECTED_TOKEN,
                                position=token.position)
        previous = token

    if expect_operand:
        raise _missing_operand(previous)

    while operators:
        top = operators.pop()
        if top.kind == T.LEFT_PAREN:
            raise E.SyntaxError("Missing ')'. ", code=E.UNMATCHED_OPENING, position=top.position)
        output.append(top)

    logger.debug("RPN: %s", format_rpn(output))
    return output
