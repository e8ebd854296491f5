# MathEngine.py
"""
Evaluation pipeline of the exact engine.

    tokenize -> rpn -> build -> simplify -> trig (resolve + resimplify, to a fixed point)
             -> format -> project

evaluate() returns Evaluation(exact, decimal, trace). The decimal slot holds a
string or a Refusal; a refused projection never invalidates the exact result.
Any other failure is raised as one MathError naming the stage that failed,
with the trace collected up to that stage attached.
"""

import logging
from collections import namedtuple

from . import DecimalProjector
from . import RpnConverter
from . import ScientificEngine
from . import Tokenizer
from . import config_manager
from . import error as E
from .Expression import build_ast
from .Formatter import format_expr
from .Simplifier import simplify

logger = logging.getLogger(__name__)

Evaluation = namedtuple("Evaluation", ["exact", "decimal", "trace"])

STAGES = ("tokenize", "rpn", "build", "simplify", "trig", "format", "project")


class Trace:
    """Worked solution: every pipeline artifact, in stage order."""

    def __init__(self, expression, precision):
        self.expression = expression
        self.precision = precision
        self.stage = STAGES[0]
        self.tokens = None
        self.rpn = None
        self.before_simplify = None
        self.after_simplify = None
        self.trig_proofs = []
        self.exact = None
        self.decimal = None
        self.refusal = None
        # trees, for callers that want more than text
        self.raw_tree = None
        self.simplified_tree = None
        self.exact_tree = None
        self.steps = []

    def record(self, stage, text):
        logger.debug("%s: %s", stage, text)
        self.steps.append((stage, text))

    def as_dict(self):
        return {
            "expression": self.expression,
            "precision": self.precision,
            "stage": self.stage,
            "tokens": self.tokens,
            "rpn": self.rpn,
            "before_simplify": self.before_simplify,
            "after_simplify": self.after_simplify,
            "trig_proofs": list(self.trig_proofs),
            "exact": self.exact,
            "decimal": self.decimal,
            "refusal": str(self.refusal) if self.refusal is not None else None,
            "steps": list(self.steps),
        }


def _precision(precision, limits):
    if precision is None:
        precision = config_manager.default_precision()
    if isinstance(precision, bool) or not isinstance(precision, int) or precision < 0:
        raise E.ConfigurationError(f"Invalid precision: {precision!r}", code="5002")
    if precision > limits.max_decimal_places:
        logger.debug("Precision %d clamped to %d", precision, limits.max_decimal_places)
        precision = limits.max_decimal_places
    return precision


def resolve_trig(tree, limits, trace):
    """Alternate trig resolution and simplification until no rule applies."""
    for _ in range(limits.max_iterations):
        resolved, proofs = ScientificEngine.resolve(tree, limits)
        if not proofs:
            return tree
        for proof in proofs:
            trace.trig_proofs.append(proof)
            trace.record("trig", proof)
        tree = simplify(resolved, limits)
    raise E.StructuralLimitExceeded("Simplification did not converge.", code="3033")


def _run(problem, precision, limits, trace):
    trace.stage = "tokenize"
    tokens = Tokenizer.tokenize(problem, limits)
    trace.tokens = [token.text for token in tokens]
    trace.record("tokenize", Tokenizer.format_tokens(tokens))

    trace.stage = "rpn"
    rpn = RpnConverter.to_rpn(tokens)
    trace.rpn = [token.text for token in rpn]
    trace.record("rpn", RpnConverter.format_rpn(rpn))

    trace.stage = "build"
    tree = build_ast(rpn, limits)
    trace.raw_tree = tree
    trace.before_simplify = format_expr(tree)
    trace.record("build", trace.before_simplify)

    trace.stage = "simplify"
    tree = simplify(tree, limits)
    trace.simplified_tree = tree
    trace.after_simplify = format_expr(tree)
    trace.record("simplify", trace.after_simplify)

    trace.stage = "trig"
    tree = resolve_trig(tree, limits, trace)
    trace.exact_tree = tree

    trace.stage = "format"
    exact = format_expr(tree)
    trace.exact = exact
    trace.record("format", exact)

    trace.stage = "project"
    decimal = DecimalProjector.local_reading(tree, precision, limits)
    if isinstance(decimal, DecimalProjector.Refusal):
        trace.refusal = decimal
        trace.record("project", f"refused: {decimal.reason}")
    else:
        trace.decimal = decimal
        trace.record("project", decimal)
    return Evaluation(exact, decimal, trace)


def evaluate(problem, precision=None, limits=None):
    """Evaluate one expression exactly and read it to `precision` decimal places."""
    if limits is None:
        limits = config_manager.load_limits()
    precision = _precision(precision, limits)
    trace = Trace(problem, precision)

    try:
        return _run(problem, precision, limits, trace)

    # Re-raise our domain errors after attaching the source equation
    except E.MathError as e:
        e.equation = problem
        if e.stage is None:
            e.stage = trace.stage
        e.trace = trace
        raise
    except RecursionError:
        error = E.StructuralLimitExceeded("Expression nested too deeply.", code="3031",
                                          equation=problem, stage=trace.stage)
        error.trace = trace
        raise error
    # Convert unexpected Python exceptions to our unified error type
    except Exception as e:
        error = E.MathError(f"Unexpected Error: {e}", code="9999", equation=problem, stage=trace.stage)
        error.trace = trace
        raise error from e


def test_main():
    """Simple REPL-like runner for manual testing of the engine."""
    print("Enter the problem: ")
    problem = input()
    try:
        result = evaluate(problem)
    except E.MathError as e:
        print(e.describe())
        return
    for stage, text in result.trace.steps:
        print(f"{stage:>9}  {text}")
    print("= " + result.exact)
    print("≈ " + str(result.decimal))


if __name__ == "__main__":
    test_main()
