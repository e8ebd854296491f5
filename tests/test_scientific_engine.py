"""Tests for the special-angle resolver and the trig identities."""

from fractions import Fraction

import pytest

from ExactEngine import ScientificEngine
from ExactEngine.Expression import UNDEFINED, PiMultiple, Rational, Trig
from ExactEngine.MathEngine import evaluate
from ExactEngine.Simplifier import simplify


def exact(problem):
    return evaluate(problem, 10).exact


def proofs(problem):
    return evaluate(problem, 10).trace.trig_proofs


class TestReduceAngle:
    @pytest.mark.parametrize("kind, coefficient, expected", [
        ("sin", Fraction(1, 4), (1, Fraction(1, 4))),
        ("sin", Fraction(9, 4), (1, Fraction(1, 4))),
        ("sin", Fraction(5, 4), (-1, Fraction(1, 4))),
        ("sin", Fraction(3, 4), (1, Fraction(1, 4))),
        ("sin", Fraction(-1, 4), (-1, Fraction(1, 4))),
        ("cos", Fraction(3, 4), (-1, Fraction(1, 4))),
        ("cos", Fraction(-1, 3), (1, Fraction(1, 3))),
        ("cos", Fraction(1), (-1, Fraction(0))),
        ("tan", Fraction(3, 4), (-1, Fraction(1, 4))),
        ("tan", Fraction(5, 4), (1, Fraction(1, 4))),
        ("tan", Fraction(-1, 2), (1, Fraction(1, 2))),
    ])
    def test_reduce(self, kind, coefficient, expected):
        assert ScientificEngine.reduce_angle(kind, coefficient) == expected

    def test_special_angles_are_twelfths(self):
        assert ScientificEngine.is_special(Fraction(1, 12))
        assert ScientificEngine.is_special(Fraction(5, 6))
        assert not ScientificEngine.is_special(Fraction(1, 5))


class TestSpecialValues:
    @pytest.mark.parametrize("problem, expected", [
        ("sin(0)", "0"),
        ("sin(pi/6)", "1/2"),
        ("sin(pi/4)", "√2/2"),
        ("sin(pi/3)", "√3/2"),
        ("sin(pi/2)", "1"),
        ("sin(pi/12)", "-√2/4 + √6/4"),
        ("sin(5pi/12)", "√2/4 + √6/4"),
        ("cos(0)", "1"),
        ("cos(pi/3)", "1/2"),
        ("cos(pi/2)", "0"),
        ("cos(PI)", "-1"),
        ("cos(5pi/6)", "-√3/2"),
        ("tan(pi/6)", "√3/3"),
        ("tan(pi/4)", "1"),
        ("tan(pi/3)", "√3"),
        ("tan(3pi/4)", "-1"),
        ("tan(pi/12)", "-√3 + 2"),
        ("tan(5pi/12)", "√3 + 2"),
        ("sin(7pi/6)", "-1/2"),
        ("sin(-pi/2)", "-1"),
        ("cos(2pi)", "1"),
    ])
    def test_value(self, problem, expected):
        assert exact(problem) == expected

    @pytest.mark.parametrize("problem", ["tan(pi/2)", "tan(3pi/2)", "tan(-pi/2)", "tan(5pi/2)"])
    def test_tangent_poles(self, problem):
        assert exact(problem) == "undefined"

    def test_proof_lines(self):
        assert proofs("sin(pi/4)") == ["sin(π/4) = √2/2"]
        assert proofs("sin(9pi/4)") == ["sin(9π/4) = sin(π/4) = √2/2"]
        assert proofs("sin(5pi/4)") == ["sin(5π/4) = -sin(π/4) = -√2/2"]
        assert proofs("tan(pi/2)") == ["tan(π/2) undefined because cos(π/2) = 0"]

    def test_resolution_exposes_new_angles(self):
        # the inner value becomes a multiple of π only after the outer pass
        assert exact("sin(pi*cos(0)/2)") == "1"
        assert exact("cos(pi*sin(pi/6))") == "0"

    def test_nested_values_resolve_in_one_pass(self, limits):
        tree = simplify(Trig("sin", Trig("sin", Trig("sin", PiMultiple(1)))), limits)
        result, lines = ScientificEngine.resolve(tree, limits)
        assert result == Rational(0)
        assert len(lines) == 3

    def test_deep_nesting(self):
        # deeper than max_iterations, well inside max_depth
        assert exact("sin(" * 40 + "pi" + ")" * 40) == "0"


class TestCanonicalAtoms:
    @pytest.mark.parametrize("problem, expected", [
        ("sin(pi/5)", "sin(π/5)"),
        ("sin(4pi/5)", "sin(π/5)"),
        ("sin(6pi/5)", "-sin(π/5)"),
        ("sin(2pi/5)", "cos(π/10)"),
        ("cos(2pi/5)", "sin(π/10)"),
        ("tan(2pi/5)", "1/tan(π/10)"),
        ("tan(-pi/5)", "-tan(π/5)"),
        ("cos(-pi/5)", "cos(π/5)"),
    ])
    def test_atom(self, problem, expected):
        assert exact(problem) == expected

    def test_atom_is_not_rewritten_again(self, limits):
        atom = Trig("sin", PiMultiple(Fraction(1, 5)))
        result, lines = ScientificEngine.resolve(atom, limits)
        assert result == atom
        assert lines == []


class TestSums:
    @pytest.mark.parametrize("problem, expected", [
        ("sin(-1)", "-sin(1)"),
        ("cos(-1)", "cos(1)"),
        ("tan(-1)", "-tan(1)"),
        ("sin(1+pi/2)", "cos(1)"),
        ("cos(1+pi/2)", "-sin(1)"),
        ("sin(1+pi)", "-sin(1)"),
        ("cos(1+pi)", "-cos(1)"),
        ("sin(1+2pi)", "sin(1)"),
        ("tan(1+pi)", "tan(1)"),
        ("tan(1+pi/2)", "-1/tan(1)"),
        ("sin(pi-1)", "sin(1)"),
    ])
    def test_shift(self, problem, expected):
        assert exact(problem) == expected

    def test_shift_proof(self):
        assert proofs("sin(1+pi/2)") == ["sin(π/2 + 1) = cos(1)"]


class TestIdentities:
    @pytest.mark.parametrize("problem, expected", [
        ("sin(1)^2+cos(1)^2", "1"),
        ("2sin(1)^2+2cos(1)^2+1", "3"),
        ("sin(pi/5)^2+cos(pi/5)^2", "1"),
        ("sin(1)/cos(1)", "tan(1)"),
        ("cos(1)/sin(1)", "1/tan(1)"),
    ])
    def test_identity(self, problem, expected):
        assert exact(problem) == expected

    def test_pythagorean_proof(self):
        assert proofs("sin(1)^2+cos(1)^2") == ["sin(1)^2 + cos(1)^2 = 1"]

    def test_unequal_coefficients_are_kept(self):
        assert exact("2sin(1)^2+cos(1)^2") == "cos(1)^2 + 2*sin(1)^2"


def test_undefined_operand(limits):
    result, _ = ScientificEngine.resolve(simplify(Trig("sin", UNDEFINED), limits), limits)
    assert result == UNDEFINED
