"""Tests for the canonical formatter."""

from fractions import Fraction

import pytest

from ExactEngine.Expression import UNDEFINED, Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig, chain
from ExactEngine.Formatter import UNDEFINED_MARKER, format_angle, format_expr, format_rational, split_sign


def root(n):
    return Sqrt(Rational(n))


class TestAtoms:
    def test_rational(self):
        assert format_rational(Fraction(-3, 4)) == "-3/4"
        assert format_rational(Fraction(6, 3)) == "2"

    @pytest.mark.parametrize("coefficient, expected", [
        (0, "0"),
        (1, "π"),
        (-1, "-π"),
        (2, "2π"),
        (Fraction(1, 4), "π/4"),
        (Fraction(3, 4), "3π/4"),
        (Fraction(-1, 2), "-π/2"),
    ])
    def test_angle(self, coefficient, expected):
        assert format_angle(coefficient) == expected

    def test_undefined(self):
        assert format_expr(UNDEFINED) == UNDEFINED_MARKER == "undefined"


class TestProducts:
    @pytest.mark.parametrize("tree, expected", [
        (Mul(Rational(3), root(2)), "3√2"),
        (Mul(Rational(Fraction(1, 2)), root(2)), "√2/2"),
        (Mul(Rational(Fraction(3, 2)), root(2)), "3√2/2"),
        (Mul(Rational(Fraction(-1, 2)), root(2)), "-√2/2"),
        (Mul(PiMultiple(Fraction(1, 2)), root(3)), "π√3/2"),
        (Mul(PiMultiple(2), root(3)), "2π√3"),
        (Pow(PiMultiple(1), Rational(-1)), "1/π"),
        (Pow(PiMultiple(1), Rational(2)), "π^2"),
        (Mul(Rational(2), Pow(PiMultiple(1), Rational(2))), "2π^2"),
        (chain([Rational(Fraction(1, 2)), root(2), Pow(PiMultiple(1), Rational(-1))], Mul), "√2/(2π)"),
        (Mul(Rational(-1), Trig("sin", PiMultiple(Fraction(1, 5)))), "-sin(π/5)"),
        (Pow(Trig("tan", PiMultiple(Fraction(1, 10))), Rational(-1)), "1/tan(π/10)"),
        (Mul(Pow(Trig("cos", Rational(1)), Rational(-1)), Trig("sin", Rational(1))), "sin(1)/cos(1)"),
        (Mul(Rational(2), Trig("sin", Rational(1))), "2*sin(1)"),
        (Mul(Rational(2), Rational(3)), "2*3"),
        (Mul(Rational(2), Rational(Fraction(1, 3))), "2*(1/3)"),
    ])
    def test_product(self, tree, expected):
        assert format_expr(tree) == expected


class TestSums:
    def test_sign_split(self):
        tree = Add(Mul(Rational(Fraction(1, 2)), root(2)), Rational(Fraction(1, 2)))
        assert format_expr(tree) == "√2/2 + 1/2"

    def test_negative_terms(self):
        tree = Add(Mul(Rational(Fraction(-1, 4)), root(2)), Mul(Rational(Fraction(1, 4)), root(6)))
        assert format_expr(tree) == "-√2/4 + √6/4"

    def test_subtraction(self):
        assert format_expr(Add(root(2), Rational(-1))) == "√2 - 1"

    def test_sum_as_factor(self):
        assert format_expr(Mul(Rational(2), Add(root(2), Rational(1)))) == "2*(√2 + 1)"

    def test_negated_sum_term(self):
        tree = Add(Rational(1), Mul(Rational(-1), Add(root(2), Rational(1))))
        assert format_expr(tree) == "1 - (√2 + 1)"


class TestPowersAndRoots:
    @pytest.mark.parametrize("tree, expected", [
        (Pow(Rational(3), Rational(Fraction(1, 3))), "3^(1/3)"),
        (Pow(Rational(-2), Rational(2)), "(-2)^2"),
        (Pow(Add(root(2), Rational(1)), Rational(40)), "(√2 + 1)^40"),
        (Pow(Rational(2), root(2)), "2^(√2)"),
        (Pow(root(2), Rational(3)), "(√2)^3"),
        (Sqrt(Add(Rational(1), root(2))), "√(1 + √2)"),
        (Sqrt(PiMultiple(1)), "√π"),
        (Sqrt(Rational(Fraction(1, 2))), "√(1/2)"),
        (Pow(Trig("sin", PiMultiple(Fraction(1, 5))), Rational(2)), "sin(π/5)^2"),
    ])
    def test_power(self, tree, expected):
        assert format_expr(tree) == expected


def test_split_sign():
    negative, magnitude = split_sign(Mul(Rational(-3), root(2)))
    assert negative
    assert magnitude == Mul(Rational(3), root(2))
    assert split_sign(root(2)) == (False, root(2))


def test_equal_trees_render_equal():
    a = Add(Mul(PiMultiple(Fraction(1, 3)), root(5)), Rational(7))
    b = Add(Mul(PiMultiple(Fraction(1, 3)), root(5)), Rational(7))
    assert format_expr(a) == format_expr(b)
