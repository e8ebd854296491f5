"""Tests for the expression tree and the postfix builder."""

from fractions import Fraction

import pytest

from ExactEngine import RpnConverter
from ExactEngine import Tokenizer as T
from ExactEngine import config_manager
from ExactEngine import error as E
from ExactEngine.Expression import (UNDEFINED, Add, Mul, PiMultiple, Pow, Rational, Sqrt, Trig,
                                    build_ast, chain, check_bounds, contains_undefined, flatten,
                                    negate)


class TestRational:
    def test_lowest_terms(self):
        assert Rational(2, 4) == Rational(1, 2)
        assert Rational(2, 4).numerator == 1
        assert Rational(2, 4).denominator == 2

    def test_positive_denominator(self):
        value = Rational(3, -6)
        assert value.numerator == -1
        assert value.denominator == 2

    def test_zero_denominator_is_rejected(self):
        with pytest.raises(E.EvaluationUndefined) as e:
            Rational(1, 0)
        assert e.value.code == "3003"

    def test_size_guard(self):
        with pytest.raises(E.StructuralLimitExceeded) as e:
            Rational(2 ** 13000)
        assert e.value.code == "3026"

    def test_is_integer(self):
        assert Rational(4, 2).is_integer()
        assert not Rational(1, 2).is_integer()


class TestStructure:
    def test_equal_trees_hash_equal(self):
        a = Add(Sqrt(Rational(2)), PiMultiple(Fraction(1, 2)))
        b = Add(Sqrt(Rational(2)), PiMultiple(Fraction(1, 2)))
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_operand_order_matters(self):
        assert Add(Rational(1), Rational(2)) != Add(Rational(2), Rational(1))

    def test_node_types_differ(self):
        assert Add(Rational(1), Rational(2)) != Mul(Rational(1), Rational(2))

    def test_chain_counts_as_one_level(self):
        long_sum = chain([Rational(i) for i in range(50)], Add)
        assert long_sum.depth == 2
        assert long_sum.size == 99

    def test_nesting_depth(self):
        node = Rational(2)
        for _ in range(5):
            node = Sqrt(node)
        assert node.depth == 6

    def test_flatten_both_sides(self):
        tree = Add(Add(Rational(1), Rational(2)), Add(Rational(3), Rational(4)))
        assert flatten(tree, Add) == [Rational(1), Rational(2), Rational(3), Rational(4)]

    def test_flatten_stops_at_other_types(self):
        product = Mul(Rational(2), Rational(3))
        assert flatten(Add(product, Rational(1)), Add) == [product, Rational(1)]

    def test_pow_wraps_plain_exponent(self):
        assert Pow(Rational(2), 3) == Pow(Rational(2), Rational(3))

    def test_unknown_trig_function(self):
        with pytest.raises(E.MathError):
            Trig("sec", Rational(1))


class TestHelpers:
    def test_negate(self):
        assert negate(Rational(2)) == Rational(-2)
        assert negate(PiMultiple(1)) == PiMultiple(-1)
        assert negate(Sqrt(Rational(2))) == Mul(Rational(-1), Sqrt(Rational(2)))

    def test_contains_undefined(self):
        assert contains_undefined(Add(Rational(1), Sqrt(UNDEFINED)))
        assert not contains_undefined(Add(Rational(1), Sqrt(Rational(2))))

    def test_check_bounds_depth(self):
        limits = config_manager.load_limits(max_depth=5)
        node = Rational(2)
        for _ in range(5):
            node = Sqrt(node)
        with pytest.raises(E.StructuralLimitExceeded) as e:
            check_bounds(node, limits)
        assert e.value.code == "3031"

    def test_check_bounds_size(self):
        limits = config_manager.load_limits(max_nodes=10)
        with pytest.raises(E.StructuralLimitExceeded) as e:
            check_bounds(chain([Rational(i) for i in range(10)], Add), limits)
        assert e.value.code == "3032"


class TestBuilder:
    def build(self, problem, limits):
        return build_ast(RpnConverter.to_rpn(T.tokenize(problem)), limits)

    def test_subtraction_adds_negation(self, limits):
        assert self.build("1-2", limits) == Add(Rational(1), Rational(-2))

    def test_division_multiplies_by_inverse(self, limits):
        assert self.build("π/4", limits) == Mul(PiMultiple(1), Pow(Rational(4), Rational(-1)))

    def test_functions(self, limits):
        assert self.build("sqrt(2)", limits) == Sqrt(Rational(2))
        assert self.build("cos(π)", limits) == Trig("cos", PiMultiple(1))

    def test_unary_minus(self, limits):
        assert self.build("-π", limits) == PiMultiple(-1)

    def test_literal_fraction(self, limits):
        assert self.build("3/6", limits) == Rational(1, 2)

    def test_empty(self, limits):
        with pytest.raises(E.SyntaxError) as e:
            build_ast([], limits)
        assert e.value.code == "3030"

    def test_leftover_operands(self, limits):
        rpn = T.tokenize("2") + T.tokenize("3")
        with pytest.raises(E.SyntaxError) as e:
            build_ast(rpn, limits)
        assert e.value.code == "3011"

    def test_stack_underflow(self, limits):
        rpn = T.tokenize("2") + [T.Token(T.OPERATOR, "+", "+", 1)]
        with pytest.raises(E.SyntaxError) as e:
            build_ast(rpn, limits)
        assert e.value.code == "3027"

    def test_depth_guard(self):
        limits = config_manager.load_limits(max_depth=10)
        with pytest.raises(E.StructuralLimitExceeded) as e:
            self.build("sqrt(" * 20 + "2" + ")" * 20, limits)
        assert e.value.code == "3031"
