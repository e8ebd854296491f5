"""Shared pytest fixtures for the exact engine tests."""

import pytest

from ExactEngine import RpnConverter, Tokenizer, config_manager
from ExactEngine.Expression import build_ast
from ExactEngine.Formatter import format_expr
from ExactEngine.Simplifier import simplify


@pytest.fixture
def limits():
    """Default structural limits."""
    return config_manager.load_limits()


@pytest.fixture
def parse(limits):
    """Text -> raw tree."""
    def _parse(text):
        return build_ast(RpnConverter.to_rpn(Tokenizer.tokenize(text, limits)), limits)
    return _parse


@pytest.fixture
def canonical(parse, limits):
    """Text -> text of the simplified tree, without trig resolution."""
    def _canonical(text):
        return format_expr(simplify(parse(text), limits))
    return _canonical
