# error.py
"""Typed errors raised by the exact engine.

Every error carries a 4-digit code (see ERROR_MESSAGES), the equation that
was being evaluated, the pipeline stage that failed and, when the pipeline
got that far, the partial trace.
"""


class MathError(Exception):
    def __init__(self, message, code="9999", equation=None, position=None, stage=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.equation = equation
        self.position = position
        self.stage = stage
        self.trace = None

    def describe(self):
        """Return the text shown to the user.

        The first line is the headline for the code from ERROR_MESSAGES, e.g.
        'Calculator Error 3009: Missing ')'.'; the second line is this error's own detail.
        """
        area = Error_Dictionary.get(self.code[:1], Error_Dictionary["9"])
        headline = ERROR_MESSAGES.get(self.code, "Unknown error").strip().rstrip(":")
        return f"{area} {self.code}: {headline}\n{self}"

    def __str__(self):
        if self.position is not None:
            return f"{self.message} (at position {self.position})"
        return self.message


class LexError(MathError):
    pass

class SyntaxError(MathError):
    pass

class EvaluationUndefined(MathError):
    pass

class ProjectionRefused(MathError):
    pass

class StructuralLimitExceeded(MathError):
    pass

class ConfigurationError(MathError):
    pass


Error_Dictionary = {

    "2" : "Scientific Calculation Error",
    "3" : "Calculator Error",
    "5" : "Configuration Error",
    "9" : "Unexpected Error"

}

#Error Messages are structured in:
# 1. Digit: Main Error
# 2. Digit: Specification
# 3. and 4. Digit: Error Number
# describe() and front ends show these as the headline of an error

ERROR_MESSAGES = {
    "2010" : "Undefined operand. ",
    "2011" : "Division by zero during projection. ",
    "2012" : "Irrational nesting too deep: ", # + depth
    "2013" : "Unresolved trigonometric value: ", # + function
    "2014" : "Negative radicand. ",
    "2015" : "Transcendental exponent. ",
    "2016" : "Decimal reading did not stabilise. ",

    "3001" : "Invalid character: ", # + character
    "3002" : "Unknown name: ", # + identifier
    "3003" : "Division by Zero",
    "3008" : "More than one '.' in one number.",
    "3009" : "Missing ')'. ",
    "3010" : "Missing '('. ",
    "3011" : "Unexpected Token: ", # + Token
    "3026" : "Number too big.",
    "3027" : "Missing Number.",
    "3029" : "Missing Number after operator: ", # + operator
    "3030" : "Empty expression.",
    "3031" : "Expression nested too deeply.",
    "3032" : "Expression too large.",
    "3033" : "Simplification did not converge.",

    "5001" : "Invalid configuration value: ", # + key
    "5002" : "Invalid precision: ", # + value

    "9999" : "Unexpected Error: " #+error
}


# Refusal codes of the decimal reading, by reason
UNDEFINED_OPERAND = "2010"
PROJECTION_DIVISION_BY_ZERO = "2011"
IRRATIONAL_TOO_DEEP = "2012"
UNRESOLVED_TRIG = "2013"
NEGATIVE_RADICAND = "2014"
TRANSCENDENTAL_EXPONENT = "2015"
UNSTABLE_READING = "2016"

# Syntax error codes, by kind
UNMATCHED_CLOSING = "3010"
UNMATCHED_OPENING = "3009"
MISSING_OPERAND = "3027"
TRAILING_OPERATOR = "3029"
EMPTY_EXPRESSION = "3030"
UNEXPECTED_TOKEN = "3011"
