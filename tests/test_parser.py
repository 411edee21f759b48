"""
Unit tests for the tram parser.
"""

import pytest
from tram import (
    tokenize, parse, parse_source, format_ast, ParserError, LexerError, TokenType,
    Program, Literal, Identifier, UnaryOp, BinaryOp, LogicalOp, Assignment,
    Block, IfExpr, FunctionDef, FunctionCall, VarBinding, ExpressionStatement,
)
from tram.parser import MAX_NESTING_DEPTH


def expr(source):
    """Parse source and return its final expression."""
    program = parse_source(source)
    assert program.final_expression is not None
    return program.final_expression


class TestProgramStructure:
    """Test program-level parsing."""

    def test_empty_program(self):
        program = parse_source("")
        assert isinstance(program, Program)
        assert program.statements == ()
        assert program.final_expression is None

    def test_final_expression_split(self):
        """A trailing expression statement becomes the program's value."""
        program = parse_source("let x = 1; x + 1")
        assert len(program.statements) == 1
        assert isinstance(program.statements[0], VarBinding)
        assert isinstance(program.final_expression, BinaryOp)

    def test_program_ending_in_let(self):
        program = parse_source("let x = 1")
        assert program.final_expression is None
        assert len(program.statements) == 1

    def test_semicolons_optional(self):
        """Statements may be separated by whitespace alone."""
        with_semis = parse_source("let a = 1; let b = 2; a")
        without = parse_source("let a = 1\nlet b = 2\na")
        assert len(with_semis.statements) == len(without.statements) == 2

    def test_stray_semicolons_skipped(self):
        program = parse_source(";; let a = 1;;; a;")
        assert len(program.statements) == 1
        assert isinstance(program.final_expression, Identifier)

    def test_parse_accepts_token_list(self):
        program = parse(tokenize("1 + 2"))
        assert isinstance(program.final_expression, BinaryOp)

    def test_tree_is_immutable(self):
        program = parse_source("x")
        with pytest.raises(Exception):
            program.final_expression.name = "y"

    def test_spans_cover_source(self):
        node = expr("foo(1, 2)")
        assert node.span.start.column == 1
        assert node.span.end.column == 10


class TestLiterals:
    """Test literal and primary expressions."""

    def test_integer_literal(self):
        node = expr("42")
        assert isinstance(node, Literal)
        assert node.value == 42
        assert node.literal_type == TokenType.INT_LITERAL

    def test_float_literal(self):
        node = expr("3.5")
        assert node.value == 3.5
        assert node.literal_type == TokenType.FLOAT_LITERAL

    def test_string_literal(self):
        assert expr('"hi"').value == "hi"

    def test_boolean_literals(self):
        for val in ["true", "false"]:
            node = expr(val)
            assert node.value == (val == "true")
            assert node.literal_type == TokenType.BOOL_LITERAL

    def test_nil_literal(self):
        node = expr("nil")
        assert node.value is None
        assert node.literal_type == TokenType.NIL

    def test_identifier(self):
        node = expr("counter")
        assert isinstance(node, Identifier)
        assert node.name == "counter"

    def test_grouping(self):
        """Parentheses produce no node of their own."""
        node = expr("(1 + 2) * 3")
        assert node.operator == TokenType.STAR
        assert isinstance(node.left, BinaryOp)
        assert node.left.operator == TokenType.PLUS


class TestPrecedence:
    """Test operator precedence and associativity."""

    def test_multiplication_before_addition(self):
        node = expr("1 + 2 * 3")
        assert node.operator == TokenType.PLUS
        assert node.right.operator == TokenType.STAR

    def test_left_associative_subtraction(self):
        node = expr("10 - 3 - 2")
        assert node.operator == TokenType.MINUS
        assert isinstance(node.left, BinaryOp)
        assert node.right.value == 2

    def test_power_right_associative(self):
        node = expr("2 ** 3 ** 2")
        assert node.operator == TokenType.DOUBLE_STAR
        assert node.left.value == 2
        assert isinstance(node.right, BinaryOp)

    def test_unary_binds_tighter_than_power(self):
        """-2 ** 2 parses as (-2) ** 2."""
        node = expr("-2 ** 2")
        assert node.operator == TokenType.DOUBLE_STAR
        assert isinstance(node.left, UnaryOp)

    def test_comparison_below_arithmetic(self):
        node = expr("a + 1 < b * 2")
        assert node.operator == TokenType.LT
        assert node.left.operator == TokenType.PLUS
        assert node.right.operator == TokenType.STAR

    def test_equality_below_comparison(self):
        node = expr("a < b == c > d")
        assert node.operator == TokenType.EQ

    def test_and_binds_tighter_than_or(self):
        node = expr("a or b and c")
        assert isinstance(node, LogicalOp)
        assert node.operator == TokenType.OR
        assert isinstance(node.right, LogicalOp)
        assert node.right.operator == TokenType.AND

    def test_logical_aliases(self):
        node = expr("a || b && !c")
        assert node.operator == TokenType.OR
        assert node.right.operator == TokenType.AND
        assert isinstance(node.right.right, UnaryOp)
        assert node.right.right.operator == TokenType.NOT

    def test_logical_ops_are_not_binary_ops(self):
        assert not isinstance(expr("a and b"), BinaryOp)

    def test_not_applies_to_comparison_operand(self):
        node = expr("not a == b")
        assert node.operator == TokenType.EQ
        assert isinstance(node.left, UnaryOp)

    def test_double_negation(self):
        node = expr("- -1")
        assert isinstance(node, UnaryOp)
        assert isinstance(node.operand, UnaryOp)


class TestAssignment:
    """Test assignment and compound assignment."""

    def test_simple_assignment(self):
        node = expr("x = 5")
        assert isinstance(node, Assignment)
        assert node.target.name == "x"
        assert node.value.value == 5

    def test_assignment_right_associative(self):
        node = expr("a = b = 1")
        assert isinstance(node.value, Assignment)
        assert node.value.target.name == "b"

    def test_assignment_lowest_precedence(self):
        node = expr("x = 1 + 2")
        assert isinstance(node.value, BinaryOp)

    def test_compound_assignment_desugars(self):
        """x += 2 becomes x = x + 2."""
        node = expr("x += 2")
        assert isinstance(node, Assignment)
        assert isinstance(node.value, BinaryOp)
        assert node.value.operator == TokenType.PLUS
        assert node.value.left.name == "x"
        assert node.value.right.value == 2

    def test_every_compound_operator(self):
        pairs = {
            "-=": TokenType.MINUS,
            "*=": TokenType.STAR,
            "/=": TokenType.SLASH,
            "%=": TokenType.PERCENT,
            "**=": TokenType.DOUBLE_STAR,
        }
        for op, binary in pairs.items():
            assert expr(f"x {op} 3").value.operator == binary

    def test_invalid_target(self):
        """Only identifiers may be assigned."""
        for source in ["1 = 2", "f() = 3", "(a + b) += 1"]:
            with pytest.raises(ParserError) as exc_info:
                parse_source(source)
            assert exc_info.value.diagnostic.code == "E103"
            assert "invalid assignment target" in exc_info.value.diagnostic.message

    def test_unknown_target_parses(self):
        """Whether the target exists is a runtime question."""
        assert isinstance(expr("never_declared = 1"), Assignment)


class TestDeclarations:
    """Test let and fn statements."""

    def test_let_with_initializer(self):
        stmt = parse_source("let x = 1 + 2").statements[0]
        assert isinstance(stmt, VarBinding)
        assert stmt.name == "x"
        assert isinstance(stmt.initializer, BinaryOp)

    def test_let_without_initializer(self):
        stmt = parse_source("let x").statements[0]
        assert stmt.initializer is None

    def test_let_requires_name(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("let = 1")
        assert exc_info.value.expected == "variable name"

    def test_fn_statement_sugar(self):
        """fn name(...) body declares name."""
        stmt = parse_source("fn sq(x) x * x").statements[0]
        assert isinstance(stmt, VarBinding)
        assert stmt.name == "sq"
        assert isinstance(stmt.initializer, FunctionDef)
        assert stmt.initializer.name == "sq"
        assert stmt.initializer.parameters == ("x",)

    def test_anonymous_fn_is_expression(self):
        node = expr("fn(a, b) a + b")
        assert isinstance(node, FunctionDef)
        assert node.name is None
        assert node.parameters == ("a", "b")

    def test_fn_without_parameters(self):
        assert expr("fn() 1").parameters == ()

    def test_fn_parameters_trailing_comma(self):
        assert expr("fn(a, b,) a").parameters == ("a", "b")

    def test_fn_body_is_any_expression(self):
        node = expr("fn(n) if n then 1 else 2")
        assert isinstance(node.body, IfExpr)

    def test_named_fn_in_expression_position(self):
        stmt = parse_source("let f = fn fact(n) n").statements[0]
        assert stmt.name == "f"
        assert stmt.initializer.name == "fact"

    def test_bad_parameter(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("fn(1) 1")
        assert exc_info.value.expected == "parameter name"


class TestCalls:
    """Test function call parsing."""

    def test_call_without_arguments(self):
        node = expr("now()")
        assert isinstance(node, FunctionCall)
        assert node.callee.name == "now"
        assert node.arguments == ()

    def test_call_with_arguments(self):
        node = expr("atan2(1, x + 1)")
        assert len(node.arguments) == 2
        assert isinstance(node.arguments[1], BinaryOp)

    def test_trailing_comma(self):
        assert len(expr("f(1, 2,)").arguments) == 2

    def test_chained_calls(self):
        """make()(1) calls the result of make()."""
        node = expr("make()(1)")
        assert isinstance(node.callee, FunctionCall)
        assert node.arguments[0].value == 1

    def test_call_binds_tighter_than_unary(self):
        node = expr("-f(1)")
        assert isinstance(node, UnaryOp)
        assert isinstance(node.operand, FunctionCall)

    def test_immediate_call_of_literal(self):
        node = expr("(fn(x) x)(3)")
        assert isinstance(node.callee, FunctionDef)

    def test_unclosed_call(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("f(1, 2")
        assert exc_info.value.diagnostic.code == "E102"


class TestIfAndBlocks:
    """Test if-expressions and blocks."""

    def test_if_then_else(self):
        node = expr("if a then 1 else 2")
        assert isinstance(node, IfExpr)
        assert node.then_branch.value == 1
        assert node.else_branch.value == 2

    def test_if_without_else(self):
        assert expr("if a then 1").else_branch is None

    def test_if_is_an_expression(self):
        """if composes inside other expressions."""
        node = expr("1 + (if a then 2 else 3)")
        assert isinstance(node.right, IfExpr)

    def test_dangling_else_binds_nearest_if(self):
        node = expr("if a then if b then 1 else 2")
        assert node.else_branch is None
        assert node.then_branch.else_branch.value == 2

    def test_if_missing_then(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("if a 1 else 2")
        assert exc_info.value.expected == "'then'"
        assert exc_info.value.found == "number '1'"

    def test_block_value(self):
        node = expr("{ let a = 1; a + 1 }")
        assert isinstance(node, Block)
        assert len(node.statements) == 1
        assert isinstance(node.final_expression, BinaryOp)

    def test_empty_block(self):
        node = expr("{}")
        assert node.statements == ()
        assert node.final_expression is None

    def test_block_ending_in_let(self):
        node = expr("{ let a = 1 }")
        assert node.final_expression is None

    def test_nested_blocks(self):
        node = expr("{ { 1 } }")
        assert isinstance(node.final_expression, Block)

    def test_unclosed_block(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("{ let a = 1")
        assert exc_info.value.diagnostic.code == "E102"


class TestParseErrors:
    """Test parser error reporting."""

    def test_unexpected_token(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("1 + )")
        diag = exc_info.value.diagnostic
        assert diag.code == "E101"
        assert diag.message == "expected expression, found ')'"
        assert exc_info.value.expected == "expression"
        assert exc_info.value.found == "')'"

    def test_unexpected_eof(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("1 +")
        diag = exc_info.value.diagnostic
        assert diag.code == "E102"
        assert exc_info.value.found == "end of input"

    def test_error_location_and_source_line(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("let a = 1\nlet b = )", filename="prog.tram")
        diag = exc_info.value.diagnostic
        assert diag.span.start.line == 2
        assert diag.span.start.column == 9
        assert diag.source_line == "let b = )"
        assert diag.header.startswith("prog.tram:2:9: error[E101]")

    def test_stray_closing_brace(self):
        with pytest.raises(ParserError):
            parse_source("1 }")

    def test_lexer_errors_propagate(self):
        with pytest.raises(LexerError):
            parse_source("let a = 1 $ 2")

    def test_first_error_wins(self):
        """No recovery: the first problem is reported."""
        with pytest.raises(ParserError) as exc_info:
            parse_source("let = 1\nlet = 2")
        assert exc_info.value.diagnostic.span.start.line == 1


class TestNestingLimit:
    """Deeply nested source is a parse error rather than a host crash."""

    def nesting_error(self, source):
        with pytest.raises(ParserError) as exc_info:
            parse_source(source)
        return exc_info.value.diagnostic

    def test_nested_parentheses(self):
        diag = self.nesting_error("(" * 1000 + "1" + ")" * 1000)
        assert diag.code == "E104"
        assert f"limit is {MAX_NESTING_DEPTH} levels" in diag.message
        assert diag.span.start.line == 1

    def test_stacked_unary_operators(self):
        assert self.nesting_error("-" * 3000 + "1").code == "E104"
        assert self.nesting_error("not " * 3000 + "true").code == "E104"

    def test_right_associative_chains(self):
        assert self.nesting_error(" ** ".join(["2"] * 3000)).code == "E104"
        assert self.nesting_error("a = " * 3000 + "1").code == "E104"

    def test_nested_blocks(self):
        assert self.nesting_error("{" * 1000 + "1" + "}" * 1000).code == "E104"

    def test_source_line_attached(self):
        diag = self.nesting_error("let x = 1;\n" + "(" * 500 + "x" + ")" * 500)
        assert diag.span.start.line == 2
        assert diag.source_line.startswith("((((")

    def test_moderate_nesting_parses(self):
        depth = MAX_NESTING_DEPTH // 2
        node = expr("(" * depth + "1" + ")" * depth)
        assert isinstance(node, Literal)
        node = expr("-" * depth + "1")
        assert isinstance(node, UnaryOp)
        node = expr("{" * depth + "1" + "}" * depth)
        assert isinstance(node, Block)

    def test_long_flat_chains_parse(self):
        """Left-associative chains loop rather than nest."""
        node = expr(" + ".join(["1"] * 2000))
        assert isinstance(node, BinaryOp)

    def test_limit_resets_between_expressions(self):
        depth = MAX_NESTING_DEPTH // 2
        line = "(" * depth + "1" + ")" * depth
        program = parse_source(";\n".join([line] * 10))
        assert len(program.statements) == 9


class TestFormatAst:
    """Test the AST printer."""

    def test_format_shows_structure(self):
        text = format_ast(parse_source("let x = 1 + 2"))
        lines = text.splitlines()
        assert lines[0] == "Program"
        assert "VarBinding" in text
        assert "name: 'x'" in text
        assert "operator: +" in text

    def test_format_hides_spans(self):
        assert "span" not in format_ast(parse_source("f(1)"))
