"""Parser tests: grammar, dangling else, error recovery and listing."""

import pytest

from backend.ubasic import nodes
from backend.ubasic import tokens as T
from backend.ubasic.errors import ParseError
from backend.ubasic.parser import Parser, parse_program
from backend.ubasic.tokenizer import Config, Tokenizer


def parser_for(src, config=None):
    return Parser(Tokenizer(src, "t.bas", config))


def test_let_and_bare_assignment():
    a, b = parse_program("10 LET X = 1 + 2 * 3\n20 Y = (X - 1) / 2\n")
    assert isinstance(a, nodes.LetStmt) and isinstance(b, nodes.LetStmt)
    assert a.keyword is not None and b.keyword is None
    assert a.line == 10 and b.line == 20
    # multiplication binds tighter than addition
    assert a.value.op.kind == T.PLUS
    assert a.value.y.op.kind == T.ASTR
    assert b.value.op.kind == T.SLASH
    assert isinstance(b.value.x, nodes.ParenExpr)


def test_bitwise_operators_share_the_additive_tier():
    (s,) = parse_program("10 X = 6 ^ 3 & 1 | 2 * 2")
    # ((6 ^ 3) & 1) | (2 * 2)
    assert s.value.op.kind == T.OR
    assert s.value.x.op.kind == T.AND
    assert s.value.x.x.op.kind == T.XOR
    assert s.value.y.op.kind == T.ASTR


def test_print_arguments():
    (s,) = parse_program('10 PRINT "a", X; 1+2')
    kinds = [type(a).__name__ for a in s.args]
    assert kinds == ["String", "Punct", "Variable", "Punct", "BinaryExpr"]
    assert s.args[0].value == "a"
    assert s.args[1].kind == T.COMMA
    assert s.args[3].kind == T.SEMICOLON


def test_empty_print():
    (s,) = parse_program("10 PRINT\n")
    assert s.args == ()


def test_string_escapes_are_decoded():
    (s,) = parse_program('10 PRINT "a\\tb\\x41"')
    assert s.args[0].value == "a\tbA"


def test_malformed_escape_is_parse_error():
    with pytest.raises(ParseError) as exc:
        parse_program('10 PRINT "bad\\x4"')
    assert exc.value.pos.column == 10


def test_number_out_of_range():
    with pytest.raises(ParseError) as exc:
        parse_program("10 LET X = 9223372036854775808")
    assert "out of range" in str(exc.value)
    assert exc.value.pos.column == 12


def test_control_statements():
    stmts = parse_program(
        "10 GOTO 40\n"
        "20 GOSUB 50\n"
        "30 FOR I = 1 TO N + 1\n"
        "40 NEXT I\n"
        "50 PEEK 100 + 1, V\n"
        "60 POKE A, 7\n"
        "70 RETURN\n"
        "80 end\n"
    )
    goto, gosub, for_, next_, peek, poke, ret, end = stmts
    assert goto.location.value == 40
    assert gosub.location.value == 50
    assert for_.var.name == "I" and for_.start.value == 1
    assert for_.end.op.kind == T.PLUS
    assert next_.var.name == "I"
    assert peek.var.name == "V" and peek.addr.op.kind == T.PLUS
    assert poke.addr.name == "A" and poke.value.value == 7
    assert isinstance(ret, nodes.ReturnStmt)
    assert isinstance(end, nodes.EndStmt)


def test_blank_lines_between_statements():
    stmts = parse_program("\n\n10 END\n\n\n20 END\n")
    assert [s.line for s in stmts] == [10, 20]


def test_if_with_else_line():
    src = '10 IF X > 1 THEN\n20 PRINT "big"\n30 ELSE\n40 PRINT "small"\n50 END\n'
    stmts = parse_program(src)
    assert [s.line for s in stmts] == [10, 50]
    if_ = stmts[0]
    assert if_.cond.op.kind == T.GT
    assert if_.body.line == 20
    assert if_.else_.line == 30
    assert if_.else_.body.line == 40


def test_if_without_else_pushes_back_next_line():
    p = parser_for('20 IF 1 THEN\n30 PRINT "A"\n40 PRINT "B"\n')
    first = p.line()
    assert isinstance(first, nodes.IfStmt)
    assert first.line == 20
    assert first.else_ is None
    assert first.body.line == 30
    second = p.line()
    assert isinstance(second, nodes.PrintStmt)
    assert second.line == 40
    assert second.args[0].value == "B"
    assert p.line() is None


def test_if_as_last_statement():
    stmts = parse_program("10 IF 1 THEN\n20 END")
    assert len(stmts) == 1
    assert stmts[0].else_ is None


def test_else_binds_to_nearest_if():
    stmts = parse_program(
        "10 IF 1 THEN\n20 IF 0 THEN\n30 PRINT 1\n40 ELSE\n50 PRINT 2\n"
    )
    assert len(stmts) == 1
    outer = stmts[0]
    assert outer.else_ is None
    assert outer.body.else_.line == 40


def test_chained_relation():
    (s,) = parse_program("10 IF 1 < 2 = 1 THEN\n20 END")
    assert s.cond.op.kind == T.EQ
    assert s.cond.x.op.kind == T.LT


def test_error_resynchronizes_to_next_line():
    p = parser_for("10 LET = 5\n20 PRINT 1\n")
    with pytest.raises(ParseError) as exc:
        p.line()
    assert exc.value.pos.line == 1
    assert "expected VARIABLE" in str(exc.value)
    s = p.line()
    assert isinstance(s, nodes.PrintStmt) and s.line == 20


def test_error_at_line_end_keeps_next_line():
    p = parser_for("10 LET X =\n20 END\n")
    with pytest.raises(ParseError):
        p.line()
    assert p.line().line == 20


def test_unterminated_string_is_parse_error():
    p = parser_for('10 PRINT "abc')
    with pytest.raises(ParseError) as exc:
        p.line()
    assert exc.value.message == "unterminated string"
    assert p.line() is None
    assert p.tokenizer.next().kind == T.EOF


def test_unknown_character_is_parse_error():
    with pytest.raises(ParseError) as exc:
        parse_program("10 X = 1 @ 2")
    assert "unknown character" in str(exc.value)


def test_unsupported_statement():
    with pytest.raises(ParseError) as exc:
        parse_program("10 CALL X")
    assert "unsupported statement 'CALL'" in str(exc.value)


def test_missing_label():
    with pytest.raises(ParseError) as exc:
        parse_program("PRINT 1")
    assert "expected NUMBER" in str(exc.value)


def test_trailing_tokens_rejected():
    with pytest.raises(ParseError) as exc:
        parse_program("10 END END")
    assert "expected newline" in str(exc.value)


def test_parenthesized_print_is_rejected():
    with pytest.raises(ParseError):
        parse_program("10 PRINT (1)")


def test_comments_filtered_even_when_scanned():
    p = parser_for("10 PRINT 1 REM hi\n20 END\n", config=Config(scan_comments=True))
    assert [s.line for s in p] == [10, 20]


def test_listing_format():
    src = (
        '10 let x = 1\n'
        '20 PRINT "A", x; 1 + 2\n'
        '30 IF x <= 2 THEN\n'
        '40 GOTO 10\n'
        '50 ELSE\n'
        '60 POKE 1, (x * 2)\n'
        '70 FOR i = 1 TO 3\n'
    )
    assert [str(s) for s in parse_program(src)] == [
        "10 LET x = 1",
        '20 PRINT "A", x; 1 + 2',
        "30 IF x <= 2 THEN\n40 GOTO 10\n50 ELSE\n60 POKE 1, (x * 2)",
        "70 FOR i = 1 TO 3",
    ]


def test_long_chain_round_trips_through_listing():
    src = "10 X = " + " - ".join(["1"] * 1500)
    (s,) = parse_program(src)
    assert str(s) == src


def test_leading_zero_numbers_are_decimal():
    a, b = parse_program("10 X = 010\n20 Y = 09\n")
    assert a.value.value == 10
    assert b.value.value == 9
