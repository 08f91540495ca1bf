"""Tokenizer tests: token kinds, positions and lexical error tokens."""

from backend.ubasic import tokens as T
from backend.ubasic.tokenizer import Config, Tokenizer, tokenize
from backend.ubasic.tokens import Position


def kinds(src, **kw):
    return [t.kind for t in tokenize(src, **kw)]


def test_keywords_are_case_insensitive():
    assert kinds("let Print gOtO x Next") == [T.LET, T.PRINT, T.GOTO, T.VARIABLE, T.NEXT, T.EOF]


def test_variable_names_keep_their_case():
    toks = tokenize("abc_1 Foo")
    assert [t.literal for t in toks[:2]] == ["abc_1", "Foo"]
    assert toks[0].kind == T.VARIABLE


def test_operators_and_punctuation():
    src = "<= >= != < > = ( ) ^ & | + - * / % # , ;"
    assert kinds(src) == [
        T.LEQ, T.GEQ, T.NEQ, T.LT, T.GT, T.EQ, T.LPAREN, T.RPAREN, T.XOR,
        T.AND, T.OR, T.PLUS, T.MINUS, T.ASTR, T.SLASH, T.MOD, T.HASH,
        T.COMMA, T.SEMICOLON, T.EOF,
    ]


def test_both_line_terminators_are_cr():
    assert kinds("1\n2\r3") == [T.NUMBER, T.CR, T.NUMBER, T.CR, T.NUMBER, T.EOF]


def test_numbers_are_digit_runs():
    toks = tokenize("0123 45x")
    assert (toks[0].kind, toks[0].literal) == (T.NUMBER, "0123")
    assert (toks[1].kind, toks[1].literal) == (T.NUMBER, "45")
    assert (toks[2].kind, toks[2].literal) == (T.VARIABLE, "x")


def test_positions():
    toks = tokenize("10 PRINT x\n20 END", name="prog.bas")
    assert toks[0].pos == Position("prog.bas", 0, 1, 1)
    assert toks[1].pos == Position("prog.bas", 3, 1, 4)
    assert toks[2].pos == Position("prog.bas", 9, 1, 10)
    assert toks[3].kind == T.CR
    assert toks[3].pos == Position("prog.bas", 10, 1, 11)
    assert toks[4].pos == Position("prog.bas", 11, 2, 1)
    assert str(toks[4].pos) == "prog.bas:2:1"


def test_offsets_count_bytes():
    toks = tokenize('"é" x')
    assert toks[0].kind == T.STRING
    assert toks[0].literal == '"é"'
    assert toks[1].pos.offset == 5
    assert toks[1].pos.column == 5


def test_retokenizing_is_deterministic():
    src = b'10 LET A = 1\n20 PRINT "x", A REM note\n30 IF A >= 1 THEN\n40 END\n'
    assert tokenize(src, "a.bas") == tokenize(src, "a.bas")


def test_rem_comment_is_skipped_by_default():
    assert kinds("10 PRINT 1 REM hello there\n20 END") == [
        T.NUMBER, T.PRINT, T.NUMBER, T.CR, T.NUMBER, T.END, T.EOF,
    ]


def test_rem_comment_is_surfaced_when_configured():
    toks = tokenize("10 PRINT 1 rem hello\n", config=Config(scan_comments=True))
    assert [t.kind for t in toks] == [T.NUMBER, T.PRINT, T.NUMBER, T.REM, T.CR, T.EOF]
    assert toks[3].literal == "rem hello"


def test_rem_at_end_of_input():
    assert kinds("10 END REM bye") == [T.NUMBER, T.END, T.EOF]


def test_unterminated_string_then_eof_repeats():
    t = Tokenizer('10 PRINT "abc')
    assert t.next().kind == T.NUMBER
    assert t.next().kind == T.PRINT
    err = t.next()
    assert err.kind == T.ERROR
    assert err.literal == "unterminated string"
    assert t.next().kind == T.EOF
    assert t.next().kind == T.EOF


def test_unterminated_string_stops_at_line_end():
    assert kinds('"abc\n20') == [T.ERROR, T.CR, T.NUMBER, T.EOF]


def test_unknown_character_does_not_stop_scanning():
    toks = tokenize("1 @ 2")
    assert [t.kind for t in toks] == [T.NUMBER, T.ERROR, T.NUMBER, T.EOF]
    assert toks[1].literal == "unknown character '@'"


def test_lone_bang_is_an_error_token():
    toks = tokenize("1 ! 2")
    assert toks[1].kind == T.ERROR
    assert toks[1].literal == "unknown character '!'"
    assert toks[2].kind == T.NUMBER


def test_invalid_utf8_becomes_error_token():
    toks = tokenize(b"1 \xff 2")
    assert [t.kind for t in toks] == [T.NUMBER, T.ERROR, T.NUMBER, T.EOF]
    assert toks[2].pos.offset == 4
