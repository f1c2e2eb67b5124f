from errors import LexError
from lexer import Lexer, IDENTIFIER, NUMBER, STRING, KEYWORD, SYMBOL, COMMENT, ASSIGN, AUG_ASSIGN, EOL, EOF
from macros import MacroTable


def kinds(text, **kwargs):
    return [t.kind for t in Lexer(text, **kwargs).tokenize()]


def lexemes(text):
    return [t.lexeme for t in Lexer(text).tokenize()]


def expect_lex_error(text):
    try:
        Lexer(text).tokenize()
    except LexError as e:
        return e
    raise AssertionError(f"Expected LexError for {text!r}")


def test_simple_assignment():
    got = kinds("x = 5;")
    if got != [IDENTIFIER, ASSIGN, NUMBER, EOL, EOF]:
        raise AssertionError(got)
    if lexemes("x = 5;") != ["x", "=", "5", ";", ""]:
        raise AssertionError(lexemes("x = 5;"))


def test_keywords_are_reserved():
    tokens = Lexer("Start if else while for Init enum return start").tokenize()
    got = [t.kind for t in tokens[:-1]]
    if got != [KEYWORD] * 8 + [IDENTIFIER]:
        raise AssertionError(got)


def test_every_punctuation_char_is_its_own_symbol():
    tokens = Lexer("(){},.+-*/?:").tokenize()
    if [t.kind for t in tokens] != [SYMBOL] * 12 + [EOF]:
        raise AssertionError(tokens)
    if "".join(t.lexeme for t in tokens) != "(){},.+-*/?:":
        raise AssertionError(tokens)


def test_assignment_operators():
    got = kinds("a += 1; b := 2; c = 3;")
    expected = [
        IDENTIFIER, AUG_ASSIGN, NUMBER, EOL,
        IDENTIFIER, ASSIGN, NUMBER, EOL,
        IDENTIFIER, ASSIGN, NUMBER, EOL,
        EOF,
    ]
    if got != expected:
        raise AssertionError(got)
    if lexemes("b := 2;")[1] != ":=":
        raise AssertionError("immutable assignment lexeme")


def test_numbers_take_one_decimal_point():
    if lexemes("3.14") != ["3.14", ""]:
        raise AssertionError(lexemes("3.14"))
    if lexemes("1.2.3") != ["1.2", ".", "3", ""]:
        raise AssertionError(lexemes("1.2.3"))


def test_identifiers_are_letters_and_underscores():
    tokens = Lexer("snake_case x1").tokenize()
    got = [(t.kind, t.lexeme) for t in tokens]
    if got != [(IDENTIFIER, "snake_case"), (IDENTIFIER, "x"), (NUMBER, "1"), (EOF, "")]:
        raise AssertionError(got)


def test_strings():
    tokens = Lexer("\"hello world\" 'x'").tokenize()
    if [(t.kind, t.lexeme) for t in tokens[:2]] != [(STRING, "hello world"), (STRING, "x")]:
        raise AssertionError(tokens)


def test_unterminated_string_reports_its_start():
    err = expect_lex_error('x = "abc')
    if (err.line, err.column) != (1, 5):
        raise AssertionError((err.line, err.column))
    if "Unterminated string" not in err.message:
        raise AssertionError(err.message)

    err = expect_lex_error('x = "abc\n";')
    if err.line != 1:
        raise AssertionError("a string may not span lines")


def test_unexpected_character():
    err = expect_lex_error("x = 1 @ 2;")
    if (err.line, err.column) != (1, 7):
        raise AssertionError((err.line, err.column))
    if "'@'" not in err.message:
        raise AssertionError(err.message)

    expect_lex_error("_hidden = 1;")


def test_comments_are_discarded_unless_requested():
    text = "x = 1; # note\ny = 2;"
    if COMMENT in kinds(text):
        raise AssertionError("comment leaked into token stream")

    tokens = Lexer(text, keep_comments=True).tokenize()
    comments = [t for t in tokens if t.kind == COMMENT]
    if len(comments) != 1 or comments[0].lexeme != "# note":
        raise AssertionError(comments)


def test_positions_are_one_based():
    tokens = Lexer("x = 1;\n  yy = 2;").tokenize()
    yy = tokens[4]
    if (yy.lexeme, yy.line, yy.column) != ("yy", 2, 3):
        raise AssertionError(yy)
    eof = tokens[-1]
    if eof.kind != EOF or eof.line != 2:
        raise AssertionError(eof)


def test_tokens_are_immutable():
    tok = Lexer("x = 5;").tokenize()[0]
    try:
        tok.lexeme = "y"
    except AttributeError:
        pass
    else:
        raise AssertionError("token was modified")
    if tok.lexeme != "x":
        raise AssertionError(tok)


def test_tokenize_restarts_from_the_beginning():
    lexer = Lexer("a = b;")
    first = [(t.kind, t.lexeme) for t in lexer.tokenize()]
    second = [(t.kind, t.lexeme) for t in lexer.tokenize()]
    if first != second:
        raise AssertionError((first, second))


def test_positions_map_back_through_macro_expansion():
    source = "y = 1;\n  |inc|   z = 2;"
    expanded, source_map = MacroTable.with_defaults().expand_with_map(source)
    tokens = Lexer(expanded, source_map=source_map).tokenize()

    # every token of the expansion points at the trigger
    from_macro = tokens[4:10]
    if [t.lexeme for t in from_macro] != ["x", "=", "x", "+", "1", ";"]:
        raise AssertionError(from_macro)
    if {(t.line, t.column) for t in from_macro} != {(2, 3)}:
        raise AssertionError([(t.line, t.column) for t in from_macro])

    z = tokens[10]
    if (z.lexeme, z.line, z.column) != ("z", 2, 11):
        raise AssertionError((z.lexeme, z.line, z.column))


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_"):
            fn()
    print("ok")
