import typing

from errors import LexError

IDENTIFIER = "IDENTIFIER"
NUMBER = "NUMBER"
STRING = "STRING"
KEYWORD = "KEYWORD"
SYMBOL = "SYMBOL"
COMMENT = "COMMENT"
ASSIGN = "ASSIGN"
AUG_ASSIGN = "AUG_ASSIGN"
EOL = "EOL"
EOF = "EOF"

KEYWORDS = {"Start", "if", "else", "while", "for", "Init", "enum", "return"}

SYMBOLS = "(){},.+-*/?:"


def is_letter(ch):
    return ch is not None and ch.isascii() and ch.isalpha()


def is_digit(ch):
    return ch is not None and ch.isascii() and ch.isdigit()


class Token(typing.NamedTuple):
    kind: str
    lexeme: str = ""
    line: int = 1
    column: int = 1

    def is_symbol(self, lexeme):
        return self.kind == SYMBOL and self.lexeme == lexeme

    def is_keyword(self, lexeme):
        return self.kind == KEYWORD and self.lexeme == lexeme

    def __repr__(self):
        if self.lexeme:
            return f"{self.kind}({self.lexeme})"
        return f"{self.kind}"


class Lexer:
    def __init__(self, text, source_map=None, keep_comments=False):
        self.text = text
        self.source_map = source_map
        self.keep_comments = keep_comments
        self.reset()

    def reset(self):
        self.pos = 0
        self.current_char = self.text[0] if self.text else None
        self.line = 1
        self.column = 1

    def advance(self):
        # track line/column based on current_char before moving
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self):
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def location(self, line, column):
        if self.source_map is None:
            return line, column
        return self.source_map.locate(line, column)

    def make_token(self, kind, lexeme, line, column):
        line, column = self.location(line, column)
        return Token(kind, lexeme, line=line, column=column)

    def error(self, message, line, column):
        line, column = self.location(line, column)
        raise LexError(message, line, column)

    def tokenize(self):
        # always restart so the same lexer can be re-run
        self.reset()
        tokens = []
        while True:
            tok = self.get_next_token()
            if tok.kind == COMMENT and not self.keep_comments:
                continue
            tokens.append(tok)
            if tok.kind == EOF:
                return tokens

    def skip_whitespace(self):
        while self.current_char is not None and self.current_char.isspace():
            self.advance()

    def read_comment(self):
        start_line, start_col = self.line, self.column
        result = ""
        while self.current_char is not None and self.current_char != "\n":
            result += self.current_char
            self.advance()
        return self.make_token(COMMENT, result, start_line, start_col)

    def read_identifier(self):
        start_line, start_col = self.line, self.column
        result = ""
        while is_letter(self.current_char) or self.current_char == "_":
            result += self.current_char
            self.advance()
        kind = KEYWORD if result in KEYWORDS else IDENTIFIER
        return self.make_token(kind, result, start_line, start_col)

    def read_number(self):
        start_line, start_col = self.line, self.column
        result = ""
        has_dot = False

        while self.current_char is not None:
            if is_digit(self.current_char):
                result += self.current_char
                self.advance()
                continue
            # one decimal point, and only when a digit follows it
            next_char = self.peek()
            if self.current_char == "." and not has_dot and is_digit(next_char):
                has_dot = True
                result += self.current_char
                self.advance()
                continue
            break

        return self.make_token(NUMBER, result, start_line, start_col)

    def read_string(self):
        start_line, start_col = self.line, self.column
        quote = self.current_char
        self.advance()  # skip opening quote
        result = ""

        while self.current_char is not None and self.current_char not in (quote, "\n"):
            result += self.current_char
            self.advance()

        if self.current_char != quote:
            self.error("Unterminated string", start_line, start_col)

        self.advance()  # skip closing quote
        return self.make_token(STRING, result, start_line, start_col)

    def get_next_token(self):
        while self.current_char is not None:
            if self.current_char.isspace():
                self.skip_whitespace()
                continue

            if self.current_char == "#":
                return self.read_comment()

            if is_letter(self.current_char):
                return self.read_identifier()

            if is_digit(self.current_char):
                return self.read_number()

            if self.current_char in "\"'":
                return self.read_string()

            start_line, start_col = self.line, self.column

            if self.current_char == "=":
                self.advance()
                return self.make_token(ASSIGN, "=", start_line, start_col)

            # immutable binding
            if self.current_char == ":" and self.peek() == "=":
                self.advance()
                self.advance()
                return self.make_token(ASSIGN, ":=", start_line, start_col)

            if self.current_char == "+" and self.peek() == "=":
                self.advance()
                self.advance()
                return self.make_token(AUG_ASSIGN, "+=", start_line, start_col)

            if self.current_char == ";":
                self.advance()
                return self.make_token(EOL, ";", start_line, start_col)

            if self.current_char in SYMBOLS:
                ch = self.current_char
                self.advance()
                return self.make_token(SYMBOL, ch, start_line, start_col)

            self.error(f"Unexpected character '{self.current_char}'", start_line, start_col)

        return self.make_token(EOF, "", self.line, self.column)
