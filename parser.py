from ast_nodes import (
    Program, Assignment, FunctionDef, IfStatement, WhileLoop, ForLoop, StructDef, EnumDef, ReturnStatement,
    NumberLiteral, IdentifierRef, BinaryExpr, TernaryExpr, FunctionCall, StructInit, FieldAccess,
)
from errors import ParseError
from lexer import IDENTIFIER, NUMBER, STRING, KEYWORD, SYMBOL, ASSIGN, AUG_ASSIGN, EOL, EOF

# Binding power, lowest to highest.
PREC_LOWEST = 0
PREC_ASSIGN = 1   # =
PREC_COND = 2     # ?:
PREC_SUM = 3      # + -
PREC_PRODUCT = 4  # * /
PREC_PREFIX = 5   # -x
PREC_CALL = 6     # () .
PREC_PRIMARY = 7

INFIX_PRECEDENCE = {
    "?": PREC_COND,
    "+": PREC_SUM,
    "-": PREC_SUM,
    "*": PREC_PRODUCT,
    "/": PREC_PRODUCT,
    ".": PREC_CALL,
}


def describe(tok):
    if tok.kind == EOF:
        return "end of input"
    return f"'{tok.lexeme}'"


class Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0
        self.block_depth = 0
        # struct names seen so far, so that `Name()` parses as StructInit
        self.struct_names = set()

    # ---------- TOKEN HELPERS ----------
    @property
    def current_token(self):
        return self.tokens[self.pos]

    def peek(self, offset=0):
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def advance(self):
        tok = self.current_token
        if tok.kind != EOF:
            self.pos += 1
        return tok

    def error_here(self, message, tok=None):
        tok = tok or self.current_token
        raise ParseError(message, tok.line, tok.column)

    def check(self, kind, lexeme=None):
        tok = self.current_token
        return tok.kind == kind and (lexeme is None or tok.lexeme == lexeme)

    # move to next token, but only if it matches what we expect
    def expect(self, kind, lexeme=None, message=None):
        if self.check(kind, lexeme):
            return self.advance()
        if message is None:
            wanted = f"'{lexeme}'" if lexeme is not None else kind.lower()
            message = f"Expected {wanted} but found {describe(self.current_token)}"
        self.error_here(message)

    def expect_symbol(self, ch):
        return self.expect(SYMBOL, ch)

    def expect_identifier(self, message):
        return self.expect(IDENTIFIER, message=message).lexeme

    # ---------- TOP LEVEL ----------
    def parse(self):
        statements = []
        while self.current_token.kind != EOF:
            statements.append(self.statement())
        return Program(statements)

    # ---------- STATEMENTS ----------
    def statement(self):
        tok = self.current_token

        if tok.kind == IDENTIFIER and self.peek(1).kind in (ASSIGN, AUG_ASSIGN):
            return self.assignment()

        if tok.kind == KEYWORD:
            if tok.lexeme == "Start":
                if self.block_depth != 0:
                    self.error_here("function definitions are only allowed at top level")
                return self.function_def()
            if tok.lexeme == "if":
                return self.if_statement()
            if tok.lexeme == "while":
                return self.while_statement()
            if tok.lexeme == "for":
                return self.for_statement()
            if tok.lexeme == "Init":
                return self.struct_def()
            if tok.lexeme == "enum":
                return self.enum_def()
            if tok.lexeme == "return":
                return self.return_statement()

        self.error_here(f"Unexpected statement starting with {describe(tok)}")

    def assignment(self, terminated=True):
        name_tok = self.expect(IDENTIFIER, message="Expected assignment target")
        name = name_tok.lexeme

        if self.check(AUG_ASSIGN):
            op_tok = self.advance()
            # x += e  ->  x = x + e
            current = IdentifierRef(name).at(name_tok)
            value = BinaryExpr("+", current, self.expression()).at(op_tok)
            node = Assignment(name, value)
        else:
            assign_tok = self.expect(ASSIGN, message=f"Expected '=' after '{name}'")
            value = self.expression()
            node = Assignment(name, value, mutable=(assign_tok.lexeme != ":="))

        if terminated:
            self.expect(EOL, message=f"Expected ';' after assignment to '{name}'")
        return node.at(name_tok)

    def block(self):
        self.expect_symbol("{")
        self.block_depth += 1

        statements = []
        while not self.check(SYMBOL, "}"):
            if self.current_token.kind == EOF:
                self.error_here("Expected '}' before end of input")
            statements.append(self.statement())

        self.expect_symbol("}")
        self.block_depth -= 1
        return statements

    def condition(self):
        self.expect_symbol("(")
        expr = self.expression()
        self.expect_symbol(")")
        return expr

    def function_def(self):
        tok = self.advance()  # Start
        name = self.expect_identifier("Expected function name after Start")
        self.expect_symbol("(")

        params = []
        if not self.check(SYMBOL, ")"):
            params.append(self.expect_identifier("Expected parameter name"))
            while self.check(SYMBOL, ","):
                self.advance()
                params.append(self.expect_identifier("Expected parameter name"))
        self.expect_symbol(")")

        body = self.block()
        return FunctionDef(name, params, body).at(tok)

    def if_statement(self):
        tok = self.advance()  # if
        condition = self.condition()
        then_branch = self.block()

        else_branch = None
        if self.check(KEYWORD, "else"):
            self.advance()
            if self.check(KEYWORD, "if"):
                # else-if chains nest as a single-statement else branch
                else_branch = [self.if_statement()]
            else:
                else_branch = self.block()

        return IfStatement(condition, then_branch, else_branch).at(tok)

    def while_statement(self):
        tok = self.advance()  # while
        condition = self.condition()
        body = self.block()
        return WhileLoop(condition, body).at(tok)

    def for_statement(self):
        tok = self.advance()  # for
        self.expect_symbol("(")
        initializer = self.assignment()
        condition = self.expression()
        self.expect(EOL, message="Expected ';' after for-loop condition")
        increment = self.assignment(terminated=False)
        self.expect_symbol(")")
        body = self.block()
        return ForLoop(initializer, condition, increment, body).at(tok)

    def struct_def(self):
        tok = self.advance()  # Init
        name = self.expect_identifier("Expected struct name after Init")
        self.expect_symbol("{")

        fields = []
        while not self.check(SYMBOL, "}"):
            fields.append(self.expect_identifier("Expected field name"))
            if self.check(SYMBOL, "}"):
                break
            self.expect(EOL, message="Expected ';' between struct fields")
        self.expect_symbol("}")

        if not fields:
            self.error_here(f"Struct '{name}' must declare at least one field", tok)

        self.struct_names.add(name)
        return StructDef(name, fields).at(tok)

    def enum_def(self):
        tok = self.advance()  # enum
        name = self.expect_identifier("Expected enum name after enum")
        self.expect_symbol("{")

        variants = [self.expect_identifier("Expected enum variant name")]
        while self.check(SYMBOL, ","):
            self.advance()
            if self.check(SYMBOL, "}"):
                break
            variants.append(self.expect_identifier("Expected enum variant name"))
        self.expect_symbol("}")

        return EnumDef(name, variants).at(tok)

    def return_statement(self):
        tok = self.advance()  # return
        value = None
        if not self.check(EOL):
            value = self.expression()
        self.expect(EOL, message="Expected ';' after return")
        return ReturnStatement(value).at(tok)

    # ---------- EXPRESSIONS (precedence climbing) ----------
    def infix_precedence(self):
        tok = self.current_token
        if tok.kind in (ASSIGN, AUG_ASSIGN):
            return PREC_ASSIGN
        if tok.kind == SYMBOL:
            return INFIX_PRECEDENCE.get(tok.lexeme, PREC_LOWEST)
        return PREC_LOWEST

    def expression(self, min_prec=PREC_LOWEST):
        node = self.prefix()

        while True:
            prec = self.infix_precedence()
            if prec <= min_prec:
                return node
            node = self.infix(node, prec)

    def infix(self, left, prec):
        tok = self.advance()

        if prec == PREC_ASSIGN:
            self.error_here("Assignment is not an expression", tok)

        if tok.lexeme == "?":
            then_expr = self.expression()
            self.expect_symbol(":")
            # right associative: a ? b : c ? d : e
            else_expr = self.expression(PREC_COND - 1)
            node = TernaryExpr(left, then_expr, else_expr)
            node.line, node.column = left.line, left.column
            return node

        if tok.lexeme == ".":
            field = self.expect_identifier("Expected field name after '.'")
            node = FieldAccess(left, field)
            node.line, node.column = left.line, left.column
            return node

        # left associative binary operator
        right = self.expression(prec)
        return BinaryExpr(tok.lexeme, left, right).at(tok)

    def prefix(self):
        tok = self.current_token

        if tok.kind == SYMBOL and tok.lexeme == "-":
            self.advance()
            # represent -x as (0 - x)
            operand = self.expression(PREC_PREFIX)
            return BinaryExpr("-", NumberLiteral("0").at(tok), operand).at(tok)

        if tok.kind == NUMBER:
            self.advance()
            return NumberLiteral(tok.lexeme).at(tok)

        if tok.kind == IDENTIFIER:
            self.advance()
            if self.check(SYMBOL, "("):
                if tok.lexeme in self.struct_names:
                    self.expect_symbol("(")
                    self.expect(SYMBOL, ")", message=f"Struct '{tok.lexeme}' takes no constructor arguments")
                    return StructInit(tok.lexeme).at(tok)
                return self.finish_call(tok)
            return IdentifierRef(tok.lexeme).at(tok)

        if tok.kind == SYMBOL and tok.lexeme == "(":
            self.advance()
            node = self.expression()
            self.expect_symbol(")")
            return node

        if tok.kind == STRING:
            self.error_here("String literals cannot be used as values")

        self.error_here(f"Unexpected token in expression: {describe(tok)}")

    def finish_call(self, name_tok):
        self.expect_symbol("(")

        args = []
        if not self.check(SYMBOL, ")"):
            args.append(self.expression())
            while self.check(SYMBOL, ","):
                self.advance()
                args.append(self.expression())

        self.expect_symbol(")")
        return FunctionCall(name_tok.lexeme, args).at(name_tok)
