class ASTNode:
    # Closed tag, one per node class. Later stages dispatch on it.
    kind = "Node"

    # Source position of the first token (1-based). Parser sets these.
    line: int | None = None
    column: int | None = None

    def at(self, token):
        self.line = token.line
        self.column = token.column
        return self


class Statement(ASTNode):
    pass


class Expression(ASTNode):
    pass


class Program(ASTNode):
    kind = "Program"

    def __init__(self, statements):
        self.statements = statements


# ---------- statements ----------

class Assignment(Statement):
    kind = "Assignment"

    def __init__(self, target, value, mutable=True):
        self.target = target      # variable name
        self.value = value        # expression
        self.mutable = mutable    # False for `name := expr`


class FunctionDef(Statement):
    kind = "FunctionDef"

    def __init__(self, name, params, body):
        self.name = name
        self.params = params  # list[str]
        self.body = body      # list[Statement]


class IfStatement(Statement):
    kind = "IfStatement"

    def __init__(self, condition, then_branch, else_branch=None):
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch  # list[Statement] | None


class WhileLoop(Statement):
    kind = "WhileLoop"

    def __init__(self, condition, body):
        self.condition = condition
        self.body = body


class ForLoop(Statement):
    kind = "ForLoop"

    def __init__(self, initializer, condition, increment, body):
        self.initializer = initializer  # Assignment
        self.condition = condition
        self.increment = increment      # Assignment
        self.body = body


class StructDef(Statement):
    kind = "StructDef"

    def __init__(self, name, fields):
        self.name = name
        self.fields = fields  # list[str]


class EnumDef(Statement):
    kind = "EnumDef"

    def __init__(self, name, variants):
        self.name = name
        self.variants = variants  # list[str]


class ReturnStatement(Statement):
    kind = "ReturnStatement"

    def __init__(self, value=None):
        self.value = value  # expression | None


# ---------- expressions ----------

class NumberLiteral(Expression):
    kind = "NumberLiteral"

    def __init__(self, value):
        self.value = value  # numeric text, e.g. "42" or "1.5"


class IdentifierRef(Expression):
    kind = "IdentifierRef"

    def __init__(self, name):
        self.name = name


class BinaryExpr(Expression):
    kind = "BinaryExpr"

    def __init__(self, op, left, right):
        self.op = op
        self.left = left
        self.right = right


class TernaryExpr(Expression):
    kind = "TernaryExpr"

    def __init__(self, condition, then_expr, else_expr):
        self.condition = condition
        self.then_expr = then_expr
        self.else_expr = else_expr


class FunctionCall(Expression):
    kind = "FunctionCall"

    def __init__(self, name, args):
        self.name = name
        self.args = args


class StructInit(Expression):
    kind = "StructInit"

    def __init__(self, struct_name):
        self.struct_name = struct_name


class FieldAccess(Expression):
    kind = "FieldAccess"

    def __init__(self, obj, field):
        self.obj = obj
        self.field = field
        # Filled in by the semantic analyzer: byte offset into a struct
        # record, or the value of an enum variant.
        self.offset = None
        self.enum_value = None


STATEMENT_KINDS = (
    "Assignment", "FunctionDef", "IfStatement", "WhileLoop", "ForLoop",
    "StructDef", "EnumDef", "ReturnStatement",
)

EXPRESSION_KINDS = (
    "NumberLiteral", "IdentifierRef", "BinaryExpr", "TernaryExpr",
    "FunctionCall", "StructInit", "FieldAccess",
)
