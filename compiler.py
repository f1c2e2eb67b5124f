from errors import EmitError
from ir import IRProgram, BINARY_OPS, POP, NONE, num, ref


class Compiler:
    """Lowers a validated program to linear IR.

    Top-level statements are emitted first (they form the entry point),
    followed by every function body between FUNC/END markers. Expressions
    are evaluated on a value stack; control flow becomes labels and jumps.
    """

    def __init__(self, analysis):
        self.analysis = analysis
        self.ir = None

        self.statement_handlers = {
            "Assignment": self.compile_assignment,
            "FunctionDef": self.compile_funcdef,
            "IfStatement": self.compile_if,
            "WhileLoop": self.compile_while,
            "ForLoop": self.compile_for,
            "StructDef": self.compile_type_def,
            "EnumDef": self.compile_type_def,
            "ReturnStatement": self.compile_return,
        }
        self.expression_handlers = {
            "NumberLiteral": self.compile_number,
            "IdentifierRef": self.compile_identifier,
            "BinaryExpr": self.compile_binary,
            "TernaryExpr": self.compile_ternary,
            "FunctionCall": self.compile_call,
            "StructInit": self.compile_struct_init,
            "FieldAccess": self.compile_field_access,
        }

    def emit(self, op, *args):
        return self.ir.emit(op, *args)

    def compile(self, program):
        self.ir = IRProgram()
        self.ir.globals = list(self.analysis.globals)

        # Pass 1: top-level code (skip FunctionDef).
        for stmt in program.statements:
            if stmt.kind != "FunctionDef":
                self.compile_stmt(stmt)

        # Pass 2: function bodies.
        for stmt in program.statements:
            if stmt.kind == "FunctionDef":
                self.compile_stmt(stmt)

        return self.ir

    # -------- statements --------
    def compile_block(self, statements):
        for stmt in statements:
            self.compile_stmt(stmt)

    def compile_stmt(self, node):
        handler = self.statement_handlers.get(node.kind)
        if handler is None:
            raise EmitError(f"Unknown statement node: {node.kind}", node.line, node.column)
        handler(node)

    def compile_assignment(self, node):
        value = node.value
        # literal and bare-name values store directly
        if value.kind == "NumberLiteral":
            self.emit("STORE", node.target, num(value.value))
        elif value.kind == "IdentifierRef":
            self.emit("STORE", node.target, ref(value.name))
        else:
            self.compile_expr(value)
            self.emit("STORE", node.target, POP)

    def compile_funcdef(self, node):
        info = self.analysis.functions[node.name]
        self.emit("FUNC", node.name, tuple(info.params), tuple(info.locals))
        self.compile_block(node.body)
        self.emit("END", node.name)

    def compile_return(self, node):
        if node.value is None:
            self.emit("RETURN", NONE)
            return
        self.compile_expr(node.value)
        self.emit("RETURN", POP)

    def compile_if(self, node):
        n = self.ir.new_label_id()
        then_label = f"L_if_then_{n}"
        else_label = f"L_if_else_{n}"
        end_label = f"L_if_end_{n}"

        self.compile_expr(node.condition)
        self.emit("JUMPZ", else_label if node.else_branch is not None else end_label)

        self.emit("LABEL", then_label)
        self.compile_block(node.then_branch)

        if node.else_branch is not None:
            self.emit("JUMP", end_label)
            self.emit("LABEL", else_label)
            self.compile_block(node.else_branch)

        self.emit("LABEL", end_label)

    def compile_while(self, node):
        n = self.ir.new_label_id()
        start_label = f"L_while_start_{n}"
        end_label = f"L_while_end_{n}"

        self.emit("LABEL", start_label)
        self.compile_expr(node.condition)
        self.emit("JUMPZ", end_label)
        self.compile_block(node.body)
        self.emit("JUMP", start_label)
        self.emit("LABEL", end_label)

    def compile_for(self, node):
        n = self.ir.new_label_id()
        start_label = f"L_for_start_{n}"
        end_label = f"L_for_end_{n}"

        self.compile_stmt(node.initializer)
        self.emit("LABEL", start_label)
        self.compile_expr(node.condition)
        self.emit("JUMPZ", end_label)
        self.compile_block(node.body)
        self.compile_stmt(node.increment)
        self.emit("JUMP", start_label)
        self.emit("LABEL", end_label)

    def compile_type_def(self, node):
        # struct and enum definitions only shape field offsets and constants
        return

    # -------- expressions --------
    def compile_expr(self, node):
        handler = self.expression_handlers.get(node.kind)
        if handler is None:
            raise EmitError(f"Unknown expression node: {node.kind}", node.line, node.column)
        handler(node)

    def compile_number(self, node):
        self.emit("PUSH", num(node.value))

    def compile_identifier(self, node):
        self.emit("PUSH", ref(node.name))

    def compile_binary(self, node):
        self.compile_expr(node.left)
        self.compile_expr(node.right)
        self.emit(BINARY_OPS[node.op])

    def compile_ternary(self, node):
        n = self.ir.new_label_id()
        else_label = f"L_tern_else_{n}"
        end_label = f"L_tern_end_{n}"

        self.compile_expr(node.condition)
        self.emit("JUMPZ", else_label)
        self.compile_expr(node.then_expr)
        self.emit("JUMP", end_label)
        self.emit("LABEL", else_label)
        self.compile_expr(node.else_expr)
        self.emit("LABEL", end_label)

    def compile_call(self, node):
        # arguments are pushed right to left
        for arg in reversed(node.args):
            self.compile_expr(arg)
        self.emit("CALL", node.name, len(node.args))

    def compile_struct_init(self, node):
        fields = self.analysis.structs[node.struct_name]
        self.emit("NEW", node.struct_name, len(fields))

    def compile_field_access(self, node):
        if node.enum_value is not None:
            self.emit("PUSH", num(str(node.enum_value)))
            return
        if node.offset is None:
            raise EmitError(f"Unresolved field '{node.field}'", node.line, node.column)
        self.compile_expr(node.obj)
        self.emit("FIELD", node.field, node.offset)
