"""Semantic checks over the parsed program.

Walks statements in program order with a stack of scopes (the global scope
at the bottom, one scope per function body). The first violation raises
``SemanticError``; on success an ``Analysis`` describes the storage the
later stages need: globals, per-function parameters and locals, and the
struct/enum tables.
"""

from errors import SemanticError

CELL_SIZE = 8


class Binding:
    def __init__(self, name, mutable=True, struct_name=None):
        self.name = name
        self.mutable = mutable
        self.struct_name = struct_name  # record type, when known


class Scope:
    def __init__(self, name):
        self.name = name
        self.bindings = {}

    def declare(self, name, mutable=True):
        binding = Binding(name, mutable)
        self.bindings[name] = binding
        return binding

    def get(self, name):
        return self.bindings.get(name)

    def __contains__(self, name):
        return name in self.bindings


class FunctionInfo:
    def __init__(self, name, params):
        self.name = name
        self.params = list(params)
        self.locals = []  # in first-assignment order


class Analysis:
    def __init__(self):
        self.globals = []    # in first-assignment order
        self.functions = {}  # name -> FunctionInfo
        self.structs = {}    # name -> [field, ...]
        self.enums = {}      # name -> [variant, ...]

    def field_offset(self, struct_name, field):
        return self.structs[struct_name].index(field) * CELL_SIZE


class SemanticAnalyzer:
    def __init__(self):
        self.scopes = []
        self.function = None
        self.analysis = None

        self.statement_handlers = {
            "Assignment": self.check_assignment,
            "FunctionDef": self.check_function_def,
            "IfStatement": self.check_if,
            "WhileLoop": self.check_while,
            "ForLoop": self.check_for,
            "StructDef": self.check_struct_def,
            "EnumDef": self.check_enum_def,
            "ReturnStatement": self.check_return,
        }
        self.expression_handlers = {
            "NumberLiteral": self.check_number,
            "IdentifierRef": self.check_identifier,
            "BinaryExpr": self.check_binary,
            "TernaryExpr": self.check_ternary,
            "FunctionCall": self.check_call,
            "StructInit": self.check_struct_init,
            "FieldAccess": self.check_field_access,
        }

    def error(self, message, node):
        raise SemanticError(message, node.line, node.column)

    # ---------- scopes ----------
    @property
    def current_scope(self):
        return self.scopes[-1]

    def lookup(self, name):
        for scope in reversed(self.scopes):
            binding = scope.get(name)
            if binding is not None:
                return binding
        return None

    def declare(self, name, mutable=True):
        binding = self.current_scope.declare(name, mutable)
        if self.function is None:
            self.analysis.globals.append(name)
        else:
            self.function.locals.append(name)
        return binding

    # ---------- entry ----------
    def analyze(self, program):
        self.analysis = Analysis()
        self.scopes = [Scope("<global>")]
        self.function = None

        # Collect signatures first so calls may precede definitions.
        for stmt in program.statements:
            if stmt.kind != "FunctionDef":
                continue
            if stmt.name in self.analysis.functions:
                self.error(f"Function '{stmt.name}' is already defined", stmt)
            self.analysis.functions[stmt.name] = FunctionInfo(stmt.name, stmt.params)

        self.check_block(program.statements)
        return self.analysis

    # ---------- statements ----------
    def check_block(self, statements):
        for stmt in statements:
            self.check_statement(stmt)

    def check_statement(self, node):
        handler = self.statement_handlers.get(node.kind)
        if handler is None:
            self.error(f"Unknown statement kind: {node.kind}", node)
        handler(node)

    def check_assignment(self, node):
        # An existing binding (in this or an enclosing scope) is reused, so
        # `x = x + 1` is legal once x exists. A new name is not visible to
        # its own initializer.
        binding = self.lookup(node.target)
        if binding is None:
            struct_name = self.check_expr(node.value)
            binding = self.declare(node.target, node.mutable)
        elif not node.mutable:
            self.error(f"Variable '{node.target}' is already declared", node)
        elif not binding.mutable:
            self.error(f"Cannot assign to immutable variable '{node.target}'", node)
        else:
            struct_name = self.check_expr(node.value)

        binding.struct_name = struct_name

    def check_function_def(self, node):
        info = self.analysis.functions.get(node.name)
        if info is None:
            self.error(f"Function '{node.name}' must be defined at top level", node)

        scope = Scope(node.name)
        for param in node.params:
            if param in scope:
                self.error(f"Duplicate parameter '{param}' in function '{node.name}'", node)
            scope.declare(param)

        outer = self.function
        self.function = info
        self.scopes.append(scope)
        try:
            self.check_block(node.body)
        finally:
            self.scopes.pop()
            self.function = outer

    def check_if(self, node):
        self.check_expr(node.condition)
        self.check_block(node.then_branch)
        if node.else_branch is not None:
            self.check_block(node.else_branch)

    def check_while(self, node):
        self.check_expr(node.condition)
        self.check_block(node.body)

    def check_for(self, node):
        self.check_statement(node.initializer)
        self.check_expr(node.condition)
        self.check_statement(node.increment)
        self.check_block(node.body)

    def check_type_name(self, node):
        # functions are collected up front, so this also catches a function
        # defined after the type
        taken = (self.analysis.structs, self.analysis.enums, self.analysis.functions)
        if any(node.name in names for names in taken):
            self.error(f"Type '{node.name}' is already defined", node)

    def check_struct_def(self, node):
        self.check_type_name(node)
        seen = set()
        for field in node.fields:
            if field in seen:
                self.error(f"Duplicate field '{field}' in struct '{node.name}'", node)
            seen.add(field)
        self.analysis.structs[node.name] = list(node.fields)

    def check_enum_def(self, node):
        self.check_type_name(node)
        seen = set()
        for variant in node.variants:
            if variant in seen:
                self.error(f"Duplicate variant '{variant}' in enum '{node.name}'", node)
            seen.add(variant)
        self.analysis.enums[node.name] = list(node.variants)

    def check_return(self, node):
        if self.function is None:
            self.error("Return statement used outside a function", node)
        if node.value is not None:
            self.check_expr(node.value)

    # ---------- expressions ----------
    # Each check returns the struct name of the value when it is a record,
    # otherwise None.
    def check_expr(self, node):
        handler = self.expression_handlers.get(node.kind)
        if handler is None:
            self.error(f"Unknown expression kind: {node.kind}", node)
        return handler(node)

    def check_number(self, node):
        return None

    def check_identifier(self, node):
        binding = self.lookup(node.name)
        if binding is None:
            self.error(f"Use of undeclared variable '{node.name}'", node)
        return binding.struct_name

    def check_binary(self, node):
        self.check_expr(node.left)
        self.check_expr(node.right)
        return None

    def check_ternary(self, node):
        self.check_expr(node.condition)
        then_struct = self.check_expr(node.then_expr)
        else_struct = self.check_expr(node.else_expr)
        return then_struct if then_struct == else_struct else None

    def check_call(self, node):
        info = self.analysis.functions.get(node.name)
        if info is None:
            self.error(f"Call to undefined function '{node.name}'", node)
        if len(node.args) != len(info.params):
            self.error(
                f"Function '{node.name}' expects {len(info.params)} argument(s), got {len(node.args)}",
                node,
            )
        for arg in node.args:
            self.check_expr(arg)
        return None

    def check_struct_init(self, node):
        if node.struct_name not in self.analysis.structs:
            self.error(f"Unknown struct '{node.struct_name}'", node)
        return node.struct_name

    def check_field_access(self, node):
        obj = node.obj
        enums = self.analysis.enums

        # Color.Red, unless a variable shadows the enum name
        if obj.kind == "IdentifierRef" and obj.name in enums and self.lookup(obj.name) is None:
            variants = enums[obj.name]
            if node.field not in variants:
                self.error(f"Enum '{obj.name}' has no variant '{node.field}'", node)
            node.enum_value = variants.index(node.field)
            return None

        struct_name = self.check_expr(obj)
        if struct_name is not None:
            if node.field not in self.analysis.structs[struct_name]:
                self.error(f"Struct '{struct_name}' has no field '{node.field}'", node)
            node.offset = self.analysis.field_offset(struct_name, node.field)
            return None

        # Record type unknown (e.g. a parameter): the field name must pin
        # down a single offset across all structs.
        offsets = {
            self.analysis.field_offset(name, node.field)
            for name, fields in self.analysis.structs.items()
            if node.field in fields
        }
        if not offsets:
            self.error(f"Unknown field '{node.field}'", node)
        if len(offsets) > 1:
            self.error(f"Ambiguous field '{node.field}': the value's struct type is unknown", node)
        node.offset = offsets.pop()
        return None
