BINARY_OPS = {"+": "ADD", "-": "SUB", "*": "MUL", "/": "DIV"}

# operand forms
POP = ("POP",)
NONE = ("NONE",)


def num(value):
    return ("NUM", value)


def ref(name):
    return ("REF", name)


def format_operand(operand):
    if operand[0] in ("NUM", "REF"):
        return f"{operand[0]}({operand[1]})"
    return operand[0]


class Instr:
    def __init__(self, op, *args):
        self.op = op
        self.args = args

    def __repr__(self):
        return f"Instr({self.op}, {', '.join(repr(a) for a in self.args)})"

    def __str__(self):
        op, args = self.op, self.args
        if op == "STORE":
            return f"STORE {args[0]} <- {format_operand(args[1])}"
        if op in ("PUSH", "RETURN"):
            return f"{op} {format_operand(args[0])}"
        if op in ("LABEL", "JUMP", "JUMPZ", "END"):
            return f"{op} {args[0]}"
        if op == "CALL":
            return f"CALL {args[0]}({args[1]})"
        if op == "FUNC":
            name, params, local_names = args
            return f"FUNC {name}({', '.join(params)}) LOCALS({', '.join(local_names)})"
        if op == "NEW":
            return f"NEW {args[0]}[{args[1]}]"
        if op == "FIELD":
            return f"FIELD .{args[0]}@{args[1]}"
        return op


class IRProgram:
    def __init__(self):
        self.instructions = []  # list[Instr]
        self.globals = []       # data cells, in first-assignment order
        self._label_id = 0

    def emit(self, op, *args):
        # returns instruction index
        self.instructions.append(Instr(op, *args))
        return len(self.instructions) - 1

    def new_label_id(self):
        # one counter for every construct keeps labels unique
        label_id = self._label_id
        self._label_id += 1
        return label_id

    def count(self, op):
        return sum(1 for ins in self.instructions if ins.op == op)

    def render(self):
        return "".join(f"{ins}\n" for ins in self.instructions)

    def __iter__(self):
        return iter(self.instructions)

    def __len__(self):
        return len(self.instructions)
