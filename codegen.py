"""x86-64 NASM backend.

Every value is one 8-byte cell. The IR value stack is the machine stack;
``rax`` and ``rcx`` are the only scratch registers. Globals live in
``.data``, parameters and locals in the callee's ``rbp`` frame:

    [rbp + 16 + 8*i]   parameter i (pushed right to left by the caller)
    [rbp + 8]          return address
    [rbp - 8*(i+1)]    local i

The callee removes its arguments with ``ret 8*n`` and returns in ``rax``.
"""

from errors import CodegenError

HEAP_CELLS = 65536
INT_MAX = 2 ** 63 - 1

# Symbols the generated program defines for itself.
RUNTIME_SYMBOLS = {"_start", "hl_heap", "hl_heap_ptr", "hl_heap_end", "hl_out_of_memory"}


def symbol(name):
    # No NASM register, mnemonic or keyword is a single letter or contains an
    # underscore (identifiers cannot start with one). Those names are emitted
    # bare; every other name gets the `$` identifier prefix.
    if (len(name) == 1 or "_" in name) and name not in RUNTIME_SYMBOLS:
        return name
    return "$" + name


def function_label(name):
    return f"fn${name}"


def return_label(name):
    return f"fn${name}$ret"


def immediate(text):
    if not text.isdigit():
        raise CodegenError(f"Number literal '{text}' is not an integer; only 64-bit integers are supported")
    value = int(text)
    if value > INT_MAX:
        raise CodegenError(f"Integer literal {text} does not fit in 64 bits")
    return str(value)


class Frame:
    def __init__(self, name, params, local_names):
        self.name = name
        self.params = list(params)
        self.locals = list(local_names)

    def address(self, name):
        if name in self.params:
            return f"[rbp + {16 + 8 * self.params.index(name)}]"
        if name in self.locals:
            return f"[rbp - {8 * (self.locals.index(name) + 1)}]"
        return None


class NasmGenerator:
    def __init__(self, ir_program):
        self.ir = ir_program
        self.lines = []
        self.frame = None
        self.uses_heap = False

    def emit(self, text):
        self.lines.append(f"    {text}")

    def label(self, name):
        self.lines.append(f"{name}:")

    def address(self, name):
        if self.frame is not None:
            addr = self.frame.address(name)
            if addr is not None:
                return addr
        return f"[{symbol(name)}]"

    def generate(self):
        self.lines = []
        self.frame = None
        self.uses_heap = any(ins.op == "NEW" for ins in self.ir)

        self.lines.append("section .data")
        for name in self.ir.globals:
            self.lines.append(f"{symbol(name)} dq 0")
        if self.uses_heap:
            self.lines.append("hl_heap_ptr dq hl_heap")
            self.lines.append("")
            self.lines.append("section .bss")
            self.lines.append(f"hl_heap resq {HEAP_CELLS}")
            self.label("hl_heap_end")

        self.lines.append("")
        self.lines.append("section .text")
        self.lines.append("    global _start")
        self.label("_start")

        exited = False
        for ins in self.ir:
            if ins.op == "FUNC" and not exited:
                self.emit_exit()
                exited = True
            self.emit_instr(ins)
        if not exited:
            self.emit_exit()

        return "\n".join(self.lines) + "\n"

    def emit_exit(self):
        self.emit("mov rax, 60")
        self.emit("xor rdi, rdi")
        self.emit("syscall")
        if self.uses_heap:
            # reached when the record arena is exhausted; exits with status 1
            self.label("hl_out_of_memory")
            self.emit("mov rax, 60")
            self.emit("mov rdi, 1")
            self.emit("syscall")

    def emit_instr(self, ins):
        handler = getattr(self, f"gen_{ins.op.lower()}", None)
        if handler is None:
            raise CodegenError(f"Unknown IR instruction: {ins.op}")
        handler(*ins.args)

    # -------- data movement --------
    def gen_store(self, target, operand):
        kind = operand[0]
        if kind == "NUM":
            self.emit(f"mov rax, {immediate(operand[1])}")
        elif kind == "REF":
            self.emit(f"mov rax, {self.address(operand[1])}")
        else:
            self.emit("pop rax")
        self.emit(f"mov {self.address(target)}, rax")

    def gen_push(self, operand):
        if operand[0] == "NUM":
            self.emit(f"mov rax, {immediate(operand[1])}")
            self.emit("push rax")
        else:
            self.emit(f"push qword {self.address(operand[1])}")

    # -------- arithmetic --------
    def binary(self, *ops):
        self.emit("pop rcx")
        self.emit("pop rax")
        for op in ops:
            self.emit(op)
        self.emit("push rax")

    def gen_add(self):
        self.binary("add rax, rcx")

    def gen_sub(self):
        self.binary("sub rax, rcx")

    def gen_mul(self):
        self.binary("imul rax, rcx")

    def gen_div(self):
        self.binary("cqo", "idiv rcx")

    # -------- control flow --------
    def gen_label(self, name):
        self.label(name)

    def gen_jump(self, name):
        self.emit(f"jmp {name}")

    def gen_jumpz(self, name):
        self.emit("pop rax")
        self.emit("cmp rax, 0")
        self.emit(f"je {name}")

    # -------- functions --------
    def gen_func(self, name, params, local_names):
        self.frame = Frame(name, params, local_names)
        self.lines.append("")
        self.label(function_label(name))
        self.emit("push rbp")
        self.emit("mov rbp, rsp")
        if local_names:
            self.emit(f"sub rsp, {8 * len(local_names)}")
            for i in range(len(local_names)):
                self.emit(f"mov qword [rbp - {8 * (i + 1)}], 0")

    def gen_end(self, name):
        # falling off the end returns 0
        self.emit("xor rax, rax")
        self.label(return_label(name))
        self.emit("mov rsp, rbp")
        self.emit("pop rbp")
        argc = len(self.frame.params)
        self.emit(f"ret {8 * argc}" if argc else "ret")
        self.frame = None

    def gen_return(self, operand):
        if self.frame is None:
            raise CodegenError("RETURN outside of a function")
        if operand[0] == "POP":
            self.emit("pop rax")
        else:
            self.emit("xor rax, rax")
        self.emit(f"jmp {return_label(self.frame.name)}")

    def gen_call(self, name, argc):
        self.emit(f"call {function_label(name)}")
        self.emit("push rax")

    # -------- records --------
    def gen_new(self, struct_name, cells):
        # bump allocation from a zeroed arena, never freed
        self.emit("mov rax, [hl_heap_ptr]")
        self.emit(f"lea rcx, [rax + {8 * cells}]")
        self.emit("cmp rcx, hl_heap_end")
        self.emit("ja hl_out_of_memory")
        self.emit("mov [hl_heap_ptr], rcx")
        self.emit("push rax")

    def gen_field(self, field, offset):
        self.emit("pop rax")
        self.emit(f"mov rax, [rax + {offset}]")
        self.emit("push rax")
