import os
import tempfile
import time

from codegen import NasmGenerator
from compiler import Compiler
from errors import HyperlaceError, LexError, ParseError, SemanticError, EmitError, CodegenError
from lexer import Lexer
from macros import MacroTable
from parser import Parser
from semantic import SemanticAnalyzer


class Diagnostic:
    def __init__(self, stage, message, line=None, column=None, kind=None):
        self.stage = stage      # Lex, Parse, Semantic, Emit or Codegen
        self.message = message
        self.line = line
        self.column = column
        self.kind = kind or f"{stage}Error"

    @classmethod
    def from_error(cls, err):
        return cls(err.stage, err.message, err.line, err.column, kind=err.kind)

    def __str__(self):
        text = f"{self.kind}: {self.message}"
        if self.line is not None:
            text += f" at line {self.line}"
            if self.column is not None:
                text += f", col {self.column}"
        return text

    def __repr__(self):
        return f"Diagnostic({self.stage!r}, {self.message!r}, {self.line!r}, {self.column!r})"


class CompileResult:
    def __init__(self, source):
        self.source = source
        self.expanded = None
        self.tokens = None
        self.program = None
        self.analysis = None
        self.ir_program = None
        self.ir = None
        self.assembly = None
        self.diagnostic = None
        self.elapsed = 0.0

    @property
    def ok(self):
        return self.diagnostic is None


def compile_source(source_text, macros=None):
    """Run the whole pipeline on one source text.

    Returns a CompileResult; on failure ``diagnostic`` names the stage that
    failed and ``ir``/``assembly`` stay None. Stages after the failing one
    never run.
    """
    start = time.perf_counter()
    result = CompileResult(source_text)
    table = macros if macros is not None else MacroTable.with_defaults()

    stage = LexError
    try:
        result.expanded, source_map = table.expand_with_map(source_text)
        result.tokens = Lexer(result.expanded, source_map=source_map).tokenize()
        stage = ParseError
        result.program = Parser(result.tokens).parse()
        stage = SemanticError
        result.analysis = SemanticAnalyzer().analyze(result.program)
        stage = EmitError
        result.ir_program = Compiler(result.analysis).compile(result.program)
        ir_text = result.ir_program.render()
        stage = CodegenError
        result.assembly = NasmGenerator(result.ir_program).generate()
        result.ir = ir_text
    except HyperlaceError as e:
        result.diagnostic = Diagnostic.from_error(e)
    except RecursionError:
        # the tree walkers recurse once per nesting level
        result.diagnostic = Diagnostic.from_error(stage("Program nests too deeply"))

    result.elapsed = time.perf_counter() - start
    return result


def write_artifacts(outputs):
    """Write {path: text} so that each file is either complete or absent.

    Everything goes to temp files in the target directories first and is
    moved into place only once all of them were written.
    """
    staged = []
    try:
        for path, text in outputs.items():
            directory = os.path.dirname(os.path.abspath(path))
            fd, tmp_path = tempfile.mkstemp(prefix=".hl-", dir=directory)
            staged.append((tmp_path, path))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
        for tmp_path, path in staged:
            os.replace(tmp_path, path)
    except OSError as e:
        for tmp_path, _ in staged:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        target = e.filename or "output"
        raise EmitError(f"Cannot write {target}: {e.strerror or e}")


def write_artifact(path, text):
    write_artifacts({path: text})
