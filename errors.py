class HyperlaceError(Exception):
    # Stage tag reported in diagnostics (Lex/Parse/Semantic/Emit/Codegen).
    stage = "Compile"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def format(self, indent: str = "") -> str:
        text = f"{indent}{self.kind}: {self.message}"
        if self.line is not None:
            text += f" at line {self.line}"
            if self.column is not None:
                text += f", col {self.column}"
        return text

    def __str__(self) -> str:
        return self.format()


class LexError(HyperlaceError):
    stage = "Lex"


class ParseError(HyperlaceError):
    stage = "Parse"


class SemanticError(HyperlaceError):
    stage = "Semantic"


class EmitError(HyperlaceError):
    stage = "Emit"


# Output sink failures are reported under the emit stage.
IoError = EmitError


class CodegenError(HyperlaceError):
    stage = "Codegen"
