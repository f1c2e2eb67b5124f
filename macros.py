"""Token-level macro preprocessing.

A macro is a literal trigger word (``|inc|``) replaced by literal text
(``x = x + 1;``) before lexing. Expansion is a single, non-recursive pass:
the replacement is inserted as-is and never re-scanned.

Words on a line are re-joined with single spaces, but line breaks are kept,
so line numbers stay aligned with the original file. ``SourceMap`` maps
columns of the expanded text back to the original text.
"""

import re
from bisect import bisect_right

_WORD = re.compile(r"\S+")

DEFAULT_MACROS = {
    "|inc|": "x = x + 1;",
    "|dec|": "x = x - 1;",
    "|reset|": "x = 0;",
}


class SourceMap:
    def __init__(self):
        # line -> sorted list of (expanded_col, original_col, from_macro)
        self.lines = {}

    def add(self, line, expanded_col, original_col, from_macro):
        self.lines.setdefault(line, []).append((expanded_col, original_col, from_macro))

    def locate(self, line, column):
        """Translate a 1-based (line, column) of expanded text to the original."""
        entries = self.lines.get(line)
        if not entries:
            return line, column

        starts = [e[0] for e in entries]
        i = bisect_right(starts, column) - 1
        if i < 0:
            return line, column

        expanded_col, original_col, from_macro = entries[i]
        if from_macro:
            # everything produced by a macro points at its trigger
            return line, original_col
        return line, original_col + (column - expanded_col)


class MacroTable:
    def __init__(self, macros=None):
        self.macros = {}
        for trigger, replacement in (macros or {}).items():
            self.define(trigger, replacement)

    @classmethod
    def with_defaults(cls):
        table = cls()
        table.load_defaults()
        return table

    def load_defaults(self):
        for trigger, replacement in DEFAULT_MACROS.items():
            self.define(trigger, replacement)

    def define(self, trigger: str, replacement: str):
        if not trigger or any(ch.isspace() for ch in trigger):
            raise ValueError(f"Invalid macro trigger: {trigger!r}")
        if "\n" in replacement:
            # an expansion must stay on the trigger's line
            raise ValueError(f"Macro replacement for {trigger!r} spans lines")
        self.macros[trigger] = replacement

    def __contains__(self, trigger):
        return trigger in self.macros

    def __len__(self):
        return len(self.macros)

    def expand(self, text: str) -> str:
        expanded, _ = self.expand_with_map(text)
        return expanded

    def expand_with_map(self, text: str):
        source_map = SourceMap()
        out_lines = []

        for line_no, line in enumerate(text.split("\n"), start=1):
            parts = []
            col = 1
            for m in _WORD.finditer(line):
                word = m.group()
                from_macro = word in self.macros
                if from_macro:
                    word = self.macros[word]
                if parts:
                    col += 1  # separating space
                source_map.add(line_no, col, m.start() + 1, from_macro)
                parts.append(word)
                col += len(word)
            out_lines.append(" ".join(parts))

        return "\n".join(out_lines), source_map
