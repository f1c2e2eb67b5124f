import os
import subprocess
import sys
import time
import traceback
import xml.etree.ElementTree as ET

from colorama import Fore, Style, just_fix_windows_console

from errors import HyperlaceError
from lexer import Lexer
from macros import MacroTable
from pipeline import compile_source, write_artifacts

USAGE = """Usage:
  python cli.py tokens <file.hl>
  python cli.py expand <file.hl>
  python cli.py parse <file.hl> [--xml]
  python cli.py check <file.hl>
  python cli.py build <file.hl> [-o <out_base>] [--ast] [--log] [--link]
  (optional) --debug to show Python traceback"""


# Simple AST printer (so you can SEE what the parser built)
def ast_to_dict(node):
    if node is None:
        return None
    if isinstance(node, list):
        return [ast_to_dict(s) for s in node]

    t = node.kind
    d = {"type": t}

    if t == "Program":
        d["statements"] = ast_to_dict(node.statements)
    elif t == "Assignment":
        d["target"] = node.target
        d["mutable"] = node.mutable
        d["value"] = ast_to_dict(node.value)
    elif t == "FunctionDef":
        d["name"] = node.name
        d["params"] = list(node.params)
        d["body"] = ast_to_dict(node.body)
    elif t == "IfStatement":
        d["condition"] = ast_to_dict(node.condition)
        d["then"] = ast_to_dict(node.then_branch)
        d["else"] = ast_to_dict(node.else_branch)
    elif t == "WhileLoop":
        d["condition"] = ast_to_dict(node.condition)
        d["body"] = ast_to_dict(node.body)
    elif t == "ForLoop":
        d["initializer"] = ast_to_dict(node.initializer)
        d["condition"] = ast_to_dict(node.condition)
        d["increment"] = ast_to_dict(node.increment)
        d["body"] = ast_to_dict(node.body)
    elif t == "StructDef":
        d["name"] = node.name
        d["fields"] = list(node.fields)
    elif t == "EnumDef":
        d["name"] = node.name
        d["variants"] = list(node.variants)
    elif t == "ReturnStatement":
        d["value"] = ast_to_dict(node.value)
    elif t == "NumberLiteral":
        d["value"] = node.value
    elif t == "IdentifierRef":
        d["name"] = node.name
    elif t == "BinaryExpr":
        d["op"] = node.op
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif t == "TernaryExpr":
        d["condition"] = ast_to_dict(node.condition)
        d["then"] = ast_to_dict(node.then_expr)
        d["else"] = ast_to_dict(node.else_expr)
    elif t == "FunctionCall":
        d["name"] = node.name
        d["args"] = ast_to_dict(node.args)
    elif t == "StructInit":
        d["struct"] = node.struct_name
    elif t == "FieldAccess":
        d["object"] = ast_to_dict(node.obj)
        d["field"] = node.field
    else:
        d["raw"] = str(node)

    return d


def pretty(obj, indent=0):
    sp = "  " * indent
    if isinstance(obj, dict):
        lines = []
        for k, v in obj.items():
            if isinstance(v, (dict, list)):
                lines.append(f"{sp}{k}:")
                lines.append(pretty(v, indent + 1))
            else:
                lines.append(f"{sp}{k}: {v}")
        return "\n".join(lines)
    if isinstance(obj, list):
        lines = []
        for item in obj:
            lines.append(f"{sp}-")
            lines.append(pretty(item, indent + 1))
        return "\n".join(lines)
    return f"{sp}{obj}"


def _xml_element(tag, value):
    # One element per node kind; scalar attributes, child nodes nested.
    el = ET.Element(tag)
    if isinstance(value, list):
        for item in value:
            el.append(_xml_node(item))
        return el
    el.append(_xml_node(value))
    return el


NAME_LIST_KEYS = {"params", "fields", "variants"}


def _xml_node(d):
    el = ET.Element(d["type"])
    for key, value in d.items():
        if key == "type" or value is None:
            continue
        if key in NAME_LIST_KEYS:
            el.set(key, ",".join(value))
        elif isinstance(value, (dict, list)):
            el.append(_xml_element(key.capitalize(), value))
        else:
            el.set(key, str(value))
    return el


def ast_to_xml(program):
    root = _xml_node(ast_to_dict(program))
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def debug_log(result, path):
    lines = [
        "Hyperlace Compiler Debug Log",
        f"Timestamp: {time.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Source: {path}",
        "-" * 40,
        "",
        "[Source Code]",
        result.source,
        "",
        "[Expanded Code]",
        result.expanded or "",
        "",
        "[Tokens]",
    ]
    for tok in result.tokens or []:
        lines.append(f"{tok.line:4d}:{tok.column:<3d}\t{tok.kind}\t{tok.lexeme}")

    lines.append("")
    lines.append("[AST]")
    if result.program is not None:
        for stmt in result.program.statements:
            lines.append(f"{stmt.kind} at line {stmt.line}")

    lines.append("")
    if result.ok:
        lines.append("[Semantic] Success")
        lines.append("")
        lines.append("[IR]")
        lines.append(result.ir.rstrip("\n"))
    else:
        lines.append(f"[{result.diagnostic.stage} Error] {result.diagnostic}")

    lines.append("")
    lines.append("[Statistics]")
    count = len(result.program.statements) if result.program is not None else 0
    lines.append(f"Total Statements: {count}")
    lines.append(f"Compile Time: {result.elapsed * 1000:.0f}ms")
    lines.append("")
    status = "Compilation Completed." if result.ok else "Compilation Failed."
    lines.append(f"[Status] {status}")
    return "\n".join(lines) + "\n"


def fail(message):
    print(f"{Fore.RED}{message}{Style.RESET_ALL}")
    sys.exit(1)


def read_source(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def compile_file(path):
    result = compile_source(read_source(path))
    if not result.ok:
        fail(str(result.diagnostic))
    return result


def cmd_tokens(path):
    source = read_source(path)
    expanded, source_map = MacroTable.with_defaults().expand_with_map(source)
    tokens = Lexer(expanded, source_map=source_map, keep_comments=True).tokenize()
    for tok in tokens:
        print(f"{tok.line:4d}:{tok.column:<3d} {tok.kind:<11} {tok.lexeme}")


def cmd_expand(path):
    print(MacroTable.with_defaults().expand(read_source(path)))


def cmd_parse(path, as_xml=False):
    result = compile_source(read_source(path))
    if result.program is None:
        fail(str(result.diagnostic))
    if as_xml:
        print(ast_to_xml(result.program), end="")
    else:
        print(pretty(ast_to_dict(result.program)))


def cmd_check(path):
    result = compile_file(path)
    print(f"{Fore.GREEN}Semantic analysis successful.{Style.RESET_ALL}")
    print(f"Parsed {len(result.program.statements)} statement(s).")


def link(asm_path, out_base):
    obj_path = out_base + ".o"
    try:
        subprocess.run(["nasm", "-f", "elf64", asm_path, "-o", obj_path], check=True)
        subprocess.run(["ld", obj_path, "-o", out_base], check=True)
    except FileNotFoundError as e:
        fail(f"Link error: {e.filename} not found (nasm and ld are required for --link)")
    except subprocess.CalledProcessError as e:
        fail(f"Link error: {e.cmd[0]} exited with code {e.returncode}")
    return out_base


def cmd_build(path, out_base=None, dump_ast=False, write_log=False, do_link=False):
    if out_base is None:
        out_base = os.path.splitext(path)[0]

    result = compile_source(read_source(path))

    # the debug log is written even when compilation fails
    if write_log:
        write_artifacts({out_base + ".log": debug_log(result, path)})
        print(f"Debug log written to {out_base}.log")

    if not result.ok:
        fail(str(result.diagnostic))

    outputs = {
        out_base + ".fir": result.ir,
        out_base + ".asm": result.assembly,
    }
    if dump_ast:
        outputs[out_base + ".ast"] = ast_to_xml(result.program)
    write_artifacts(outputs)

    print(f"{Fore.GREEN}Semantic analysis successful.{Style.RESET_ALL}")
    print(f"IR written to {out_base}.fir")
    print(f"NASM assembly written to {out_base}.asm")
    if dump_ast:
        print(f"AST written to {out_base}.ast")
    print(f"Parsed {len(result.program.statements)} statement(s).")

    if do_link:
        exe = link(out_base + ".asm", out_base)
        print(f"Executable written to {exe}")


def parse_build_options(extra):
    options = {"out_base": None, "dump_ast": False, "write_log": False, "do_link": False}
    i = 0
    while i < len(extra):
        arg = extra[i]
        if arg == "-o":
            if i + 1 >= len(extra):
                fail("-o expects an output base path")
            options["out_base"] = extra[i + 1]
            i += 2
            continue
        if arg == "--ast":
            options["dump_ast"] = True
        elif arg == "--log":
            options["write_log"] = True
        elif arg == "--link":
            options["do_link"] = True
        else:
            fail(f"Unknown build option: {arg}")
        i += 1
    return options


def main():
    just_fix_windows_console()

    debug = False
    if "--debug" in sys.argv:
        debug = True
        sys.argv.remove("--debug")

    if len(sys.argv) < 3:
        print(USAGE)
        sys.exit(1)

    cmd = sys.argv[1]
    path = sys.argv[2]
    extra = sys.argv[3:]

    try:
        if cmd == "tokens" and not extra:
            cmd_tokens(path)
        elif cmd == "expand" and not extra:
            cmd_expand(path)
        elif cmd == "parse" and extra in ([], ["--xml"]):
            cmd_parse(path, as_xml=bool(extra))
        elif cmd == "check" and not extra:
            cmd_check(path)
        elif cmd == "build":
            cmd_build(path, **parse_build_options(extra))
        else:
            print(USAGE)
            sys.exit(1)
    except (HyperlaceError, OSError) as e:
        if debug:
            traceback.print_exc()
        fail(str(e))


if __name__ == "__main__":
    main()
