import os
import subprocess
import sys
import tempfile


def run_cli(*args, cwd):
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    cli = os.path.join(root, "cli.py")

    return subprocess.run(
        [sys.executable, cli, *args],
        text=True,
        capture_output=True,
        cwd=cwd,
        timeout=10,
    )


def write_source(directory, text, name="prog.hl"):
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def test_build_writes_ir_and_assembly():
    with tempfile.TemporaryDirectory() as tmp:
        src = write_source(tmp, "x = 5;\n")
        proc = run_cli("build", src, "--ast", cwd=tmp)
        if proc.returncode != 0:
            raise AssertionError(f"build exited with code {proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")

        base = os.path.join(tmp, "prog")
        with open(base + ".fir", encoding="utf-8") as f:
            if f.read() != "STORE x <- NUM(5)\n":
                raise AssertionError("IR file")
        with open(base + ".asm", encoding="utf-8") as f:
            asm = f.read()
        if "x dq 0" not in asm or "mov [x], rax" not in asm:
            raise AssertionError(asm)
        with open(base + ".ast", encoding="utf-8") as f:
            ast = f.read()
        if "<Assignment" not in ast or 'target="x"' not in ast:
            raise AssertionError(ast)
        if "Parsed 1 statement(s)." not in proc.stdout:
            raise AssertionError(proc.stdout)


def test_build_with_output_base_and_log():
    with tempfile.TemporaryDirectory() as tmp:
        src = write_source(tmp, "a = 1; b = a;\n")
        out = os.path.join(tmp, "out")
        proc = run_cli("build", src, "-o", out, "--log", cwd=tmp)
        if proc.returncode != 0:
            raise AssertionError(proc.stdout + proc.stderr)
        for ext in (".fir", ".asm", ".log"):
            if not os.path.exists(out + ext):
                raise AssertionError(ext)
        with open(out + ".log", encoding="utf-8") as f:
            log = f.read()
        if "[Status] Compilation Completed." not in log or "[IR]" not in log:
            raise AssertionError(log)


def test_failed_build_produces_no_output():
    with tempfile.TemporaryDirectory() as tmp:
        src = write_source(tmp, "y = x;\n")
        proc = run_cli("build", src, "--log", cwd=tmp)
        if proc.returncode != 1:
            raise AssertionError(proc.returncode)
        if "SemanticError: Use of undeclared variable 'x' at line 1, col 5" not in proc.stdout:
            raise AssertionError(proc.stdout)
        if sorted(os.listdir(tmp)) != ["prog.hl", "prog.log"]:
            raise AssertionError(os.listdir(tmp))
        with open(os.path.join(tmp, "prog.log"), encoding="utf-8") as f:
            if "[Status] Compilation Failed." not in f.read():
                raise AssertionError("log status")


def test_check_and_parse():
    with tempfile.TemporaryDirectory() as tmp:
        src = write_source(tmp, "Start f(a) { return a; }\ny = f(2);\n")
        proc = run_cli("check", src, cwd=tmp)
        if proc.returncode != 0 or "Parsed 2 statement(s)." not in proc.stdout:
            raise AssertionError(proc.stdout + proc.stderr)

        proc = run_cli("parse", src, "--xml", cwd=tmp)
        if proc.returncode != 0:
            raise AssertionError(proc.stdout + proc.stderr)
        if not proc.stdout.startswith("<?xml") or '<FunctionDef name="f" params="a"' not in proc.stdout:
            raise AssertionError(proc.stdout)

        proc = run_cli("parse", src, cwd=tmp)
        if "type: FunctionDef" not in proc.stdout:
            raise AssertionError(proc.stdout)


def test_tokens_and_expand():
    with tempfile.TemporaryDirectory() as tmp:
        src = write_source(tmp, "x = 0; # start\n|inc|\n")
        proc = run_cli("tokens", src, cwd=tmp)
        if proc.returncode != 0 or "COMMENT" not in proc.stdout:
            raise AssertionError(proc.stdout + proc.stderr)

        proc = run_cli("expand", src, cwd=tmp)
        if "x = x + 1;" not in proc.stdout.splitlines():
            raise AssertionError(proc.stdout)


def test_usage_and_missing_file():
    with tempfile.TemporaryDirectory() as tmp:
        proc = run_cli("frobnicate", "x.hl", cwd=tmp)
        if proc.returncode != 1 or "Usage:" not in proc.stdout:
            raise AssertionError(proc.stdout)

        proc = run_cli("build", os.path.join(tmp, "missing.hl"), cwd=tmp)
        if proc.returncode != 1 or os.listdir(tmp) != []:
            raise AssertionError(proc.stdout)


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_"):
            fn()
    print("ok")
