from errors import SemanticError
from lexer import Lexer
from parser import Parser
from semantic import SemanticAnalyzer


def parse(text):
    return Parser(Lexer(text).tokenize()).parse()


def analyze(text):
    return SemanticAnalyzer().analyze(parse(text))


def expect_semantic_error(text, fragment):
    try:
        analyze(text)
    except SemanticError as e:
        if fragment not in e.message:
            raise AssertionError(f"{fragment!r} not in {e.message!r}")
        return e
    raise AssertionError(f"Expected SemanticError for {text!r}")


def test_assignments_declare_globals_in_order():
    analysis = analyze("x = 5; y = x; x = y; z = 1;")
    if analysis.globals != ["x", "y", "z"]:
        raise AssertionError(analysis.globals)


def test_use_of_undeclared_variable():
    err = expect_semantic_error("y = x;", "Use of undeclared variable 'x'")
    if (err.line, err.column) != (1, 5):
        raise AssertionError((err.line, err.column))
    if str(err) != "SemanticError: Use of undeclared variable 'x' at line 1, col 5":
        raise AssertionError(str(err))


def test_new_name_cannot_read_itself():
    expect_semantic_error("x = x + 1;", "'x'")
    analyze("x = 0; x = x + 1;")


def test_undeclared_names_are_found_anywhere_in_expressions():
    expect_semantic_error("a = 1; b = a + c;", "'c'")
    expect_semantic_error("a = 1; b = a ? a : c;", "'c'")
    expect_semantic_error("Start f(p) { return p; } a = f(q);", "'q'")
    expect_semantic_error("if (c) { }", "'c'")
    expect_semantic_error("while (c) { }", "'c'")


def test_return_outside_function():
    expect_semantic_error("return 1;", "Return statement used outside a function")
    expect_semantic_error("x = 1; if (x) { return; }", "outside a function")
    analyze("Start f() { if (1) { return 2; } return 3; }")


def test_function_scope():
    analysis = analyze("g = 1; Start f(a) { t = a + g; g = t; return t; }")
    info = analysis.functions["f"]
    if info.params != ["a"] or info.locals != ["t"]:
        raise AssertionError((info.params, info.locals))
    if analysis.globals != ["g"]:
        raise AssertionError(analysis.globals)

    # parameters and locals do not leak out of the function
    expect_semantic_error("Start f(a) { t = a; return t; } x = a;", "'a'")
    expect_semantic_error("Start f(a) { t = a; return t; } x = t;", "'t'")


def test_sibling_functions_do_not_share_locals():
    expect_semantic_error("Start f() { t = 1; return t; } Start g() { return t; }", "'t'")


def test_scope_is_popped_after_an_error():
    analyzer = SemanticAnalyzer()
    try:
        analyzer.analyze(parse("Start f() { return missing; }"))
    except SemanticError:
        pass
    else:
        raise AssertionError("expected failure")
    if len(analyzer.scopes) != 1 or analyzer.function is not None:
        raise AssertionError("function scope leaked")


def test_calls_are_checked():
    analyze("x = f(1); Start f(a) { return a; }")
    expect_semantic_error("x = nope(1);", "undefined function 'nope'")
    expect_semantic_error("Start f(a) { return a; } x = f(1, 2);", "expects 1 argument(s), got 2")
    expect_semantic_error("Start f() { } Start f() { }", "already defined")
    expect_semantic_error("Start f(a, a) { }", "Duplicate parameter")


def test_immutable_bindings():
    analyze("k := 3; y = k + 1;")
    expect_semantic_error("k := 3; k = 4;", "immutable variable 'k'")
    expect_semantic_error("k := 3; Start f() { k = 1; }", "immutable")
    expect_semantic_error("k = 3; k := 4;", "already declared")


def test_struct_fields_resolve_to_offsets():
    program = parse("Init P { a; b; } p = P(); q = p; y = q.b;")
    SemanticAnalyzer().analyze(program)
    access = program.statements[3].value
    if access.offset != 8:
        raise AssertionError(access.offset)

    expect_semantic_error("Init P { a; } p = P(); y = p.z;", "has no field 'z'")
    expect_semantic_error("Init P { a; } x = 1; y = x.nothing;", "Unknown field")


def test_field_on_unknown_record_uses_unique_offset():
    program = parse("Init P { a; b; } Start getb(r) { return r.b; }")
    SemanticAnalyzer().analyze(program)
    access = program.statements[1].body[0].value
    if access.offset != 8:
        raise AssertionError(access.offset)

    expect_semantic_error(
        "Init P { a; b; } Init Q { b; } Start getb(r) { return r.b; }",
        "Ambiguous field 'b'",
    )


def test_enum_variants():
    program = parse("enum Color { Red, Green, Blue } c = Color.Blue;")
    SemanticAnalyzer().analyze(program)
    if program.statements[1].value.enum_value != 2:
        raise AssertionError(program.statements[1].value.enum_value)

    expect_semantic_error("enum Color { Red } c = Color.Pink;", "no variant 'Pink'")
    expect_semantic_error("enum Color { Red, Red }", "Duplicate variant")
    expect_semantic_error("Init T { a; } enum T { B }", "already defined")
    expect_semantic_error("Init T { a; a; }", "Duplicate field")


def test_types_and_functions_share_one_namespace():
    expect_semantic_error("Start f() { return 1; } Init f { a; }", "Type 'f' is already defined")
    expect_semantic_error("Init f { a; } Start f() { return 1; }", "Type 'f' is already defined")
    expect_semantic_error("enum g { A } Start g() { }", "Type 'g' is already defined")


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_"):
            fn()
    print("ok")
