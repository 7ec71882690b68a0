"""
End-to-end REPL behaviour: what a user typing at ``ready>`` sees.
"""

import io

from smalllang import JITSession, Repl, evaluate


def test_simple_sum(repl):
    out, err = repl("4+5;")
    assert "Parsed a top-level expr:" in out
    assert "Evaluated to: 9.000000" in out
    assert "__anon_expr" in err


def test_function_definition_then_call(repl):
    out, err = repl("fn foo(a b) a*a + 2*a*b + b*b\nfoo(3, 4);")
    assert "Parsed a function definition:" in out
    assert "define double @foo" in err
    assert "Evaluated to: 49.000000" in out


def test_extern_from_host(repl):
    out, err = repl("incl cos(x)\ncos(0);")
    assert "Parsed an extern:" in out
    assert 'declare double @"cos"' in err
    assert "Evaluated to: 1.000000" in out


def test_parenthesized_expression(repl):
    out, _ = repl("(1+2)*(3+4);")
    assert "Evaluated to: 21.000000" in out


def test_comparison(repl):
    out, _ = repl("1<2;\n2<1;")
    assert "Evaluated to: 1.000000" in out
    assert "Evaluated to: 0.000000" in out


def test_unknown_variable_in_definition(repl):
    out, err = repl("fn bad(x) y\n3;")
    assert "LLVM Error: Unknown variable name" in err
    assert "Parsed a function definition:" not in out
    assert "Evaluated to: 3.000000" in out


def test_comment_line(repl):
    out, _ = repl("# hello\n3;")
    assert "Evaluated to: 3.000000" in out


def test_prompts_and_exit(repl):
    out, _ = repl("1;")
    assert out.startswith("ready> ")
    assert out.endswith("Exiting.\n")


def test_empty_input_exits_cleanly(repl):
    out, err = repl("")
    assert out == "ready> ready> Exiting.\n"
    assert err == ""


def test_definition_callable_from_later_entries(repl):
    out, _ = repl("fn sq(x) x*x\nsq(3);\nsq(4);\nsq(sq(2));")
    assert "Evaluated to: 9.000000" in out
    assert "Evaluated to: 16.000000" in out


def test_toplevel_assignment_is_local_to_its_expression(repl):
    out, err = repl("x = 3;\nx+1;")
    assert "Evaluated to: 3.000000" in out
    assert "LLVM Error: Unknown variable name" in err
    assert "Evaluated to: 4.000000" not in out


def test_assignment_inside_a_function_body(repl):
    out, _ = repl("fn g(a) (b = a + 1) * b\ng(2);")
    assert "Evaluated to: 9.000000" in out


def test_parse_error_skips_one_token(repl):
    out, err = repl(")4;")
    assert "Error: Unknown token when expecting an expression" in err
    assert "Evaluated to: 4.000000" in out


def test_prototype_error_recovers(repl):
    out, err = repl("fn 1\n2;")
    assert "Error: Expected function name in prototype" in err
    assert "Evaluated to: 2.000000" in out


def test_malformed_number_reports_and_continues(repl):
    out, err = repl("1.2.3;\n2;")
    assert "Error: Invalid number literal: 1.2.3" in err
    assert out.count("Evaluated to:") == 1
    assert "Evaluated to: 2.000000" in out


def test_failed_definition_is_not_callable(repl):
    out, err = repl("fn bad(x) y\nbad(1);\n5;")
    assert "LLVM Error: Unresolved external symbol: bad" in err
    assert "Evaluated to: 5.000000" in out


def test_arity_mismatch_is_reported(repl):
    _, err = repl("fn one(x) x\none(1, 2);")
    assert "LLVM Error: Incorrect # args passed" in err


def test_redefinition(repl):
    out, _ = repl("fn f(x) x\nfn f(x) x*10\nf(2);")
    assert "Evaluated to: 20.000000" in out


def test_putchard_writes_to_stderr(repl, capsys):
    out, _ = repl("incl putchard(c)\nputchard(65);")
    assert "Evaluated to: 0.000000" in out
    assert capsys.readouterr().err.endswith("A")


def test_printd_writes_to_stderr(repl, capsys):
    repl("incl printd(x)\nprintd(42);")
    assert capsys.readouterr().err.endswith("42.000000\n")


def test_evaluate_returns_every_value():
    assert evaluate("4+5; fn dbl(x) x+x\ndbl(3); 1<0;") == [9.0, 6.0, 0.0]


def test_repl_can_share_a_session(session):
    Repl(session, io.StringIO("fn inc(x) x+1"), io.StringIO(), io.StringIO()).run()
    assert evaluate("inc(1);", session) == [2.0]


def test_results_are_collected():
    session = JITSession()
    repl = Repl(session, io.StringIO("1; 2; 3;"), io.StringIO(), io.StringIO())
    assert repl.run() == 0
    assert repl.results == [1.0, 2.0, 3.0]


def test_failed_body_for_a_called_extern_does_not_poison_later_entries(repl):
    out, err = repl("incl g(x)\nfn f(x) g(x)\nfn g(x) y\n1;\n2;\nfn h(x) x\nh(3);")
    assert err.count("LLVM Error:") == 1
    assert "LLVM Error: Unknown variable name" in err
    assert "Evaluated to: 1.000000" in out
    assert "Evaluated to: 2.000000" in out
    assert "Evaluated to: 3.000000" in out


def test_failed_redefinition_of_a_called_prototype_recovers():
    assert evaluate("fn bad(x) y\nfn f(x) bad(x)\nfn bad(x) y\n1;\n2;") == [1.0, 2.0]
