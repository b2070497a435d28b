"""Tests for the Monkey virtual machine."""

import pytest
from micromonkey.compiler import Compiler
from micromonkey.errors import MonkeyRuntimeError
from micromonkey.parser import Parser
from micromonkey.values import NULL, MonkeyArray, MonkeyClosure, MonkeyHash, MonkeyErrorValue
from micromonkey.vm import VM, GlobalStore


def run_vm(source, **kwargs):
    """Compile and run source, returning the VM after it halts."""
    compiler = Compiler()
    compiler.compile(Parser(source).parse())
    vm = VM(compiler.bytecode(), **kwargs)
    vm.run()
    return vm


def run(source):
    return run_vm(source).last_popped


class TestIntegers:
    """Integer arithmetic."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("1", 1),
            ("2", 2),
            ("1 + 2", 3),
            ("1 - 2", -1),
            ("1 * 2", 2),
            ("4 / 2", 2),
            ("50 / 2 * 2 + 10 - 5", 55),
            ("5 * (2 + 10)", 60),
            ("-5", -5),
            ("-10", -10),
            ("-50 + 100 + -50", 0),
            ("(5 + 10 * 2 + 15 / 3) * 2 + -10", 50),
        ],
    )
    def test_arithmetic(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("7 / 2", 3),
            ("-7 / 2", -3),
            ("7 / -2", -3),
            ("-7 / -2", 3),
        ],
    )
    def test_division_truncates_toward_zero(self, source, expected):
        assert run(source) == expected

    def test_division_by_zero(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("1 / 0")
        assert exc_info.value.message == "division by zero"


class TestBooleans:
    """Comparison, equality and negation."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("true", True),
            ("false", False),
            ("1 < 2", True),
            ("1 > 2", False),
            ("1 < 1", False),
            ("1 > 1", False),
            ("1 == 1", True),
            ("1 != 1", False),
            ("1 == 2", False),
            ("1 != 2", True),
            ("true == true", True),
            ("false == false", True),
            ("true == false", False),
            ("true != false", True),
            ("(1 < 2) == true", True),
            ("(1 > 2) == false", True),
            ("!true", False),
            ("!false", True),
            ("!5", False),
            ("!!true", True),
            ("!!5", True),
            ("!(if (false) { 5; })", True),
            ("!null", True),
        ],
    )
    def test_booleans(self, source, expected):
        assert run(source) is expected

    @pytest.mark.parametrize(
        "source,expected",
        [
            ('"a" == "a"', True),
            ('"a" != "b"', True),
            ("null == null", True),
            ("1 == true", False),
            ('1 == "1"', False),
            ("[1] == [1]", False),
            ("let a = [1]; a == a", True),
            ("fn() {} == fn() {}", False),
            ("len == len", True),
        ],
    )
    def test_equality(self, source, expected):
        """Scalars compare by value, other values by identity."""
        assert run(source) is expected

    def test_less_than_needs_integers(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run('"a" < "b"')
        assert exc_info.value.message == "unknown operator: < (STRING STRING)"

    def test_negate_non_integer(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("-true")
        assert exc_info.value.message == "unsupported type for negation: BOOLEAN"


class TestConditionals:
    """If expressions."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("if (true) { 10 }", 10),
            ("if (true) { 10 } else { 20 }", 10),
            ("if (false) { 10 } else { 20 } ", 20),
            ("if (1) { 10 }", 10),
            ("if (1 < 2) { 10 }", 10),
            ("if (1 < 2) { 10 } else { 20 }", 10),
            ("if (1 > 2) { 10 } else { 20 }", 20),
            ("if ((if (false) { 10 })) { 10 } else { 20 }", 20),
            ("if (0) { 10 } else { 20 }", 10),
            ('if ("") { 10 } else { 20 }', 10),
        ],
    )
    def test_conditionals(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source",
        [
            "if (1 > 2) { 10 }",
            "if (false) { 10 }",
            "if (true) { }",
            "if (true) { let x = 1; }",
        ],
    )
    def test_conditionals_yielding_null(self, source):
        assert run(source) is NULL


class TestGlobals:
    """Global let statements."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("let one = 1; one", 1),
            ("let one = 1; let two = 2; one + two", 3),
            ("let one = 1; let two = one + one; one + two", 3),
            ("let x = 1; let x = x + 1; x", 2),
        ],
    )
    def test_let(self, source, expected):
        assert run(source) == expected

    def test_let_alone_pops_nothing(self):
        assert run("let x = 5;") is None

    def test_shared_global_store(self):
        """Two VMs sharing a store see each other's globals."""
        store = GlobalStore()
        compiler = Compiler()
        compiler.compile(Parser("let a = 41;").parse())
        VM(compiler.bytecode(), globals=store).run()

        follow_up = Compiler.new_with_state(compiler.symbol_table, compiler.constants)
        follow_up.compile(Parser("a + 1").parse())
        assert VM(follow_up.bytecode(), globals=store).run() == 42

    def test_global_store_starts_null(self):
        store = GlobalStore(4)
        assert len(store) == 4
        assert store[3] is NULL


class TestCollections:
    """Strings, arrays, hashes and indexing."""

    def test_strings(self):
        assert run('"monkey"') == "monkey"
        assert run('"mon" + "key"') == "monkey"
        assert run('"mon" + "key" + "banana"') == "monkeybanana"

    def test_string_subtraction(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run('"a" - "b"')
        assert exc_info.value.message == "unknown string operator: -"

    def test_mixed_types(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run('1 + "a"')
        assert exc_info.value.message == (
            "unsupported types for binary operation: INTEGER STRING"
        )

    def test_arrays(self):
        result = run("[1, 2 * 2, 3 + 3]")
        assert isinstance(result, MonkeyArray)
        assert result.elements == [1, 4, 6]
        assert run("[]").elements == []

    def test_hashes(self):
        result = run("{1: 2, 1 + 1: 2 * 2}")
        assert isinstance(result, MonkeyHash)
        assert result.get(1) == 2
        assert result.get(2) == 4
        assert run("{}").pairs == {}

    def test_hash_keys_keep_types_apart(self):
        result = run('{1: "int", true: "bool", "1": "str"}')
        assert result.get(1) == "int"
        assert result.get(True) == "bool"
        assert result.get("1") == "str"

    def test_duplicate_key_last_wins(self):
        assert run('{"a": 1, "a": 2}["a"]') == 2

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("[1, 2, 3][1]", 2),
            ("[1, 2, 3][0 + 2]", 3),
            ("[[1, 1, 1]][0][0]", 1),
            ("{1: 1, 2: 2}[1]", 1),
            ("{1: 1, 2: 2}[2]", 2),
            ('{"one": 1}["one"]', 1),
        ],
    )
    def test_index(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source",
        [
            "[][0]",
            "[1, 2, 3][99]",
            "[1][-1]",
            "{1: 1}[0]",
            "{}[0]",
        ],
    )
    def test_index_miss_is_null(self, source):
        assert run(source) is NULL

    def test_unhashable_key(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("{[1]: 2}")
        assert exc_info.value.message == "unusable as hash key: ARRAY"

    def test_unhashable_index(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("{1: 2}[fn() {}]")
        assert exc_info.value.message == "unusable as hash key: CLOSURE"

    def test_index_unsupported(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("1[0]")
        assert exc_info.value.message == "index operator not supported: INTEGER"


class TestFunctions:
    """Calls, arguments, locals and returns."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("let fivePlusTen = fn() { 5 + 10; }; fivePlusTen();", 15),
            ("let one = fn() { 1; }; let two = fn() { 2; }; one() + two()", 3),
            ("let a = fn() { 1 }; let b = fn() { a() + 1 }; let c = fn() { b() + 1 }; c();", 3),
            ("let earlyExit = fn() { return 99; 100; }; earlyExit();", 99),
            ("let earlyExit = fn() { return 99; return 100; }; earlyExit();", 99),
            ("let returnsOne = fn() { 1; }; let returnsOneReturner = fn() { returnsOne; };"
             " returnsOneReturner()();", 1),
        ],
    )
    def test_calls(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source",
        [
            "let noReturn = fn() { }; noReturn();",
            "let noReturn = fn() { }; let noReturnTwo = fn() { noReturn(); }; noReturn(); noReturnTwo();",
            "fn() { return; }()",
        ],
    )
    def test_functions_without_return_value(self, source):
        assert run(source) is NULL

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("let one = fn() { let one = 1; one }; one();", 1),
            ("let oneAndTwo = fn() { let one = 1; let two = 2; one + two; }; oneAndTwo();", 3),
            ("let globalSeed = 50;"
             "let minusOne = fn() { let num = 1; globalSeed - num; };"
             "let minusTwo = fn() { let num = 2; globalSeed - num; };"
             "minusOne() + minusTwo();", 97),
            ("let identity = fn(a) { a; }; identity(4);", 4),
            ("let sum = fn(a, b) { a + b; }; sum(1, 2);", 3),
            ("let sum = fn(a, b) { let c = a + b; c; }; sum(1, 2) + sum(3, 4);", 10),
            ("let globalNum = 10;"
             "let sum = fn(a, b) { let c = a + b; c + globalNum; };"
             "let outer = fn() { sum(1, 2) + sum(3, 4) + globalNum; };"
             "outer() + globalNum;", 50),
        ],
    )
    def test_arguments_and_locals(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source,message",
        [
            ("fn() { 1; }(1);", "wrong number of arguments: want=0, got=1"),
            ("fn(a) { a; }();", "wrong number of arguments: want=1, got=0"),
            ("fn(a, b) { a + b; }(1);", "wrong number of arguments: want=2, got=1"),
        ],
    )
    def test_wrong_argument_count(self, source, message):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run(source)
        assert exc_info.value.message == message

    def test_calling_non_function(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("1()")
        assert exc_info.value.message == "calling non-closure and non-builtin"

    def test_stack_is_empty_after_run(self):
        """Every statement leaves the stack as it found it."""
        vm = run_vm("""
        let add = fn(a, b) { let c = a + b; c };
        add(1, 2);
        [add(3, 4), {"k": add(5, 6)}];
        if (add(1, 1) == 2) { 1 } else { 2 };
        """)
        assert vm.stack == []
        assert len(vm.frames) == 1

    def test_top_level_return(self):
        """return outside a function halts with that value."""
        vm = run_vm("1; return 2; 3;")
        assert vm.last_popped == 2
        assert vm.stack == []

    def test_top_level_bare_return(self):
        assert run("1; return; 3;") is NULL


class TestClosures:
    """Closures and captured variables."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("let newClosure = fn(a) { fn() { a; }; }; let closure = newClosure(99); closure();", 99),
            ("let newAdder = fn(a, b) { fn(c) { a + b + c }; };"
             " let adder = newAdder(1, 2); adder(8);", 11),
            ("let newAdder = fn(a, b) { let c = a + b; fn(d) { c + d }; };"
             " let adder = newAdder(1, 2); adder(8);", 11),
            ("let newAdderOuter = fn(a, b) { let c = a + b;"
             " fn(d) { let e = d + c; fn(f) { e + f; }; }; };"
             " let newAdderInner = newAdderOuter(1, 2);"
             " let adder = newAdderInner(3); adder(8);", 14),
            ("let a = 1; let newAdderOuter = fn(b) { fn(c) { fn(d) { a + b + c + d }; }; };"
             " let newAdderInner = newAdderOuter(2); let adder = newAdderInner(3); adder(8);", 14),
            ("let newClosure = fn(a, b) { let one = fn() { a; }; let two = fn() { b; };"
             " fn() { one() + two(); }; }; let closure = newClosure(9, 90); closure();", 99),
        ],
    )
    def test_closures(self, source, expected):
        assert run(source) == expected

    def test_closure_value(self):
        result = run("fn(a) { fn() { a } }(5)")
        assert isinstance(result, MonkeyClosure)
        assert result.free == [5]

    def test_capture_by_value(self):
        """A closure keeps the value a variable had when it was created."""
        source = """
        let make = fn() {
            let x = 1;
            let get = fn() { x };
            let x = 2;
            get;
        };
        make()();
        """
        assert run(source) == 1

    @pytest.mark.timeout(30)
    def test_recursive_fibonacci(self):
        source = """
        let fibonacci = fn(x) {
            if (x == 0) { return 0; }
            if (x == 1) { return 1; }
            fibonacci(x - 1) + fibonacci(x - 2);
        };
        fibonacci(15);
        """
        assert run(source) == 610

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("let countDown = fn(x) { if (x == 0) { return 0; } else { countDown(x - 1); } };"
             " countDown(1);", 0),
            ("let countDown = fn(x) { if (x == 0) { return 0; } else { countDown(x - 1); } };"
             " let wrapper = fn() { countDown(1); }; wrapper();", 0),
            ("let wrapper = fn() {"
             " let countDown = fn(x) { if (x == 0) { return 0; } else { countDown(x - 1); } };"
             " countDown(1); }; wrapper();", 0),
        ],
    )
    def test_recursive_closures(self, source, expected):
        assert run(source) == expected


class TestBuiltinCalls:
    """Builtins called from bytecode."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ('len("")', 0),
            ('len("four")', 4),
            ('len("hello world")', 11),
            ("len([1, 2, 3])", 3),
            ("len([])", 0),
            ("first([1, 2, 3])", 1),
            ("last([1, 2, 3])", 3),
        ],
    )
    def test_builtins(self, source, expected):
        assert run(source) == expected

    @pytest.mark.parametrize(
        "source",
        ["first([])", "last([])", "rest([])", 'puts("hello", "world!")'],
    )
    def test_builtins_returning_null(self, source, capsys):
        assert run(source) is NULL

    def test_builtin_error_is_a_value(self):
        result = run("len(1)")
        assert isinstance(result, MonkeyErrorValue)
        assert result.message == "argument to `len` not supported, got INTEGER"

    def test_rest_and_push(self):
        assert run("rest([1, 2, 3])").elements == [2, 3]
        assert run("push([], 1)").elements == [1]


class TestLimits:
    """Stack and call depth limits."""

    def test_unbounded_recursion(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run("let f = fn() { f() }; f();")
        assert "stack overflow" in exc_info.value.message

    def test_small_stack(self):
        with pytest.raises(MonkeyRuntimeError) as exc_info:
            run_vm("[1, 2, 3, 4, 5]", stack_size=3)
        assert exc_info.value.message == "stack overflow"

    def test_max_frames(self):
        source = "let f = fn(n) { if (n == 0) { 0 } else { f(n - 1) } }; f(10);"
        assert run_vm(source, max_frames=12).last_popped == 0
        with pytest.raises(MonkeyRuntimeError):
            run_vm(source, max_frames=5)

    def test_error_keeps_earlier_globals(self):
        store = GlobalStore()
        compiler = Compiler()
        compiler.compile(Parser("let a = 1; let b = a + true; let c = 3;").parse())
        with pytest.raises(MonkeyRuntimeError):
            VM(compiler.bytecode(), globals=store).run()
        assert store[0] == 1
        assert store[1] is NULL
        assert store[2] is NULL
