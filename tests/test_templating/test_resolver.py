"""Tests for TemplateResolver -- variable substitution, builtins and cycles."""

from __future__ import annotations

import re
import threading

import pytest

from restified.exceptions import (
    BuiltinFunctionError,
    TemplateSyntaxError,
    UnknownNamespaceError,
    UnresolvedVariableError,
)
from restified.stores import ScopeStore
from restified.templating import TemplateResolver

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


# ------------------------------------------------------------------ #
# Variables
# ------------------------------------------------------------------ #


class TestVariables:
    def test_simple_substitution(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_global("x", "hello")
        assert resolver.resolve("{{x}}") == "hello"

    def test_local_shadows_global(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_global("env", "prod")
        store.set_local("env", "test")
        assert resolver.resolve("{{env}}") == "test"

    def test_url_template(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_global("base", "https://api.example.com")
        store.set_local("user", {"id": 42})
        assert resolver.resolve("{{base}}/users/{{user.id}}") == "https://api.example.com/users/42"

    def test_nested_path(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("user", {"profile": {"name": "Ada"}})
        assert resolver.resolve("{{user.profile.name}}") == "Ada"

    def test_list_index(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("items", ["a", "b"])
        assert resolver.resolve("{{items.0}}-{{items.1}}") == "a-b"

    @pytest.mark.parametrize(
        "value, text",
        [(3, "3"), (2.5, "2.5"), (True, "true"), (None, "null"), ({"a": [1]}, '{"a":[1]}')],
    )
    def test_non_string_values(
        self, store: ScopeStore, resolver: TemplateResolver, value, text: str
    ) -> None:
        store.set_local("v", value)
        assert resolver.resolve("{{v}}") == text

    def test_whitespace_inside_braces(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("x", "y")
        assert resolver.resolve("{{ x }}") == "y"

    def test_text_without_placeholders_is_unchanged(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve("plain {text} here") == "plain {text} here"

    def test_non_string_input_is_returned(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve(42) == 42

    def test_empty_placeholder_left_alone(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve("a{{}}b") == "a{{}}b"


class TestUnresolved:
    def test_missing_variable_lists_known_keys(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_global("b", 1)
        store.set_local("a", 2)
        with pytest.raises(UnresolvedVariableError) as exc_info:
            resolver.resolve("{{missing}}")
        err = exc_info.value
        assert err.variable == "missing"
        assert err.known_keys == ["a", "b"]
        assert "Known variables: a, b" in str(err)

    def test_missing_with_empty_store(self, resolver: TemplateResolver) -> None:
        with pytest.raises(UnresolvedVariableError, match=r"\(none\)"):
            resolver.resolve("{{x}}")

    def test_missing_nested_segment(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("user", {"profile": {}})
        with pytest.raises(UnresolvedVariableError) as exc_info:
            resolver.resolve("{{user.profile.name}}")
        assert exc_info.value.variable == "user.profile.name"

    def test_index_out_of_range(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("items", ["a"])
        with pytest.raises(UnresolvedVariableError):
            resolver.resolve("{{items.3}}")


# ------------------------------------------------------------------ #
# Nested templates and cycles
# ------------------------------------------------------------------ #


class TestRecursion:
    def test_value_is_resolved_again(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_global("host", "api.example.com")
        store.set_global("base", "https://{{host}}")
        store.set_local("url", "{{base}}/v1")
        assert resolver.resolve("{{url}}") == "https://api.example.com/v1"

    def test_two_variable_cycle_terminates(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("x", "{{y}}")
        store.set_local("y", "{{x}}")
        assert resolver.resolve("{{x}}") == "{{x}}"
        assert resolver.resolve("{{y}}") == "{{y}}"

    def test_self_reference_terminates(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("me", "<{{me}}>")
        assert resolver.resolve("{{me}}") == "<{{me}}>"

    def test_cycle_inside_larger_template(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("a", "A{{b}}")
        store.set_local("b", "B{{a}}")
        assert resolver.resolve("[{{a}}]") == "[AB{{a}}]"

    def test_sibling_references_are_independent(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("a", "A")
        store.set_local("pair", "{{a}}{{a}}")
        assert resolver.resolve("{{pair}}|{{pair}}") == "AA|AA"

    def test_builtin_inside_variable(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("shout", "{{$string.upper('hi')}}")
        assert resolver.resolve("{{shout}}!") == "HI!"


# ------------------------------------------------------------------ #
# Builtins
# ------------------------------------------------------------------ #


class TestBuiltins:
    def test_random_uuid(self, resolver: TemplateResolver) -> None:
        assert UUID_RE.match(resolver.resolve("{{$random.uuid}}"))

    def test_uuid_differs_per_placeholder(self, resolver: TemplateResolver) -> None:
        first, second = resolver.resolve("{{$random.uuid}} {{$random.uuid}}").split()
        assert first != second

    def test_random_int_in_range(self, resolver: TemplateResolver) -> None:
        for _ in range(20):
            assert 1 <= int(resolver.resolve("{{$random.int(1, 6)}}")) <= 6

    def test_date_today(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve("{{$date.today}}") == "2024-03-15"

    def test_math_inside_text(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve("total={{$math.add(1, 2, 3)}}") == "total=6"

    def test_unknown_namespace(self, resolver: TemplateResolver) -> None:
        with pytest.raises(UnknownNamespaceError) as exc_info:
            resolver.resolve("{{$nope.thing}}")
        assert exc_info.value.namespace == "nope"
        assert "random" in exc_info.value.known_namespaces

    def test_unknown_function(self, resolver: TemplateResolver) -> None:
        with pytest.raises(BuiltinFunctionError):
            resolver.resolve("{{$math.sqrt(4)}}")

    def test_malformed_call(self, resolver: TemplateResolver) -> None:
        with pytest.raises(TemplateSyntaxError):
            resolver.resolve("{{$math.add(1, 2}}")

    def test_custom_namespace(self, resolver: TemplateResolver) -> None:
        resolver.registry.register("echo", lambda path, args: f"{path}:{','.join(args)}")
        assert resolver.resolve("{{$echo.say('a', b)}}") == "say:a,b"

    def test_unquoted_argument_names_variable(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("text", "hello world")
        assert resolver.resolve("Upper: {{$string.upper(text)}}") == "Upper: HELLO WORLD"

    def test_quoted_argument_is_literal(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("text", "hello world")
        assert resolver.resolve("{{$string.upper('text')}}") == "TEXT"

    def test_unquoted_argument_path_and_numbers(
        self, store: ScopeStore, resolver: TemplateResolver
    ) -> None:
        store.set_local("user", {"name": "ada lovelace", "age": 36})
        assert resolver.resolve("{{$string.capitalize(user.name)}}") == "Ada lovelace"
        assert resolver.resolve("{{$math.add(user.age, 1)}}") == "37"

    def test_unbound_unquoted_argument_stays_literal(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve("{{$string.upper(nobody)}}") == "NOBODY"


# ------------------------------------------------------------------ #
# Objects
# ------------------------------------------------------------------ #


class TestResolveObject:
    def test_nested_structure(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("id", 7)
        body = {
            "user": {"id": "{{id}}", "tags": ["t-{{id}}", 3, None]},
            "{{id}}": "key untouched",
            "flag": True,
        }
        assert resolver.resolve_object(body) == {
            "user": {"id": "7", "tags": ["t-7", 3, None]},
            "{{id}}": "key untouched",
            "flag": True,
        }

    def test_input_not_mutated(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("x", "1")
        body = {"a": ["{{x}}"]}
        resolver.resolve_object(body)
        assert body == {"a": ["{{x}}"]}

    def test_tuples_become_lists(self, store: ScopeStore, resolver: TemplateResolver) -> None:
        store.set_local("x", "1")
        assert resolver.resolve_object(("{{x}}", 2)) == ["1", 2]

    def test_scalars_pass_through(self, resolver: TemplateResolver) -> None:
        assert resolver.resolve_object(5) == 5
        assert resolver.resolve_object(None) is None

    def test_errors_propagate(self, resolver: TemplateResolver) -> None:
        with pytest.raises(UnresolvedVariableError):
            resolver.resolve_object({"a": ["{{missing}}"]})


class TestIntrospection:
    def test_has_placeholders(self, resolver: TemplateResolver) -> None:
        assert resolver.has_placeholders("{{x}}")
        assert not resolver.has_placeholders("x")
        assert not resolver.has_placeholders(None)

    def test_referenced_variables(self, resolver: TemplateResolver) -> None:
        template = "{{base}}/{{user.id}}/{{$random.uuid}}/{{base}}"
        assert resolver.referenced_variables(template) == ["base", "user"]


class TestSnapshotSemantics:
    def test_concurrent_writes_do_not_break_resolution(self, store: ScopeStore) -> None:
        from restified.builtins import default_registry

        resolver = TemplateResolver(store, default_registry())
        store.set_global("a", "1")
        stop = threading.Event()

        def writer() -> None:
            i = 0
            while not stop.is_set():
                store.set_local(f"k{i % 50}", i)
                i += 1

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(200):
                assert resolver.resolve("{{a}}") == "1"
        finally:
            stop.set()
            thread.join()
