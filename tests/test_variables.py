"""
Unit tests for the variable registry.
"""

import pytest
from hypothesis import given, strategies as st
from blockflow_core.exceptions import VariableError
from blockflow_core.models import ValueType, VariableDefinition, VariableScope
from blockflow_core.variables import (
    VariableRegistry, coerce_value, is_valid_variable_name, MAX_NAME_LENGTH
)


def global_var(name, value_type=ValueType.NUMBER, value=0):
    return VariableDefinition(name, value_type, VariableScope.GLOBAL, None, value)


def instance_var(name, actor_id, value_type=ValueType.NUMBER, value=0):
    return VariableDefinition(name, value_type, VariableScope.INSTANCE, actor_id, value)


class TestNames:
    """Test cases for variable name rules."""

    def test_valid_names(self):
        assert is_valid_variable_name('score')
        assert is_valid_variable_name('_hidden')
        assert is_valid_variable_name('lives2')

    def test_invalid_names(self):
        assert not is_valid_variable_name('')
        assert not is_valid_variable_name('2fast')
        assert not is_valid_variable_name('has space')
        assert not is_valid_variable_name('x' * (MAX_NAME_LENGTH + 1))
        assert not is_valid_variable_name(None)

    def test_reserved_words(self):
        assert not is_valid_variable_name('while')
        assert not is_valid_variable_name('ctx')
        assert not is_valid_variable_name('Actor')
        assert not is_valid_variable_name('True')


class TestCoercion:
    """Test cases for coerce_value."""

    def test_numbers(self):
        assert coerce_value('5', ValueType.NUMBER) == 5
        assert coerce_value('2.5', ValueType.NUMBER) == 2.5
        assert coerce_value('abc', ValueType.NUMBER) == 0
        assert coerce_value(float('nan'), ValueType.NUMBER) == 0
        assert coerce_value(True, ValueType.NUMBER) == 1

    def test_text(self):
        assert coerce_value(3, ValueType.TEXT) == '3'
        assert coerce_value(True, ValueType.TEXT) == 'true'
        assert coerce_value(None, ValueType.TEXT) == ''

    def test_booleans(self):
        assert coerce_value('true', ValueType.BOOLEAN) is True
        assert coerce_value('TRUE', ValueType.BOOLEAN) is True
        assert coerce_value('yes', ValueType.BOOLEAN) is False
        assert coerce_value(1, ValueType.BOOLEAN) is True

    def test_variable_type_rejected(self):
        with pytest.raises(VariableError):
            coerce_value('x', ValueType.VARIABLE)


class TestVariableRegistry:
    """Test cases for VariableRegistry."""

    def test_add_coerces(self):
        registry = VariableRegistry()
        stored = registry.add(global_var('score', value='7'))
        assert stored.initial_value == 7
        assert registry.get('score', VariableScope.GLOBAL).initial_value == 7

    def test_duplicate_global(self):
        registry = VariableRegistry()
        registry.add(global_var('score'))
        with pytest.raises(VariableError):
            registry.add(global_var('score'))

    def test_same_name_in_different_scopes(self):
        registry = VariableRegistry()
        registry.add(global_var('hp'))
        registry.add(instance_var('hp', 'a1'))
        registry.add(instance_var('hp', 'a2'))
        assert len(registry) == 3

    def test_duplicate_instance(self):
        registry = VariableRegistry()
        registry.add(instance_var('hp', 'a1'))
        with pytest.raises(VariableError):
            registry.add(instance_var('hp', 'a1'))

    def test_instance_without_actor(self):
        with pytest.raises(VariableError):
            VariableRegistry().add(instance_var('hp', None))

    def test_invalid_name(self):
        with pytest.raises(VariableError):
            VariableRegistry().add(global_var('not valid'))

    def test_variable_type_rejected(self):
        with pytest.raises(VariableError):
            VariableRegistry().add(global_var('ref', ValueType.VARIABLE))

    def test_update(self):
        registry = VariableRegistry()
        registry.add(global_var('name', ValueType.TEXT, 'bob'))
        assert registry.update('name', VariableScope.GLOBAL, 5)
        assert registry.get('name', VariableScope.GLOBAL).initial_value == '5'
        assert registry.update('missing', VariableScope.GLOBAL, 1) is False

    def test_remove(self):
        registry = VariableRegistry()
        registry.add(global_var('score'))
        assert registry.remove('score', VariableScope.GLOBAL)
        assert registry.remove('score', VariableScope.GLOBAL) is False
        assert len(registry) == 0

    def test_remove_actor(self):
        registry = VariableRegistry()
        registry.add(instance_var('hp', 'a1'))
        registry.add(instance_var('speed', 'a1'))
        registry.add(instance_var('hp', 'a2'))
        registry.remove_actor('a1')

        assert registry.for_actor('a1') == []
        assert [v.name for v in registry.for_actor('a2')] == ['hp']

    def test_initial_values(self):
        registry = VariableRegistry()
        registry.add(global_var('score', value=3))
        registry.add(instance_var('hp', 'a1', value=10))

        assert registry.initial_values() == {'score': 3}
        assert registry.actor_initial_values('a1') == {'hp': 10}
        assert [v.name for v in registry.globals()] == ['score']

    def test_clear(self):
        registry = VariableRegistry()
        registry.add(global_var('score'))
        registry.clear()
        assert registry.all() == []


# Property-based tests
@given(st.text(max_size=40))
def test_valid_names_are_identifiers_property(name):
    """Property test: every accepted name is a usable Python identifier."""
    if is_valid_variable_name(name):
        assert name.isidentifier()
        assert len(name) <= MAX_NAME_LENGTH


@given(st.one_of(st.integers(-10**9, 10**9), st.floats(), st.text(max_size=10), st.booleans(), st.none()))
def test_number_coercion_is_finite_property(value):
    """Property test: coerced numbers are always finite."""
    number = coerce_value(value, ValueType.NUMBER)
    assert isinstance(number, (int, float))
    assert number == number
    assert number not in (float('inf'), float('-inf'))
