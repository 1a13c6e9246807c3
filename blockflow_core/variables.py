"""
Variable registry for global and per-actor (instance) variables.
"""

import keyword
import logging
import math
import re
from typing import Dict, List, Optional, Any

from .exceptions import VariableError
from .models import VariableDefinition, VariableScope, ValueType


MAX_NAME_LENGTH = 32

_NAME_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

# Names the generated program or its runtime already uses
RESERVED_WORDS = frozenset(
    {kw.lower() for kw in keyword.kwlist}
    | {'ctx', 'actor', 'actors', 'variables', 'draw', 'setup', 'per_tick', 'click',
       'math', 'asyncio', 'logging', 'logger', 'self', 'print', 'none', 'true', 'false'}
)


def is_valid_variable_name(name: Any) -> bool:
    """Check that a name is a safe identifier of at most 32 characters."""
    if not name or not isinstance(name, str):
        return False
    if len(name) > MAX_NAME_LENGTH:
        return False
    if not _NAME_PATTERN.fullmatch(name):
        return False
    return name.lower() not in RESERVED_WORDS


def coerce_value(value: Any, value_type: ValueType) -> Any:
    """Coerce a raw value to a variable type."""
    if value_type == ValueType.NUMBER:
        if isinstance(value, bool):
            return int(value)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
        if math.isnan(number) or math.isinf(number):
            return 0
        return int(number) if number.is_integer() and not isinstance(value, float) else number
    if value_type == ValueType.TEXT:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return '' if value is None else str(value)
    if value_type == ValueType.BOOLEAN:
        if isinstance(value, str):
            return value.lower() == 'true'
        return bool(value)
    raise VariableError(f"Variables cannot have type {value_type.value}", '')


class VariableRegistry:
    """Keeps variable definitions unique per scope (global by name, instance by name and actor)."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._variables: List[VariableDefinition] = []

    def _key(self, name: str, scope: VariableScope, actor_id: Optional[str]):
        return (name, scope, actor_id if scope == VariableScope.INSTANCE else None)

    def _find(self, name: str, scope: VariableScope, actor_id: Optional[str] = None) -> Optional[int]:
        key = self._key(name, scope, actor_id)
        for index, variable in enumerate(self._variables):
            if self._key(variable.name, variable.scope, variable.actor_id) == key:
                return index
        return None

    def add(self, variable: VariableDefinition) -> VariableDefinition:
        """Validate, coerce and store a variable. Returns the stored definition."""
        if not is_valid_variable_name(variable.name):
            raise VariableError(f"Invalid variable name: {variable.name!r}", str(variable.name))
        if variable.value_type == ValueType.VARIABLE:
            raise VariableError("Variables must be number, text or boolean", variable.name)
        if variable.scope == VariableScope.INSTANCE and not variable.actor_id:
            raise VariableError("Instance variables must have an actor_id", variable.name)
        if self._find(variable.name, variable.scope, variable.actor_id) is not None:
            where = 'global scope' if variable.scope == VariableScope.GLOBAL \
                else f'instance scope for actor {variable.actor_id}'
            raise VariableError(f"Variable {variable.name} already exists in {where}", variable.name)

        stored = VariableDefinition(
            name=variable.name,
            value_type=variable.value_type,
            scope=variable.scope,
            actor_id=variable.actor_id if variable.scope == VariableScope.INSTANCE else None,
            initial_value=coerce_value(variable.initial_value, variable.value_type),
        )
        self._variables.append(stored)
        self.logger.debug(f"Added {stored.scope.value} variable {stored.name}")
        return stored

    def update(self, name: str, scope: VariableScope, value: Any, actor_id: Optional[str] = None) -> bool:
        """Set the initial value of an existing variable."""
        index = self._find(name, scope, actor_id)
        if index is None:
            self.logger.warning(f"Variable {name} not found in {scope.value} scope")
            return False
        variable = self._variables[index]
        variable.initial_value = coerce_value(value, variable.value_type)
        return True

    def remove(self, name: str, scope: VariableScope, actor_id: Optional[str] = None) -> bool:
        index = self._find(name, scope, actor_id)
        if index is None:
            return False
        del self._variables[index]
        return True

    def remove_actor(self, actor_id: str) -> int:
        """Drop every instance variable of an actor. Returns the number removed."""
        before = len(self._variables)
        self._variables = [v for v in self._variables
                           if not (v.scope == VariableScope.INSTANCE and v.actor_id == actor_id)]
        return before - len(self._variables)

    def get(self, name: str, scope: VariableScope, actor_id: Optional[str] = None) -> Optional[VariableDefinition]:
        index = self._find(name, scope, actor_id)
        return self._variables[index] if index is not None else None

    def globals(self) -> List[VariableDefinition]:
        return [v for v in self._variables if v.scope == VariableScope.GLOBAL]

    def for_actor(self, actor_id: str) -> List[VariableDefinition]:
        return [v for v in self._variables
                if v.scope == VariableScope.INSTANCE and v.actor_id == actor_id]

    def all(self) -> List[VariableDefinition]:
        return list(self._variables)

    def clear(self):
        self._variables = []

    def initial_values(self) -> Dict[str, Any]:
        """Global variable values keyed by name."""
        return {v.name: v.initial_value for v in self.globals()}

    def actor_initial_values(self, actor_id: str) -> Dict[str, Any]:
        return {v.name: v.initial_value for v in self.for_actor(actor_id)}

    def __len__(self) -> int:
        return len(self._variables)
