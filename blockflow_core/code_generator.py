"""
Code Generator: compiles a block graph into a runnable Python program.

Setup entries, click entries and stage tick entries are inlined into the
synchronous ``setup``, ``click`` and ``per_tick`` hooks. Tick entries owned by
an actor become perpetual ``async`` coroutines that suspend between iterations.
Compilation is total: dangling ports, unknown blocks and cycles all produce
valid source.
"""

import ast
import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, FrozenSet, Set

from .block_registry import BlockRegistry, get_default_registry
from .config import GeneratorConfig
from .graph import BlockGraph, GraphSnapshot
from .models import (
    BlockDefinition, BlockInstance, ActorScope, ConnectionKind, EntryKind, PortType,
    Scope, ValueType, VariableReference, VariableScope, labeled_handle
)
from .runtime_emitter import RuntimeEmitter


PLACEHOLDER = re.compile(r"\$\{([^}]*)\}")
ACTOR_TOKEN = re.compile(r"\bACTOR\b")
DRAW_CALL_EMPTY = re.compile(r"ctx\.draw\.(\w+)\(\s*\)")
DRAW_CALL = re.compile(r"ctx\.draw\.(\w+)\(")

SAFE_DEFAULTS = {
    PortType.BOOLEAN: 'True',
    PortType.NUMBER: '0',
    PortType.ANY: 'None',
}

FIELD_SAFE_DEFAULTS = {
    ValueType.NUMBER: '0',
    ValueType.BOOLEAN: 'True',
    ValueType.TEXT: '""',
}


class ProgramFormatter:
    """Light formatting of the assembled program text."""

    def format_code(self, code: str) -> str:
        lines = [line.rstrip() for line in code.split('\n')]
        # Collapse runs of blank lines to at most two
        result = []
        blank = 0
        for line in lines:
            if line:
                blank = 0
            else:
                blank += 1
                if blank > 2:
                    continue
            result.append(line)
        return '\n'.join(result).strip('\n') + '\n'


@dataclass
class CompiledEntry:
    """One event instance and where its chain ended up."""
    instance_id: str
    block_id: str
    scope: Scope
    entry: EntryKind
    mode: str  # 'sync' or 'coroutine'
    function: str

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'instance_id': self.instance_id,
            'block_id': self.block_id,
            'entry': self.entry.value,
            'mode': self.mode,
            'function': self.function,
        }
        d.update(self.scope.to_dict())
        return d


@dataclass
class GeneratedProgram:
    """Result of one compilation."""
    code: str
    entries: List[CompiledEntry] = field(default_factory=list)
    coroutines: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'entries': [entry.to_dict() for entry in self.entries],
            'coroutines': list(self.coroutines),
            'warnings': list(self.warnings),
            'errors': list(self.errors),
        }


class _ChainContext:
    """Per-entry compilation state."""

    def __init__(self, snapshot: GraphSnapshot, scope: Scope, actor_ref: Optional[str],
                 in_coroutine: bool, warnings: List[str]):
        self.snapshot = snapshot
        self.scope = scope
        self.actor_ref = actor_ref
        self.in_coroutine = in_coroutine
        self.warnings = warnings


def ensure_statement(lines: List[str]) -> List[str]:
    """A block body made only of comments still needs one statement."""
    if any(line.strip() and not line.lstrip().startswith("#") for line in lines):
        return lines
    return lines + ["pass"]


def indent_lines(lines: List[str], prefix: str) -> List[str]:
    return [prefix + line if line else line for line in lines]


def render_number(value: Any) -> str:
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return '0'
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return '0'
        if number.is_integer() and not isinstance(value, float):
            return str(int(number))
    return repr(number)


def render_literal(value: Any, value_type: ValueType) -> str:
    """Render a stored field value as a Python literal of the field's type."""
    if value_type == ValueType.NUMBER:
        return render_number(value)
    if value_type == ValueType.TEXT:
        return json.dumps('' if value is None else str(value))
    if value_type == ValueType.BOOLEAN:
        if isinstance(value, str):
            return 'True' if value.strip().lower() == 'true' else 'False'
        return 'True' if value else 'False'
    return 'None'


def clean(text: Any) -> str:
    """Collapse whitespace so user text can sit on one comment line."""
    return ' '.join(str(text).split())


def sanitize_identifier(text: str) -> str:
    name = re.sub(r"[^0-9A-Za-z_]", "_", text)
    if not name or name[0].isdigit():
        name = '_' + name
    return name


class ProgramGenerator:
    """Compiles a BlockGraph into a GeneratedProgram."""

    def __init__(self, registry: Optional[BlockRegistry] = None,
                 config: Optional[GeneratorConfig] = None):
        self.logger = logging.getLogger(__name__)
        self.registry = registry or get_default_registry()
        self.config = config or GeneratorConfig()
        self.runtime = RuntimeEmitter(self.config)
        self.formatter = ProgramFormatter()

    # -- public API ------------------------------------------------------------

    def generate(self, graph: BlockGraph) -> GeneratedProgram:
        """Compile a graph. Never raises on malformed or partial graphs."""
        snapshot = graph.snapshot() if isinstance(graph, BlockGraph) else graph
        warnings: List[str] = []
        entries: List[CompiledEntry] = []
        hooks: Dict[EntryKind, List[str]] = {kind: [] for kind in EntryKind}
        coroutines: List[str] = []
        coroutine_names: List[str] = []

        for instance in snapshot.instances.values():
            definition = self.registry.get(instance.block_id)
            if definition is None or not definition.is_event or definition.entry is None:
                continue

            actor_ref = None
            if not instance.scope.is_stage:
                index = snapshot.actor_index(instance.scope.actor_id)
                if index is None:
                    message = f"{instance.instance_id}: actor {instance.scope.actor_id} is not in the roster"
                    self.logger.warning(message)
                    warnings.append(message)
                    hooks[definition.entry].append(
                        f"pass  # {clean(definition.label)}: actor {clean(instance.scope.actor_id)} is not in the roster")
                    continue
                actor_ref = f"ctx.actors[{index}]"

            perpetual = definition.entry == EntryKind.TICK and actor_ref is not None
            cc = _ChainContext(snapshot, instance.scope, actor_ref, perpetual, warnings)
            body = self.compile_entry(instance, definition, cc)

            if perpetual:
                name = self._coroutine_name(instance.instance_id, coroutine_names)
                coroutine_names.append(name)
                coroutines.append(self._wrap_coroutine(name, body))
                function = name
            else:
                hooks[definition.entry].append(f"# {clean(definition.label)} ({clean(instance.instance_id)}, {clean(instance.scope)})")
                hooks[definition.entry].extend(body)
                function = self._hook_name(definition.entry)

            entries.append(CompiledEntry(
                instance_id=instance.instance_id,
                block_id=definition.id,
                scope=instance.scope,
                entry=definition.entry,
                mode='coroutine' if perpetual else 'sync',
                function=function,
            ))

        code = self._assemble(snapshot, hooks, coroutines, coroutine_names)
        program = GeneratedProgram(code=code, entries=entries, coroutines=coroutine_names,
                                   warnings=warnings)
        validation = self.validate_generated_code(code)
        program.errors.extend(validation['errors'])
        program.warnings.extend(validation['warnings'])
        if program.errors:
            self.logger.error(f"Generated program is invalid: {program.errors}")
        return program

    def validate_generated_code(self, code: str) -> Dict[str, Any]:
        """Validate that generated code is syntactically correct."""
        result = {
            'is_valid': False,
            'errors': [],
            'warnings': []
        }

        try:
            ast.parse(code)
            result['is_valid'] = True
        except SyntaxError as e:
            result['errors'].append(f"Syntax error: {e}")

        if '${' in code:
            result['warnings'].append("Unresolved placeholder in generated code")

        return result

    # -- entries ---------------------------------------------------------------

    def compile_entry(self, instance: BlockInstance, definition: BlockDefinition,
                      cc: _ChainContext) -> List[str]:
        """Compile an event instance and everything reachable from it."""
        if cc.actor_ref is None and definition.actor_scope == ActorScope.REQUIRED:
            return [f"pass  # {clean(definition.label)} needs an actor"]

        stack = frozenset({instance.instance_id})
        body = self._compile_successors(instance.instance_id, cc, stack, {instance.instance_id})
        body = ensure_statement(body) if body else ["pass  # no blocks connected"]
        return self._expand(instance, definition, cc, stack, content=body).split('\n')

    def _wrap_coroutine(self, name: str, body: List[str]) -> str:
        indent = self.config.indent
        lines = [
            f"async def {name}(ctx):",
            f"{indent}epoch = ctx.epoch",
            f"{indent}while True:",
            f"{indent * 2}if ctx.epoch != epoch:",
            f"{indent * 3}return",
            f"{indent * 2}try:",
        ]
        lines.extend(indent_lines(body, indent * 3))
        lines.extend([
            f"{indent * 3}await suspend_for_frames(ctx, {self.config.tick_yield_frames})",
            f"{indent * 2}except Exception:",
            f'{indent * 3}logger.exception("{name} failed on frame %s", ctx.frame_count)',
            f"{indent * 3}await suspend_for_frames(ctx, {self.config.fault_cooldown_frames})",
        ])
        return '\n'.join(lines)

    def _coroutine_name(self, instance_id: str, taken: List[str]) -> str:
        base = self.config.coroutine_prefix + sanitize_identifier(instance_id).lstrip('_')
        name = base
        suffix = 2
        while name in taken:
            name = f"{base}_{suffix}"
            suffix += 1
        return name

    @staticmethod
    def _hook_name(entry: EntryKind) -> str:
        return {EntryKind.SETUP: 'setup', EntryKind.TICK: 'per_tick', EntryKind.CLICK: 'click'}[entry]

    # -- chains ----------------------------------------------------------------

    def _compile_successors(self, instance_id: str, cc: _ChainContext, stack: FrozenSet[str],
                            visited: Set[str]) -> List[str]:
        """Follow primary edges out of a block, depth-first in connection order."""
        lines: List[str] = []
        for conn in cc.snapshot.outgoing(instance_id):
            if not conn.is_primary:
                continue
            target = cc.snapshot.get_instance(conn.target_block_id)
            target_label = self._label_of(target) if target else conn.target_block_id
            if conn.wait_frames > 0:
                if not cc.in_coroutine:
                    lines.append(f"# stops here: {clean(target_label)} runs after a "
                                 f"{conn.wait_frames} frame wait")
                    continue
                lines.append(f"await suspend_for_frames(ctx, {conn.wait_frames})")
            lines.extend(self._compile_chain(conn.target_block_id, cc, stack, visited))
        return lines

    def _compile_chain(self, instance_id: str, cc: _ChainContext, stack: FrozenSet[str],
                       visited: Set[str]) -> List[str]:
        if instance_id in visited:
            return []
        visited.add(instance_id)
        lines = self.compile_statement(instance_id, cc, stack)
        lines.extend(self._compile_successors(instance_id, cc, stack, visited))
        return lines

    def _compile_branch(self, instance_id: str, port_index: int, label: str,
                        cc: _ChainContext, stack: FrozenSet[str]) -> List[str]:
        """Every chain leaving one labeled flow output."""
        lines: List[str] = []
        handle = labeled_handle('output', port_index)
        for conn in cc.snapshot.outgoing(instance_id, handle):
            if conn.kind != ConnectionKind.FLOW:
                continue
            if conn.wait_frames > 0:
                if not cc.in_coroutine:
                    lines.append(f"# stops here: {clean(label)} waits {conn.wait_frames} frames")
                    continue
                lines.append(f"await suspend_for_frames(ctx, {conn.wait_frames})")
            lines.extend(self._compile_chain(conn.target_block_id, cc, stack, set()))
        if not lines:
            return [f"pass  # {clean(label)} not connected"]
        return ensure_statement(lines)

    # -- blocks ----------------------------------------------------------------

    def compile_statement(self, instance_id: str, cc: _ChainContext,
                          stack: FrozenSet[str]) -> List[str]:
        """Compile one block as a list of statement lines."""
        instance = cc.snapshot.get_instance(instance_id)
        if instance is None:
            return [f"pass  # missing block {clean(instance_id)}"]
        definition = self.registry.get(instance.block_id)
        if definition is None:
            return [f"pass  # unknown block {clean(instance.block_id)}"]
        if definition.is_event:
            return [f"pass  # {clean(definition.label)} is an entry block"]
        if cc.actor_ref is None and definition.actor_scope == ActorScope.REQUIRED:
            return [f"pass  # {clean(definition.label)} needs an actor"]
        if definition.suspends and not cc.in_coroutine:
            return [f"pass  # {clean(definition.label)} only waits inside actor loops"]
        if self._missing_variable(instance, definition, cc):
            return [f"pass  # {clean(definition.label)}: no variable selected"]

        if instance_id in stack:
            self._warn_cycle(instance, definition, cc)
            return self._expand(instance, definition, cc, stack, fallback=True).split('\n')
        return self._expand(instance, definition, cc, stack | {instance_id}).split('\n')

    def compile_expression(self, instance_id: str, cc: _ChainContext,
                           stack: FrozenSet[str], default: Optional[str] = None) -> str:
        """Compile a block that supplies a value. Always returns one line.

        ``default`` is the safe default of the consuming port or field. It
        stands in for any supplier that cannot produce a value.
        """
        instance = cc.snapshot.get_instance(instance_id)
        definition = self.registry.get(instance.block_id) if instance is not None else None
        if definition is None or definition.is_event:
            return default or 'None'
        if default is None:
            default = SAFE_DEFAULTS.get(definition.result_type(), 'None')
        if cc.actor_ref is None and definition.actor_scope == ActorScope.REQUIRED:
            return default
        if definition.suspends and not cc.in_coroutine:
            return default
        if self._missing_variable(instance, definition, cc):
            return default

        if instance_id in stack:
            self._warn_cycle(instance, definition, cc)
            expression = self._expand(instance, definition, cc, stack, fallback=True)
        else:
            expression = self._expand(instance, definition, cc, stack | {instance_id})
        expression = expression.strip()
        if '\n' in expression or not expression or expression == 'None':
            return default
        # Statement templates (assignments, pass comments) have no value
        try:
            ast.parse(expression, mode='eval')
        except SyntaxError:
            return default
        return expression

    def _warn_cycle(self, instance: BlockInstance, definition: BlockDefinition, cc: _ChainContext):
        message = f"Cycle through {definition.id} ({instance.instance_id}); emitted fallback form"
        self.logger.warning(message)
        if message not in cc.warnings:
            cc.warnings.append(message)

    def _label_of(self, instance: BlockInstance) -> str:
        definition = self.registry.get(instance.block_id)
        return definition.label if definition else instance.block_id

    # -- template expansion ----------------------------------------------------

    def _scoped_template(self, definition: BlockDefinition, cc: _ChainContext) -> str:
        """Rewrite ACTOR for the chain's scope and buffer drawing inside coroutines."""
        template = definition.template
        if cc.actor_ref is not None:
            template = ACTOR_TOKEN.sub(cc.actor_ref, template)
        elif definition.actor_scope == ActorScope.OPTIONAL:
            lines = []
            for line in template.split('\n'):
                if ACTOR_TOKEN.search(line):
                    leading = line[:len(line) - len(line.lstrip())]
                    line = f"{leading}pass  # {clean(definition.label)} needs an actor"
                lines.append(line)
            template = '\n'.join(lines)

        if cc.in_coroutine:
            template = DRAW_CALL_EMPTY.sub(r'append_draw_command(ctx, "\1")', template)
            template = DRAW_CALL.sub(r'append_draw_command(ctx, "\1", ', template)
        return template

    def _expand(self, instance: BlockInstance, definition: BlockDefinition, cc: _ChainContext,
                stack: FrozenSet[str], content: Optional[List[str]] = None,
                fallback: bool = False) -> str:
        template = self._scoped_template(definition, cc)

        def replace(match):
            name = match.group(1).strip()
            line_start = template.rfind('\n', 0, match.start()) + 1
            column = match.start() - line_start
            if name == 'content' and content is not None:
                lines = content
            else:
                lines = self._resolve_placeholder(instance, definition, name, cc, stack, fallback)
            return ('\n' + ' ' * column).join(lines)

        return PLACEHOLDER.sub(replace, template)

    def _resolve_placeholder(self, instance: BlockInstance, definition: BlockDefinition, name: str,
                             cc: _ChainContext, stack: FrozenSet[str], fallback: bool) -> List[str]:
        block_input = definition.get_input(name)
        if block_input is not None:
            return [self._resolve_field(instance, block_input, cc, stack, fallback)]

        for index, port in enumerate(definition.input_ports):
            if port.label != name:
                continue
            if port.is_flow:
                fed = cc.snapshot.incoming(instance.instance_id, labeled_handle('input', index))
                return [f"pass  # {clean(name)}" if fed else f"pass  # {clean(name)} not connected"]
            if not fallback:
                for conn in cc.snapshot.incoming(instance.instance_id, labeled_handle('input', index)):
                    if conn.kind == ConnectionKind.DATA:
                        return [self.compile_expression(conn.source_block_id, cc, stack,
                                                        SAFE_DEFAULTS.get(port.port_type, 'None'))]
            return [SAFE_DEFAULTS.get(port.port_type, 'None')]

        for index, port in enumerate(definition.output_ports):
            if port.label != name:
                continue
            if port.is_flow:
                if fallback:
                    return [f"pass  # {clean(name)} skipped inside a cycle"]
                return self._compile_branch(instance.instance_id, index, name, cc, stack)
            return ['None']

        if name == 'content':
            return ["pass"]
        return ['None']

    def _resolve_field(self, instance: BlockInstance, block_input, cc: _ChainContext,
                       stack: FrozenSet[str], fallback: bool) -> str:
        supplier = cc.snapshot.field_supplier(instance.instance_id, block_input.name)
        if supplier is not None:
            if fallback:
                return self._default_field_literal(block_input)
            return self.compile_expression(supplier.source_block_id, cc, stack,
                                           FIELD_SAFE_DEFAULTS.get(block_input.value_type, 'None'))

        value = instance.values.get(block_input.name, block_input.default)
        if isinstance(value, VariableReference) or block_input.value_type == ValueType.VARIABLE:
            access = self._variable_access(value, cc)
            if access is not None:
                return access
            if block_input.value_type == ValueType.VARIABLE:
                return 'None'
            value = block_input.default
        if value is None:
            value = block_input.default
        return render_literal(value, block_input.value_type)

    @staticmethod
    def _default_field_literal(block_input) -> str:
        return render_literal(block_input.default, block_input.value_type)

    def _variable_access(self, value: Any, cc: _ChainContext) -> Optional[str]:
        if isinstance(value, VariableReference):
            reference = value
        elif isinstance(value, str) and value.strip():
            reference = VariableReference(value.strip())
        else:
            return None
        key = json.dumps(reference.name)
        if reference.scope == VariableScope.INSTANCE:
            if cc.actor_ref is None:
                return None
            return f'{cc.actor_ref}["variables"][{key}]'
        return f'ctx.variables[{key}]'

    def _missing_variable(self, instance: BlockInstance, definition: BlockDefinition,
                          cc: _ChainContext) -> bool:
        for block_input in definition.inputs:
            if block_input.value_type != ValueType.VARIABLE:
                continue
            value = instance.values.get(block_input.name, block_input.default)
            if self._variable_access(value, cc) is None:
                return True
        return False

    # -- program assembly ------------------------------------------------------

    def _assemble(self, snapshot: GraphSnapshot, hooks: Dict[EntryKind, List[str]],
                  coroutines: List[str], coroutine_names: List[str]) -> str:
        indent = self.config.indent
        parts = [self.runtime.emit(), self._emit_state(snapshot)]

        parts.append('\n'.join([
            "def create_context(draw=None):",
            f"{indent}return SimulationContext(copy.deepcopy(ACTORS), copy.deepcopy(VARIABLES), draw)",
        ]))
        parts.append(self._emit_hook('setup', hooks[EntryKind.SETUP]))
        parts.append(self._emit_hook(
            'per_tick', hooks[EntryKind.TICK],
            trailer=["flush_draw_buffer(ctx)", "advance_frame(ctx)"],
        ))
        parts.append(self._emit_hook('click', hooks[EntryKind.CLICK]))
        parts.extend(coroutines)

        if coroutine_names:
            listing = ["COROUTINES = ["] + [f"{indent}{name}," for name in coroutine_names] + ["]"]
        else:
            listing = ["COROUTINES = []"]
        parts.append('\n'.join(listing))
        parts.append('\n'.join([
            "def start_coroutines(ctx):",
            f'{indent}"""Schedule every actor loop on the running event loop."""',
            f"{indent}tasks = [asyncio.ensure_future(entry(ctx)) for entry in COROUTINES]",
            f"{indent}ctx.tasks.extend(tasks)",
            f"{indent}return tasks",
        ]))

        return self.formatter.format_code('\n\n\n'.join(parts))

    def _emit_hook(self, name: str, body: List[str], trailer: Optional[List[str]] = None) -> str:
        indent = self.config.indent
        lines = list(body) + list(trailer or [])
        if not any(line.strip() and not line.strip().startswith('#') for line in lines):
            lines.append('pass')
        return '\n'.join([f"def {name}(ctx):"] + indent_lines(lines, indent))

    def _emit_state(self, snapshot: GraphSnapshot) -> str:
        indent = self.config.indent
        instance_values: Dict[str, Dict[str, Any]] = {}
        global_values: Dict[str, Any] = {}
        for variable in snapshot.variables:
            if variable.scope == VariableScope.INSTANCE:
                instance_values.setdefault(variable.actor_id, {})[variable.name] = variable.initial_value
            else:
                global_values[variable.name] = variable.initial_value

        if snapshot.actors:
            lines = ["ACTORS = ["]
            for actor in snapshot.actors:
                record = actor.to_dict()
                record['variables'] = instance_values.get(actor.id, {})
                lines.append(f"{indent}{record!r},")
            lines.append("]")
        else:
            lines = ["ACTORS = []"]
        lines.append(f"VARIABLES = {global_values!r}")
        return '\n'.join(lines)


def generate_program(graph: BlockGraph, registry: Optional[BlockRegistry] = None,
                     config: Optional[GeneratorConfig] = None) -> GeneratedProgram:
    """Compile a graph with a one-off generator."""
    return ProgramGenerator(registry or graph.registry, config).generate(graph)
