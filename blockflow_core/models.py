"""
Core data models for BlockFlow.

This module defines the fundamental data structures used throughout the block programming system,
including block definitions, block instances, connections, actors and the handle vocabulary
that ties ports to connections.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple, Optional
from enum import Enum
import re
import uuid


# Generic handles shared by every block
TOP = "top"
BOTTOM = "bottom"
OUTPUT = "output"
INPUT = "input"

_LABELED_HANDLE = re.compile(r"^(output|input)-(\d+)$")


def labeled_handle(direction: str, index: int) -> str:
    """Build a labeled handle id such as ``output-0`` or ``input-1``."""
    return f"{direction}-{index}"


def parse_labeled_handle(handle: Optional[str], direction: str) -> Optional[int]:
    """Return the port index of a labeled handle, or None if it is not one."""
    if not handle:
        return None
    match = _LABELED_HANDLE.match(handle)
    if not match or match.group(1) != direction:
        return None
    return int(match.group(2))


class BlockKind(Enum):
    """Enumeration of block kinds."""
    EVENT = "event"
    ACTION = "action"
    CONTROL = "control"
    VALUE = "value"


class EntryKind(Enum):
    """Host hook an event block feeds."""
    SETUP = "setup"
    TICK = "tick"
    CLICK = "click"


class ValueType(Enum):
    """Declared type of a traditional input field."""
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    VARIABLE = "variable"


class PortType(Enum):
    """Declared type of a labeled port."""
    NUMBER = "number"
    BOOLEAN = "boolean"
    FLOW = "flow"
    ANY = "any"


class PortSide(Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


class ActorScope(Enum):
    """How a block template relates to the implicit current actor."""
    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


class ConnectionKind(Enum):
    FLOW = "flow"
    DATA = "data"


class VariableScope(Enum):
    GLOBAL = "global"
    INSTANCE = "instance"


@dataclass(frozen=True)
class Scope:
    """Owner of a block: the stage (actor_id is None) or one actor."""
    actor_id: Optional[str] = None

    @classmethod
    def stage(cls) -> 'Scope':
        return cls(None)

    @classmethod
    def actor(cls, actor_id: str) -> 'Scope':
        return cls(actor_id)

    @property
    def is_stage(self) -> bool:
        return self.actor_id is None

    def to_dict(self) -> Dict[str, Any]:
        if self.is_stage:
            return {'workspace_type': 'stage'}
        return {'workspace_type': 'actor', 'actor_id': self.actor_id}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Scope':
        if d.get('workspace_type', 'stage') == 'stage':
            return cls.stage()
        return cls.actor(d['actor_id'])

    def __str__(self) -> str:
        return "stage" if self.is_stage else f"actor:{self.actor_id}"


@dataclass(frozen=True)
class VariableReference:
    """A block input value that points at a variable instead of a literal."""
    name: str
    scope: VariableScope = VariableScope.GLOBAL

    def to_dict(self) -> Dict[str, Any]:
        return {'$variable': self.name, 'scope': self.scope.value}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'VariableReference':
        return cls(d['$variable'], VariableScope(d.get('scope', 'global')))

    @staticmethod
    def is_encoded(value: Any) -> bool:
        return isinstance(value, dict) and '$variable' in value


@dataclass(frozen=True)
class BlockInput:
    """A traditional (name / type / default) input field."""
    name: str
    value_type: ValueType = ValueType.NUMBER
    default: Any = None
    accepts_variable_reference: bool = False
    options: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BlockInput':
        value_type = ValueType(d.get('type', d.get('value_type', 'number')))
        return cls(
            name=d['name'],
            value_type=value_type,
            default=d.get('default', d.get('defaultValue')),
            accepts_variable_reference=d.get(
                'accepts_variable_reference', value_type == ValueType.VARIABLE
            ),
            options=tuple(d.get('options', ())),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'name': self.name,
            'type': self.value_type.value,
            'default': self.default,
            'accepts_variable_reference': self.accepts_variable_reference,
        }
        if self.options:
            d['options'] = list(self.options)
        return d


@dataclass(frozen=True)
class Port:
    """A labeled, typed, sided connection point on a block."""
    label: str
    side: PortSide = PortSide.RIGHT
    port_type: PortType = PortType.ANY

    @property
    def is_flow(self) -> bool:
        return self.port_type == PortType.FLOW

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Port':
        return cls(
            label=d['label'],
            side=PortSide(d.get('side', 'right')),
            port_type=PortType(d.get('type', d.get('port_type', 'any'))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'side': self.side.value, 'type': self.port_type.value}


@dataclass(frozen=True)
class BlockDefinition:
    """Immutable catalog entry describing one kind of block."""
    id: str
    label: str = ""
    category: str = ""
    kind: BlockKind = BlockKind.ACTION
    template: str = ""
    color: str = "#64748b"
    inputs: Tuple[BlockInput, ...] = ()
    input_ports: Tuple[Port, ...] = ()
    output_ports: Tuple[Port, ...] = ()
    height: Optional[str] = None
    entry: Optional[EntryKind] = None
    actor_scope: ActorScope = ActorScope.NONE
    suspends: bool = False

    @property
    def is_event(self) -> bool:
        return self.kind == BlockKind.EVENT

    @property
    def is_value(self) -> bool:
        return self.kind == BlockKind.VALUE

    @property
    def has_flow_outputs(self) -> bool:
        return any(port.is_flow for port in self.output_ports)

    def get_input(self, name: str) -> Optional[BlockInput]:
        """Get a traditional input by name."""
        for block_input in self.inputs:
            if block_input.name == name:
                return block_input
        return None

    def get_input_port(self, index: int) -> Optional[Port]:
        if 0 <= index < len(self.input_ports):
            return self.input_ports[index]
        return None

    def get_output_port(self, index: int) -> Optional[Port]:
        if 0 <= index < len(self.output_ports):
            return self.output_ports[index]
        return None

    def result_type(self) -> PortType:
        """Type of the value this block produces when used as an expression."""
        for port in self.output_ports:
            if not port.is_flow:
                return port.port_type
        return PortType.ANY

    def default_values(self) -> Dict[str, Any]:
        return {block_input.name: block_input.default for block_input in self.inputs}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BlockDefinition':
        labeled = d.get('labeled_connections', d.get('labeledConnections')) or {}
        entry = d.get('entry')
        return cls(
            id=d['id'],
            label=d.get('label', d['id']),
            category=d.get('category', ''),
            kind=BlockKind(d.get('kind', d.get('type', 'action'))),
            template=d.get('template', d.get('code', '')),
            color=d.get('color', '#64748b'),
            inputs=tuple(BlockInput.from_dict(i) for i in d.get('inputs', ())),
            input_ports=tuple(Port.from_dict(p) for p in labeled.get('inputs', ())),
            output_ports=tuple(Port.from_dict(p) for p in labeled.get('outputs', ())),
            height=d.get('height'),
            entry=EntryKind(entry) if entry else None,
            actor_scope=ActorScope(d.get('actor_scope', 'none')),
            suspends=bool(d.get('suspends', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'label': self.label,
            'category': self.category,
            'kind': self.kind.value,
            'template': self.template,
            'color': self.color,
            'inputs': [i.to_dict() for i in self.inputs],
            'labeled_connections': {
                'inputs': [p.to_dict() for p in self.input_ports],
                'outputs': [p.to_dict() for p in self.output_ports],
            },
            'actor_scope': self.actor_scope.value,
            'suspends': self.suspends,
        }
        if self.height:
            d['height'] = self.height
        if self.entry:
            d['entry'] = self.entry.value
        return d


@dataclass
class BlockInstance:
    """A block placed into the stage or an actor workspace."""
    block_id: str
    instance_id: str = field(default_factory=lambda: f"blk_{uuid.uuid4().hex[:12]}")
    scope: Scope = field(default_factory=Scope.stage)
    position: Tuple[float, float] = (0.0, 0.0)
    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, definition: BlockDefinition, scope: Optional[Scope] = None,
               position: Tuple[float, float] = (0.0, 0.0),
               instance_id: Optional[str] = None) -> 'BlockInstance':
        """Create an instance with every input initialised from its default."""
        instance = cls(
            block_id=definition.id,
            scope=scope or Scope.stage(),
            position=position,
            values=definition.default_values(),
        )
        if instance_id:
            instance.instance_id = instance_id
        return instance

    def to_dict(self) -> Dict[str, Any]:
        values = {}
        for name, value in self.values.items():
            values[name] = value.to_dict() if isinstance(value, VariableReference) else value
        d = {
            'instance_id': self.instance_id,
            'block_id': self.block_id,
            'position': {'x': self.position[0], 'y': self.position[1]},
            'values': values,
        }
        d.update(self.scope.to_dict())
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BlockInstance':
        values = {}
        for name, value in (d.get('values') or {}).items():
            values[name] = VariableReference.from_dict(value) if VariableReference.is_encoded(value) else value
        position = d.get('position') or {}
        return cls(
            block_id=d['block_id'],
            instance_id=d['instance_id'],
            scope=Scope.from_dict(d),
            position=(float(position.get('x', 0.0)), float(position.get('y', 0.0))),
            values=values,
        )


@dataclass
class Connection:
    """Represents an edge between two block instances."""
    source_block_id: str
    source_handle: str
    target_block_id: str
    target_handle: str
    id: str = field(default_factory=lambda: f"conn_{uuid.uuid4().hex[:12]}")
    wait_frames: int = 0
    kind: ConnectionKind = ConnectionKind.FLOW
    target_field: Optional[str] = None

    def __post_init__(self):
        if self.wait_frames < 0:
            raise ValueError("wait_frames must be non-negative")

    @property
    def is_primary(self) -> bool:
        """Sequencing edge followed by chain walks (not a branch or a value binding)."""
        if self.source_handle == BOTTOM:
            return self.kind == ConnectionKind.FLOW
        return self.source_handle == OUTPUT and self.target_handle == INPUT

    def touches(self, instance_id: str) -> bool:
        return self.source_block_id == instance_id or self.target_block_id == instance_id

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'source_block_id': self.source_block_id,
            'source_handle': self.source_handle,
            'target_block_id': self.target_block_id,
            'target_handle': self.target_handle,
            'wait_frames': self.wait_frames,
            'kind': self.kind.value,
        }
        if self.target_field:
            d['target_field'] = self.target_field
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Connection':
        return cls(
            id=d['id'],
            source_block_id=d['source_block_id'],
            source_handle=d['source_handle'],
            target_block_id=d['target_block_id'],
            target_handle=d['target_handle'],
            wait_frames=int(d.get('wait_frames', 0)),
            kind=ConnectionKind(d.get('kind', 'flow')),
            target_field=d.get('target_field'),
        )


@dataclass
class Actor:
    """An entry of the ordered actor roster."""
    id: str
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    size: float = 30.0
    color: str = "#ff6b6b"
    rotation: float = 0.0
    visible: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name or self.id,
            'x': self.x,
            'y': self.y,
            'size': self.size,
            'color': self.color,
            'rotation': self.rotation,
            'visible': self.visible,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Actor':
        return cls(
            id=d['id'],
            name=d.get('name', ''),
            x=float(d.get('x', 0.0)),
            y=float(d.get('y', 0.0)),
            size=float(d.get('size') or 30.0),
            color=d.get('color') or "#ff6b6b",
            rotation=float(d.get('rotation', 0.0)),
            visible=d.get('visible', True) is not False,
        )


@dataclass
class VariableDefinition:
    """A user variable, global or owned by one actor."""
    name: str
    value_type: ValueType = ValueType.NUMBER
    scope: VariableScope = VariableScope.GLOBAL
    actor_id: Optional[str] = None
    initial_value: Any = 0

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'name': self.name,
            'type': self.value_type.value,
            'scope': self.scope.value,
            'initial_value': self.initial_value,
        }
        if self.actor_id:
            d['actor_id'] = self.actor_id
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'VariableDefinition':
        return cls(
            name=d['name'],
            value_type=ValueType(d.get('type', 'number')),
            scope=VariableScope(d.get('scope', 'global')),
            actor_id=d.get('actor_id'),
            initial_value=d.get('initial_value', d.get('initialValue', 0)),
        )
