"""
Graph model: block instances, connections, the actor roster and variables for
the stage and every actor workspace.

Writers compute the new connection list first and swap it in with a single
assignment under the graph lock, so a reader holding a snapshot never sees a
connection whose endpoint is gone.
"""

import copy
import logging
import threading
from typing import Dict, List, Optional, Any, Tuple, Union

from .block_registry import BlockRegistry, get_default_registry
from .exceptions import BlockFlowError, UnknownInstanceError, ScopeError
from .models import (
    BlockDefinition, BlockInstance, Connection, ConnectionKind, Actor, Scope,
    VariableDefinition
)
from .validator import ConnectionValidator, ConnectionDecision
from .variables import VariableRegistry


class GraphQueries:
    """Read-only queries shared by the live graph and its snapshots."""

    instances: Dict[str, BlockInstance]
    connections: List[Connection]
    actors: List[Actor]

    def get_instance(self, instance_id: str) -> Optional[BlockInstance]:
        return self.instances.get(instance_id)

    def instances_in(self, scope: Scope) -> List[BlockInstance]:
        """Instances owned by a scope, in insertion order."""
        return [inst for inst in self.instances.values() if inst.scope == scope]

    def connections_in(self, scope: Scope) -> List[Connection]:
        owned = {inst.instance_id for inst in self.instances_in(scope)}
        return [conn for conn in self.connections if conn.source_block_id in owned]

    def outgoing(self, block_id: str, handle: Optional[str] = None) -> List[Connection]:
        """Connections leaving a block, in connection order."""
        return [conn for conn in self.connections
                if conn.source_block_id == block_id
                and (handle is None or conn.source_handle == handle)]

    def incoming(self, block_id: str, handle: Optional[str] = None) -> List[Connection]:
        return [conn for conn in self.connections
                if conn.target_block_id == block_id
                and (handle is None or conn.target_handle == handle)]

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        for conn in self.connections:
            if conn.id == connection_id:
                return conn
        return None

    def field_supplier(self, block_id: str, field_name: str) -> Optional[Connection]:
        """The data connection bound to a traditional input field, if any."""
        for conn in self.connections:
            if (conn.target_block_id == block_id and conn.kind == ConnectionKind.DATA
                    and conn.target_field == field_name):
                return conn
        return None

    def is_input_connected(self, block_id: str, field_name: str) -> bool:
        return self.field_supplier(block_id, field_name) is not None

    def get_actor(self, actor_id: str) -> Optional[Actor]:
        for actor in self.actors:
            if actor.id == actor_id:
                return actor
        return None

    def actor_index(self, actor_id: str) -> Optional[int]:
        for index, actor in enumerate(self.actors):
            if actor.id == actor_id:
                return index
        return None


class GraphSnapshot(GraphQueries):
    """Immutable-by-convention copy of a graph taken under its lock."""

    def __init__(self, instances: Dict[str, BlockInstance], connections: List[Connection],
                 actors: List[Actor], variables: List[VariableDefinition]):
        self.instances = instances
        self.connections = connections
        self.actors = actors
        self.variables = variables


class BlockGraph(GraphQueries):
    """The live set of block instances and connections for all workspaces."""

    def __init__(self, registry: Optional[BlockRegistry] = None,
                 validator: Optional[ConnectionValidator] = None):
        self.logger = logging.getLogger(__name__)
        self.registry = registry or get_default_registry()
        self.validator = validator or ConnectionValidator()
        self.variables = VariableRegistry()
        self.instances: Dict[str, BlockInstance] = {}
        self.connections: List[Connection] = []
        self.actors: List[Actor] = []
        self._lock = threading.RLock()

    # -- snapshots -----------------------------------------------------------

    def snapshot(self) -> GraphSnapshot:
        with self._lock:
            return GraphSnapshot(
                instances={k: copy.deepcopy(v) for k, v in self.instances.items()},
                connections=[copy.copy(c) for c in self.connections],
                actors=[copy.copy(a) for a in self.actors],
                variables=[copy.copy(v) for v in self.variables.all()],
            )

    def definition_of(self, instance: BlockInstance) -> BlockDefinition:
        return self.registry.require(instance.block_id)

    def require_instance(self, instance_id: str) -> BlockInstance:
        instance = self.instances.get(instance_id)
        if instance is None:
            raise UnknownInstanceError(instance_id)
        return instance

    # -- actors ----------------------------------------------------------------

    def add_actor(self, actor: Actor) -> Actor:
        with self._lock:
            if self.get_actor(actor.id) is not None:
                raise BlockFlowError(f"Actor {actor.id} already exists", {'actor_id': actor.id})
            self.actors = self.actors + [actor]
        return actor

    def remove_actor(self, actor_id: str) -> bool:
        """Remove an actor with its blocks, their connections and its instance variables."""
        with self._lock:
            if self.get_actor(actor_id) is None:
                return False
            scope = Scope.actor(actor_id)
            doomed = {inst.instance_id for inst in self.instances_in(scope)}
            self.connections = [c for c in self.connections
                                if c.source_block_id not in doomed and c.target_block_id not in doomed]
            self.instances = {k: v for k, v in self.instances.items() if k not in doomed}
            self.actors = [a for a in self.actors if a.id != actor_id]
            removed_vars = self.variables.remove_actor(actor_id)
        self.logger.debug(f"Removed actor {actor_id} with {len(doomed)} blocks "
                          f"and {removed_vars} variables")
        return True

    # -- variables -------------------------------------------------------------

    def add_variable(self, variable: VariableDefinition) -> VariableDefinition:
        with self._lock:
            if variable.actor_id and self.get_actor(variable.actor_id) is None:
                raise ScopeError(f"Unknown actor for variable {variable.name}: {variable.actor_id}")
            return self.variables.add(variable)

    # -- instances -------------------------------------------------------------

    def add_instance(self, instance: BlockInstance) -> str:
        """Add an existing instance and return its id."""
        self.registry.require(instance.block_id)
        with self._lock:
            if instance.instance_id in self.instances:
                raise BlockFlowError(f"Duplicate block instance: {instance.instance_id}",
                                     {'instance_id': instance.instance_id})
            if not instance.scope.is_stage and self.get_actor(instance.scope.actor_id) is None:
                raise ScopeError(f"Unknown actor workspace: {instance.scope.actor_id}",
                                 {'instance_id': instance.instance_id})
            instances = dict(self.instances)
            instances[instance.instance_id] = instance
            self.instances = instances
        return instance.instance_id

    def create_instance(self, definition: Union[BlockDefinition, str], scope: Optional[Scope] = None,
                        position: Tuple[float, float] = (0.0, 0.0),
                        instance_id: Optional[str] = None) -> BlockInstance:
        """Create an instance from a definition (or definition id) and add it."""
        if isinstance(definition, str):
            definition = self.registry.require(definition)
        instance = BlockInstance.create(definition, scope, position, instance_id)
        self.add_instance(instance)
        return instance

    def remove_instance(self, instance_id: str) -> bool:
        """Remove an instance and every connection touching it."""
        with self._lock:
            if instance_id not in self.instances:
                return False
            restored = [c for c in self.connections
                        if c.source_block_id == instance_id and c.target_field
                        and c.target_block_id != instance_id]
            self.connections = [c for c in self.connections if not c.touches(instance_id)]
            self.instances = {k: v for k, v in self.instances.items() if k != instance_id}
            for conn in restored:
                self._restore_field_default(conn)
        return True

    def set_value(self, instance_id: str, name: str, value: Any):
        with self._lock:
            instance = self.require_instance(instance_id)
            definition = self.definition_of(instance)
            if definition.get_input(name) is None:
                raise BlockFlowError(f"{definition.id} has no input {name}",
                                     {'instance_id': instance_id, 'input': name})
            instance.values[name] = value

    def move_instance(self, instance_id: str, position: Tuple[float, float]):
        with self._lock:
            self.require_instance(instance_id).position = (float(position[0]), float(position[1]))

    # -- connections -----------------------------------------------------------

    def check_connection(self, source_id: str, source_handle: str,
                         target_id: str, target_handle: str) -> ConnectionDecision:
        """Validator decision plus the graph's scope, self-loop and uniqueness rules."""
        source = self.instances.get(source_id)
        target = self.instances.get(target_id)
        if source is None or target is None:
            return ConnectionDecision.reject("Unknown block instance")
        if source.scope != target.scope:
            return ConnectionDecision.reject(
                f"Cannot connect across workspaces ({source.scope} -> {target.scope})")

        decision = self.validator.validate(self.definition_of(source), source_handle,
                                           self.definition_of(target), target_handle)
        if not decision.accepted:
            return decision

        if decision.kind == ConnectionKind.FLOW:
            if source_id == target_id:
                return ConnectionDecision.reject("Flow self-loops are not allowed")
            if any(c.kind == ConnectionKind.FLOW for c in self.incoming(target_id)):
                return ConnectionDecision.reject(f"{target_id} already has a flow predecessor")
        else:
            for conn in self.incoming(target_id, target_handle):
                if conn.kind == ConnectionKind.DATA:
                    return ConnectionDecision.reject(f"{target_id}.{target_handle} is already connected")
        return decision

    def connect(self, source_id: str, source_handle: str, target_id: str, target_handle: str,
                wait_frames: int = 0) -> Optional[Connection]:
        """Create a validated connection. Returns None when the pair is rejected."""
        with self._lock:
            decision = self.check_connection(source_id, source_handle, target_id, target_handle)
            if not decision.accepted:
                self.logger.debug(f"Connection rejected: {decision.reason}")
                return None
            connection = Connection(
                source_block_id=source_id,
                source_handle=source_handle,
                target_block_id=target_id,
                target_handle=target_handle,
                wait_frames=wait_frames,
                kind=decision.kind,
                target_field=decision.target_field,
            )
            self._append(connection)
        return connection

    def add_connection(self, connection: Connection) -> bool:
        """Add an existing connection (import path), re-deriving its kind."""
        with self._lock:
            if self.get_connection(connection.id) is not None:
                return False
            decision = self.check_connection(connection.source_block_id, connection.source_handle,
                                             connection.target_block_id, connection.target_handle)
            if not decision.accepted:
                self.logger.warning(f"Skipping connection {connection.id}: {decision.reason}")
                return False
            connection.kind = decision.kind
            connection.target_field = decision.target_field
            self._append(connection)
        return True

    def _append(self, connection: Connection):
        if connection.target_field:
            target = self.instances[connection.target_block_id]
            target.values[connection.target_field] = None
        self.connections = self.connections + [connection]

    def remove_connection(self, connection_id: str) -> bool:
        with self._lock:
            connection = self.get_connection(connection_id)
            if connection is None:
                return False
            self.connections = [c for c in self.connections if c.id != connection_id]
            if connection.target_field:
                self._restore_field_default(connection)
        return True

    def _restore_field_default(self, connection: Connection):
        target = self.instances.get(connection.target_block_id)
        if target is None:
            return
        field_def = self.definition_of(target).get_input(connection.target_field)
        if field_def is not None:
            target.values[connection.target_field] = field_def.default

    def set_wait_frames(self, connection_id: str, frames: int) -> bool:
        if frames < 0:
            raise ValueError("wait_frames must be non-negative")
        with self._lock:
            connection = self.get_connection(connection_id)
            if connection is None:
                return False
            connection.wait_frames = int(frames)
        return True

    def clear(self):
        with self._lock:
            self.connections = []
            self.instances = {}
            self.actors = []
            self.variables.clear()

    def get_stats(self) -> Dict[str, int]:
        return {
            'blocks': len(self.instances),
            'connections': len(self.connections),
            'actors': len(self.actors),
            'variables': len(self.variables),
        }
