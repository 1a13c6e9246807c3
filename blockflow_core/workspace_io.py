"""
Workspace documents: JSON export and import of blocks, connections, actors and variables.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Any, Union

from .block_registry import BlockRegistry
from .exceptions import BlockFlowError, WorkspaceFormatError
from .graph import BlockGraph
from .models import Actor, BlockInstance, Connection, VariableDefinition


FORMAT_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceImport:
    """A graph rebuilt from a document, with whatever had to be skipped."""
    graph: BlockGraph
    skipped_blocks: List[str] = field(default_factory=list)
    skipped_connections: List[str] = field(default_factory=list)
    skipped_variables: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.skipped_blocks or self.skipped_connections or self.skipped_variables)

    def summary(self) -> Dict[str, int]:
        stats = self.graph.get_stats()
        stats.update({
            'skipped_blocks': len(self.skipped_blocks),
            'skipped_connections': len(self.skipped_connections),
            'skipped_variables': len(self.skipped_variables),
        })
        return stats


def export_workspace(graph: BlockGraph) -> Dict[str, Any]:
    """Serialize a graph into a workspace document."""
    snapshot = graph.snapshot()
    blocks = [instance.to_dict() for instance in snapshot.instances.values()]
    workspace_types = sorted({block['workspace_type'] for block in blocks} | {'stage'})
    return {
        'version': FORMAT_VERSION,
        'export_date': datetime.now(timezone.utc).isoformat(),
        'blocks': blocks,
        'connections': [conn.to_dict() for conn in snapshot.connections],
        'actors': [actor.to_dict() for actor in snapshot.actors],
        'variables': [variable.to_dict() for variable in snapshot.variables],
        'metadata': {
            'total_blocks': len(blocks),
            'total_connections': len(snapshot.connections),
            'total_actors': len(snapshot.actors),
            'total_variables': len(snapshot.variables),
            'workspace_types': workspace_types,
        },
    }


def _require_list(data: Dict[str, Any], key: str, optional: bool = False) -> List[Any]:
    value = data.get(key)
    if value is None and optional:
        return []
    if not isinstance(value, list):
        raise WorkspaceFormatError(f"Invalid workspace: {key} must be an array", details={'key': key})
    return value


def import_workspace(data: Dict[str, Any], registry: Optional[BlockRegistry] = None) -> WorkspaceImport:
    """Rebuild a graph from a workspace document.

    Structural problems raise WorkspaceFormatError. Individual entries that
    reference unknown blocks or actors, or whose connection no longer
    validates, are skipped and reported.
    """
    if not isinstance(data, dict):
        raise WorkspaceFormatError("Invalid workspace: document must be an object")

    version = str(data.get('version', FORMAT_VERSION))
    if version.split('.')[0] != FORMAT_VERSION.split('.')[0]:
        raise WorkspaceFormatError(f"Unsupported workspace version {version}",
                                   details={'version': version})

    blocks = _require_list(data, 'blocks')
    connections = _require_list(data, 'connections')
    actors = _require_list(data, 'actors', optional=True)
    variables = _require_list(data, 'variables', optional=True)

    graph = BlockGraph(registry)
    result = WorkspaceImport(graph)

    try:
        for actor_data in actors:
            graph.add_actor(Actor.from_dict(actor_data))

        for variable_data in variables:
            try:
                graph.add_variable(VariableDefinition.from_dict(variable_data))
            except BlockFlowError as e:
                logger.warning(f"Skipping variable: {e}")
                result.skipped_variables.append(str(variable_data.get('name')))

        for block_data in blocks:
            instance = BlockInstance.from_dict(block_data)
            try:
                graph.add_instance(instance)
            except BlockFlowError as e:
                logger.warning(f"Skipping block {instance.instance_id}: {e}")
                result.skipped_blocks.append(instance.instance_id)

        for conn_data in connections:
            connection = Connection.from_dict(conn_data)
            if not graph.add_connection(connection):
                result.skipped_connections.append(connection.id)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise WorkspaceFormatError(f"Invalid workspace entry: {e}")

    logger.info(f"Imported workspace: {result.summary()}")
    return result


def load_workspace(path: Union[str, Path], registry: Optional[BlockRegistry] = None) -> WorkspaceImport:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise WorkspaceFormatError(f"Invalid JSON in {path}: {e}", str(path))
    except OSError as e:
        raise WorkspaceFormatError(f"Cannot read {path}: {e}", str(path))
    return import_workspace(data, registry)


def save_workspace(graph: BlockGraph, path: Union[str, Path]) -> Dict[str, Any]:
    document = export_workspace(graph)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(document, f, indent=2)
    return document
