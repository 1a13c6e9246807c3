"""
BlockFlow Core - compiles visual block graphs into runnable Python programs.

This package provides the block catalog, the graph model with connection validation,
and the code generator that turns event-rooted chains into synchronous hooks and
per-actor coroutines.
"""

__version__ = "0.1.0"

from .models import (
    BlockDefinition, BlockInstance, Connection, Actor, Scope, VariableDefinition,
    VariableReference, BlockKind, EntryKind, ValueType, PortType, ConnectionKind, VariableScope
)
from .block_registry import BlockRegistry, get_default_registry
from .validator import ConnectionValidator, ConnectionDecision
from .graph import BlockGraph
from .variables import VariableRegistry
from .config import GeneratorConfig
from .code_generator import ProgramGenerator, GeneratedProgram, generate_program
from .runtime_emitter import RuntimeEmitter
from .workspace_io import export_workspace, import_workspace, load_workspace, save_workspace
from .host import HeadlessHost, RecordingDraw, run_program
from .exceptions import (
    BlockFlowError, CatalogError, UnknownBlockError, UnknownInstanceError,
    ScopeError, VariableError, WorkspaceFormatError
)

__all__ = [
    'BlockDefinition', 'BlockInstance', 'Connection', 'Actor', 'Scope', 'VariableDefinition',
    'VariableReference', 'BlockKind', 'EntryKind', 'ValueType', 'PortType', 'ConnectionKind',
    'VariableScope', 'BlockRegistry', 'get_default_registry', 'ConnectionValidator',
    'ConnectionDecision', 'BlockGraph', 'VariableRegistry', 'GeneratorConfig', 'ProgramGenerator',
    'GeneratedProgram', 'generate_program', 'RuntimeEmitter', 'export_workspace',
    'import_workspace', 'load_workspace', 'save_workspace', 'HeadlessHost', 'RecordingDraw',
    'run_program', 'BlockFlowError', 'CatalogError', 'UnknownBlockError', 'UnknownInstanceError',
    'ScopeError', 'VariableError', 'WorkspaceFormatError',
]
