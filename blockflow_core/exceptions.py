"""
Exceptions for the BlockFlow core.
"""

from typing import Optional, Any, Dict


class BlockFlowError(Exception):
    """Base exception for all BlockFlow errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class CatalogError(BlockFlowError):
    """Raised when a block catalog cannot be loaded or is inconsistent."""
    pass


class UnknownBlockError(BlockFlowError):
    """Raised when a block definition id is not in the registry."""

    def __init__(self, block_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Unknown block definition: {block_id}", details)
        self.block_id = block_id


class UnknownInstanceError(BlockFlowError):
    """Raised when a block instance id is not in the graph."""

    def __init__(self, instance_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Unknown block instance: {instance_id}", details)
        self.instance_id = instance_id


class ScopeError(BlockFlowError):
    """Raised when an operation mixes stage and actor scopes illegally."""
    pass


class VariableError(BlockFlowError):
    """Raised when a variable definition or update is invalid."""

    def __init__(self, message: str, name: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.name = name


class WorkspaceFormatError(BlockFlowError):
    """Raised when a workspace document cannot be parsed."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.path = path
