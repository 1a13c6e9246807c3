"""
Connection validation: decides whether a (source handle, target handle) pair
may become a connection, and of which kind.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from .models import (
    BlockDefinition, ConnectionKind, PortType, ValueType,
    TOP, BOTTOM, OUTPUT, INPUT, parse_labeled_handle
)


_FIELD_PORT_TYPES = {
    ValueType.NUMBER: PortType.NUMBER,
    ValueType.BOOLEAN: PortType.BOOLEAN,
    ValueType.TEXT: None,
}


@dataclass(frozen=True)
class ConnectionDecision:
    """Outcome of a validation request."""
    accepted: bool
    kind: Optional[ConnectionKind] = None
    target_field: Optional[str] = None
    reason: str = ""

    @classmethod
    def accept(cls, kind: ConnectionKind, target_field: Optional[str] = None,
               reason: str = "") -> 'ConnectionDecision':
        return cls(True, kind, target_field, reason)

    @classmethod
    def reject(cls, reason: str) -> 'ConnectionDecision':
        return cls(False, None, None, reason)

    def __bool__(self) -> bool:
        return self.accepted

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accepted': self.accepted,
            'kind': self.kind.value if self.kind else None,
            'target_field': self.target_field,
            'reason': self.reason,
        }


def port_types_compatible(source: PortType, target: PortType) -> bool:
    """Data ports match exactly or through ``any``; flow never mixes with data."""
    if source == PortType.FLOW or target == PortType.FLOW:
        return source == target
    return source == target or PortType.ANY in (source, target)


class ConnectionValidator:
    """Side-effect free decision table over handle pairs. First matching rule wins."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate(self, source: BlockDefinition, source_handle: str,
                 target: BlockDefinition, target_handle: str) -> ConnectionDecision:
        decision = self._decide(source, source_handle, target, target_handle)
        if decision.accepted:
            self.logger.debug(f"Accepted {source.id}.{source_handle} -> {target.id}.{target_handle} "
                              f"as {decision.kind.value}")
        else:
            self.logger.debug(f"Rejected {source.id}.{source_handle} -> {target.id}.{target_handle}: "
                              f"{decision.reason}")
        return decision

    def _decide(self, source: BlockDefinition, source_handle: str,
                target: BlockDefinition, target_handle: str) -> ConnectionDecision:
        out_index = parse_labeled_handle(source_handle, 'output')
        in_index = parse_labeled_handle(target_handle, 'input')

        # Vertical flow
        if source_handle == BOTTOM and target_handle == TOP:
            if target.is_event:
                return ConnectionDecision.reject(f"Event block {target.id} has no top handle")
            return ConnectionDecision.accept(ConnectionKind.FLOW)

        # Horizontal data
        if source_handle == OUTPUT and target_handle == INPUT:
            return ConnectionDecision.accept(ConnectionKind.DATA)

        # Labeled to labeled
        if out_index is not None and in_index is not None:
            source_port = source.get_output_port(out_index)
            target_port = target.get_input_port(in_index)
            if source_port is None or target_port is None:
                return ConnectionDecision.reject("Labeled port index out of range")
            if source_port.is_flow and target_port.is_flow:
                return ConnectionDecision.accept(ConnectionKind.FLOW)
            if source_port.is_flow or target_port.is_flow:
                return ConnectionDecision.reject("Cannot connect flow and data ports")
            if port_types_compatible(source_port.port_type, target_port.port_type):
                return ConnectionDecision.accept(ConnectionKind.DATA)
            return ConnectionDecision.reject(
                f"Type mismatch: {source_port.port_type.value} -> {target_port.port_type.value}")

        # Mixed flow: labeled flow output into a top handle
        if out_index is not None and target_handle == TOP:
            source_port = source.get_output_port(out_index)
            if source_port is None:
                return ConnectionDecision.reject("Labeled port index out of range")
            if not source_port.is_flow:
                return ConnectionDecision.reject("Only flow outputs connect to a top handle")
            if target.is_event:
                return ConnectionDecision.reject(f"Event block {target.id} has no top handle")
            return ConnectionDecision.accept(ConnectionKind.FLOW)

        # Mixed flow: bottom handle into a labeled flow input
        if source_handle == BOTTOM and in_index is not None:
            target_port = target.get_input_port(in_index)
            if target_port is None:
                return ConnectionDecision.reject("Labeled port index out of range")
            if not target_port.is_flow:
                return ConnectionDecision.reject("A bottom handle only feeds flow inputs")
            return ConnectionDecision.accept(ConnectionKind.FLOW)

        # Data into a traditional input field
        if source_handle == OUTPUT or out_index is not None:
            return self._decide_field(source, source_handle, out_index, target, target_handle)

        return ConnectionDecision.reject(f"No rule connects {source_handle} to {target_handle}")

    def _decide_field(self, source: BlockDefinition, source_handle: str, out_index: Optional[int],
                      target: BlockDefinition, target_handle: str) -> ConnectionDecision:
        if out_index is not None:
            source_port = source.get_output_port(out_index)
            if source_port is None:
                return ConnectionDecision.reject("Labeled port index out of range")
            if source_port.is_flow:
                return ConnectionDecision.reject("Flow outputs cannot feed input fields")
            source_type = source_port.port_type
        else:
            source_type = PortType.ANY

        field_def = target.get_input(target_handle)
        if field_def is None:
            return ConnectionDecision.reject(f"{target.id} has no input field {target_handle}")
        if field_def.value_type not in _FIELD_PORT_TYPES:
            return ConnectionDecision.reject(f"Field {target_handle} does not accept connections")

        field_type = _FIELD_PORT_TYPES[field_def.value_type]
        if source_type != PortType.ANY and source_type != field_type:
            return ConnectionDecision.reject(
                f"Type mismatch: {source_type.value} -> {field_def.value_type.value}")
        return ConnectionDecision.accept(ConnectionKind.DATA, target_field=target_handle)
