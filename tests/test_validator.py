"""
Unit tests for the connection validator decision table.
"""

import pytest
from hypothesis import given, strategies as st
from blockflow_core.block_registry import BlockRegistry
from blockflow_core.models import BlockDefinition, ConnectionKind, PortType
from blockflow_core.validator import ConnectionValidator, ConnectionDecision, port_types_compatible


REGISTRY = BlockRegistry()


def decide(source_id, source_handle, target_id, target_handle):
    return ConnectionValidator().validate(
        REGISTRY.require(source_id), source_handle, REGISTRY.require(target_id), target_handle
    )


class TestDecisionTable:
    """Test cases for each rule of the decision table."""

    def test_vertical_flow(self):
        decision = decide('when_setup', 'bottom', 'set_background', 'top')
        assert decision.accepted
        assert decision.kind == ConnectionKind.FLOW

    def test_top_of_event_rejected(self):
        assert not decide('set_background', 'bottom', 'when_setup', 'top')

    def test_horizontal_data(self):
        decision = decide('set_fill', 'output', 'set_background', 'input')
        assert decision.kind == ConnectionKind.DATA

    def test_labeled_data_same_type(self):
        decision = decide('add_numbers', 'output-0', 'greater_than', 'input-1')
        assert decision.kind == ConnectionKind.DATA

    def test_labeled_data_type_mismatch(self):
        decision = decide('greater_than', 'output-0', 'add_numbers', 'input-0')
        assert not decision.accepted
        assert 'mismatch' in decision.reason

    def test_labeled_any_matches_everything(self):
        assert decide('variable_value', 'output-0', 'and_operator', 'input-0').accepted
        assert decide('variable_value', 'output-0', 'add_numbers', 'input-1').accepted

    def test_labeled_flow_into_data_port_rejected(self):
        assert not decide('if_condition', 'output-0', 'not_operator', 'input-0')

    def test_labeled_index_out_of_range(self):
        assert not decide('if_condition', 'output-5', 'set_fill', 'top')
        assert not decide('add_numbers', 'output-0', 'greater_than', 'input-9')

    def test_branch_into_top(self):
        decision = decide('if_condition', 'output-1', 'set_fill', 'top')
        assert decision.kind == ConnectionKind.FLOW

    def test_data_output_into_top_rejected(self):
        assert not decide('add_numbers', 'output-0', 'set_fill', 'top')

    def test_data_to_number_field(self):
        decision = decide('add_numbers', 'output-0', 'draw_rect', 'x')
        assert decision.kind == ConnectionKind.DATA
        assert decision.target_field == 'x'

    def test_data_to_field_type_mismatch(self):
        assert not decide('greater_than', 'output-0', 'draw_rect', 'x')

    def test_boolean_into_text_field_rejected(self):
        assert not decide('boolean_true', 'output-0', 'set_fill', 'color')

    def test_generic_output_to_text_field(self):
        decision = decide('set_fill', 'output', 'set_background', 'color')
        assert decision.kind == ConnectionKind.DATA
        assert decision.target_field == 'color'

    def test_unknown_field_rejected(self):
        assert not decide('add_numbers', 'output-0', 'draw_rect', 'depth')

    def test_variable_field_rejected(self):
        assert not decide('variable_value', 'output-0', 'set_variable', 'variable')

    def test_flow_output_to_field_rejected(self):
        assert not decide('if_condition', 'output-0', 'draw_rect', 'x')

    def test_anything_else_rejected(self):
        assert not decide('set_fill', 'top', 'set_background', 'bottom')
        assert not decide('set_fill', 'bottom', 'set_background', 'input')


class TestMixedFlow:
    """Test cases for bottom handles feeding labeled flow inputs."""

    def setup_method(self):
        self.gate = BlockDefinition.from_dict({
            'id': 'gate',
            'kind': 'control',
            'labeled_connections': {
                'inputs': [
                    {'label': 'enter', 'side': 'left', 'type': 'flow'},
                    {'label': 'level', 'side': 'left', 'type': 'number'},
                ],
            },
        })
        self.step = BlockDefinition.from_dict({'id': 'step'})

    def test_bottom_into_flow_input(self):
        decision = ConnectionValidator().validate(self.step, 'bottom', self.gate, 'input-0')
        assert decision.kind == ConnectionKind.FLOW

    def test_bottom_into_data_input_rejected(self):
        assert not ConnectionValidator().validate(self.step, 'bottom', self.gate, 'input-1')


class TestConnectionDecision:
    """Test cases for ConnectionDecision."""

    def test_to_dict(self):
        decision = ConnectionDecision.accept(ConnectionKind.DATA, target_field='x')
        assert decision.to_dict() == {
            'accepted': True, 'kind': 'data', 'target_field': 'x', 'reason': ''
        }

    def test_reject_is_falsy(self):
        assert not ConnectionDecision.reject('nope')


# Property-based tests
PORT_TYPES = st.sampled_from(list(PortType))


@given(PORT_TYPES, PORT_TYPES)
def test_flow_never_mixes_with_data_property(source, target):
    """Property test: flow ports only ever accept flow ports."""
    if (source == PortType.FLOW) != (target == PortType.FLOW):
        assert not port_types_compatible(source, target)


@given(PORT_TYPES, PORT_TYPES)
def test_labeled_pairs_property(source_type, target_type):
    """Property test: the labeled rule agrees with port compatibility and kinds."""
    source = BlockDefinition.from_dict({
        'id': 'src', 'labeled_connections': {'outputs': [{'label': 'o', 'type': source_type.value}]},
    })
    target = BlockDefinition.from_dict({
        'id': 'dst', 'labeled_connections': {'inputs': [{'label': 'i', 'type': target_type.value}]},
    })
    decision = ConnectionValidator().validate(source, 'output-0', target, 'input-0')

    assert decision.accepted == port_types_compatible(source_type, target_type)
    if decision.accepted:
        expected = ConnectionKind.FLOW if source_type == PortType.FLOW else ConnectionKind.DATA
        assert decision.kind == expected


@given(st.sampled_from(sorted(REGISTRY.definitions)), st.sampled_from(sorted(REGISTRY.definitions)),
       st.sampled_from(['top', 'bottom', 'output', 'input', 'output-0', 'output-1', 'input-0', 'input-1',
                        'x', 'color', 'times', 'variable', 'value']),
       st.sampled_from(['top', 'bottom', 'output', 'input', 'output-0', 'output-1', 'input-0', 'input-1',
                        'x', 'color', 'times', 'variable', 'value']))
def test_validator_totality_property(source_id, target_id, source_handle, target_handle):
    """Property test: every pair gets a decision, and accepted data never touches flow ports."""
    decision = decide(source_id, source_handle, target_id, target_handle)
    assert isinstance(decision, ConnectionDecision)
    if not decision.accepted:
        assert decision.reason
        return

    source = REGISTRY.require(source_id)
    target = REGISTRY.require(target_id)
    if source_handle.startswith('output-'):
        port = source.get_output_port(int(source_handle.split('-')[1]))
        assert port.is_flow == (decision.kind == ConnectionKind.FLOW)
    if target_handle.startswith('input-'):
        port = target.get_input_port(int(target_handle.split('-')[1]))
        assert port.is_flow == (decision.kind == ConnectionKind.FLOW)
    if decision.target_field:
        assert target.get_input(decision.target_field) is not None
