"""
Unit tests for the block registry and the bundled catalog.
"""

import json

import pytest
from blockflow_core.block_registry import BlockRegistry, Category, get_default_registry
from blockflow_core.exceptions import CatalogError, UnknownBlockError
from blockflow_core.models import BlockKind, EntryKind, ActorScope, PortType


class TestBundledCatalog:
    """Test cases for the default catalog."""

    def test_catalog_loads(self):
        registry = BlockRegistry()
        assert len(registry) > 40
        assert {'Events', 'Control', 'Drawing', 'Motion', 'Logic', 'Math', 'Variables'} <= set(registry.categories)

    def test_every_event_has_an_entry(self):
        registry = BlockRegistry()
        for definition in registry.event_blocks():
            assert definition.entry is not None

    def test_entry_kinds_are_covered(self):
        registry = BlockRegistry()
        for entry in EntryKind:
            assert registry.event_blocks(entry), entry

    def test_category_and_color_inherited(self):
        registry = BlockRegistry()
        definition = registry.require('set_background')
        assert definition.category == 'Drawing'
        assert definition.color == registry.categories['Drawing'].color

    def test_if_condition_shape(self):
        definition = BlockRegistry().require('if_condition')
        assert definition.kind == BlockKind.CONTROL
        assert definition.get_input_port(0).port_type == PortType.BOOLEAN
        assert [p.label for p in definition.output_ports] == ['then', 'else']

    def test_wait_block_suspends(self):
        assert BlockRegistry().require('wait_frames').suspends

    def test_motion_blocks(self):
        registry = BlockRegistry()
        for block_id in ('glide_to_position', 'glide_to_mouse', 'set_velocity', 'bounce_edges'):
            definition = registry.require(block_id)
            assert definition.category == 'Motion'
            assert definition.actor_scope == ActorScope.REQUIRED
        assert registry.require('glide_to_position').suspends
        assert not registry.require('set_velocity').suspends
        assert [i.default for i in registry.require('glide_to_position').inputs] == [0, 0, 2]

    def test_actor_templates_declare_scope(self):
        """Every template mentioning ACTOR declares how it uses the actor."""
        for definition in BlockRegistry().definitions.values():
            if 'ACTOR' in definition.template:
                assert definition.actor_scope != ActorScope.NONE, definition.id


class TestBlockRegistry:
    """Test cases for BlockRegistry."""

    def test_require_unknown(self):
        registry = BlockRegistry()
        with pytest.raises(UnknownBlockError) as exc_info:
            registry.require('no_such_block')
        assert exc_info.value.block_id == 'no_such_block'

    def test_get_unknown_returns_none(self):
        assert BlockRegistry().get('no_such_block') is None

    def test_custom_categories(self):
        registry = BlockRegistry([
            {'name': 'Mine', 'color': '#123456', 'blocks': [
                {'id': 'beep', 'label': 'beep', 'template': 'ctx.draw.text("beep", 0, 0)'},
            ]},
        ])
        assert len(registry) == 1
        assert 'beep' in registry
        assert registry.require('beep').color == '#123456'

    def test_duplicate_ids_rejected(self):
        with pytest.raises(CatalogError):
            BlockRegistry([
                {'name': 'A', 'blocks': [{'id': 'x'}]},
                {'name': 'B', 'blocks': [{'id': 'x'}]},
            ])

    def test_event_without_entry_rejected(self):
        with pytest.raises(CatalogError):
            BlockRegistry([{'name': 'A', 'blocks': [{'id': 'start', 'kind': 'event'}]}])

    def test_malformed_block_rejected(self):
        with pytest.raises(CatalogError):
            BlockRegistry([{'name': 'A', 'blocks': [{'id': 'x', 'kind': 'gadget'}]}])

    def test_from_file(self, tmp_path):
        path = tmp_path / 'catalog.json'
        path.write_text(json.dumps({'categories': [
            {'name': 'Events', 'blocks': [
                {'id': 'go', 'kind': 'event', 'entry': 'setup', 'template': '${content}'},
            ]},
        ]}))
        registry = BlockRegistry.from_file(path)
        assert registry.require('go').entry == EntryKind.SETUP

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            BlockRegistry.from_file(tmp_path / 'missing.json')

    def test_export_catalog_round_trip(self):
        registry = BlockRegistry()
        exported = registry.export_catalog()
        assert exported['total_blocks'] == len(registry)

        reloaded = BlockRegistry(exported['categories'])
        assert reloaded.definitions == registry.definitions

    def test_search(self):
        results = BlockRegistry().search('circle')
        assert results
        assert all('circle' in d.id or 'circle' in d.label.lower() for d in results)

    def test_block_count(self):
        registry = BlockRegistry()
        assert sum(registry.get_block_count().values()) == len(registry)

    def test_default_registry_is_shared(self):
        assert get_default_registry() is get_default_registry()


class TestCategory:
    """Test cases for Category."""

    def test_to_dict(self):
        category = Category('Logic', '#16a34a')
        data = category.to_dict()
        assert data == {'name': 'Logic', 'color': '#16a34a', 'blocks': []}
