"""
Block Definition Registry: the read-only catalog the graph and the generator consume.
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Any, Union

from .catalog import CATEGORIES
from .exceptions import CatalogError, UnknownBlockError
from .models import BlockDefinition, BlockKind, EntryKind


class Category:
    """Represents a category of blocks."""

    def __init__(self, name: str, color: str = "#64748b"):
        self.name = name
        self.color = color
        self.blocks: List[BlockDefinition] = []

    def add_block(self, definition: BlockDefinition):
        """Add a block definition to this category."""
        self.blocks.append(definition)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'color': self.color,
            'blocks': [block.to_dict() for block in self.blocks],
        }


class BlockRegistry:
    """Holds every block definition, keyed by id and grouped by category."""

    def __init__(self, categories: Optional[List[Dict[str, Any]]] = None):
        self.logger = logging.getLogger(__name__)
        self.definitions: Dict[str, BlockDefinition] = {}
        self.categories: Dict[str, Category] = {}
        self.load_categories(CATEGORIES if categories is None else categories)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'BlockRegistry':
        """Load a catalog from a JSON file shaped like ``{"categories": [...]}``."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Cannot read catalog {path}: {e}", {'path': str(path)})

        categories = data.get('categories') if isinstance(data, dict) else data
        if not isinstance(categories, list):
            raise CatalogError(f"Catalog {path} has no category list", {'path': str(path)})
        return cls(categories)

    def load_categories(self, categories: List[Dict[str, Any]]):
        for category_data in categories:
            try:
                category = Category(category_data['name'], category_data.get('color', "#64748b"))
            except (KeyError, TypeError) as e:
                raise CatalogError(f"Malformed category entry: {e}")
            for block_data in category_data.get('blocks', []):
                definition = self._build_definition(block_data, category)
                self.register(definition)
                category.add_block(definition)
            self.categories[category.name] = category
        self.logger.debug(f"Loaded {len(self.definitions)} block definitions "
                          f"in {len(self.categories)} categories")

    def _build_definition(self, block_data: Dict[str, Any], category: Category) -> BlockDefinition:
        try:
            definition = BlockDefinition.from_dict(block_data)
        except (KeyError, ValueError, TypeError) as e:
            raise CatalogError(f"Malformed block entry {block_data.get('id', '?')}: {e}",
                               {'block': block_data})
        if not block_data.get('category'):
            definition = replace(definition, category=category.name)
        if 'color' not in block_data:
            definition = replace(definition, color=category.color)
        if definition.is_event and definition.entry is None:
            raise CatalogError(f"Event block {definition.id} has no entry kind",
                               {'block_id': definition.id})
        return definition

    def register(self, definition: BlockDefinition):
        if definition.id in self.definitions:
            raise CatalogError(f"Duplicate block id: {definition.id}", {'block_id': definition.id})
        self.definitions[definition.id] = definition

    def get(self, block_id: str) -> Optional[BlockDefinition]:
        return self.definitions.get(block_id)

    def require(self, block_id: str) -> BlockDefinition:
        """Get a definition or raise UnknownBlockError."""
        definition = self.definitions.get(block_id)
        if definition is None:
            raise UnknownBlockError(block_id)
        return definition

    def __contains__(self, block_id: str) -> bool:
        return block_id in self.definitions

    def __len__(self) -> int:
        return len(self.definitions)

    def get_categories(self) -> List[Category]:
        return list(self.categories.values())

    def get_category_blocks(self, category_name: str) -> List[BlockDefinition]:
        category = self.categories.get(category_name)
        return list(category.blocks) if category else []

    def event_blocks(self, entry: Optional[EntryKind] = None) -> List[BlockDefinition]:
        return [d for d in self.definitions.values()
                if d.kind == BlockKind.EVENT and (entry is None or d.entry == entry)]

    def search(self, query: str, limit: int = 50) -> List[BlockDefinition]:
        """Search for blocks by id, label or category."""
        if not query.strip():
            return list(self.definitions.values())[:limit]

        results = []
        query_lower = query.lower()
        for definition in self.definitions.values():
            score = 0
            if definition.id.lower() == query_lower:
                score += 100
            elif query_lower in definition.id.lower():
                score += 50
            if query_lower in definition.label.lower():
                score += 30
            if query_lower in definition.category.lower():
                score += 10
            if score > 0:
                results.append((score, definition))

        results.sort(key=lambda x: x[0], reverse=True)
        return [definition for score, definition in results[:limit]]

    def get_block_count(self) -> Dict[str, int]:
        """Get count of blocks by category."""
        return {name: len(category.blocks) for name, category in self.categories.items()}

    def export_catalog(self) -> Dict[str, Any]:
        return {
            'categories': [category.to_dict() for category in self.categories.values()],
            'total_blocks': len(self.definitions),
        }


_default_registry: Optional[BlockRegistry] = None


def get_default_registry() -> BlockRegistry:
    """Get the shared registry built from the bundled catalog."""
    global _default_registry
    if _default_registry is None:
        _default_registry = BlockRegistry()
    return _default_registry
