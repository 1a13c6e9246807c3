"""
Flask web interface for BlockFlow.

This provides a REST API for the block catalog, connection validation requests
and compilation of workspace documents.
"""

import logging
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS

from blockflow_core.block_registry import BlockRegistry, get_default_registry
from blockflow_core.code_generator import ProgramGenerator
from blockflow_core.config import GeneratorConfig, resolve_setting
from blockflow_core.exceptions import BlockFlowError
from blockflow_core.validator import ConnectionValidator
from blockflow_core.workspace_io import import_workspace


logger = logging.getLogger(__name__)

VALIDATE_FIELDS = ('source_block', 'source_handle', 'target_block', 'target_handle')


def create_app(registry: Optional[BlockRegistry] = None,
               config: Optional[GeneratorConfig] = None) -> Flask:
    """Build the Flask application around one registry and generator config."""
    app = Flask(__name__)
    CORS(app)

    registry = registry or get_default_registry()
    config = config or GeneratorConfig.from_env()
    validator = ConnectionValidator()
    generator = ProgramGenerator(registry, config)

    @app.route('/api/test', methods=['GET'])
    def test_endpoint():
        """Simple test endpoint."""
        return jsonify({
            'success': True,
            'message': 'BlockFlow API is running',
            'data': {'blocks': len(registry)}
        })

    @app.route('/api/blocks', methods=['GET'])
    def get_blocks():
        """Get the block catalog grouped by category."""
        category = request.args.get('category')
        if category:
            blocks = registry.get_category_blocks(category)
            if not blocks:
                return jsonify({'success': False, 'error': f'Unknown category: {category}'}), 404
            return jsonify({'success': True, 'data': [block.to_dict() for block in blocks]})
        return jsonify({'success': True, 'data': registry.export_catalog()})

    @app.route('/api/config', methods=['GET'])
    def get_config():
        return jsonify({'success': True, 'data': config.to_dict()})

    @app.route('/api/connections/validate', methods=['POST'])
    def validate_connection():
        """Decide whether a source handle may connect to a target handle."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
        missing = [name for name in VALIDATE_FIELDS if not data.get(name)]
        if missing:
            return jsonify({'success': False, 'error': f"Missing fields: {', '.join(missing)}"}), 400

        try:
            source = registry.require(data['source_block'])
            target = registry.require(data['target_block'])
        except BlockFlowError as e:
            return jsonify({'success': False, 'error': str(e)}), 404

        decision = validator.validate(source, data['source_handle'], target, data['target_handle'])
        return jsonify({'success': True, 'data': decision.to_dict()})

    @app.route('/api/compile', methods=['POST'])
    def compile_workspace():
        """Compile a workspace document into a Python program."""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400
        try:
            imported = import_workspace(data, registry)
        except BlockFlowError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        program = generator.generate(imported.graph)
        if not program.is_valid:
            logger.error(f"Compilation produced invalid code: {program.errors}")
            return jsonify({'success': False, 'error': '; '.join(program.errors)}), 500

        return jsonify({
            'success': True,
            'code': program.code,
            'entries': [entry.to_dict() for entry in program.entries],
            'coroutines': program.coroutines,
            'warnings': program.warnings,
            'skipped': {
                'blocks': imported.skipped_blocks,
                'connections': imported.skipped_connections,
                'variables': imported.skipped_variables,
            },
        })

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    port = int(resolve_setting('BLOCKFLOW_PORT', '5000'))
    debug = resolve_setting('BLOCKFLOW_DEBUG', 'false').lower() == 'true'
    create_app().run(host=resolve_setting("BLOCKFLOW_HOST", "127.0.0.1"), port=port, debug=debug)
