"""
Default block catalog.

Each entry is plain data in the same shape a JSON catalog file uses, so the
registry can load either one. Templates are Python source fragments:

    ${name}   placeholder for a traditional input, a labeled port or ``content``
    ACTOR     the implicit current actor record (rewritten per scope)
    ctx       the SimulationContext passed to every generated function
"""

EVENT_COLOR = '#dc2626'
CONTROL_COLOR = '#7c3aed'
DRAWING_COLOR = '#059669'
MOTION_COLOR = '#2563eb'
SENSING_COLOR = '#8b5cf6'
EFFECTS_COLOR = '#ec4899'
LOGIC_COLOR = '#16a34a'
MATH_COLOR = '#ea580c'
VARIABLES_COLOR = '#f59e0b'


def _binary(block_id, label, operator, operand_type, result_label, result_type, category, color):
    return {
        'id': block_id,
        'label': label,
        'kind': 'value',
        'height': 'medium',
        'template': f'(${{A}} {operator} ${{B}})',
        'labeled_connections': {
            'inputs': [
                {'label': 'A', 'side': 'left', 'type': operand_type},
                {'label': 'B', 'side': 'left', 'type': operand_type},
            ],
            'outputs': [
                {'label': result_label, 'side': 'right', 'type': result_type},
            ],
        },
        'category': category,
        'color': color,
    }


def _sensor(block_id, label, template, output_label, output_type, actor_scope='none'):
    return {
        'id': block_id,
        'label': label,
        'kind': 'value',
        'template': template,
        'actor_scope': actor_scope,
        'labeled_connections': {
            'outputs': [{'label': output_label, 'side': 'right', 'type': output_type}],
        },
    }


def _actor_patch(block_id, label, patch, inputs=()):
    return {
        'id': block_id,
        'label': label,
        'kind': 'action',
        'actor_scope': 'required',
        'inputs': list(inputs),
        'template': f'update_actor(ctx, ACTOR["id"], {patch})',
    }


CATEGORIES = [
    {
        'name': 'Events',
        'color': EVENT_COLOR,
        'blocks': [
            {'id': 'when_setup', 'label': 'when setup', 'kind': 'event', 'entry': 'setup',
             'template': '${content}'},
            {'id': 'when_tick', 'label': 'every tick', 'kind': 'event', 'entry': 'tick',
             'template': '${content}'},
            {'id': 'when_clicked', 'label': 'when clicked', 'kind': 'event', 'entry': 'click',
             'template': '${content}'},
            {'id': 'when_actor_clicked', 'label': 'when this actor clicked', 'kind': 'event',
             'entry': 'click', 'actor_scope': 'required',
             'template': 'if pointer_over_actor(ctx, ACTOR):\n    ${content}'},
        ],
    },
    {
        'name': 'Control',
        'color': CONTROL_COLOR,
        'blocks': [
            {
                'id': 'if_condition',
                'label': 'if',
                'kind': 'control',
                'height': 'tall',
                'template': 'if ${condition}:\n    ${then}\nelse:\n    ${else}',
                'labeled_connections': {
                    'inputs': [{'label': 'condition', 'side': 'left', 'type': 'boolean'}],
                    'outputs': [
                        {'label': 'then', 'side': 'right', 'type': 'flow'},
                        {'label': 'else', 'side': 'right', 'type': 'flow'},
                    ],
                },
            },
            {
                'id': 'while_loop',
                'label': 'while',
                'kind': 'control',
                'height': 'tall',
                'template': 'while ${condition}:\n    ${do}',
                'labeled_connections': {
                    'inputs': [{'label': 'condition', 'side': 'left', 'type': 'boolean'}],
                    'outputs': [{'label': 'do', 'side': 'right', 'type': 'flow'}],
                },
            },
            {
                'id': 'repeat_times',
                'label': 'repeat',
                'kind': 'control',
                'height': 'medium',
                'inputs': [{'name': 'times', 'type': 'number', 'default': 10,
                            'accepts_variable_reference': True}],
                'template': 'for _ in range(int(${times})):\n    ${do}',
                'labeled_connections': {
                    'outputs': [{'label': 'do', 'side': 'right', 'type': 'flow'}],
                },
            },
            {
                'id': 'wait_frames',
                'label': 'wait frames',
                'kind': 'action',
                'suspends': True,
                'inputs': [{'name': 'frames', 'type': 'number', 'default': 30,
                            'accepts_variable_reference': True}],
                'template': 'await suspend_for_frames(ctx, ${frames})',
            },
        ],
    },
    {
        'name': 'Drawing',
        'color': DRAWING_COLOR,
        'blocks': [
            {'id': 'draw_circle', 'label': 'draw circle at mouse', 'kind': 'action',
             'template': 'ctx.draw.circle(ctx.mouse_x, ctx.mouse_y, 50)'},
            {'id': 'set_fill', 'label': 'set fill color', 'kind': 'action',
             'inputs': [{'name': 'color', 'type': 'text', 'default': 'red'}],
             'template': 'ctx.draw.fill(${color})'},
            {'id': 'set_background', 'label': 'set background color', 'kind': 'action',
             'inputs': [{'name': 'color', 'type': 'text', 'default': 'lightblue'}],
             'template': 'ctx.draw.background(${color})'},
            {'id': 'draw_rect', 'label': 'draw rectangle', 'kind': 'action',
             'inputs': [
                 {'name': 'x', 'type': 'number', 'default': 100},
                 {'name': 'y', 'type': 'number', 'default': 100},
                 {'name': 'w', 'type': 'number', 'default': 50},
                 {'name': 'h', 'type': 'number', 'default': 50},
             ],
             'template': 'ctx.draw.rect(${x}, ${y}, ${w}, ${h})'},
            {'id': 'draw_circle_at', 'label': 'draw circle at position', 'kind': 'action',
             'inputs': [
                 {'name': 'x', 'type': 'number', 'default': 0},
                 {'name': 'y', 'type': 'number', 'default': 0},
                 {'name': 'size', 'type': 'number', 'default': 30},
             ],
             'template': 'ctx.draw.circle(${x}, ${y}, ${size})'},
            {'id': 'draw_actor_circle', 'label': 'draw circle at actor', 'kind': 'action',
             'actor_scope': 'optional',
             'inputs': [{'name': 'size', 'type': 'number', 'default': 30}],
             'template': 'ctx.draw.circle(ACTOR["x"], ACTOR["y"], ${size})'},
            {'id': 'draw_trail', 'label': 'draw trail behind actor', 'kind': 'action',
             'actor_scope': 'optional',
             'inputs': [
                 {'name': 'color', 'type': 'text', 'default': 'blue'},
                 {'name': 'size', 'type': 'number', 'default': 5},
             ],
             'template': 'ctx.draw.fill(${color})\nctx.draw.circle(ACTOR["x"], ACTOR["y"], ${size})'},
        ],
    },
    {
        'name': 'Motion',
        'color': MOTION_COLOR,
        'blocks': [
            _actor_patch('move_actor', 'move actor by',
                         '{"x": ACTOR["x"] + ${x}, "y": ACTOR["y"] + ${y}}',
                         [{'name': 'x', 'type': 'number', 'default': 10, 'accepts_variable_reference': True},
                          {'name': 'y', 'type': 'number', 'default': 10, 'accepts_variable_reference': True}]),
            _actor_patch('set_actor_position', 'set actor position',
                         '{"x": ${x}, "y": ${y}}',
                         [{'name': 'x', 'type': 'number', 'default': 0, 'accepts_variable_reference': True},
                          {'name': 'y', 'type': 'number', 'default': 0, 'accepts_variable_reference': True}]),
            _actor_patch('move_to_mouse', 'move actor to mouse',
                         '{"x": ctx.mouse_x, "y": ctx.mouse_y}'),
            _actor_patch('change_actor_color', 'change actor color',
                         '{"color": ${color}}',
                         [{'name': 'color', 'type': 'text', 'default': 'red'}]),
            _actor_patch('change_actor_size', 'change actor size',
                         '{"size": ${size}}',
                         [{'name': 'size', 'type': 'number', 'default': 50}]),
            _actor_patch('rotate_actor', 'rotate actor',
                         '{"rotation": ACTOR["rotation"] + ${angle}}',
                         [{'name': 'angle', 'type': 'number', 'default': 45}]),
            _actor_patch('point_towards_mouse', 'point towards mouse',
                         '{"rotation": math.degrees(math.atan2(ctx.mouse_y - ACTOR["y"], ctx.mouse_x - ACTOR["x"]))}'),
            {
                'id': 'glide_to_position',
                'label': 'glide to position',
                'kind': 'action',
                'actor_scope': 'required',
                'suspends': True,
                'inputs': [
                    {'name': 'x', 'type': 'number', 'default': 0, 'accepts_variable_reference': True},
                    {'name': 'y', 'type': 'number', 'default': 0, 'accepts_variable_reference': True},
                    {'name': 'speed', 'type': 'number', 'default': 2, 'accepts_variable_reference': True},
                ],
                'template': 'await glide_actor(ctx, ACTOR["id"], ${x}, ${y}, ${speed})',
            },
            {
                'id': 'glide_to_mouse',
                'label': 'glide to mouse',
                'kind': 'action',
                'actor_scope': 'required',
                'suspends': True,
                'inputs': [{'name': 'speed', 'type': 'number', 'default': 2,
                            'accepts_variable_reference': True}],
                'template': 'await glide_actor(ctx, ACTOR["id"], ctx.mouse_x, ctx.mouse_y, ${speed})',
            },
            _actor_patch('set_velocity', 'set velocity',
                         '{"vx": ${vx}, "vy": ${vy}}',
                         [{'name': 'vx', 'type': 'number', 'default': 5, 'accepts_variable_reference': True},
                          {'name': 'vy', 'type': 'number', 'default': 0, 'accepts_variable_reference': True}]),
            {
                'id': 'bounce_edges',
                'label': 'bounce off edges',
                'kind': 'action',
                'actor_scope': 'required',
                'template': (
                    'if ACTOR["x"] < 0:\n'
                    '    ACTOR["vx"] = abs(ACTOR.get("vx", 0))\n'
                    'elif ACTOR["x"] > CANVAS_WIDTH:\n'
                    '    ACTOR["vx"] = -abs(ACTOR.get("vx", 0))\n'
                    'if ACTOR["y"] < 0:\n'
                    '    ACTOR["vy"] = abs(ACTOR.get("vy", 0))\n'
                    'elif ACTOR["y"] > CANVAS_HEIGHT:\n'
                    '    ACTOR["vy"] = -abs(ACTOR.get("vy", 0))'
                ),
            },
        ],
    },
    {
        'name': 'Sensing',
        'color': SENSING_COLOR,
        'blocks': [
            _sensor('touching_mouse', 'touching mouse?', 'pointer_over_actor(ctx, ACTOR)',
                    'touching', 'boolean', actor_scope='required'),
            _sensor('mouse_x', 'mouse x', 'ctx.mouse_x', 'x', 'number'),
            _sensor('mouse_y', 'mouse y', 'ctx.mouse_y', 'y', 'number'),
            _sensor('actor_x', 'actor x position', 'ACTOR["x"]', 'x', 'number', actor_scope='required'),
            _sensor('actor_y', 'actor y position', 'ACTOR["y"]', 'y', 'number', actor_scope='required'),
            _sensor('distance_to_mouse', 'distance to mouse',
                    'math.hypot(ACTOR["x"] - ctx.mouse_x, ACTOR["y"] - ctx.mouse_y)',
                    'distance', 'number', actor_scope='required'),
            _sensor('frame_count', 'frame count', 'ctx.frame_count', 'frames', 'number'),
        ],
    },
    {
        'name': 'Effects',
        'color': EFFECTS_COLOR,
        'blocks': [
            _actor_patch('fade_actor', 'fade actor', '{"opacity": ${opacity}}',
                         [{'name': 'opacity', 'type': 'number', 'default': 128}]),
            _actor_patch('hide_actor', 'hide actor', '{"visible": False}'),
            _actor_patch('show_actor', 'show actor', '{"visible": True}'),
            _actor_patch('scale_actor', 'scale actor', '{"scale": ${scale}}',
                         [{'name': 'scale', 'type': 'number', 'default': 1.5}]),
            _actor_patch('tint_actor', 'tint actor', '{"tint": ${color}}',
                         [{'name': 'color', 'type': 'text', 'default': 'red'}]),
            _actor_patch('remove_tint', 'remove tint', '{"tint": None}'),
        ],
    },
    {
        'name': 'Logic',
        'color': LOGIC_COLOR,
        'blocks': [
            _sensor('boolean_true', 'true', 'True', 'true', 'boolean'),
            _sensor('boolean_false', 'false', 'False', 'false', 'boolean'),
            _binary('and_operator', 'and', 'and', 'boolean', 'result', 'boolean', 'Logic', LOGIC_COLOR),
            _binary('or_operator', 'or', 'or', 'boolean', 'result', 'boolean', 'Logic', LOGIC_COLOR),
            {
                'id': 'not_operator',
                'label': 'not',
                'kind': 'value',
                'height': 'medium',
                'template': '(not ${value})',
                'labeled_connections': {
                    'inputs': [{'label': 'value', 'side': 'left', 'type': 'boolean'}],
                    'outputs': [{'label': 'not', 'side': 'right', 'type': 'boolean'}],
                },
            },
        ],
    },
    {
        'name': 'Math',
        'color': MATH_COLOR,
        'blocks': [
            _binary('add_numbers', '+', '+', 'number', 'sum', 'number', 'Math', MATH_COLOR),
            _binary('subtract_numbers', '-', '-', 'number', 'A-B', 'number', 'Math', MATH_COLOR),
            _binary('multiply_numbers', '×', '*', 'number', 'A×B', 'number', 'Math', MATH_COLOR),
            _binary('divide_numbers', '÷', '/', 'number', 'A÷B', 'number', 'Math', MATH_COLOR),
            _binary('equals_comparison', '=', '==', 'number', 'A=B', 'boolean', 'Math', MATH_COLOR),
            _binary('greater_than', '>', '>', 'number', 'A>B', 'boolean', 'Math', MATH_COLOR),
            _binary('less_than', '<', '<', 'number', 'A<B', 'boolean', 'Math', MATH_COLOR),
            {
                'id': 'number_value',
                'label': 'number',
                'kind': 'value',
                'inputs': [{'name': 'value', 'type': 'number', 'default': 0,
                            'accepts_variable_reference': True}],
                'template': '${value}',
                'labeled_connections': {
                    'outputs': [{'label': 'value', 'side': 'right', 'type': 'number'}],
                },
            },
        ],
    },
    {
        'name': 'Variables',
        'color': VARIABLES_COLOR,
        'blocks': [
            {'id': 'set_variable', 'label': 'set variable', 'kind': 'action',
             'inputs': [
                 {'name': 'variable', 'type': 'variable', 'default': ''},
                 {'name': 'value', 'type': 'number', 'default': 0, 'accepts_variable_reference': True},
             ],
             'template': '${variable} = ${value}'},
            {'id': 'change_variable', 'label': 'change variable by', 'kind': 'action',
             'inputs': [
                 {'name': 'variable', 'type': 'variable', 'default': ''},
                 {'name': 'value', 'type': 'number', 'default': 1, 'accepts_variable_reference': True},
             ],
             'template': '${variable} += ${value}'},
            {
                'id': 'variable_value',
                'label': 'variable',
                'kind': 'value',
                'inputs': [{'name': 'variable', 'type': 'variable', 'default': ''}],
                'template': '${variable}',
                'labeled_connections': {
                    'outputs': [{'label': 'value', 'side': 'right', 'type': 'any'}],
                },
            },
        ],
    },
]
