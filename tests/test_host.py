"""
Tests that run generated programs in the headless host.
"""

import asyncio

from blockflow_core.code_generator import ProgramGenerator
from blockflow_core.graph import BlockGraph
from blockflow_core.host import HeadlessHost, RecordingDraw, run_program
from blockflow_core.models import Actor, Scope, ValueType, VariableDefinition, VariableReference


def actor_graph():
    graph = BlockGraph()
    graph.add_actor(Actor('a1', name='Ball', x=100, y=100))
    return graph


def compile_graph(graph):
    program = ProgramGenerator().generate(graph)
    assert program.is_valid, program.errors
    return program.code


class TestRecordingDraw:
    """Test cases for RecordingDraw."""

    def test_records_calls(self):
        draw = RecordingDraw()
        draw.fill('red')
        draw.circle(1, 2, 3)
        assert draw.commands == [('fill', ('red',)), ('circle', (1, 2, 3))]
        assert draw.names() == ['fill', 'circle']

    def test_clear(self):
        draw = RecordingDraw()
        draw.rect(0, 0, 1, 1)
        draw.clear()
        assert draw.commands == []


class TestHeadlessRuns:
    """End-to-end runs of compiled programs."""

    def test_empty_program(self):
        result = run_program(compile_graph(BlockGraph()), ticks=3)
        assert result.success
        assert result.frames == 3
        assert result.draw_commands == []

    def test_setup_draws_once(self):
        graph = BlockGraph()
        setup = graph.create_instance('when_setup')
        background = graph.create_instance('set_background')
        graph.connect(setup.instance_id, 'bottom', background.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=5)
        assert result.draw_commands == [('background', ('lightblue',))]

    def test_stage_tick_draws_every_frame(self):
        graph = BlockGraph()
        tick = graph.create_instance('when_tick')
        rect = graph.create_instance('draw_rect')
        graph.connect(tick.instance_id, 'bottom', rect.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=4)
        assert [name for name, _ in result.draw_commands] == ['rect'] * 4

    def test_timed_actor_loop(self):
        """A wait between two blocks paces the loop by frames."""
        graph = actor_graph()
        scope = Scope.actor('a1')
        tick = graph.create_instance('when_tick', scope)
        draw = graph.create_instance('draw_actor_circle', scope)
        move = graph.create_instance('move_actor', scope)
        graph.connect(tick.instance_id, 'bottom', draw.instance_id, 'top')
        graph.connect(draw.instance_id, 'bottom', move.instance_id, 'top', wait_frames=5)

        result = run_program(compile_graph(graph), ticks=12)

        assert result.success
        assert result.actors[0]['x'] == 120
        assert result.actors[0]['y'] == 120
        assert [name for name, _ in result.draw_commands] == ['circle', 'circle']
        assert result.draw_commands[0][1] == (100, 100, 30)

    def test_variables_change(self):
        graph = BlockGraph()
        graph.add_variable(VariableDefinition('score', ValueType.NUMBER, initial_value=0))
        tick = graph.create_instance('when_tick')
        change = graph.create_instance('change_variable')
        graph.set_value(change.instance_id, 'variable', VariableReference('score'))
        graph.set_value(change.instance_id, 'value', 2)
        graph.connect(tick.instance_id, 'bottom', change.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=3)
        assert result.variables == {'score': 6}

    def test_valueless_supplier_in_math_chain(self):
        """An unselected variable feeding arithmetic draws with the number default."""
        graph = BlockGraph()
        setup = graph.create_instance('when_setup')
        rect = graph.create_instance('draw_rect')
        add = graph.create_instance('add_numbers')
        variable = graph.create_instance('variable_value')
        graph.connect(setup.instance_id, 'bottom', rect.instance_id, 'top')
        graph.connect(add.instance_id, 'output-0', rect.instance_id, 'x')
        graph.connect(variable.instance_id, 'output-0', add.instance_id, 'input-0')

        result = run_program(compile_graph(graph), ticks=1)
        assert result.success, result.error
        assert result.draw_commands == [('rect', (0, 100, 50, 50))]

    def test_velocity_moves_actor_each_frame(self):
        graph = actor_graph()
        scope = Scope.actor('a1')
        setup = graph.create_instance('when_setup', scope)
        velocity = graph.create_instance('set_velocity', scope)
        graph.set_value(velocity.instance_id, 'vy', 2)
        graph.connect(setup.instance_id, 'bottom', velocity.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=3)
        assert result.success, result.error
        assert (result.actors[0]['x'], result.actors[0]['y']) == (115, 106)

    def test_bounce_reverses_velocity(self):
        graph = actor_graph()
        scope = Scope.actor('a1')
        setup = graph.create_instance('when_setup', scope)
        velocity = graph.create_instance('set_velocity', scope)
        graph.set_value(velocity.instance_id, 'vx', -60)
        graph.connect(setup.instance_id, 'bottom', velocity.instance_id, 'top')
        tick = graph.create_instance('when_tick', scope)
        bounce = graph.create_instance('bounce_edges', scope)
        graph.connect(tick.instance_id, 'bottom', bounce.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=4)
        assert result.success, result.error
        assert result.actors[0]['vx'] == 60
        assert result.actors[0]['x'] > 0

    def test_glide_in_actor_loop(self):
        graph = actor_graph()
        scope = Scope.actor('a1')
        tick = graph.create_instance('when_tick', scope)
        glide = graph.create_instance('glide_to_position', scope)
        graph.set_value(glide.instance_id, 'x', 130)
        graph.set_value(glide.instance_id, 'y', 100)
        graph.set_value(glide.instance_id, 'speed', 10)
        graph.connect(tick.instance_id, 'bottom', glide.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=6)
        assert result.success, result.error
        assert (result.actors[0]['x'], result.actors[0]['y']) == (130, 100)

    def test_failing_loop_keeps_running(self):
        """An exception inside an actor loop is logged and the loop resumes after a cooldown."""
        graph = actor_graph()
        graph.add_variable(VariableDefinition('label', ValueType.TEXT, initial_value='x'))
        scope = Scope.actor('a1')
        tick = graph.create_instance('when_tick', scope)
        change = graph.create_instance('change_variable', scope)
        graph.set_value(change.instance_id, 'variable', VariableReference('label'))
        graph.connect(tick.instance_id, 'bottom', change.instance_id, 'top')

        result = run_program(compile_graph(graph), ticks=5)
        assert result.success
        assert result.variables == {'label': 'x'}


class TestInteraction:
    """Test cases for clicks and reset."""

    def test_actor_click(self):
        graph = actor_graph()
        scope = Scope.actor('a1')
        click = graph.create_instance('when_actor_clicked', scope)
        hide = graph.create_instance('hide_actor', scope)
        graph.connect(click.instance_id, 'bottom', hide.instance_id, 'top')
        code = compile_graph(graph)

        missed = run_program(code, ticks=1, clicks={0: (300, 300)})
        assert missed.actors[0]['visible'] is True

        hit = run_program(code, ticks=1, clicks={0: (105, 100)})
        assert hit.actors[0]['visible'] is False

    def test_reset_restarts_loops(self):
        graph = actor_graph()
        scope = Scope.actor('a1')
        tick = graph.create_instance('when_tick', scope)
        move = graph.create_instance('move_actor', scope)
        graph.connect(tick.instance_id, 'bottom', move.instance_id, 'top')
        host = HeadlessHost(compile_graph(graph))

        async def scenario():
            await host.start()
            for _ in range(3):
                await host.tick()
            moved = host.ctx.actors[0]['x']
            await host.reset()
            after_reset = (host.ctx.frame_count, host.ctx.actors[0]['x'], len(host.ctx.tasks))
            await host.stop()
            return moved, after_reset

        moved, (frame, x, tasks) = asyncio.run(scenario())
        assert moved > 100
        assert frame == 0
        assert tasks == 1
        # The restarted loop has already taken its first step
        assert x == 110
