"""
Runtime support emitted once at the top of every generated program.

The generated module is self-contained: it carries its own SimulationContext,
frame counter, suspension helper, actor accessors, draw buffer and reset, so a
host only needs to import it and call ``create_context``, ``setup``,
``per_tick``, ``click`` and ``start_coroutines``.
"""

from .config import GeneratorConfig


HEADER = '"""Program generated by BlockFlow. Edits are overwritten on the next compile."""'

IMPORTS = """\
import asyncio
import copy
import logging
import math

logger = logging.getLogger("blockflow.program")"""

RUNTIME_TEMPLATE = '''\
CANVAS_WIDTH = {canvas_width}
CANVAS_HEIGHT = {canvas_height}


class NullDraw:
    """Draw surface that accepts every command and does nothing."""

    def __getattr__(self, name):
        return lambda *args: None


class SimulationContext:
    """State owned by the host and threaded through every generated function."""

    def __init__(self, actors, variables, draw=None):
        self.frame_count = 0
        self.epoch = 0
        self.actors = actors
        self.variables = variables
        self.draw = draw if draw is not None else NullDraw()
        self.draw_buffer = []
        self.waiters = []
        self.tasks = []
        self.mouse_x = 0
        self.mouse_y = 0
        self.initial_actors = copy.deepcopy(actors)
        self.initial_variables = copy.deepcopy(variables)


def advance_frame(ctx):
    """Increment the frame counter once, apply actor velocity and wake every waiter that is due."""
    ctx.frame_count += 1
    for actor in ctx.actors:
        if actor.get("vx") or actor.get("vy"):
            actor["x"] += actor.get("vx", 0)
            actor["y"] += actor.get("vy", 0)
    pending = []
    for target_frame, future in ctx.waiters:
        if future.done():
            continue
        if ctx.frame_count >= target_frame:
            future.set_result(ctx.frame_count)
        else:
            pending.append((target_frame, future))
    ctx.waiters = pending
    return ctx.frame_count


async def suspend_for_frames(ctx, frames):
    """Suspend the calling coroutine until the counter has advanced by ``frames``."""
    frames = int(frames)
    if frames <= 0:
        await asyncio.sleep(0)
        return
    future = asyncio.get_running_loop().create_future()
    ctx.waiters.append((ctx.frame_count + frames, future))
    await future


async def glide_actor(ctx, actor_id, x, y, speed):
    """Move the actor towards (x, y) by at most ``speed`` per frame."""
    while True:
        actor = get_actor_by_id(ctx, actor_id)
        if actor is None:
            logger.warning("glide_actor: unknown actor %s", actor_id)
            return
        dx = x - actor["x"]
        dy = y - actor["y"]
        distance = math.hypot(dx, dy)
        if speed <= 0 or distance <= speed:
            actor.update(x=x, y=y)
            return
        actor.update(x=actor["x"] + dx / distance * speed, y=actor["y"] + dy / distance * speed)
        await suspend_for_frames(ctx, 1)


def get_actor_by_id(ctx, actor_id):
    for actor in ctx.actors:
        if actor["id"] == actor_id:
            return actor
    return None


def update_actor(ctx, actor_id, patch):
    """Merge ``patch`` into the actor record."""
    actor = get_actor_by_id(ctx, actor_id)
    if actor is None:
        logger.warning("update_actor: unknown actor %s", actor_id)
        return None
    actor.update(patch)
    return actor


def pointer_over_actor(ctx, actor):
    if actor is None or not actor.get("visible", True):
        return False
    radius = actor.get("size", 0) * actor.get("scale", 1) / 2
    return math.hypot(ctx.mouse_x - actor["x"], ctx.mouse_y - actor["y"]) <= radius


def append_draw_command(ctx, name, *args):
    ctx.draw_buffer.append((name, args))


def flush_draw_buffer(ctx):
    """Replay buffered draw commands in order. Unknown commands are logged and skipped."""
    buffer, ctx.draw_buffer = ctx.draw_buffer, []
    for name, args in buffer:
        command = getattr(ctx.draw, name, None)
        if not callable(command):
            logger.warning("Skipping unknown draw command %s", name)
            continue
        command(*args)
    return len(buffer)


def reset_program(ctx):
    """Return to frame zero and end every running actor loop."""
    ctx.epoch += 1
    ctx.frame_count = 0
    ctx.draw_buffer = []
    for _, future in ctx.waiters:
        future.cancel()
    ctx.waiters = []
    for task in ctx.tasks:
        task.cancel()
    ctx.tasks = []
    ctx.actors[:] = copy.deepcopy(ctx.initial_actors)
    ctx.variables.clear()
    ctx.variables.update(copy.deepcopy(ctx.initial_variables))'''

RUNTIME_NAMES = (
    'SimulationContext', 'NullDraw', 'advance_frame', 'suspend_for_frames',
    'glide_actor', 'get_actor_by_id', 'update_actor', 'pointer_over_actor',
    'append_draw_command', 'flush_draw_buffer', 'reset_program',
)


class RuntimeEmitter:
    """Emits the shared support code the generated program depends on."""

    def __init__(self, config: GeneratorConfig = None):
        self.config = config or GeneratorConfig()

    def emit_header(self) -> str:
        return HEADER if self.config.emit_header else ''

    def emit_imports(self) -> str:
        return IMPORTS

    def emit_runtime(self) -> str:
        return RUNTIME_TEMPLATE.format(
            canvas_width=self.config.canvas_width,
            canvas_height=self.config.canvas_height,
        )

    def emit(self) -> str:
        """Header, imports and runtime support as one block of source."""
        parts = [self.emit_header(), self.emit_imports(), self.emit_runtime()]
        return '\n\n'.join(part for part in parts if part)
