"""
Headless host: loads a generated program in-process and drives it tick by tick
against a recording draw surface.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple


DRAW_COMMANDS = ('background', 'fill', 'stroke', 'no_stroke', 'circle', 'ellipse', 'rect', 'line', 'text')


def _recorder(name: str):
    def record(self, *args):
        self.commands.append((name, args))
    record.__name__ = name
    return record


class RecordingDraw:
    """Draw surface that records every call in order."""

    def __init__(self):
        self.commands: List[Tuple[str, tuple]] = []

    def names(self) -> List[str]:
        return [name for name, _ in self.commands]

    def clear(self):
        self.commands = []


for _name in DRAW_COMMANDS:
    setattr(RecordingDraw, _name, _recorder(_name))


@dataclass
class ExecutionResult:
    """Result of a headless run."""
    success: bool
    frames: int = 0
    draw_commands: List[Tuple[str, tuple]] = field(default_factory=list)
    actors: List[Dict[str, Any]] = field(default_factory=list)
    variables: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Exception] = None
    execution_time: float = 0.0


class HeadlessHost:
    """Runs a generated program without a renderer."""

    def __init__(self, code: str, draw: Optional[Any] = None, settle_iterations: int = 3):
        self.logger = logging.getLogger(__name__)
        self.code = code
        self.draw = draw if draw is not None else RecordingDraw()
        self.settle_iterations = settle_iterations
        self.namespace: Dict[str, Any] = {}
        self.ctx = None

    def load(self) -> Dict[str, Any]:
        """Execute the program source into a fresh namespace."""
        namespace = {'__name__': 'blockflow_program'}
        exec(compile(self.code, '<blockflow program>', 'exec'), namespace)
        self.namespace = namespace
        return namespace

    def _call(self, name: str, *args):
        return self.namespace[name](*args)

    async def settle(self):
        """Let scheduled actor loops run until they suspend again."""
        for _ in range(self.settle_iterations):
            await asyncio.sleep(0)

    async def start(self):
        if not self.namespace:
            self.load()
        self.ctx = self._call('create_context', self.draw)
        self._call('setup', self.ctx)
        self._call('start_coroutines', self.ctx)
        await self.settle()

    async def tick(self) -> int:
        self._call('per_tick', self.ctx)
        await self.settle()
        return self.ctx.frame_count

    def click(self, x: float, y: float):
        self.ctx.mouse_x = x
        self.ctx.mouse_y = y
        self._call('click', self.ctx)

    def move_mouse(self, x: float, y: float):
        self.ctx.mouse_x = x
        self.ctx.mouse_y = y

    async def reset(self):
        """End every actor loop, return to frame zero and start again."""
        self._call('reset_program', self.ctx)
        await self.settle()
        self._call('setup', self.ctx)
        self._call('start_coroutines', self.ctx)
        await self.settle()

    async def stop(self):
        if self.ctx is None:
            return
        for task in list(self.ctx.tasks):
            task.cancel()
        await asyncio.gather(*self.ctx.tasks, return_exceptions=True)
        self.ctx.tasks = []

    async def run(self, ticks: int, clicks: Optional[Dict[int, Tuple[float, float]]] = None) -> ExecutionResult:
        """Start the program and drive ``ticks`` frames; ``clicks`` maps frame -> position."""
        start_time = time.time()
        clicks = clicks or {}
        try:
            await self.start()
            for frame in range(ticks):
                if frame in clicks:
                    self.click(*clicks[frame])
                await self.tick()
            return ExecutionResult(
                success=True,
                frames=self.ctx.frame_count,
                draw_commands=list(getattr(self.draw, 'commands', [])),
                actors=[dict(actor) for actor in self.ctx.actors],
                variables=dict(self.ctx.variables),
                execution_time=time.time() - start_time,
            )
        except Exception as e:
            self.logger.error(f"Program failed: {e}")
            return ExecutionResult(
                success=False,
                frames=self.ctx.frame_count if self.ctx else 0,
                draw_commands=list(getattr(self.draw, 'commands', [])),
                error=e,
                execution_time=time.time() - start_time,
            )
        finally:
            await self.stop()


def run_program(code: str, ticks: int, clicks: Optional[Dict[int, Tuple[float, float]]] = None,
                draw: Optional[Any] = None) -> ExecutionResult:
    """Run a generated program headless for a number of ticks."""
    return asyncio.run(HeadlessHost(code, draw).run(ticks, clicks))
