"""
Generator configuration.
"""

import os
from dataclasses import dataclass, fields, asdict
from typing import Dict, Any, Optional, Mapping


ENV_PREFIX = "BLOCKFLOW_"


def resolve_setting(env_var: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Two-tier resolution: env -> default."""
    environ = os.environ if environ is None else environ
    env_val = environ.get(env_var, '').strip()
    if env_val:
        return env_val
    return default


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"Not a boolean value: {value!r}")


@dataclass
class GeneratorConfig:
    """Settings that shape the emitted program."""
    indent_size: int = 4
    tick_yield_frames: int = 1
    fault_cooldown_frames: int = 60
    canvas_width: int = 480
    canvas_height: int = 360
    coroutine_prefix: str = "actor_loop_"
    emit_header: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.indent_size < 1:
            raise ValueError("indent_size must be at least 1")
        if self.tick_yield_frames < 1:
            raise ValueError("tick_yield_frames must be at least 1")
        if self.fault_cooldown_frames < 0:
            raise ValueError("fault_cooldown_frames must be non-negative")
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError("canvas dimensions must be positive")
        if not self.coroutine_prefix.isidentifier():
            raise ValueError("coroutine_prefix must be a valid identifier")

    @property
    def indent(self) -> str:
        return ' ' * self.indent_size

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'GeneratorConfig':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'GeneratorConfig':
        """Build a config from ``BLOCKFLOW_<FIELD>`` variables, falling back to defaults."""
        values = {}
        for f in fields(cls):
            default = f.default
            raw = resolve_setting(ENV_PREFIX + f.name.upper(), '', environ)
            if not raw:
                values[f.name] = default
            elif isinstance(default, bool):
                values[f.name] = _parse_bool(raw)
            elif isinstance(default, int):
                values[f.name] = int(raw)
            else:
                values[f.name] = raw
        return cls(**values)
