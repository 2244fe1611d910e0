# notifyrouter/watch/events.py

"""
Event types for file system notifications
"""
from enum import IntFlag
from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple, Union


class Op(IntFlag):
    """File operations that can trigger a notification"""
    CREATE = 1
    WRITE = 2
    REMOVE = 4
    RENAME = 8
    CHMOD = 16

    ALL_OPS = CREATE | WRITE | REMOVE | RENAME | CHMOD

    @classmethod
    def parse(cls, value: Union[str, int, 'Op']) -> 'Op':
        """
        Parse an operation mask from its textual form

        Args:
            value: Names joined by '|' or ',' (e.g. "create|write"), "all",
                or an integer mask

        Returns:
            Parsed operation mask

        Raises:
            ValueError: If a name is unknown or the mask has stray bits
        """
        if isinstance(value, int):
            if int(value) & ~int(cls.ALL_OPS):
                raise ValueError(f"Invalid operation mask: {value}")
            return cls(value)

        result = cls(0)
        for name in value.replace(',', '|').split('|'):
            name = name.strip().upper()
            if not name:
                continue
            if name in ('ALL', 'ALLOPS'):
                name = 'ALL_OPS'
            try:
                result |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown operation: {name.lower()}") from None
        return result

    def names(self) -> str:
        """Render as 'WRITE|CHMOD' in bit order"""
        return '|'.join(op.name for op in _SINGLE_OPS if self & op)


_SINGLE_OPS = (Op.CREATE, Op.WRITE, Op.REMOVE, Op.RENAME, Op.CHMOD)


class RawEvent(NamedTuple):
    """Unfiltered notification as produced by an event source"""
    path: str
    op: Op


@dataclass
class Event:
    """A single delivered file system notification"""
    path: str
    op: Op
    timestamp: datetime = field(default=None, compare=False)

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def __str__(self):
        return f'"{self.path}": {Op(self.op).names()}'


def normalize_event(raw: RawEvent) -> Event:
    """Convert a raw source event into the public Event shape"""
    return Event(path=raw.path, op=Op(raw.op) & Op.ALL_OPS)
