"""Inbound intents, one value per client message."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Join:
    sid: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Leave:
    sid: str


@dataclass(frozen=True)
class SetReady:
    sid: str
    ready: bool


@dataclass(frozen=True)
class Turn:
    sid: str
    direction: str


@dataclass(frozen=True)
class SetSpeed:
    sid: str
    speed: object


@dataclass(frozen=True)
class Restart:
    sid: str
