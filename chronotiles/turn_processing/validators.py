from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from chronotiles.config import MOVE_COOLDOWN_MS
from chronotiles.core.merge import Direction
from chronotiles.fsm import SessionStatus

if TYPE_CHECKING:
    from chronotiles.session import GameSession


class RejectReason(StrEnum):
    inactive = "inactive"
    settling = "settling"
    cooldown = "cooldown"
    locked = "locked"
    unknown_command = "unknown_command"


REWIND_COMMAND = "rewind"
COMMANDS: frozenset[str] = frozenset({*(d.value for d in Direction), REWIND_COMMAND})


@dataclass(frozen=True, slots=True)
class InputContext:
    """What validators see about an incoming command."""

    command: str
    now_ms: float


class InputValidator(ABC):
    """A small, composable acceptance check. Returns a reason to reject, or None."""

    @abstractmethod
    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ActiveGameValidator(InputValidator):
    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        if session.status not in {SessionStatus.playing, SessionStatus.settling}:
            return RejectReason.inactive
        return None


@dataclass(frozen=True, slots=True)
class SettlingValidator(InputValidator):
    """Nothing is accepted while a move's deferred batch is still pending."""

    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        if session.status == SessionStatus.settling:
            return RejectReason.settling
        return None


@dataclass(frozen=True, slots=True)
class CooldownValidator(InputValidator):
    cooldown_ms: float = MOVE_COOLDOWN_MS

    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        last = session.last_move_at
        if last is not None and ctx.now_ms - last < self.cooldown_ms:
            return RejectReason.cooldown
        return None


@dataclass(frozen=True, slots=True)
class ControlLockValidator(InputValidator):
    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        engine = session.engine
        if engine is not None and engine.state.lock.is_locked(engine.state.clock_ms):
            return RejectReason.locked
        return None


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[InputValidator, ...]

    def check(self, *, ctx: InputContext, session: "GameSession") -> RejectReason | None:
        for v in self.validators:
            reason = v.check(ctx=ctx, session=session)
            if reason is not None:
                return reason
        return None


MOVE_PIPELINE = ValidatorPipeline(
    validators=(
        ActiveGameValidator(),
        SettlingValidator(),
        CooldownValidator(),
        ControlLockValidator(),
    )
)

# Rewind is refused mid-batch but ignores the cooldown and the control lock.
REWIND_PIPELINE = ValidatorPipeline(
    validators=(
        ActiveGameValidator(),
        SettlingValidator(),
    )
)


def normalize_command(command: str) -> str | None:
    cmd = command.strip().casefold()
    return cmd if cmd in COMMANDS else None


def pipeline_for_command(command: str) -> ValidatorPipeline:
    if command == REWIND_COMMAND:
        return REWIND_PIPELINE
    if command in COMMANDS:
        return MOVE_PIPELINE
    raise ValueError(f"Unknown command: {command}")
