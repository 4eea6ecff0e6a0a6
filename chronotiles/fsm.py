from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class SessionStatus(StrEnum):
    idle = "idle"
    playing = "playing"
    settling = "settling"
    over = "over"


class SessionFSM(StateMachine):
    """Lifecycle of one play session.

    - idle -> playing on start
    - playing -> settling while a successful move's deferred batch is pending
    - playing/settling -> over on game over
    - any running or finished state -> idle when the player backs out
    """

    idle = State(SessionStatus.idle.value, value=SessionStatus.idle.value, initial=True)
    playing = State(SessionStatus.playing.value, value=SessionStatus.playing.value)
    settling = State(SessionStatus.settling.value, value=SessionStatus.settling.value)
    over = State(SessionStatus.over.value, value=SessionStatus.over.value)

    begin_game = idle.to(playing)
    accept_slide = playing.to(settling)
    settle_batch = settling.to(playing)
    end_game = playing.to(over) | settling.to(over)
    go_idle = playing.to(idle) | settling.to(idle) | over.to(idle)

    @property
    def status(self) -> SessionStatus:
        return SessionStatus(str(self.current_state.value))
