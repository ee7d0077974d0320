from dataclasses import dataclass


@dataclass(frozen=True)
class RuleConfig:
    face_up_count   : int  = 3
    face_down_count : int  = 3
    hand_size       : int  = 6

    # Delays in milliseconds, relative to entering the state
    settle_ms : int = 500
    burn_ms   : int = 600
    draw_ms   : int = 625
    switch_ms : int = 1000

    # An illegal blind card goes on the pile and the player takes it all,
    # instead of being refused like any other illegal card
    blind_pickup : bool = False
    # Raise on precondition violations instead of logging and re-asking
    strict       : bool = __debug__


DEFAULT_CONFIG = RuleConfig()
