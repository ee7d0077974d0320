"""Shared helpers for the Zhithead test suite."""
import pytest

from zhithead.engine.cards import Card, CardDeck, card_from_code, find_card
from zhithead.engine.config import RuleConfig
from zhithead.engine.game import GameState, Phase, PlayerId, ZhitheadMachine
from zhithead.engine.player import PlayerState
from zhithead.engine.players import HumanPlayer, Player
from zhithead.engine.timers import VirtualClock


STRICT = RuleConfig(strict=True)


def c(spec: str) -> Card:
    """Build a Card from a 2-char spec like 'As', 'Td', '2h'."""
    return card_from_code(spec)


def cards(*specs: str):
    return [c(spec) for spec in specs]


class ScriptedPlayer(Player):
    """Answers each request with the next code of a script (None = no move)."""

    def __init__(self, *codes):
        self.codes    = list(codes)
        self.requests = []

    def request_move(self, request, respond):
        self.requests.append(request)
        if not self.codes:
            return
        code = self.codes.pop(0)
        if code is None:
            respond(None)
        else:
            respond(find_card(code, request.player.current_playable_zone()))


def make_state(human=None, bot=None, pile=(), deck=(), current_turn=PlayerId.human):
    return GameState(
        deck         = CardDeck(list(deck)),
        players      = {
            PlayerId.human : human if human is not None else PlayerState(),
            PlayerId.bot   : bot if bot is not None else PlayerState(),
        },
        pile         = list(pile),
        current_turn = current_turn,
    )


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def human():
    return HumanPlayer()


@pytest.fixture
def make_machine(clock, human):
    """Build a started machine in the playing phase around a given state."""
    def build(state, bot=None, config=STRICT, phase=Phase.playing):
        machine = ZhitheadMachine(
            state,
            {
                PlayerId.human : human,
                PlayerId.bot   : bot if bot is not None else HumanPlayer(),
            },
            clock,
            config,
            phase,
        )
        machine.start()
        return machine

    return build
