import logging
import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from zhithead.engine.cards import WILD_RANKS, Card, can_play, effective_top, find_card
from zhithead.engine.errors import InvariantViolation
from zhithead.engine.game import MoveRequest, Phase, PlayerId, TakePile
from zhithead.engine.player import Zone

if TYPE_CHECKING:
    from zhithead.engine.game import ZhitheadMachine


logger = logging.getLogger(__name__)

Respond = Callable[[Optional[Card]], None]


class Player(ABC):
    """Anything that can be asked for a card.

    The machine calls ``request_move`` and the answer goes back through
    ``respond``, now or later. Answering ``None`` means "no legal move"
    and is only allowed for the bot seat.
    """
    machine: Optional['ZhitheadMachine'] = None
    player_id: Optional[PlayerId] = None

    def bind(self, machine: 'ZhitheadMachine', player_id: PlayerId):
        self.machine   = machine
        self.player_id = player_id

    @abstractmethod
    def request_move(self, request: MoveRequest, respond: Respond):
        raise NotImplementedError

    def cancel_request(self, token: int):
        pass


def legal_cards(request: MoveRequest) -> List[Card]:
    return [
        card
        for card in request.player.current_playable_zone()
        if can_play(card, request.pile)
    ]


class HumanPlayer(Player):
    """Parks each request until the UI answers it."""

    def __init__(self):
        self.pending: Optional[Tuple[MoveRequest, Respond]] = None

    @property
    def request(self) -> Optional[MoveRequest]:
        return self.pending[0] if self.pending else None

    def request_move(self, request: MoveRequest, respond: Respond):
        self.pending = (request, respond)

    def cancel_request(self, token: int):
        if self.pending and self.pending[0].token == token:
            self.pending = None

    def choose(self, card: Card):
        if self.pending is None:
            raise InvariantViolation('No card was requested from the human')

        _, respond   = self.pending
        self.pending = None
        respond(card)

    def choosable_cards(self) -> List[Card]:
        if self.pending is None:
            return []

        return list(self.pending[0].player.current_playable_zone())

    def choose_code(self, code: str) -> Optional[Card]:
        """Answer with the card matching ``code`` in the zone being played.

        Returns the card, or None when no such card can be chosen.
        """
        card = find_card(code, self.choosable_cards())
        if card is not None:
            self.choose(card)

        return card

    def choose_index(self, position: int) -> Optional[Card]:
        """Answer with the card at 1-based ``position`` of the zone being played.

        This is how face down cards are picked, since their codes are hidden.
        """
        cards = self.choosable_cards()
        if not 1 <= position <= len(cards):
            return None

        card = cards[position - 1]
        self.choose(card)
        return card

    def take_pile(self):
        if self.machine is None:
            raise InvariantViolation('Player is not bound to a game')

        self.machine.send(TakePile())


class ConsolePlayer(HumanPlayer):
    """Human seat driven from a terminal."""

    def __init__(self, input_fn: Callable[[str], str] = input, output_fn=print):
        super().__init__()
        self.input_fn  = input_fn
        self.output_fn = output_fn

    def _describe(self, request: MoveRequest):
        top = effective_top(request.pile)
        self.output_fn(
            f'Pile: {len(request.pile)} cards, top {top if top else "-"}'
        )
        cards = request.player.current_playable_zone()
        if request.zone is Zone.face_down:
            self.output_fn('Face down: ' + ' '.join(f'{i}:??' for i in range(1, len(cards) + 1)))
        else:
            self.output_fn(
                f'{request.zone.name}: ' +
                ' '.join(f'{i}:{card}' for i, card in enumerate(cards, 1))
            )

    def prompt(self) -> bool:
        """Ask once; returns True when an answer was sent."""
        if self.pending is None:
            return False

        request, _ = self.pending
        self._describe(request)
        prompt = (
            'Card to put face up: '
            if request.phase is Phase.choosing_face_up_cards else
            'Your play (card, number, or T to take the pile): '
        )
        answer = self.input_fn(prompt).strip()

        if answer.upper() == 'T' and request.phase is Phase.playing:
            if not request.can_take_pile:
                if request.zone is Zone.face_down:
                    self.output_fn('Turn up a face down card first')
                else:
                    self.output_fn('You have a card you can play')
                return False
            self.take_pile()
            return True

        if answer.isdigit() and self.choose_index(int(answer)) is not None:
            return True

        if self.choose_code(answer) is None:
            self.output_fn(f'No card {answer!r} to play')
            return False

        return True


class RandomPlayer(Player):
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self._blind_pile: Optional[Tuple[Card, ...]] = None
        self._blind_tried: List[Card] = []

    def blind_pick(self, request: MoveRequest) -> Optional[Card]:
        """Turn up a face down card not yet refused on this pile.

        Returns None once every face down card has been refused, which
        makes the seat take the pile.
        """
        if request.pile != self._blind_pile:
            self._blind_pile  = request.pile
            self._blind_tried = []

        untried = [card for card in request.player.face_down if card not in self._blind_tried]
        if not untried:
            return None

        card = self.rng.choice(untried)
        self._blind_tried.append(card)
        return card

    def select(self, request: MoveRequest) -> Optional[Card]:
        cards = request.player.current_playable_zone()
        if request.phase is Phase.choosing_face_up_cards:
            return self.rng.choice(cards) if cards else None

        if request.zone is Zone.face_down:
            return self.blind_pick(request)

        legal = legal_cards(request)
        if not legal:
            return None

        return self.rng.choice(legal)

    def request_move(self, request: MoveRequest, respond: Respond):
        respond(self.select(request))


def _keep_value(card: Card) -> Tuple[bool, int]:
    return (card.rank in WILD_RANKS, card.rank)


class LowestCardPlayer(RandomPlayer):
    """Gets rid of low cards first and saves 2, 8 and 10 for emergencies."""

    def select(self, request: MoveRequest) -> Optional[Card]:
        cards = request.player.current_playable_zone()
        if request.phase is Phase.choosing_face_up_cards:
            return max(cards, key=_keep_value) if cards else None

        if request.zone is Zone.face_down:
            return self.blind_pick(request)

        legal = legal_cards(request)
        if not legal:
            return None

        return min(legal, key=_keep_value)


class StrategyHumanPlayer(HumanPlayer):
    """Human seat answered by a bot strategy, for simulations.

    Where the strategy has nothing to play, the pile is taken with
    TAKE_PILE as a person would.
    """

    def __init__(self, strategy: RandomPlayer):
        super().__init__()
        self.strategy = strategy

    def request_move(self, request: MoveRequest, respond: Respond):
        super().request_move(request, respond)
        card = self.strategy.select(request)
        if card is None and request.phase is Phase.playing:
            self.pending = None
            self.take_pile()
        elif card is not None:
            self.choose(card)
