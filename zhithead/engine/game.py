import itertools
import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, Deque, Dict, List, Optional, Tuple, Union

from zhithead.engine.cards import BURN_RANK, Card, CardDeck, can_play
from zhithead.engine.config import DEFAULT_CONFIG, RuleConfig
from zhithead.engine.errors import InvariantViolation
from zhithead.engine.player import PlayerState, Zone, deal_cards_for
from zhithead.engine.timers import Scheduler, TimerHandle, VirtualClock

if TYPE_CHECKING:
    from zhithead.engine.players import Player


logger = logging.getLogger(__name__)


class PlayerId(Enum):
    human = auto()
    bot   = auto()

    @property
    def other(self) -> 'PlayerId':
        return PlayerId.bot if self is PlayerId.human else PlayerId.human


class ShownHand(Enum):
    hand    = auto()
    offhand = auto()


class Phase(Enum):
    choosing_face_up_cards = auto()
    playing                = auto()
    finished               = auto()


class LoopState(Enum):
    wait_for_move   = auto()
    before_new_move = auto()


class GameState():
    """Everything on the table.

    ``burned`` keeps the cards cleared from the pile so every card of the
    game is always somewhere: deck, pile, burned or a player zone.
    """

    def __init__(
            self,
            deck         : CardDeck,
            players      : Dict[PlayerId, PlayerState],
            pile         : Optional[List[Card]] = None,
            current_turn : PlayerId = PlayerId.human,
    ):
        self.deck         = deck
        self.players      = players
        self.pile         = list(pile or [])
        self.burned: List[Card] = []
        self.current_turn = current_turn
        self.shown_hand   = {
            player_id: ShownHand.hand
            for player_id in PlayerId
        }

    def __repr__(self) -> str:
        return (
            f'deck: {len(self.deck)} pile: {self.pile} '
            f'turn: {self.current_turn.name}\n'
            f'human: {self.players[PlayerId.human]}\n'
            f'bot: {self.players[PlayerId.bot]}'
        )

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_turn]

    def all_cards(self) -> List[Card]:
        cards = list(self.deck) + self.pile + self.burned
        for player in self.players.values():
            for zone_cards in player.zones.values():
                cards.extend(zone_cards)

        return cards


def create_initial_state(
        rng    : Optional[random.Random] = None,
        config : RuleConfig = DEFAULT_CONFIG,
) -> GameState:
    deck                    = CardDeck(rng=rng)
    remaining, (human, bot) = deal_cards_for(
        2,
        deck,
        hand_size      = config.hand_size,
        face_down_size = config.face_down_count,
    )
    bot.add_cards(Zone.face_up, bot.hand[:config.face_up_count])
    del bot.hand[:config.face_up_count]

    return GameState(
        deck    = remaining,
        players = {PlayerId.human: human, PlayerId.bot: bot},
    )


@dataclass(frozen=True)
class CardChosen:
    player : PlayerId
    card   : Optional[Card]
    # Answers the request with this token; None answers whatever is pending
    token  : Optional[int] = None


@dataclass(frozen=True)
class TakePile:
    pass


@dataclass(frozen=True)
class SetShownHand:
    player     : PlayerId
    shown_hand : ShownHand


Event = Union[CardChosen, TakePile, SetShownHand]


@dataclass(frozen=True)
class MoveRequest:
    phase         : Phase
    player_id     : PlayerId
    pile          : Tuple[Card, ...]
    player        : PlayerState
    token         : int
    # Whether TAKE_PILE would be accepted while this request is outstanding
    can_take_pile : bool = False

    @property
    def zone(self) -> Zone:
        return self.player.current_zone()


class ZhitheadMachine():
    """Rules engine for one game between the human and the bot.

    Two regions run side by side once play starts: the turn loop
    (``loop_state``) and the shown-hand switcher (``state.shown_hand``).
    Events and timer firings are processed one at a time, in arrival
    order; anything sent while an event is being handled is queued.
    """

    def __init__(
            self,
            state     : GameState,
            players   : Dict[PlayerId, 'Player'],
            scheduler : Optional[Scheduler] = None,
            config    : RuleConfig = DEFAULT_CONFIG,
            phase     : Phase = Phase.choosing_face_up_cards,
    ):
        self.state      = state
        self.players    = players
        self.scheduler  = scheduler if scheduler is not None else VirtualClock()
        self.config     = config
        self.phase      = phase
        self.loop_state: Optional[LoopState] = None
        self.winner: Optional[PlayerId] = None
        self.started    = False
        self.moves_played = 0

        self._queue: Deque[Callable[[], None]] = deque()
        self._processing = False
        self._timers: List[TimerHandle] = []
        self._epoch      = 0
        self._tokens     = itertools.count(1)
        self._pending: Dict[PlayerId, int] = {}
        # A face down card was turned up and refused on the current pile
        self._blind_refused = False

        for player_id, player in players.items():
            player.bind(self, player_id)

    @property
    def context(self) -> GameState:
        return self.state

    @property
    def finished(self) -> bool:
        return self.phase is Phase.finished

    def pending_request(self, player_id: PlayerId) -> Optional[int]:
        return self._pending.get(player_id)

    def can_take_pile(self) -> bool:
        """Whether the human may take the pile right now.

        Only on the human's own turn, while a move is awaited, and only
        when nothing in the governing zone can be played. Face down cards
        count as playable until one of them has been turned up and refused.
        """
        if self.phase is not Phase.playing or \
           self.loop_state is not LoopState.wait_for_move or \
           self.state.current_turn is not PlayerId.human:
            return False

        human = self.state.players[PlayerId.human]
        if human.current_zone() is Zone.face_down and self._blind_refused:
            return True

        return not human.has_legal_play(self.state.pile)

    def start(self):
        if self.started:
            raise InvariantViolation('Machine already started')
        self.started = True
        logger.info('Game starts in %s', self.phase.name)

        if self.phase is Phase.choosing_face_up_cards:
            self._run(self._enter_choosing)
        elif self.phase is Phase.playing:
            self._run(self._enter_playing)

    def send(self, event: Event):
        self._run(lambda: self._handle(event))

    # ---------------------
    # Event queue
    # ---------------------

    def _run(self, action: Callable[[], None]):
        self._queue.append(action)
        if self._processing:
            return

        self._processing = True
        try:
            while self._queue:
                self._queue.popleft()()
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._processing = False

    def _schedule(self, delay_ms: int, action: Callable[[], None], label: str):
        epoch = self._epoch

        def fire():
            if epoch == self._epoch:
                action()
            else:
                logger.debug('Dropping stale %s timer', label)

        handle = self.scheduler.call_later(
            delay_ms,
            lambda: self._run(fire),
            label,
        )
        self._timers.append(handle)

    def _exit_state(self):
        self._epoch += 1
        for handle in self._timers:
            handle.cancel()
        self._timers = []
        for player_id, token in self._pending.items():
            self.players[player_id].cancel_request(token)
        self._pending.clear()

    def _request(self, player_id: PlayerId):
        token = next(self._tokens)
        self._pending[player_id] = token
        request = MoveRequest(
            phase         = self.phase,
            player_id     = player_id,
            pile          = tuple(self.state.pile),
            player        = self.state.players[player_id].copy(),
            token         = token,
            can_take_pile = player_id is PlayerId.human and self.can_take_pile(),
        )
        logger.debug('Asking %s for a card (%s)', player_id.name, token)

        def respond(card: Optional[Card]):
            self.send(CardChosen(player_id, card, token))

        self.players[player_id].request_move(request, respond)

    def _violation(self, message: str):
        logger.error('Precondition violation: %s', message)
        if self.config.strict:
            raise InvariantViolation(message)

    # ---------------------
    # Dispatch
    # ---------------------

    def _handle(self, event: Event):
        if isinstance(event, SetShownHand):
            self._on_set_shown_hand(event)
        elif self.finished:
            logger.debug('Game is over, ignoring %r', event)
        elif isinstance(event, CardChosen):
            self._on_card_chosen(event)
        elif isinstance(event, TakePile):
            self._on_take_pile()
        else:
            raise TypeError(f'Unknown event {event!r}')

    def _on_card_chosen(self, event: CardChosen):
        pending = self._pending.get(event.player)
        if pending is None or (event.token is not None and event.token != pending):
            logger.debug('Dropping unrequested answer from %s', event.player.name)
            return
        del self._pending[event.player]

        if self.phase is Phase.choosing_face_up_cards:
            self._on_face_up_chosen(event)
        elif self.loop_state is LoopState.wait_for_move:
            self._on_move(event)

    def _on_set_shown_hand(self, event: SetShownHand):
        if self.phase is Phase.choosing_face_up_cards:
            logger.debug('Shown hand cannot change before play starts')
            return

        self.state.shown_hand[event.player] = event.shown_hand

    # ---------------------
    # Choosing face up cards
    # ---------------------

    def _face_up_quota_met(self) -> bool:
        human = self.state.players[PlayerId.human]
        return len(human.face_up) >= self.config.face_up_count

    def _enter_choosing(self):
        self._exit_state()
        self.phase = Phase.choosing_face_up_cards
        if not self._face_up_quota_met():
            self._request(PlayerId.human)
        self._schedule(self.config.settle_ms, self._settle_choosing, 'settle')

    def _settle_choosing(self):
        if self._face_up_quota_met():
            self._enter_playing()

    def _on_face_up_chosen(self, event: CardChosen):
        human = self.state.players[PlayerId.human]
        if event.player is not PlayerId.human or self._face_up_quota_met():
            logger.debug('Face up cards already chosen')
            return

        if event.card is None:
            self._violation('human answered without a face up card')
        elif not human.holds(Zone.hand, event.card):
            logger.warning('Rejected face up choice %s: not in hand', event.card)
        else:
            human.remove_card(Zone.hand, event.card)
            human.add_card(Zone.face_up, event.card)
            logger.debug('Human puts %s face up', event.card)

        self._enter_choosing()

    # ---------------------
    # Playing
    # ---------------------

    def _enter_playing(self):
        self._exit_state()
        self.phase = Phase.playing
        logger.info('All face up cards chosen, %s to play', self.state.current_turn.name)
        self._enter_wait_for_move()

    def _enter_wait_for_move(self):
        self._exit_state()
        self.loop_state = LoopState.wait_for_move
        self._request(self.state.current_turn)

    def _enter_before_new_move(self):
        self._exit_state()
        self._blind_refused = False
        self.loop_state = LoopState.before_new_move
        self._schedule(self.config.burn_ms, self._burn_pile, 'burn')
        self._schedule(self.config.draw_ms, self._take_card, 'draw')
        self._schedule(self.config.switch_ms, self._end_move, 'switch')

    def _on_move(self, event: CardChosen):
        player_id = event.player
        player    = self.state.players[player_id]
        card      = event.card

        if card is None:
            if player_id is PlayerId.human:
                self._violation('human answered without a card')
            else:
                self._take_pile()
                self._switch_turns()
            self._enter_wait_for_move()
            return

        zone = player.current_zone()
        if not player.holds(zone, card):
            self._violation(f'{player_id.name} does not hold {card} in {zone.name}')
            self._enter_wait_for_move()
            return

        if can_play(card, self.state.pile):
            player.remove_card(zone, card)
            self.state.pile.append(card)
            self.moves_played += 1
            logger.debug('%s plays %s from %s', player_id.name, card, zone.name)
            self._enter_before_new_move()
        elif zone is Zone.face_down and self.config.blind_pickup:
            player.remove_card(zone, card)
            self.state.pile.append(card)
            logger.info('%s turns up %s blind and picks up the pile', player_id.name, card)
            self._take_pile()
            self._switch_turns()
            self._enter_wait_for_move()
        else:
            if zone is Zone.face_down:
                logger.info('%s turns up %s blind and cannot play it', player_id.name, card)
                self._blind_refused = True
            else:
                logger.debug('%s cannot be played on %s, asking again', card, self.state.pile)
            self._enter_wait_for_move()

    def _on_take_pile(self):
        if not self.can_take_pile():
            logger.debug('Take pile refused')
            return

        self._take_pile()
        self._switch_turns()
        self._enter_wait_for_move()

    # ---------------------
    # Actions
    # ---------------------

    def _switch_turns(self):
        self._blind_refused = False
        self.state.current_turn = self.state.current_turn.other

    def _take_pile(self):
        pile = self.state.pile
        self.state.current_player.add_cards(Zone.hand, pile)
        logger.info('%s takes the pile (%d cards)', self.state.current_turn.name, len(pile))
        self.state.pile = []

    def _take_card(self):
        if len(self.state.deck) == 0:
            return

        self.state.current_player.add_card(Zone.hand, self.state.deck.draw_card())

    def _burn_pile(self):
        pile = self.state.pile
        if pile and pile[-1].rank == BURN_RANK:
            logger.info('Pile burned (%d cards)', len(pile))
            self.state.burned.extend(pile)
            self.state.pile = []

    def _end_move(self):
        if not self.state.current_player.has_cards():
            self._finish(self.state.current_turn)
            return

        self._switch_turns()
        self._enter_wait_for_move()

    def _finish(self, winner: PlayerId):
        self._exit_state()
        self.phase      = Phase.finished
        self.loop_state = None
        self.winner     = winner
        logger.info('%s has no cards left and wins', winner.name)


class GameLoop():
    """Plays a whole game on a virtual clock, a strategy steering each seat."""

    def __init__(
            self,
            human_strategy : 'Player',
            bot            : 'Player',
            seed           : Optional[int] = None,
            config         : RuleConfig = DEFAULT_CONFIG,
            max_timers     : int = 20_000,
    ):
        from zhithead.engine.players import StrategyHumanPlayer

        self.config     = config
        self.max_timers = max_timers
        self.clock      = VirtualClock()
        self.state      = create_initial_state(random.Random(seed), config)
        self.machine    = ZhitheadMachine(
            self.state,
            {
                PlayerId.human : StrategyHumanPlayer(human_strategy),
                PlayerId.bot   : bot,
            },
            self.clock,
            config,
        )

    def run(self) -> Optional[PlayerId]:
        """Return the winner, or None when the game did not end in time."""
        self.machine.start()
        fired = 0
        while not self.machine.finished and fired < self.max_timers:
            step = self.clock.run_until_idle(self.max_timers - fired)
            if step == 0:
                break
            fired += step

        if not self.machine.finished:
            logger.warning('Game stopped after %d timers without a winner', fired)

        return self.machine.winner
