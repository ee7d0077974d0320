from enum import Enum, auto
from typing import Dict, List, Optional, Sequence, Tuple

from zhithead.engine.cards import Card, CardDeck, can_play
from zhithead.engine.errors import DealError, InvariantViolation


class Zone(Enum):
    hand      = auto()
    face_up   = auto()
    face_down = auto()


# A zone is only playable once every zone before it is empty
ZONE_PRECEDENCE = (Zone.hand, Zone.face_up, Zone.face_down)


class PlayerState():
    def __init__(
            self,
            hand      : Optional[List[Card]] = None,
            face_up   : Optional[List[Card]] = None,
            face_down : Optional[List[Card]] = None,
    ):
        self.zones: Dict[Zone, List[Card]] = {
            Zone.hand      : list(hand or []),
            Zone.face_up   : list(face_up or []),
            Zone.face_down : list(face_down or []),
        }

    def __repr__(self) -> str:
        return (
            f'hand: {self.hand} '
            f'face up: {self.face_up} '
            f'face down: {len(self.face_down)}'
        )

    def __len__(self) -> int:
        return sum(len(cards) for cards in self.zones.values())

    @property
    def hand(self) -> List[Card]:
        return self.zones[Zone.hand]

    @property
    def face_up(self) -> List[Card]:
        return self.zones[Zone.face_up]

    @property
    def face_down(self) -> List[Card]:
        return self.zones[Zone.face_down]

    def has_cards(self) -> bool:
        return len(self) > 0

    def holds(self, zone: Zone, card: Card) -> bool:
        return any(held is card for held in self.zones[zone])

    def current_zone(self) -> Zone:
        for zone in ZONE_PRECEDENCE[:-1]:
            if self.zones[zone]:
                return zone

        return Zone.face_down

    def current_playable_zone(self) -> List[Card]:
        return self.zones[self.current_zone()]

    def add_card(self, zone: Zone, card: Card):
        self.zones[zone].append(card)

    def add_cards(self, zone: Zone, cards: Sequence[Card]):
        self.zones[zone].extend(cards)

    def remove_card(self, zone: Zone, card: Card):
        cards = self.zones[zone]
        for i, held in enumerate(cards):
            if held is card:
                del cards[i]
                return

        raise InvariantViolation(f'{card} is not in {zone.name}')

    def has_legal_play(self, pile: Sequence[Card]) -> bool:
        """Whether the governing zone may hold a playable card.

        Face down cards are unknown to their owner, so a non-empty face
        down zone always counts as playable.
        """
        if self.current_zone() is Zone.face_down:
            return bool(self.face_down)

        return any(can_play(card, pile) for card in self.current_playable_zone())

    def copy(self) -> 'PlayerState':
        return PlayerState(self.hand, self.face_up, self.face_down)


def current_playable_zone(player: PlayerState) -> List[Card]:
    return player.current_playable_zone()


def remove_card(player: PlayerState, zone: Zone, card: Card):
    player.remove_card(zone, card)


def deal_cards_for(
        n              : int,
        deck           : CardDeck,
        hand_size      : int = 6,
        face_down_size : int = 3,
) -> Tuple[CardDeck, List[PlayerState]]:
    """Deal face-down then hand cards to ``n`` players in turn.

    Cards are taken from the front of ``deck``; whatever is left over
    becomes the draw deck. ``deck`` itself is not modified.
    """
    if n < 1:
        raise DealError(f'Cannot deal for {n} players')

    per_player = hand_size + face_down_size
    if len(deck) < n * per_player:
        raise DealError(
            f'{len(deck)} cards cannot be dealt to {n} players '
            f'({per_player} each)'
        )

    remaining = CardDeck(deck.cards)
    players   = []
    for _ in range(n):
        face_down = remaining.draw_cards(face_down_size)
        hand      = remaining.draw_cards(hand_size)
        players.append(PlayerState(hand=hand, face_down=face_down))

    return remaining, players
