import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, List, Optional, Sequence

from zhithead.engine.errors import EmptyDeckError


HEIGHTS = '23456789TJQKA'


class Suit(Enum):
    d = '♦'
    c = '♣'
    s = '♠'
    h = '♥'


class Rank(IntEnum):
    TWO   = 2
    THREE = 3
    FOUR  = 4
    FIVE  = 5
    SIX   = 6
    SEVEN = 7
    EIGHT = 8
    NINE  = 9
    TEN   = 10
    JACK  = 11
    QUEEN = 12
    KING  = 13
    ACE   = 14


height_to_rank = dict(zip(HEIGHTS, Rank))

RESET_RANK       = Rank.TWO
TRANSPARENT_RANK = Rank.EIGHT
BURN_RANK        = Rank.TEN
WILD_RANKS       = frozenset((RESET_RANK, TRANSPARENT_RANK, BURN_RANK))


@dataclass(frozen=True, eq=False)
class Card:
    """A single physical card.

    Equality and hashing are by identity: two ``Card`` objects with the
    same rank and suit are still two different cards, so zones can only
    ever give up the exact instance they hold.
    """
    rank: Rank
    suit: Suit

    def __repr__(self) -> str:
        return self.code

    @property
    def height(self) -> str:
        return HEIGHTS[self.rank - Rank.TWO]

    @property
    def code(self) -> str:
        return f'{self.height}{self.suit.name}'

    def sort_key(self):
        return (self.rank, self.suit.name)


def card_from_code(code: str) -> Card:
    """Build a fresh card from a code like 'As', 'Td' or '2h'."""
    if len(code) != 2 or code[0] not in height_to_rank:
        raise ValueError(f'Invalid card code: {code!r}')
    try:
        suit = Suit[code[1]]
    except KeyError:
        raise ValueError(f'Invalid card code: {code!r}') from None

    return Card(height_to_rank[code[0]], suit)


def find_card(code: str, cards: Iterable[Card]) -> Optional[Card]:
    for card in cards:
        if card.code == code:
            return card

    return None


def rank_of(card: Card) -> Rank:
    return card.rank


def effective_top(pile: Sequence[Card]) -> Optional[Card]:
    """Most recent pile card that is not transparent, or None."""
    for card in reversed(pile):
        if card.rank != TRANSPARENT_RANK:
            return card

    return None


def can_play(card: Card, pile: Sequence[Card]) -> bool:
    if card.rank in WILD_RANKS:
        return True

    top = effective_top(pile)
    if top is None:
        return True

    return card.rank >= top.rank


def create_deck() -> List[Card]:
    return [
        Card(rank, suit)
        for suit in Suit
        for rank in Rank
    ]


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Fisher-Yates shuffle in place; returns the same list."""
    if rng is None:
        rng = random.SystemRandom()

    for i in range(len(cards) - 1, 0, -1):
        j = rng.randrange(i + 1)
        cards[i], cards[j] = cards[j], cards[i]

    return cards


class CardDeck():
    def __init__(
            self,
            cards : Optional[List[Card]] = None,
            rng   : Optional[random.Random] = None,
    ):
        if cards is None:
            self.cards = shuffle(create_deck(), rng)
        else:
            self.cards = list(cards)

    def __repr__(self) -> str:
        return ' '.join(repr(card) for card in self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards)

    def draw_card(self) -> Card:
        if len(self) == 0:
            raise EmptyDeckError('The deck is empty.')

        return self.cards.pop(0)

    def draw_cards(self, n: int) -> List[Card]:
        if len(self) < n:
            raise EmptyDeckError(f'Cannot draw {n} cards from {len(self)}.')

        drawn      = self.cards[:n]
        self.cards = self.cards[n:]
        return drawn
