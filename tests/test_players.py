import random

import pytest

from zhithead.engine.errors import InvariantViolation
from zhithead.engine.game import MoveRequest, Phase, PlayerId, TakePile
from zhithead.engine.player import PlayerState
from zhithead.engine.players import (
    ConsolePlayer, HumanPlayer, LowestCardPlayer, RandomPlayer,
    StrategyHumanPlayer, legal_cards,
)

from conftest import cards


def make_request(player, pile=(), phase=Phase.playing, token=1, can_take_pile=False):
    return MoveRequest(
        phase         = phase,
        player_id     = PlayerId.human,
        pile          = tuple(pile),
        player        = player,
        token         = token,
        can_take_pile = can_take_pile,
    )


class Recorder():
    def __init__(self):
        self.answers = []

    def __call__(self, card):
        self.answers.append(card)


class FakeMachine():
    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)


# ============================================================
# legal_cards
# ============================================================

class TestLegalCards:
    def test_filters_by_pile(self):
        player  = PlayerState(cards('3c', '9d', '2h', 'Qs'))
        request = make_request(player, cards('7d'))
        assert [card.code for card in legal_cards(request)] == ['9d', '2h', 'Qs']

    def test_uses_current_zone(self):
        player  = PlayerState([], cards('4c', 'Ah'), cards('Kd'))
        request = make_request(player, cards('Jd'))
        assert [card.code for card in legal_cards(request)] == ['Ah']

    def test_everything_on_empty_pile(self):
        player = PlayerState(cards('3c', '4c'))
        assert len(legal_cards(make_request(player))) == 2


# ============================================================
# Bots
# ============================================================

class TestRandomPlayer:
    def test_plays_a_legal_card(self):
        bot    = RandomPlayer(random.Random(0))
        player = PlayerState(cards('3c', '9d', 'Qs'))
        for _ in range(20):
            card = bot.select(make_request(player, cards('7d')))
            assert card.code in ('9d', 'Qs')

    def test_nothing_to_play(self):
        bot    = RandomPlayer(random.Random(0))
        player = PlayerState(cards('3c', '4d'))
        assert bot.select(make_request(player, cards('Kd'))) is None

    def test_blind_pick_from_face_down(self):
        player = PlayerState([], [], cards('3c', 'Ad'))
        picks  = {
            RandomPlayer(random.Random(seed)).select(make_request(player, cards('9d'))).code
            for seed in range(50)
        }
        assert picks == {'3c', 'Ad'}

    def test_blind_pick_ignores_ranks(self):
        bot    = RandomPlayer(random.Random(0))
        player = PlayerState([], [], cards('3c', '4d'))
        assert bot.select(make_request(player, cards('Kd'))) is not None

    def test_refused_blind_cards_not_tried_again(self):
        bot     = RandomPlayer(random.Random(0))
        player  = PlayerState([], [], cards('3c', '4d', '5h'))
        request = make_request(player, cards('Kd'))
        picks   = [bot.select(request) for _ in range(3)]
        assert sorted(card.code for card in picks) == ['3c', '4d', '5h']
        assert bot.select(request) is None

    def test_new_pile_resets_blind_tries(self):
        bot    = RandomPlayer(random.Random(0))
        player = PlayerState([], [], cards('3c'))
        pile   = cards('Kd')
        assert bot.select(make_request(player, pile)) is not None
        assert bot.select(make_request(player, pile)) is None
        assert bot.select(make_request(player, pile + cards('Ad'))) is not None

    def test_face_up_choice_from_hand(self):
        bot    = RandomPlayer(random.Random(0))
        player = PlayerState(cards('3c', '4d', '5h'))
        card   = bot.select(make_request(player, phase=Phase.choosing_face_up_cards))
        assert card in player.hand

    def test_answers_immediately(self):
        bot     = RandomPlayer(random.Random(0))
        respond = Recorder()
        player  = PlayerState(cards('9d'))
        bot.request_move(make_request(player), respond)
        assert [card.code for card in respond.answers] == ['9d']


class TestLowestCardPlayer:
    def test_plays_lowest_legal(self):
        bot    = LowestCardPlayer(random.Random(0))
        player = PlayerState(cards('Ks', '9d', '3c', 'Jh'))
        assert bot.select(make_request(player, cards('7d'))).code == '9d'

    def test_saves_wild_cards(self):
        bot    = LowestCardPlayer(random.Random(0))
        player = PlayerState(cards('2s', 'Td', '8c', 'Ah'))
        assert bot.select(make_request(player, cards('Kd'))).code == 'Ah'

    def test_wild_card_when_stuck(self):
        bot    = LowestCardPlayer(random.Random(0))
        player = PlayerState(cards('Td', '4c'))
        assert bot.select(make_request(player, cards('Kd'))).code == 'Td'

    def test_puts_best_cards_face_up(self):
        bot    = LowestCardPlayer(random.Random(0))
        player = PlayerState(cards('3c', 'Ks', '2d', '5h'))
        card   = bot.select(make_request(player, phase=Phase.choosing_face_up_cards))
        assert card.code == '2d'

    def test_plays_blind_even_when_nothing_fits(self):
        bot    = LowestCardPlayer(random.Random(0))
        player = PlayerState([], [], cards('3c'))
        assert bot.select(make_request(player, cards('Kd'))).code == '3c'


# ============================================================
# Human seats
# ============================================================

class TestHumanPlayer:
    def test_parks_request(self):
        human   = HumanPlayer()
        request = make_request(PlayerState(cards('9d')))
        human.request_move(request, Recorder())
        assert human.request is request

    def test_choose_answers_once(self):
        human   = HumanPlayer()
        respond = Recorder()
        player  = PlayerState(cards('9d'))
        human.request_move(make_request(player), respond)
        human.choose(player.hand[0])
        assert respond.answers == [player.hand[0]]
        assert human.pending is None
        with pytest.raises(InvariantViolation):
            human.choose(player.hand[0])

    def test_choose_code(self):
        human   = HumanPlayer()
        respond = Recorder()
        player  = PlayerState(cards('9d', 'Qs'))
        human.request_move(make_request(player), respond)
        assert human.choose_code('Zz') is None
        assert human.choose_code('Kd') is None
        assert human.pending is not None
        card = human.choose_code('Qs')
        assert card is player.hand[1]
        assert respond.answers == [card]

    def test_choosable_cards_follow_zone(self):
        human  = HumanPlayer()
        player = PlayerState([], cards('4c'), cards('Kd'))
        assert human.choosable_cards() == []
        human.request_move(make_request(player), Recorder())
        assert [card.code for card in human.choosable_cards()] == ['4c']

    def test_choose_index(self):
        human   = HumanPlayer()
        respond = Recorder()
        player  = PlayerState([], [], cards('3c', 'Ad'))
        human.request_move(make_request(player), respond)
        assert human.choose_index(0) is None
        assert human.choose_index(3) is None
        card = human.choose_index(2)
        assert card is player.face_down[1]
        assert respond.answers == [card]

    def test_cancel_matching_token_only(self):
        human = HumanPlayer()
        human.request_move(make_request(PlayerState(cards('9d')), token=7), Recorder())
        human.cancel_request(6)
        assert human.pending is not None
        human.cancel_request(7)
        assert human.pending is None

    def test_take_pile_needs_a_game(self):
        with pytest.raises(InvariantViolation):
            HumanPlayer().take_pile()

    def test_take_pile_sends_event(self):
        human   = HumanPlayer()
        machine = FakeMachine()
        human.bind(machine, PlayerId.human)
        human.take_pile()
        assert machine.events == [TakePile()]


class TestConsolePlayer:
    def make_player(self, *answers):
        inputs = list(answers)
        output = []
        player = ConsolePlayer(input_fn=lambda prompt: inputs.pop(0), output_fn=output.append)
        machine = FakeMachine()
        player.bind(machine, PlayerId.human)
        return player, machine, output

    def test_nothing_pending(self):
        player, _, _ = self.make_player()
        assert player.prompt() is False

    def test_choose_by_number(self):
        player, _, _ = self.make_player('2')
        respond = Recorder()
        hand    = PlayerState(cards('9d', 'Qs'))
        player.request_move(make_request(hand), respond)
        assert player.prompt() is True
        assert respond.answers == [hand.hand[1]]

    def test_choose_by_code(self):
        player, _, _ = self.make_player(' 9d ')
        respond = Recorder()
        hand    = PlayerState(cards('9d', 'Qs'))
        player.request_move(make_request(hand), respond)
        assert player.prompt() is True
        assert respond.answers == [hand.hand[0]]

    def test_unknown_card(self):
        player, _, output = self.make_player('5h')
        respond = Recorder()
        player.request_move(make_request(PlayerState(cards('9d'))), respond)
        assert player.prompt() is False
        assert respond.answers == []
        assert output[-1] == "No card '5h' to play"

    def test_take_pile(self):
        player, machine, _ = self.make_player('t')
        player.request_move(make_request(PlayerState(cards('3c')), cards('Kd'), can_take_pile=True), Recorder())
        assert player.prompt() is True
        assert machine.events == [TakePile()]

    def test_take_pile_with_a_playable_card(self):
        player, machine, output = self.make_player('T')
        player.request_move(make_request(PlayerState(cards('Ac')), cards('Kd')), Recorder())
        assert player.prompt() is False
        assert machine.events == []
        assert output[-1] == 'You have a card you can play'

    def test_take_pile_before_turning_up_a_blind_card(self):
        player, machine, output = self.make_player('T')
        player.request_move(make_request(PlayerState([], [], cards('3c')), cards('Kd')), Recorder())
        assert player.prompt() is False
        assert machine.events == []
        assert output[-1] == 'Turn up a face down card first'

    def test_face_down_cards_hidden(self):
        player, _, output = self.make_player('1')
        player.request_move(make_request(PlayerState([], [], cards('Ac', '3d'))), Recorder())
        player.prompt()
        assert 'Ac' not in ' '.join(output)


class TestStrategyHumanPlayer:
    def test_answers_with_strategy(self):
        human   = StrategyHumanPlayer(LowestCardPlayer(random.Random(0)))
        respond = Recorder()
        player  = PlayerState(cards('Ks', '9d'))
        human.request_move(make_request(player, cards('7d')), respond)
        assert [card.code for card in respond.answers] == ['9d']
        assert human.pending is None

    def test_takes_pile_when_stuck(self):
        human   = StrategyHumanPlayer(LowestCardPlayer(random.Random(0)))
        machine = FakeMachine()
        respond = Recorder()
        human.bind(machine, PlayerId.human)
        human.request_move(make_request(PlayerState(cards('3c')), cards('Kd')), respond)
        assert respond.answers == []
        assert machine.events == [TakePile()]
        assert human.pending is None
