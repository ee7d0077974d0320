import functools
import logging
import random
import threading
import uuid

from flask import Flask, jsonify, request

from zhithead.engine.game import (
    GameState, PlayerId, SetShownHand, ShownHand, ZhitheadMachine,
    create_initial_state,
)
from zhithead.engine.players import HumanPlayer, LowestCardPlayer, RandomPlayer
from zhithead.engine.timers import MonotonicClock
from zhithead.web.config import WEB_CONFIG


logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = WEB_CONFIG['secret_key']
app.config['CLOCK_FACTORY'] = MonotonicClock
app.config['BOT'] = WEB_CONFIG['bot']

# In-memory game store: game_id -> game_state dict. Each game carries a lock
# held for the whole of any request touching it.
games = {}

BOTS = {
    'lowest': LowestCardPlayer,
    'random': RandomPlayer,
}


def card_to_dict(card):
    return {'code': card.code, 'rank': card.height, 'suit': card.suit.value}


def cards_to_list(cards):
    return [card_to_dict(c) for c in cards]


def player_to_dict(player, reveal_hand):
    return {
        'hand':      cards_to_list(player.hand) if reveal_hand else len(player.hand),
        'face_up':   cards_to_list(player.face_up),
        'face_down': len(player.face_down),
        'zone':      player.current_zone().name,
    }


def _can_take_pile(game_state):
    return (
        game_state['human'].pending is not None and
        game_state['machine'].can_take_pile()
    )


def build_response(game_id, game_state):
    machine: ZhitheadMachine = game_state['machine']
    human:   HumanPlayer     = game_state['human']
    state:   GameState       = machine.context

    return {
        'game_id':        game_id,
        'phase':          machine.phase.name,
        'loop_state':     machine.loop_state.name if machine.loop_state else None,
        'current_turn':   state.current_turn.name,
        'winner':         machine.winner.name if machine.winner else None,
        'deck_size':      len(state.deck),
        'pile':           cards_to_list(state.pile),
        'burned':         len(state.burned),
        'human':          player_to_dict(state.players[PlayerId.human], True),
        'bot':            player_to_dict(state.players[PlayerId.bot], False),
        'shown_hand':     {p.name: s.name for p, s in state.shown_hand.items()},
        'awaiting_human': human.pending is not None,
        'can_take_pile':  _can_take_pile(game_state),
    }


def game_route(view):
    """Look up the request's game and run ``view`` under that game's lock.

    Due timers fire first, so the view sees an up to date table.
    """
    @functools.wraps(view)
    def wrapper():
        if request.method == 'GET':
            data    = {}
            game_id = request.args.get('game_id')
        else:
            data    = request.get_json(force=True)
            game_id = data.get('game_id')

        game_state = games.get(game_id) if isinstance(game_id, str) else None
        if game_state is None:
            return jsonify({'error': 'Game not found'}), 404

        with game_state['lock']:
            game_state['clock'].run_due()
            return view(game_id, game_state, data)

    return wrapper


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route('/api/new_game', methods=['POST'])
def new_game():
    data = request.get_json(silent=True) or {}
    seed = data.get('seed')
    bot_name = data.get('bot', app.config['BOT'])

    if bot_name not in BOTS:
        return jsonify({'error': f'Unknown bot {bot_name!r}'}), 400

    rng     = random.Random(seed) if seed is not None else None
    clock   = app.config['CLOCK_FACTORY']()
    human   = HumanPlayer()
    machine = ZhitheadMachine(
        create_initial_state(rng),
        {PlayerId.human: human, PlayerId.bot: BOTS[bot_name](rng)},
        clock,
    )
    machine.start()

    game_id = str(uuid.uuid4())
    games[game_id] = {
        'machine': machine,
        'human':   human,
        'clock':   clock,
        'lock':    threading.Lock(),
    }
    logger.info('New game %s against the %s bot', game_id, bot_name)
    return jsonify(build_response(game_id, games[game_id]))
@app.route('/api/state', methods=['GET'])
@game_route
def state(game_id, game_state, data):
    return jsonify(build_response(game_id, game_state))


def _choose_card(human, choice):
    """Answer with a card code, or a 1-based position in the zone being played.

    Positions are the only way to pick a face down card.
    """
    if isinstance(choice, int) and not isinstance(choice, bool):
        return human.choose_index(choice)
    if not isinstance(choice, str):
        return None
    if choice.isdigit():
        return human.choose_index(int(choice))

    return human.choose_code(choice)


@app.route('/api/choose', methods=['POST'])
@game_route
def choose(game_id, game_state, data):
    human: HumanPlayer = game_state['human']
    if human.pending is None:
        return jsonify({'error': 'Not waiting for the human'}), 400

    choice = data.get('card')
    if _choose_card(human, choice) is None:
        return jsonify({'error': f'Card {choice!r} cannot be chosen from this zone'}), 400

    return jsonify(build_response(game_id, game_state))


@app.route('/api/take_pile', methods=['POST'])
@game_route
def take_pile(game_id, game_state, data):
    if not _can_take_pile(game_state):
        return jsonify({'error': 'The pile cannot be taken now'}), 400

    game_state['human'].take_pile()
    return jsonify(build_response(game_id, game_state))


@app.route('/api/shown_hand', methods=['POST'])
@game_route
def shown_hand(game_id, game_state, data):
    try:
        event = SetShownHand(
            PlayerId[data['player']],
            ShownHand[data['shown_hand']],
        )
    except (KeyError, TypeError) as exc:
        return jsonify({'error': f'Invalid shown hand data: {exc}'}), 400

    game_state['machine'].send(event)
    return jsonify(build_response(game_id, game_state))


if __name__ == '__main__':
    logging.basicConfig(level=WEB_CONFIG['log_level'])
    app.run(debug=WEB_CONFIG['debug'], host=WEB_CONFIG['host'], port=WEB_CONFIG['port'])
