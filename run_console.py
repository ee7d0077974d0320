"""Play Zhithead against the bot in a terminal."""
import logging

from zhithead.engine.game import PlayerId, ZhitheadMachine, create_initial_state
from zhithead.engine.players import ConsolePlayer, LowestCardPlayer
from zhithead.engine.timers import MonotonicClock
from zhithead.web.config import WEB_CONFIG


def main():
    logging.basicConfig(level=WEB_CONFIG['log_level'], format='%(message)s')

    clock   = MonotonicClock()
    human   = ConsolePlayer()
    machine = ZhitheadMachine(
        create_initial_state(),
        {PlayerId.human: human, PlayerId.bot: LowestCardPlayer()},
        clock,
    )
    machine.start()

    while not machine.finished:
        if human.pending is not None:
            human.prompt()
        elif not clock.sleep_until_next():
            break

    if machine.winner is PlayerId.human:
        print('You win!')
    elif machine.winner is PlayerId.bot:
        print('The bot wins. You are the Zhithead.')


if __name__ == '__main__':
    main()
