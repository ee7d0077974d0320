"""Web front end configuration, read from the environment."""
import os


def _flag(name, default='0'):
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


WEB_CONFIG = {
    'host':       os.getenv('ZHITHEAD_HOST', '0.0.0.0'),
    'port':       int(os.getenv('ZHITHEAD_PORT', '5000')),
    'debug':      _flag('ZHITHEAD_DEBUG'),
    'log_level':  os.getenv('ZHITHEAD_LOG_LEVEL', 'INFO').upper(),
    'secret_key': os.getenv('ZHITHEAD_SECRET_KEY', 'zhithead-secret'),
    'bot':        os.getenv('ZHITHEAD_BOT', 'lowest'),
}
