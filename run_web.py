"""Launch the Zhithead web API."""
import logging

from zhithead.web.app import app
from zhithead.web.config import WEB_CONFIG

if __name__ == '__main__':
    logging.basicConfig(level=WEB_CONFIG['log_level'])
    print(f"Starting Zhithead at http://localhost:{WEB_CONFIG['port']}")
    app.run(debug=WEB_CONFIG['debug'], host=WEB_CONFIG['host'], port=WEB_CONFIG['port'])
