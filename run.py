"""Development server for the build trend dashboard.

Settings come from the environment (and a ``.env`` file, read by
``trendboard.config``). TRENDBOARD_HOST / TRENDBOARD_PORT pick the address,
TRENDBOARD_NO_BROWSER=1 skips opening a browser tab.
"""

import os
import webbrowser
from threading import Timer

from trendboard.app import create_app

app = create_app()


def main():
    host = os.getenv("TRENDBOARD_HOST", "127.0.0.1")
    port = int(os.getenv("TRENDBOARD_PORT", "5000"))
    if os.getenv("TRENDBOARD_NO_BROWSER") != "1":
        Timer(1, webbrowser.open_new, args=(f"http://{host}:{port}",)).start()
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
