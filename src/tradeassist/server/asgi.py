"""ASGI entry point for running the tradeassist server under an external ASGI server.

    uvicorn tradeassist.server.asgi:app --host ... --port ...

The config file is taken from ``TRADEASSIST_CONFIG`` when set.
"""

from tradeassist.config.loader import load_config
from tradeassist.server.app import create_app

config = load_config()
app = create_app(config)
