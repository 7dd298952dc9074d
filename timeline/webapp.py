"""
Immersion Timeline - Flask application factory

Wires the engine, admin facade, batch registry and media client onto the
app. Importing this module does not monkey-patch; server.py does that
before anything else when running under gevent.
"""

import logging
from flask import Flask

from region_storage import create_store, ResolutionCache
from region_ai import RegionResolverClient
from region_inference import InferenceEngine
from region_admin import RegionAdmin
from batch import BatchRegistry
from media_client import MediaStoreClient

logger = logging.getLogger(__name__)


def build_engine() -> InferenceEngine:
    """Engine wired to the configured storage backend and HTTP resolver"""
    return InferenceEngine(
        overrides=create_store("overrides"),
        cache=ResolutionCache(create_store("cache")),
        resolver=RegionResolverClient(),
    )


def create_app(engine: InferenceEngine = None, media_client=None) -> Flask:
    app = Flask(__name__)

    engine = engine or build_engine()
    app.extensions['timeline'] = {
        'engine': engine,
        'admin': RegionAdmin(engine),
        'batches': BatchRegistry(),
        'media': media_client or MediaStoreClient(),
    }

    from routes import api
    app.register_blueprint(api)
    return app
