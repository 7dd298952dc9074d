#!/usr/bin/env python3
"""
Immersion Timeline Region Server

Serves the region-inference API:
- /api/region-lookup (Claude-backed resolver the engine calls over HTTP)
- /api/regions/* (inference, overrides, cache admin, import/export, batches)
"""

# Gevent monkey patching must happen first
from gevent import monkey
monkey.patch_all()

import os
import logging
from gevent.pywsgi import WSGIServer

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from webapp import create_app

app = create_app()


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    logger.info(f"Starting Immersion Timeline region server on port {port}")
    WSGIServer(('0.0.0.0', port), app).serve_forever()
