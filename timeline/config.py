"""
Immersion Timeline - Configuration Module

All tunable region-inference parameters live here. Adjust these to change
resolution behaviour without touching the inference logic.
"""

import os

# =============================================================================
# AI RESOLVER
# =============================================================================

# Endpoint the inference engine calls for unknown periods.
# By default this is the /api/region-lookup route served by this same app.
REGION_LOOKUP_URL = os.environ.get(
    "REGION_LOOKUP_URL", "http://localhost:5000/api/region-lookup"
)

# Client-side timeout for one resolver call (seconds)
AI_TIMEOUT_SECONDS = float(os.environ.get("AI_TIMEOUT_SECONDS", "12"))

# Model used by the /api/region-lookup route
AI_MODEL = os.environ.get("AI_MODEL", "claude-sonnet-4-5-20250929")
AI_MAX_TOKENS = 300

# Titles are truncated before being sent to the resolver
TITLE_MAX_CHARS = 120

# =============================================================================
# CACHING
# =============================================================================

# AI results expire after 30 days. Static/custom entries never expire.
CACHE_TTL_SECONDS = 30 * 24 * 60 * 60

# =============================================================================
# BATCH RE-ANALYSIS
# =============================================================================

# Gap between resolver calls during a batch run (seconds)
BATCH_DELAY_SECONDS = float(os.environ.get("BATCH_DELAY_SECONDS", "0.2"))

# =============================================================================
# "DID YOU MEAN" SUGGESTIONS
# =============================================================================

SUGGESTION_CUTOFF = 0.75   # difflib similarity ratio, 0..1
SUGGESTION_LIMIT = 3

# =============================================================================
# STORAGE
# =============================================================================

# Where custom overrides and the AI cache are persisted:
#   "json"     - one JSON object per store (bulk blob)
#   "files"    - one JSON file per period
#   "database" - Postgres tables (needs DATABASE_URL)
#   "memory"   - process-local only
REGION_STORE_BACKEND = os.environ.get("REGION_STORE_BACKEND", "json").lower()

REGION_DATA_DIR = os.environ.get(
    "REGION_DATA_DIR",
    os.path.join(os.path.dirname(__file__), "..", "data"),
)

VALID_STORE_BACKENDS = ["json", "files", "database", "memory"]

# =============================================================================
# MEDIA STORE
# =============================================================================

# Remote media API (Lambda/DynamoDB) used when applying batch results
MEDIA_API_URL = os.environ.get("MEDIA_API_URL", "http://localhost:3001")
MEDIA_API_TIMEOUT_SECONDS = 10


def get_store_backend():
    """Returns the validated store backend name, falling back to json"""
    if REGION_STORE_BACKEND in VALID_STORE_BACKENDS:
        return REGION_STORE_BACKEND
    return "json"
