"""
Application-wide constants for the channel engine.
Centralized location for timing defaults, bumper clips and field fallbacks.
"""

import os

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Transition timing (milliseconds)
DEFAULT_FALLBACK_TIMEOUT_MS = 10_000   # force-dismiss overlay if the bumper never ends
DEFAULT_ADVANCE_FLOOR_MS = 1_500       # minimum cover time before a scheduled swap
DEFAULT_SLIDE_COVER_LEAD_MS = 1_500    # raise the overlay this long before a slide ends
DEFAULT_DEEP_LINK_DELAY_MS = 500       # let the renderer mount before the first play

# Slides
DEFAULT_SLIDE_DURATION_SECONDS = 45

# Bumper clips (order only matters for seeded shuffles)
DEFAULT_BUMPERS = (
    '/videos_intro/intro1.mp4',
    '/videos_intro/intro2.mp4',
    '/videos_intro/intro3.mp4',
    '/videos_intro/intro4.mp4',
    '/videos_intro/intro5.mp4',
)
DEFAULT_SLIDE_BUMPER = '/videos_intro/noticias.mp4'

# Selection exclusions (deployment data), empty means nothing is excluded
DEFAULT_FORBIDDEN_CATEGORY = ''
DEFAULT_EXCLUDED_ITEM_ID = ''

# Record normalisation fallbacks
DEFAULT_STREAM_NAME = 'Video sin nombre'
DEFAULT_SLIDE_TITLE = 'Sin título'
DEFAULT_STREAM_CATEGORY = 'Varios'
DEFAULT_SLIDE_CATEGORY = 'General'

# Content source
DEFAULT_SOURCE_PATH = os.path.join(_PROJECT_ROOT, 'content', 'pool.json')
SOURCE_HTTP_TIMEOUT = 10

# Headless renderer (seconds)
DEFAULT_SIM_BUMPER_SECONDS = 4.0
DEFAULT_SIM_STREAM_SECONDS = 30.0

# Deep links
DEEP_LINK_STREAM_PARAM = 'v'
DEEP_LINK_SLIDE_PARAM = 'id'
DEFAULT_SHARE_BASE_URL = 'https://example.com'
