"""Common literal values used across slide_pages.

These constants keep file names, URLs and wire messages centralized so the
server, builder, templates, and tests import the same values without
drifting. Intended for internal use within the slide_pages package.

Examples
--------
>>> from slide_pages import _constants
>>> _constants.RELOAD_MESSAGE
'reload'
>>> _constants.FAVICON_NAME
'favicon.ico'
"""

DEFAULT_CONFIG_FILE = "config.json"
DEFAULTS_FILE = "defaults.json"
FAVICON_NAME = "favicon.ico"
RELOAD_MESSAGE = "reload"
RELOAD_PATH = "/__reload__"
RELOAD_DELAY = 0.3
PARTIAL_SUFFIX = ".jinja"
PREPROCESSOR_ENTRY_POINT_GROUP = "slide_pages.preprocessors"
GLOB_CHARACTERS = frozenset("*?[]{}!")
