"""Version information for bacroute."""

__version__ = "1.1.0"
__author__ = "bacroute developers"
__license__ = "MIT"
__description__ = "Sample routing engine for bacterial genome assembly and annotation workflows"
