"""Map-based running and cycling activity log.

Record runs and rides at a point on a map, compute pace and speed,
persist the activity list between sessions, and render it as a Leaflet map
with a synchronized activity list.
"""

__version__ = "0.1.0"

__author__ = "mapty contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
