"""Ready-made route lists to add to an app.

    not_found -- ``all /*`` raising ``NotFound``; add it last
    version_routes -- ``/version.json`` and ``/version`` build information
"""

from perch.apps.not_found import not_found
from perch.apps.version import version_routes

__all__ = ["not_found", "version_routes"]
