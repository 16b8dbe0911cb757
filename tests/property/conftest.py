"""Hypothesis profiles for the property suite.

``CHATFLOW_HYPOTHESIS_PROFILE`` picks the profile; ``default`` otherwise.
"""

import os

from hypothesis import HealthCheck, settings

PROFILE_ENV = "CHATFLOW_HYPOTHESIS_PROFILE"

# Generated flows stay small, so the default run is cheap.
settings.register_profile(
    "default",
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile("ci", parent=settings.get_profile("default"), max_examples=300)

settings.load_profile(os.getenv(PROFILE_ENV, "default"))
