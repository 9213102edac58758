"""
Policy Step Loader

Lists every policy step implementation. Kept apart from the registry so the
step modules never import it.
"""

from hubgate.gateway_plane.policy.credential import SubstituteCredential
from hubgate.gateway_plane.policy.inject_param import InjectDefaultParam
from hubgate.gateway_plane.policy.rate_limit import RateLimit

# All policy step classes to be registered
POLICY_STEP_CLASSES = [
    InjectDefaultParam,
    SubstituteCredential,
    RateLimit,
]
