from apps.core.throttle import BaseCacheThrottle


class NegotiationRateThrottle(BaseCacheThrottle):
    """Rate limiting for negotiation reads"""

    scope = "negotiation"


class NegotiationCreateRateThrottle(BaseCacheThrottle):
    """Rate limiting for opening negotiations"""

    scope = "negotiation_create"


class NegotiationRespondRateThrottle(BaseCacheThrottle):
    """Rate limiting for counter offers, acceptances and rejections"""

    scope = "negotiation_respond"
