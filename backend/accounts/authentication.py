from rest_framework.authentication import TokenAuthentication


class BearerTokenAuthentication(TokenAuthentication):
    """Accept DRF tokens sent as ``Authorization: Bearer <key>``."""

    keyword = 'Bearer'
