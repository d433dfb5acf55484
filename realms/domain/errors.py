"""Domain exceptions translated to HTTP statuses by the routers."""


class ForbiddenError(Exception):
    """The caller is authenticated but not allowed to touch the resource."""


class LimitExceededError(ValueError):
    """A role limit (characters, library entries, campaigns) was reached."""
