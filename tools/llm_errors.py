"""
Model Client Error Types — Structured exception hierarchy.

Lets the client's retry loop distinguish retryable failures (timeout,
overload, transport) from non-retryable ones (bad request, auth), and lets
callers tell "the model said nothing usable" apart from "the call failed".
"""


class ModelClientError(Exception):
    """Base class for all model client errors."""
    pass


class ModelTimeoutError(ModelClientError):
    """The generation call did not finish within the configured timeout. Retryable."""
    pass


class ModelResponseError(ModelClientError):
    """Transport failure, overload, 5xx or an empty candidate. Retryable."""
    pass


class ModelRequestError(ModelClientError):
    """The provider rejected the request (4xx, auth, safety block). NOT retryable."""
    pass


class ModelNotConfiguredError(ModelClientError):
    """No API key / client configured. NOT retryable without config change."""
    pass


class ModelJsonParseError(ModelClientError):
    """The model answered, but not with a JSON object we could recover."""
    pass
