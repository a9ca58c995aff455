"""Error taxonomy for the aggregation engine.

Every expected upstream failure is reported as an AggregationError subclass.
Fetchers raise them; the aggregator decides whether a failure degrades to a
zero balance, a skipped chain, or the error surfaced to the caller.
"""

from typing import Optional


class AggregationError(Exception):
    """Base class for all aggregation failures."""

    kind = "aggregation_error"

    def __init__(
        self,
        message: str = "",
        *,
        chain: Optional[str] = None,
        upstream: Optional[str] = None,
    ):
        self.message = message or self.__class__.__name__
        self.chain = chain
        self.upstream = upstream
        super().__init__(self.message)

    def __str__(self) -> str:
        context = []
        if self.chain:
            context.append(f"chain={self.chain}")
        if self.upstream:
            context.append(f"upstream={self.upstream}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class InvalidEndpointError(AggregationError):
    """A request URL could not be constructed from the configuration."""

    kind = "invalid_endpoint"


class UpstreamUnavailableError(AggregationError):
    """Network failure or a non-2xx response from an upstream."""

    kind = "upstream_unavailable"

    def __init__(self, message: str = "", *, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RpcError(UpstreamUnavailableError):
    """JSON-RPC error object returned by a node."""

    def __init__(self, code: int, rpc_message: str, **kwargs):
        super().__init__(f"RPC error ({code}): {rpc_message}", **kwargs)
        self.code = code
        self.rpc_message = rpc_message


class MalformedResponseError(AggregationError):
    """The upstream answered but the payload could not be decoded."""

    kind = "malformed_response"


class MissingCredentialError(AggregationError):
    """No API key could be resolved for an upstream that requires one."""

    kind = "missing_credential"

    def __init__(self, name: str, **kwargs):
        super().__init__(f"Missing API key: {name}", **kwargs)
        self.name = name


class RateLimitedError(AggregationError):
    """The upstream answered HTTP 429."""

    kind = "rate_limited"


class UnsupportedOperationError(AggregationError):
    """The operation has no implementation for the requested target."""

    kind = "unsupported_operation"
