"""Traffic statistics entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestRecord:
    """Outcome of one chat request, as recorded by the traffic stats.

    Attributes:
        timestamp: Unix timestamp when the request finished
        model: Requested model id
        latency_ms: Time spent serving the request
        input_tokens: Estimated prompt tokens
        output_tokens: Estimated completion tokens
        success: Whether the request produced a response
        error: Error message for failed requests
        cached: Whether the response came from the response cache
    """

    timestamp: float
    model: str
    latency_ms: float
    input_tokens: int
    output_tokens: int
    success: bool
    error: str | None = None
    cached: bool = False


@dataclass
class ModelStats:
    """Aggregated statistics for a single model."""

    total_requests: int = 0
    success_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    cache_hits: int = 0
    last_request: float | None = None
    last_latency_ms: float | None = None
    status: str = "unknown"
    last_error: str | None = None

    @property
    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_latency_ms / self.total_requests
