"""Data models for LLM requests, responses and token accounting."""

from dataclasses import dataclass, field

import structlog


logger = structlog.get_logger()

SINGLE_CALL_TOKEN_WARN = 20_000
TOTAL_TOKEN_WARN = 50_000


@dataclass(frozen=True)
class LlmRequest:
    """A single generation request.

    Attributes:
        prompt: User prompt text.
        system: Optional system instruction.
        temperature: Sampling temperature (provider default when None).
        max_tokens: Output token budget (provider default when None).
    """

    prompt: str
    system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass(frozen=True)
class LlmUsage:
    """Token usage reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class LlmResponse:
    """Generated text plus optional usage."""

    text: str
    usage: LlmUsage | None = None


@dataclass(frozen=True)
class ScoreEntry:
    """One element of an LLM scoring response.

    Attributes:
        id: Paper id as echoed by the model.
        score: Relevance from 1 to 10.
        reason: Short justification.
        summary: Optional one-line summary.
    """

    id: str
    score: float
    reason: str = ""
    summary: str | None = None


@dataclass
class TokenLedger:
    """Cumulative token usage across the LLM calls of one run.

    Attributes:
        input_tokens: Total input tokens.
        output_tokens: Total output tokens.
        calls: Number of calls that reported usage.
        warnings: Human-readable threshold warnings raised so far.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    calls: int = 0
    warnings: list[str] = field(default_factory=list)

    def record(self, label: str, usage: LlmUsage | None) -> None:
        """Add one call's usage and warn on oversized prompts.

        Args:
            label: Which call this was (for logs).
            usage: Usage reported by the provider; None is ignored.
        """
        if usage is None:
            return
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.calls += 1
        log = logger.bind(component="llm", subcomponent="tokens")
        log.info(
            "llm_tokens_used",
            label=label,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            total_input_tokens=self.input_tokens,
        )
        if usage.input_tokens > SINGLE_CALL_TOKEN_WARN:
            message = (
                f"{label} single-call input={usage.input_tokens} exceeds "
                f"threshold ({SINGLE_CALL_TOKEN_WARN})"
            )
            self.warnings.append(message)
            log.warning("llm_call_token_threshold_exceeded", label=label)

    def check_total(self) -> str | None:
        """Warning when the run's total input exceeds the run threshold."""
        if self.input_tokens <= TOTAL_TOKEN_WARN:
            return None
        message = (
            f"total run input={self.input_tokens} exceeds {TOTAL_TOKEN_WARN}"
        )
        self.warnings.append(message)
        logger.warning(
            "llm_run_token_threshold_exceeded",
            component="llm",
            total_input_tokens=self.input_tokens,
        )
        return message
