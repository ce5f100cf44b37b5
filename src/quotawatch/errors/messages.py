"""User-facing error messages with remediation."""

from __future__ import annotations

from rich.markup import escape

from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind

EXCERPT_LIMIT = 240

KIND_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_AUTHENTICATED: "Not signed in.",
    ErrorKind.INVALID_CREDENTIALS: "Credentials were rejected.",
    ErrorKind.MISSING_USAGE_DATA: "Signed in, but no usage data was found.",
    ErrorKind.NOT_INSTALLED: "CLI not installed.",
    ErrorKind.PARSE_FAILED: "Could not parse usage output; will retry shortly.",
    ErrorKind.TIMED_OUT: "Timed out waiting for usage data.",
    ErrorKind.BLOCKED_BY_PROMPT: "The CLI is blocked by an interactive prompt.",
    ErrorKind.NETWORK: "Network error.",
    ErrorKind.NO_CREDENTIAL_CANDIDATES: "No usable credentials found.",
}

PROVIDER_REMEDIATION: dict[str, dict[ErrorKind, str]] = {
    "codex": {
        ErrorKind.NOT_INSTALLED: (
            "Install the Codex CLI: [cyan]npm i -g @openai/codex[/cyan]"
        ),
        ErrorKind.BLOCKED_BY_PROMPT: (
            "Run [cyan]npm i -g @openai/codex[/cyan] to update; the update "
            "prompt blocks /status."
        ),
    },
    "claude": {
        ErrorKind.NOT_INSTALLED: (
            "Install Claude Code from: [cyan]https://claude.ai/download[/cyan]"
        ),
        ErrorKind.NOT_AUTHENTICATED: (
            "Log into [cyan]claude.ai[/cyan] in your browser or run "
            "[cyan]claude login[/cyan]."
        ),
        ErrorKind.BLOCKED_BY_PROMPT: (
            "Open [cyan]claude[/cyan] once and accept the folder trust prompt."
        ),
    },
    "ollama": {
        ErrorKind.NOT_AUTHENTICATED: (
            "Log into [cyan]ollama.com[/cyan] in your browser, or run "
            "'[cyan]quotawatch cookie ollama[/cyan]' to paste a Cookie header."
        ),
        ErrorKind.INVALID_CREDENTIALS: (
            "Ollama session expired. Log into [cyan]ollama.com[/cyan] again."
        ),
    },
    "openrouter": {
        ErrorKind.NO_CREDENTIAL_CANDIDATES: (
            "Set [cyan]OPENROUTER_API_KEY[/cyan] or run "
            "'[cyan]quotawatch key openrouter[/cyan]'."
        ),
        ErrorKind.INVALID_CREDENTIALS: "OpenRouter rejected the API key.",
    },
}

GENERAL_REMEDIATION: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Check your internet connection and try again.",
    ErrorKind.TIMED_OUT: "Try again. If the issue persists, raise fetch.timeout.",
    ErrorKind.NO_CREDENTIAL_CANDIDATES: (
        "Sign into the provider in a supported browser, or store credentials "
        "with '[cyan]quotawatch cookie[/cyan]' / '[cyan]quotawatch key[/cyan]'."
    ),
}


def get_provider_remediation(provider_id: str | None, kind: ErrorKind) -> str | None:
    """Get remediation for a provider error kind, falling back to general advice."""
    if provider_id is not None:
        specific = PROVIDER_REMEDIATION.get(provider_id, {}).get(kind)
        if specific:
            return specific
    return GENERAL_REMEDIATION.get(kind)


def truncate_excerpt(text: str | None, limit: int = EXCERPT_LIMIT) -> str | None:
    """Collapse whitespace and cut raw output to a short excerpt."""
    if not text:
        return None
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - 1] + "…"


def format_error(error: ClassifiedError, include_excerpt: bool = True) -> str:
    """Build the user-visible message for a classified error.

    The result is the kind's template, the detail when it adds anything,
    provider remediation, and a truncated raw excerpt. Never a traceback.
    """
    parts = [KIND_MESSAGES[error.kind]]
    if error.detail and error.detail != error.kind.value:
        parts[0] = f"{parts[0]} {escape(error.detail)}"

    remediation = get_provider_remediation(error.provider, error.kind)
    if remediation:
        parts.append(remediation)

    if include_excerpt:
        excerpt = truncate_excerpt(error.raw_excerpt)
        if excerpt:
            parts.append(f"[dim]Output: {escape(excerpt)}[/dim]")

    return "\n".join(parts)
