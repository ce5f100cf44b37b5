"""Token-authenticated REST API strategy."""

from __future__ import annotations

import logging
from abc import abstractmethod

from quotawatch.auth.base import CredentialCandidate
from quotawatch.auth.tokens import resolve_token_candidates
from quotawatch.config.settings import SourceMode
from quotawatch.core.retry import run_candidates
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.models import UsageSnapshot
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy
from quotawatch.strategies.base import StrategyKind

logger = logging.getLogger(__name__)


def is_token_retryable(error: BaseException) -> bool:
    return isinstance(error, ClassifiedError) and error.kind is ErrorKind.INVALID_CREDENTIALS


class TokenAPIStrategy(FetchStrategy):
    """Fetch usage from a REST API with a bearer token.

    The environment variable wins over the token stored in the keyring;
    a rejected token falls through to the next one.
    """

    name = "api"
    kind = StrategyKind.API

    env_var: str

    @abstractmethod
    async def fetch_with_token(
        self,
        token: str,
        context: FetchContext,
        diagnostics: dict,
    ) -> UsageSnapshot:
        """Fetch a snapshot with one token.

        Raises:
            ClassifiedError: For every expected failure.
        """

    def candidates(self, context: FetchContext) -> list[CredentialCandidate]:
        return resolve_token_candidates(
            context.provider_id, self.env_var, context.secrets, context.environ
        )

    def is_available(self, context: FetchContext) -> bool:
        return context.source_mode in (SourceMode.AUTO, SourceMode.API)

    async def fetch(self, context: FetchContext) -> FetchResult:
        candidates = self.candidates(context)
        diagnostics: dict = {"candidates": [c.source_label for c in candidates]}
        if not candidates:
            return FetchResult.fail(
                ClassifiedError(
                    ErrorKind.NO_CREDENTIAL_CANDIDATES,
                    f"{self.env_var} is not set and no token is stored",
                    provider=context.provider_id,
                ),
                diagnostics,
            )

        async def attempt(candidate: CredentialCandidate) -> tuple[UsageSnapshot, str]:
            snapshot = await self.fetch_with_token(
                candidate.credential or "", context, diagnostics
            )
            return snapshot, candidate.source_label

        try:
            snapshot, label = await run_candidates(
                candidates, attempt, should_retry=is_token_retryable
            )
        except ClassifiedError as e:
            return FetchResult.fail(e, diagnostics)

        return FetchResult.ok(snapshot, label, diagnostics)
