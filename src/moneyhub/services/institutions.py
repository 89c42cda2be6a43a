"""Institution metadata lookup with a per-institution cache."""

import logging
import threading

from ..errors import Err, ErrorKind, Ok, Result
from ..ports import AccountDataGateway
from ..schemas import InstitutionInfo

logger = logging.getLogger(__name__)


class InstitutionResolver:
    """Resolves institution IDs to metadata through the gateway.

    Many connections usually share an institution, so successful lookups are
    cached by institution ID. Failures are not cached and are retried on the
    next call. The cache is shared by the aggregator's worker threads.
    """

    def __init__(self, gateway: AccountDataGateway, cache_enabled: bool = True):
        self.gateway = gateway
        self.cache_enabled = cache_enabled
        self._cache: dict[str, InstitutionInfo] = {}
        self._lock = threading.Lock()

    def resolve(self, institution_id: str | None) -> Result[InstitutionInfo]:
        """Look up one institution.

        Args:
            institution_id: Plaid institution ID; None when the provider
                did not report one for the item.

        Returns:
            Result[InstitutionInfo]: The metadata, or an UPSTREAM_UNAVAILABLE
            error for a missing ID or a failed lookup.
        """
        if not institution_id:
            return Err(ErrorKind.UPSTREAM_UNAVAILABLE, "Missing institution ID")

        if self.cache_enabled:
            with self._lock:
                cached = self._cache.get(institution_id)
            if cached is not None:
                return Ok(cached)

        result = self.gateway.get_institution(institution_id)
        if isinstance(result, Err):
            logger.warning(f"Institution {institution_id} unavailable: {result.message}")
            return result

        if self.cache_enabled:
            with self._lock:
                self._cache[institution_id] = result.value
        return result

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
