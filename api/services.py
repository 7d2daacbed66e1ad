"""
Service initialization and dependency injection for the Follow-Up Engine API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Any, Optional

from config.settings import get_settings, Settings
from followup.orchestrator import FollowUpOrchestrator
from llm.providers import create_llm_provider

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.llm_provider: Optional[Any] = None
        self.orchestrator: Optional[FollowUpOrchestrator] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        try:
            self._init_llm()
            self._init_orchestrator()
            self._initialized = True
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            self._initialized = True
            logger.warning("API starting in degraded mode")

    def _init_llm(self):
        """Initialize the generative provider; None means rule-based only."""
        try:
            self.llm_provider = create_llm_provider(self.settings)
        except Exception as e:
            logger.warning(f"LLM provider unavailable, using rule-based fallbacks: {e}")
            self.llm_provider = None

    def _init_orchestrator(self):
        """Initialize the follow-up orchestrator."""
        self.orchestrator = FollowUpOrchestrator.from_settings(self.settings, provider=self.llm_provider)
        logger.info(
            f"Follow-up orchestrator ready (dedupe={'on' if self.orchestrator.claims is not None else 'off'})"
        )

    async def shutdown(self):
        """Wait for in-flight CRM dispatches and release provider connections."""
        if self.orchestrator is not None:
            await self.orchestrator.dispatcher.drain()
        close = getattr(self.llm_provider, "aclose", None)
        if close is not None:
            await close()

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "llm": self.llm_provider is not None,
            "orchestrator": self.orchestrator is not None,
            "dedupe": self.orchestrator is not None and self.orchestrator.claims is not None,
            "pending_dispatches": self.orchestrator.dispatcher.task_queue.pending if self.orchestrator else 0,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()
