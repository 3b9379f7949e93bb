"""Routing of model requests to the configured provider."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..models.enums import RequestType
from ..services.configuration_manager import ConfigurationManager, LLMProviderConfig
from ..utils.exceptions import ExamCoachError, LLMProviderError
from ..utils.logging import get_logger, log_performance


@dataclass
class LLMRequest:
    """A single prompt; ``model`` and ``timeout`` default to the role's settings."""
    type: RequestType
    prompt: str
    json_output: bool = False
    model: Optional[str] = None
    timeout: Optional[int] = None


@dataclass
class LLMResponse:
    """Reply text plus where it came from and how long it took."""
    content: str
    provider: str
    model: str
    response_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class LLMProvider(ABC):
    """A hosted-model backend."""

    def __init__(self, config: LLMProviderConfig):
        self.config = config
        self.provider_name = config.name
        self.logger = get_logger(f"llm.provider.{self.provider_name}")

    @abstractmethod
    def initialize(self) -> None:
        """Check credentials and open long-lived resources."""

    @abstractmethod
    async def cleanup(self) -> None:
        """Release resources opened by ``initialize``."""

    @abstractmethod
    async def generate_text(self, prompt: str, model: str, timeout: int, json_output: bool = False) -> str:
        """Send a single prompt and return the reply text.

        Raises:
            RemoteCallError: On transport failure, timeout or a non-2xx status.
            MalformedResponseError: When the reply carries no text.
        """

    @abstractmethod
    def list_models(self) -> List[str]:
        """List the model names that can generate content."""


def _create_gemini(config: LLMProviderConfig) -> LLMProvider:
    from ..providers.gemini_provider import GeminiProvider
    return GeminiProvider(config)


PROVIDER_FACTORIES: Dict[str, Callable[[LLMProviderConfig], LLMProvider]] = {
    "gemini": _create_gemini,
}


class LLMProviderManager:
    """Owns the configured providers and routes each request to its model tier."""

    def __init__(self, config_manager: ConfigurationManager):
        self.config_manager = config_manager
        self.providers: Dict[str, LLMProvider] = {}
        self.logger = get_logger("llm.manager")
        self._initialized = False

    def initialize(self) -> None:
        """Create a provider for every configured entry with a known type."""
        if self._initialized:
            return

        for name, config in self.config_manager.get_llm_provider_configs().items():
            factory = PROVIDER_FACTORIES.get(name.lower())
            if factory is None:
                self.logger.warning(f"Unknown provider type: {name}")
                continue
            provider = factory(config)
            provider.initialize()
            self.providers[name] = provider

        self._initialized = True
        self.logger.info(f"Ready with providers: {list(self.providers) or 'none'}")

    def get_provider(self) -> LLMProvider:
        """Return the first configured provider.

        Raises:
            LLMProviderError: If none is configured
        """
        if not self.providers:
            raise LLMProviderError(
                "No LLM providers available. Check that GEMINI_API_KEY is set "
                "(in the environment or .env) and that providers.yaml enables a provider."
            )
        return next(iter(self.providers.values()))

    async def make_request(self, request: LLMRequest) -> LLMResponse:
        """Send a request using the model and timeout configured for its role."""
        provider = self.get_provider()
        model = request.model or provider.config.model_for(request.type)
        timeout = request.timeout or provider.config.timeout_for(request.type)
        role = request.type.value

        self.logger.info(f"Sending {role} request to {provider.provider_name} ({model}, {timeout}s)")
        started = time.monotonic()
        try:
            content = await provider.generate_text(request.prompt, model=model, timeout=timeout,
                                                   json_output=request.json_output)
        except ExamCoachError as e:
            self.logger.error(f"{role} request failed: {e}")
            raise
        except Exception as e:
            self.logger.error(f"{role} request failed unexpectedly: {e}", exc_info=True)
            raise LLMProviderError(f"LLM request failed: {e}", provider_name=provider.provider_name)

        elapsed = time.monotonic() - started
        log_performance(f"llm.{role}", elapsed, {"model": model})
        return LLMResponse(
            content=content,
            provider=provider.provider_name,
            model=model,
            response_time=elapsed,
            metadata={"request_type": role},
        )

    def list_models(self) -> List[str]:
        return self.get_provider().list_models()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def cleanup(self) -> None:
        """Close every provider and forget them."""
        for provider in self.providers.values():
            try:
                await provider.cleanup()
            except Exception as e:
                self.logger.error(f"Cleanup of provider {provider.provider_name} failed: {e}")

        self.providers.clear()
        self._initialized = False
