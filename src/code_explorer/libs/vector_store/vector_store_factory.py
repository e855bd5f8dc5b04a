"""Factory for creating VectorStore provider instances.

Provider classes register themselves by name; ``create`` picks one from
``vector_store.provider`` in settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings


class VectorStoreFactory:
    """Factory for creating VectorStore provider instances."""

    _PROVIDERS: dict[str, type[BaseVectorStore]] = {}

    @classmethod
    def register_provider(cls, name: str, provider_class: type[BaseVectorStore]) -> None:
        """Register a VectorStore provider implementation.

        Args:
            name: The provider identifier (e.g., 'chroma').
            provider_class: The BaseVectorStore subclass implementing the provider.

        Raises:
            ValueError: If provider_class doesn't inherit from BaseVectorStore.
        """
        if not issubclass(provider_class, BaseVectorStore):
            raise ValueError(
                f"Provider class {provider_class.__name__} must inherit from BaseVectorStore"
            )
        cls._PROVIDERS[name.strip().lower()] = provider_class

    @classmethod
    def create(cls, settings: Settings, **override_kwargs: Any) -> BaseVectorStore:
        """Create a VectorStore instance based on configuration.

        Args:
            settings: Application settings with a ``vector_store`` section.
            **override_kwargs: Constructor overrides such as ``collection_name``.

        Returns:
            An instance of the configured VectorStore provider.

        Raises:
            ValueError: If the provider is missing or not registered.
            RuntimeError: If the provider constructor fails.
        """
        provider_raw = settings.vector_store.get("provider")
        if not isinstance(provider_raw, str) or not provider_raw.strip():
            raise ValueError(
                "Missing required configuration: vector_store.provider. "
                "Please ensure 'vector_store.provider' is specified in settings.yaml"
            )
        provider_name = provider_raw.strip().lower()

        provider_class = cls._PROVIDERS.get(provider_name)
        if provider_class is None:
            available = ", ".join(sorted(cls._PROVIDERS)) or "none"
            raise ValueError(
                f"Unsupported VectorStore provider: '{provider_name}'. "
                f"Available providers: {available}."
            )

        try:
            return provider_class(settings=settings, **override_kwargs)
        except Exception as e:
            raise RuntimeError(
                f"Failed to instantiate VectorStore provider '{provider_name}': {e}"
            ) from e

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names."""
        return sorted(cls._PROVIDERS)
